from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posdesk.api.deps import get_db, require_permission
from posdesk.models.catalog import Category, Product
from posdesk.models.employee import Employee
from posdesk.schemas.catalog import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    ProductCreate,
    ProductOut,
    ProductPage,
    ProductUpdate,
    ScanCheck,
)
from posdesk.services.catalog import (
    category_descendant_ids,
    lookup_code,
    product_search_clause,
    scanned_code_is_plausible,
)

router = APIRouter(tags=["Catalog"])


def _get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


def _get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _category_out(category: Category, product_counts: dict[int, int], child_counts: dict[int, int]) -> CategoryOut:
    out = CategoryOut.model_validate(category)
    out.product_count = product_counts.get(category.id, 0)
    out.child_count = child_counts.get(category.id, 0)
    return out


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(
    parent_id: int | None = None,
    _: Employee = Depends(require_permission("categories:view")),
    db: Session = Depends(get_db),
):
    product_counts = dict(db.execute(select(Product.category_id, func.count(Product.id)).group_by(Product.category_id)).all())
    child_counts = dict(
        db.execute(
            select(Category.parent_category_id, func.count(Category.id))
            .where(Category.parent_category_id.is_not(None))
            .group_by(Category.parent_category_id)
        ).all()
    )
    query = select(Category).order_by(Category.name.asc())
    if parent_id is not None:
        query = query.where(Category.parent_category_id == parent_id)
    return [_category_out(category, product_counts, child_counts) for category in db.scalars(query).all()]


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    _: Employee = Depends(require_permission("categories:create")),
    db: Session = Depends(get_db),
):
    if payload.parent_category_id is not None:
        _get_category(db, payload.parent_category_id)
    category = Category(
        name=payload.name.strip(),
        description=_clean(payload.description),
        parent_category_id=payload.parent_category_id,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return _category_out(category, {}, {})


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    _: Employee = Depends(require_permission("categories:update")),
    db: Session = Depends(get_db),
):
    category = _get_category(db, category_id)
    if payload.name is not None:
        category.name = payload.name.strip()
    if payload.description is not None:
        category.description = _clean(payload.description)
    if "parent_category_id" in payload.model_fields_set:
        parent_id = payload.parent_category_id
        if parent_id is not None:
            _get_category(db, parent_id)
            if parent_id in category_descendant_ids(db, category.id):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="A category cannot be moved under itself",
                )
        category.parent_category_id = parent_id
    db.commit()
    db.refresh(category)
    return _category_out(category, {}, {})


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    _: Employee = Depends(require_permission("categories:delete")),
    db: Session = Depends(get_db),
):
    category = _get_category(db, category_id)
    if db.scalar(select(func.count(Product.id)).where(Product.category_id == category.id)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category still has products")
    if db.scalar(select(func.count(Category.id)).where(Category.parent_category_id == category.id)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category still has subcategories")
    db.delete(category)
    db.commit()


@router.post("/products", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    _: Employee = Depends(require_permission("products:create")),
    db: Session = Depends(get_db),
):
    _get_category(db, payload.category_id)
    data = payload.model_dump()
    for key in ("sku", "barcode", "english_name", "description", "brand", "unit_size", "unit"):
        data[key] = _clean(data[key])
    data["name"] = data["name"].strip()
    product = Product(**data)
    db.add(product)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="SKU already exists") from exc
    db.refresh(product)
    return product


@router.patch("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    _: Employee = Depends(require_permission("products:update")),
    db: Session = Depends(get_db),
):
    product = _get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        _get_category(db, changes["category_id"])
    for key, value in changes.items():
        if isinstance(value, str):
            value = value.strip() or None
        if value is None and key in {"name", "category_id", "price", "tax_rate", "stock_level"}:
            continue
        setattr(product, key, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="SKU already exists") from exc
    db.refresh(product)
    return product


@router.delete("/products/{product_id}", response_model=ProductOut)
def archive_product(
    product_id: int,
    _: Employee = Depends(require_permission("products:delete")),
    db: Session = Depends(get_db),
):
    product = _get_product(db, product_id)
    product.is_active = False
    db.commit()
    db.refresh(product)
    return product


@router.post("/products/{product_id}/activate", response_model=ProductOut)
def activate_product(
    product_id: int,
    _: Employee = Depends(require_permission("products:update")),
    db: Session = Depends(get_db),
):
    product = _get_product(db, product_id)
    product.is_active = True
    db.commit()
    db.refresh(product)
    return product


@router.get("/products", response_model=ProductPage)
def list_products(
    search: str | None = None,
    category_id: int | None = None,
    include_subcategories: bool = True,
    include_inactive: bool = False,
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=50, ge=1, le=500),
    _: Employee = Depends(require_permission("products:view")),
    db: Session = Depends(get_db),
):
    filters = []
    if not include_inactive:
        filters.append(Product.is_active.is_(True))
    if search and search.strip():
        filters.append(product_search_clause(search))
    if category_id is not None:
        if include_subcategories:
            filters.append(Product.category_id.in_(category_descendant_ids(db, category_id)))
        else:
            filters.append(Product.category_id == category_id)

    count = db.scalar(select(func.count(Product.id)).where(*filters)) or 0
    items = db.scalars(select(Product).where(*filters).order_by(Product.name.asc()).offset(skip).limit(take)).all()
    return ProductPage(items=[ProductOut.model_validate(item) for item in items], count=count)


@router.get("/products/lookup", response_model=list[ProductOut])
def lookup_product(
    code: str = Query(min_length=1),
    _: Employee = Depends(require_permission("products:view")),
    db: Session = Depends(get_db),
):
    return lookup_code(db, code)


@router.get("/products/scan-check", response_model=ScanCheck)
def check_scanned_code(
    code: str,
    _: Employee = Depends(require_permission("pos:access")),
):
    return ScanCheck(code=code, plausible=scanned_code_is_plausible(code))


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(
    product_id: int,
    _: Employee = Depends(require_permission("products:view")),
    db: Session = Depends(get_db),
):
    return _get_product(db, product_id)
