import re

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from posdesk.models.catalog import Category, Product

_PUNCTUATION = re.compile(r"""[\s!@#$%^&*()_+\-=\[\]{};':"\\|,.<>?/]""")


def scanned_code_is_plausible(code: str | None) -> bool:
    """Tell barcode-scanner input apart from stray keyboard typing."""
    if not code:
        return False
    code = code.strip()
    if len(code) < 3:
        return False
    if code.isdigit() and len(code) < 6:
        return False
    if code.isalpha() and code.isascii() and len(code) < 8:
        return False
    if _PUNCTUATION.search(code):
        return False
    return True


def product_search_clause(term: str):
    pattern = f"%{term.strip().lower()}%"
    return or_(
        func.lower(Product.name).like(pattern),
        func.lower(func.coalesce(Product.english_name, "")).like(pattern),
        func.lower(func.coalesce(Product.barcode, "")).like(pattern),
        func.lower(func.coalesce(Product.sku, "")).like(pattern),
    )


def lookup_code(db: Session, code: str, *, active_only: bool = True) -> list[Product]:
    """Exact barcode/SKU matches, else products whose name contains the code.

    More than one result means the caller has to pick; duplicate barcodes
    are allowed in the catalog.
    """
    code = code.strip()
    if not code:
        return []

    query = select(Product).where(or_(Product.barcode == code, Product.sku == code)).order_by(Product.name.asc())
    if active_only:
        query = query.where(Product.is_active.is_(True))
    matches = list(db.scalars(query).all())
    if matches:
        return matches

    fallback = select(Product).where(func.lower(Product.name).like(f"%{code.lower()}%")).order_by(Product.name.asc())
    if active_only:
        fallback = fallback.where(Product.is_active.is_(True))
    return list(db.scalars(fallback).all())


def category_descendant_ids(db: Session, category_id: int) -> set[int]:
    rows = db.execute(select(Category.id, Category.parent_category_id)).all()
    children: dict[int | None, list[int]] = {}
    for child_id, parent_id in rows:
        children.setdefault(parent_id, []).append(child_id)

    found = {category_id}
    pending = [category_id]
    while pending:
        current = pending.pop()
        for child_id in children.get(current, []):
            if child_id not in found:
                found.add(child_id)
                pending.append(child_id)
    return found
