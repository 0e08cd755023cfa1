from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from posdesk.api.deps import get_db, require_permission
from posdesk.models.employee import Employee
from posdesk.models.setting import Setting
from posdesk.schemas.settings import SettingOut, SettingUpsert
from posdesk.services.settings_store import settings_map, upsert_setting

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=list[SettingOut])
def list_settings(
    category: str | None = None,
    _: Employee = Depends(require_permission("settings:view")),
    db: Session = Depends(get_db),
):
    query = select(Setting).order_by(Setting.category.asc(), Setting.key.asc())
    if category:
        query = query.where(Setting.category == category)
    return list(db.scalars(query).all())


@router.get("/map")
def get_settings_map(
    category: str | None = None,
    _: Employee = Depends(require_permission("settings:view")),
    db: Session = Depends(get_db),
):
    return settings_map(db, category)


@router.put("/{key}", response_model=SettingOut)
def put_setting(
    key: str,
    payload: SettingUpsert,
    _: Employee = Depends(require_permission("settings:update")),
    db: Session = Depends(get_db),
):
    setting = upsert_setting(
        db,
        key=key.strip(),
        value=payload.value,
        type=payload.type,
        category=payload.category,
        description=payload.description,
    )
    db.commit()
    db.refresh(setting)
    return setting


@router.delete("/{key}", status_code=status.HTTP_204_NO_CONTENT)
def delete_setting(
    key: str,
    _: Employee = Depends(require_permission("settings:update")),
    db: Session = Depends(get_db),
):
    setting = db.scalar(select(Setting).where(Setting.key == key))
    if not setting:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Setting not found")
    db.delete(setting)
    db.commit()
