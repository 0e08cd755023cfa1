import json

from sqlalchemy import select
from sqlalchemy.orm import Session

from posdesk.core.errors import ValidationError
from posdesk.models.setting import Setting

SETTING_TYPES = ("string", "number", "boolean", "json")


def coerce_setting_value(value: str, value_type: str):
    if value_type == "boolean":
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if value_type == "number":
        try:
            number = float(value)
        except ValueError as exc:
            raise ValidationError(f"Setting value is not a number: {value!r}") from exc
        return int(number) if number.is_integer() else number
    if value_type == "json":
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValidationError("Setting value is not valid JSON") from exc
    return value


def upsert_setting(
    db: Session,
    *,
    key: str,
    value: str,
    type: str = "string",
    category: str = "general",
    description: str | None = None,
) -> Setting:
    if type not in SETTING_TYPES:
        raise ValidationError(f"Unsupported setting type: {type}")
    coerce_setting_value(value, type)

    setting = db.scalar(select(Setting).where(Setting.key == key))
    if setting is None:
        setting = Setting(key=key, value=value, type=type, category=category, description=description)
        db.add(setting)
    else:
        setting.value = value
        setting.type = type
        setting.category = category
        if description is not None:
            setting.description = description
    db.flush()
    return setting


def settings_map(db: Session, category: str | None = None) -> dict:
    query = select(Setting).order_by(Setting.key.asc())
    if category:
        query = query.where(Setting.category == category)
    return {item.key: coerce_setting_value(item.value, item.type) for item in db.scalars(query).all()}
