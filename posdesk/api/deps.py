from collections.abc import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from posdesk.core.config import settings
from posdesk.core.logging import tenant_schema_var
from posdesk.core.security import decode_token
from posdesk.db.tenancy import ensure_registered_tenant, get_active_schema, normalize_schema, session_for
from posdesk.models.employee import Employee
from posdesk.services.access import effective_permissions

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def resolve_request_schema(request: Request) -> str | None:
    header = request.headers.get(settings.tenant_header)
    if header is not None and header.strip():
        return normalize_schema(header)
    return get_active_schema()


def get_db(request: Request) -> Generator[Session, None, None]:
    schema = resolve_request_schema(request)
    ensure_registered_tenant(schema)
    request.state.tenant_schema = schema
    tenant_schema_var.set(schema or "public")
    db = session_for(schema)
    try:
        yield db
    finally:
        db.close()


def get_public_db() -> Generator[Session, None, None]:
    db = session_for(None)
    try:
        yield db
    finally:
        db.close()


def _clean_candidate(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip().strip("\"'").strip()
    # Normalize accidental duplicated prefixes like: "Bearer Bearer <jwt>"
    while cleaned.lower().startswith("bearer "):
        cleaned = cleaned[7:].strip()
    return cleaned or None


def get_current_employee(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Employee:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    raw_token = _clean_candidate(token) or _clean_candidate(request.headers.get("x-access-token"))
    if not raw_token:
        raise credentials_exception

    try:
        payload = decode_token(raw_token)
    except JWTError as exc:
        raise credentials_exception from exc
    subject = payload.get("sub")
    if subject is None or payload.get("type") != "access":
        raise credentials_exception

    # A token is only valid inside the tenant it was issued for.
    if payload.get("schema") != getattr(request.state, "tenant_schema", None):
        raise credentials_exception

    employee = db.scalar(select(Employee).where(Employee.id == int(subject)))
    if not employee:
        raise credentials_exception
    if not employee.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Employee account is inactive")
    return employee


def ensure_permission(db: Session, employee: Employee, permission: str) -> None:
    if permission not in effective_permissions(db, employee.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission required: {permission}",
        )


def require_permission(permission: str):
    def checker(
        current_employee: Employee = Depends(get_current_employee),
        db: Session = Depends(get_db),
    ) -> Employee:
        ensure_permission(db, current_employee, permission)
        return current_employee

    return checker
