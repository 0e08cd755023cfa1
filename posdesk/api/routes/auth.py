import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from posdesk.api.deps import get_current_employee, get_db
from posdesk.core.config import settings
from posdesk.core.security import create_access_token, verify_password
from posdesk.models.employee import Employee
from posdesk.schemas.auth import LoginRequest, MeOut, TokenResponse
from posdesk.schemas.employee import EmployeeOut, RoleSummary
from posdesk.services.access import effective_permissions, employee_roles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def employee_out(db: Session, employee: Employee) -> EmployeeOut:
    out = EmployeeOut.model_validate(employee)
    out.roles = [RoleSummary.model_validate(role) for role in employee_roles(db, employee.id)]
    return out


def authenticate_employee(db: Session, email: str, password: str) -> Employee:
    employee = db.scalar(select(Employee).where(func.lower(Employee.email) == email.strip().lower()))
    if not employee or not verify_password(password, employee.password_hash):
        logger.warning("Failed login for %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not employee.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Employee account is inactive")
    return employee


def _token_response(request: Request, employee: Employee) -> TokenResponse:
    schema = getattr(request.state, "tenant_schema", None)
    return TokenResponse(
        access_token=create_access_token(subject=str(employee.id), schema=schema),
        expires_in=settings.access_token_expire_minutes * 60,
        tenant_schema=schema,
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    employee = authenticate_employee(db, payload.email, payload.password)
    logger.info("Employee %s logged in", employee.employee_id)
    return _token_response(request, employee)


@router.post("/token", response_model=TokenResponse)
def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    employee = authenticate_employee(db, form_data.username, form_data.password)
    return _token_response(request, employee)


@router.get("/me", response_model=MeOut)
def get_me(current_employee: Employee = Depends(get_current_employee), db: Session = Depends(get_db)):
    out = employee_out(db, current_employee)
    return MeOut(**out.model_dump(), permissions=sorted(effective_permissions(db, current_employee.id)))
