import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from posdesk.api.routes.auth import router as auth_router
from posdesk.api.routes.catalog import router as catalog_router
from posdesk.api.routes.customers import router as customers_router
from posdesk.api.routes.employees import router as employees_router
from posdesk.api.routes.inventory import router as inventory_router
from posdesk.api.routes.purchasing import router as purchasing_router
from posdesk.api.routes.reports import router as reports_router
from posdesk.api.routes.sales import router as sales_router
from posdesk.api.routes.settings import router as settings_router
from posdesk.api.routes.tenants import router as tenants_router
from posdesk.core.config import settings
from posdesk.core.errors import POSError, pos_error_handler
from posdesk.core.logging import configure_logging, correlation_id_var, tenant_schema_var
from posdesk.db.tenancy import dispose_engines

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.log_level)
    logger.info("%s starting", settings.app_name)
    try:
        yield
    finally:
        dispose_engines()
        logger.info("%s stopped", settings.app_name)


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(POSError, pos_error_handler)


@app.middleware("http")
async def request_context(request: Request, call_next):
    correlation_id = request.headers.get("x-correlation-id") or uuid.uuid4().hex[:12]
    cid_token = correlation_id_var.set(correlation_id)
    tenant_token = tenant_schema_var.set(request.headers.get(settings.tenant_header) or None)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(cid_token)
        tenant_schema_var.reset(tenant_token)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


app.include_router(auth_router)
app.include_router(employees_router)
app.include_router(catalog_router)
app.include_router(customers_router)
app.include_router(inventory_router)
app.include_router(sales_router)
app.include_router(purchasing_router)
app.include_router(reports_router)
app.include_router(settings_router)
app.include_router(tenants_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
