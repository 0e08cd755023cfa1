import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class POSError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(POSError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(POSError):
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(POSError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(POSError):
    status_code = status.HTTP_409_CONFLICT


class InsufficientStockError(ValidationError):
    def __init__(self, product_name: str, available) -> None:
        super().__init__(f"Insufficient stock for {product_name} (available: {available})")
        self.product_name = product_name
        self.available = available


class OutOfStockError(ValidationError):
    def __init__(self, product_name: str) -> None:
        super().__init__(f"{product_name} is out of stock")
        self.product_name = product_name


class TenantError(POSError):
    status_code = status.HTTP_400_BAD_REQUEST


async def pos_error_handler(request: Request, exc: POSError) -> JSONResponse:
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
