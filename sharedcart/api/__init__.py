# sharedcart/api/__init__.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sharedcart.api.routers import carts, payments
from sharedcart.api.routers.health import router as health_router
from sharedcart.domain.errors import SharedCartError
from sharedcart.utils.logging import get_logger

logger = get_logger(__name__)


async def shared_cart_error_handler(request: Request, exc: SharedCartError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app():
    app = FastAPI(title="Shared Cart Service", version="1.0.0")
    app.add_exception_handler(SharedCartError, shared_cart_error_handler)

    app.include_router(health_router)
    app.include_router(carts.router)
    app.include_router(payments.router)
    return app
