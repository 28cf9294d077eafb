import os
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

import models  # noqa: F401  (registers tables on Base.metadata)
from core.config import settings
from core.db import Base, engine
from core.celery import celery_app
from core.errors import OrderError
from core.logger import configure_logging
from routes.admin_orders import router as admin_orders_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.payments import router as payments_router

load_dotenv()
configure_logging()

logger = structlog.get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Ensure tables exist (for dev/test; in prod use Alembic)
Base.metadata.create_all(bind=engine)

app.include_router(orders_router)
app.include_router(admin_orders_router)
app.include_router(cart_router)
app.include_router(payments_router)


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    logger.warning(
        "request_failed",
        path=request.url.path,
        error=type(exc).__name__,
        detail=exc.message,
    )
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.message})


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
    }


@app.get("/celery-health")
async def celery_health_check():
    """Check Celery worker status"""
    if not settings.USE_CELERY:
        return {"status": "disabled", "message": "Side effects run inline"}
    try:
        inspect = celery_app.control.inspect()
        stats = inspect.stats()
        if stats:
            return {"status": "healthy", "workers": len(stats)}
        else:
            return {"status": "no_workers", "message": "No Celery workers running"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.DEBUG,
    )
