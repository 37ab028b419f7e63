import json
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse

from teaboy_system import __version__
from teaboy_system.backend import config
from teaboy_system.backend.errors import NotFound, OrderServiceError, PayloadTooLarge, ValidationError
from teaboy_system.backend.log import configure_logging
from teaboy_system.backend.service import OrderService

logger = structlog.get_logger()

STARTED_AT = time.monotonic()


# -----------------------------
# Application lifespan
# -----------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    service = OrderService(config.DATA_DIR, config.DEFAULT_DESK_COUNT)
    try:
        await service.startup()
    except OSError as e:
        logger.error("initialization_error", error=str(e))
    app.state.service = service
    logger.info("application_startup", version=__version__, data_dir=str(config.DATA_DIR))
    yield
    logger.info("application_shutdown")


app = FastAPI(title="Beverage Orders API", version=__version__, lifespan=lifespan)


def get_service(request: Request) -> OrderService:
    return request.app.state.service


async def json_body(request: Request):
    limit = config.MAX_BODY_BYTES
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(f"Request body exceeds {limit} bytes")

    body = await request.body()
    if len(body) > limit:
        raise PayloadTooLarge(f"Request body exceeds {limit} bytes")
    try:
        return json.loads(body)
    except ValueError:
        raise ValidationError("Request body must be valid JSON")


# -----------------------------
# Request logging & errors
# -----------------------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info(
        "http_request",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
    )
    return response


@app.exception_handler(OrderServiceError)
async def service_error_handler(request: Request, exc: OrderServiceError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", error=str(exc), path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# -----------------------------
# Orders
# -----------------------------
@app.get("/api/orders")
async def list_orders(company: Optional[str] = None, service: OrderService = Depends(get_service)):
    return await service.list_orders(company)


@app.post("/api/orders", status_code=201)
async def create_order(
    request: Request,
    company: Optional[str] = None,
    service: OrderService = Depends(get_service),
):
    payload = await json_body(request)
    return await service.create_order(company, payload)


@app.put("/api/orders/bulk")
async def bulk_replace_orders(
    request: Request,
    company: Optional[str] = None,
    service: OrderService = Depends(get_service),
):
    payload = await json_body(request)
    count = await service.bulk_replace_orders(company, payload)
    return {"message": "Orders updated successfully", "count": count}


@app.get("/api/orders/{order_id}")
async def get_order(order_id: str, company: Optional[str] = None, service: OrderService = Depends(get_service)):
    return await service.get_order(company, order_id)


@app.put("/api/orders/{order_id}")
async def update_order(
    order_id: str,
    request: Request,
    company: Optional[str] = None,
    service: OrderService = Depends(get_service),
):
    changes = await json_body(request)
    return await service.update_order(company, order_id, changes)


@app.post("/api/orders/{order_id}/rating")
async def rate_order(
    order_id: str,
    request: Request,
    company: Optional[str] = None,
    service: OrderService = Depends(get_service),
):
    body = await json_body(request)
    if not isinstance(body, dict):
        raise ValidationError("Rating payload must be a JSON object")
    return await service.rate_order(company, order_id, body.get("stars"), body.get("review"))


@app.delete("/api/orders/{order_id}")
async def delete_order(order_id: str, company: Optional[str] = None, service: OrderService = Depends(get_service)):
    return await service.delete_order(company, order_id)


@app.delete("/api/orders")
async def clear_orders(company: Optional[str] = None, service: OrderService = Depends(get_service)):
    await service.clear_orders(company)
    return {"message": "All orders deleted successfully"}


@app.get("/api/stats")
async def get_stats(company: Optional[str] = None, service: OrderService = Depends(get_service)):
    return await service.get_stats(company)


# -----------------------------
# Desks
# -----------------------------
@app.get("/api/desks")
async def get_desks(company: Optional[str] = None, service: OrderService = Depends(get_service)):
    return await service.get_desks(company)


@app.post("/api/desks")
async def save_desks(
    request: Request,
    company: Optional[str] = None,
    service: OrderService = Depends(get_service),
):
    payload = await json_body(request)
    return await service.save_desks(company, payload)


@app.get("/api/desks/{desk_id}")
async def get_desk(desk_id: str, company: Optional[str] = None, service: OrderService = Depends(get_service)):
    return await service.get_desk(company, desk_id)


@app.put("/api/desks/{desk_id}")
async def save_desk(
    desk_id: str,
    request: Request,
    company: Optional[str] = None,
    service: OrderService = Depends(get_service),
):
    body = await json_body(request)
    return await service.save_desk(company, desk_id, body)


# -----------------------------
# Menu
# -----------------------------
@app.get("/api/menu")
async def get_menu(company: Optional[str] = None, service: OrderService = Depends(get_service)):
    return await service.get_menu(company)


@app.post("/api/menu")
async def save_menu(
    request: Request,
    company: Optional[str] = None,
    service: OrderService = Depends(get_service),
):
    payload = await json_body(request)
    return await service.save_menu(company, payload)


@app.get("/uploads/{company}/{filename}")
async def get_upload(company: str, filename: str, service: OrderService = Depends(get_service)):
    if filename.startswith(".") or "/" in filename or "\\" in filename:
        raise NotFound("File not found")
    path = service.storage.paths(company).uploads / filename
    if not path.is_file():
        raise NotFound("File not found")
    return FileResponse(path)


# -----------------------------
# Health
# -----------------------------
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "teaboy_system.backend.main:app",
        host=config.HOST,
        port=config.PORT,
        workers=1,
        log_level=config.LOG_LEVEL.lower(),
    )
