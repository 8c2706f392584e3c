import time
import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, InterfaceError
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from app.core.config import settings
from app.core.errors import DomainError, Transient
from app.core.logging import setup_logging, request_id_ctx
from app.api.router import api_router
from app.core.db import init_models
from app.modules.events.outbox import run_outbox_relay


setup_logging()
app = FastAPI(title=settings.APP_NAME)

logger = logging.getLogger(__name__)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    formatted_process_time = f"{process_time:.2f}ms"

    logger.info(
        f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {formatted_process_time}"
    )

    return response

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id", "-")
    request_id_ctx.set(rid)
    response = await call_next(request)
    return response


def _error_body(exc: DomainError) -> dict:
    return {"error": exc.code, "message": exc.message}

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    headers = {"Retry-After": "1"} if isinstance(exc, Transient) else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc), headers=headers)

@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def transient_db_error_handler(request: Request, exc: Exception):
    logger.warning(f"Transient database failure for {request.method} {request.url.path}: {exc.__class__.__name__}")
    err = Transient()
    return JSONResponse(status_code=err.status_code, content=_error_body(err), headers={"Retry-After": "1"})

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "An internal server error occurred."},
    )


@app.on_event("startup")
async def on_startup():
    await init_models()
    if settings.OUTBOX_RELAY_ENABLED:
        app.state.outbox_task = asyncio.create_task(run_outbox_relay())

@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "outbox_task", None)
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app.include_router(api_router, prefix=settings.API_PREFIX)
