import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from config import get_settings
from database import check_connection
from errors import ErrorCodes, PaymentError, ServerError
from models.base import utcnow
from routers import payments_router, wallet_router
from utils.response import error_response, payment_error_response

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# App instance
app = FastAPI(
    title="Transit Pay API",
    description="QR fare payments with GPS origin verification",
    version="1.0.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments_router)
app.include_router(wallet_router)


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    if isinstance(exc, ServerError):
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return payment_error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = ", ".join(err.get("msg", "Invalid value") for err in exc.errors())
    return error_response(messages or "Invalid input", ErrorCodes.INVALID_INPUT, 400)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Store error on %s %s", request.method, request.url.path)
    return error_response("Server error", ErrorCodes.SERVER_ERROR, 500)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response("Endpoint not found", ErrorCodes.NOT_FOUND, 404)
    return error_response(str(exc.detail), "ERROR", exc.status_code)


@app.get("/health")
def health():
    return {
        "success": True,
        "message": "Transit Pay API is running",
        "database": "ok" if check_connection() else "unavailable",
        "timestamp": utcnow().isoformat(),
    }


if __name__ == "__main__":
    port = int(os.getenv("PORT", 10000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
