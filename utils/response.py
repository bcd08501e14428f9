# utils/response.py
"""Standardized API error responses."""
from fastapi.responses import JSONResponse

from errors import PaymentError


def error_response(message: str, code: str = "ERROR", status_code: int = 400) -> JSONResponse:
     return JSONResponse(
          status_code=status_code,
          content={"success": False, "error": message, "code": code},
     )


def payment_error_response(exc: PaymentError) -> JSONResponse:
     return error_response(exc.message, exc.code, exc.status_code)
