# dependencies.py
"""
FastAPI dependencies: authentication and service wiring.
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import SessionLocal, get_session
from errors import InvalidToken, TokenExpired, Unauthorized
from services.auth import TokenStatus, verify_access_token
from services.notifications import DatabaseNotificationSink
from services.payment_service import PaymentService


# Token Auth Dependency
def verify_token(request: Request, settings: Settings = Depends(get_settings)) -> dict:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          raise Unauthorized("No authentication token provided")
     token = auth.split(" ", 1)[1]

     verification = verify_access_token(token, settings)
     if verification.status == TokenStatus.EXPIRED:
          raise TokenExpired()
     if verification.status != TokenStatus.VALID:
          raise InvalidToken()
     return verification.claims


def get_payment_service(
     db: Session = Depends(get_session),
     settings: Settings = Depends(get_settings),
) -> PaymentService:
     return PaymentService(
          db,
          settings,
          session_factory=SessionLocal,
          notifier=DatabaseNotificationSink(SessionLocal),
     )
