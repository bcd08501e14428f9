# services/auth.py
"""
Credential checks used by the payment core.

- PIN verification delegates to passlib's bcrypt comparison; there is no
  hand-written compare anywhere in the payment path.
- Access-token verification returns a typed three-way outcome instead of
  raising, so callers can tell an expired session from a forged token.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from passlib.context import CryptContext

from config import Settings

logger = logging.getLogger(__name__)

# Bcrypt
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_pin(pin: str) -> str:
     return pwd_context.hash(pin)


def verify_pin(pin: str, pin_hash: str) -> bool:
     """True if the PIN matches the stored hash. A malformed hash never matches."""
     try:
          return pwd_context.verify(pin, pin_hash)
     except (ValueError, TypeError):
          logger.warning("Stored PIN hash could not be parsed")
          return False


class TokenStatus(str, enum.Enum):
     VALID = "valid"
     EXPIRED = "expired"
     INVALID = "invalid"


@dataclass(frozen=True)
class TokenVerification:
     status: TokenStatus
     claims: Dict[str, Any] = field(default_factory=dict)

     @property
     def is_valid(self) -> bool:
          return self.status == TokenStatus.VALID


def verify_access_token(token: str, settings: Settings) -> TokenVerification:
     """Decode a bearer token issued by the auth service."""
     if not settings.jwt_secret:
          logger.error("JWT_SECRET is not set; rejecting all tokens")
          return TokenVerification(TokenStatus.INVALID)

     try:
          claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
     except ExpiredSignatureError:
          return TokenVerification(TokenStatus.EXPIRED)
     except JWTError:
          return TokenVerification(TokenStatus.INVALID)

     if not claims.get("user_id"):
          return TokenVerification(TokenStatus.INVALID)
     return TokenVerification(TokenStatus.VALID, claims)
