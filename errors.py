# errors.py
"""
Typed failures raised by the payment core.

Every error carries a stable machine-readable code (the value clients switch
on) and the HTTP status the API layer answers with. Services raise these and
never build HTTP responses themselves; main.py renders them as
{"success": false, "error": message, "code": code}.

Families:
- InvalidInput: malformed amount / coordinates / ids (caller's fault)
- NotFound: unknown user, device or account
- Unauthorized: credential or token failure
- Conflict: reference-code race, resolved by re-fetch inside the ledger
- BusinessRuleViolation: balance, account status, fraud gate outcomes
- ServerError: store failure or timeout; outcome unknown
"""
from typing import Optional


class ErrorCodes:
     """Error codes shared with the mobile clients."""
     # Authentication
     INVALID_TOKEN = "INVALID_TOKEN"
     TOKEN_EXPIRED = "TOKEN_EXPIRED"
     UNAUTHORIZED = "UNAUTHORIZED"

     # User
     USER_NOT_FOUND = "USER_NOT_FOUND"
     ACCOUNT_SUSPENDED = "ACCOUNT_SUSPENDED"
     ACCOUNT_CLOSED = "ACCOUNT_CLOSED"

     # Payment
     INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
     INVALID_PIN = "INVALID_PIN"
     ORIGIN_MISMATCH = "ORIGIN_MISMATCH"
     DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"

     # Merchant
     INVALID_QR = "INVALID_QR"
     MERCHANT_INACTIVE = "MERCHANT_INACTIVE"
     GPS_UNAVAILABLE = "GPS_UNAVAILABLE"

     # Validation
     INVALID_INPUT = "INVALID_INPUT"

     # General
     SERVER_ERROR = "SERVER_ERROR"
     NOT_FOUND = "NOT_FOUND"


class PaymentError(Exception):
     """Base class for all expected failures of the payment core."""

     code = ErrorCodes.SERVER_ERROR
     status_code = 500
     default_message = "Payment failed"

     def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
          self.message = message or self.default_message
          if code is not None:
               self.code = code
          super().__init__(self.message)

     def __repr__(self):
          return f"<{type(self).__name__}(code='{self.code}', message='{self.message}')>"


# ---------------------------------------------------------------------------
# InvalidInput
# ---------------------------------------------------------------------------

class InvalidInput(PaymentError):
     code = ErrorCodes.INVALID_INPUT
     status_code = 400
     default_message = "Invalid input"


class InvalidAmount(InvalidInput):
     default_message = "Amount must be a positive value"


class InvalidCoordinate(InvalidInput):
     default_message = "GPS coordinates must be finite numbers"


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------

class NotFound(PaymentError):
     code = ErrorCodes.NOT_FOUND
     status_code = 404
     default_message = "Not found"


class UserNotFound(NotFound):
     code = ErrorCodes.USER_NOT_FOUND
     default_message = "User not found"


class InvalidDevice(NotFound):
     code = ErrorCodes.INVALID_QR
     default_message = "Invalid QR code"


class MerchantInactive(InvalidDevice):
     code = ErrorCodes.MERCHANT_INACTIVE
     status_code = 403
     default_message = "Merchant account is suspended"


# ---------------------------------------------------------------------------
# Unauthorized
# ---------------------------------------------------------------------------

class Unauthorized(PaymentError):
     code = ErrorCodes.UNAUTHORIZED
     status_code = 401
     default_message = "Authentication required"


class InvalidPin(Unauthorized):
     code = ErrorCodes.INVALID_PIN
     default_message = "Incorrect PIN"


class InvalidToken(Unauthorized):
     code = ErrorCodes.INVALID_TOKEN
     default_message = "Invalid token"


class TokenExpired(Unauthorized):
     code = ErrorCodes.TOKEN_EXPIRED
     default_message = "Token has expired"


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------

class Conflict(PaymentError):
     code = ErrorCodes.DUPLICATE_TRANSACTION
     status_code = 409
     default_message = "Reference code already used"


class DuplicateReference(Conflict):
     pass


# ---------------------------------------------------------------------------
# BusinessRuleViolation
# ---------------------------------------------------------------------------

class BusinessRuleViolation(PaymentError):
     status_code = 400


class InsufficientBalance(BusinessRuleViolation):
     code = ErrorCodes.INSUFFICIENT_BALANCE
     default_message = "Insufficient balance"


class AccountSuspended(BusinessRuleViolation):
     code = ErrorCodes.ACCOUNT_SUSPENDED
     status_code = 403
     default_message = "Account is not active"


class AccountClosed(AccountSuspended):
     code = ErrorCodes.ACCOUNT_CLOSED
     default_message = "Account is closed"


class OriginMismatch(BusinessRuleViolation):
     code = ErrorCodes.ORIGIN_MISMATCH
     default_message = "Origin location mismatch detected. Please verify your boarding point."


class GPSUnavailable(BusinessRuleViolation):
     code = ErrorCodes.GPS_UNAVAILABLE
     status_code = 503
     default_message = "Matatu GPS not updated recently. Please try again."


# ---------------------------------------------------------------------------
# ServerError
# ---------------------------------------------------------------------------

class ServerError(PaymentError):
     pass


class StoreUnavailable(ServerError):
     """Store failure or timeout. The write may or may not have committed."""
     default_message = "Payment outcome unknown; retry with the same reference code"
