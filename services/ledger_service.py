# services/ledger_service.py
"""
Ledger Service - PIN-authorized, idempotent wallet debits.

charge() runs these steps in order:
1. Look up an existing transaction by reference code; if found, return it
   unchanged (replay) with no side effects.
2. Load the account and check its status.
3. Verify the PIN through passlib.
4. Validate the amount and check the balance covers it.
   A failure in steps 2-4 re-checks the reference code first: a concurrent
   request with the same code may have committed after step 1.
5. Split the amount into commission and net at 0.01 precision.
6. In one database transaction: compare-and-set the balance
   (WHERE balance = <value read in step 2>) and insert the transaction row.
   The unique constraint on reference_code turns a concurrent duplicate into
   an IntegrityError, which is answered by re-fetching the winner.
7. After commit, best effort: queue notifications and write the audit record.

Transactions are immutable; there is no update or delete path.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from config import Settings
from errors import (
     AccountClosed,
     AccountSuspended,
     DuplicateReference,
     InsufficientBalance,
     InvalidAmount,
     InvalidDevice,
     InvalidInput,
     InvalidPin,
     StoreUnavailable,
     UserNotFound,
)
from models import Account, AccountStatus, Merchant, OriginSource, Transaction, TransactionStatus
from services.auth import verify_pin
from services.notifications import DatabaseNotificationSink, OutboundNotification

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("transit_pay.audit")

CENT = Decimal("0.01")

# Compare-and-set retries when another payment moved the same balance first
MAX_DEBIT_ATTEMPTS = 3


@dataclass(frozen=True)
class OriginMeta:
     """Journey details recorded on the transaction. source is the origin's provenance."""
     route_id: Optional[str] = None
     origin_stop: Optional[str] = None
     destination_stop: Optional[str] = None
     source: Optional[OriginSource] = None
     gps_latitude: Optional[float] = None
     gps_longitude: Optional[float] = None
     nearest_stop_distance_meters: Optional[int] = None

     @property
     def auto_detected_origin(self) -> bool:
          return self.source == OriginSource.GPS_AUTO


@dataclass(frozen=True)
class TransactionResult:
     transaction_id: str
     status: str
     user_id: str
     merchant_id: str
     amount: Decimal
     currency: str
     commission: Decimal
     net_amount: Decimal
     balance_before: Decimal
     balance_after: Decimal
     reference_code: str
     origin_stop: Optional[str]
     destination_stop: Optional[str]
     created_at: datetime
     replayed: bool = field(default=False, compare=False)

     @classmethod
     def from_row(cls, txn: Transaction, replayed: bool = False) -> "TransactionResult":
          return cls(
               transaction_id=txn.transaction_id,
               status=txn.status.value,
               user_id=txn.user_id,
               merchant_id=txn.merchant_id,
               amount=_money(txn.amount),
               currency=txn.currency,
               commission=_money(txn.merchant_commission),
               net_amount=_money(txn.net_amount),
               balance_before=_money(txn.user_balance_before),
               balance_after=_money(txn.user_balance_after),
               reference_code=txn.reference_code,
               origin_stop=txn.origin_stop,
               destination_stop=txn.destination_stop,
               created_at=txn.created_at,
               replayed=replayed,
          )


def _money(value) -> Decimal:
     return Decimal(str(value)).quantize(CENT)


def normalize_amount(amount) -> Decimal:
     """
     Validate a payment amount.

     Raises:
          InvalidAmount: Not a number, not finite, not positive, or finer than 0.01.
     """
     if isinstance(amount, bool):
          raise InvalidAmount()
     try:
          value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
     except (InvalidOperation, ValueError, TypeError):
          raise InvalidAmount()
     if not value.is_finite() or value <= 0:
          raise InvalidAmount()
     if value != value.quantize(CENT):
          raise InvalidAmount("Amount cannot have more than 2 decimal places")
     return value.quantize(CENT)


def split_commission(amount: Decimal, rate: Decimal, rounding: str) -> Tuple[Decimal, Decimal]:
     """
     (commission, net) for an amount at the merchant's commission rate.

     Only the commission is rounded; net is the exact remainder, so
     commission + net == amount always holds.
     """
     commission = (amount * rate).quantize(CENT, rounding=rounding)
     return commission, amount - commission


class LedgerTransactor:
     """Debits wallets exactly once per reference code."""

     def __init__(
          self,
          db: Session,
          settings: Settings,
          notifier: Optional[DatabaseNotificationSink] = None,
     ):
          self.db = db
          self.settings = settings
          self.notifier = notifier

     def charge(
          self,
          user_id: str,
          merchant_id: str,
          device_id: str,
          amount,
          pin: str,
          reference_code: str,
          origin: Optional[OriginMeta] = None,
     ) -> TransactionResult:
          """
          Debit `amount` from the user's wallet in favour of the merchant.

          Returns:
               TransactionResult for the committed (or previously committed) payment.

          Raises:
               InvalidAmount, UserNotFound, AccountSuspended, AccountClosed,
               InvalidPin, InsufficientBalance, DuplicateReference,
               StoreUnavailable (outcome unknown - re-check the reference code).
          """
          if not reference_code:
               raise InvalidInput("Idempotency key required")
          origin = origin or OriginMeta()
          requested = amount

          try:
               for attempt in range(1, MAX_DEBIT_ATTEMPTS + 1):
                    existing = self.find_by_reference(reference_code)
                    if existing is not None:
                         return self._replay(existing, user_id)

                    try:
                         account = self._load_account(user_id)
                         self._authorize(account, pin)
                         amount = normalize_amount(requested)
                         if Decimal(str(account.balance)) < amount:
                              raise InsufficientBalance()
                    except (UserNotFound, AccountSuspended, InvalidPin, InvalidAmount, InsufficientBalance):
                         # A same-reference payment may have committed since the lookup
                         winner = self.find_by_reference(reference_code)
                         if winner is not None:
                              return self._replay(winner, user_id)
                         raise

                    merchant = self.db.get(Merchant, merchant_id)
                    if merchant is None:
                         raise InvalidDevice()

                    commission, net = split_commission(
                         amount, Decimal(str(merchant.commission_rate)), self.settings.rounding_mode
                    )
                    balance_before = _money(account.balance)
                    balance_after = balance_before - amount

                    if not self._debit(user_id, balance_before, balance_after):
                         # Another payment moved this balance between our read and write
                         self.db.rollback()
                         logger.info(
                              "Balance changed during charge %s (attempt %d/%d)",
                              reference_code, attempt, MAX_DEBIT_ATTEMPTS,
                         )
                         continue

                    txn = Transaction(
                         user_id=user_id,
                         merchant_id=merchant_id,
                         device_id=device_id,
                         route_id=origin.route_id,
                         transaction_type="payment",
                         amount=amount,
                         currency=account.currency or self.settings.default_currency,
                         merchant_commission=commission,
                         net_amount=net,
                         status=TransactionStatus.SUCCESS,
                         reference_code=reference_code,
                         origin_stop=origin.origin_stop,
                         destination_stop=origin.destination_stop,
                         gps_boarding_latitude=origin.gps_latitude,
                         gps_boarding_longitude=origin.gps_longitude,
                         auto_detected_origin=origin.auto_detected_origin,
                         nearest_stop_distance_meters=origin.nearest_stop_distance_meters,
                         user_balance_before=balance_before,
                         user_balance_after=balance_after,
                    )
                    self.db.add(txn)
                    try:
                         self.db.commit()
                    except IntegrityError:
                         self.db.rollback()
                         winner = self.find_by_reference(reference_code)
                         if winner is None:
                              raise
                         logger.info("Concurrent duplicate of %s resolved to existing transaction", reference_code)
                         return self._replay(winner, user_id)

                    result = TransactionResult.from_row(txn)
                    self._after_commit(account, merchant, txn)
                    return result

               raise StoreUnavailable("Account balance is changing too quickly; retry with the same reference code")

          except DBAPIError as e:
               self.db.rollback()
               logger.error("Store failure while charging %s: %s", reference_code, e)
               raise StoreUnavailable() from e

     def find_by_reference(self, reference_code: str) -> Optional[Transaction]:
          return (
               self.db.query(Transaction)
               .filter(Transaction.reference_code == reference_code)
               .first()
          )

     def _replay(self, txn: Transaction, user_id: str) -> TransactionResult:
          if txn.user_id != user_id:
               # Reference codes are per payer; never reveal another user's payment
               raise DuplicateReference()
          return TransactionResult.from_row(txn, replayed=True)

     def _load_account(self, user_id: str) -> Account:
          account = self.db.get(Account, user_id, populate_existing=True)
          if account is None:
               raise UserNotFound()
          if account.status == AccountStatus.CLOSED:
               raise AccountClosed()
          if account.status != AccountStatus.ACTIVE:
               raise AccountSuspended()
          return account

     @staticmethod
     def _authorize(account: Account, pin: str) -> None:
          if not pin or not verify_pin(pin, account.pin_hash):
               raise InvalidPin()

     def _debit(self, user_id: str, balance_before: Decimal, balance_after: Decimal) -> bool:
          """Compare-and-set the balance. False if it no longer equals balance_before."""
          result = self.db.execute(
               update(Account)
               .where(
                    Account.user_id == user_id,
                    Account.balance == balance_before,
                    Account.status == AccountStatus.ACTIVE,
               )
               .values(balance=balance_after)
               .execution_options(synchronize_session=False)
          )
          return result.rowcount == 1

     def _after_commit(self, account: Account, merchant: Merchant, txn: Transaction) -> None:
          """Notifications and audit record. Nothing here may fail the payment."""
          try:
               audit_logger.info({
                    "event": "payment.committed",
                    "transaction_id": txn.transaction_id,
                    "reference_code": txn.reference_code,
                    "user_id": txn.user_id,
                    "merchant_id": txn.merchant_id,
                    "device_id": txn.device_id,
                    "amount": str(txn.amount),
                    "commission": str(txn.merchant_commission),
                    "balance_before": str(txn.user_balance_before),
                    "balance_after": str(txn.user_balance_after),
                    "auto_detected_origin": txn.auto_detected_origin,
               })

               if self.notifier is None:
                    return
               self.notifier.enqueue(OutboundNotification(
                    notification_type="sms",
                    recipient=account.phone_number,
                    message=(
                         f"Payment: {txn.currency} {txn.amount:.2f} paid to {merchant.business_name}. "
                         f"Balance: {txn.currency} {txn.user_balance_after:.2f}"
                    ),
                    transaction_id=txn.transaction_id,
                    user_id=txn.user_id,
               ))
               self.notifier.enqueue(OutboundNotification(
                    notification_type="push",
                    recipient=f"device:{txn.device_id}",
                    message=f"Payment received: {txn.currency} {txn.amount:.2f}",
                    transaction_id=txn.transaction_id,
                    merchant_id=txn.merchant_id,
               ))
          except Exception:
               logger.exception("Post-commit side effects failed for transaction %s", txn.transaction_id)
