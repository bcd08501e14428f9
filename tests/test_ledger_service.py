import logging
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal

import pytest
from sqlalchemy.exc import OperationalError

from database import SessionLocal
from errors import (
     AccountClosed,
     AccountSuspended,
     DuplicateReference,
     InsufficientBalance,
     InvalidAmount,
     InvalidInput,
     InvalidPin,
     StoreUnavailable,
     UserNotFound,
)
from models import Account, AccountStatus, Notification, OriginSource, Transaction
from services.ledger_service import (
     MAX_DEBIT_ATTEMPTS,
     LedgerTransactor,
     OriginMeta,
     normalize_amount,
     split_commission,
)
from services.notifications import DatabaseNotificationSink
from tests.conftest import PIN


@pytest.fixture
def matatu(route, make_merchant, make_device):
     merchant = make_merchant(commission_rate="0.05")
     return merchant, make_device(merchant, route)


@pytest.fixture
def ledger(db, settings):
     return LedgerTransactor(db, settings)


def charge(ledger, account, matatu, amount="50", reference="ref-1", pin=PIN, origin=None):
     merchant, device = matatu
     return ledger.charge(account.user_id, merchant.merchant_id, device.device_id, amount, pin, reference, origin)


def balance_of(db, user_id):
     db.expire_all()
     return Decimal(str(db.get(Account, user_id).balance))


def transaction_count(db):
     return db.query(Transaction).count()


def test_charge_debits_wallet_and_splits_commission(db, ledger, make_account, matatu):
     account = make_account(balance="1000.00")

     result = charge(ledger, account, matatu, amount="50")

     assert result.status == "success"
     assert result.amount == Decimal("50.00")
     assert result.commission == Decimal("2.50")
     assert result.net_amount == Decimal("47.50")
     assert result.balance_before == Decimal("1000.00")
     assert result.balance_after == Decimal("950.00")
     assert result.currency == "KES"
     assert not result.replayed
     assert balance_of(db, account.user_id) == Decimal("950.00")

     txn = db.get(Transaction, result.transaction_id)
     assert txn.reference_code == "ref-1"
     assert Decimal(str(txn.merchant_commission)) + Decimal(str(txn.net_amount)) == Decimal("50.00")


def test_same_reference_replays_original(db, ledger, make_account, matatu):
     account = make_account(balance="1000.00")

     first = charge(ledger, account, matatu, reference="ref-r1")
     second = charge(ledger, account, matatu, reference="ref-r1")

     assert second == first
     assert second.replayed
     assert transaction_count(db) == 1
     assert balance_of(db, account.user_id) == Decimal("950.00")


def test_reference_of_another_user_is_rejected(db, ledger, make_account, matatu):
     owner = make_account()
     other = make_account()
     charge(ledger, owner, matatu, reference="ref-shared")

     with pytest.raises(DuplicateReference) as exc_info:
          charge(ledger, other, matatu, reference="ref-shared")
     assert exc_info.value.status_code == 409
     assert balance_of(db, other.user_id) == Decimal("1000.00")


def test_insufficient_balance(db, ledger, make_account, matatu):
     account = make_account(balance="30.00")

     with pytest.raises(InsufficientBalance):
          charge(ledger, account, matatu, amount="50")
     assert balance_of(db, account.user_id) == Decimal("30.00")
     assert transaction_count(db) == 0


def test_exact_balance_can_be_spent(db, ledger, make_account, matatu):
     account = make_account(balance="50.00")
     result = charge(ledger, account, matatu, amount="50")
     assert result.balance_after == Decimal("0.00")
     assert balance_of(db, account.user_id) == Decimal("0.00")


def test_wrong_pin(db, ledger, make_account, matatu):
     account = make_account()

     with pytest.raises(InvalidPin) as exc_info:
          charge(ledger, account, matatu, pin="9999")
     assert exc_info.value.code == "INVALID_PIN"
     assert balance_of(db, account.user_id) == Decimal("1000.00")
     assert transaction_count(db) == 0


def test_malformed_pin_hash_never_matches(db, ledger, make_account, matatu):
     account = make_account(pin_hash="not-a-bcrypt-hash")
     with pytest.raises(InvalidPin):
          charge(ledger, account, matatu)


@pytest.mark.parametrize("status, error", [
     (AccountStatus.SUSPENDED, AccountSuspended),
     (AccountStatus.CLOSED, AccountClosed),
])
def test_inactive_accounts_cannot_pay(db, ledger, make_account, matatu, status, error):
     account = make_account(status=status)
     with pytest.raises(error):
          charge(ledger, account, matatu)
     assert transaction_count(db) == 0


def test_unknown_user(ledger, matatu):
     merchant, device = matatu
     with pytest.raises(UserNotFound):
          ledger.charge("no-such-user", merchant.merchant_id, device.device_id, "50", PIN, "ref-x")


@pytest.mark.parametrize("amount", [0, -5, "abc", Decimal("NaN"), float("inf"), "10.005", True, None])
def test_invalid_amounts(db, ledger, make_account, matatu, amount):
     account = make_account()
     with pytest.raises(InvalidAmount):
          charge(ledger, account, matatu, amount=amount)
     assert balance_of(db, account.user_id) == Decimal("1000.00")


def test_reference_code_required(ledger, make_account, matatu):
     with pytest.raises(InvalidInput):
          charge(ledger, make_account(), matatu, reference="")


def test_normalize_amount():
     assert normalize_amount(50) == Decimal("50.00")
     assert normalize_amount(12.5) == Decimal("12.50")
     assert normalize_amount("0.01") == Decimal("0.01")


@pytest.mark.parametrize("amount", ["0.01", "0.19", "1.00", "10.50", "33.33", "999.99", "12345.67"])
@pytest.mark.parametrize("rate", ["0", "0.015", "0.025", "0.05", "0.0333", "0.1"])
def test_commission_and_net_always_sum_to_amount(amount, rate):
     commission, net = split_commission(Decimal(amount), Decimal(rate), ROUND_HALF_EVEN)
     assert commission + net == Decimal(amount)
     assert commission == commission.quantize(Decimal("0.01"))
     assert net >= 0


def test_commission_rounding_mode():
     assert split_commission(Decimal("10.50"), Decimal("0.05"), ROUND_HALF_EVEN) == (Decimal("0.52"), Decimal("9.98"))
     assert split_commission(Decimal("10.50"), Decimal("0.05"), ROUND_HALF_UP) == (Decimal("0.53"), Decimal("9.97"))


def test_configured_rounding_is_used(db, settings_with, make_account, matatu):
     ledger = LedgerTransactor(db, settings_with(commission_rounding="ROUND_HALF_UP"))
     result = charge(ledger, make_account(), matatu, amount="10.50")
     assert result.commission == Decimal("0.53")
     assert result.net_amount == Decimal("9.97")


def test_concurrent_duplicate_resolves_to_single_debit(db, ledger, make_account, matatu, settings, monkeypatch):
     """Two charges with the same reference racing on one wallet: one debit, same result."""
     account = make_account(balance="100.00")
     real_debit = ledger._debit
     winner = {}

     def racing_debit(user_id, balance_before, balance_after):
          if not winner:
               with SessionLocal() as other:
                    winner["result"] = charge(LedgerTransactor(other, settings), account, matatu,
                                              amount="100", reference="R1")
          return real_debit(user_id, balance_before, balance_after)

     monkeypatch.setattr(ledger, "_debit", racing_debit)

     result = charge(ledger, account, matatu, amount="100", reference="R1")

     assert result.transaction_id == winner["result"].transaction_id
     assert result.replayed
     assert transaction_count(db) == 1
     assert balance_of(db, account.user_id) == Decimal("0.00")


def test_duplicate_committed_after_lookup_is_replayed(db, ledger, make_account, matatu, settings, monkeypatch):
     """The other R1 request commits between our lookup and our balance read."""
     account = make_account(balance="100.00")
     real_lookup = ledger.find_by_reference
     winner = {}

     def lookup_then_lose_race(reference_code):
          found = real_lookup(reference_code)
          if not winner:
               with SessionLocal() as other:
                    winner["result"] = charge(LedgerTransactor(other, settings), account, matatu,
                                              amount="100", reference="R1")
          return found

     monkeypatch.setattr(ledger, "find_by_reference", lookup_then_lose_race)

     result = charge(ledger, account, matatu, amount="100", reference="R1")

     assert result.transaction_id == winner["result"].transaction_id
     assert result.replayed
     assert transaction_count(db) == 1
     assert balance_of(db, account.user_id) == Decimal("0.00")


def test_wrong_pin_after_competing_commit_is_replayed(db, ledger, make_account, matatu, settings, monkeypatch):
     account = make_account(balance="100.00")
     real_lookup = ledger.find_by_reference
     raced = []

     def lookup_then_lose_race(reference_code):
          found = real_lookup(reference_code)
          if not raced:
               raced.append(reference_code)
               with SessionLocal() as other:
                    charge(LedgerTransactor(other, settings), account, matatu, reference="R3")
          return found

     monkeypatch.setattr(ledger, "find_by_reference", lookup_then_lose_race)

     result = charge(ledger, account, matatu, reference="R3", pin="9999")

     assert result.replayed
     assert balance_of(db, account.user_id) == Decimal("50.00")


def test_replay_is_answered_before_amount_validation(db, ledger, make_account, matatu):
     account = make_account()
     first = charge(ledger, account, matatu, reference="ref-v")

     retry = charge(ledger, account, matatu, amount="not-a-number", reference="ref-v")

     assert retry.transaction_id == first.transaction_id
     assert retry.replayed
     assert balance_of(db, account.user_id) == Decimal("950.00")


def test_reference_conflict_on_insert_rolls_back_debit(db, ledger, make_account, matatu, settings, monkeypatch):
     account = make_account(balance="200.00")
     with SessionLocal() as other:
          first = charge(LedgerTransactor(other, settings), account, matatu, amount="100", reference="R2")

     # Our lookup misses the committed row, so the insert hits the unique constraint
     real_lookup = ledger.find_by_reference
     calls = []

     def late_lookup(reference_code):
          calls.append(reference_code)
          return None if len(calls) == 1 else real_lookup(reference_code)

     monkeypatch.setattr(ledger, "find_by_reference", late_lookup)

     result = charge(ledger, account, matatu, amount="100", reference="R2")

     assert result.transaction_id == first.transaction_id
     assert result.replayed
     assert transaction_count(db) == 1
     assert balance_of(db, account.user_id) == Decimal("100.00")


def test_balance_moved_by_other_payment_is_retried(db, ledger, make_account, matatu, settings, monkeypatch):
     account = make_account(balance="100.00")
     real_debit = ledger._debit
     attempts = []

     def contended_debit(user_id, balance_before, balance_after):
          attempts.append(balance_before)
          if len(attempts) == 1:
               with SessionLocal() as other:
                    charge(LedgerTransactor(other, settings), account, matatu, amount="30", reference="other")
          return real_debit(user_id, balance_before, balance_after)

     monkeypatch.setattr(ledger, "_debit", contended_debit)

     result = charge(ledger, account, matatu, amount="50", reference="mine")

     assert attempts == [Decimal("100.00"), Decimal("70.00")]
     assert result.balance_before == Decimal("70.00")
     assert result.balance_after == Decimal("20.00")
     assert balance_of(db, account.user_id) == Decimal("20.00")


def test_persistent_contention_gives_up(db, ledger, make_account, matatu, monkeypatch):
     account = make_account()
     attempts = []

     def never_matches(user_id, balance_before, balance_after):
          attempts.append(1)
          return False

     monkeypatch.setattr(ledger, "_debit", never_matches)

     with pytest.raises(StoreUnavailable):
          charge(ledger, account, matatu)
     assert len(attempts) == MAX_DEBIT_ATTEMPTS
     assert transaction_count(db) == 0


def test_store_failure_is_reported_as_unavailable(db, ledger, make_account, matatu, monkeypatch):
     account = make_account()

     def timeout(*args):
          raise OperationalError("UPDATE users", {}, Exception("statement timeout"))

     monkeypatch.setattr(ledger, "_debit", timeout)

     with pytest.raises(StoreUnavailable) as exc_info:
          charge(ledger, account, matatu)
     assert exc_info.value.status_code == 500
     assert balance_of(db, account.user_id) == Decimal("1000.00")
     assert transaction_count(db) == 0


def test_origin_is_recorded(db, ledger, make_account, matatu, route):
     origin = OriginMeta(
          route_id=route.route_id,
          origin_stop="ngara",
          destination_stop="githurai",
          source=OriginSource.GPS_AUTO,
          gps_latitude=-1.2741,
          gps_longitude=36.8250,
          nearest_stop_distance_meters=12,
     )
     result = charge(ledger, make_account(), matatu, origin=origin)

     txn = db.get(Transaction, result.transaction_id)
     assert txn.route_id == route.route_id
     assert txn.origin_stop == "ngara"
     assert txn.destination_stop == "githurai"
     assert txn.auto_detected_origin is True
     assert txn.nearest_stop_distance_meters == 12
     assert result.origin_stop == "ngara"


def test_user_selected_origin_is_not_auto_detected():
     assert not OriginMeta(origin_stop="ngara", source=OriginSource.USER_SELECTED).auto_detected_origin
     assert not OriginMeta().auto_detected_origin


def test_notifications_queued_after_commit(db, settings, make_account, matatu):
     account = make_account(phone="+254712345678")
     ledger = LedgerTransactor(db, settings, notifier=DatabaseNotificationSink(SessionLocal))

     result = charge(ledger, account, matatu)

     rows = db.query(Notification).order_by(Notification.id).all()
     assert [n.notification_type for n in rows] == ["sms", "push"]
     assert rows[0].recipient == "+254712345678"
     assert rows[0].transaction_id == result.transaction_id
     assert "KES 50.00" in rows[0].message
     assert "Balance: KES 950.00" in rows[0].message
     assert rows[1].merchant_id == matatu[0].merchant_id


def test_replay_queues_no_notifications(db, settings, make_account, matatu):
     account = make_account()
     ledger = LedgerTransactor(db, settings, notifier=DatabaseNotificationSink(SessionLocal))

     charge(ledger, account, matatu, reference="ref-n")
     charge(ledger, account, matatu, reference="ref-n")

     assert db.query(Notification).count() == 2


def test_failing_notifier_does_not_fail_payment(db, settings, make_account, matatu, caplog):
     class BrokenNotifier:
          def enqueue(self, notification):
               raise RuntimeError("SMS gateway down")

     account = make_account()
     ledger = LedgerTransactor(db, settings, notifier=BrokenNotifier())

     result = charge(ledger, account, matatu)

     assert result.status == "success"
     assert balance_of(db, account.user_id) == Decimal("950.00")
     assert "Post-commit side effects failed" in caplog.text


def test_audit_record_written(ledger, make_account, matatu, caplog):
     caplog.set_level(logging.INFO, logger="transit_pay.audit")

     result = charge(ledger, make_account(), matatu)

     [record] = [r for r in caplog.records if r.name == "transit_pay.audit"]
     assert record.msg["event"] == "payment.committed"
     assert record.msg["transaction_id"] == result.transaction_id
     assert record.msg["amount"] == "50.00"


def test_account_lists_its_transactions(db, ledger, make_account, matatu):
     account = make_account()
     result = charge(ledger, account, matatu)

     db.expire_all()
     loaded = db.get(Account, account.user_id)
     assert [t.transaction_id for t in loaded.transactions] == [result.transaction_id]
