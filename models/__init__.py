from .base import Base
from .account import Account, AccountStatus
from .merchant import Merchant, MerchantType, MerchantStatus
from .route import Route
from .device import MerchantDevice, DeviceStatus
from .fare_rule import FareRule
from .transaction import Transaction, TransactionStatus, OriginSource
from .fraud_alert import FraudAlert
from .notification import Notification

__all__ = [
     "Base",
     "Account",
     "AccountStatus",
     "Merchant",
     "MerchantType",
     "MerchantStatus",
     "Route",
     "MerchantDevice",
     "DeviceStatus",
     "FareRule",
     "Transaction",
     "TransactionStatus",
     "OriginSource",
     "FraudAlert",
     "Notification",
]
