from .payment import (
     QRScanRequest,
     ScanResult,
     PaymentRequest,
     PaymentResult,
)
from .wallet import (
     BalanceResponse,
     HistoryResponse,
)

__all__ = [
     "QRScanRequest",
     "ScanResult",
     "PaymentRequest",
     "PaymentResult",
     "BalanceResponse",
     "HistoryResponse",
]
