from .payments import router as payments_router
from .wallet import router as wallet_router

__all__ = [
     "payments_router",
     "wallet_router",
]
