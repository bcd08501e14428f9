# routers/payments.py
"""
QR scan and payment API.

POST /api/v1/qr/scan: resolve a scanned QR code to its merchant, and for
matatus the GPS-detected boarding stop with priced destinations.
POST /api/v1/payments/process: authorize a PIN-protected wallet debit.
Retrying with the same idempotency_key returns the original payment.
"""
from fastapi import APIRouter, Depends, status

from dependencies import get_payment_service, verify_token
from schemas.envelope import Envelope
from schemas.payment import PaymentRequest, PaymentResult, QRScanRequest, ScanResult
from services.payment_service import PaymentService

router = APIRouter(prefix="/api/v1", tags=["payments"])


@router.post(
     "/qr/scan",
     response_model=Envelope[ScanResult],
     summary="Scan merchant QR code",
)
def scan_qr(
     body: QRScanRequest,
     service: PaymentService = Depends(get_payment_service),
     token: dict = Depends(verify_token),
):
     """
     Look up the merchant behind a QR code.

     - **Transport**: route, detected origin (from the vehicle's GPS) and
       reachable destinations with fares; all stops when GPS is unavailable
     - **Shop**: amount must be entered by the payer
     """
     return Envelope(data=service.scan(body.device_token))


@router.post(
     "/payments/process",
     response_model=Envelope[PaymentResult],
     status_code=status.HTTP_201_CREATED,
     summary="Process payment",
)
def process_payment(
     body: PaymentRequest,
     service: PaymentService = Depends(get_payment_service),
     token: dict = Depends(verify_token),
):
     """
     Pay a merchant from the wallet.

     1. Resolves the device to its merchant.
     2. Checks the claimed origin stop against GPS (fraud gate).
     3. Verifies the PIN and balance, then debits exactly once per idempotency_key.
     """
     result = service.process_payment(token["user_id"], body)
     message = "Transaction already processed" if result.replayed else "Payment successful"
     return Envelope(data=result, message=message)
