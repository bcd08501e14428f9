# services/notifications.py
"""
Notification sink - queues SMS / push messages produced by the payment flow.

Delivery belongs to a separate worker; from the payment core's point of view
enqueue() is fire-and-forget and a failure is only ever logged.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundNotification:
     notification_type: str  # sms, push
     recipient: str
     message: str
     transaction_id: Optional[str] = None
     user_id: Optional[str] = None
     merchant_id: Optional[str] = None


class DatabaseNotificationSink:
     """Writes queued rows to the notifications table, one short session per message."""

     def __init__(self, session_factory: Callable[[], Session]):
          self.session_factory = session_factory

     def enqueue(self, notification: OutboundNotification) -> bool:
          row = Notification(
               user_id=notification.user_id,
               merchant_id=notification.merchant_id,
               transaction_id=notification.transaction_id,
               notification_type=notification.notification_type,
               recipient=notification.recipient,
               message=notification.message,
               status="queued",
          )
          try:
               with self.session_factory() as db:
                    db.add(row)
                    db.commit()
          except SQLAlchemyError:
               logger.exception(
                    "Failed to queue %s notification for transaction %s",
                    notification.notification_type, notification.transaction_id,
               )
               return False
          return True
