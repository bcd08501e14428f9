from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from .base import Base


class Notification(Base):
     """
     Notification model - outbound SMS/push message waiting for delivery.

     Rows are queued by the payment flow; a separate delivery worker sends them.
     Exactly one of user_id / merchant_id is set.
     """
     __tablename__ = "notifications"

     id = Column(Integer, primary_key=True, autoincrement=True)
     user_id = Column(String(36), ForeignKey("users.user_id"), nullable=True, index=True)
     merchant_id = Column(String(36), ForeignKey("merchants.merchant_id"), nullable=True, index=True)
     transaction_id = Column(String(36), ForeignKey("transactions.transaction_id"), nullable=True)
     notification_type = Column(String(10), nullable=False)  # sms, push
     recipient = Column(String(255), nullable=False)
     message = Column(String(500), nullable=False)
     status = Column(String(20), nullable=False, default="queued")
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return f"<Notification(id={self.id}, type='{self.notification_type}', status='{self.status}')>"
