from sqlalchemy import Column, Integer, String, JSON, DateTime, ForeignKey
from .base import Base, utcnow


class FraudAlert(Base):
     """
     FraudAlert model - append-only audit record of a suspicious payment attempt.

     transaction_id is nullable: alerts for rejected attempts are written before
     (and instead of) any transaction.
     """
     __tablename__ = "fraud_alerts"

     id = Column(Integer, primary_key=True, autoincrement=True)
     user_id = Column(
          String(36),
          ForeignKey("users.user_id", ondelete="RESTRICT"),
          nullable=False,
          index=True
     )
     transaction_id = Column(String(36), ForeignKey("transactions.transaction_id"), nullable=True)
     alert_type = Column(String(50), nullable=False)
     risk_score = Column(Integer, nullable=False)
     alert_level = Column(String(20), nullable=False, index=True)
     details = Column(JSON, nullable=False)  # GPS mismatch snapshot
     created_at = Column(DateTime, default=utcnow, nullable=False)

     def __repr__(self):
          return f"<FraudAlert(id={self.id}, user_id='{self.user_id}', type='{self.alert_type}')>"
