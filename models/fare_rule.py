from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from .base import Base, utcnow


class FareRule(Base):
     """
     FareRule model - price of one origin/destination leg on a route.

     Several rules may exist for the same leg over time. The active one has no
     effective_until, or a window covering the current time.
     """
     __tablename__ = "fare_rules"

     id = Column(Integer, primary_key=True, autoincrement=True)
     route_id = Column(
          String(36),
          ForeignKey("routes.route_id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     origin_stop_id = Column(String(50), nullable=False, index=True)
     destination_stop_id = Column(String(50), nullable=False)
     fare_amount = Column(Numeric(12, 2), nullable=False)
     effective_from = Column(DateTime, default=utcnow, nullable=False)
     effective_until = Column(DateTime, nullable=True)

     def __repr__(self):
          return (
               f"<FareRule(route_id='{self.route_id}', {self.origin_stop_id}->"
               f"{self.destination_stop_id}, fare={self.fare_amount})>"
          )
