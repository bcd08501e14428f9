import uuid

from sqlalchemy import Column, String, JSON, DateTime, func
from .base import Base


class Route(Base):
     """
     Route model - an ordered sequence of stops.

     stops is a JSON array in travel order:
          [{"id": "s1", "name": "CBD", "latitude": -1.28, "longitude": 36.82}, ...]
     latitude/longitude are optional; stops without them cannot be matched by GPS.
     """
     __tablename__ = "routes"

     route_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
     route_number = Column(String(20), nullable=False)
     route_name = Column(String(255), nullable=False)
     stops = Column(JSON, nullable=False, default=list)

     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return f"<Route(route_id='{self.route_id}', number='{self.route_number}')>"
