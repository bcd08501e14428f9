"""
Response envelope shared by every endpoint:
     {"success": true, "data": {...}, "message": "..."}
Errors use {"success": false, "error": "...", "code": "..."} (see utils/response.py).
"""
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
     success: bool = True
     data: T
     message: str = "Success"
