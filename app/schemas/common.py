# app/schemas/common.py
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """
    Response wrapper shared by every endpoint:

        {"ok": true, "data": ..., "message": "..."}

    Errors use the same shape with ok=false (see app.main handlers).
    """

    ok: bool = True
    data: T | None = None
    message: str | None = None


def ok(data=None, message: str | None = None) -> dict:
    return {"ok": True, "data": data, "message": message}
