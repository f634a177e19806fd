"""ORDERFLOW — Declarative base shared by all models."""
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def generate_order_number(prefix: str) -> str:
    """Human order number: prefix + first 8 chars of a uuid4, upper-cased."""
    return f"{prefix}{uuid.uuid4().hex[:8].upper()}"
