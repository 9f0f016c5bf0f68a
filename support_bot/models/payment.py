from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    WAITING_FOR_CAPTURE = "waiting_for_capture"
    SUCCEEDED = "succeeded"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: object) -> "PaymentStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class CreatedPayment:
    payment_id: str
    confirmation_url: str
    status: PaymentStatus


@dataclass
class PaymentLink:
    payment_id: str
    confirmation_url: str
    check_token: str


@dataclass
class CancellationResult:
    success: bool
    message: str


@dataclass
class CreditResult:
    credited: bool
    expires_at: datetime | None
