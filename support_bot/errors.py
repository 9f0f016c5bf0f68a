from __future__ import annotations


class ValidationError(ValueError):
    """Input rejected before any remote call or write."""


class StoreError(Exception):
    """Underlying persistence failure."""


class GatewayError(Exception):
    pass


class TransientGatewayError(GatewayError):
    """Network-class failure talking to the payment gateway."""


class PermanentGatewayError(GatewayError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
