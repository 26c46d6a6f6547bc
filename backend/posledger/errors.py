# Overview: Domain error taxonomy shared by services and routes.

from __future__ import annotations

from flask import jsonify


class PosError(Exception):
    """Base class for order/inventory failures that abort the current request."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": str(self)}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(PosError):
    http_status = 404


class ProductNotFound(NotFoundError):
    pass


class BomNotFound(NotFoundError):
    pass


class InventoryNotFound(NotFoundError):
    pass


class TransactionNotFound(NotFoundError):
    pass


class InsufficientInventory(PosError):
    """A debit would drive totalQuantity below zero."""
    http_status = 409


class InvalidQuantity(PosError):
    """Return quantity exceeds what is left on the sale line."""


class InvalidOrderState(PosError):
    """Lifecycle transition not allowed from the record's current status."""
    http_status = 409


class ValidationError(PosError, ValueError):
    """400-level input problem."""


def error_response(exc: PosError):
    """JSON body and status code for a domain error raised inside a request."""
    return jsonify(exc.to_dict()), exc.http_status
