"""Error taxonomy for payment requests and screenshot reconciliation.

Every domain failure carries a stable ``code``, an operator-facing
``message``, the HTTP status the API answers with, and optional ``details``
(for example the Bot API ``description`` verbatim).
"""

from typing import Any, Dict, Optional


class PaymentsError(Exception):
    """Base class for all domain errors of the service."""

    code = "payments_error"
    http_status = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for API responses."""
        payload: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        if self.details is not None:
            return f"{self.code}: {self.message} ({self.details})"
        return f"{self.code}: {self.message}"


class ConfigurationError(PaymentsError):
    """Required secret or setting is absent (bot token, card details, store credentials)."""

    code = "configuration_error"
    http_status = 500


class MissingRecipient(PaymentsError):
    """Order has no chat_id, nobody to send the message to."""

    code = "missing_recipient"
    http_status = 400

    def __init__(self, message: str = "Chat ID not found for this order", details: Optional[Any] = None):
        super().__init__(message, details)


class InvalidOrderData(PaymentsError):
    """Order payload or its line items cannot be parsed."""

    code = "invalid_order_data"
    http_status = 400


class FileResolutionError(PaymentsError):
    """Bot API could not turn a file_id into a downloadable URL."""

    code = "file_resolution_error"
    http_status = 502


class DeliveryFailed(PaymentsError):
    """Bot API rejected an outgoing message."""

    code = "delivery_failed"
    http_status = 500


class GatewayError(PaymentsError):
    """Transport-level failure talking to the Bot API."""

    code = "gateway_error"
    http_status = 502


class PersistenceError(PaymentsError):
    """Order store query or write failed."""

    code = "persistence_error"
    http_status = 500


class OrderNotFound(PaymentsError):
    """No order with the given id."""

    code = "order_not_found"
    http_status = 404
