"""Payment request and screenshot reconciliation."""

from src.payments.payment_request import PaymentRequestInitiator
from src.payments.reconciliation import ReconciliationEngine, ReconciliationResult

__all__ = ["PaymentRequestInitiator", "ReconciliationEngine", "ReconciliationResult"]
