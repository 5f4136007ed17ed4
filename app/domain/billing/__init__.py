# Billing domain module
from app.domain.billing.models import (
    Bill,
    BillItem,
    BillingTransaction,
    PaymentStatus,
    TransactionType,
)

__all__ = [
    "Bill",
    "BillItem",
    "BillingTransaction",
    "PaymentStatus",
    "TransactionType",
]
