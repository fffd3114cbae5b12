from connector.models.enums import (
    EventCode,
    ModificationAction,
    ModificationStatus,
    ResultCode,
    TokenizationEventType,
    TransactionState,
    TransactionType,
)
from connector.models.records import (
    AuditLog,
    Base,
    CartRecord,
    CustomerPaymentMethodRecord,
    OrderRecord,
    PaymentRecord,
    TransactionRecord,
)

__all__ = [
    "Base",
    "PaymentRecord",
    "TransactionRecord",
    "CartRecord",
    "OrderRecord",
    "CustomerPaymentMethodRecord",
    "AuditLog",
    "EventCode",
    "ModificationAction",
    "ModificationStatus",
    "ResultCode",
    "TokenizationEventType",
    "TransactionState",
    "TransactionType",
]
