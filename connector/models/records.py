"""SQLAlchemy models for the reference commerce store."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class PaymentRecord(Base):
    """
    A commerce payment and the head of its transaction ledger.

    ``version`` is bumped by every write. Updates are issued with
    ``WHERE version = :expected`` so a racing writer fails instead of
    silently overwriting.
    """

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_new_id)
    version = Column(Integer, nullable=False)
    interface_id = Column(String(100), nullable=True, index=True)  # processor pspReference
    payment_interface = Column(String(50), nullable=True)
    method = Column(String(50), nullable=True)
    cent_amount = Column(Integer, nullable=False)
    currency_code = Column(String(3), nullable=False)
    fraction_digits = Column(Integer, nullable=True)
    card_details = Column(Text, nullable=True)  # JSON CardDetails
    customer_id = Column(String(100), nullable=True)
    anonymous_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    transactions = relationship(
        "TransactionRecord",
        back_populates="payment",
        lazy="selectin",
        order_by="TransactionRecord.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}


class TransactionRecord(Base):
    """
    One ledger entry. Only its state moves forward; the one deletion is a
    locally started attempt folded into the entry a webhook recorded first.

    (payment, type, interaction_id) is unique so a replayed webhook can never
    add a second entry for the same processor event.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("payment_id", "type", "interaction_id", name="uq_payment_type_interaction"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    payment_id = Column(String(36), ForeignKey("payments.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    type = Column(String(30), nullable=False)
    state = Column(String(20), nullable=False)
    cent_amount = Column(Integer, nullable=False)
    currency_code = Column(String(3), nullable=False)
    interaction_id = Column(String(100), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    payment = relationship("PaymentRecord", back_populates="transactions")


class CartRecord(Base):
    """A cart stored as the platform's JSON document."""

    __tablename__ = "carts"

    id = Column(String(36), primary_key=True)
    payment_id = Column(String(36), nullable=True, index=True)
    document = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class OrderRecord(Base):
    """An order stored as the platform's JSON document."""

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    cart_id = Column(String(36), nullable=True)
    payment_id = Column(String(36), nullable=True, index=True)
    document = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class AuditLog(Base):
    """
    Immutable audit trail entry.

    Every ledger mutation gets an entry. These are append-only and never
    modified.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(36), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)


class CustomerPaymentMethodRecord(Base):
    """
    A customer's stored (tokenized) payment method.

    ``token`` is the processor's stored payment method id and is unique per
    customer and payment interface.
    """

    __tablename__ = "payment_methods"
    __table_args__ = (
        UniqueConstraint("customer_id", "payment_interface", "token", name="uq_customer_interface_token"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    customer_id = Column(String(100), nullable=False, index=True)
    payment_interface = Column(String(50), nullable=False)
    interface_account = Column(String(100), nullable=True)
    method = Column(String(50), nullable=True)
    token = Column(String(100), nullable=False, index=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
