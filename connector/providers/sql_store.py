"""
Reference commerce services backed by SQLAlchemy.

Stands in for the commerce platform: payments with their transaction ledger,
plus carts and orders stored as the platform's JSON documents, and
customers' stored payment methods.

Concurrency guarantees:
  - Every payment write bumps ``PaymentRecord.version``; a write based on a
    stale version fails with ``VersionConflictError`` instead of overwriting
  - (payment, type, interaction id) is unique, so two racing deliveries of
    the same webhook cannot both append; the loser gets a version conflict
  - Replaying a transaction draft that is already applied is a no-op
  - Tagging a transaction with an interaction id that a webhook already
    recorded folds the two into the webhook's transaction
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from connector.audit.logger import log_event
from connector.engine.errors import ResourceNotFoundError, VersionConflictError
from connector.models.commerce import (
    CardDetails,
    Cart,
    CustomerPaymentMethod,
    CustomerPaymentMethodDraft,
    Money,
    Order,
    Payment,
    PaymentDraft,
    PaymentMethodInfo,
    Transaction,
    TransactionDraft,
)
from connector.models.enums import TransactionState, TransactionType
from connector.models.records import (
    CartRecord,
    CustomerPaymentMethodRecord,
    OrderRecord,
    PaymentRecord,
    TransactionRecord,
)
from connector.providers.base import CartService, OrderService, PaymentMethodService, PaymentService

logger = logging.getLogger("connector.store")

_UNSETTLED = (TransactionState.INITIAL, TransactionState.PENDING)


def _to_payment(record: PaymentRecord) -> Payment:
    return Payment(
        id=record.id,
        version=record.version,
        amount_planned=Money(
            cent_amount=record.cent_amount,
            currency_code=record.currency_code,
            fraction_digits=record.fraction_digits,
        ),
        interface_id=record.interface_id,
        payment_method_info=PaymentMethodInfo(
            payment_interface=record.payment_interface,
            method=record.method,
            card_details=CardDetails.model_validate_json(record.card_details) if record.card_details else None,
        ),
        transactions=[
            Transaction(
                id=tx.id,
                type=TransactionType(tx.type),
                state=TransactionState(tx.state),
                amount=Money(cent_amount=tx.cent_amount, currency_code=tx.currency_code),
                interaction_id=tx.interaction_id,
            )
            for tx in record.transactions
        ],
    )


def _find_interaction(record: PaymentRecord, draft: TransactionDraft) -> Optional[TransactionRecord]:
    return next(
        (
            tx for tx in record.transactions
            if tx.type == draft.type.value and tx.interaction_id == draft.interaction_id
        ),
        None,
    )


def _describe(tx: TransactionRecord) -> dict:
    return {
        "transaction_id": tx.id,
        "type": tx.type,
        "state": tx.state,
        "amount": tx.cent_amount,
        "currency": tx.currency_code,
        "interaction_id": tx.interaction_id,
    }


class SqlPaymentService(PaymentService):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def _load(self, payment_id: str) -> PaymentRecord:
        record = await self._session.get(PaymentRecord, payment_id, populate_existing=True)
        if record is None:
            raise ResourceNotFoundError("payment", payment_id)
        return record

    async def _commit(self, payment_id: str) -> None:
        try:
            await self._session.commit()
        except (StaleDataError, IntegrityError) as e:
            await self._session.rollback()
            logger.warning("Concurrent modification of payment %s: %s", payment_id, e)
            raise VersionConflictError(
                f"Payment {payment_id} was modified concurrently",
                details={"paymentId": payment_id},
            ) from e

    async def get_payment(self, payment_id: str) -> Payment:
        return _to_payment(await self._load(payment_id))

    async def find_payments_by_interface_id(self, interface_id: str) -> list[Payment]:
        by_interaction = select(TransactionRecord.payment_id).where(TransactionRecord.interaction_id == interface_id)
        result = await self._session.execute(
            select(PaymentRecord)
            .where(or_(PaymentRecord.interface_id == interface_id, PaymentRecord.id.in_(by_interaction)))
            .order_by(PaymentRecord.created_at)
            .execution_options(populate_existing=True)
        )
        return [_to_payment(record) for record in result.scalars().all()]

    async def create_payment(self, draft: PaymentDraft) -> Payment:
        record = PaymentRecord(
            cent_amount=draft.amount_planned.cent_amount,
            currency_code=draft.amount_planned.currency_code,
            fraction_digits=draft.amount_planned.fraction_digits,
            payment_interface=draft.payment_method_info.payment_interface,
            method=draft.payment_method_info.method,
            customer_id=draft.customer_id,
            anonymous_id=draft.anonymous_id,
        )
        self._session.add(record)
        await self._session.flush()

        await log_event(self._session, "payment_created", payment_id=record.id, details={
            "amount": record.cent_amount,
            "currency": record.currency_code,
            "method": record.method,
        })
        await self._commit(record.id)
        return await self.get_payment(record.id)

    async def update_payment(
        self,
        payment_id: str,
        *,
        transaction: Optional[TransactionDraft] = None,
        psp_reference: Optional[str] = None,
        payment_method: Optional[str] = None,
        card_details: Optional[CardDetails] = None,
        version: Optional[int] = None,
    ) -> Payment:
        record = await self._load(payment_id)

        if version is not None and record.version != version:
            raise VersionConflictError(
                f"Payment {payment_id} is at version {record.version}, expected {version}",
                details={"paymentId": payment_id, "currentVersion": record.version, "expectedVersion": version},
            )

        changed = False

        if psp_reference and not record.interface_id:
            record.interface_id = psp_reference
            changed = True

        if payment_method and record.method != payment_method:
            record.method = payment_method
            changed = True

        if card_details is not None:
            document = card_details.model_dump_json(by_alias=True, exclude_none=True)
            if record.card_details != document:
                record.card_details = document
                await log_event(self._session, "card_details_set", payment_id=payment_id, details={
                    "brand": card_details.brand,
                    "last_four": card_details.last_four,
                })
                changed = True

        if transaction is not None:
            changed = await self._merge_transaction(record, transaction) or changed

        if changed:
            # Touch the payment row so the version is bumped even when only
            # its transactions changed.
            record.updated_at = datetime.now(timezone.utc)
            await self._commit(payment_id)

        return await self.get_payment(payment_id)

    async def _merge_transaction(self, record: PaymentRecord, draft: TransactionDraft) -> bool:
        target = None
        if draft.id:
            target = next((tx for tx in record.transactions if tx.id == draft.id), None)
            if target is None:
                raise ResourceNotFoundError("transaction", draft.id)
            if draft.interaction_id and target.interaction_id != draft.interaction_id:
                recorded = _find_interaction(record, draft)
                if recorded is not None:
                    return await self._fold_into(record, target, recorded, draft)
        elif draft.interaction_id:
            target = _find_interaction(record, draft)

        if target is None:
            tx = TransactionRecord(
                id=str(uuid.uuid4()),
                position=max((t.position for t in record.transactions), default=-1) + 1,
                type=draft.type.value,
                state=draft.state.value,
                cent_amount=draft.amount.cent_amount,
                currency_code=draft.amount.currency_code,
                interaction_id=draft.interaction_id,
            )
            record.transactions.append(tx)
            await log_event(self._session, "transaction_added", payment_id=record.id, details=_describe(tx))
            return True

        return await self._update_transaction(record, target, draft)

    async def _fold_into(
        self,
        record: PaymentRecord,
        attempt: TransactionRecord,
        recorded: TransactionRecord,
        draft: TransactionDraft,
    ) -> bool:
        """
        Drop a locally started transaction whose outcome a webhook already
        recorded under the same interaction id, and apply the draft to the
        webhook's transaction instead.
        """
        logger.info(
            "Folding %s transaction %s into %s on payment %s (interaction %s)",
            attempt.type,
            attempt.id,
            recorded.id,
            record.id,
            draft.interaction_id,
        )
        record.transactions.remove(attempt)
        await log_event(self._session, "transaction_merged", payment_id=record.id, details={
            **_describe(attempt),
            "merged_into": recorded.id,
        })
        await self._update_transaction(record, recorded, draft)
        return True

    async def _update_transaction(
        self, record: PaymentRecord, target: TransactionRecord, draft: TransactionDraft
    ) -> bool:
        if target.state == TransactionState.FAILURE.value:
            if draft.state != TransactionState.FAILURE:
                logger.warning(
                    "Ignoring %s for failed %s transaction %s on payment %s",
                    draft.state.value,
                    target.type,
                    target.id,
                    record.id,
                )
            return False

        if target.state == TransactionState.SUCCESS.value and draft.state in _UNSETTLED:
            draft = draft.model_copy(update={"state": TransactionState.SUCCESS})

        previous_state = target.state
        changed = False

        if draft.interaction_id and target.interaction_id != draft.interaction_id:
            target.interaction_id = draft.interaction_id
            changed = True

        if target.state != draft.state.value:
            target.state = draft.state.value
            changed = True

        if changed:
            await log_event(self._session, "transaction_updated", payment_id=record.id, details={
                **_describe(target),
                "previous_state": previous_state,
            })
        return changed


class SqlCartService(CartService):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_cart(self, cart_id: str) -> Cart:
        record = await self._session.get(CartRecord, cart_id, populate_existing=True)
        if record is None:
            raise ResourceNotFoundError("cart", cart_id)
        return Cart.model_validate_json(record.document)

    async def get_cart_by_payment_id(self, payment_id: str) -> Cart:
        result = await self._session.execute(
            select(CartRecord).where(CartRecord.payment_id == payment_id).limit(1)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise ResourceNotFoundError("cart", payment_id)
        return Cart.model_validate_json(record.document)

    async def add_payment(self, cart_id: str, payment_id: str) -> Cart:
        record = await self._session.get(CartRecord, cart_id)
        if record is None:
            raise ResourceNotFoundError("cart", cart_id)

        record.payment_id = payment_id
        await log_event(self._session, "cart_payment_added", payment_id=payment_id, details={"cart_id": cart_id})
        await self._session.commit()
        return Cart.model_validate_json(record.document)

    async def save_cart(self, cart: Cart, payment_id: Optional[str] = None) -> Cart:
        record = await self._session.get(CartRecord, cart.id)
        document = cart.model_dump_json(by_alias=True, exclude_none=True)
        if record is None:
            record = CartRecord(id=cart.id, document=document, payment_id=payment_id)
            self._session.add(record)
        else:
            record.document = document
            if payment_id is not None:
                record.payment_id = payment_id
        await self._session.commit()
        return cart


class SqlOrderService(OrderService):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_order_by_payment_id(self, payment_id: str) -> Order:
        result = await self._session.execute(
            select(OrderRecord).where(OrderRecord.payment_id == payment_id).limit(1)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise ResourceNotFoundError("order", payment_id)
        return Order.model_validate_json(record.document)

    async def save_order(self, order: Order, payment_id: Optional[str] = None) -> Order:
        record = OrderRecord(
            id=order.id,
            cart_id=order.cart_id,
            payment_id=payment_id,
            document=order.model_dump_json(by_alias=True, exclude_none=True),
        )
        await self._session.merge(record)
        await self._session.commit()
        return order


def _to_customer_payment_method(record: CustomerPaymentMethodRecord) -> CustomerPaymentMethod:
    return CustomerPaymentMethod(
        id=record.id,
        customer_id=record.customer_id,
        payment_interface=record.payment_interface,
        interface_account=record.interface_account,
        method=record.method,
        token=record.token,
        is_default=record.is_default,
        created_at=record.created_at,
    )


class SqlPaymentMethodService(PaymentMethodService):
    def __init__(self, session: AsyncSession):
        self._session = session

    def _scoped(self, customer_id: str, payment_interface: str, interface_account: Optional[str]):
        query = select(CustomerPaymentMethodRecord).where(
            CustomerPaymentMethodRecord.customer_id == customer_id,
            CustomerPaymentMethodRecord.payment_interface == payment_interface,
        )
        if interface_account:
            query = query.where(CustomerPaymentMethodRecord.interface_account == interface_account)
        return query

    async def find(
        self, customer_id: str, payment_interface: str, interface_account: Optional[str] = None
    ) -> list[CustomerPaymentMethod]:
        result = await self._session.execute(
            self._scoped(customer_id, payment_interface, interface_account).order_by(
                CustomerPaymentMethodRecord.created_at
            )
        )
        return [_to_customer_payment_method(record) for record in result.scalars().all()]

    async def get(
        self,
        customer_id: str,
        payment_interface: str,
        interface_account: Optional[str],
        payment_method_id: str,
    ) -> CustomerPaymentMethod:
        result = await self._session.execute(
            self._scoped(customer_id, payment_interface, interface_account).where(
                CustomerPaymentMethodRecord.id == payment_method_id
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise ResourceNotFoundError("payment-method", payment_method_id)
        return _to_customer_payment_method(record)

    async def save(self, draft: CustomerPaymentMethodDraft) -> CustomerPaymentMethod:
        existing = await self.find_by_token(
            draft.customer_id, draft.payment_interface, draft.interface_account, draft.token
        )
        if existing is not None:
            return existing

        record = CustomerPaymentMethodRecord(
            customer_id=draft.customer_id,
            payment_interface=draft.payment_interface,
            interface_account=draft.interface_account or None,
            method=draft.method,
            token=draft.token,
            is_default=draft.is_default,
        )
        self._session.add(record)
        await self._session.flush()
        await log_event(self._session, "payment_method_created", details={
            "payment_method_id": record.id,
            "customer_id": record.customer_id,
            "method": record.method,
        })
        await self._session.commit()
        return _to_customer_payment_method(record)

    async def delete(self, customer_id: str, payment_method_id: str) -> None:
        record = await self._session.get(CustomerPaymentMethodRecord, payment_method_id)
        if record is None or record.customer_id != customer_id:
            raise ResourceNotFoundError("payment-method", payment_method_id)

        await self._session.delete(record)
        await log_event(self._session, "payment_method_deleted", details={
            "payment_method_id": payment_method_id,
            "customer_id": customer_id,
        })
        await self._session.commit()
