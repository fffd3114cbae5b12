"""
Abstract collaborator interfaces.

The connector talks to two outside systems: the commerce platform (payments,
carts, orders, stored payment methods) and the payment processor. Both are
consumed through the narrow interfaces below. ``sql_store`` implements the
commerce side against a local database; ``checkout_client`` and
``mock_provider`` implement the processor.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from connector.engine.validation import (
    ValidationResult,
    validate_payment_cancel,
    validate_payment_charge,
    validate_payment_refund,
)
from connector.mapping.line_items import normalize_shipping
from connector.models.commerce import (
    CardDetails,
    Cart,
    CustomerPaymentMethod,
    CustomerPaymentMethodDraft,
    Money,
    NormalizedShipping,
    Order,
    Payment,
    PaymentDraft,
    TransactionDraft,
)
from connector.models.enums import TransactionState, TransactionType
from connector.models.wire import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    ModificationResponse,
    PaymentCancelRequest,
    PaymentCaptureRequest,
    PaymentMethodsRequest,
    PaymentRefundRequest,
    PaymentRequest,
    PaymentResponse,
    PaymentReversalRequest,
    StoredPaymentMethodsResponse,
)


class PaymentService(ABC):
    """Commerce payments and their transaction ledgers."""

    @abstractmethod
    async def get_payment(self, payment_id: str) -> Payment:
        """
        Raises:
            ResourceNotFoundError: No payment with this id.
        """
        ...

    @abstractmethod
    async def find_payments_by_interface_id(self, interface_id: str) -> list[Payment]:
        """Payments whose interface id, or one of whose transactions' interaction id, matches."""
        ...

    @abstractmethod
    async def create_payment(self, draft: PaymentDraft) -> Payment:
        ...

    @abstractmethod
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
        """
        Merge a transaction draft and/or payment fields into the payment.

        Raises:
            ResourceNotFoundError: Unknown payment, or a draft ``id`` that is not on it.
            VersionConflictError: ``version`` is stale or a concurrent write won.
        """
        ...

    def has_transaction_in_state(
        self,
        payment: Payment,
        transaction_type: TransactionType,
        states: Iterable[TransactionState],
    ) -> bool:
        wanted = set(states)
        return any(tx.type == transaction_type and tx.state in wanted for tx in payment.transactions)

    def validate_payment_charge(self, payment: Payment, amount: Money) -> ValidationResult:
        return validate_payment_charge(payment, amount)

    def validate_payment_cancel(self, payment: Payment, amount: Money) -> ValidationResult:
        return validate_payment_cancel(payment, amount)

    def validate_payment_refund(self, payment: Payment, amount: Money) -> ValidationResult:
        return validate_payment_refund(payment, amount)


class CartService(ABC):
    @abstractmethod
    async def get_cart(self, cart_id: str) -> Cart:
        ...

    @abstractmethod
    async def get_cart_by_payment_id(self, payment_id: str) -> Cart:
        ...

    @abstractmethod
    async def add_payment(self, cart_id: str, payment_id: str) -> Cart:
        ...

    def get_normalized_shipping(self, cart: Cart) -> list[NormalizedShipping]:
        """One entry per shipping method, for single and multiple shipping modes."""
        return normalize_shipping(cart)

    def get_payment_amount(self, cart: Cart) -> Money:
        """Amount the shopper has to pay for the cart, tax included."""
        if cart.taxed_price is not None:
            return cart.taxed_price.total_gross
        return cart.total_price


class OrderService(ABC):
    @abstractmethod
    async def get_order_by_payment_id(self, payment_id: str) -> Order:
        ...


class PaymentMethodService(ABC):
    """A customer's stored payment methods, scoped to one payment interface."""

    @abstractmethod
    async def find(
        self, customer_id: str, payment_interface: str, interface_account: Optional[str] = None
    ) -> list[CustomerPaymentMethod]:
        ...

    @abstractmethod
    async def get(
        self,
        customer_id: str,
        payment_interface: str,
        interface_account: Optional[str],
        payment_method_id: str,
    ) -> CustomerPaymentMethod:
        """
        Raises:
            ResourceNotFoundError: The customer has no such payment method.
        """
        ...

    @abstractmethod
    async def save(self, draft: CustomerPaymentMethodDraft) -> CustomerPaymentMethod:
        """Store the method, or return the existing one with the same token."""
        ...

    @abstractmethod
    async def delete(self, customer_id: str, payment_method_id: str) -> None:
        ...

    async def find_by_token(
        self, customer_id: str, payment_interface: str, interface_account: Optional[str], token: str
    ) -> Optional[CustomerPaymentMethod]:
        methods = await self.find(customer_id, payment_interface, interface_account)
        return next((m for m in methods if m.token == token), None)

    async def does_token_belong_to_customer(
        self, customer_id: str, payment_interface: str, interface_account: Optional[str], token: str
    ) -> bool:
        return await self.find_by_token(customer_id, payment_interface, interface_account, token) is not None


class ProcessorApi(ABC):
    """
    The payment processor's Checkout API.

    Implementations raise ``ProcessorApiError`` for error responses and
    transport failures.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def payments(self, request: PaymentRequest) -> PaymentResponse:
        ...

    @abstractmethod
    async def payments_details(self, data: dict[str, Any]) -> PaymentResponse:
        ...

    @abstractmethod
    async def payment_methods(self, request: PaymentMethodsRequest) -> dict[str, Any]:
        ...

    @abstractmethod
    async def sessions(self, request: CreateCheckoutSessionRequest) -> CreateCheckoutSessionResponse:
        ...

    @abstractmethod
    async def capture_authorised_payment(
        self, psp_reference: str, request: PaymentCaptureRequest
    ) -> ModificationResponse:
        ...

    @abstractmethod
    async def cancel_authorised_payment_by_psp_reference(
        self, psp_reference: str, request: PaymentCancelRequest
    ) -> ModificationResponse:
        ...

    @abstractmethod
    async def refund_captured_payment(
        self, psp_reference: str, request: PaymentRefundRequest
    ) -> ModificationResponse:
        ...

    @abstractmethod
    async def refund_or_cancel_payment(
        self, psp_reference: str, request: PaymentReversalRequest
    ) -> ModificationResponse:
        ...

    @abstractmethod
    async def get_tokens_for_stored_payment_details(
        self, shopper_reference: str, merchant_account: str
    ) -> StoredPaymentMethodsResponse:
        ...

    @abstractmethod
    async def delete_token_for_stored_payment_details(
        self, stored_payment_method_id: str, shopper_reference: str, merchant_account: str
    ) -> None:
        ...
