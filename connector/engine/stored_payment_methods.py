"""
Stored (tokenized) payment methods of a cart's customer.

Tokens are created by the processor when a shopper opts in to storing a card
and announced through tokenization webhooks:

1. ``recurring.token.created`` / ``alreadyExisting`` → save the token for the customer
2. ``recurring.token.disabled`` → drop the local payment method holding the token

Listing enriches each local payment method with the processor's display data
(brand, last digits, expiry). Deleting removes the local method before the
processor token.
"""

import logging
from typing import Any, Optional

from connector.config import Settings
from connector.converters.helpers import convert_card_brand_from_processor_format
from connector.converters.tokenization import TokenizationNotificationConverter
from connector.engine.errors import ProcessorApiError, RequiredFieldError, UnsupportedNotificationError
from connector.models.commerce import Cart, CustomerPaymentMethod
from connector.models.wire import ProcessorStoredPaymentMethod, TokenizationNotification
from connector.providers.base import CartService, PaymentMethodService, ProcessorApi

logger = logging.getLogger("connector.stored_payment_methods")

MAX_TOKEN_DELETE_ATTEMPTS = 3

# Statuses on which retrying the token deletion cannot help
_TOKEN_GONE = 404
_NOT_PERMITTED = (401, 403)


def _customer_id(cart: Cart) -> str:
    if not cart.customer_id:
        raise RequiredFieldError("customerId", f"Cart {cart.id} has no customer")
    return cart.customer_id


def _to_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def _display_options(stored: ProcessorStoredPaymentMethod) -> dict[str, Any]:
    options: dict[str, Any] = {
        "endDigits": stored.last_four,
        "expiryMonth": _to_int(stored.expiry_month),
        "expiryYear": _to_int(stored.expiry_year),
    }
    if stored.brand:
        options["brand"] = {"key": convert_card_brand_from_processor_format(stored.brand)}
    return {k: v for k, v in options.items() if v is not None}


class StoredPaymentMethodService:
    def __init__(
        self,
        config: Settings,
        cart_service: CartService,
        payment_method_service: PaymentMethodService,
        processor: ProcessorApi,
    ):
        self._config = config
        self._cart_service = cart_service
        self._payment_method_service = payment_method_service
        self._processor = processor
        self._converter = TokenizationNotificationConverter(config)

    @property
    def _payment_interface(self) -> str:
        return self._config.adyen_stored_payment_methods_payment_interface

    @property
    def _interface_account(self) -> Optional[str]:
        return self._config.adyen_stored_payment_methods_interface_account or None

    async def get_stored_payment_methods(self, cart_id: str) -> dict[str, Any]:
        """Empty while stored payment methods are disabled."""
        if not self._config.adyen_stored_payment_methods_enabled:
            return {"storedPaymentMethods": []}

        cart = await self._cart_service.get_cart(cart_id)
        customer_id = _customer_id(cart)

        methods = await self._payment_method_service.find(
            customer_id, self._payment_interface, self._interface_account
        )
        if not methods:
            return {"storedPaymentMethods": []}

        response = await self._processor.get_tokens_for_stored_payment_details(
            customer_id, self._config.adyen_merchant_account
        )
        by_token = {stored.id: stored for stored in response.stored_payment_methods}

        return {"storedPaymentMethods": [self._to_response(m, by_token.get(m.token)) for m in methods]}

    def _to_response(
        self, method: CustomerPaymentMethod, stored: Optional[ProcessorStoredPaymentMethod]
    ) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": method.id,
            "paymentMethod": method.method,
            "token": method.token,
            "isDefault": method.is_default,
            "createdAt": method.created_at.isoformat() if method.created_at else None,
        }
        if stored is not None:
            result["displayOptions"] = _display_options(stored)
        return result

    async def delete_stored_payment_method(self, cart_id: str, payment_method_id: str) -> None:
        """
        Raises:
            RequiredFieldError: The cart has no customer.
            ResourceNotFoundError: The customer has no such payment method.
            ProcessorApiError: The processor token could not be deleted.
        """
        cart = await self._cart_service.get_cart(cart_id)
        customer_id = _customer_id(cart)

        method = await self._payment_method_service.get(
            customer_id, self._payment_interface, self._interface_account, payment_method_id
        )
        await self._payment_method_service.delete(customer_id, method.id)
        await self._delete_token_in_processor(method.token, customer_id)

    async def _delete_token_in_processor(self, token: str, customer_id: str) -> None:
        for attempt in range(1, MAX_TOKEN_DELETE_ATTEMPTS + 1):
            try:
                await self._processor.delete_token_for_stored_payment_details(
                    token, customer_id, self._config.adyen_merchant_account
                )
                return
            except ProcessorApiError as e:
                if e.status_code == _TOKEN_GONE:
                    logger.info("Token %s of customer %s is already gone at the processor", token, customer_id)
                    return
                if e.status_code in _NOT_PERMITTED:
                    logger.error(
                        "Not permitted to delete token %s of customer %s at the processor: %s",
                        token,
                        customer_id,
                        e,
                    )
                    return
                if attempt == MAX_TOKEN_DELETE_ATTEMPTS:
                    logger.error(
                        "Failed to delete token %s of customer %s after %d attempts: %s",
                        token,
                        customer_id,
                        attempt,
                        e,
                    )
                    raise
                logger.warning(
                    "Deleting token %s failed on attempt %d/%d: %s",
                    token,
                    attempt,
                    MAX_TOKEN_DELETE_ATTEMPTS,
                    e,
                )

    async def process_notification_tokenization(
        self, notification: TokenizationNotification
    ) -> Optional[CustomerPaymentMethod]:
        """
        Apply a tokenization webhook to the customer's stored payment methods.

        Returns the saved payment method, or None when the token was disabled
        or the event is not a token life cycle event.

        Raises:
            RequiredFieldError: The event carries no token.
        """
        try:
            update = self._converter.convert(notification)
        except UnsupportedNotificationError as e:
            logger.info("Unsupported tokenization notification received: %s", e.event_code)
            return None

        draft = update.draft

        if update.disables_token:
            existing = await self._payment_method_service.find_by_token(
                draft.customer_id, draft.payment_interface, draft.interface_account, draft.token
            )
            if existing is None:
                logger.info("Disabled token %s of customer %s is not stored", draft.token, draft.customer_id)
                return None
            await self._payment_method_service.delete(draft.customer_id, existing.id)
            logger.info("Removed payment method %s of customer %s", existing.id, draft.customer_id)
            return None

        method = await self._payment_method_service.save(draft)
        logger.info(
            "Stored payment method %s (%s) for customer %s on %s",
            method.id,
            method.method,
            method.customer_id,
            update.event_type.value,
        )
        return method
