"""
Recurring token life cycle webhook → stored payment method change.

  recurring.token.created           store the token for the shopper
  recurring.token.alreadyExisting   store it too (no-op when already stored)
  recurring.token.disabled          remove the stored token

The shopper reference is the commerce customer id the token was created for.
Any other event type is unsupported.
"""

from dataclasses import dataclass

from connector.config import Settings
from connector.converters.helpers import convert_payment_method_from_processor_format, is_scheme_card_brand
from connector.engine.errors import RequiredFieldError, UnsupportedNotificationError
from connector.models.commerce import CustomerPaymentMethodDraft
from connector.models.enums import TokenizationEventType
from connector.models.wire import TokenizationNotification


@dataclass
class TokenizationUpdate:
    event_type: TokenizationEventType
    draft: CustomerPaymentMethodDraft

    @property
    def disables_token(self) -> bool:
        return self.event_type == TokenizationEventType.TOKEN_DISABLED


def convert_token_method(variant: str) -> str:
    """Commerce method name of a token; card variants (``visa``, ``mc``, ...) are all ``card``."""
    if not variant or variant == "scheme" or is_scheme_card_brand(variant):
        return "card"
    return convert_payment_method_from_processor_format(variant)


class TokenizationNotificationConverter:
    def __init__(self, config: Settings):
        self._config = config

    def convert(self, notification: TokenizationNotification) -> TokenizationUpdate:
        """
        Raises:
            UnsupportedNotificationError: Not a token life cycle event this connector handles.
            RequiredFieldError: The event carries no stored payment method id.
        """
        try:
            event_type = TokenizationEventType(notification.type)
        except ValueError:
            raise UnsupportedNotificationError(notification.type) from None

        data = notification.data
        if not data.stored_payment_method_id:
            raise RequiredFieldError(
                "storedPaymentMethodId", f"Tokenization event {notification.type} has no storedPaymentMethodId"
            )

        return TokenizationUpdate(
            event_type=event_type,
            draft=CustomerPaymentMethodDraft(
                customer_id=data.shopper_reference,
                payment_interface=self._config.adyen_stored_payment_methods_payment_interface,
                interface_account=self._config.adyen_stored_payment_methods_interface_account or None,
                method=convert_token_method(data.type or ""),
                token=data.stored_payment_method_id,
            ),
        )
