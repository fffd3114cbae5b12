"""
Seed the database with sample checkout data.

Creates:
  - 3 carts in the commerce platform's JSON shape: a taxed German cart with a
    discounted line item and shipping, an Icelandic cart (ISK, whose
    processor minor units differ from ISO), and a split-shipping cart
  - 1 authorised card payment attached to the German cart, with an order,
    ready to be captured through /operations/payment-intents

Run:
    python -m seed.seed_data
"""

import asyncio

from connector.database import async_session, init_db
from connector.models.commerce import (
    Cart,
    Money,
    Order,
    PaymentDraft,
    PaymentMethodInfo,
    TransactionDraft,
)
from connector.models.enums import TransactionState, TransactionType
from connector.models.records import CartRecord
from connector.providers.sql_store import SqlCartService, SqlOrderService, SqlPaymentService


def _money(cents: int, currency: str = "EUR") -> dict:
    return {"centAmount": cents, "currencyCode": currency}


def _vat(net: int, gross: int, currency: str = "EUR") -> dict:
    return {
        "totalNet": _money(net, currency),
        "totalGross": _money(gross, currency),
        "totalTax": _money(gross - net, currency),
    }


BERLIN = {
    "firstName": "Jana",
    "lastName": "Schulz",
    "streetName": "Torstraße",
    "streetNumber": "12",
    "postalCode": "10119",
    "city": "Berlin",
    "country": "DE",
    "phone": "+49301234567",
    "email": "jana.schulz@example.com",
}

CARTS = [
    {
        "id": "cart-de-001",
        "customerEmail": "jana.schulz@example.com",
        "customerId": "customer-de-001",
        "country": "DE",
        "locale": "de-DE",
        "lineItems": [
            {
                "id": "li-001",
                "name": {"de-DE": "Wanderschuhe", "en-GB": "Hiking boots"},
                "variant": {"id": 1, "sku": "BOOT-42"},
                "price": {"value": _money(11900)},
                "quantity": 2,
                "totalPrice": _money(21420),
                "taxedPrice": _vat(18000, 21420),
                "taxRate": {"name": "MwSt", "amount": 0.19, "includedInPrice": True, "country": "DE"},
            },
        ],
        "customLineItems": [
            {
                "id": "cli-001",
                "name": {"de-DE": "Geschenkverpackung", "en-GB": "Gift wrap"},
                "money": _money(500),
                "quantity": 1,
                "totalPrice": _money(500),
                "taxedPrice": _vat(420, 500),
                "taxRate": {"name": "MwSt", "amount": 0.19, "includedInPrice": True, "country": "DE"},
            },
        ],
        "totalPrice": _money(22415),
        "taxedPrice": _vat(18840, 22415),
        "shippingInfo": {
            "shippingMethodName": "DHL Standard",
            "price": _money(495),
            "taxedPrice": _vat(420, 495),
            "taxRate": {"name": "MwSt", "amount": 0.19, "includedInPrice": True, "country": "DE"},
        },
        "shippingAddress": BERLIN,
        "billingAddress": BERLIN,
    },
    {
        "id": "cart-is-001",
        "customerEmail": "gudrun@example.is",
        "anonymousId": "anon-is-001",
        "country": "IS",
        "locale": "is-IS",
        "lineItems": [
            {
                "id": "li-101",
                "name": {"is-IS": "Lopapeysa", "en-GB": "Wool sweater"},
                "variant": {"id": 7, "sku": "LOPI-M"},
                "price": {"value": _money(2990000, "ISK")},
                "quantity": 1,
                "totalPrice": _money(2990000, "ISK"),
            },
        ],
        "totalPrice": _money(2990000, "ISK"),
        "billingAddress": {"country": "IS", "city": "Reykjavík", "streetName": "Laugavegur", "streetNumber": "20"},
    },
    {
        "id": "cart-nl-multi",
        "customerEmail": "pieter@example.nl",
        "customerId": "customer-nl-001",
        "country": "NL",
        "locale": "nl-NL",
        "shippingMode": "Multiple",
        "lineItems": [
            {
                "id": "li-201",
                "name": {"nl-NL": "Koffiebonen", "en-GB": "Coffee beans"},
                "variant": {"id": 3, "sku": "BEANS-1KG"},
                "price": {"value": _money(2400)},
                "quantity": 3,
                "totalPrice": _money(7200),
            },
        ],
        "shipping": [
            {
                "shippingKey": "home",
                "shippingInfo": {"shippingMethodName": "PostNL", "price": _money(695)},
                "shippingAddress": {"country": "NL", "city": "Utrecht"},
            },
            {
                "shippingKey": "office",
                "shippingInfo": {"shippingMethodName": "PostNL", "price": _money(695)},
                "shippingAddress": {"country": "NL", "city": "Amsterdam"},
            },
        ],
        "totalPrice": _money(8590),
    },
]


async def seed():
    """Seed the database with sample data."""
    await init_db()

    async with async_session() as session:
        # Check if already seeded
        existing = await session.get(CartRecord, "cart-de-001")
        if existing:
            print("Database already seeded. Skipping.")
            return

        carts = SqlCartService(session)
        payments = SqlPaymentService(session)
        orders = SqlOrderService(session)

        for cart_data in CARTS:
            await carts.save_cart(Cart.model_validate(cart_data))

        cart = await carts.get_cart("cart-de-001")
        payment = await payments.create_payment(
            PaymentDraft(
                amount_planned=carts.get_payment_amount(cart),
                payment_method_info=PaymentMethodInfo(payment_interface="adyen", method="scheme"),
                customer_id=cart.customer_id,
            )
        )
        await carts.add_payment(cart.id, payment.id)
        await payments.update_payment(
            payment.id,
            psp_reference="SEEDPSP000000001",
            transaction=TransactionDraft(
                type=TransactionType.AUTHORIZATION,
                state=TransactionState.SUCCESS,
                amount=Money(cent_amount=payment.amount_planned.cent_amount, currency_code="EUR"),
                interaction_id="SEEDPSP000000001",
            ),
        )
        await orders.save_order(
            Order.model_validate({**CARTS[0], "id": "order-de-001", "orderNumber": "DE-10001", "cartId": cart.id}),
            payment_id=payment.id,
        )

        print(f"Seeded {len(CARTS)} carts and 1 authorised payment ({payment.id}).")


if __name__ == "__main__":
    asyncio.run(seed())
