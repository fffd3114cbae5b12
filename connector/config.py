"""Application configuration via environment variables."""

import json
import logging

from pydantic_settings import BaseSettings

logger = logging.getLogger("connector.config")


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./connector.db"
    log_level: str = "INFO"

    adyen_environment: str = "test"  # "test", "live" or "mock"
    adyen_api_key: str = ""
    adyen_client_key: str = ""
    adyen_merchant_account: str = ""
    adyen_live_url_prefix: str = ""
    adyen_shopper_statement: str = ""
    adyen_payment_methods_config: str = ""  # JSON, e.g. '{"bcmc": {"supportSeparateCapture": true}}'

    # Record brand, last four digits and expiry of card payments on AUTHORISATION
    adyen_store_payment_method_details_enabled: bool = False

    adyen_stored_payment_methods_enabled: bool = False
    adyen_stored_payment_methods_payment_interface: str = "adyen"
    adyen_stored_payment_methods_interface_account: str = ""

    # Deferred-payment methods that need full line items at capture time
    capture_line_item_methods: list[str] = ["klarna", "klarna_account", "klarna_paynow", "klarna_b2b"]

    processor_url: str = "http://localhost:8080"
    merchant_return_url: str = "http://localhost:3000/checkout/result"
    http_timeout_seconds: float = 10.0

    mock_failure_rate: float = 0.0
    mock_latency_ms: int = 0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


# Methods that settle on authorisation: no CAPTURE webhook will follow.
DEFAULT_PAYMENT_METHOD_CONFIG: dict[str, dict[str, bool]] = {
    "bcmc": {"supportSeparateCapture": False},
    "bcmc_mobile": {"supportSeparateCapture": False},
    "blik": {"supportSeparateCapture": False},
    "eps": {"supportSeparateCapture": False},
    "molpay_ebanking_fpx_MY": {"supportSeparateCapture": False},
    "ideal": {"supportSeparateCapture": False},
    "onlineBanking_PL": {"supportSeparateCapture": False},
    "swish": {"supportSeparateCapture": False},
}


# Processor method types that can be tokenized for later one-off payments.
STORED_PAYMENT_METHOD_TYPES: dict[str, dict[str, bool]] = {
    "scheme": {"oneOffPayments": True},
}


def _parse_payment_method_overrides(raw: str) -> dict[str, dict[str, bool]]:
    if not raw:
        return {}

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse ADYEN_PAYMENT_METHODS_CONFIG, using defaults: %s", e)
        return {}

    if not isinstance(parsed, dict):
        logger.warning("Invalid ADYEN_PAYMENT_METHODS_CONFIG, expected a JSON object: %s", raw)
        return {}

    overrides: dict[str, dict[str, bool]] = {}
    for key, value in parsed.items():
        if not isinstance(value, dict) or not isinstance(value.get("supportSeparateCapture"), bool):
            logger.warning(
                "Ignoring payment method config entry %r: supportSeparateCapture must be a boolean", key
            )
            continue
        overrides[key] = {"supportSeparateCapture": value["supportSeparateCapture"]}
    return overrides


def get_payment_method_config(config: Settings) -> dict[str, dict[str, bool]]:
    """
    Merge the built-in method capabilities with the JSON overrides.

    Override entries win over defaults; invalid entries are logged and dropped.
    """
    return {
        **DEFAULT_PAYMENT_METHOD_CONFIG,
        **_parse_payment_method_overrides(config.adyen_payment_methods_config),
    }
