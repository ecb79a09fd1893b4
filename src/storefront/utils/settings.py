"""Storefront settings read from the ``[custom]`` table of ``domain.toml``."""

from typing import Any

from protean.utils.globals import current_domain

DEFAULTS = {
    "ORDER_NUMBER_PREFIX": "ORD",
    "DEFAULT_CURRENCY": "USD",
    "DEFAULT_ESTIMATED_DAYS": "3-5 business days",
    "STOCK_CAS_RETRIES": 5,
    "ORDER_SEQUENCE_RETRIES": 10,
}


def setting(name: str) -> Any:
    """Return a custom setting, falling back to the built-in default."""
    default = DEFAULTS[name]
    if not current_domain:
        return default

    custom = current_domain.config.get("custom") or {}
    return custom.get(name, default)
