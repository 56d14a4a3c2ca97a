"""Runtime settings for the ordering engine, read from the environment."""

import os

PAYMENT_CURRENCY = os.environ.get("PAYMENT_CURRENCY", "eur")
ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "ATB")
SUPPORT_EMAIL = os.environ.get("SUPPORT_EMAIL", "support@atelierabijoux.com")
STOREFRONT_BASE_URL = os.environ.get("STOREFRONT_BASE_URL", "https://www.atelierabijoux.com")
DEFAULT_LOCALE = os.environ.get("DEFAULT_LOCALE", "fr")

# Verified identities allowed to use the back-office endpoints
ADMIN_UIDS = {uid.strip() for uid in os.environ.get("ADMIN_UIDS", "").split(",") if uid.strip()}
