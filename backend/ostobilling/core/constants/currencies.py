"""Supported ISO-4217 currency codes."""

SUPPORTED_CURRENCIES: frozenset[str] = frozenset(
    {
        "USD",
        "EUR",
        "GBP",
        "CAD",
        "AUD",
        "JPY",
        "CHF",
        "CNY",
        "INR",
        "BRL",
        "MXN",
        "SGD",
        "HKD",
        "NOK",
        "SEK",
        "DKK",
        "PLN",
        "CZK",
        "HUF",
        "RUB",
        "ZAR",
        "KRW",
        "THB",
        "MYR",
        "PHP",
        "IDR",
        "VND",
    }
)


def is_supported_currency(code: str) -> bool:
    """Check whether a three-letter code is an accepted currency."""
    return code.upper() in SUPPORTED_CURRENCIES
