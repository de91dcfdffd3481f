"""Currency reference data used for display and validation.

Conversion itself accepts any 3-letter code; this table only drives symbols,
names and the ``/rates/currencies`` listing.
"""

from typing import Dict, NamedTuple


class CurrencyInfo(NamedTuple):
    code: str
    symbol: str
    name: str


CURRENCIES: Dict[str, CurrencyInfo] = {
    c.code: c
    for c in (
        CurrencyInfo("USD", "$", "US Dollar"),
        CurrencyInfo("EUR", "€", "Euro"),
        CurrencyInfo("GBP", "£", "British Pound"),
        CurrencyInfo("NGN", "₦", "Nigerian Naira"),
        CurrencyInfo("CAD", "C$", "Canadian Dollar"),
        CurrencyInfo("AUD", "A$", "Australian Dollar"),
        CurrencyInfo("JPY", "¥", "Japanese Yen"),
        CurrencyInfo("INR", "₹", "Indian Rupee"),
        CurrencyInfo("ZAR", "R", "South African Rand"),
    )
}

DEFAULT_CURRENCY = "USD"
