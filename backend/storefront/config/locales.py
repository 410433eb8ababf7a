"""Locale and currency tables shared by pricing, catalog and upload code."""

SUPPORTED_LOCALES = ('pl', 'en', 'ua', 'es')
DEFAULT_LOCALE = 'pl'

BASE_CURRENCY = 'EUR'
SUPPORTED_CURRENCIES = ('EUR', 'PLN', 'UAH')

# Used when no CurrencyExchange row exists for BASE_CURRENCY -> target
FALLBACK_RATES = {
    'EUR': 1.0,
    'PLN': 4.5,
    'UAH': 40.0,
}

CURRENCY_SYMBOLS = {
    'EUR': '€',
    'PLN': 'zł',
    'UAH': '₴',
}

DEFAULT_PREFERRED_COUNTRY = 'PL'


def is_supported_locale(locale: str) -> bool:
    return locale in SUPPORTED_LOCALES
