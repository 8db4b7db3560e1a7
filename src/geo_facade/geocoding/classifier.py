"""
Postal code classification.

Maps a postal code to the country whose postal format it matches.
"""

import re
from typing import Mapping, Optional, Pattern

from .models import CountryCode

# Checked in this order; the first match wins.
POSTAL_PATTERNS: Mapping[CountryCode, Pattern[str]] = {
    CountryCode.US: re.compile(r"^\d{5}(?:-\d{4})?$"),
    CountryCode.CA: re.compile(r"^[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d$"),
    CountryCode.ZA: re.compile(r"^\d{4}$"),
}

# Spellings accepted for an explicit country on an address object
COUNTRY_ALIASES: Mapping[str, CountryCode] = {
    "US": CountryCode.US,
    "USA": CountryCode.US,
    "UNITED STATES": CountryCode.US,
    "CA": CountryCode.CA,
    "CAN": CountryCode.CA,
    "CANADA": CountryCode.CA,
    "ZA": CountryCode.ZA,
    "RSA": CountryCode.ZA,
    "SOUTH AFRICA": CountryCode.ZA,
}


def classify(postal_code: Optional[str]) -> Optional[CountryCode]:
    """
    Return the country whose postal format matches `postal_code`.

    Args:
        postal_code: Postal code to test (surrounding whitespace ignored)

    Returns:
        The first matching CountryCode in table order, or None when the
        code is empty or matches no supported country.
    """
    if not postal_code:
        return None
    code = str(postal_code).strip()
    for country, pattern in POSTAL_PATTERNS.items():
        if pattern.match(code):
            return country
    return None


def matches(postal_code: Optional[str], country: CountryCode) -> bool:
    """Check `postal_code` against a single country's format."""
    if not postal_code:
        return False
    return bool(POSTAL_PATTERNS[country].match(str(postal_code).strip()))


def resolve_country(value: Optional[str]) -> Optional[CountryCode]:
    """Resolve a free-form country name/code to a supported CountryCode."""
    if not value:
        return None
    return COUNTRY_ALIASES.get(str(value).strip().upper())
