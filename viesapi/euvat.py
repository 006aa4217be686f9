"""EU VAT number syntax validation."""

import re
from types import MappingProxyType

from . import nip

EUVAT_PATTERN = re.compile(r"[A-Z]{2}[A-Z0-9+*]{2,12}")

# fmt:off
COUNTRY_PATTERNS = MappingProxyType({
    country_code: re.compile(pattern)
    for country_code, pattern in {
        "AT": r"ATU[0-9]{8}",                       # Austria
        "BE": r"BE[0-1][0-9]{9}",                   # Belgium
        "BG": r"BG[0-9]{9,10}",                     # Bulgaria
        "CY": r"CY[0-9]{8}[A-Z]",                   # Cyprus
        "CZ": r"CZ[0-9]{8,10}",                     # Czech Republic
        "DE": r"DE[0-9]{9}",                        # Germany
        "DK": r"DK[0-9]{8}",                        # Denmark
        "EE": r"EE[0-9]{9}",                        # Estonia
        "EL": r"EL[0-9]{9}",                        # Greece
        "ES": r"ES[A-Z0-9][0-9]{7}[A-Z0-9]",        # Spain
        "FI": r"FI[0-9]{8}",                        # Finland
        "FR": r"FR[A-Z0-9]{2}[0-9]{9}",             # France
        "HR": r"HR[0-9]{11}",                       # Croatia
        "HU": r"HU[0-9]{8}",                        # Hungary
        "IE": r"IE[A-Z0-9+*]{8,9}",                 # Ireland
        "IT": r"IT[0-9]{11}",                       # Italy
        "LT": r"LT([0-9]{9}|[0-9]{12})",            # Lithuania
        "LU": r"LU[0-9]{8}",                        # Luxembourg
        "LV": r"LV[0-9]{11}",                       # Latvia
        "MT": r"MT[0-9]{8}",                        # Malta
        "NL": r"NL[A-Z0-9+*]{12}",                  # Netherlands
        "PL": r"PL[0-9]{10}",                       # Poland
        "PT": r"PT[0-9]{9}",                        # Portugal
        "RO": r"RO[0-9]{2,10}",                     # Romania
        "SE": r"SE[0-9]{12}",                       # Sweden
        "SI": r"SI[0-9]{8}",                        # Slovenia
        "SK": r"SK[0-9]{10}",                       # Slovakia
        "XI": r"XI[A-Z0-9]{5,12}",                  # Northern Ireland
    }.items()
})
# fmt:on

# Country whose number body is also run through the NIP checksum.
CHECKSUM_COUNTRY = "PL"


def normalize(number: str) -> str | None:
    """Strip spaces and hyphens from a VAT number and check its general shape.

    Args:
        number: The VAT number, including its two-letter country prefix.

    Returns:
        The normalized VAT number, or ``None`` if it is not shaped like an EU
        VAT number. Lowercase input is rejected, not folded.

    Examples:
        >>> normalize("PL 727-244-52-05")
        'PL7272445205'

        >>> normalize("IE 1234567FA")
        'IE1234567FA'

        >>> normalize("pl7272445205")

        >>> normalize("invalid")

    """
    if not number:
        return None
    number = number.replace(" ", "").replace("-", "")
    if not EUVAT_PATTERN.fullmatch(number):
        return None
    return number


def is_valid(number: str) -> bool:
    """Validate a VAT number against the pattern of its country.

    Only Polish numbers have their checksum verified; the others are checked
    for format alone.

    Examples:
        >>> is_valid("PL7272445205")
        True

        >>> is_valid("PL7272445206")
        False

        >>> is_valid("ATU12345678")
        True

        >>> is_valid("AT12345678")
        False

        >>> is_valid("ZZ12345678")
        False

    """
    number = normalize(number)
    if number is None:
        return False
    country_code, body = number[:2], number[2:]
    pattern = COUNTRY_PATTERNS.get(country_code)
    if pattern is None or not pattern.fullmatch(number):
        return False
    if country_code == CHECKSUM_COUNTRY:
        return nip.is_valid(body)
    return True
