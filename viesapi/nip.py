"""Polish NIP (tax identification number) validation."""

import re

NIP_PATTERN = re.compile(r"[0-9]{10}")
NIP_WEIGHTS = (6, 5, 7, 2, 3, 4, 5, 6, 7)


def normalize(nip: str) -> str | None:
    """Strip the formatting characters from a NIP.

    Args:
        nip: The NIP to normalize, possibly containing spaces and hyphens.

    Returns:
        The ten digit NIP, or ``None`` if it does not have the right shape.

    Examples:
        >>> normalize("727-244-52-05")
        '7272445205'

        >>> normalize("727 244 52 0")

        >>> normalize("")

    """
    if not nip:
        return None
    nip = nip.replace(" ", "").replace("-", "")
    if not NIP_PATTERN.fullmatch(nip):
        return None
    return nip


def is_valid(nip: str) -> bool:
    """Check the shape and the weighted checksum of a NIP.

    The first nine digits are weighted, summed and reduced modulo 11; the
    result must equal the tenth digit. A residue of 10 never matches, so such
    numbers are always invalid.

    Examples:
        >>> is_valid("7272445205")
        True

        >>> is_valid("727-244-52-05")
        True

        >>> is_valid("7272445206")
        False

        >>> is_valid("PL7272445205")
        False

    """
    nip = normalize(nip)
    if nip is None:
        return False
    checksum = sum(int(digit) * weight for digit, weight in zip(nip, NIP_WEIGHTS))
    return checksum % 11 == int(nip[9])
