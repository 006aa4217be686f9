"""Helpers shared by the command line tools."""

from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import TypeAlias

Scalar: TypeAlias = bool | int | float | str | datetime
"""Leaf values found in VIES records."""


def flatten(record: Mapping[str, object], *, delimiter: str = ".") -> dict[str, Scalar]:
    """Flatten a lookup outcome into a CSV row keyed by dotted paths.

    Nested mappings and dataclass instances such as
    :class:`~viesapi.errors.ViesError` are expanded under their key. ``None``
    leaves are left out, so the CSV writer fills them with its ``restval``.

    Examples:
        >>> from viesapi.errors import ViesError
        >>> flatten({"number": "invalid", "error": ViesError(205, "EU VAT ID is invalid")})
        {'number': 'invalid', 'error.code': 205, 'error.description': 'EU VAT ID is invalid'}

        >>> flatten({"number": "", "data": {"uid": "test-uid", "valid_to": None}})
        {'number': '', 'data.uid': 'test-uid'}

        >>> flatten({"error": {"code": 205}}, delimiter="_")
        {'error_code': 205}

    """
    row: dict[str, Scalar] = {}
    for key, value in record.items():
        if is_dataclass(value) and not isinstance(value, type):
            value = asdict(value)
        if isinstance(value, Mapping):
            for path, leaf in flatten(value, delimiter=delimiter).items():
                row[f"{key}{delimiter}{path}"] = leaf
        elif value is not None:
            row[key] = value
    return row
