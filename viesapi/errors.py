"""Error codes and error values reported by the VIES API client."""

import json
from dataclasses import asdict, dataclass
from enum import IntEnum


class Error(IntEnum):
    """Error codes raised on the client side, before or around the request."""

    CLI_CONNECT = 201
    CLI_RESPONSE = 202
    CLI_NUMBER = 203
    CLI_NIP = 204
    CLI_EUVAT = 205
    CLI_EXCEPTION = 206
    CLI_DATEFORMAT = 207
    CLI_INPUT = 208


MESSAGES = {
    Error.CLI_CONNECT: "Failed to connect to the VIES API service",
    Error.CLI_RESPONSE: "VIES API service response has invalid format",
    Error.CLI_NUMBER: "Invalid number type",
    Error.CLI_NIP: "NIP is invalid",
    Error.CLI_EUVAT: "EU VAT ID is invalid",
    Error.CLI_EXCEPTION: "Function generated an exception",
    Error.CLI_DATEFORMAT: "Date has an invalid format",
    Error.CLI_INPUT: "Invalid input parameters",
}


def message(code: int) -> str:
    """Return the static message for an error code, or an empty string.

    Examples:
        >>> message(Error.CLI_EUVAT)
        'EU VAT ID is invalid'

        >>> message(999)
        ''

    """
    return MESSAGES.get(code, "")


@dataclass(frozen=True)
class ViesError:
    """Error code and description of a failed call.

    The string form is JSON, which is how errors end up in CLI output::

        >>> str(ViesError(22, "EU VAT ID is invalid"))
        '{"code": 22, "description": "EU VAT ID is invalid"}'

    """

    code: int
    description: str

    def __str__(self) -> str:
        return json.dumps(asdict(self))


class InputError(ValueError):
    """Raised when a request cannot be built from the given input."""


class ResponseFormatError(ValueError):
    """Raised when a response body does not have the expected structure."""
