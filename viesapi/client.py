"""Client for the VIES API service (https://viesapi.eu).

The client validates numbers locally, signs each request with the MAC scheme
of :mod:`viesapi.signing`, sends it through a pluggable transport and turns
the XML response into a record or a :class:`~viesapi.errors.ViesError`.

Calls block until the transport returns. A client keeps the error of its
last call, so an instance must not be shared between threads without
serializing the calls; prefer one client per thread.
"""

import logging
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from http.client import HTTPException
from typing import TypeAlias, TypeVar
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from . import euvat, nip, signing
from .errors import Error, InputError, ResponseFormatError, ViesError, message
from .models import AccountStatus, VIESData, parse_account_status, parse_vies_data

VERSION = "1.2.5"

PRODUCTION_URL = "https://viesapi.eu/api"
TEST_URL = "https://viesapi.eu/api-test"
TEST_ID = "test_id"
TEST_KEY = "test_key"

logger = logging.getLogger(__name__)


Transport: TypeAlias = Callable[[Request], bytes | None]
"""Sends a request and returns the response body, or ``None`` on failure."""

T = TypeVar("T")

Result: TypeAlias = T | ViesError
"""Either the record a call asked for, or the error that prevented it."""


class NumberType(Enum):
    EUVAT = "euvat"
    NIP = "nip"


@dataclass(frozen=True)
class ClientConfig:
    """Credentials and service URL of a client.

    Attributes:
        id: Identifier of the API key.
        key: The API key.
        url: Base URL of the service.

    """

    id: str
    key: str
    url: str = PRODUCTION_URL

    @classmethod
    def create(cls, id: str = "", key: str = "") -> "ClientConfig":
        """Use the given credentials, or the test account if either is missing.

        Examples:
            >>> ClientConfig.create("my_id", "my_key").url
            'https://viesapi.eu/api'

            >>> ClientConfig.create("my_id", "")
            ClientConfig(id='test_id', key='test_key', url='https://viesapi.eu/api-test')

        """
        if not id or not key:
            return cls(TEST_ID, TEST_KEY, TEST_URL)
        return cls(id, key)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Load the configuration from ``VIESAPI_ID``, ``VIESAPI_KEY`` and ``VIESAPI_URL``."""
        config = cls.create(os.getenv("VIESAPI_ID", ""), os.getenv("VIESAPI_KEY", ""))
        if url := os.getenv("VIESAPI_URL"):
            config = replace(config, url=url)
        return config


def user_agent() -> str:
    """Value of the ``User-Agent`` header sent with every request."""
    return f"VIESAPIClient/{VERSION} Python/{sys.platform}"


def fetch(request: Request, timeout: float | None = None) -> bytes | None:
    """Default transport, sending the request with :func:`urllib.request.urlopen`.

    HTTP error statuses still carry a ``<result>`` document, so their body is
    returned like any other. Only a failed exchange yields ``None``, including
    one where the body of an error status cannot be read in full.
    """
    try:
        with urlopen(request, timeout=timeout) as response:
            return response.read()
    except HTTPError as error:
        logger.debug("%s returned HTTP %s", request.full_url, error.code)
        with error:
            try:
                return error.read()
            except (OSError, HTTPException) as reason:
                logger.warning(
                    "Reading the HTTP %s body from %s failed: %s",
                    error.code, request.full_url, reason,
                )
                return None
    except (OSError, HTTPException) as error:
        logger.warning("Request to %s failed: %s", request.full_url, error)
        return None


class VIESClient:
    """VIES API client.

    Args:
        id: Identifier of the API key. Leave empty to use the test account.
        key: The API key. Leave empty to use the test account.
        transport: Callable sending the prepared request, see :func:`fetch`.

    Examples:
        >>> client = VIESClient()
        >>> client.config.url
        'https://viesapi.eu/api-test'
        >>> error = client.get_vies_data("invalid")
        >>> error
        ViesError(code=205, description='EU VAT ID is invalid')
        >>> client.get_last_error()
        (205, 'EU VAT ID is invalid')

    """

    def __init__(self, id: str = "", key: str = "", *, transport: Transport = fetch):
        self.config = ClientConfig.create(id, key)
        self.transport = transport
        self.errcode = 0
        self.errmsg = ""

    @classmethod
    def from_config(cls, config: ClientConfig, *, transport: Transport = fetch) -> "VIESClient":
        client = cls(config.id, config.key, transport=transport)
        client.set_url(config.url)
        return client

    def set_url(self, url: str) -> None:
        """Use a service URL other than the default one."""
        self.config = replace(self.config, url=url)

    def get_last_error(self) -> tuple[int, str]:
        """Return the code and message of the error of the last call."""
        return self.errcode, self.errmsg

    def get_vies_data(self, euvat: str) -> Result[VIESData]:
        """Get the VIES data of an EU VAT number."""
        return self._get_vies_data(NumberType.EUVAT, euvat)

    def get_vies_data_by_nip(self, nip: str) -> Result[VIESData]:
        """Get the VIES data of a Polish NIP."""
        return self._get_vies_data(NumberType.NIP, nip)

    def get_account_status(self) -> Result[AccountStatus]:
        """Get the status of the account the client authenticates as."""
        self._clear()
        return self._call("/check/account/status", parse_account_status)

    def _get_vies_data(self, number_type: NumberType, number: str) -> Result[VIESData]:
        self._clear()
        suffix = self._path_suffix(number_type, number)
        if suffix is None:
            return self._error()
        return self._call(f"/get/vies/{suffix}", parse_vies_data)

    def _path_suffix(self, number_type: NumberType, number: str) -> str | None:
        match number_type:
            case NumberType.NIP:
                if not nip.is_valid(number):
                    self._set(Error.CLI_NIP)
                    return None
                return f"nip/{nip.normalize(number)}"
            case NumberType.EUVAT:
                if not euvat.is_valid(number):
                    self._set(Error.CLI_EUVAT)
                    return None
                return f"euvat/{euvat.normalize(number)}"
            case _:
                self._set(Error.CLI_NUMBER)
                return None

    def _call(
        self, path: str, parse: Callable[[bytes], tuple[T, ViesError]]
    ) -> Result[T]:
        url = f"{self.config.url}{path}"
        try:
            auth = signing.authorization("GET", url, self.config.id, self.config.key)
        except InputError as error:
            logger.warning("Cannot sign request: %s", error)
            self._set(Error.CLI_INPUT)
            return self._error()

        request = Request(
            url,
            headers={"User-Agent": user_agent(), "Authorization": auth},
            method="GET",
        )
        logger.debug("GET %s", url)
        body = self.transport(request)
        if body is None:
            self._set(Error.CLI_CONNECT)
            return self._error()

        try:
            record, error = parse(body)
        except ResponseFormatError as reason:
            logger.warning("Invalid response from %s: %s", url, reason)
            self._set(Error.CLI_RESPONSE)
            return self._error()

        if error.code != 0:
            logger.info("%s failed with code %d: %s", url, error.code, error.description)
            self._set(error.code, error.description)
            return self._error()
        return record

    def _clear(self) -> None:
        self.errcode = 0
        self.errmsg = ""

    def _set(self, code: int, msg: str = "") -> None:
        self.errcode = int(code)
        self.errmsg = msg or message(code)

    def _error(self) -> ViesError:
        return ViesError(self.errcode, self.errmsg)
