"""MAC authentication of requests sent to the VIES API.

Every request carries an ``Authorization`` header of the form::

    MAC id="<key id>", ts="<unix time>", nonce="<hex>", mac="<base64 HMAC>"

The MAC is an HMAC-SHA256, keyed with the API key, over a canonical string
built from the timestamp, the nonce and the request target. The service
recomputes it, so the key itself never travels with the request.
"""

import hashlib
import hmac
import secrets
import time
from base64 import b64encode
from urllib.parse import unquote, urlsplit

from .errors import InputError

NONCE_SIZE = 4
"""Number of random bytes in a nonce, hex encoded to twice as many chars."""

DEFAULT_PORTS = {"http": 80, "https": 443}


def target(url: str) -> tuple[str, str, int]:
    """Split a request URL into the path, host and port that get signed.

    Args:
        url: Absolute ``http`` or ``https`` URL of the request.

    Returns:
        A ``(path, host, port)`` tuple. The port falls back to the default of
        the scheme when the URL does not name one.

    Raises:
        InputError: If the URL is not an absolute HTTP(S) URL or has an
            invalid port.

    Examples:
        >>> target("https://viesapi.eu/api/check/account/status")
        ('/api/check/account/status', 'viesapi.eu', 443)

        >>> target("http://localhost:8080/api-test/get/vies/euvat/PL7272445205")
        ('/api-test/get/vies/euvat/PL7272445205', 'localhost', 8080)

        >>> target("viesapi.eu/api")
        Traceback (most recent call last):
          ...
        viesapi.errors.InputError: not an absolute HTTP(S) URL: 'viesapi.eu/api'

    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as error:
        raise InputError(f"malformed URL {url!r}: {error}") from error
    if parts.scheme not in DEFAULT_PORTS or not parts.hostname:
        raise InputError(f"not an absolute HTTP(S) URL: {url!r}")
    host = parts.netloc.rpartition("@")[2]
    if port is None:
        port = DEFAULT_PORTS[parts.scheme]
    else:
        host = host[: host.rindex(":")]
    return unquote(parts.path), host, port


def random_nonce(size: int = NONCE_SIZE) -> str:
    """Return a fresh hex encoded nonce from the system's secure random source.

    >>> len(random_nonce())
    8
    """
    return secrets.token_hex(size)


def canonical(
    timestamp: int, nonce: str, method: str, path: str, host: str, port: int
) -> str:
    r"""Build the string that the MAC is computed over.

    The two trailing newlines close the empty extension data line.

    >>> canonical(1700000000, "0a1b2c3d", "get", "/api/check/account/status",
    ...           "viesapi.eu", 443)
    '1700000000\n0a1b2c3d\nGET\n/api/check/account/status\nviesapi.eu\n443\n\n'
    """
    return f"{timestamp}\n{nonce}\n{method.upper()}\n{path}\n{host}\n{port}\n\n"


def mac(key: str, message: str) -> str:
    """Base64 encoded HMAC-SHA256 of ``message`` keyed with ``key``."""
    digest = hmac.new(key.encode(), message.encode(), hashlib.sha256).digest()
    return b64encode(digest).decode()


def authorization(
    method: str,
    url: str,
    key_id: str,
    key: str,
    *,
    nonce: str | None = None,
    timestamp: int | None = None,
) -> str:
    """Compute the value of the ``Authorization`` header for a request.

    Args:
        method: HTTP method of the request.
        url: Absolute URL of the request.
        key_id: Identifier of the API key, sent in clear.
        key: The API key used to compute the MAC, never sent.
        nonce: Pin the nonce instead of generating a fresh one.
        timestamp: Pin the Unix timestamp instead of reading the clock.

    Returns:
        The header value.

    Raises:
        InputError: If the URL cannot be parsed. No header can be produced
            and the request must not be sent.

    Examples:
        >>> authorization(
        ...     "GET",
        ...     "https://viesapi.eu/api-test/check/account/status",
        ...     "test_id",
        ...     "test_key",
        ...     nonce="0a1b2c3d",
        ...     timestamp=1700000000)   # doctest: +ELLIPSIS
        'MAC id="test_id", ts="1700000000", nonce="0a1b2c3d", mac="...="'

    """
    path, host, port = target(url)
    if nonce is None:
        nonce = random_nonce()
    if timestamp is None:
        timestamp = int(time.time())
    digest = mac(key, canonical(timestamp, nonce, method, path, host, port))
    return f'MAC id="{key_id}", ts="{timestamp}", nonce="{nonce}", mac="{digest}"'
