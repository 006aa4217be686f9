import hashlib
import hmac
import re
from base64 import b64encode

import pytest

from viesapi import signing
from viesapi.errors import InputError

URL = "https://viesapi.eu/api-test/get/vies/euvat/PL7272445205"
HEADER = re.compile(
    r'MAC id="(?P<id>[^"]*)", ts="(?P<ts>\d+)", '
    r'nonce="(?P<nonce>[0-9a-f]{8})", mac="(?P<mac>[A-Za-z0-9+/]{43}=)"'
)


def sign(method="GET", url=URL, key_id="test_id", key="test_key", **kwargs):
    kwargs.setdefault("nonce", "0a1b2c3d")
    kwargs.setdefault("timestamp", 1700000000)
    return signing.authorization(method, url, key_id, key, **kwargs)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://viesapi.eu/api", ("/api", "viesapi.eu", 443)),
        ("http://viesapi.eu/api", ("/api", "viesapi.eu", 80)),
        ("https://viesapi.eu:8443/api/test", ("/api/test", "viesapi.eu", 8443)),
        ("http://127.0.0.1:8080/api", ("/api", "127.0.0.1", 8080)),
        ("http://[::1]:8080/api", ("/api", "[::1]", 8080)),
        ("https://viesapi.eu/api/get/vies/euvat/IE1%2B34567%2AA",
         ("/api/get/vies/euvat/IE1+34567*A", "viesapi.eu", 443)),
        ("https://viesapi.eu", ("", "viesapi.eu", 443)),
    ],
)
def test_target(url, expected):
    assert signing.target(url) == expected


@pytest.mark.parametrize(
    "url",
    [
        "",
        "not a url",
        "viesapi.eu/api",
        "ftp://viesapi.eu/api",
        "https:///api",
        "https://viesapi.eu:99999/api",
        "https://viesapi.eu:port/api",
        "http://[::1/api",
    ],
)
def test_target_rejects_malformed_urls(url):
    with pytest.raises(InputError):
        signing.target(url)


def test_malformed_url_produces_no_header():
    with pytest.raises(InputError):
        sign(url="viesapi.eu/api")


def test_canonical_form():
    text = signing.canonical(1700000000, "0a1b2c3d", "get", "/api", "viesapi.eu", 443)
    assert text.split("\n") == [
        "1700000000",
        "0a1b2c3d",
        "GET",
        "/api",
        "viesapi.eu",
        "443",
        "",
        "",
    ]


def test_mac_is_hmac_sha256():
    expected = b64encode(
        hmac.new(b"test_key", b"message", hashlib.sha256).digest()
    ).decode()
    assert signing.mac("test_key", "message") == expected


def test_header_format():
    match = HEADER.fullmatch(sign())
    assert match
    assert match["id"] == "test_id"
    assert match["ts"] == "1700000000"
    assert match["nonce"] == "0a1b2c3d"
    canonical = signing.canonical(
        1700000000, "0a1b2c3d", "GET", "/api-test/get/vies/euvat/PL7272445205",
        "viesapi.eu", 443,
    )
    assert match["mac"] == signing.mac("test_key", canonical)


def test_signing_is_deterministic():
    assert sign() == sign()


@pytest.mark.parametrize(
    "changes",
    [
        {"key": "other_key"},
        {"url": "https://viesapi.eu/api-test/get/vies/euvat/DE123456789"},
        {"url": "https://api.viesapi.eu/api-test/get/vies/euvat/PL7272445205"},
        {"url": "https://viesapi.eu:8443/api-test/get/vies/euvat/PL7272445205"},
        {"method": "POST"},
        {"nonce": "deadbeef"},
        {"timestamp": 1700000001},
    ],
)
def test_any_input_changes_the_mac(changes):
    assert HEADER.fullmatch(sign(**changes))["mac"] != HEADER.fullmatch(sign())["mac"]


def test_fresh_nonce_and_timestamp(monkeypatch):
    monkeypatch.setattr(signing.time, "time", lambda: 1700000123.75)
    first = HEADER.fullmatch(signing.authorization("GET", URL, "test_id", "test_key"))
    second = HEADER.fullmatch(signing.authorization("GET", URL, "test_id", "test_key"))
    assert first["ts"] == second["ts"] == "1700000123"
    assert first["nonce"] != second["nonce"]


def test_randomness_failure_is_not_swallowed(monkeypatch):
    def token_hex(size):
        raise OSError("no entropy")

    monkeypatch.setattr(signing.secrets, "token_hex", token_hex)
    with pytest.raises(OSError):
        signing.authorization("GET", URL, "test_id", "test_key")
