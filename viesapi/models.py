"""Records returned by the VIES API and the parsing of its XML responses.

Every response is a ``<result>`` document holding an ``<error>`` element with
a ``code`` and a ``description``, next to either a ``<vies>`` element or an
``<account>`` element.
"""

from datetime import datetime
from typing import TypedDict

from lxml import etree
from scrapy import Selector

from .errors import ResponseFormatError, ViesError


class VIESData(TypedDict):
    """TypedDict representing the VIES data of a VAT number."""

    uid: str
    country_code: str
    vat_number: str
    valid: bool
    trader_name: str
    trader_company_type: str
    trader_address: str
    id: str
    date: str
    source: str


class AccountStatus(TypedDict):
    """TypedDict representing the status of the user's VIES API account."""

    uid: str
    type: str
    valid_to: datetime | None
    billing_plan_name: str
    subscription_price: float
    item_price: float
    item_price_status: float
    limit: int
    request_delay: int
    domain_limit: int
    over_plan_allowed: bool
    excel_add_in: bool
    app: bool
    cli: bool
    stats: bool
    monitor: bool
    func_get_vies_data: bool
    vies_data_count: int
    total_count: int


TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False", ""})


def parse_datetime(value: str) -> datetime | None:
    """Parse a date or date-time value returned by the service.

    Accepts ``YYYY-MM-DD``, optionally followed by ``THH:MM:SS`` and then by a
    ``+HH:MM`` or ``-HH:MM`` offset. An offset written any other way does not
    parse. Anything else after the seconds is cut off, leaving a naive
    date-time.

    Args:
        value: The text of the XML element.

    Returns:
        The parsed value, or ``None`` if the text is empty or does not parse.

    Examples:
        >>> parse_datetime("2024-12-31")
        datetime.datetime(2024, 12, 31, 0, 0)

        >>> parse_datetime("2024-01-15T10:30:45+02:00").isoformat()
        '2024-01-15T10:30:45+02:00'

        >>> parse_datetime("2024-01-15T10:30:45.123Z")
        datetime.datetime(2024, 1, 15, 10, 30, 45)

        >>> parse_datetime("2024-01-15T10:30:45+0200")

        >>> parse_datetime("invalid")

    """
    if not value:
        return None
    fmt = "%Y-%m-%d"
    if len(value) > 10:
        fmt += "T%H:%M:%S"
    if len(value) > 19:
        if value[19] in "+-":
            if len(value) != 25 or value[22] != ":":
                return None
            fmt += "%z"
        else:
            value = value[:19]
    try:
        return datetime.strptime(value, fmt)
    except ValueError:
        return None


def result(body: bytes) -> Selector:
    """Select the ``<result>`` root element of a response body.

    The body must be a well-formed document: a truncated or mismatched one is
    rejected rather than read as far as it goes.

    Raises:
        ResponseFormatError: If the body is not an XML ``<result>`` document.

    """
    if not body or not body.strip():
        raise ResponseFormatError("empty response body")
    try:
        parser = etree.XMLParser(recover=False, resolve_entities=False, no_network=True)
        root = etree.fromstring(body, parser)
    except etree.XMLSyntaxError as error:
        raise ResponseFormatError(f"response is not XML: {error}") from error
    if root.tag != "result":
        raise ResponseFormatError("response root element is not <result>")
    return Selector(root=root, type="xml")


def _text(node: Selector, path: str) -> str:
    return node.xpath(f"string({path})").get(default="")


def _int(node: Selector, path: str) -> int:
    value = _text(node, path).strip()
    try:
        return int(value) if value else 0
    except ValueError as error:
        raise ResponseFormatError(f"<{path}> is not an integer: {value!r}") from error


def _float(node: Selector, path: str) -> float:
    value = _text(node, path).strip()
    try:
        return float(value) if value else 0.0
    except ValueError as error:
        raise ResponseFormatError(f"<{path}> is not a number: {value!r}") from error


def _bool(node: Selector, path: str) -> bool:
    value = _text(node, path).strip()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ResponseFormatError(f"<{path}> is not a boolean: {value!r}")


def parse_error(root: Selector) -> ViesError:
    """Read the error embedded in a ``<result>``; code 0 means success."""
    return ViesError(_int(root, "error/code"), _text(root, "error/description"))


def parse_vies_data(body: bytes) -> tuple[VIESData, ViesError]:
    """Parse the response of a VIES data query.

    Args:
        body: Raw response body.

    Returns:
        The VIES data record and the error embedded in the response. The
        record only means something when the error code is 0.

    Raises:
        ResponseFormatError: If the body does not have the expected structure.

    Examples:
        >>> data, error = parse_vies_data(
        ...     b"<result><vies><countryCode>PL</countryCode>"
        ...     b"<valid>true</valid></vies><error><code>0</code></error></result>")
        >>> data["country_code"], data["valid"], error.code
        ('PL', True, 0)

        >>> parse_vies_data(b"invalid xml")  # doctest: +ELLIPSIS
        Traceback (most recent call last):
          ...
        viesapi.errors.ResponseFormatError: response is not XML: ...

        >>> parse_vies_data(b"<html>Bad gateway</html>")
        Traceback (most recent call last):
          ...
        viesapi.errors.ResponseFormatError: response root element is not <result>

    """
    root = result(body)
    data = VIESData(
        uid=_text(root, "vies/uid"),
        country_code=_text(root, "vies/countryCode"),
        vat_number=_text(root, "vies/vatNumber"),
        valid=_bool(root, "vies/valid"),
        trader_name=_text(root, "vies/traderName"),
        trader_company_type=_text(root, "vies/traderCompanyType"),
        trader_address=_text(root, "vies/traderAddress"),
        id=_text(root, "vies/id"),
        date=_text(root, "vies/date"),
        source=_text(root, "vies/source"),
    )
    return data, parse_error(root)


def parse_account_status(body: bytes) -> tuple[AccountStatus, ViesError]:
    """Parse the response of an account status query.

    Works like :func:`parse_vies_data`, flattening the billing plan and the
    request counters into the record.
    """
    root = result(body)
    plan = "account/billingPlan"
    status = AccountStatus(
        uid=_text(root, "account/uid"),
        type=_text(root, "account/type"),
        valid_to=parse_datetime(_text(root, "account/validTo")),
        billing_plan_name=_text(root, f"{plan}/name"),
        subscription_price=_float(root, f"{plan}/subscriptionPrice"),
        item_price=_float(root, f"{plan}/itemPrice"),
        item_price_status=_float(root, f"{plan}/itemPriceCheckStatus"),
        limit=_int(root, f"{plan}/limit"),
        request_delay=_int(root, f"{plan}/requestDelay"),
        domain_limit=_int(root, f"{plan}/domainLimit"),
        over_plan_allowed=_bool(root, f"{plan}/overplanAllowed"),
        excel_add_in=_bool(root, f"{plan}/excelAddin"),
        app=_bool(root, f"{plan}/app"),
        cli=_bool(root, f"{plan}/cli"),
        stats=_bool(root, f"{plan}/stats"),
        monitor=_bool(root, f"{plan}/monitor"),
        func_get_vies_data=_bool(root, f"{plan}/funcGetVIESData"),
        vies_data_count=_int(root, "account/requests/viesData"),
        total_count=_int(root, "account/requests/total"),
    )
    return status, parse_error(root)
