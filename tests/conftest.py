import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.request import Request

import pytest

VIES_DATA = b"""<?xml version="1.0" encoding="UTF-8"?>
<result>
    <vies>
        <uid>a7e0e9ff-2a23-4d34-b1d5-5f4c3c1c5c2e</uid>
        <countryCode>PL</countryCode>
        <vatNumber>7272445205</vatNumber>
        <valid>true</valid>
        <traderName>NETCAT S.C.</traderName>
        <traderCompanyType>---</traderCompanyType>
        <traderAddress>ULICA, 00-000 MIASTO</traderAddress>
        <id>aa0ebdc8-2d1b-4bb8-9a1d-c1d8db4e9fdc</id>
        <date>2024-01-15</date>
        <source>http://ec.europa.eu/taxation_customs/vies</source>
    </vies>
    <error>
        <code>0</code>
        <description></description>
    </error>
</result>"""

VIES_MINIMAL = (
    b"<result><vies><countryCode>PL</countryCode><valid>true</valid></vies>"
    b"<error><code>0</code></error></result>"
)

VIES_INVALID = b"""<?xml version="1.0" encoding="UTF-8"?>
<result>
    <vies></vies>
    <error>
        <code>22</code>
        <description>EU VAT ID is invalid</description>
    </error>
</result>"""

ACCOUNT_STATUS = b"""<?xml version="1.0" encoding="UTF-8"?>
<result>
    <account>
        <uid>test-uid</uid>
        <type>premium</type>
        <validTo>2024-12-31T23:59:59</validTo>
        <billingPlan>
            <name>Premium</name>
            <subscriptionPrice>99.99</subscriptionPrice>
            <itemPrice>0.01</itemPrice>
            <itemPriceCheckStatus>0.02</itemPriceCheckStatus>
            <limit>10000</limit>
            <requestDelay>0</requestDelay>
            <domainLimit>5</domainLimit>
            <overplanAllowed>true</overplanAllowed>
            <excelAddin>false</excelAddin>
            <app>true</app>
            <cli>true</cli>
            <stats>false</stats>
            <monitor>true</monitor>
            <funcGetVIESData>true</funcGetVIESData>
        </billingPlan>
        <requests>
            <viesData>100</viesData>
            <total>150</total>
        </requests>
    </account>
    <error>
        <code>0</code>
        <description></description>
    </error>
</result>"""

AUTH_ERROR = b"""<?xml version="1.0" encoding="UTF-8"?>
<result>
    <account></account>
    <error>
        <code>102</code>
        <description>Auth error</description>
    </error>
</result>"""


class FakeTransport:
    """Transport answering every request with the same body."""

    def __init__(self, body: bytes | None = VIES_MINIMAL):
        self.body = body
        self.requests: list[Request] = []

    def __call__(self, request: Request) -> bytes | None:
        self.requests.append(request)
        return self.body


@pytest.fixture
def transport():
    return FakeTransport()


class Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        server = self.server
        server.requests.append((self.path, self.headers))
        self.send_response(server.status)
        self.send_header("Content-Type", "application/xml")
        self.send_header("Content-Length", str(server.length or len(server.body)))
        self.end_headers()
        self.wfile.write(server.body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def server(monkeypatch):
    """Local VIES API answering with ``server.body`` and ``server.status``.

    Setting ``server.length`` advertises a ``Content-Length`` other than the
    size of the body.
    """
    monkeypatch.setenv("no_proxy", "*")
    monkeypatch.setenv("NO_PROXY", "*")
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    httpd.body = VIES_DATA
    httpd.status = 200
    httpd.length = None
    httpd.requests = []
    httpd.url = f"http://127.0.0.1:{httpd.server_address[1]}/api"
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield httpd
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def closed_port():
    """A local port nothing listens on."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
