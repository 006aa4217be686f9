"""Bulk VIES API lookups.

This module provides a command-line interface for looking up many European
VAT numbers in the VIES API (https://viesapi.eu). It uses Scrapy to handle
concurrent signed requests and outputs results to a CSV file. Each number is
requested once: retries and the HTTP cache are disabled.
"""

import argparse
import sys
from collections.abc import AsyncIterator, Iterator
from typing import TypedDict

from scrapy import Request, Spider
from scrapy.crawler import CrawlerProcess
from scrapy.http import Response
from twisted.python.failure import Failure

from . import euvat, signing
from .client import ClientConfig, user_agent
from .errors import Error, InputError, ResponseFormatError, ViesError, message
from .models import parse_vies_data


class VIESItem(TypedDict):
    """TypedDict representing the lookup of one VAT number."""

    number: str
    country_code: str | None
    vat_number: str | None
    valid: bool
    trader_name: str | None
    trader_address: str | None
    errors: str | None


def error_item(number: str, code: int, description: str = "") -> VIESItem:
    """Item reporting a number that could not be looked up."""
    return VIESItem(
        number=number,
        country_code=None,
        vat_number=None,
        valid=False,
        trader_name=None,
        trader_address=None,
        errors=str(ViesError(int(code), description or message(code))),
    )


class SigningMiddleware:
    """Downloader middleware adding the ``Authorization`` header to requests.

    Requests carry their :class:`~viesapi.client.ClientConfig` in
    ``meta["viesapi_config"]`` and are signed only when they reach the
    downloader, so the timestamp is not stale after waiting in the scheduler.
    Requests without that key pass through untouched.
    """

    def process_request(self, request: Request, spider: Spider | None = None) -> None:
        config = request.meta.get("viesapi_config")
        if config is None:
            return None
        request.headers["Authorization"] = signing.authorization(
            request.method, request.url, config.id, config.key
        )
        return None


class VIESSpider(Spider):
    """Spider looking up European VAT numbers in the VIES API."""

    name = "viesapi"
    custom_settings = {
        "DOWNLOADER_MIDDLEWARES": {"viesapi.spider.SigningMiddleware": 950},
    }

    def config(self) -> ClientConfig:
        """Credentials from the spider arguments, else from the environment."""
        config = ClientConfig.from_env()
        api_id = getattr(self, "api_id", "")
        api_key = getattr(self, "api_key", "")
        if api_id and api_key:
            config = ClientConfig.create(api_id, api_key)
        if api_url := getattr(self, "api_url", None):
            config = ClientConfig(config.id, config.key, api_url)
        return config

    async def start(self) -> AsyncIterator[Request | VIESItem]:
        """Generate requests for the valid numbers, items for the others.

        The requests are signed by :class:`SigningMiddleware` when they are
        downloaded.
        """
        config = self.config()
        vat_numbers = getattr(self, "vat_numbers", [])
        for vat_number in vat_numbers:
            if not vat_number:
                continue
            if not euvat.is_valid(vat_number):
                yield error_item(vat_number, Error.CLI_EUVAT)
                continue
            url = f"{config.url}/get/vies/euvat/{euvat.normalize(vat_number)}"
            try:
                signing.target(url)
            except InputError as reason:
                self.logger.error("Cannot sign request for %s: %s", vat_number, reason)
                yield error_item(vat_number, Error.CLI_INPUT)
                continue
            yield Request(
                url,
                headers={"User-Agent": user_agent()},
                callback=self.parse,
                errback=self.failed,
                cb_kwargs={"number": vat_number},
                meta={"viesapi_config": config},
                dont_filter=True,
            )

    def parse(self, response: Response, number: str) -> Iterator[VIESItem]:
        """Parse VIES API response and handle errors."""
        try:
            data, error = parse_vies_data(response.body)
        except ResponseFormatError as reason:
            self.logger.warning("Invalid response for %s: %s", number, reason)
            yield error_item(number, Error.CLI_RESPONSE)
            return
        if error.code != 0:
            yield error_item(number, error.code, error.description)
            return
        yield VIESItem(
            number=number,
            country_code=data["country_code"],
            vat_number=data["vat_number"],
            valid=data["valid"],
            trader_name=data["trader_name"] or None,
            trader_address=data["trader_address"] or None,
            errors=None,
        )

    def failed(self, failure: Failure) -> Iterator[VIESItem]:
        """Report numbers whose request did not complete."""
        number = failure.request.cb_kwargs["number"]
        self.logger.warning("Request for %s failed: %s", number, failure.value)
        yield error_item(number, Error.CLI_CONNECT)


def settings(output: str) -> dict:
    """Scrapy settings of the bulk lookup crawl, writing the items to ``output``.

    >>> settings("out.csv")["RETRY_ENABLED"]
    False
    """
    return {
        "AUTOTHROTTLE_ENABLED": True,
        "CONCURRENT_REQUESTS_PER_DOMAIN": 32,
        "CONCURRENT_REQUESTS": 32,
        "COOKIES_ENABLED": False,
        "DOWNLOAD_DELAY": 0.1,
        "FEEDS": {output: {"format": "csv", "overwrite": True}},
        "HTTPCACHE_ENABLED": False,
        "HTTPERROR_ALLOW_ALL": True,
        "LOG_FILE": "viesapi.log",
        "RETRY_ENABLED": False,
        "ROBOTSTXT_OBEY": False,
        "USER_AGENT": user_agent(),
    }


def main(argv: list[str] | None = None) -> None:
    """Run the bulk lookup CLI tool."""
    # Build the CLI argument parser for the viesapi-crawl app
    parser = argparse.ArgumentParser(
        prog="viesapi-crawl",
        description="Look up European VAT numbers in bulk using the VIES API",
        epilog="For more information about VIES API, visit: https://viesapi.eu/",
    )
    parser.add_argument(
        "input",
        nargs="?",
        metavar="FILE",
        type=argparse.FileType("r"),
        default=sys.stdin,
        help="input file that contains line delimited VAT numbers (defaults to STDIN)",
    )
    parser.add_argument(
        "--output",
        "-o",
        nargs="?",
        metavar="FILE",
        default="vat-numbers.csv",
        help="output CSV file to write the results to (defaults to 'vat-numbers.csv')",
    )
    parser.add_argument("--api", metavar="URL", help="VIES API url")
    parser.add_argument("--id", default="", help="API key identifier")
    parser.add_argument("--key", default="", help="API key")
    args = parser.parse_args(argv)

    # Start the scrapy crawler
    process = CrawlerProcess(settings=settings(args.output))
    process.crawl(
        VIESSpider,
        vat_numbers=[line.strip() for line in args.input],
        api_id=args.id,
        api_key=args.key,
        api_url=args.api,
    )
    process.start()


if __name__ == "__main__":
    main()
