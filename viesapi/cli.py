"""Command line tool looking up VAT numbers one by one in the VIES API."""

import argparse
import csv
import logging
import os
import sys
from collections.abc import Callable, Sequence
from functools import partial

from . import euvat, nip
from .client import VIESClient, fetch
from .errors import ViesError
from .models import AccountStatus, VIESData
from .utils import flatten

logger = logging.getLogger(__name__)


def sanitizer(use_nip: bool) -> Callable[[str], str | None]:
    """Return a function normalizing valid numbers and rejecting the others.

    Examples:
        >>> sanitize = sanitizer(use_nip=False)
        >>> sanitize("PL 727-244-52-05")
        'PL7272445205'
        >>> sanitize("PL7272445206")

        >>> sanitizer(use_nip=True)("727-244-52-05")
        '7272445205'

    """
    module = nip if use_nip else euvat

    def sanitize(number: str) -> str | None:
        return module.normalize(number) if module.is_valid(number) else None

    return sanitize


def fieldnames(record: type) -> list[str]:
    """CSV header for rows holding a record of the given type.

    >>> fieldnames(VIESData)[:3]
    ['number', 'data.uid', 'data.country_code']
    """
    return [
        "number",
        *(f"data.{key}" for key in record.__annotations__),
        "error.code",
        "error.description",
    ]


def row(number: str, result: dict | ViesError) -> dict:
    """Flatten the outcome of a lookup into a CSV row."""
    key = "error" if isinstance(result, ViesError) else "data"
    return flatten({"number": number, key: result})


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for looking up VAT numbers with the VIES API."""
    # Create a CLI argument parser and parse the args
    parser = argparse.ArgumentParser(
        prog="viesapi",
        description="Look up EU VAT numbers in the VIES API.",
        epilog="See https://viesapi.eu/ for more information on VIES API usage.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        metavar="FILE",
        type=argparse.FileType("r"),
        default=sys.stdin,
        help="input file that contains line delimited VAT numbers. Defaults to STDIN.",
    )
    parser.add_argument(
        "--output",
        "-o",
        nargs="?",
        metavar="FILE",
        type=argparse.FileType("w"),
        default=sys.stdout,
        help="output CSV file to write the results to. Defaults to STDOUT",
    )
    parser.add_argument(
        "--api",
        default=os.getenv("VIESAPI_URL"),
        metavar="URL",
        help="VIES API url. Defaults to $VIESAPI_URL, or the URL matching the key",
    )
    parser.add_argument(
        "--id",
        default=os.getenv("VIESAPI_ID", ""),
        metavar="ID",
        help="API key identifier. Defaults to $VIESAPI_ID, or the test account",
    )
    parser.add_argument(
        "--key",
        default=os.getenv("VIESAPI_KEY", ""),
        metavar="KEY",
        help="API key. Defaults to $VIESAPI_KEY, or the test account",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="timeout of each request. Defaults to none",
    )
    parser.add_argument(
        "--nip",
        action="store_true",
        help="input contains Polish NIP numbers instead of EU VAT numbers",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="only validate the numbers locally and write the valid ones",
    )
    parser.add_argument(
        "--account",
        action="store_true",
        help="write the status of the API account instead of looking up numbers",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="log requests")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.offline:
        # Extract the list of numbers from the input file, ignoring invalid ones
        sanitize = sanitizer(args.nip)
        numbers = (
            sanitized_number
            for line in args.input
            if (sanitized_number := sanitize(line.strip()))
        )
        args.output.writelines(f"{number}\n" for number in numbers)
        args.output.flush()
        return

    client = VIESClient(args.id, args.key, transport=partial(fetch, timeout=args.timeout))
    if args.api:
        client.set_url(args.api)

    if args.account:
        writer = csv.DictWriter(
            args.output, fieldnames(AccountStatus)[1:], restval="", extrasaction="ignore"
        )
        writer.writeheader()
        writer.writerow(row("", client.get_account_status()))
        args.output.flush()
        return

    lookup = client.get_vies_data_by_nip if args.nip else client.get_vies_data
    writer = csv.DictWriter(
        args.output, fieldnames(VIESData), restval="", extrasaction="ignore"
    )
    writer.writeheader()
    for line in args.input:
        if not (number := line.strip()):
            continue
        result = lookup(number)
        if isinstance(result, ViesError):
            logger.info("%s: %s", number, result)
        writer.writerow(row(number, result))
    args.output.flush()


if __name__ == "__main__":
    main()
