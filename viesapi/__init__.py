"""Client for the VIES API (https://viesapi.eu) VAT number verification service."""

from .client import (
    PRODUCTION_URL,
    TEST_URL,
    VERSION,
    ClientConfig,
    Result,
    VIESClient,
    fetch,
)
from .errors import Error, ViesError
from .models import AccountStatus, VIESData

__version__ = VERSION

__all__ = [
    "PRODUCTION_URL",
    "TEST_URL",
    "AccountStatus",
    "ClientConfig",
    "Error",
    "Result",
    "VIESClient",
    "VIESData",
    "ViesError",
    "fetch",
]
