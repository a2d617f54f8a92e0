"""Katana MRP Connector Package.

Exposes the Katana manufacturing ERP REST API: a rate-limited, paginating
transport plus one resource class per Katana entity.
"""

from connectors.katana.katana_connector import KatanaConnector
from connectors.katana.katana_auth import KatanaAuthConfig, KatanaAuthProvider
from connectors.katana.katana_client import (
    KatanaApiClient,
    KatanaApiConfig,
    KatanaApiError,
    KatanaErrorKind,
    classify_error,
)
from connectors.katana.katana_rate_limit import RateGate, get_default_rate_gate
from connectors.katana.katana_helpers import build_filter_query
from connectors.katana.katana_models import KatanaResource

__all__ = [
    # Connector
    "KatanaConnector",
    # Auth
    "KatanaAuthConfig",
    "KatanaAuthProvider",
    # Transport
    "KatanaApiClient",
    "KatanaApiConfig",
    "RateGate",
    "get_default_rate_gate",
    "build_filter_query",
    # Errors
    "KatanaApiError",
    "KatanaErrorKind",
    "classify_error",
    # Models
    "KatanaResource",
]
