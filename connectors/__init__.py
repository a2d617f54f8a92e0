"""ERP Connectors - Pluggable ERP system integrations.

This package contains concrete implementations for specific ERP systems.
Each connector handles:
- ERP-specific authentication
- API communication (rate limiting, pagination, error classification)
- Mapping operations onto the ERP's REST endpoints

To add a new ERP:
1. Create a new folder (e.g., katana/)
2. Expose a connector class that owns its API client
3. Register its resources using the package's register decorator
"""

from connectors.katana import (
    KatanaConnector,
    KatanaApiClient,
    KatanaApiError,
    KatanaErrorKind,
    KatanaResource,
)

__all__ = [
    "KatanaConnector",
    "KatanaApiClient",
    "KatanaApiError",
    "KatanaErrorKind",
    "KatanaResource",
]
