"""Katana MRP wire models.

These map to the Katana REST API response shapes that the transport layer
needs to understand. Record payloads themselves stay plain dicts.
"""

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


# =============================================================================
# Resource Catalog
# =============================================================================

class KatanaResource(str, Enum):
    """Resources exposed by the connector."""
    SALES_ORDER = "sales_order"
    MANUFACTURING_ORDER = "manufacturing_order"
    PRODUCT = "product"
    MATERIAL = "material"
    VARIANT = "variant"
    INVENTORY = "inventory"
    STOCK_ADJUSTMENT = "stock_adjustment"
    STOCK_TRANSFER = "stock_transfer"
    PURCHASE_ORDER = "purchase_order"
    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    RECIPE = "recipe"


# =============================================================================
# Katana API Models
# =============================================================================

class KatanaBaseModel(BaseModel):
    """Base model for Katana wire shapes."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class KatanaValidationDetail(KatanaBaseModel):
    """Inner ``error`` object of a 422 response."""
    errors: Dict[str, Union[List[str], str]]
    message: Optional[str] = None


class KatanaValidationErrorBody(KatanaBaseModel):
    """422 response body: ``{"error": {"errors": {"field": ["msg"]}}}``."""
    error: KatanaValidationDetail
