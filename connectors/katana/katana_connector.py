"""Katana MRP Connector.

Entry point the workflow host talks to: owns one API client, exposes every
registered resource, and dispatches ``execute(resource, operation, ...)``.
"""

import re
from typing import Any, Dict, List, Optional, Union

import aiohttp

from connectors.katana.katana_auth import KatanaAuthConfig, KatanaAuthProvider
from connectors.katana.katana_client import KatanaApiClient, KatanaApiConfig, KatanaApiError
from connectors.katana.katana_models import KatanaResource
from connectors.katana.katana_rate_limit import RateGate
from connectors.katana.katana_resources import (
    CustomerResource,
    InventoryResource,
    KatanaResourceBase,
    ManufacturingOrderResource,
    MaterialResource,
    ProductResource,
    PurchaseOrderResource,
    RecipeResource,
    SalesOrderResource,
    StockAdjustmentResource,
    StockTransferResource,
    SupplierResource,
    VariantResource,
    get_resource_class,
    list_available_resources,
)
from core.observability.logging import get_logger, with_correlation

logger = get_logger(__name__)


def to_snake_case(name: str) -> str:
    """``getAll`` -> ``get_all``, ``salesOrder`` -> ``sales_order``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class KatanaConnector:
    """Katana MRP connector.

    Configuration:
    - auth_config: API key (defaults to KATANA_API_KEY from the environment)
    - api_config: Base URL, timeout, page size, request spacing
    - rate_gate: Throttle to share with other connectors in the process
    - session: Externally owned aiohttp session

    Usage:
        async with KatanaConnector() as katana:
            orders = await katana.sales_orders.get_all(
                filters={"status": "NOT_SHIPPED", "created_after": "2024-01-01T00:00:00Z"},
                return_all=True,
            )
            await katana.execute("manufacturingOrder", "complete", manufacturing_order_id=42)
    """

    def __init__(
        self,
        auth_config: Optional[KatanaAuthConfig] = None,
        api_config: Optional[KatanaApiConfig] = None,
        rate_gate: Optional[RateGate] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        auth_config = auth_config or KatanaAuthConfig.from_env()
        api_config = api_config or KatanaApiConfig.from_env()

        self.client = KatanaApiClient(
            KatanaAuthProvider(auth_config),
            api_config,
            rate_gate=rate_gate,
            session=session,
        )

        self._resources: Dict[KatanaResource, KatanaResourceBase] = {
            resource: get_resource_class(resource)(self.client)
            for resource in list_available_resources()
        }

        self.sales_orders: SalesOrderResource = self._resources[KatanaResource.SALES_ORDER]
        self.manufacturing_orders: ManufacturingOrderResource = self._resources[KatanaResource.MANUFACTURING_ORDER]
        self.products: ProductResource = self._resources[KatanaResource.PRODUCT]
        self.materials: MaterialResource = self._resources[KatanaResource.MATERIAL]
        self.variants: VariantResource = self._resources[KatanaResource.VARIANT]
        self.inventory: InventoryResource = self._resources[KatanaResource.INVENTORY]
        self.stock_adjustments: StockAdjustmentResource = self._resources[KatanaResource.STOCK_ADJUSTMENT]
        self.stock_transfers: StockTransferResource = self._resources[KatanaResource.STOCK_TRANSFER]
        self.purchase_orders: PurchaseOrderResource = self._resources[KatanaResource.PURCHASE_ORDER]
        self.customers: CustomerResource = self._resources[KatanaResource.CUSTOMER]
        self.suppliers: SupplierResource = self._resources[KatanaResource.SUPPLIER]
        self.recipes: RecipeResource = self._resources[KatanaResource.RECIPE]

    # =========================================================================
    # Connection Management
    # =========================================================================

    async def __aenter__(self) -> "KatanaConnector":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Open the HTTP session."""
        await self.client.connect()

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        await self.client.disconnect()

    async def test_connection(self) -> bool:
        """Check that the configured API key is accepted by Katana."""
        return await self.client.verify_credentials()

    # =========================================================================
    # Dispatch
    # =========================================================================

    def resource(self, name: Union[KatanaResource, str]) -> KatanaResourceBase:
        """Look up a resource by enum or name (``sales_order`` or ``salesOrder``).

        Raises:
            ValueError: If the resource is unknown
        """
        if isinstance(name, KatanaResource):
            return self._resources[name]
        try:
            return self._resources[KatanaResource(to_snake_case(name))]
        except ValueError:
            available = [r.value for r in self._resources]
            raise ValueError(f"Unknown resource: {name}. Available: {available}") from None

    def list_operations(self, name: Union[KatanaResource, str]) -> List[str]:
        """Operation names a resource supports."""
        return list(self.resource(name).operations)

    async def execute(
        self,
        resource: Union[KatanaResource, str],
        operation: str,
        item_index: Optional[int] = None,
        **params,
    ) -> Any:
        """Run one resource operation.

        Args:
            resource: Resource enum or name
            operation: Operation name (``get_all`` or ``getAll``)
            item_index: Host work item index, attached to logs and errors
            **params: Operation arguments

        Returns:
            The operation's JSON result

        Raises:
            KatanaApiError: Classified upstream failure
            ValueError: Unknown resource or operation
        """
        target = self.resource(resource)
        operation = to_snake_case(operation)

        with with_correlation(
            resource=target.resource.value,
            operation=operation,
            item_index=item_index,
        ):
            logger.debug(f"Executing {target.resource.value}.{operation}")
            try:
                return await target.execute(operation, **params)
            except KatanaApiError as e:
                logger.info(
                    f"{target.resource.value}.{operation} failed: {e}",
                    extra_fields={"error_kind": e.kind.value},
                )
                raise
