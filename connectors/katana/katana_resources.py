"""Katana MRP resource catalog.

One class per Katana resource. Every operation maps onto exactly one HTTP
verb + path (or a paginated GET); the pairs mirror the Katana REST API and
must not drift from it.

Optional body fields are passed as keyword arguments named after the Katana
field. Unknown names raise TypeError, empty values (None, "") are dropped.
Filters are passed through to Katana, with a few conveniences:
- ``{"created_at": {"gte": ..., "lte": ...}}`` range maps
- ``created_at_gte`` / ``created_at_lte`` style suffixes
- ``created_after`` / ``created_before`` / ``updated_after`` aliases
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from connectors.katana.katana_client import KatanaApiClient
from connectors.katana.katana_helpers import (
    ADDRESS_FIELDS,
    build_address_object,
    build_filter_query,
    extract_additional_fields,
    format_numeric_for_api,
    is_empty,
    parse_adjustment_rows,
    parse_ingredients,
    parse_operations,
    parse_order_rows,
    parse_purchase_order_rows,
    parse_transfer_rows,
    remove_empty_values,
)
from connectors.katana.katana_models import KatanaResource

DEFAULT_LIST_LIMIT = 50

RANGE_SUFFIXES = ("gte", "lte", "gt", "lt")

COMMON_RANGE_ALIASES: Dict[str, Tuple[str, str]] = {
    "created_after": ("created_at", "gte"),
    "created_before": ("created_at", "lte"),
    "updated_after": ("updated_at", "gte"),
    "updated_before": ("updated_at", "lte"),
}


# =============================================================================
# Registry
# =============================================================================

_resource_registry: Dict[KatanaResource, Type["KatanaResourceBase"]] = {}


def register_resource(resource: KatanaResource):
    """Decorator to register a resource implementation."""
    def decorator(cls):
        cls.resource = resource
        _resource_registry[resource] = cls
        return cls
    return decorator


def get_resource_class(resource: KatanaResource) -> Type["KatanaResourceBase"]:
    """Look up a registered resource class.

    Raises:
        ValueError: If the resource is not registered
    """
    if resource not in _resource_registry:
        available = [r.value for r in _resource_registry]
        raise ValueError(f"Unknown resource: {resource}. Available: {available}")
    return _resource_registry[resource]


def list_available_resources() -> List[KatanaResource]:
    """List all registered resources."""
    return list(_resource_registry.keys())


# =============================================================================
# Base
# =============================================================================

def select_fields(
    fields: Mapping[str, Any],
    allowed: Iterable[str],
    numeric: Iterable[str] = (),
    keep_empty: Iterable[str] = (),
) -> Dict[str, Any]:
    """Pick optional body fields.

    Args:
        fields: Caller keyword arguments
        allowed: Field names this operation accepts
        numeric: Fields sent as numeric strings
        keep_empty: Fields where "" is meaningful (clears the value upstream)

    Raises:
        TypeError: On a field name the operation does not accept
    """
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise TypeError(f"Unexpected field(s): {', '.join(unknown)}")

    keep_empty = set(keep_empty)
    selected = extract_additional_fields(
        {k: v for k, v in fields.items() if k not in keep_empty}
    )
    for key in keep_empty:
        if fields.get(key) is not None:
            selected[key] = fields[key]

    for key in numeric:
        if key in selected:
            selected[key] = format_numeric_for_api(selected[key])

    return selected


class KatanaResourceBase:
    """Shared plumbing for resource classes.

    Subclasses set ``endpoint`` (collection path) and ``operations`` (the
    operation names ``execute`` may dispatch to).
    """

    resource: KatanaResource
    endpoint: str = ""
    operations: Tuple[str, ...] = ()
    filter_mapping: Dict[str, str] = {}
    range_aliases: Dict[str, Tuple[str, str]] = COMMON_RANGE_ALIASES

    def __init__(self, client: KatanaApiClient):
        self.client = client

    async def execute(self, operation: str, **params) -> Any:
        """Run an operation by name.

        Raises:
            ValueError: If the resource has no such operation
        """
        if operation not in self.operations:
            raise ValueError(
                f"Unsupported operation: {operation} for resource {self.resource.value}. "
                f"Available: {list(self.operations)}"
            )
        return await getattr(self, operation)(**params)

    def _path(self, *parts: Any) -> str:
        return "/".join([self.endpoint, *(str(p) for p in parts)])

    def build_query(self, filters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Normalize filter aliases, then encode through build_filter_query."""
        normalized: Dict[str, Any] = {}

        for key, value in (filters or {}).items():
            if is_empty(value):
                continue

            alias = self.range_aliases.get(key)
            if alias is None:
                name, _, suffix = key.rpartition("_")
                if name and suffix in RANGE_SUFFIXES:
                    alias = (name, suffix)

            if alias is None:
                normalized[key] = value
                continue

            api_field, operator = alias
            existing = normalized.get(api_field)
            ranges = dict(existing) if isinstance(existing, Mapping) else {}
            ranges[operator] = value
            normalized[api_field] = ranges

        return build_filter_query(normalized, self.filter_mapping)

    async def _list(
        self,
        endpoint: str,
        query: Mapping[str, Any],
        return_all: bool,
        limit: int,
    ) -> Any:
        if return_all:
            return await self.client.fetch_all("GET", endpoint, query=query)
        return await self.client.fetch_page(endpoint, query=query, limit=limit)

    async def get_all(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        return_all: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Any:
        """List records.

        Args:
            filters: Katana filters (see module docstring)
            return_all: Follow cursors through every page
            limit: Page size when return_all is False
        """
        return await self._list(self.endpoint, self.build_query(filters), return_all, limit)

    async def get(self, record_id: Any) -> Any:
        return await self.client.send("GET", self._path(record_id))

    async def delete(self, record_id: Any) -> Any:
        return await self.client.send("DELETE", self._path(record_id))


# =============================================================================
# Sales Orders
# =============================================================================

@register_resource(KatanaResource.SALES_ORDER)
class SalesOrderResource(KatanaResourceBase):
    endpoint = "/sales_orders"
    operations = (
        "get", "get_all", "create", "update", "delete",
        "get_rows", "add_row", "update_row", "delete_row",
        "get_fulfillments", "create_fulfillment",
    )

    CREATE_FIELDS = (
        "order_no", "order_created_date", "delivery_date", "location_id",
        "additional_info", "rows",
        "shipping_line1", "shipping_line2", "shipping_city", "shipping_state",
        "shipping_postal_code", "shipping_country",
    )
    UPDATE_FIELDS = (
        "customer_id", "status", "delivery_date", "location_id", "picked_date", "additional_info",
    )
    ROW_FIELDS = ("quantity", "unit_price", "discount", "tax_rate_id", "notes")
    ROW_NUMERIC = ("quantity", "unit_price", "discount")
    FULFILLMENT_FIELDS = ("carrier", "tracking_number", "shipped_date", "notes")

    async def create(self, customer_id: int, **fields) -> Any:
        """Create a sales order. Shipping address via ``shipping_*`` fields."""
        selected = select_fields(fields, self.CREATE_FIELDS)
        rows = selected.pop("rows", None)
        for address_field in ADDRESS_FIELDS:
            selected.pop(f"shipping_{address_field}", None)

        body: Dict[str, Any] = {"customer_id": customer_id, **selected}
        if rows:
            body["rows"] = parse_order_rows(rows)
        shipping_address = build_address_object(fields, "shipping")
        if shipping_address:
            body["shipping_address"] = shipping_address

        return await self.client.send("POST", self.endpoint, remove_empty_values(body))

    async def update(self, sales_order_id: int, **fields) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS)
        return await self.client.send("PATCH", self._path(sales_order_id), remove_empty_values(body))

    async def get_rows(self, sales_order_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(sales_order_id, "rows"))

    async def add_row(self, sales_order_id: int, variant_id: int, quantity: Any, **fields) -> Any:
        body = {
            "variant_id": variant_id,
            "quantity": format_numeric_for_api(quantity),
            **select_fields(fields, self.ROW_FIELDS[1:], numeric=self.ROW_NUMERIC),
        }
        return await self.client.send("POST", self._path(sales_order_id, "rows"), remove_empty_values(body))

    async def update_row(self, row_id: int, **fields) -> Any:
        body = select_fields(fields, self.ROW_FIELDS, numeric=self.ROW_NUMERIC)
        return await self.client.send("PATCH", f"/sales_order_rows/{row_id}", remove_empty_values(body))

    async def delete_row(self, row_id: int) -> Any:
        return await self.client.send("DELETE", f"/sales_order_rows/{row_id}")

    async def get_fulfillments(self, sales_order_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(sales_order_id, "fulfillments"))

    async def create_fulfillment(
        self,
        sales_order_id: int,
        items: Optional[Iterable[Mapping[str, Any]]] = None,
        **fields,
    ) -> Any:
        """Fulfil sales order rows.

        Args:
            sales_order_id: Sales order being fulfilled
            items: ``[{"row_id": .., "quantity": ..}]``
        """
        body: Dict[str, Any] = {
            "sales_order_id": sales_order_id,
            **select_fields(fields, self.FULFILLMENT_FIELDS),
        }
        if items:
            body["rows"] = [
                {
                    "sales_order_row_id": item.get("row_id"),
                    "quantity": format_numeric_for_api(item.get("quantity")),
                }
                for item in items
            ]
        return await self.client.send("POST", "/fulfillments", remove_empty_values(body))


# =============================================================================
# Manufacturing Orders
# =============================================================================

@register_resource(KatanaResource.MANUFACTURING_ORDER)
class ManufacturingOrderResource(KatanaResourceBase):
    endpoint = "/manufacturing_orders"
    operations = (
        "get", "get_all", "create", "update", "delete",
        "get_recipe_rows", "get_operation_rows",
        "update_production", "complete", "cancel",
    )
    range_aliases = {
        **COMMON_RANGE_ALIASES,
        "due_date_after": ("due_date", "gte"),
        "due_date_before": ("due_date", "lte"),
    }

    CREATE_FIELDS = (
        "mo_no", "due_date", "scheduled_start_date", "location_id", "sales_order_row_id", "notes",
    )
    UPDATE_FIELDS = (
        "planned_quantity", "due_date", "scheduled_start_date", "location_id", "status", "notes",
    )

    async def create(self, variant_id: int, planned_quantity: Any, **fields) -> Any:
        body = {
            "variant_id": variant_id,
            "planned_quantity": format_numeric_for_api(planned_quantity),
            **select_fields(fields, self.CREATE_FIELDS),
        }
        return await self.client.send("POST", self.endpoint, remove_empty_values(body))

    async def update(self, manufacturing_order_id: int, **fields) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS, numeric=("planned_quantity",))
        return await self.client.send("PATCH", self._path(manufacturing_order_id), remove_empty_values(body))

    async def get_recipe_rows(self, manufacturing_order_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(manufacturing_order_id, "recipe_rows"))

    async def get_operation_rows(self, manufacturing_order_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(manufacturing_order_id, "operation_rows"))

    async def update_production(
        self,
        manufacturing_order_id: int,
        actual_quantity: Any = None,
        completed_quantity: Any = None,
    ) -> Any:
        body = {
            "actual_quantity": format_numeric_for_api(actual_quantity),
            "completed_quantity": format_numeric_for_api(completed_quantity),
        }
        return await self.client.send("PATCH", self._path(manufacturing_order_id), remove_empty_values(body))

    async def complete(self, manufacturing_order_id: int) -> Any:
        return await self.client.send("PATCH", self._path(manufacturing_order_id), {"status": "DONE"})

    async def cancel(self, manufacturing_order_id: int) -> Any:
        return await self.client.send("PATCH", self._path(manufacturing_order_id), {"status": "CANCELLED"})


# =============================================================================
# Products
# =============================================================================

@register_resource(KatanaResource.PRODUCT)
class ProductResource(KatanaResourceBase):
    endpoint = "/products"
    operations = (
        "get", "get_all", "create", "update", "delete",
        "get_variants", "get_recipe", "get_operations",
    )
    filter_mapping = {"supplier_id": "default_supplier_id"}

    CREATE_FIELDS = (
        "sku", "internal_sku", "barcode", "type", "category_id",
        "default_supplier_id", "unit", "notes",
    )
    UPDATE_FIELDS = (
        "name", "sku", "internal_sku", "barcode", "category_id",
        "default_supplier_id", "unit", "notes", "archived",
    )

    async def create(self, name: str, **fields) -> Any:
        body = {"name": name, **select_fields(fields, self.CREATE_FIELDS)}
        return await self.client.send("POST", self.endpoint, remove_empty_values(body))

    async def update(self, product_id: int, **fields) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS)
        return await self.client.send("PATCH", self._path(product_id), remove_empty_values(body))

    async def get_variants(self, product_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(product_id, "variants"))

    async def get_recipe(self, product_id: int) -> Any:
        return await self.client.send("GET", self._path(product_id, "recipe"))

    async def get_operations(self, product_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(product_id, "operations"))


# =============================================================================
# Materials
# =============================================================================

@register_resource(KatanaResource.MATERIAL)
class MaterialResource(KatanaResourceBase):
    endpoint = "/materials"
    operations = (
        "get", "get_all", "create", "update", "delete",
        "get_inventory", "get_suppliers",
    )

    CREATE_FIELDS = (
        "sku", "internal_sku", "barcode", "default_supplier_id", "unit",
        "purchase_price", "reorder_point", "notes",
    )
    UPDATE_FIELDS = CREATE_FIELDS + ("name", "archived")
    NUMERIC_FIELDS = ("purchase_price", "reorder_point")

    async def create(self, name: str, **fields) -> Any:
        body = {"name": name, **select_fields(fields, self.CREATE_FIELDS, numeric=self.NUMERIC_FIELDS)}
        return await self.client.send("POST", self.endpoint, remove_empty_values(body))

    async def update(self, material_id: int, **fields) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS, numeric=self.NUMERIC_FIELDS)
        return await self.client.send("PATCH", self._path(material_id), remove_empty_values(body))

    async def get_inventory(self, material_id: int) -> Any:
        return await self.client.send("GET", self._path(material_id, "inventory"))

    async def get_suppliers(self, material_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(material_id, "suppliers"))


# =============================================================================
# Variants
# =============================================================================

@register_resource(KatanaResource.VARIANT)
class VariantResource(KatanaResourceBase):
    endpoint = "/variants"
    operations = (
        "get", "get_all", "create", "update", "delete",
        "get_inventory", "get_recipe",
    )

    CREATE_FIELDS = ("sku", "internal_sku", "barcode", "sales_price", "purchase_price")
    UPDATE_FIELDS = CREATE_FIELDS + ("name", "archived")
    NUMERIC_FIELDS = ("sales_price", "purchase_price")

    async def create(self, product_id: int, name: str, **fields) -> Any:
        body = {
            "product_id": product_id,
            "name": name,
            **select_fields(fields, self.CREATE_FIELDS, numeric=self.NUMERIC_FIELDS),
        }
        return await self.client.send("POST", self.endpoint, remove_empty_values(body))

    async def update(self, variant_id: int, **fields) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS, numeric=self.NUMERIC_FIELDS)
        return await self.client.send("PATCH", self._path(variant_id), remove_empty_values(body))

    async def get_inventory(self, variant_id: int) -> Any:
        return await self.client.send("GET", self._path(variant_id, "inventory"))

    async def get_recipe(self, variant_id: int) -> Any:
        return await self.client.send("GET", self._path(variant_id, "recipe"))


# =============================================================================
# Inventory
# =============================================================================

@register_resource(KatanaResource.INVENTORY)
class InventoryResource(KatanaResourceBase):
    endpoint = "/inventory"
    operations = ("get", "get_all", "get_summary", "get_by_location", "adjust")

    ADJUST_FIELDS = ("batch_sn", "location_id", "reason", "notes")

    async def get_summary(self) -> Any:
        return await self.client.send("GET", self._path("summary"))

    async def get_by_location(self, location_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self.endpoint, query={"location_id": location_id})

    async def adjust(self, variant_id: int, adjustment_type: str, quantity: Any, **fields) -> Any:
        """Adjust stock of one variant through a single-row stock adjustment."""
        selected = select_fields(fields, self.ADJUST_FIELDS)
        row = {
            "variant_id": variant_id,
            "quantity": quantity,
            "batch_sn": selected.pop("batch_sn", None),
        }
        body = {
            "type": adjustment_type,
            "rows": parse_adjustment_rows([row]),
            **selected,
        }
        return await self.client.send("POST", "/stock_adjustments", remove_empty_values(body))


# =============================================================================
# Stock Adjustments
# =============================================================================

@register_resource(KatanaResource.STOCK_ADJUSTMENT)
class StockAdjustmentResource(KatanaResourceBase):
    endpoint = "/stock_adjustments"
    operations = ("get", "get_all", "create", "get_rows")

    CREATE_FIELDS = ("location_id", "reason", "date", "notes")

    async def create(
        self,
        adjustment_type: str,
        rows: Iterable[Mapping[str, Any]],
        **fields,
    ) -> Any:
        body = {
            "type": adjustment_type,
            "rows": parse_adjustment_rows(rows),
            **select_fields(fields, self.CREATE_FIELDS),
        }
        return await self.client.send("POST", self.endpoint, remove_empty_values(body))

    async def get_rows(self, stock_adjustment_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(stock_adjustment_id, "rows"))


# =============================================================================
# Stock Transfers
# =============================================================================

@register_resource(KatanaResource.STOCK_TRANSFER)
class StockTransferResource(KatanaResourceBase):
    endpoint = "/stock_transfers"
    operations = ("get", "get_all", "create", "update", "complete", "cancel")

    CREATE_FIELDS = ("scheduled_date", "notes")
    UPDATE_FIELDS = ("source_location_id", "destination_location_id", "scheduled_date", "notes")

    async def create(
        self,
        source_location_id: int,
        destination_location_id: int,
        rows: Iterable[Mapping[str, Any]],
        **fields,
    ) -> Any:
        body = {
            "source_location_id": source_location_id,
            "destination_location_id": destination_location_id,
            "rows": parse_transfer_rows(rows),
            **select_fields(fields, self.CREATE_FIELDS),
        }
        return await self.client.send("POST", self.endpoint, remove_empty_values(body))

    async def update(self, stock_transfer_id: int, **fields) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS)
        return await self.client.send("PATCH", self._path(stock_transfer_id), remove_empty_values(body))

    async def complete(self, stock_transfer_id: int) -> Any:
        return await self.client.send("POST", self._path(stock_transfer_id, "complete"))

    async def cancel(self, stock_transfer_id: int) -> Any:
        return await self.client.send("POST", self._path(stock_transfer_id, "cancel"))


# =============================================================================
# Purchase Orders
# =============================================================================

@register_resource(KatanaResource.PURCHASE_ORDER)
class PurchaseOrderResource(KatanaResourceBase):
    endpoint = "/purchase_orders"
    operations = (
        "get", "get_all", "create", "update", "delete",
        "get_rows", "add_row", "receive", "cancel",
    )

    CREATE_FIELDS = ("po_no", "currency", "expected_arrival_date", "location_id", "notes")
    UPDATE_FIELDS = CREATE_FIELDS + ("supplier_id",)
    ROW_FIELDS = ("unit_price", "notes")
    RECEIVE_FIELDS = ("location_id", "received_date", "notes")

    async def create(
        self,
        supplier_id: int,
        rows: Optional[Iterable[Mapping[str, Any]]] = None,
        **fields,
    ) -> Any:
        body: Dict[str, Any] = {"supplier_id": supplier_id, **select_fields(fields, self.CREATE_FIELDS)}
        if rows:
            body["rows"] = parse_purchase_order_rows(rows)
        return await self.client.send("POST", self.endpoint, remove_empty_values(body))

    async def update(self, purchase_order_id: int, **fields) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS)
        return await self.client.send("PATCH", self._path(purchase_order_id), remove_empty_values(body))

    async def get_rows(self, purchase_order_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._path(purchase_order_id, "rows"))

    async def add_row(self, purchase_order_id: int, variant_id: int, quantity: Any, **fields) -> Any:
        body = {
            "variant_id": variant_id,
            "quantity": format_numeric_for_api(quantity),
            **select_fields(fields, self.ROW_FIELDS, numeric=("unit_price",)),
        }
        return await self.client.send("POST", self._path(purchase_order_id, "rows"), remove_empty_values(body))

    async def receive(
        self,
        purchase_order_id: int,
        items: Iterable[Mapping[str, Any]],
        **fields,
    ) -> Any:
        """Receive purchase order rows into stock.

        Args:
            purchase_order_id: Purchase order being received
            items: ``[{"row_id": .., "quantity": .., "batch_number": .., "expiry_date": ..}]``
        """
        body: Dict[str, Any] = {
            "items": [
                remove_empty_values({
                    "row_id": item.get("row_id"),
                    "quantity": format_numeric_for_api(item.get("quantity")),
                    "batch_number": item.get("batch_number"),
                    "expiry_date": item.get("expiry_date"),
                })
                for item in items
            ],
            **select_fields(fields, self.RECEIVE_FIELDS),
        }
        return await self.client.send("POST", self._path(purchase_order_id, "receive"), body)

    async def cancel(self, purchase_order_id: int) -> Any:
        return await self.client.send("POST", self._path(purchase_order_id, "cancel"))


# =============================================================================
# Customers
# =============================================================================

@register_resource(KatanaResource.CUSTOMER)
class CustomerResource(KatanaResourceBase):
    endpoint = "/customers"
    operations = (
        "get", "get_all", "create", "update", "delete",
        "get_orders", "get_addresses",
    )

    CREATE_FIELDS = ("code", "email", "phone", "currency", "tax_rate_id", "notes")
    UPDATE_FIELDS = CREATE_FIELDS + ("name", "archived")

    async def create(
        self,
        name: str,
        billing_address: Optional[Mapping[str, Any]] = None,
        shipping_address: Optional[Mapping[str, Any]] = None,
        **fields,
    ) -> Any:
        body: Dict[str, Any] = {"name": name, **select_fields(fields, self.CREATE_FIELDS)}
        billing = build_address_object(billing_address or {})
        if billing:
            body["billing_address"] = billing
        shipping = build_address_object(shipping_address or {})
        if shipping:
            body["shipping_addresses"] = [shipping]
        return await self.client.send("POST", self.endpoint, body)

    async def update(
        self,
        customer_id: int,
        billing_address: Optional[Mapping[str, Any]] = None,
        **fields,
    ) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS)
        billing = build_address_object(billing_address or {})
        if billing:
            body["billing_address"] = billing
        return await self.client.send("PATCH", self._path(customer_id), body)

    async def get_orders(
        self,
        customer_id: int,
        status: Optional[str] = None,
        return_all: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Any:
        """Sales orders placed by a customer."""
        query = build_filter_query({"customer_id": customer_id, "status": status})
        return await self._list("/sales_orders", query, return_all, limit)

    async def get_addresses(self, customer_id: int) -> Any:
        return await self.client.send("GET", self._path(customer_id, "addresses"))


# =============================================================================
# Suppliers
# =============================================================================

@register_resource(KatanaResource.SUPPLIER)
class SupplierResource(KatanaResourceBase):
    endpoint = "/suppliers"
    operations = (
        "get", "get_all", "create", "update", "delete",
        "get_purchase_orders", "get_products",
    )

    CREATE_FIELDS = (
        "code", "email", "phone", "currency", "payment_terms_id", "lead_time", "website", "notes",
    )
    UPDATE_FIELDS = CREATE_FIELDS + ("name", "archived")

    async def create(self, name: str, address: Optional[Mapping[str, Any]] = None, **fields) -> Any:
        body: Dict[str, Any] = {"name": name, **select_fields(fields, self.CREATE_FIELDS)}
        supplier_address = build_address_object(address or {})
        if supplier_address:
            body["address"] = supplier_address
        return await self.client.send("POST", self.endpoint, body)

    async def update(self, supplier_id: int, address: Optional[Mapping[str, Any]] = None, **fields) -> Any:
        body = select_fields(fields, self.UPDATE_FIELDS)
        supplier_address = build_address_object(address or {})
        if supplier_address:
            body["address"] = supplier_address
        return await self.client.send("PATCH", self._path(supplier_id), body)

    async def get_purchase_orders(
        self,
        supplier_id: int,
        status: Optional[str] = None,
        return_all: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Any:
        query = build_filter_query({"supplier_id": supplier_id, "status": status})
        return await self._list("/purchase_orders", query, return_all, limit)

    async def get_products(
        self,
        supplier_id: int,
        product_type: Optional[str] = None,
        return_all: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Any:
        query = build_filter_query({"default_supplier_id": supplier_id, "type": product_type})
        return await self._list("/products", query, return_all, limit)


# =============================================================================
# Recipes
# =============================================================================

@register_resource(KatanaResource.RECIPE)
class RecipeResource(KatanaResourceBase):
    """Recipes (bills of materials) hang off a variant."""

    endpoint = "/variants"
    operations = (
        "get", "create", "update", "delete",
        "add_ingredient", "update_ingredient", "remove_ingredient",
        "get_operations", "add_operation",
    )

    RECIPE_FIELDS = ("quantity_produced", "notes")
    INGREDIENT_FIELDS = ("material_id", "quantity", "notes")
    OPERATION_FIELDS = ("time", "cost", "notes")

    def _recipe_path(self, variant_id: int, *parts: Any) -> str:
        return self._path(variant_id, "recipe", *parts)

    async def get(self, variant_id: int) -> Any:
        return await self.client.send("GET", self._recipe_path(variant_id))

    async def create(
        self,
        variant_id: int,
        ingredients: Iterable[Mapping[str, Any]],
        operations: Optional[Iterable[Mapping[str, Any]]] = None,
        **fields,
    ) -> Any:
        body: Dict[str, Any] = {
            "ingredients": parse_ingredients(ingredients),
            **select_fields(fields, self.RECIPE_FIELDS, numeric=("quantity_produced",)),
        }
        if operations:
            body["operations"] = parse_operations(operations)
        return await self.client.send("POST", self._recipe_path(variant_id), body)

    async def update(self, variant_id: int, **fields) -> Any:
        body = select_fields(fields, self.RECIPE_FIELDS, numeric=("quantity_produced",))
        return await self.client.send("PATCH", self._recipe_path(variant_id), body)

    async def delete(self, variant_id: int) -> Any:
        return await self.client.send("DELETE", self._recipe_path(variant_id))

    async def add_ingredient(
        self,
        variant_id: int,
        material_id: int,
        quantity: Any,
        notes: Optional[str] = None,
    ) -> Any:
        body = remove_empty_values({
            "material_id": material_id,
            "quantity": format_numeric_for_api(quantity),
            "notes": notes,
        })
        return await self.client.send("POST", self._recipe_path(variant_id, "ingredients"), body)

    async def update_ingredient(self, variant_id: int, ingredient_id: int, **fields) -> Any:
        """Update an ingredient. ``notes=""`` clears the notes."""
        body = select_fields(
            fields, self.INGREDIENT_FIELDS, numeric=("quantity",), keep_empty=("notes",),
        )
        return await self.client.send(
            "PATCH", self._recipe_path(variant_id, "ingredients", ingredient_id), body,
        )

    async def remove_ingredient(self, variant_id: int, ingredient_id: int) -> Any:
        return await self.client.send("DELETE", self._recipe_path(variant_id, "ingredients", ingredient_id))

    async def get_operations(self, variant_id: int) -> List[Any]:
        return await self.client.fetch_all("GET", self._recipe_path(variant_id, "operations"))

    async def add_operation(self, variant_id: int, name: str, **fields) -> Any:
        body = {"name": name, **select_fields(fields, self.OPERATION_FIELDS, numeric=("cost",))}
        return await self.client.send("POST", self._recipe_path(variant_id, "operations"), body)
