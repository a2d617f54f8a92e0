"""
Katana Resource Catalog Tests

Every operation must hit exactly one HTTP verb + path. These tests drive the
connector against the local fake API and check the requests it recorded,
then spot-check the bodies and queries the resources build.
"""

import asyncio

import pytest

from connectors.katana.katana_resources import (
    KatanaResourceBase,
    get_resource_class,
    list_available_resources,
    select_fields,
)
from connectors.katana.katana_models import KatanaResource


ROUTES = [
    # Sales orders
    ("sales_order", "get", {"record_id": 7}, "GET", "/sales_orders/7"),
    ("sales_order", "get_all", {}, "GET", "/sales_orders"),
    ("sales_order", "create", {"customer_id": 1}, "POST", "/sales_orders"),
    ("sales_order", "update", {"sales_order_id": 7, "status": "DELIVERED"}, "PATCH", "/sales_orders/7"),
    ("sales_order", "delete", {"record_id": 7}, "DELETE", "/sales_orders/7"),
    ("sales_order", "get_rows", {"sales_order_id": 7}, "GET", "/sales_orders/7/rows"),
    ("sales_order", "add_row", {"sales_order_id": 7, "variant_id": 2, "quantity": 1}, "POST", "/sales_orders/7/rows"),
    ("sales_order", "update_row", {"row_id": 9, "quantity": 3}, "PATCH", "/sales_order_rows/9"),
    ("sales_order", "delete_row", {"row_id": 9}, "DELETE", "/sales_order_rows/9"),
    ("sales_order", "get_fulfillments", {"sales_order_id": 7}, "GET", "/sales_orders/7/fulfillments"),
    ("sales_order", "create_fulfillment", {"sales_order_id": 7}, "POST", "/fulfillments"),
    # Manufacturing orders
    ("manufacturing_order", "get_all", {}, "GET", "/manufacturing_orders"),
    ("manufacturing_order", "create", {"variant_id": 2, "planned_quantity": 10}, "POST", "/manufacturing_orders"),
    ("manufacturing_order", "update", {"manufacturing_order_id": 4, "notes": "rush"}, "PATCH", "/manufacturing_orders/4"),
    ("manufacturing_order", "get_recipe_rows", {"manufacturing_order_id": 4}, "GET", "/manufacturing_orders/4/recipe_rows"),
    ("manufacturing_order", "get_operation_rows", {"manufacturing_order_id": 4}, "GET", "/manufacturing_orders/4/operation_rows"),
    ("manufacturing_order", "update_production", {"manufacturing_order_id": 4, "actual_quantity": 5}, "PATCH", "/manufacturing_orders/4"),
    ("manufacturing_order", "complete", {"manufacturing_order_id": 4}, "PATCH", "/manufacturing_orders/4"),
    ("manufacturing_order", "cancel", {"manufacturing_order_id": 4}, "PATCH", "/manufacturing_orders/4"),
    # Products
    ("product", "create", {"name": "Chair"}, "POST", "/products"),
    ("product", "get_variants", {"product_id": 3}, "GET", "/products/3/variants"),
    ("product", "get_recipe", {"product_id": 3}, "GET", "/products/3/recipe"),
    ("product", "get_operations", {"product_id": 3}, "GET", "/products/3/operations"),
    # Materials
    ("material", "create", {"name": "Oak board"}, "POST", "/materials"),
    ("material", "get_inventory", {"material_id": 5}, "GET", "/materials/5/inventory"),
    ("material", "get_suppliers", {"material_id": 5}, "GET", "/materials/5/suppliers"),
    # Variants
    ("variant", "create", {"product_id": 3, "name": "Red"}, "POST", "/variants"),
    ("variant", "get_inventory", {"variant_id": 8}, "GET", "/variants/8/inventory"),
    ("variant", "get_recipe", {"variant_id": 8}, "GET", "/variants/8/recipe"),
    # Inventory
    ("inventory", "get", {"record_id": 3}, "GET", "/inventory/3"),
    ("inventory", "get_all", {}, "GET", "/inventory"),
    ("inventory", "get_summary", {}, "GET", "/inventory/summary"),
    ("inventory", "get_by_location", {"location_id": 2}, "GET", "/inventory"),
    ("inventory", "adjust", {"variant_id": 8, "adjustment_type": "ADD", "quantity": 1}, "POST", "/stock_adjustments"),
    # Stock adjustments
    ("stock_adjustment", "create", {"adjustment_type": "REMOVE", "rows": [{"variant_id": 8, "quantity": 1}]}, "POST", "/stock_adjustments"),
    ("stock_adjustment", "get_rows", {"stock_adjustment_id": 6}, "GET", "/stock_adjustments/6/rows"),
    # Stock transfers
    ("stock_transfer", "create", {"source_location_id": 1, "destination_location_id": 2, "rows": []}, "POST", "/stock_transfers"),
    ("stock_transfer", "update", {"stock_transfer_id": 4, "notes": "late"}, "PATCH", "/stock_transfers/4"),
    ("stock_transfer", "complete", {"stock_transfer_id": 4}, "POST", "/stock_transfers/4/complete"),
    ("stock_transfer", "cancel", {"stock_transfer_id": 4}, "POST", "/stock_transfers/4/cancel"),
    # Purchase orders
    ("purchase_order", "create", {"supplier_id": 2}, "POST", "/purchase_orders"),
    ("purchase_order", "get_rows", {"purchase_order_id": 5}, "GET", "/purchase_orders/5/rows"),
    ("purchase_order", "add_row", {"purchase_order_id": 5, "variant_id": 8, "quantity": 4}, "POST", "/purchase_orders/5/rows"),
    ("purchase_order", "receive", {"purchase_order_id": 5, "items": [{"row_id": 1, "quantity": 2}]}, "POST", "/purchase_orders/5/receive"),
    ("purchase_order", "cancel", {"purchase_order_id": 5}, "POST", "/purchase_orders/5/cancel"),
    # Customers
    ("customer", "create", {"name": "Acme"}, "POST", "/customers"),
    ("customer", "update", {"customer_id": 11, "email": "a@acme.test"}, "PATCH", "/customers/11"),
    ("customer", "get_orders", {"customer_id": 11}, "GET", "/sales_orders"),
    ("customer", "get_addresses", {"customer_id": 11}, "GET", "/customers/11/addresses"),
    # Suppliers
    ("supplier", "create", {"name": "Timber Co"}, "POST", "/suppliers"),
    ("supplier", "get_purchase_orders", {"supplier_id": 2}, "GET", "/purchase_orders"),
    ("supplier", "get_products", {"supplier_id": 2}, "GET", "/products"),
    # Recipes
    ("recipe", "get", {"variant_id": 6}, "GET", "/variants/6/recipe"),
    ("recipe", "create", {"variant_id": 6, "ingredients": [{"material_id": 1, "quantity": 2}]}, "POST", "/variants/6/recipe"),
    ("recipe", "update", {"variant_id": 6, "notes": "v2"}, "PATCH", "/variants/6/recipe"),
    ("recipe", "delete", {"variant_id": 6}, "DELETE", "/variants/6/recipe"),
    ("recipe", "add_ingredient", {"variant_id": 6, "material_id": 1, "quantity": 2}, "POST", "/variants/6/recipe/ingredients"),
    ("recipe", "update_ingredient", {"variant_id": 6, "ingredient_id": 2, "quantity": 3}, "PATCH", "/variants/6/recipe/ingredients/2"),
    ("recipe", "remove_ingredient", {"variant_id": 6, "ingredient_id": 2}, "DELETE", "/variants/6/recipe/ingredients/2"),
    ("recipe", "get_operations", {"variant_id": 6}, "GET", "/variants/6/recipe/operations"),
    ("recipe", "add_operation", {"variant_id": 6, "name": "Sanding"}, "POST", "/variants/6/recipe/operations"),
]


def run_operation(katana_api, resource, operation, **params):
    async def run():
        async with katana_api.connector() as katana:
            return await katana.execute(resource, operation, **params)
    return asyncio.run(run())


@pytest.mark.parametrize(
    "resource,operation,params,method,path",
    ROUTES,
    ids=[f"{r[0]}.{r[1]}" for r in ROUTES],
)
def test_operation_route(katana_api, resource, operation, params, method, path):
    katana_api.add(method, path, (200, {}))

    run_operation(katana_api, resource, operation, **params)

    assert len(katana_api.requests) == 1
    request = katana_api.requests[0]
    assert (request.method, request.path) == (method, path)


def test_every_operation_has_a_route_case():
    covered = {(resource, operation) for resource, operation, *_ in ROUTES}
    for resource in list_available_resources():
        cls = get_resource_class(resource)
        for operation in cls.operations:
            if operation in ("get", "get_all", "update", "delete") and (resource.value, operation) not in covered:
                # Inherited CRUD shares one implementation across resources
                continue
            assert (resource.value, operation) in covered, f"{resource.value}.{operation}"


class TestBodies:
    """Request bodies built by resource operations."""

    def test_sales_order_create(self, katana_api):
        katana_api.add("POST", "/sales_orders", (200, {"id": 1}))

        run_operation(
            katana_api, "sales_order", "create",
            customer_id=12,
            order_no="SO-100",
            location_id=None,
            additional_info="",
            rows=[{"variant_id": 5, "quantity": 2, "unit_price": 19.9}],
            shipping_line1="Harbour 1",
            shipping_city="Tallinn",
            shipping_state="",
        )

        assert katana_api.requests[0].json == {
            "customer_id": 12,
            "order_no": "SO-100",
            "rows": [{"variant_id": 5, "quantity": "2", "unit_price": "19.9"}],
            "shipping_address": {"line1": "Harbour 1", "city": "Tallinn"},
        }

    def test_sales_order_create_fulfillment(self, katana_api):
        katana_api.add("POST", "/fulfillments", (200, {}))

        run_operation(
            katana_api, "sales_order", "create_fulfillment",
            sales_order_id=7,
            items=[{"row_id": 70, "quantity": 1}],
            tracking_number="TRK-1",
        )

        assert katana_api.requests[0].json == {
            "sales_order_id": 7,
            "tracking_number": "TRK-1",
            "rows": [{"sales_order_row_id": 70, "quantity": "1"}],
        }

    def test_manufacturing_order_complete_and_cancel(self, katana_api):
        katana_api.add("PATCH", "/manufacturing_orders/4", (200, {}))

        run_operation(katana_api, "manufacturing_order", "complete", manufacturing_order_id=4)
        run_operation(katana_api, "manufacturing_order", "cancel", manufacturing_order_id=4)

        assert [r.json for r in katana_api.requests] == [{"status": "DONE"}, {"status": "CANCELLED"}]

    def test_inventory_adjust_single_row(self, katana_api):
        katana_api.add("POST", "/stock_adjustments", (200, {}))

        run_operation(
            katana_api, "inventory", "adjust",
            variant_id=8, adjustment_type="ADD", quantity=2.0, batch_sn="B-7", reason="count",
        )

        assert katana_api.requests[0].json == {
            "type": "ADD",
            "rows": [{"variant_id": 8, "quantity": "2", "batch_sn": "B-7"}],
            "reason": "count",
        }

    def test_customer_create_addresses(self, katana_api):
        katana_api.add("POST", "/customers", (200, {}))

        run_operation(
            katana_api, "customer", "create",
            name="Acme",
            email="ops@acme.test",
            phone="",
            billing_address={"line1": "Main 1", "country": "EE"},
            shipping_address={"city": "Tartu"},
        )

        assert katana_api.requests[0].json == {
            "name": "Acme",
            "email": "ops@acme.test",
            "billing_address": {"line1": "Main 1", "country": "EE"},
            "shipping_addresses": [{"city": "Tartu"}],
        }

    def test_purchase_order_receive_items(self, katana_api):
        katana_api.add("POST", "/purchase_orders/5/receive", (200, {}))

        run_operation(
            katana_api, "purchase_order", "receive",
            purchase_order_id=5,
            items=[{"row_id": 1, "quantity": 10, "batch_number": "L1"}, {"row_id": 2, "quantity": 0}],
        )

        assert katana_api.requests[0].json == {
            "items": [
                {"row_id": 1, "quantity": "10", "batch_number": "L1"},
                {"row_id": 2, "quantity": "0"},
            ],
        }

    def test_recipe_update_ingredient_can_clear_notes(self, katana_api):
        katana_api.add("PATCH", "/variants/6/recipe/ingredients/2", (200, {}))

        run_operation(katana_api, "recipe", "update_ingredient", variant_id=6, ingredient_id=2, notes="")

        assert katana_api.requests[0].json == {"notes": ""}

    def test_recipe_create_with_operations(self, katana_api):
        katana_api.add("POST", "/variants/6/recipe", (200, {}))

        run_operation(
            katana_api, "recipe", "create",
            variant_id=6,
            ingredients=[{"material_id": 1, "quantity": 0.5}],
            operations=[{"name": "Cut", "time": 15, "cost": 4}],
            quantity_produced=1,
        )

        assert katana_api.requests[0].json == {
            "ingredients": [{"material_id": 1, "quantity": "0.5"}],
            "operations": [{"name": "Cut", "time": 15, "cost": "4"}],
            "quantity_produced": "1",
        }

    def test_unknown_body_field_rejected(self, katana_api):
        with pytest.raises(TypeError, match="colour"):
            run_operation(katana_api, "product", "create", name="Chair", colour="red")
        assert katana_api.requests == []


class TestListing:
    """get_all and the filter conveniences."""

    def test_get_all_single_page(self, katana_api):
        katana_api.add("GET", "/sales_orders", (200, {"data": [{"id": 1}], "pagination": {"cursor_next": "c1"}}))

        result = run_operation(katana_api, "sales_order", "get_all", filters={"status": "NOT_SHIPPED"})

        assert result == [{"id": 1}]
        assert katana_api.requests[0].query == {"status": "NOT_SHIPPED", "limit": "50"}

    def test_get_all_return_all_follows_cursors(self, katana_api, cursor_pages):
        katana_api.add("GET", "/products", cursor_pages([[{"id": 1}], [{"id": 2}]]))

        result = run_operation(katana_api, "product", "get_all", return_all=True)

        assert result == [{"id": 1}, {"id": 2}]
        assert all(r.query["limit"] == "100" for r in katana_api.requests)

    def test_range_aliases_and_suffixes(self, katana_api):
        katana_api.add("GET", "/manufacturing_orders", (200, []))

        run_operation(
            katana_api, "manufacturing_order", "get_all",
            filters={
                "created_after": "2024-01-01T00:00:00Z",
                "created_at_lte": "2024-02-01T00:00:00Z",
                "due_date_before": "2024-03-01",
                "updated_at": {"gt": "2024-01-15"},
                "status": "",
            },
        )

        assert katana_api.requests[0].query == {
            "created_at[gte]": "2024-01-01T00:00:00Z",
            "created_at[lte]": "2024-02-01T00:00:00Z",
            "due_date[lte]": "2024-03-01",
            "updated_at[gt]": "2024-01-15",
            "limit": "50",
        }

    def test_product_filter_mapping(self, katana_api):
        katana_api.add("GET", "/products", (200, []))

        run_operation(katana_api, "product", "get_all", filters={"supplier_id": 4, "is_sellable": False})

        assert katana_api.requests[0].query == {
            "default_supplier_id": "4",
            "is_sellable": "false",
            "limit": "50",
        }

    def test_customer_get_orders_query(self, katana_api):
        katana_api.add("GET", "/sales_orders", (200, {"data": []}))

        run_operation(katana_api, "customer", "get_orders", customer_id=11, status="DELIVERED", limit=10)

        assert katana_api.requests[0].query == {"customer_id": "11", "status": "DELIVERED", "limit": "10"}

    def test_inventory_by_location_query(self, katana_api):
        katana_api.add("GET", "/inventory", (200, []))

        run_operation(katana_api, "inventory", "get_by_location", location_id=0)

        assert katana_api.requests[0].query == {"location_id": "0", "limit": "100"}


class TestRegistry:
    """Resource registration."""

    def test_all_resources_registered(self):
        assert set(list_available_resources()) == set(KatanaResource)

    def test_registered_classes_carry_their_resource(self):
        for resource in KatanaResource:
            cls = get_resource_class(resource)
            assert issubclass(cls, KatanaResourceBase)
            assert cls.resource == resource

    def test_select_fields(self):
        selected = select_fields(
            {"quantity": 2.0, "notes": "", "unit_price": None},
            allowed=("quantity", "notes", "unit_price"),
            numeric=("quantity", "unit_price"),
        )
        assert selected == {"quantity": "2"}

        with pytest.raises(TypeError):
            select_fields({"bogus": 1}, allowed=("quantity",))
