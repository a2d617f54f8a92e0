"""Katana MRP request helpers.

Pure functions that shape caller input into Katana query strings and JSON
bodies. Nothing here performs I/O.

"Empty" throughout means None or the empty string. Falsy values that carry
meaning (0, False, empty lists) are always kept.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

ADDRESS_FIELDS = ("line1", "line2", "city", "state", "postal_code", "country")


def is_empty(value: Any) -> bool:
    """True for None and the empty string."""
    return value is None or (isinstance(value, str) and value == "")


# =============================================================================
# Query Builder
# =============================================================================

def build_filter_query(
    filters: Mapping[str, Any],
    field_mapping: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Translate a filter map into Katana query parameters.

    Scalar filters map straight through. A dict value is a range filter:
    each ``operator -> value`` pair becomes a ``field[operator]`` key, so
    ``{"created_at": {"gte": a, "lte": b}}`` yields ``created_at[gte]`` and
    ``created_at[lte]``. Lists are treated as scalars.

    Args:
        filters: Filter name -> value (or operator map)
        field_mapping: Optional filter name -> upstream field name; unmapped
            names pass through unchanged

    Returns:
        Flat query parameter map
    """
    query: Dict[str, Any] = {}
    field_mapping = field_mapping or {}

    for key, value in filters.items():
        if is_empty(value):
            continue

        api_field = field_mapping.get(key) or key

        if isinstance(value, Mapping):
            for operator, operator_value in value.items():
                if not is_empty(operator_value):
                    query[f"{api_field}[{operator}]"] = operator_value
        else:
            query[api_field] = value

    return query


# =============================================================================
# Body Helpers
# =============================================================================

def remove_empty_values(obj: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop empty values, recursing into nested dicts.

    A nested dict left with no keys is dropped as well.
    """
    result: Dict[str, Any] = {}

    for key, value in obj.items():
        if is_empty(value):
            continue
        if isinstance(value, Mapping):
            nested = remove_empty_values(value)
            if nested:
                result[key] = nested
        else:
            result[key] = value

    return result


def format_numeric_for_api(value: Union[int, float, Decimal, str, None]) -> Optional[str]:
    """Format a number as a string; Katana expects quantities and prices as strings."""
    if is_empty(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_numeric_string(value: Optional[str]) -> Optional[float]:
    """Parse a numeric string, returning None when it is empty or not a number.

    The whole string must be numeric: ``"12abc"`` gives None, not 12.
    """
    if is_empty(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def build_address_object(
    address_fields: Mapping[str, Any],
    prefix: str = "",
) -> Optional[Dict[str, Any]]:
    """Build a Katana address object from flat fields.

    With a prefix the fields are read as ``<prefix>_<field>``, e.g.
    ``shipping_line1``.

    Returns:
        Address dict, or None when no field is set
    """
    address: Dict[str, Any] = {}

    for api_field in ADDRESS_FIELDS:
        full_key = f"{prefix}_{api_field}" if prefix else api_field
        value = address_fields.get(full_key)
        if not is_empty(value):
            address[api_field] = value

    return address or None


def extract_additional_fields(
    additional_fields: Mapping[str, Any],
    field_mapping: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Copy non-empty optional fields, renaming keys through field_mapping."""
    result: Dict[str, Any] = {}
    field_mapping = field_mapping or {}

    for key, value in additional_fields.items():
        if is_empty(value):
            continue
        result[field_mapping.get(key) or key] = value

    return result


# =============================================================================
# Row Parsers
# =============================================================================

def _row(**fields: Any) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if not is_empty(v)}


def parse_ingredients(ingredients: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Recipe ingredient rows."""
    return [
        _row(
            material_id=item.get("material_id"),
            quantity=format_numeric_for_api(item.get("quantity")),
            notes=item.get("notes"),
        )
        for item in ingredients
    ]


def parse_operations(operations: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Recipe operation rows."""
    return [
        _row(
            name=item.get("name"),
            time=item.get("time"),
            cost=format_numeric_for_api(item.get("cost")),
            notes=item.get("notes"),
        )
        for item in operations
    ]


def parse_order_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Sales order line items."""
    return [
        _row(
            variant_id=row.get("variant_id"),
            quantity=format_numeric_for_api(row.get("quantity")),
            unit_price=format_numeric_for_api(row.get("unit_price")),
            discount=format_numeric_for_api(row.get("discount")),
            tax_rate_id=row.get("tax_rate_id"),
            notes=row.get("notes"),
        )
        for row in rows
    ]


def parse_adjustment_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Stock adjustment rows."""
    return [
        _row(
            variant_id=row.get("variant_id"),
            quantity=format_numeric_for_api(row.get("quantity")),
            batch_sn=row.get("batch_sn"),
            notes=row.get("notes"),
        )
        for row in rows
    ]


def parse_transfer_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Stock transfer rows."""
    return [
        _row(
            variant_id=row.get("variant_id"),
            quantity=format_numeric_for_api(row.get("quantity")),
            batch_sn=row.get("batch_sn"),
        )
        for row in rows
    ]


def parse_purchase_order_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Purchase order rows."""
    return [
        _row(
            variant_id=row.get("variant_id"),
            quantity=format_numeric_for_api(row.get("quantity")),
            unit_price=format_numeric_for_api(row.get("unit_price")),
            expected_arrival_date=row.get("expected_arrival_date"),
            notes=row.get("notes"),
        )
        for row in rows
    ]


# =============================================================================
# Dates
# =============================================================================

def parse_date(date_string: str) -> datetime:
    """Parse a Katana ISO-8601 timestamp into an aware datetime.

    Naive values are taken to be UTC.
    """
    if date_string.endswith("Z"):
        date_string = date_string[:-1] + "+00:00"
    parsed = datetime.fromisoformat(date_string)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_date(value: Union[str, date, datetime]) -> str:
    """Format a date for Katana requests as UTC ISO-8601 with milliseconds.

    ``datetime(2024, 1, 1)`` -> ``"2024-01-01T00:00:00.000Z"``
    """
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    else:
        dt = parse_date(value)

    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
