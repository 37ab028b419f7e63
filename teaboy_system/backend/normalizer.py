"""
Coercion rules for incoming order payloads.

Clients send loosely typed JSON: desks as numbers, items only as
``itemsDetailed`` quantities, no id, staff names under ``serviceAreaName``.
Everything here turns that into the stored order shape.
"""

import math
import random
import re
import time
from datetime import datetime, timezone

from teaboy_system.backend import config
from teaboy_system.backend.errors import Conflict, ValidationError

PENDING = "pending"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"
STATUSES = (PENDING, IN_PROGRESS, COMPLETED)

LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_order_id(existing_ids) -> str:
    while True:
        candidate = f"ORD-{int(time.time() * 1000)}-{random.randint(0, 9999)}"
        if candidate not in existing_ids:
            return candidate


def _leading_int(value) -> int:
    """Integer prefix of ``value``: "3 cups" -> 3, "1e3" -> 1, 2.9 -> 2."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        match = LEADING_INT_RE.match(value)
        return int(match.group(1)) if match else 0
    return 0


def _quantity(value) -> int:
    return min(max(0, _leading_int(value)), config.MAX_ITEM_QUANTITY)


def _detail_name(detail):
    if not isinstance(detail, dict):
        return None
    for key in ("name", "value", "id"):
        if detail.get(key):
            return str(detail[key])
    return None


def expand_items_detailed(details) -> list:
    """[{name: "Tea", quantity: 2}] -> ["Tea", "Tea"]"""
    items = []
    for detail in details:
        name = _detail_name(detail)
        if name is None:
            continue
        items.extend([name] * _quantity(detail.get("quantity")))
    return items


def _coerce_items(items) -> list:
    result = []
    for item in items:
        if isinstance(item, str):
            result.append(item)
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            result.append(str(item))
        elif isinstance(item, dict):
            name = _detail_name(item)
            if name is not None:
                result.append(name)
    return result


def _check_status(order):
    if "status" not in order:
        return
    status = order["status"]
    if status not in STATUSES:
        raise ValidationError(
            f"Invalid status {status!r}; expected one of {', '.join(STATUSES)}"
        )


def stamp_lifecycle(order, now=None):
    """Fill startedAt/completedAt for the order's status, never overwriting."""
    status = order.get("status")
    if status not in (IN_PROGRESS, COMPLETED):
        return order
    now = now or now_iso()
    if not order.get("startedAt"):
        order["startedAt"] = now
    if status == COMPLETED and not order.get("completedAt"):
        order["completedAt"] = now
    return order


def _merge_staff_name(order):
    alternate = order.pop("serviceAreaName", None)
    if alternate and not order.get("teaboyName"):
        order["teaboyName"] = alternate


def coerce_order(payload, existing_ids) -> dict:
    """Shape a payload into an order without rejecting anything."""
    order = dict(payload) if isinstance(payload, dict) else {}

    if not isinstance(order.get("items"), list) and isinstance(order.get("itemsDetailed"), list):
        order["items"] = expand_items_detailed(order["itemsDetailed"])

    if order.get("desk") is not None:
        order["desk"] = str(order["desk"])

    if isinstance(order.get("items"), list):
        order["items"] = _coerce_items(order["items"])
    else:
        order["items"] = []

    if not order.get("id"):
        order["id"] = generate_order_id(existing_ids)
    else:
        order["id"] = str(order["id"])

    if not order.get("timestamp"):
        order["timestamp"] = now_iso()
    if not order.get("status"):
        order["status"] = PENDING

    _merge_staff_name(order)
    return order


def normalize_order(payload, existing_orders) -> dict:
    """
    Validate and shape a new order against the company's current orders.

    Raises ValidationError when the order has no id or desk, Conflict when
    its id is already taken.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Order payload must be a JSON object")

    existing_ids = {str(o.get("id")) for o in existing_orders if isinstance(o, dict)}
    order = coerce_order(payload, existing_ids)

    if not order["id"] or order.get("desk") is None:
        raise ValidationError(
            "Missing required fields: id, desk (string|number). "
            "'items' should be an array (can be empty)."
        )
    if order["id"] in existing_ids:
        raise Conflict("Order with this ID already exists")

    _check_status(order)
    return stamp_lifecycle(order)


def merge_update(existing, changes) -> dict:
    """Shallow-merge ``changes`` over ``existing``; the id never changes."""
    if not isinstance(changes, dict):
        raise ValidationError("Order update must be a JSON object")

    if "desk" in changes and changes["desk"] is None:
        raise ValidationError("desk cannot be null")

    updated = {**existing, **changes, "id": existing["id"]}
    if updated.get("desk") is not None:
        updated["desk"] = str(updated["desk"])
    if "items" in changes and isinstance(changes["items"], list):
        updated["items"] = _coerce_items(changes["items"])
    if not isinstance(updated.get("items"), list):
        updated["items"] = []

    _merge_staff_name(updated)
    _check_status(updated)
    return stamp_lifecycle(updated)


def normalize_bulk(payloads) -> list:
    if not isinstance(payloads, list):
        raise ValidationError("Request body must be an array of orders")

    seen = set()
    orders = []
    for payload in payloads:
        order = coerce_order(payload, seen)
        _check_status(order)
        seen.add(order["id"])
        orders.append(stamp_lifecycle(order))
    return orders


def make_rating(stars, review=None) -> dict:
    if isinstance(stars, bool):
        raise ValidationError("stars must be an integer between 1 and 5")
    if isinstance(stars, str) and stars.strip().isdigit():
        stars = int(stars.strip())
    if not isinstance(stars, int) or not 1 <= stars <= 5:
        raise ValidationError("stars must be an integer between 1 and 5")
    return {
        "stars": stars,
        "review": "" if review is None else str(review),
        "timestamp": now_iso(),
    }
