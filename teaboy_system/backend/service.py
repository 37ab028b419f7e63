from datetime import datetime, timezone
from typing import Optional

import structlog

from teaboy_system.backend import normalizer
from teaboy_system.backend.errors import NotFound, PersistenceFailure, ValidationError
from teaboy_system.backend.stats import summarize_orders
from teaboy_system.backend.storage import DESKS, MENU, ORDERS, CompanyStorage

logger = structlog.get_logger()

DESK_FIELDS = ("building", "floor", "teaBoy")


def _find(orders, order_id):
    order_id = str(order_id)
    for idx, order in enumerate(orders):
        if isinstance(order, dict) and str(order.get("id")) == order_id:
            return idx
    return -1


class OrderService:
    """Orders, desks and menu operations for every company namespace."""

    def __init__(self, data_dir, default_desk_count: int = 10):
        self.storage = CompanyStorage(data_dir)
        self.default_desk_count = default_desk_count

    async def startup(self, company: Optional[str] = None):
        await self.storage.ensure_company_files(company, self.default_desk_count)

    async def _save_orders(self, company, orders):
        if not await self.storage.write_orders(company, orders):
            raise PersistenceFailure("Failed to save orders")

    # -----------------------------
    # Orders
    # -----------------------------
    async def list_orders(self, company: Optional[str] = None) -> list:
        return await self.storage.read_orders(company)

    async def get_order(self, company: Optional[str], order_id) -> dict:
        orders = await self.storage.read_orders(company)
        idx = _find(orders, order_id)
        if idx == -1:
            raise NotFound("Order not found")
        return orders[idx]

    async def create_order(self, company: Optional[str], payload) -> dict:
        async with self.storage.lock(company, ORDERS):
            orders = await self.storage.read_orders(company)
            order = normalizer.normalize_order(payload, orders)
            orders.append(order)
            await self._save_orders(company, orders)

        logger.info(
            "order_created",
            company=company,
            order_id=order["id"],
            desk=order["desk"],
            items=len(order["items"]),
            total_orders=len(orders),
        )
        return order

    async def update_order(self, company: Optional[str], order_id, changes) -> dict:
        async with self.storage.lock(company, ORDERS):
            orders = await self.storage.read_orders(company)
            idx = _find(orders, order_id)
            if idx == -1:
                raise NotFound("Order not found")
            updated = normalizer.merge_update(orders[idx], changes)
            orders[idx] = updated
            await self._save_orders(company, orders)

        logger.info("order_updated", company=company, order_id=updated["id"], status=updated.get("status"))
        return updated

    async def rate_order(self, company: Optional[str], order_id, stars, review=None) -> dict:
        rating = normalizer.make_rating(stars, review)
        async with self.storage.lock(company, ORDERS):
            orders = await self.storage.read_orders(company)
            idx = _find(orders, order_id)
            if idx == -1:
                raise NotFound("Order not found")
            orders[idx] = {**orders[idx], "rating": rating}
            await self._save_orders(company, orders)

        logger.info("order_rated", company=company, order_id=str(order_id), stars=rating["stars"])
        return orders[idx]

    async def bulk_replace_orders(self, company: Optional[str], payloads) -> int:
        orders = normalizer.normalize_bulk(payloads)
        async with self.storage.lock(company, ORDERS):
            await self._save_orders(company, orders)

        logger.info("orders_bulk_replaced", company=company, count=len(orders))
        return len(orders)

    async def delete_order(self, company: Optional[str], order_id) -> dict:
        async with self.storage.lock(company, ORDERS):
            orders = await self.storage.read_orders(company)
            idx = _find(orders, order_id)
            if idx == -1:
                raise NotFound("Order not found")
            deleted = orders.pop(idx)
            await self._save_orders(company, orders)

        logger.info("order_deleted", company=company, order_id=str(order_id))
        return deleted

    async def clear_orders(self, company: Optional[str] = None) -> None:
        async with self.storage.lock(company, ORDERS):
            await self._save_orders(company, [])
        logger.info("orders_cleared", company=company)

    async def get_stats(self, company: Optional[str] = None) -> dict:
        orders = await self.storage.read_orders(company)
        return summarize_orders(orders, datetime.now(timezone.utc).date())

    # -----------------------------
    # Desks
    # -----------------------------
    async def get_desks(self, company: Optional[str] = None) -> dict:
        return await self.storage.read_desks(company)

    async def get_desk(self, company: Optional[str], desk_id) -> dict:
        data = await self.storage.read_desks(company)
        desk = data["desks"].get(str(desk_id))
        if desk is None:
            raise NotFound("Desk not found")
        return desk

    async def save_desk(self, company: Optional[str], desk_id, body) -> dict:
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise ValidationError("Desk payload must be a JSON object")

        desk_id = str(desk_id)
        desk = dict(body)
        for field in DESK_FIELDS:
            desk[field] = "" if desk.get(field) is None else str(desk[field])

        async with self.storage.lock(company, DESKS):
            data = await self.storage.read_desks(company)
            data["desks"][desk_id] = desk
            try:
                as_num = int(desk_id)
            except ValueError:
                as_num = None
            num_desks = data.get("numDesks")
            if isinstance(num_desks, bool) or not isinstance(num_desks, (int, float)):
                num_desks = 0
            if as_num is not None and as_num >= 1 and num_desks < as_num:
                data["numDesks"] = as_num
            if not await self.storage.write_desks(company, data):
                raise PersistenceFailure("Failed to save desk")

        logger.info("desk_saved", company=company, desk_id=desk_id, num_desks=data.get("numDesks"))
        return desk

    async def save_desks(self, company: Optional[str], payload) -> dict:
        if (
            not isinstance(payload, dict)
            or not isinstance(payload.get("numDesks"), int)
            or isinstance(payload.get("numDesks"), bool)
            or not isinstance(payload.get("desks"), dict)
        ):
            raise ValidationError("Invalid desks payload")

        async with self.storage.lock(company, DESKS):
            if not await self.storage.write_desks(company, payload):
                raise PersistenceFailure("Failed to save desks")

        logger.info("desks_saved", company=company, num_desks=payload["numDesks"])
        return payload

    # -----------------------------
    # Menu
    # -----------------------------
    async def get_menu(self, company: Optional[str] = None) -> dict:
        return await self.storage.read_menu(company)

    async def save_menu(self, company: Optional[str], menu) -> dict:
        if not isinstance(menu, dict):
            raise ValidationError("Invalid menu payload")

        async with self.storage.lock(company, MENU):
            saved = await self.storage.write_menu(company, menu)

        logger.info("menu_saved", company=company, categories=len(saved))
        return saved
