"""Per-company orders, desks and menu documents."""

import copy
from typing import Optional

import structlog
from fastapi.concurrency import run_in_threadpool

from teaboy_system.backend import file_store, namespaces
from teaboy_system.backend.config import DEFAULT_MENU
from teaboy_system.backend.errors import PersistenceFailure
from teaboy_system.backend.locks import KeyedLocks
from teaboy_system.backend.menu_images import extract_menu_images

logger = structlog.get_logger()

ORDERS = "orders"
DESKS = "desks"
MENU = "menu"


def empty_desks():
    return {"numDesks": 0, "desks": {}}


def seeded_desks(count: int):
    return {
        "numDesks": count,
        "desks": {
            str(i): {"building": "", "floor": "", "teaBoy": ""}
            for i in range(1, count + 1)
        },
    }


class CompanyStorage:
    def __init__(self, data_dir):
        self.data_dir = data_dir
        self.locks = KeyedLocks()

    def paths(self, company: Optional[str] = None) -> namespaces.CompanyPaths:
        return namespaces.resolve(self.data_dir, company)

    def lock(self, company: Optional[str], collection: str):
        """Lock guarding read-modify-write of one company's collection."""
        return self.locks.get(namespaces.company_key(company), collection)

    # -----------------------------
    # Orders
    # -----------------------------
    async def read_orders(self, company: Optional[str] = None) -> list:
        path = self.paths(company).orders
        orders = await run_in_threadpool(file_store.read_json, path, [])
        if not isinstance(orders, list):
            logger.warning(
                "persistence_degraded", path=str(path), reason="not_a_list"
            )
            return []
        return orders

    async def write_orders(self, company: Optional[str], orders: list) -> bool:
        return await run_in_threadpool(
            file_store.write_json, self.paths(company).orders, orders
        )

    # -----------------------------
    # Desks
    # -----------------------------
    async def read_desks(self, company: Optional[str] = None) -> dict:
        path = self.paths(company).desks
        data = await run_in_threadpool(file_store.read_json, path, empty_desks())
        if not isinstance(data, dict):
            logger.warning(
                "persistence_degraded", path=str(path), reason="not_an_object"
            )
            return empty_desks()
        if not isinstance(data.get("desks"), dict):
            data["desks"] = {}
        return data

    async def write_desks(self, company: Optional[str], data: dict) -> bool:
        return await run_in_threadpool(
            file_store.write_json, self.paths(company).desks, data
        )

    # -----------------------------
    # Menu
    # -----------------------------
    async def read_menu(self, company: Optional[str] = None) -> dict:
        paths = self.paths(company)
        for path in (paths.menu, paths.legacy_menu):
            menu = await run_in_threadpool(file_store.read_json, path, None)
            if isinstance(menu, dict):
                return menu
        return copy.deepcopy(DEFAULT_MENU)

    async def write_menu(self, company: Optional[str], menu: dict) -> dict:
        """Persist ``menu`` with inline images moved to files; return what was stored."""
        paths = self.paths(company)
        try:
            processed = await run_in_threadpool(
                extract_menu_images, menu, str(paths.uploads), paths.company
            )
        except OSError as e:
            logger.error("persistence_failure", company=paths.company, reason="image_write", error=str(e))
            raise PersistenceFailure("Failed to save menu images") from e

        ok = await run_in_threadpool(file_store.write_json, paths.menu, processed)
        if not ok:
            raise PersistenceFailure("Failed to save menu")
        return processed

    # -----------------------------
    # Initialization
    # -----------------------------
    async def ensure_company_files(self, company: Optional[str] = None, desk_count: int = 10):
        """Create any missing document for ``company`` with its default content."""
        paths = self.paths(company)
        seeds = (
            (paths.orders, lambda: []),
            (paths.desks, lambda: seeded_desks(desk_count)),
            (paths.menu, lambda: copy.deepcopy(DEFAULT_MENU)),
        )
        for path, make_default in seeds:
            if path.exists():
                continue
            if path == paths.menu and paths.legacy_menu.exists():
                continue
            logger.info("seeding_document", company=paths.company, path=str(path))
            ok = await run_in_threadpool(file_store.write_json, path, make_default())
            if not ok:
                logger.error("seeding_failed", company=paths.company, path=str(path))
