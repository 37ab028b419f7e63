"""
Company namespaces.

Each company owns a directory under ``<data_dir>/companies``::

    companies/<company>/orders.json
    companies/<company>/desks.json
    companies/<company>/menu.json
    companies/<company>/uploads/

Menus saved before per-company directories existed live at
``<data_dir>/menus/<company>.json`` and are only ever read.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from teaboy_system.backend.config import DEFAULT_COMPANY
from teaboy_system.backend.errors import ValidationError

_FORBIDDEN = ("/", "\\", "\x00")
MAX_COMPANY_LENGTH = 128


@dataclass(frozen=True)
class CompanyPaths:
    company: str
    root: Path
    orders: Path
    desks: Path
    menu: Path
    legacy_menu: Path
    uploads: Path


def company_key(company: Optional[str]) -> str:
    """Return the namespace name for ``company``; blank means the default one."""
    if company is None:
        return DEFAULT_COMPANY
    name = str(company)
    if not name.strip():
        return DEFAULT_COMPANY
    if (
        name in (".", "..")
        or any(ch in name for ch in _FORBIDDEN)
        or len(name) > MAX_COMPANY_LENGTH
    ):
        raise ValidationError(f"Invalid company identifier: {company!r}")
    return name


def resolve(data_dir, company: Optional[str] = None) -> CompanyPaths:
    key = company_key(company)
    base = Path(data_dir)
    root = base / "companies" / key
    return CompanyPaths(
        company=key,
        root=root,
        orders=root / "orders.json",
        desks=root / "desks.json",
        menu=root / "menu.json",
        legacy_menu=base / "menus" / f"{key}.json",
        uploads=root / "uploads",
    )
