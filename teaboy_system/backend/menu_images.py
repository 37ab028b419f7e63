import base64
import binascii
import copy
import hashlib
import os
import re

import structlog

logger = structlog.get_logger()

DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.S)

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


def is_data_uri(value) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def _safe_name(value) -> str:
    return re.sub(r"[^A-Za-z0-9_-]", "_", str(value)).strip("_") or "item"


def image_filename(category_key, item_key, mime) -> str:
    """<category>-<item>-<hash>.<ext>; the hash keeps ids that sanitize alike apart."""
    digest = hashlib.sha1(f"{category_key}\0{item_key}".encode("utf-8")).hexdigest()[:8]
    ext = EXTENSIONS.get(mime, "bin")
    return f"{_safe_name(category_key)}-{_safe_name(item_key)}-{digest}.{ext}"


def _decode(uri):
    match = DATA_URI_RE.match(uri)
    if not match:
        return None, None
    mime = match.group("mime").lower()
    payload = re.sub(r"\s", "", match.group("payload"))
    if not payload:
        return None, None
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None, None
    return mime, data


def extract_menu_images(tree, uploads_dir, company):
    """
    Return a copy of ``tree`` where every inline ``data:`` image is saved
    under ``uploads_dir`` and replaced by ``/uploads/<company>/<file>``.

    Malformed data URIs are dropped from the item.
    """
    result = copy.deepcopy(tree)

    for category_key, category in result.items():
        if not isinstance(category, dict) or not isinstance(category.get("items"), list):
            continue

        for idx, item in enumerate(category["items"]):
            if not isinstance(item, dict) or not is_data_uri(item.get("image")):
                continue

            mime, data = _decode(item["image"])
            if data is None:
                logger.warning(
                    "menu_image_malformed",
                    company=company,
                    category=category_key,
                    item_id=item.get("id"),
                )
                item.pop("image")
                continue

            filename = image_filename(category_key, item.get("id") or idx, mime)
            os.makedirs(uploads_dir, exist_ok=True)
            with open(os.path.join(uploads_dir, filename), "wb") as f:
                f.write(data)

            item["image"] = f"/uploads/{company}/{filename}"
            logger.info("menu_image_saved", company=company, file=filename, size=len(data))

    return result
