"""
JSON documents on disk.

Reads never fail: a missing, empty, corrupt or unreadable document comes
back as the caller's fallback and is logged as ``persistence_degraded``.
Writes go through a temporary sibling file that is renamed over the
destination, with fallbacks for filesystems where that rename is refused.
"""

import copy
import json
import os

import structlog

logger = structlog.get_logger()


def _tmp_path(path):
    return f"{path}.tmp"


def _write_text(path, text):
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def _remove_quietly(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("tmp_cleanup_failed", path=str(path), error=str(e))


# -----------------------------
# Read
# -----------------------------
def read_json(path, fallback):
    """Return the document stored at ``path``, or a copy of ``fallback``."""
    if not os.path.exists(path):
        return copy.deepcopy(fallback)

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except UnicodeDecodeError as e:
        logger.warning(
            "persistence_degraded", path=str(path), reason="corrupt", error=str(e)
        )
        return copy.deepcopy(fallback)
    except OSError as e:
        logger.warning(
            "persistence_degraded", path=str(path), reason="read_error", error=str(e)
        )
        return copy.deepcopy(fallback)

    if not raw.strip():
        return copy.deepcopy(fallback)

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(
            "persistence_degraded", path=str(path), reason="corrupt", error=str(e)
        )
        return copy.deepcopy(fallback)


# -----------------------------
# Write
# -----------------------------
def write_json(path, document) -> bool:
    """
    Persist ``document`` at ``path``.

    Tiers, in order:
      1. write ``<path>.tmp`` then rename it onto ``path``
      2. remove ``path`` and retry the rename
      3. write ``path`` directly and drop the temporary file

    If the temporary file cannot be written at all, ``path`` is written
    directly. Returns False only when every tier failed.
    """
    try:
        text = json.dumps(document, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.error("persistence_failure", path=str(path), reason="serialize", error=str(e))
        return False

    try:
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    except OSError as e:
        logger.error("persistence_failure", path=str(path), reason="mkdir", error=str(e))
        return False

    tmp = _tmp_path(path)

    try:
        _write_text(tmp, text)
    except OSError as e:
        logger.warning("tmp_write_failed", path=str(tmp), error=str(e))
        _remove_quietly(tmp)
        return _write_direct(path, text)

    try:
        os.rename(tmp, path)
        return True
    except OSError as e:
        logger.warning("rename_failed", path=str(path), error=str(e))

    try:
        _remove_quietly(path)
        os.rename(tmp, path)
        return True
    except OSError as e:
        logger.warning("rename_failed", path=str(path), retry=True, error=str(e))

    ok = _write_direct(path, text)
    _remove_quietly(tmp)
    return ok


def _write_direct(path, text) -> bool:
    try:
        _write_text(path, text)
    except OSError as e:
        logger.error("persistence_failure", path=str(path), reason="direct_write", error=str(e))
        return False
    logger.warning("direct_write_fallback", path=str(path))
    return True
