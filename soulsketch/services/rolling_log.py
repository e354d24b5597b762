import json
import logging
import os
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


def read_entries(path: str) -> List[Dict[str, Any]]:
    if not os.path.exists(path):
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not parse log %s: %s", path, e)
        return []
    return data if isinstance(data, list) else []


def append_entry(path: str, entry: Dict[str, Any], limit: int) -> None:
    """Append to a JSON array file, keeping only the most recent `limit` entries.

    The whole file is rewritten on every append; concurrent writers may drop
    each other's entries.
    """
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    entries = read_entries(path)
    entries.append(entry)
    if limit > 0 and len(entries) > limit:
        entries = entries[-limit:]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(entries, f, indent=2, ensure_ascii=False, default=str)
