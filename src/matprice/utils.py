from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any


def json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, default=_json_default)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def collection_path(app_id: str, name: str = "materials") -> str:
    """Shared collection path for one deployment."""
    return f"artifacts/{app_id}/public/data/{name}"
