from __future__ import annotations

import dataclasses
import datetime
import json
from typing import Any


def to_json(obj: Any) -> str:
    """Return a compact JSON string; dataclasses are encoded as plain objects
    and datetimes as ISO-8601 strings.

    >>> to_json({"type": "price_update", "data": {"price": 1.5}})
    '{"type":"price_update","data":{"price":1.5}}'
    """

    def _encoder(o: Any) -> Any:  # noqa: D401
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return dataclasses.asdict(o)
        if isinstance(o, datetime.datetime):
            o = o.astimezone(datetime.timezone.utc)
            return o.isoformat().replace("+00:00", "Z")
        raise TypeError(f"Object of type {type(o).__name__} is not JSON serialisable")

    return json.dumps(obj, default=_encoder, separators=(",", ":"))
