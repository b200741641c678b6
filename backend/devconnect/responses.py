"""
DevConnect Backend: Response Envelopes
========================================

What:  Builds the uniform JSON envelopes every endpoint returns.
How:   Plain functions returning JSON-ready dicts; `json_response()` wraps
       one into a JSONResponse after running FastAPI's encoder (UUIDs,
       datetimes and Pydantic models become JSON primitives).

Envelopes:
    success     {success: true, message, ...data, timestamp}
    paginated   {success: true, data, pagination: {...}, timestamp}
    error       {success: false, error, details: {code, ...}, timestamp}

Flattening rule for `success_envelope` (clients depend on it):
    - sequence      -> "data": [...], "total": len(sequence)
    - mapping/model -> its keys are merged into the envelope itself
    - scalar        -> "data": value
    - None          -> nothing added
"""

import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Sequence

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

if TYPE_CHECKING:
    from devconnect.exceptions import ApiError


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-15T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def success_envelope(data: Any = None, message: str = "Operation successful") -> Dict[str, Any]:
    envelope: Dict[str, Any] = {"success": True, "message": message}

    if isinstance(data, BaseModel):
        data = data.model_dump()

    if data is None:
        pass
    elif isinstance(data, Mapping):
        envelope.update(jsonable_encoder(dict(data)))
    elif isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
        envelope["data"] = jsonable_encoder(list(data))
        envelope["total"] = len(data)
    else:
        envelope["data"] = jsonable_encoder(data)

    envelope["timestamp"] = utc_timestamp()
    return envelope


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Pagination block for list responses.

    total_pages = ceil(total / limit); has_next iff page < total_pages;
    has_prev iff page > 1. `limit` must be >= 1 (the pagination policy
    guarantees it).
    """
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def paginated_envelope(data: Sequence[Any], page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "success": True,
        "data": jsonable_encoder(list(data)),
        "pagination": pagination_meta(page, limit, total),
        "timestamp": utc_timestamp(),
    }


def json_response(
    envelope: Dict[str, Any],
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope),
        headers=headers,
    )


def error_envelope(error: "ApiError") -> Dict[str, Any]:
    return error.to_dict()
