# study_aid/responses.py
"""Uniform JSON envelope: ``{success, message, data?, error?, timestamp}``."""
import math
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.responses import JSONResponse


def format_response(success: bool, message: str, data: Any = None, error: Any = None) -> dict:
    response = {
        "success": success,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if data is not None:
        response["data"] = data
    if error is not None and not success:
        response["error"] = error
    return response


def success(message: str, data: Any = None) -> dict:
    return format_response(True, message, data)


def validation_error(details: Any) -> dict:
    return format_response(False, "Validation failed", None, {"type": "validation_error", "details": details})


def error_response(status_code: int, message: str, error: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=format_response(False, message, None, error))


def pagination(page: int, limit: int, total: int, total_key: str = "totalItems") -> dict:
    """Page metadata; ``hasNext`` is true while ``page < ceil(total / limit)``."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        total_key: total,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }
