"""
Response envelope helpers.

Every JSON body (webhooks excepted) has the shape
``{"success": bool, "data": any | null, "message": str}``.
"""
from typing import Any, Dict, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(success: bool, data: Any = None, message: str = "") -> Dict[str, Any]:
    return {"success": success, "data": jsonable_encoder(data), "message": message}


def success_response(
    data: Any = None,
    message: str = "Request processed successfully",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Build a success envelope"""
    return JSONResponse(status_code=status_code, content=envelope(True, data, message))


def error_response(
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    data: Any = None,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    """Build an error envelope; *extra* keys (e.g. ``errors``) are merged in"""
    content = envelope(False, data, message)
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def paginated(items: Any, page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit if limit else 0,
        },
    }
