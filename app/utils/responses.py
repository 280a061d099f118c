from datetime import datetime, timezone
from typing import Any, Optional, Dict
from uuid import uuid4

from fastapi import Request

from app.schemas.responses import ApiResponse, ResponseMeta, ErrorDetail


def _request_id(request: Optional[Request]) -> str:
    if request is not None and getattr(request.state, "request_id", None):
        return request.state.request_id
    return str(uuid4())


def create_api_response(
    data: Any,
    message: str = "Operation successful",
    status: bool = True,
    request: Optional[Request] = None,
    api_version: str = "v1"
) -> Dict[str, Any]:
    """Create a standardized API response as a dictionary.

    Returns a dict to be compatible with FastAPI's response_model=dict.
    """
    meta = ResponseMeta(
        timestamp=datetime.now(timezone.utc),
        request_id=_request_id(request),
        api_version=api_version
    )

    data_dict: Dict[str, Any]
    if isinstance(data, dict):
        data_dict = data
    elif hasattr(data, "model_dump"):
        data_dict = data.model_dump(mode="json")
    elif isinstance(data, list):
        data_dict = {
            "items": [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in data],
            "total": len(data),
        }
    elif data is None:
        data_dict = {}
    else:
        data_dict = {"value": data}

    response = ApiResponse(
        status=status,
        message=message,
        data=data_dict,
        meta=meta
    )
    return response.model_dump(mode="json")


def create_error_detail(
    title: str,
    status: int,
    detail: str,
    request: Optional[Request] = None,
    instance: Optional[str] = None
) -> ErrorDetail:
    """Create a standardized error detail (RFC 7807)."""
    return ErrorDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance or (request.url.path if request else None),
        request_id=_request_id(request),
        timestamp=datetime.now(timezone.utc)
    )
