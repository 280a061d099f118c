from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, status

from app.core.auth import get_current_user_optional
from app.dependencies import get_practice_service
from app.schemas.auth import CurrentUser
from app.schemas.practice import PracticeResponse
from app.schemas.responses import ApiResponse
from app.services.practice_service import PracticeService
from app.utils.responses import create_api_response

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_200_OK,
    summary="Get or create the caller's practice",
    operation_id="get_or_create_practice",
)
async def get_or_create_practice(
    request: Request,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    practice_service: Annotated[PracticeService, Depends(get_practice_service)],
) -> ApiResponse:
    """Return the caller's practice, creating it on first use."""
    practice = await practice_service.get_or_create_practice(current_user)
    return create_api_response(
        data=PracticeResponse.model_validate(practice),
        message="Practice ready",
        request=request,
    )


@router.get(
    "/current",
    response_model=ApiResponse,
    summary="Get the caller's practice",
    operation_id="get_current_practice",
)
async def get_current_practice(
    request: Request,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    practice_service: Annotated[PracticeService, Depends(get_practice_service)],
) -> ApiResponse:
    """Return the caller's practice; ``data`` is empty when there is none."""
    practice = await practice_service.get_current_practice(current_user)
    return create_api_response(
        data=PracticeResponse.model_validate(practice) if practice else None,
        message="Practice retrieved successfully" if practice else "No practice for caller",
        request=request,
    )
