from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.core.auth import get_current_user_optional
from app.dependencies import get_analysis_service
from app.schemas.auth import CurrentUser
from app.schemas.responses import ApiResponse
from app.services.analysis_service import AnalysisService
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "/{analysis_id}",
    response_model=ApiResponse,
    summary="Get an analysis",
    operation_id="get_analysis",
)
async def get_analysis(
    request: Request,
    analysis_id: UUID,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> ApiResponse:
    """Status, report or error of one analysis."""
    analysis = await analysis_service.get_analysis(current_user, analysis_id)
    return create_api_response(
        data=analysis,
        message="Analysis retrieved successfully",
        request=request,
    )
