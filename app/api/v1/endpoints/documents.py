from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from app.core.auth import get_current_user_optional
from app.dependencies import get_analysis_service, get_document_service
from app.schemas.auth import CurrentUser
from app.schemas.document import CreateDocumentRequest, DocumentResponse
from app.schemas.responses import ApiResponse
from app.services.analysis_service import AnalysisService
from app.services.document_service import DocumentService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/upload-url",
    response_model=ApiResponse,
    summary="Get a signed upload URL",
    operation_id="generate_upload_url",
)
async def generate_upload_url(
    request: Request,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> ApiResponse:
    """Issue a single-use URL the client uploads the file bytes to."""
    target = await document_service.generate_upload_url(current_user)
    return create_api_response(data=target, message="Upload URL generated", request=request)


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an uploaded document",
    operation_id="create_document",
)
async def create_document(
    request: Request,
    body: CreateDocumentRequest,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> ApiResponse:
    """Create the document record for bytes already uploaded to storage."""
    document = await document_service.create_document(
        current_user,
        storage_ref=body.storage_ref,
        filename=body.filename,
        content_type=body.content_type,
        size_bytes=body.size_bytes,
    )
    return create_api_response(
        data=DocumentResponse.model_validate(document),
        message="Document created successfully",
        request=request,
    )


@router.get(
    "",
    response_model=ApiResponse,
    summary="List documents",
    operation_id="list_documents",
)
async def list_documents(
    request: Request,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> ApiResponse:
    """List the practice's documents, newest first."""
    documents = await document_service.list_documents(current_user)
    return create_api_response(
        data=documents,
        message="Documents retrieved successfully",
        request=request,
    )


@router.get(
    "/{document_id}",
    response_model=ApiResponse,
    summary="Get document details",
    operation_id="get_document",
)
async def get_document(
    request: Request,
    document_id: UUID,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> ApiResponse:
    document = await document_service.get_document(current_user, document_id)
    return create_api_response(
        data=document,
        message="Document details retrieved successfully",
        request=request,
    )


@router.delete(
    "/{document_id}",
    response_model=ApiResponse,
    summary="Delete a document",
    operation_id="delete_document",
)
async def delete_document(
    request: Request,
    document_id: UUID,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> ApiResponse:
    """Delete the document, its analyses and its stored file."""
    await document_service.delete_document(current_user, document_id)
    return create_api_response(
        data={"document_id": str(document_id), "deleted": True},
        message="Document deleted successfully",
        request=request,
    )


@router.post(
    "/{document_id}/analyses",
    response_model=ApiResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Run an analysis",
    operation_id="run_analysis",
)
async def run_analysis(
    request: Request,
    document_id: UUID,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> ApiResponse:
    """Queue a new analysis; returns before extraction finishes."""
    result = await analysis_service.run_analysis(current_user, document_id)
    message = "Analysis queued" if result.status == "queued" else "Analysis could not be scheduled"
    return create_api_response(data=result, message=message, request=request)


@router.get(
    "/{document_id}/analyses",
    response_model=ApiResponse,
    summary="List a document's analyses",
    operation_id="list_analyses",
)
async def list_analyses(
    request: Request,
    document_id: UUID,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> ApiResponse:
    analyses = await analysis_service.list_analyses(current_user, document_id)
    return create_api_response(
        data=analyses,
        message="Analyses retrieved successfully",
        request=request,
    )


@router.get(
    "/{document_id}/analyses/latest",
    response_model=ApiResponse,
    summary="Get a document's newest analysis",
    operation_id="get_latest_analysis",
)
async def get_latest_analysis(
    request: Request,
    document_id: UUID,
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> ApiResponse:
    """The analysis the document's status currently mirrors."""
    latest = await analysis_service.get_latest_analysis(current_user, document_id)
    return create_api_response(
        data=latest,
        message="Latest analysis retrieved" if latest else "Document has no analyses",
        request=request,
    )
