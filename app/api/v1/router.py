from fastapi import APIRouter

from app.api.v1.endpoints import analyses, documents, practices

# Create API router
api_router = APIRouter()

api_router.include_router(practices.router, prefix="/practices", tags=["Practices"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(analyses.router, prefix="/analyses", tags=["Analyses"])

__all__ = ["api_router"]
