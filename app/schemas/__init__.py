from .analysis import AnalysisResponse, RunAnalysisResponse
from .auth import CurrentUser, JWTClaims
from .document import CreateDocumentRequest, DocumentResponse, UploadTargetResponse
from .practice import PracticeResponse
from .report import InsurancePlanReport
from .responses import ApiResponse, ErrorDetail, ResponseMeta

__all__ = [
    "AnalysisResponse",
    "RunAnalysisResponse",
    "CurrentUser",
    "JWTClaims",
    "CreateDocumentRequest",
    "DocumentResponse",
    "UploadTargetResponse",
    "PracticeResponse",
    "InsurancePlanReport",
    "ApiResponse",
    "ErrorDetail",
    "ResponseMeta",
]
