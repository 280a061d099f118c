from .analyze_document import AnalyzeDocumentWorkflow

__all__ = ["AnalyzeDocumentWorkflow"]
