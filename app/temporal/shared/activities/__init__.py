from .analysis import analyze_document, fail_analysis

__all__ = ["analyze_document", "fail_analysis"]
