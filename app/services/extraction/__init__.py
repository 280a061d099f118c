"""Extraction of structured reports from plan documents."""

from app.services.extraction.plan_report_extractor import PlanReportExtractor

__all__ = ["PlanReportExtractor"]
