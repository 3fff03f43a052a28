from .classifier import ReportClassifier, classify_text
from .lexicon import FALLBACK_ENTITY, Lexicon
from .models import ClassificationResult, Report, ReportPatch, ReportStatus, ReportSubmission
from .routing import route_report

__all__ = [
    "FALLBACK_ENTITY",
    "Lexicon",
    "ReportClassifier",
    "classify_text",
    "route_report",
    "ClassificationResult",
    "Report",
    "ReportPatch",
    "ReportStatus",
    "ReportSubmission",
]
