"""Status counts and per-entity performance over a set of reports."""

from __future__ import annotations

from typing import Any, Dict, Iterable

from .models import Report, ReportStatus


def _status_counts() -> Dict[str, int]:
    return {status.value: 0 for status in ReportStatus}


def summarize_reports(reports: Iterable[Report]) -> dict[str, Any]:
    items = list(reports)
    by_status = _status_counts()
    by_entity: Dict[str, Dict[str, Any]] = {}
    manual = 0
    confidences: list[int] = []
    ratings: list[int] = []

    for report in items:
        status = report.status.value
        by_status[status] += 1

        bucket = by_entity.setdefault(report.entity_name, {"total": 0, **_status_counts()})
        bucket["total"] += 1
        bucket[status] += 1

        if report.manually_assigned:
            manual += 1
        elif report.ai_classification is not None:
            confidences.append(report.ai_classification.confidence)
        if report.rating is not None:
            ratings.append(report.rating)

    for bucket in by_entity.values():
        bucket["resolution_rate"] = round(bucket[ReportStatus.RESUELTO.value] / bucket["total"], 4)

    total = len(items)
    return {
        "total": total,
        "by_status": by_status,
        "by_entity": dict(sorted(by_entity.items())),
        "manual_assignment_rate": round(manual / total, 4) if total else 0.0,
        "average_confidence": round(sum(confidences) / len(confidences), 2) if confidences else None,
        "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else None,
    }
