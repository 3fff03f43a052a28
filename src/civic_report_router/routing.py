"""Routing decision: manual entity override or automatic classification."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from .catalog import EntityCatalog, default_catalog
from .classifier import FALLBACK_CONFIDENCE, ReportClassifier
from .models import ClassificationResult, Report, ReportStatus, ReportSubmission

logger = logging.getLogger(__name__)

AUTO_ENTITY = "auto"
AUTO_DISABLED_REASONING = "Clasificación automática deshabilitada"


def is_auto_selection(manual_entity: str | None) -> bool:
    if manual_entity is None:
        return True
    cleaned = manual_entity.strip()
    return not cleaned or cleaned.casefold() == AUTO_ENTITY


def preview_classification(
    title: str,
    description: str,
    classifier: ReportClassifier | None = None,
) -> ClassificationResult:
    return (classifier or ReportClassifier()).classify(title, description)


def route_report(
    submission: ReportSubmission,
    *,
    catalog: EntityCatalog | None = None,
    classifier: ReportClassifier | None = None,
    auto_classification: bool = True,
    now: datetime | None = None,
) -> Report:
    """Build the complete report payload for a new submission.

    Performs no I/O; the caller hands the result to a report store.
    """
    active_catalog = catalog if catalog is not None else default_catalog()
    active_classifier = classifier or ReportClassifier()

    if not is_auto_selection(submission.manual_entity):
        entity_name = submission.manual_entity.strip()
        manually_assigned = True
        ai_classification = None
        logger.info("Report routed manually to %s", entity_name)
    elif auto_classification:
        result = active_classifier.classify(submission.title, submission.description)
        entity_name = result.entity
        manually_assigned = False
        ai_classification = result.to_ai_classification()
        logger.info("Report classified as %s (confidence %d, score %d)", result.entity, result.confidence, result.score)
    else:
        entity_name = active_classifier.fallback_entity
        manually_assigned = False
        ai_classification = ClassificationResult(
            entity=entity_name,
            confidence=FALLBACK_CONFIDENCE,
            reasoning=AUTO_DISABLED_REASONING,
        ).to_ai_classification()
        logger.info("Automatic classification disabled; report sent to %s", entity_name)

    entity_id = active_catalog.resolve_id(entity_name)
    if entity_id is None:
        logger.warning("Entity %r not found in catalog; report will be stored without entity id", entity_name)

    created_at = now or datetime.now(timezone.utc)
    return Report(
        title=submission.title,
        description=submission.description,
        category=submission.category,
        location=submission.location,
        images=list(submission.images),
        status=ReportStatus.PENDIENTE,
        entity_name=entity_name,
        entity_id=entity_id,
        manually_assigned=manually_assigned,
        ai_classification=ai_classification,
        user_id=submission.user_id,
        user_name=submission.user_name,
        user_email=submission.user_email,
        created_at=created_at,
        updated_at=created_at,
    )
