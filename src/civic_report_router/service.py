"""Report service: glue between the routing engine, the lifecycle and a store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List

from .catalog import EntityCatalog, catalog_from_store, default_catalog, load_catalog
from .classifier import ReportClassifier, build_classifier
from .database import LocalReportStore
from .feature_flags import load_feature_flags
from .lifecycle import TransitionGuard, guard_from_flags, permissive_guard, validate_rating
from .models import (
    Author,
    ClassificationResult,
    Comment,
    Entity,
    Report,
    ReportPatch,
    ReportSubmission,
    canonicalize_status,
)
from .routing import preview_classification, route_report
from .settings import get_store_timeout_seconds, get_store_token, get_store_url, load_environment
from .store import HttpReportStore, ReportStore
from .summary import summarize_reports

logger = logging.getLogger(__name__)


@dataclass
class ReportService:
    store: ReportStore
    classifier: ReportClassifier = field(default_factory=ReportClassifier)
    catalog: EntityCatalog | None = None
    auto_classification: bool = True
    guard: TransitionGuard | None = None

    def entity_catalog(self) -> EntityCatalog:
        if self.catalog is None:
            catalog = catalog_from_store(self.store)
            if not len(catalog):
                logger.warning("Store returned no entities; using the built-in catalog")
                catalog = default_catalog()
            self.catalog = catalog
        return self.catalog

    def entities(self) -> List[Entity]:
        return self.store.list_entities()

    def preview(self, title: str, description: str) -> ClassificationResult:
        return preview_classification(title, description, self.classifier)

    def submit(self, submission: ReportSubmission, *, dry_run: bool = False) -> Report:
        report = route_report(
            submission,
            catalog=self.entity_catalog(),
            classifier=self.classifier,
            auto_classification=self.auto_classification,
        )
        if dry_run:
            return report
        return self.store.create_report(report)

    def get(self, report_id: str) -> Report:
        return self.store.get_report(report_id)

    def list_reports(self, status: str | None = None, entity: str | None = None) -> List[Report]:
        reports = self.store.list_reports()
        if status:
            wanted = canonicalize_status(status)
            reports = [r for r in reports if r.status is wanted]
        if entity:
            reports = [r for r in reports if r.entity_name == entity]
        return reports

    def update_status(self, report_id: str, status: str, *, expected_version: int | None = None) -> Report:
        target = canonicalize_status(status)
        if self.guard is not None and self.guard is not permissive_guard:
            current = self.store.get_report(report_id)
            self.guard(current.status, target)
        return self.store.update_report(report_id, ReportPatch(status=target), expected_version=expected_version)

    def reassign(self, report_id: str, entity_name: str, *, expected_version: int | None = None) -> Report:
        name = (entity_name or "").strip()
        if not name:
            raise ValueError("entity_name must not be empty")
        entity_id = self.entity_catalog().resolve_id(name)
        if entity_id is None:
            logger.warning("Entity %r not found in catalog; reassigning without entity id", name)
        patch = ReportPatch(entity_name=name, entity_id=entity_id)
        return self.store.update_report(report_id, patch, expected_version=expected_version)

    def rate(self, report_id: str, rating: int, comment: str | None = None) -> Report:
        stars = validate_rating(rating)
        if comment is None:
            patch = ReportPatch(rating=stars)
        else:
            patch = ReportPatch(rating=stars, rating_comment=comment.strip() or None)
        return self.store.update_report(report_id, patch)

    def delete(self, report_id: str) -> None:
        self.store.delete_report(report_id)

    def comment(self, report_id: str, text: str, author: Author | None = None) -> Comment:
        return self.store.add_comment(report_id, text, author)

    def comments(self, report_id: str) -> List[Comment]:
        return self.store.list_comments(report_id)

    def summary(self) -> dict[str, Any]:
        return summarize_reports(self.store.list_reports())


def build_service() -> ReportService:
    """Wire a service from the environment and feature flags.

    ``REPORT_STORE_URL`` selects the hosted API; without it reports live in the
    local SQLite database.
    """
    load_environment()
    flags = load_feature_flags()
    guard = guard_from_flags()
    classifier = build_classifier()

    store_url = get_store_url()
    catalog: EntityCatalog | None
    store: ReportStore
    if store_url:
        catalog = None
        store = HttpReportStore(
            base_url=store_url,
            token=get_store_token(),
            timeout_seconds=get_store_timeout_seconds(),
            fallback_entity=classifier.fallback_entity,
        )
    else:
        catalog = load_catalog()
        store = LocalReportStore(catalog=catalog, guard=guard)

    return ReportService(
        store=store,
        classifier=classifier,
        catalog=catalog,
        auto_classification=bool(flags.get("auto_classification_enabled", True)),
        guard=guard,
    )
