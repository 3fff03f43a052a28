"""SQLite report store using SQLModel.

Implements the same interface as the hosted API client so the routing engine
and lifecycle can run end to end offline. Each report carries a monotonic
``version`` that is bumped on every update. Writes are conditional on the
version that was read, so a concurrent writer makes the later update fail with
:class:`ConflictError` instead of overwriting it; passing ``expected_version``
additionally pins the version the caller last saw.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import update
from sqlmodel import Field, Session, SQLModel, create_engine, select

from .catalog import EntityCatalog, load_catalog
from .errors import ConflictError, InvalidRequestError, ReportNotFoundError
from .lifecycle import TransitionGuard, apply_patch
from .models import AIClassification, Author, Comment, Entity, Location, Report, ReportPatch
from .settings import get_reports_db_path

logger = logging.getLogger(__name__)


class ReportRecord(SQLModel, table=True):
    id: str = Field(primary_key=True)
    title: str
    description: str = ""
    category: str = "general"
    location_address: str = ""
    location_lat: float | None = None
    location_lng: float | None = None
    images_json: str = "[]"
    status: str = Field(default="pendiente", index=True)
    entity_name: str = Field(index=True)
    entity_id: str | None = None
    manually_assigned: bool = False
    ai_confidence: int | None = None
    ai_reasoning: str | None = None
    user_id: str | None = Field(default=None, index=True)
    user_name: str = "Usuario"
    user_email: str = ""
    created_at: str = Field(index=True)
    updated_at: str | None = None
    resolved_at: str | None = None
    rating: int | None = None
    rating_comment: str | None = None
    version: int = 1


class CommentRecord(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    report_id: str = Field(index=True)
    user_id: str | None = None
    user_name: str = "Usuario"
    user_email: str = ""
    text: str
    created_at: str


def build_engine(path: Path | None = None):
    db_path = path or get_reports_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{db_path}")


def _iso(value: datetime | None) -> str | None:
    # Stored as UTC so that string order is chronological.
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _record_values(report: Report) -> dict:
    """Column values for a report, except the key and creation time."""
    return {
        "title": report.title,
        "description": report.description,
        "category": report.category,
        "location_address": report.location.address,
        "location_lat": report.location.latitude,
        "location_lng": report.location.longitude,
        "images_json": json.dumps(report.images),
        "status": report.status.value,
        "entity_name": report.entity_name,
        "entity_id": report.entity_id,
        "manually_assigned": report.manually_assigned,
        "ai_confidence": report.ai_classification.confidence if report.ai_classification else None,
        "ai_reasoning": report.ai_classification.reasoning if report.ai_classification else None,
        "user_id": report.user_id,
        "user_name": report.user_name,
        "user_email": report.user_email,
        "updated_at": _iso(report.updated_at),
        "resolved_at": _iso(report.resolved_at),
        "rating": report.rating,
        "rating_comment": report.rating_comment,
        "version": report.version,
    }


def _report_from_record(record: ReportRecord) -> Report:
    ai_classification = None
    if record.ai_confidence is not None:
        ai_classification = AIClassification(confidence=record.ai_confidence, reasoning=record.ai_reasoning or "")
    return Report(
        id=record.id,
        title=record.title,
        description=record.description,
        category=record.category,
        location=Location(
            address=record.location_address,
            latitude=record.location_lat,
            longitude=record.location_lng,
        ),
        images=json.loads(record.images_json or "[]"),
        status=record.status,
        entity_name=record.entity_name,
        entity_id=record.entity_id,
        manually_assigned=record.manually_assigned,
        ai_classification=ai_classification,
        user_id=record.user_id,
        user_name=record.user_name,
        user_email=record.user_email,
        created_at=record.created_at,
        updated_at=record.updated_at,
        resolved_at=record.resolved_at,
        rating=record.rating,
        rating_comment=record.rating_comment,
        version=record.version,
    )


def _comment_from_record(record: CommentRecord) -> Comment:
    return Comment(
        id=str(record.id),
        report_id=record.report_id,
        user_id=record.user_id,
        user_name=record.user_name,
        user_email=record.user_email,
        text=record.text,
        created_at=record.created_at,
    )


@dataclass
class LocalReportStore:
    path: Path | None = None
    catalog: EntityCatalog | None = None
    guard: TransitionGuard | None = None

    def __post_init__(self) -> None:
        self._engine = build_engine(self.path)
        SQLModel.metadata.create_all(self._engine)
        if self.catalog is None:
            self.catalog = load_catalog()

    def _get_record(self, session: Session, report_id: str) -> ReportRecord:
        record = session.get(ReportRecord, report_id)
        if record is None:
            raise ReportNotFoundError(f"Report {report_id} not found", status_code=404)
        return record

    def create_report(self, report: Report) -> Report:
        now = datetime.now(timezone.utc)
        stored = report.model_copy(
            update={
                "id": report.id or uuid.uuid4().hex,
                "created_at": report.created_at or now,
                "updated_at": report.updated_at or report.created_at or now,
                "version": 1,
            }
        )
        with Session(self._engine) as session:
            if session.get(ReportRecord, stored.id) is not None:
                raise ConflictError(f"Report {stored.id} already exists", status_code=409)
            session.add(ReportRecord(id=stored.id, created_at=_iso(stored.created_at), **_record_values(stored)))
            session.commit()
        logger.info("Stored report %s for %s", stored.id, stored.entity_name)
        return stored

    def get_report(self, report_id: str) -> Report:
        with Session(self._engine) as session:
            return _report_from_record(self._get_record(session, report_id))

    def list_reports(self) -> list[Report]:
        with Session(self._engine) as session:
            statement = select(ReportRecord).order_by(ReportRecord.created_at.desc())
            return [_report_from_record(r) for r in session.exec(statement)]

    def update_report(
        self,
        report_id: str,
        patch: ReportPatch,
        expected_version: int | None = None,
    ) -> Report:
        with Session(self._engine) as session:
            record = self._get_record(session, report_id)
            if expected_version is not None and record.version != expected_version:
                raise ConflictError(
                    f"Report {report_id} is at version {record.version}, expected {expected_version}",
                    status_code=409,
                )
            read_version = record.version
            current = _report_from_record(record)
            updated = apply_patch(current, patch, guard=self.guard, catalog=self.catalog)
            updated = updated.model_copy(update={"version": read_version + 1})

            # Only applies if nobody else wrote since the read above.
            statement = (
                update(ReportRecord)
                .where(ReportRecord.id == report_id, ReportRecord.version == read_version)
                .values(**_record_values(updated))
            )
            result = session.exec(statement)
            if result.rowcount != 1:
                session.rollback()
                raise ConflictError(
                    f"Report {report_id} was modified concurrently (read version {read_version})",
                    status_code=409,
                )
            session.commit()
        logger.info("Updated report %s to version %d", report_id, updated.version)
        return updated

    def delete_report(self, report_id: str) -> None:
        with Session(self._engine) as session:
            record = self._get_record(session, report_id)
            comments = session.exec(select(CommentRecord).where(CommentRecord.report_id == report_id))
            for comment in comments:
                session.delete(comment)
            session.delete(record)
            session.commit()
        logger.info("Deleted report %s and its comments", report_id)

    def list_entities(self) -> list[Entity]:
        return list(self.catalog or [])

    def add_comment(self, report_id: str, text: str, author: Author | None = None) -> Comment:
        cleaned = (text or "").strip()
        if not cleaned:
            raise InvalidRequestError("Comment text must not be empty", status_code=400)
        who = author or Author()
        with Session(self._engine) as session:
            self._get_record(session, report_id)
            record = CommentRecord(
                report_id=report_id,
                user_id=who.user_id,
                user_name=who.user_name,
                user_email=who.user_email,
                text=cleaned,
                created_at=datetime.now(timezone.utc).isoformat(),
            )
            session.add(record)
            session.commit()
            session.refresh(record)
            return _comment_from_record(record)

    def list_comments(self, report_id: str) -> list[Comment]:
        with Session(self._engine) as session:
            statement = (
                select(CommentRecord)
                .where(CommentRecord.report_id == report_id)
                .order_by(CommentRecord.id.desc())
            )
            return [_comment_from_record(r) for r in session.exec(statement)]
