from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlmodel import Session, select

from civic_report_router import database
from civic_report_router.catalog import default_catalog
from civic_report_router.database import CommentRecord, LocalReportStore, build_engine
from civic_report_router.errors import (
    ConflictError,
    InvalidRequestError,
    ReportNotFoundError,
    TransitionNotAllowedError,
)
from civic_report_router.lifecycle import strict_guard
from civic_report_router.models import AIClassification, Author, Location, Report, ReportPatch, ReportStatus


def _store(tmp_path: Path, **kwargs) -> LocalReportStore:
    return LocalReportStore(path=tmp_path / "reports.db", catalog=default_catalog(), **kwargs)


def _report(**overrides) -> Report:
    values = {
        "title": "Hueco grande en la calle",
        "description": "hay un hueco profundo",
        "location": Location(address="Carrera 7 # 12-40", latitude=4.6, longitude=-74.07),
        "images": ["hueco.jpg"],
        "entity_name": "Alcaldía - Infraestructura",
        "entity_id": "alcaldia-infraestructura",
        "ai_classification": AIClassification(confidence=98, reasoning="hueco, calle"),
        "user_id": "u-1",
        "user_name": "Ana",
    }
    values.update(overrides)
    return Report(**values)


def test_create_and_get_report(tmp_path: Path) -> None:
    store = _store(tmp_path)
    created = store.create_report(_report())
    assert created.id
    assert created.version == 1
    assert created.created_at is not None

    loaded = store.get_report(created.id)
    assert loaded == created
    assert loaded.location.latitude == 4.6
    assert loaded.images == ["hueco.jpg"]
    assert loaded.ai_classification.reasoning == "hueco, calle"


def test_create_keeps_given_id_and_rejects_duplicates(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.create_report(_report(id="fixed"))
    with pytest.raises(ConflictError):
        store.create_report(_report(id="fixed"))


def test_list_reports_newest_first(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.create_report(_report(id="old", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc)))
    store.create_report(_report(id="new", created_at=datetime(2026, 2, 1, tzinfo=timezone.utc)))
    assert [r.id for r in store.list_reports()] == ["new", "old"]


def test_update_bumps_version_and_stamps_resolution(tmp_path: Path) -> None:
    store = _store(tmp_path)
    created = store.create_report(_report())

    updated = store.update_report(created.id, ReportPatch(status="resuelto"))
    assert updated.version == 2
    assert updated.status is ReportStatus.RESUELTO
    assert updated.resolved_at is not None

    reloaded = store.get_report(created.id)
    assert reloaded.version == 2
    assert reloaded.resolved_at == updated.resolved_at


def test_stale_version_is_a_conflict(tmp_path: Path) -> None:
    store = _store(tmp_path)
    created = store.create_report(_report())
    store.update_report(created.id, ReportPatch(status="en-proceso"), expected_version=1)

    with pytest.raises(ConflictError) as exc:
        store.update_report(created.id, ReportPatch(status="resuelto"), expected_version=1)
    assert exc.value.status_code == 409
    assert store.get_report(created.id).status is ReportStatus.EN_PROCESO


def test_reassignment_through_patch(tmp_path: Path) -> None:
    store = _store(tmp_path)
    created = store.create_report(_report())
    updated = store.update_report(created.id, ReportPatch(entity_name="Empresa de Acueducto"))
    assert updated.entity_id == "empresa-de-acueducto"
    assert updated.manually_assigned is False
    assert store.get_report(created.id).ai_classification.confidence == 98


def test_strict_guard_blocks_reopening(tmp_path: Path) -> None:
    store = _store(tmp_path, guard=strict_guard)
    created = store.create_report(_report())
    store.update_report(created.id, ReportPatch(status="rechazado"))
    with pytest.raises(TransitionNotAllowedError):
        store.update_report(created.id, ReportPatch(status="pendiente"))
    assert store.get_report(created.id).version == 2


def test_missing_report(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(ReportNotFoundError):
        store.get_report("nope")
    with pytest.raises(ReportNotFoundError):
        store.update_report("nope", ReportPatch(status="resuelto"))
    with pytest.raises(ReportNotFoundError):
        store.delete_report("nope")
    with pytest.raises(ReportNotFoundError):
        store.add_comment("nope", "hola")


def test_comments_newest_first_and_cascade_delete(tmp_path: Path) -> None:
    store = _store(tmp_path)
    created = store.create_report(_report())
    author = Author(user_id="u-2", user_name="Luis")
    store.add_comment(created.id, "Primero", author)
    store.add_comment(created.id, " Segundo ")

    comments = store.list_comments(created.id)
    assert [c.text for c in comments] == ["Segundo", "Primero"]
    assert comments[1].user_name == "Luis"
    assert comments[0].user_name == "Usuario"

    store.delete_report(created.id)
    with Session(build_engine(tmp_path / "reports.db")) as session:
        remaining = session.exec(select(CommentRecord)).all()
    assert remaining == []
    assert store.list_reports() == []


def test_empty_comment_is_rejected(tmp_path: Path) -> None:
    store = _store(tmp_path)
    created = store.create_report(_report())
    with pytest.raises(InvalidRequestError):
        store.add_comment(created.id, "   ")


def test_entities_come_from_catalog(tmp_path: Path) -> None:
    names = [e.name for e in _store(tmp_path).list_entities()]
    assert names[0] == "Policía"
    assert "Alcaldía General" in names


def test_concurrent_writer_makes_the_later_update_fail(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    writer_a = _store(tmp_path)
    writer_b = _store(tmp_path)
    created = writer_a.create_report(_report())

    original_apply_patch = database.apply_patch

    def apply_patch_after_other_writer(*args, **kwargs):
        # B commits between A's read and A's write.
        monkeypatch.setattr(database, "apply_patch", original_apply_patch)
        writer_b.update_report(created.id, ReportPatch(status="rechazado"), expected_version=1)
        return original_apply_patch(*args, **kwargs)

    monkeypatch.setattr(database, "apply_patch", apply_patch_after_other_writer)
    with pytest.raises(ConflictError) as exc:
        writer_a.update_report(created.id, ReportPatch(status="resuelto"), expected_version=1)
    assert exc.value.status_code == 409

    final = writer_a.get_report(created.id)
    assert final.status is ReportStatus.RECHAZADO
    assert final.version == 2
    assert final.resolved_at is None


def test_list_reports_orders_mixed_offsets_chronologically(tmp_path: Path) -> None:
    bogota = timezone(timedelta(hours=-5))
    store = _store(tmp_path)
    # 10:00 in Bogotá is 15:00 UTC, later than 12:00 UTC.
    store.create_report(_report(id="utc-noon", created_at=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)))
    store.create_report(_report(id="bogota-ten", created_at=datetime(2026, 1, 1, 10, 0, tzinfo=bogota)))
    assert [r.id for r in store.list_reports()] == ["bogota-ten", "utc-noon"]
    assert store.get_report("bogota-ten").created_at == datetime(2026, 1, 1, 15, 0, tzinfo=timezone.utc)
