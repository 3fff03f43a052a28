import json

import httpx
import pytest

from civic_report_router.errors import (
    ConflictError,
    InvalidRequestError,
    PermissionDeniedError,
    ReportNotFoundError,
    StoreError,
    TransientStoreError,
    UnauthenticatedError,
)
from civic_report_router.models import Location, Report, ReportPatch, ReportStatus
from civic_report_router.store import HttpReportStore

BASE_URL = "https://api.example.org/functions/v1/server"

SERVER_REPORT = {
    "id": "r-100",
    "title": "Incendio en bodega",
    "description": "sale humo",
    "category": "general",
    "location": "Calle 10 # 5-20",
    "locationLat": 4.6,
    "locationLng": -74.08,
    "images": [],
    "status": "en_proceso",
    "entity": {"id": "e-2", "name": "Bomberos"},
    "manuallyAssigned": False,
    "aiClassification": {"confidence": 98, "reasoning": "fuego"},
    "userId": "u-1",
    "userName": "Ana",
    "userEmail": "ana@example.org",
    "createdAt": "2026-04-01T10:00:00+00:00",
    "updatedAt": "2026-04-01T11:00:00+00:00",
}


def _store(handler, token: str = "") -> HttpReportStore:
    return HttpReportStore(base_url=BASE_URL + "/", token=token, transport=httpx.MockTransport(handler))


def test_create_report_posts_wire_payload() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"report": {**seen["body"], "id": "r-1", "createdAt": "2026-04-01T10:00:00Z"}})

    report = Report(
        title="Incendio",
        entity_name="Bomberos",
        entity_id="e-2",
        location=Location(address="Calle 10", latitude=4.6, longitude=-74.08),
    )
    created = _store(handler, token="secret").create_report(report)

    assert seen["method"] == "POST"
    assert seen["path"] == "/functions/v1/server/reports"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["entityName"] == "Bomberos"
    assert seen["body"]["location"] == "Calle 10"
    assert seen["body"]["locationLat"] == 4.6
    assert created.id == "r-1"
    assert created.entity_id == "e-2"
    assert created.location.address == "Calle 10"
    assert created.created_at is not None


def test_get_report_normalizes_legacy_shape() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/reports/r-100")
        return httpx.Response(200, json={"report": SERVER_REPORT})

    report = _store(handler).get_report("r-100")
    assert report.entity_name == "Bomberos"
    assert report.entity_id == "e-2"
    assert report.status is ReportStatus.EN_PROCESO
    assert report.location.address == "Calle 10 # 5-20"
    assert report.location.latitude == 4.6
    assert report.ai_classification.confidence == 98
    assert report.user_name == "Ana"


def test_list_reports_maps_unassigned_to_fallback() -> None:
    rows = [SERVER_REPORT, {**SERVER_REPORT, "id": "r-101", "entity": None, "entityName": "Sin asignar"}]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"reports": rows})

    reports = _store(handler).list_reports()
    assert [r.id for r in reports] == ["r-100", "r-101"]
    assert reports[1].entity_name == "Alcaldía General"
    assert reports[1].entity_id is None


def test_update_report_sends_partial_patch() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        seen["if_match"] = request.headers.get("If-Match")
        return httpx.Response(200, json={"report": {**SERVER_REPORT, "status": "resuelto"}})

    updated = _store(handler).update_report("r-100", ReportPatch(status="resolved"), expected_version=3)
    assert seen["method"] == "PATCH"
    assert seen["body"] == {"status": "resuelto"}
    assert seen["if_match"] == "3"
    assert updated.status is ReportStatus.RESUELTO


def test_update_report_refetches_when_echo_is_partial() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if request.method == "PATCH":
            assert "If-Match" not in request.headers
            return httpx.Response(200, json={"success": True})
        return httpx.Response(200, json={"report": {**SERVER_REPORT, "entity": {"id": "e-1", "name": "Policía"}}})

    updated = _store(handler).update_report("r-100", ReportPatch(entity_name="Policía", entity_id="e-1"))
    assert calls == ["PATCH", "GET"]
    assert updated.entity_name == "Policía"


def test_report_id_is_escaped_in_path() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.raw_path.endswith(b"/reports/a%2Fb")
        return httpx.Response(200, json={})

    _store(handler).delete_report("a/b")


@pytest.mark.parametrize(
    "status_code,error_cls",
    [
        (400, InvalidRequestError),
        (401, UnauthenticatedError),
        (403, PermissionDeniedError),
        (404, ReportNotFoundError),
        (409, ConflictError),
        (422, InvalidRequestError),
        (429, TransientStoreError),
        (500, TransientStoreError),
        (503, TransientStoreError),
        (418, StoreError),
    ],
)
def test_error_mapping(status_code: int, error_cls: type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"error": "Report not found"})

    with pytest.raises(error_cls) as exc:
        _store(handler).get_report("missing")
    assert exc.value.status_code == status_code
    assert str(exc.value) == "Report not found"


def test_error_without_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    with pytest.raises(TransientStoreError) as exc:
        _store(handler).list_reports()
    assert "502" in str(exc.value)


def test_timeout_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(TransientStoreError):
        _store(handler).list_reports()


def test_connection_failure_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransientStoreError):
        _store(handler).list_entities()


def test_list_entities_unwraps_envelope() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/entities")
        return httpx.Response(
            200,
            json={"entities": [{"id": "e-1", "name": "Policía", "category": "Seguridad", "phone": "123"}]},
        )

    entities = _store(handler).list_entities()
    assert entities[0].name == "Policía"
    assert entities[0].phone == "123"


def test_comments_round_trip_through_api() -> None:
    posted: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/reports/r-100/comments")
        if request.method == "POST":
            posted.append(json.loads(request.content))
            return httpx.Response(
                201,
                json={"comment": {"id": "c-1", "reportId": "r-100", "userName": "Ana", "text": "Gracias"}},
            )
        return httpx.Response(
            200,
            json={
                "comments": [
                    {"id": "c-2", "reportId": "r-100", "text": "Segundo", "createdAt": "2026-04-02T10:00:00Z"},
                    {"id": "c-1", "reportId": "r-100", "text": "Gracias", "createdAt": "2026-04-01T10:00:00Z"},
                ]
            },
        )

    store = _store(handler)
    comment = store.add_comment("r-100", "  Gracias ")
    assert posted == [{"text": "Gracias"}]
    assert comment.report_id == "r-100"
    assert [c.id for c in store.list_comments("r-100")] == ["c-2", "c-1"]


def test_empty_comment_is_rejected_locally() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(InvalidRequestError):
        _store(handler).add_comment("r-100", "   ")


def test_base_url_is_required() -> None:
    with pytest.raises(ValueError):
        HttpReportStore(base_url="  ")
