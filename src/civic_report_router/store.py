"""Report store interface and the HTTP client for the hosted report API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from .errors import (
    ConflictError,
    InvalidRequestError,
    PermissionDeniedError,
    ReportNotFoundError,
    StoreError,
    TransientStoreError,
    UnauthenticatedError,
)
from .lexicon import FALLBACK_ENTITY
from .models import Author, Comment, Entity, Report, ReportPatch, normalize_report_payload
from .settings import DEFAULT_STORE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

_ERRORS_BY_STATUS: dict[int, type[StoreError]] = {
    400: InvalidRequestError,
    401: UnauthenticatedError,
    403: PermissionDeniedError,
    404: ReportNotFoundError,
    408: TransientStoreError,
    409: ConflictError,
    422: InvalidRequestError,
    429: TransientStoreError,
}


class ReportStore(Protocol):
    def create_report(self, report: Report) -> Report: ...

    def get_report(self, report_id: str) -> Report: ...

    def list_reports(self) -> list[Report]: ...

    def update_report(
        self,
        report_id: str,
        patch: ReportPatch,
        expected_version: int | None = None,
    ) -> Report: ...

    def delete_report(self, report_id: str) -> None: ...

    def list_entities(self) -> list[Entity]: ...

    def add_comment(self, report_id: str, text: str, author: Author | None = None) -> Comment: ...

    def list_comments(self, report_id: str) -> list[Comment]: ...


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return f"HTTP error {response.status_code}"


def raise_for_store_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    code = response.status_code
    error_cls = _ERRORS_BY_STATUS.get(code)
    if error_cls is None:
        error_cls = TransientStoreError if code >= 500 else StoreError
    raise error_cls(_error_message(response), status_code=code)


def _unwrap(payload: Any, key: str) -> Any:
    if isinstance(payload, dict) and key in payload:
        return payload[key]
    return payload


@dataclass
class HttpReportStore:
    """Client for the hosted report API.

    Failures surface as typed :class:`StoreError` subclasses and are never
    retried here.
    """

    base_url: str
    token: str = ""
    timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS
    fallback_entity: str = FALLBACK_ENTITY
    transport: httpx.BaseTransport | None = None

    def __post_init__(self) -> None:
        if not self.base_url or not self.base_url.strip():
            raise ValueError("HttpReportStore requires a base_url (REPORT_STORE_URL)")
        self.base_url = self.base_url.strip().rstrip("/")

    def _build_client(self) -> httpx.Client:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            headers=headers,
            transport=self.transport,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            with self._build_client() as client:
                response = client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransientStoreError(f"{method} {path} timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransientStoreError(f"{method} {path} failed: {exc}") from exc

        logger.info("%s %s -> %d", method, path, response.status_code)
        raise_for_store_status(response)
        if not response.content:
            return {}
        return response.json()

    def _parse_report(self, data: dict) -> Report:
        return Report.model_validate(normalize_report_payload(data, fallback_entity=self.fallback_entity))

    @staticmethod
    def _report_path(report_id: str) -> str:
        return f"/reports/{quote(str(report_id), safe='')}"

    def create_report(self, report: Report) -> Report:
        sent = report.to_wire()
        returned = _unwrap(self._request("POST", "/reports", json=sent), "report")
        merged = dict(sent)
        if isinstance(returned, dict):
            merged.update({k: v for k, v in returned.items() if v is not None})
        return self._parse_report(merged)

    def get_report(self, report_id: str) -> Report:
        data = _unwrap(self._request("GET", self._report_path(report_id)), "report")
        if not isinstance(data, dict):
            raise ReportNotFoundError(f"Report {report_id} not found", status_code=404)
        return self._parse_report(data)

    def list_reports(self) -> list[Report]:
        rows = _unwrap(self._request("GET", "/reports"), "reports") or []
        return [self._parse_report(row) for row in rows]

    def update_report(
        self,
        report_id: str,
        patch: ReportPatch,
        expected_version: int | None = None,
    ) -> Report:
        headers = {"If-Match": str(expected_version)} if expected_version is not None else None
        data = _unwrap(
            self._request("PATCH", self._report_path(report_id), json=patch.to_wire(), headers=headers),
            "report",
        )
        # The hosted API may echo only the changed fields.
        if isinstance(data, dict) and data.get("title"):
            return self._parse_report(data)
        return self.get_report(report_id)

    def delete_report(self, report_id: str) -> None:
        self._request("DELETE", self._report_path(report_id))

    def list_entities(self) -> list[Entity]:
        rows = _unwrap(self._request("GET", "/entities"), "entities") or []
        return [Entity.model_validate(row) for row in rows]

    def add_comment(self, report_id: str, text: str, author: Author | None = None) -> Comment:
        # The hosted API takes the author from the bearer token; ``author`` is
        # only honoured by stores that have no authentication of their own.
        cleaned = (text or "").strip()
        if not cleaned:
            raise InvalidRequestError("Comment text must not be empty", status_code=400)
        data = _unwrap(
            self._request("POST", f"{self._report_path(report_id)}/comments", json={"text": cleaned}),
            "comment",
        )
        return Comment.model_validate(data)

    def list_comments(self, report_id: str) -> list[Comment]:
        rows = _unwrap(self._request("GET", f"{self._report_path(report_id)}/comments"), "comments") or []
        return [Comment.model_validate(row) for row in rows]
