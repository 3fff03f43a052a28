"""Pydantic models for reports, entities, comments and classification output.

The hosted API speaks camelCase JSON; every model accepts both camelCase and
snake_case on input and serializes by alias. Older payload shapes are folded
into the canonical one by :func:`normalize_report_payload`, once, at the store
boundary.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidStatusError
from .lexicon import FALLBACK_ENTITY

UNASSIGNED_ENTITY = "Sin asignar"

_WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ReportStatus(str, Enum):
    PENDIENTE = "pendiente"
    EN_PROCESO = "en-proceso"
    RESUELTO = "resuelto"
    RECHAZADO = "rechazado"


_STATUS_ALIAS_MAP = {
    "pendiente": ReportStatus.PENDIENTE,
    "pending": ReportStatus.PENDIENTE,
    "en proceso": ReportStatus.EN_PROCESO,
    "in progress": ReportStatus.EN_PROCESO,
    "resuelto": ReportStatus.RESUELTO,
    "resolved": ReportStatus.RESUELTO,
    "rechazado": ReportStatus.RECHAZADO,
    "rejected": ReportStatus.RECHAZADO,
}


def canonicalize_status(value: str | ReportStatus) -> ReportStatus:
    if isinstance(value, ReportStatus):
        return value
    cleaned = str(value).strip().lower()
    key = re.sub(r"\s+", " ", re.sub(r"[_\-]+", " ", cleaned)).strip()
    status = _STATUS_ALIAS_MAP.get(key)
    if status is None:
        allowed = ", ".join(s.value for s in ReportStatus)
        raise InvalidStatusError(f"Invalid report status {value!r}. Allowed: {allowed}")
    return status


class Location(BaseModel):
    model_config = _WIRE_CONFIG

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    address: str = ""


class AIClassification(BaseModel):
    model_config = _WIRE_CONFIG

    confidence: int = Field(ge=0, le=100)
    reasoning: str = ""


class ClassificationResult(BaseModel):
    model_config = _WIRE_CONFIG

    entity: str
    confidence: int = Field(ge=0, le=100)
    reasoning: str
    score: int = 0
    matched_terms: List[str] = Field(default_factory=list)

    def to_ai_classification(self) -> AIClassification:
        return AIClassification(confidence=self.confidence, reasoning=self.reasoning)


class Entity(BaseModel):
    model_config = _WIRE_CONFIG

    id: str | None = None
    name: str = Field(min_length=1)
    category: str = "Otros"
    description: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    address: str = ""


class Author(BaseModel):
    model_config = _WIRE_CONFIG

    user_id: str | None = None
    user_name: str = "Usuario"
    user_email: str = ""


class Comment(BaseModel):
    model_config = _WIRE_CONFIG

    id: str | None = None
    report_id: str
    user_id: str | None = None
    user_name: str = "Usuario"
    user_email: str = ""
    text: str = Field(min_length=1)
    created_at: datetime | None = None


class ReportSubmission(BaseModel):
    """What a citizen sends: free text plus an optional manual entity choice."""

    model_config = _WIRE_CONFIG

    title: str = ""
    description: str = ""
    manual_entity: str | None = None
    category: str = "general"
    location: Location = Field(default_factory=Location)
    images: List[str] = Field(default_factory=list)
    user_id: str | None = None
    user_name: str = "Usuario"
    user_email: str = ""


class Report(BaseModel):
    model_config = _WIRE_CONFIG

    id: str | None = None
    title: str
    description: str = ""
    category: str = "general"
    location: Location = Field(default_factory=Location)
    images: List[str] = Field(default_factory=list)
    status: ReportStatus = ReportStatus.PENDIENTE
    entity_name: str = FALLBACK_ENTITY
    entity_id: str | None = None
    manually_assigned: bool = False
    ai_classification: AIClassification | None = None
    user_id: str | None = None
    user_name: str = "Usuario"
    user_email: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resolved_at: datetime | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    rating_comment: str | None = None
    version: int = Field(default=1, ge=1)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value: Any) -> ReportStatus:
        return canonicalize_status(value)

    def to_wire(self) -> dict[str, Any]:
        """Flat camelCase payload in the shape ``POST /reports`` expects."""
        payload = self.model_dump(by_alias=True, mode="json", exclude_none=True, exclude={"location"})
        payload["location"] = self.location.address
        if self.location.latitude is not None:
            payload["locationLat"] = self.location.latitude
        if self.location.longitude is not None:
            payload["locationLng"] = self.location.longitude
        return payload


class ReportPatch(BaseModel):
    """Partial update accepted by ``PATCH /reports/{id}``."""

    model_config = _WIRE_CONFIG

    status: ReportStatus | None = None
    entity_name: str | None = None
    entity_id: str | None = None
    rating: int | None = None
    rating_comment: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value: Any) -> ReportStatus | None:
        if value is None:
            return None
        return canonicalize_status(value)

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_unset=True)


def _first_present(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def normalize_report_payload(payload: dict[str, Any], *, fallback_entity: str = FALLBACK_ENTITY) -> dict[str, Any]:
    """Fold legacy report shapes into the canonical camelCase form.

    Handles ``entity`` (string or ``{id, name}`` object) in place of
    ``entityName``/``entityId``, a flat ``location`` address string with
    ``locationLat``/``locationLng`` (or ``address``, or database-style
    ``location_address``/``location_lat``/``location_lng``), and the
    ``"Sin asignar"`` placeholder entity name.
    """
    data = dict(payload)

    entity = data.pop("entity", None)
    if isinstance(entity, dict):
        data.setdefault("entityId", entity.get("id"))
        if entity.get("name") and not _first_present(data, "entityName", "entity_name"):
            data["entityName"] = entity["name"]
    elif isinstance(entity, str) and entity.strip():
        if not _first_present(data, "entityName", "entity_name"):
            data["entityName"] = entity

    name = _first_present(data, "entityName", "entity_name")
    data.pop("entity_name", None)
    if not name or str(name).strip() in ("", UNASSIGNED_ENTITY):
        name = fallback_entity
    data["entityName"] = name

    entity_id = _first_present(data, "entityId", "entity_id")
    data.pop("entity_id", None)
    data["entityId"] = entity_id or None

    location = data.get("location")
    if not isinstance(location, dict):
        address = _first_present(data, "address", "location_address")
        if isinstance(location, str) and location.strip():
            address = location
        data["location"] = {
            "address": address or "",
            "latitude": _first_present(data, "locationLat", "location_lat", "latitude"),
            "longitude": _first_present(data, "locationLng", "location_lng", "longitude"),
        }
    for key in ("address", "location_address", "locationLat", "location_lat", "locationLng", "location_lng"):
        data.pop(key, None)

    return data
