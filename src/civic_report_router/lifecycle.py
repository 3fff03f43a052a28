"""Report status lifecycle.

States: ``pendiente`` (initial), ``en-proceso``, ``resuelto`` and
``rechazado`` (terminal). Any state may move to any other through an explicit
administrative update; legality checks, if wanted, live in a pluggable guard so
callers never change. Every function takes the current report and returns the
next one without touching its input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from .catalog import EntityCatalog
from .errors import InvalidRatingError, TransitionNotAllowedError
from .feature_flags import get_feature_flag
from .models import Report, ReportPatch, ReportStatus, canonicalize_status

TransitionGuard = Callable[[ReportStatus, ReportStatus], None]

TERMINAL_STATUSES = frozenset({ReportStatus.RESUELTO, ReportStatus.RECHAZADO})
MIN_RATING = 1
MAX_RATING = 5


def initial_status() -> ReportStatus:
    return ReportStatus.PENDIENTE


def is_terminal(status: str | ReportStatus) -> bool:
    return canonicalize_status(status) in TERMINAL_STATUSES


def permissive_guard(current: ReportStatus, target: ReportStatus) -> None:
    return None


def strict_guard(current: ReportStatus, target: ReportStatus) -> None:
    if current in TERMINAL_STATUSES and target != current:
        raise TransitionNotAllowedError(current.value, target.value)


def guard_from_flags() -> TransitionGuard:
    if get_feature_flag("strict_status_transitions", False):
        return strict_guard
    return permissive_guard


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def transition(
    report: Report,
    new_status: str | ReportStatus,
    *,
    guard: TransitionGuard | None = None,
    now: datetime | None = None,
) -> Report:
    target = canonicalize_status(new_status)
    (guard or permissive_guard)(report.status, target)

    timestamp = _now(now)
    updates: dict = {"status": target, "updated_at": timestamp}
    if target is ReportStatus.RESUELTO and report.resolved_at is None:
        updates["resolved_at"] = timestamp
    return report.model_copy(update=updates)


def reassign_entity(
    report: Report,
    entity_name: str,
    *,
    entity_id: str | None = None,
    catalog: EntityCatalog | None = None,
    now: datetime | None = None,
) -> Report:
    """Point the report at another entity; allowed in every state.

    Only the entity name and id change. ``manually_assigned`` and
    ``ai_classification`` keep describing how the report was routed at
    submission, which is all a ``PATCH`` to the hosted API can express too.
    """
    name = entity_name.strip()
    if not name:
        raise ValueError("entity_name must not be empty")
    resolved_id = entity_id
    if resolved_id is None and catalog is not None:
        resolved_id = catalog.resolve_id(name)
    return report.model_copy(
        update={
            "entity_name": name,
            "entity_id": resolved_id,
            "updated_at": _now(now),
        }
    )


def validate_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
    return rating


def can_rate(report: Report) -> bool:
    # Presentation-layer convention only; apply_patch does not enforce it.
    return report.status is ReportStatus.RESUELTO and report.rating is None


def apply_patch(
    report: Report,
    patch: ReportPatch,
    *,
    guard: TransitionGuard | None = None,
    catalog: EntityCatalog | None = None,
    now: datetime | None = None,
) -> Report:
    timestamp = _now(now)
    updated = report
    fields = patch.model_fields_set

    if patch.status is not None:
        updated = transition(updated, patch.status, guard=guard, now=timestamp)

    if patch.entity_name is not None:
        updated = reassign_entity(
            updated,
            patch.entity_name,
            entity_id=patch.entity_id,
            catalog=catalog,
            now=timestamp,
        )
    elif "entity_id" in fields:
        updated = updated.model_copy(update={"entity_id": patch.entity_id, "updated_at": timestamp})

    if patch.rating is not None:
        updates: dict = {"rating": validate_rating(patch.rating), "updated_at": timestamp}
        if "rating_comment" in fields:
            updates["rating_comment"] = patch.rating_comment
        updated = updated.model_copy(update=updates)
    elif "rating_comment" in fields:
        updated = updated.model_copy(update={"rating_comment": patch.rating_comment, "updated_at": timestamp})

    return updated
