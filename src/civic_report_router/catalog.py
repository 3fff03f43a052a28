"""Entity catalog: the responsible entities reports can be routed to."""

from __future__ import annotations

import json
import unicodedata
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator

from .lexicon import FALLBACK_ENTITY
from .models import Entity
from .settings import get_entities_path

if TYPE_CHECKING:
    from .store import ReportStore

DEFAULT_ENTITY_CATEGORIES: dict[str, str] = {
    "Policía": "Seguridad",
    "Bomberos": "Emergencias",
    "Hospital": "Salud",
    "Alcaldía - Infraestructura": "Infraestructura",
    "Alcaldía - Servicios Públicos": "Servicios Públicos",
    "Empresa de Aseo": "Aseo",
    "Empresa de Acueducto": "Acueducto",
    FALLBACK_ENTITY: "General",
}


def slugify(value: str) -> str:
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    words = "".join(ch if ch.isalnum() else " " for ch in ascii_value.lower()).split()
    return "-".join(words)


class EntityCatalog:
    """Ordered set of entities keyed by exact name.

    Names, not ids, are the join key between the classifier and the entity
    directory, so lookups use plain string equality.
    """

    def __init__(self, entities: Iterable[Entity] = ()) -> None:
        self._entities: list[Entity] = []
        self._by_name: dict[str, Entity] = {}
        for entity in entities:
            if entity.name in self._by_name:
                raise ValueError(f"Duplicate entity name in catalog: {entity.name!r}")
            self._entities.append(entity)
            self._by_name[entity.name] = entity

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def names(self) -> list[str]:
        return [e.name for e in self._entities]

    def get(self, name: str | None) -> Entity | None:
        if name is None:
            return None
        return self._by_name.get(name)

    def resolve_id(self, name: str | None) -> str | None:
        entity = self.get(name)
        return entity.id if entity else None


def default_catalog() -> EntityCatalog:
    return EntityCatalog(
        Entity(id=slugify(name), name=name, category=category)
        for name, category in DEFAULT_ENTITY_CATEGORIES.items()
    )


def _parse_entities(payload: object) -> list[Entity]:
    block = payload.get("entities", []) if isinstance(payload, dict) else payload
    entities: list[Entity] = []
    for item in block or []:
        entity = Entity.model_validate(item)
        if entity.id is None:
            entity = entity.model_copy(update={"id": slugify(entity.name)})
        entities.append(entity)
    return entities


def load_catalog(path: Path | None = None) -> EntityCatalog:
    catalog_path = path or get_entities_path()
    if not catalog_path.exists():
        return default_catalog()
    payload = json.loads(catalog_path.read_text(encoding="utf-8"))
    return EntityCatalog(_parse_entities(payload))


def catalog_from_store(store: "ReportStore") -> EntityCatalog:
    return EntityCatalog(store.list_entities())
