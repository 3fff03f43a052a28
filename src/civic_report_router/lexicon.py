"""Keyword lexicon: responsible entity -> trigger phrases."""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Sequence

from .config import LexiconConfig
from .settings import get_lexicon_path

FALLBACK_ENTITY = "Alcaldía General"

# Colombian-Spanish vocabulary, including regional slang. Order matters: it is
# the tie-break order of the classifier.
DEFAULT_ENTITY_KEYWORDS: Dict[str, List[str]] = {
    "Policía": [
        "disturbio", "disturbios", "asonada", "tropel", "desorden", "bochinche", "camorra", "gresca",
        "pelea", "riña", "bronca", "trifulca", "agarrón", "pelotera", "problema", "altercado",
        "ladrón", "ladrones", "raponero", "raponeros", "cogido", "pillo", "pillos", "malandro", "malandros",
        "atracador", "atracadores", "ñero", "ñeros", "maleta", "maletas", "bandido", "bandidos",
        "robo", "hurto", "atraco", "raponazo", "pela", "cosquilleo", "fleteo", "robar", "robaron",
        "vicio", "vicios", "bazuco", "perico", "marihuana", "mota", "yerba", "expendio", "jibaro", "jibaros",
        "vender droga", "vendiendo droga", "traficante", "narcotráfico", "narcos", "traqueto", "traquetos",
        "seguridad", "inseguridad", "peligro", "peligroso", "sospechoso", "sospechosos",
        "pandilla", "pandillas", "combo", "combos", "parche", "parches", "gallada", "galladas",
        "delincuencia", "delincuente", "delincuentes", "malhechor", "malhechores", "criminal", "criminales",
        "violencia", "violento", "agresión", "agredir", "golpear", "golpearon", "atacar", "atacaron",
        "asalto", "asaltaron", "amenaza", "amenazaron", "intimidación", "intimidar",
        "vandalismo", "vandalos", "daños", "destrozo", "destruyeron", "rompieron", "grafiti",
        "escándalo", "bulla", "desorden público", "orden público", "motín", "manifestación violenta",
        "arma", "armas", "pistola", "revólver", "cuchillo", "navaja", "machete", "fierro",
        "sicario", "sicarios", "pistolero", "matón", "paga diario", "secuestro", "extorsión",
        "patrulla", "policía", "cuadrante", "cai", "estación de policía", "uniformado",
    ],
    "Bomberos": [
        "incendio", "fuego", "candela", "fogata", "quemadero", "llamarada", "llamas",
        "humo", "humaredas", "se está quemando", "está quemando", "está prendido", "prendió",
        "arde", "ardiendo", "arder", "quema", "quemando", "quemar", "chispa", "chispas",
        "rescate", "rescatar", "atrapado", "atrapados", "atascado", "atorado", "encerrado",
        "explosión", "explotar", "explotó", "bomba", "estalló", "detonación", "deflagración",
        "gas", "fuga de gas", "escape de gas", "se huele a gas", "olor a gas", "cilindro",
        "gas propano", "gas natural", "pipeta", "tanque de gas", "bombona",
        "cortocircuito", "corto", "cables quemados", "conexión eléctrica", "chisporroteó",
        "brasas", "cenizas", "carbón", "combustión", "combustible", "inflamable",
        "conato", "conato de incendio", "principio de incendio", "amago",
        "extintor", "extinguir", "apagar", "apagar el fuego", "sofocar",
        "bombero", "bomberos", "cuerpo de bomberos", "estación de bomberos",
    ],
    "Hospital": [
        "médico", "doctor", "doctora", "enfermera", "enfermero", "paramédico",
        "salud", "emergencia médica", "urgencia", "urgencias", "urgente",
        "herido", "herida", "heridos", "lesión", "lesionado", "golpeado", "golpe", "golpes",
        "accidente", "choque", "chocó", "colisión", "atropellado", "atropello",
        "ambulancia", "ambulancias", "camilla", "paramédicos",
        "enfermo", "enferma", "maluco", "maluca", "mal", "grave", "gravemente", "crítico", "crítica",
        "desmayado", "desmayada", "desmayo", "se desmayó", "desvanecido", "desvanecida",
        "inconsciente", "sin conocimiento", "perdió el conocimiento", "no responde",
        "caído", "caída", "se cayó", "tropezó", "se pegó", "se golpeó",
        "está tirado", "está botado", "tirado en el piso", "en el suelo",
        "sangre", "sangrando", "sangra", "hemorragia", "desangrado", "botando sangre",
        "fractura", "roto", "quebrado", "quebradura", "hueso roto", "se quebró",
        "dolor", "le duele", "dolor fuerte", "dolor agudo", "sufriendo",
        "convulsión", "convulsiones", "temblores", "espasmos", "ataque",
        "infarto", "paro", "paro cardíaco", "corazón", "del corazón",
        "asfixia", "no puede respirar", "no respira", "ahogado", "se está ahogando",
        "mareo", "mareado", "vértigo", "náusea", "vómito", "vomitando",
        "fiebre", "temperatura", "calentura", "está caliente", "ardiendo en fiebre",
        "crisis", "ataque epiléptico", "epilepsia",
        "traumatismo", "trauma", "golpe en la cabeza", "cabeza",
        "intoxicación", "intoxicado", "envenenamiento", "envenenado", "se intoxicó",
        "mordedura", "mordió", "picadura", "picó", "serpiente", "culebra", "perro",
        "agonizando", "agonía", "moribundo", "muriendo", "muy mal",
        "socorro", "ayuda", "auxilio", "que alguien ayude", "necesita ayuda",
        "paciente", "le dio un mal", "patatús", "algo le dio", "se puso mal",
    ],
    "Alcaldía - Infraestructura": [
        "hueco", "huecos", "bache", "baches", "hundimiento", "hundido", "hundida",
        "vía", "vías", "calle", "calles", "carrera", "carreras", "avenida", "avenidas",
        "pavimento", "pavimento malo", "pavimento dañado", "asfalto", "asfalto roto",
        "puente", "puentes", "viaducto", "paso a nivel", "pontón",
        "calzada", "calzada rota", "andén", "andenes", "acera", "aceras", "sardinel",
        "construcción", "obra", "obras", "reparación", "reparación vial", "arreglo",
        "grieta", "grietas", "fisura", "rajadura", "partido", "partida",
        "deterioro", "deteriorado", "dañado", "daño", "daño vial", "roto", "rota",
        "carretera", "carretera mala", "carretera dañada", "autopista", "vía principal",
        "calle rota", "calle mala", "calle en mal estado", "calle destrozada",
        "túnel", "túneles", "paso subterráneo", "paso peatonal",
        "relleno", "tierra", "sin pavimentar", "destapada", "sin asfaltar",
        "obras públicas", "infraestructura", "vialidad",
    ],
    "Alcaldía - Servicios Públicos": [
        "alumbrado", "alumbrado público", "luminaria", "luminarias",
        "poste", "postes", "poste de luz", "luz", "luces",
        "bombilla", "bombillas", "bombillo", "bombillos", "foco", "focos",
        "semáforo", "semáforos", "pare", "señal", "señales",
        "iluminación", "iluminar", "oscuro", "oscuridad", "no hay luz",
        "parque", "parques", "jardín", "jardines", "zona verde", "zonas verdes",
        "arboles", "árbol", "plantas", "césped", "grama", "prado",
        "espacio público", "plaza", "plazas", "plazoleta", "glorieta",
        "ornato", "ornamentación", "decoración", "paisajismo",
        "mobiliario urbano", "bancas", "sillas", "canecas", "banca",
        "señalización", "señalización vial", "señales de tránsito", "demarcación",
        "paradero", "paraderos", "estación", "parada", "parada de bus",
        "cancha", "canchas", "polideportivo", "parque infantil", "juegos",
    ],
    "Empresa de Aseo": [
        "basura", "basuras", "residuo", "residuos", "desecho", "desechos",
        "mugre", "sucio", "sucia", "suciedad", "cochinada", "cochinero", "porquería",
        "escombros", "cascajo", "ripio", "desechos de construcción",
        "recolección", "recolectar", "recogida", "recoger basura",
        "contenedor", "contenedores", "caneca", "canecas", "basurero", "basureros",
        "limpieza", "limpiar", "aseo", "asear", "barrido", "barrer",
        "reciclaje", "reciclar", "reciclador", "recicladores",
        "desperdicios", "sobras", "despojos", "inmundicia",
        "botadero", "tiradero", "botado", "tirado",
        "está sucio", "está cochino", "está asqueroso", "está puercón",
        "mal olor", "hediondo", "fétido", "peste", "apesta",
        "camión de basura", "recolector", "carro del aseo",
        "desaseo", "falta de aseo", "contaminación", "contaminado",
        "bolsa de basura", "bolsas", "guacal", "recipiente",
    ],
    "Empresa de Acueducto": [
        "agua", "el agua", "tubería", "tuberías", "tubos", "tubo",
        "fuga", "fugas", "fuga de agua", "se sale el agua", "derrame",
        "alcantarillado", "alcantarilla", "alcantarillas", "cloaca", "sumidero",
        "desagüe", "drenaje", "rejilla", "reja", "imbornal",
        "inundación", "inundado", "inundada", "inundaciones",
        "acueducto", "red de agua", "servicio de agua",
        "cañería", "cañerías", "conducto", "conductos",
        "goteo", "goteando", "gotea", "chorrea", "chorreando",
        "riego", "regado", "se riega", "brota agua", "brotando agua",
        "aguas negras", "aguas residuales", "aguas servidas", "aguas sucias",
        "taponamiento", "tapado", "tapada", "obstruido", "obstrucción",
        "rebose", "rebosando", "se rebosa", "se desborda", "desborde",
        "empozamiento", "empozado", "pozo", "charco", "charcos",
        "encharcamiento", "encharcado", "embalse", "estancado",
        "brote", "brota", "brote de agua", "se sale", "se revienta",
        "roto", "rota", "reventado", "reventada", "quebrado",
        "sin agua", "no hay agua", "falta agua", "corte de agua",
        "tubo roto", "caño roto", "llave rota", "válvula",
    ],
    FALLBACK_ENTITY: [],
}


def _unique_terms(terms: Sequence[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    unique: list[str] = []
    for term in terms:
        cleaned = " ".join(str(term).split())
        key = cleaned.casefold()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        unique.append(cleaned)
    return tuple(unique)


@dataclass(frozen=True)
class LexiconEntry:
    entity: str
    triggers: tuple[str, ...]


@dataclass(frozen=True)
class Lexicon:
    """Immutable entity -> trigger phrase table, in declaration order."""

    entries: tuple[LexiconEntry, ...]
    fallback_entity: str

    def __post_init__(self) -> None:
        names = [e.entity for e in self.entries]
        if len(set(names)) != len(names):
            raise ValueError("Lexicon entity names must be unique")
        if self.fallback_entity not in names:
            raise ValueError(f"Fallback entity {self.fallback_entity!r} is not declared in the lexicon")

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Sequence[str]],
        fallback_entity: str | None = None,
    ) -> "Lexicon":
        entries = tuple(LexiconEntry(entity=name, triggers=_unique_terms(terms)) for name, terms in mapping.items())
        if fallback_entity is None:
            catch_all = [e.entity for e in entries if not e.triggers]
            if len(catch_all) != 1:
                raise ValueError(
                    "Lexicon needs exactly one entity without triggers (the fallback) "
                    "or an explicit fallback_entity."
                )
            fallback_entity = catch_all[0]
        return cls(entries=entries, fallback_entity=fallback_entity)

    @classmethod
    def from_config(cls, config: LexiconConfig) -> "Lexicon":
        return cls.from_mapping(
            {e.name: e.triggers for e in config.entities},
            fallback_entity=config.fallback_entity,
        )

    def __iter__(self) -> Iterator[LexiconEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def entity_names(self) -> list[str]:
        return [e.entity for e in self.entries]

    def triggers_for(self, entity: str) -> tuple[str, ...]:
        for entry in self.entries:
            if entry.entity == entity:
                return entry.triggers
        raise KeyError(entity)

    def to_mapping(self) -> dict[str, list[str]]:
        return {e.entity: list(e.triggers) for e in self.entries}

    def to_config(self) -> dict:
        return {
            "fallback_entity": self.fallback_entity,
            "entities": [{"name": e.entity, "triggers": list(e.triggers)} for e in self.entries],
        }


@lru_cache(maxsize=1)
def default_lexicon() -> Lexicon:
    return Lexicon.from_mapping(DEFAULT_ENTITY_KEYWORDS, fallback_entity=FALLBACK_ENTITY)


def load_lexicon(path: Path | None = None) -> Lexicon:
    """Load the lexicon from JSON, or the built-in vocabulary if the file is absent."""
    lexicon_path = path or get_lexicon_path()
    if not lexicon_path.exists():
        return default_lexicon()
    payload = json.loads(lexicon_path.read_text(encoding="utf-8"))
    return Lexicon.from_config(LexiconConfig.model_validate(payload))
