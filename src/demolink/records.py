"""Forme canonique d'un enregistrement démographique et catalogue des champs."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class FieldKind(str, Enum):
    """Mode de comparaison d'un champ."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    DATE = "date"
    IDENTIFIER = "identifier"


# Champs utilisables dans les pondérations, dans l'ordre d'évaluation.
SCORABLE_FIELDS: dict[str, FieldKind] = {
    "first_name": FieldKind.FUZZY,
    "middle_name": FieldKind.FUZZY,
    "last_name": FieldKind.FUZZY,
    "sex": FieldKind.EXACT,
    "birth_date": FieldKind.DATE,
    "village": FieldKind.FUZZY,
    "sub_village": FieldKind.FUZZY,
    "district": FieldKind.FUZZY,
    "household_head": FieldKind.FUZZY,
    "mother_name": FieldKind.FUZZY,
    "oldest_household_member": FieldKind.FUZZY,
    "phone_number": FieldKind.EXACT,
    "identifiers": FieldKind.IDENTIFIER,
}

# Chef de cellule (balozi) : administratif uniquement, jamais pondéré ni comparé.
ADMINISTRATIVE_FIELDS: frozenset[str] = frozenset(
    {
        "cell_leader_first_name",
        "cell_leader_middle_name",
        "cell_leader_last_name",
    }
)


@dataclass(frozen=True)
class Identifier:
    """Identifiant externe (type, valeur), ex. ("clinic_id", "TZ-0042")."""

    type: str
    value: str


@dataclass
class RecordMetadata:
    created_at: str = ""
    updated_at: str = ""
    source: str = ""


@dataclass
class Record:
    """Enregistrement démographique canonique (visite clinique ou registre communautaire)."""

    id: str = ""
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    sex: str = ""
    birth_date: str = ""
    village: str = ""
    sub_village: str = ""
    district: str = ""
    household_head: str = ""
    mother_name: str = ""
    oldest_household_member: str = ""
    phone_number: str = ""
    identifiers: list[Identifier] = field(default_factory=list)
    metadata: RecordMetadata = field(default_factory=RecordMetadata)
    cell_leader_first_name: str = ""
    cell_leader_middle_name: str = ""
    cell_leader_last_name: str = ""

    def value_of(self, name: str) -> Any:
        """Valeur brute d'un champ comparable."""
        if name not in SCORABLE_FIELDS:
            raise KeyError(f"Champ non comparable: {name!r}")
        return getattr(self, name)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Record:
        """
        Construit un Record depuis un dict aux clés canoniques (snake_case).

        Les clés inconnues sont ignorées : la résolution d'alias (``FirstName``,
        en-têtes CSV entre guillemets...) relève de la couche d'import.
        """
        known = {f.name for f in fields(cls)} - {"identifiers", "metadata"}
        kwargs: dict[str, Any] = {}
        for key in known:
            val = d.get(key)
            if val is not None:
                kwargs[key] = str(val)

        identifiers = [
            Identifier(type=str(i.get("type", "")), value=str(i.get("value", "")))
            for i in d.get("identifiers") or []
        ]
        meta = d.get("metadata") or {}
        metadata = RecordMetadata(
            created_at=str(meta.get("created_at", "")),
            updated_at=str(meta.get("updated_at", "")),
            source=str(meta.get("source", "")),
        )
        return cls(identifiers=identifiers, metadata=metadata, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {f.name: getattr(self, f.name) for f in fields(self)}
        d["identifiers"] = [{"type": i.type, "value": i.value} for i in self.identifiers]
        d["metadata"] = {
            "created_at": self.metadata.created_at,
            "updated_at": self.metadata.updated_at,
            "source": self.metadata.source,
        }
        return d
