"""Configuration du matching : pondérations, seuils, probabilités m/u et profils."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from demolink.records import ADMINISTRATIVE_FIELDS, SCORABLE_FIELDS, FieldKind


class DemolinkError(Exception):
    """Exception de base pour demolink."""


class ConfigError(DemolinkError, ValueError):
    """Erreur de validation de la configuration."""


class ConfigFormatError(DemolinkError):
    """Configuration sérialisée illisible (JSON invalide, mauvais type racine)."""


def read_bool(d: dict[str, Any], key: str, default: bool) -> bool:
    """Option booléenne d'une config sérialisée ; rejette "false", 0, etc."""
    value = d.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} doit être un booléen JSON (true/false), reçu {value!r}")
    return value


class AlgorithmType(str, Enum):
    DETERMINISTIC = "deterministic"
    PROBABILISTIC = "probabilistic"


FieldWeights = dict[str, float]

DEFAULT_FIELD_WEIGHTS: FieldWeights = {
    "first_name": 45,
    "last_name": 45,
    "middle_name": 20,
    "birth_date": 30,
    "sex": 15,
    "village": 25,
    "sub_village": 20,
    "district": 15,
    "household_head": 20,
    "mother_name": 25,
    "oldest_household_member": 25,
    "phone_number": 20,
    "identifiers": 30,
}


@dataclass(frozen=True)
class FieldProbabilities:
    """
    Paramètres Fellegi-Sunter d'un champ.

    m: probabilité d'accord sachant une vraie correspondance.
    u: probabilité d'accord fortuit entre deux personnes distinctes.
    agreement_cut: similarité minimale (0-1) pour compter le champ comme en accord.
    """

    m: float
    u: float
    agreement_cut: float = 1.0


_NAME_CUT = 0.85

DEFAULT_PROBABILITIES: dict[str, FieldProbabilities] = {
    "first_name": FieldProbabilities(0.95, 0.05, _NAME_CUT),
    "middle_name": FieldProbabilities(0.80, 0.05, _NAME_CUT),
    "last_name": FieldProbabilities(0.92, 0.05, _NAME_CUT),
    "sex": FieldProbabilities(0.99, 0.50),
    "birth_date": FieldProbabilities(0.88, 0.03, 0.8),
    "village": FieldProbabilities(0.85, 0.10, _NAME_CUT),
    "sub_village": FieldProbabilities(0.75, 0.03, _NAME_CUT),
    "district": FieldProbabilities(0.90, 0.20, _NAME_CUT),
    "household_head": FieldProbabilities(0.70, 0.02, _NAME_CUT),
    "mother_name": FieldProbabilities(0.80, 0.02, _NAME_CUT),
    "oldest_household_member": FieldProbabilities(0.70, 0.01, _NAME_CUT),
    "phone_number": FieldProbabilities(0.60, 0.001),
    "identifiers": FieldProbabilities(0.90, 0.001),
}


def _check_field_name(name: str, what: str) -> None:
    if name in ADMINISTRATIVE_FIELDS:
        raise ConfigError(f"{what}: le champ administratif {name!r} est exclu du scoring")
    if name not in SCORABLE_FIELDS:
        raise ConfigError(f"{what}: champ inconnu {name!r}. Valides: {sorted(SCORABLE_FIELDS)}")


@dataclass(frozen=True)
class Threshold:
    """Bornes des bandes de confiance (0-100) : high >= medium >= low."""

    high: float = 80.0
    medium: float = 60.0
    low: float = 40.0

    def __post_init__(self) -> None:
        for name in ("high", "medium", "low"):
            val = getattr(self, name)
            if not isinstance(val, (int, float)) or math.isnan(val) or not 0 <= val <= 100:
                raise ConfigError(f"threshold.{name} doit être entre 0 et 100 (got {val!r})")
        if self.high < self.medium:
            raise ConfigError(f"threshold.high ({self.high}) doit être >= threshold.medium ({self.medium})")
        if self.medium < self.low:
            raise ConfigError(f"threshold.medium ({self.medium}) doit être >= threshold.low ({self.low})")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Threshold:
        missing = [k for k in ("high", "medium", "low") if k not in d]
        if missing:
            raise ConfigError(f"threshold incomplet, clés manquantes: {missing}")
        try:
            high, medium, low = float(d["high"]), float(d["medium"]), float(d["low"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"threshold invalide: {d!r}") from e
        return cls(high=high, medium=medium, low=low)


@dataclass(frozen=True)
class MatchingConfig:
    """
    Configuration complète d'un appel au moteur.

    Validée à la construction : toute incohérence lève ConfigError avant le
    moindre scoring.
    """

    field_weights: FieldWeights = field(default_factory=lambda: dict(DEFAULT_FIELD_WEIGHTS))
    threshold: Threshold = field(default_factory=Threshold)
    fuzzy_matching: bool = True
    algorithm_type: AlgorithmType = AlgorithmType.DETERMINISTIC
    probabilities: dict[str, FieldProbabilities] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.threshold, Threshold):
            raise ConfigError("threshold doit être une instance de Threshold")
        try:
            algo = AlgorithmType(self.algorithm_type)
        except ValueError as e:
            valid = sorted(a.value for a in AlgorithmType)
            raise ConfigError(f"algorithm_type invalide: {self.algorithm_type!r}. Valides: {valid}") from e
        object.__setattr__(self, "algorithm_type", algo)

        for name, weight in self.field_weights.items():
            _check_field_name(name, "field_weights")
            if not isinstance(weight, (int, float)) or math.isnan(weight) or weight < 0:
                raise ConfigError(f"field_weights[{name!r}] doit être >= 0 (got {weight!r})")

        for name, probs in self.probabilities.items():
            _check_field_name(name, "probabilities")
            if not 0 < probs.u < probs.m < 1:
                raise ConfigError(f"probabilities[{name!r}]: 0 < u < m < 1 requis (got m={probs.m}, u={probs.u})")
            if not 0 <= probs.agreement_cut <= 1:
                raise ConfigError(f"probabilities[{name!r}].agreement_cut doit être entre 0 et 1")

    def weighted_fields(self) -> list[tuple[str, float]]:
        """Champs de poids strictement positif, dans l'ordre du catalogue."""
        return [(name, float(self.field_weights[name])) for name in SCORABLE_FIELDS if self.field_weights.get(name, 0) > 0]

    def probabilities_for(self, name: str) -> FieldProbabilities:
        return self.probabilities.get(name) or DEFAULT_PROBABILITIES[name]

    def field_kind(self, name: str) -> FieldKind:
        return SCORABLE_FIELDS[name]

    def with_algorithm(self, algorithm_type: AlgorithmType | str) -> MatchingConfig:
        return MatchingConfig(
            field_weights=dict(self.field_weights),
            threshold=self.threshold,
            fuzzy_matching=self.fuzzy_matching,
            algorithm_type=AlgorithmType(algorithm_type),
            probabilities=dict(self.probabilities),
        )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MatchingConfig:
        weights = d.get("field_weights", DEFAULT_FIELD_WEIGHTS)
        if not isinstance(weights, dict):
            raise ConfigError("field_weights doit être un objet {champ: poids}")
        try:
            weights = {str(k): float(v) for k, v in weights.items()}
        except (TypeError, ValueError) as e:
            raise ConfigError(f"field_weights invalide: {e}") from e

        threshold = Threshold.from_dict(d["threshold"]) if "threshold" in d else Threshold()

        probabilities: dict[str, FieldProbabilities] = {}
        for name, p in (d.get("probabilities") or {}).items():
            default_cut = DEFAULT_PROBABILITIES[name].agreement_cut if name in DEFAULT_PROBABILITIES else 1.0
            try:
                probabilities[name] = FieldProbabilities(
                    m=float(p["m"]),
                    u=float(p["u"]),
                    agreement_cut=float(p.get("agreement_cut", default_cut)),
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigError(f"probabilities[{name!r}] invalide: {p!r}") from e

        return cls(
            field_weights=weights,
            threshold=threshold,
            fuzzy_matching=read_bool(d, "fuzzy_matching", True),
            algorithm_type=d.get("algorithm_type", AlgorithmType.DETERMINISTIC.value),
            probabilities=probabilities,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_weights": dict(self.field_weights),
            "threshold": {"high": self.threshold.high, "medium": self.threshold.medium, "low": self.threshold.low},
            "fuzzy_matching": self.fuzzy_matching,
            "algorithm_type": self.algorithm_type.value,
            "probabilities": {
                name: {"m": p.m, "u": p.u, "agreement_cut": p.agreement_cut} for name, p in self.probabilities.items()
            },
        }

    @classmethod
    def from_json(cls, text: str) -> MatchingConfig:
        """
        Importe une configuration exportée par ``to_json``.

        Raises:
            ConfigFormatError: JSON invalide ou racine qui n'est pas un objet.
            ConfigError: Configuration invalide.
        """
        try:
            d = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigFormatError(f"JSON invalide: {e}") from e
        if not isinstance(d, dict):
            raise ConfigFormatError("La configuration doit être un objet JSON")
        return cls.from_dict(d)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def default_profiles() -> dict[str, MatchingConfig]:
    """Profils nommés prédéfinis, reconstruits à chaque appel."""
    base = dict(DEFAULT_FIELD_WEIGHTS)
    return {
        "Default": MatchingConfig(field_weights=dict(base)),
        "DSS Linkage": MatchingConfig(
            field_weights={
                **base,
                "first_name": 40,
                "last_name": 40,
                "middle_name": 15,
                "birth_date": 25,
                "village": 20,
                "sub_village": 15,
                "oldest_household_member": 15,
            },
            threshold=Threshold(high=85, medium=70, low=50),
        ),
        "Name Priority": MatchingConfig(
            field_weights={**base, "birth_date": 25, "village": 20},
            threshold=Threshold(high=70, medium=45, low=25),
        ),
        "Lenient Matching": MatchingConfig(
            field_weights=dict(base),
            threshold=Threshold(high=60, medium=35, low=15),
        ),
        "Probabilistic": MatchingConfig(
            field_weights=dict(base),
            threshold=Threshold(high=70, medium=50, low=30),
            algorithm_type=AlgorithmType.PROBABILISTIC,
        ),
    }


def get_profile(name: str) -> MatchingConfig:
    profiles = default_profiles()
    if name not in profiles:
        raise ConfigError(f"Profil inconnu: {name!r}. Disponibles: {sorted(profiles)}")
    return profiles[name]
