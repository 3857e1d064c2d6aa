"""Schémas et types pour le matching."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from demolink.config import AlgorithmType

FieldScore = dict[str, float]  # similarité par champ, 0-1


@dataclass(frozen=True)
class MatchCandidateResult:
    """Un candidat classé pour un enregistrement source. Jamais modifié après création."""

    candidate_record_id: str
    score: float
    matched_on: list[str]
    field_scores: FieldScore
    algorithm: AlgorithmType = AlgorithmType.DETERMINISTIC
    log_odds: float | None = None  # total Fellegi-Sunter (probabiliste uniquement)
    candidate_index: int = -1  # position dans le pool d'origine

    def __repr__(self) -> str:
        return f"MatchCandidateResult(candidate={self.candidate_record_id!r}, score={self.score:.1f})"


class SearchStatus(str, Enum):
    FOUND = "found"
    NO_CANDIDATES_ABOVE_THRESHOLD = "no_candidates_above_threshold"
    POOL_EMPTY = "pool_empty"


@dataclass(frozen=True)
class MatchSearch:
    """
    Issue d'une recherche interactive pour un enregistrement.

    ``status`` distingue un pool vide d'une absence de candidat au-dessus du
    seuil. Lorsqu'une recherche probabiliste ne retient aucun candidat,
    ``fallback`` porte la recherche déterministe équivalente ; c'est à
    l'appelant de décider s'il l'utilise.
    """

    status: SearchStatus
    algorithm: AlgorithmType
    matches: list[MatchCandidateResult] = field(default_factory=list)
    fallback: MatchSearch | None = None

    @property
    def best(self) -> MatchCandidateResult | None:
        return self.matches[0] if self.matches else None


class MatchStatus(str, Enum):
    MATCHED = "matched"
    REJECTED = "rejected"
    MANUAL_REVIEW = "manual-review"


@dataclass(frozen=True)
class MatchResult:
    """Décision de correspondance (humaine ou auto-acceptation batch), persistée à l'extérieur."""

    source_id: str
    match_id: str | None
    status: MatchStatus
    confidence: float
    field_scores: FieldScore = field(default_factory=dict)
    consent_obtained: bool = False
    consent_date: datetime | None = None
    notes: str = ""
    matched_by: str = ""
    matched_at: datetime = field(default_factory=datetime.now)

    def corrected(self, **changes: object) -> MatchResult:
        """Nouvelle décision remplaçant celle-ci (l'original reste inchangé)."""
        changes.setdefault("matched_at", datetime.now())
        return replace(self, **changes)  # type: ignore[arg-type]
