"""Score déterministe : combinaison linéaire pondérée des similarités par champ."""

from __future__ import annotations

from demolink.config import AlgorithmType, MatchingConfig
from demolink.matching.comparators import compare_field
from demolink.matching.schema import FieldScore, MatchCandidateResult
from demolink.records import Record

# Similarité à partir de laquelle un champ figure dans matched_on.
AGREEMENT_CUT = 0.5


def score_record_pair(
    source: Record,
    candidate: Record,
    config: MatchingConfig,
) -> tuple[float, FieldScore, list[str]]:
    """
    Calcule le score global (pondéré, 0-100) entre deux enregistrements.

    Seuls les champs renseignés des deux côtés entrent au dénominateur : un
    champ manquant ne pénalise pas le score atteignable.

    Returns:
        (score_global, {champ: similarité}, champs en accord)
    """
    total_weight = 0.0
    weighted_sum = 0.0
    details: FieldScore = {}
    matched_on: list[str] = []

    for name, w in config.weighted_fields():
        sim = compare_field(name, source, candidate, fuzzy_matching=config.fuzzy_matching)
        if sim is None:
            continue
        total_weight += w
        weighted_sum += sim * w
        details[name] = sim
        if sim >= AGREEMENT_CUT:
            matched_on.append(name)

    if total_weight == 0:
        return 0.0, details, matched_on
    score = 100.0 * weighted_sum / total_weight
    return max(0.0, min(100.0, score)), details, matched_on


def deterministic_score(source: Record, candidate: Record, config: MatchingConfig) -> MatchCandidateResult:
    score, details, matched_on = score_record_pair(source, candidate, config)
    return MatchCandidateResult(
        candidate_record_id=candidate.id,
        score=score,
        matched_on=matched_on,
        field_scores=details,
        algorithm=AlgorithmType.DETERMINISTIC,
    )
