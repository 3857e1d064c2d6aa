"""
Score probabiliste (modèle de Fellegi-Sunter).

Chaque champ comparable apporte un poids logarithmique :

- accord (similarité >= seuil d'accord du champ) : ``sim * log2(m / u)``,
  le facteur ``sim`` donnant un crédit partiel aux champs approchés ;
- désaccord : ``log2((1 - m) / (1 - u))``.

La somme (log-cote en base 2) est ramenée sur 0-100 par la logistique
``100 / (1 + 2 ** -total)`` : beaucoup de petits accords saturent vers 100
au lieu de diverger. Un champ vide d'un côté, ou une date illisible, est
simplement omis du total.
"""

from __future__ import annotations

import math

from demolink.config import AlgorithmType, FieldProbabilities, MatchingConfig
from demolink.matching.comparators import compare_field, is_unparseable
from demolink.matching.schema import MatchCandidateResult
from demolink.records import Record


def agreement_weight(probs: FieldProbabilities) -> float:
    return math.log2(probs.m / probs.u)


def disagreement_weight(probs: FieldProbabilities) -> float:
    return math.log2((1 - probs.m) / (1 - probs.u))


def field_weight(probs: FieldProbabilities, similarity: float) -> float:
    """Poids Fellegi-Sunter d'un champ pour une similarité donnée."""
    if similarity >= probs.agreement_cut and similarity > 0:
        return similarity * agreement_weight(probs)
    return disagreement_weight(probs)


def log_odds_to_confidence(total: float) -> float:
    """Logistique en base 2, bornée à [0, 100]."""
    if total >= 0:
        return 100.0 / (1.0 + 2.0 ** -total)
    # Forme équivalente qui évite le dépassement pour les très grands négatifs.
    p = 2.0**total
    return 100.0 * p / (1.0 + p)


def probabilistic_score(source: Record, candidate: Record, config: MatchingConfig) -> MatchCandidateResult:
    total = 0.0
    details: dict[str, float] = {}
    matched_on: list[str] = []

    for name, _w in config.weighted_fields():
        sim = compare_field(name, source, candidate, fuzzy_matching=config.fuzzy_matching)
        if sim is None:
            continue
        if is_unparseable(name, source, candidate):
            # Date illisible : similarité nulle mais aucun poids, ni pour ni contre.
            details[name] = 0.0
            continue
        weight = field_weight(config.probabilities_for(name), sim)
        total += weight
        details[name] = sim
        if weight > 0:
            matched_on.append(name)

    return MatchCandidateResult(
        candidate_record_id=candidate.id,
        score=log_odds_to_confidence(total),
        matched_on=matched_on,
        field_scores=details,
        algorithm=AlgorithmType.PROBABILISTIC,
        log_odds=total,
    )
