"""Orchestrateur de matching : score, filtre et classe les candidats d'un enregistrement."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from demolink.config import AlgorithmType, MatchingConfig
from demolink.matching.probabilistic import probabilistic_score
from demolink.matching.schema import MatchCandidateResult, MatchSearch, SearchStatus
from demolink.matching.scorers import deterministic_score
from demolink.matching.thresholds import ConfidenceBand, classify
from demolink.records import Record

logger = logging.getLogger(__name__)

_SCORERS = {
    AlgorithmType.DETERMINISTIC: deterministic_score,
    AlgorithmType.PROBABILISTIC: probabilistic_score,
}


def _is_same_record(source: Record, candidate: Record, *, by_id: bool = True) -> bool:
    return candidate is source or (by_id and bool(source.id) and candidate.id == source.id)


class Linker:
    """Moteur de matching d'un enregistrement source contre un pool de candidats."""

    def __init__(self, config: MatchingConfig) -> None:
        self.config = config
        self.threshold = config.threshold
        self.algorithm = config.algorithm_type

    def score_pair(
        self,
        source: Record,
        candidate: Record,
        algorithm: AlgorithmType | None = None,
    ) -> MatchCandidateResult:
        """Score d'une paire, sans filtrage. Calcul pur : aucun état partagé."""
        scorer = _SCORERS[AlgorithmType(algorithm or self.algorithm)]
        return scorer(source, candidate, self.config)

    def find_matches(
        self,
        source: Record,
        pool: Sequence[Record],
        *,
        algorithm: AlgorithmType | None = None,
        min_score: float | None = None,
        limit: int | None = None,
        exclude_same_id: bool = True,
    ) -> list[MatchCandidateResult]:
        """
        Candidats du pool classés par score décroissant.

        L'enregistrement source lui-même est écarté s'il figure dans le pool.
        Par défaut un candidat de même identifiant non vide est aussi écarté ;
        avec ``exclude_same_id=False`` seul l'objet source lui-même l'est
        (détection de doublons, où un identifiant répété est un signal).
        Les candidats sous ``min_score`` (par défaut ``threshold.low``) sont
        éliminés. À score égal, l'ordre d'insertion dans le pool est conservé.
        """
        algo = AlgorithmType(algorithm or self.algorithm)
        floor = self.threshold.low if min_score is None else min_score

        candidates: list[MatchCandidateResult] = []
        for idx, candidate in enumerate(pool):
            if _is_same_record(source, candidate, by_id=exclude_same_id):
                continue
            result = self.score_pair(source, candidate, algo)
            if result.score >= floor:
                candidates.append(replace(result, candidate_index=idx))

        candidates.sort(key=lambda c: c.score, reverse=True)
        logger.debug(
            "%s: %d candidat(s) >= %.1f sur %d (%s)", source.id or "<sans id>", len(candidates), floor, len(pool), algo.value
        )
        if limit is not None:
            return candidates[:limit]
        return candidates

    def search(
        self,
        source: Record,
        pool: Sequence[Record],
        *,
        min_score: float | None = None,
        fallback: bool = True,
    ) -> MatchSearch:
        """
        Recherche interactive avec issue explicite.

        Si l'algorithme configuré est probabiliste et ne retient aucun
        candidat, la recherche déterministe est jointe dans ``fallback`` (sans
        remplacer le résultat principal).
        """
        others = [c for c in pool if not _is_same_record(source, c)]
        if not others:
            return MatchSearch(status=SearchStatus.POOL_EMPTY, algorithm=self.algorithm)

        matches = self.find_matches(source, others, min_score=min_score)
        if matches:
            return MatchSearch(status=SearchStatus.FOUND, algorithm=self.algorithm, matches=matches)

        alt = None
        if fallback and self.algorithm is AlgorithmType.PROBABILISTIC:
            det = self.find_matches(source, others, algorithm=AlgorithmType.DETERMINISTIC, min_score=min_score)
            alt = MatchSearch(
                status=SearchStatus.FOUND if det else SearchStatus.NO_CANDIDATES_ABOVE_THRESHOLD,
                algorithm=AlgorithmType.DETERMINISTIC,
                matches=det,
            )
        return MatchSearch(
            status=SearchStatus.NO_CANDIDATES_ABOVE_THRESHOLD,
            algorithm=self.algorithm,
            fallback=alt,
        )

    def classify(self, result: MatchCandidateResult) -> ConfidenceBand:
        return classify(result.score, self.threshold)


def find_matches_for_record(
    source: Record,
    candidate_pool: Sequence[Record],
    config: MatchingConfig,
) -> list[MatchCandidateResult]:
    """Recherche interactive d'un enregistrement : candidats classés au-dessus de threshold.low."""
    return Linker(config).find_matches(source, candidate_pool)
