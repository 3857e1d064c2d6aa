"""Détection des doublons au sein d'un même pool d'enregistrements."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from demolink.config import ConfigError, MatchingConfig
from demolink.matching.linker import Linker
from demolink.records import Record

logger = logging.getLogger(__name__)

DEFAULT_DUPLICATE_THRESHOLD = 85.0


class DuplicateResolution(str, Enum):
    PENDING = "pending"
    MERGED = "merged"
    KEPT_SEPARATE = "kept_separate"
    DELETED = "deleted"


@dataclass
class DuplicateGroup:
    """Composante connexe de la relation « doublon probable »."""

    id: str
    records: list[Record]
    similarity_score: float
    matching_fields: list[str]
    suggested_master: str | None = None
    resolution: DuplicateResolution = DuplicateResolution.PENDING
    pairs: list[tuple[str, str, float]] = field(default_factory=list)

    def resolve(self, resolution: DuplicateResolution | str, master_id: str | None = None) -> None:
        """Enregistre la décision du relecteur. ``master_id`` doit appartenir au groupe."""
        if master_id is not None and master_id not in {r.id for r in self.records}:
            raise ValueError(f"{master_id!r} n'appartient pas au groupe {self.id}")
        self.resolution = DuplicateResolution(resolution)
        if master_id is not None:
            self.suggested_master = master_id


class _UnionFind:
    def __init__(self, n: int) -> None:
        self.parent = list(range(n))

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, i: int, j: int) -> None:
        ri, rj = self.find(i), self.find(j)
        if ri != rj:
            # La plus petite racine gagne : la racine est le premier membre du groupe.
            lo, hi = min(ri, rj), max(ri, rj)
            self.parent[hi] = lo


def find_duplicates(
    records: Sequence[Record],
    threshold: float = DEFAULT_DUPLICATE_THRESHOLD,
    config: MatchingConfig | None = None,
) -> list[DuplicateGroup]:
    """
    Regroupe les enregistrements dont le score mutuel atteint ``threshold``.

    Les groupes sont les composantes connexes (fermeture transitive) : A~B et
    B~C placent A, B et C ensemble même si A et C sont sous le seuil. Chaque
    groupe porte le score maximal de ses paires et l'union ordonnée des champs
    concordants. Les groupes suivent l'ordre de leur premier membre.

    Raises:
        ConfigError: Seuil hors de [0, 100].
    """
    if not 0 <= threshold <= 100:
        raise ConfigError(f"Le seuil de doublon doit être entre 0 et 100 (got {threshold})")

    linker = Linker(config or MatchingConfig())
    pool = list(records)
    uf = _UnionFind(len(pool))
    edges: list[tuple[int, int, float, list[str]]] = []

    # Le score est symétrique : chaque paire n'est évaluée qu'une fois.
    for i, record in enumerate(pool):
        rest = pool[i + 1 :]
        # Deux entrées distinctes de même identifiant restent comparées.
        for cand in linker.find_matches(record, rest, min_score=threshold, exclude_same_id=False):
            j = i + 1 + cand.candidate_index
            edges.append((i, j, cand.score, cand.matched_on))
            uf.union(i, j)

    members: dict[int, list[int]] = {}
    for idx in range(len(pool)):
        members.setdefault(uf.find(idx), []).append(idx)

    edges_by_root: dict[int, list[tuple[int, int, float, list[str]]]] = {}
    for edge in edges:
        edges_by_root.setdefault(uf.find(edge[0]), []).append(edge)

    groups: list[DuplicateGroup] = []
    for root in sorted(members):
        idxs = members[root]
        if len(idxs) < 2:
            continue
        group_edges = edges_by_root.get(root, [])
        fields_union: list[str] = []
        for _i, _j, _score, matched_on in group_edges:
            for name in matched_on:
                if name not in fields_union:
                    fields_union.append(name)
        group_records = [pool[k] for k in idxs]
        groups.append(
            DuplicateGroup(
                id=f"dup_{len(groups) + 1}",
                records=group_records,
                similarity_score=max(score for _i, _j, score, _m in group_edges),
                matching_fields=fields_union,
                suggested_master=group_records[0].id or None,
                pairs=[(pool[i].id, pool[j].id, score) for i, j, score, _m in group_edges],
            )
        )

    logger.info("%d groupe(s) de doublons sur %d enregistrement(s) (seuil %.1f)", len(groups), len(pool), threshold)
    return groups
