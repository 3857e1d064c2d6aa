"""Jobs de matching batch : traitement par lots, politique d'auto-acceptation, progression."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from demolink.config import AlgorithmType, ConfigError, DemolinkError, MatchingConfig, read_bool
from demolink.matching.linker import Linker
from demolink.matching.schema import MatchCandidateResult, MatchResult, MatchStatus
from demolink.records import Record

logger = logging.getLogger(__name__)


class BatchJobError(DemolinkError):
    """Opération impossible sur un job batch (statut incompatible)."""


class BatchJobNotFoundError(BatchJobError):
    """Identifiant de job inconnu."""


class BatchMatchStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({BatchMatchStatus.COMPLETED, BatchMatchStatus.CANCELLED, BatchMatchStatus.ERROR})


class AutoMatchStrategy(str, Enum):
    HIGH_CONFIDENCE_ONLY = "high-confidence-only"
    THRESHOLD_BASED = "threshold-based"
    MANUAL_REVIEW_ALL = "manual-review-all"
    BEST_MATCH_ONLY = "best-match-only"


class DuplicateHandling(str, Enum):
    SKIP = "skip"
    MERGE = "merge"
    KEEP_ALL = "keep-all"


class RecordOutcome(str, Enum):
    AUTO_MATCHED = "auto-matched"
    MANUAL_REVIEW = "manual-review"
    NO_MATCH = "no-match"
    ERROR = "error"


@dataclass(frozen=True)
class BatchMatchConfig:
    """Règles d'un job batch. Validées à la construction."""

    auto_match_strategy: AutoMatchStrategy = AutoMatchStrategy.HIGH_CONFIDENCE_ONLY
    auto_match_threshold: float = 85.0
    manual_review_threshold: float = 60.0
    max_matches_per_record: int = 5
    batch_size: int = 10
    handle_duplicates: DuplicateHandling = DuplicateHandling.SKIP
    allow_multiple_matches: bool = False
    skip_no_matches: bool = False
    best_match_margin: float = 5.0
    max_workers: int = 1

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "auto_match_strategy", AutoMatchStrategy(self.auto_match_strategy))
        except ValueError as e:
            valid = sorted(s.value for s in AutoMatchStrategy)
            raise ConfigError(f"auto_match_strategy invalide: {self.auto_match_strategy!r}. Valides: {valid}") from e
        try:
            object.__setattr__(self, "handle_duplicates", DuplicateHandling(self.handle_duplicates))
        except ValueError as e:
            valid = sorted(s.value for s in DuplicateHandling)
            raise ConfigError(f"handle_duplicates invalide: {self.handle_duplicates!r}. Valides: {valid}") from e

        if not 0 <= self.auto_match_threshold <= 100:
            raise ConfigError(f"auto_match_threshold doit être entre 0 et 100 (got {self.auto_match_threshold})")
        if not 0 <= self.manual_review_threshold <= 100:
            raise ConfigError(f"manual_review_threshold doit être entre 0 et 100 (got {self.manual_review_threshold})")
        if self.manual_review_threshold > self.auto_match_threshold:
            raise ConfigError(
                f"manual_review_threshold ({self.manual_review_threshold}) doit être <= "
                f"auto_match_threshold ({self.auto_match_threshold})"
            )
        if self.max_matches_per_record < 1:
            raise ConfigError(f"max_matches_per_record doit être >= 1 (got {self.max_matches_per_record})")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size doit être >= 1 (got {self.batch_size})")
        if self.best_match_margin < 0:
            raise ConfigError(f"best_match_margin doit être >= 0 (got {self.best_match_margin})")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers doit être >= 1 (got {self.max_workers})")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> BatchMatchConfig:
        try:
            return cls(
                auto_match_strategy=d.get("auto_match_strategy", AutoMatchStrategy.HIGH_CONFIDENCE_ONLY.value),
                auto_match_threshold=float(d.get("auto_match_threshold", 85.0)),
                manual_review_threshold=float(d.get("manual_review_threshold", 60.0)),
                max_matches_per_record=int(d.get("max_matches_per_record", 5)),
                batch_size=int(d.get("batch_size", 10)),
                handle_duplicates=d.get("handle_duplicates", DuplicateHandling.SKIP.value),
                allow_multiple_matches=read_bool(d, "allow_multiple_matches", False),
                skip_no_matches=read_bool(d, "skip_no_matches", False),
                best_match_margin=float(d.get("best_match_margin", 5.0)),
                max_workers=int(d.get("max_workers", 1)),
            )
        except ConfigError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Configuration batch invalide: {e}") from e


@dataclass
class BatchProgress:
    total_records: int
    processed_records: int = 0
    auto_matched: int = 0
    manual_review_queue: int = 0
    no_match_found: int = 0
    errors: int = 0
    started_at: datetime | None = None
    ended_at: datetime | None = None


@dataclass(frozen=True)
class BatchProgressUpdate:
    """Notification transmise au callback ``on_progress`` après chaque enregistrement."""

    job_id: str
    percent_complete: float
    current_record: int
    total_records: int
    estimated_time_remaining: float  # secondes
    current_status: BatchMatchStatus


@dataclass(frozen=True)
class BatchMatchResult:
    """Issue du traitement d'un enregistrement source."""

    source_record_id: str
    match_status: RecordOutcome
    candidates: list[MatchCandidateResult]
    selected_matches: list[MatchCandidateResult]
    confidence: float
    processed_at: datetime
    processing_time: float  # secondes
    algorithm: AlgorithmType
    duplicate_of: str | None = None
    note: str = ""

    @property
    def alternative_matches(self) -> list[MatchCandidateResult]:
        selected = {id(c) for c in self.selected_matches}
        return [c for c in self.candidates if id(c) not in selected]


@dataclass(frozen=True)
class BatchMatchError:
    source_record_id: str
    error_type: str
    message: str
    timestamp: datetime


@dataclass
class BatchMatchJob:
    """Job batch. Modifié uniquement par le moteur pendant l'exécution, figé une fois terminé."""

    id: str
    source_records: list[Record]
    target_records: list[Record]
    config: BatchMatchConfig
    progress: BatchProgress
    status: BatchMatchStatus = BatchMatchStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    created_by: str = "system"
    algorithm: AlgorithmType | None = None
    results: list[BatchMatchResult] = field(default_factory=list)
    errors: list[BatchMatchError] = field(default_factory=list)
    failure_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class ConfidenceDistribution:
    high: int = 0  # >= 80
    medium: int = 0  # 60-79
    low: int = 0  # < 60


@dataclass(frozen=True)
class BatchMatchSummary:
    job_id: str
    status: BatchMatchStatus
    total_records: int
    processed_records: int
    auto_matched: int
    manual_review_needed: int
    no_match_found: int
    errors: int
    total_duration: float  # secondes
    average_time_per_record: float  # secondes
    records_per_second: float
    average_confidence: float
    confidence_distribution: ConfidenceDistribution
    field_match_rates: dict[str, float]
    records_needing_review: list[str]
    failure_reason: str | None = None


ProgressCallback = Callable[[BatchProgressUpdate], None]
CompleteCallback = Callable[[BatchMatchSummary], None]


@dataclass
class _JobControl:
    """Verrou et signaux coopératifs d'un job (annulation, pause)."""

    lock: threading.Lock = field(default_factory=threading.Lock)
    cancel_event: threading.Event = field(default_factory=threading.Event)
    resume_event: threading.Event = field(default_factory=threading.Event)
    claimed_targets: dict[str, str] = field(default_factory=dict)  # cible -> source l'ayant obtenue
    pause_requested: bool = False

    def __post_init__(self) -> None:
        self.resume_event.set()


@dataclass
class _Scored:
    candidates: list[MatchCandidateResult] | None
    error: Exception | None
    elapsed: float


def _record_id(record: Record, position: int) -> str:
    rid = getattr(record, "id", "")
    return str(rid) if rid else f"#{position}"


class BatchJobEngine:
    """
    Registre et exécuteur de jobs batch.

    Chaque instance possède ses propres jobs : aucun état global. Les
    compteurs d'un job ne sont modifiés que par le thread coordinateur, sous
    le verrou du job.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, BatchMatchJob] = {}
        self._controls: dict[str, _JobControl] = {}
        self._registry_lock = threading.Lock()

    # -- registre ---------------------------------------------------------

    def create_batch_match_job(
        self,
        source_records: Iterable[Record],
        target_records: Iterable[Record],
        batch_config: BatchMatchConfig | None = None,
        *,
        created_by: str = "system",
    ) -> BatchMatchJob:
        sources = list(source_records)
        targets = list(target_records)
        config = batch_config or BatchMatchConfig()
        job = BatchMatchJob(
            id=f"batch_{uuid.uuid4().hex[:12]}",
            source_records=sources,
            target_records=targets,
            config=config,
            progress=BatchProgress(total_records=len(sources)),
            created_by=created_by,
        )
        with self._registry_lock:
            self._jobs[job.id] = job
            self._controls[job.id] = _JobControl()
        logger.info(
            "Job %s créé: %d source(s), %d cible(s), stratégie %s",
            job.id,
            len(sources),
            len(targets),
            config.auto_match_strategy.value,
        )
        return job

    def get_batch_job(self, job_id: str) -> BatchMatchJob:
        with self._registry_lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise BatchJobNotFoundError(f"Job batch introuvable: {job_id}")
        return job

    def get_all_batch_jobs(self) -> list[BatchMatchJob]:
        with self._registry_lock:
            return list(self._jobs.values())

    def delete_batch_job(self, job_id: str) -> None:
        job = self.get_batch_job(job_id)
        if job.status in (BatchMatchStatus.RUNNING, BatchMatchStatus.PAUSED):
            raise BatchJobError(f"Impossible de supprimer le job {job_id} en cours ({job.status.value})")
        with self._registry_lock:
            self._jobs.pop(job_id, None)
            self._controls.pop(job_id, None)

    # -- contrôle ---------------------------------------------------------

    def cancel_batch_job(self, job_id: str) -> None:
        """
        Demande l'annulation d'un job.

        Un job en attente passe directement à ``cancelled``. Un job en cours
        s'arrête au prochain point de contrôle (avant l'enregistrement suivant)
        en conservant les résultats déjà produits. Sans effet sur un job terminé.
        """
        job = self.get_batch_job(job_id)
        ctl = self._controls[job_id]
        with ctl.lock:
            if job.status is BatchMatchStatus.PENDING:
                job.status = BatchMatchStatus.CANCELLED
                job.progress.ended_at = datetime.now()
            elif job.status in (BatchMatchStatus.RUNNING, BatchMatchStatus.PAUSED):
                ctl.cancel_event.set()
                ctl.resume_event.set()
            else:
                return
        logger.warning(
            "Annulation du job %s à %d/%d enregistrements",
            job_id,
            job.progress.processed_records,
            job.progress.total_records,
        )

    def pause_batch_job(self, job_id: str) -> None:
        """
        Demande la pause d'un job en cours.

        Le lot en cours se termine et le job reste ``running`` jusqu'à la
        prochaine frontière de lot, où il passe à ``paused`` et attend.
        """
        job = self.get_batch_job(job_id)
        ctl = self._controls[job_id]
        with ctl.lock:
            if job.status is not BatchMatchStatus.RUNNING:
                raise BatchJobError(f"Job {job_id} non en cours ({job.status.value}), pause impossible")
            if ctl.pause_requested:
                raise BatchJobError(f"Pause déjà demandée pour le job {job_id}, pause impossible")
            ctl.pause_requested = True
            ctl.resume_event.clear()
        logger.info("Pause demandée pour le job %s", job_id)

    def resume_batch_job(self, job_id: str) -> None:
        job = self.get_batch_job(job_id)
        ctl = self._controls[job_id]
        with ctl.lock:
            if job.status is not BatchMatchStatus.PAUSED and not ctl.pause_requested:
                raise BatchJobError(f"Job {job_id} non en pause ({job.status.value})")
            job.status = BatchMatchStatus.RUNNING
            ctl.pause_requested = False
            ctl.resume_event.set()
        logger.info("Job %s repris", job_id)

    # -- exécution --------------------------------------------------------

    def run_batch_match_job(
        self,
        job_id: str,
        matching_config: MatchingConfig,
        algorithm_type: AlgorithmType | str | None = None,
        on_progress: ProgressCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> BatchMatchSummary:
        """
        Exécute un job en attente jusqu'à son terme (terminé, annulé ou erreur).

        Les erreurs par enregistrement sont consignées dans ``job.errors`` sans
        interrompre le job. Un pool cible vide met le job en ``error``.

        Returns:
            Le résumé du job, également passé à ``on_complete``.

        Raises:
            BatchJobNotFoundError: Identifiant inconnu.
            BatchJobError: Le job n'est pas en attente.
        """
        job = self.get_batch_job(job_id)
        ctl = self._controls[job_id]
        algo = AlgorithmType(algorithm_type or matching_config.algorithm_type)

        with ctl.lock:
            if job.status is not BatchMatchStatus.PENDING:
                raise BatchJobError(f"Job {job_id} non exécutable (statut {job.status.value})")
            job.status = BatchMatchStatus.RUNNING
            job.algorithm = algo
            job.progress.started_at = datetime.now()
        logger.info("Job %s démarré (%s)", job_id, algo.value)

        if not job.target_records:
            self._finish(job, ctl, BatchMatchStatus.ERROR, "Pool cible vide: aucun enregistrement à comparer")
            return self._complete(job_id, on_complete)

        linker = Linker(matching_config.with_algorithm(algo))
        cfg = job.config
        executor = ThreadPoolExecutor(max_workers=cfg.max_workers) if cfg.max_workers > 1 else None
        t0 = time.perf_counter()
        try:
            for chunk_start in range(0, len(job.source_records), cfg.batch_size):
                if not self._checkpoint(job, ctl):
                    break
                chunk = job.source_records[chunk_start : chunk_start + cfg.batch_size]
                scored = self._score_chunk(linker, job, ctl, chunk, executor)
                for offset, (record, outcome) in enumerate(zip(chunk, scored)):
                    if outcome is None or ctl.cancel_event.is_set():
                        break
                    self._record_outcome(job, ctl, record, chunk_start + offset, outcome)
                    if on_progress is not None:
                        on_progress(self._progress_update(job, time.perf_counter() - t0))
                if ctl.cancel_event.is_set():
                    break
        except Exception as e:
            self._finish(job, ctl, BatchMatchStatus.ERROR, f"Échec du job: {e}")
            logger.exception("Job %s en erreur", job_id)
            raise
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        final = BatchMatchStatus.CANCELLED if ctl.cancel_event.is_set() else BatchMatchStatus.COMPLETED
        self._finish(job, ctl, final)
        logger.info(
            "Job %s %s: %d auto, %d en revue, %d sans match, %d erreur(s)",
            job_id,
            final.value,
            job.progress.auto_matched,
            job.progress.manual_review_queue,
            job.progress.no_match_found,
            job.progress.errors,
        )
        return self._complete(job_id, on_complete)

    def _complete(self, job_id: str, on_complete: CompleteCallback | None) -> BatchMatchSummary:
        summary = self.generate_batch_summary(job_id)
        if on_complete is not None:
            on_complete(summary)
        return summary

    @staticmethod
    def _checkpoint(job: BatchMatchJob, ctl: _JobControl) -> bool:
        """Frontière de lot : attend la reprise si une pause est demandée. False si annulé."""
        with ctl.lock:
            if ctl.pause_requested and not ctl.cancel_event.is_set():
                job.status = BatchMatchStatus.PAUSED
                logger.info("Job %s en pause à %d enregistrements", job.id, job.progress.processed_records)
        ctl.resume_event.wait()
        return not ctl.cancel_event.is_set()

    def _score_chunk(
        self,
        linker: Linker,
        job: BatchMatchJob,
        ctl: _JobControl,
        chunk: Sequence[Record],
        executor: ThreadPoolExecutor | None,
    ) -> Iterable[_Scored | None]:
        if executor is None:
            # Évaluation paresseuse : l'annulation est vue avant chaque enregistrement.
            return (self._score_record(linker, job, ctl, r) for r in chunk)
        return executor.map(lambda r: self._score_record(linker, job, ctl, r), chunk)

    @staticmethod
    def _score_record(linker: Linker, job: BatchMatchJob, ctl: _JobControl, record: Record) -> _Scored | None:
        if ctl.cancel_event.is_set():
            return None
        start = time.perf_counter()
        try:
            candidates = linker.find_matches(record, job.target_records, limit=job.config.max_matches_per_record)
        except Exception as e:
            logger.warning("Échec du matching pour %r", getattr(record, "id", record), exc_info=True)
            return _Scored(candidates=None, error=e, elapsed=time.perf_counter() - start)
        return _Scored(candidates=candidates, error=None, elapsed=time.perf_counter() - start)

    def _record_outcome(
        self,
        job: BatchMatchJob,
        ctl: _JobControl,
        record: Record,
        position: int,
        scored: _Scored,
    ) -> None:
        rid = _record_id(record, position)
        now = datetime.now()
        algo = job.algorithm or AlgorithmType.DETERMINISTIC

        with ctl.lock:
            error, error_type = scored.error, "matching-error"
            decision = None
            if error is None and scored.candidates is not None:
                try:
                    decision = self._apply_strategy(job.config, ctl, rid, scored.candidates)
                except Exception as e:
                    logger.warning("Échec de la décision pour %s", rid, exc_info=True)
                    error, error_type = e, "decision-error"

            if decision is None or scored.candidates is None:
                result = BatchMatchResult(
                    source_record_id=rid,
                    match_status=RecordOutcome.ERROR,
                    candidates=[],
                    selected_matches=[],
                    confidence=0.0,
                    processed_at=now,
                    processing_time=scored.elapsed,
                    algorithm=algo,
                    note=str(error),
                )
                job.errors.append(
                    BatchMatchError(
                        source_record_id=rid,
                        error_type=error_type,
                        message=f"{type(error).__name__}: {error}",
                        timestamp=now,
                    )
                )
            else:
                outcome, selected, duplicate_of, note = decision
                result = BatchMatchResult(
                    source_record_id=rid,
                    match_status=outcome,
                    candidates=scored.candidates,
                    selected_matches=selected,
                    confidence=scored.candidates[0].score if scored.candidates else 0.0,
                    processed_at=now,
                    processing_time=scored.elapsed,
                    algorithm=algo,
                    duplicate_of=duplicate_of,
                    note=note,
                )

            job.results.append(result)
            p = job.progress
            p.processed_records += 1
            if result.match_status is RecordOutcome.AUTO_MATCHED:
                p.auto_matched += 1
            elif result.match_status is RecordOutcome.MANUAL_REVIEW:
                p.manual_review_queue += 1
            elif result.match_status is RecordOutcome.NO_MATCH:
                p.no_match_found += 1
            else:
                p.errors += 1

    @staticmethod
    def _apply_strategy(
        cfg: BatchMatchConfig,
        ctl: _JobControl,
        source_id: str,
        candidates: list[MatchCandidateResult],
    ) -> tuple[RecordOutcome, list[MatchCandidateResult], str | None, str]:
        """Décide du sort d'un enregistrement à partir de ses candidats classés."""
        if not candidates:
            return RecordOutcome.NO_MATCH, [], None, "Aucun candidat au-dessus du seuil"

        top = candidates[0]
        second = candidates[1] if len(candidates) > 1 else None
        strategy = cfg.auto_match_strategy

        if strategy is AutoMatchStrategy.MANUAL_REVIEW_ALL:
            outcome = RecordOutcome.MANUAL_REVIEW
        else:
            can_accept = top.score >= cfg.auto_match_threshold
            if strategy is AutoMatchStrategy.HIGH_CONFIDENCE_ONLY:
                can_accept = can_accept and (second is None or second.score < top.score)
            elif strategy is AutoMatchStrategy.BEST_MATCH_ONLY:
                can_accept = can_accept and (second is None or top.score - second.score >= cfg.best_match_margin)
            if can_accept:
                outcome = RecordOutcome.AUTO_MATCHED
            elif top.score >= cfg.manual_review_threshold:
                outcome = RecordOutcome.MANUAL_REVIEW
            else:
                outcome = RecordOutcome.NO_MATCH

        if cfg.skip_no_matches and top.score < cfg.manual_review_threshold:
            outcome = RecordOutcome.NO_MATCH

        if outcome is not RecordOutcome.AUTO_MATCHED:
            return outcome, [], None, ""

        pool = [c for c in candidates if c.score >= cfg.auto_match_threshold] if cfg.allow_multiple_matches else [top]
        selected: list[MatchCandidateResult] = []
        duplicate_of: str | None = None
        for c in pool:
            owner = ctl.claimed_targets.get(c.candidate_record_id)
            if owner is not None and owner != source_id:
                if cfg.handle_duplicates is DuplicateHandling.SKIP:
                    continue
                if cfg.handle_duplicates is DuplicateHandling.MERGE and duplicate_of is None:
                    duplicate_of = owner
            selected.append(c)

        if not selected:
            return RecordOutcome.MANUAL_REVIEW, [], None, "Cible déjà appariée à un autre enregistrement"
        for c in selected:
            ctl.claimed_targets.setdefault(c.candidate_record_id, source_id)
        return RecordOutcome.AUTO_MATCHED, selected, duplicate_of, ""

    @staticmethod
    def _progress_update(job: BatchMatchJob, elapsed: float) -> BatchProgressUpdate:
        p = job.progress
        done = p.processed_records
        remaining = p.total_records - done
        eta = (elapsed / done) * remaining if done else 0.0
        return BatchProgressUpdate(
            job_id=job.id,
            percent_complete=100.0 * done / p.total_records if p.total_records else 100.0,
            current_record=done,
            total_records=p.total_records,
            estimated_time_remaining=eta,
            current_status=job.status,
        )

    @staticmethod
    def _finish(job: BatchMatchJob, ctl: _JobControl, status: BatchMatchStatus, reason: str | None = None) -> None:
        with ctl.lock:
            job.status = status
            job.progress.ended_at = datetime.now()
            job.failure_reason = reason
            ctl.pause_requested = False
        if reason:
            logger.error("Job %s: %s", job.id, reason)

    # -- résultats --------------------------------------------------------

    def generate_batch_summary(self, job_id: str) -> BatchMatchSummary:
        job = self.get_batch_job(job_id)
        ctl = self._controls[job_id]
        with ctl.lock:
            results = list(job.results)
            p = job.progress
            started, ended = p.started_at, p.ended_at
            counts = (p.total_records, p.processed_records, p.auto_matched, p.manual_review_queue, p.no_match_found, p.errors)
            status, reason = job.status, job.failure_reason

        total_duration = ((ended or datetime.now()) - started).total_seconds() if started else 0.0
        avg_time = sum(r.processing_time for r in results) / len(results) if results else 0.0
        rps = counts[1] / total_duration if total_duration > 0 else 0.0

        scored = [r for r in results if r.match_status is not RecordOutcome.ERROR]
        high = sum(1 for r in scored if r.confidence >= 80)
        medium = sum(1 for r in scored if 60 <= r.confidence < 80)
        avg_conf = sum(r.confidence for r in scored) / len(scored) if scored else 0.0

        field_counts: dict[str, list[int]] = {}
        for r in scored:
            if not r.candidates:
                continue
            for name, sim in r.candidates[0].field_scores.items():
                matched_total = field_counts.setdefault(name, [0, 0])
                matched_total[1] += 1
                if sim >= 0.8:
                    matched_total[0] += 1
        rates = {name: 100.0 * m / t for name, (m, t) in field_counts.items()}

        return BatchMatchSummary(
            job_id=job_id,
            status=status,
            total_records=counts[0],
            processed_records=counts[1],
            auto_matched=counts[2],
            manual_review_needed=counts[3],
            no_match_found=counts[4],
            errors=counts[5],
            total_duration=total_duration,
            average_time_per_record=avg_time,
            records_per_second=rps,
            average_confidence=avg_conf,
            confidence_distribution=ConfidenceDistribution(high=high, medium=medium, low=len(scored) - high - medium),
            field_match_rates=rates,
            records_needing_review=[r.source_record_id for r in results if r.match_status is RecordOutcome.MANUAL_REVIEW],
            failure_reason=reason,
        )

    def build_match_results(self, job_id: str, *, matched_by: str = "batch") -> list[MatchResult]:
        """
        Décisions à persister par l'appelant : une par cible auto-acceptée,
        une en revue manuelle ou rejetée pour les autres enregistrements.
        """
        job = self.get_batch_job(job_id)
        with self._controls[job_id].lock:
            results = list(job.results)

        decisions: list[MatchResult] = []
        for r in results:
            if r.match_status is RecordOutcome.AUTO_MATCHED:
                for c in r.selected_matches:
                    notes = f"Doublon de {r.duplicate_of}" if r.duplicate_of else ""
                    decisions.append(
                        MatchResult(
                            source_id=r.source_record_id,
                            match_id=c.candidate_record_id,
                            status=MatchStatus.MATCHED,
                            confidence=c.score,
                            field_scores=dict(c.field_scores),
                            notes=notes,
                            matched_by=matched_by,
                            matched_at=r.processed_at,
                        )
                    )
            elif r.match_status is RecordOutcome.MANUAL_REVIEW:
                top = r.candidates[0] if r.candidates else None
                decisions.append(
                    MatchResult(
                        source_id=r.source_record_id,
                        match_id=top.candidate_record_id if top else None,
                        status=MatchStatus.MANUAL_REVIEW,
                        confidence=r.confidence,
                        field_scores=dict(top.field_scores) if top else {},
                        notes=r.note,
                        matched_by=matched_by,
                        matched_at=r.processed_at,
                    )
                )
            elif r.match_status is RecordOutcome.NO_MATCH:
                decisions.append(
                    MatchResult(
                        source_id=r.source_record_id,
                        match_id=None,
                        status=MatchStatus.REJECTED,
                        confidence=r.confidence,
                        notes=r.note,
                        matched_by=matched_by,
                        matched_at=r.processed_at,
                    )
                )
        return decisions
