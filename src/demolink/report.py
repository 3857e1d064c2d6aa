"""Rapports de matching batch : tableaux pandas, affichage console, export."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd

from demolink import __version__
from demolink.batch import BatchMatchConfig, BatchMatchJob, BatchMatchSummary
from demolink.duplicates import DuplicateGroup

RESULT_COLUMNS = [
    "source_record_id",
    "match_status",
    "best_candidate_id",
    "confidence",
    "selected_matches",
    "alternative_matches",
    "matched_on",
    "duplicate_of",
    "processing_time_ms",
    "note",
]


def build_summary_df(summary: BatchMatchSummary, batch_config: BatchMatchConfig) -> pd.DataFrame:
    """
    Construit le tableau Key/Value du rapport batch.

    Contient les compteurs, la distribution de confiance, les taux de
    concordance par champ, les paramètres du job, l'horodatage et la version.
    """
    dist = summary.confidence_distribution
    rows: list[tuple[str, object]] = [
        ("job_id", summary.job_id),
        ("status", summary.status.value),
        ("nb_total", summary.total_records),
        ("nb_processed", summary.processed_records),
        ("nb_auto_matched", summary.auto_matched),
        ("nb_manual_review", summary.manual_review_needed),
        ("nb_no_match", summary.no_match_found),
        ("nb_errors", summary.errors),
        ("", ""),
        ("Confidence", ""),
        ("average_confidence", round(summary.average_confidence, 2)),
        ("high_ge_80", dist.high),
        ("medium_60_79", dist.medium),
        ("low_lt_60", dist.low),
        ("", ""),
        ("Performance", ""),
        ("total_duration_s", round(summary.total_duration, 3)),
        ("avg_time_per_record_ms", round(summary.average_time_per_record * 1000, 3)),
        ("records_per_second", round(summary.records_per_second, 2)),
        ("", ""),
        ("Parameters", ""),
        ("auto_match_strategy", batch_config.auto_match_strategy.value),
        ("auto_match_threshold", batch_config.auto_match_threshold),
        ("manual_review_threshold", batch_config.manual_review_threshold),
        ("max_matches_per_record", batch_config.max_matches_per_record),
        ("batch_size", batch_config.batch_size),
        ("handle_duplicates", batch_config.handle_duplicates.value),
        ("allow_multiple_matches", batch_config.allow_multiple_matches),
        ("", ""),
        ("Field match rates (%)", ""),
    ]
    for name, rate in summary.field_match_rates.items():
        rows.append((f"field_{name}", round(rate, 1)))

    if summary.failure_reason:
        rows.extend([("", ""), ("failure_reason", summary.failure_reason)])
    rows.extend(
        [
            ("", ""),
            ("timestamp", datetime.now().isoformat()),
            ("version", __version__),
        ]
    )
    return pd.DataFrame(rows, columns=["Key", "Value"])


def build_results_df(job: BatchMatchJob) -> pd.DataFrame:
    """Une ligne par enregistrement source traité, dans l'ordre de traitement."""
    rows = []
    for r in job.results:
        top = r.candidates[0] if r.candidates else None
        rows.append(
            {
                "source_record_id": r.source_record_id,
                "match_status": r.match_status.value,
                "best_candidate_id": top.candidate_record_id if top else "",
                "confidence": round(r.confidence, 2),
                "selected_matches": ";".join(c.candidate_record_id for c in r.selected_matches),
                "alternative_matches": ";".join(c.candidate_record_id for c in r.alternative_matches),
                "matched_on": ";".join(top.matched_on) if top else "",
                "duplicate_of": r.duplicate_of or "",
                "processing_time_ms": round(r.processing_time * 1000, 3),
                "note": r.note,
            }
        )
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def build_duplicates_df(groups: list[DuplicateGroup]) -> pd.DataFrame:
    rows = [
        {
            "group_id": g.id,
            "record_ids": ";".join(r.id for r in g.records),
            "size": len(g.records),
            "similarity_score": round(g.similarity_score, 2),
            "matching_fields": ";".join(g.matching_fields),
            "suggested_master": g.suggested_master or "",
            "resolution": g.resolution.value,
        }
        for g in groups
    ]
    return pd.DataFrame(
        rows,
        columns=["group_id", "record_ids", "size", "similarity_score", "matching_fields", "suggested_master", "resolution"],
    )


def print_report_console(summary: BatchMatchSummary) -> None:
    """Affiche un résumé du job en console."""
    dist = summary.confidence_distribution
    print("\n=== demolink Batch Report ===")
    print(f"  Job:              {summary.job_id} ({summary.status.value})")
    print(f"  Traités:          {summary.processed_records}/{summary.total_records}")
    print(f"  Auto-appariés:    {summary.auto_matched}")
    print(f"  Revue manuelle:   {summary.manual_review_needed}")
    print(f"  Sans match:       {summary.no_match_found}")
    print(f"  Erreurs:          {summary.errors}")
    print(f"  Confiance moy.:   {summary.average_confidence:.1f}")
    print(f"  Haute/Moy./Basse: {dist.high}/{dist.medium}/{dist.low}")
    print(f"  Durée:            {summary.total_duration:.2f}s ({summary.records_per_second:.1f} enr./s)")
    if summary.failure_reason:
        print(f"  Échec:            {summary.failure_reason}")
    print(f"  Version:          {__version__}")
    print("=============================\n")


def save_report(filepath: str | Path, dataframes: dict[str, pd.DataFrame], *, index: bool = False) -> list[Path]:
    """
    Sauvegarde les tableaux du rapport.

    En ``.xlsx`` : un classeur, une feuille par DataFrame. Sinon : un CSV par
    DataFrame, suffixé du nom de la feuille (``rapport_SUMMARY.csv``...).

    Returns:
        Liste des fichiers écrits.
    """
    path = Path(filepath)
    if path.suffix.lower() == ".xlsx":
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet_name, df in dataframes.items():
                # Excel limite les noms de feuille à 31 caractères
                df.to_excel(writer, sheet_name=str(sheet_name)[:31], index=index)
        return [path]

    written = []
    for sheet_name, df in dataframes.items():
        out = path.with_name(f"{path.stem}_{sheet_name}.csv")
        df.to_csv(out, index=index, encoding="utf-8")
        written.append(out)
    return written
