"""Interface en ligne de commande demolink."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace

from demolink import __version__
from demolink.batch import AutoMatchStrategy, BatchJobEngine, BatchMatchConfig
from demolink.config import AlgorithmType, DemolinkError, MatchingConfig, default_profiles, get_profile
from demolink.duplicates import DEFAULT_DUPLICATE_THRESHOLD, find_duplicates
from demolink.io_records import load_batch_config, load_matching_config, load_records
from demolink.matching.linker import Linker
from demolink.matching.schema import SearchStatus
from demolink.report import (
    build_duplicates_df,
    build_results_df,
    build_summary_df,
    print_report_console,
    save_report,
)


def _resolve_config(config_path: str | None, profile: str | None, algorithm: str | None) -> MatchingConfig:
    """Config JSON si fournie, sinon profil nommé (``Default`` par défaut)."""
    config = load_matching_config(config_path) if config_path else get_profile(profile or "Default")
    if algorithm:
        config = config.with_algorithm(algorithm)
    return config


def cmd_profiles(show: str | None) -> int:
    """Liste les profils prédéfinis, ou affiche l'un d'eux en JSON."""
    if show:
        print(get_profile(show).to_json())
        return 0
    print("Profils disponibles:")
    for name, cfg in default_profiles().items():
        t = cfg.threshold
        print(f"  - {name} ({cfg.algorithm_type.value}, seuils {t.high:g}/{t.medium:g}/{t.low:g})")
    return 0


def cmd_match(
    source_path: str,
    targets_path: str,
    config: MatchingConfig,
    *,
    record_id: str | None = None,
    limit: int = 5,
) -> int:
    """Recherche interactive : candidats classés pour chaque enregistrement source."""
    sources = load_records(source_path)
    targets = load_records(targets_path)
    if record_id is not None:
        sources = [r for r in sources if r.id == record_id]
        if not sources:
            print(f"Erreur: enregistrement {record_id!r} absent de {source_path}", file=sys.stderr)
            return 1

    linker = Linker(config)
    for source in sources:
        search = linker.search(source, targets)
        print(f"\nSource {source.id or '<sans id>'}: {source.first_name} {source.last_name}".rstrip())
        if search.status is SearchStatus.POOL_EMPTY:
            print("  Pool de candidats vide.")
            continue
        if search.status is SearchStatus.NO_CANDIDATES_ABOVE_THRESHOLD:
            print(f"  Aucun candidat au-dessus du seuil ({config.threshold.low:g}).")
            if search.fallback is not None and search.fallback.matches:
                print("  Repli déterministe:")
                for c in search.fallback.matches[:limit]:
                    print(f"    {c.candidate_record_id}  score={c.score:.1f}  ({', '.join(c.matched_on)})")
            continue
        for c in search.matches[:limit]:
            band = linker.classify(c).value
            print(f"  {c.candidate_record_id}  score={c.score:.1f}  [{band}]  ({', '.join(c.matched_on)})")
    return 0


def cmd_batch(
    source_path: str,
    targets_path: str,
    config: MatchingConfig,
    batch_config: BatchMatchConfig,
    output_path: str | None,
) -> int:
    """Exécute un job batch et affiche (ou écrit) le rapport."""
    sources = load_records(source_path)
    targets = load_records(targets_path)

    engine = BatchJobEngine()
    job = engine.create_batch_match_job(sources, targets, batch_config)
    summary = engine.run_batch_match_job(job.id, config)
    print_report_console(summary)

    if output_path:
        frames = {
            "SUMMARY": build_summary_df(summary, batch_config),
            "RESULTS": build_results_df(engine.get_batch_job(job.id)),
        }
        for written in save_report(output_path, frames):
            print(f"Rapport écrit: {written}")
    return 1 if summary.failure_reason else 0


def cmd_duplicates(records_path: str, config: MatchingConfig, threshold: float, output_path: str | None) -> int:
    records = load_records(records_path)
    groups = find_duplicates(records, threshold=threshold, config=config)
    print(f"{len(groups)} groupe(s) de doublons sur {len(records)} enregistrement(s):")
    for g in groups:
        ids = ", ".join(r.id for r in g.records)
        print(f"  {g.id}: [{ids}] score={g.similarity_score:.1f} champs={', '.join(g.matching_fields)}")
    if output_path:
        for written in save_report(output_path, {"DUPLICATES": build_duplicates_df(groups)}):
            print(f"Rapport écrit: {written}")
    return 0


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", "-c", help="Fichier MatchingConfig JSON")
    p.add_argument("--profile", "-p", help="Profil prédéfini (voir 'profiles')")
    p.add_argument("--algorithm", "-a", choices=[a.value for a in AlgorithmType], help="Forcer l'algorithme")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="demolink",
        description="Linkage d'enregistrements démographiques (clinique / registre communautaire)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="Journalisation (-v info, -vv debug)")

    subparsers = parser.add_subparsers(dest="command", help="Commandes")

    p_prof = subparsers.add_parser("profiles", help="Lister les profils de configuration")
    p_prof.add_argument("--show", help="Afficher un profil en JSON")

    p_match = subparsers.add_parser("match", help="Rechercher les candidats d'enregistrements sources")
    p_match.add_argument("--source", "-s", required=True, help="Enregistrements sources (JSON, CSV, xlsx)")
    p_match.add_argument("--targets", "-t", required=True, help="Pool de candidats (JSON, CSV, xlsx)")
    p_match.add_argument("--record-id", help="Ne traiter que cet enregistrement source")
    p_match.add_argument("--limit", type=int, default=5, help="Nombre de candidats affichés")
    _add_config_args(p_match)

    p_batch = subparsers.add_parser("batch", help="Exécuter un job de matching batch")
    p_batch.add_argument("--source", "-s", required=True, help="Enregistrements sources")
    p_batch.add_argument("--targets", "-t", required=True, help="Pool cible")
    p_batch.add_argument("--batch-config", help="Fichier BatchMatchConfig JSON")
    p_batch.add_argument("--strategy", choices=[s.value for s in AutoMatchStrategy], help="Stratégie d'auto-acceptation")
    p_batch.add_argument("--workers", type=int, help="Threads de scoring")
    p_batch.add_argument("--output", "-o", help="Rapport de sortie (.xlsx ou .csv)")
    _add_config_args(p_batch)

    p_dup = subparsers.add_parser("duplicates", help="Détecter les doublons d'un pool")
    p_dup.add_argument("--records", "-r", required=True, help="Pool d'enregistrements")
    p_dup.add_argument("--threshold", type=float, default=DEFAULT_DUPLICATE_THRESHOLD, help="Seuil de doublon (0-100)")
    p_dup.add_argument("--output", "-o", help="Rapport de sortie (.xlsx ou .csv)")
    _add_config_args(p_dup)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "profiles":
            return cmd_profiles(args.show)

        if args.command == "match":
            config = _resolve_config(args.config, args.profile, args.algorithm)
            return cmd_match(args.source, args.targets, config, record_id=args.record_id, limit=args.limit)

        if args.command == "batch":
            config = _resolve_config(args.config, args.profile, args.algorithm)
            batch_config = load_batch_config(args.batch_config) if args.batch_config else BatchMatchConfig()
            if args.strategy:
                batch_config = replace(batch_config, auto_match_strategy=args.strategy)
            if args.workers:
                batch_config = replace(batch_config, max_workers=args.workers)
            return cmd_batch(args.source, args.targets, config, batch_config, args.output)

        if args.command == "duplicates":
            config = _resolve_config(args.config, args.profile, args.algorithm)
            return cmd_duplicates(args.records, config, args.threshold, args.output)
    except DemolinkError as e:
        print(f"Erreur: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0



if __name__ == "__main__":
    sys.exit(main())
