"""Command-line interface for the salon data import."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ImportBlockedError, MigrationError
from .models.record import SourceFile
from .models.session import ImportConfig, ImportOptions, MergeStrategy, SessionResult
from .models.validation import Severity, ValidationSummary
from .orchestrator import ImportOrchestrator, ImportSession
from .services.classifier import FileClassifier
from .services.triage import ClientTriage, EDITABLE_FIELDS
from .storage import create_storage

logger = logging.getLogger(__name__)


def _read_files(paths: List[str]) -> List[SourceFile]:
    files = []
    for path in paths:
        p = Path(path)
        files.append(SourceFile(name=p.name, content=p.read_bytes()))
    return files


def _load_config(args) -> ImportConfig:
    config = ImportConfig.load(getattr(args, "config", None))
    if getattr(args, "dry_run", False):
        config.dry_run = True
    if getattr(args, "batch_size", None):
        config.batch_size = args.batch_size
    return config


def _options_from_args(args, defaults: ImportOptions) -> ImportOptions:
    options = ImportOptions.from_dict(defaults.to_dict())
    if getattr(args, "stop_on_error", False):
        options.ignorar_registros_com_erro = False
    if getattr(args, "fill_empty", False):
        options.completar_campos_vazios = True
    if getattr(args, "merge_duplicates", False):
        options.mesclar_duplicatas = True
    if getattr(args, "skip_non_critical", False):
        options.pular_validacoes_nao_criticas = True
    return options


def _print_summary(summary: ValidationSummary) -> None:
    print("\n=== Validation ===")
    print(f"Critical: {summary.total_criticos}  Warnings: {summary.total_avisos}  Info: {summary.total_info}")
    for severity in (Severity.CRITICAL, Severity.WARNING, Severity.INFO):
        for finding in summary.by_severity(severity):
            print(f"  [{severity.value}] {finding.entity or '-'}: {finding.message}")
            if finding.suggestion:
                print(f"      -> {finding.suggestion}")


def _print_files(session: ImportSession) -> None:
    print("\n=== Files ===")
    for classified in session.files:
        outcome = session.outcomes.get(classified.name)
        target = classified.target_table or "?"
        line = f"  {classified.name} -> {target} (order {classified.import_order})"
        if outcome:
            line += f" [{outcome.status.value}] {outcome.registros} registros"
            if outcome.message:
                line += f" - {outcome.message}"
        if classified.suggested_entity:
            line += f" (suggested: {classified.suggested_entity})"
        print(line)


def _print_result(result: SessionResult) -> None:
    print("\n" + "=" * 60)
    print(f"IMPORT {result.status.value.upper()}")
    print("=" * 60)
    print(result.to_report())
    print("-" * 60)
    print(f"Imported: {result.total_importados}")
    print(f"Updated: {result.total_atualizados}")
    print(f"Duplicates: {result.total_duplicados}")
    print(f"Errors: {result.total_erros}")
    if result.duration_seconds:
        print(f"Duration: {result.duration_seconds:.2f} seconds")
    for warning in result.warnings:
        print(f"Warning: {warning}")
    if result.incomplete_clients:
        print(f"\n{len(result.incomplete_clients)} clients with incomplete profile")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Salon data import - Bring legacy system exports into the salon database"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--config", help="Path to import config JSON file")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Classify files
    classify_parser = subparsers.add_parser("classify", help="Show the detected table of each file")
    classify_parser.add_argument("files", nargs="+", help="Export files")

    # Analyze without importing
    analyze_parser = subparsers.add_parser("analyze", help="Parse, map and validate files")
    analyze_parser.add_argument("files", nargs="+", help="Export files")
    analyze_parser.add_argument(
        "--dry-run", action="store_true", help="Validate without a backend; no stored rows are compared"
    )
    _add_option_flags(analyze_parser)

    # Run import
    run_parser = subparsers.add_parser("run", help="Import files")
    run_parser.add_argument("files", nargs="+", help="Export files")
    run_parser.add_argument(
        "--strategy", choices=[s.value for s in MergeStrategy], help="How to handle duplicates"
    )
    run_parser.add_argument("--force", action="store_true", help="Import despite critical findings")
    run_parser.add_argument("--dry-run", action="store_true", help="Import into memory only")
    run_parser.add_argument("--batch-size", type=int, help="Records per insert call")
    run_parser.add_argument("--report", help="Write the text report to this path")
    _add_option_flags(run_parser)

    # History
    history_parser = subparsers.add_parser("history", help="List recent imports")
    history_parser.add_argument("--limit", type=int, default=10, help="Number of imports to show")

    # Incomplete clients
    incomplete_parser = subparsers.add_parser("incomplete", help="Clients flagged for later update")
    incomplete_parser.add_argument("--mark", nargs="+", metavar="ID", help="Flag clients for later update")
    incomplete_parser.add_argument("--edit", action="store_true", help="Fill missing fields interactively")

    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        if args.command == "classify":
            return run_classify(args)
        elif args.command == "analyze":
            return asyncio.run(run_analyze(args))
        elif args.command == "run":
            return asyncio.run(run_import(args))
        elif args.command == "history":
            return asyncio.run(run_history(args))
        elif args.command == "incomplete":
            return asyncio.run(run_incomplete(args))
        else:
            parser.print_help()
            return 1
    except MigrationError as e:
        logger.error(str(e))
        print(f"\nError: {e}")
        return 2


def _add_option_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--stop-on-error", action="store_true", help="Stop an entity at its first failed batch")
    parser.add_argument("--fill-empty", action="store_true", help="Fill empty fields with fallback values")
    parser.add_argument("--merge-duplicates", action="store_true", help="Merge duplicates with the default strategy")
    parser.add_argument("--skip-non-critical", action="store_true", help="Only run critical checks")


def run_classify(args) -> int:
    """Print the classification of each file without parsing it."""
    classifier = FileClassifier()
    for classified in classifier.classify_all(_read_files(args.files)):
        table = classified.target_table or "desconhecido"
        selected = "x" if classified.selected else " "
        print(f"[{selected}] {classified.import_order:>3}  {classified.name} -> {table}")
    return 0


async def run_analyze(args) -> int:
    """Analyze and validate files, then stop."""
    config = _load_config(args)
    storage = create_storage(config)
    try:
        orchestrator = ImportOrchestrator(storage, config)
        session = orchestrator.new_session()
        session.analyze(_read_files(args.files), options=_options_from_args(args, config.options))
        summary = await session.validate()
    finally:
        await storage.close()

    _print_files(session)
    _print_summary(summary)
    print("\nReady to import" if summary.pode_importar else "\nImport blocked by critical findings")
    return 0 if summary.pode_importar else 1


async def run_import(args) -> int:
    """Run a full import."""
    config = _load_config(args)
    storage = create_storage(config)
    if config.dry_run:
        print("Dry run: records are written to memory only")

    try:
        orchestrator = ImportOrchestrator(storage, config)
        session = orchestrator.new_session()
        session.analyze(_read_files(args.files), options=_options_from_args(args, config.options))
        summary = await session.validate()
        _print_files(session)
        _print_summary(summary)

        strategy = MergeStrategy(args.strategy) if args.strategy else None
        try:
            session.confirm(strategy, force=args.force)
        except ImportBlockedError as e:
            print(f"\n{e}. Fix the files or use --force.")
            return 1

        result = await session.run()
    finally:
        await storage.close()

    _print_result(result)

    if args.report:
        with open(args.report, "w", encoding="utf-8") as f:
            f.write(result.to_report() + "\n")
        print(f"Report saved to {args.report}")

    return 0 if result.total_erros == 0 else 1


async def run_history(args) -> int:
    """List recent imports."""
    config = _load_config(args)
    storage = create_storage(config)
    try:
        rows = await ImportOrchestrator(storage, config).recent_imports(args.limit)
    finally:
        await storage.close()

    if not rows:
        print("No imports recorded")
        return 0

    print("\n=== Recent Imports ===")
    for row in rows:
        print(
            f"{row.get('created_at', '')}  {row.get('status', ''):<12} "
            f"{row.get('total_registros_importados', 0):>6} importados  "
            f"{row.get('total_erros', 0):>4} erros  {row.get('arquivo_nome', '')}"
        )
    return 0


async def run_incomplete(args) -> int:
    """List, flag or complete clients with missing profile fields."""
    config = _load_config(args)
    storage = create_storage(config)
    triage = ClientTriage(storage)
    try:
        if args.mark:
            responses = await triage.mark_for_later_update(args.mark)
            failed = [cid for cid, r in responses.items() if not r.ok]
            print(f"Flagged {len(responses) - len(failed)} clients for later update")
            return 1 if failed else 0

        pending = await triage.pending_updates()
        if not pending:
            print("No clients waiting for update")
            return 0

        print(f"\n=== {len(pending)} clients waiting for update ===")
        for client in pending:
            print(f"  {client.id}  {client.nome}  {client.telefone or '-'}  missing: {', '.join(client.campos_faltando)}")

        if args.edit:
            edits = _prompt_edits(pending)
            if edits:
                responses = await triage.apply_edits(edits)
                saved = sum(1 for r in responses.values() if r.ok)
                print(f"Saved {saved}/{len(responses)} clients")
    finally:
        await storage.close()
    return 0


def _prompt_edits(pending) -> Dict[Any, Dict[str, Any]]:
    """Ask for each missing field; an empty answer leaves it as is."""
    edits: Dict[Any, Dict[str, Any]] = {}
    for client in pending:
        print(f"\n{client.nome}")
        values = {}
        for field_name in client.campos_faltando:
            if field_name not in EDITABLE_FIELDS:
                continue
            answer = input(f"  {field_name}: ").strip()
            if answer:
                values[field_name] = answer
        if values:
            edits[client.id] = values
    return edits


if __name__ == "__main__":
    sys.exit(main())
