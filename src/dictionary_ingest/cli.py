"""
Command-line interface for dictionary ingestion.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import IngestConfig, load_config
from .exceptions import ConfigError, DatabaseError, EntityNotFoundError
from .ingester import DictionaryIngester


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the dictionary-ingest CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"\n  [CONFIG ERROR] {e}")
        if e.line:
            print(f"                Line: {e.line}")
        return 1
    except FileNotFoundError as e:
        print(f"\n  [ERROR] {e}")
        return 1

    _configure_logging(config, args.verbose)

    try:
        with DictionaryIngester(args.db, config) as ingester:
            return args.func(ingester, args)
    except DatabaseError as e:
        print(f"\n  [DATABASE ERROR] {e}")
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="dictionary-ingest",
        description="Normalize dictionary provider documents into a relational graph",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=Path("dictionary.db"),
        help="SQLite database file (default: dictionary.db)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log output (-v info, -vv debug)",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")

    # ingest command
    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Ingest JSON files of provider documents",
    )
    ingest_parser.add_argument(
        "files",
        type=Path,
        nargs="+",
        help="JSON file(s) with one document or a list of documents",
    )
    ingest_parser.set_defaults(func=cmd_ingest)

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="Show a stored word with its senses and definitions",
    )
    show_parser.add_argument(
        "word",
        type=str,
        help="Word text",
    )
    show_parser.add_argument(
        "--variant",
        type=str,
        default="",
        help="Homograph variant (default: none)",
    )
    show_parser.set_defaults(func=cmd_show)

    # history command
    history_parser = subparsers.add_parser(
        "history",
        help="View ingestion history",
    )
    history_parser.add_argument(
        "--word",
        type=str,
        help="Only runs for this word",
    )
    history_parser.add_argument(
        "--failed",
        action="store_true",
        help="Only failed runs",
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Number of runs to show",
    )
    history_parser.set_defaults(func=cmd_history)

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Check the stored graph for consistency problems",
    )
    validate_parser.set_defaults(func=cmd_validate)

    # stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show row counts",
    )
    stats_parser.set_defaults(func=cmd_stats)

    return parser


def _configure_logging(config: IngestConfig, verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_ingest(ingester: DictionaryIngester, args: argparse.Namespace) -> int:
    """Handle ingest command."""
    failures = 0
    failed_before = len(ingester.get_history(status="FAILED"))
    for path in args.files:
        print(f"\nIngesting {path}...")
        try:
            summaries = ingester.ingest_file(path)
        except FileNotFoundError as e:
            print(f"  [ERROR] {e}")
            failures += 1
            continue
        except ValueError as e:
            print(f"  [PARSE ERROR] {path}: {e}")
            failures += 1
            continue

        for summary in summaries:
            print(
                f"  [OK] {summary.word}: {len(summary.definitions)} definition(s), "
                f"{summary.candidate_count} candidate(s), "
                f"{summary.relationship_count} relationship(s)"
            )
            if summary.skipped_relationships:
                print(f"       skipped {summary.skipped_relationships} relationship(s)")

    failed_runs = len(ingester.get_history(status="FAILED")) - failed_before
    if failed_runs:
        print(f"\n{failed_runs} failed run(s) recorded; see 'dictionary-ingest history --failed'")
    return 1 if failures or failed_runs else 0


def cmd_show(ingester: DictionaryIngester, args: argparse.Namespace) -> int:
    """Handle show command."""
    try:
        word = ingester.get_word(args.word, args.variant)
    except EntityNotFoundError as e:
        print(str(e))
        return 1

    print(f"\n{word.text}" + (f" [{word.variant}]" if word.variant else ""))
    if word.phonetic:
        print(f"  Phonetic:  {word.phonetic}")
    if word.etymology:
        print(f"  Etymology: {word.etymology}")

    for sense in ingester.get_senses(word.text, word.variant):
        plural = " (plural)" if sense.is_plural else ""
        print(f"\n  [{sense.part_of_speech}{plural}] sense {sense.id}")
        for definition in ingester.get_definitions(sense.id):
            marker = "*" if definition.is_primary else "-"
            print(f"    {marker} {definition.text}")
            for example in ingester.get_examples(definition.id):
                note = f" ({example.grammatical_note})" if example.grammatical_note else ""
                print(f"        e.g. {example.text}{note}")
        for rel in ingester.get_sense_relations(sense.id):
            target = ingester.get_sense(rel.target_id)
            target_word = ingester.get_word_by_id(target.word_id)
            print(f"    -> {rel.relation_type}: {target_word.text} ({target.part_of_speech})")

    relations = ingester.get_word_relations(word.text, variant=word.variant)
    if relations:
        print("\n  Related words:")
        for rel in relations:
            target_word = ingester.get_word_by_id(rel.target_id)
            print(f"    -> {rel.relation_type}: {target_word.text}")
    return 0


def cmd_history(ingester: DictionaryIngester, args: argparse.Namespace) -> int:
    """Handle history command."""
    runs = ingester.get_history(
        word=args.word,
        status="FAILED" if args.failed else None,
        limit=args.limit,
    )

    if not runs:
        print("No ingestion runs found.")
        return 0

    print(f"\nIngestion runs (showing {len(runs)}):\n")
    print(f"{'ID':<6} {'Word':<24} {'Status':<10} {'Finished'}")
    print("-" * 70)

    for run in runs:
        word = (run.word[:21] + "...") if len(run.word) > 24 else run.word
        print(f"{run.id:<6} {word:<24} {run.status:<10} {run.finished_at}")
        if run.status == "FAILED" and run.message:
            print(f"       {run.message}")

    return 0


def cmd_validate(ingester: DictionaryIngester, args: argparse.Namespace) -> int:
    """Handle validate command."""
    results = ingester.validate()

    if not results:
        print("\nValidation passed!")
        return 0

    errors = [r for r in results if r.severity == "ERROR"]
    warnings = [r for r in results if r.severity == "WARNING"]
    for result in errors:
        print(f"  [ERROR] {result.rule_id} {result.entity_type} {result.entity_id}: {result.message}")
    for result in warnings:
        print(f"  [WARN]  {result.rule_id} {result.entity_type} {result.entity_id}: {result.message}")

    print(f"\nFound {len(errors)} error(s), {len(warnings)} warning(s)")
    return 1 if errors else 0


def cmd_stats(ingester: DictionaryIngester, args: argparse.Namespace) -> int:
    """Handle stats command."""
    print()
    for table, count in ingester.counts().items():
        print(f"  {table:<18} {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
