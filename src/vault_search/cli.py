"""Command line entry point: build the index, search a vault, grep one file."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from dataclasses import asdict
import logging
from pathlib import Path
import sys
from typing import Any

import orjson
from pydantic import ValidationError

from vault_search.config import Settings
from vault_search.domain.search import FileItem, SearchResult, SearchStatus
from vault_search.observability import configure_logging, get_metrics, init_tracing
from vault_search.service_layer.search_service import SearchService, build_search_service


logger = logging.getLogger(__name__)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-search",
        description="Index a vault of notes and search it",
    )
    parser.add_argument("--log-level", help="Override VAULT_SEARCH_LOG_LEVEL")
    parser.add_argument("--assets", type=Path, help="Directory with jieba-dict.txt and stop-word lists")
    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser("index", help="Build or refresh the index snapshot")
    index_parser.add_argument("--vault", type=Path, required=True, help="Vault root directory")
    index_parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Ignore any snapshot and re-read every note",
    )
    index_parser.add_argument("--metrics", action="store_true", help="Print Prometheus metrics after the report")

    search_parser = subparsers.add_parser("search", help="Rank the notes of a vault")
    search_parser.add_argument("--vault", type=Path, required=True, help="Vault root directory")
    search_parser.add_argument("query", help="Free-text query")
    search_parser.add_argument("--mode", choices=("and", "or"), default="and", help="Term combination (default: and)")
    search_parser.add_argument("--limit", type=int, help="Maximum results (default: VAULT_SEARCH_MAX_ITEM_RESULTS)")
    search_parser.add_argument("--sub-items", action="store_true", help="Include matching lines per file")
    search_parser.add_argument("--json", action="store_true", help="Emit the result as JSON")

    grep_parser = subparsers.add_parser("grep", help="Fuzzy line search inside one file")
    grep_parser.add_argument("file", type=Path, help="File to search")
    grep_parser.add_argument("query", help="Characters to match in order")
    grep_parser.add_argument("--vault", type=Path, help="Vault root (default: the file's directory)")
    grep_parser.add_argument("--limit", type=int, help="Maximum lines (default: VAULT_SEARCH_MAX_LINE_RESULTS)")
    grep_parser.add_argument("--json", action="store_true", help="Emit the result as JSON")
    return parser


def _validate_args(args: argparse.Namespace) -> None:
    if getattr(args, "limit", None) is not None and args.limit < 1:
        raise ValueError("--limit must be >= 1")


def _settings_for(args: argparse.Namespace, vault_root: Path) -> Settings:
    overrides: dict[str, Any] = {"vault_root": vault_root}
    if args.assets is not None:
        overrides["assets_dir"] = args.assets
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.command == "grep" and args.limit is not None:
        overrides["max_line_results"] = args.limit
    return Settings(**overrides)


def _write_json(payload: Any) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode() + "\n")


def _print_result(result: SearchResult, *, as_json: bool) -> None:
    if as_json:
        _write_json(result.model_dump(mode="json"))
        return
    for item in result.items:
        if isinstance(item, FileItem):
            sys.stdout.write(f"{item.path}\n")
            for sub_item in item.sub_items:
                sys.stdout.write(f"  {sub_item.row + 1}: {sub_item.text}\n")
        else:
            sys.stdout.write(f"{item.line.row + 1}: {item.line.text}\n")


async def _run_index(service: SearchService, args: argparse.Namespace) -> int:
    report = await service.reindex_all() if args.rebuild else await service.initialize()
    _write_json(asdict(report))
    if args.metrics:
        sys.stdout.write(get_metrics().decode())
    return 0


async def _run_search(service: SearchService, args: argparse.Namespace) -> int:
    await service.initialize()
    ranked = service.search_files(args.query, args.mode, args.limit)
    items = []
    for doc in ranked:
        sub_items = []
        if args.sub_items:
            sub_items = await service.get_file_sub_items(doc.path, args.query, doc.matched_terms)
        items.append(FileItem(path=doc.path, matched_terms=list(doc.matched_terms), sub_items=sub_items))
    _print_result(SearchResult(items=items), as_json=args.json)
    return 0


async def _run_grep(service: SearchService, args: argparse.Namespace, relative_path: str) -> int:
    result = await service.search_in_file(relative_path, args.query)
    _print_result(result, as_json=args.json)
    if result.status is SearchStatus.UNSUPPORTED:
        logger.error("%s is not a plain-text file", args.file)
        return 2
    return 0


async def _run(args: argparse.Namespace) -> int:
    if args.command == "grep":
        file_path = args.file.resolve()
        vault_root = (args.vault or file_path.parent).resolve()
        try:
            relative_path = file_path.relative_to(vault_root).as_posix()
        except ValueError:
            logger.error("%s is outside the vault %s", file_path, vault_root)
            return 1
    else:
        vault_root = args.vault.resolve()
        relative_path = ""

    settings = _settings_for(args, vault_root)
    configure_logging(settings.log_level, settings.log_json)
    service = await build_search_service(settings)
    try:
        if args.command == "index":
            return await _run_index(service, args)
        if args.command == "search":
            return await _run_search(service, args)
        return await _run_grep(service, args, relative_path)
    finally:
        if args.command != "grep":
            await service.close()


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging("INFO", json_output=False)
    init_tracing()
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        _validate_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        return asyncio.run(_run(args))
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    except (OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
