from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from explog.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from explog.db.connection import create_storage
from explog.db.storage import StorageError
from explog.logging.init import log_summary, setup_logging
from explog.markdown.document import DocumentError, NoteDocument
from explog.markdown.frontmatter import read_animal_id
from explog.markdown.table import HEADERS_V1, HEADERS_V2, extract_table_rows, table_exists
from explog.models.config_models import ExportConfig
from explog.models.export_result import ExportStatus
from explog.models.record import ExpLogRecord
from explog.services.export import add_table, run_export
from explog.services.prompts import ConsolePrompter
from explog.services.summary import render_summary_line

"""CLI entrypoint.

    explog [--config PATH] [--debug] export NOTE
    explog [--config PATH] [--debug] add-table NOTE
    explog [--config PATH] [--debug] inspect NOTE

Exit codes: 0 exported, 1 fatal / not exported, 2 partial write failure,
3 cancelled by the user.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2
EXIT_CANCELLED = 3

_STATUS_EXIT = {
    ExportStatus.EXPORTED: EXIT_SUCCESS,
    ExportStatus.PARTIAL: EXIT_PARTIAL_FAILURE,
    ExportStatus.CANCELLED: EXIT_CANCELLED,
}


def exit_code_for(status: ExportStatus) -> int:
    return _STATUS_EXIT.get(status, EXIT_FATAL)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数を上書きし、PostgreSQL 接続情報を最優先化。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="explog", description="ExpLog note -> database exporter")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to explog.yml")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("export", "Export the ExpLog table of a note"),
        ("add-table", "Insert (or migrate) the ExpLog table in a note"),
        ("inspect", "Print the parsed rows of a note without touching the database"),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("note", type=Path, help="Markdown note file")
    return p.parse_args(argv)


def _record_state(record: ExpLogRecord) -> str:
    if record.is_invalid:
        return "invalid"
    if not record.is_complete:
        return "incomplete"
    if record.is_new_site_triple:
        return "complete(new-site)"
    return "complete"


def _inspect(note: NoteDocument, cfg: ExportConfig) -> int:
    if not note.exists():
        print(f"inspect: note not found: {note.path}")
        return EXIT_FATAL
    try:
        text = note.read()
    except DocumentError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"NOTE: {note.name} AnimalID={read_animal_id(text) or '-'}")
    if not table_exists(text, HEADERS_V2):
        hint = " (old table without Paradigm; run add-table)" if table_exists(text, HEADERS_V1) else ""
        print(f"  no ExpLog table{hint}")
        return EXIT_SUCCESS
    formats = cfg.input.formats()
    rows = extract_table_rows(text, HEADERS_V2)
    for i, row in enumerate(rows, start=1):
        record = ExpLogRecord.from_row(i, row, formats)
        if record.is_empty:
            continue
        print(
            f"  ROW {i}: state={_record_state(record)} "
            f"date={record.date_part() or '-'} time={record.time_part() or '-'} "
            f"stack={record.stack_id} exp={record.exp_id} site={record.site_id} "
            f"paradigm={record.paradigm or '-'}"
        )
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    # None のときのみシステム引数を読む (テストで main([]) を渡すケース対策)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)

    note = NoteDocument(args.note)

    if args.command == "inspect" and not args.config.exists():
        # inspect は DB を使わないので設定ファイル無しでも既定値で動かす
        return _inspect(note, ExportConfig())

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "inspect":
        return _inspect(note, cfg)

    prompter = ConsolePrompter()
    try:
        with create_storage(cfg) as storage:
            if args.command == "add-table":
                changed = add_table(note, cfg, storage, prompter)
                return EXIT_SUCCESS if changed else EXIT_FATAL
            result = run_export(note, cfg, storage, prompter)
    except StorageError as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL

    logger.debug(f"export finished: status={result.status.value} animal={result.animal_id}")
    # log_summary が "SUMMARY " を付けるので先頭を除く
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return exit_code_for(result.status)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
