"""Embed-db command: embed rows from SQL or files and store them as blobs in SQLite."""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path
from typing import Iterator, List, NamedTuple, Sequence, Tuple

from tqdm import tqdm

from .common import CLIError, make_client
from .encoding import embed_texts, encode_embedding

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "embeddings"
DEFAULT_BATCH_SIZE = 32
# Upper bound on texts per batch embedding request
MAX_BATCH_SIZE = 100

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class EmbedItem(NamedTuple):
    id: str
    text: str


def check_identifier(name: str, what: str) -> str:
    """Only plain identifiers may be spliced into SQL as table or alias names."""
    if not _IDENTIFIER.fullmatch(name):
        raise CLIError(f"invalid {what} name: {name!r}")
    return name


def open_db(db_path: str) -> sqlite3.Connection:
    """Open (or create) the output database."""
    db = sqlite3.connect(db_path, timeout=10)
    db.execute("PRAGMA synchronous=NORMAL")
    return db


def ensure_table(db: sqlite3.Connection, table: str) -> None:
    """Create the embeddings table if it doesn't exist. Idempotent."""
    db.execute(f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id TEXT PRIMARY KEY,
            embedding BLOB
        )
    """)
    db.commit()


def parse_attach(value: str) -> Tuple[str, str]:
    """Split an ``alias,path`` pair for --attach."""
    alias, sep, path = value.partition(",")
    alias, path = alias.strip(), path.strip()
    if not sep or not alias or not path or "," in path:
        raise CLIError("expect <alias>,<db path> pair for --attach")
    return check_identifier(alias, "attach alias"), path


def attach_database(db: sqlite3.Connection, alias: str, path: str) -> None:
    """Attach another SQLite file to the session under ``alias``."""
    if not Path(path).is_file():
        raise CLIError(f"unable to attach {path}: no such file")
    try:
        db.execute(f"ATTACH DATABASE ? AS {alias}", (path,))
    except sqlite3.Error as e:
        raise CLIError(f"unable to attach {path}: {e}") from e
    logger.debug("Attached %s as %s", path, alias)


def parse_files(value: str) -> Tuple[Path, str]:
    """Split a ``directory,glob`` pair for --files."""
    directory, sep, pattern = value.rpartition(",")
    if not sep or not directory or not pattern:
        raise CLIError("expect <root dir>,<glob pattern> pair for --files")
    root = Path(directory).expanduser()
    if not root.is_dir():
        raise CLIError(f"invalid directory: {directory}")
    if Path(pattern).is_absolute():
        raise CLIError(f"glob pattern must be relative to {directory}: {pattern}")
    return root, pattern


def _render(value) -> str:
    """Render a column value as text; NULL becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def rows_from_sql(db: sqlite3.Connection, query: str) -> List[EmbedItem]:
    """Run the query; the first column is the id, the rest form the text."""
    try:
        cursor = db.execute(query)
    except sqlite3.Error as e:
        raise CLIError(f"error running SQL query: {e}") from e

    ncols = len(cursor.description or ())
    if ncols < 2:
        raise CLIError(f"expect at least 2 columns from query; got {ncols}")

    items = []
    for row in cursor:
        items.append(EmbedItem(_render(row[0]), " ".join(_render(v) for v in row[1:])))
    logger.debug("Query returned %d rows", len(items))
    return items


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.debug("%s is not UTF-8, reading as latin-1", path)
        return path.read_text(encoding="latin-1")


def rows_from_files(root: Path, pattern: str) -> List[EmbedItem]:
    """One item per matching file: id is the path relative to root."""
    try:
        paths = sorted(root.glob(pattern))
    except (NotImplementedError, ValueError) as e:
        raise CLIError(f"invalid glob pattern {pattern!r}: {e}") from e

    items = []
    for path in paths:
        if path.is_dir():
            continue
        items.append(EmbedItem(path.relative_to(root).as_posix(), _read_text(path)))
    logger.debug("Matched %d files under %s with %s", len(items), root, pattern)
    return items


def batched(items: Sequence[EmbedItem], size: int) -> Iterator[Sequence[EmbedItem]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def store_embeddings(db: sqlite3.Connection, table: str, ids: Sequence[str], vectors) -> None:
    """Upsert encoded vectors by id and commit."""
    db.executemany(
        f"INSERT OR REPLACE INTO {table} (id, embedding) VALUES (?, ?)",
        [(id_, encode_embedding(vec)) for id_, vec in zip(ids, vectors)],
    )
    db.commit()


def embed_into_db(
    client,
    model: str,
    db: sqlite3.Connection,
    table: str,
    items: Sequence[EmbedItem],
    batch_size: int = DEFAULT_BATCH_SIZE,
    show_progress: bool = True,
) -> int:
    """Embed items batch by batch and store each batch before the next one.

    Returns the number of items stored. The first failing batch aborts the
    run; earlier batches stay committed.
    """
    stored = 0
    with tqdm(total=len(items), desc="Embedding", unit="item", disable=not show_progress) as progress:
        for batch in batched(items, batch_size):
            vectors = embed_texts(client, model, [item.text for item in batch])
            store_embeddings(db, table, [item.id for item in batch], vectors)
            stored += len(batch)
            progress.update(len(batch))
    return stored


def execute(args):
    """Execute the embed db command."""
    if bool(args.sql) == bool(args.files):
        raise CLIError("expect exactly one of --sql or --files")
    if args.attach and not args.sql:
        raise CLIError("--attach can only be used with --sql")
    if not 1 <= args.batch_size <= MAX_BATCH_SIZE:
        raise CLIError(f"--batch-size must be between 1 and {MAX_BATCH_SIZE}")

    table = check_identifier(args.table, "table")
    client = make_client(args)

    db = open_db(args.db_path)
    try:
        ensure_table(db, table)

        # Collect [id, text] pairs first, either from the DB itself (plus any
        # attached DBs) or from the file system.
        if args.sql:
            for value in args.attach:
                attach_database(db, *parse_attach(value))
            items = rows_from_sql(db, args.sql)
        else:
            items = rows_from_files(*parse_files(args.files))

        count = embed_into_db(client, args.model, db, table, items, args.batch_size)
    finally:
        db.close()

    print(f"Done! Embedded {count} items into {table}")


def register_embed_db_command(subparsers, parent):
    """Register the embed db subcommand."""
    parser = subparsers.add_parser(
        'db',
        parents=[parent],
        help='Embed rows from a SQL query or files and store them in a SQLite DB'
    )
    parser.add_argument(
        'db_path',
        metavar='DB',
        help='SQLite file to write embeddings into (created if missing)'
    )
    parser.add_argument(
        '--sql',
        type=str,
        default=None,
        help='Query returning the id first, then the text column(s) to embed'
    )
    parser.add_argument(
        '--attach',
        type=str,
        action='append',
        default=[],
        metavar='ALIAS,PATH',
        help='Additional DB to attach for --sql (repeatable)'
    )
    parser.add_argument(
        '--files',
        type=str,
        default=None,
        metavar='DIR,GLOB',
        help='Embed files under DIR matching GLOB, e.g. docs,**/*.md'
    )
    parser.add_argument(
        '--table',
        type=str,
        default=DEFAULT_TABLE,
        help=f'DB table name to store embeddings into (default: {DEFAULT_TABLE})'
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f'Texts per embedding request, at most {MAX_BATCH_SIZE} (default: {DEFAULT_BATCH_SIZE})'
    )
    parser.set_defaults(func=execute)
