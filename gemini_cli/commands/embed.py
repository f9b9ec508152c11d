"""Embed command: embed content, fill an embeddings DB, and search it by similarity."""

from __future__ import annotations

import base64
import json
import logging
import sqlite3
import sys
from pathlib import Path
from typing import IO, List, NamedTuple, Optional

import numpy as np

from .common import DEFAULT_EMBEDDING_MODEL, CLIError, build_global_parser, make_client
from .embed_db import DEFAULT_TABLE, check_identifier, open_db, register_embed_db_command
from .encoding import decode_embedding, embed_texts, encode_embedding

logger = logging.getLogger(__name__)

FORMATS = ("json", "base64", "blob")
DEFAULT_TOPK = 5


class SimilarRow(NamedTuple):
    id: str
    score: float


def read_content(content: str, stdin: Optional[IO[str]] = None) -> str:
    """Resolve ``-`` to the contents of stdin."""
    if content == "-":
        content = (stdin or sys.stdin).read()
    if not content:
        raise CLIError("no content to embed")
    return content


def embed_one(client, model: str, content: str) -> List[float]:
    return embed_texts(client, model, [content])[0]


def emit_embedding(values, fmt: str, out=None) -> None:
    """Write an embedding to ``out`` as JSON, base64 text or the raw blob."""
    out = out or sys.stdout
    if fmt == "json":
        print(json.dumps([float(v) for v in values]), file=out)
    elif fmt == "base64":
        print(base64.b64encode(encode_embedding(values)).decode("ascii"), file=out)
    elif fmt == "blob":
        out.flush()
        out.buffer.write(encode_embedding(values))
        out.buffer.flush()
    else:
        raise CLIError(f"invalid format: {fmt}")


def load_embeddings(db: sqlite3.Connection, table: str):
    """Fetch every (id, vector) pair stored in ``table``."""
    try:
        rows = db.execute(f"SELECT id, embedding FROM {table}").fetchall()
    except sqlite3.OperationalError as e:
        raise CLIError(f"unable to read table {table}: {e}") from e
    return [(str(row[0]), decode_embedding(row[1] or b"")) for row in rows]


def rank_similar(query, stored, topk: int = DEFAULT_TOPK) -> List[SimilarRow]:
    """Rank stored vectors by cosine similarity to ``query``, best first."""
    q = np.asarray(query, dtype=np.float32)
    ids = []
    vectors = []
    for id_, vec in stored:
        if vec.shape != q.shape:
            logger.warning("Skipping %s: dimension %d != query dimension %d", id_, vec.size, q.size)
            continue
        ids.append(id_)
        vectors.append(vec)
    if not vectors:
        return []

    matrix = np.stack(vectors)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

    order = np.argsort(-scores, kind="stable")[:topk]
    return [SimilarRow(ids[i], float(scores[i])) for i in order]


def execute_content(args):
    """Execute the embed content command."""
    content = read_content(args.content)
    client = make_client(args)
    emit_embedding(embed_one(client, args.model, content), args.format)


def execute_similar(args):
    """Execute the embed similar command."""
    if args.topk < 1:
        raise CLIError("--topk must be a positive integer")
    table = check_identifier(args.table, "table")
    # Reading only; never create the file here
    if not Path(args.db_path).is_file():
        raise CLIError(f"no such database: {args.db_path}")
    content = read_content(args.content)
    client = make_client(args)
    query = embed_one(client, args.model, content)

    db = open_db(args.db_path)
    try:
        stored = load_embeddings(db, table)
    finally:
        db.close()

    for row in rank_similar(query, stored, args.topk):
        print(json.dumps(row._asdict()))


def register_embed_command(subparsers):
    """Register the embed subcommand and its content/db/similar modes."""
    parser = subparsers.add_parser(
        'embed',
        help='Embed content using an embedding model'
    )
    modes = parser.add_subparsers(dest='embed_command', help='Embedding modes')
    modes.required = True

    # Embedding commands default to an embedding model
    parent = build_global_parser(DEFAULT_EMBEDDING_MODEL)

    content = modes.add_parser(
        'content',
        parents=[parent],
        help='Embed a single string of content'
    )
    content.add_argument('content', help='Content to embed, or - to read stdin')
    content.add_argument(
        '--format',
        choices=FORMATS,
        default='json',
        help='Format for embedding output (default: json)'
    )
    content.set_defaults(func=execute_content)

    register_embed_db_command(modes, parent)

    similar = modes.add_parser(
        'similar',
        parents=[parent],
        help='Find the stored embeddings most similar to some content'
    )
    similar.add_argument('db_path', metavar='DB', help='SQLite file holding embeddings')
    similar.add_argument('content', help='Content to compare against, or - to read stdin')
    similar.add_argument(
        '--table',
        type=str,
        default=DEFAULT_TABLE,
        help=f'DB table name holding embeddings (default: {DEFAULT_TABLE})'
    )
    similar.add_argument(
        '--topk',
        type=int,
        default=DEFAULT_TOPK,
        help=f'Number of results to print (default: {DEFAULT_TOPK})'
    )
    similar.set_defaults(func=execute_similar)
