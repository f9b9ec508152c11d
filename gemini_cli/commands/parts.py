"""Turn command-line arguments into prompt parts (text, image files, image URLs)."""

from __future__ import annotations

import logging
import mimetypes
import sys
from pathlib import Path
from typing import IO, List, Optional
from urllib.parse import urlparse

import httpx
from google.genai import types

from .common import CLIError

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".gif": "image/gif",
}

STDIN_ARG = "-"


def looks_like_url(arg: str) -> bool:
    return arg.startswith("http://") or arg.startswith("https://")


def looks_like_image_file(arg: str) -> bool:
    """True for an existing file with a known image extension."""
    path = Path(arg)
    return path.suffix.lower() in IMAGE_MIME_TYPES and path.is_file()


def part_from_file(path: str) -> types.Part:
    """Read an image file into an inline data part."""
    mime_type = IMAGE_MIME_TYPES.get(Path(path).suffix.lower())
    if mime_type is None:
        raise CLIError(f"unsupported image file type: {path}")
    data = Path(path).read_bytes()
    logger.debug("Read %d bytes of %s from %s", len(data), mime_type, path)
    return types.Part.from_bytes(data=data, mime_type=mime_type)


def _mime_type_for_url(url: str, response: httpx.Response) -> Optional[str]:
    header = response.headers.get("content-type")
    if header:
        return header.split(";", 1)[0].strip().lower()
    guessed, _ = mimetypes.guess_type(urlparse(url).path)
    return guessed


def part_from_url(url: str, client: Optional[httpx.Client] = None) -> types.Part:
    """Download an image from a URL into an inline data part."""
    if client is None:
        with httpx.Client(follow_redirects=True, max_redirects=3) as http:
            return part_from_url(url, http)

    response = client.get(url)
    response.raise_for_status()

    mime_type = _mime_type_for_url(url, response)
    if mime_type not in IMAGE_MIME_TYPES.values():
        raise CLIError(f"unsupported content type {mime_type!r} for {url}")
    logger.debug("Fetched %d bytes of %s from %s", len(response.content), mime_type, url)
    return types.Part.from_bytes(data=response.content, mime_type=mime_type)


def media_part_for(arg: str, http: Optional[httpx.Client] = None) -> Optional[types.Part]:
    """Return a media part if the argument names an image, else None."""
    if looks_like_url(arg):
        return part_from_url(arg, http)
    if looks_like_image_file(arg):
        return part_from_file(arg)
    return None


def build_prompt_parts(
    args: List[str],
    stdin: Optional[IO[str]] = None,
    http: Optional[httpx.Client] = None,
) -> List[types.Part]:
    """Build the list of prompt parts from positional arguments and stdin.

    ``-`` reads stdin in place. Without ``-``, piped stdin is sent first,
    followed by the arguments in order.
    """
    stdin = sys.stdin if stdin is None else stdin
    parts: List[types.Part] = []

    if STDIN_ARG not in args and not stdin.isatty():
        piped = stdin.read()
        if piped:
            parts.append(types.Part.from_text(text=piped))

    for arg in args:
        if arg == STDIN_ARG:
            parts.append(types.Part.from_text(text=stdin.read()))
            continue
        media = media_part_for(arg, http)
        if media is not None:
            parts.append(media)
        else:
            parts.append(types.Part.from_text(text=arg))

    if not parts:
        raise CLIError("expect a prompt from stdin and/or command-line argument")
    return parts
