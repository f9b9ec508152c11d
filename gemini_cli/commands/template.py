"""Template command for storing prompt templates and sending filled-in prompts."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from google.genai import types

from . import prompt
from .common import CLIError, add_generation_args, build_generate_config, generate, make_client
from .parts import media_part_for

logger = logging.getLogger(__name__)

PLACEHOLDER = "%s"
TEMPLATES_ENV_VAR = "GEMINI_CLI_TEMPLATES"

TEMPLATE_DESCRIPTION = """
Use template to generate prompts, and send that to the model.

The template is a string with placeholders for the user input,
for example, "translate %s to english, and give me detailed explanations".
You can add a template with "-a key", and use it with "-u key".
The text args will be inserted into the template.

Except for the template part of this command,
the other usages are the same as "prompt" command.

You can also edit ~/.config/gemini-cli-templates directly (or the file
named by $GEMINI_CLI_TEMPLATES), just add a line with "key:value" format.
"""


def templates_path(environ: Optional[Dict[str, str]] = None) -> Path:
    """Location of the template store."""
    environ = os.environ if environ is None else environ
    override = environ.get(TEMPLATES_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "gemini-cli-templates"


def _ensure_store(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)


def load_templates(path: Path) -> Dict[str, str]:
    """Read ``key:value`` lines into a dict; lines without ':' are ignored."""
    _ensure_store(path)
    templates: Dict[str, str] = {}
    with open(path, encoding="utf-8") as f:
        for line in f:
            key, sep, value = line.partition(":")
            if not sep:
                continue
            templates[key.strip()] = value.strip()
    return templates


def add_template(path: Path, key: str, value: str) -> None:
    """Append a template to the store."""
    if not key.strip() or ":" in key or "\n" in key:
        raise CLIError(f"invalid template key: {key!r}")
    if "\n" in value:
        raise CLIError("template value must be a single line")

    _ensure_store(path)
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{key.strip()}:{value}\n")
    logger.debug("Added template %r to %s", key, path)


def fill_template(template: str, texts: List[str]) -> str:
    """Substitute texts into the ``%s`` placeholders, in order.

    Surplus texts are dropped and unfilled placeholders are left as they are.
    Substituted text is never itself scanned for placeholders.
    """
    pieces = template.split(PLACEHOLDER)
    filled = [pieces[0]]
    for i, piece in enumerate(pieces[1:]):
        filled.append(texts[i] if i < len(texts) else PLACEHOLDER)
        filled.append(piece)
    return "".join(filled)


def build_template_parts(template: str, args: List[str]) -> List[types.Part]:
    """Media parts from image/URL arguments, then the filled template text."""
    parts: List[types.Part] = []
    texts: List[str] = []
    for arg in args:
        media = media_part_for(arg)
        if media is not None:
            parts.append(media)
        else:
            texts.append(arg)

    parts.append(types.Part.from_text(text=fill_template(template, texts)))
    return parts


def execute(args):
    """Execute the template command."""
    path = templates_path()
    templates = load_templates(path)

    if args.list:
        for key in sorted(templates):
            print(f"{key}\t:{templates[key]}")
        return

    if args.add:
        if len(args.parts) != 1:
            raise CLIError("expect exactly one template value with --add")
        add_template(path, args.add, args.parts[0])
        return

    # Without a template this is a plain prompt
    if not args.use:
        args.system = None
        prompt.execute(args)
        return

    if args.use not in templates:
        raise CLIError(f"unknown template: {args.use}")

    parts = build_template_parts(templates[args.use], args.parts)
    client = make_client(args)
    config = build_generate_config(temperature=args.temp)
    generate(client, args.model, parts, config, stream=args.stream)


def register_template_command(subparsers, parent):
    """Register the template subcommand."""
    parser = subparsers.add_parser(
        'template',
        aliases=['t'],
        parents=[parent],
        help='Send a prompt with templates',
        description=TEMPLATE_DESCRIPTION,
    )
    parser.add_argument(
        'parts',
        nargs='*',
        metavar='ARG',
        help='Template value (with --add), or texts/images to fill the template'
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('-a', '--add', metavar='KEY', default=None, help='Add a template with a key')
    mode.add_argument('-u', '--use', metavar='KEY', default=None, help='Use a template')
    mode.add_argument('-l', '--list', action='store_true', help='List templates')
    add_generation_args(parser, system=False)
    parser.set_defaults(func=execute)
