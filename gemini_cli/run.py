#!/usr/bin/env python3
"""
Gemini CLI tool with prompt, chat, template, embed and model listing.
"""
import argparse
import logging
import sqlite3
import sys

import httpx
from google.genai import errors

from . import __version__
from .commands import (
    register_chat_command,
    register_counttok_command,
    register_embed_command,
    register_models_command,
    register_prompt_command,
    register_template_command,
)
from .commands.common import CLIError, build_global_parser, configure_logging


def build_parser():
    parser = argparse.ArgumentParser(
        prog='gemini-cli',
        description="Interact with GoogleAI's Gemini LLMs through the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    subparsers.required = True

    # Every subcommand shares --key, --model and --verbose
    parent = build_global_parser()

    register_prompt_command(subparsers, parent)
    register_chat_command(subparsers, parent)
    register_counttok_command(subparsers, parent)
    register_template_command(subparsers, parent)
    register_embed_command(subparsers)
    register_models_command(subparsers, parent)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        args.func(args)
    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except errors.APIError as e:
        print(f"Error: API request failed ({e.code}): {e.message}", file=sys.stderr)
        return 1
    except (httpx.HTTPError, sqlite3.Error, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
