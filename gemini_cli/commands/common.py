"""Shared configuration, client and output helpers for all commands."""

import argparse
import logging
import os
import sys

from google import genai
from google.genai import types

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_EMBEDDING_MODEL = "gemini-embedding-001"
EMPTY_RESPONSE = "<empty response from model>"

# Checked in order after --key
API_KEY_ENV_VARS = ("API_KEY", "GEMINI_API_KEY")

SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
)

logger = logging.getLogger(__name__)

_LOGGER_CONFIGURED = False


class CLIError(Exception):
    """A command failed; the message is shown to the user as-is."""


def configure_logging(level=logging.WARNING):
    """Configure the root logger on stderr if it has not been configured yet."""
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED:
        return

    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    _LOGGER_CONFIGURED = True


def build_global_parser(model_default=DEFAULT_MODEL):
    """Build the parent parser holding options shared by every subcommand."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--key",
        type=str,
        default=None,
        help="API key for Google AI (default: $API_KEY or $GEMINI_API_KEY)",
    )
    parent.add_argument(
        "-m",
        "--model",
        type=str,
        default=model_default,
        help=f"Model to use (default: {model_default})",
    )
    parent.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging on stderr"
    )
    return parent


def add_generation_args(parser, system=True, stream=True):
    """Add model tuning arguments shared by prompt, chat and template."""
    if system:
        parser.add_argument(
            "-s", "--system", type=str, default=None, help="Set a system prompt"
        )
    if stream:
        parser.add_argument(
            "--stream",
            action=argparse.BooleanOptionalAction,
            default=True,
            help="Stream the response from the model (default: stream)",
        )
    parser.add_argument(
        "--temp",
        type=float,
        default=None,
        help="Temperature setting for the model (default: model default)",
    )


def get_api_key(args, environ=None) -> str:
    """Return the API key from --key or the environment."""
    if args.key:
        return args.key

    environ = os.environ if environ is None else environ
    for name in API_KEY_ENV_VARS:
        key = environ.get(name)
        if key:
            return key

    raise CLIError("Unable to obtain API key for Google AI; use --key or API_KEY env var")


def make_client(args) -> genai.Client:
    """Create a Gemini API client for the parsed arguments."""
    return genai.Client(api_key=get_api_key(args))


def build_generate_config(system=None, temperature=None) -> types.GenerateContentConfig:
    """Generation config with safety filters disabled."""
    settings = {
        "safety_settings": [
            types.SafetySetting(
                category=category,
                threshold=types.HarmBlockThreshold.BLOCK_NONE,
            )
            for category in SAFETY_CATEGORIES
        ],
    }
    if system:
        settings["system_instruction"] = system
    if temperature is not None:
        settings["temperature"] = temperature
    return types.GenerateContentConfig(**settings)


def _first_candidate_parts(response):
    """Parts of the first candidate, or None when the model sent nothing."""
    if not response.candidates:
        return None
    content = response.candidates[0].content
    if content is None:
        return None
    return content.parts or []


def print_stream(stream, out=None):
    """Print a streamed response chunk by chunk."""
    out = out or sys.stdout
    for chunk in stream:
        parts = _first_candidate_parts(chunk)
        if parts is None:
            print(EMPTY_RESPONSE, file=out)
            continue
        for part in parts:
            print(part.text or "", end="", file=out, flush=True)
    print(file=out)


def print_response(response, out=None):
    """Print a complete response, one part per line."""
    out = out or sys.stdout
    parts = _first_candidate_parts(response)
    if parts is None:
        print(EMPTY_RESPONSE, file=out)
        return
    for part in parts:
        print(part.text or "", file=out)


def generate(client, model, parts, config, stream=True, out=None):
    """Send prompt parts to the model and print what comes back."""
    logger.debug("Sending %d part(s) to %s (stream=%s)", len(parts), model, stream)
    if stream:
        print_stream(
            client.models.generate_content_stream(
                model=model, contents=parts, config=config
            ),
            out,
        )
    else:
        print_response(
            client.models.generate_content(model=model, contents=parts, config=config),
            out,
        )
