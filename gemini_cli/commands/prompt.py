"""Prompt command for sending text and image prompts to a Gemini model."""

from .common import add_generation_args, build_generate_config, generate, make_client
from .parts import build_prompt_parts


PROMPT_DESCRIPTION = """
Send a prompt to the LLM. The prompt can be provided in arguments, through
stdin, or both; each argument is one part of the prompt. Arguments that look
like image files or http(s) URLs are sent as images, "-" stands for the
contents of stdin, and everything else is sent as text. Piped stdin is sent
before the arguments unless "-" places it explicitly.
"""


def execute(args):
    """Execute the prompt command."""
    parts = build_prompt_parts(args.parts)
    client = make_client(args)
    config = build_generate_config(system=args.system, temperature=args.temp)
    generate(client, args.model, parts, config, stream=args.stream)


def register_prompt_command(subparsers, parent):
    """Register the prompt subcommand."""
    parser = subparsers.add_parser(
        'prompt',
        aliases=['p', 'ask'],
        parents=[parent],
        help='Send a prompt to a Gemini model',
        description=PROMPT_DESCRIPTION,
    )
    parser.add_argument(
        'parts',
        nargs='*',
        metavar='PART',
        help='Prompt parts: text, image file path, image URL, or - for stdin'
    )
    add_generation_args(parser)
    parser.set_defaults(func=execute)
