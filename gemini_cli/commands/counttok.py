"""Counttok command for counting the tokens of a prompt."""

from .common import CLIError, make_client
from .parts import build_prompt_parts


def count_tokens(client, model, parts) -> int:
    """Ask the model how many tokens the prompt parts take."""
    response = client.models.count_tokens(model=model, contents=parts)
    if response.total_tokens is None:
        raise CLIError("model did not report a token count")
    return response.total_tokens


def execute(args):
    """Execute the counttok command."""
    parts = build_prompt_parts(args.parts)
    client = make_client(args)
    print(count_tokens(client, args.model, parts))


def register_counttok_command(subparsers, parent):
    """Register the counttok subcommand."""
    parser = subparsers.add_parser(
        'counttok',
        parents=[parent],
        help='Count the tokens in a prompt',
        description='Count the tokens in a prompt; parts are given as for "prompt".'
    )
    parser.add_argument(
        'parts',
        nargs='*',
        metavar='PART',
        help='Prompt parts: text, image file path, image URL, or - for stdin'
    )
    parser.set_defaults(func=execute)
