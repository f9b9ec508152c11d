"""Models command for listing the models available to an API key."""
import json

from .common import make_client


def describe_model(model):
    """Flatten a model record into a JSON-serializable dict."""
    return {
        'name': model.name,
        'display_name': model.display_name,
        'description': model.description,
        'input_token_limit': model.input_token_limit,
        'output_token_limit': model.output_token_limit,
        'supported_actions': list(model.supported_actions or []),
    }


def execute(args):
    """Execute the models command."""
    client = make_client(args)
    for model in client.models.list():
        if args.details:
            print(json.dumps(describe_model(model)))
        else:
            print(model.name)


def register_models_command(subparsers, parent):
    """Register the models subcommand."""
    parser = subparsers.add_parser(
        'models',
        parents=[parent],
        help='List available models'
    )
    parser.add_argument(
        '--details',
        action='store_true',
        help='Print one JSON object per model with limits and supported actions'
    )
    parser.set_defaults(func=execute)
