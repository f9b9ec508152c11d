"""Chat command for an interactive conversation with a Gemini model."""
import logging
import sys

from .common import add_generation_args, build_generate_config, make_client, print_stream

logger = logging.getLogger(__name__)

EXIT_WORDS = ('exit', 'quit')


def chat_loop(chat, read_line=None, out=None):
    """Read user lines and stream replies until exit or end of input.

    Returns the number of messages sent.
    """
    read_line = read_line or input
    out = out or sys.stdout
    sent = 0
    while True:
        try:
            line = read_line('> ')
        except EOFError:
            print(file=out)
            break

        message = line.strip()
        if not message:
            continue
        if message.lower() in EXIT_WORDS:
            break

        logger.debug("Sending chat message %d (%d chars)", sent + 1, len(message))
        print_stream(chat.send_message_stream(message), out)
        sent += 1
    return sent


def execute(args):
    """Execute the chat command."""
    client = make_client(args)
    chat = client.chats.create(
        model=args.model,
        config=build_generate_config(system=args.system, temperature=args.temp),
    )

    print(f"Chatting with {args.model}")
    print("Type 'exit' or 'quit' to exit")
    try:
        chat_loop(chat)
    except KeyboardInterrupt:
        print()


def register_chat_command(subparsers, parent):
    """Register the chat subcommand."""
    parser = subparsers.add_parser(
        'chat',
        parents=[parent],
        help='Interactive chat with a Gemini model'
    )
    add_generation_args(parser, stream=False)
    parser.set_defaults(func=execute)
