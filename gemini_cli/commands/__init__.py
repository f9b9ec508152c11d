"""Command subpackage for the Gemini CLI."""
from .chat import register_chat_command
from .counttok import register_counttok_command
from .embed import register_embed_command
from .models import register_models_command
from .prompt import register_prompt_command
from .template import register_template_command

__all__ = [
    'register_chat_command',
    'register_counttok_command',
    'register_embed_command',
    'register_models_command',
    'register_prompt_command',
    'register_template_command',
]
