# -*- coding: utf-8 -*-

from .command_handler import start_command, help_command, translate_command
from .message_handler import handle_message

__all__ = ["start_command", "help_command", "translate_command", "handle_message"]
