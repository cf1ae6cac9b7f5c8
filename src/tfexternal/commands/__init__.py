"""tfexternal CLI commands.

Each command module contains the business logic for a CLI command.
The cli.py module handles typer decorators and argument parsing,
then delegates to these command functions.
"""

from tfexternal.commands.query import query_command
from tfexternal.commands.resource import import_command, resource_command

__all__ = [
    "import_command",
    "query_command",
    "resource_command",
]
