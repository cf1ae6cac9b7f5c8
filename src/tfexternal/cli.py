"""tfexternal CLI - Main entry point.

- query: run a program under the stateless JSON protocol
- resource: drive a managed resource through create/read/update/delete/import
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from tfexternal import __version__
from tfexternal.commands import import_command, query_command, resource_command
from tfexternal.commands.resource import Verb
from tfexternal.log import TRACE, configure_logging

app = typer.Typer(
    help="tfexternal - drive resource lifecycles through external programs.",
    no_args_is_help=True,
)

resource_app = typer.Typer(
    help="Manage a resource defined in a YAML file.",
    no_args_is_help=True,
)
app.add_typer(resource_app, name="resource")

StateOption = Annotated[
    Optional[Path],
    typer.Option("--state", "-s", help="State file (default: <definition>.state.json)"),
]
TimeoutOption = Annotated[
    Optional[float],
    typer.Option("--timeout", "-t", help="Seconds before the program is terminated"),
]
DefinitionArgument = Annotated[
    Path,
    typer.Argument(help="YAML resource definition", exists=True, dir_okay=False),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"tfexternal {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
    trace: Annotated[
        bool, typer.Option("--trace", help="Log full command lines and program output")
    ] = False,
) -> None:
    """tfexternal - drive resource lifecycles through external programs."""
    if trace:
        configure_logging(TRACE)
    elif verbose:
        configure_logging(logging.DEBUG)
    else:
        configure_logging()


@app.command()
def query(
    program: Annotated[list[str], typer.Argument(help="Program and its arguments")],
    pairs: Annotated[
        Optional[list[str]],
        typer.Option("--query", "-q", help="Query entry as key=value (repeatable)"),
    ] = None,
    working_dir: Annotated[
        Optional[Path],
        typer.Option("--working-dir", "-w", help="Working directory for the program"),
    ] = None,
    string_map: Annotated[
        bool,
        typer.Option("--string-map", help="Require a flat map of strings as the result"),
    ] = False,
    timeout: TimeoutOption = None,
) -> None:
    """Run a program with a JSON query on stdin and print its JSON result.

    Examples:
        tfexternal query -q name=web -- ./lookup.sh
        tfexternal query --string-map -- python3 fetch.py --region eu
    """
    query_command(program, pairs or [], working_dir, string_map, timeout)


def _verb_command(verb: Verb) -> None:
    def command(
        definition: DefinitionArgument,
        state: StateOption = None,
        timeout: TimeoutOption = None,
    ) -> None:
        resource_command(verb, definition, state, timeout)

    command.__doc__ = f"Run the {verb.value} step for a resource."
    resource_app.command(verb.value)(command)


for _verb in Verb:
    _verb_command(_verb)


@resource_app.command("import")
def import_cmd(
    resource_id: Annotated[str, typer.Argument(help="Identity of the existing resource")],
    definition: DefinitionArgument,
    state: StateOption = None,
    timeout: TimeoutOption = None,
) -> None:
    """Adopt an existing resource by id and read it.

    Examples:
        tfexternal resource import vm-1234 vm.yaml
    """
    import_command(resource_id, definition, state, timeout)


if __name__ == "__main__":
    app()
