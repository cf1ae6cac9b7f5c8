"""Query command implementation."""

from pathlib import Path

from tfexternal.diagnostics import Diagnostic
from tfexternal.display import print_diagnostic, print_error, print_json
from tfexternal.engine.context import OperationContext, cancel_on_interrupt
from tfexternal.exceptions import ExternalError
from tfexternal.query import ResultMode, run_data_source


def parse_query(pairs: list[str]) -> dict[str, str]:
    """Parse ``key=value`` pairs. The value may be empty or contain ``=``."""
    query: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid query argument {pair!r}, expected key=value")
        query[key] = value
    return query


def query_command(
    program: list[str],
    pairs: list[str],
    working_dir: Path | None = None,
    string_map: bool = False,
    timeout: float | None = None,
) -> None:
    """Run a program under the stateless protocol and print its result.

    Args:
        program: Argument vector of the program
        pairs: ``key=value`` query entries
        working_dir: Working directory for the program
        string_map: Require a flat map of strings (legacy contract)
        timeout: Seconds before the program is terminated
    """
    try:
        query = parse_query(pairs)
    except ValueError as e:
        print_error(str(e))
        raise SystemExit(1) from e

    mode = ResultMode.STRING_MAP if string_map else ResultMode.DYNAMIC

    with cancel_on_interrupt(OperationContext(timeout=timeout)) as context:
        try:
            result = run_data_source(program, query, working_dir, mode, context=context)
        except ExternalError as e:
            print_diagnostic(Diagnostic.from_exception(e))
            raise SystemExit(1) from e

    print_json(result.result)
