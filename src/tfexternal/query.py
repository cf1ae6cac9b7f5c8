"""Stateless query protocol.

The program receives one JSON object of string values on stdin and must
print one JSON value on stdout before exiting 0. Data sources accept any
JSON value as the result; ephemeral resources (and the legacy data source
contract) require a flat map of strings. Which contract applies is always
chosen by the caller, never inferred from the output.
"""

import json
import logging
import tempfile
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from tfexternal.engine.backends import filter_program
from tfexternal.engine.container import Container
from tfexternal.engine.context import OperationContext
from tfexternal.engine.protocols import CaptureMode, CommandExecutor
from tfexternal.exceptions import ConfigurationError, MalformedOutputError

logger = logging.getLogger(__name__)

# Identity reported by data sources
DATA_SOURCE_ID = "-"

_STRING_MAP = TypeAdapter(dict[str, str])


class ResultMode(str, Enum):
    """Contract for the program's stdout."""

    DYNAMIC = "dynamic"  # any JSON value
    STRING_MAP = "string_map"  # JSON object of string values


class QueryResult(BaseModel):
    """Result of a stateless query."""

    id: str | None = None
    result: Any = None


def encode_query(query: Mapping[str, str | None] | None) -> bytes:
    """Serialize the query, dropping null values entirely.

    An explicit empty string is kept; only None disappears.

    Raises:
        ConfigurationError: a value is neither a string nor None
    """
    filtered: dict[str, str] = {}
    for key, value in (query or {}).items():
        if value is None:
            continue
        if not isinstance(value, str):
            raise ConfigurationError(
                f"query value for {key!r} must be a string, got {type(value).__name__}"
            )
        filtered[key] = value
    return json.dumps(filtered, sort_keys=True, separators=(",", ":")).encode()


def decode_result(raw: str, mode: ResultMode, program: str) -> Any:
    """Parse program output according to the configured contract.

    Raises:
        MalformedOutputError: output is not valid for ``mode``
    """
    if mode is ResultMode.STRING_MAP:
        try:
            return _STRING_MAP.validate_json(raw, strict=True)
        except ValidationError as e:
            raise MalformedOutputError(
                program,
                "Program output must be a JSON encoded map of string keys and string values.",
                str(e),
            ) from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(program, "Program output must be valid JSON.", str(e)) from e


def run_query(
    program: list[str],
    query: Mapping[str, str | None] | None = None,
    working_dir: str | Path | None = None,
    mode: ResultMode = ResultMode.DYNAMIC,
    executor: CommandExecutor | None = None,
    context: OperationContext | None = None,
    kind: str = "data source",
) -> Any:
    """Run a program under the stateless protocol and return its parsed result.

    Raises:
        ProgramMissingError, ProgramLookupError, ProgramExecutionError,
        MalformedOutputError, ConfigurationError,
        InterchangeFileError
    """
    program = filter_program(program, kind)
    payload = encode_query(query)
    executor = executor or Container.executor()

    with tempfile.TemporaryDirectory(prefix="tfexternal-query-") as capture_dir:
        result = executor.run(
            program,
            name=kind,
            cwd=working_dir,
            capture_dir=Path(capture_dir),
            capture_mode=CaptureMode.SPLIT,
            stdin=payload,
            context=context,
        )

    logger.debug("%s %s returned %d bytes", kind, program[0], len(result.output))
    return decode_result(result.output, mode, program[0])


def run_data_source(
    program: list[str],
    query: Mapping[str, str | None] | None = None,
    working_dir: str | Path | None = None,
    mode: ResultMode = ResultMode.DYNAMIC,
    executor: CommandExecutor | None = None,
    context: OperationContext | None = None,
) -> QueryResult:
    """Read a data source. ``mode=STRING_MAP`` selects the legacy contract."""
    result = run_query(program, query, working_dir, mode, executor, context, kind="data source")
    return QueryResult(id=DATA_SOURCE_ID, result=result)


def open_ephemeral(
    program: list[str],
    query: Mapping[str, str | None] | None = None,
    working_dir: str | Path | None = None,
    executor: CommandExecutor | None = None,
    context: OperationContext | None = None,
) -> QueryResult:
    """Open an ephemeral value; the result is always a flat string map."""
    result = run_query(
        program,
        query,
        working_dir,
        ResultMode.STRING_MAP,
        executor,
        context,
        kind="ephemeral resource",
    )
    return QueryResult(result=result)
