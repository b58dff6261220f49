"""Error, warning and JSON output for kmsbulk commands.

Errors and warnings go to stderr, so stdout only carries the run summary or
the --json document. With --json an error is one JSON line on stderr:

    {"status": "failed", "exit_code": 11,
     "error": {"code": "CONFIG_ERROR", "message": "...", "problems": [...]}}

"problems" is present only when the error lists separate problems, such as
every missing setting.
"""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import click

from kmsbulk.cli.exit_codes import ExitCode
from kmsbulk.exceptions import ConfigurationError


def error_exit(
    message: str,
    code: ExitCode,
    json_output: bool = False,
    *,
    problems: list[str] | None = None,
) -> NoReturn:
    """Report an error on stderr and exit with code.

    Args:
        message: One-line description of the failure.
        code: Exit code; its name becomes the JSON error code.
        json_output: Emit the JSON error line instead of "Error: message".
        problems: Individual problems behind message, JSON only.
    """
    if json_output:
        error: dict[str, Any] = {"code": code.name, "message": message}
        if problems:
            error["problems"] = list(problems)
        document = {"status": "failed", "exit_code": int(code), "error": error}
        click.echo(json.dumps(document), err=True)
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(int(code))


def config_error_exit(error: ConfigurationError, json_output: bool = False) -> NoReturn:
    """Exit with CONFIG_ERROR for a configuration problem."""
    error_exit(
        str(error), ExitCode.CONFIG_ERROR, json_output, problems=error.problems
    )


def json_output_data(data: dict[str, Any]) -> None:
    """Print a JSON document on stdout."""
    click.echo(json.dumps(data, indent=2))


def warning_output(message: str, json_output: bool = False) -> None:
    """Print "Warning: message" on stderr; --json runs stay silent."""
    if not json_output:
        click.echo(f"Warning: {message}", err=True)
