"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (config, input)
    20-29: Target/file errors
    30-39: Tool/dependency errors
    40-49: Operation errors
    60-69: Warning states
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for kmsbulk CLI commands.

    Organized by category with reserved ranges for future expansion.
    """

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Ctrl+C / SIGINT (conventionally 130, but we use 2 for simplicity)

    # Validation errors (10-19)
    CONFIG_ERROR = 11
    INVALID_ARGUMENTS = 13

    # Target/file errors (20-29)
    TARGET_NOT_FOUND = 20
    TARGET_EXISTS = 21

    # Tool/dependency errors (30-39)
    AUTH_UNAVAILABLE = 30

    # Operation errors (40-49)
    OPERATION_FAILED = 40
    VERIFICATION_FAILED = 41

    # Warning states (60-69)
    COMPLETED_WITH_FAILURES = 60
    CRITICAL = 61
