"""Utility modules for prefctl.

This module exports commonly used utility functions.
"""

from prefctl.utils.formatting import (
    console,
    err_console,
    format_key,
    format_value,
    print_error,
    print_info,
    print_success,
    print_warning,
    setup_logging,
)
from prefctl.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "err_console",
    "format_key",
    "format_value",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
    "setup_logging",
]
