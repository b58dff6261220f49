"""Core utilities package.

Pure display helpers shared across kmsbulk.
"""

from kmsbulk.core.formatting import (
    format_duration,
    format_file_size,
    render_progress_bar,
)

__all__ = [
    "format_duration",
    "format_file_size",
    "render_progress_bar",
]
