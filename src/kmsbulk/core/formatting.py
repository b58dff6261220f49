"""Formatting utilities.

Pure functions for presenting sizes, durations and progress to the user.
"""


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes.

    Returns:
        Formatted string (e.g., "4.2 GB", "128 MB", "1.5 KB").
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GB"
    elif size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MB"
    elif size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes} B"


def format_duration(seconds: int | float) -> str:
    """Format a duration as "45s", "3m 12s" or "1h 02m".

    Args:
        seconds: Duration in seconds. Negative values are treated as zero.

    Returns:
        Compact duration string.
    """
    total = max(0, int(seconds))
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"


def render_progress_bar(current: int, total: int, width: int = 20) -> str:
    """Render a fixed-width text progress bar.

    Args:
        current: Number of completed items.
        total: Total number of items.
        width: Number of cells in the bar.

    Returns:
        String like "[=====...............] 25% (5/20)".

    Examples:
        >>> render_progress_bar(0, 4, width=4)
        '[....] 0% (0/4)'
        >>> render_progress_bar(2, 4, width=4)
        '[==..] 50% (2/4)'
    """
    if total <= 0:
        percent = 100
    else:
        percent = min(100, current * 100 // total)
    filled = percent * width // 100
    bar = "=" * filled + "." * (width - filled)
    return f"[{bar}] {percent}% ({current}/{total})"
