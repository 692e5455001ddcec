"""
Small formatting helpers shared by the CLI and the capture feed.
"""


def format_time(seconds: int) -> str:
    """Format a duration in whole seconds as MM:SS."""
    seconds = max(0, int(seconds))
    mins, secs = divmod(seconds, 60)
    return f"{mins:02d}:{secs:02d}"
