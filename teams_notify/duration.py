"""Human-readable durations: ``format_duration(3661000) == "1h1min1s"``."""

_MS_PER_SECOND = 1000
_MS_PER_MINUTE = 60 * _MS_PER_SECOND
_MS_PER_HOUR = 60 * _MS_PER_MINUTE


def format_duration(milliseconds: int) -> str:
    """Format *milliseconds* as ``<h>h<m>min<s>s``, omitting zero components.

    When the seconds component is zero the raw millisecond count is appended
    instead (``500 -> "500ms"``). Hours wrap at 24.
    """
    milliseconds = int(milliseconds)
    if milliseconds < 0:
        raise ValueError(f"Duration must not be negative (got {milliseconds})")
    if milliseconds == 0:
        return "0s"

    hours = (milliseconds // _MS_PER_HOUR) % 24
    minutes = (milliseconds // _MS_PER_MINUTE) % 60
    seconds = (milliseconds // _MS_PER_SECOND) % 60

    parts: list[str] = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}min")
    if seconds:
        parts.append(f"{seconds}s")
    else:
        parts.append(f"{milliseconds}ms")
    return "".join(parts)
