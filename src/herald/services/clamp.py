"""Range clamping for caller-supplied sizes (limits, batch sizes, day windows)."""


def clamp(value: int | None, default: int, minimum: int, maximum: int) -> int:
    if value is None:
        return default
    return max(minimum, min(maximum, int(value)))
