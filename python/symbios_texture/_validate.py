# python/symbios_texture/_validate.py
# Dimension guardrail shared by every synthesis entry point
# Exists to reject zero or oversized requests before any buffer is allocated
# RELEVANT FILES: python/symbios_texture/generator.py, python/symbios_texture/async_gen.py, tests/test_generators.py
from __future__ import annotations

from enum import Enum
from typing import Tuple

MAX_DIMENSION = 8192  # per side; keeps allocations bounded and within common GPU limits


class DimensionErrorKind(Enum):
    ZERO = "zero"
    TOO_LARGE = "too-large"


class DimensionError(ValueError):
    """Texture dimensions outside ``(0, MAX_DIMENSION]``."""

    def __init__(self, reason: DimensionErrorKind, width: int, height: int):
        self.reason = reason
        self.width = width
        self.height = height
        if reason is DimensionErrorKind.ZERO:
            msg = f"texture dimensions must be non-zero (got {width}x{height})"
        else:
            msg = f"texture dimensions exceed MAX_DIMENSION={MAX_DIMENSION} (got {width}x{height})"
        super().__init__(msg)


def _as_int(name: str, v) -> int:
    try:
        i = int(v)
    except Exception as e:
        raise ValueError(f"{name} must be an integer, got {type(v).__name__}") from e
    return i


def validate_dimensions(width, height) -> Tuple[int, int]:
    """Return ``(width, height)`` as ints or raise :class:`DimensionError`."""
    w = _as_int("width", width)
    h = _as_int("height", height)
    if w <= 0 or h <= 0:
        raise DimensionError(DimensionErrorKind.ZERO, w, h)
    if w > MAX_DIMENSION or h > MAX_DIMENSION:
        raise DimensionError(DimensionErrorKind.TOO_LARGE, w, h)
    return w, h
