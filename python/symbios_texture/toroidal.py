# python/symbios_texture/toroidal.py
# Toroidal 4-D mapping that makes any 4-input noise tile seamlessly
# Exists to give the tileable synthesizers seam-free noise with O(W+H) trigonometry per grid
# RELEVANT FILES: python/symbios_texture/noise.py, python/symbios_texture/bark.py, tests/test_toroidal.py
"""Seamless noise sampling on a 4-D torus.

``(u, v)`` in ``[0, 1]`` maps to::

    (cos(2*pi*u) * fu, sin(2*pi*u) * fu, cos(2*pi*v) * fv, sin(2*pi*v) * fv)

where ``fu``/``fv`` are the torus radii in noise space (``frequency``; the
V radius defaults to the U radius). ``u = 0`` and ``u = 1`` resolve to the
same 4-D point, so opposite edges match exactly for any frequency. Larger radii
cross more lattice cells and give denser patterns.

Grid-aligned sampling goes through :class:`TorusTable`, which evaluates the
cosine/sine once per column and once per row and broadcasts them, instead of
once per pixel. Off-grid coordinates (after domain warping) are served either
by :meth:`ToroidalNoise.get` (direct evaluation) or by :func:`sample_bilinear`
over a precomputed grid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

TAU = 2.0 * np.pi

ArrayLike = Union[float, np.ndarray]


@dataclass(frozen=True)
class TorusTable:
    """Per-column and per-row torus coordinates for a ``width x height`` grid.

    ``col_cos``/``col_sin`` have shape ``(1, width)`` and ``row_cos``/``row_sin``
    have shape ``(height, 1)`` so they broadcast to the full grid.
    """

    col_cos: np.ndarray
    col_sin: np.ndarray
    row_cos: np.ndarray
    row_sin: np.ndarray

    @property
    def width(self) -> int:
        return self.col_cos.shape[1]

    @property
    def height(self) -> int:
        return self.row_cos.shape[0]

    @classmethod
    def build(cls, width: int, height: int, freq_u: float, freq_v: float) -> "TorusTable":
        u = np.arange(width, dtype=np.float64) / width
        v = np.arange(height, dtype=np.float64) / height
        return cls(
            col_cos=(np.cos(TAU * u) * freq_u)[None, :],
            col_sin=(np.sin(TAU * u) * freq_u)[None, :],
            row_cos=(np.cos(TAU * v) * freq_v)[:, None],
            row_sin=(np.sin(TAU * v) * freq_v)[:, None],
        )


class ToroidalNoise:
    """Wraps a 4-D noise source and samples it on a torus."""

    def __init__(self, noise, frequency: float, frequency_v: Optional[float] = None):
        self.noise = noise
        self.frequency = float(frequency)
        self.frequency_v = float(frequency if frequency_v is None else frequency_v)

    def get(self, u: ArrayLike, v: ArrayLike):
        """Sample at normalised coordinates; scalars in, float out."""
        # Wrapping first makes u = 1 resolve to exactly the u = 0 coordinate.
        u_arr = np.mod(np.asarray(u, dtype=np.float64), 1.0)
        v_arr = np.mod(np.asarray(v, dtype=np.float64), 1.0)
        out = self.noise.sample4(
            np.cos(TAU * u_arr) * self.frequency,
            np.sin(TAU * u_arr) * self.frequency,
            np.cos(TAU * v_arr) * self.frequency_v,
            np.sin(TAU * v_arr) * self.frequency_v,
        )
        if np.ndim(out) == 0:
            return float(out)
        return out

    def get_offset(self, u: ArrayLike, v: ArrayLike, du: ArrayLike, dv: ArrayLike):
        """Sample at ``(u + du, v + dv)``; used for domain-warp chains."""
        return self.get(np.asarray(u) + du, np.asarray(v) + dv)

    def get_precomputed(self, nx, ny, nz, nw) -> np.ndarray:
        """Sample at torus coordinates already scaled by the frequencies."""
        return self.noise.sample4(nx, ny, nz, nw)

    def table(self, width: int, height: int) -> TorusTable:
        return TorusTable.build(width, height, self.frequency, self.frequency_v)

    def sample_table(self, table: TorusTable) -> np.ndarray:
        """Evaluate over a grid whose trig was computed by ``table``."""
        return self.noise.sample4(table.col_cos, table.col_sin, table.row_cos, table.row_sin)

    def sample_grid(self, width: int, height: int) -> np.ndarray:
        """Return a ``(height, width)`` grid sampled at ``(x / width, y / height)``."""
        return self.sample_table(self.table(width, height))


def sample_grid(noise: ToroidalNoise, width: int, height: int) -> np.ndarray:
    return noise.sample_grid(width, height)


def sample_bilinear(grid: np.ndarray, u: ArrayLike, v: ArrayLike) -> np.ndarray:
    """Bilinearly interpolate a tileable ``(height, width)`` grid at ``(u, v)``.

    Coordinates wrap modulo 1 so the interpolation stays seamless across
    edges. Grid sample ``[y, x]`` sits at ``(x / width, y / height)``.
    """
    grid = np.asarray(grid, dtype=np.float64)
    h, w = grid.shape
    fx = np.mod(np.asarray(u, dtype=np.float64), 1.0) * w
    fy = np.mod(np.asarray(v, dtype=np.float64), 1.0) * h
    x0 = np.floor(fx).astype(np.int64)
    y0 = np.floor(fy).astype(np.int64)
    tx = fx - x0
    ty = fy - y0
    x0 %= w
    y0 %= h
    x1 = (x0 + 1) % w
    y1 = (y0 + 1) % h
    top = grid[y0, x0] + (grid[y0, x1] - grid[y0, x0]) * tx
    bottom = grid[y1, x0] + (grid[y1, x1] - grid[y1, x0]) * tx
    return top + (bottom - top) * ty


def to_unit(v):
    """Map a noise sample from ``[-1, 1]`` to ``[0, 1]``."""
    return v * 0.5 + 0.5


def to_u8(v) -> np.ndarray:
    """Map a noise sample from ``[-1, 1]`` to bytes ``[0, 255]``."""
    return (np.clip(to_unit(np.asarray(v, dtype=np.float64)), 0.0, 1.0) * 255.0).astype(np.uint8)
