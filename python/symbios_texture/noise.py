# python/symbios_texture/noise.py
# Seeded, vectorised gradient and cellular noise sources
# Exists so the toroidal mapper and the synthesizers can evaluate noise on whole coordinate grids
# RELEVANT FILES: python/symbios_texture/toroidal.py, python/symbios_texture/bark.py, python/symbios_texture/leaf.py, tests/test_noise.py
"""Noise sources evaluated point-wise over numpy coordinate arrays.

Every source exposes ``sample2(x, y)`` and ``sample4(x, y, z, w)``. Inputs are
broadcast against each other and the result has the broadcast shape. Outputs
are nominally in ``[-1, 1]`` and are clipped to that range.

Sources
-------
Perlin
    Classic gradient noise with a quintic fade curve.
Fbm
    Fractal Brownian motion: octaves of Perlin noise with doubling frequency
    and halving amplitude, normalised by the amplitude sum.
RidgedMulti
    Ridged multifractal: each octave is folded (``1 - |n|``), squared and
    weighted by the previous octave, producing sharp creases.
Worley
    Cellular noise returning the distance to the nearest feature point,
    remapped as ``distance * 2 - 1``.
"""

from __future__ import annotations

import itertools
from typing import Sequence

import numpy as np

_TABLE_SIZE = 256


def _wrap_seed(seed: int) -> int:
    return int(seed) & 0xFFFFFFFF


def _permutation(seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    perm = rng.permutation(_TABLE_SIZE).astype(np.intp)
    # Doubled so chained lookups never need a modulo.
    return np.concatenate([perm, perm])


def _fade(t):
    """Perlin fade function: 6t^5 - 15t^4 + 10t^3."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _grad2_table() -> np.ndarray:
    return np.array(
        [(1, 1), (-1, 1), (1, -1), (-1, -1), (1, 0), (-1, 0), (0, 1), (0, -1)],
        dtype=np.float64,
    )


def _grad4_table() -> np.ndarray:
    # The 32 edge midpoints of the 4-D hypercube: one zero axis, three +-1.
    grads = []
    for zero_axis in range(4):
        for signs in itertools.product((-1.0, 1.0), repeat=3):
            g = list(signs)
            g.insert(zero_axis, 0.0)
            grads.append(g)
    return np.array(grads, dtype=np.float64)


_GRAD2 = _grad2_table()
_GRAD4 = _grad4_table()


def _as_arrays(*coords: np.ndarray) -> Sequence[np.ndarray]:
    return np.broadcast_arrays(*(np.asarray(c, dtype=np.float64) for c in coords))


class Perlin:
    """Seeded gradient noise."""

    def __init__(self, seed: int = 0):
        self.seed = _wrap_seed(seed)
        self._perm = _permutation(self.seed)

    def sample2(self, x, y) -> np.ndarray:
        x, y = _as_arrays(x, y)
        x0 = np.floor(x)
        y0 = np.floor(y)
        fx = x - x0
        fy = y - y0
        xi = x0.astype(np.int64) & 255
        yi = y0.astype(np.int64) & 255
        p = self._perm

        def corner(h, dx, dy):
            h = h & 7
            return _GRAD2[h, 0] * dx + _GRAD2[h, 1] * dy

        a0 = p[xi]
        a1 = p[xi + 1]
        n00 = corner(p[a0 + yi], fx, fy)
        n01 = corner(p[a0 + yi + 1], fx, fy - 1.0)
        n10 = corner(p[a1 + yi], fx - 1.0, fy)
        n11 = corner(p[a1 + yi + 1], fx - 1.0, fy - 1.0)

        u = _fade(fx)
        v = _fade(fy)
        nx0 = n00 + u * (n10 - n00)
        nx1 = n01 + u * (n11 - n01)
        return np.clip(nx0 + v * (nx1 - nx0), -1.0, 1.0)

    def sample4(self, x, y, z, w) -> np.ndarray:
        x, y, z, w = _as_arrays(x, y, z, w)
        cells = [np.floor(c) for c in (x, y, z, w)]
        fracs = [c - f for c, f in zip((x, y, z, w), cells)]
        idx = [f.astype(np.int64) & 255 for f in cells]
        fades = [_fade(f) for f in fracs]
        p = self._perm

        # corners[(dx, dy, dz, dw)] = gradient contribution of that lattice corner
        values = {}
        for dx in (0, 1):
            a = p[idx[0] + dx]
            for dy in (0, 1):
                b = p[a + idx[1] + dy]
                for dz in (0, 1):
                    c = p[b + idx[2] + dz]
                    for dw in (0, 1):
                        h = p[c + idx[3] + dw] & 31
                        values[(dx, dy, dz, dw)] = (
                            _GRAD4[h, 0] * (fracs[0] - dx)
                            + _GRAD4[h, 1] * (fracs[1] - dy)
                            + _GRAD4[h, 2] * (fracs[2] - dz)
                            + _GRAD4[h, 3] * (fracs[3] - dw)
                        )

        # Collapse one axis at a time, last axis first.
        for axis in (3, 2, 1, 0):
            t = fades[axis]
            collapsed = {}
            for key, lo in values.items():
                if key[axis] != 0:
                    continue
                hi_key = key[:axis] + (1,) + key[axis + 1:]
                collapsed[key[:axis]] = lo + t * (values[hi_key] - lo)
            values = {k + (0,) * (4 - len(k)): v for k, v in collapsed.items()}
        return np.clip(values[(0, 0, 0, 0)], -1.0, 1.0)


class Fbm:
    """Fractal Brownian motion over :class:`Perlin` octaves."""

    def __init__(
        self,
        seed: int = 0,
        octaves: int = 6,
        frequency: float = 1.0,
        lacunarity: float = 2.0,
        persistence: float = 0.5,
    ):
        if octaves < 1:
            raise ValueError(f"octaves must be >= 1, got {octaves}")
        self.seed = _wrap_seed(seed)
        self.octaves = int(octaves)
        self.frequency = float(frequency)
        self.lacunarity = float(lacunarity)
        self.persistence = float(persistence)
        self._sources = [Perlin(self.seed + i) for i in range(self.octaves)]

    def _accumulate(self, coords, method: str) -> np.ndarray:
        total = 0.0
        norm = 0.0
        amp = 1.0
        freq = self.frequency
        for src in self._sources:
            total = total + getattr(src, method)(*(c * freq for c in coords)) * amp
            norm += amp
            amp *= self.persistence
            freq *= self.lacunarity
        return np.clip(total / norm, -1.0, 1.0)

    def sample2(self, x, y) -> np.ndarray:
        return self._accumulate(_as_arrays(x, y), "sample2")

    def sample4(self, x, y, z, w) -> np.ndarray:
        return self._accumulate(_as_arrays(x, y, z, w), "sample4")


class RidgedMulti:
    """Ridged multifractal noise; output spans ``[-1, 1]``."""

    def __init__(
        self,
        seed: int = 0,
        octaves: int = 6,
        frequency: float = 1.0,
        lacunarity: float = 2.0,
        attenuation: float = 2.0,
    ):
        if octaves < 1:
            raise ValueError(f"octaves must be >= 1, got {octaves}")
        self.seed = _wrap_seed(seed)
        self.octaves = int(octaves)
        self.frequency = float(frequency)
        self.lacunarity = float(lacunarity)
        self.attenuation = max(float(attenuation), 1e-6)
        self._sources = [Perlin(self.seed + i) for i in range(self.octaves)]

    def _accumulate(self, coords, method: str) -> np.ndarray:
        result = np.zeros(coords[0].shape, dtype=np.float64)
        weight = np.ones_like(result)
        norm = 0.0
        amp = 1.0
        freq = self.frequency
        for src in self._sources:
            signal = 1.0 - np.abs(getattr(src, method)(*(c * freq for c in coords)))
            signal = signal * signal * weight
            weight = np.clip(signal / self.attenuation, 0.0, 1.0)
            result += signal * amp
            norm += amp
            amp *= 0.5
            freq *= self.lacunarity
        return np.clip(result / norm * 2.0 - 1.0, -1.0, 1.0)

    def sample2(self, x, y) -> np.ndarray:
        return self._accumulate(_as_arrays(x, y), "sample2")

    def sample4(self, x, y, z, w) -> np.ndarray:
        return self._accumulate(_as_arrays(x, y, z, w), "sample4")


class Worley:
    """Cellular noise: distance to the nearest jittered feature point."""

    def __init__(self, seed: int = 0, frequency: float = 1.0):
        self.seed = _wrap_seed(seed)
        self.frequency = float(frequency)
        self._perm = _permutation(self.seed)
        self._jitter = np.random.default_rng(self.seed ^ 0x5F3759DF).random((_TABLE_SIZE, 4))

    def _nearest(self, coords) -> np.ndarray:
        scaled = [c * self.frequency for c in coords]
        cells = [np.floor(c).astype(np.int64) for c in scaled]
        dims = len(scaled)
        p = self._perm
        best = np.full(scaled[0].shape, np.inf)
        for offset in itertools.product((-1, 0, 1), repeat=dims):
            cell = [c + o for c, o in zip(cells, offset)]
            h = np.zeros(scaled[0].shape, dtype=np.intp)
            for c in cell:
                h = p[h + (c & 255)]
            dist2 = 0.0
            for axis in range(dims):
                feature = cell[axis] + self._jitter[h, axis]
                dist2 = dist2 + (feature - scaled[axis]) ** 2
            np.minimum(best, dist2, out=best)
        return np.sqrt(best)

    def sample2(self, x, y) -> np.ndarray:
        return np.clip(self._nearest(_as_arrays(x, y)) * 2.0 - 1.0, -1.0, 1.0)

    def sample4(self, x, y, z, w) -> np.ndarray:
        return np.clip(self._nearest(_as_arrays(x, y, z, w)) * 2.0 - 1.0, -1.0, 1.0)
