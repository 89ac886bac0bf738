# tests/test_toroidal.py
# Seamless 4-D torus sampling and the precomputed trig tables
# Exists to guard the zero-seam guarantee every tileable material depends on
# RELEVANT FILES: python/symbios_texture/toroidal.py, python/symbios_texture/noise.py
import numpy as np
import pytest

from symbios_texture.noise import Fbm, Perlin, RidgedMulti
from symbios_texture.toroidal import ToroidalNoise, TorusTable, sample_bilinear, sample_grid, to_u8


@pytest.mark.parametrize("frequency", [0.5, 1.0, 3.0, 7.3])
def test_opposite_edges_match_exactly(frequency):
    noise = ToroidalNoise(Fbm(11, octaves=4), frequency)
    vs = np.linspace(0.0, 1.0, 33)
    left = noise.get(np.zeros_like(vs), vs)
    right = noise.get(np.ones_like(vs), vs)
    assert np.max(np.abs(left - right)) <= 1e-10, "u=0 and u=1 must sample the same point"

    us = np.linspace(0.0, 1.0, 33)
    top = noise.get(us, np.zeros_like(us))
    bottom = noise.get(us, np.ones_like(us))
    assert np.max(np.abs(top - bottom)) <= 1e-10, "v=0 and v=1 must sample the same point"


def test_scalar_get_returns_float():
    noise = ToroidalNoise(Perlin(2), 2.0)
    assert isinstance(noise.get(0.25, 0.5), float)
    assert noise.get(0.0, 0.3) == noise.get(1.0, 0.3)


def test_grid_is_not_degenerate():
    grid = sample_grid(ToroidalNoise(Perlin(3), 4.0), 64, 64)
    assert grid.shape == (64, 64)
    assert np.std(grid) > 0.1


def test_table_matches_direct_evaluation():
    noise = ToroidalNoise(RidgedMulti(5, octaves=3), 2.5, 1.5)
    grid = noise.sample_grid(16, 8)
    u = (np.arange(16) / 16.0)[None, :]
    v = (np.arange(8) / 8.0)[:, None]
    assert np.allclose(grid, noise.get(u, v), atol=1e-12)


def test_table_shapes_are_one_dimensional():
    table = TorusTable.build(32, 16, 2.0, 3.0)
    assert table.col_cos.shape == (1, 32)
    assert table.row_sin.shape == (16, 1)
    assert (table.width, table.height) == (32, 16)
    assert np.isclose(table.col_cos[0, 0], 2.0)
    assert np.isclose(table.row_cos[0, 0], 3.0)


def test_get_offset_equals_shifted_get():
    noise = ToroidalNoise(Perlin(8), 3.0)
    assert noise.get_offset(0.2, 0.4, 0.1, -0.3) == pytest.approx(noise.get(0.3, 0.1))


def test_bilinear_hits_grid_samples_and_wraps():
    grid = np.arange(12, dtype=np.float64).reshape(3, 4)
    assert sample_bilinear(grid, 0.25, 1.0 / 3.0) == pytest.approx(grid[1, 1])
    assert sample_bilinear(grid, 1.25, -2.0 / 3.0) == pytest.approx(grid[1, 1])
    # halfway between the last column and the wrapped first column
    assert sample_bilinear(grid, 7.0 / 8.0, 0.0) == pytest.approx((grid[0, 3] + grid[0, 0]) / 2)


def test_to_u8_maps_range_ends():
    assert to_u8(np.array([-1.0, 1.0])).tolist() == [0, 255]
