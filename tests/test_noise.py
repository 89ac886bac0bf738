# tests/test_noise.py
# Noise sources: determinism, range and seeding
# Exists to pin the behaviour the toroidal mapper and synthesizers rely on
# RELEVANT FILES: python/symbios_texture/noise.py
import numpy as np
import pytest

from symbios_texture.noise import Fbm, Perlin, RidgedMulti, Worley


def _coords(n=400, dims=4, seed=3):
    rng = np.random.default_rng(seed)
    return [rng.uniform(-20.0, 20.0, n) for _ in range(dims)]


@pytest.mark.parametrize("source", [Perlin(1), Fbm(1, octaves=4), RidgedMulti(1, octaves=4), Worley(1)])
def test_outputs_stay_in_unit_range(source):
    for sample, dims in ((source.sample2, 2), (source.sample4, 4)):
        out = sample(*_coords(dims=dims))
        assert out.shape == (400,)
        assert np.all(out >= -1.0) and np.all(out <= 1.0), "noise must be clipped to [-1, 1]"
        assert np.std(out) > 0.05, "noise should not be constant"


def test_same_seed_is_deterministic():
    xs = _coords()
    assert np.array_equal(Fbm(9).sample4(*xs), Fbm(9).sample4(*xs))
    assert not np.allclose(Fbm(9).sample4(*xs), Fbm(10).sample4(*xs))


def test_perlin_vanishes_on_lattice_points():
    p = Perlin(5)
    ints = np.arange(-4.0, 5.0)
    assert np.allclose(p.sample2(ints, ints[::-1]), 0.0)
    assert np.allclose(p.sample4(ints, ints, ints, ints), 0.0)


def test_inputs_broadcast():
    p = Perlin(0)
    x = np.linspace(0.0, 3.0, 5)[None, :]
    y = np.linspace(0.0, 3.0, 4)[:, None]
    assert p.sample2(x, y).shape == (4, 5)
    assert p.sample4(x, y, 0.25, 0.75).shape == (4, 5)


def test_scalar_input_gives_scalar_shaped_output():
    assert np.ndim(Perlin(0).sample2(0.3, 0.7)) == 0


def test_worley_is_near_minus_one_at_a_feature_point():
    w = Worley(4)
    # distance to the nearest feature never exceeds sqrt(dims) cells
    out = w.sample2(*_coords(dims=2))
    assert out.min() < -0.5


def test_octaves_must_be_positive():
    with pytest.raises(ValueError):
        Fbm(0, octaves=0)
    with pytest.raises(ValueError):
        RidgedMulti(0, octaves=0)


def test_negative_seed_wraps():
    assert Perlin(-1).seed == 0xFFFFFFFF
