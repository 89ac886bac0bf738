# tests/test_generators.py
# Shared generator contract: dimension validation, buffer layout, ORM packing
# Exists to hold every material synthesizer to the same TextureMap guarantees
# RELEVANT FILES: python/symbios_texture/generator.py, python/symbios_texture/_validate.py, python/symbios_texture/config.py
import numpy as np
import pytest

from symbios_texture import (
    MAX_DIMENSION,
    DimensionError,
    DimensionErrorKind,
    MaterialKind,
    TextureMap,
    linear_to_srgb,
    validate_dimensions,
)

ALL_KINDS = list(MaterialKind)


def _generator(kind):
    return kind.generator_class(kind.config_class())


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda k: k.value)
@pytest.mark.parametrize("size", [(0, 16), (16, 0), (0, 0)])
def test_zero_dimension_rejected(kind, size):
    with pytest.raises(DimensionError) as exc:
        _generator(kind).generate(*size)
    assert exc.value.reason is DimensionErrorKind.ZERO


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda k: k.value)
@pytest.mark.parametrize("size", [(MAX_DIMENSION + 1, 16), (16, MAX_DIMENSION + 1)])
def test_oversized_dimension_rejected(kind, size):
    with pytest.raises(DimensionError) as exc:
        _generator(kind).generate(*size)
    assert exc.value.reason is DimensionErrorKind.TOO_LARGE


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda k: k.value)
@pytest.mark.parametrize("size", [(32, 32), (24, 40), (1, 1), (3, 17)])
def test_buffers_have_exact_length(kind, size):
    w, h = size
    tex = _generator(kind).generate(w, h)
    assert (tex.width, tex.height) == (w, h)
    for plane in (tex.albedo, tex.normal, tex.roughness):
        assert plane.dtype == np.uint8
        assert plane.shape == (w * h * 4,)


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda k: k.value)
def test_orm_channels_are_packed(kind):
    orm = _generator(kind).generate(32, 32).rgba("roughness")
    assert np.all(orm[..., 0] == 255), "occlusion"
    assert np.all(orm[..., 2] == 0), "metallic"
    assert np.all(orm[..., 3] == 255)


@pytest.mark.parametrize("kind", [MaterialKind.BARK, MaterialKind.ROCK, MaterialKind.GROUND], ids=lambda k: k.value)
def test_surfaces_are_opaque_and_textured(kind):
    tex = _generator(kind).generate(48, 48)
    albedo = tex.rgba("albedo")
    assert np.all(albedo[..., 3] == 255)
    assert albedo[..., :3].std() > 0.5, "surface albedo should vary"


@pytest.mark.parametrize("kind", [MaterialKind.BARK, MaterialKind.ROCK, MaterialKind.GROUND], ids=lambda k: k.value)
def test_generation_is_deterministic(kind):
    a = _generator(kind).generate(16, 16)
    b = _generator(kind).generate(16, 16)
    assert np.array_equal(a.albedo, b.albedo)
    assert np.array_equal(a.normal, b.normal)


def test_validate_dimensions_accepts_limits():
    assert validate_dimensions(1, MAX_DIMENSION) == (1, MAX_DIMENSION)
    with pytest.raises(DimensionError):
        validate_dimensions(-4, 8)


def test_dimension_error_is_value_error():
    err = DimensionError(DimensionErrorKind.TOO_LARGE, 9000, 1)
    assert isinstance(err, ValueError)
    assert "9000x1" in str(err)


def test_texture_map_rejects_wrong_length():
    good = np.zeros(2 * 2 * 4, dtype=np.uint8)
    with pytest.raises(ValueError):
        TextureMap(albedo=good, normal=good, roughness=np.zeros(3, dtype=np.uint8), width=2, height=2)


def test_linear_to_srgb_reference_points():
    assert linear_to_srgb(np.array([0.0, 1.0, 0.5, 0.0031308])).tolist() == [0, 255, 188, 10]
    assert linear_to_srgb(np.array([-1.0, 2.0])).tolist() == [0, 255]
