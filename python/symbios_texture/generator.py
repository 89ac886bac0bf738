# python/symbios_texture/generator.py
# Core texture types shared by every synthesizer plus the asset-sink contract
# Exists so generators, the mip builder and the scheduler agree on one buffer layout
# RELEVANT FILES: python/symbios_texture/_validate.py, python/symbios_texture/textures.py, python/symbios_texture/async_gen.py, tests/test_generators.py
from __future__ import annotations

import abc
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Sequence

import numpy as np

from ._validate import validate_dimensions

Color3 = Sequence[float]

# ORM packing: R = occlusion, G = roughness, B = metallic
OCCLUSION = 255
METALLIC = 0
TRANSPARENT_ROUGHNESS = 200


@dataclass
class TextureMap:
    """Raw pixel planes produced by a generator.

    Each plane is a flat ``uint8`` array of exactly ``width * height * 4``
    bytes in row-major RGBA order. ``albedo`` is sRGB encoded; ``normal`` and
    ``roughness`` (packed ORM) are linear.
    """

    albedo: np.ndarray
    normal: np.ndarray
    roughness: np.ndarray
    width: int
    height: int

    def __post_init__(self) -> None:
        expected = self.width * self.height * 4
        for name in ("albedo", "normal", "roughness"):
            plane = getattr(self, name)
            if plane.dtype != np.uint8 or plane.ndim != 1 or plane.size != expected:
                raise ValueError(
                    f"{name} must be a flat uint8 buffer of {expected} bytes, "
                    f"got {plane.dtype} {plane.shape}"
                )

    def rgba(self, plane: str) -> np.ndarray:
        """``(height, width, 4)`` view of one plane."""
        return getattr(self, plane).reshape(self.height, self.width, 4)


class TextureGenerator(abc.ABC):
    """A procedural generator bound to one immutable config."""

    #: alpha-masked foliage card (clamp sampling) rather than a tileable surface
    is_card = False

    def __init__(self, config):
        self.config = config

    def generate(self, width: int, height: int) -> TextureMap:
        """Validate dimensions, then synthesise a ``width x height`` map.

        Raises :class:`~symbios_texture._validate.DimensionError` before any
        buffer is allocated when a dimension is zero or above the ceiling.
        """
        w, h = validate_dimensions(width, height)
        return self._generate(w, h)

    @abc.abstractmethod
    def _generate(self, width: int, height: int) -> TextureMap:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config!r})"


def linear_to_srgb(linear) -> np.ndarray:
    """Encode linear-light values in ``[0, 1]`` as sRGB bytes."""
    c = np.clip(np.asarray(linear, dtype=np.float64), 0.0, 1.0)
    srgb = np.where(c <= 0.0031308, c * 12.92, 1.055 * np.power(c, 1.0 / 2.4) - 0.055)
    return np.round(srgb * 255.0).astype(np.uint8)


def lerp_color(a: Color3, b: Color3, t: np.ndarray) -> np.ndarray:
    """Per-pixel ``a + (b - a) * clamp(t)``; returns ``t.shape + (3,)``."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    t = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0)[..., None]
    return a + (b - a) * t


def pack_albedo(color: np.ndarray, alpha=255) -> np.ndarray:
    """Flat RGBA8 albedo from a ``(..., 3)`` linear colour array."""
    rgb = linear_to_srgb(color).reshape(-1, 3)
    out = np.empty((rgb.shape[0], 4), dtype=np.uint8)
    out[:, :3] = rgb
    out[:, 3] = np.asarray(alpha, dtype=np.uint8).reshape(-1) if np.ndim(alpha) else alpha
    return out.reshape(-1)


def pack_orm(roughness) -> np.ndarray:
    """Flat ORM buffer from per-pixel roughness in ``[0, 1]``."""
    rough = np.round(np.clip(np.asarray(roughness, dtype=np.float64), 0.0, 1.0) * 255.0)
    rough = rough.astype(np.uint8).reshape(-1)
    out = np.empty((rough.shape[0], 4), dtype=np.uint8)
    out[:, 0] = OCCLUSION
    out[:, 1] = rough
    out[:, 2] = METALLIC
    out[:, 3] = 255
    return out.reshape(-1)


# --- asset sink contract ------------------------------------------------------

class AddressMode(Enum):
    """Sampler addressing requested from the asset sink."""
    REPEAT = "repeat"
    CLAMP_TO_EDGE = "clamp-to-edge"


class AssetSink(Protocol):
    """Consumer of finished pixel planes; returns opaque handles."""

    def add_image(
        self,
        data: np.ndarray,
        width: int,
        height: int,
        *,
        srgb: bool,
        address_mode: AddressMode,
    ) -> Any:
        ...


@dataclass
class GeneratedHandles:
    albedo: Any
    normal: Any
    roughness: Any


def _upload(map: TextureMap, sink: AssetSink, address_mode: AddressMode) -> GeneratedHandles:
    # Planes are handed over, not copied; the map must not be reused afterwards.
    return GeneratedHandles(
        albedo=sink.add_image(map.albedo, map.width, map.height, srgb=True, address_mode=address_mode),
        normal=sink.add_image(map.normal, map.width, map.height, srgb=False, address_mode=address_mode),
        roughness=sink.add_image(map.roughness, map.width, map.height, srgb=False, address_mode=address_mode),
    )


def map_to_images(map: TextureMap, sink: AssetSink) -> GeneratedHandles:
    """Upload a tileable surface map with repeat addressing."""
    return _upload(map, sink, AddressMode.REPEAT)


def map_to_images_card(map: TextureMap, sink: AssetSink) -> GeneratedHandles:
    """Upload a foliage card with clamp-to-edge addressing so it does not tile."""
    return _upload(map, sink, AddressMode.CLAMP_TO_EDGE)
