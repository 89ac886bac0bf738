"""Colorspace-aware mipmap generation for RGBA8 texture planes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Tuple

import numpy as np

from ._validate import validate_dimensions
from .generator import TextureMap, linear_to_srgb
from .normalmap import decode_normal_vector, encode_normal_vector

logger = logging.getLogger(__name__)


class MipFilter(Enum):
    """Per-plane averaging rule."""
    LINEAR = "linear"  # raw byte average (ORM, masks)
    COLOR = "color"    # sRGB decode, average in linear light, re-encode (albedo)
    NORMAL = "normal"  # decode, average, renormalise, re-encode (normal maps)


def _srgb_decode_table() -> np.ndarray:
    c = np.arange(256, dtype=np.float64) / 255.0
    return np.where(c <= 0.04045, c / 12.92, np.power((c + 0.055) / 1.055, 2.4))


# Byte -> linear light, built once so downsampling needs no transcendental calls.
SRGB_TO_LINEAR = _srgb_decode_table()


@dataclass
class MippedImage:
    """A base level followed by every halved level in one contiguous buffer.

    ``offsets[i]`` is the byte offset of level ``i`` inside ``data``.
    """

    data: np.ndarray
    width: int
    height: int
    level_count: int
    offsets: List[int] = field(default_factory=list)

    def level_size(self, level: int) -> Tuple[int, int]:
        if not 0 <= level < self.level_count:
            raise IndexError(f"mip level {level} out of range (0..{self.level_count - 1})")
        return max(1, self.width >> level), max(1, self.height >> level)


class MippedTextureMap(NamedTuple):
    albedo: MippedImage
    normal: MippedImage
    roughness: MippedImage


def calculate_mip_levels(width: int, height: int) -> int:
    """Calculate the number of mip levels for given dimensions.

    Parameters
    ----------
    width : int
        Image width
    height : int
        Image height

    Returns
    -------
    int
        Number of mip levels (including the base level), following the
        ``max(1, n // 2)`` halving used by :func:`generate_mip_chain`.
    """
    if width <= 0 or height <= 0:
        return 0
    return int(max(width, height)).bit_length()


def mipmap_memory_usage(width: int, height: int, channels: int = 4, dtype_size: int = 1) -> int:
    """Total bytes of a complete mip chain (RGBA8 by default)."""
    total_bytes = 0
    current_width = width
    current_height = height

    while current_width > 0 and current_height > 0:
        total_bytes += current_width * current_height * channels * dtype_size

        if current_width == 1 and current_height == 1:
            break

        current_width = max(1, current_width // 2)
        current_height = max(1, current_height // 2)

    return total_bytes


def _block_indices(n: int) -> Tuple[np.ndarray, np.ndarray]:
    # Source pairs for each destination texel; the last pair of an odd axis repeats its edge sample.
    dst = np.arange(max(1, n // 2))
    return np.minimum(2 * dst, n - 1), np.minimum(2 * dst + 1, n - 1)


def _downsample(level: np.ndarray, mode: MipFilter) -> np.ndarray:
    """Halve one ``(h, w, 4)`` uint8 level with a clamped 2x2 box filter."""
    h, w = level.shape[:2]
    x0, x1 = _block_indices(w)
    y0, y1 = _block_indices(h)
    quad = (
        level[y0][:, x0],
        level[y0][:, x1],
        level[y1][:, x0],
        level[y1][:, x1],
    )

    wide = sum(q.astype(np.uint32) for q in quad)
    out = ((wide + 2) // 4).astype(np.uint8)

    if mode is MipFilter.COLOR:
        linear = sum(SRGB_TO_LINEAR[q[..., :3]] for q in quad) * 0.25
        out[..., :3] = linear_to_srgb(linear)
    elif mode is MipFilter.NORMAL:
        vec = sum(decode_normal_vector(q[..., :3]) for q in quad)
        length = np.linalg.norm(vec, axis=-1, keepdims=True)
        # Opposing normals can cancel completely; fall back to straight up.
        flat = np.broadcast_to(np.array([0.0, 0.0, 1.0]), vec.shape)
        vec = np.where(length > 1e-8, vec / np.maximum(length, 1e-8), flat)
        out[..., :3] = encode_normal_vector(vec)
    return out


def generate_mip_chain(data: np.ndarray, width: int, height: int, mode: MipFilter) -> MippedImage:
    """Build a full mip chain for one RGBA8 plane.

    Parameters
    ----------
    data : np.ndarray
        Flat (or ``(height, width, 4)``) uint8 buffer of ``width * height * 4`` bytes.
    width, height : int
        Base level dimensions.
    mode : MipFilter
        Averaging rule for the plane.

    Returns
    -------
    MippedImage
        Concatenated levels; halving stops once both dimensions reach 1.

    Raises
    ------
    DimensionError
        If a dimension is zero or above ``MAX_DIMENSION``.
    ValueError
        If the buffer length does not match the dimensions.
    """
    width, height = validate_dimensions(width, height)
    base = np.asarray(data, dtype=np.uint8).reshape(-1)
    if base.size != width * height * 4:
        raise ValueError(f"buffer holds {base.size} bytes, expected {width * height * 4}")

    levels = [base]
    offsets = [0]
    current = base.reshape(height, width, 4)
    total = base.size
    while current.shape[0] > 1 or current.shape[1] > 1:
        current = _downsample(current, mode)
        offsets.append(total)
        levels.append(current.reshape(-1))
        total += current.size

    logger.debug(f"mip chain {width}x{height} ({mode.value}): {len(levels)} levels, {total} bytes")
    return MippedImage(
        data=np.concatenate(levels),
        width=width,
        height=height,
        level_count=len(levels),
        offsets=offsets,
    )


def mip_level(image: MippedImage, level: int) -> np.ndarray:
    """Return level ``level`` of ``image`` as an ``(h, w, 4)`` view."""
    w, h = image.level_size(level)
    start = image.offsets[level]
    return image.data[start:start + w * h * 4].reshape(h, w, 4)


def mip_texture_map(map: TextureMap) -> MippedTextureMap:
    """Mip all three planes of a map, each with its own averaging rule."""
    return MippedTextureMap(
        albedo=generate_mip_chain(map.albedo, map.width, map.height, MipFilter.COLOR),
        normal=generate_mip_chain(map.normal, map.width, map.height, MipFilter.NORMAL),
        roughness=generate_mip_chain(map.roughness, map.width, map.height, MipFilter.LINEAR),
    )
