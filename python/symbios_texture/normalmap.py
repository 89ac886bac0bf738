"""
Height-to-normal conversion and normal map utilities for symbios_texture

Derives tangent-space normal maps from scalar height fields by central
differences, with wrap (tileable surfaces) or clamp (alpha cards) boundary
handling, and provides silhouette dilation plus encoding/validation helpers.
"""

from enum import Enum
from typing import Dict, Any, Union
from pathlib import Path
import logging

import numpy as np

logger = logging.getLogger(__name__)


class BoundaryMode(Enum):
    """How neighbour lookups behave at the image border."""
    WRAP = "wrap"    # modulo dimension; for seamless tiling
    CLAMP = "clamp"  # one-sided differences at the edges; for cards


def _neighbour_indices(n: int, mode: BoundaryMode):
    idx = np.arange(n)
    if mode is BoundaryMode.WRAP:
        minus = (idx - 1) % n
        plus = (idx + 1) % n
        spacing = np.full(n, 2.0)
    else:
        minus = np.maximum(idx - 1, 0)
        plus = np.minimum(idx + 1, n - 1)
        # 2 for central, 1 for one-sided, 0 when the axis is a single pixel
        spacing = (plus - minus).astype(np.float64)
    return minus, plus, spacing


def _slope(diff: np.ndarray, spacing: np.ndarray) -> np.ndarray:
    # A zero spacing only happens together with a zero difference.
    return np.divide(diff, spacing, out=np.zeros_like(diff), where=spacing > 0)


def height_to_normal(
    heights: np.ndarray,
    width: int,
    height: int,
    strength: float,
    mode: BoundaryMode = BoundaryMode.WRAP,
) -> np.ndarray:
    """Convert a height field in ``[0, 1]`` into an RGBA8 tangent-space normal map.

    Parameters
    ----------
    heights : np.ndarray
        ``width * height`` heights, flat or shaped ``(height, width)``.
    width, height : int
        Grid dimensions.
    strength : float
        Gradient scale. Gradients are multiplied by ``strength * resolution / 2``
        so a given strength looks equally steep at every resolution.
    mode : BoundaryMode, default WRAP
        Neighbour handling at the borders.

    Returns
    -------
    np.ndarray
        Flat ``uint8`` array of length ``width * height * 4``. RGB encode the
        normal ``normalize(-dx, dy, 1)``; alpha is 255.

    Examples
    --------
    >>> flat = np.full((8, 8), 0.5)
    >>> nm = height_to_normal(flat, 8, 8, 3.0)
    >>> nm.reshape(8, 8, 4)[0, 0].tolist()
    [128, 128, 255, 255]
    """
    hgt = np.asarray(heights, dtype=np.float64).reshape(height, width)
    s = float(strength)

    xm, xp, sx = _neighbour_indices(width, mode)
    ym, yp, sy = _neighbour_indices(height, mode)

    left = hgt[:, xm]
    right = hgt[:, xp]
    above = hgt[ym, :]
    below = hgt[yp, :]

    dx = _slope(right - left, sx[None, :]) * (s * width * 0.5)
    dy = _slope(below - above, sy[:, None]) * (s * height * 0.5)

    inv_len = 1.0 / np.sqrt(dx * dx + dy * dy + 1.0)
    out = np.empty((height, width, 4), dtype=np.uint8)
    out[..., 0] = _encode_component(-dx * inv_len)
    out[..., 1] = _encode_component(dy * inv_len)
    out[..., 2] = _encode_component(inv_len)
    out[..., 3] = 255
    return out.reshape(-1)


def dilate_silhouette(heights: np.ndarray, opaque: np.ndarray, width: int, height: int) -> np.ndarray:
    """Bleed opaque heights one pixel outward across an alpha silhouette.

    Every transparent pixel with at least one opaque 4-neighbour takes the
    mean height of those opaque neighbours, so the central-difference kernel
    does not see a cliff down to the neutral background at the silhouette.
    """
    hgt = np.asarray(heights, dtype=np.float64).reshape(height, width)
    mask = np.asarray(opaque, dtype=bool).reshape(height, width)
    weighted = np.where(mask, hgt, 0.0)
    ones = mask.astype(np.float64)

    total = np.zeros_like(hgt)
    count = np.zeros_like(hgt)
    # neighbour above, below, left, right
    total[1:, :] += weighted[:-1, :]
    count[1:, :] += ones[:-1, :]
    total[:-1, :] += weighted[1:, :]
    count[:-1, :] += ones[1:, :]
    total[:, 1:] += weighted[:, :-1]
    count[:, 1:] += ones[:, :-1]
    total[:, :-1] += weighted[:, 1:]
    count[:, :-1] += ones[:, 1:]

    fill = ~mask & (count > 0)
    out = hgt.copy()
    out[fill] = total[fill] / count[fill]
    return out


def _encode_component(n: np.ndarray) -> np.ndarray:
    return np.round(np.clip(n * 0.5 + 0.5, 0.0, 1.0) * 255.0).astype(np.uint8)


def encode_normal_vector(normal: np.ndarray) -> np.ndarray:
    """Encode normal vector(s) from ``[-1, 1]`` to ``[0, 255]``.

    Uses ``round((n * 0.5 + 0.5) * 255)``, so ``(0, 0, 1)`` encodes to
    ``(128, 128, 255)``.
    """
    normal = np.asarray(normal, dtype=np.float64)
    return _encode_component(normal)


def decode_normal_vector(encoded: np.ndarray) -> np.ndarray:
    """Decode normal vector(s) from ``[0, 255]`` back to ``[-1, 1]`` float64."""
    encoded = np.asarray(encoded, dtype=np.uint8)
    return encoded.astype(np.float64) / 255.0 * 2.0 - 1.0


def validate_normal_map(normal_map: np.ndarray, tolerance: float = 0.02) -> Dict[str, Any]:
    """Validate an encoded normal map.

    Parameters
    ----------
    normal_map : np.ndarray
        ``(H, W, 3)`` or ``(H, W, 4)`` uint8 array.
    tolerance : float, default 0.02
        Allowed deviation of decoded normal length from 1.0. Byte
        quantisation alone introduces up to about 0.01.

    Returns
    -------
    Dict[str, Any]
        ``valid``, ``errors``, ``unit_length_ok``, ``z_positive_ok`` and
        ``max_length_error``.
    """
    normal_map = np.asarray(normal_map)
    errors = []

    if normal_map.ndim != 3 or normal_map.shape[2] not in (3, 4):
        errors.append(f"Normal map must be (H, W, 3|4), got shape {normal_map.shape}")
        return {
            'valid': False,
            'errors': errors,
            'unit_length_ok': False,
            'z_positive_ok': False,
            'max_length_error': float('nan'),
        }

    if normal_map.dtype != np.uint8:
        errors.append(f"Normal map must be uint8, got {normal_map.dtype}")

    decoded = decode_normal_vector(normal_map[:, :, :3])
    lengths = np.linalg.norm(decoded, axis=2)
    length_error = np.abs(lengths - 1.0)
    max_length_error = float(length_error.max()) if length_error.size else 0.0
    unit_length_ok = max_length_error <= tolerance
    if not unit_length_ok:
        bad = int(np.sum(length_error > tolerance))
        errors.append(f"{bad}/{lengths.size} pixels have non-unit length normals")

    z_positive_ok = bool(np.all(decoded[:, :, 2] >= 0.0))
    if not z_positive_ok:
        errors.append("Tangent-space normals must not point into the surface")

    return {
        'valid': len(errors) == 0,
        'errors': errors,
        'unit_length_ok': unit_length_ok,
        'z_positive_ok': z_positive_ok,
        'max_length_error': max_length_error,
    }


def save_normal_map(normal_map: np.ndarray, path: Union[str, Path]) -> None:
    """Save an ``(H, W, 3|4)`` uint8 normal map as PNG."""
    try:
        from PIL import Image
    except ImportError:
        raise ImportError("PIL (Pillow) is required for saving normal maps")

    path = Path(path)
    normal_map = np.asarray(normal_map, dtype=np.uint8)
    if normal_map.ndim == 3 and normal_map.shape[2] == 3:
        alpha = np.full((normal_map.shape[0], normal_map.shape[1], 1), 255, dtype=np.uint8)
        normal_map = np.concatenate([normal_map, alpha], axis=2)

    Image.fromarray(normal_map).save(path, 'PNG')
    logger.info(f"Saved normal map: {path}")
