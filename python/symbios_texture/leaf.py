# python/symbios_texture/leaf.py
# Alpha-masked leaf card: analytic silhouette, venation layers and cellular micro-detail
# Exists to synthesise single-leaf foliage cards and to serve leaf samples to the twig compositor
# RELEVANT FILES: python/symbios_texture/twig.py, python/symbios_texture/normalmap.py, tests/test_leaf.py
"""Leaf card synthesis.

The leaf lives in a local frame where ``u = 0.5`` is the midrib, ``v = 0`` the
attachment point and ``v = 1`` the tip. A pixel is inside the blade when::

    |u - 0.5| + serration(u, v) < effective_envelope(v)

The envelope is ``sin(v*pi) * exp(-2v) * 0.44``, optionally modulated by
periodic lobes, and the serration noise is scaled by the local envelope so
the narrow tip never breaks into isolated islands. An optional petiole
(stalk) with a semicircular cross-section occupies ``v < petiole_length``;
past it the blade coordinate is re-mapped to ``v_blade`` in ``[0, 1]``.

:class:`LeafSampler` evaluates whole coordinate arrays at once
(:meth:`LeafSampler.sample_many`), which both :class:`LeafGenerator` and the
twig compositor use.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

import numpy as np

from .generator import TRANSPARENT_ROUGHNESS, TextureGenerator, TextureMap, lerp_color, pack_albedo, pack_orm
from .noise import Perlin, Worley
from .normalmap import BoundaryMode, dilate_silhouette, height_to_normal

logger = logging.getLogger(__name__)

SERRATION_FREQ = 14.0
ENVELOPE_DECAY = 2.0
MAX_HALF_WIDTH = 0.44
WORLEY_FREQ = 20.0
VENULE_FREQ = 28.0

# Height layer weights
DOME_WEIGHT = 0.15
MIDRIB_WEIGHT = 0.40
SECONDARY_WEIGHT = 0.25
VENULE_WEIGHT = 0.15
MICRO_WEIGHT = 0.05

NEUTRAL_HEIGHT = 0.5
PETIOLE_ROUGHNESS = 0.58


@dataclass(frozen=True)
class LeafConfig:
    """Leaf appearance.

    Attributes:
        seed: Seeds the serration (``seed``), Worley (``seed + 1``) and
            venule jitter (``seed + 2``) noise.
        color_base / color_edge: Linear RGB at the midrib and at the margin.
        serration_strength: Edge noise amplitude relative to the envelope;
            0 gives a smooth margin.
        vein_angle: Chevron slope of the secondary veins.
        micro_detail: Weight of the cellular surface texture.
        lobe_count / lobe_depth / lobe_sharpness: Periodic lobing of the
            envelope; ``lobe_count = 0`` disables it.
        petiole_length / petiole_width: Stalk extent in V and its half-width;
            ``petiole_length = 0`` disables it.
        midrib_width: Midrib ridge width as a fraction of the local envelope.
        vein_count: Secondary vein pairs along the blade.
        venule_strength: Weight of the fine venule mesh.
    """

    seed: int = 0
    color_base: Tuple[float, float, float] = (0.12, 0.35, 0.08)
    color_edge: Tuple[float, float, float] = (0.35, 0.28, 0.05)
    serration_strength: float = 0.12
    vein_angle: float = 2.5
    micro_detail: float = 0.3
    normal_strength: float = 3.0
    lobe_count: float = 0.0
    lobe_depth: float = 0.35
    lobe_sharpness: float = 1.0
    petiole_length: float = 0.12
    petiole_width: float = 0.022
    midrib_width: float = 0.12
    vein_count: float = 6.0
    venule_strength: float = 0.50

    def __post_init__(self) -> None:
        if len(self.color_base) != 3 or len(self.color_edge) != 3:
            raise ValueError("colors must be (R, G, B)")
        if not 0.0 <= self.petiole_length < 1.0:
            raise ValueError("petiole_length must be in [0, 1)")
        if self.petiole_width < 0.0:
            raise ValueError("petiole_width must be >= 0")
        if self.serration_strength < 0.0:
            raise ValueError("serration_strength must be >= 0")


class LeafSample(NamedTuple):
    height: float
    color: Tuple[float, float, float]
    roughness: float


class LeafSamples(NamedTuple):
    """Array-valued leaf samples; fields are meaningful only where ``inside``."""
    inside: np.ndarray
    height: np.ndarray
    color: np.ndarray      # shape + (3,)
    roughness: np.ndarray


def leaf_envelope(v):
    """Blade half-width at ``v``; zero outside the open interval ``(0, 1)``."""
    v = np.asarray(v, dtype=np.float64)
    env = np.sin(v * np.pi) * np.exp(-v * ENVELOPE_DECAY) * MAX_HALF_WIDTH
    return np.where((v > 0.0) & (v < 1.0), env, 0.0)


def lobe_envelope(base, v, config: LeafConfig):
    """Modulate ``base`` with the sign-preserving-power lobe term."""
    if config.lobe_count <= 0.0 or config.lobe_depth <= 0.0:
        return base
    cos_val = np.cos(np.asarray(v, dtype=np.float64) * config.lobe_count * np.pi)
    shaped = np.sign(cos_val) * np.abs(cos_val) ** max(config.lobe_sharpness, 0.1)
    return np.maximum(base * (1.0 + shaped * config.lobe_depth), 0.0)


class LeafSampler:
    """Evaluates leaf samples with the noise sources built once per config."""

    def __init__(self, config: LeafConfig = None):
        self.config = config if config is not None else LeafConfig()
        self._perlin = Perlin(self.config.seed)
        self._perlin_venule = Perlin(self.config.seed + 2)
        self._worley = Worley(self.config.seed + 1, frequency=WORLEY_FREQ)

    def sample(self, u: float, v: float) -> Optional[LeafSample]:
        """Sample one leaf-space point; ``None`` when it is transparent."""
        s = self.sample_many(np.array([u]), np.array([v]))
        if not s.inside[0]:
            return None
        return LeafSample(
            height=float(s.height[0]),
            color=tuple(float(x) for x in s.color[0]),
            roughness=float(s.roughness[0]),
        )

    def sample_many(self, u, v) -> LeafSamples:
        """Sample arrays of leaf-space coordinates (broadcast together)."""
        c = self.config
        u, v = np.broadcast_arrays(np.asarray(u, dtype=np.float64), np.asarray(v, dtype=np.float64))
        shape = u.shape
        raw_dist = np.abs(u - 0.5)

        height = np.full(shape, NEUTRAL_HEIGHT)
        color = np.zeros(shape + (3,))
        roughness = np.zeros(shape)

        pl = c.petiole_length
        if pl > 0.0:
            on_petiole = v < pl
            half_width = c.petiole_width * (0.7 + 0.3 * v / pl)
            petiole_in = on_petiole & (raw_dist < half_width)
            t = np.divide(raw_dist, half_width, out=np.ones(shape), where=petiole_in)
            height[petiole_in] = np.sqrt(1.0 - t[petiole_in] ** 2)
            color[petiole_in] = c.color_base
            roughness[petiole_in] = PETIOLE_ROUGHNESS
            v_blade = (v - pl) / (1.0 - pl)
            envelope = leaf_envelope(v_blade) + c.petiole_width * np.exp(-v_blade * 12.0)
        else:
            on_petiole = np.zeros(shape, dtype=bool)
            petiole_in = on_petiole
            v_blade = v
            envelope = leaf_envelope(v_blade)

        eff_env = lobe_envelope(envelope, v_blade, c)
        candidate = ~on_petiole & (envelope > 0.0) & (eff_env > 0.0)

        blade_in = np.zeros(shape, dtype=bool)
        if np.any(candidate):
            bu = u[candidate]
            bv = v_blade[candidate]
            bdist = raw_dist[candidate]
            benv = envelope[candidate]
            beff = eff_env[candidate]

            serration = (
                self._perlin.sample2(bu * SERRATION_FREQ, bv * SERRATION_FREQ)
                * c.serration_strength
                * beff
            )
            hit = bdist + serration < beff

            bu, bv, bdist, benv, beff = bu[hit], bv[hit], bdist[hit], benv[hit], beff[hit]

            edge_frac = np.clip(bdist / beff, 0.0, 1.0)
            dome = 1.0 - edge_frac * edge_frac
            midrib = (1.0 - np.minimum(bdist / (benv * max(c.midrib_width, 0.01)), 1.0)) ** 2

            vein_freq = c.vein_count * 2.0
            secondary = np.abs(np.sin(bv * vein_freq - bdist * vein_freq * c.vein_angle)) ** 4

            jitter = self._perlin_venule.sample2(bu * 4.0, bv * 4.0) * 1.8
            across = (bu - 0.5) * VENULE_FREQ
            along = bv * VENULE_FREQ * 0.38
            venule = np.maximum(
                np.abs(np.sin(across + along + jitter)) ** 6,
                np.abs(np.sin(across - along + jitter)) ** 6,
            )
            micro = np.clip(self._worley.sample2(bu, bv) * 0.5 + 0.5, 0.0, 1.0)

            h = np.clip(
                dome * DOME_WEIGHT
                + midrib * MIDRIB_WEIGHT
                + secondary * SECONDARY_WEIGHT
                + venule * c.venule_strength * VENULE_WEIGHT
                + micro * c.micro_detail * MICRO_WEIGHT,
                0.0,
                1.0,
            )

            blade = lerp_color(c.color_base, c.color_edge, edge_frac)
            vein_brightness = np.clip(midrib * 0.6 + secondary * 0.4, 0.0, 1.0) * 0.18
            blade = np.minimum(blade + vein_brightness[:, None] * np.array([1.0, 0.75, 0.25]), 1.0)

            idx = np.flatnonzero(candidate.reshape(-1))[hit]
            blade_in.reshape(-1)[idx] = True
            height.reshape(-1)[idx] = h
            color.reshape(-1, 3)[idx] = blade
            roughness.reshape(-1)[idx] = 0.80 + (0.52 - 0.80) * h

        return LeafSamples(inside=petiole_in | blade_in, height=height, color=color, roughness=roughness)


def sample_leaf(u: float, v: float, config: LeafConfig = None) -> Optional[LeafSample]:
    """One-off sample; build a :class:`LeafSampler` instead when sampling repeatedly."""
    return LeafSampler(config).sample(u, v)


def card_planes(inside, heights, color, roughness, width, height, strength):
    """Pack per-pixel card samples into a :class:`TextureMap`.

    Transparent pixels get alpha 0, roughness 200 and a neutral height;
    heights are dilated across the silhouette before clamp-mode normal
    derivation.
    """
    inside = np.asarray(inside, dtype=bool).reshape(height, width)
    heights = np.where(inside, np.asarray(heights).reshape(height, width), NEUTRAL_HEIGHT)
    color = np.where(inside[..., None], np.asarray(color).reshape(height, width, 3), 0.0)
    rough = np.where(inside, np.asarray(roughness).reshape(height, width), TRANSPARENT_ROUGHNESS / 255.0)

    albedo = pack_albedo(color, alpha=np.where(inside, 255, 0))
    orm = pack_orm(rough)
    dilated = dilate_silhouette(heights, inside, width, height)
    normal = height_to_normal(dilated, width, height, strength, BoundaryMode.CLAMP)
    return TextureMap(albedo=albedo, normal=normal, roughness=orm, width=width, height=height)


class LeafGenerator(TextureGenerator):
    """Single leaf card; upload with :func:`~symbios_texture.generator.map_to_images_card`."""

    is_card = True

    def __init__(self, config: LeafConfig = None):
        super().__init__(config if config is not None else LeafConfig())

    def _generate(self, width: int, height: int) -> TextureMap:
        start = time.perf_counter()
        sampler = LeafSampler(self.config)
        u = (np.arange(width, dtype=np.float64) / width)[None, :]
        v = (np.arange(height, dtype=np.float64) / height)[:, None]
        s = sampler.sample_many(u, v)
        out = card_planes(s.inside, s.height, s.color, s.roughness, width, height, self.config.normal_strength)
        logger.debug(
            f"leaf {width}x{height} generated in {time.perf_counter() - start:.3f}s "
            f"({int(s.inside.sum())} opaque pixels)"
        )
        return out
