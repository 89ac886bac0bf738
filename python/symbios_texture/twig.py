# python/symbios_texture/twig.py
# Composite foliage card: tapering curved stem with leaves attached along it
# Exists to build twig cards out of LeafSampler samples placed by a phyllotaxis rule
# RELEVANT FILES: python/symbios_texture/leaf.py, python/symbios_texture/normalmap.py, tests/test_twig.py
"""Twig card synthesis.

Texture coordinates: ``u = 0`` left, ``v = 0`` top. The stem base sits on the
bottom edge (``v = 1``) and the tip at ``v = tip_margin``. Along the stem,
``s = (v - tip_margin) / (1 - tip_margin)`` runs from 0 at the tip to 1 at the
base.

The centerline is ``stem_offset`` plus a slow Perlin wiggle and, for the
sympodial topology, a zigzag ``zigzag_amplitude * s * sin(pi * n * s)``
whose amplitude is zero at the tip and largest at the base. The stem
half-width tapers as ``stem_half_width * s ** taper_power``.

Leaf angles are measured from the stem tangent pointing toward the base;
positive angles put the leaf on the right. Each pixel is tested against the
stem first, then against every leaf attachment in order, and the first
opaque leaf sample wins.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, NamedTuple, Tuple

import numpy as np

from .generator import TextureGenerator, TextureMap, lerp_color
from .leaf import LeafConfig, LeafSampler, card_planes
from .noise import Perlin

logger = logging.getLogger(__name__)

STEM_ROUGHNESS = 0.75
_TANGENT_EPS = 1e-3


@dataclass(frozen=True)
class TwigConfig:
    """Twig appearance; ``leaf`` is shared by every leaf on the twig."""

    leaf: LeafConfig = field(default_factory=LeafConfig)
    stem_color: Tuple[float, float, float] = (0.25, 0.16, 0.07)
    stem_half_width: float = 0.015
    leaf_pairs: int = 4
    leaf_angle: float = math.pi / 2 - 0.4  # mostly sideways, slightly toward the base
    leaf_scale: float = 0.38
    sympodial: bool = False
    zigzag_amplitude: float = 0.06
    wiggle_amplitude: float = 0.015
    wiggle_frequency: float = 2.0
    stem_offset: float = 0.5
    taper_power: float = 0.6
    tip_margin: float = 0.08
    terminal_leaf_scale: float = 0.7

    def __post_init__(self) -> None:
        if not isinstance(self.leaf, LeafConfig):
            raise ValueError("leaf must be a LeafConfig")
        if len(self.stem_color) != 3:
            raise ValueError("stem_color must be (R, G, B)")
        if self.leaf_pairs < 0:
            raise ValueError("leaf_pairs must be >= 0")
        if self.leaf_scale <= 0.0:
            raise ValueError("leaf_scale must be > 0")
        if not 0.0 < self.taper_power < 1.0:
            raise ValueError("taper_power must be in (0, 1)")
        if not 0.0 <= self.tip_margin < 1.0:
            raise ValueError("tip_margin must be in [0, 1)")


class LeafAttachment(NamedTuple):
    """One leaf placement in texture space."""
    stem_u: float
    stem_v: float
    angle: float  # relative to the base-ward stem tangent, positive = right
    scale: float
    rotation: float  # absolute angle from +V used for the local frame


def pixel_to_leaf_uv(pu, pv, att: LeafAttachment):
    """Map texture coordinates into the leaf frame of ``att``.

    Local +V points from the attachment toward the leaf tip, whose direction
    in texture space is ``(sin r, cos r)`` for rotation ``r``; ``u = 0.5`` is
    the midrib.
    """
    dx = pu - att.stem_u
    dy = pv - att.stem_v
    cos_r = math.cos(att.rotation)
    sin_r = math.sin(att.rotation)
    u_raw = dx * cos_r - dy * sin_r
    v_raw = dx * sin_r + dy * cos_r
    return u_raw / att.scale + 0.5, v_raw / att.scale


class TwigGenerator(TextureGenerator):
    """Twig card; upload with :func:`~symbios_texture.generator.map_to_images_card`."""

    is_card = True

    def __init__(self, config: TwigConfig = None):
        super().__init__(config if config is not None else TwigConfig())
        self._wiggle = Perlin(self.config.leaf.seed + 10)

    # --- stem geometry ---------------------------------------------------

    def stem_param(self, v):
        """``s`` along the stem: 0 at the tip, 1 at the base."""
        tip = self.config.tip_margin
        return (np.asarray(v, dtype=np.float64) - tip) / (1.0 - tip)

    def _node_count(self) -> int:
        return 2 * self.config.leaf_pairs

    def centerline(self, v):
        """Stem centre ``u`` at texture row ``v``."""
        c = self.config
        v = np.asarray(v, dtype=np.float64)
        cx = c.stem_offset + c.wiggle_amplitude * self._wiggle.sample2(v * c.wiggle_frequency, 0.5)
        if c.sympodial and self._node_count() > 0:
            s = np.clip(self.stem_param(v), 0.0, 1.0)
            cx = cx + c.zigzag_amplitude * s * np.sin(np.pi * self._node_count() * s)
        return cx

    def tangent_angle(self, v):
        """Angle of the base-ward stem tangent from +V (positive leans right)."""
        slope = (self.centerline(v + _TANGENT_EPS) - self.centerline(v - _TANGENT_EPS)) / (2.0 * _TANGENT_EPS)
        return np.arctan2(slope, 1.0)

    def half_width(self, v):
        c = self.config
        s = self.stem_param(v)
        inside = (s >= 0.0) & (s <= 1.0)
        return np.where(inside, c.stem_half_width * np.power(np.clip(s, 0.0, 1.0), c.taper_power), 0.0)

    # --- phyllotaxis -----------------------------------------------------

    def _attach(self, s: float, side: float, scale: float, angle: float) -> LeafAttachment:
        tip = self.config.tip_margin
        v = tip + (1.0 - tip) * s
        base_angle = float(self.tangent_angle(v))
        return LeafAttachment(
            stem_u=float(self.centerline(v)),
            stem_v=v,
            angle=side * angle,
            scale=scale,
            rotation=base_angle + side * angle,
        )

    def leaf_attachments(self) -> List[LeafAttachment]:
        """Leaf placements in compositing order; the terminal leaf is last."""
        c = self.config
        attachments = []
        if c.sympodial:
            n = self._node_count()
            for k in range(1, n + 1):
                s = (k - 0.5) / n
                # sin(pi * n * s) alternates sign between nodes; the leaf sits on the bend's outer side
                side = 1.0 if k % 2 == 1 else -1.0
                attachments.append(self._attach(s, side, c.leaf_scale, c.leaf_angle))
        else:
            n = c.leaf_pairs
            for i in range(n):
                s = (i + 0.5) / n
                attachments.append(self._attach(s, 1.0, c.leaf_scale, c.leaf_angle))
                attachments.append(self._attach(s, -1.0, c.leaf_scale, c.leaf_angle))
        attachments.append(self._attach(0.0, 1.0, c.leaf_scale * c.terminal_leaf_scale, 0.0))
        return attachments

    # --- synthesis -------------------------------------------------------

    def _generate(self, width: int, height: int) -> TextureMap:
        c = self.config
        start = time.perf_counter()
        sampler = LeafSampler(c.leaf)

        pu = np.broadcast_to((np.arange(width, dtype=np.float64) / width)[None, :], (height, width))
        pv_col = (np.arange(height, dtype=np.float64) / height)[:, None]
        pv = np.broadcast_to(pv_col, (height, width))

        inside = np.zeros((height, width), dtype=bool)
        heights = np.zeros((height, width))
        color = np.zeros((height, width, 3))
        rough = np.zeros((height, width))

        # Stem: distance to the centerline, corrected for its slope.
        cx = self.centerline(pv_col)
        slope = (self.centerline(pv_col + _TANGENT_EPS) - self.centerline(pv_col - _TANGENT_EPS)) / (2.0 * _TANGENT_EPS)
        dist = np.abs(pu - cx) / np.sqrt(1.0 + slope * slope)
        hw = np.broadcast_to(self.half_width(pv_col), (height, width))
        stem = dist < hw
        t = np.divide(dist, hw, out=np.ones((height, width)), where=stem)
        t = 1.0 - t
        stem_rgb = np.asarray(c.stem_color, dtype=np.float64)
        inside[stem] = True
        heights[stem] = t[stem] * 0.6
        color[stem] = lerp_color(stem_rgb * 0.6, stem_rgb, t[stem])
        rough[stem] = STEM_ROUGHNESS

        attachments = self.leaf_attachments()
        for att in attachments:
            free = ~inside
            if not free.any():
                break
            lu, lv = pixel_to_leaf_uv(pu[free], pv[free], att)
            in_card = (lu >= 0.0) & (lu <= 1.0) & (lv >= 0.0) & (lv <= 1.0)
            if not in_card.any():
                continue
            s = sampler.sample_many(lu[in_card], lv[in_card])
            idx = np.flatnonzero(free.reshape(-1))[in_card][s.inside]
            inside.reshape(-1)[idx] = True
            heights.reshape(-1)[idx] = s.height[s.inside]
            color.reshape(-1, 3)[idx] = s.color[s.inside]
            rough.reshape(-1)[idx] = s.roughness[s.inside]

        out = card_planes(inside, heights, color, rough, width, height, c.leaf.normal_strength)
        logger.debug(
            f"twig {width}x{height} ({'sympodial' if c.sympodial else 'monopodial'}, "
            f"{len(attachments)} leaves) generated in {time.perf_counter() - start:.3f}s"
        )
        return out
