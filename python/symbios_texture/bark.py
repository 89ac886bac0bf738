# python/symbios_texture/bark.py
# Tileable tree-bark synthesizer: domain-warped fibres plus cellular rhytidome plates
# Exists to produce seamless bark albedo/normal/ORM from a BarkConfig
# RELEVANT FILES: python/symbios_texture/toroidal.py, python/symbios_texture/noise.py, tests/test_bark.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .generator import TextureGenerator, TextureMap, lerp_color, pack_albedo, pack_orm
from .noise import Fbm, Worley
from .normalmap import BoundaryMode, height_to_normal
from .toroidal import ToroidalNoise, TorusTable, to_unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BarkConfig:
    """Bark appearance.

    ``warp_u``/``warp_v`` are the domain-warp amplitudes; a large ``warp_v``
    stretches the fibres along the trunk. The ``furrow_*`` fields control the
    cellular plate layer: ``furrow_scale_u``/``furrow_scale_v`` multiply
    ``scale`` per axis (narrow across, long along the trunk) and
    ``furrow_shape`` is the exponent that sharpens the crack boundaries.
    """

    seed: int = 42
    scale: float = 4.0
    octaves: int = 6
    warp_u: float = 0.15
    warp_v: float = 0.55
    color_light: Tuple[float, float, float] = (0.45, 0.28, 0.14)
    color_dark: Tuple[float, float, float] = (0.18, 0.10, 0.05)
    normal_strength: float = 3.0
    furrow_multiplier: float = 0.55
    furrow_scale_u: float = 2.0
    furrow_scale_v: float = 0.25
    furrow_shape: float = 0.4

    def __post_init__(self) -> None:
        if self.octaves < 1:
            raise ValueError("octaves must be >= 1")
        if self.scale <= 0.0:
            raise ValueError("scale must be > 0")
        if len(self.color_light) != 3 or len(self.color_dark) != 3:
            raise ValueError("colors must be (R, G, B)")
        if self.furrow_shape <= 0.0:
            raise ValueError("furrow_shape must be > 0")


class BarkGenerator(TextureGenerator):
    """Seamless bark texture.

    Three fBm fields come from one seed family (``seed``, ``seed + 100``,
    ``seed + 200``): the first two warp the sampling position of the third.
    A Worley layer (``seed + 300``) sampled on an anisotropic torus gives the
    plates, blended in by ``furrow_multiplier``.
    """

    def __init__(self, config: BarkConfig = None):
        super().__init__(config if config is not None else BarkConfig())

    def _generate(self, width: int, height: int) -> TextureMap:
        c = self.config
        start = time.perf_counter()

        warp_u = ToroidalNoise(Fbm(c.seed, octaves=c.octaves), c.scale)
        warp_v = ToroidalNoise(Fbm(c.seed + 100, octaves=c.octaves), c.scale)
        base = ToroidalNoise(Fbm(c.seed + 200, octaves=c.octaves), c.scale)
        plates = ToroidalNoise(
            Worley(c.seed + 300),
            c.scale * c.furrow_scale_u,
            c.scale * c.furrow_scale_v,
        )

        table = TorusTable.build(width, height, c.scale, c.scale)
        du = warp_u.sample_table(table) * c.warp_u
        dv = warp_v.sample_table(table) * c.warp_v

        u = (np.arange(width, dtype=np.float64) / width)[None, :]
        v = (np.arange(height, dtype=np.float64) / height)[:, None]
        fibre = np.clip(to_unit(base.get_offset(u, v, du, dv)), 0.0, 1.0)

        # Worley distance is small near feature points; invert so plates are raised.
        furrow = np.clip(0.5 - plates.sample_grid(width, height) * 0.5, 0.0, 1.0)
        plate_height = np.power(furrow, c.furrow_shape)

        heights = np.clip(
            fibre * (1.0 - c.furrow_multiplier) + plate_height * c.furrow_multiplier, 0.0, 1.0
        )

        albedo = pack_albedo(lerp_color(c.color_dark, c.color_light, heights))
        roughness = pack_orm(0.6 + (1.0 - heights) * 0.35)
        normal = height_to_normal(heights, width, height, c.normal_strength, BoundaryMode.WRAP)

        logger.debug(f"bark {width}x{height} generated in {time.perf_counter() - start:.3f}s")
        return TextureMap(albedo=albedo, normal=normal, roughness=roughness, width=width, height=height)
