# python/symbios_texture/ground.py
# Tileable ground synthesizer: macro soil patches blended with micro grain
# Exists to produce seamless soil albedo/normal/ORM from a GroundConfig
# RELEVANT FILES: python/symbios_texture/noise.py, python/symbios_texture/toroidal.py, tests/test_generators.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .generator import TextureGenerator, TextureMap, lerp_color, pack_albedo, pack_orm
from .noise import Fbm
from .normalmap import BoundaryMode, height_to_normal
from .toroidal import ToroidalNoise, to_unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroundConfig:
    """Ground appearance.

    Two independent fBm fields are blended: ``macro_*`` gives broad dry/moist
    patches, ``micro_*`` fine grain. ``micro_weight`` in ``[0, 1]`` is the
    share of the micro field in the final height.
    """

    seed: int = 13
    macro_scale: float = 2.0
    macro_octaves: int = 5
    micro_scale: float = 8.0
    micro_octaves: int = 4
    micro_weight: float = 0.35
    color_dry: Tuple[float, float, float] = (0.52, 0.40, 0.26)
    color_moist: Tuple[float, float, float] = (0.28, 0.20, 0.12)
    normal_strength: float = 2.0

    def __post_init__(self) -> None:
        if self.macro_octaves < 1 or self.micro_octaves < 1:
            raise ValueError("octaves must be >= 1")
        if self.macro_scale <= 0.0 or self.micro_scale <= 0.0:
            raise ValueError("scales must be > 0")
        if not 0.0 <= self.micro_weight <= 1.0:
            raise ValueError("micro_weight must be in [0, 1]")
        if len(self.color_dry) != 3 or len(self.color_moist) != 3:
            raise ValueError("colors must be (R, G, B)")


class GroundGenerator(TextureGenerator):
    def __init__(self, config: GroundConfig = None):
        super().__init__(config if config is not None else GroundConfig())

    def _generate(self, width: int, height: int) -> TextureMap:
        c = self.config
        start = time.perf_counter()

        macro = ToroidalNoise(Fbm(c.seed, octaves=c.macro_octaves), c.macro_scale)
        micro = ToroidalNoise(Fbm(c.seed + 50, octaves=c.micro_octaves), c.micro_scale)
        macro_val = np.clip(to_unit(macro.sample_grid(width, height)), 0.0, 1.0)
        micro_val = np.clip(to_unit(micro.sample_grid(width, height)), 0.0, 1.0)
        heights = macro_val * (1.0 - c.micro_weight) + micro_val * c.micro_weight

        albedo = pack_albedo(lerp_color(c.color_moist, c.color_dry, heights))
        roughness = pack_orm(0.80 + (1.0 - heights) * 0.15)
        normal = height_to_normal(heights, width, height, c.normal_strength, BoundaryMode.WRAP)

        logger.debug(f"ground {width}x{height} generated in {time.perf_counter() - start:.3f}s")
        return TextureMap(albedo=albedo, normal=normal, roughness=roughness, width=width, height=height)
