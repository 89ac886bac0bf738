# python/symbios_texture/rock.py
# Tileable rock synthesizer built on one ridged-multifractal field
# Exists to produce seamless creased stone albedo/normal/ORM from a RockConfig
# RELEVANT FILES: python/symbios_texture/noise.py, python/symbios_texture/normalmap.py, tests/test_generators.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .generator import TextureGenerator, TextureMap, lerp_color, pack_albedo, pack_orm
from .noise import RidgedMulti
from .normalmap import BoundaryMode, height_to_normal
from .toroidal import ToroidalNoise, to_unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RockConfig:
    """Rock appearance; ``attenuation`` controls how strongly each ridged octave gates the next."""

    seed: int = 7
    scale: float = 3.0
    octaves: int = 8
    attenuation: float = 2.0
    color_light: Tuple[float, float, float] = (0.37, 0.42, 0.36)
    color_dark: Tuple[float, float, float] = (0.22, 0.20, 0.18)
    normal_strength: float = 4.0

    def __post_init__(self) -> None:
        if self.octaves < 1:
            raise ValueError("octaves must be >= 1")
        if self.scale <= 0.0:
            raise ValueError("scale must be > 0")
        if self.attenuation <= 0.0:
            raise ValueError("attenuation must be > 0")
        if len(self.color_light) != 3 or len(self.color_dark) != 3:
            raise ValueError("colors must be (R, G, B)")


class RockGenerator(TextureGenerator):
    def __init__(self, config: RockConfig = None):
        super().__init__(config if config is not None else RockConfig())

    def _generate(self, width: int, height: int) -> TextureMap:
        c = self.config
        start = time.perf_counter()

        noise = ToroidalNoise(RidgedMulti(c.seed, octaves=c.octaves, attenuation=c.attenuation), c.scale)
        ridged = noise.sample_grid(width, height)
        t = np.clip(to_unit(ridged), 0.0, 1.0)

        albedo = pack_albedo(lerp_color(c.color_dark, c.color_light, t))
        roughness = pack_orm(0.75 - t * 0.25)
        # The ridged field spans [-1, 1], twice the range of a [0, 1] height.
        normal = height_to_normal(ridged, width, height, c.normal_strength * 0.5, BoundaryMode.WRAP)

        logger.debug(f"rock {width}x{height} generated in {time.perf_counter() - start:.3f}s")
        return TextureMap(albedo=albedo, normal=normal, roughness=roughness, width=width, height=height)
