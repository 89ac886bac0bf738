# python/symbios_texture/textures.py
# In-memory asset sink and PNG export for finished texture maps
# Exists so hosts and tests can receive uploads without a graphics backend
# RELEVANT FILES: python/symbios_texture/generator.py, python/symbios_texture/async_gen.py, tests/test_textures.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Union

import numpy as np

from .generator import AddressMode, TextureMap

logger = logging.getLogger(__name__)


@dataclass
class Tex:
    data: np.ndarray
    width: int
    height: int
    srgb: bool
    address_mode: AddressMode

    def rgba(self) -> np.ndarray:
        return self.data.reshape(self.height, self.width, 4)


class InMemoryAssetSink:
    """Asset sink that keeps uploaded planes in a dict keyed by integer handle.

    - albedo arrives sRGB, normal and ORM arrive linear.
    - the address mode is recorded as requested (repeat or clamp-to-edge).

    """

    def __init__(self):
        self._images: Dict[int, Tex] = {}
        self._next = 0

    def add_image(
        self,
        data: np.ndarray,
        width: int,
        height: int,
        *,
        srgb: bool,
        address_mode: AddressMode,
    ) -> int:
        if data.dtype != np.uint8 or data.size != width * height * 4:
            raise ValueError(f"image data must be {width * height * 4} uint8 bytes")
        handle = self._next
        self._next += 1
        self._images[handle] = Tex(data=data, width=width, height=height, srgb=srgb, address_mode=address_mode)
        return handle

    def get(self, handle: int) -> Tex:
        return self._images[handle]

    def handles(self) -> List[int]:
        return list(self._images)

    def __len__(self) -> int:
        return len(self._images)


def save_texture_map(map: TextureMap, directory: Union[str, Path], stem: str) -> List[Path]:
    """Write ``<stem>_albedo.png``, ``<stem>_normal.png`` and ``<stem>_orm.png``.

    Requires Pillow.
    """
    try:
        from PIL import Image
    except ImportError:
        raise ImportError("PIL (Pillow) is required for saving texture maps")

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    written = []
    for plane, suffix in (("albedo", "albedo"), ("normal", "normal"), ("roughness", "orm")):
        path = directory / f"{stem}_{suffix}.png"
        Image.fromarray(np.ascontiguousarray(map.rgba(plane))).save(path, "PNG")
        written.append(path)
    logger.info(f"Saved texture map {map.width}x{map.height}: {', '.join(str(p) for p in written)}")
    return written
