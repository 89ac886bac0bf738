# python/symbios_texture/__init__.py
# Public API for procedural bark, rock, ground, leaf and twig textures
# Exists to re-export the synthesizers, the mip builder and the background scheduler
# RELEVANT FILES: python/symbios_texture/config.py, python/symbios_texture/async_gen.py, tests/test_generators.py
from ._validate import MAX_DIMENSION, DimensionError, DimensionErrorKind, validate_dimensions
from .generator import (
    AddressMode,
    AssetSink,
    GeneratedHandles,
    TextureGenerator,
    TextureMap,
    linear_to_srgb,
    map_to_images,
    map_to_images_card,
)
from .noise import Fbm, Perlin, RidgedMulti, Worley
from .toroidal import ToroidalNoise, TorusTable, sample_bilinear, sample_grid
from .normalmap import (
    BoundaryMode,
    decode_normal_vector,
    dilate_silhouette,
    encode_normal_vector,
    height_to_normal,
    save_normal_map,
    validate_normal_map,
)
from .bark import BarkConfig, BarkGenerator
from .rock import RockConfig, RockGenerator
from .ground import GroundConfig, GroundGenerator
from .leaf import LeafConfig, LeafGenerator, LeafSample, LeafSampler, sample_leaf
from .twig import LeafAttachment, TwigConfig, TwigGenerator
from .mipmap import (
    MipFilter,
    MippedImage,
    MippedTextureMap,
    calculate_mip_levels,
    generate_mip_chain,
    mip_level,
    mip_texture_map,
    mipmap_memory_usage,
)
from .config import MaterialKind, UnknownConfigKeyError, config_from_mapping, generator_for
from .textures import InMemoryAssetSink, save_texture_map
from .async_gen import (
    POOL_SIZE,
    PendingTexture,
    PollStatus,
    TextureFailed,
    TextureReady,
    TextureTasks,
    TextureWorkerError,
    poll_texture_tasks,
    pool_stats,
)

__version__ = "0.1.0"

__all__ = [
    "MAX_DIMENSION",
    "DimensionError",
    "DimensionErrorKind",
    "validate_dimensions",
    "AddressMode",
    "AssetSink",
    "GeneratedHandles",
    "TextureGenerator",
    "TextureMap",
    "linear_to_srgb",
    "map_to_images",
    "map_to_images_card",
    "Fbm",
    "Perlin",
    "RidgedMulti",
    "Worley",
    "ToroidalNoise",
    "TorusTable",
    "sample_bilinear",
    "sample_grid",
    "BoundaryMode",
    "decode_normal_vector",
    "dilate_silhouette",
    "encode_normal_vector",
    "height_to_normal",
    "save_normal_map",
    "validate_normal_map",
    "BarkConfig",
    "BarkGenerator",
    "RockConfig",
    "RockGenerator",
    "GroundConfig",
    "GroundGenerator",
    "LeafConfig",
    "LeafGenerator",
    "LeafSample",
    "LeafSampler",
    "sample_leaf",
    "LeafAttachment",
    "TwigConfig",
    "TwigGenerator",
    "MipFilter",
    "MippedImage",
    "MippedTextureMap",
    "calculate_mip_levels",
    "generate_mip_chain",
    "mip_level",
    "mip_texture_map",
    "mipmap_memory_usage",
    "MaterialKind",
    "UnknownConfigKeyError",
    "config_from_mapping",
    "generator_for",
    "InMemoryAssetSink",
    "save_texture_map",
    "POOL_SIZE",
    "PendingTexture",
    "PollStatus",
    "TextureFailed",
    "TextureReady",
    "TextureTasks",
    "TextureWorkerError",
    "poll_texture_tasks",
    "pool_stats",
    "__version__",
]
