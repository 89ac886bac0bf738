# python/symbios_texture/config.py
# Closed set of material kinds and plain-mapping config construction
# Exists so hosts can pick a synthesizer by name and build its config from dicts
# RELEVANT FILES: python/symbios_texture/__init__.py, python/symbios_texture/async_gen.py, tests/test_config.py
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, Dict, Mapping, Tuple, Type, Union

from .bark import BarkConfig, BarkGenerator
from .generator import TextureGenerator
from .ground import GroundConfig, GroundGenerator
from .leaf import LeafConfig, LeafGenerator
from .rock import RockConfig, RockGenerator
from .twig import TwigConfig, TwigGenerator

MaterialConfig = Union[BarkConfig, RockConfig, GroundConfig, LeafConfig, TwigConfig]


class UnknownConfigKeyError(KeyError):
    """A mapping named a field the config class does not define."""

    def __init__(self, config_cls: type, key: str):
        self.config_cls = config_cls
        self.key = key
        super().__init__(f"{config_cls.__name__} has no field {key!r}")


class MaterialKind(Enum):
    BARK = "bark"
    ROCK = "rock"
    GROUND = "ground"
    LEAF = "leaf"
    TWIG = "twig"

    @property
    def config_class(self) -> type:
        return _CONFIG_CLASSES[self]

    @property
    def generator_class(self) -> Type[TextureGenerator]:
        return _GENERATOR_CLASSES[self]

    @property
    def is_card(self) -> bool:
        """Alpha-masked foliage card (clamp addressing) rather than a tileable surface."""
        return self.generator_class.is_card

    @classmethod
    def parse(cls, value: Any) -> "MaterialKind":
        if isinstance(value, cls):
            return value
        key = _normalize_key(value)
        for kind in cls:
            if kind.value == key:
                return kind
        raise ValueError(f"Unknown material kind: {value!r}")

    @classmethod
    def of(cls, config: MaterialConfig) -> "MaterialKind":
        for kind, config_cls in _CONFIG_CLASSES.items():
            if type(config) is config_cls:
                return kind
        raise TypeError(f"not a material config: {type(config).__name__}")


_CONFIG_CLASSES: Dict[MaterialKind, type] = {
    MaterialKind.BARK: BarkConfig,
    MaterialKind.ROCK: RockConfig,
    MaterialKind.GROUND: GroundConfig,
    MaterialKind.LEAF: LeafConfig,
    MaterialKind.TWIG: TwigConfig,
}

_GENERATOR_CLASSES: Dict[MaterialKind, Type[TextureGenerator]] = {
    MaterialKind.BARK: BarkGenerator,
    MaterialKind.ROCK: RockGenerator,
    MaterialKind.GROUND: GroundGenerator,
    MaterialKind.LEAF: LeafGenerator,
    MaterialKind.TWIG: TwigGenerator,
}


def _normalize_key(value: Any) -> str:
    return "".join(
        c
        for c in str(value).strip().lower()
        if c not in {"-", "_", " ", "."}
    )


def _to_float3(value: Any, label: str) -> Tuple[float, float, float]:
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return (float(value[0]), float(value[1]), float(value[2]))
    raise ValueError(f"{label} must be a sequence of three numeric values")


def _build(config_cls: type, mapping: Mapping[str, Any]):
    fields = {f.name: f for f in dataclasses.fields(config_cls)}
    defaults = config_cls()
    kwargs: Dict[str, Any] = {}
    for key, value in mapping.items():
        if key not in fields:
            raise UnknownConfigKeyError(config_cls, key)
        default = getattr(defaults, key)
        if isinstance(default, LeafConfig):
            kwargs[key] = value if isinstance(value, LeafConfig) else _build(LeafConfig, value)
        elif isinstance(default, tuple):
            kwargs[key] = _to_float3(value, f"{config_cls.__name__}.{key}")
        elif isinstance(default, bool):
            kwargs[key] = bool(value)
        elif isinstance(default, int):
            kwargs[key] = int(value)
        elif isinstance(default, float):
            kwargs[key] = float(value)
        else:
            kwargs[key] = value
    return config_cls(**kwargs)


def config_from_mapping(kind: Union[MaterialKind, str], mapping: Mapping[str, Any] = None) -> MaterialConfig:
    """Build the config for ``kind`` from a plain mapping.

    Missing keys keep their defaults; colour triples may be lists; a twig's
    ``leaf`` may be a nested mapping.

    Raises:
        ValueError: unknown kind, or a malformed value.
        UnknownConfigKeyError: a key the config class does not define.
    """
    kind = MaterialKind.parse(kind)
    return _build(kind.config_class, mapping or {})


def generator_for(config: MaterialConfig) -> TextureGenerator:
    """Return the synthesizer bound to ``config``."""
    return MaterialKind.of(config).generator_class(config)
