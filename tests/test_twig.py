# tests/test_twig.py
# Twig compositing: stem geometry, phyllotaxis and card output
# Exists to check both stem topologies and the leaf-frame transform
# RELEVANT FILES: python/symbios_texture/twig.py, python/symbios_texture/leaf.py
import math

import numpy as np
import pytest

from symbios_texture import TwigConfig, TwigGenerator
from symbios_texture.twig import LeafAttachment, pixel_to_leaf_uv


def test_monopodial_attachments_are_mirrored_pairs():
    config = TwigConfig()
    atts = TwigGenerator(config).leaf_attachments()
    assert len(atts) == config.leaf_pairs * 2 + 1, "pairs plus the terminal leaf"
    for right, left in zip(atts[0:-1:2], atts[1:-1:2]):
        assert right.stem_v == left.stem_v
        assert right.angle == pytest.approx(-left.angle)
        assert right.angle > 0.0


def test_terminal_leaf_is_last_smaller_and_unangled():
    config = TwigConfig()
    terminal = TwigGenerator(config).leaf_attachments()[-1]
    assert terminal.angle == 0.0
    assert terminal.stem_v == pytest.approx(config.tip_margin)
    assert terminal.scale == pytest.approx(config.leaf_scale * config.terminal_leaf_scale)


def test_sympodial_leaves_alternate_on_the_convex_side():
    config = TwigConfig(sympodial=True, wiggle_amplitude=0.0)
    gen = TwigGenerator(config)
    atts = gen.leaf_attachments()[:-1]
    assert len(atts) == 2 * config.leaf_pairs
    sides = [math.copysign(1.0, a.angle) for a in atts]
    assert all(a != b for a, b in zip(sides, sides[1:])), "sides must alternate"
    for att, side in zip(atts, sides):
        displacement = att.stem_u - config.stem_offset
        assert math.copysign(1.0, displacement) == side, "leaf sits where the stem bends out"


def test_zigzag_vanishes_at_the_tip():
    config = TwigConfig(sympodial=True, wiggle_amplitude=0.0)
    gen = TwigGenerator(config)
    assert float(gen.centerline(config.tip_margin)) == pytest.approx(config.stem_offset)


def test_stem_tapers_to_the_tip():
    config = TwigConfig()
    gen = TwigGenerator(config)
    assert float(gen.half_width(config.tip_margin)) == 0.0
    assert float(gen.half_width(1.0)) == pytest.approx(config.stem_half_width)
    mid = float(gen.half_width(0.5))
    linear = config.stem_half_width * float(gen.stem_param(0.5))
    assert linear < mid < config.stem_half_width, "sub-linear taper"
    assert float(gen.half_width(0.0)) == 0.0, "no stem above the tip"


def test_stem_centre_is_opaque():
    gen = TwigGenerator()
    tex = gen.generate(128, 128)
    y = 64
    x = int(round(float(gen.centerline(y / 128.0)) * 128))
    assert tex.rgba("albedo")[y, x, 3] == 255


@pytest.mark.parametrize("sympodial", [False, True])
def test_twig_card_has_both_alpha_states(sympodial):
    tex = TwigGenerator(TwigConfig(sympodial=sympodial)).generate(96, 96)
    alpha = tex.rgba("albedo")[..., 3]
    assert (alpha == 0).any()
    assert (alpha == 255).any()


def test_leaf_uv_is_mirror_symmetric():
    right = LeafAttachment(stem_u=0.5, stem_v=0.5, angle=1.0, scale=0.4, rotation=1.0)
    left = LeafAttachment(stem_u=0.5, stem_v=0.5, angle=-1.0, scale=0.4, rotation=-1.0)
    ru, rv = pixel_to_leaf_uv(0.8, 0.5, right)
    lu, lv = pixel_to_leaf_uv(0.2, 0.5, left)
    assert rv == pytest.approx(lv)
    assert abs(ru - 0.5) == pytest.approx(abs(lu - 0.5))


def test_leaf_uv_attachment_maps_to_leaf_base():
    att = LeafAttachment(stem_u=0.4, stem_v=0.3, angle=0.5, scale=0.25, rotation=0.5)
    assert pixel_to_leaf_uv(0.4, 0.3, att) == pytest.approx((0.5, 0.0))
    # one leaf length along the rotated tip direction reaches v = 1
    tip = (0.4 + 0.25 * math.sin(0.5), 0.3 + 0.25 * math.cos(0.5))
    assert pixel_to_leaf_uv(*tip, att) == pytest.approx((0.5, 1.0))


def test_invalid_config_rejected():
    with pytest.raises(ValueError):
        TwigConfig(taper_power=1.0)
    with pytest.raises(ValueError):
        TwigConfig(leaf_scale=0.0)
