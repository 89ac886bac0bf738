#!/usr/bin/env python3
"""Time every texture generator at a fixed size.

Usage
-----
    python scripts/bench_generators.py [--size 512] [--repeat 3] [--only bark rock] [--mips] [--save DIR]

Options:
    --size N        Square texture size (default 512)
    --repeat N      Runs per generator; the best time is reported
    --only KIND...  Restrict to some material kinds
    --mips          Also time building the mip chains of each map
    --save DIR      Write the last map of each kind as PNGs (requires Pillow)
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "python"))

from symbios_texture import MaterialKind, mip_texture_map, save_texture_map  # noqa: E402


def _best_of(fn, repeat: int):
    best = float("inf")
    result = None
    for _ in range(repeat):
        start = time.perf_counter()
        result = fn()
        best = min(best, time.perf_counter() - start)
    return best, result


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--size", type=int, default=512)
    parser.add_argument("--repeat", type=int, default=3)
    parser.add_argument("--only", nargs="+", choices=[k.value for k in MaterialKind])
    parser.add_argument("--mips", action="store_true")
    parser.add_argument("--save", type=Path)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    kinds = [MaterialKind.parse(k) for k in args.only] if args.only else list(MaterialKind)
    size = args.size
    print(f"{'kind':<8} {'size':>10} {'best ms':>10} {'Mpx/s':>8}")
    for kind in kinds:
        generator = kind.generator_class(kind.config_class())
        seconds, tex = _best_of(lambda: generator.generate(size, size), args.repeat)
        mpx = size * size / seconds / 1e6
        print(f"{kind.value:<8} {f'{size}x{size}':>10} {seconds * 1000:>10.1f} {mpx:>8.2f}")
        if args.mips:
            mip_seconds, _ = _best_of(lambda: mip_texture_map(tex), args.repeat)
            print(f"{kind.value + '+mip':<8} {'':>10} {mip_seconds * 1000:>10.1f}")
        if args.save:
            save_texture_map(tex, args.save, f"{kind.value}_{size}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
