#!/usr/bin/env python3
"""
Dark Colony Map Converter

Reads .MAP level grids and writes OpenRA map directories (map.yaml + map.bin).

MAP layout:
    u32 width, u32 height
    width * height cells, row-major, each:
        u16 main     bit 15 flip H, bit 14 flip V, bit 13 impassable, bits 0-12 tile
        u16 overlay

map.bin layout: per cell u16 template id + u8 sub-index, row-major.
"""

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

import numpy as np

from dc_stream import ByteStream

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

FLIP_H_BIT = 0x8000
FLIP_V_BIT = 0x4000
IMPASSABLE_BIT = 0x2000
TILE_INDEX_MASK = 0x1FFF
CELL_SIZE = 4
HEADER_SIZE = 8

IMPASSABLE_TEMPLATE = 2
PLACEHOLDER_TEMPLATES = 4
BOUNDS_MARGIN = 2

MAP_BIN_DTYPE = np.dtype([('template', '<u2'), ('sub_index', 'u1')])


@dataclass(frozen=True)
class MapCell:
    tile_index: int
    overlay_index: int
    flip_h: bool
    flip_v: bool
    impassable: bool


@dataclass(frozen=True, eq=False)
class DcMap:
    width: int
    height: int
    tile_index: np.ndarray     # (height, width) uint16, 13 bits
    overlay_index: np.ndarray  # (height, width) uint16
    flip_h: np.ndarray         # (height, width) bool
    flip_v: np.ndarray
    impassable: np.ndarray

    def cell(self, x: int, y: int) -> MapCell:
        return MapCell(
            int(self.tile_index[y, x]),
            int(self.overlay_index[y, x]),
            bool(self.flip_h[y, x]),
            bool(self.flip_v[y, x]),
            bool(self.impassable[y, x]),
        )

    def cells(self) -> Iterator[MapCell]:
        """All cells, row by row."""
        for y in range(self.height):
            for x in range(self.width):
                yield self.cell(x, y)


def decode_main_field(raw: int) -> MapCell:
    return MapCell(
        raw & TILE_INDEX_MASK,
        0,
        bool(raw & FLIP_H_BIT),
        bool(raw & FLIP_V_BIT),
        bool(raw & IMPASSABLE_BIT),
    )


def _readonly(a: np.ndarray) -> np.ndarray:
    a.flags.writeable = False
    return a


def read_map(data: bytes) -> DcMap:
    s = ByteStream(data)
    try:
        width = s.read_u32le()
        height = s.read_u32le()
    except EOFError:
        width = height = 0

    total = width * height
    main = np.zeros(total, dtype=np.uint16)
    overlay = np.zeros(total, dtype=np.uint16)

    available = min(total, s.remaining() // CELL_SIZE)
    if available < total:
        logger.debug(f"Map grid truncated: {available}/{total} cells present")
    if available:
        raw = np.frombuffer(data, dtype='<u2', count=available * 2, offset=HEADER_SIZE)
        main[:available] = raw[0::2]
        overlay[:available] = raw[1::2]

    shape = (height, width)
    main = main.reshape(shape)
    return DcMap(
        width,
        height,
        _readonly(main & TILE_INDEX_MASK),
        _readonly(overlay.reshape(shape)),
        _readonly((main & FLIP_H_BIT) != 0),
        _readonly((main & FLIP_V_BIT) != 0),
        _readonly((main & IMPASSABLE_BIT) != 0),
    )


def load_map(path: str) -> DcMap:
    with open(path, 'rb') as f:
        return read_map(f.read())


def placeholder_template(cell: MapCell) -> int:
    """
    Map a Dark Colony cell to one of the mod's basic terrain templates.

    Not a real tile-art mapping: impassable cells get the impassable
    template and the rest are spread over the four placeholder templates.
    """
    if cell.impassable:
        return IMPASSABLE_TEMPLATE
    return cell.tile_index % PLACEHOLDER_TEMPLATES


TemplateMapper = Callable[[MapCell], int]


def map_bin(dc_map: DcMap, template_mapper: TemplateMapper = placeholder_template) -> bytes:
    out = np.zeros(dc_map.width * dc_map.height, dtype=MAP_BIN_DTYPE)
    out['template'] = [template_mapper(cell) for cell in dc_map.cells()]
    return out.tobytes()


def map_yaml(dc_map: DcMap, title: str = "Converted Map", tileset: str = "MARS") -> str:
    w, h = dc_map.width, dc_map.height
    m = BOUNDS_MARGIN
    lines = [
        "MapFormat: 11",
        "RequiresMod: dc",
        "",
        f"Title: {title}",
        "Author: Dark Colony Asset Extractor",
        f"Tileset: {tileset}",
        f"MapSize: {w}, {h}",
        f"Bounds: {m}, {m}, {w - 2 * m}, {h - 2 * m}",
        "Visibility: Lobby",
        "",
        "Players:",
        "\tNeutral:",
        "\t\tName: Neutral",
        "\t\tOwnsWorld: True",
        "\t\tNonCombatant: True",
        "\t\tFaction: humans",
        "",
        "Actors:",
        "",
        "Rules:",
    ]
    return "\n".join(lines) + "\n"


def write_oramap(dc_map: DcMap, out_dir: str, title: str = "Converted Map", tileset: str = "MARS",
                 template_mapper: TemplateMapper = placeholder_template):
    os.makedirs(out_dir, exist_ok=True)
    yaml_path = os.path.join(out_dir, "map.yaml")
    bin_path = os.path.join(out_dir, "map.bin")
    with open(yaml_path, 'w') as f:
        f.write(map_yaml(dc_map, title, tileset))
    with open(bin_path, 'wb') as f:
        f.write(map_bin(dc_map, template_mapper))
    return [yaml_path, bin_path]


def main():
    parser = argparse.ArgumentParser(description='Convert a Dark Colony MAP to an OpenRA map directory')
    parser.add_argument('--input', '-i', required=True, help='Input .MAP file')
    parser.add_argument('--output', '-o', required=True, help='Output map directory')
    parser.add_argument('--title', help='Map title (default: derived from file name)')
    parser.add_argument('--tileset', default='MARS', help='OpenRA tileset name')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    args = parser.parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    base = Path(args.input).stem.lower()
    try:
        dc_map = load_map(args.input)
        if dc_map.width == 0 or dc_map.height == 0:
            logger.warning(f"Skipping {base}: empty map")
            return 2

        title = args.title or f"Dark Colony - {base}"
        write_oramap(dc_map, args.output, title, args.tileset)
    except Exception as e:
        logger.error(f"Conversion failed: {e}")
        return 2
    logger.info(f"{base}: {dc_map.width}x{dc_map.height} -> {args.output}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
