#!/usr/bin/env python3
"""
Dark Colony Terrain Converter

Decodes BTS terrain tilesets (palette + fixed 32x32 tile blocks) into a
horizontal-strip PNG tile sheet and an OpenRA terrain sequence descriptor.
"""

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from PIL import Image

from dc_palette import PALETTE_END, Palette, read_palette
from dc_spr_convert import frame_to_rgba
from dc_stream import ByteStream

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

TILE_SIZE = 32
TILE_PIXELS = TILE_SIZE * TILE_SIZE      # 1024
TILE_BLOCK_SIZE = 4 + TILE_PIXELS        # 1028
TILE_DATA_OFFSET = PALETTE_END           # 776


@dataclass(frozen=True)
class BtsTile:
    index: int
    pixels: bytes  # 32x32 palette indices, row-major


@dataclass(frozen=True)
class BtsFile:
    palette: Palette
    tiles: Tuple[BtsTile, ...]


def tile_count_for(length: int) -> int:
    """Number of whole tile blocks in a file of `length` bytes."""
    return max(0, (length - TILE_DATA_OFFSET) // TILE_BLOCK_SIZE)


def read_bts(data: bytes) -> BtsFile:
    palette = read_palette(data, needs_transparency=False)

    count = tile_count_for(len(data))
    tiles = []
    if count:
        s = ByteStream(data, TILE_DATA_OFFSET)
        for _ in range(count):
            index = s.read_u32le()
            tiles.append(BtsTile(index, s.read(TILE_PIXELS)))

    return BtsFile(palette, tuple(tiles))


def load_bts(path: str) -> BtsFile:
    with open(path, 'rb') as f:
        return read_bts(f.read())


def render_tile(bts: BtsFile, tile_idx: int) -> Image.Image:
    tile = bts.tiles[tile_idx]
    rgba = frame_to_rgba(bts.palette, TILE_SIZE, TILE_SIZE, tile.pixels)
    return Image.fromarray(rgba)


def process_file(input_path: str, out_dir: str, scale: int = 1) -> bool:
    from dc_sheet import compose_tile_sheet, terrain_sequences_yaml
    from dc_upscale import upscale_image

    try:
        bts = load_bts(input_path)
    except Exception as e:
        logger.error(f"{Path(input_path).name}: cannot read tileset: {e}")
        return False

    base = Path(input_path).stem.lower()
    sheet = compose_tile_sheet(bts)
    if sheet is None:
        logger.warning(f"Skipping {base}: no tiles")
        return False
    if scale > 1:
        sheet = upscale_image(sheet, scale)

    os.makedirs(out_dir, exist_ok=True)
    png_name = f"terrain_{base}.png"
    sheet.save(os.path.join(out_dir, png_name))
    with open(os.path.join(out_dir, f"terrain_{base}.yaml"), 'w') as f:
        f.write(terrain_sequences_yaml(f"terrain_{base}", png_name, len(bts.tiles)))

    logger.info(f"{base}: {len(bts.tiles)} tiles -> {png_name}")
    return True


def main():
    parser = argparse.ArgumentParser(description='Convert a Dark Colony BTS tileset to a PNG tile sheet')
    parser.add_argument('--input', '-i', required=True, help='Input .BTS file')
    parser.add_argument('--output', '-o', required=True, help='Output directory')
    parser.add_argument('--scale', type=int, default=1, help='Integer upscale factor for the sheet')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    args = parser.parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1
    if args.scale < 1:
        logger.error(f"Invalid scale factor: {args.scale}")
        return 1

    try:
        ok = process_file(args.input, args.output, args.scale)
    except Exception as e:
        logger.error(f"Conversion failed: {e}")
        return 2
    return 0 if ok else 2


if __name__ == '__main__':
    raise SystemExit(main())
