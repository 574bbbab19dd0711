#!/usr/bin/env python3
"""
Dark Colony Sprite Converter

Decodes SPR sprite resources and:
- Renders frames to RGBA through the embedded palette
- Exports a horizontal-strip PNG sprite sheet
- Writes the matching OpenRA sequence descriptor (from the .FIN table if present)
- Optionally upscales the sheet (xbrzscale or Scale2x)

SPR layout:
    byte 0        compression flag (129 = RLE)
    bytes 2-3     frame count (u16)
    bytes 8-775   palette, 256 x 6-bit RGB
    776..         frame headers, 8 bytes each (u16 w, u16 h, i16 dx, i16 dy)
    ...           pixel data, one block per frame
"""

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from dc_palette import PALETTE_END, Palette, read_palette
from dc_stream import ByteStream

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

RLE_FLAG = 129
RLE_LITERAL_LIMIT = 128
FRAME_HEADER_OFFSET = PALETTE_END


@dataclass(frozen=True)
class SprFrame:
    width: int
    height: int
    displacement_x: int
    displacement_y: int
    pixels: bytes  # palette indices, row-major, width * height


@dataclass(frozen=True)
class SprFile:
    is_compressed: bool
    palette: Palette
    frames: Tuple[SprFrame, ...]


def _read_frame_headers(s: ByteStream, count: int):
    headers = []
    try:
        for _ in range(count):
            width = s.read_u16le()
            height = s.read_u16le()
            dx = s.read_s16le()
            dy = s.read_s16le()
            headers.append((width, height, dx, dy))
    except EOFError:
        logger.debug(f"Frame header table truncated after {len(headers)}/{count} headers")
    return headers


def decode_raw(s: ByteStream, total: int) -> bytes:
    """Copy `total` palette indices; a short tail stays 0."""
    chunk = s.read_upto(total)
    if len(chunk) < total:
        logger.debug(f"Raw frame truncated: {len(chunk)}/{total} pixels")
        return chunk + bytes(total - len(chunk))
    return chunk


def decode_rle(s: ByteStream, total: int) -> bytes:
    """
    Decode one RLE frame.

    Control byte c < 128: copy the next c + 1 bytes.
    Control byte c >= 128: emit 256 - c transparent pixels (index 0).
    Stops once `total` pixels are produced or the input runs out.
    """
    out = bytearray(total)
    pos = 0
    data = s.data
    while pos < total and not s.at_end():
        control = data[s.pos]
        s.pos += 1
        if control < RLE_LITERAL_LIMIT:
            run = s.read_upto(min(control + 1, total - pos))
            out[pos:pos + len(run)] = run
            pos += len(run)
        else:
            # buffer is zero-initialised, skipping is enough
            pos += min(256 - control, total - pos)
    return bytes(out)


def read_spr(data: bytes) -> SprFile:
    """Decode an SPR file held in memory. Truncated input yields a partial model."""
    is_compressed = len(data) > 0 and data[0] == RLE_FLAG
    frame_count = 0
    if len(data) >= 4:
        frame_count = ByteStream(data, 2).read_u16le()

    palette = read_palette(data, needs_transparency=True)

    s = ByteStream(data)
    if len(data) < FRAME_HEADER_OFFSET:
        return SprFile(is_compressed, palette, ())
    s.seek(FRAME_HEADER_OFFSET)
    headers = _read_frame_headers(s, frame_count)

    decode = decode_rle if is_compressed else decode_raw
    frames = []
    for width, height, dx, dy in headers:
        pixels = decode(s, width * height)
        frames.append(SprFrame(width, height, dx, dy, pixels))

    return SprFile(is_compressed, palette, tuple(frames))


def load_spr(path: str) -> SprFile:
    with open(path, 'rb') as f:
        return read_spr(f.read())


def frame_to_rgba(palette: Palette, width: int, height: int, pixels: bytes) -> np.ndarray:
    indices = np.frombuffer(pixels, dtype=np.uint8).reshape(height, width)
    return palette.as_array()[indices]


def render_frame(spr: SprFile, frame_idx: int) -> Image.Image:
    """Render a frame to an RGBA image by plain palette lookup."""
    frame = spr.frames[frame_idx]
    rgba = frame_to_rgba(spr.palette, frame.width, frame.height, frame.pixels)
    return Image.fromarray(rgba)


def find_fin_for(spr_path: str) -> Optional[str]:
    base = os.path.splitext(spr_path)[0]
    for ext in ('.fin', '.FIN'):
        candidate = base + ext
        if os.path.exists(candidate):
            return candidate
    return None


def process_file(input_path: str, out_dir: str, fin_path: Optional[str], scale: int = 1,
                 facings: int = 8) -> bool:
    from dc_fin_convert import load_fin
    from dc_sheet import compose_sprite_sheet, sequences_yaml
    from dc_upscale import upscale_image

    try:
        spr = load_spr(input_path)
    except Exception as e:
        logger.error(f"{Path(input_path).name}: cannot read sprite resource: {e}")
        return False

    base = Path(input_path).stem.lower()
    if not spr.frames:
        logger.warning(f"Skipping {base}: no frames")
        return False

    fin = None
    if fin_path:
        try:
            fin = load_fin(fin_path)
        except Exception as e:
            logger.warning(f"Failed to read FIN for {base}: {e}")

    sheet = compose_sprite_sheet(spr)
    if sheet is None:
        logger.warning(f"Skipping {base}: empty frames")
        return False
    if scale > 1:
        sheet = upscale_image(sheet, scale)

    os.makedirs(out_dir, exist_ok=True)
    png_path = os.path.join(out_dir, f"{base}.png")
    sheet.save(png_path)

    yaml_path = os.path.join(out_dir, f"{base}.yaml")
    with open(yaml_path, 'w') as f:
        f.write(sequences_yaml(base, f"{base}.png", spr, fin, facings=facings))

    logger.info(f"{base}: {len(spr.frames)} frames "
                f"({'RLE' if spr.is_compressed else 'raw'}) -> {png_path}")
    return True


def main():
    parser = argparse.ArgumentParser(description='Convert a Dark Colony SPR sprite to a PNG sheet and sequences')
    parser.add_argument('--input', '-i', required=True, help='Input .SPR file')
    parser.add_argument('--output', '-o', required=True, help='Output directory')
    parser.add_argument('--fin', help='Animation table (.FIN); defaults to the one next to the sprite')
    parser.add_argument('--scale', type=int, default=1, help='Integer upscale factor for the sheet')
    parser.add_argument('--facings', type=int, default=8, help='Facings for movement sequences')
    parser.add_argument('--verbose', '-v', action='store_true')

    args = parser.parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1
    if args.scale < 1:
        logger.error(f"Invalid scale factor: {args.scale}")
        return 1

    fin_path = args.fin or find_fin_for(args.input)
    try:
        ok = process_file(args.input, args.output, fin_path, scale=args.scale, facings=args.facings)
    except Exception as e:
        logger.error(f"Conversion failed: {e}")
        return 2
    return 0 if ok else 2


if __name__ == '__main__':
    raise SystemExit(main())
