#!/usr/bin/env python3
"""
Dark Colony Sheet Writer

Composes decoded SPR frames and BTS tiles into horizontal-strip RGBA sheets
and generates the OpenRA MiniYaml sequence descriptors that point at them.
"""

import io
import logging
from typing import Optional

from PIL import Image

from dc_bts_convert import TILE_SIZE, BtsFile, render_tile
from dc_fin_convert import FinFile
from dc_spr_convert import SprFile, render_frame

logger = logging.getLogger(__name__)

# Sequences that get per-facing frame groups in the engine
FACING_SEQUENCES = ('idle', 'walk', 'move', 'attack', 'harvest')
DEFAULT_FACINGS = 8


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def frame_offset(cell_w: int, cell_h: int, width: int, height: int, dx: int, dy: int):
    """Centre a frame in its cell, shift by its displacement, keep it inside the cell."""
    ox = _clamp((cell_w - width) // 2 + dx, 0, cell_w - width)
    oy = _clamp((cell_h - height) // 2 + dy, 0, cell_h - height)
    return ox, oy


def compose_sprite_sheet(spr: SprFile) -> Optional[Image.Image]:
    """
    Lay all frames of a sprite out left to right in equal-width cells.

    Returns None when there is nothing to draw.
    """
    if not spr.frames:
        return None

    cell_w = max(f.width for f in spr.frames)
    cell_h = max(f.height for f in spr.frames)
    if cell_w == 0 or cell_h == 0:
        return None

    sheet = Image.new('RGBA', (cell_w * len(spr.frames), cell_h), (0, 0, 0, 0))
    for i, frame in enumerate(spr.frames):
        if frame.width == 0 or frame.height == 0:
            continue
        ox, oy = frame_offset(cell_w, cell_h, frame.width, frame.height,
                              frame.displacement_x, frame.displacement_y)
        sheet.alpha_composite(render_frame(spr, i), dest=(i * cell_w + ox, oy))

    logger.debug(f"Sprite sheet {sheet.width}x{sheet.height} ({len(spr.frames)} frames of {cell_w}x{cell_h})")
    return sheet


def compose_tile_sheet(bts: BtsFile) -> Optional[Image.Image]:
    if not bts.tiles:
        return None

    sheet = Image.new('RGBA', (TILE_SIZE * len(bts.tiles), TILE_SIZE), (0, 0, 0, 0))
    for i in range(len(bts.tiles)):
        sheet.paste(render_tile(bts, i), (i * TILE_SIZE, 0))
    return sheet


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format='PNG')
    return buf.getvalue()


def sequences_yaml(actor: str, png_filename: str, spr: SprFile, fin: Optional[FinFile] = None,
                   facings: int = DEFAULT_FACINGS) -> str:
    """OpenRA sequences for one unit; a single idle sequence when no FIN table is known."""
    lines = [f"{actor}:"]

    if fin is not None and fin.animations:
        for anim in fin.animations:
            seq = anim.canonical_name
            lines.append(f"\t{seq}:")
            lines.append(f"\t\tFilename: {png_filename}")
            lines.append(f"\t\tStart: {anim.start_frame}")
            lines.append(f"\t\tLength: {anim.frame_count}")
            if seq in FACING_SEQUENCES:
                lines.append(f"\t\tFacings: {facings}")
    else:
        lines.append("\tidle:")
        lines.append(f"\t\tFilename: {png_filename}")
        lines.append("\t\tStart: 0")
        lines.append(f"\t\tLength: {len(spr.frames)}")

    return "\n".join(lines) + "\n"


def terrain_sequences_yaml(tileset: str, png_filename: str, tile_count: int) -> str:
    lines = [
        f"{tileset}:",
        "\tidle:",
        f"\t\tFilename: {png_filename}",
        "\t\tStart: 0",
        f"\t\tLength: {tile_count}",
    ]
    return "\n".join(lines) + "\n"
