#!/usr/bin/env python3
"""
Dark Colony Palette Codec

SPR and BTS files embed the same 256-entry VGA palette at bytes 8-775.
Components are 6-bit and are widened to 8-bit with v * 4 + 3.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from dc_stream import ByteStream

logger = logging.getLogger(__name__)

PALETTE_OFFSET = 8
PALETTE_ENTRIES = 256
PALETTE_SIZE = PALETTE_ENTRIES * 3
PALETTE_END = PALETTE_OFFSET + PALETTE_SIZE  # 776

RGBA = Tuple[int, int, int, int]


def expand_6bit(value: int) -> int:
    """Scale a 6-bit VGA DAC value to 8-bit."""
    return min(255, value * 4 + 3)


@dataclass(frozen=True)
class Palette:
    """256 RGBA colors."""
    colors: Tuple[RGBA, ...]

    def __len__(self) -> int:
        return len(self.colors)

    def __getitem__(self, index: int) -> RGBA:
        return self.colors[index]

    def as_array(self) -> np.ndarray:
        """(256, 4) uint8 lookup table for indexed -> RGBA conversion."""
        lut = np.zeros((PALETTE_ENTRIES, 4), dtype=np.uint8)
        if self.colors:
            lut[:len(self.colors)] = np.array(self.colors, dtype=np.uint8)
        return lut


def read_palette(data: bytes, offset: int = PALETTE_OFFSET, needs_transparency: bool = False,
                 count: int = PALETTE_ENTRIES) -> Palette:
    """
    Decode a 6-bit RGB palette.

    Args:
        data: Whole file contents
        offset: Byte offset of the first entry
        needs_transparency: Index 0 gets alpha 0 (sprite palettes)
        count: Number of entries

    Returns:
        Palette with `count` entries. Entries that do not fit in `data`
        stay (0, 0, 0, 0).
    """
    colors = [(0, 0, 0, 0)] * count
    s = ByteStream(data)
    try:
        s.seek(offset)
        for i in range(count):
            r, g, b = s.read(3)
            alpha = 0 if (needs_transparency and i == 0) else 255
            colors[i] = (expand_6bit(r), expand_6bit(g), expand_6bit(b), alpha)
    except EOFError:
        logger.debug(f"Palette truncated at offset {s.tell()} ({len(data)} bytes)")
    return Palette(tuple(colors))
