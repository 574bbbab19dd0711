#!/usr/bin/env python3
"""
Dark Colony Animation Table Reader

FIN files describe how a unit's SPR frames group into animations.

Layout:
    u32                  animation count
    count x 20 bytes     name[16] (NUL padded), u16 start frame, u16 end frame
    u32                  frame detail count
    count x 22 bytes     spr filename[8], u16 frame number, u8 primary layer,
                         u8 mirrored, 8 reserved bytes

Each animation owns the detail records [start, end] (inclusive) of the flat
detail table.
"""

import argparse
import json
import logging
import os
from dataclasses import dataclass
from typing import Tuple

from dc_stream import ByteStream

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

ANIM_HEADER_SIZE = 20
ANIM_NAME_SIZE = 16
FRAME_DETAIL_SIZE = 22
SPR_NAME_SIZE = 8
RESERVED_SIZE = 8

# Dark Colony animation names -> OpenRA sequence names
ANIMATION_SYNONYMS = {
    'stand': 'idle', 'idle': 'idle', 'still': 'idle',
    'walk': 'walk', 'run': 'walk', 'move': 'walk',
    'attack': 'attack', 'fire': 'attack', 'shoot': 'attack',
    'die': 'die', 'death': 'die', 'dead': 'die',
    'harvest': 'harvest', 'gather': 'harvest', 'mine': 'harvest',
}


def canonical_animation_name(name: str) -> str:
    normalized = name.strip().lower()
    return ANIMATION_SYNONYMS.get(normalized, normalized)


@dataclass(frozen=True)
class FinFrameDetail:
    spr_filename: str
    frame_number: int
    is_primary_layer: bool
    is_mirrored: bool
    reserved: bytes = b''  # 8 bytes, meaning unknown


@dataclass(frozen=True)
class FinAnimation:
    name: str
    start_frame: int
    end_frame: int
    frame_details: Tuple[FinFrameDetail, ...] = ()

    @property
    def frame_count(self) -> int:
        return self.end_frame - self.start_frame + 1

    @property
    def canonical_name(self) -> str:
        return canonical_animation_name(self.name)


@dataclass(frozen=True)
class FinFile:
    animations: Tuple[FinAnimation, ...] = ()
    frame_details: Tuple[FinFrameDetail, ...] = ()


def _read_records(s: ByteStream, record_size: int, read_one):
    """Read a u32 count followed by that many fixed-size records, stopping at the last whole one."""
    try:
        count = s.read_u32le()
    except EOFError:
        return []
    records = []
    for _ in range(count):
        if s.remaining() < record_size:
            logger.debug(f"Record table truncated after {len(records)}/{count} records")
            break
        records.append(read_one(s))
    return records


def _read_anim_header(s: ByteStream):
    name = s.read_cstring(ANIM_NAME_SIZE)
    start = s.read_u16le()
    end = s.read_u16le()
    return name, start, end


def _read_frame_detail(s: ByteStream) -> FinFrameDetail:
    spr_name = s.read_cstring(SPR_NAME_SIZE)
    frame_number = s.read_u16le()
    is_primary = s.read_u8() != 0
    is_mirrored = s.read_u8() != 0
    reserved = s.read(RESERVED_SIZE)
    return FinFrameDetail(spr_name, frame_number, is_primary, is_mirrored, reserved)


def read_fin(data: bytes) -> FinFile:
    s = ByteStream(data)
    headers = _read_records(s, ANIM_HEADER_SIZE, _read_anim_header)
    details = tuple(_read_records(s, FRAME_DETAIL_SIZE, _read_frame_detail))

    animations = []
    for name, start, end in headers:
        # slice end is clamped by Python, start past the table gives ()
        animations.append(FinAnimation(name, start, end, details[start:end + 1]))

    return FinFile(tuple(animations), details)


def load_fin(path: str) -> FinFile:
    with open(path, 'rb') as f:
        return read_fin(f.read())


def fin_to_dict(fin: FinFile) -> dict:
    return {
        'animations': [
            {
                'name': anim.name,
                'sequence': anim.canonical_name,
                'start': anim.start_frame,
                'end': anim.end_frame,
                'frames': [
                    {
                        'spr': d.spr_filename,
                        'frame': d.frame_number,
                        'primary': d.is_primary_layer,
                        'mirrored': d.is_mirrored,
                        'reserved': d.reserved.hex(),
                    }
                    for d in anim.frame_details
                ],
            }
            for anim in fin.animations
        ],
        'frame_details': len(fin.frame_details),
    }


def main():
    parser = argparse.ArgumentParser(description='Dump a Dark Colony FIN animation table as JSON')
    parser.add_argument('--input', '-i', required=True, help='Input .FIN file')
    parser.add_argument('--output', '-o', help='Output JSON file (default: stdout)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    args = parser.parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        fin = load_fin(args.input)
        text = json.dumps(fin_to_dict(fin), indent=2)
        if args.output:
            with open(args.output, 'w') as f:
                f.write(text)
            logger.info(f"Saved {len(fin.animations)} animations to {args.output}")
        else:
            print(text)
    except Exception as e:
        logger.error(f"Conversion failed: {e}")
        return 2
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
