#!/usr/bin/env python3
"""
Dark Colony Batch Asset Converter

Automates the complete extraction into an OpenRA mod directory:
1. Convert SPR sprites (+ FIN animation tables) to sheets and sequences
2. Convert BTS tilesets to tile sheets
3. Convert MAP files to OpenRA map directories
4. Upscale the sheets into assets-hd (optional)
5. Write a conversion summary

Each input file is handled independently; a broken file is reported and the
batch moves on.
"""

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dc_bts_convert import load_bts
from dc_fin_convert import FinFile, load_fin
from dc_map_convert import load_map, write_oramap
from dc_report import BatchReport, ConversionResult
from dc_sheet import compose_sprite_sheet, compose_tile_sheet, encode_png, sequences_yaml, terrain_sequences_yaml
from dc_spr_convert import find_fin_for, load_spr
from dc_upscale import XbrzScaleTool, upscale_directory

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

STEPS = ('sprites', 'terrain', 'maps', 'upscale', 'summary')


@dataclass
class ConvertOptions:
    """What to extract and how."""
    scale: int = 1
    sprites: bool = True
    terrain: bool = True
    maps: bool = True
    facings: int = 8
    tileset: str = 'MARS'
    use_xbrz: bool = True


def parse_scale(value: str) -> int:
    """Accept '2', '2x' or '2X'."""
    try:
        factor = int(value.rstrip('xX'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid scale: {value!r}")
    if factor < 1:
        raise argparse.ArgumentTypeError(f"scale must be >= 1: {value!r}")
    return factor


def find_files(directory: str, extension: str) -> List[str]:
    """Files under `directory` with `extension` in any case, sorted."""
    ext = extension.lower()
    found = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for file in sorted(files):
            if Path(file).suffix.lower() == ext:
                found.append(os.path.join(root, file))
    return found


class BatchConverter:
    """Batch asset converter for Dark Colony"""

    def __init__(self, input_dir: str, output_dir: str, options: Optional[ConvertOptions] = None):
        self.input_dir = input_dir
        self.output_dir = output_dir
        self.options = options or ConvertOptions()
        self.sequences_dir = os.path.join(output_dir, "sequences")
        self.assets_dir = os.path.join(self.sequences_dir, "assets")
        self.assets_hd_dir = os.path.join(self.sequences_dir, "assets-hd")
        self.maps_dir = os.path.join(output_dir, "maps")
        self.report = BatchReport(input_dir, output_dir)

    def _append(self, path: str, text: str):
        with open(path, 'a') as f:
            f.write(text + "\n")

    def _write_sheet(self, png_path: str, png: bytes, seq_path: str, yaml: str):
        """Write a sheet and append its sequences; a sheet without sequences is removed."""
        with open(png_path, 'wb') as f:
            f.write(png)
        try:
            self._append(seq_path, yaml)
        except Exception:
            os.remove(png_path)
            raise

    def convert_sprite(self, spr_path: str) -> ConversionResult:
        base = Path(spr_path).stem.lower()
        try:
            spr = load_spr(spr_path)
            if not spr.frames:
                return ConversionResult.skipped(spr_path, 'sprite', 'no frames')

            fin: Optional[FinFile] = None
            fin_path = find_fin_for(spr_path)
            if fin_path:
                try:
                    fin = load_fin(fin_path)
                except Exception as e:
                    logger.warning(f"Failed to read FIN for {base}: {e}")

            sheet = compose_sprite_sheet(spr)
            if sheet is None:
                return ConversionResult.skipped(spr_path, 'sprite', 'empty frames')

            png = encode_png(sheet)
            yaml = sequences_yaml(base, f"assets/{base}.png", spr, fin, facings=self.options.facings)
            png_path = os.path.join(self.assets_dir, f"{base}.png")
            seq_path = os.path.join(self.sequences_dir, "extracted.yaml")
            self._write_sheet(png_path, png, seq_path, yaml)
        except Exception as e:
            return ConversionResult.failed(spr_path, 'sprite', str(e))

        logger.info(f"Extracted sprite {base} ({len(spr.frames)} frames)")
        return ConversionResult.converted(spr_path, 'sprite', [png_path, seq_path])

    def convert_tileset(self, bts_path: str) -> ConversionResult:
        base = Path(bts_path).stem.lower()
        try:
            bts = load_bts(bts_path)
            sheet = compose_tile_sheet(bts)
            if sheet is None:
                return ConversionResult.skipped(bts_path, 'terrain', 'no tiles')

            png_name = f"terrain_{base}.png"
            png = encode_png(sheet)
            yaml = terrain_sequences_yaml(f"terrain_{base}", f"assets/{png_name}", len(bts.tiles))
            png_path = os.path.join(self.assets_dir, png_name)
            seq_path = os.path.join(self.sequences_dir, "terrain.yaml")
            self._write_sheet(png_path, png, seq_path, yaml)
        except Exception as e:
            return ConversionResult.failed(bts_path, 'terrain', str(e))

        logger.info(f"Extracted terrain {base} ({len(bts.tiles)} tiles)")
        return ConversionResult.converted(bts_path, 'terrain', [png_path, seq_path])

    def convert_map(self, map_path: str) -> ConversionResult:
        base = Path(map_path).stem.lower()
        try:
            dc_map = load_map(map_path)
            if dc_map.width == 0 or dc_map.height == 0:
                return ConversionResult.skipped(map_path, 'map', 'empty map')

            out_dir = os.path.join(self.maps_dir, f"dc-{base}")
            artifacts = write_oramap(dc_map, out_dir, f"Dark Colony - {base}", self.options.tileset)
        except Exception as e:
            return ConversionResult.failed(map_path, 'map', str(e))

        logger.info(f"Converted map {base} ({dc_map.width}x{dc_map.height})")
        return ConversionResult.converted(map_path, 'map', artifacts)

    def convert_sprites(self) -> bool:
        files = find_files(self.input_dir, '.spr')
        logger.info(f"Found {len(files)} SPR files")
        os.makedirs(self.assets_dir, exist_ok=True)
        for path in files:
            self.report.add(self.convert_sprite(path))
        return True

    def convert_terrain(self) -> bool:
        files = find_files(self.input_dir, '.bts')
        logger.info(f"Found {len(files)} BTS files")
        os.makedirs(self.assets_dir, exist_ok=True)
        for path in files:
            self.report.add(self.convert_tileset(path))
        return True

    def convert_maps(self) -> bool:
        files = find_files(self.input_dir, '.map')
        logger.info(f"Found {len(files)} MAP files")
        os.makedirs(self.maps_dir, exist_ok=True)
        for path in files:
            self.report.add(self.convert_map(path))
        return True

    def upscale_assets(self) -> bool:
        if self.options.scale <= 1:
            logger.info("Scale 1x, no upscaling")
            return True
        logger.info(f"Upscaling sheets to {self.options.scale}x")
        tool = XbrzScaleTool(enabled=self.options.use_xbrz)
        self.report.extend(upscale_directory(self.assets_dir, self.assets_hd_dir, self.options.scale, tool))
        return True

    def create_summary(self) -> bool:
        return self.report.save(os.path.join(self.output_dir, "conversion_summary.json"))

    def run_conversion(self, skip_steps: List[str] = None) -> BatchReport:
        """Run every enabled step and return the collected report."""
        if skip_steps is None:
            skip_steps = []

        logger.info("Starting Dark Colony asset conversion...")
        logger.info(f"Input directory: {self.input_dir}")
        logger.info(f"Output directory: {self.output_dir}")

        os.makedirs(self.output_dir, exist_ok=True)

        steps = [
            ("sprites", self.options.sprites, self.convert_sprites),
            ("terrain", self.options.terrain, self.convert_terrain),
            ("maps", self.options.maps, self.convert_maps),
            ("upscale", self.options.sprites or self.options.terrain, self.upscale_assets),
            ("summary", True, self.create_summary),
        ]

        for step_name, enabled, step_func in steps:
            if not enabled or step_name in skip_steps:
                logger.info(f"Skipping step: {step_name}")
                continue
            if not step_func():
                logger.error(f"Step '{step_name}' failed")
                break

        logger.info(f"Conversion finished: {len(self.report.results) - len(self.report.failures)}"
                    f"/{len(self.report.results)} files ok")
        return self.report


def main():
    parser = argparse.ArgumentParser(description='Batch convert Dark Colony assets to an OpenRA mod')
    parser.add_argument('--game-path', '--input', '-i', dest='input', required=True,
                        help='Dark Colony game directory')
    parser.add_argument('--output', '-o', required=True, help='Output mod directory (e.g. mods/dc)')
    parser.add_argument('--scale', type=parse_scale, default=1, help='Upscale factor: 1x, 2x, 4x, ...')
    only = parser.add_mutually_exclusive_group()
    only.add_argument('--sprites-only', action='store_true', help='Only extract sprite files')
    only.add_argument('--terrain-only', action='store_true', help='Only extract terrain tiles')
    only.add_argument('--maps-only', action='store_true', help='Only convert map files')
    parser.add_argument('--facings', type=int, default=8, help='Facings for movement sequences')
    parser.add_argument('--tileset', default='MARS', help='Tileset written into converted maps')
    parser.add_argument('--no-xbrz', action='store_true', help='Never call xbrzscale, always use Scale2x')
    parser.add_argument('--skip', nargs='*', choices=STEPS, help='Steps to skip')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not os.path.isdir(args.input):
        logger.error(f"Game path not found: {args.input}")
        return 1

    options = ConvertOptions(
        scale=args.scale,
        sprites=not (args.terrain_only or args.maps_only),
        terrain=not (args.sprites_only or args.maps_only),
        maps=not (args.sprites_only or args.terrain_only),
        facings=args.facings,
        tileset=args.tileset,
        use_xbrz=not args.no_xbrz,
    )

    converter = BatchConverter(args.input, args.output, options)
    report = converter.run_conversion(args.skip)

    if report.ok:
        logger.info("Conversion completed successfully!")
        return 0
    logger.error(f"Conversion finished with {len(report.failures)} failed files")
    return 2


if __name__ == '__main__':
    raise SystemExit(main())
