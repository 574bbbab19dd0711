#!/usr/bin/env python3
"""
Dark Colony HD Upscaler

Integer upscaling for extracted sheets. Uses the xbrzscale CLI when it is
installed and answers in time, otherwise the built-in Scale2x (EPX /
AdvMAME2x) algorithm, finished with a nearest-neighbour resize for factors
that are not a power of two.
"""

import argparse
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

import numpy as np
from PIL import Image

from dc_report import ConversionResult

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

XBRZ_COMMAND = 'xbrzscale'
XBRZ_TIMEOUT = 30  # seconds


class XbrzScaleTool:
    """Optional external upscaler. `scale` returns None whenever the tool cannot be used."""

    def __init__(self, command: str = XBRZ_COMMAND, timeout: float = XBRZ_TIMEOUT, enabled: bool = True):
        self.command = command
        self.timeout = timeout
        self.enabled = enabled

    def available(self) -> bool:
        return self.enabled and shutil.which(self.command) is not None

    def scale(self, image: Image.Image, factor: int) -> Optional[Image.Image]:
        if not self.available():
            return None

        with tempfile.TemporaryDirectory() as tmp:
            src = os.path.join(tmp, 'in.png')
            dst = os.path.join(tmp, 'out.png')
            image.save(src)
            try:
                result = subprocess.run(
                    [self.command, str(factor), src, dst],
                    capture_output=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired:
                logger.debug(f"{self.command} timed out after {self.timeout}s")
                return None
            except OSError as e:
                logger.debug(f"{self.command} could not be started: {e}")
                return None

            if result.returncode != 0 or not os.path.exists(dst):
                logger.debug(f"{self.command} exited with {result.returncode}")
                return None
            try:
                with Image.open(dst) as out:
                    return out.convert('RGBA')
            except OSError as e:
                logger.debug(f"{self.command} produced unreadable output: {e}")
                return None


def _same(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.all(a == b, axis=-1)


def scale2x(image: Image.Image) -> Image.Image:
    """
    Scale2x. For each pixel P with neighbours A (up), B (right), C (left) and
    D (down), edges repeating P:

        1 = A if C == A and C != D and A != B else P
        2 = B if A == B and A != C and B != D else P
        3 = C if D == C and D != B and C != A else P
        4 = D if B == D and B != A and D != C else P
    """
    p = np.asarray(image.convert('RGBA'))
    h, w = p.shape[:2]

    a = np.concatenate([p[:1], p[:-1]], axis=0)
    d = np.concatenate([p[1:], p[-1:]], axis=0)
    c = np.concatenate([p[:, :1], p[:, :-1]], axis=1)
    b = np.concatenate([p[:, 1:], p[:, -1:]], axis=1)

    ca, cd, ab, bd = _same(c, a), _same(c, d), _same(a, b), _same(b, d)

    out = np.empty((h * 2, w * 2, 4), dtype=np.uint8)
    out[0::2, 0::2] = np.where((ca & ~cd & ~ab)[..., None], a, p)
    out[0::2, 1::2] = np.where((ab & ~ca & ~bd)[..., None], b, p)
    out[1::2, 0::2] = np.where((cd & ~bd & ~ca)[..., None], c, p)
    out[1::2, 1::2] = np.where((bd & ~ab & ~cd)[..., None], d, p)
    return Image.fromarray(out)


def upscale_fallback(image: Image.Image, factor: int) -> Image.Image:
    if factor < 1:
        raise ValueError(f"Scale factor must be >= 1, got {factor}")

    current = image.convert('RGBA')
    reached = 1
    while reached * 2 <= factor:
        current = scale2x(current)
        reached *= 2

    if reached != factor:
        target = (image.width * factor, image.height * factor)
        current = current.resize(target, Image.NEAREST)
    return current


def upscale_image(image: Image.Image, factor: int, tool: Optional[XbrzScaleTool] = None) -> Image.Image:
    if factor < 1:
        raise ValueError(f"Scale factor must be >= 1, got {factor}")
    if factor == 1:
        return image.copy()

    tool = tool if tool is not None else XbrzScaleTool()
    scaled = tool.scale(image, factor)
    if scaled is not None:
        return scaled
    return upscale_fallback(image, factor)


def upscale_file(input_path: str, output_path: str, factor: int = 2,
                 tool: Optional[XbrzScaleTool] = None):
    dirname = os.path.dirname(output_path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    with Image.open(input_path) as img:
        upscale_image(img, factor, tool).save(output_path)


def upscale_directory(input_dir: str, output_dir: str, factor: int = 2,
                      tool: Optional[XbrzScaleTool] = None) -> List[ConversionResult]:
    """Upscale every PNG in `input_dir`; one result per file."""
    results = []
    if not os.path.isdir(input_dir):
        logger.error(f"Input directory not found: {input_dir}")
        return results

    os.makedirs(output_dir, exist_ok=True)
    png_files = sorted(p for p in os.listdir(input_dir) if p.lower().endswith('.png'))
    for i, name in enumerate(png_files, 1):
        src = os.path.join(input_dir, name)
        dst = os.path.join(output_dir, name)
        try:
            upscale_file(src, dst, factor, tool)
        except Exception as e:
            results.append(ConversionResult.failed(src, 'upscale', str(e)))
            continue
        logger.info(f"Upscaling: {i}/{len(png_files)} ({name})")
        results.append(ConversionResult.converted(src, 'upscale', [dst]))
    return results


def main():
    parser = argparse.ArgumentParser(description='Upscale extracted PNG sheets (xbrzscale or Scale2x)')
    parser.add_argument('--input', '-i', required=True, help='Input PNG file or directory')
    parser.add_argument('--output', '-o', required=True, help='Output PNG file or directory')
    parser.add_argument('--scale', type=int, default=2, help='Integer scale factor')
    parser.add_argument('--no-xbrz', action='store_true', help='Always use the built-in Scale2x')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    args = parser.parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not os.path.exists(args.input):
        logger.error(f"Input not found: {args.input}")
        return 1
    if args.scale < 1:
        logger.error(f"Invalid scale factor: {args.scale}")
        return 1

    tool = XbrzScaleTool(enabled=not args.no_xbrz)
    if os.path.isdir(args.input):
        results = upscale_directory(args.input, args.output, args.scale, tool)
        failed = [r for r in results if not r.ok]
        for r in failed:
            logger.error(f"Failed to upscale {Path(r.source).name}: {r.reason}")
        logger.info(f"Upscaling complete: {len(results) - len(failed)}/{len(results)} files processed")
        return 0 if not failed else 2

    try:
        upscale_file(args.input, args.output, args.scale, tool)
    except Exception as e:
        logger.error(f"Upscaling failed: {e}")
        return 2
    logger.info(f"Saved {args.output}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
