#!/usr/bin/env python3
"""
CLI entrypoint for converting the diffuse textures of a GLB.

Workflow:
1) Load settings from config/transcode.yml (or --config) and apply CLI overrides.
2) Read the input GLB and run the conversion pipeline.
3) Write <stem>_linear.glb (or --output).

Usage:
    glb-linearize model.glb
    glb-linearize model.glb --gamma linearize --level balanced -o out.glb
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from glb_linearizer.errors import GlbError
from glb_linearizer.pipeline import convert_glb
from glb_linearizer.textures.gamma import GammaDirection
from glb_linearizer.utils.config_utils import CONFIG_PATH, OptimizationLevel, load_settings


def setup_logging(logfile: Path | None = None, verbose: bool = True) -> logging.Logger:
    """
    Configure logging to console and optional file.

    Args:
        logfile: Optional path to save logs.
        verbose: Whether to emit info-level logs (True) or only warnings (False).

    Returns:
        Configured logger instance.
    """
    level = logging.INFO if verbose else logging.WARNING
    fmt = "[%(asctime)s] [%(levelname)s] %(message)s"

    handlers = [logging.StreamHandler()]
    if logfile:
        handlers.append(logging.FileHandler(logfile))

    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)
    logger = logging.getLogger(__name__)
    return logger


def default_output_path(input_path: Path) -> Path:
    return input_path.with_name(f"{input_path.stem}_linear.glb")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Gamma-correct diffuse textures in a GLB and repack them as PNG."
    )
    parser.add_argument("input", type=Path, help="Input .glb file")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Output .glb path (default: <input>_linear.glb)")
    parser.add_argument("--config", type=Path, default=CONFIG_PATH,
                        help="YAML settings file (default: config/transcode.yml)")
    parser.add_argument("--gamma", choices=[d.value for d in GammaDirection], default=None,
                        help="linearize (x^2.2) or delinearize (x^(1/2.2))")

    size = parser.add_mutually_exclusive_group()
    size.add_argument("--quality", type=int, default=None,
                      help="PNG quality 0-100; 100 is lossless")
    size.add_argument("--level", choices=[lvl.value for lvl in OptimizationLevel], default=None,
                      help="Optimization level: none, balanced or aggressive")

    parser.add_argument("--max-dimension", type=int, default=None,
                        help="Downscale textures whose longest side exceeds this")
    parser.add_argument("--workers", type=int, default=None,
                        help="Number of transcoding threads")
    parser.add_argument("--no-progress", action="store_true",
                        help="Disable the progress bar")
    parser.add_argument("--log", type=Path, default=None,
                        help="Optional log file to save logs")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress console logging (only warnings)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logger = setup_logging(args.log, verbose=not args.quiet)

    input_path: Path = args.input
    if input_path.suffix.lower() != ".glb":
        raise GlbError(f"Invalid file type, expected a .glb file: {input_path}")
    if not input_path.is_file():
        raise GlbError(f"Input file not found: {input_path}")
    output_path: Path = args.output or default_output_path(input_path)

    settings = load_settings(args.config).with_overrides(
        gamma=args.gamma,
        quality=args.quality,
        level=args.level,
        max_dimension=args.max_dimension,
        max_workers=args.workers,
        progress=False if args.no_progress else None,
    )
    if args.level is not None and args.quality is None:
        # an explicit level wins over a quality from the config file
        settings = replace(settings, quality=None)

    logger.info("---------------------------------------------------")
    logger.info("          GLB Diffuse Texture Conversion           ")
    logger.info("---------------------------------------------------")
    logger.info(f"Input GLB:   {input_path}")
    logger.info(f"Output GLB:  {output_path}")

    result = convert_glb(input_path.read_bytes(), settings)
    output_path.write_bytes(result.output)

    logger.info(f"Saved converted model to {output_path}")
    return 0


def run() -> None:
    try:
        raise SystemExit(main())
    except GlbError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2)


if __name__ == "__main__":
    run()
