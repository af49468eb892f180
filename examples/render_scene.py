#!/usr/bin/env python3
"""Render a scene to a PNG file.

Renders either the built-in showcase scene or a scene described in a JSON
file (see src.whitted.scene.builder for the format).

Usage:
    python -m examples.render_scene [options]

Options:
    --scene FILE        JSON scene description (default: built-in showcase)
    --texture-dir DIR   Directory texture paths are relative to
                        (default: the scene file's directory)
    --width WIDTH       Image width in pixels (default: 512)
    --height HEIGHT     Image height in pixels (default: 512)
    --output OUTPUT     Output file path (default: render.png)
    --shadows           Cast shadow rays
    --reflections       Trace mirror reflections
    --textures          Apply texture maps
    --parallel          Render with the parallel kernels
    --threads N         CPU worker threads for --parallel (default: all cores)
    --samples N         Jittered samples per pixel (default: 1)
    --max-depth N       Reflection recursion limit (default: 4)
    --seed N            Jitter seed (default: 0)
    --band-rows N       Rows per progress update (default: 16)
    --cpu               Force the CPU backend
    --quiet             Suppress progress output
    --verbose           Enable debug logging

Example:
    python -m examples.render_scene --shadows --reflections --textures --parallel --samples 4
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scene with the Whitted ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scene", type=str, default=None, help="JSON scene description (default: showcase)")
    parser.add_argument("--texture-dir", type=str, default=None, help="Directory for relative texture paths")
    parser.add_argument("--width", type=int, default=512, help="Image width in pixels (default: 512)")
    parser.add_argument("--height", type=int, default=512, help="Image height in pixels (default: 512)")
    parser.add_argument("--output", type=str, default="render.png", help="Output file path (default: render.png)")
    parser.add_argument("--shadows", action="store_true", help="Cast shadow rays")
    parser.add_argument("--reflections", action="store_true", help="Trace mirror reflections")
    parser.add_argument("--textures", action="store_true", help="Apply texture maps")
    parser.add_argument("--parallel", action="store_true", help="Render with the parallel kernels")
    parser.add_argument("--threads", type=int, default=None, help="CPU worker threads (default: all cores)")
    parser.add_argument("--samples", type=int, default=1, help="Jittered samples per pixel (default: 1)")
    parser.add_argument("--max-depth", type=int, default=4, help="Reflection recursion limit (default: 4)")
    parser.add_argument("--seed", type=int, default=0, help="Jitter seed (default: 0)")
    parser.add_argument("--band-rows", type=int, default=16, help="Rows per progress update (default: 16)")
    parser.add_argument("--cpu", action="store_true", help="Force the CPU backend")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def init_taichi(force_cpu: bool, threads: int | None, quiet: bool) -> None:
    """Initialize Taichi, preferring the GPU unless told otherwise."""
    cpu_kwargs = {"cpu_max_num_threads": threads} if threads is not None else {}
    if not force_cpu:
        try:
            ti.init(arch=ti.gpu, **cpu_kwargs)
            if not quiet:
                print("Using GPU backend")
            return
        except Exception:
            pass
    ti.init(arch=ti.cpu, **cpu_kwargs)
    if not quiet:
        print("Using CPU backend")


def render_scene_file(args: argparse.Namespace) -> Path:
    """Build the scene, render it and save the image.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.whitted.core.config import RenderConfig
    from src.whitted.core.renderer import RayTracer
    from src.whitted.scene.builder import scene_from_dict
    from src.whitted.scene.showcase import create_showcase_scene

    if args.scene is None:
        scene = create_showcase_scene()
    else:
        scene_path = Path(args.scene)
        texture_dir = args.texture_dir if args.texture_dir is not None else scene_path.parent
        with scene_path.open() as f:
            scene = scene_from_dict(json.load(f), texture_dir=texture_dir)

    config = RenderConfig(
        width=args.width,
        height=args.height,
        enable_shadows=args.shadows,
        enable_reflections=args.reflections,
        enable_texture=args.textures,
        enable_parallelism=args.parallel,
        samples=args.samples,
        max_recursion_depth=args.max_depth,
        seed=args.seed,
        band_rows=args.band_rows,
    )
    tracer = RayTracer(scene, config)

    if not args.quiet:
        print(f"Rendering {len(scene.shapes)} shapes at {args.width}x{args.height}...")

    start_time = time.time()

    def progress_callback(done: int, total: int) -> None:
        if not args.quiet:
            pct = (done / total) * 100 if total > 0 else 0
            print(f"\r  Progress: {done}/{total} bands ({pct:.1f}%)", end="", flush=True)

    tracer.render(callback=progress_callback)

    if not args.quiet:
        print()  # Newline after progress

    output_file = Path(args.output)
    tracer.save_image(output_file)

    if not args.quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    init_taichi(args.cpu, args.threads, args.quiet)

    try:
        render_scene_file(args)
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
