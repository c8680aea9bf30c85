"""
__main__.py – CLI entry-point for the palbmp package.

Usage:  python -m palbmp [-v] [-o DIR] <command> [options] <files…>

Commands
--------
info     FILE…          Print the header fields of BMP files.
convert  FILE…          Re-encode 8/24-bit BMPs as 8-bit bottom-up BMPs.
bmp2png  FILE…          Convert BMP files to PNG.
png2bmp  FILE…          Quantise any Pillow-readable image to an 8-bit BMP.
palette  FILE…          List the entries of JASC palette files.

``convert``, ``bmp2png`` and ``png2bmp`` accept ``--palette FILE.pal`` to
remap/quantise against a palette other than the packaged default.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_palette(args: argparse.Namespace):
    from palbmp.palette import read_palette

    path = getattr(args, "palette", None)
    return read_palette(path) if path else None


def _dest(fp: Path, outdir: Path | None, suffix: str) -> Path:
    return (outdir or fp.parent) / (fp.stem + suffix)


def _outdir(args: argparse.Namespace) -> Path | None:
    outdir = Path(args.outdir) if args.outdir else None
    if outdir:
        outdir.mkdir(parents=True, exist_ok=True)
    return outdir


# ---------------------------------------------------------------------------
# Sub-commands
# ---------------------------------------------------------------------------

def cmd_info(args: argparse.Namespace) -> int:
    """Print the decoded header of each BMP file."""
    from palbmp.bitmap import BitmapHeader

    errors = 0
    for fp in (Path(f) for f in args.files):
        try:
            hdr = BitmapHeader.unpack(fp.read_bytes())
        except (OSError, ValueError) as exc:
            print(f"Error reading {fp.name}: {exc}", file=sys.stderr)
            errors += 1
            continue
        print(f"{fp.name}:")
        for f in dataclasses.fields(hdr):
            print(f"  {f.name:<22} {getattr(hdr, f.name)}")
    return 1 if errors else 0


def cmd_convert(args: argparse.Namespace) -> int:
    """Decode BMPs and write them back as 8-bit bottom-up BMPs."""
    from palbmp.bitmap import read_bmp

    palette = _load_palette(args)
    outdir = _outdir(args)
    errors = 0
    for fp in (Path(f) for f in args.files):
        dest = _dest(fp, outdir, ".8bit.bmp")
        if args.verbose:
            print(f"Converting {fp.name} → {dest.name}")
        try:
            read_bmp(fp, palette).save(dest)
        except Exception as exc:
            print(f"Error converting {fp.name}: {exc}", file=sys.stderr)
            errors += 1
    return 1 if errors else 0


def cmd_bmp2png(args: argparse.Namespace) -> int:
    """Convert BMP files to PNG."""
    from palbmp.bitmap import read_bmp

    palette = _load_palette(args)
    outdir = _outdir(args)
    errors = 0
    for fp in (Path(f) for f in args.files):
        dest = _dest(fp, outdir, ".png")
        if args.verbose:
            print(f"Converting {fp.name} → {dest.name}")
        try:
            read_bmp(fp, palette).to_image().save(str(dest))
        except Exception as exc:
            print(f"Error converting {fp.name}: {exc}", file=sys.stderr)
            errors += 1
    return 1 if errors else 0


def cmd_png2bmp(args: argparse.Namespace) -> int:
    """Quantise images to the palette and save as 8-bit BMP."""
    from PIL import Image as PILImage
    from palbmp.bitmap import Bitmap

    palette = _load_palette(args)
    outdir = _outdir(args)
    errors = 0
    for fp in (Path(f) for f in args.files):
        dest = _dest(fp, outdir, ".bmp")
        if args.verbose:
            print(f"Converting {fp.name} → {dest.name}")
        try:
            with PILImage.open(str(fp)) as img:
                Bitmap.from_image(img, palette).save(dest)
        except Exception as exc:
            print(f"Error converting {fp.name}: {exc}", file=sys.stderr)
            errors += 1
    return 1 if errors else 0


def cmd_palette(args: argparse.Namespace) -> int:
    """List palette entries."""
    from palbmp.palette import read_palette

    errors = 0
    for fp in (Path(f) for f in args.files):
        try:
            pal = read_palette(fp)
        except (OSError, ValueError) as exc:
            print(f"Error reading {fp.name}: {exc}", file=sys.stderr)
            errors += 1
            continue
        print(f"{fp.name}: {pal.header} {pal.version}, {pal.count} colour(s)")
        for i, (r, g, b) in enumerate(pal.colors):
            print(f"  {i:3d}  {r:3d} {g:3d} {b:3d}  #{r:02x}{g:02x}{b:02x}")
    return 1 if errors else 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m palbmp",
        description="8-bit palette-indexed BMP converter with JASC palette support.",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Print progress messages.")
    parser.add_argument("-o", "--outdir", metavar="DIR",
                        help="Output directory (default: same as input).")

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    p_info = sub.add_parser("info", help="Print BMP header fields.")
    p_info.add_argument("files", nargs="+", metavar="FILE")

    p_conv = sub.add_parser("convert",
                            help="Re-encode 8/24-bit BMPs as 8-bit bottom-up BMPs.")
    p_conv.add_argument("files", nargs="+", metavar="FILE")
    p_conv.add_argument("--palette", metavar="PAL",
                        help="JASC palette to remap/quantise against.")

    p_b2p = sub.add_parser("bmp2png", help="Convert BMP files to PNG.")
    p_b2p.add_argument("files", nargs="+", metavar="FILE")
    p_b2p.add_argument("--palette", metavar="PAL",
                       help="JASC palette to remap/quantise against.")

    p_p2b = sub.add_parser("png2bmp", help="Quantise images to an 8-bit BMP.")
    p_p2b.add_argument("files", nargs="+", metavar="FILE")
    p_p2b.add_argument("--palette", metavar="PAL",
                       help="JASC palette to quantise against.")

    p_pal = sub.add_parser("palette", help="List JASC palette entries.")
    p_pal.add_argument("files", nargs="+", metavar="FILE")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

_COMMANDS = {
    "info":    cmd_info,
    "convert": cmd_convert,
    "bmp2png": cmd_bmp2png,
    "png2bmp": cmd_png2bmp,
    "palette": cmd_palette,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args   = parser.parse_args(argv)
    return _COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
