"""
palbmp – 8-bit palette-indexed BMP codec with JASC palette support.

Public API re-exports:

  from palbmp.palette    import Palette, parse_palette, read_palette, write_palette, default_palette
  from palbmp.colortable import ColorTable
  from palbmp.bitmap     import Bitmap, read_bmp, write_bmp, is_bmp
"""

from .palette    import (
    Palette,
    PaletteFormatError,
    parse_palette,
    read_palette,
    palette_to_bytes,
    write_palette,
    default_palette,
)
from .colortable import ColorTable, color_distance
from .bitmap     import (
    Bitmap,
    BitmapHeader,
    BitmapFormatError,
    decode_bmp,
    encode_bmp,
    read_bmp,
    write_bmp,
    is_bmp,
)

__all__ = [
    "Palette", "PaletteFormatError",
    "parse_palette", "read_palette", "palette_to_bytes", "write_palette",
    "default_palette",
    "ColorTable", "color_distance",
    "Bitmap", "BitmapHeader", "BitmapFormatError",
    "decode_bmp", "encode_bmp",
    "read_bmp", "write_bmp", "is_bmp",
]
