"""
palbmp.bitmap — uncompressed 8/24-bit Windows BMP ↔ 8-bit palette-indexed image.

BMP file layout (all integers little-endian)
--------------------------------------------
  [0x00]  uint16  signature          0x4d42 ("BM")
  [0x02]  uint32  file_size
  [0x06]  uint32  reserved
  [0x0a]  uint32  offset_data
  [0x0e]  uint32  image_header_size  40
  [0x12]  int32   width
  [0x16]  int32   height             > 0 bottom-up, < 0 top-down
  [0x1a]  uint16  layer_count        1
  [0x1c]  uint16  bits_per_pixel     8 or 24 (read), 8 (write)
  [0x1e]  uint32  compression        0 only
  [0x22]  uint32  size
  [0x26]  int32   x_dpi
  [0x2a]  int32   y_dpi
  [0x2e]  uint32  color_count        0 means 256 for 8-bit files
  [0x32]  uint32  color_important_count
  [0x36]  colour table, color_count × (B, G, R, 0)
  [..]    pixel rows, each padded to a multiple of 4 bytes

Pixel data is taken to follow the colour table directly; ``offset_data``
is not consulted on read.

Decoding always produces a top-down plane of palette indices.  24-bit
pixels, and 8-bit pixels whose table differs from the requested palette,
are mapped to the nearest palette colour.  Encoding always writes an
8-bit bottom-up file with a full 256-entry colour table.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image as PILImage

from .colortable import ENTRY_SIZE, TABLE_SIZE, ColorTable
from .palette import Palette, default_palette

BM_SIGNATURE = 19778  # b"BM" read as LE uint16
COMPRESSION_NONE = 0
INFO_HEADER_SIZE = 40

_HEADER_FMT = "<HIIIIiiHHIIiiII"
HEADER_SIZE = struct.calcsize(_HEADER_FMT)  # 54

# File size and data offset as written by the encoder.
_ENCODED_PREFIX = 44 + TABLE_SIZE * ENTRY_SIZE


class BitmapFormatError(ValueError):
    """Raised for truncated or unsupported BMP data."""


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------

@dataclass
class BitmapHeader:
    signature: int = BM_SIGNATURE
    file_size: int = 0
    reserved: int = 0
    offset_data: int = 0
    image_header_size: int = INFO_HEADER_SIZE
    width: int = 0
    height: int = 0
    layer_count: int = 1
    bits_per_pixel: int = 8
    compression: int = COMPRESSION_NONE
    size: int = 0
    x_dpi: int = 0
    y_dpi: int = 0
    color_count: int = 0
    color_important_count: int = 0

    @classmethod
    def unpack(cls, data: bytes | bytearray, offset: int = 0) -> "BitmapHeader":
        if len(data) < offset + HEADER_SIZE:
            raise BitmapFormatError(
                f"BMP header truncated ({len(data) - offset} of {HEADER_SIZE} bytes)")
        return cls(*struct.unpack_from(_HEADER_FMT, data, offset))

    def pack(self) -> bytes:
        return struct.pack(
            _HEADER_FMT,
            self.signature, self.file_size, self.reserved, self.offset_data,
            self.image_header_size, self.width, self.height, self.layer_count,
            self.bits_per_pixel, self.compression, self.size, self.x_dpi,
            self.y_dpi, self.color_count, self.color_important_count,
        )

    @property
    def top_down(self) -> bool:
        return self.height < 0


# ---------------------------------------------------------------------------
# Row padding
# ---------------------------------------------------------------------------

def padded_width_8bit(width: int) -> int:
    """Stored byte width of an 8-bit row: *width* rounded up to a multiple of 4."""
    return (width + 3) // 4 * 4


def fill_bytes_24bit(width: int) -> int:
    """Number of padding bytes after a 24-bit row of *width* pixels."""
    return -(3 * width) % 4


def _canonical_row(y: int, height: int, top_down: bool) -> int:
    return y if top_down else height - 1 - y


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------

def _decode_8bit(data: bytes, pos: int, width: int, height: int, top_down: bool,
                 embedded: ColorTable, palette: Optional[Palette]) -> tuple[bytearray, ColorTable]:
    stride = padded_width_8bit(width)
    if pos + stride * height > len(data):
        raise BitmapFormatError("8-bit pixel data truncated")

    # Remap when the embedded table is not exactly the requested palette.
    # Without a full 256-entry palette the embedded table is its own target.
    remap = not embedded.matches(palette)
    if remap and palette is not None and palette.count == TABLE_SIZE:
        target = ColorTable.from_palette(palette)
    else:
        target = embedded

    plane = bytearray(width * height)
    for y in range(height):
        row = pos + y * stride
        out = _canonical_row(y, height, top_down) * width
        for x in range(width):
            index = data[row + x]
            if remap:
                index = target.nearest_index(embedded[index])
            plane[out + x] = index
    return plane, target


def _decode_24bit(data: bytes, pos: int, width: int, height: int, top_down: bool,
                  table: ColorTable) -> bytearray:
    stride = 3 * width + fill_bytes_24bit(width)
    # The last row's padding may be missing at end of file.
    if height and pos + stride * (height - 1) + 3 * width > len(data):
        raise BitmapFormatError("24-bit pixel data truncated")

    plane = bytearray(width * height)
    for y in range(height):
        p = pos + y * stride
        out = _canonical_row(y, height, top_down) * width
        for x in range(width):
            b, g, r = data[p], data[p + 1], data[p + 2]
            plane[out + x] = table.nearest_index((r, g, b))
            p += 3
    return plane


def decode_bmp(data: bytes | bytearray,
               palette: Optional[Palette] = None) -> tuple[BitmapHeader, ColorTable, bytearray]:
    """
    Decode BMP *data* into ``(header, colour_table, index_plane)``.

    *palette* optionally overrides the colour table: 8-bit images are
    remapped onto it when their own table differs, 24-bit images are
    quantised to it (default: the packaged palette).
    """
    data = bytes(data)
    hdr = BitmapHeader.unpack(data)
    if hdr.signature != BM_SIGNATURE:
        raise BitmapFormatError(f"not a BMP file (signature {hdr.signature:#06x})")
    if hdr.bits_per_pixel not in (8, 24):
        raise BitmapFormatError(f"unsupported bit depth {hdr.bits_per_pixel}")
    if hdr.compression != COMPRESSION_NONE:
        raise BitmapFormatError(f"unsupported compression {hdr.compression}")
    if hdr.width < 0:
        raise BitmapFormatError(f"negative width {hdr.width}")

    if hdr.color_count == 0 and hdr.bits_per_pixel == 8:
        hdr.color_count = TABLE_SIZE
    if hdr.color_count > TABLE_SIZE:
        raise BitmapFormatError(f"colour table too large ({hdr.color_count} entries)")

    pos = HEADER_SIZE
    embedded = None
    if hdr.color_count > 0:
        try:
            embedded = ColorTable.from_binary(data, pos, hdr.color_count)
        except ValueError as exc:
            raise BitmapFormatError(str(exc)) from None
        pos += hdr.color_count * ENTRY_SIZE

    width, height = hdr.width, abs(hdr.height)
    if hdr.bits_per_pixel == 8:
        plane, table = _decode_8bit(data, pos, width, height, hdr.top_down,
                                    embedded, palette)
    else:
        table = ColorTable.from_palette(palette if palette is not None else default_palette())
        plane = _decode_24bit(data, pos, width, height, hdr.top_down, table)
    return hdr, table, plane


# ---------------------------------------------------------------------------
# Encoder
# ---------------------------------------------------------------------------

def encode_bmp(width: int, height: int, table: ColorTable, plane: bytes | bytearray) -> bytes:
    """Encode a top-down index plane as an 8-bit bottom-up BMP."""
    stride = padded_width_8bit(width)
    pixel_data = bytearray(stride * height)
    for y in range(height):
        src = (height - 1 - y) * width
        dst = y * stride
        pixel_data[dst: dst + width] = plane[src: src + width]

    hdr = BitmapHeader(
        file_size=_ENCODED_PREFIX + len(pixel_data),
        offset_data=_ENCODED_PREFIX,
        width=width,
        height=height,
        size=width * height,
    )
    return hdr.pack() + table.to_binary() + bytes(pixel_data)


# ---------------------------------------------------------------------------
# Bitmap
# ---------------------------------------------------------------------------

class Bitmap:
    """An 8-bit palette-indexed image held as a top-down plane of indices."""

    def __init__(self, width: int, height: int, palette: Optional[Palette] = None):
        width, height = abs(width), abs(height)
        if palette is None:
            palette = default_palette()
        self.header = BitmapHeader(width=width, height=height)
        self.color_table = ColorTable.from_palette(palette)
        self._pixels = bytearray(width * height)

    @classmethod
    def from_bytes(cls, data: bytes | bytearray,
                   palette: Optional[Palette] = None) -> "Bitmap":
        hdr, table, plane = decode_bmp(data, palette)
        bmp = cls.__new__(cls)
        bmp.header = hdr
        bmp.color_table = table
        bmp._pixels = plane
        return bmp

    @classmethod
    def open(cls, path: str | Path, palette: Optional[Palette] = None) -> "Bitmap":
        return cls.from_bytes(Path(path).read_bytes(), palette)

    @classmethod
    def from_image(cls, img: PILImage.Image,
                   palette: Optional[Palette] = None) -> "Bitmap":
        """Quantise a Pillow image to *palette* (default: the packaged one)."""
        w, h = img.size
        bmp = cls(w, h, palette)
        raw = img.convert("RGB").tobytes()
        cache: dict[tuple[int, int, int], int] = {}
        for i in range(w * h):
            rgb = (raw[i*3], raw[i*3 + 1], raw[i*3 + 2])
            index = cache.get(rgb)
            if index is None:
                index = cache[rgb] = bmp.color_table.nearest_index(rgb)
            bmp._pixels[i] = index
        return bmp

    # -- geometry -----------------------------------------------------------

    @property
    def width(self) -> int:
        return self.header.width

    @property
    def height(self) -> int:
        return abs(self.header.height)

    @property
    def pixels(self) -> bytes:
        """Copy of the top-down index plane, row-major."""
        return bytes(self._pixels)

    # -- pixel access -------------------------------------------------------

    def _offset(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"pixel ({x}, {y}) outside {self.width}x{self.height} image")
        return y * self.width + x

    def get_pixel(self, x: int, y: int) -> int:
        return self._pixels[self._offset(x, y)]

    def set_pixel(self, x: int, y: int, value: int) -> None:
        offset = self._offset(x, y)
        if not 0 <= value <= 255:
            raise ValueError(f"palette index {value} out of range (0..255)")
        self._pixels[offset] = value

    def __getitem__(self, pos: tuple[int, int]) -> int:
        x, y = pos
        return self.get_pixel(x, y)

    def __setitem__(self, pos: tuple[int, int], value: int) -> None:
        x, y = pos
        self.set_pixel(x, y, value)

    # -- output -------------------------------------------------------------

    def to_bytes(self) -> bytes:
        return encode_bmp(self.width, self.height, self.color_table, self._pixels)

    def save(self, path: str | Path) -> None:
        Path(path).write_bytes(self.to_bytes())

    def to_image(self) -> PILImage.Image:
        """Return a mode ``P`` Pillow image carrying the colour table."""
        img = PILImage.frombytes("P", (self.width, self.height), bytes(self._pixels))
        img.putpalette(self.color_table.to_palette().to_pil_palette())
        return img

    def __repr__(self) -> str:
        return f"Bitmap({self.width}x{self.height})"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def read_bmp(path: str | Path, palette: Optional[Palette] = None) -> Bitmap:
    """Decode a BMP file to a :class:`Bitmap`."""
    return Bitmap.open(path, palette)


def write_bmp(bmp: Bitmap, path: str | Path) -> None:
    """Encode *bmp* as an 8-bit BMP file."""
    bmp.save(path)


def is_bmp(path: str | Path) -> bool:
    try:
        with open(path, "rb") as f:
            return f.read(2) == b"BM"
    except OSError:
        return False
