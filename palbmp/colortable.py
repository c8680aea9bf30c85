"""
palbmp.colortable — fixed 256-slot RGB colour table.

Binary layout (as stored in a BMP file after the info header)
--------------------------------------------------------------
  256 × 4 bytes: B, G, R, reserved(0)

Alpha is never stored; every entry is an ``(r, g, b)`` triple.  Slots that
a source does not define are filled with opaque white.
"""
from __future__ import annotations

import math

from .palette import RGB, Palette

TABLE_SIZE = 256
ENTRY_SIZE = 4

_WHITE: RGB = (255, 255, 255)

# Upper bound for an RGB distance: sqrt(3 * 255**2) ≈ 441.6730
MAX_DISTANCE = 441.673


def _check_index(index: int) -> None:
    if not 0 <= index < TABLE_SIZE:
        raise IndexError(f"colour table index {index} out of range (0..255)")


def color_distance(a: RGB, b: RGB) -> float:
    """Euclidean distance between two colours in RGB space."""
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)


class ColorTable:
    """256 RGB entries addressed by palette index."""

    def __init__(self, colors=None):
        self._colors: list[RGB] = [_WHITE] * TABLE_SIZE
        if colors is not None:
            for i, rgb in enumerate(colors):
                if i >= TABLE_SIZE:
                    break
                self.set(i, rgb)

    # -- constructors -------------------------------------------------------

    @classmethod
    def from_palette(cls, palette: Palette) -> "ColorTable":
        """Copy up to 256 entries from *palette*; the rest stay white."""
        return cls(palette.colors[:TABLE_SIZE])

    @classmethod
    def from_binary(cls, data: bytes | bytearray, offset: int, count: int) -> "ColorTable":
        """
        Read *count* 4-byte ``B G R pad`` entries starting at *offset*.

        Raises ValueError if the buffer ends before the table does.
        """
        if count > TABLE_SIZE:
            raise ValueError(f"colour table has {count} entries (max {TABLE_SIZE})")
        end = offset + count * ENTRY_SIZE
        if end > len(data):
            raise ValueError("colour table runs past end of data")
        table = cls()
        for i in range(count):
            p = offset + i * ENTRY_SIZE
            table._colors[i] = (data[p + 2], data[p + 1], data[p])
        return table

    # -- access -------------------------------------------------------------

    def get(self, index: int) -> RGB:
        _check_index(index)
        return self._colors[index]

    def set(self, index: int, rgb) -> None:
        """Store *rgb* at *index*; any fourth (alpha) component is dropped."""
        _check_index(index)
        r, g, b = (int(c) for c in tuple(rgb)[:3])
        for c in (r, g, b):
            if not 0 <= c <= 255:
                raise ValueError(f"colour channel {c} out of range (0..255)")
        self._colors[index] = (r, g, b)

    __getitem__ = get
    __setitem__ = set

    def __len__(self) -> int:
        return TABLE_SIZE

    def __iter__(self):
        return iter(self._colors)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ColorTable):
            return NotImplemented
        return self._colors == other._colors

    def __repr__(self) -> str:
        return f"ColorTable({self._colors[:4]!r}...)"

    # -- conversion ---------------------------------------------------------

    def to_binary(self) -> bytes:
        """Serialise all 256 entries as ``B G R 0`` groups."""
        out = bytearray(TABLE_SIZE * ENTRY_SIZE)
        for i, (r, g, b) in enumerate(self._colors):
            p = i * ENTRY_SIZE
            out[p] = b
            out[p + 1] = g
            out[p + 2] = r
        return bytes(out)

    def to_palette(self) -> Palette:
        return Palette(tuple(self._colors))

    def copy(self) -> "ColorTable":
        return ColorTable(self._colors)

    # -- comparison / quantisation -----------------------------------------

    def matches(self, palette: Palette | None) -> bool:
        """True if *palette* has exactly 256 entries, all equal to ours."""
        if palette is None or palette.count != TABLE_SIZE:
            return False
        return all(tuple(c) == self._colors[i] for i, c in enumerate(palette.colors))

    def nearest_index(self, rgb: RGB) -> int:
        """
        Return the index of the entry closest to *rgb*.

        An exact match ends the scan immediately.  Otherwise the smallest
        Euclidean distance wins, the lowest index on ties.
        """
        r, g, b = rgb[0], rgb[1], rgb[2]
        nearest = 0
        nearest_distance = MAX_DISTANCE
        for i, (pr, pg, pb) in enumerate(self._colors):
            if r == pr and g == pg and b == pb:
                return i
            distance = color_distance((r, g, b), (pr, pg, pb))
            if distance < nearest_distance:
                nearest_distance = distance
                nearest = i
        return nearest
