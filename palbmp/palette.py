"""
palbmp.palette — JASC (PaintShop Pro) text palette reader/writer.

JASC-PAL layout
---------------
  line 1   header string (normally ``JASC-PAL``)
  line 2   version string (normally ``0100``)
  line 3   decimal entry count N
  N lines  ``R G B``  (space-separated decimal, each 0–255)

Lines end in a single CR, a single LF, or a CR LF pair.  Within a colour
line the three fields are separated by single spaces.
"""
from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path

RGB = tuple[int, int, int]

_CR = 13
_LF = 10
_SPACE = 32

_LINE_STOPS = frozenset((_CR, _LF))
_FIELD_STOPS = frozenset((_CR, _LF, _SPACE))

_DEFAULT_RESOURCE = "data/default.pal"


class PaletteFormatError(ValueError):
    """Raised when palette text cannot be parsed."""


@dataclass(frozen=True)
class Palette:
    """An immutable, ordered list of RGB triples parsed from a palette file."""

    colors: tuple[RGB, ...] = ()
    header: str = "JASC-PAL"
    version: str = "0100"

    @classmethod
    def from_colors(cls, colors, header: str = "JASC-PAL",
                    version: str = "0100") -> "Palette":
        """Build a palette from any iterable of ``(r, g, b)`` triples."""
        checked = []
        for i, color in enumerate(colors):
            r, g, b = (int(c) for c in tuple(color)[:3])
            for c in (r, g, b):
                if not 0 <= c <= 255:
                    raise ValueError(f"palette entry {i}: channel {c} out of range")
            checked.append((r, g, b))
        return cls(tuple(checked), header, version)

    @property
    def count(self) -> int:
        return len(self.colors)

    def __len__(self) -> int:
        return len(self.colors)

    def __getitem__(self, index: int) -> RGB:
        return self.colors[index]

    def get_color(self, index: int, white_255_transparent: bool = False) -> tuple[int, int, int, int]:
        """
        Return entry *index* as ``(r, g, b, a)``.

        With *white_255_transparent* set, index 255 is reported with alpha 0
        (the usual transparency slot of 256-colour game palettes).
        """
        if not 0 <= index < len(self.colors):
            raise IndexError(f"palette index {index} out of range (0..{len(self.colors) - 1})")
        r, g, b = self.colors[index]
        alpha = 0 if (white_255_transparent and index == 255) else 255
        return (r, g, b, alpha)

    def to_pil_palette(self) -> list[int]:
        """Flatten to ``[r0, g0, b0, r1, ...]`` as expected by ``Image.putpalette``."""
        flat: list[int] = []
        for rgb in self.colors[:256]:
            flat.extend(rgb)
        return flat


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _read_token(data: bytes, pos: int, stops: frozenset[int]) -> tuple[str, int]:
    """
    Read bytes from *pos* up to the next stop byte.

    Returns the token text and the position just past the stop byte.  A CR
    directly followed by LF is consumed as one terminator.  End of data also
    ends a token, but only if at least one byte was read.
    """
    n = len(data)
    if pos >= n:
        raise PaletteFormatError("unexpected end of palette data")
    start = pos
    while pos < n and data[pos] not in stops:
        pos += 1
    token = data[start:pos].decode("latin-1")
    if pos < n:
        if data[pos] == _CR and pos + 1 < n and data[pos + 1] == _LF:
            pos += 1
        pos += 1
    return token, pos


def _parse_channel(text: str, index: int) -> int:
    try:
        value = int(text)
    except ValueError:
        raise PaletteFormatError(f"entry {index}: bad colour value {text!r}") from None
    if not 0 <= value <= 255:
        raise PaletteFormatError(f"entry {index}: colour value {value} out of range")
    return value


def parse_palette(data: bytes | bytearray) -> Palette:
    """Parse JASC palette text and return a :class:`Palette`."""
    data = bytes(data)
    header, pos = _read_token(data, 0, _LINE_STOPS)
    version, pos = _read_token(data, pos, _LINE_STOPS)
    count_text, pos = _read_token(data, pos, _LINE_STOPS)
    try:
        count = int(count_text)
    except ValueError:
        raise PaletteFormatError(f"bad colour count {count_text!r}") from None
    if count < 0:
        raise PaletteFormatError(f"negative colour count {count}")

    colors: list[RGB] = []
    for i in range(count):
        r_text, pos = _read_token(data, pos, _FIELD_STOPS)
        g_text, pos = _read_token(data, pos, _FIELD_STOPS)
        b_text, pos = _read_token(data, pos, _FIELD_STOPS)
        colors.append((_parse_channel(r_text, i),
                       _parse_channel(g_text, i),
                       _parse_channel(b_text, i)))
    return Palette(tuple(colors), header, version)


def read_palette(path: str | Path) -> Palette:
    """Read and parse a ``.pal`` file."""
    return parse_palette(Path(path).read_bytes())


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

def palette_to_bytes(palette: Palette) -> bytes:
    """Serialise *palette* as CRLF-terminated JASC text."""
    lines = [palette.header, palette.version, str(palette.count)]
    lines.extend(f"{r} {g} {b}" for r, g, b in palette.colors)
    return ("\r\n".join(lines) + "\r\n").encode("latin-1")


def write_palette(palette: Palette, path: str | Path) -> None:
    Path(path).write_bytes(palette_to_bytes(palette))


def default_palette() -> Palette:
    """Return the packaged 256-colour default palette."""
    raw = resources.files("palbmp").joinpath(_DEFAULT_RESOURCE).read_bytes()
    return parse_palette(raw)
