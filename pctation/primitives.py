"""GP0 draw command decoding: vertices, colours, texture info and opcodes."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Sequence

from pctation.util import sign_extend

logger = logging.getLogger(__name__)

MAX_GP0_CMD_LEN = 32


def _s16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


@dataclass(frozen=True)
class Position:
    """A vertex position in VRAM coordinates."""

    x: int = 0
    y: int = 0

    @classmethod
    def from_gp0(cls, word: int) -> Position:
        """Decode an 11-bit signed vertex word."""
        return cls(sign_extend(word & 0x7FF, 10), sign_extend((word >> 16) & 0x7FF, 10))

    @classmethod
    def from_gp0_fill(cls, word: int) -> Position:
        """Decode the top-left corner of a VRAM fill."""
        return cls(word & 0x3F0, (word >> 16) & 0x1FF)

    def __add__(self, other: Position) -> Position:
        return Position(_s16(self.x + other.x), _s16(self.y + other.y))


@dataclass(frozen=True)
class Size:
    """Width and height of a rectangle."""

    width: int = 0
    height: int = 0

    @classmethod
    def from_gp0(cls, word: int) -> Size:
        return cls(sign_extend(word & 0x1FF, 10), sign_extend((word >> 16) & 0x3FF, 10))

    @classmethod
    def from_gp0_fill(cls, word: int) -> Size:
        """Decode a fill size; the width is rounded up to a multiple of 16."""
        return cls(((word & 0x3FF) + 0x0F) & ~0x0F, (word >> 16) & 0x1FF)


@dataclass(frozen=True)
class Color:
    """A 24-bit RGB colour."""

    r: int = 0
    g: int = 0
    b: int = 0

    @classmethod
    def from_gp0(cls, word: int) -> Color:
        return cls(word & 0xFF, (word >> 8) & 0xFF, (word >> 16) & 0xFF)

    def word(self) -> int:
        return self.r | self.g << 8 | self.b << 16


@dataclass(frozen=True)
class Texcoord:
    """A texture coordinate within a texture page."""

    x: int = 0
    y: int = 0

    @classmethod
    def from_gp0(cls, word: int) -> Texcoord:
        return cls(word & 0xFF, (word >> 8) & 0xFF)

    def __add__(self, other: Texcoord) -> Texcoord:
        return Texcoord(_s16(self.x + other.x), _s16(self.y + other.y))


@dataclass(frozen=True)
class Palette:
    """CLUT location as packed in the upper half of a texcoord word."""

    word: int = 0

    @classmethod
    def from_gp0(cls, word: int) -> Palette:
        return cls((word >> 16) & 0xFFFF)

    @property
    def x(self) -> int:
        return (self.word & 0x3F) * 16

    @property
    def y(self) -> int:
        return (self.word >> 6) & 0x1FF


class QuadTriangleIndex(enum.IntEnum):
    NONE = 0
    FIRST = 1
    SECOND = 2


def _default_uv() -> list[Texcoord]:
    return [Texcoord() for _ in range(4)]


def _default_uv_active() -> list[Texcoord]:
    return [Texcoord() for _ in range(3)]


@dataclass
class TextureInfo:
    """Texture coordinates, palette, page and blend colour of a primitive."""

    uv: list[Texcoord] = field(default_factory=_default_uv)
    uv_active: list[Texcoord] = field(default_factory=_default_uv_active)
    palette: Palette = field(default_factory=Palette)
    page: int = 0
    color: Color = field(default_factory=Color)

    def update_active_triangle(self, triangle_index: QuadTriangleIndex) -> None:
        """Select the UVs of the first or second triangle of a quad."""
        if triangle_index == QuadTriangleIndex.FIRST:
            self.uv_active = list(self.uv[0:3])
        elif triangle_index == QuadTriangleIndex.SECOND:
            self.uv_active = list(self.uv[1:4])
        else:
            raise ValueError(f"invalid quad triangle index: {triangle_index!r}")


class PixelRenderType(enum.IntEnum):
    """How a pixel is coloured; the textured ones follow the texture page depth."""

    SHADED = 0
    TEXTURED_PALETTED_4BIT = 1
    TEXTURED_PALETTED_8BIT = 2
    TEXTURED_16BIT = 3


def render_type_for_tex_page_colors(tex_page_colors: int) -> PixelRenderType:
    """Map the texture page colour depth field to a render type."""
    if tex_page_colors == 0:
        return PixelRenderType.TEXTURED_PALETTED_4BIT
    if tex_page_colors == 1:
        return PixelRenderType.TEXTURED_PALETTED_8BIT
    if tex_page_colors in (2, 3):
        return PixelRenderType.TEXTURED_16BIT
    return PixelRenderType.SHADED


@dataclass(frozen=True)
class _Opcode:
    word: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "word", self.word & 0xFF)

    def _bit(self, n: int) -> bool:
        return bool(self.word & (1 << n))

    @property
    def semi_transparency(self) -> bool:
        return self._bit(1)

    @property
    def gouraud(self) -> bool:
        return self._bit(4)


@dataclass(frozen=True)
class LineCommand(_Opcode):
    """Opcode byte of a line command."""

    def is_poly(self) -> bool:
        return self._bit(3)

    def arg_count(self) -> int:
        if self.is_poly():
            return MAX_GP0_CMD_LEN - 1
        return 2 + (1 if self.gouraud else 0)


@dataclass(frozen=True)
class RectangleCommand(_Opcode):
    """Opcode byte of a rectangle command."""

    @property
    def raw_texture(self) -> bool:
        return self._bit(0)

    @property
    def textured(self) -> bool:
        return self._bit(2)

    @property
    def rect_size(self) -> int:
        return (self.word >> 3) & 0b11

    def is_variable_sized(self) -> bool:
        return self.rect_size == 0

    def static_size(self) -> Size:
        """The fixed size; raises ValueError for variable-sized rectangles."""
        sizes = {1: Size(1, 1), 2: Size(8, 8), 3: Size(16, 16)}
        try:
            return sizes[self.rect_size]
        except KeyError:
            raise ValueError("variable-sized rectangle has no static size") from None

    def arg_count(self) -> int:
        count = 1
        if self.is_variable_sized():
            count += 1
        if self.textured:
            count += 1
        return count


@dataclass(frozen=True)
class PolygonCommand(_Opcode):
    """Opcode byte of a polygon command."""

    @property
    def raw_texture(self) -> bool:
        return self._bit(0)

    @property
    def textured(self) -> bool:
        return self._bit(2)

    def is_quad(self) -> bool:
        return self._bit(3)

    def vertex_count(self) -> int:
        return 4 if self.is_quad() else 3

    def arg_count(self) -> int:
        count = self.vertex_count()
        if self.textured:
            count *= 2
        if self.gouraud:
            count += self.vertex_count() - 1
        return count


@dataclass
class PolygonData:
    """Vertices, colours and texture info decoded from a polygon command."""

    positions: list[Position]
    colors: list[Color]
    texture: TextureInfo


@dataclass
class RectangleData:
    """Corners, colours, texture info and size decoded from a rectangle command."""

    positions: list[Position]
    colors: list[Color]
    texture: TextureInfo
    size: Size


def _check_length(words: Sequence[int], needed: int) -> None:
    if len(words) < needed:
        raise ValueError(f"command needs {needed} words, got {len(words)}")


def extract_polygon(polygon: PolygonCommand, words: Sequence[int]) -> PolygonData:
    """Decode the words of a polygon command (opcode word first)."""
    _check_length(words, 1 + polygon.arg_count())
    vertex_count = polygon.vertex_count()
    positions = [Position() for _ in range(vertex_count)]
    colors = [Color() for _ in range(vertex_count)]
    tex = TextureInfo()
    args = iter(words[1:])

    for v_idx in range(vertex_count):
        positions[v_idx] = Position.from_gp0(next(args))

        if not polygon.raw_texture and (not polygon.gouraud or v_idx == 0):
            colors[v_idx] = Color.from_gp0(words[0])
        if polygon.textured:
            word = next(args)
            if v_idx == 0:
                tex.palette = Palette.from_gp0(word)
            if v_idx == 1:
                tex.page = (word >> 16) & 0xFFFF
            tex.uv[v_idx] = Texcoord.from_gp0(word)
        if polygon.gouraud and v_idx < vertex_count - 1:
            colors[v_idx + 1] = Color.from_gp0(next(args))

    tex.color = colors[0]
    return PolygonData(positions, colors, tex)


def extract_rectangle(
    rectangle: RectangleCommand, words: Sequence[int], draw_mode: int
) -> RectangleData:
    """Decode the words of a rectangle command; ``draw_mode`` supplies the page."""
    _check_length(words, 1 + rectangle.arg_count())
    color = Color.from_gp0(words[0])
    colors = [color] * 4
    tex = TextureInfo()
    args = iter(words[1:])

    origin = Position.from_gp0(next(args))

    if rectangle.textured:
        word = next(args)
        tex.palette = Palette.from_gp0(word)
        tex.page = draw_mode & 0xFFFF
        tex.color = color
        tex.uv[0] = Texcoord.from_gp0(word)

    if rectangle.is_variable_sized():
        size = Size.from_gp0(next(args))
    else:
        size = rectangle.static_size()

    positions = [
        origin,
        origin + Position(size.width, 0),
        origin + Position(0, size.height),
        origin + Position(size.width, size.height),
    ]

    if rectangle.textured:
        uv0 = tex.uv[0]
        tex.uv[1] = uv0 + Texcoord(size.width, 0)
        tex.uv[2] = uv0 + Texcoord(0, size.height)
        tex.uv[3] = uv0 + Texcoord(size.width, size.height)

    return RectangleData(positions, colors, tex, size)