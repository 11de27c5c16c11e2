"""Raster surfaces the PDF renderer draws into.

A surface pairs an in-memory pixel buffer with a 2D drawing context. The
renderer only talks to the ``SurfaceFactory`` interface, so the Pillow backing
can be swapped without touching the rendering call site.
"""

import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageDraw

BACKGROUND_COLOR = "white"


@dataclass
class RasterSurface:
    """A pixel buffer plus a drawing context bound to it.

    The PDF renderer pastes MuPDF's pixmap straight into ``image`` and does
    not draw through ``context``. The context is part of what a surface
    provides to callers that draw onto it (overlays, badges), and the factory
    keeps it bound to the current ``image`` across ``reset``.
    """

    width: int
    height: int
    image: Optional[Image.Image]
    context: Optional[ImageDraw.ImageDraw]

    @property
    def released(self) -> bool:
        return self.image is None and self.context is None


class SurfaceFactory(ABC):
    """Capability object for allocating, resizing and releasing surfaces."""

    @abstractmethod
    def create(self, width: int, height: int) -> RasterSurface:
        ...

    @abstractmethod
    def reset(self, surface: RasterSurface, width: int, height: int) -> None:
        ...

    @abstractmethod
    def destroy(self, surface: RasterSurface) -> None:
        ...


def _check_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid surface dimensions: {width}x{height}")


class PillowSurfaceFactory(SurfaceFactory):
    """Surfaces backed by an RGB ``PIL.Image`` on a white background."""

    def create(self, width: int, height: int) -> RasterSurface:
        _check_dimensions(width, height)
        image = Image.new("RGB", (width, height), BACKGROUND_COLOR)
        return RasterSurface(width=width, height=height, image=image, context=ImageDraw.Draw(image))

    def reset(self, surface: RasterSurface, width: int, height: int) -> None:
        _check_dimensions(width, height)
        if surface.image is not None:
            surface.image.close()
        surface.image = Image.new("RGB", (width, height), BACKGROUND_COLOR)
        surface.context = ImageDraw.Draw(surface.image)
        surface.width = width
        surface.height = height

    def destroy(self, surface: RasterSurface) -> None:
        if surface.image is not None:
            surface.image.close()
        surface.width = 0
        surface.height = 0
        surface.image = None
        surface.context = None


def encode_jpeg(surface: RasterSurface, quality: int) -> bytes:
    if surface.image is None:
        raise ValueError("Cannot encode a released surface")
    buffer = io.BytesIO()
    surface.image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
