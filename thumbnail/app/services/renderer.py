from dataclasses import dataclass

import fitz  # PyMuPDF
from PIL import Image

from .errors import NoPagesError, RenderError
from .raster import RasterSurface, SurfaceFactory, encode_jpeg


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float
    scale: float

    @property
    def pixel_width(self) -> int:
        return max(1, round(self.width))

    @property
    def pixel_height(self) -> int:
        return max(1, round(self.height))


@dataclass(frozen=True)
class RenderedThumbnail:
    data: bytes
    width: int
    height: int
    scale: float


def page_viewport(page: fitz.Page, scale: float = 1.0) -> Viewport:
    rect = page.rect
    return Viewport(width=rect.width * scale, height=rect.height * scale, scale=scale)


def fit_to_width_scale(intrinsic_width: float, target_width: int) -> float:
    """Scale factor that makes a page of ``intrinsic_width`` exactly ``target_width`` wide."""
    if intrinsic_width <= 0:
        raise RenderError(f"Page has invalid width: {intrinsic_width}")
    return target_width / intrinsic_width


class PdfThumbnailRenderer:
    """Rasterizes the first page of a PDF into a fixed-width JPEG."""

    def __init__(self, surface_factory: SurfaceFactory, target_width: int = 300, jpeg_quality: int = 80) -> None:
        self.surface_factory = surface_factory
        self.target_width = target_width
        self.jpeg_quality = jpeg_quality

    def render_first_page(self, pdf_bytes: bytes) -> RenderedThumbnail:
        document = self._open_document(pdf_bytes)
        try:
            if document.page_count == 0:
                raise NoPagesError("PDF has no pages")

            try:
                page = document.load_page(0)
                intrinsic = page_viewport(page, 1.0)
                scale = fit_to_width_scale(intrinsic.width, self.target_width)
                viewport = page_viewport(page, scale)
            except RenderError:
                raise
            except Exception as e:
                raise RenderError(f"Failed to load first page: {e}") from e

            try:
                surface = self.surface_factory.create(viewport.pixel_width, viewport.pixel_height)
            except Exception as e:
                raise RenderError(f"Failed to allocate raster surface: {e}") from e

            try:
                self._draw_page(page, viewport, surface)
                data = encode_jpeg(surface, self.jpeg_quality)
                return RenderedThumbnail(data=data, width=surface.width, height=surface.height, scale=scale)
            except Exception as e:
                raise RenderError(f"Failed to render first page: {e}") from e
            finally:
                self.surface_factory.destroy(surface)
        finally:
            document.close()

    @staticmethod
    def _open_document(pdf_bytes: bytes) -> fitz.Document:
        if not pdf_bytes:
            raise RenderError("PDF payload is empty")
        try:
            return fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            raise RenderError(f"Failed to parse PDF: {e}") from e

    def _draw_page(self, page: fitz.Page, viewport: Viewport, surface: RasterSurface) -> None:
        matrix = fitz.Matrix(viewport.scale, viewport.scale)
        pix = page.get_pixmap(matrix=matrix, alpha=False)

        # MuPDF rounds the page box outward, so the grid can differ by a pixel.
        if (pix.width, pix.height) != (surface.width, surface.height):
            self.surface_factory.reset(surface, pix.width, pix.height)

        rendered = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        try:
            surface.image.paste(rendered, (0, 0))
        finally:
            rendered.close()
