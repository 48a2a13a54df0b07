"""Paginated A4 PDF from one tall raster view of a patient sheet.

The view is scaled to the printable width and cut into printable-height bands;
each band is placed at the top-left margin of its own white page.
"""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import quote

from PIL import Image

_MM_PER_INCH = 25.4


@dataclass(frozen=True)
class PageLayout:
    width_mm: float = 210.0
    height_mm: float = 297.0
    margin_mm: float = 10.0
    dpi: int = 150

    def _px(self, mm: float) -> int:
        return int(round(mm / _MM_PER_INCH * self.dpi))

    @property
    def page_size_px(self) -> tuple[int, int]:
        return self._px(self.width_mm), self._px(self.height_mm)

    @property
    def margin_px(self) -> int:
        return self._px(self.margin_mm)

    @property
    def printable_width_px(self) -> int:
        return self.page_size_px[0] - 2 * self.margin_px

    @property
    def printable_height_px(self) -> int:
        return self.page_size_px[1] - 2 * self.margin_px


def page_count(*, image_size: tuple[int, int], layout: PageLayout) -> int:
    width, height = image_size
    scaled_height = max(1, int(round(height * layout.printable_width_px / width)))
    return math.ceil(scaled_height / layout.printable_height_px)


def paginate(image: Image.Image, layout: PageLayout) -> list[Image.Image]:
    if image.width <= 0 or image.height <= 0:
        raise ValueError("Cannot paginate an empty image")
    if layout.printable_width_px <= 0 or layout.printable_height_px <= 0:
        raise ValueError("Page margins leave no printable area")

    source = image.convert("RGB")
    scaled_height = max(1, int(round(source.height * layout.printable_width_px / source.width)))
    scaled = source.resize((layout.printable_width_px, scaled_height), Image.Resampling.LANCZOS)

    pages: list[Image.Image] = []
    band_height = layout.printable_height_px
    for index in range(page_count(image_size=source.size, layout=layout)):
        top = index * band_height
        band = scaled.crop((0, top, scaled.width, min(top + band_height, scaled.height)))
        page = Image.new("RGB", layout.page_size_px, "white")
        page.paste(band, (layout.margin_px, layout.margin_px))
        pages.append(page)
    return pages


def render_pdf(image: Image.Image, layout: PageLayout) -> bytes:
    pages = paginate(image, layout)
    buf = BytesIO()
    pages[0].save(
        buf,
        format="PDF",
        save_all=True,
        append_images=pages[1:],
        resolution=float(layout.dpi),
    )
    return buf.getvalue()


def _filename_part(value: str) -> str:
    # Keep the name usable as a file name on every platform.
    cleaned = re.sub(r'[\\/:*?"<>|\s]+', "_", (value or "").strip())
    return cleaned.strip("_")


def export_filename(*, apellido: str, dni: str) -> str:
    return f"Ficha_{_filename_part(apellido)}_{_filename_part(dni)}.pdf"


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the UTF-8 name (RFC 6266 / 5987)."""

    ascii_name = (
        unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    )
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
