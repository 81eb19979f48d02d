"""Raster compositing of slate geometry with Pillow."""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont

from .config import ColorsConfig, OutputConfig
from .fonts import FontProvider
from .icons import IconAsset, IconResolver
from .layout import Frame, IconOnlyGeometry, Rect, SlateGeometry
from .models import OutputFormat


_LOGGER = logging.getLogger("slategen.compositor")


class SlateRenderError(RuntimeError):
    """Encoding or writing the finished slate failed."""


@dataclass(frozen=True, slots=True)
class TextPlan:
    lines: tuple[str, ...]
    line_tops: tuple[float, ...]
    font_size: float
    line_gap: float
    footer_text: str | None = None
    footer_font_size: float | None = None


class Compositor:
    """Draws in a fixed order: background, panel, icon, frame, text, footer."""

    def __init__(
        self,
        *,
        colors: ColorsConfig,
        fonts: FontProvider,
        icons: IconResolver,
        output: OutputConfig | None = None,
    ) -> None:
        self.colors = colors
        self.fonts = fonts
        self.icons = icons
        self.output = output or OutputConfig()

    def draw(self, geometry: SlateGeometry, icon: IconAsset, text: TextPlan) -> Image.Image:
        canvas = geometry.canvas
        background = self.colors.letterbox if canvas.letterboxed else self.colors.panel
        image = Image.new("RGB", (canvas.width, canvas.height), background)
        draw = ImageDraw.Draw(image)

        draw.rectangle(_px_box(geometry.main_band), fill=self.colors.panel)
        self._paste_icon(image, icon, geometry.icon)
        # Frame goes on top of the icon so the stroke covers its edges.
        self._stroke_frame(draw, geometry.frame)

        font = self.fonts.font(text.font_size)
        for line, top in zip(text.lines, text.line_tops):
            self._draw_line(image, draw, (geometry.text_x, top), line, font, geometry.max_text_width)

        if geometry.footer_band is not None and geometry.footer_frame is not None:
            draw.rectangle(_px_box(geometry.footer_band), fill=self.colors.footer_panel)
            self._stroke_frame(draw, geometry.footer_frame)
            if text.footer_text and text.footer_font_size:
                footer_font = self.fonts.font(text.footer_font_size)
                draw.text(
                    geometry.footer_frame.inner.center,
                    text.footer_text,
                    font=footer_font,
                    fill=self.colors.ink,
                    anchor="mm",
                )
        return image

    def draw_icon_only(self, geometry: IconOnlyGeometry, icon: IconAsset) -> Image.Image:
        canvas = geometry.canvas
        background = self.colors.letterbox if canvas.letterboxed else self.colors.panel
        image = Image.new("RGB", (canvas.width, canvas.height), background)
        self._paste_icon(image, icon, geometry.icon)
        return image

    def encode(self, image: Image.Image, output_format: OutputFormat) -> bytes:
        buffer = io.BytesIO()
        try:
            if output_format is OutputFormat.JPEG:
                image.convert("RGB").save(buffer, format="JPEG", quality=self.output.jpeg_quality)
            else:
                image.save(buffer, format="PNG")
        except (OSError, ValueError) as exc:
            raise SlateRenderError(f"Failed to encode slate as {output_format.value}: {exc}") from exc
        return buffer.getvalue()

    def _paste_icon(self, image: Image.Image, icon: IconAsset, rect: Rect) -> None:
        rendered = self.icons.rasterize(icon, rect.width, rect.height)
        position = (int(round(rect.x)), int(round(rect.y)))
        image.paste(rendered, position, rendered)
        _LOGGER.debug("Icon %s drawn at %s size %s", icon.path.name, position, rendered.size)

    def _draw_line(
        self,
        image: Image.Image,
        draw: ImageDraw.ImageDraw,
        xy: tuple[float, float],
        line: str,
        font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
        max_width: float,
    ) -> None:
        """Draw one descriptor line, squeezed horizontally if it is wider than `max_width`."""
        width = draw.textlength(line, font=font)
        if width <= max_width:
            draw.text(xy, line, font=font, fill=self.colors.ink, anchor="la")
            return

        _, _, right, bottom = font.getbbox(line, anchor="la")
        layer_w = max(int(math.ceil(max(right, width))), 1)
        layer_h = max(int(math.ceil(bottom)), 1)
        layer = Image.new("RGBA", (layer_w, layer_h), (0, 0, 0, 0))
        ImageDraw.Draw(layer).text((0, 0), line, font=font, fill=self.colors.ink, anchor="la")

        target_w = max(int(math.floor(max_width)), 1)
        resampling = getattr(getattr(Image, "Resampling", Image), "LANCZOS")
        layer = layer.resize((target_w, layer_h), resample=resampling)
        image.paste(layer, (int(round(xy[0])), int(round(xy[1]))), layer)
        _LOGGER.debug("Squeezed '%s' from %.1fpx to %dpx", line, width, target_w)

    def _stroke_frame(self, draw: ImageDraw.ImageDraw, frame: Frame) -> None:
        # Pillow grows outlines inward from the box, so the outer stroke edge
        # lands exactly on `frame.outer`.
        width = max(int(round(frame.thickness)), 1)
        draw.rectangle(_px_box(frame.outer), outline=self.colors.ink, width=width)


def _px_box(rect: Rect) -> tuple[int, int, int, int]:
    x0 = int(round(rect.x))
    y0 = int(round(rect.y))
    x1 = max(int(round(rect.right)) - 1, x0)
    y1 = max(int(round(rect.bottom)) - 1, y0)
    return (x0, y0, x1, y1)
