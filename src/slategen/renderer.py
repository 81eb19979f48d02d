"""Render pipeline: record + options -> geometry -> typography -> image bytes."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path

from .aspect import AspectRatioSelector
from .compositor import Compositor, SlateRenderError, TextPlan
from .config import AppConfig
from .fonts import FontProvider
from .icons import IconResolver
from .layout import IconOnlyGeometry, LayoutEngine, SlateGeometry
from .models import STANDARD_ASPECT, AspectRatio, OutputFormat, RatingRecord, RenderOptions
from .typography import TextMeasure, TypographySizer, footer_text
from .util import write_bytes_atomic


_LOGGER = logging.getLogger("slategen.renderer")


@dataclass(frozen=True, slots=True)
class RenderResult:
    data: bytes
    output_format: OutputFormat
    aspect_ratio: AspectRatio
    geometry: SlateGeometry | IconOnlyGeometry
    text: TextPlan | None = None
    output_path: Path | None = None

    @property
    def size(self) -> tuple[int, int]:
        return (self.geometry.canvas.width, self.geometry.canvas.height)


class SlateRenderer:
    """Entry point for producing rating slates.

    Each call recomputes everything from its inputs; the renderer holds only
    configuration and the font provider.
    """

    def __init__(self, cfg: AppConfig | None = None, *, measure: TextMeasure | None = None) -> None:
        self.cfg = cfg or AppConfig.default()
        self.engine = LayoutEngine(self.cfg.design)
        self.sizer = TypographySizer(self.cfg.design)
        self.icons = IconResolver(self.cfg.paths.icons_dir)
        self.fonts = FontProvider(self.cfg.paths.font_path)
        self.measure: TextMeasure = measure or self.fonts.measure
        self.selector = AspectRatioSelector(self.engine, self.measure)
        self.compositor = Compositor(
            colors=self.cfg.colors,
            fonts=self.fonts,
            icons=self.icons,
            output=self.cfg.output,
        )

    def render(self, record: RatingRecord, options: RenderOptions | None = None) -> RenderResult:
        options = options or RenderOptions()
        icon = self.icons.resolve(record.rating_category)

        if record.has_no_descriptors:
            # The icon-only slate ignores descriptors, so there is nothing to fit.
            aspect = options.aspect_ratio or STANDARD_ASPECT
            icon_geometry = self.engine.compute_icon_only(
                aspect,
                margin=options.margin,
                resolution=options.resolution,
                icon_aspect=icon.aspect_ratio,
            )
            image = self.compositor.draw_icon_only(icon_geometry, icon)
            return RenderResult(
                data=self.compositor.encode(image, options.output_format),
                output_format=options.output_format,
                aspect_ratio=aspect,
                geometry=icon_geometry,
            )

        interactive = record.filtered_interactive_elements
        has_footer = bool(interactive)
        if options.aspect_ratio is None:
            aspect = self.selector.select(
                record.descriptors,
                margin=options.margin,
                resolution=options.resolution,
                has_footer=has_footer,
                icon_aspect=icon.aspect_ratio,
            )
        else:
            aspect = options.aspect_ratio

        geometry = self.engine.compute(
            aspect,
            margin=options.margin,
            resolution=options.resolution,
            has_footer=has_footer,
            icon_aspect=icon.aspect_ratio,
        )
        text = self._plan_text(record.descriptors, interactive, geometry)
        image = self.compositor.draw(geometry, icon, text)
        _LOGGER.debug(
            "Slate %dx%d at %s: font %.1fpx, gap %.1fpx, footer %s",
            geometry.canvas.width,
            geometry.canvas.height,
            aspect,
            text.font_size,
            text.line_gap,
            "yes" if has_footer else "no",
        )
        return RenderResult(
            data=self.compositor.encode(image, options.output_format),
            output_format=options.output_format,
            aspect_ratio=aspect,
            geometry=geometry,
            text=text,
        )

    def render_to_file(
        self,
        record: RatingRecord,
        output_path: str | Path,
        options: RenderOptions | None = None,
    ) -> RenderResult:
        """Render and persist; the file is only written once encoding succeeded."""
        path = Path(output_path)
        options = dataclasses.replace(
            options or RenderOptions(),
            output_format=OutputFormat.from_path(path),
        )
        result = self.render(record, options)
        try:
            write_bytes_atomic(path, result.data)
        except OSError as exc:
            raise SlateRenderError(f"Failed to write slate to {path}: {exc}") from exc
        _LOGGER.info("Slate saved to %s", path)
        return dataclasses.replace(result, output_path=path)

    def _plan_text(
        self,
        descriptors: tuple[str, ...],
        interactive: tuple[str, ...],
        geometry: SlateGeometry,
    ) -> TextPlan:
        fit = self.sizer.fit_descriptors(
            len(descriptors),
            geometry.available_text_height,
            geometry.scale,
        )
        tops = self.sizer.line_tops(
            fit,
            len(descriptors),
            geometry.text_top,
            geometry.available_text_height,
        )

        footer: str | None = None
        footer_size: float | None = None
        if geometry.footer_frame is not None and interactive:
            footer = footer_text(interactive, self.cfg.design.footer_max_items)
            inner = geometry.footer_frame.inner
            footer_size = self.sizer.fit_footer(
                footer,
                descriptor_size=fit.font_size,
                max_width=inner.width - 2 * geometry.right_padding,
                max_height=inner.height,
                measure=self.measure,
            )

        return TextPlan(
            lines=descriptors,
            line_tops=tuple(tops),
            font_size=fit.font_size,
            line_gap=fit.line_gap,
            footer_text=footer,
            footer_font_size=footer_size,
        )


def render_slate(
    record: RatingRecord,
    output_path: str | Path,
    options: RenderOptions | None = None,
    *,
    cfg: AppConfig | None = None,
) -> RenderResult:
    """One-shot helper for library callers."""
    return SlateRenderer(cfg).render_to_file(record, output_path, options)
