"""Shrink-to-fit sizing for descriptor and footer text."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .config import DesignConfig


TextMeasure = Callable[[str, float], float]

_LOGGER = logging.getLogger("slategen.typography")


@dataclass(frozen=True, slots=True)
class TextFit:
    font_size: float
    line_gap: float
    fitted: bool = True

    def block_height(self, line_count: int) -> float:
        if line_count <= 0:
            return 0.0
        return line_count * self.font_size + (line_count - 1) * self.line_gap


class TypographySizer:
    """Pick font size and line gap for a vertical budget (never wraps)."""

    def __init__(self, design: DesignConfig | None = None) -> None:
        self.design = design or DesignConfig()

    def fit_descriptors(self, line_count: int, available_height: float, scale: float) -> TextFit:
        d = self.design
        font_size = d.font_size * scale
        if line_count <= 0:
            return TextFit(font_size=font_size, line_gap=font_size * d.min_gap_ratio)

        for attempt in range(1, d.max_iterations + 1):
            min_gap = font_size * d.min_gap_ratio
            min_height = line_count * font_size + (line_count - 1) * min_gap
            if min_height <= available_height:
                slack = available_height - min_height
                extra = slack / (line_count + 2)
                gap = min(min_gap + extra, font_size * d.max_gap_ratio)
                return TextFit(font_size=font_size, line_gap=gap)
            if attempt < d.max_iterations:
                font_size *= d.shrink_factor

        _LOGGER.warning(
            "%d descriptor lines do not fit %.1fpx after %d attempts; using %.1fpx text.",
            line_count,
            available_height,
            d.max_iterations,
            font_size,
        )
        return TextFit(font_size=font_size, line_gap=font_size * d.min_gap_ratio, fitted=False)

    def line_tops(self, fit: TextFit, line_count: int, region_top: float, region_height: float) -> list[float]:
        """Top edge of each line, the block centered inside the text region."""
        block = fit.block_height(line_count)
        top = region_top + max((region_height - block) / 2, 0.0)
        return [top + idx * (fit.font_size + fit.line_gap) for idx in range(line_count)]

    def fit_footer(
        self,
        text: str,
        *,
        descriptor_size: float,
        max_width: float,
        max_height: float,
        measure: TextMeasure,
    ) -> float:
        """Footer size: the descriptor size, shrunk only if the line overflows."""
        d = self.design
        size = descriptor_size
        for _ in range(d.max_iterations):
            if measure(text, size) <= max_width and size <= max_height:
                break
            size *= d.shrink_factor
        return min(size, descriptor_size)


def footer_text(elements: tuple[str, ...], max_items: int) -> str:
    return ", ".join(elements[:max_items])
