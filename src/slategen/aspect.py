"""Automatic aspect ratio selection: narrowest ratio where every descriptor fits."""

from __future__ import annotations

import logging
from typing import Sequence

from .layout import LayoutEngine
from .models import WIDEST_ASPECT, AspectRatio, ResolutionTier
from .typography import TextMeasure


_LOGGER = logging.getLogger("slategen.aspect")


class AspectRatioSelector:
    """Sweep 16:9 .. 21:9 and keep the first ratio that avoids overflow."""

    def __init__(self, engine: LayoutEngine, measure: TextMeasure) -> None:
        self.engine = engine
        self.measure = measure

    def select(
        self,
        descriptors: Sequence[str],
        *,
        margin: int,
        resolution: ResolutionTier,
        has_footer: bool,
        icon_aspect: float,
    ) -> AspectRatio:
        for candidate in AspectRatio.candidates():
            if self.fits(
                candidate,
                descriptors,
                margin=margin,
                resolution=resolution,
                has_footer=has_footer,
                icon_aspect=icon_aspect,
            ):
                _LOGGER.info("Auto aspect ratio selected: %s", candidate)
                return candidate

        _LOGGER.info(
            "Descriptors do not fit any candidate ratio; using widest supported ratio %s.",
            WIDEST_ASPECT,
        )
        return WIDEST_ASPECT

    def fits(
        self,
        candidate: AspectRatio,
        descriptors: Sequence[str],
        *,
        margin: int,
        resolution: ResolutionTier,
        has_footer: bool,
        icon_aspect: float,
    ) -> bool:
        geometry = self.engine.compute(
            candidate,
            margin=margin,
            resolution=resolution,
            has_footer=has_footer,
            icon_aspect=icon_aspect,
        )
        font_size = self.engine.design.font_size * geometry.scale
        for descriptor in descriptors:
            width = self.measure(descriptor, font_size)
            if width > geometry.max_text_width:
                _LOGGER.debug(
                    "Ratio %s: '%s' is %.1fpx wide, limit %.1fpx.",
                    candidate,
                    descriptor,
                    width,
                    geometry.max_text_width,
                )
                return False
        return True
