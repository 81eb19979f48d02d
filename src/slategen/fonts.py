"""Font registration and text measurement on top of Pillow's FreeType support."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont


# Tried in order when no custom font file is available.
_FALLBACK_BOLD_FONTS = (
    "DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
    "Arial Bold.ttf",
    "arialbd.ttf",
)

_LOGGER = logging.getLogger("slategen.fonts")


@lru_cache(maxsize=256)
def _load_truetype(path: str, size_px: int) -> ImageFont.FreeTypeFont:
    return ImageFont.truetype(path, size_px)


@lru_cache(maxsize=256)
def _load_fallback(size_px: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for name in _FALLBACK_BOLD_FONTS:
        try:
            return ImageFont.truetype(name, size_px)
        except OSError:
            continue
    return ImageFont.load_default(size=size_px)


class FontProvider:
    """Bold slate font at arbitrary pixel sizes.

    Loaded font objects are cached process-wide per (file, size); loading is
    idempotent, so providers can be created freely per render.
    """

    def __init__(self, font_path: Path | None = None) -> None:
        self.font_path: Path | None = None
        if font_path is not None and font_path.is_file():
            self.font_path = font_path
        else:
            _LOGGER.info(
                "Custom font not found%s. Using system bold sans-serif.",
                f" at {font_path}" if font_path is not None else "",
            )

    def font(self, size: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        size_px = max(int(round(size)), 1)
        if self.font_path is not None:
            return _load_truetype(str(self.font_path), size_px)
        return _load_fallback(size_px)

    def measure(self, text: str, size: float) -> float:
        """Rendered advance width of `text` at `size` pixels."""
        return float(self.font(size).getlength(text))
