"""Rating icon lookup, intrinsic aspect ratio, and render-time rasterization."""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from PIL import Image

from .models import RatingCategory


_SVG_TAG_RE = re.compile(r"<svg\b[^>]*>", re.IGNORECASE | re.DOTALL)
_LEADING_NUMBER_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+)")

_LOGGER = logging.getLogger("slategen.icons")


class AssetNotFound(FileNotFoundError):
    """Raised when no vector or raster icon exists for a rating category."""


@dataclass(frozen=True, slots=True)
class IconAsset:
    category: RatingCategory
    path: Path
    is_vector: bool
    aspect_ratio: float


class IconResolver:
    """Find icons under `icons_dir`, preferring `<code>.svg` over `<code>.png`."""

    def __init__(self, icons_dir: Path) -> None:
        self.icons_dir = icons_dir

    def resolve(self, category: RatingCategory) -> IconAsset:
        svg_path = self.icons_dir / f"{category.code}.svg"
        if svg_path.is_file():
            svg_text = svg_path.read_text(encoding="utf-8")
            return IconAsset(
                category=category,
                path=svg_path,
                is_vector=True,
                aspect_ratio=svg_aspect_ratio(svg_text, source=svg_path),
            )

        png_path = self.icons_dir / f"{category.code}.png"
        if png_path.is_file():
            with Image.open(png_path) as image:
                width, height = image.size
            if width <= 0 or height <= 0:
                raise ValueError(f"Icon has empty dimensions: {png_path}")
            return IconAsset(
                category=category,
                path=png_path,
                is_vector=False,
                aspect_ratio=width / height,
            )

        raise AssetNotFound(f"Icon file not found for category {category.code} in {self.icons_dir}")

    def rasterize(self, asset: IconAsset, width: float, height: float) -> Image.Image:
        """Load `asset` again and render it at exactly `width` x `height` pixels."""
        target_w = max(int(round(width)), 1)
        target_h = max(int(round(height)), 1)
        if asset.is_vector:
            svg_text = asset.path.read_text(encoding="utf-8")
            sized_svg = set_svg_dimensions(svg_text, target_w, target_h)
            cairosvg = _require_cairosvg()
            png_bytes = cairosvg.svg2png(bytestring=sized_svg.encode("utf-8"))
            with Image.open(io.BytesIO(png_bytes)) as image:
                rendered = image.convert("RGBA")
        else:
            with Image.open(asset.path) as image:
                rendered = image.convert("RGBA")

        if rendered.size != (target_w, target_h):
            resampling = getattr(getattr(Image, "Resampling", Image), "LANCZOS")
            rendered = rendered.resize((target_w, target_h), resample=resampling)
        return rendered


def svg_aspect_ratio(svg_text: str, *, source: Path | str = "<svg>") -> float:
    """Width/height declared on the root <svg> element, 1.0 when unusable."""
    match = _SVG_TAG_RE.search(svg_text)
    tag = match.group(0) if match else ""
    width = _parse_dimension(_attribute(tag, "width"))
    height = _parse_dimension(_attribute(tag, "height"))
    if width is None or height is None or width <= 0 or height <= 0:
        _LOGGER.info("No usable width/height in %s; assuming 1:1 aspect ratio.", source)
        return 1.0
    return width / height


def set_svg_dimensions(svg_text: str, width: int, height: int) -> str:
    """Rewrite (or add) width/height on the root <svg> element."""
    match = _SVG_TAG_RE.search(svg_text)
    if match is None:
        raise ValueError("Not an SVG document: missing <svg> element")
    tag = match.group(0)
    new_tag = _set_attribute(tag, "width", str(width))
    new_tag = _set_attribute(new_tag, "height", str(height))
    return svg_text[: match.start()] + new_tag + svg_text[match.end() :]


def _attribute_re(name: str) -> re.Pattern[str]:
    return re.compile(rf"(\s{name}\s*=\s*)([\"'])(.*?)\2", re.IGNORECASE | re.DOTALL)


def _attribute(tag: str, name: str) -> str | None:
    match = _attribute_re(name).search(tag)
    return match.group(3) if match else None


def _set_attribute(tag: str, name: str, value: str) -> str:
    pattern = _attribute_re(name)
    if pattern.search(tag):
        return pattern.sub(lambda m: f"{m.group(1)}{m.group(2)}{value}{m.group(2)}", tag, count=1)
    insert_at = len("<svg")
    return f'{tag[:insert_at]} {name}="{value}"{tag[insert_at:]}'


def _parse_dimension(raw: str | None) -> float | None:
    if raw is None:
        return None
    match = _LEADING_NUMBER_RE.match(raw)
    if match is None or raw.strip().endswith("%"):
        return None
    return float(match.group(1))


def _require_cairosvg() -> Any:
    try:
        import cairosvg  # type: ignore[import-untyped]
    except Exception as exc:  # pragma: no cover - depends on environment
        raise RuntimeError("cairosvg is required for rasterizing SVG icons") from exc
    return cairosvg
