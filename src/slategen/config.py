"""Typed configuration loader for the optional `slategen.yaml` file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _positive_float(value: Any, field_name: str) -> float:
    parsed = _float(value, field_name)
    if parsed <= 0:
        raise ValueError(f"{field_name} must be > 0")
    return parsed


def _ratio(value: Any, field_name: str) -> float:
    parsed = _float(value, field_name)
    if not 0.0 < parsed < 1.0:
        raise ValueError(f"{field_name} must be between 0 and 1 (exclusive)")
    return parsed


def _color(value: Any, field_name: str) -> str:
    color = _str(value, field_name)
    if color.startswith("#") and len(color) not in {4, 7, 9}:
        raise ValueError(f"Invalid hex color for '{field_name}': {color}")
    return color


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw).expanduser()
    return p if p.is_absolute() else root_dir / p


def _optional_path(value: Any, field_name: str, root_dir: Path) -> Path | None:
    if value is None:
        return None
    return _path_from_cfg(value, field_name, root_dir)


@dataclass(frozen=True, slots=True)
class PathsConfig:
    assets_dir: Path
    icons_dir: Path
    font_path: Path | None
    cache_dir: Path
    logs_dir: Path

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        assets_dir = _path_from_cfg(raw.get("assets_dir", "assets"), "paths.assets_dir", root_dir)
        icons_raw = raw.get("icons_dir")
        icons_dir = (
            assets_dir / "icons"
            if icons_raw is None
            else _path_from_cfg(icons_raw, "paths.icons_dir", root_dir)
        )
        font_raw = raw.get("font_path", str(assets_dir / "fonts" / "Arimo-Bold.ttf"))
        return cls(
            assets_dir=assets_dir,
            icons_dir=icons_dir,
            font_path=_optional_path(font_raw, "paths.font_path", root_dir),
            cache_dir=_path_from_cfg(raw.get("cache_dir", ".esrb-cache"), "paths.cache_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir", "logs"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class DesignConfig:
    """Reference design, authored against a `reference_height`-unit box."""

    reference_height: float = 650.0
    footer_share: float = 0.195
    frame_thickness: float = 22.0
    frame_margin: float = 10.0
    icon_padding: float = 4.0
    text_padding: float = 32.0
    right_padding: float = 20.0
    text_safety: float = 20.0
    font_size: float = 82.0
    min_gap_ratio: float = 0.25
    max_gap_ratio: float = 0.60
    shrink_factor: float = 0.95
    max_iterations: int = 20
    footer_max_items: int = 3

    def __post_init__(self) -> None:
        if self.max_gap_ratio < self.min_gap_ratio:
            raise ValueError("design.max_gap_ratio cannot be smaller than design.min_gap_ratio")
        if self.max_iterations < 1:
            raise ValueError("design.max_iterations must be >= 1")
        if self.footer_max_items < 1:
            raise ValueError("design.footer_max_items must be >= 1")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> DesignConfig:
        defaults = cls()
        return cls(
            reference_height=_positive_float(
                raw.get("reference_height", defaults.reference_height), "design.reference_height"
            ),
            footer_share=_ratio(raw.get("footer_share", defaults.footer_share), "design.footer_share"),
            frame_thickness=_positive_float(
                raw.get("frame_thickness", defaults.frame_thickness), "design.frame_thickness"
            ),
            frame_margin=_float(raw.get("frame_margin", defaults.frame_margin), "design.frame_margin"),
            icon_padding=_float(raw.get("icon_padding", defaults.icon_padding), "design.icon_padding"),
            text_padding=_float(raw.get("text_padding", defaults.text_padding), "design.text_padding"),
            right_padding=_float(raw.get("right_padding", defaults.right_padding), "design.right_padding"),
            text_safety=_float(raw.get("text_safety", defaults.text_safety), "design.text_safety"),
            font_size=_positive_float(raw.get("font_size", defaults.font_size), "design.font_size"),
            min_gap_ratio=_ratio(raw.get("min_gap_ratio", defaults.min_gap_ratio), "design.min_gap_ratio"),
            max_gap_ratio=_ratio(raw.get("max_gap_ratio", defaults.max_gap_ratio), "design.max_gap_ratio"),
            shrink_factor=_ratio(raw.get("shrink_factor", defaults.shrink_factor), "design.shrink_factor"),
            max_iterations=_int(raw.get("max_iterations", defaults.max_iterations), "design.max_iterations"),
            footer_max_items=_int(
                raw.get("footer_max_items", defaults.footer_max_items), "design.footer_max_items"
            ),
        )


@dataclass(frozen=True, slots=True)
class ColorsConfig:
    letterbox: str = "#000000"
    panel: str = "#FFFFFF"
    ink: str = "#000000"
    footer_panel: str = "#FFFFFF"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ColorsConfig:
        defaults = cls()
        return cls(
            letterbox=_color(raw.get("letterbox", defaults.letterbox), "colors.letterbox"),
            panel=_color(raw.get("panel", defaults.panel), "colors.panel"),
            ink=_color(raw.get("ink", defaults.ink), "colors.ink"),
            footer_panel=_color(raw.get("footer_panel", defaults.footer_panel), "colors.footer_panel"),
        )


@dataclass(frozen=True, slots=True)
class OutputConfig:
    jpeg_quality: int = 95

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> OutputConfig:
        quality = _int(raw.get("jpeg_quality", cls().jpeg_quality), "output.jpeg_quality")
        if not 1 <= quality <= 100:
            raise ValueError("output.jpeg_quality must be between 1 and 100")
        return cls(jpeg_quality=quality)


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    base_url: str = "https://www.esrb.org"
    icon_base_url: str = "https://www.esrb.org/wp-content/themes/esrb/assets/images/"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    request_timeout_s: int = 20
    min_request_interval_s: float = 0.5
    max_retries: int = 3
    retry_backoff_s: float = 1.0
    max_search_pages: int = 3

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ResolverConfig:
        defaults = cls()
        min_request_interval_s = _float(
            raw.get("min_request_interval_s", defaults.min_request_interval_s),
            "resolver.min_request_interval_s",
        )
        max_retries = _int(raw.get("max_retries", defaults.max_retries), "resolver.max_retries")
        retry_backoff_s = _float(
            raw.get("retry_backoff_s", defaults.retry_backoff_s), "resolver.retry_backoff_s"
        )
        max_search_pages = _int(
            raw.get("max_search_pages", defaults.max_search_pages), "resolver.max_search_pages"
        )
        if min_request_interval_s < 0:
            raise ValueError("resolver.min_request_interval_s must be >= 0")
        if max_retries < 0:
            raise ValueError("resolver.max_retries must be >= 0")
        if retry_backoff_s <= 0:
            raise ValueError("resolver.retry_backoff_s must be > 0")
        if max_search_pages < 1:
            raise ValueError("resolver.max_search_pages must be >= 1")

        icon_base_url = _str(raw.get("icon_base_url", defaults.icon_base_url), "resolver.icon_base_url")
        if not icon_base_url.endswith("/"):
            icon_base_url += "/"
        return cls(
            base_url=_str(raw.get("base_url", defaults.base_url), "resolver.base_url").rstrip("/"),
            icon_base_url=icon_base_url,
            user_agent=_str(raw.get("user_agent", defaults.user_agent), "resolver.user_agent"),
            request_timeout_s=_int(
                raw.get("request_timeout_s", defaults.request_timeout_s), "resolver.request_timeout_s"
            ),
            min_request_interval_s=min_request_interval_s,
            max_retries=max_retries,
            retry_backoff_s=retry_backoff_s,
            max_search_pages=max_search_pages,
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path | None
    paths: PathsConfig
    design: DesignConfig
    colors: ColorsConfig
    output: OutputConfig
    resolver: ResolverConfig

    @classmethod
    def from_mapping(
        cls,
        raw: Mapping[str, Any],
        source_path: Path | None,
        *,
        root_dir: Path | None = None,
    ) -> AppConfig:
        if root_dir is None:
            root_dir = source_path.parent.resolve() if source_path is not None else Path.cwd()
        return cls(
            source_path=source_path.resolve() if source_path is not None else None,
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            design=DesignConfig.from_mapping(_mapping(raw.get("design"), "design")),
            colors=ColorsConfig.from_mapping(_mapping(raw.get("colors"), "colors")),
            output=OutputConfig.from_mapping(_mapping(raw.get("output"), "output")),
            resolver=ResolverConfig.from_mapping(_mapping(raw.get("resolver"), "resolver")),
        )

    @classmethod
    def default(cls, root_dir: Path | None = None) -> AppConfig:
        return cls.from_mapping({}, None, root_dir=root_dir)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate the YAML config file; defaults when `path` is None."""
    if path is None:
        return AppConfig.default()
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
