"""Rating slate generator."""

from .compositor import SlateRenderError
from .config import AppConfig, load_config
from .esrb import RatingNotFound, RatingResolver
from .icons import AssetNotFound
from .models import (
    AspectRatio,
    OutputFormat,
    RatingCategory,
    RatingRecord,
    RenderOptions,
    ResolutionTier,
)
from .renderer import RenderResult, SlateRenderer, render_slate

__all__ = [
    "AppConfig",
    "AspectRatio",
    "AssetNotFound",
    "OutputFormat",
    "RatingCategory",
    "RatingNotFound",
    "RatingRecord",
    "RatingResolver",
    "RenderOptions",
    "RenderResult",
    "ResolutionTier",
    "SlateRenderError",
    "SlateRenderer",
    "load_config",
    "render_slate",
]
