from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from slategen.config import AppConfig
from slategen.models import RatingCategory

ICON_COLOR = (200, 30, 30, 255)
ICON_SIZE = (120, 150)


def write_png_icon(path: Path, size: tuple[int, int] = ICON_SIZE) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, ICON_COLOR).save(path, format="PNG")


def fake_measure(text: str, size: float) -> float:
    return len(text) * size * 0.55


@pytest.fixture
def icons_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "assets" / "icons"
    for category in RatingCategory:
        write_png_icon(directory / f"{category.code}.png")
    return directory


@pytest.fixture
def cfg(tmp_path: Path, icons_dir: Path) -> AppConfig:
    return AppConfig.from_mapping(
        {
            "paths": {
                "assets_dir": str(tmp_path / "assets"),
                "icons_dir": str(icons_dir),
                "font_path": None,
                "cache_dir": str(tmp_path / "cache"),
            },
            "resolver": {"min_request_interval_s": 0, "max_retries": 0},
        },
        None,
        root_dir=tmp_path,
    )
