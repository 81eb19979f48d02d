from pathlib import Path

import pytest

from slategen.config import AppConfig, load_config


def test_defaults_resolve_against_root_dir(tmp_path: Path):
    cfg = AppConfig.default(root_dir=tmp_path)
    assert cfg.source_path is None
    assert cfg.paths.assets_dir == tmp_path / "assets"
    assert cfg.paths.icons_dir == tmp_path / "assets" / "icons"
    assert cfg.paths.font_path == tmp_path / "assets" / "fonts" / "Arimo-Bold.ttf"
    assert cfg.paths.cache_dir == tmp_path / ".esrb-cache"
    assert cfg.design.reference_height == 650.0
    assert cfg.design.footer_share == pytest.approx(0.195)
    assert cfg.design.font_size == 82.0
    assert cfg.output.jpeg_quality == 95
    assert cfg.resolver.base_url == "https://www.esrb.org"


def test_load_config_none_returns_defaults():
    cfg = load_config(None)
    assert cfg.source_path is None
    assert cfg.design.max_iterations == 20


def test_load_config_reads_yaml_relative_to_file(tmp_path: Path):
    cfg_file = tmp_path / "conf" / "slategen.yaml"
    cfg_file.parent.mkdir()
    cfg_file.write_text(
        "\n".join(
            [
                "paths:",
                "  assets_dir: my-assets",
                "  font_path: null",
                "design:",
                "  font_size: 70",
                "colors:",
                "  letterbox: '#101010'",
                "output:",
                "  jpeg_quality: 80",
                "resolver:",
                "  base_url: https://example.test/",
                "  icon_base_url: https://example.test/icons",
            ]
        ),
        encoding="utf-8",
    )

    cfg = load_config(cfg_file)

    assert cfg.source_path == cfg_file.resolve()
    assert cfg.paths.assets_dir == cfg_file.parent.resolve() / "my-assets"
    assert cfg.paths.icons_dir == cfg_file.parent.resolve() / "my-assets" / "icons"
    assert cfg.paths.font_path is None
    assert cfg.design.font_size == 70.0
    assert cfg.colors.letterbox == "#101010"
    assert cfg.output.jpeg_quality == 80
    assert cfg.resolver.base_url == "https://example.test"
    assert cfg.resolver.icon_base_url == "https://example.test/icons/"


def test_empty_yaml_gives_defaults(tmp_path: Path):
    cfg_file = tmp_path / "slategen.yaml"
    cfg_file.write_text("", encoding="utf-8")
    cfg = load_config(cfg_file)
    assert cfg.design.frame_thickness == 22.0


def test_missing_config_file_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        load_config(tmp_path / "missing.yaml")


def test_top_level_must_be_mapping(tmp_path: Path):
    cfg_file = tmp_path / "slategen.yaml"
    cfg_file.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="YAML mapping"):
        load_config(cfg_file)


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"design": {"footer_share": 1.5}}, "design.footer_share"),
        ({"design": {"font_size": "big"}}, "design.font_size"),
        ({"design": {"min_gap_ratio": 0.7}}, "max_gap_ratio"),
        ({"design": {"max_iterations": True}}, "design.max_iterations"),
        ({"output": {"jpeg_quality": 0}}, "jpeg_quality"),
        ({"colors": {"panel": "#12"}}, "colors.panel"),
        ({"resolver": {"max_search_pages": 0}}, "max_search_pages"),
        ({"paths": []}, "paths"),
    ],
)
def test_invalid_values_are_rejected(tmp_path: Path, raw, message):
    with pytest.raises(ValueError, match=message):
        AppConfig.from_mapping(raw, None, root_dir=tmp_path)
