"""CLI entrypoint for the rating slate generator."""

from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path
from typing import Sequence

from .assets import download_icons, format_icon_lines
from .config import AppConfig, load_config
from .esrb import RatingResolver
from .models import (
    AspectRatio,
    OutputFormat,
    RatingCategory,
    RatingRecord,
    RenderOptions,
    ResolutionTier,
    split_csv,
)
from .renderer import SlateRenderer
from .util import setup_logging

LOGGER = logging.getLogger("slategen.cli")

DEFAULT_CONFIG_NAME = "slategen.yaml"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slategen",
        description="Generates ESRB rating slates from a game title, ratings URL, or manual rating.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--config",
            default=None,
            help=f"Path to YAML config (default: ./{DEFAULT_CONFIG_NAME} when present).",
        )
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    gen_p = subparsers.add_parser("generate", help="Render one rating slate image.")
    add_common(gen_p)
    gen_p.add_argument("-g", "--game", help="Game title to search for.")
    gen_p.add_argument("-u", "--url", help="ESRB ratings page URL.")
    gen_p.add_argument("-r", "--rating", help="Rating category (e.g., E, E10plus, T, M, AO, RP).")
    gen_p.add_argument("-d", "--descriptors", help="Comma-separated list of content descriptors.")
    gen_p.add_argument("-i", "--interactive", help="Comma-separated list of interactive elements.")
    gen_p.add_argument("-p", "--platform", help="Game platform used to narrow the search.")
    gen_p.add_argument("-o", "--output", default="output/output.png", help="Output file path.")
    gen_p.add_argument(
        "-a",
        "--aspect-ratio",
        default="auto",
        help="Content aspect ratio between 16:9 and 21:9, or 'auto'.",
    )
    gen_p.add_argument(
        "-m",
        "--margin",
        type=int,
        default=0,
        help="Margin from screen edges in pixels; 0 sizes the canvas to the content.",
    )
    gen_p.add_argument(
        "--4k",
        dest="high_res",
        action="store_true",
        help="Generate in 4K resolution (3840x2160).",
    )
    gen_p.add_argument(
        "--force-refresh",
        action="store_true",
        help="Ignore cached ratings and fetch them again.",
    )

    icons_p = subparsers.add_parser("fetch-icons", help="Download rating icon assets.")
    add_common(icons_p)
    icons_p.add_argument("--force", action="store_true", help="Re-download icons that already exist.")

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    config_path = args.config
    if config_path is None and Path(DEFAULT_CONFIG_NAME).is_file():
        config_path = DEFAULT_CONFIG_NAME
    cfg = load_config(config_path)
    log_file = cfg.paths.logs_dir / "slategen.log" if cfg.source_path is not None else None
    setup_logging(log_file, verbose=args.verbose)
    return cfg


def _resolve_record(cfg: AppConfig, args: argparse.Namespace) -> RatingRecord | None:
    resolved: RatingRecord | None = None
    if args.url or args.game:
        resolver = RatingResolver(cfg.resolver, cfg.paths.cache_dir)
        if args.url:
            LOGGER.info("Starting process for URL: \"%s\"", args.url)
            resolved = resolver.resolve_by_url(args.url, force=bool(args.force_refresh))
        else:
            suffix = f" on platform: \"{args.platform}\"" if args.platform else ""
            LOGGER.info("Starting process for game: \"%s\"%s", args.game, suffix)
            resolved = resolver.resolve_by_title(args.game, args.platform)
    else:
        LOGGER.info("Starting manual generation process")

    if args.rating:
        category = RatingCategory.parse(args.rating)
    elif resolved is not None:
        category = resolved.rating_category
    else:
        return None

    record = resolved or RatingRecord(title="", rating_category=category)
    overrides: dict[str, object] = {"rating_category": category}
    if args.descriptors:
        overrides["descriptors"] = split_csv(args.descriptors)
    if args.interactive:
        overrides["interactive_elements"] = split_csv(args.interactive)
    return dataclasses.replace(record, **overrides)


def _output_path(raw: str) -> Path:
    path = Path(raw).expanduser().resolve()
    if not OutputFormat.is_supported_suffix(path):
        path = path.with_name(path.name + ".png")
        LOGGER.info(
            "Output file extension not supported or missing. Appending .png to filename: %s",
            path.name,
        )
    return path


def _run_generate(cfg: AppConfig, args: argparse.Namespace) -> int:
    if not (args.game or args.url or args.rating):
        LOGGER.error(
            "Error: You must provide either a game title (-g), an ESRB URL (-u), or a manual rating (-r)."
        )
        return 1
    try:
        aspect_ratio = AspectRatio.parse(args.aspect_ratio)
        options = RenderOptions(
            margin=args.margin,
            resolution=ResolutionTier.HIGH if args.high_res else ResolutionTier.STANDARD,
            aspect_ratio=aspect_ratio,
        )
    except ValueError as exc:
        LOGGER.error("Error: %s", exc)
        return 1
    if options.resolution is ResolutionTier.HIGH:
        LOGGER.info("Resolution: 4K (3840x2160)")

    try:
        record = _resolve_record(cfg, args)
        if record is None:
            LOGGER.error(
                "Error: Rating category is missing. If not scraping, you must provide a rating via -r."
            )
            return 1
        result = SlateRenderer(cfg).render_to_file(record, _output_path(args.output), options)
    except Exception as exc:
        LOGGER.error("Error: %s", exc)
        return 1

    width, height = result.size
    LOGGER.info("Rendered %dx%d slate at aspect ratio %s.", width, height, result.aspect_ratio)
    LOGGER.info("Done.")
    return 0


def _run_fetch_icons(cfg: AppConfig, *, force: bool) -> int:
    report = download_icons(cfg, force=force)
    for line in format_icon_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "generate":
        return _run_generate(cfg, args)
    if command == "fetch-icons":
        return _run_fetch_icons(cfg, force=bool(args.force))
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
