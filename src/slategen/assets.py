"""Icon asset download into the configured icons directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .config import AppConfig
from .models import RatingCategory
from .net import HttpClient
from .util import format_report_lines, write_bytes_atomic


_LOGGER = logging.getLogger("slategen.assets")


@dataclass(slots=True)
class IconDownloadReport:
    output_dir: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def download_icons(
    cfg: AppConfig,
    *,
    force: bool = False,
    client: HttpClient | None = None,
) -> IconDownloadReport:
    icons_dir = cfg.paths.icons_dir
    report = IconDownloadReport(output_dir=icons_dir)
    client = client or HttpClient(cfg.resolver)

    downloaded = 0
    skipped = 0
    failed: list[str] = []
    categories = list(RatingCategory)
    for idx, category in enumerate(categories, start=1):
        output_path = icons_dir / f"{category.code}.svg"
        if output_path.exists() and not force:
            skipped += 1
            _LOGGER.info("[icons] (%d/%d) kept existing %s", idx, len(categories), output_path.name)
            if not _looks_like_svg(output_path.read_bytes()):
                report.add_warning(
                    f"Kept existing {output_path.name} but it is not an SVG document; "
                    "re-run with --force to replace it"
                )
            continue

        url = f"{cfg.resolver.icon_base_url}{category.code}.svg"
        _LOGGER.info("[icons] (%d/%d) downloading %s", idx, len(categories), url)
        try:
            payload = client.get_bytes(url)
            if not _looks_like_svg(payload):
                raise ValueError("response is not an SVG document")
            write_bytes_atomic(output_path, payload)
        except Exception as exc:
            failed.append(f"{category.code}({exc})")
            _LOGGER.error("[icons] (%d/%d) failed %s: %s", idx, len(categories), category.code, exc)
            continue
        downloaded += 1

    report.summary = {
        "icons_total": len(categories),
        "icons_downloaded": downloaded,
        "icons_skipped": skipped,
        "icons_failed": len(failed),
    }
    report.add_info(
        "Icon download summary: "
        f"icons_total={len(categories)}, "
        f"icons_downloaded={downloaded}, "
        f"icons_skipped={skipped}, "
        f"icons_failed={len(failed)}"
    )
    if failed:
        report.add_error("Icon download failures: " + ", ".join(sorted(failed)))
    else:
        report.add_info(f"Icon files available in {icons_dir}")
    return report


def _looks_like_svg(payload: bytes) -> bool:
    return b"<svg" in payload[:4096].lower()


def format_icon_lines(report: IconDownloadReport) -> Sequence[str]:
    return format_report_lines(
        infos=report.infos,
        warnings=report.warnings,
        errors=report.errors,
        ok_message="Icon download completed with no errors.",
    )
