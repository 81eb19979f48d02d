"""Domain models shared across the slate pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping


NO_DESCRIPTORS = "No Descriptors"
NOT_RATED_PHRASE = "not rated by the esrb"

# Inclusive bounds as (width, height) terms: 16:9 .. 21:9.
MIN_ASPECT_TERMS = (16, 9)
MAX_ASPECT_TERMS = (21, 9)


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _str_tuple(value: Any, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Expected list for '{field_name}'")
    out: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str):
            raise ValueError(f"Expected string for '{field_name}[{idx}]'")
        if item.strip():
            out.append(item.strip())
    return tuple(out)


class RatingCategory(str, Enum):
    """Rating categories; values double as icon asset file stems."""

    EVERYONE = "E"
    EVERYONE_10_PLUS = "E10plus"
    TEEN = "T"
    MATURE = "M"
    ADULTS_ONLY = "AO"
    RATING_PENDING = "RP"

    @property
    def code(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> RatingCategory:
        key = " ".join(str(value).split()).casefold()
        category = _CATEGORY_ALIASES.get(key)
        if category is None:
            allowed = ", ".join(item.value for item in cls)
            raise ValueError(f"Unknown rating category '{value}'. Expected one of: {allowed}")
        return category


_CATEGORY_ALIASES: dict[str, RatingCategory] = {
    "e": RatingCategory.EVERYONE,
    "everyone": RatingCategory.EVERYONE,
    "e10plus": RatingCategory.EVERYONE_10_PLUS,
    "e10+": RatingCategory.EVERYONE_10_PLUS,
    "e10": RatingCategory.EVERYONE_10_PLUS,
    "everyone 10+": RatingCategory.EVERYONE_10_PLUS,
    "everyone10+": RatingCategory.EVERYONE_10_PLUS,
    "t": RatingCategory.TEEN,
    "teen": RatingCategory.TEEN,
    "m": RatingCategory.MATURE,
    "mature": RatingCategory.MATURE,
    "mature 17+": RatingCategory.MATURE,
    "ao": RatingCategory.ADULTS_ONLY,
    "adults only": RatingCategory.ADULTS_ONLY,
    "adults only 18+": RatingCategory.ADULTS_ONLY,
    "adultsonly": RatingCategory.ADULTS_ONLY,
    "rp": RatingCategory.RATING_PENDING,
    "rating pending": RatingCategory.RATING_PENDING,
    "ratingpending": RatingCategory.RATING_PENDING,
}


class ResolutionTier(Enum):
    STANDARD = (1920, 1080)
    HIGH = (3840, 2160)

    @property
    def width(self) -> int:
        return self.value[0]

    @property
    def height(self) -> int:
        return self.value[1]


class OutputFormat(Enum):
    PNG = "PNG"
    JPEG = "JPEG"

    @classmethod
    def from_path(cls, path: str | Path) -> OutputFormat:
        suffix = Path(path).suffix.casefold()
        if suffix in {".jpg", ".jpeg"}:
            return cls.JPEG
        return cls.PNG

    @staticmethod
    def is_supported_suffix(path: str | Path) -> bool:
        return Path(path).suffix.casefold() in {".png", ".jpg", ".jpeg"}


@dataclass(frozen=True, slots=True)
class AspectRatio:
    """Content aspect ratio as integer width:height terms."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Aspect ratio values must be positive integers.")
        min_w, min_h = MIN_ASPECT_TERMS
        max_w, max_h = MAX_ASPECT_TERMS
        if self.width * min_h < min_w * self.height or self.width * max_h > max_w * self.height:
            raise ValueError(
                f"Aspect ratio must be between {min_w}:{min_h} and {max_w}:{max_h}. "
                f"Provided: {self}"
            )

    def __str__(self) -> str:
        return f"{self.width}:{self.height}"

    @property
    def height_factor(self) -> float:
        """Height divided by width (9/16 for 16:9)."""
        return self.height / self.width

    @classmethod
    def parse(cls, value: str) -> AspectRatio | None:
        """Parse 'W:H' or 'auto'. Returns None for automatic selection."""
        text = value.strip().casefold()
        if text == "auto":
            return None
        parts = text.split(":")
        if len(parts) != 2 or not all(part.isdigit() for part in parts):
            raise ValueError(
                'Aspect ratio must be in the format W:H (e.g., 16:9) or "auto".'
            )
        return cls(width=int(parts[0]), height=int(parts[1]))

    @classmethod
    def candidates(cls) -> tuple[AspectRatio, ...]:
        """Auto-selection candidates, narrowest first (16:9 .. 21:9)."""
        height = MIN_ASPECT_TERMS[1]
        return tuple(
            cls(width=width, height=height)
            for width in range(MIN_ASPECT_TERMS[0], MAX_ASPECT_TERMS[0] + 1)
        )


STANDARD_ASPECT = AspectRatio(16, 9)
WIDEST_ASPECT = AspectRatio(21, 9)


@dataclass(frozen=True, slots=True)
class RatingRecord:
    """Resolved rating data for one title."""

    title: str
    rating_category: RatingCategory
    descriptors: tuple[str, ...] = ()
    interactive_elements: tuple[str, ...] = ()
    platforms: str | None = None
    esrb_id: int | None = None
    esrb_url: str | None = None

    @property
    def filtered_interactive_elements(self) -> tuple[str, ...]:
        return filter_interactive_elements(self.interactive_elements)

    @property
    def has_no_descriptors(self) -> bool:
        return is_no_descriptors(self.descriptors)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RatingRecord:
        title_raw = data.get("title")
        title = title_raw.strip() if isinstance(title_raw, str) else ""
        category = RatingCategory.parse(_require_str(data.get("rating_category"), "rating_category"))
        platforms_raw = data.get("platforms")
        platforms = platforms_raw.strip() if isinstance(platforms_raw, str) and platforms_raw.strip() else None
        esrb_id_raw = data.get("esrb_id")
        if esrb_id_raw is not None and not isinstance(esrb_id_raw, int):
            raise ValueError("Expected integer for 'esrb_id'")
        esrb_url_raw = data.get("esrb_url")
        esrb_url = esrb_url_raw.strip() if isinstance(esrb_url_raw, str) and esrb_url_raw.strip() else None
        return cls(
            title=title,
            rating_category=category,
            descriptors=_str_tuple(data.get("descriptors"), "descriptors"),
            interactive_elements=_str_tuple(data.get("interactive_elements"), "interactive_elements"),
            platforms=platforms,
            esrb_id=esrb_id_raw,
            esrb_url=esrb_url,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "rating_category": self.rating_category.code,
            "descriptors": list(self.descriptors),
            "interactive_elements": list(self.interactive_elements),
            "platforms": self.platforms,
            "esrb_id": self.esrb_id,
            "esrb_url": self.esrb_url,
        }


@dataclass(frozen=True, slots=True)
class RenderOptions:
    """Per-render settings. `aspect_ratio=None` requests automatic selection."""

    margin: int = 0
    resolution: ResolutionTier = ResolutionTier.STANDARD
    aspect_ratio: AspectRatio | None = None
    output_format: OutputFormat = OutputFormat.PNG

    def __post_init__(self) -> None:
        if not isinstance(self.margin, int) or self.margin < 0:
            raise ValueError("margin must be a non-negative integer")

    @property
    def letterboxed(self) -> bool:
        return self.margin > 0

    @property
    def is_auto(self) -> bool:
        return self.aspect_ratio is None


def filter_interactive_elements(elements: Iterable[str]) -> tuple[str, ...]:
    """Drop blank entries and 'not rated' placeholders."""
    out: list[str] = []
    for element in elements:
        cleaned = element.strip()
        if not cleaned or NOT_RATED_PHRASE in cleaned.casefold():
            continue
        out.append(cleaned)
    return tuple(out)


def is_no_descriptors(descriptors: Iterable[str]) -> bool:
    items = tuple(descriptors)
    return len(items) == 1 and items[0] == NO_DESCRIPTORS


def split_csv(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())
