"""Rating record resolver: ESRB search, detail page scraping, and JSON cache."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from html.parser import HTMLParser
from pathlib import Path
from typing import Callable, Iterator, Sequence

from .config import ResolverConfig
from .models import RatingCategory, RatingRecord
from .net import HttpClient
from .util import write_json


_RATINGS_URL_RE = re.compile(r"/ratings/(\d+)(?:/|$)")
_DESCRIPTORS_PREFIX_RE = re.compile(r"^\s*Content Descriptors:\s*", re.IGNORECASE)
_VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)
# start tag -> (open tags it closes, tags that stop the search)
_IMPLIED_END_TAGS: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "li": (frozenset({"li"}), frozenset({"ul", "ol"})),
    "dt": (frozenset({"dt", "dd"}), frozenset({"dl"})),
    "dd": (frozenset({"dt", "dd"}), frozenset({"dl"})),
    "p": (frozenset({"p"}), frozenset({"div", "li", "td", "th", "section", "article", "body"})),
    "td": (frozenset({"td", "th"}), frozenset({"tr", "table"})),
    "th": (frozenset({"td", "th"}), frozenset({"tr", "table"})),
    "tr": (frozenset({"tr", "td", "th"}), frozenset({"table", "tbody", "thead", "tfoot"})),
}

_LOGGER = logging.getLogger("slategen.esrb")


class RatingNotFound(LookupError):
    """No rating could be resolved for the request."""


# --- minimal HTML tree --------------------------------------------------------


@dataclass(slots=True)
class _Element:
    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    children: list[_Element | str] = field(default_factory=list)

    @property
    def classes(self) -> frozenset[str]:
        return frozenset(self.attrs.get("class", "").split())

    def text(self) -> str:
        parts: list[str] = []
        for child in self.children:
            parts.append(child if isinstance(child, str) else child.text())
        return "".join(parts)

    def iter_descendants(self) -> Iterator[_Element]:
        for child in self.children:
            if isinstance(child, _Element):
                yield child
                yield from child.iter_descendants()

    def select(self, selector: str) -> list[_Element]:
        """Descendant selectors made of `tag`, `.class` or `tag.class` parts."""
        scope: list[_Element] = [self]
        for part in selector.split():
            tag, _, cls = part.partition(".")
            seen: set[int] = set()
            matched: list[_Element] = []
            for root in scope:
                for el in root.iter_descendants():
                    if id(el) in seen:
                        continue
                    if (not tag or el.tag == tag) and (not cls or cls in el.classes):
                        seen.add(id(el))
                        matched.append(el)
            scope = matched
        return scope

    def select_one(self, selector: str) -> _Element | None:
        found = self.select(selector)
        return found[0] if found else None


class _TreeBuilder(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = _Element(tag="#document")
        self._stack: list[_Element] = [self.root]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._close_implied(tag)
        element = _Element(tag=tag, attrs={k: v or "" for k, v in attrs})
        self._stack[-1].children.append(element)
        if tag not in _VOID_TAGS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._stack[-1].children.append(_Element(tag=tag, attrs={k: v or "" for k, v in attrs}))

    def handle_endtag(self, tag: str) -> None:
        for idx in range(len(self._stack) - 1, 0, -1):
            if self._stack[idx].tag == tag:
                del self._stack[idx:]
                return

    def handle_data(self, data: str) -> None:
        self._stack[-1].children.append(data)

    def _close_implied(self, tag: str) -> None:
        """Close an open sibling whose end tag HTML lets authors omit (`<li>a<li>b`)."""
        rule = _IMPLIED_END_TAGS.get(tag)
        if rule is None:
            return
        siblings, boundaries = rule
        cut: int | None = None
        for idx in range(len(self._stack) - 1, 0, -1):
            open_tag = self._stack[idx].tag
            if open_tag in boundaries:
                break
            if open_tag in siblings:
                cut = idx
        if cut is not None:
            del self._stack[cut:]


def _parse_html(markup: str) -> _Element:
    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    return builder.root


def _text_of(root: _Element, selector: str) -> str:
    element = root.select_one(selector)
    return " ".join(element.text().split()) if element is not None else ""


# --- matching -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SearchCandidate:
    title: str
    display_title: str
    platforms: str
    display_platforms: str
    rating_src: str
    descriptors_text: str
    href: str = ""


MatchStrategy = Callable[[Sequence[SearchCandidate], str, str | None], SearchCandidate | None]


def _in_platform(candidates: Sequence[SearchCandidate], platform: str | None) -> list[SearchCandidate]:
    if platform is None:
        return list(candidates)
    return [c for c in candidates if platform in c.platforms]


def match_exact(
    candidates: Sequence[SearchCandidate], query: str, platform: str | None
) -> SearchCandidate | None:
    return next((c for c in _in_platform(candidates, platform) if c.title == query), None)


def match_partial(
    candidates: Sequence[SearchCandidate], query: str, platform: str | None
) -> SearchCandidate | None:
    return next((c for c in _in_platform(candidates, platform) if query in c.title), None)


def match_exact_any_platform(
    candidates: Sequence[SearchCandidate], query: str, platform: str | None
) -> SearchCandidate | None:
    if platform is None:
        return None
    return match_exact(candidates, query, None)


def match_partial_any_platform(
    candidates: Sequence[SearchCandidate], query: str, platform: str | None
) -> SearchCandidate | None:
    if platform is None:
        return None
    return match_partial(candidates, query, None)


def match_first(
    candidates: Sequence[SearchCandidate], query: str, platform: str | None
) -> SearchCandidate | None:
    if not candidates:
        return None
    _LOGGER.warning("Specific match not found. Using top result: %s", candidates[0].display_title)
    return candidates[0]


# Tried in order on page-1 results once no page had an exact match.
FALLBACK_STRATEGIES: tuple[MatchStrategy, ...] = (
    match_partial,
    match_exact_any_platform,
    match_partial_any_platform,
    match_first,
)


# --- resolver -----------------------------------------------------------------


class RatingResolver:
    """Resolve a RatingRecord by title search, ratings URL, or ratings id."""

    def __init__(
        self,
        cfg: ResolverConfig,
        cache_dir: Path,
        *,
        client: HttpClient | None = None,
    ) -> None:
        self.cfg = cfg
        self.client = client or HttpClient(cfg)
        self.cache_dir = resolve_cache_dir(cache_dir)

    def resolve_by_title(self, query: str, platform: str | None = None) -> RatingRecord:
        _LOGGER.info("Searching for \"%s\" on ESRB...", query)
        wanted = normalize(query)
        wanted_platform = normalize(platform) if platform else None

        first_page: list[SearchCandidate] = []
        for page in range(1, self.cfg.max_search_pages + 1):
            if page > 1:
                _LOGGER.info(
                    "Exact match for \"%s\" not found on page %d. Checking page %d...",
                    query,
                    page - 1,
                    page,
                )
            candidates = self._fetch_candidates(query, platform, page)
            if page == 1:
                first_page = candidates
            exact = match_exact(candidates, wanted, wanted_platform)
            if exact is not None:
                return self._record_from_candidate(exact)

        for strategy in FALLBACK_STRATEGIES:
            match = strategy(first_page, wanted, wanted_platform)
            if match is not None:
                return self._record_from_candidate(match)
        raise RatingNotFound(f"Game \"{query}\" not found.")

    def resolve_by_url(self, url: str, force: bool = False) -> RatingRecord:
        match = _RATINGS_URL_RE.search(url)
        if match is None or "esrb.org" not in url.casefold():
            raise ValueError(f"Invalid URL format: {url}")
        return self.resolve_by_id(int(match.group(1)), force=force)

    def resolve_by_id(self, esrb_id: int, force: bool = False) -> RatingRecord:
        cache_path = self.cache_dir / f"{esrb_id}.json"
        if not force:
            cached = _read_cached_record(cache_path)
            if cached is not None:
                _LOGGER.info("Using cached rating for ESRB id %d", esrb_id)
                return cached

        url = self.ratings_url(esrb_id)
        markup = self.client.get_text(url)
        record = parse_detail_page(markup, esrb_id=esrb_id, url=url)
        write_json(cache_path, record.to_dict())
        _LOGGER.info("Found: %s [%s]", record.title, record.rating_category.code)
        return record

    def ratings_url(self, esrb_id: int) -> str:
        return f"{self.cfg.base_url}/ratings/{esrb_id}/"

    def _fetch_candidates(self, query: str, platform: str | None, page: int) -> list[SearchCandidate]:
        markup = self.client.get_text(
            f"{self.cfg.base_url}/search/",
            params={
                "searchKeyword": query,
                "platform": platform or "All Platforms",
                "pg": page,
            },
        )
        return parse_search_results(markup)

    def _record_from_candidate(self, candidate: SearchCandidate) -> RatingRecord:
        link = _RATINGS_URL_RE.search(candidate.href)
        if link is not None:
            return self.resolve_by_id(int(link.group(1)))

        record = RatingRecord(
            title=candidate.display_title,
            rating_category=rating_from_icon_url(candidate.rating_src),
            descriptors=split_descriptors(candidate.descriptors_text),
            platforms=candidate.display_platforms or None,
        )
        _LOGGER.info("Found: %s [%s]", record.title, record.rating_category.code)
        return record


def parse_search_results(markup: str) -> list[SearchCandidate]:
    root = _parse_html(markup)
    candidates: list[SearchCandidate] = []
    for game in root.select(".game"):
        heading = game.select_one(".heading a")
        title = " ".join(heading.text().split()) if heading is not None else ""
        platforms = _text_of(game, ".platforms")
        image = game.select_one(".content img")
        cells = game.select(".content td")
        candidates.append(
            SearchCandidate(
                title=normalize(title),
                display_title=title,
                platforms=normalize(platforms),
                display_platforms=platforms,
                rating_src=image.attrs.get("src", "") if image is not None else "",
                descriptors_text=cells[1].text() if len(cells) > 1 else "",
                href=heading.attrs.get("href", "") if heading is not None else "",
            )
        )
    return candidates


def parse_detail_page(markup: str, *, esrb_id: int, url: str) -> RatingRecord:
    root = _parse_html(markup)
    title = _text_of(root, ".synopsis-header h1")
    if not title:
        raise RatingNotFound("Could not extract game title")

    image = root.select_one(".info-img img")
    rating_src = image.attrs.get("src", "") if image is not None else ""
    description = root.select_one(".description")
    interactive = tuple(
        " ".join(item.text().split())
        for item in root.select(".other-info li")
        if item.text().strip()
    )
    platforms = _text_of(root, ".platforms-txt")
    return RatingRecord(
        title=title,
        rating_category=rating_from_icon_url(rating_src),
        descriptors=split_descriptors(description.text() if description is not None else ""),
        interactive_elements=interactive,
        platforms=platforms or None,
        esrb_id=esrb_id,
        esrb_url=url,
    )


def split_descriptors(raw: str) -> tuple[str, ...]:
    cleaned = _DESCRIPTORS_PREFIX_RE.sub("", " ".join(raw.split()))
    return tuple(part.strip() for part in re.split(r",\s*", cleaned) if part.strip())


_ICON_STEMS: dict[str, RatingCategory] = {
    "e": RatingCategory.EVERYONE,
    "e10plus": RatingCategory.EVERYONE_10_PLUS,
    "e10+": RatingCategory.EVERYONE_10_PLUS,
    "t": RatingCategory.TEEN,
    "m": RatingCategory.MATURE,
    "ao": RatingCategory.ADULTS_ONLY,
    "rp": RatingCategory.RATING_PENDING,
}


def rating_from_icon_url(url: str) -> RatingCategory:
    """Map a rating icon URL to its category; unknown icons mean Rating Pending."""
    filename = url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1].casefold()
    stem = filename.rsplit(".", 1)[0] if "." in filename else filename
    category = _ICON_STEMS.get(stem)
    if category is not None:
        return category
    if "e10" in stem or "everyone 10" in stem:
        return RatingCategory.EVERYONE_10_PLUS
    if "teen" in stem:
        return RatingCategory.TEEN
    if "mature" in stem:
        return RatingCategory.MATURE
    if "adults" in stem:
        return RatingCategory.ADULTS_ONLY
    if "everyone" in stem:
        return RatingCategory.EVERYONE
    return RatingCategory.RATING_PENDING


def normalize(text: str) -> str:
    return " ".join(text.split()).casefold()


def resolve_cache_dir(preferred: Path) -> Path:
    """Use `preferred` when writable, else a directory under the system temp dir."""
    fallback = Path(tempfile.gettempdir()) / "esrb-cache"
    for candidate in (preferred, fallback):
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            _LOGGER.warning("Cache directory %s unavailable: %s", candidate, exc)
            continue
        if os.access(candidate, os.W_OK):
            if candidate != preferred:
                _LOGGER.info("Using fallback cache directory %s", candidate)
            return candidate
        _LOGGER.warning("Cache directory %s is not writable", candidate)
    raise OSError(f"No writable cache directory: tried {preferred} and {fallback}")


def _read_cached_record(path: Path) -> RatingRecord | None:
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("expected JSON object")
        return RatingRecord.from_mapping(raw)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Ignoring unreadable cache file %s: %s", path, exc)
        return None
