import json
import logging
import tempfile
from pathlib import Path

import pytest

from slategen.config import AppConfig
from slategen.esrb import (
    RatingNotFound,
    RatingResolver,
    parse_detail_page,
    parse_search_results,
    rating_from_icon_url,
    resolve_cache_dir,
    split_descriptors,
)
from slategen.models import RatingCategory

ICON_URL = "https://www.esrb.org/wp-content/uploads/2019/05/{code}.svg"

DETAIL_PAGE = """
<html><body>
<div class="synopsis-header"><h1>  Borderlands 4 </h1></div>
<div class="platforms-txt">PlayStation 5, Xbox Series, Windows PC</div>
<div class="platforms-txt">Nintendo Switch 2</div>
<div class="info-img"><img src="https://www.esrb.org/wp-content/uploads/2019/05/M.svg" alt="M"></div>
<div class="description">
  Content Descriptors: Blood and Gore, Intense Violence, Sexual Themes, Strong Language
</div>
<div class="other-info"><ul><li>In-Game Purchases</li><li> Users Interact </li></ul></div>
</body></html>
"""


def _game(title: str, *, code: str = "T", platforms: str = "Windows PC", descriptors: str = "Violence", href: str = "") -> str:
    return f"""
    <div class="game">
      <div class="heading"><h2><a href="{href}">{title}</a></h2>
        <div class="platforms">{platforms}</div></div>
      <div class="content"><img src="{ICON_URL.format(code=code)}">
        <table><tr><td>{code}</td><td>{descriptors}</td></tr></table></div>
    </div>
    """


def _page(*games: str) -> str:
    return "<html><body><div class=\"results\">" + "".join(games) + "</div></body></html>"


class FakeClient:
    def __init__(self, pages: dict[int, str] | None = None, details: dict[str, str] | None = None) -> None:
        self.pages = pages or {}
        self.details = details or {}
        self.calls: list[tuple[str, dict]] = []

    def get_text(self, url: str, *, params=None) -> str:
        self.calls.append((url, dict(params or {})))
        if params is not None:
            return self.pages.get(params["pg"], _page())
        return self.details[url]


class OfflineClient:
    def get_text(self, url: str, *, params=None) -> str:
        raise AssertionError(f"unexpected network access: {url}")


def _resolver(cfg: AppConfig, client) -> RatingResolver:
    return RatingResolver(cfg.resolver, cfg.paths.cache_dir, client=client)


def test_exact_match_beats_earlier_partial(cfg: AppConfig):
    client = FakeClient(
        pages={
            1: _page(
                _game("Borderlands 4 Deluxe Edition", code="T"),
                _game("Borderlands 4", code="M", descriptors="Blood and Gore, Intense Violence"),
            )
        }
    )
    record = _resolver(cfg, client).resolve_by_title("borderlands  4")

    assert record.title == "Borderlands 4"
    assert record.rating_category is RatingCategory.MATURE
    assert record.descriptors == ("Blood and Gore", "Intense Violence")
    assert len(client.calls) == 1
    url, params = client.calls[0]
    assert url == "https://www.esrb.org/search/"
    assert params == {"searchKeyword": "borderlands  4", "platform": "All Platforms", "pg": 1}


def test_exact_match_on_later_page(cfg: AppConfig):
    client = FakeClient(
        pages={
            1: _page(_game("Halo Infinite Multiplayer")),
            2: _page(_game("Halo Infinite", code="T")),
        }
    )
    record = _resolver(cfg, client).resolve_by_title("Halo Infinite")
    assert record.title == "Halo Infinite"
    assert [params["pg"] for _, params in client.calls] == [1, 2]


def test_partial_match_from_first_page_after_all_pages(cfg: AppConfig):
    client = FakeClient(pages={1: _page(_game("Halo Infinite Multiplayer", code="T"))})
    record = _resolver(cfg, client).resolve_by_title("Halo Infinite")
    assert record.title == "Halo Infinite Multiplayer"
    assert [params["pg"] for _, params in client.calls] == [1, 2, 3]


def test_platform_narrows_exact_match(cfg: AppConfig):
    client = FakeClient(
        pages={
            1: _page(
                _game("Tetris", code="E", platforms="Nintendo Switch"),
                _game("Tetris", code="T", platforms="PlayStation 5, Windows PC"),
            )
        }
    )
    record = _resolver(cfg, client).resolve_by_title("Tetris", "PlayStation 5")
    assert record.rating_category is RatingCategory.TEEN
    assert record.platforms == "PlayStation 5, Windows PC"
    assert client.calls[0][1]["platform"] == "PlayStation 5"


def test_platform_falls_back_to_any_platform(cfg: AppConfig):
    client = FakeClient(pages={1: _page(_game("Tetris", code="E", platforms="Nintendo Switch"))})
    record = _resolver(cfg, client).resolve_by_title("Tetris", "Xbox Series")
    assert record.rating_category is RatingCategory.EVERYONE


def test_top_result_used_as_last_resort(cfg: AppConfig, caplog):
    client = FakeClient(pages={1: _page(_game("Something Else Entirely", code="AO"))})
    with caplog.at_level(logging.WARNING, logger="slategen.esrb"):
        record = _resolver(cfg, client).resolve_by_title("Unrelated")
    assert record.rating_category is RatingCategory.ADULTS_ONLY
    assert "Using top result" in caplog.text


def test_no_results_raises_rating_not_found(cfg: AppConfig):
    with pytest.raises(RatingNotFound, match="not found"):
        _resolver(cfg, FakeClient()).resolve_by_title("Nothing")


def test_search_hit_with_ratings_link_scrapes_detail_page(cfg: AppConfig):
    detail_url = "https://www.esrb.org/ratings/40649/"
    client = FakeClient(
        pages={1: _page(_game("Borderlands 4", href="https://www.esrb.org/ratings/40649/borderlands-4/"))},
        details={detail_url: DETAIL_PAGE},
    )
    record = _resolver(cfg, client).resolve_by_title("Borderlands 4")
    assert record.esrb_id == 40649
    assert record.esrb_url == detail_url
    assert record.interactive_elements == ("In-Game Purchases", "Users Interact")


def test_parse_detail_page_extracts_fields():
    record = parse_detail_page(DETAIL_PAGE, esrb_id=40649, url="https://www.esrb.org/ratings/40649/")
    assert record.title == "Borderlands 4"
    assert record.rating_category is RatingCategory.MATURE
    assert record.descriptors == (
        "Blood and Gore",
        "Intense Violence",
        "Sexual Themes",
        "Strong Language",
    )
    # Only the first platforms block is used.
    assert record.platforms == "PlayStation 5, Xbox Series, Windows PC"


def test_parse_detail_page_without_title_fails():
    with pytest.raises(RatingNotFound, match="Could not extract game title"):
        parse_detail_page("<html><body><h1>Oops</h1></body></html>", esrb_id=1, url="u")


def test_parse_search_results_reads_each_game():
    candidates = parse_search_results(_page(_game("A Game", code="E"), _game("B  Game", code="RP")))
    assert [c.display_title for c in candidates] == ["A Game", "B Game"]
    assert candidates[1].title == "b game"
    assert candidates[0].descriptors_text == "Violence"


def test_resolve_by_url_fetches_and_caches(cfg: AppConfig):
    detail_url = "https://www.esrb.org/ratings/40649/"
    client = FakeClient(details={detail_url: DETAIL_PAGE})
    record = _resolver(cfg, client).resolve_by_url("https://www.esrb.org/ratings/40649/borderlands-4/")

    cache_file = cfg.paths.cache_dir / "40649.json"
    assert cache_file.is_file()
    assert json.loads(cache_file.read_text(encoding="utf-8"))["title"] == "Borderlands 4"

    cached = _resolver(cfg, OfflineClient()).resolve_by_id(40649)
    assert cached == record


def test_force_refresh_bypasses_cache(cfg: AppConfig):
    detail_url = "https://www.esrb.org/ratings/40649/"
    client = FakeClient(details={detail_url: DETAIL_PAGE})
    resolver = _resolver(cfg, client)
    resolver.resolve_by_id(40649)
    resolver.resolve_by_id(40649)
    assert len(client.calls) == 1
    resolver.resolve_by_url(detail_url, force=True)
    assert len(client.calls) == 2


def test_unreadable_cache_is_refetched(cfg: AppConfig):
    cfg.paths.cache_dir.mkdir(parents=True, exist_ok=True)
    (cfg.paths.cache_dir / "40649.json").write_text("{not json", encoding="utf-8")
    detail_url = "https://www.esrb.org/ratings/40649/"
    client = FakeClient(details={detail_url: DETAIL_PAGE})
    record = _resolver(cfg, client).resolve_by_id(40649)
    assert record.title == "Borderlands 4"
    assert len(client.calls) == 1


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/ratings/40649/",
        "https://www.esrb.org/search/?searchKeyword=halo",
        "not a url",
    ],
)
def test_resolve_by_url_rejects_other_urls(cfg: AppConfig, url):
    with pytest.raises(ValueError, match="Invalid URL format"):
        _resolver(cfg, OfflineClient()).resolve_by_url(url)


@pytest.mark.parametrize(
    "url, expected",
    [
        (ICON_URL.format(code="E"), RatingCategory.EVERYONE),
        (ICON_URL.format(code="E10plus"), RatingCategory.EVERYONE_10_PLUS),
        ("https://cdn.example/T.png?ver=2", RatingCategory.TEEN),
        (ICON_URL.format(code="M"), RatingCategory.MATURE),
        (ICON_URL.format(code="AO"), RatingCategory.ADULTS_ONLY),
        (ICON_URL.format(code="RP"), RatingCategory.RATING_PENDING),
        ("https://cdn.example/rating-teen.png", RatingCategory.TEEN),
        ("https://cdn.example/unknown.svg", RatingCategory.RATING_PENDING),
        ("", RatingCategory.RATING_PENDING),
    ],
)
def test_rating_from_icon_url(url, expected):
    assert rating_from_icon_url(url) is expected


def test_split_descriptors_strips_label():
    assert split_descriptors("Content Descriptors:  Blood,\n  Violence ,") == ("Blood", "Violence")
    assert split_descriptors("") == ()


def test_cache_dir_falls_back_to_temp(tmp_path: Path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path / "tmp"))
    resolved = resolve_cache_dir(blocker / "cache")
    assert resolved == tmp_path / "tmp" / "esrb-cache"
    assert resolved.is_dir()


def test_detail_page_with_unclosed_list_items():
    markup = DETAIL_PAGE.replace(
        "<ul><li>In-Game Purchases</li><li> Users Interact </li></ul>",
        "<ul><li>In-Game Purchases<li>Users Interact<li>Shares Location</ul>",
    )
    record = parse_detail_page(markup, esrb_id=40649, url="https://www.esrb.org/ratings/40649/")
    assert record.interactive_elements == ("In-Game Purchases", "Users Interact", "Shares Location")


def test_search_results_with_unclosed_table_cells():
    markup = _page(
        '<div class="game"><div class="heading"><h2><a href="">Tetris</a></h2>'
        '<div class="platforms">Nintendo Switch</div></div>'
        f'<div class="content"><img src="{ICON_URL.format(code="E")}">'
        "<table><tr><td>E<td>Mild Fantasy Violence<tr><td>x<td>y</table></div></div>"
    )
    (candidate,) = parse_search_results(markup)
    assert candidate.descriptors_text == "Mild Fantasy Violence"
    assert candidate.display_platforms == "Nintendo Switch"
