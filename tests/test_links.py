import asyncio

from pageperf.links import (
    HOMEPAGE_SELECTORS,
    HomepageSearch,
    detect_link,
    find_homepage_link,
    find_other_link,
    is_other_page_href,
    is_short_path,
)

from fakes import FakePage

PAGE_URL = "https://example.com/blog/post-1"


def find(anchors, url=PAGE_URL):
    page = FakePage(url=url, anchors=anchors)
    return page, asyncio.run(find_homepage_link(page))


def test_root_link_stops_the_search():
    page, result = find({'a[href="/"]': ["/"]})

    assert result.found
    assert result.href == "https://example.com/"
    assert page.selectors_seen == [HOMEPAGE_SELECTORS[0]]


def test_no_same_origin_anchor_is_not_found():
    anchors = {
        'a[href*="/"]': ["https://other.org/", "https://cdn.example.net/x"],
        'a:has(img)': ["https://twitter.com/example"],
    }
    page, result = find(anchors)

    assert not result.found
    assert result.href == "N/A"
    assert page.selectors_seen == HOMEPAGE_SELECTORS


def test_index_filename_link():
    _, result = find({'a[href="/index.html"]': ["/index.html"]})
    assert result.found
    assert result.href == "https://example.com/index.html"


def test_root_in_a_later_anchor_beats_short_path_of_same_selector():
    _, result = find({'a:has(img[alt*="logo" i])': ["/about", "https://example.com/"]})
    assert result.href == "https://example.com/"


def test_short_path_fallback_ends_search_after_its_selector():
    page, result = find({
        'a:has-text("Home")': ["/deep/nested/page", "/welcome"],
        'a[rel="home"]': ["/"],
    })

    assert result.href == "https://example.com/welcome"
    assert 'a[rel="home"]' not in page.selectors_seen


def test_off_origin_and_empty_hrefs_are_ignored():
    _, result = find({'a:has(img)': [None, "", "https://other.org/", "/"]})
    assert result.href == "https://example.com/"


def test_search_state_keeps_first_fallback():
    search = HomepageSearch("https://example.com")
    search.consider("/a", PAGE_URL)
    search.consider("/b", PAGE_URL)
    assert search.href == "https://example.com/a"
    assert not search.done
    search.end_selector()
    assert search.done


def test_short_paths():
    assert is_short_path("/")
    assert is_short_path("/blog")
    assert is_short_path("/a/b/index.html")
    assert not is_short_path("/a/b")


def test_other_link_skips_index_fragments_and_foreign_hosts():
    page = FakePage(url="https://example.com/", anchors={
        "a": ["/", "#top", "?q=1", "mailto:me@example.com", "https://other.org/x", "/contact"],
    })
    result = asyncio.run(find_other_link(page))
    assert result.found
    assert result.href == "/contact"


def test_other_link_not_found():
    page = FakePage(url="https://example.com/", anchors={"a": ["/", "/index.html"]})
    result = asyncio.run(detect_link(page, "other"))
    assert not result.found
    assert result.href == "N/A"


def test_is_other_page_href_accepts_same_host_absolute():
    assert is_other_page_href("https://example.com/about", "https://example.com/")
    assert not is_other_page_href("//cdn.other.org/x", "https://example.com/")
