"""Extract match statistics links from a results listing page."""
import logging
from urllib.parse import urlparse

from selectolax.parser import HTMLParser

from fcbq_scraper.fetch.match_data import TextFetcher

logger = logging.getLogger(__name__)

STATS_PATH_FRAGMENT = "/estadistiques/"


def extract_match_links(html_content: str, site_origin: str) -> list[str]:
    """
    Extract every <a href> pointing at a match statistics page.
    Returns absolute URLs in document order, each once.
    """
    if not html_content:
        return []

    parser = HTMLParser(html_content)
    links: dict[str, None] = {}

    for anchor in parser.css("a[href]"):
        href = anchor.attributes.get("href")
        if not href or STATS_PATH_FRAGMENT not in href:
            continue
        links.setdefault(_normalize_url(href, site_origin), None)

    return list(links)


def _normalize_url(href: str, site_origin: str) -> str:
    """Make `href` absolute against the site origin."""
    href = href.strip()
    origin = site_origin.rstrip("/")

    if href.startswith("http://") or href.startswith("https://"):
        return href
    elif href.startswith("//"):
        return f"{urlparse(origin).scheme}:{href}"
    elif href.startswith("/"):
        return f"{origin}{href}"
    else:
        # Listing pages link relative to the site root, not the page
        return f"{origin}/{href}"


async def fetch_match_links(fetcher: TextFetcher, page_url: str, site_origin: str) -> list[str]:
    """Fetch a results page through the relays and extract its match links."""
    html = await fetcher.fetch_text(page_url)
    links = extract_match_links(html, site_origin)
    logger.info(f"Found {len(links)} statistics links on {page_url}")
    return links
