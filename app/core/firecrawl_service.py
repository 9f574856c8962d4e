"""Website page summaries via Firecrawl or a direct fetch.

Enrichment only needs a page's name and description. Firecrawl gives cleaner
results on JS-heavy sites when a key is configured; otherwise the page is
fetched directly and its <title> and meta description are read.
"""

import html
import logging
import re
from dataclasses import dataclass, field

import httpx
from bs4 import BeautifulSoup

from app.core.config import get_settings

logger = logging.getLogger(__name__)

FIRECRAWL_BASE_URL = "https://api.firecrawl.dev/v1"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class PageSummary:
    """Name/description extracted from a page."""

    url: str
    name: str = ""
    description: str = ""
    services: list[str] = field(default_factory=list)


def is_firecrawl_configured() -> bool:
    return bool(get_settings().FIRECRAWL_API_KEY)


async def scrape_website(url: str, timeout: float | None = None) -> PageSummary:
    """
    Scrape a website using the Firecrawl API.

    Args:
        url: The website URL to scrape
        timeout: Optional timeout override in seconds

    Returns:
        PageSummary built from Firecrawl page metadata

    Raises:
        ValueError: If FIRECRAWL_API_KEY not configured
        httpx.HTTPStatusError: If the API request fails
    """
    settings = get_settings()

    if not settings.FIRECRAWL_API_KEY:
        raise ValueError("FIRECRAWL_API_KEY not configured")

    request_timeout = timeout or settings.FIRECRAWL_TIMEOUT

    async with httpx.AsyncClient(timeout=request_timeout) as client:
        logger.info(f"Scraping website via Firecrawl: {url}")

        response = await client.post(
            f"{FIRECRAWL_BASE_URL}/scrape",
            headers={"Authorization": f"Bearer {settings.FIRECRAWL_API_KEY}"},
            json={
                "url": url,
                "formats": ["markdown"],
                "onlyMainContent": True,
            },
        )
        response.raise_for_status()

        data = response.json().get("data", {}) or {}
        metadata = data.get("metadata", {}) or {}
        markdown = data.get("markdown", "") or ""

        summary = PageSummary(
            url=url,
            name=_clean_text(metadata.get("ogSiteName") or metadata.get("title") or ""),
            description=_clean_text(metadata.get("description") or ""),
            services=_services_from_markdown(markdown),
        )

        logger.info(
            f"Scraped {url}: {len(markdown)} chars, "
            f"title: {summary.name or 'N/A'}"
        )

        return summary


async def fetch_page_summary(
    url: str,
    timeout: float,
    client: httpx.AsyncClient | None = None,
) -> PageSummary:
    """
    Fetch a page directly and read its title and meta description.

    Raises:
        httpx.HTTPError: On network failure, timeout or non-2xx status
    """
    html_text = await fetch_html(url, timeout, client=client)
    return PageSummary(
        url=url,
        name=extract_title(html_text),
        description=extract_meta_description(html_text),
    )


async def fetch_html(
    url: str,
    timeout: float,
    client: httpx.AsyncClient | None = None,
) -> str:
    """
    GET a page with a browser user agent and return its body text.

    Raises:
        httpx.HTTPError: On network failure, timeout or non-2xx status
    """
    headers = {"User-Agent": BROWSER_USER_AGENT}
    if client is not None:
        response = await client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
    else:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
            response = await own_client.get(url, headers=headers)
    response.raise_for_status()
    return response.text


async def get_page_summary_safe(url: str, timeout: float) -> PageSummary | None:
    """
    Summarize a website, preferring Firecrawl when configured.

    Use this when the page is optional evidence and failure should not break
    the flow. Returns None on any failure.
    """
    try:
        if is_firecrawl_configured():
            return await scrape_website(url, timeout)
        return await fetch_page_summary(url, timeout)
    except httpx.HTTPStatusError as e:
        logger.warning(f"Website fetch HTTP error for {url}: {e.response.status_code}")
        return None
    except httpx.TimeoutException:
        logger.warning(f"Website fetch timeout for {url}")
        return None
    except Exception as e:
        logger.warning(f"Website fetch error for {url}: {e}")
        return None


# =========================
# HTML helpers
# =========================


def extract_title(html_text: str) -> str:
    soup = BeautifulSoup(html_text, "html.parser")
    if soup.title is None:
        return ""
    return _clean_text(soup.title.get_text())


def extract_meta_description(html_text: str) -> str:
    """Return the page's meta description (name= first, then og:), or ""."""
    soup = BeautifulSoup(html_text, "html.parser")
    for attrs in (
        {"name": re.compile(r"^description$", re.IGNORECASE)},
        {"property": re.compile(r"^og:description$", re.IGNORECASE)},
    ):
        tag = soup.find("meta", attrs=attrs)
        content = tag.get("content") if tag else None
        if content and content.strip():
            return _clean_text(content)
    return ""


def _services_from_markdown(markdown: str, limit: int = 5) -> list[str]:
    """Pick short list items from the scraped page; these are usually service names."""
    services = []
    for line in markdown.splitlines():
        stripped = line.strip()
        if not stripped.startswith(("- ", "* ")):
            continue
        item = _clean_text(stripped[2:].strip("*_ "))
        if 2 < len(item) <= 60 and "](" not in item:
            services.append(item)
        if len(services) >= limit:
            break
    return services


def _clean_text(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", html.unescape(value)).strip()
