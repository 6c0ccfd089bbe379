# scraper.py
import logging
import re
from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.I)

# Limit size for LLM cost
MAX_CHARS = 12000
MIN_CHARS = 200

# Browser-like headers so news sites don't block us
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}

NOISE_TAGS = ["script", "style", "noscript", "nav", "header", "footer", "aside", "form", "figure"]


class ScrapeError(Exception):
    pass


@dataclass
class ScrapedArticle:
    title: str
    text: str
    raw_html: str


def validate_url(url: str) -> None:
    if not URL_RE.match(url or ""):
        raise ScrapeError("Only http(s) article URLs can be scraped.")


def _fetch(url: str) -> str:
    try:
        resp = requests.get(url, headers=HEADERS, timeout=20, allow_redirects=True)
    except requests.RequestException as e:
        raise ScrapeError(f"Failed to fetch page: {type(e).__name__}")
    if resp.status_code == 403:
        raise ScrapeError("Forbidden (403) from the article site")
    if resp.status_code != 200:
        raise ScrapeError(f"Failed to fetch page: HTTP {resp.status_code}")
    return resp.text


def _title(soup: BeautifulSoup, fallback: str) -> str:
    og = soup.find("meta", attrs={"property": "og:title"})
    if og and og.get("content"):
        return og["content"].strip()
    h1 = soup.find("h1")
    if h1 and h1.get_text(strip=True):
        return h1.get_text(" ", strip=True)
    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text(strip=True)
    return fallback


def extract_article(html: str, url: str = "") -> ScrapedArticle:
    soup = BeautifulSoup(html, "html.parser")
    title = _title(soup, url)

    for tag in soup(NOISE_TAGS):
        tag.decompose()

    # Prefer the article body, fall back to the whole page
    content = soup.find("article") or soup.find("main") or soup.body or soup

    parts = []
    for el in content.select("p, h2, h3, h4, li"):
        text = el.get_text(" ", strip=True)
        if text:
            parts.append(text)
    text_blob = "\n".join(parts)

    if len(text_blob) > MAX_CHARS:
        text_blob = text_blob[:MAX_CHARS]

    return ScrapedArticle(title=title, text=text_blob, raw_html=html)


def scrape_article(url: str) -> ScrapedArticle:
    validate_url(url)
    logger.info("Scraping %s", url)
    article = extract_article(_fetch(url), url)
    if len(article.text) < MIN_CHARS:
        raise ScrapeError("Could not find enough article text at that URL.")
    return article
