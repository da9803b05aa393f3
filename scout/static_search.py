"""Keyword search through a rendering proxy, parsed from static HTML.

The lesser path next to the browser bot: no interaction, no challenge
handling. The proxy (ScraperAPI) renders the trade-search page and the
HTML is parsed with BeautifulSoup into the same ProductResult schema.
"""

import logging
import uuid
from typing import List
from urllib.parse import quote_plus

import aiohttp
from bs4 import BeautifulSoup

from scout.config import settings
from scout.models import ProductResult

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.alibaba.com/trade/search?SearchText={query}"

CARD_SELECTOR = (
    ".search-card-item, .card-info, .list-no-v2-main__item, "
    ".m-gallery-product-item-v2, .gallery-card-layout-item"
)
TITLE_SELECTOR = "h2, .common-card-title, .search-card-e-title, .title-link, .title"
PRICE_SELECTOR = (
    ".search-card-e-price-main, .element--price-item, "
    ".common-card-m-price-main, .price-number, .h4"
)

IMAGE_ATTRS = ("src", "data-src", "image-src", "data-image")

# Thumbnails that are never the product photo
IMAGE_BLACKLIST = [
    "flag", "country", "icon", "logo", "sprite", "badge", "verified", "cert",
    "check", "dot", "svg", "loading", "placeholder", "avatar", "button",
]
PRODUCT_IMAGE_HINTS = ["/kf/", "/product/", "sc04", ".alicdn.com"]
IDEAL_IMAGE_SIZES = ["_220x220", "_300x300", "_450x450"]

DEFAULT_PRICE = "Contact for Price"


def absolute_url(url: str) -> str:
    if not url:
        return ""
    return url if url.startswith("http") else f"https:{url}"


def pick_card_image(images: List[str]) -> str:
    """Prefer product-CDN images at a known thumbnail size, then any product image."""
    best, good = [], []
    for src in images:
        lowered = src.lower()
        if any(term in lowered for term in IMAGE_BLACKLIST):
            continue
        if not any(hint in lowered for hint in PRODUCT_IMAGE_HINTS):
            continue
        if any(size in lowered for size in IDEAL_IMAGE_SIZES):
            best.append(src)
        else:
            good.append(src)

    if best:
        return best[0]
    if good:
        return good[0]
    for src in images:
        lowered = src.lower()
        if "http" in lowered and not any(t in lowered for t in ("flag", "icon", "logo")):
            return src
    return images[0] if images else ""


def parse_search_html(html: str, query: str, max_results: int = 12) -> List[ProductResult]:
    """Extract listing cards from a rendered trade-search page."""
    soup = BeautifulSoup(html, "html.parser")
    results = []

    for i, card in enumerate(soup.select(CARD_SELECTOR)):
        if len(results) >= max_results:
            break

        title = " ".join(el.get_text(" ", strip=True) for el in card.select(TITLE_SELECTOR)).strip()
        price = " ".join(el.get_text(" ", strip=True) for el in card.select(PRICE_SELECTOR)).strip()
        anchor = card.find("a", href=True)
        link = anchor["href"] if anchor else ""

        images = []
        for img in card.find_all("img"):
            src = next((img.get(attr) for attr in IMAGE_ATTRS if img.get(attr)), "")
            if src:
                images.append(src)
        image = pick_card_image(images)

        if not image:
            logger.debug(f"Card {i}: no product image found")

        if not (title and link):
            continue

        results.append(ProductResult(
            id=f"ali-scrape-{uuid.uuid4().hex[:9]}",
            name=title,
            description=f"Alibaba Sourced | Specs: {query[:30]}...",
            image_url=absolute_url(image),
            source="EXTERNAL",
            price_range=price or DEFAULT_PRICE,
            link=absolute_url(link),
            similarity_score=round(0.92 - i * 0.01, 2),
            source_label="Alibaba Scout",
        ))

    return results


async def search_by_keyword(query: str) -> List[ProductResult]:
    """Fetch and parse a keyword search. Returns [] on any failure."""
    if not settings.has_scraperapi():
        logger.info("SCRAPERAPI_KEY not configured, skipping keyword search")
        return []

    params = {
        "api_key": settings.scraperapi_key,
        "url": SEARCH_URL.format(query=quote_plus(query)),
        "render": "true",
    }
    logger.info(f"Keyword search: {query}")

    try:
        timeout_cfg = aiohttp.ClientTimeout(total=settings.static_timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout_cfg) as session:
            async with session.get(settings.scraperapi_url, params=params) as resp:
                resp.raise_for_status()
                html = await resp.text()
    except Exception as e:
        logger.warning(f"Keyword search fetch failed: {e}")
        return []

    results = parse_search_html(html, query, settings.static_max_results)
    logger.info(f"Harvested {len(results)} items for '{query}'")
    return results
