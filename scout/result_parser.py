"""Result parsing: turn a rendered results page into ProductResult records.

Card discovery runs as an ordered cascade of in-page strategies
(selectors, then text markers, then product links); the first one that
yields usable products wins. Each strategy returns plain JSON card
snapshots of the same shape:

    {"images": [str], "titles": [str], "text": str, "link": str}

and every field decision (which image, which title, price, MOQ, URL
cleanup) is made in Python from those snapshots.
"""

import logging
import re
import time
from typing import Dict, List, Optional, Tuple

from playwright.async_api import Error as PlaywrightError

from scout.config import settings
from scout.human_behavior import human_delay
from scout.markers import MarkerTables, get_marker_tables
from scout.models import ProductResult

logger = logging.getLogger(__name__)

TOP_SCORE = 0.98
SCORE_STEP = 0.05

# Thumbnail variants look like ".../H1234.jpg_300x300.jpg"
_SIZE_SUFFIX_RE = re.compile(r"_\d+x\d+\.(jpg|png|webp|gif).*$", re.IGNORECASE)

_SNAPSHOT_FN = """
const snapshot = (card, titleSelectors) => {
  const images = Array.from(card.querySelectorAll('img')).map(img =>
    img.src || img.getAttribute('data-src') || img.getAttribute('data-image') ||
    img.getAttribute('image-src') || ''
  ).filter(Boolean);
  let titles = [];
  try {
    titles = Array.from(card.querySelectorAll(titleSelectors.join(', ')))
      .map(t => (t.innerText || '').trim());
  } catch (e) {}
  const a = card.tagName === 'A' ? card : card.querySelector('a');
  return {
    images,
    titles,
    text: card.innerText || '',
    link: a ? (a.href || a.getAttribute('href') || '') : ''
  };
};
"""

_SELECTOR_STRATEGY_JS = """
({ selectors, minMatches, titleSelectors, limit }) => {
  %s
  for (const s of selectors) {
    let found;
    try { found = document.querySelectorAll(s); } catch (e) { continue; }
    if (found.length >= minMatches) {
      console.log(`[scout-js] selector strategy: ${found.length} cards via ${s}`);
      return Array.from(found).slice(0, limit).map(c => snapshot(c, titleSelectors));
    }
  }
  return [];
}
""" % _SNAPSHOT_FN

_MARKER_STRATEGY_JS = """
({ phrases, unitPhrase, currency, minW, maxW, minH, titleSelectors, limit }) => {
  %s
  const currencyChars = Array.from(currency);
  const candidates = Array.from(document.querySelectorAll('div')).filter(el => {
    const text = el.innerText || '';
    const isProduct = phrases.some(p => text.includes(p)) ||
      (text.includes(unitPhrase) && currencyChars.some(c => text.includes(c)));
    if (!isProduct) return false;
    const rect = el.getBoundingClientRect();
    return rect.width > minW && rect.height > minH && rect.width < maxW;
  });
  // A wrapper holding two disjoint candidates spans several cards
  const spansCards = el => {
    const inner = candidates.filter(o => o !== el && el.contains(o));
    return inner.some(a => inner.some(b => a !== b && !a.contains(b) && !b.contains(a)));
  };
  const single = candidates.filter(el => !spansCards(el));
  // The outermost single-card container also holds the image column
  const cards = single.filter(el => !single.some(o => o !== el && o.contains(el)));
  console.log(`[scout-js] marker strategy: ${cards.length} candidates`);
  return cards.slice(0, limit).map(c => snapshot(c, titleSelectors));
}
""" % _SNAPSHOT_FN

_LINK_STRATEGY_JS = """
({ patterns, titleSelectors, limit }) => {
  %s
  const selector = patterns.map(p => `a[href*="${p}"]`).join(', ');
  if (!selector) return [];
  const links = Array.from(document.querySelectorAll(selector));
  const cards = [...new Set(
    links.map(a => a.closest('div[class]') || a.parentElement).filter(Boolean)
  )];
  console.log(`[scout-js] link strategy: ${cards.length} candidates`);
  return cards.slice(0, limit).map(c => snapshot(c, titleSelectors));
}
""" % _SNAPSHOT_FN


# ---------------------------------------------------------------------------
# Card strategies
# ---------------------------------------------------------------------------


class CardStrategy:
    """One way of finding result cards on the page."""
    name = "base"
    script = ""

    def script_args(self, tables: MarkerTables, limit: int) -> Dict:
        raise NotImplementedError

    async def collect(self, page, tables: MarkerTables, limit: int) -> List[Dict]:
        snapshots = await page.evaluate(self.script, self.script_args(tables, limit))
        return list(snapshots or [])


class SelectorStrategy(CardStrategy):
    """Known card CSS classes; a single match is noise, not a grid."""
    name = "selector"
    script = _SELECTOR_STRATEGY_JS

    def script_args(self, tables, limit):
        return {
            "selectors": tables.card_selectors,
            "minMatches": tables.min_selector_matches,
            "titleSelectors": tables.title_selectors,
            "limit": limit,
        }


class MarkerStrategy(CardStrategy):
    """Card-sized containers whose text carries listing phrases."""
    name = "marker"
    script = _MARKER_STRATEGY_JS

    def script_args(self, tables, limit):
        return {
            "phrases": tables.product_phrases,
            "unitPhrase": tables.unit_phrase,
            "currency": tables.currency_symbols,
            "minW": tables.card_min_width,
            "maxW": tables.card_max_width,
            "minH": tables.card_min_height,
            "titleSelectors": tables.title_selectors,
            "limit": limit,
        }


class LinkStrategy(CardStrategy):
    """Nearest classed container of each product-detail link."""
    name = "link"
    script = _LINK_STRATEGY_JS

    def script_args(self, tables, limit):
        return {
            "patterns": tables.product_link_patterns,
            "titleSelectors": tables.title_selectors,
            "limit": limit,
        }


DEFAULT_STRATEGIES: Tuple[CardStrategy, ...] = (SelectorStrategy(), MarkerStrategy(), LinkStrategy())


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def normalize_url(url: str) -> str:
    """Give protocol-relative URLs an https scheme."""
    url = (url or "").strip()
    if url.startswith("//"):
        return "https:" + url
    return url


def normalize_image_url(url: str) -> str:
    """Canonical image URL: absolute, without the thumbnail size suffix."""
    return _SIZE_SUFFIX_RE.sub("", normalize_url(url))


def select_image(images: List[str], tables: MarkerTables = None) -> str:
    """First CDN-hosted, non-decorative image; else the first image at all."""
    tables = tables or get_marker_tables()
    for src in images:
        lowered = src.lower()
        if tables.image_cdn_token not in lowered:
            continue
        if any(term in lowered for term in tables.image_blacklist):
            continue
        return src
    return images[0] if images else ""


def select_title(titles: List[str], text: str, tables: MarkerTables = None) -> str:
    tables = tables or get_marker_tables()
    for title in titles:
        title = title.strip()
        if len(title) > tables.min_title_length:
            return title
    for line in (text or "").split("\n"):
        line = line.strip()
        if len(line) > tables.min_text_line_length:
            return line
    return tables.default_title


def extract_price(text: str, tables: MarkerTables = None) -> str:
    tables = tables or get_marker_tables()
    pattern = r"[%s]\s*[\d,]+(?:\.\d+)?" % re.escape(tables.currency_symbols)
    match = re.search(pattern, text or "")
    return match.group(0) if match else tables.default_price


def extract_moq(text: str, tables: MarkerTables = None) -> str:
    tables = tables or get_marker_tables()
    text = text or ""
    units = "|".join(re.escape(unit) for unit in tables.moq_units)
    patterns = [
        r"\d[\d,]*\s+(?:%s)(?:e?s)?\b" % units,
        r"MOQ:\s*\d[\d,]*",
        r"order:\s*\d[\d,]*",
    ]
    for pattern in patterns:
        match = re.search(pattern, text, re.IGNORECASE)
        if match:
            return match.group(0)
    return tables.default_moq


def rank_score(position: int) -> float:
    """Synthetic descending score from DOM position (0.98, 0.93, ...)."""
    return max(0.0, round(TOP_SCORE - position * SCORE_STEP, 2))


def build_product(
    snapshot: Dict,
    position: int,
    run_stamp: int,
    tables: MarkerTables = None,
) -> Optional[ProductResult]:
    """Build a result from one card snapshot, or None when image/title are missing."""
    tables = tables or get_marker_tables()
    text = snapshot.get("text") or ""

    image_url = normalize_image_url(select_image(snapshot.get("images") or [], tables))
    name = select_title(snapshot.get("titles") or [], text, tables)[: tables.max_name_length]
    if not image_url or not name:
        return None

    return ProductResult(
        id=f"{tables.id_prefix}-{run_stamp}-{position}",
        name=name,
        link=normalize_url(snapshot.get("link") or ""),
        image_url=image_url,
        price_range=extract_price(text, tables),
        moq=extract_moq(text, tables),
        source=tables.source_tag,
        similarity_score=rank_score(position),
    )


def build_products(snapshots: List[Dict], limit: int, tables: MarkerTables = None) -> List[ProductResult]:
    """Products in DOM order from the first ``limit`` cards."""
    tables = tables or get_marker_tables()
    run_stamp = int(time.time() * 1000)
    products = []
    for position, snapshot in enumerate(snapshots[:limit]):
        try:
            product = build_product(snapshot, position, run_stamp, tables)
        except Exception as e:
            logger.debug(f"Skipping card {position}: {e}")
            continue
        if product:
            products.append(product)
    return products


# ---------------------------------------------------------------------------
# Page-level parsing
# ---------------------------------------------------------------------------


async def run_cascade(
    page,
    tables: MarkerTables = None,
    strategies=DEFAULT_STRATEGIES,
    limit: Optional[int] = None,
) -> Tuple[str, List[ProductResult]]:
    """Try each strategy in order; return the first that produces products."""
    tables = tables or get_marker_tables()
    limit = limit or settings.max_results

    for strategy in strategies:
        try:
            snapshots = await strategy.collect(page, tables, limit)
        except PlaywrightError as e:
            logger.warning(f"Card strategy '{strategy.name}' failed: {e}")
            continue
        products = build_products(snapshots, limit, tables)
        if products:
            logger.info(
                f"Card strategy '{strategy.name}' produced {len(products)} products from {len(snapshots)} cards"
            )
            return strategy.name, products
        logger.info(f"Card strategy '{strategy.name}' found no usable cards")

    return "none", []


async def parse_results(page, tables: MarkerTables = None) -> List[ProductResult]:
    """Parse the current results page once."""
    tables = tables or get_marker_tables()

    try:
        await page.wait_for_selector(
            ", ".join(tables.card_probe_selectors),
            state="visible",
            timeout=settings.card_selector_wait_ms,
        )
        logger.info("Product cards detected via CSS selector")
    except PlaywrightError:
        logger.info("Card selectors not visible, relying on fallback strategies")

    # Nudge lazy-loaded images
    try:
        await page.evaluate("() => window.scrollBy(0, 400)")
    except PlaywrightError as e:
        logger.debug(f"Scroll failed: {e}")

    _, products = await run_cascade(page, tables)
    return products


async def parse_results_with_retry(
    page,
    attempts: Optional[int] = None,
    tables: MarkerTables = None,
) -> List[ProductResult]:
    """Parse, retrying after a short pause while the page returns nothing."""
    attempts = attempts or settings.parse_attempts

    for attempt in range(1, attempts + 1):
        try:
            products = await parse_results(page, tables)
            if products:
                return products
            logger.info(f"Parse attempt {attempt}/{attempts} returned 0 results")
        except PlaywrightError as e:
            logger.warning(f"Parse attempt {attempt}/{attempts} failed: {e}")
        if attempt < attempts:
            await human_delay(2000, 3000)

    return []
