"""Marker tables: every selector and phrase tied to the marketplace's markup.

These drift whenever the marketplace ships a new template, so they live here
as data rather than inside control flow. Set MARKER_TABLES_PATH to a JSON
file to override any subset of the tables without a code change.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from scout.config import settings

logger = logging.getLogger(__name__)


class MarkerTables(BaseModel):
    """Ordered lookup tables consumed by the automation steps."""

    # Literal substrings of the raw HTML that mean a bot challenge is up
    challenge_markers: List[str] = [
        "unusual traffic",
        "slide to verify",
        "slidetounlock",
        "noCaptcha",
    ]

    slider_selectors: List[str] = [
        "#nc_1_n1z",
        ".nc_iconfont.btn_slide",
        "#nc_1_n1t",
        ".btn_slide",
        ".slider-btn",
        '[data-role="slider"]',
        ".nc-container .btn_slide",
        "span.nc_iconfont",
        "#nocaptcha .nc_scale span",
        ".nc_bg_pannel .btn_slide",
    ]

    # Heuristic slider scan: class tokens and size envelope (px)
    slider_class_tokens: List[str] = ["slide", "drag", "btn"]
    slider_min_width: int = 20
    slider_max_width: int = 80
    slider_min_height: int = 20
    slider_max_height: int = 60
    slider_drag_distance: int = 300

    search_input_selectors: List[str] = [
        'input[name="SearchText"]',
        ".ui-searchbar-main",
    ]

    file_input_selectors: List[str] = [
        'input[type="file"]',
        'input[accept*="image"]',
        ".upload-container input",
        "#image-upload-input",
        ".image-search-input",
        'input[data-role="upload-input"]',
    ]

    # Camera / image-search affordance. Entries starting with // are XPath.
    camera_selectors: List[str] = [
        ".ui-searchbar-img-search-icon",
        'div[data-role="image-search-btn"]',
        ".search-visual-icon",
        'i[class*="camera"]',
        'span[class*="camera"]',
        'button[class*="camera"]',
        ".camera-icon",
        '[aria-label*="image" i]',
        'div[title*="image" i]',
        '//div[contains(., "Image Search")]',
        '//span[contains(., "Image Search")]',
    ]

    # Visible-text phrases present on every rendered listing card
    result_wait_phrases: List[str] = ["Chat now", "Add to cart", "Min. order"]

    # Selectors used for the short "cards are visible" probe before parsing
    card_probe_selectors: List[str] = [
        ".image-search-product-item",
        ".image-search-product-card",
        ".pc-items-item",
        ".h-search-result-item",
        ".m-gallery-product-item-v2",
        ".search-card-item",
        ".J-offer-wrapper",
        '[data-content="productItem"]',
    ]

    # Strategy 1: historical card templates, most specific first
    card_selectors: List[str] = [
        ".image-search-product-card",
        ".image-search-product-item",
        ".pc-items-item",
        ".h-search-result-item",
        '[class*="search-result-item"]',
        ".m-gallery-product-item-v2",
        ".organic-list .list-no-v2-main__item",
        ".search-card-item",
        ".gallery-card-layout-item",
        ".J-offer-wrapper",
        '[data-content="productItem"]',
        ".app-organic-search-card",
        ".list-item",
    ]
    min_selector_matches: int = 2

    # Strategy 2: container text markers and card size envelope (px)
    product_phrases: List[str] = ["Chat now", "Add to cart"]
    unit_phrase: str = "Pieces"
    currency_symbols: str = "$₹£€"
    card_min_width: int = 50
    card_max_width: int = 800
    card_min_height: int = 80

    # Strategy 3: product-detail link patterns (href substrings)
    product_link_patterns: List[str] = ["/product-detail/", "offer/"]

    title_selectors: List[str] = [
        ".title",
        ".name",
        '[class*="title"]',
        '[class*="name"]',
        "h2",
        "h3",
        "h4",
    ]
    min_title_length: int = 10
    min_text_line_length: int = 20
    max_name_length: int = 150

    # Unit words that follow an order quantity ("100 Pieces", "50 Pairs")
    moq_units: List[str] = ["Piece", "Pair", "Set", "Unit", "Bag", "Box", "Dozen"]

    image_cdn_token: str = "alicdn"
    image_blacklist: List[str] = [
        "flag",
        "icon",
        "logo",
        "sprite",
        "badge",
        "cert",
        "avatar",
        "button",
        "loading",
        "placeholder",
    ]

    default_title: str = "Alibaba Product"
    default_price: str = "Negotiable"
    default_moq: str = "1 Piece"
    source_tag: str = "ALIBABA_VISUAL"
    id_prefix: str = "ali-vis"


def load_marker_tables(path: Optional[str] = None) -> MarkerTables:
    """Build marker tables, merging a JSON override file when one is given.

    Keys absent from the file keep their built-in defaults.
    """
    if not path:
        return MarkerTables()

    override_path = Path(path)
    if not override_path.exists():
        logger.warning("Marker tables file %s not found, using built-in tables", path)
        return MarkerTables()

    overrides = json.loads(override_path.read_text(encoding="utf-8"))
    tables = MarkerTables.model_validate({**MarkerTables().model_dump(), **overrides})
    logger.info("Loaded marker table overrides from %s (%d keys)", path, len(overrides))
    return tables


@lru_cache(maxsize=1)
def get_marker_tables() -> MarkerTables:
    """Process-wide tables, loaded once from settings."""
    return load_marker_tables(settings.marker_tables_path)
