"""
Configuration management for visual-scout
Environment-based configuration, read once at import time
"""
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False

    # Browser Configuration
    browser_headless: bool = True
    browser_executable_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "browser_executable_path", "chrome_executable_path", "puppeteer_executable_path"
        ),
    )
    browser_profile_dir: str = "./.chrome-profile"
    browser_user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = 1366
    viewport_height: int = 900
    block_fonts: bool = True

    # Marketplace
    marketplace_home_url: str = "https://www.alibaba.com/"
    alternate_entry_url: str = "https://www.alibaba.com/trade/search?SearchText=image+search"
    marker_tables_path: Optional[str] = None

    # Timeouts (ms)
    navigation_timeout_ms: int = 45000
    alternate_navigation_timeout_ms: int = 30000
    search_input_timeout_ms: int = 10000
    file_input_wait_ms: int = 5000
    challenge_manual_wait_ms: int = 60000
    challenge_poll_min_ms: int = 2000
    challenge_poll_max_ms: int = 3000
    results_wait_ms: int = 25000
    card_selector_wait_ms: int = 3000

    # Results
    max_results: int = Field(default=10, ge=1, le=12)
    parse_attempts: int = Field(default=2, ge=1)

    # Files
    uploads_dir: str = "./uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    # Overall request ceiling, enforced by the HTTP caller
    search_timeout_seconds: int = 300

    # Static keyword scraper (ScraperAPI proxy)
    scraperapi_key: Optional[str] = None
    scraperapi_url: str = "http://api.scraperapi.com"
    static_max_results: int = 12
    static_timeout_seconds: int = 60

    # One-shot profile warm-up
    warmup_challenge_wait_ms: int = 120000
    warmup_poll_ms: int = 3000
    warmup_search_url: str = "https://www.alibaba.com/trade/search?SearchText=jewelry+wholesale"

    def has_scraperapi(self) -> bool:
        """Check whether the keyword scraper can reach its proxy"""
        return bool(self.scraperapi_key)


# Global settings instance
settings = Settings()
