"""Settings for the merchant scan pipeline.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root.

A :class:`Settings` value is built once at process start
(:meth:`Settings.from_env`) and handed to each component's constructor;
nothing in the pipeline reads the environment on its own.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from pipeline.errors import ConfigurationError

# .env lives in the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------
    serpapi_key: str = field(default_factory=lambda: os.environ.get("SERPAPI_KEY", ""))
    brightdata_user: str = field(
        default_factory=lambda: os.environ.get("BRIGHTDATA_USER", "")
    )
    brightdata_password: str = field(
        default_factory=lambda: os.environ.get("BRIGHTDATA_PASSWORD", "")
    )
    brightdata_host: str = field(
        default_factory=lambda: os.environ.get("BRIGHTDATA_HOST", "brd.superproxy.io:9222")
    )
    openai_api_key: str = field(
        default_factory=lambda: os.environ.get("OPENAI_API_KEY", "")
    )

    # ------------------------------------------------------------------
    # Classification oracle
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "openai")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "ministral-3:8b")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    classify_temperature: float = field(
        default_factory=lambda: float(os.environ.get("CLASSIFY_TEMPERATURE", "0.1"))
    )
    classify_timeout: float = field(
        default_factory=lambda: float(os.environ.get("CLASSIFY_TIMEOUT", "60.0"))
    )
    classify_delay: float = field(
        default_factory=lambda: float(os.environ.get("CLASSIFY_DELAY", "1.0"))
    )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    search_max_results: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_MAX_RESULTS", "100"))
    )
    search_results_per_query: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_RESULTS_PER_QUERY", "20"))
    )
    search_validate_urls: bool = field(
        default_factory=lambda: _env_bool("SEARCH_VALIDATE_URLS", False)
    )
    search_strict_store_only: bool = field(
        default_factory=lambda: _env_bool("SEARCH_STRICT_STORE_ONLY", True)
    )
    search_include_forums: bool = field(
        default_factory=lambda: _env_bool("SEARCH_INCLUDE_FORUMS", False)
    )
    search_query_delay: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_QUERY_DELAY", "1.0"))
    )
    search_provider_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_PROVIDER_TIMEOUT", "20.0"))
    )
    search_retry_max: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_RETRY_MAX", "2"))
    )
    search_retry_base_delay: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_RETRY_BASE_DELAY", "2.0"))
    )
    url_validation_timeout: float = field(
        default_factory=lambda: float(os.environ.get("URL_VALIDATION_TIMEOUT", "5.0"))
    )

    # ------------------------------------------------------------------
    # Scraper
    # ------------------------------------------------------------------
    scrape_connect_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPE_CONNECT_TIMEOUT", "15.0"))
    )
    scrape_navigation_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPE_NAVIGATION_TIMEOUT", "25.0"))
    )
    scrape_operation_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPE_OPERATION_TIMEOUT", "15.0"))
    )
    scrape_page_wait: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPE_PAGE_WAIT", "2.0"))
    )
    scrape_delay: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPE_DELAY", "3.0"))
    )

    # ------------------------------------------------------------------
    # Orchestration / storage
    # ------------------------------------------------------------------
    pipeline_item_limit: int = field(
        default_factory=lambda: int(os.environ.get("PIPELINE_ITEM_LIMIT", "20"))
    )
    data_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("DATA_DIR", "data"))
    )
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------
    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "Settings":
        """Load ``.env`` (without overriding real env vars) and build settings."""
        load_dotenv(env_file or _env_path, override=False)
        return cls()

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    @property
    def browser_endpoint(self) -> str:
        """CDP websocket endpoint of the remote scraping browser."""
        return f"wss://{self.brightdata_user}:{self.brightdata_password}@{self.brightdata_host}"

    # ------------------------------------------------------------------
    # Startup checks
    # ------------------------------------------------------------------
    def require_search(self) -> None:
        """Discovery works without credentials; SerpAPI is used when keyed."""
        if self.search_results_per_query <= 0:
            raise ConfigurationError("SEARCH_RESULTS_PER_QUERY must be > 0")

    def require_scrape(self) -> None:
        missing = [
            name
            for name, value in (
                ("BRIGHTDATA_USER", self.brightdata_user),
                ("BRIGHTDATA_PASSWORD", self.brightdata_password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Scraping browser credentials not set: {', '.join(missing)}. "
                "Add them to your environment or .env file."
            )

    def require_classify(self) -> None:
        if self.llm_provider not in ("openai", "ollama"):
            raise ConfigurationError(
                f"Unknown LLM_PROVIDER {self.llm_provider!r}. Use: openai | ollama"
            )
        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not set. Set it or switch to LLM_PROVIDER=ollama."
            )

    def ensure_data_dir(self) -> None:
        """Create the checkpoint directory if it does not exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
