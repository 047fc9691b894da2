"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"
DATA_EXPORTS_DIR = DATA_DIR / "exports"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class DatabaseSettings(BaseModel):
    """Local store settings."""
    db_path: str = Field(
        default_factory=lambda: os.getenv(
            "SNIPER_DB_PATH", str(DATA_DIR / "sniper.db")
        )
    )


class LLMSettings(BaseModel):
    """Analysis service settings."""
    provider: str = "openai"  # openai | anthropic
    openai_model: str = "gpt-4o"
    openai_search_model: str = "gpt-4o-search-preview"
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096
    temperature: float = 0.3
    web_search_max_uses: int = 5


class ScannerSettings(BaseModel):
    """Scan prompt and validation settings."""
    listing_count: int = 8
    overhead_eur: int = 100
    source_site: str = "kleinanzeigen.de"
    benchmark_site: str = "backmarket.de"
    ad_url_marker: str = "/s-anzeige/"
    # Thresholds quoted in the strategy line of every analysis
    max_recommended_risk: int = 30
    min_recommended_profit: int = 100


class Settings(BaseModel):
    """Top-level application settings."""
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    scanner: ScannerSettings = Field(default_factory=ScannerSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults."""
        settings_path = path or CONFIG_DIR / "settings.yaml"
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()


def get_openai_api_key() -> str:
    """Get OpenAI API key from environment."""
    key = os.getenv("OPENAI_API_KEY", "")
    if not key:
        raise ValueError("OPENAI_API_KEY not set in environment")
    return key


def get_anthropic_api_key() -> str:
    """Get Anthropic API key from environment."""
    key = os.getenv("ANTHROPIC_API_KEY", "")
    if not key:
        raise ValueError("ANTHROPIC_API_KEY not set in environment")
    return key


# Singleton settings instance
settings = Settings.load()
