# Common: config, data models, SQLite plumbing, logging
"""
Shared components used by the scanner and the vault:
- Data models (listings, market analyses, cloud credentials)
- SQLite connection and schema
- Logging setup
- Settings loaded from config/settings.yaml and .env
"""

from .config import settings, Settings, PROJECT_ROOT, DATA_DIR
from .database import get_connection, init_db
from .logging import setup_logging
from .models import CloudConfig, Listing, MarketAnalysis, PhoneModel

__all__ = [
    "CloudConfig",
    "DATA_DIR",
    "Listing",
    "MarketAnalysis",
    "PROJECT_ROOT",
    "PhoneModel",
    "Settings",
    "get_connection",
    "init_db",
    "settings",
    "setup_logging",
]
