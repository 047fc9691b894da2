# Scanner: LLM-backed market scans, validation and deal insights
"""
Scanner module for analysing the used-iPhone classifieds market.

All scores (risk, profit, trend) come from the analysis service; this module
builds the prompts, validates the untrusted output and aggregates prices.
"""

from .analysis_client import (
    AnalysisClient,
    AnalysisResponse,
    AnthropicAnalysisClient,
    OpenAIAnalysisClient,
    create_analysis_client,
)
from .insights import DealInsights
from .orchestrator import ScanError, ScanOrchestrator, average_price
from .validation import filter_valid_listings, is_valid_ad_url

__all__ = [
    "AnalysisClient",
    "AnalysisResponse",
    "AnthropicAnalysisClient",
    "DealInsights",
    "OpenAIAnalysisClient",
    "ScanError",
    "ScanOrchestrator",
    "average_price",
    "create_analysis_client",
    "filter_valid_listings",
    "is_valid_ad_url",
]
