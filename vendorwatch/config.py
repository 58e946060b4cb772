"""
Configuration module for the VendorWatch monitor.
Reads configuration from environment variables and .env file.
"""
import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

SEVERITIES = ("low", "medium", "high")
DEFAULT_ALERT_SEVERITIES = ["medium", "high"]
RESEARCH_MODES = ("basic", "deep")
DEFAULT_RESEARCH_MODE = "deep"


def parse_severities(raw: Optional[str]) -> List[str]:
    """
    Parse a comma/space separated severity list. Unknown entries are ignored;
    an empty or fully invalid value falls back to medium+high.
    """
    if not raw or not raw.strip():
        return list(DEFAULT_ALERT_SEVERITIES)
    out = []
    for part in raw.lower().replace(",", " ").split():
        if part in SEVERITIES and part not in out:
            out.append(part)
    return out or list(DEFAULT_ALERT_SEVERITIES)


def parse_research_mode(raw: Optional[str]) -> str:
    mode = (raw or "").strip().lower()
    return mode if mode in RESEARCH_MODES else DEFAULT_RESEARCH_MODE


class Config:
    """Configuration class that reads from environment variables."""

    def __init__(self):
        self.OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
        self.GEMINI_API_KEY: Optional[str] = os.getenv("GEMINI_API_KEY")
        self.TAVILY_API_KEY: Optional[str] = os.getenv("TAVILY_API_KEY")
        self.LLM_PROVIDER: Optional[str] = os.getenv("LLM_PROVIDER")
        self.REDIS_URL: Optional[str] = os.getenv("REDIS_URL", "redis://localhost:6379")
        self.RESEARCH_MODE: str = parse_research_mode(os.getenv("RESEARCH_MODE"))
        self.ALERT_SEVERITIES: List[str] = parse_severities(os.getenv("ALERT_SEVERITIES"))
        self.ALERT_EMAIL: Optional[str] = os.getenv("ALERT_EMAIL")
        self.ALERT_FROM_EMAIL: str = os.getenv("ALERT_FROM_EMAIL", "VendorWatch <alerts@vendorwatch.local>")
        self.SMTP_HOST: Optional[str] = os.getenv("SMTP_HOST")
        self.SMTP_PORT: int = int(os.getenv("SMTP_PORT", "465"))
        self.SMTP_USER: Optional[str] = os.getenv("SMTP_USER")
        self.SMTP_PASSWORD: Optional[str] = os.getenv("SMTP_PASSWORD")
        self.EXTRACTION_KEYWORD_FILTER: bool = os.getenv("EXTRACTION_KEYWORD_FILTER", "0") in ("1", "true", "yes")


# Global config instance
cfg = Config()
