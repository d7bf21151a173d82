"""Configuration management from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"


def _split_names(raw: str) -> list[str]:
    return [name.strip() for name in raw.split(",") if name.strip()]


class Config:
    """Application configuration."""

    # basquetcatala.cat
    SITE_ORIGIN: str = os.getenv("SITE_ORIGIN", "https://www.basquetcatala.cat")
    API_BASE: str = os.getenv("API_BASE", "https://msstats.optimalwayconsulting.com/v1/fcbq")
    DEFAULT_SINGLE_URL: str = os.getenv(
        "DEFAULT_SINGLE_URL",
        f"{SITE_ORIGIN}/estadistiques/2025/696b6acdd2a7ac0001714803",
    )
    DEFAULT_LIST_URL: str = os.getenv(
        "DEFAULT_LIST_URL",
        f"{SITE_ORIGIN}/competicions/resultats/21639/0",
    )

    # Relays (empty = built-in order)
    RELAY_PROVIDERS: list[str] = _split_names(os.getenv("RELAY_PROVIDERS", ""))
    TIMEOUT: float = float(os.getenv("TIMEOUT", "20"))

    # Pacing, in seconds
    PROVIDER_DELAY: float = float(os.getenv("PROVIDER_DELAY", "1.0"))
    MOVES_DELAY: float = float(os.getenv("MOVES_DELAY", "0.5"))
    JOB_DELAY: float = float(os.getenv("JOB_DELAY", "1.5"))

    # Output
    OUTPUT_DIR: Path = Path(os.getenv("OUTPUT_DIR", str(DATA_DIR / "exports")))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API
    API_KEY: str | None = os.getenv("API_KEY")
    MAX_KEPT_RUNS: int = int(os.getenv("MAX_KEPT_RUNS", "50"))

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        from fcbq_scraper.fetch.providers import DEFAULT_PROVIDERS

        errors = []
        if not cls.SITE_ORIGIN.startswith(("http://", "https://")):
            errors.append("SITE_ORIGIN must be an http(s) URL")
        if not cls.API_BASE.startswith(("http://", "https://")):
            errors.append("API_BASE must be an http(s) URL")
        if cls.TIMEOUT <= 0:
            errors.append("TIMEOUT must be positive")
        if cls.MAX_KEPT_RUNS < 1:
            errors.append("MAX_KEPT_RUNS must be at least 1")
        for name in ("PROVIDER_DELAY", "MOVES_DELAY", "JOB_DELAY"):
            if getattr(cls, name) < 0:
                errors.append(f"{name} must not be negative")
        known = {provider.name for provider in DEFAULT_PROVIDERS}
        unknown = [name for name in cls.RELAY_PROVIDERS if name not in known]
        if unknown:
            errors.append(f"Unknown RELAY_PROVIDERS: {', '.join(unknown)}")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


config = Config()
