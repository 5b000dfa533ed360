# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration, all env-driven.
Single source of truth for every tunable parameter.
"""

import os


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "carpool-scheduler")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8005"))

    NOTIFICATION_SERVICE_URL: str = os.getenv(
        "NOTIFICATION_SERVICE_URL", "http://notification-service:8004"
    )
    NOTIFICATION_TIMEOUT: float = float(os.getenv("NOTIFICATION_TIMEOUT", "3.0"))
    NOTIFICATIONS_ENABLED: bool = (
        os.getenv("NOTIFICATIONS_ENABLED", "true").lower() == "true"
    )

    # Empty means in-memory fairness storage
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # ── Assignment ──
    TIE_EPSILON: float = float(os.getenv("TIE_EPSILON", "1e-6"))
    MAX_PREFERABLE: int = int(os.getenv("MAX_PREFERABLE", "3"))
    MAX_LESS_PREFERABLE: int = int(os.getenv("MAX_LESS_PREFERABLE", "2"))
    MAX_UNAVAILABLE: int = int(os.getenv("MAX_UNAVAILABLE", "2"))

    # ── Coverage ──
    MAX_BACKUP_DRIVERS: int = int(os.getenv("MAX_BACKUP_DRIVERS", "2"))
    BACKUP_MATCH_POLICY: str = os.getenv("BACKUP_MATCH_POLICY", "group")

    # ── Fairness dashboard ──
    DEBT_RECOMMENDATION_THRESHOLD: float = float(
        os.getenv("DEBT_RECOMMENDATION_THRESHOLD", "1.5")
    )
    HIGH_DISPARITY_RANGE: float = float(os.getenv("HIGH_DISPARITY_RANGE", "2.0"))
    TREND_WINDOW_WEEKS: int = int(os.getenv("TREND_WINDOW_WEEKS", "8"))

    DEFAULT_HISTORY_LIMIT: int = int(os.getenv("DEFAULT_HISTORY_LIMIT", "100"))
    MAX_HISTORY_SIZE: int = int(os.getenv("MAX_HISTORY_SIZE", "10000"))

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SEED_DEFAULT_GROUPS: bool = (
        os.getenv("SEED_DEFAULT_GROUPS", "true").lower() == "true"
    )


settings = Settings()
