"""Application settings with environment variable support."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


# Compute base_dir at module level
_BASE_DIR = Path(__file__).parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Process-level settings.

    The monitored feed itself (URL, frequency, retention) is runtime state
    held by the options store, not environment configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FM_",  # FM_DATABASE_URL, FM_WEB_PORT, etc.
    )

    # Paths
    base_dir: Path = _BASE_DIR
    data_dir: Path = _BASE_DIR / "data"

    # Database
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'feed_monitor.db'}"

    # Fetching
    fetch_timeout_seconds: float = 30.0
    fetch_max_attempts: int = 1  # 1 = no retry, next attempt is the next tick
    user_agent: str = "RSSFeedMonitor/1.1"

    # Scheduling
    cron_hook: str = "rss_feed_monitor_cron_hook"

    # Admin web app
    web_host: str = "127.0.0.1"
    web_port: int = 8000


settings = Settings()
