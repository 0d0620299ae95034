"""Persisted feed options: validation and the options store.

The options are the runtime-editable part of the configuration (which feed,
how often, how long to keep it). They are validated by a single function that
always returns a complete FeedConfig, falling back to defaults for anything
unrecognized, and stored as one JSON value in the ``options`` table.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlsplit, urlunsplit

from sqlalchemy.orm import sessionmaker
import structlog

from .settings import settings
from ..errors import ConfigValidationError
from ..ingestion.interfaces import (
    FeedConfig,
    FetchInterval,
    RetentionWindow,
    DEFAULT_FETCH_INTERVAL,
    DEFAULT_RETENTION_WINDOW,
)
from ..storage.database import ensure_sqlite_dir
from ..storage.models import OptionModel, init_db

logger = structlog.get_logger()

OPTION_NAME = "rss_feed_monitor_options"

ALLOWED_SCHEMES = ("http", "https")

# Whitespace and control characters never survive in a stored URL
_UNSAFE_URL_CHARS = re.compile(r"[\s\x00-\x1f\x7f]")

# Form field names first, attribute names second
_URL_KEYS = ("rss_feed_url", "feed_url")
_INTERVAL_KEYS = ("rss_feed_frequency", "fetch_interval")
_RETENTION_KEYS = ("delete_every", "retention_window")

Candidate = Union[FeedConfig, Mapping[str, Any], None]


@dataclass(frozen=True)
class SettingsUpdate:
    """Result of storing new options."""
    config: FeedConfig
    previous: FeedConfig
    url_changed: bool
    interval_changed: bool

    @property
    def retention_changed(self) -> bool:
        return self.previous.retention_window != self.config.retention_window


def sanitize_url(raw: Any) -> str:
    """Normalize a feed URL, or return "" if it can't be used.

    Scheme-less input that isn't relative gets ``http://`` prepended. Only
    absolute http(s) URLs with a host are kept. Applying this to its own
    output returns the same string.
    """
    if raw is None:
        return ""
    url = _UNSAFE_URL_CHARS.sub("", str(raw).strip().replace(" ", "%20"))
    if not url:
        return ""

    if ":" not in url and not url.startswith(("/", "#", "?")):
        url = "http://" + url

    try:
        parts = urlsplit(url)
        parts.port  # raises on a malformed port
    except ValueError:
        return ""

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES or not parts.hostname:
        return ""

    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def _pick(candidate: Mapping[str, Any], keys) -> Any:
    for key in keys:
        if key in candidate:
            return candidate[key]
    return None


def _coerce(enum_cls, value: Any, default, field: str):
    """Return the enum member for value, raising ConfigValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise ConfigValidationError(field, value, default.value)


def _coerce_or_default(enum_cls, value: Any, default, field: str):
    try:
        return _coerce(enum_cls, value, default, field)
    except ConfigValidationError as e:
        logger.warning("option_defaulted", field=e.field, value=str(e.value)[:50], default=e.default)
        return default


def validate_options(candidate: Candidate) -> FeedConfig:
    """Turn any settings input into a complete FeedConfig."""
    if candidate is None:
        candidate = {}
    if isinstance(candidate, FeedConfig):
        candidate = {
            "feed_url": candidate.feed_url,
            "fetch_interval": candidate.fetch_interval,
            "retention_window": candidate.retention_window,
        }

    return FeedConfig(
        feed_url=sanitize_url(_pick(candidate, _URL_KEYS)),
        fetch_interval=_coerce_or_default(
            FetchInterval, _pick(candidate, _INTERVAL_KEYS),
            DEFAULT_FETCH_INTERVAL, "rss_feed_frequency"
        ),
        retention_window=_coerce_or_default(
            RetentionWindow, _pick(candidate, _RETENTION_KEYS),
            DEFAULT_RETENTION_WINDOW, "delete_every"
        ),
    )


class ConfigStore:
    """Options store for the monitored feed."""

    def __init__(self, database_url: str = None, option_name: str = OPTION_NAME):
        if database_url is None:
            database_url = settings.database_url

        ensure_sqlite_dir(database_url)

        self.option_name = option_name
        self.engine = init_db(database_url)
        self.Session = sessionmaker(bind=self.engine)

    def initialize(self) -> FeedConfig:
        """Store the default options unless options already exist."""
        session = self.Session()
        try:
            if session.get(OptionModel, self.option_name) is None:
                config = FeedConfig()
                session.add(OptionModel(name=self.option_name, value=json.dumps(config.to_dict())))
                session.commit()
                logger.info("options_initialized", option=self.option_name)
        finally:
            session.close()
        return self.get()

    def get(self) -> FeedConfig:
        """Get the current options, defaulted where missing."""
        return validate_options(self._load_raw())

    def set(self, candidate: Candidate) -> SettingsUpdate:
        """Validate and store new options, reporting what changed."""
        config = validate_options(candidate)
        previous = self.get()

        session = self.Session()
        try:
            value = json.dumps(config.to_dict())
            model = session.get(OptionModel, self.option_name)
            if model is None:
                session.add(OptionModel(name=self.option_name, value=value))
            else:
                model.value = value
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        update = SettingsUpdate(
            config=config,
            previous=previous,
            url_changed=previous.feed_url != config.feed_url,
            interval_changed=previous.fetch_interval != config.fetch_interval,
        )
        logger.info(
            "options_saved",
            url=config.feed_url[:50],
            frequency=config.fetch_interval.value,
            delete_every=config.retention_window.value,
            url_changed=update.url_changed,
            interval_changed=update.interval_changed,
        )
        return update

    def _load_raw(self) -> Optional[dict]:
        session = self.Session()
        try:
            model = session.get(OptionModel, self.option_name)
            if model is None:
                return None
            try:
                data = json.loads(model.value)
            except ValueError:
                logger.warning("options_unreadable", option=self.option_name)
                return None
            return data if isinstance(data, dict) else None
        finally:
            session.close()
