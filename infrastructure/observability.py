"""
Centralized Observability Infrastructure.
Provides structured logging setup and Sentry SDK initialization
driven by the session engine settings.
"""

import logging
import re
from typing import Any, Dict, Optional

from config import Settings

log = logging.getLogger(__name__)

# Patterns to scrub in logs and Sentry events
SENSITIVE_PATTERNS = [
    re.compile(r"(Bearer\s+)[^\s\"']+", re.IGNORECASE),
    re.compile(r"([a-zA-Z0-9_\-]{30,})"),  # Catch tokens/dsn looking strings
]

SENSITIVE_KEYS = {"token", "password", "authorization", "confirm_password"}


def mask_token(token: Optional[str]) -> str:
    """Short printable form of a credential for log lines."""
    if not token:
        return "<none>"
    return f"<token len={len(token)}>"


def _mask_string(val: str) -> str:
    val = SENSITIVE_PATTERNS[0].sub(r"\1[REDACTED]", val)
    for pattern in SENSITIVE_PATTERNS[1:]:
        val = pattern.sub("[REDACTED]", val)
    return val


def _recursive_scrub(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in SENSITIVE_KEYS else _recursive_scrub(v)
            for k, v in obj.items()
        }
    elif isinstance(obj, list):
        return [_recursive_scrub(i) for i in obj]
    elif isinstance(obj, str):
        return _mask_string(obj)
    return obj


def scrub_event(event: Dict[str, Any], hint: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sentry before_send hook. Scrubs bearer tokens and passwords from
    stack frame variables, breadcrumbs and request data.
    """
    if "exception" in event and "values" in event["exception"]:
        for exc in event["exception"]["values"]:
            frames = exc.get("stacktrace", {}).get("frames", [])
            for frame in frames:
                if "vars" in frame:
                    frame["vars"] = _recursive_scrub(frame["vars"])

    breadcrumbs = event.get("breadcrumbs")
    if isinstance(breadcrumbs, dict) and "values" in breadcrumbs:
        breadcrumbs["values"] = _recursive_scrub(breadcrumbs["values"])

    if "request" in event:
        event["request"] = _recursive_scrub(event["request"])

    return event


def setup_observability(settings: Settings) -> None:
    """
    Initializes global logging and Sentry (if a DSN is configured).
    Should be called once at application startup.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if settings.sentry_dsn:
        try:
            import sentry_sdk

            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                environment=settings.sentry_env,
                traces_sample_rate=1.0,
                send_default_pii=False,
                before_send=scrub_event
            )
            log.info(f"Sentry SDK initialized (env: {settings.sentry_env})")
        except ImportError:
            log.warning("SENTRY_DSN provided but sentry-sdk is not installed. Skipping Sentry init.")
    else:
        log.info("SENTRY_DSN not provided. Running without Sentry.")

    # Quiet down the HTTP stack
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
