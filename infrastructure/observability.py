"""
Logging and error reporting for the Ringside client.
LOG_LEVEL, SENTRY_DSN, SENTRY_ENV and SENTRY_TRACES_SAMPLE_RATE come from the
environment; nothing here reads st.secrets.
"""

import os
import logging
import re
from typing import Any, Dict

log = logging.getLogger(__name__)

# Values scrubbed from Sentry events before they are sent
SENSITIVE_PATTERNS = [
    re.compile(r"eyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+"),  # JWT access tokens
    re.compile(r"([a-zA-Z0-9_\-]{30,})"),  # refresh tokens, api keys
    re.compile(r"\b\d{6}\b"),  # one-time codes
]

SENSITIVE_KEYS = {"access_token", "refresh_token", "code", "token", "apikey", "password"}


def mask_string(val: str) -> str:
    for pattern in SENSITIVE_PATTERNS:
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
        return mask_string(obj)
    return obj


def scrub_sensitive_data(event: Dict[str, Any], hint: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sentry before_send hook. Scrubs session tokens and one-time codes
    from stack frame variables and breadcrumbs before they leave the device.
    """
    exception = event.get("exception") or {}
    for exc in exception.get("values") or []:
        frames = (exc.get("stacktrace") or {}).get("frames") or []
        for frame in frames:
            if "vars" in frame:
                frame["vars"] = _recursive_scrub(frame["vars"])

    breadcrumbs = event.get("breadcrumbs") or {}
    for crumb in breadcrumbs.get("values") or []:
        if "message" in crumb and isinstance(crumb["message"], str):
            crumb["message"] = mask_string(crumb["message"])
        if "data" in crumb:
            crumb["data"] = _recursive_scrub(crumb["data"])

    return event


def setup_observability() -> None:
    """Configure root logging and, when SENTRY_DSN is set, Sentry. Called once from app.py."""

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    # [2026-02-27 15:00:00] INFO    | module.name | The message
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    sentry_dsn = os.getenv("SENTRY_DSN")
    if sentry_dsn:
        import sentry_sdk
        sentry_env = os.getenv("SENTRY_ENV", "development")

        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=sentry_env,
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.2")),
            send_default_pii=False,
            before_send=scrub_sensitive_data
        )
        log.info(f"Sentry SDK initialized (env: {sentry_env})")
    else:
        log.info("SENTRY_DSN not provided. Running without Sentry.")

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
