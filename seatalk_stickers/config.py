"""Configuration constants and .env loading.

WHY: Centralizes every configurable value (SeaTalk host and credentials,
Telegram token, group allow-list, invite image, bind address, log level)
so deployments only touch the environment, never the code.

HOW: python-dotenv loads the .env file on import. Optional settings are
module-level constants read with os.getenv and a default. Secrets and
file-backed settings are read by load_*() functions that give a clear
error when something required is missing.

RULES:
- Secrets are loaded from .env / the environment, never hardcoded
- Required secrets raise ValueError with an actionable message
- WHITELIST_GROUP_IDS is a comma-separated list; blanks are ignored
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import base64
import os
from pathlib import Path
from typing import FrozenSet, Optional

from dotenv import load_dotenv

from seatalk_stickers.api.auth import Credentials

# Load .env from the project root (where the server is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# SeaTalk
# ---------------------------------------------------------------------------

SEATALK_HOST = os.getenv("SEATALK_HOST", "openapi.seatalk.io")
SEATALK_PROTOCOL = os.getenv("SEATALK_PROTOCOL", "https")
SEATALK_RATE_LIMIT_INTERVAL_S = float(os.getenv("SEATALK_RATE_LIMIT_INTERVAL_S", "2.0"))

# ---------------------------------------------------------------------------
# Telegram
# ---------------------------------------------------------------------------

TELEGRAM_BASE_URL = os.getenv("TELEGRAM_BASE_URL", "https://api.telegram.org")

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("SERVER_PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def parse_id_list(raw: str) -> FrozenSet[str]:
    """Split a comma-separated id list into a set, dropping blanks.

    >>> sorted(parse_id_list(" g1, ,g2,"))
    ['g1', 'g2']
    """
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


WHITELIST_GROUP_IDS = parse_id_list(os.getenv("WHITELIST_GROUP_IDS", ""))


def load_seatalk_credentials() -> Credentials:
    """Load the SeaTalk app credentials from the environment.

    RULES:
    - Raises ValueError if SEATALK_APP_ID or SEATALK_APP_SECRET is missing or empty
    """
    app_id = os.getenv("SEATALK_APP_ID", "").strip()
    app_secret = os.getenv("SEATALK_APP_SECRET", "").strip()
    if not app_id or not app_secret:
        raise ValueError(
            "SeaTalk app credentials not configured. "
            "Add SEATALK_APP_ID and SEATALK_APP_SECRET to the .env file."
        )
    return Credentials(app_id=app_id, app_secret=app_secret)


def load_telegram_token() -> str:
    """Load the Telegram bot token; raises ValueError if missing."""
    token = os.getenv("TELEGRAM_API_TOKEN", "").strip()
    if not token:
        raise ValueError(
            "Telegram bot token not configured. "
            "Add TELEGRAM_API_TOKEN to the .env file."
        )
    return token


def load_group_invite_image() -> Optional[str]:
    """Read GROUP_INVITE_IMAGE_PATH and return it base64-encoded.

    RULES:
    - Returns None when the variable is unset or empty
    - Raises ValueError if it points at a file that cannot be read
    """
    raw_path = os.getenv("GROUP_INVITE_IMAGE_PATH", "").strip()
    if not raw_path:
        return None
    path = Path(raw_path).expanduser()
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ValueError(
            "Group invite image {} could not be read: {}".format(path, exc)
        ) from exc
    return base64.b64encode(data).decode("ascii")
