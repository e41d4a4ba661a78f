import os
import json
import logging
from logging.handlers import RotatingFileHandler
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, FrozenSet

from dotenv import load_dotenv

logger = logging.getLogger("delegatify")

CONTROL_CONFIG_PATH = os.getenv("CONTROL_CONFIG_PATH", "control_config.json")

# Playback scopes requested from Spotify during /authenticate
SPOTIFY_SCOPES = (
    "user-read-playback-state",
    "user-read-currently-playing",
    "user-modify-playback-state",
    "user-read-recently-played",
)


def load_control_config(path: str = CONTROL_CONFIG_PATH) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return {
                "host": data.get("host", "127.0.0.1"),
                "port": int(data.get("port", 8765)),
                "key": data.get("api_key", ""),
            }
    except FileNotFoundError:
        logger.warning("Control config not found (%s), using defaults", path)
    except Exception as e:
        logger.error("Failed to load control config: %s", e)

    return {
        "host": "127.0.0.1",
        "port": 8765,
        "key": "",
    }


def _parse_ids(raw: Optional[str]) -> FrozenSet[int]:
    ids = set()
    for part in (raw or "").replace(";", ",").split(","):
        part = part.strip()
        if part.isdigit():
            ids.add(int(part))
    return frozenset(ids)


@dataclass
class Settings:
    discord_token: Optional[str] = None
    guild_id: int = 0
    spotify_client_id: Optional[str] = None
    spotify_redirect_uri: Optional[str] = None
    owner_ids: FrozenSet[int] = field(default_factory=frozenset)
    database_path: str = "delegatify.db"
    log_path: str = "bot.log"
    instance_name: str = "instance-1"
    interaction_timeout: float = 120.0
    control: Dict[str, Any] = field(
        default_factory=lambda: {"host": "127.0.0.1", "port": 8765, "key": ""}
    )


def load_settings(dotenv: bool = True) -> Settings:
    """
    Build Settings from the environment (and a .env file when present).
    DISCORD_TOKEN is checked by the entrypoint, not here, so tests and
    tooling can load settings without credentials.
    """
    if dotenv:
        load_dotenv()

    return Settings(
        discord_token=os.getenv("DISCORD_TOKEN"),
        # Optional: set to speed up command sync during testing (guild-only sync)
        guild_id=int(os.getenv("GUILD_ID", "0") or "0"),
        spotify_client_id=os.getenv("SPOTIFY_CLIENT_ID"),
        spotify_redirect_uri=os.getenv("SPOTIFY_REDIRECT_URI"),
        owner_ids=_parse_ids(os.getenv("OWNER_IDS")),
        database_path=os.getenv("DATABASE_PATH", "delegatify.db"),
        log_path=os.getenv("LOG_PATH", "bot.log"),
        instance_name=os.getenv("INSTANCE_NAME", "instance-1"),
        interaction_timeout=float(os.getenv("INTERACTION_TIMEOUT", "120") or "120"),
        control=load_control_config(),
    )


def setup_logging(log_path: str) -> logging.Logger:
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger
    _fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")

    fh = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    fh.setFormatter(_fmt)
    logger.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setFormatter(_fmt)
    logger.addHandler(ch)
    return logger
