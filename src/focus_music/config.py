"""
Configuration loading for the Focus Music Tool.

Everything comes from environment variables (optionally via a .env file):

- FOCUS_MUSIC_SPOTIFY_CLIENT_ID / FOCUS_MUSIC_SPOTIFY_CLIENT_SECRET
- FOCUS_MUSIC_SPOTIFY_REDIRECT_URI
- FOCUS_MUSIC_DATABASE_URL
- FOCUS_MUSIC_HTTP_TIMEOUT
- FOCUS_MUSIC_LOG_LEVEL
- FOCUS_MUSIC_MCP_ALLOWED_HOSTS / FOCUS_MUSIC_MCP_ALLOWED_ORIGINS (comma-separated;
  empty turns off Host/Origin checks on the /mcp transport)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from platformdirs import user_config_dir, user_data_dir
from dotenv import load_dotenv
import os
import sys
import logging
from logging.handlers import RotatingFileHandler


APP_NAME = "focus-music-tool"
APP_AUTHOR = "FocusMusic"

DEFAULT_REDIRECT_URI = "http://localhost:8000/auth/spotify/callback"


@dataclass
class SpotifyConfig:
    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    http_timeout: float = 10.0


@dataclass
class DatabaseConfig:
    url: str
    echo: bool = False


@dataclass
class McpConfig:
    allowed_hosts: List[str] = field(default_factory=list)
    allowed_origins: List[str] = field(default_factory=list)


@dataclass
class AppConfig:
    spotify: SpotifyConfig
    database: DatabaseConfig
    mcp: McpConfig = field(default_factory=McpConfig)


def get_default_config_dir() -> Path:
    """
    Returns the platform-appropriate directory for config and logs.
    """
    return Path(user_config_dir(APP_NAME, APP_AUTHOR))


def get_default_data_dir() -> Path:
    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


def default_database_url() -> str:
    data_dir = get_default_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{data_dir / 'focus_music.db'}"


def load_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    """
    load_dotenv()

    client_id = os.getenv("FOCUS_MUSIC_SPOTIFY_CLIENT_ID", "")
    client_secret = os.getenv("FOCUS_MUSIC_SPOTIFY_CLIENT_SECRET", "")
    redirect_uri = os.getenv("FOCUS_MUSIC_SPOTIFY_REDIRECT_URI") or DEFAULT_REDIRECT_URI

    try:
        http_timeout = float(os.getenv("FOCUS_MUSIC_HTTP_TIMEOUT", "10"))
    except ValueError:
        logging.getLogger(__name__).warning("Invalid FOCUS_MUSIC_HTTP_TIMEOUT, falling back to 10s")
        http_timeout = 10.0

    # Credentials are checked lazily by the Spotify client so that the read-only
    # tools and the health route still work without them.
    spotify_cfg = SpotifyConfig(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        http_timeout=http_timeout,
    )
    database_cfg = DatabaseConfig(
        url=os.getenv("FOCUS_MUSIC_DATABASE_URL") or default_database_url(),
        echo=os.getenv("FOCUS_MUSIC_DATABASE_ECHO", "false").lower() in {"1", "true", "yes"},
    )
    return AppConfig(spotify=spotify_cfg, database=database_cfg, mcp=load_mcp_config())


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_mcp_config() -> McpConfig:
    """
    Host/Origin allow-lists for the streamable-HTTP MCP transport.

    Kept apart from load_config so the MCP server can be built at import
    time without touching the database settings.
    """
    load_dotenv()
    return McpConfig(
        allowed_hosts=_split_list(os.getenv("FOCUS_MUSIC_MCP_ALLOWED_HOSTS", "")),
        allowed_origins=_split_list(os.getenv("FOCUS_MUSIC_MCP_ALLOWED_ORIGINS", "")),
    )


def setup_logging() -> None:
    """
    Configure centralized logging using Python's built-in logging module.

    - Logs to <user config dir>/logs/focus_music.log
    - Uses RotatingFileHandler with 10MB max size and 5 backup files
    - Logs to both file and stderr (stdout belongs to the MCP stdio transport)
    - Default level: INFO (can be overridden via FOCUS_MUSIC_LOG_LEVEL env var)
    """
    log_level_str = os.getenv("FOCUS_MUSIC_LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    config_dir = get_default_config_dir()
    log_dir = config_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    log_file = log_dir / "focus_music.log"
    file_handler = RotatingFileHandler(
        str(log_file),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(log_format, date_format))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(log_format, date_format))
    root_logger.addHandler(console_handler)


# Initialize logging when module is imported (after get_default_config_dir is defined)
setup_logging()

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "McpConfig",
    "SpotifyConfig",
    "default_database_url",
    "get_default_config_dir",
    "load_config",
    "load_mcp_config",
    "setup_logging",
]
