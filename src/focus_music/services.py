"""
Process-wide wiring: config -> engine/sessions + Spotify client -> workflow.

Built lazily on first use so importing the API or MCP modules never touches
the database or the network.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .config import AppConfig, load_config
from .db import init_db, make_engine, make_session_factory
from .spotify import SpotifyClient
from .tokens import TokenManager
from .workflow import PlaylistWorkflow

logger = logging.getLogger(__name__)

_workflow: Optional[PlaylistWorkflow] = None
# First calls come from both the event loop and FastAPI's threadpool; only one
# workflow (and so one TokenManager) may ever be built.
_workflow_lock = threading.Lock()


def build_workflow(cfg: Optional[AppConfig] = None) -> PlaylistWorkflow:
    if cfg is None:
        cfg = load_config()

    engine = make_engine(cfg.database)
    init_db(engine)
    logger.info(f"Database ready: {engine.url.render_as_string(hide_password=True)}")

    spotify = SpotifyClient(cfg.spotify)
    return PlaylistWorkflow(spotify, make_session_factory(engine), TokenManager(spotify))


def get_workflow() -> PlaylistWorkflow:
    global _workflow
    if _workflow is None:
        with _workflow_lock:
            if _workflow is None:
                _workflow = build_workflow()
    return _workflow


def set_workflow(workflow: Optional[PlaylistWorkflow]) -> None:
    """Swap the process-wide workflow (tests, embedding)."""
    global _workflow
    with _workflow_lock:
        _workflow = workflow


def close_workflow() -> None:
    """Close the workflow's HTTP client, if one was ever built."""
    global _workflow
    with _workflow_lock:
        if _workflow is not None:
            _workflow.close()
            _workflow = None


__all__ = ["build_workflow", "close_workflow", "get_workflow", "set_workflow"]
