"""
Dependency injection for FastAPI endpoints.
"""

import logging
from typing import Optional

from experience_recall.config import load_config
from experience_recall.pipeline import RecallEngine

logger = logging.getLogger(__name__)

# Global engine instance (loaded on startup)
_engine: Optional[RecallEngine] = None


def get_engine() -> RecallEngine:
    """
    Get or create the engine instance (singleton).

    Returns:
        RecallEngine instance
    """
    global _engine

    if _engine is None:
        config = load_config()
        _engine = RecallEngine.from_config(config)
        logger.info("Recall engine initialized")

    return _engine


def set_engine(engine: Optional[RecallEngine]) -> None:
    """Install a prebuilt engine (used by tests and embedding applications)."""
    global _engine
    _engine = engine
