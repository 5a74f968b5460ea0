"""
Infrastructure layer - Configuration, logging, retry and event plumbing.
"""

from cryptosage.infrastructure.config import Settings, get_settings
from cryptosage.infrastructure.logging import get_logger, setup_logging

__all__ = ["Settings", "get_settings", "get_logger", "setup_logging"]
