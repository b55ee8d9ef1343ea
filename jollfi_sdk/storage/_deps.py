"""
Dependency management for the storage package.

pymongo is an optional extra; this module keeps the import check in one place.
"""
import logging

logger = logging.getLogger(__name__)


def ensure_pymongo_installed():
    """
    Check if pymongo is installed.
    Raises ImportError with installation instructions if not found.
    """
    try:
        import pymongo  # noqa: F401
        return True
    except ImportError:
        raise ImportError(
            "MongoDB storage requires additional dependencies: pymongo. "
            "Please install with: pip install jollfi-sdk[mongo]"
        )
