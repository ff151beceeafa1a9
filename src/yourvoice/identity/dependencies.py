"""Application-level access to the root IdentityManager."""

import logging

from src.yourvoice.identity.manager import IdentityManager

logger = logging.getLogger(__name__)

# Root identity manager (installed by the application at startup)
_identity_manager: IdentityManager | None = None


def set_identity_manager(manager: IdentityManager | None) -> None:
    """
    Set the root identity manager instance.

    Called once during application startup, after the manager has been entered
    (so rehydration has run). Pass None to uninstall it.

    Args:
        manager: IdentityManager instance
    """
    global _identity_manager
    _identity_manager = manager


def get_identity_manager() -> IdentityManager:
    """
    Get the root identity manager instance.

    Returns:
        IdentityManager instance

    Raises:
        RuntimeError: If no identity manager has been installed
    """
    if _identity_manager is None:
        raise RuntimeError(
            "Identity manager not initialized. "
            "Ensure application startup calls set_identity_manager()."
        )
    return _identity_manager
