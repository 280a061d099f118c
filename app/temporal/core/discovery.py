"""Discovery utility for Temporal workflows and activities."""

import importlib
import pkgutil

from app.utils.logging import get_logger

logger = get_logger(__name__)

SHARED_PACKAGE = "app.temporal.shared"


def discover_shared_components(package_name: str = SHARED_PACKAGE) -> None:
    """Import every module under ``<package>.activities`` and ``<package>.workflows``.

    Importing runs the registry decorators, so afterwards the registries hold
    everything the worker must serve.
    """
    for sub_pkg in (f"{package_name}.activities", f"{package_name}.workflows"):
        sub_module = importlib.import_module(sub_pkg)
        for _, mod_name, _ in pkgutil.walk_packages(sub_module.__path__, f"{sub_pkg}."):
            importlib.import_module(mod_name)
            logger.debug(f"Imported shared component module: {mod_name}")


def discover_all() -> None:
    """Discover all Temporal components."""
    discover_shared_components()
    logger.info("All Temporal workflows and activities discovered and registered successfully")
