"""Resource class discovery from a generated resource index.

The index is a plain text file with one fully qualified class name per
line, either ``package.module.ClassName`` or ``package.module:ClassName``.
Blank lines and lines starting with ``#`` are ignored.

Failures never abort discovery: a missing index yields no resources, and
entries that cannot be imported are logged and skipped.
"""
from __future__ import annotations
import importlib
import logging
import sys
from pathlib import Path
from typing import Optional, Union

from .constraints import unwrap_proxy

logger = logging.getLogger(__name__)


def read_resource_index(index_path: Union[str, Path]) -> list[str]:
    """Read class names from the resource index file.

    Lines that are not valid UTF-8 are logged and skipped.
    """
    path = Path(index_path)
    try:
        with path.open("rb") as handle:
            lines = handle.read().splitlines()
    except OSError as exc:
        logger.warning("Resource index %s could not be read: %s", path, exc)
        return []

    names = []
    for number, line in enumerate(lines, start=1):
        try:
            name = line.decode("utf-8").strip()
        except UnicodeDecodeError as exc:
            logger.warning("Skipping unreadable line %d of resource index %s: %s", number, path, exc)
            continue
        if name and not name.startswith("#"):
            names.append(name)
    return names


def application_package(application_type: type) -> str:
    """Get the package that holds the application class ("" at top level)."""
    application_type = unwrap_proxy(application_type)
    module = sys.modules.get(application_type.__module__)
    package = getattr(module, "__package__", None)
    if package is None:
        package = application_type.__module__.rpartition(".")[0]
    return package


def load_resource(name: str) -> type:
    """Import and return the class named by an index entry.

    Raises:
        ImportError: Module cannot be imported
        AttributeError: Module has no such class
    """
    if ":" in name:
        module_name, _, qualname = name.partition(":")
    else:
        module_name, _, qualname = name.rpartition(".")
    if not module_name or not qualname:
        raise ImportError(f"Not a fully qualified class name: {name!r}")

    target = importlib.import_module(module_name)
    for attribute in qualname.split("."):
        target = getattr(target, attribute)
    return target


def discover_resources(application_type: type, index_path: Optional[Union[str, Path]]) -> list[type]:
    """Load the resource classes listed in the index for an application.

    Only entries whose name starts with the application's package are
    considered.
    """
    if not index_path:
        return []

    package = application_package(application_type)
    resources = []
    for name in read_resource_index(index_path):
        if not name.startswith(package):
            continue
        try:
            resources.append(load_resource(name))
        except (ImportError, AttributeError) as exc:
            logger.warning("Skipping resource %s: %s", name, exc)

    logger.info(
        "Discovered %d resource(s) for %s from %s",
        len(resources),
        application_type.__qualname__,
        index_path,
    )
    return resources
