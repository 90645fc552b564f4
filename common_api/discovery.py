"""
Locate mapped entity classes by the module they are defined in.

Matching is on the defining module name, compared case-insensitively, over
the modules already imported. A package namespace also spans the plain
modules directly inside it; subpackages are namespaces of their own.
``scan_package`` imports every module below a package first, so classes
living in modules nobody imported yet can be found too; a module that fails
to import is logged and skipped.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
import sys
from collections.abc import Iterable, Mapping
from types import ModuleType

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper

LOGGER = logging.getLogger(__name__)


def is_entity_type(candidate: object) -> bool:
    """Return True for concrete classes that carry their own SQLAlchemy mapper."""
    if not inspect.isclass(candidate):
        return False
    if inspect.isabstract(candidate) or getattr(candidate, "_is_protocol", False):
        return False
    mapper = sa_inspect(candidate, raiseerr=False)
    return isinstance(mapper, Mapper) and mapper.class_ is candidate


def _in_namespace(module_name: str, module: ModuleType, wanted: str) -> bool:
    """The namespace module itself, or a plain module directly inside it."""
    folded = module_name.casefold()
    if folded == wanted:
        return True
    parent = folded.rpartition(".")[0]
    return parent == wanted and not hasattr(module, "__path__")


def find_entity_types(
    namespace: str,
    *,
    modules: Mapping[str, ModuleType | None] | None = None,
) -> list[type]:
    """
    Return the entity classes defined in the namespace ``namespace``.

    The namespace is the module of that name plus, for a package, the plain
    modules directly inside it (``app.dto.product`` for ``"app.dto"``).
    The comparison ignores case, so ``"app.dto"`` matches a module named
    ``"App.Dto"``. Classes merely imported into a module count only where
    they are defined. Results keep module order, then definition order.

    Raises:
        ValueError: ``namespace`` is empty or blank.
    """
    if not namespace or not namespace.strip():
        raise ValueError("namespace must be provided")

    wanted = namespace.strip().casefold()
    loaded = sys.modules if modules is None else modules
    found: dict[type, None] = {}

    for name, module in list(loaded.items()):
        if module is None or not _in_namespace(name, module, wanted):
            continue
        defining = name.casefold()
        for candidate in list(vars(module).values()):
            if not is_entity_type(candidate):
                continue
            if candidate.__module__.casefold() == defining:
                found.setdefault(candidate, None)

    LOGGER.debug("Found %d entity type(s) in namespace %r", len(found), namespace)
    return list(found)


def scan_package(package_name: str) -> list[str]:
    """
    Import ``package_name`` and every module below it.

    Returns the names of the modules that imported cleanly. Failures inside
    the package are logged at WARNING and do not stop the scan; failing to
    import the package itself propagates.
    """
    package = importlib.import_module(package_name)
    imported = [package.__name__]
    search_path = getattr(package, "__path__", None)
    if search_path is None:
        return imported

    failed: set[str] = set()

    def _record_failure(module_name: str) -> None:
        if module_name in failed:
            return
        failed.add(module_name)
        LOGGER.warning("Skipping %s while scanning %s", module_name, package_name, exc_info=True)

    for info in pkgutil.walk_packages(
        search_path, prefix=f"{package.__name__}.", onerror=_record_failure
    ):
        try:
            importlib.import_module(info.name)
        except Exception:
            _record_failure(info.name)
            continue
        imported.append(info.name)

    LOGGER.info(
        "Scanned %s: %d module(s) imported, %d skipped",
        package_name,
        len(imported),
        len(failed),
    )
    return imported


def scan_packages(package_names: Iterable[str]) -> list[str]:
    """Run ``scan_package`` over each name and return every imported module."""
    imported: list[str] = []
    for package_name in package_names:
        imported.extend(scan_package(package_name))
    return imported


__all__ = ["find_entity_types", "is_entity_type", "scan_package", "scan_packages"]
