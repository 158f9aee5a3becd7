"""Discovery of custom rules from a directory or installed entry points."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import sys
from importlib.metadata import entry_points
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, List, Optional

from ..rules import Rule

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "safeguard.rules"


class PluginLoadError(RuntimeError):
    """Raised when a custom rule location cannot be used at all."""


def load_plugins(path: Path | str, package: Optional[str] = None) -> List[Rule]:
    """Instantiate every concrete :class:`Rule` defined under ``path``.

    With ``package`` the files are imported as ``<package>.<module>`` so they
    can use relative imports; the directory's parent is added to
    ``sys.path`` when the package is not importable yet. Without it each
    file is loaded directly from disk. Files whose name starts with an
    underscore are skipped, and a module that fails to import is logged and
    skipped.
    """

    root = Path(path)
    if not root.exists():
        logger.debug("Custom rules path %s does not exist", root)
        return []
    if not root.is_dir():
        raise PluginLoadError(f"Custom rules path is not a directory: {root}")

    if package:
        _ensure_package_importable(root, package)

    rules: List[Rule] = []
    for file_path in sorted(root.rglob("*.py")):
        relative = file_path.relative_to(root).with_suffix("")
        if any(part.startswith("_") for part in relative.parts):
            continue

        try:
            if package:
                module = importlib.import_module(".".join((package, *relative.parts)))
            else:
                module = _load_from_file(file_path)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Skipping custom rule module %s: %s", file_path, exc)
            continue

        rules.extend(_instantiate_rules(module))

    return rules


def load_entry_point_plugins(group: str = ENTRY_POINT_GROUP) -> List[Rule]:
    """Load rules advertised by installed distributions under ``group``.

    An entry point may name a :class:`Rule` subclass or a zero-argument
    callable returning a rule or an iterable of rules.
    """

    rules: List[Rule] = []
    for entry_point in entry_points(group=group):
        try:
            target = entry_point.load()
            rules.extend(_coerce_rules(target() if callable(target) else target))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Skipping rule entry point %s: %s", entry_point.name, exc)
    return rules


# ----------------------------------------------------------------------
def _ensure_package_importable(root: Path, package: str) -> None:
    try:
        importlib.import_module(package)
        return
    except ModuleNotFoundError:
        pass

    search_root = root.resolve().parent
    for _ in package.split(".")[1:]:
        search_root = search_root.parent
    if str(search_root) not in sys.path:
        sys.path.insert(0, str(search_root))

    try:
        importlib.import_module(package)
    except ImportError as exc:
        raise PluginLoadError(f"Cannot import custom rules package {package!r} from {root}") from exc


def _load_from_file(file_path: Path) -> ModuleType:
    module_name = f"_safeguard_plugin_{file_path.stem}_{abs(hash(str(file_path.resolve())))}"
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def _instantiate_rules(module: ModuleType) -> List[Rule]:
    rules: List[Rule] = []
    for candidate in list(vars(module).values()):
        if not inspect.isclass(candidate) or candidate.__module__ != module.__name__:
            continue
        if not issubclass(candidate, Rule) or inspect.isabstract(candidate):
            continue
        try:
            rules.append(candidate())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cannot instantiate rule %s: %s", candidate.__qualname__, exc)
    return rules


def _coerce_rules(value: Any) -> Iterable[Rule]:
    if isinstance(value, Rule):
        return [value]
    rules = list(value)
    for item in rules:
        if not isinstance(item, Rule):
            raise TypeError(f"Entry point produced {type(item).__name__}, expected Rule")
    return rules
