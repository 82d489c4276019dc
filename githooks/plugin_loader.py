"""
Plugin resolution and loading.

Plugins enabled for an event (``githooks.<event>``) are looked up in three
places, first match wins:

1. ``$GIT_DIR/githooks`` (repository-specific plugins)
2. every directory listed in ``githooks.plugins``, in order
3. the plugins shipped with githooks

In each directory the name is tried as given, then with ``.py`` appended,
then in snake_case (``CheckAcls`` and ``check-acls`` both find
``check_acls.py``). A plugin file is a Python module defining
``install(registry)``; it is executed and installed at most once per run.
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
import re
import sys
from collections.abc import Sequence
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from githooks.hook_config import DEFAULT_PLUGIN_SUFFIX, KEY_PLUGINS, NAMESPACE, PLUGIN_SUFFIXES
from githooks.lib.errors import GitHooksError, PluginLoadError, PluginNotFound
from githooks.lib.paths import get_builtin_plugin_dir, get_local_plugin_dir
from githooks.registry import HookRegistry

if TYPE_CHECKING:
    from githooks.lib.session_state import Session

logger = logging.getLogger(__name__)

MODULE_PREFIX = "githooks_plugin_"


def snake_case(name: str) -> str:
    """CheckAcls / check-acls -> check_acls."""
    name = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name)
    return name.replace("-", "_").lower()


def candidate_names(name: str) -> list[str]:
    """File names to try for a plugin name, in order, without duplicates."""
    candidates = [name]
    if Path(name).suffix.lower() not in PLUGIN_SUFFIXES:
        candidates.append(name + DEFAULT_PLUGIN_SUFFIX)
        candidates.append(snake_case(name) + DEFAULT_PLUGIN_SUFFIX)
    return list(dict.fromkeys(candidates))


class PluginResolver:
    """Locates plugin files on a layered search path and loads each once."""

    def __init__(self, search_dirs: Sequence[Path | str]):
        self.search_dirs = [Path(d) for d in search_dirs]
        self._loaded_names: dict[str, ModuleType] = {}
        self._loaded_paths: dict[Path, ModuleType] = {}

    @classmethod
    def for_session(cls, session: Session) -> PluginResolver:
        """Search path for a run: repo-local, configured, then built-in."""
        dirs: list[Path] = [get_local_plugin_dir(session.git_dir)]
        dirs.extend(Path(d) for d in session.config.get_all(NAMESPACE, KEY_PLUGINS))
        dirs.append(get_builtin_plugin_dir())
        return cls(dirs)

    @property
    def loaded(self) -> dict[str, ModuleType]:
        return dict(self._loaded_names)

    def find(self, name: str) -> Path:
        """Return the first matching plugin file.

        Raises:
            PluginNotFound: If no search directory holds a matching file.
        """
        names = candidate_names(name)
        for directory in self.search_dirs:
            if not directory.is_dir():
                continue
            for candidate in names:
                path = directory / candidate
                if path.is_file():
                    logger.debug("plugin %s resolved to %s", name, path)
                    return path
        raise PluginNotFound(f"can't find enabled plugin {name}.")

    def resolve(self, name: str, registry: HookRegistry) -> ModuleType:
        """Find, execute and install a plugin, unless already done this run.

        Raises:
            PluginNotFound: If the plugin can't be found.
            PluginLoadError: If it can't be executed or installed.
        """
        module = self._loaded_names.get(name)
        if module is not None:
            logger.debug("plugin %s already loaded", name)
            return module

        path = self.find(name).resolve()
        module = self._loaded_paths.get(path)
        if module is None:
            module = _load_module(path)
            _install(module, path, registry)
            self._loaded_paths[path] = module

        self._loaded_names[name] = module
        return module


def _module_name(path: Path) -> str:
    # Same-named plugins from different directories must not share a module
    stem = re.sub(r"\W", "_", path.stem)
    digest = hashlib.sha1(str(path).encode()).hexdigest()[:8]
    return f"{MODULE_PREFIX}{stem}_{digest}"


def _load_module(path: Path) -> ModuleType:
    module_name = _module_name(path)
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"couldn't load {path}: not a Python module")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise PluginLoadError(f"couldn't parse {path}: {e}") from e
    return module


def _install(module: ModuleType, path: Path, registry: HookRegistry) -> None:
    install = getattr(module, "install", None)
    if not callable(install):
        raise PluginLoadError(f"couldn't run {path}: it does not define install(registry)")

    try:
        result = install(registry)
    except GitHooksError:
        raise
    except Exception as e:
        raise PluginLoadError(f"couldn't run {path}: {e}") from e

    if result is False:
        raise PluginLoadError(f"couldn't run {path}: install() returned false")
