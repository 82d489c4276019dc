"""
Path resolution for githooks.

Built-in locations are resolved relative to this file's location in the
installed package; repository locations relative to the git dir.
"""

from __future__ import annotations

import logging
from pathlib import Path

from githooks.hook_config import DEFAULT_EXTERNAL_HOOKS_DIR, LOCAL_PLUGIN_DIR

logger = logging.getLogger(__name__)


def get_package_root() -> Path:
    """
    Get the root directory of the githooks package.

    This file is at <root>/lib/paths.py, so root is 2 levels up.
    """
    return Path(__file__).resolve().parent.parent


def get_builtin_plugin_dir() -> Path:
    """Directory holding the plugins shipped with githooks."""
    return get_package_root() / "plugins"


def get_local_plugin_dir(git_dir: Path) -> Path:
    """Repository-specific plugin directory (``$GIT_DIR/githooks``)."""
    return git_dir / LOCAL_PLUGIN_DIR


def get_default_external_hooks_dir(git_dir: Path) -> Path:
    """Default root for external hooks (``$GIT_DIR/hooks.d``)."""
    return git_dir / DEFAULT_EXTERNAL_HOOKS_DIR
