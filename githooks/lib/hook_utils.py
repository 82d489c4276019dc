"""Shared utilities for plugin implementations.

Provides:
- Reference filtering (is_ref_enabled)
- Acting user resolution from the userenv option

Plugins should use these instead of re-reading configuration themselves.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from githooks.hook_config import DEFAULT_USERENV, KEY_USERENV, NAMESPACE
from githooks.lib.git_config import FromEnv, parse_value_source

if TYPE_CHECKING:
    from githooks.lib.git_config import ConfigStore

logger = logging.getLogger(__name__)


def is_ref_enabled(ref: str, specs: Iterable[str]) -> bool:
    """Check whether ``ref`` matches any of the ref specs.

    Each spec is either a complete ref name or a regex starting with ``^``
    (the caret is kept as part of the regex). With no specs at all every
    ref is enabled.

    Args:
        ref: Complete ref name, e.g. "refs/heads/master"
        specs: Ref specs, usually a multi-valued config option

    Returns:
        True if there are no specs or one of them matches
    """
    specs = list(specs)
    if not specs:
        return True

    for spec in specs:
        if spec.startswith("^"):
            if re.search(spec, ref):
                return True
        elif ref == spec:
            return True
    return False


def get_authenticated_user(config: ConfigStore, section: str | None = None) -> str | None:
    """Resolve the acting user's name.

    The ``userenv`` option (plugin section first, then ``githooks``) names
    an environment variable, ``USER`` by default. Prefixed values
    (``env:``, ``file:``, ``cmd:``) are resolved as value sources.

    Args:
        config: The run's ConfigStore
        section: Plugin config section that may override githooks.userenv

    Returns:
        The user name, or None if it can't be determined

    Raises:
        ConfigError: If the option uses an unsupported or failing source
    """
    userenv = None
    if section:
        userenv = config.get(section, KEY_USERENV)
    if userenv is None:
        userenv = config.get(NAMESPACE, KEY_USERENV, DEFAULT_USERENV)

    source = parse_value_source(userenv, bare=FromEnv)
    user = source.resolve()
    if user is not None:
        user = user.strip()
    logger.debug("userenv %s resolved to %r", userenv, user)
    return user or None
