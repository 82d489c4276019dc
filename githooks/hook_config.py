"""
Hook Configuration: Single source of truth for static dispatch behavior.

This module defines:
1. The configuration namespace and the keys the router reads
2. Which events carry affected references and how they receive them
3. The external hook protocol per event
4. Plugin file naming rules

Per-repository settings (enabled plugins, ACLs, groups) come from the
ConfigStore at run time, not from here.
"""

from typing import Dict, FrozenSet, Tuple

from githooks.lib.hook_types import HookEvent

# =============================================================================
# CONFIGURATION KEYS
# =============================================================================

NAMESPACE = "githooks"

KEY_PLUGINS = "plugins"  # extra plugin search directories
KEY_EXTERNALS = "externals"  # bool, run external hooks (default on)
KEY_HOOKS = "hooks"  # extra external hook roots
KEY_GROUPS = "groups"  # group spec text or file:PATH
KEY_ADMIN = "admin"  # repeatable who-specs
KEY_USERENV = "userenv"  # env var holding the acting user

DEFAULT_USERENV = "USER"

# Environment variable naming an optional YAML overlay on top of git config
CONFIG_OVERLAY_ENV_VAR = "GITHOOKS_CONFIG"

# =============================================================================
# EVENT ARGUMENT SHAPES
# =============================================================================

# update receives (ref, old, new) as argv
ARGV_REF_EVENTS: FrozenSet[HookEvent] = frozenset({HookEvent.UPDATE})

# pre-receive and post-receive read "old new ref" lines from stdin
STREAMED_REF_EVENTS: FrozenSet[HookEvent] = frozenset(
    {HookEvent.PRE_RECEIVE, HookEvent.POST_RECEIVE}
)

# Positional argument names, used for debug logging only
EVENT_ARGUMENTS: Dict[HookEvent, Tuple[str, ...]] = {
    HookEvent.APPLYPATCH_MSG: ("commit-msg-file",),
    HookEvent.PRE_APPLYPATCH: (),
    HookEvent.POST_APPLYPATCH: (),
    HookEvent.PRE_COMMIT: (),
    HookEvent.PREPARE_COMMIT_MSG: ("commit-msg-file", "msg-src", "sha1"),
    HookEvent.COMMIT_MSG: ("commit-msg-file",),
    HookEvent.POST_COMMIT: (),
    HookEvent.PRE_REBASE: ("upstream", "branch"),
    HookEvent.POST_CHECKOUT: ("prev-head", "new-head", "is-branch-checkout"),
    HookEvent.POST_MERGE: ("is-squash-merge",),
    HookEvent.PRE_RECEIVE: (),
    HookEvent.UPDATE: ("ref", "old", "new"),
    HookEvent.POST_RECEIVE: (),
    HookEvent.POST_UPDATE: ("ref...",),
    HookEvent.PRE_AUTO_GC: (),
    HookEvent.POST_REWRITE: ("command",),
}

# =============================================================================
# PLUGINS
# =============================================================================

# Repository-local plugin directory, relative to the git dir
LOCAL_PLUGIN_DIR = "githooks"

PLUGIN_SUFFIXES: Tuple[str, ...] = (".py",)
DEFAULT_PLUGIN_SUFFIX = ".py"

# =============================================================================
# EXTERNAL HOOKS
# =============================================================================

# Default external hook root, relative to the git dir. Consulted before the
# roots listed in githooks.hooks.
DEFAULT_EXTERNAL_HOOKS_DIR = "hooks.d"


def get_event(name: str) -> HookEvent | None:
    """Map a hook name (possibly a path, as in argv[0]) to its HookEvent."""
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    try:
        return HookEvent(base)
    except ValueError:
        return None
