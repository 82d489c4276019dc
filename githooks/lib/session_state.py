"""Per-run session shared by every plugin and handler.

A Session is constructed once per dispatch run and threaded through every
component call. It holds the parsed configuration, the repository handle,
the normalized event context and lazily built per-run values (acting user,
resolved groups, plugin scratch caches). Nothing is persisted: ``close()``
drops every cache when the run ends.
"""

from __future__ import annotations

import logging
from functools import cached_property
from pathlib import Path
from typing import Any

from githooks.hook_config import KEY_ADMIN, KEY_GROUPS, NAMESPACE
from githooks.lib.errors import ConfigError
from githooks.lib.git_config import ConfigStore, FromFile, parse_value_source
from githooks.lib.groups import GroupResolver, parse_groups_spec
from githooks.lib.hook_types import AffectedRef, HookEvent
from githooks.lib.hook_utils import get_authenticated_user
from githooks.schemas import HookContext

logger = logging.getLogger(__name__)


class Session:
    """State for a single event dispatch."""

    def __init__(self, context: HookContext, config: ConfigStore, repository: Any):
        self.context = context
        self.config = config
        self.repository = repository
        self._caches: dict[str, dict[str, Any]] = {}
        self._users: dict[str, str | None] = {}

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- Event data ---

    @property
    def event(self) -> HookEvent:
        return self.context.hook_event

    @property
    def args(self) -> tuple[str, ...]:
        return self.context.args

    @property
    def affected_refs(self) -> tuple[AffectedRef, ...]:
        return self.context.affected_refs

    @property
    def git_dir(self) -> Path:
        return self.repository.git_dir

    def is_ancestor(self, old: str, new: str) -> bool:
        return self.repository.is_ancestor(old, new)

    # --- Lazily resolved, cached for the run ---

    def user(self, section: str | None = None) -> str | None:
        """The authenticated user, per ``<section>.userenv`` or githooks.userenv.

        Resolved once per section for the run.
        """
        key = section or NAMESPACE
        if key not in self._users:
            self._users[key] = get_authenticated_user(self.config, section)
        return self._users[key]

    @cached_property
    def groups(self) -> GroupResolver:
        """Groups parsed from githooks.groups.

        Raises:
            ConfigError: If githooks.groups is not set.
            GroupSpecError: If the spec is malformed.
        """
        raw = self.config.get(NAMESPACE, KEY_GROUPS)
        if raw is None:
            raise ConfigError("you have to define the githooks.groups option to use groups.")

        source = parse_value_source(raw)
        text = source.resolve()
        if isinstance(source, FromFile):
            name = source.path
        else:
            name = f"{NAMESPACE}.{KEY_GROUPS}"
        if text is None:
            raise ConfigError(f"groups source {raw!r} has no value")

        groups = GroupResolver(parse_groups_spec(text.splitlines(), name))
        logger.debug("loaded %d groups from %s", len(groups.groups), name)
        return groups

    @property
    def admins(self) -> list[str]:
        return self.config.get_all(NAMESPACE, KEY_ADMIN)

    def cache(self, namespace: str) -> dict[str, Any]:
        """Scratch dict private to one plugin, kept for the run only."""
        return self._caches.setdefault(namespace, {})

    def close(self) -> None:
        self._caches.clear()
        self._users.clear()
        self.__dict__.pop("groups", None)
