"""User groups for access control.

Groups come from the ``githooks.groups`` option, either inline or as
``file:PATH``. The syntax is one definition per line:

    # comment
    admins  = alice bob
    devs    = carol @admins

Blank lines are skipped and ``#`` starts a comment (``\\#`` is a literal
hash). A member prefixed with ``@`` must name a group defined on an
earlier line, so the member graph is acyclic by construction and
membership tests need no cycle bookkeeping.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from githooks.lib.errors import GroupSpecError

logger = logging.getLogger(__name__)

GROUP_SIGIL = "@"

_DEFINITION_RE = re.compile(r"^\s*(\w+)\s*=\s*(.+?)\s*$")
_COMMENT_RE = re.compile(r"(?<!\\)#.*")


def _strip_comment(line: str) -> str:
    return _COMMENT_RE.sub("", line).replace("\\#", "#")


def parse_groups_spec(lines: Iterable[str], source: str) -> dict[str, dict[str, bool]]:
    """Parse group definitions into ``{"@group": {member: is_group}}``.

    Args:
        lines: Spec lines, in definition order
        source: Where the lines came from, for error messages

    Raises:
        GroupSpecError: On a malformed line, a redefinition, or a reference
            to a group not defined on an earlier line.
    """
    groups: dict[str, dict[str, bool]] = {}

    for lineno, raw in enumerate(lines, start=1):
        line = _strip_comment(raw.rstrip("\n"))
        if not line.strip():
            continue

        match = _DEFINITION_RE.match(line)
        if not match:
            raise GroupSpecError(f"invalid line {lineno} in group spec '{source}': {raw.strip()}")

        name = GROUP_SIGIL + match.group(1)
        if name in groups:
            raise GroupSpecError(
                f"redefinition of group ({match.group(1)}) in '{source}': {raw.strip()}"
            )

        members: dict[str, bool] = {}
        for member in match.group(2).split():
            if member.startswith(GROUP_SIGIL):
                if member not in groups:
                    raise GroupSpecError(
                        f"unknown group ({member}) cited in '{source}': {raw.strip()}"
                    )
                members[member] = True
            else:
                members[member] = False
        groups[name] = members

    return groups


class GroupResolver:
    """Recursive membership over a parsed group map."""

    def __init__(self, groups: dict[str, dict[str, bool]]):
        self.groups = groups

    @classmethod
    def from_text(cls, text: str, source: str) -> GroupResolver:
        return cls(parse_groups_spec(text.splitlines(), source))

    def is_member(self, user: str, group_name: str) -> bool:
        """Tell whether ``user`` belongs to ``group_name``, directly or nested.

        Raises:
            GroupSpecError: If ``group_name`` is not defined.
        """
        if not group_name.startswith(GROUP_SIGIL):
            group_name = GROUP_SIGIL + group_name

        members = self.groups.get(group_name)
        if members is None:
            raise GroupSpecError(f"group {group_name} is not defined.")

        if user in members and not members[user]:
            return True

        for member, is_group in members.items():
            if is_group and self.is_member(user, member):
                return True
        return False

    def __contains__(self, group_name: str) -> bool:
        if not group_name.startswith(GROUP_SIGIL):
            group_name = GROUP_SIGIL + group_name
        return group_name in self.groups
