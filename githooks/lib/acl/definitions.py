"""ACL rule definitions.

Rules are configured as repeatable ``check-acls.acl`` values, each a
string with three whitespace-separated components:

    who what refs

``{VAR}`` placeholders are replaced by the environment variable ``VAR``
before splitting, so a rule like ``^. CRUD ^refs/heads/{USER}/`` gives
every user full control over their own branch namespace.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict

from githooks.lib.errors import AclConfigError

ACL_SECTION = "check-acls"
ACL_KEY = "acl"

# Operation alphabet plus the "no access" sentinel
VALID_WHAT = set("CRUD-")
NO_ACCESS = "-"

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


class AclRule(BaseModel):
    """One ordered access-control entry."""

    model_config = ConfigDict(frozen=True)

    who: str
    what: str
    ref: str

    @classmethod
    def parse(cls, raw: str, env: Mapping[str, str] | None = None) -> AclRule:
        """Parse ``who what refs`` after ``{VAR}`` interpolation.

        Raises:
            AclConfigError: If the rule does not have three components.
        """
        text = interpolate_env(raw, os.environ if env is None else env)
        parts = text.split(None, 2)
        if len(parts) != 3:
            raise AclConfigError(f"invalid acl ({raw}): expected 'who what refs'")
        return cls(who=parts[0], what=parts[1], ref=parts[2].strip())

    def validate_what(self) -> None:
        """Raise AclConfigError if ``what`` uses letters outside CRUD and '-'."""
        if not self.what or set(self.what) - VALID_WHAT:
            raise AclConfigError(f"invalid acl 'what' component ({self.what}).")

    def allows(self, operation: str) -> bool:
        self.validate_what()
        return self.what != NO_ACCESS and operation in self.what


def interpolate_env(text: str, env: Mapping[str, str]) -> str:
    """Replace ``{VAR}`` with ``env[VAR]``; unset variables become empty."""
    return _PLACEHOLDER_RE.sub(lambda m: env.get(m.group(1), ""), text)


def parse_acl_rules(values: Iterable[str], env: Mapping[str, str] | None = None) -> list[AclRule]:
    """Parse configured ACL strings, preserving declaration order."""
    return [AclRule.parse(value, env) for value in values]
