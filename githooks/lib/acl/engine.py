import logging
import re
from collections.abc import Callable, Iterable, Sequence

from githooks.lib.acl.definitions import AclRule
from githooks.lib.errors import AclConfigError, ConfigError, PolicyViolation
from githooks.lib.groups import GROUP_SIGIL, GroupResolver
from githooks.lib.hook_types import AffectedRef, Operation

logger = logging.getLogger(__name__)

BRANCH_NAMESPACE = "refs/heads/"

GroupSource = GroupResolver | Callable[[], GroupResolver] | None


def classify(affected: AffectedRef, is_ancestor: Callable[[str, str], bool]) -> Operation:
    """Classify one reference update as C, D, R or U.

    Only a branch update whose old commit is an ancestor of the new one is a
    U; every other non-trivial update loses history and is an R.
    """
    if affected.is_create:
        return Operation.CREATE
    if affected.is_delete:
        return Operation.DELETE
    if not affected.ref.startswith(BRANCH_NAMESPACE):
        return Operation.REWRITE
    if is_ancestor(affected.old, affected.new):
        return Operation.UPDATE
    return Operation.REWRITE


def match_ref(ref: str, spec: str) -> bool:
    """Match a reference name against an exact, ``^regex`` or ``!regex`` spec."""
    try:
        if spec.startswith("^"):
            return re.search(spec, ref) is not None
        if spec.startswith("!"):
            return re.search(spec[1:], ref) is None
    except re.error as e:
        raise AclConfigError(f"invalid ref regex ({spec}): {e}") from e
    return ref == spec


class AclEvaluator:
    """
    First-match ACL evaluation with an admin bypass.

    Rules are scanned in declaration order. The first rule matching both
    the user and the reference decides: the operation is granted if its
    letter is in the rule's ``what``, and denied otherwise. No later rule
    is consulted. With no matching rule the default is deny.
    """

    def __init__(
        self,
        rules: Sequence[AclRule],
        admins: Iterable[str] = (),
        groups: GroupSource = None,
    ):
        self.rules = list(rules)
        self.admins = list(admins)
        self._groups = groups

    def _get_groups(self) -> GroupResolver:
        groups = self._groups
        if groups is None:
            raise ConfigError(
                "you have to define the githooks.groups option to use groups."
            )
        if not isinstance(groups, GroupResolver):
            groups = groups()
            self._groups = groups
        return groups

    def match_user(self, user: str | None, spec: str) -> bool:
        """Match the acting user against a who-spec.

        Plain names compare exactly, ``^regex`` specs search
        case-insensitively and ``@group`` specs test recursive membership.
        An undefined user matches nothing.
        """
        if not user:
            return False
        if spec.startswith("^"):
            try:
                return re.search(spec, user, re.IGNORECASE) is not None
            except re.error as e:
                raise AclConfigError(f"invalid user regex ({spec}): {e}") from e
        if spec.startswith(GROUP_SIGIL):
            return self._get_groups().is_member(user, spec)
        return user == spec

    def is_admin(self, user: str | None) -> bool:
        return any(self.match_user(user, spec) for spec in self.admins)

    def _first_match(self, user: str | None, ref: str) -> AclRule | None:
        for rule in self.rules:
            if not self.match_user(user, rule.who):
                continue
            if not match_ref(ref, rule.ref):
                continue
            return rule
        return None

    # --- Evaluation Interface ---

    def evaluate(self, user: str | None, ref: str, operation: Operation | str) -> bool:
        """Apply the rules alone, without the admin bypass."""
        rule = self._first_match(user, ref)
        if rule is None:
            logger.debug("no acl matches user=%s ref=%s", user, ref)
            return False
        allowed = rule.allows(str(operation))
        logger.debug(
            "acl '%s %s %s' decides %s for %s on %s",
            rule.who, rule.what, rule.ref, "allow" if allowed else "deny", operation, ref,
        )
        return allowed

    def authorize(self, user: str | None, affected: AffectedRef, operation: Operation | str) -> bool:
        """Admins are authorized for everything; everyone else goes through the rules."""
        if self.is_admin(user):
            return True
        return self.evaluate(user, affected.ref, operation)

    def check_refs(
        self,
        user: str | None,
        affected_refs: Iterable[AffectedRef],
        is_ancestor: Callable[[str, str], bool],
        component: str = "check_acls",
    ) -> None:
        """Authorize every affected reference or raise on the first denial.

        Raises:
            PolicyViolation: Naming the user, the operation and the ref.
        """
        if self.is_admin(user):
            logger.debug("user %s is an admin, skipping acls", user)
            return

        for affected in affected_refs:
            operation = classify(affected, is_ancestor)
            if not self.evaluate(user, affected.ref, operation):
                raise PolicyViolation(
                    f"you ({user}) cannot {operation.verb} ref {affected.ref}.",
                    component=component,
                )
