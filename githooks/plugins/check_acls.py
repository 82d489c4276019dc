"""
check_acls: branch and tag access control.

Enable it for ``update`` (once per ref during a push) and/or
``pre-receive`` (once per push, for every ref)::

    git config --add githooks.update check_acls
    git config --add githooks.pre-receive check_acls

Configuration:

    githooks.userenv / check-acls.userenv   env var holding the pusher's name
    githooks.admin   / check-acls.admin     who-specs that bypass every ACL
    check-acls.acl                          ``who what refs`` rules

By default nobody can change anything. The first ACL matching the user and
the ref decides which of C (create), R (rewind/rebase), U (fast-forward
update) and D (delete) are allowed; ``-`` allows nothing.

    git config --add check-acls.acl '^. CRUD ^refs/heads/{USER}/'
    git config --add check-acls.acl '^. U    ^refs/heads'
"""

from githooks.hook_config import KEY_ADMIN
from githooks.lib.acl import AclEvaluator, parse_acl_rules
from githooks.lib.acl.definitions import ACL_KEY, ACL_SECTION
from githooks.lib.errors import ConfigError
from githooks.lib.hook_types import HookEvent

COMPONENT = "check_acls"


def check_affected_refs(session, *args):
    """Reject the event unless the user may apply every affected ref update."""
    user = session.user(ACL_SECTION)
    if not user:
        raise ConfigError(
            "the environment variable named by userenv is not defined.",
            component=COMPONENT,
        )

    cache = session.cache(COMPONENT)
    if "rules" not in cache:
        cache["rules"] = parse_acl_rules(session.config.get_all(ACL_SECTION, ACL_KEY))

    admins = session.admins + session.config.get_all(ACL_SECTION, KEY_ADMIN)
    evaluator = AclEvaluator(cache["rules"], admins=admins, groups=lambda: session.groups)
    evaluator.check_refs(user, session.affected_refs, session.is_ancestor, component=COMPONENT)


def install(registry):
    registry.register(HookEvent.UPDATE, check_affected_refs)
    registry.register(HookEvent.PRE_RECEIVE, check_affected_refs)
