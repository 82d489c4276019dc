from githooks.lib.acl.definitions import AclRule, parse_acl_rules
from githooks.lib.acl.engine import AclEvaluator, classify, match_ref

__all__ = ["AclEvaluator", "AclRule", "classify", "match_ref", "parse_acl_rules"]
