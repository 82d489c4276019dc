from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class HookEvent(StrEnum):
    """The sixteen git lifecycle points a dispatch run can be started for."""

    APPLYPATCH_MSG = "applypatch-msg"
    PRE_APPLYPATCH = "pre-applypatch"
    POST_APPLYPATCH = "post-applypatch"
    PRE_COMMIT = "pre-commit"
    PREPARE_COMMIT_MSG = "prepare-commit-msg"
    COMMIT_MSG = "commit-msg"
    POST_COMMIT = "post-commit"
    PRE_REBASE = "pre-rebase"
    POST_CHECKOUT = "post-checkout"
    POST_MERGE = "post-merge"
    PRE_RECEIVE = "pre-receive"
    UPDATE = "update"
    POST_RECEIVE = "post-receive"
    POST_UPDATE = "post-update"
    PRE_AUTO_GC = "pre-auto-gc"
    POST_REWRITE = "post-rewrite"


class Operation(StrEnum):
    """Classification of a single reference update, as used by ACL rules."""

    CREATE = "C"
    REWRITE = "R"
    UPDATE = "U"
    DELETE = "D"

    @property
    def verb(self) -> str:
        return OPERATION_VERBS[self]


OPERATION_VERBS = {
    Operation.CREATE: "create",
    Operation.REWRITE: "rewind/rebase",
    Operation.UPDATE: "update",
    Operation.DELETE: "delete",
}

# Object ids are 40 (SHA-1) or 64 (SHA-256) hex digits; git reports a
# missing side of an update as all zeros.
ZERO_OID = "0" * 40


def is_zero_oid(oid: str) -> bool:
    """True if ``oid`` is the all-zero "does not exist" sentinel."""
    return bool(oid) and set(oid) == {"0"}


class AffectedRef(BaseModel):
    """One reference update seen by the current event."""

    model_config = ConfigDict(frozen=True)

    ref: str
    old: str
    new: str

    @property
    def is_create(self) -> bool:
        return is_zero_oid(self.old)

    @property
    def is_delete(self) -> bool:
        return is_zero_oid(self.new)

    def as_line(self) -> str:
        """Render in the ``old new ref`` form git feeds receive hooks."""
        return f"{self.old} {self.new} {self.ref}"
