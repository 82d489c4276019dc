from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from githooks.lib.hook_types import AffectedRef, HookEvent

# --- Input Schemas (Context) ---


class HookContext(BaseModel):
    """
    Normalized input for one dispatch run.

    Built once by HookRouter.normalize_input(); the affected references are
    fixed from then on, whether they came from argv (update) or from the
    input channel (pre-receive, post-receive).
    """

    model_config = ConfigDict(frozen=True)

    hook_event: HookEvent = Field(..., description="The event being dispatched.")
    args: tuple[str, ...] = Field(
        default=(), description="Positional arguments as received from git."
    )
    affected_refs: tuple[AffectedRef, ...] = Field(
        default=(), description="Reference updates, in input order."
    )

    def get_affected_ref(self, ref: str) -> AffectedRef | None:
        for affected in self.affected_refs:
            if affected.ref == ref:
                return affected
        return None


# --- Canonical Internal Schema ---


class HookOutcome(BaseModel):
    """
    Final result of a dispatch run.

    ``component`` and ``message`` identify the rejecting stage when the
    verdict is deny; warnings from handlers that did not reject are kept
    for display.
    """

    verdict: Literal["allow", "deny"] = "allow"
    component: str | None = None
    message: str | None = None
    warnings: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 0 if self.verdict == "allow" else 1

    def diagnostic(self) -> str | None:
        """Single-line, component-prefixed rejection message."""
        if self.verdict == "allow":
            return None
        return f"{self.component}: {self.message}"
