from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class HookVerdict(Enum):
    """Verdict a handler may return instead of raising."""

    ALLOW = "allow"
    DENY = "deny"
    WARN = "warn"


@dataclass
class HookResult:
    """Provider-agnostic result of a handler invocation."""

    verdict: HookVerdict
    message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(
        cls,
        message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "HookResult":
        """Factory method for ALLOW verdict."""
        return cls(verdict=HookVerdict.ALLOW, message=message, metadata=metadata or {})

    @classmethod
    def deny(
        cls,
        message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "HookResult":
        """Factory method for DENY verdict."""
        return cls(verdict=HookVerdict.DENY, message=message, metadata=metadata or {})

    @classmethod
    def warn(
        cls,
        message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "HookResult":
        """Factory method for WARN verdict."""
        return cls(verdict=HookVerdict.WARN, message=message, metadata=metadata or {})

    def to_json(self) -> dict[str, Any]:
        """Serialize to canonical JSON format."""
        return {
            "verdict": self.verdict.value,
            "message": self.message,
            "metadata": self.metadata,
        }
