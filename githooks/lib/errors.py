"""Error taxonomy for hook dispatch.

Every failure in a run is fatal: the router catches ``GitHooksError`` once,
prints ``str(error)`` (``"<component>: <message>"``) on stderr and exits
non-zero. There is no retry anywhere.
"""

from __future__ import annotations


class GitHooksError(Exception):
    """Base class for all rejections raised while handling an event."""

    default_component = "githooks"

    def __init__(self, message: str, component: str | None = None):
        super().__init__(message)
        self.message = message
        self.component = component or self.default_component

    def __str__(self) -> str:
        return f"{self.component}: {self.message}"


class ConfigError(GitHooksError):
    """Malformed or missing required configuration."""

    default_component = "config"


class HookInputError(GitHooksError):
    """Event arguments or input-channel lines could not be parsed."""

    default_component = "router"


class GroupSpecError(GitHooksError):
    """Malformed group specification, redefinition or unknown group."""

    default_component = "groups"


class PluginNotFound(GitHooksError):
    """No plugin directory contained a file for the requested name."""

    default_component = "plugins"


class PluginLoadError(GitHooksError):
    """A plugin file was found but could not be executed or installed."""

    default_component = "plugins"


class PolicyViolation(GitHooksError):
    """A plugin or handler decided the event must be rejected."""

    default_component = "policy"


class AclConfigError(GitHooksError):
    """An ACL rule carries an invalid ``what`` component."""

    default_component = "check_acls"


class ExternalHookFailure(GitHooksError):
    """An external hook could not be spawned or did not exit cleanly."""

    default_component = "externals"

    def __init__(
        self,
        executable: str,
        *,
        exit_code: int | None = None,
        signal: int | None = None,
        coredump: bool = False,
        spawn_error: str | None = None,
    ):
        self.executable = executable
        self.exit_code = exit_code
        self.signal = signal
        self.coredump = coredump
        self.spawn_error = spawn_error

        if spawn_error is not None:
            message = f"failed to execute '{executable}': {spawn_error}"
        elif signal is not None:
            dumped = "with" if coredump else "without"
            message = f"'{executable}' died with signal {signal}, {dumped} coredump"
        else:
            message = f"'{executable}' exited abnormally with value {exit_code}"
        super().__init__(message)
