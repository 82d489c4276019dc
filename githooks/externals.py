"""
External hook execution.

External hooks are ordinary executables living under
``<root>/<event-name>/``. Roots are ``$GIT_DIR/hooks.d`` followed by every
directory listed in ``githooks.hooks``. Every regular, executable file
directly inside the event directory is run, root by root and in file-name
order within a root.

Two protocols:
- Argv: ``<exe> <event> <args...>``
- StreamedLines (pre-receive, post-receive): same argv, plus one
  ``old new ref`` line per affected reference on stdin, closed after the
  last line.

The first hook that can't be spawned, exits non-zero or dies from a signal
rejects the event; later hooks are not run.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, TypeAlias

from githooks.hook_config import KEY_HOOKS, NAMESPACE, STREAMED_REF_EVENTS
from githooks.lib.errors import ExternalHookFailure
from githooks.lib.hook_types import AffectedRef, HookEvent
from githooks.lib.paths import get_default_external_hooks_dir

if TYPE_CHECKING:
    from githooks.lib.session_state import Session

logger = logging.getLogger(__name__)


# --- Protocols ---


@dataclass(frozen=True)
class Argv:
    """Arguments only; stdin is inherited."""

    def stdin_payload(self, affected_refs: Iterable[AffectedRef]) -> str | None:
        return None


@dataclass(frozen=True)
class StreamedLines:
    """Arguments plus one ``old new ref`` line per affected reference."""

    def stdin_payload(self, affected_refs: Iterable[AffectedRef]) -> str | None:
        return "".join(f"{affected.as_line()}\n" for affected in affected_refs)


HookProtocol: TypeAlias = Argv | StreamedLines


def protocol_for(event: HookEvent) -> HookProtocol:
    return StreamedLines() if event in STREAMED_REF_EVENTS else Argv()


def _feed(process: subprocess.Popen, payload: str) -> None:
    """Write ``payload`` to the hook's stdin and close it."""
    # A hook may exit without reading its input; its exit status decides.
    try:
        process.stdin.write(payload)
    except BrokenPipeError:
        pass
    try:
        process.stdin.close()
    except BrokenPipeError:
        pass


def _wait_status(process: subprocess.Popen) -> int:
    """Reap ``process`` and return the raw wait status (keeps the core flag)."""
    _, status = os.waitpid(process.pid, 0)
    process.returncode = os.waitstatus_to_exitcode(status)
    return status


# --- Runner ---


def is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


class ExternalHookRunner:
    def __init__(self, roots: Sequence[Path | str]):
        self.roots = [Path(r) for r in roots]

    @classmethod
    def for_session(cls, session: Session) -> ExternalHookRunner:
        roots: list[Path] = [get_default_external_hooks_dir(session.git_dir)]
        roots.extend(Path(d) for d in session.config.get_all(NAMESPACE, KEY_HOOKS))
        return cls(roots)

    def executables_for(self, event: HookEvent) -> list[Path]:
        """Executable files under each root's ``<event>`` directory, root by root."""
        found = []
        for root in self.roots:
            directory = root / str(event)
            if not directory.is_dir():
                continue
            found.extend(p for p in sorted(directory.iterdir()) if is_executable_file(p))
        return found

    def invoke(
        self,
        executable: Path,
        event: HookEvent,
        args: Sequence[str],
        affected_refs: Sequence[AffectedRef] = (),
    ) -> None:
        """Run one external hook and wait for it.

        Raises:
            ExternalHookFailure: On spawn failure, signal death or non-zero exit.
        """
        protocol = protocol_for(event)
        payload = protocol.stdin_payload(affected_refs)
        argv = [str(executable), str(event), *args]
        logger.debug("spawning %s (%s)", argv, type(protocol).__name__)

        try:
            process = subprocess.Popen(
                argv, stdin=subprocess.PIPE if payload is not None else None, text=True
            )
        except OSError as e:
            raise ExternalHookFailure(str(executable), spawn_error=e.strerror or str(e)) from e

        if payload is not None:
            _feed(process, payload)
        status = _wait_status(process)

        if os.WIFSIGNALED(status):
            raise ExternalHookFailure(
                str(executable), signal=os.WTERMSIG(status), coredump=os.WCOREDUMP(status)
            )
        if process.returncode != 0:
            raise ExternalHookFailure(str(executable), exit_code=process.returncode)

    def run(
        self,
        event: HookEvent,
        args: Sequence[str],
        affected_refs: Sequence[AffectedRef] = (),
    ) -> int:
        """Run every external hook for ``event``. Returns how many ran."""
        executables = self.executables_for(event)
        for executable in executables:
            self.invoke(executable, event, args, affected_refs)
        return len(executables)
