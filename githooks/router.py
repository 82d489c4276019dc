#!/usr/bin/env python3
"""
Git Hook Router.

Single entry point for every git hook. Symlink it as ``.git/hooks/<event>``
(or call ``githooks <event> [args...]``) and it dispatches the event:

1. Normalize arguments into a HookContext. ``update`` carries
   ``ref old new`` as argv; ``pre-receive``/``post-receive`` read
   ``old new ref`` lines from stdin until EOF.
2. Plugins listed in ``githooks.<event>`` are resolved and installed, in
   order, each at most once.
3. Handlers registered for the event run in registration order.
4. External hooks run, unless ``githooks.externals`` is false.

The first failure in any phase stops the run: nothing after it executes,
one ``githooks: <component>: <message>`` line is printed on stderr and the
process exits 1.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from collections.abc import Iterable, Sequence
from typing import Any

from githooks.externals import ExternalHookRunner
from githooks.hook_config import (
    ARGV_REF_EVENTS,
    EVENT_ARGUMENTS,
    KEY_EXTERNALS,
    NAMESPACE,
    STREAMED_REF_EVENTS,
    get_event,
)
from githooks.lib.errors import ConfigError, GitHooksError, HookInputError, PolicyViolation
from githooks.lib.git_config import ConfigStore
from githooks.lib.hook_model import HookResult, HookVerdict
from githooks.lib.hook_types import AffectedRef, HookEvent
from githooks.lib.repository import GitCommandError, GitRepository
from githooks.lib.session_state import Session
from githooks.plugin_loader import PluginResolver
from githooks.registry import HookRegistry, handler_name
from githooks.schemas import HookContext, HookOutcome

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEBUG_ENV_VAR = "GITHOOKS_DEBUG"


# --- Input Normalization ---


def parse_ref_lines(lines: Iterable[str]) -> list[AffectedRef]:
    """Parse ``old new ref`` lines as fed to pre-receive and post-receive.

    Raises:
        HookInputError: If a non-blank line doesn't have exactly three fields.
    """
    refs = []
    for lineno, line in enumerate(lines, start=1):
        fields = line.split()
        if not fields:
            continue
        if len(fields) != 3:
            raise HookInputError(f"malformed input line {lineno}: {line.strip()!r}")
        old, new, ref = fields
        refs.append(AffectedRef(ref=ref, old=old, new=new))
    return refs


# --- Router Logic ---


class HookRouter:
    """Dispatches one event. Create one router per run."""

    def __init__(
        self,
        repository: Any | None = None,
        config: ConfigStore | None = None,
        registry: HookRegistry | None = None,
    ):
        self.repository = repository if repository is not None else GitRepository()
        self._config = config
        self.registry = registry if registry is not None else HookRegistry()
        self.resolver: PluginResolver | None = None

    def normalize_input(
        self,
        hook_name: str,
        args: Sequence[str] = (),
        stdin: Iterable[str] | None = None,
    ) -> HookContext:
        """Create a HookContext from the hook name, argv and input channel.

        Raises:
            ConfigError: If ``hook_name`` is not a git hook.
            HookInputError: If reference arguments are malformed.
        """
        event = get_event(hook_name)
        if event is None:
            raise ConfigError(f"unknown hook '{hook_name}'", component="router")

        affected: list[AffectedRef] = []
        if event in ARGV_REF_EVENTS:
            if len(args) < 3:
                raise HookInputError(
                    f"{event} expects 'ref old new' arguments, got {list(args)}"
                )
            ref, old, new = args[:3]
            affected.append(AffectedRef(ref=ref, old=old, new=new))
        elif event in STREAMED_REF_EVENTS:
            affected = parse_ref_lines(stdin or ())

        return HookContext(hook_event=event, args=tuple(args), affected_refs=tuple(affected))

    def load_config(self) -> ConfigStore:
        if self._config is None:
            self._config = ConfigStore.load(self.repository)
        return self._config

    def execute_hooks(self, ctx: HookContext) -> HookOutcome:
        """Run plugins, handlers and external hooks for the event."""
        outcome = HookOutcome()
        names = EVENT_ARGUMENTS.get(ctx.hook_event, ())
        logger.debug(
            "dispatching %s args=%s refs=%d",
            ctx.hook_event, dict(zip(names, ctx.args)) or list(ctx.args), len(ctx.affected_refs),
        )
        try:
            config = self.load_config()
            with Session(ctx, config, self.repository) as session:
                self._run_plugins(session, outcome)
                self._run_handlers(session, outcome)
                self._run_externals(session, outcome)
        except GitHooksError as e:
            logger.debug("event %s rejected by %s", ctx.hook_event, e.component)
            _reject(outcome, e)
        except (GitCommandError, OSError) as e:
            # git dir discovery and ancestry queries shell out to git
            logger.debug("repository access failed for %s: %s", ctx.hook_event, e)
            _reject(outcome, ConfigError(f"can't access the repository: {e}", component="repository"))
        return outcome

    def run(
        self,
        hook_name: str,
        args: Sequence[str] = (),
        stdin: Iterable[str] | None = None,
    ) -> HookOutcome:
        """Normalize input and execute; input errors become a deny outcome."""
        try:
            ctx = self.normalize_input(hook_name, args, stdin)
        except GitHooksError as e:
            return _reject(HookOutcome(), e)
        return self.execute_hooks(ctx)

    # --- Phases ---

    def _run_plugins(self, session: Session, outcome: HookOutcome) -> None:
        names = session.config.get_all(NAMESPACE, str(session.event))
        if not names:
            return
        self.resolver = PluginResolver.for_session(session)
        for name in names:
            self.resolver.resolve(name, self.registry)
        outcome.metadata["plugins"] = list(self.resolver.loaded)

    def _run_handlers(self, session: Session, outcome: HookOutcome) -> None:
        for handler in self.registry.handlers_for(session.event):
            name = handler_name(handler)
            start_time = time.monotonic()
            try:
                result = handler(session, *session.args)
            except GitHooksError:
                raise
            except Exception as e:
                raise PolicyViolation(f"{type(e).__name__}: {e}", component=name) from e
            finally:
                duration = time.monotonic() - start_time
                outcome.metadata.setdefault("handler_times", {})[name] = duration

            if isinstance(result, HookResult):
                self._apply_result(name, result, outcome)

    def _apply_result(self, name: str, result: HookResult, outcome: HookOutcome) -> None:
        logger.debug("handler %s returned %s", name, result.to_json())
        if result.verdict == HookVerdict.DENY:
            raise PolicyViolation(result.message or "rejected", component=name)
        if result.verdict == HookVerdict.WARN and result.message:
            outcome.warnings.append(f"{name}: {result.message}")
        outcome.metadata.update(result.metadata)

    def _run_externals(self, session: Session, outcome: HookOutcome) -> None:
        if not session.config.get_bool(NAMESPACE, KEY_EXTERNALS, True):
            logger.debug("external hooks disabled")
            return
        runner = ExternalHookRunner.for_session(session)
        outcome.metadata["externals"] = runner.run(
            session.event, session.args, session.affected_refs
        )



def _reject(outcome: HookOutcome, error: GitHooksError) -> HookOutcome:
    """Mark ``outcome`` denied by ``error``, with the message on one line."""
    outcome.verdict = "deny"
    outcome.component = error.component
    lines = (line.strip() for line in error.message.splitlines())
    outcome.message = " ".join(line for line in lines if line) or "rejected"
    return outcome


# --- Main Entry Point ---


def _parse_args(argv: Sequence[str]) -> tuple[str, list[str], bool, str | None]:
    """Work out (hook name, hook args, verbose, git dir) from argv."""
    verbose = os.environ.get(DEBUG_ENV_VAR, "") not in ("", "0")

    # Installed as .git/hooks/<event>: argv[0] names the event
    if get_event(argv[0]) is not None:
        return argv[0], list(argv[1:]), verbose, None

    parser = argparse.ArgumentParser(
        prog="githooks", description="Dispatch a git hook event to plugins and external hooks"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--git-dir", help="Repository git dir (default: discovered by git)")
    parser.add_argument("event", choices=[str(e) for e in HookEvent], help="Hook event name")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Hook arguments")
    parsed = parser.parse_args(list(argv[1:]))
    return parsed.event, parsed.args, verbose or parsed.verbose, parsed.git_dir


def main(argv: Sequence[str] | None = None) -> int:
    argv = list(sys.argv if argv is None else argv)
    hook_name, args, verbose, git_dir = _parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)

    router = HookRouter(GitRepository(git_dir))
    outcome = router.run(hook_name, args, sys.stdin)

    for warning in outcome.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)
    if outcome.verdict == "deny":
        print(f"githooks: {outcome.diagnostic()}", file=sys.stderr)

    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
