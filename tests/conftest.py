"""Shared fixtures for githooks tests.

Most tests run against FakeRepository so they need neither git nor a real
repository: it exposes the three things the router uses (git_dir,
config_entries, is_ancestor).
"""

import stat
from pathlib import Path

import pytest

from githooks.lib.git_config import ConfigStore
from githooks.lib.hook_types import ZERO_OID
from githooks.router import HookRouter

ZERO = ZERO_OID
OLD = "1" * 40
NEW = "2" * 40


class FakeRepository:
    def __init__(self, git_dir: Path, entries=(), ancestors=()):
        self.git_dir = Path(git_dir)
        self.entries = list(entries)
        self.ancestors = set(ancestors)

    def config_entries(self):
        return list(self.entries)

    def is_ancestor(self, old: str, new: str) -> bool:
        return (old, new) in self.ancestors


def write_executable(path: Path, body: str) -> Path:
    """Write a /bin/sh script and mark it executable."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_plugin(directory: Path, name: str, body: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(body)
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the caller's environment from leaking into config resolution."""
    monkeypatch.delenv("GITHOOKS_CONFIG", raising=False)
    monkeypatch.delenv("GITHOOKS_DEBUG", raising=False)


@pytest.fixture
def git_dir(tmp_path) -> Path:
    path = tmp_path / "repo.git"
    path.mkdir()
    return path


@pytest.fixture
def make_router(git_dir):
    """Build a HookRouter over a FakeRepository and a mapping config."""

    def _make(config=None, ancestors=(), registry=None):
        repository = FakeRepository(git_dir, ancestors=ancestors)
        store = ConfigStore.from_mapping(config or {})
        # externals off unless a test asks for them
        if "githooks.externals" not in store:
            store.add("githooks.externals", "false")
        return HookRouter(repository, config=store, registry=registry)

    return _make
