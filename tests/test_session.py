"""Tests for per-run Session state."""

import re

import pytest

from githooks.lib.errors import ConfigError, GroupSpecError
from githooks.lib.git_config import ConfigStore
from githooks.lib.hook_types import AffectedRef, HookEvent
from githooks.lib.session_state import Session
from githooks.schemas import HookContext

from conftest import NEW, OLD, FakeRepository


@pytest.fixture
def make_session(git_dir):
    def _make(entries=(), ancestors=()):
        context = HookContext(
            hook_event=HookEvent.UPDATE,
            args=("refs/heads/main", OLD, NEW),
            affected_refs=(AffectedRef(ref="refs/heads/main", old=OLD, new=NEW),),
        )
        repository = FakeRepository(git_dir, ancestors=ancestors)
        return Session(context, ConfigStore(entries), repository)

    return _make


def test_event_data(make_session, git_dir):
    session = make_session(ancestors={(OLD, NEW)})

    assert session.event == HookEvent.UPDATE
    assert session.args == ("refs/heads/main", OLD, NEW)
    assert session.affected_refs[0].ref == "refs/heads/main"
    assert session.git_dir == git_dir
    assert session.is_ancestor(OLD, NEW)
    assert not session.is_ancestor(NEW, OLD)


def test_inline_groups(make_session):
    session = make_session([("githooks.groups", "devs = alice")])
    assert session.groups.is_member("alice", "@devs")


def test_groups_from_file(make_session, tmp_path):
    spec = tmp_path / "groups.txt"
    spec.write_text("ops = root\nadmins = @ops\n")
    session = make_session([("githooks.groups", f"file:{spec}")])

    assert session.groups.is_member("root", "admins")


def test_group_errors_name_the_file(make_session, tmp_path):
    spec = tmp_path / "groups.txt"
    spec.write_text("admins = @nobody\n")
    session = make_session([("githooks.groups", f"file:{spec}")])

    with pytest.raises(GroupSpecError, match=re.escape(str(spec))):
        session.groups


def test_missing_groups_option(make_session):
    with pytest.raises(ConfigError, match="githooks.groups"):
        make_session().groups


def test_groups_are_parsed_once(make_session, tmp_path):
    spec = tmp_path / "groups.txt"
    spec.write_text("devs = alice\n")
    session = make_session([("githooks.groups", f"file:{spec}")])

    first = session.groups
    spec.write_text("devs = bob\n")

    assert session.groups is first


def test_admins(make_session):
    session = make_session([("githooks.admin", "root"), ("githooks.admin", "@ops")])
    assert session.admins == ["root", "@ops"]


def test_user_is_resolved_lazily(make_session, monkeypatch):
    session = make_session()
    monkeypatch.setenv("USER", "alice")

    assert session.user() == "alice"


def test_user_honours_plugin_section_userenv(make_session, monkeypatch):
    monkeypatch.setenv("USER", "alice")
    monkeypatch.setenv("GL_USER", "gitlab-bob")
    session = make_session([("check-acls.userenv", "GL_USER")])

    assert session.user("check-acls") == "gitlab-bob"
    assert session.user() == "alice"


def test_user_is_resolved_once_per_run(make_session, monkeypatch):
    monkeypatch.setenv("USER", "alice")
    session = make_session()

    assert session.user() == "alice"
    monkeypatch.setenv("USER", "mallory")
    assert session.user() == "alice"

    session.close()
    assert session.user() == "mallory"


def test_plugin_caches_are_private_and_dropped_on_close(make_session):
    with make_session([("githooks.groups", "devs = alice")]) as session:
        session.cache("one")["rules"] = [1]
        session.cache("two")["rules"] = [2]
        session.groups

        assert session.cache("one") == {"rules": [1]}
        assert session.cache("two") == {"rules": [2]}

    assert session.cache("one") == {}
    assert "groups" not in session.__dict__
