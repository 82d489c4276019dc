"""Tests for the layered ConfigStore, value sources and helper lookups."""

import pytest

from githooks.lib.errors import ConfigError
from githooks.lib.git_config import (
    ConfigStore,
    FromEnv,
    FromExternalCommand,
    FromFile,
    FromLiteral,
    normalize_key,
    parse_value_source,
)
from githooks.lib.hook_utils import get_authenticated_user, is_ref_enabled

from conftest import FakeRepository


class TestConfigStore:
    def test_multi_valued_keys_keep_order(self):
        store = ConfigStore([("githooks.update", "a"), ("githooks.update", "b")])

        assert store.get_all("githooks", "update") == ["a", "b"]
        assert store.get("githooks", "update") == "b"

    def test_missing_key(self):
        store = ConfigStore()

        assert store.get_all("githooks", "update") == []
        assert store.get("githooks", "update") is None
        assert store.get("githooks", "update", "dflt") == "dflt"

    def test_section_and_key_are_case_insensitive(self):
        store = ConfigStore([("GitHooks.Admin", "root")])

        assert store.get("githooks", "admin") == "root"
        assert "githooks.ADMIN" in store

    def test_subsection_is_case_sensitive(self):
        assert normalize_key("Remote.Origin.URL") == "remote.Origin.url"

    @pytest.mark.parametrize("raw,expected", [("true", True), ("Yes", True), ("1", True), ("off", False), ("0", False)])
    def test_get_bool(self, raw, expected):
        assert ConfigStore([("githooks.externals", raw)]).get_bool("githooks", "externals") is expected

    def test_get_bool_default_and_bad_value(self):
        assert ConfigStore().get_bool("githooks", "externals", True) is True
        with pytest.raises(ConfigError, match="bad boolean"):
            ConfigStore([("githooks.externals", "maybe")]).get_bool("githooks", "externals")

    def test_from_mapping_flattens_lists_and_bools(self):
        store = ConfigStore.from_mapping({"githooks": {"update": ["a", "b"], "externals": False}})

        assert store.get_all("githooks", "update") == ["a", "b"]
        assert store.get("githooks", "externals") == "false"

    def test_from_mapping_rejects_non_mapping_section(self):
        with pytest.raises(ConfigError):
            ConfigStore.from_mapping({"githooks": "nope"})


class TestLoad:
    def test_overlay_values_come_after_git_config(self, tmp_path, git_dir):
        overlay = tmp_path / "overlay.yaml"
        overlay.write_text("githooks:\n  update: [from_yaml]\n  userenv: GL_USER\n")
        repo = FakeRepository(git_dir, entries=[("githooks.update", "from_git"), ("githooks.userenv", "USER")])

        store = ConfigStore.load(repo, overlay)

        assert store.get_all("githooks", "update") == ["from_git", "from_yaml"]
        assert store.get("githooks", "userenv") == "GL_USER"

    def test_overlay_from_environment(self, tmp_path, git_dir, monkeypatch):
        overlay = tmp_path / "overlay.yaml"
        overlay.write_text("check-acls:\n  acl: '^. U ^refs/heads/'\n")
        monkeypatch.setenv("GITHOOKS_CONFIG", str(overlay))

        store = ConfigStore.load(FakeRepository(git_dir))

        assert store.get_all("check-acls", "acl") == ["^. U ^refs/heads/"]

    def test_missing_overlay(self, tmp_path, git_dir):
        with pytest.raises(ConfigError, match="can't open"):
            ConfigStore.load(FakeRepository(git_dir), tmp_path / "absent.yaml")

    def test_malformed_overlay(self, tmp_path, git_dir):
        overlay = tmp_path / "bad.yaml"
        overlay.write_text("githooks: [unclosed\n")

        with pytest.raises(ConfigError, match="can't parse"):
            ConfigStore.load(FakeRepository(git_dir), overlay)

    def test_overlay_must_be_a_mapping(self, tmp_path, git_dir):
        overlay = tmp_path / "list.yaml"
        overlay.write_text("- one\n- two\n")

        with pytest.raises(ConfigError, match="mapping"):
            ConfigStore.load(FakeRepository(git_dir), overlay)


class TestValueSources:
    def test_prefixes(self):
        assert parse_value_source("plain text") == FromLiteral("plain text")
        assert parse_value_source("file:/etc/groups") == FromFile("/etc/groups")
        assert parse_value_source("env:GL_USER") == FromEnv("GL_USER")
        assert parse_value_source("cmd:id -un") == FromExternalCommand(("id", "-un"))

    def test_bare_interpretation_is_chosen_by_caller(self):
        assert parse_value_source("GL_USER", bare=FromEnv) == FromEnv("GL_USER")

    def test_eval_is_rejected(self):
        with pytest.raises(ConfigError, match="eval"):
            parse_value_source("eval:$ENV{USER}")

    def test_empty_command_is_rejected(self):
        with pytest.raises(ConfigError):
            parse_value_source("cmd:   ")

    def test_file_source(self, tmp_path):
        path = tmp_path / "groups"
        path.write_text("admins = root\n")

        assert parse_value_source(f"file:{path}").resolve() == "admins = root\n"

    def test_unreadable_file_source(self, tmp_path):
        with pytest.raises(ConfigError):
            FromFile(str(tmp_path / "absent")).resolve()

    def test_command_source(self):
        assert parse_value_source("cmd:echo 'hello world'").resolve() == "hello world"

    def test_failing_command_source(self):
        with pytest.raises(ConfigError, match="exited with value"):
            FromExternalCommand(("sh", "-c", "exit 4")).resolve()

    def test_env_source(self, monkeypatch):
        monkeypatch.setenv("GL_USER", "frank")
        assert FromEnv("GL_USER").resolve() == "frank"
        assert FromEnv("GITHOOKS_SURELY_UNSET").resolve() is None


class TestAuthenticatedUser:
    def test_defaults_to_user_variable(self, monkeypatch):
        monkeypatch.setenv("USER", "alice")
        assert get_authenticated_user(ConfigStore()) == "alice"

    def test_userenv_names_a_variable(self, monkeypatch):
        monkeypatch.setenv("GL_USER", "bob")
        store = ConfigStore([("githooks.userenv", "GL_USER")])
        assert get_authenticated_user(store) == "bob"

    def test_plugin_section_overrides_global(self, monkeypatch):
        monkeypatch.setenv("A_USER", "a")
        monkeypatch.setenv("B_USER", "b")
        store = ConfigStore([("githooks.userenv", "A_USER"), ("check-acls.userenv", "B_USER")])

        assert get_authenticated_user(store, section="check-acls") == "b"
        assert get_authenticated_user(store) == "a"

    def test_userenv_from_command(self):
        store = ConfigStore([("githooks.userenv", "cmd:echo carol")])
        assert get_authenticated_user(store) == "carol"

    def test_unset_variable(self, monkeypatch):
        monkeypatch.delenv("USER", raising=False)
        assert get_authenticated_user(ConfigStore()) is None

    def test_eval_userenv_is_a_config_error(self):
        store = ConfigStore([("githooks.userenv", "eval:get_user()")])
        with pytest.raises(ConfigError):
            get_authenticated_user(store)


class TestRefEnabled:
    def test_no_specs_enables_everything(self):
        assert is_ref_enabled("refs/heads/anything", [])

    def test_exact_and_regex_specs(self):
        specs = ["refs/heads/main", "^refs/heads/release/"]

        assert is_ref_enabled("refs/heads/main", specs)
        assert is_ref_enabled("refs/heads/release/1.0", specs)
        assert not is_ref_enabled("refs/heads/topic", specs)
        assert not is_ref_enabled("refs/heads/main2", specs)
