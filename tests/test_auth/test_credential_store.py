"""Tests for the netrc credential store."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from heroku_command.auth.credential_store import NetrcEntry, NetrcStore, default_netrc_path
from heroku_command.exceptions import ConfigError


@pytest.fixture()
def store(netrc_path: Path) -> NetrcStore:
    return NetrcStore(netrc_path)


class TestNetrcEntry:
    def test_password_hidden_from_repr(self) -> None:
        entry = NetrcEntry(login="me@example.com", password="s3cret")
        assert "s3cret" not in repr(entry)
        assert "me@example.com" in repr(entry)


class TestDefaultPath:
    def test_netrc_env_var(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("NETRC", str(tmp_path / "custom"))
        assert default_netrc_path() == tmp_path / "custom"

    def test_home_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NETRC", raising=False)
        monkeypatch.setattr("heroku_command.auth.credential_store.sys.platform", "linux")
        assert default_netrc_path() == Path.home() / ".netrc"


class TestLoad:
    def test_missing_file_is_empty(self, store: NetrcStore) -> None:
        assert store.load() is store
        assert store.machines == {}
        assert store.get("api.heroku.com") is None

    def test_multiline_entries(self, store: NetrcStore) -> None:
        store.path.write_text(
            "machine api.heroku.com\n"
            "  login me@example.com\n"
            "  password abc\n"
            "machine git.heroku.com\n"
            "  login me@example.com\n"
            "  password abc\n"
        )
        store.load()
        entry = store.get("api.heroku.com")
        assert entry is not None
        assert entry.login == "me@example.com"
        assert entry.password == "abc"
        assert set(store.machines) == {"api.heroku.com", "git.heroku.com"}

    def test_single_line_entry_and_user_alias(self, store: NetrcStore) -> None:
        store.path.write_text("machine example.com user bob password pw account acct\n")
        entry = store.load().get("example.com")
        assert entry is not None
        assert (entry.login, entry.password, entry.account) == ("bob", "pw", "acct")

    def test_quoted_values_and_comments(self, store: NetrcStore) -> None:
        store.path.write_text(
            "# credentials\n"
            'machine api.heroku.com login me@example.com password "with space"  # trailing\n'
        )
        entry = store.load().get("api.heroku.com")
        assert entry is not None
        assert entry.password == "with space"

    def test_legacy_fields_kept_as_extras(self, store: NetrcStore) -> None:
        store.path.write_text(
            "machine api.heroku.com\n  login me\n  password p\n  method sso\n  org acme\n"
        )
        entry = store.load().get("api.heroku.com")
        assert entry is not None
        assert entry.extras == {"method": "sso", "org": "acme"}

    def test_macdef_is_skipped(self, store: NetrcStore) -> None:
        store.path.write_text(
            "macdef init\n"
            "cd /pub\n"
            "machine fake.example.com login nope\n"
            "\n"
            "machine api.heroku.com login me password p\n"
        )
        store.load()
        assert set(store.machines) == {"api.heroku.com"}

    def test_default_entry(self, store: NetrcStore) -> None:
        store.path.write_text("machine a.example.com login a password 1\ndefault login anon password x\n")
        store.load()
        assert store.default is not None
        assert store.default.login == "anon"

    def test_token_outside_machine_raises(self, store: NetrcStore) -> None:
        store.path.write_text("login orphan\n")
        with pytest.raises(ConfigError, match="outside of a machine entry"):
            store.load()

    def test_missing_value_raises(self, store: NetrcStore) -> None:
        store.path.write_text("machine api.heroku.com login\n")
        with pytest.raises(ConfigError, match="missing value"):
            store.load()

    def test_unbalanced_quote_raises(self, store: NetrcStore) -> None:
        store.path.write_text('machine api.heroku.com password "open\n')
        with pytest.raises(ConfigError):
            store.load()


class TestWrite:
    def test_set_and_save_round_trip(self, store: NetrcStore) -> None:
        store.load()
        store.set("api.heroku.com", "me@example.com", "tok")
        store.save()

        assert store.path.read_text() == (
            "machine api.heroku.com\n  login me@example.com\n  password tok\n"
        )
        reloaded = NetrcStore(store.path).load().get("api.heroku.com")
        assert reloaded is not None and reloaded.password == "tok"

    def test_set_drops_legacy_fields_only(self, store: NetrcStore) -> None:
        store.path.write_text(
            "machine api.heroku.com login old password old method sso org acme custom keep\n"
        )
        store.load()
        entry = store.set("api.heroku.com", "new", "newpw")
        assert entry.extras == {"custom": "keep"}
        assert (entry.login, entry.password) == ("new", "newpw")

    def test_other_machines_preserved(self, store: NetrcStore) -> None:
        store.path.write_text("machine github.com login gh password ghpw\n")
        store.load()
        store.set("api.heroku.com", "me", "tok")
        store.save()

        reloaded = NetrcStore(store.path).load()
        assert set(reloaded.machines) == {"github.com", "api.heroku.com"}
        github = reloaded.get("github.com")
        assert github is not None and github.password == "ghpw"

    def test_values_with_spaces_are_quoted(self, store: NetrcStore) -> None:
        store.set("api.heroku.com", "me", "has space")
        assert 'password "has space"' in store.dumps()
        store.save()
        entry = NetrcStore(store.path).load().get("api.heroku.com")
        assert entry is not None and entry.password == "has space"

    def test_remove(self, store: NetrcStore) -> None:
        store.set("api.heroku.com", "me", "tok")
        assert store.remove("api.heroku.com") is True
        assert store.remove("api.heroku.com") is False
        assert store.get("api.heroku.com") is None

    def test_file_permissions(self, store: NetrcStore) -> None:
        store.set("api.heroku.com", "me", "secret")
        store.save()
        assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o600

    def test_save_leaves_no_temp_files(self, store: NetrcStore) -> None:
        store.set("api.heroku.com", "me", "secret")
        store.save()
        leftovers = [p for p in store.path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []
