"""Unit tests for API key resolution and storage."""

import json
import os
import stat

import pytest

from santahat.core.credentials import (
    ENV_KEY_CANDIDATES,
    STORAGE_KEY,
    CredentialResolver,
    CredentialStore,
    resolve_api_key,
)


class TestResolveApiKey:
    """Tests for resolve_api_key function."""

    def test_explicit_key_wins_over_environment(self):
        assert resolve_api_key("abc", {"API_KEY": "env1"}) == "abc"

    def test_empty_explicit_falls_back_to_environment(self):
        assert resolve_api_key("", {"API_KEY": "env1"}) == "env1"

    def test_none_explicit_falls_back_to_environment(self):
        assert resolve_api_key(None, {"API_KEY": "env1"}) == "env1"

    def test_both_empty_returns_empty_string(self):
        assert resolve_api_key("", {}) == ""

    def test_whitespace_explicit_key_is_treated_as_empty(self):
        assert resolve_api_key("   ", {"API_KEY": "env1"}) == "env1"

    def test_explicit_key_is_trimmed(self):
        assert resolve_api_key("  abc \n", {}) == "abc"

    def test_candidates_checked_in_order(self):
        environ = {"REACT_APP_API_KEY": "react", "VITE_API_KEY": "vite"}
        assert resolve_api_key("", environ) == "vite"

    def test_empty_candidate_is_skipped(self):
        environ = {"API_KEY": "", "VITE_API_KEY": "  ", "REACT_APP_API_KEY": "react"}
        assert resolve_api_key("", environ) == "react"

    def test_custom_candidate_table(self):
        environ = {"API_KEY": "env1", "GEMINI_KEY": "gemini"}
        assert resolve_api_key("", environ, candidates=["GEMINI_KEY"]) == "gemini"

    def test_default_table(self):
        assert ENV_KEY_CANDIDATES == ("API_KEY", "VITE_API_KEY", "REACT_APP_API_KEY")

    def test_reads_os_environ_by_default(self, monkeypatch):
        for name in ENV_KEY_CANDIDATES:
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("VITE_API_KEY", "from-os")
        assert resolve_api_key(None) == "from-os"


class TestCredentialStore:
    """Tests for CredentialStore."""

    def test_missing_file_means_no_credential(self, credential_store):
        assert credential_store.get() == ""
        assert not credential_store.has_credential

    def test_set_then_get(self, credential_store):
        credential_store.set("secret")
        assert credential_store.get() == "secret"
        assert credential_store.has_credential

    def test_persists_under_storage_key(self, credential_store):
        credential_store.set("secret")
        data = json.loads(credential_store.path.read_text())
        assert data == {STORAGE_KEY: "secret"}

    def test_last_write_wins(self, credential_store):
        credential_store.set("first")
        credential_store.set("second")
        assert credential_store.get() == "second"

    def test_empty_write_removes_entry(self, credential_store):
        credential_store.set("secret")
        credential_store.set("")
        assert credential_store.get() == ""
        assert STORAGE_KEY not in json.loads(credential_store.path.read_text())

    def test_clear(self, credential_store):
        credential_store.set("secret")
        credential_store.clear()
        assert not credential_store.has_credential

    def test_value_is_trimmed(self, credential_store):
        credential_store.set("  secret  ")
        assert credential_store.get() == "secret"

    def test_corrupt_file_reads_as_empty(self, credential_store):
        credential_store.path.parent.mkdir(parents=True, exist_ok=True)
        credential_store.path.write_text("{not json")
        assert credential_store.get() == ""

    def test_new_store_sees_previous_write(self, credential_store):
        credential_store.set("secret")
        assert CredentialStore(credential_store.path).get() == "secret"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_file_created_private(self, credential_store, monkeypatch):
        """The key file is never readable by others, even before any chmod."""
        monkeypatch.setattr(os, "chmod", lambda *args, **kwargs: None)
        credential_store.set("secret")
        mode = stat.S_IMODE(credential_store.path.stat().st_mode)
        assert mode & 0o077 == 0

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_existing_file_is_tightened(self, credential_store):
        credential_store.path.parent.mkdir(parents=True, exist_ok=True)
        credential_store.path.write_text("{}")
        credential_store.path.chmod(0o644)
        credential_store.set("secret")
        assert stat.S_IMODE(credential_store.path.stat().st_mode) == 0o600


class TestCredentialResolver:
    """Tests for CredentialResolver."""

    def test_stored_key_used_when_no_explicit(self, credential_store):
        credential_store.set("stored")
        resolver = CredentialResolver(credential_store, environ={"API_KEY": "env1"})
        assert resolver.resolve() == "stored"

    def test_explicit_overrides_stored(self, credential_store):
        credential_store.set("stored")
        resolver = CredentialResolver(credential_store, environ={})
        assert resolver.resolve("explicit") == "explicit"

    def test_environment_used_when_nothing_stored(self, credential_store):
        resolver = CredentialResolver(credential_store, environ={"API_KEY": "env1"})
        assert resolver.resolve() == "env1"

    def test_nothing_available(self, resolver):
        assert resolver.resolve() == ""

    def test_without_store(self):
        resolver = CredentialResolver(environ={"REACT_APP_API_KEY": "react"})
        assert resolver.resolve() == "react"

    @pytest.mark.parametrize(
        "stored, environ, expected",
        [
            ("stored", {}, "stored"),
            ("", {"API_KEY": "env1"}, "environment"),
            ("", {}, "none"),
        ],
    )
    def test_source(self, credential_store, stored, environ, expected):
        credential_store.set(stored)
        resolver = CredentialResolver(credential_store, environ=environ)
        assert resolver.source() == expected

    def test_source_explicit(self, resolver):
        assert resolver.source("abc") == "explicit"
