"""Tests for the managed-path manifest and scopes."""

import pytest

from template_sync.errors import ConfigError
from template_sync.sync.manifest import ManagedManifest, Scope


class TestScope:
    @pytest.mark.parametrize("scope", ["all", "global", "project"])
    def test_full_scopes(self, scope):
        assert Scope(scope).is_full

    @pytest.mark.parametrize("scope", ["skills", "hooks", "commands", "agents"])
    def test_partial_scopes(self, scope):
        assert not Scope(scope).is_full


class TestManagedManifest:
    def test_default_is_valid(self):
        ManagedManifest().validate()

    def test_for_full_scope_is_unchanged(self):
        manifest = ManagedManifest()
        assert manifest.for_scope(Scope.GLOBAL) is manifest

    def test_for_partial_scope(self):
        narrowed = ManagedManifest().for_scope(Scope.HOOKS)
        assert narrowed == ManagedManifest(dirs=("hooks",), files=(), settings_files=())

    def test_partial_scope_must_be_managed(self):
        with pytest.raises(ConfigError, match="not a managed directory"):
            ManagedManifest(dirs=("skills",)).for_scope(Scope.AGENTS)

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "a\\b"])
    def test_rejects_non_component(self, name):
        with pytest.raises(ConfigError):
            ManagedManifest(dirs=(name,)).validate()

    def test_rejects_host_owned(self):
        with pytest.raises(ConfigError, match="host-owned"):
            ManagedManifest(files=("history.jsonl",)).validate()
