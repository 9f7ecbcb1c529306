"""
Tests for the EnvironmentMaterializer.

Covers: immediate materialization and injection, absent keys skipped,
corrupt keys raise or are skipped on request, deferred descriptor
write/read/evaluate, descriptor holds no values and no shell syntax.
"""

import json
import os
import stat
import sys

import pytest

from devcreds.materializer import (
    EnvBinding,
    EnvDescriptor,
    EnvironmentMaterializer,
    read_descriptor,
)
from devcreds.vault import WELL_KNOWN_CREDENTIALS, CorruptCredential


@pytest.fixture
def populated(store):
    store.store("github_token", "ghp_abc", "GitHub PAT")
    store.store("postgresql_url", "postgresql://localhost/dev", "PostgreSQL Connection URL")
    store.store("aws_region", "eu-west-1", "AWS Default Region")
    return store


class TestImmediate:

    def test_materialize_maps_env_vars(self, populated):
        env = EnvironmentMaterializer(populated).materialize()
        assert env == {
            "GITHUB_TOKEN": "ghp_abc",
            "DATABASE_URL": "postgresql://localhost/dev",
            "AWS_DEFAULT_REGION": "eu-west-1",
        }

    def test_empty_store(self, store):
        assert EnvironmentMaterializer(store).materialize() == {}

    def test_inject_into_mapping(self, populated):
        environ = {"UNRELATED": "keep"}
        names = EnvironmentMaterializer(populated).inject(environ)
        assert names == ["AWS_DEFAULT_REGION", "DATABASE_URL", "GITHUB_TOKEN"]
        assert environ["GITHUB_TOKEN"] == "ghp_abc"
        assert environ["UNRELATED"] == "keep"

    def test_inject_defaults_to_os_environ(self, populated, monkeypatch):
        # setenv records the prior state so the injected values are undone
        for var in ("GITHUB_TOKEN", "DATABASE_URL", "AWS_DEFAULT_REGION"):
            monkeypatch.setenv(var, "placeholder")
        EnvironmentMaterializer(populated).inject()
        assert os.environ["GITHUB_TOKEN"] == "ghp_abc"
        assert os.environ["DATABASE_URL"] == "postgresql://localhost/dev"

    def test_absent_keys_not_injected(self, populated):
        environ = {}
        EnvironmentMaterializer(populated).inject(environ)
        assert "OPENAI_API_KEY" not in environ

    def test_corrupt_raises(self, populated):
        (populated.credentials_dir / "redis_url.enc").write_text("{}")
        with pytest.raises(CorruptCredential):
            EnvironmentMaterializer(populated).materialize()

    def test_corrupt_skipped_on_request(self, populated):
        (populated.credentials_dir / "redis_url.enc").write_text("{}")
        env = EnvironmentMaterializer(populated).materialize(skip_corrupt=True)
        assert "REDIS_URL" not in env
        assert env["GITHUB_TOKEN"] == "ghp_abc"

    def test_custom_descriptor(self, store):
        store.store("my_service_key", "s3cr3t", "Service key")
        descriptor = EnvDescriptor([EnvBinding("SERVICE_KEY", "my_service_key")])
        assert EnvironmentMaterializer(store, descriptor).materialize() == {"SERVICE_KEY": "s3cr3t"}

    def test_empty_descriptor_materializes_nothing(self, populated):
        assert EnvironmentMaterializer(populated, EnvDescriptor([])).materialize() == {}

    def test_evaluate_empty_descriptor(self, populated):
        assert EnvironmentMaterializer(populated).evaluate(EnvDescriptor([])) == {}

    def test_inject_empty_descriptor(self, populated):
        environ = {}
        assert EnvironmentMaterializer(populated, EnvDescriptor([])).inject(environ) == []
        assert environ == {}


class TestDescriptor:

    def test_well_known_covers_registry(self):
        descriptor = EnvDescriptor.well_known()
        assert len(descriptor) == len(WELL_KNOWN_CREDENTIALS)
        assert EnvBinding("DATABASE_URL", "postgresql_url") in list(descriptor)

    def test_duplicate_env_vars_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            EnvDescriptor([EnvBinding("A", "x"), EnvBinding("A", "y")])

    def test_invalid_key_rejected(self):
        with pytest.raises(ValueError):
            EnvDescriptor([EnvBinding("A", "../x")])

    def test_write_and_read(self, populated, tmp_path):
        materializer = EnvironmentMaterializer(populated)
        path = materializer.write_descriptor(tmp_path / "out" / "env.global.json")
        descriptor = read_descriptor(path)
        assert list(descriptor) == list(materializer.descriptor)

    def test_deferred_evaluation_sees_later_updates(self, populated, tmp_path):
        path = EnvironmentMaterializer(populated).write_descriptor(tmp_path / "env.json")
        populated.store("github_token", "ghp_rotated", "GitHub PAT")
        env = EnvironmentMaterializer(populated).evaluate(read_descriptor(path))
        assert env["GITHUB_TOKEN"] == "ghp_rotated"

    def test_descriptor_holds_no_values_or_shell_syntax(self, populated, tmp_path):
        path = EnvironmentMaterializer(populated).write_descriptor(tmp_path / "env.json")
        raw = path.read_text()
        assert "ghp_abc" not in raw
        assert "$(" not in raw
        document = json.loads(raw)
        assert document["version"] == 1
        assert {"env": "GITHUB_TOKEN", "credential": "github_token"} in document["bindings"]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_descriptor_owner_only(self, populated, tmp_path):
        path = EnvironmentMaterializer(populated).write_descriptor(tmp_path / "env.json")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_read_rejects_unknown_version(self, tmp_path):
        path = tmp_path / "env.json"
        path.write_text(json.dumps({"version": 99, "bindings": []}))
        with pytest.raises(ValueError, match="version"):
            read_descriptor(path)

    def test_read_rejects_malformed(self, tmp_path):
        path = tmp_path / "env.json"
        path.write_text(json.dumps({"version": 1, "bindings": [{"env": "A"}]}))
        with pytest.raises(ValueError):
            read_descriptor(path)

    def test_read_rejects_non_json(self, tmp_path):
        path = tmp_path / "env.json"
        path.write_text("GITHUB_TOKEN=$(decrypt_credential github_token)")
        with pytest.raises(ValueError):
            read_descriptor(path)
