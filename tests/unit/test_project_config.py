"""Unit tests for project configuration."""

from __future__ import annotations

import pytest

from stackpilot_cli.config import (
    RegistryAddress,
    StackIdentity,
    load_project_config,
    merge_configs,
    parse_config,
)
from stackpilot_cli.errors import ConfigurationError
from tests.mocks import base_config, registry_config, write_project


class TestStackIdentity:
    """Tests for StackIdentity derived names."""

    def test_package_with_owner(self):
        assert StackIdentity(name="widget", owner="acme").package == "acme/widget"

    def test_package_without_owner(self):
        assert StackIdentity(name="widget").package == "widget"

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("my.app", "my-app"),
            ("a.b.c", "a-b-c"),
            ("plain", "plain"),
            ("already-dashed.v2", "already-dashed-v2"),
        ],
    )
    def test_dns_name_replaces_dots_only(self, name, expected):
        assert StackIdentity(name=name).dns_name == expected


class TestRegistryAddress:
    """Tests for RegistryAddress."""

    def test_address(self):
        assert RegistryAddress("registry", "localhost", "5000").address == "localhost:5000"


class TestMergeConfigs:
    """Tests for merge_configs."""

    def test_later_source_wins(self):
        assert merge_configs({"A": 1}, {"A": 2, "B": 3}) == {"A": 2, "B": 3}

    def test_merge_is_per_top_level_property(self):
        merged = merge_configs(
            {"registryAddress": {"name": "r", "hostname": "a", "port": "1"}},
            {"registryAddress": {"name": "r2", "hostname": "b", "port": "2"}},
        )
        assert merged["registryAddress"]["hostname"] == "b"

    def test_no_sources(self):
        assert merge_configs() == {}


class TestParseConfig:
    """Tests for parse_config validation."""

    def test_valid(self):
        config = parse_config(base_config(registryAddress=registry_config()))

        assert config.identity == StackIdentity(name="my.app", owner="acme")
        assert config.compose_file.name == "docker-compose.yml"
        assert config.registry == RegistryAddress("local-registry", "localhost", "5000")

    def test_missing_name(self):
        data = base_config()
        del data["name"]
        with pytest.raises(ConfigurationError, match="'name'"):
            parse_config(data)

    def test_missing_compose_file(self):
        data = base_config()
        del data["composeFile"]
        with pytest.raises(ConfigurationError, match="composeFile.name"):
            parse_config(data)

    def test_not_dns_safe(self):
        with pytest.raises(ConfigurationError, match="lowercase"):
            parse_config(base_config(name="My_App"))

    def test_numeric_port(self):
        data = base_config(registryAddress={"name": "r", "hostname": "localhost", "port": 5000})
        assert parse_config(data).registry.port == "5000"

    def test_registry_not_an_object(self):
        data = base_config(registryAddress="localhost:5000")
        with pytest.raises(ConfigurationError, match="must be an object"):
            parse_config(data)

    @pytest.mark.parametrize("port", ["abc", "50 00", "-1"])
    def test_registry_port_not_numeric(self, port):
        data = base_config(registryAddress={"name": "r", "hostname": "localhost", "port": port})
        with pytest.raises(ConfigurationError, match="port must be a number"):
            parse_config(data)

    def test_incomplete_registry(self):
        data = base_config(registryAddress={"name": "r", "hostname": "localhost"})
        with pytest.raises(ConfigurationError, match="port"):
            parse_config(data)

    def test_no_registry(self):
        assert parse_config(base_config()).registry is None

    def test_empty_owner_is_none(self):
        assert parse_config(base_config(owner="")).identity.package == "my.app"


class TestLoadProjectConfig:
    """Tests for load_project_config."""

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="stackpilot.json"):
            load_project_config(tmp_path)

    def test_invalid_json(self, tmp_path):
        (tmp_path / "stackpilot.json").write_text("{not json")
        with pytest.raises(ConfigurationError, match="invalid JSON"):
            load_project_config(tmp_path)

    def test_not_an_object(self, tmp_path):
        (tmp_path / "stackpilot.json").write_text("[1, 2]")
        with pytest.raises(ConfigurationError):
            load_project_config(tmp_path)

    def test_local_overrides(self, tmp_path):
        project = write_project(
            tmp_path,
            base_config(),
            local_config={"owner": "me", "registryAddress": registry_config()},
        )
        config = load_project_config(project)

        assert config.identity.package == "me/my.app"
        assert config.registry is not None
        assert config.raw["name"] == "my.app"
