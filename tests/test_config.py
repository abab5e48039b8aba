"""Tests for relationship configuration loading."""

import pytest

from bankfetch.config import (
    ConfigError,
    ConfigLoader,
    Relationship,
    Settings,
    parse_configuration,
    write_default_config,
)


def test_name_defaults_to_provider(write_config):
    """A relationship without a name is named after its provider."""
    config = write_config([{"provider": "X"}, {"provider": "Y", "name": ""}]).load()

    assert [r.name for r in config.relationships] == ["X", "Y"]
    assert [r.provider for r in config.relationships] == ["X", "Y"]


def test_duplicate_default_names_rejected(write_config):
    """Two unnamed uses of one provider collide on the default name."""
    loader = write_config([{"provider": "X"}, {"provider": "X"}])

    with pytest.raises(ConfigError) as exc_info:
        loader.load()

    assert exc_info.value.duplicates == ["X"]
    assert "'X'" in str(exc_info.value)
    assert "name" in str(exc_info.value)


def test_explicit_name_disambiguates(write_config):
    config = write_config([{"provider": "X"}, {"provider": "X", "name": "X2"}]).load()

    assert [r.name for r in config.relationships] == ["X", "X2"]
    assert all(r.provider == "X" for r in config.relationships)


def test_all_duplicates_reported_together(write_config):
    loader = write_config(
        [
            {"provider": "A"},
            {"provider": "A"},
            {"provider": "B"},
            {"provider": "C", "name": "B"},
            {"provider": "A"},
        ]
    )

    with pytest.raises(ConfigError) as exc_info:
        loader.load()

    assert exc_info.value.duplicates == ["A", "B"]


def test_option_fields_collected(write_config):
    config = write_config(
        [
            {
                "provider": "ing",
                "name": "Joint",
                "download_statements": True,
                "password": "$secret shared:pin",
                "options": {"region": "au"},
            }
        ]
    ).load()

    relationship = config.relationships[0]
    assert relationship.options == {
        "download_statements": True,
        "password": "$secret shared:pin",
        "region": "au",
    }
    assert relationship.enabled is True


def test_disabled_relationship(write_config):
    config = write_config([{"provider": "ing", "enabled": False}]).load()
    assert config.relationships[0].enabled is False


def test_empty_relationship_list_is_valid(write_config):
    assert write_config([]).load().relationships == ()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Cannot read config file"):
        ConfigLoader(tmp_path / "missing.yaml").load()


def test_malformed_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("relationships: [\n  - provider: x\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Malformed YAML"):
        ConfigLoader(path).load()


def test_malformed_yaml_reports_position_only(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "relationships:\n  - provider: ing\n    password: \"hunter2\n    name: [\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError) as excinfo:
        ConfigLoader(path).load()

    message = str(excinfo.value)
    assert "at line" in message
    assert "hunter2" not in message
    assert excinfo.value.__cause__ is None


@pytest.mark.parametrize(
    "data",
    [
        None,
        ["not", "a", "mapping"],
        {"other": []},
        {"relationships": {"provider": "x"}},
        {"relationships": ["x"]},
        {"relationships": [{"name": "no-provider"}]},
        {"relationships": [{"provider": ""}]},
        {"relationships": [{"provider": "x", "options": ["bad"]}]},
    ],
)
def test_structural_errors(data):
    with pytest.raises(ConfigError):
        parse_configuration(data)


def test_invalid_entry_message_omits_values():
    with pytest.raises(ConfigError) as exc_info:
        parse_configuration({"relationships": [{"provider": "x", "enabled": "hunter2-not-bool"}]})

    assert "hunter2" not in str(exc_info.value)
    assert "enabled" in str(exc_info.value)


def test_relationship_is_immutable():
    relationship = Relationship(provider="ing")
    with pytest.raises(Exception):
        relationship.name = "other"


def test_write_default_config_round_trip(tmp_path):
    path = write_default_config(tmp_path / "nested" / "config.yaml")

    config = ConfigLoader(path).load()
    assert [r.name for r in config.relationships] == ["ing"]


def test_write_default_config_refuses_overwrite(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("relationships: []\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="already exists"):
        write_default_config(path)

    write_default_config(path, overwrite=True)
    assert "provider: ing" in path.read_text(encoding="utf-8")


def test_step_timeout_disabled_by_zero():
    assert Settings(step_timeout_seconds=0).step_timeout is None
    assert Settings(step_timeout_seconds=12.5).step_timeout == 12.5
