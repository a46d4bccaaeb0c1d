"""Unit tests for settings management."""

from pathlib import Path

import pytest

from attachlink.config import AttachlinkConfig, ConfigError, ConfigManager, build_config
from attachlink.config.layers import cli_layer, env_layer, file_layer


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(env={})


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".attachlink" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "attachlink settings" in text
    assert "Last updated:" in text
    assert "sync_filename_and_title: true" in text

    config = manager.load()
    assert isinstance(config, AttachlinkConfig)
    assert config.attachments.base_attachment_path is None


def test_layers_apply_in_precedence_order(tmp_path: Path) -> None:
    env = {
        "ATTACHLINK__RENAME_MEMORY__TTL_SECONDS": "30",
        "ATTACHLINK__ATTACHMENTS__SYNC_FILENAME_AND_TITLE": "false",
        "UNRELATED": "ignored",
    }
    manager = ConfigManager(tmp_path / "config.yaml", env=env)
    manager.replace_text("rename_memory:\n  max_entries: 8\n  ttl_seconds: 60\n")

    config = manager.load(cli_overrides={"rename_memory.ttl_seconds": 5})

    assert config.rename_memory.max_entries == 8
    assert config.attachments.sync_filename_and_title is False
    # Command-line overrides beat the environment, which beats the file.
    assert config.rename_memory.ttl_seconds == pytest.approx(5)
    assert manager.load().rename_memory.ttl_seconds == pytest.approx(30)
    assert manager.load(include_env=False).rename_memory.ttl_seconds == pytest.approx(60)


def test_describe_reports_the_source_of_each_setting(tmp_path: Path) -> None:
    manager = ConfigManager(tmp_path / "config.yaml", env={"ATTACHLINK__LOGGING__LEVEL": "DEBUG"})
    manager.ensure_exists()
    manager.set_value("rename_memory.max_entries", "16")

    rows = {row.key: row for row in manager.describe()}

    assert rows["rename_memory.max_entries"].value == 16
    assert rows["rename_memory.max_entries"].source == "file"
    assert rows["logging.level"].source == "env"
    assert rows["attachments.sync_filename_and_title"].source == "default"
    assert manager.describe(include_env=False)[0].key == "attachments.base_attachment_path"


def test_set_value_reports_previous_and_current(tmp_path: Path) -> None:
    manager = ConfigManager(tmp_path / "config.yaml", env={})

    assert manager.set_value("attachments.sync_filename_and_title", "false") == (True, False)
    assert manager.set_value("attachments.sync_filename_and_title", "false") == (False, False)
    assert manager.load().attachments.sync_filename_and_title is False


def test_base_attachment_path_must_be_an_existing_directory(tmp_path: Path) -> None:
    manager = ConfigManager(tmp_path / "config.yaml", env={})
    linked = tmp_path / "linked"

    with pytest.raises(ConfigError) as excinfo:
        manager.set_value("attachments.base_attachment_path", str(linked))
    assert excinfo.value.key == "attachments.base_attachment_path"

    linked.mkdir()
    _, current = manager.set_value("attachments.base_attachment_path", str(linked))

    assert current == str(linked.resolve())
    assert manager.load().attachments.base_attachment_path == str(linked.resolve())


def test_base_attachment_path_can_be_cleared(tmp_path: Path) -> None:
    manager = ConfigManager(tmp_path / "config.yaml", env={})
    tmp_dir = tmp_path / "linked"
    tmp_dir.mkdir()
    manager.set_value("attachments.base_attachment_path", str(tmp_dir))

    manager.set_value("attachments.base_attachment_path", "null")

    assert manager.load().attachments.base_attachment_path is None


def test_unknown_settings_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        cli_layer({"attachments.unknown": True})
    with pytest.raises(ConfigError):
        env_layer({"ATTACHLINK__WATCH__DEBOUNCE": "1"})
    with pytest.raises(ConfigError):
        file_layer({"attachments": {"base_attachment_path": "/x", "extra": 1}})
    with pytest.raises(ConfigError):
        ConfigManager(tmp_path / "config.yaml", env={}).set_value("attachments", "1")


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()

    manager.config_path.write_text("attachments: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_invalid_values_name_the_setting() -> None:
    with pytest.raises(ConfigError) as excinfo:
        build_config({"rename_memory": {"max_entries": 0}})

    assert "rename_memory.max_entries" in str(excinfo.value)


def test_replace_text_leaves_file_untouched_when_invalid(tmp_path: Path) -> None:
    manager = ConfigManager(tmp_path / "config.yaml", env={})
    manager.ensure_exists()
    before = manager.read_text()

    with pytest.raises(ConfigError):
        manager.replace_text("attachments:\n  path_separator: '|'\n")

    assert manager.read_text() == before


def test_resolved_separator_honors_explicit_choice() -> None:
    config = build_config(cli_layer({"attachments.path_separator": "\\"}))

    assert config.attachments.resolved_separator() == "\\"
