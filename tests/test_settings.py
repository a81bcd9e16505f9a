import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from sheetbase.settings import Settings, get_settings, reload_settings


def test_defaults() -> None:
    settings = Settings()

    assert settings.table_prefix == "dt_"
    assert settings.max_identifier_length == 63
    assert settings.supported_file_extensions == (".xlsx", ".xlsm", ".csv")
    assert settings.log_level == logging.INFO


def test_environment_overrides_toml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "settings.toml").write_text(
        'table_prefix = "tbl_"\ninsert_batch_size = 50\nlog_level = "debug"\n', encoding="utf-8"
    )
    monkeypatch.setenv("SHEETBASE_INSERT_BATCH_SIZE", "7")

    settings = reload_settings()

    assert settings.table_prefix == "tbl_"
    assert settings.insert_batch_size == 7
    assert settings.log_level == logging.DEBUG
    assert get_settings() is settings


def test_value_normalization() -> None:
    settings = Settings(log_format="JSON", supported_file_extensions="xlsx, .CSV", log_level="30")

    assert settings.log_format == "ndjson"
    assert settings.supported_file_extensions == (".xlsx", ".csv")
    assert settings.log_level == logging.WARNING


@pytest.mark.parametrize(
    "overrides",
    [
        {"table_prefix": "1bad"},
        {"max_identifier_length": 8},
        {"insert_batch_size": 0},
        {"log_level": "chatty"},
    ],
)
def test_invalid_values(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)
