from pathlib import Path

import pytest

from gamedocs import DocumentMeta, GamedocsSettings


def test_defaults_when_environment_is_empty() -> None:
    settings = GamedocsSettings.from_env({})

    assert settings.worlds_root is None
    assert settings.schema_root is None
    assert settings.user_id == "gamedocs"
    assert settings.coerce_types is False
    assert settings.log_level == "WARNING"


def test_reads_all_variables(tmp_path: Path) -> None:
    settings = GamedocsSettings.from_env(
        {
            "GAMEDOCS_WORLDS_ROOT": f" {tmp_path / 'worlds'} ",
            "GAMEDOCS_SCHEMA_ROOT": str(tmp_path / "schemas"),
            "GAMEDOCS_USER_ID": "gm",
            "GAMEDOCS_CORE_VERSION": "12.331",
            "GAMEDOCS_SYSTEM_ID": "dnd5e",
            "GAMEDOCS_SYSTEM_VERSION": "4.0.0",
            "GAMEDOCS_COERCE_TYPES": "Yes",
            "GAMEDOCS_LOG_LEVEL": "debug",
        }
    )

    assert settings.worlds_root == tmp_path / "worlds"
    assert settings.schema_root == tmp_path / "schemas"
    assert settings.coerce_types is True
    assert settings.log_level == "DEBUG"
    assert settings.document_meta() == DocumentMeta(
        user_id="gm", core_version="12.331", system_id="dnd5e", system_version="4.0.0"
    )


def test_blank_values_fall_back_to_defaults() -> None:
    settings = GamedocsSettings.from_env(
        {"GAMEDOCS_WORLDS_ROOT": "  ", "GAMEDOCS_USER_ID": "", "GAMEDOCS_COERCE_TYPES": " "}
    )

    assert settings.worlds_root is None
    assert settings.user_id == "gamedocs"
    assert settings.coerce_types is False


def test_home_directory_is_expanded(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))

    settings = GamedocsSettings.from_env({"GAMEDOCS_WORLDS_ROOT": "~/worlds"})

    assert settings.worlds_root == tmp_path / "worlds"


@pytest.mark.parametrize(
    "environ",
    [{"GAMEDOCS_COERCE_TYPES": "sometimes"}, {"GAMEDOCS_LOG_LEVEL": "chatty"}],
)
def test_invalid_values_are_rejected(environ: dict) -> None:
    with pytest.raises(ValueError):
        GamedocsSettings.from_env(environ)


def test_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GAMEDOCS_USER_ID", "from-env")

    assert GamedocsSettings.from_env().user_id == "from-env"
