from __future__ import annotations

from pathlib import Path

import pytest

from src.config import (
    DEFAULT_GALLERY_EXTENSIONS,
    DEFAULT_PORT,
    ConfigError,
    Settings,
    load_settings,
)


def test_missing_share_root_is_fatal():
    with pytest.raises(ConfigError, match="DIR_SHARE is not set"):
        load_settings({})


def test_nonexistent_share_root_is_fatal(tmp_path: Path):
    with pytest.raises(ConfigError, match="does not exist"):
        load_settings({"DIR_SHARE": str(tmp_path / "missing")})


def test_share_root_must_be_a_directory(tmp_path: Path):
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")
    with pytest.raises(ConfigError, match="not a directory"):
        load_settings({"DIR_SHARE": str(target)})


def test_defaults_and_canonical_root(share_root: Path):
    settings = load_settings({"DIR_SHARE": str(share_root / "sub" / "..")})
    assert settings == Settings(share_root=share_root)
    assert settings.port == DEFAULT_PORT
    assert settings.gallery_extensions == DEFAULT_GALLERY_EXTENSIONS


def test_environment_values_are_parsed(share_root: Path):
    settings = load_settings(
        {
            "DIR_SHARE": str(share_root),
            "HOST": "0.0.0.0",
            "PORT": "8080",
            "LOG_LEVEL": "debug",
            "GALLERY_EXTENSIONS": "JPG, .png,,",
        }
    )
    assert settings.host == "0.0.0.0"
    assert settings.port == 8080
    assert settings.log_level == "DEBUG"
    assert settings.gallery_extensions == frozenset({".jpg", ".png"})


@pytest.mark.parametrize("port", ["abc", "0", "70000"])
def test_invalid_port_is_rejected(share_root: Path, port: str):
    with pytest.raises(ConfigError):
        load_settings({"DIR_SHARE": str(share_root), "PORT": port})


def test_unknown_log_level_is_rejected(share_root: Path):
    with pytest.raises(ConfigError, match="LOG_LEVEL"):
        load_settings({"DIR_SHARE": str(share_root), "LOG_LEVEL": "chatty"})


def test_overrides_win_over_environment(share_root: Path, empty_root: Path):
    settings = load_settings(
        {"DIR_SHARE": str(share_root), "PORT": "8080"},
        overrides={"share_root": str(empty_root), "port": 9000, "host": None},
    )
    assert settings.share_root == empty_root
    assert settings.port == 9000
    assert settings.host == "127.0.0.1"


def test_env_file_is_loaded(tmp_path: Path, share_root: Path, monkeypatch):
    for name in ("DIR_SHARE", "PORT"):
        # setenv first so monkeypatch restores the variable as unset afterwards
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text(f'DIR_SHARE="{share_root}"\nPORT=4321\n', encoding="utf-8")

    settings = load_settings(env_file=env_file)
    assert settings.share_root == share_root
    assert settings.port == 4321
