from collections.abc import Callable
from pathlib import Path

import pytest

from ocrwatch.config.settings import Settings

# 8-byte PNG signature plus a couple of bytes; enough for the pipeline, which never decodes it.
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00"


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep a developer's config.json, .env and exported variables out of the tests."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)
    monkeypatch.setenv("OCRWATCH_CONFIG_FILE", str(tmp_path / "missing-config.json"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def watch_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "watched"
    folder.mkdir()
    return folder


@pytest.fixture()
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture()
def make_settings(watch_folder: Path) -> Callable[..., Settings]:
    def _make(**overrides: object) -> Settings:
        values: dict[str, object] = {
            "watch_folder": watch_folder,
            "stability_poll_interval_seconds": 0.01,
            "stability_threshold": 2,
            "stability_max_wait_seconds": 1.0,
            "notifications_enabled": False,
            "shutdown_grace_seconds": 1.0,
        }
        values.update(overrides)
        return Settings(**values)

    return _make
