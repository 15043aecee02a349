from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from arxiv_digest.config import ClientProfile, ConfigLocator, ConfigRepository, GlobalConfig


def test_config_locator_uses_env_and_creates_directories(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("ARXIV_DIGEST_HOME", str(tmp_path))
    locator = ConfigLocator()
    assert locator.project_root == tmp_path.resolve()
    assert locator.data_dir.exists()
    assert locator.logs_dir.exists()
    assert locator.global_config_path() == tmp_path.resolve() / "data" / "config.yaml"


def test_first_load_writes_defaults(temp_config_repository: ConfigRepository) -> None:
    config = temp_config_repository.load_global_config()
    path = temp_config_repository.locator.global_config_path()
    assert config == GlobalConfig()
    assert path.exists()
    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert payload["fetch"]["routes"][0]["name"] == "allorigins"


def test_config_repository_global_roundtrip(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ARXIV_DIGEST_HOME", raising=False)
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = GlobalConfig.model_validate(
        {"fetch": {"client_profile": "mobile", "timeout": 5}, "arxiv": {"max_results": 50}}
    )
    repo.save_global_config(config)

    fresh = ConfigRepository(ConfigLocator(project_root=tmp_path))
    loaded = fresh.load_global_config()
    assert loaded == config
    assert loaded.fetch.client_profile is ClientProfile.MOBILE
    assert loaded.arxiv.max_results == 50


def test_store_path_is_relative_to_project_root(temp_config_repository: ConfigRepository, tmp_path: Path) -> None:
    assert temp_config_repository.store_path() == (tmp_path / "data" / "digest.db").resolve()


def test_invalid_config_file_is_rejected(temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.locator.global_config_path()
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        temp_config_repository.load_global_config()
