"""Unit tests for Settings."""

from pathlib import Path

from pydantic import ValidationError
import pytest

from vault_search.config import Settings


@pytest.mark.unit
class TestSettingsDefaults:
    def test_defaults(self):
        settings = Settings()
        assert settings.vault_root is None
        assert settings.fuzzy_proportion == 0.2
        assert settings.max_item_results == 30
        assert settings.max_line_results == 100
        assert settings.enable_stop_words_en is True
        assert settings.enable_stop_words_zh is False

    def test_document_weights(self):
        assert Settings().document_weights() == {
            "basename": 3.0,
            "folder": 2.0,
            "aliases": 1.15,
            "headings": 1.27,
        }


@pytest.mark.unit
class TestSettingsFromEnvironment:
    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VAULT_SEARCH_VAULT_ROOT", str(tmp_path))
        monkeypatch.setenv("VAULT_SEARCH_WEIGHT_FOLDER", "4.5")
        monkeypatch.setenv("VAULT_SEARCH_ENABLE_STOP_WORDS_ZH", "true")

        settings = Settings()

        assert settings.vault_root == tmp_path
        assert settings.document_weights()["folder"] == 4.5
        assert settings.enable_stop_words_zh is True

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("VAULT_SEARCH_MAX_SUB_ITEMS=7\n")
        assert Settings().max_sub_items == 7

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("VAULT_SEARCH_MAX_ITEM_RESULTS", "50")
        assert Settings(max_item_results=5).max_item_results == 5


@pytest.mark.unit
class TestSettingsValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"fuzzy_proportion": 1.5},
            {"fuzzy_proportion": -0.1},
            {"weight_filename": 0},
            {"max_line_results": 0},
            {"debounce_seconds": -1},
        ],
    )
    def test_rejects_out_of_range(self, overrides):
        with pytest.raises(ValidationError):
            Settings(**overrides)

    def test_fuzzy_threshold_not_below_prefix_threshold(self):
        with pytest.raises(ValidationError, match="min_term_length_for_prefix"):
            Settings(min_term_length_for_prefix=1, min_term_length_for_prefix_search=2)


@pytest.mark.unit
class TestSettingsHelpers:
    def test_exclude_extensions(self):
        settings = Settings(exclude_extensions=" .TXT, md ,,")
        assert settings.get_exclude_extensions() == ["txt", "md"]
        assert Settings().get_exclude_extensions() == []

    def test_snapshot_path_defaults_inside_vault(self, tmp_path):
        settings = Settings(vault_root=tmp_path)
        assert settings.resolve_snapshot_path() == tmp_path / ".vault-search" / "index.json"

    def test_explicit_snapshot_path(self, tmp_path):
        settings = Settings(vault_root=tmp_path, snapshot_path=Path("/var/cache/index.json"))
        assert settings.resolve_snapshot_path() == Path("/var/cache/index.json")

    def test_no_snapshot_without_vault(self):
        assert Settings().resolve_snapshot_path() is None
