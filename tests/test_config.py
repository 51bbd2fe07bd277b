"""
Tests for the import configuration.

Tests cover defaults, camelCase parsing, the legacy shortenUrls flag,
validation errors and JSON file loading.
"""

import json

import pytest

from rdflpg.config import HandleMultival, HandleVocabUris, ImportConfig, load_config
from rdflpg.exceptions import InvalidConfigError


@pytest.mark.unit
class TestImportConfigDefaults:
    """Tests for default values."""

    def test_defaults(self):
        """Test that an empty configuration uses the documented defaults."""
        config = ImportConfig()
        assert config.handle_vocab_uris is HandleVocabUris.SHORTEN
        assert config.types_to_labels is True
        assert config.handle_multival is HandleMultival.OVERWRITE
        assert config.keep_custom_data_types is False
        assert config.keep_lang_tag is False
        assert config.language_filter is None
        assert config.commit_size == 25000
        assert config.node_cache_size == 10000
        assert config.preview_limit == 1000

    def test_from_none_and_empty(self):
        """Test that None and {} both give the defaults."""
        assert ImportConfig.from_dict(None) == ImportConfig()
        assert ImportConfig.from_dict({}) == ImportConfig()


@pytest.mark.unit
class TestImportConfigParsing:
    """Tests for from_dict / to_dict."""

    def test_camel_case_keys(self):
        """Test that camelCase keys map to attributes."""
        config = ImportConfig.from_dict({
            "handleVocabUris": "KEEP",
            "handleMultival": "ARRAY",
            "multivalPropList": ["http://example.org/p"],
            "keepCustomDataTypes": True,
            "languageFilter": "fr",
            "keepLangTag": "true",
            "commitSize": 10,
            "nodeCacheSize": 5,
            "headerParams": {"Authorization": "Bearer x"},
        })
        assert config.handle_vocab_uris is HandleVocabUris.KEEP
        assert config.handle_multival is HandleMultival.ARRAY
        assert config.multival_prop_list == ["http://example.org/p"]
        assert config.keep_custom_data_types is True
        assert config.language_filter == "fr"
        assert config.keep_lang_tag is True
        assert config.commit_size == 10
        assert config.node_cache_size == 5
        assert config.header_params == {"Authorization": "Bearer x"}

    def test_enum_values_are_case_insensitive(self):
        """Test that policy names are accepted in any case."""
        config = ImportConfig.from_dict({"handleVocabUris": "ignore"})
        assert config.handle_vocab_uris is HandleVocabUris.IGNORE

    def test_legacy_shorten_urls(self):
        """Test that shortenUrls maps to SHORTEN or KEEP."""
        assert ImportConfig.from_dict({"shortenUrls": False}).handle_vocab_uris is HandleVocabUris.KEEP
        assert ImportConfig.from_dict({"shortenUrls": True}).handle_vocab_uris is HandleVocabUris.SHORTEN

    def test_handle_vocab_uris_wins_over_shorten_urls(self):
        """Test that an explicit handleVocabUris takes precedence."""
        config = ImportConfig.from_dict({"shortenUrls": False, "handleVocabUris": "MAP"})
        assert config.handle_vocab_uris is HandleVocabUris.MAP

    def test_unknown_keys_are_ignored(self, caplog):
        """Test that unknown keys are logged and skipped."""
        config = ImportConfig.from_dict({"verbose": True})
        assert config == ImportConfig()
        assert "verbose" in caplog.text

    def test_single_string_list(self):
        """Test that a single IRI is accepted where a list is expected."""
        config = ImportConfig.from_dict({"predicateExclusionList": "http://example.org/p"})
        assert config.predicate_exclusion_list == ["http://example.org/p"]

    def test_to_dict_round_trip(self):
        """Test that to_dict output is accepted by from_dict."""
        config = ImportConfig.from_dict({"handleMultival": "ARRAY", "languageFilter": "en"})
        data = config.to_dict()
        assert data["handleMultival"] == "ARRAY"
        assert data["handleVocabUris"] == "SHORTEN"
        assert ImportConfig.from_dict(data) == config


@pytest.mark.unit
class TestImportConfigValidation:
    """Tests for invalid values."""

    @pytest.mark.parametrize("data", [
        {"handleVocabUris": "SHRINK"},
        {"handleMultival": "MERGE"},
        {"commitSize": 0},
        {"commitSize": "many"},
        {"nodeCacheSize": -1},
        {"typesToLabels": "yes"},
        {"multivalPropList": 3},
        {"headerParams": "Authorization"},
    ])
    def test_invalid_values(self, data):
        """Test that invalid values raise InvalidConfigError."""
        with pytest.raises(InvalidConfigError):
            ImportConfig.from_dict(data)

    def test_invalid_config_is_value_error(self):
        """Test that InvalidConfigError can be caught as ValueError."""
        with pytest.raises(ValueError):
            ImportConfig(commit_size=0)


@pytest.mark.unit
class TestPredicatePolicies:
    """Tests for the per-predicate helpers."""

    def test_multivalued_requires_array(self):
        """Test that OVERWRITE never accumulates."""
        assert not ImportConfig().is_multivalued("http://example.org/p")

    def test_multivalued_all_predicates(self):
        """Test that ARRAY without a list applies to every predicate."""
        config = ImportConfig(handle_multival=HandleMultival.ARRAY)
        assert config.is_multivalued("http://example.org/p")

    def test_multivalued_allow_list(self):
        """Test that ARRAY with a list applies only to listed predicates."""
        config = ImportConfig(handle_multival="ARRAY", multival_prop_list=["http://example.org/p"])
        assert config.is_multivalued("http://example.org/p")
        assert not config.is_multivalued("http://example.org/q")

    def test_custom_data_type_allow_list(self):
        """Test custom datatype preservation with and without a list."""
        assert not ImportConfig().keeps_custom_data_type("http://example.org/p")
        assert ImportConfig(keep_custom_data_types=True).keeps_custom_data_type("http://example.org/p")
        config = ImportConfig(keep_custom_data_types=True,
                              custom_data_typed_prop_list=["http://example.org/p"])
        assert config.keeps_custom_data_type("http://example.org/p")
        assert not config.keeps_custom_data_type("http://example.org/q")


@pytest.mark.unit
class TestLoadConfig:
    """Tests for JSON configuration files."""

    def test_top_level_keys(self, tmp_path):
        """Test a file with the keys at top level."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"handleVocabUris": "KEEP"}))
        assert load_config(path).handle_vocab_uris is HandleVocabUris.KEEP

    def test_import_section(self, tmp_path):
        """Test a file with the keys under "import"."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"import": {"commitSize": 7}, "logging": {"level": "DEBUG"}}))
        assert load_config(path).commit_size == 7

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.json")

    def test_malformed_json(self, tmp_path):
        """Test that malformed JSON raises InvalidConfigError."""
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(InvalidConfigError):
            load_config(path)
