"""
Tests for source configuration loading.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from ledgerlab.config import LedgerConfig, load_config, parse_config
from ledgerlab.core.aggregator import DEFAULT_DETAIL_LIMIT
from ledgerlab.core.errors import ConfigError, StructuralError


class TestLoadConfig:
    """Reading YAML/JSON files."""

    def test_yaml_file_resolves_relative_paths(self, ledger_config: Path):
        config = load_config(ledger_config)

        assert isinstance(config, LedgerConfig)
        assert [s.id for s in config.sources] == ["A", "B"]
        assert config.sources[0].path == ledger_config.parent / "a.csv"
        assert config.labels() == {"A": "House", "B": "Flat"}
        assert config.origin == str(ledger_config)

    def test_json_file(self, tmp_path: Path):
        path = tmp_path / "ledger.json"
        path.write_text(
            json.dumps({"sources": [{"id": "x", "path": "/data/x.csv"}]}),
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.sources[0].path == Path("/data/x.csv")
        assert config.source_label("x") == "x"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path: Path):
        path = tmp_path / "ledger.toml"
        path.write_text("x = 1\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Unsupported config format"):
            load_config(path)

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "broken.yaml"
        path.write_text("sources: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="cannot parse"):
            load_config(path)

    def test_root_must_be_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(path)

    def test_mapping_is_not_mutated(self):
        raw = {"sources": [{"id": "a", "path": "a.csv"}], "title": "Haus"}
        load_config(raw)
        assert raw == {"sources": [{"id": "a", "path": "a.csv"}], "title": "Haus"}


class TestParseConfig:
    """Normalization rules."""

    def test_defaults(self):
        config = parse_config({"sources": [{"path": "a.csv"}]}, base_dir=Path("/x"))

        source = config.sources[0]
        assert source.id == "src0"
        assert source.label == "src0"
        assert source.delimiter == ";"
        assert source.path == Path("/x/a.csv")
        assert config.detail_limit == DEFAULT_DETAIL_LIMIT

    def test_per_source_delimiter_overrides_global(self):
        config = parse_config(
            {
                "delimiter": ",",
                "sources": [
                    {"id": "a", "path": "a.csv"},
                    {"id": "b", "path": "b.csv", "delimiter": "\t"},
                ],
            }
        )
        assert [s.delimiter for s in config.sources] == [",", "\t"]

    def test_entry_without_path_is_dropped(self, caplog):
        config = parse_config(
            {"sources": [{"id": "a"}, {"id": "b", "path": "b.csv"}]}
        )
        assert [s.id for s in config.sources] == ["b"]
        assert "has no path" in caplog.text

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ConfigError, match="duplicate source id 'a'"):
            parse_config(
                {
                    "sources": [
                        {"id": "a", "path": "a.csv"},
                        {"id": "a", "path": "b.csv"},
                    ]
                }
            )

    def test_legacy_single_path(self):
        config = parse_config({"csvPath": "ledger.csv"}, base_dir=Path("/d"))

        assert len(config.sources) == 1
        assert config.sources[0].id == "default"
        assert config.sources[0].label == "Default"
        assert config.sources[0].path == Path("/d/ledger.csv")

    def test_no_sources(self):
        with pytest.raises(ConfigError, match="at least one source"):
            parse_config({"sources": []})

    @pytest.mark.parametrize("limit", [0, -3, "10", True])
    def test_invalid_detail_limit(self, limit):
        with pytest.raises(ConfigError, match="detail_limit"):
            parse_config({"detail_limit": limit, "csvPath": "a.csv"})

    def test_sources_must_be_list(self):
        with pytest.raises(ConfigError, match="expected a list"):
            parse_config({"sources": {"id": "a"}})

    def test_metadata_keeps_unknown_keys(self):
        config = parse_config({"csvPath": "a.csv", "title": "Haus", "year": 2024})
        assert config.metadata == {"title": "Haus", "year": 2024}

    def test_config_error_is_structural(self):
        assert issubclass(ConfigError, StructuralError)

    def test_source_lookup(self):
        config = parse_config({"sources": [{"id": "a", "path": "a.csv"}]})
        assert config.source("a").id == "a"
        with pytest.raises(KeyError):
            config.source("b")
