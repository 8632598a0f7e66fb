"""Tests for SheetsReaderConfig defaults and from_file()."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from ingestkit_sheets.config import SheetsReaderConfig


class TestConfigDefaults:
    """SheetsReaderConfig() with no args produces the documented defaults."""

    def test_parser_version(self, default_config: SheetsReaderConfig) -> None:
        assert default_config.parser_version == "ingestkit_sheets:1.0.0"

    def test_max_file_size_mb(self, default_config: SheetsReaderConfig) -> None:
        assert default_config.max_file_size_mb == 100

    def test_max_rows(self, default_config: SheetsReaderConfig) -> None:
        assert default_config.max_rows is None

    def test_detection_prefix_bytes(self, default_config: SheetsReaderConfig) -> None:
        assert default_config.detection_prefix_bytes == 8

    def test_xls_formatting_info(self, default_config: SheetsReaderConfig) -> None:
        assert default_config.xls_formatting_info is True

    def test_sparse_fill_ratio(self, default_config: SheetsReaderConfig) -> None:
        assert default_config.sparse_fill_ratio == 1.0

    def test_log_sample_data(self, default_config: SheetsReaderConfig) -> None:
        assert default_config.log_sample_data is False


class TestConfigCustom:
    def test_override_max_rows(self) -> None:
        cfg = SheetsReaderConfig(max_rows=10)
        assert cfg.max_rows == 10


class TestConfigFromFile:
    def test_loads_json(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"max_rows": 50, "sparse_fill_ratio": 0.5}))
        cfg = SheetsReaderConfig.from_file(str(path))
        assert cfg.max_rows == 50
        assert cfg.sparse_fill_ratio == 0.5
        assert cfg.parser_version == "ingestkit_sheets:1.0.0"  # default preserved

    def test_loads_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yaml"
        path.write_text(yaml.dump({"max_file_size_mb": 5}))
        cfg = SheetsReaderConfig.from_file(str(path))
        assert cfg.max_file_size_mb == 5

    def test_loads_yml(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yml"
        path.write_text(yaml.dump({"xls_formatting_info": False}))
        assert SheetsReaderConfig.from_file(str(path)).xls_formatting_info is False

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yaml"
        path.write_text("")
        assert SheetsReaderConfig.from_file(str(path)) == SheetsReaderConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            SheetsReaderConfig.from_file(str(tmp_path / "nope.yaml"))

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.toml"
        path.write_text("max_rows = 1")
        with pytest.raises(ValueError, match="Unsupported config file extension"):
            SheetsReaderConfig.from_file(str(path))
