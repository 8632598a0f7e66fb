"""Configuration model for ingestkit-sheets readers.

Provides ``SheetsReaderConfig`` with all tunable parameters and sensible
defaults.  Supports loading overrides from YAML or JSON files via the
``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib

from pydantic import BaseModel


class SheetsReaderConfig(BaseModel):
    """All tunable parameters with sensible defaults for workbook reading."""

    # --- Identity ---
    parser_version: str = "ingestkit_sheets:1.0.0"

    # --- Security / Resource Limits ---
    max_file_size_mb: int = 100
    max_rows: int | None = None

    # --- Detection ---
    detection_prefix_bytes: int = 8

    # --- Decoding ---
    xls_formatting_info: bool = True
    sparse_fill_ratio: float = 1.0

    # --- Logging / PII Safety ---
    log_sample_data: bool = False

    @classmethod
    def from_file(cls, path: str) -> SheetsReaderConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Any keys present in the file override the
        corresponding defaults; keys not present retain their defaults.
        """
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            import yaml  # type: ignore[import-untyped]

            with open(file_path) as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path) as fh:
                data = json.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)
