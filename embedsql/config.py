"""
Configuration system for the embedded SQL scanner.

Supports YAML and JSON configuration files for customizing
scanning behavior, detection markers, the SQL dialect and output.
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field, asdict

import yaml

from embedsql.analysis.detector import DEFAULT_MARKERS
from embedsql.grammar.validator import DEFAULT_DIALECT


# Default configuration file names to search for
CONFIG_FILE_NAMES = [
    ".embedsql.yaml",
    ".embedsql.yml",
    ".embedsql.json",
    "embedsql.yaml",
    "embedsql.yml",
    "embedsql.json",
]


@dataclass
class RuleSetConfig:
    """Configuration for the rule set."""
    enabled: List[str] = field(default_factory=list)
    disabled: List[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    """Configuration for output formatting."""
    format: str = "text"  # text, json, sarif
    output_file: Optional[str] = None
    verbose: bool = False
    show_suppressed: bool = False
    color: bool = True


@dataclass
class ScanConfig:
    """
    Main configuration for the scanner.

    Example YAML config:

    ```yaml
    scan:
      exclude:
        - "build/**"
      include:
        - "**/*.py"
      max_file_size: 10485760
      max_workers: 4

    sql:
      dialect: tsql
      markers:
        constructors: [SqlCommand]
        properties: [CommandText]

    rules:
      disabled:
        - SQL-SYNTAX-002

    output:
      format: text
      color: true
    ```
    """
    # Scan settings
    target: str = "."
    exclude_patterns: Optional[List[str]] = None
    include_patterns: Optional[List[str]] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    max_workers: int = 4

    # SQL settings
    dialect: str = DEFAULT_DIALECT
    constructor_markers: List[str] = field(default_factory=lambda: list(DEFAULT_MARKERS.constructor_markers))
    property_markers: List[str] = field(default_factory=lambda: list(DEFAULT_MARKERS.property_markers))

    # Rule settings
    rules: RuleSetConfig = field(default_factory=RuleSetConfig)
    severity_threshold: str = "info"  # error, warning, info

    # Output settings
    output: OutputConfig = field(default_factory=OutputConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to a dictionary."""
        return asdict(self)

    def to_engine_config(self) -> Dict[str, Any]:
        """Convert to engine configuration format."""
        config = {
            "max_file_size": self.max_file_size,
            "max_workers": self.max_workers,
            "include_patterns": self.include_patterns,
            "severity_threshold": self.severity_threshold,
            "dialect": self.dialect,
            "markers": {
                "constructors": list(self.constructor_markers),
                "properties": list(self.property_markers),
            },
            "rules": {
                "enabled": list(self.rules.enabled),
                "disabled": list(self.rules.disabled),
            },
        }
        if self.exclude_patterns is not None:
            config["ignore_patterns"] = list(self.exclude_patterns)
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanConfig":
        """Create config from a (possibly sectioned) dictionary."""
        data = dict(data)

        # Flatten the 'scan' and 'sql' sections
        data.update(data.pop("scan", None) or {})
        sql = data.pop("sql", None) or {}
        if "dialect" in sql:
            data["dialect"] = sql["dialect"]
        markers = sql.get("markers") or {}
        if markers.get("constructors"):
            data["constructor_markers"] = list(markers["constructors"])
        if markers.get("properties"):
            data["property_markers"] = list(markers["properties"])

        if "rules" in data and isinstance(data["rules"], dict):
            rules = data["rules"]
            data["rules"] = RuleSetConfig(
                enabled=list(rules.get("enabled") or []),
                disabled=list(rules.get("disabled") or []),
            )
        if "output" in data and isinstance(data["output"], dict):
            data["output"] = OutputConfig(**data["output"])

        # Map some common alternative names
        if "exclude" in data:
            data["exclude_patterns"] = data.pop("exclude")
        if "include" in data:
            data["include_patterns"] = data.pop("include")

        # Filter to only known fields
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_data = {k: v for k, v in data.items() if k in known_fields}

        return cls(**filtered_data)


def load_config(path: str) -> Dict[str, Any]:
    """
    Load raw configuration from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a mapping or cannot be parsed.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    content = path.read_text(encoding="utf-8")

    try:
        if path.suffix == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def find_config(start_path: str = ".") -> Optional[str]:
    """
    Find a configuration file by searching up the directory tree.

    Returns the path to the first config file found, or None.
    """
    current = Path(start_path).resolve()
    if current.is_file():
        current = current.parent

    while True:
        for name in CONFIG_FILE_NAMES:
            config_path = current / name
            if config_path.exists():
                return str(config_path)
        if current == current.parent:
            return None
        current = current.parent


def load_scan_config(path: Optional[str] = None, start_dir: str = ".") -> ScanConfig:
    """
    Load a ScanConfig from a file or create a default one.

    If path is None, searches for a config file starting from start_dir.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return ScanConfig()

    return ScanConfig.from_dict(load_config(path))


def create_default_config() -> str:
    """
    Create a default configuration file content.
    """
    config = {
        "scan": {
            "exclude": [
                ".git/**",
                "__pycache__/**",
                ".venv/**",
                "build/**",
                "dist/**",
            ],
            "max_file_size": 10485760,
            "max_workers": 4,
        },
        "sql": {
            "dialect": DEFAULT_DIALECT,
            "markers": {
                "constructors": list(DEFAULT_MARKERS.constructor_markers),
                "properties": list(DEFAULT_MARKERS.property_markers),
            },
        },
        "rules": {
            "enabled": [],
            "disabled": [],
        },
        "severity_threshold": "info",
        "output": {
            "format": "text",
            "verbose": False,
            "color": True,
        },
    }

    return yaml.safe_dump(config, default_flow_style=False, sort_keys=False)
