"""
Settings for edit matching.
"""

import os
from dataclasses import asdict, dataclass

import yaml


@dataclass
class EditSettings:
    """Matching and rendering settings for the edit appliers."""

    allow_fuzzy: bool = True
    fuzzy_threshold: float = 0.95
    context_lines: int = 4
    max_file_size_mb: int = 10

    def __post_init__(self) -> None:
        if not 0.0 < self.fuzzy_threshold <= 1.0:
            raise ValueError(f"fuzzy_threshold must be in (0, 1], got {self.fuzzy_threshold}")

        if self.context_lines < 0:
            raise ValueError(f"context_lines must not be negative, got {self.context_lines}")

        if self.max_file_size_mb <= 0:
            raise ValueError(f"max_file_size_mb must be positive, got {self.max_file_size_mb}")

    @classmethod
    def create_default(cls) -> 'EditSettings':
        """Create default settings."""
        return cls()

    @classmethod
    def load_from_file(cls, config_path: str) -> 'EditSettings':
        """Load settings from a YAML file.  Unknown keys are ignored."""
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Settings file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Settings file must contain a mapping: {config_path}")

        default = cls.create_default()
        return cls(
            allow_fuzzy=bool(data.get('allow_fuzzy', default.allow_fuzzy)),
            fuzzy_threshold=float(data.get('fuzzy_threshold', default.fuzzy_threshold)),
            context_lines=int(data.get('context_lines', default.context_lines)),
            max_file_size_mb=int(data.get('max_file_size_mb', default.max_file_size_mb))
        )

    def save_to_file(self, config_path: str) -> None:
        """Save settings to a YAML file."""
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(asdict(self), f, default_flow_style=False, sort_keys=False)
