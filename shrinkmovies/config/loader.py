import yaml
from pathlib import Path
from typing import Optional
from .models import AppConfig

def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Loads YAML config into AppConfig. No path means built-in defaults."""
    if config_path is None:
        return AppConfig()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    # Flat files (no 'general'/'encoding' sections) are treated as 'general'
    if data and not ({"general", "encoding"} & set(data)):
        data = {"general": data}

    return AppConfig(**data)
