"""
config_loader.py
- Loads the optional YAML configuration file for the exporter.
- Keys mirror the environment variable names (e.g. CHEF_SERVER_URL).
"""

import yaml
from loguru import logger


def load_yaml(path):
    """Safely load a YAML file and return a parsed dict. Returns {} on failure."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except Exception as e:
        logger.error(f"[load_yaml] Failed to load {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"[load_yaml] Expected a mapping in {path}, got {type(data).__name__}")
        return {}
    return data

