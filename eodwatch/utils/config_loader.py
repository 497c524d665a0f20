"""
Configuration loader with secrets support.

This module provides utilities to load configuration files and merge
secrets from a separate secrets.yaml file (gitignored), so the Tiingo
token does not have to live in the main config.
"""

import logging
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# Sections of secrets.yaml that are merged key-by-key into the config
SECRET_SECTIONS = ("tiingo",)


def project_root() -> Path:
    # eodwatch/utils/config_loader.py -> project root
    return Path(__file__).resolve().parent.parent.parent


def load_secrets(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load secrets from config/secrets.yaml if it exists.

    Args:
        config_dir: Directory containing config files. If None, assumes
                   config/ directory relative to project root.

    Returns:
        Dictionary of secrets, or empty dict if secrets file doesn't exist.
    """
    if config_dir is None:
        config_dir = project_root() / "config"
    else:
        config_dir = Path(config_dir)

    secrets_file = config_dir / "secrets.yaml"

    if not secrets_file.exists():
        return {}

    try:
        with open(secrets_file, encoding="utf-8") as f:
            secrets = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load secrets from {secrets_file}: {e}")
        return {}

    if not isinstance(secrets, dict):
        logger.warning(f"Ignoring {secrets_file}: expected a mapping at top level")
        return {}
    return secrets


def get_tiingo_token(secrets: Dict[str, Any]) -> str:
    """Return ``tiingo.api_token`` from a secrets mapping, or "" if absent."""
    section = secrets.get("tiingo")
    if isinstance(section, dict):
        token = section.get("api_token")
        if isinstance(token, str):
            return token.strip()
    return ""


def merge_secrets_into_config(
    config: Dict[str, Any],
    secrets: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Merge secrets into configuration dictionary.

    Values in secrets.yaml win over the same keys in the main config, for
    every section listed in SECRET_SECTIONS.

    Args:
        config: Main configuration dictionary
        secrets: Secrets dictionary from load_secrets()

    Returns:
        Updated configuration dictionary with secrets merged in
    """
    if not secrets:
        return config

    # Make a copy to avoid modifying the original
    merged = config.copy()

    for section in SECRET_SECTIONS:
        section_secrets = secrets.get(section)
        if not isinstance(section_secrets, dict):
            continue
        current = merged.get(section)
        merged[section] = {**current, **section_secrets} if isinstance(current, dict) else dict(section_secrets)

    return merged


def load_config_with_secrets(
    config_file: Path,
    secrets_file: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Load a configuration file and merge secrets into it.

    Args:
        config_file: Path to the main configuration YAML file
        secrets_file: Optional path to secrets file. If None, uses
                      secrets.yaml next to config_file

    Returns:
        Configuration dictionary with secrets merged in
    """
    config_file = Path(config_file)
    with open(config_file, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if secrets_file:
        with open(secrets_file, encoding="utf-8") as f:
            secrets = yaml.safe_load(f) or {}
    else:
        secrets = load_secrets(config_file.parent)

    return merge_secrets_into_config(config, secrets)
