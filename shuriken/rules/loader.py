from pathlib import Path

import yaml
from pydantic import ValidationError

from shuriken.components.redirects import RedirectConfig
from shuriken.rules.models import Rules


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Rules file must contain a mapping at the top level")

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e


def redirect_config_from_rules(rules: Rules) -> RedirectConfig:
    """Map the rules file onto the engine's configuration."""
    return RedirectConfig(
        enabled=rules.redirects.enabled,
        status_code=rules.redirects.status_code,
        admin_path_prefixes=tuple(rules.redirects.admin_path_prefixes),
        defer_to_reserved_paths=rules.redirects.defer_to_reserved_paths,
        notice_ttl_seconds=rules.notices.ttl_seconds,
    )
