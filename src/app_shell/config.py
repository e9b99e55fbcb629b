import logging
from pathlib import Path

from src.rules.models import Rules

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Operational configuration is unusable."""


def validate_ops_rules(rules: Rules, data_dir: Path) -> None:
    """
    Validate operational requirements before startup.
    Raises ConfigError when the data dir is required but missing.
    """
    if rules.ops.data_dir_required and not data_dir.is_dir():
        raise ConfigError(f"Data directory not found: {data_dir}")

    if not data_dir.exists():
        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created data directory %s", data_dir)

    logger.info("Configuration validated (rules version %s)", rules.project.rules_version)
