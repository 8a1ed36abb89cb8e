import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'default_config.yaml'


class MaxLevelFilter(logging.Filter):
    """Pass only records at or below max_level (keeps stdout free of errors)"""

    def __init__(self, max_level='INFO'):
        super().__init__()
        self.max_level = logging.getLevelName(max_level) if isinstance(max_level, str) else max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


def load_logging_section(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Read the 'logging' section of a YAML config file"""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    with open(path) as f:
        config = yaml.safe_load(f) or {}
    return config.get('logging') or {}


def setup_logging(config: Optional[Dict[str, Any]] = None, level: Optional[str] = None):
    """Setup logging configuration

    Args:
        config: dictConfig mapping; the packaged default is used when empty
        level: optional override for the 'tablesync' logger level
    """
    if not config:
        config = load_logging_section()
    logging.config.dictConfig(config)

    if level:
        logging.getLogger('tablesync').setLevel(level.upper())

    return logging.getLogger(__name__)
