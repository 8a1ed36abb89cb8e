import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from tablesync.logging_config import DEFAULT_CONFIG_PATH
from tablesync.models.sync_job import ConnectionTarget, SyncJob

logger = logging.getLogger(__name__)


class ConfigLoadError(Exception):
    pass


# -------------------------
# File schema
# -------------------------

class ConnectionTargetModel(BaseModel):
    url: str = Field(..., min_length=1)
    username: str = ""
    password: str = ""

    def to_target(self) -> ConnectionTarget:
        return ConnectionTarget(url=self.url, username=self.username, password=self.password)


class SyncJobModel(BaseModel):
    label: str = Field(..., min_length=1)
    disabled: bool = False
    source: ConnectionTargetModel
    sourceMaxQuery: str = Field(..., min_length=1)
    sourceSelectQuery: str = Field(..., min_length=1)
    selectIdFieldIndex: int = Field(default=1, ge=1)
    sourcePagingSize: int = Field(default=0, ge=0)
    destination: ConnectionTargetModel
    destMaxQuery: str = Field(..., min_length=1)
    destInsertQuery: str = Field(..., min_length=1)

    def to_job(self) -> SyncJob:
        return SyncJob(
            label=self.label,
            disabled=self.disabled,
            source=self.source.to_target(),
            source_max_query=self.sourceMaxQuery,
            source_select_query=self.sourceSelectQuery,
            select_id_field_index=self.selectIdFieldIndex,
            source_paging_size=self.sourcePagingSize,
            destination=self.destination.to_target(),
            dest_max_query=self.destMaxQuery,
            dest_insert_query=self.destInsertQuery,
        )


class JobListModel(BaseModel):
    debug: bool = False
    logging: Dict[str, Any] = Field(default_factory=dict)
    jobs: List[SyncJobModel] = Field(default_factory=list)


@dataclass
class SyncSettings:
    jobs: List[SyncJob]
    debug: bool = False
    logging: Dict[str, Any] = field(default_factory=dict)
    log_level: Optional[str] = None

    def find_job(self, label: str) -> SyncJob:
        for job in self.jobs:
            if job.label == label:
                return job
        raise KeyError(label)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class ConfigLoader:
    """Load a job-list file (YAML or JSON) into SyncSettings"""

    def __init__(self, config_path: str = None):
        """
        Initialize config loader

        Args:
            config_path: Path to the job-list file (the packaged default has no jobs)
        """
        self.config_path = str(config_path or DEFAULT_CONFIG_PATH)
        self.config: Dict[str, Any] = {}

    def load(self) -> SyncSettings:
        """
        Load, validate and apply environment overrides

        Returns:
            SyncSettings with typed jobs
        """
        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {self.config_path}: {str(e)}")
            raise ConfigLoadError(f"Cannot read {self.config_path}: {e}") from e

        if not isinstance(self.config, dict):
            raise ConfigLoadError(f"{self.config_path} must contain a mapping at the top level")

        try:
            parsed = JobListModel.model_validate(self.config)
        except ValidationError as e:
            logger.error(f"Invalid job list in {self.config_path}: {str(e)}")
            raise ConfigLoadError(f"Invalid job list in {self.config_path}: {e}") from e

        labels = [j.label for j in parsed.jobs]
        duplicates = sorted({name for name in labels if labels.count(name) > 1})
        if duplicates:
            raise ConfigLoadError(f"Duplicate job labels in {self.config_path}: {', '.join(duplicates)}")

        settings = SyncSettings(
            jobs=[j.to_job() for j in parsed.jobs],
            debug=parsed.debug,
            logging=parsed.logging,
        )
        self.update_from_env(settings)
        return settings

    @staticmethod
    def update_from_env(settings: SyncSettings) -> None:
        """Update settings from environment variables"""
        if 'TABLESYNC_DEBUG' in os.environ:
            settings.debug = _env_bool(os.environ['TABLESYNC_DEBUG'])
        if os.environ.get('TABLESYNC_LOG_LEVEL'):
            settings.log_level = os.environ['TABLESYNC_LOG_LEVEL']
