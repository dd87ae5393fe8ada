"""Exporter configuration for Stackdriver metrics upload"""
from pathlib import Path
from typing import Dict, Optional, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .labels import DefaultLabel


class ExporterConfig(BaseSettings):
    """Stackdriver exporter configuration"""

    model_config = SettingsConfigDict(env_prefix="STACKDRIVER_", case_sensitive=False)

    # Destination (required)
    project_id: str = Field(..., description="Cloud project receiving metrics (required)")

    # Naming
    metric_prefix: str = Field(
        default="custom.googleapis.com/opencensus",
        description="Namespace for metric names without a domain"
    )
    display_name_prefix: str = Field(default="OpenCensus", description="Descriptor display name prefix")

    # Upload settings
    timeout: float = Field(default=5.0, gt=0, description="Remote call timeout in seconds")
    max_time_series_per_upload: int = Field(
        default=200, ge=1, le=200,
        description="Maximum time series per CreateTimeSeries request"
    )

    # Bundling (buffered export)
    bundle_delay_threshold: float = Field(default=1.0, gt=0, description="Max seconds a payload waits")
    bundle_count_threshold: int = Field(default=10, ge=1, description="Payload count that triggers a flush")
    max_queue_size: int = Field(default=1000, ge=1, description="Max buffered payloads")

    # Labels attached to every series; None derives them from the node
    default_monitoring_labels: Optional[Union[Dict[str, str], str]] = Field(
        default=None, description="Fixed default labels (k=v,k2=v2)"
    )

    # Connection
    endpoint: str = Field(default="", description="API endpoint override")
    insecure: bool = Field(default=False, description="Use plaintext gRPC for the endpoint override")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_file: Optional[Path] = Field(default=None, description="Optional log file")

    @field_validator('project_id')
    @classmethod
    def validate_project_id(cls, v):
        if not v or not v.strip():
            raise ValueError("STACKDRIVER_PROJECT_ID is required")
        return v.strip()

    @field_validator('metric_prefix', 'display_name_prefix')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/')

    @field_validator('default_monitoring_labels', mode='before')
    @classmethod
    def parse_default_labels(cls, v):
        if isinstance(v, str):
            labels = {}
            for pair in v.split(','):
                if '=' in pair:
                    key, value = pair.split('=', 1)
                    labels[key.strip()] = value.strip()
            return labels
        return v

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()

    @field_validator('log_file')
    @classmethod
    def ensure_log_directory(cls, v):
        if isinstance(v, Path):
            v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def project_name(self) -> str:
        """Resource name of the destination project"""
        return f"projects/{self.project_id}"

    def fixed_default_labels(self) -> Optional[Dict[str, DefaultLabel]]:
        """Configured default labels, or None when they come from the node"""
        if self.default_monitoring_labels is None:
            return None
        return {
            key: DefaultLabel(value=value)
            for key, value in self.default_monitoring_labels.items()
        }
