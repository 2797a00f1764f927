# lambdas/forward_logs/models.py
"""
Settings and plain-dataclass models for the log forwarder.
"""
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGENTRIES_WEBHOOK_BASE = "https://webhook.logentries.com/noformat/logs"


class ConfigurationError(ValueError):
    """Raised when a required setting is missing."""
    pass


class AppSettings(BaseSettings):
    """
    Manages env vars using Pydantic BaseSettings.
    A local .env file is read automatically when present.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore', populate_by_name=True)

    logentries_token: Optional[str] = Field(None, alias='LOGENTRIES_TOKEN')
    slack_incoming_webhook_url: Optional[str] = Field(None, alias='SLACK_INCOMING_WEBHOOK_URL')
    slack_send_success: bool = Field(False, alias='SLACK_SEND_SUCCESS')

    auth0_domain: Optional[str] = Field(None, alias='AUTH0_DOMAIN')
    auth0_client_id: Optional[str] = Field(None, alias='AUTH0_CLIENT_ID')
    auth0_client_secret: Optional[str] = Field(None, alias='AUTH0_CLIENT_SECRET')

    batch_size: int = Field(100, alias='BATCH_SIZE')
    start_from: Optional[str] = Field(None, alias='START_FROM')
    # Comma separated, e.g. "s,f,fp"
    log_types_csv: Optional[str] = Field(None, alias='LOG_TYPES')
    log_level: int = Field(0, alias='LOG_LEVEL')
    daily_report_time: Optional[str] = Field(None, alias='DAILY_REPORT_TIME')

    checkpoint_table_name: Optional[str] = Field(None, alias='CHECKPOINT_TABLE_NAME')
    aws_region: str = Field("us-east-1", alias='AWS_REGION')
    max_run_seconds: int = Field(20, alias='MAX_RUN_SECONDS')

    @field_validator('start_from', 'daily_report_time', 'slack_incoming_webhook_url', 'log_types_csv', mode='before')
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator('slack_send_success', mode='before')
    @classmethod
    def _strict_true(cls, value):
        # Only True or the string "true" turns success notifications on
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() == 'true':
            return True
        if value not in (None, '') and not (isinstance(value, str) and value.strip().lower() == 'false'):
            print(f"⚠️ Unrecognised SLACK_SEND_SUCCESS value {value!r}, treating it as false.")
        return False

    @property
    def log_types(self) -> List[str]:
        if not self.log_types_csv:
            return []
        return [t.strip() for t in self.log_types_csv.split(',') if t.strip()]

    @property
    def logentries_url(self) -> str:
        if not self.logentries_token:
            raise ConfigurationError("Missing required setting: LOGENTRIES_TOKEN")
        return f"{LOGENTRIES_WEBHOOK_BASE}/{self.logentries_token}"

    def processor_options(self) -> dict:
        """Options handed to the Auth0 logs processor."""
        missing = [name for name, value in (
            ("AUTH0_DOMAIN", self.auth0_domain),
            ("AUTH0_CLIENT_ID", self.auth0_client_id),
            ("AUTH0_CLIENT_SECRET", self.auth0_client_secret),
        ) if not value]
        if missing:
            raise ConfigurationError(f"Missing required setting(s): {', '.join(missing)}")

        return {
            "domain": self.auth0_domain,
            "client_id": self.auth0_client_id,
            "client_secret": self.auth0_client_secret,
            "batch_size": self.batch_size,
            "start_from": self.start_from,
            "log_types": self.log_types,
            "log_level": self.log_level,
            "max_run_seconds": self.max_run_seconds,
        }


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()


# Data models
@dataclass
class Request:
    """
    The parts of an inbound invocation the forwarder looks at.
    Header names are expected in lower case.
    """
    body: dict = field(default_factory=dict)
    headers: dict = field(default_factory=dict)
    raw_event: Optional[dict] = None


@dataclass
class RunStatus:
    start: str
    end: Optional[str] = None
    logs_processed: int = 0
    warnings: int = 0
    errors: int = 0
    error: Optional[str] = None
    checkpoint: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "start": self.start,
            "end": self.end,
            "logsProcessed": self.logs_processed,
            "warnings": self.warnings,
            "errors": self.errors,
            "checkpoint": self.checkpoint,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RunResult:
    """Outcome of a single processor run."""
    status: RunStatus
    checkpoint: Optional[str] = None

    def to_dict(self) -> dict:
        return {"status": self.status.to_dict(), "checkpoint": self.checkpoint}


@dataclass
class Report:
    """Aggregate over the runs that finished inside a time window."""
    start: str
    end: str
    logs_processed: int = 0
    warnings: int = 0
    errors: int = 0
    runs: int = 0
    checkpoint: Optional[str] = None
    type: str = "report"

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "start": self.start,
            "end": self.end,
            "logsProcessed": self.logs_processed,
            "warnings": self.warnings,
            "errors": self.errors,
            "runs": self.runs,
            "checkpoint": self.checkpoint,
        }
