from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from presence_sync import CONFIG_PATH
from presence_sync.errors import ConfigError

logger = logging.getLogger(__name__)


# Environment overrides for secrets (also read from .env)
ENV_APP_ID = "PRESENCE_SYNC_APP_ID"
ENV_TENANT_ID = "PRESENCE_SYNC_TENANT_ID"
ENV_APP_SECRET = "PRESENCE_SYNC_APP_SECRET"


# =============================================================================
# PresenceSyncConfig (args/presence_sync.yaml)
# =============================================================================

class CredentialsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    app_id: Optional[str] = None
    tenant_id: Optional[str] = None
    app_secret: Optional[str] = None


class GraphConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    base_url: str = Field(default="https://graph.microsoft.com/v1.0")
    token_url: str = Field(default="https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token")
    scope: str = Field(default="https://graph.microsoft.com/.default")
    page_delay_seconds: float = Field(default=3.0, ge=0)
    timeout_seconds: float = Field(default=30.0, gt=0)


class MatchingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    marker: str = Field(default="DND", min_length=1)
    lookahead_minutes: int = Field(default=60, ge=1)


class DecisionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    threshold_minutes: float = Field(default=5.0)
    max_override_minutes: int = Field(default=240, ge=0, le=240)


class PresenceSyncConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    decision: DecisionConfig = Field(default_factory=DecisionConfig)
    dry_run: bool = Field(default=False)

    def require_credentials(self) -> tuple[str, str, str]:
        """
        Get the client-credentials triple.

        Returns:
            Tuple of (app_id, tenant_id, app_secret)

        Raises:
            ConfigError: If any of the three is missing
        """
        creds = self.credentials
        missing = [
            name
            for name, value in (
                (ENV_APP_ID, creds.app_id),
                (ENV_TENANT_ID, creds.tenant_id),
                (ENV_APP_SECRET, creds.app_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigError(
                "Graph app credentials not found. "
                f"Set {', '.join(missing)} or fill the credentials section of the config file."
            )
        return creds.app_id, creds.tenant_id, creds.app_secret


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay credential environment variables onto raw YAML data."""
    credentials = dict(raw.get("credentials") or {})
    for key, env_name in (
        ("app_id", ENV_APP_ID),
        ("tenant_id", ENV_TENANT_ID),
        ("app_secret", ENV_APP_SECRET),
    ):
        value = os.environ.get(env_name)
        if value:
            credentials[key] = value
    raw = dict(raw)
    raw["credentials"] = credentials
    return raw


def load_config(config_path: Path | None = None) -> PresenceSyncConfig:
    """
    Load the pass configuration from YAML and the environment.

    Invalid YAML values fall back to defaults with a warning; credential
    environment variables are applied either way.
    """
    load_dotenv()
    yaml_path = Path(config_path) if config_path else CONFIG_PATH

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}
        raw = raw.get("presence_sync", raw)
        return PresenceSyncConfig.model_validate(_apply_env_overrides(raw))
    except Exception as e:
        logger.warning(f"Config validation failed for {yaml_path.name}: {e}, using defaults")
        return PresenceSyncConfig.model_validate(_apply_env_overrides({}))
