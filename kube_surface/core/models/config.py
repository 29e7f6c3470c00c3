from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, Literal, Optional

import pydantic as pd
from kubernetes import config as kube_config
from kubernetes.config.config_exception import ConfigException
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.logging import RichHandler

from kube_surface.core.versions import load_default_version_overrides, load_version_overrides

logger = logging.getLogger("kube_surface")

DiscoveryStrategyLiteral = Literal["path", "tabular"]


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="KUBE_SURFACE_")

    quiet: bool = pd.Field(False)
    verbose: bool = pd.Field(False)

    # Kubernetes Settings
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    namespace: str = pd.Field("default")
    kubectl_binary: str = pd.Field("kubectl")
    command_timeout: Optional[float] = pd.Field(None, gt=0)  # in seconds
    retry_backoff: float = pd.Field(1.0, ge=0)  # in seconds, multiplier of the exponential backoff

    # Discovery Settings
    discovery_strategy: DiscoveryStrategyLiteral = pd.Field("path")
    prune_blacklist: list[str] = pd.Field(default_factory=lambda: ["Namespace", "Node", "ControllerRevision"])
    version_overrides: dict[str, str] = pd.Field(default_factory=load_default_version_overrides)
    version_overrides_file: Optional[str] = None

    # Container Logs Settings
    log_line_limit: int = pd.Field(250, ge=1)

    # Logging Settings
    log_to_stderr: bool = False
    width: Optional[int] = pd.Field(None, ge=1)

    _logging_console: Optional[Console] = pd.PrivateAttr(None)

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)

    @pd.field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        if not v:
            raise ValueError("namespace cannot be empty")

        return v.lower()

    @pd.model_validator(mode="after")
    def merge_version_overrides_file(self) -> Config:
        # NOTE: The operator file wins over the packaged defaults, kind by kind
        if self.version_overrides_file is not None:
            self.version_overrides = {
                **self.version_overrides,
                **load_version_overrides(self.version_overrides_file),
            }

        return self

    @property
    def current_context(self) -> Optional[str]:
        if self.context is not None:
            return self.context

        try:
            _, active_context = kube_config.list_kube_config_contexts(config_file=self.kubeconfig)
        except (ConfigException, OSError) as e:
            logger.debug(f"Could not read the active context from kubeconfig: {e}")
            return None

        return active_context["name"] if active_context else None

    @property
    def logging_console(self) -> Console:
        if getattr(self, "_logging_console") is None:
            self._logging_console = Console(file=sys.stderr if self.log_to_stderr else sys.stdout, width=self.width)
        return self._logging_console

    @staticmethod
    def set_config(config: Config) -> None:
        global _config

        _config = config
        logging.basicConfig(
            level="NOTSET",
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=config.logging_console, show_path=False)],
        )
        logging.getLogger("").setLevel(logging.CRITICAL)
        logger.setLevel(logging.DEBUG if config.verbose else logging.CRITICAL if config.quiet else logging.INFO)

    @staticmethod
    def get_config() -> Optional[Config]:
        return _config


if TYPE_CHECKING:
    _SettingsBase = Config
else:
    _SettingsBase = object


# NOTE: This class is just a proxy for _config.
# Import settings from this module and use it like it is just a config object.
class _Settings(_SettingsBase):
    def __getattr__(self, name: str):
        if _config is None:
            raise AttributeError("Config is not set")

        return getattr(_config, name)


_config: Optional[Config] = None
settings = _Settings()
