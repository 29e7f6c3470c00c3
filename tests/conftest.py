import pytest

from kube_surface.core.models import config as config_module
from kube_surface.core.models.config import Config


@pytest.fixture(autouse=True)
def config():
    """Install a fresh config for every test, without any backoff between kubectl retries."""

    config = Config(context="test-context", namespace="default", retry_backoff=0)
    Config.set_config(config)
    yield config
    config_module._config = None
