import pytest

from config import Config
from eventbot.utils import di

from .fakes import Harness, make_config


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture
def harness(config: Config) -> Harness:
    harness = Harness(config)
    di.set_config(config)
    di.set_services(harness.services)
    return harness
