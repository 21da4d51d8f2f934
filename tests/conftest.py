"""
Shared pytest fixtures for meridian tests.
"""

import logging

import pytest

from meridian.domain.models import Query
from meridian.framework.configuration.models import FetcherSettings
from meridian.framework.fetcher import SourceFetcher
from meridian.infrastructure.caching import ValueCache
from meridian.infrastructure.stores import InMemoryBackingStore

from tests.fixtures.mock_objects import ManualClock, RecordingSubscriber, StaticValueConnector


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def query():
    return Query(application="billing", environments=("prod",), datacenter="eu-west-1")


@pytest.fixture
def store():
    """Store laid out with the primary document + overlay convention."""
    return InMemoryBackingStore({
        "config/billing/application.yaml": "a: 1\nb: 1\n",
        "config/billing/conf.d/01-x.conf": "b: 2\n",
        "config/billing/conf.d/02-y.conf": "c: 3\n",
        "config/shared/application.yaml": "a: 100\nshared: true\n",
    })


@pytest.fixture
def cache(clock):
    return ValueCache(ttl_seconds=60, clock=clock, name="test")


@pytest.fixture
def fetcher(store, cache):
    return SourceFetcher(store, settings=FetcherSettings(), cache=cache, name="test")


@pytest.fixture
def connector():
    return StaticValueConnector({"p1": "v1", "p2": "v2", "db.password": "s3cret"})


@pytest.fixture
def subscriber():
    return RecordingSubscriber()


@pytest.fixture(autouse=True)
def meridian_log_level():
    """Keep meridian loggers at DEBUG so caplog sees everything."""
    logger = logging.getLogger("meridian")
    previous = logger.level
    logger.setLevel(logging.DEBUG)
    yield
    logger.setLevel(previous)
