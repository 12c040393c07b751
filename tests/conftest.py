import copy
import itertools

import pytest

from papermap.config import Settings
from papermap.llm.invoker import ModelInvoker, RetryPolicy
from papermap.persistence.dynamodb import DynamoDocumentStore
from papermap.persistence.firestore import FirestoreDocumentStore
from papermap.prompts.registry import PromptRegistry

from tests.fakes import (
    SAMPLE_TREE,
    FakeDynamoTable,
    FakeFirestoreCollection,
    FakeModelBackend,
)


class RecordingSleep:
    """Replaces the backoff sleep; records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    def __call__(self, seconds, token):
        self.delays.append(seconds)


SETTINGS_ENV_VARS = [field.validation_alias for field in Settings.model_fields.values()]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the caller's environment out of Settings."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def prompts():
    return PromptRegistry()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def retry_policy(recording_sleep):
    return RetryPolicy(sleep=recording_sleep)


@pytest.fixture
def fake_backend():
    return FakeModelBackend()


@pytest.fixture
def invoker(fake_backend, settings, retry_policy):
    return ModelInvoker(fake_backend, settings, retry_policy)


@pytest.fixture
def dynamo_table():
    return FakeDynamoTable()


@pytest.fixture
def firestore_collection():
    return FakeFirestoreCollection()


@pytest.fixture(params=["dynamodb", "firestore"])
def store(request, dynamo_table, firestore_collection):
    if request.param == "dynamodb":
        return DynamoDocumentStore(dynamo_table)
    return FirestoreDocumentStore(firestore_collection)


@pytest.fixture
def sample_tree():
    return copy.deepcopy(SAMPLE_TREE)


@pytest.fixture
def ticking_clock(monkeypatch):
    """Make every new timestamp one second later than the previous one."""
    counter = itertools.count()

    def fake_now():
        return f"2024-01-01T00:00:{next(counter):02d}.000Z"

    monkeypatch.setattr("papermap.persistence.base.utc_now_iso", fake_now)
    return fake_now
