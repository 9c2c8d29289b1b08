from __future__ import annotations

import random
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from survey.api.deps import install_services
from survey.main import app
from survey.models.sample import Sample
from survey.services.dataset.dataset import Dataset
from survey.services.dataset.hashing import fill_content_hash
from survey.services.identity import identity

# httpx's ASGITransport reports this client address by default
TEST_CLIENT_HOST = "127.0.0.1"
TEST_USER = identity(TEST_CLIENT_HOST)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Clear the in-memory rate limiter between tests to prevent 429s."""
    from survey.middleware.rate_limit import RateLimitMiddleware

    obj = getattr(app, "middleware_stack", None)
    while obj is not None:
        if isinstance(obj, RateLimitMiddleware):
            obj._requests.clear()
            break
        obj = getattr(obj, "app", None)
    yield


def make_row(text: str, **extra) -> dict:
    row = {
        "dataset_name": "unit",
        "model_name": "QwQ",
        "conversations": [
            {"from": "system", "value": "You are a helpful AI assistant."},
            {"from": "human", "value": f"Question about {text}"},
            {"from": "gpt", "value": f"<think>Thinking about {text}</think>Answer about {text}"},
        ],
    }
    row.update(extra)
    return row


def make_sample(text: str, **extra) -> Sample:
    return Sample.model_validate(fill_content_hash(make_row(text, **extra)))


@pytest.fixture
def samples() -> list[Sample]:
    return [make_sample(f"topic {i}") for i in range(5)]


@pytest.fixture
def dataset(samples: list[Sample]) -> Dataset:
    return Dataset("unit/tests", samples, source="fixture")


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def installed(dataset: Dataset, data_dir: Path):
    install_services(app, dataset, data_dir=data_dir, session_limit=3, rng=random.Random(7))
    yield app
    for name in ("dataset", "rating_store", "sample_server"):
        if hasattr(app.state, name):
            delattr(app.state, name)


@pytest.fixture
async def client(installed) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
