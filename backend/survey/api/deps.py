"""Request-scoped access to the services built at startup.

The dataset and stores are created once (see ``install_services``) and kept
on ``app.state``; routes reach them through these dependencies so the user
identity scheme and storage can be swapped without touching the routes.
"""

from __future__ import annotations

import random
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request

from survey.config import settings
from survey.services.dataset.dataset import Dataset
from survey.services.identity import client_address, identity
from survey.services.sample_server import SampleServer
from survey.services.shuffler import IndexShuffler
from survey.storage.permutation_store import PermutationStore
from survey.storage.rating_store import RatingStore


def install_services(
    app: FastAPI,
    dataset: Dataset,
    data_dir: Path | None = None,
    session_limit: int | None = None,
    rng: random.Random | None = None,
) -> None:
    data_dir = data_dir or settings.data_dir
    shuffler = IndexShuffler(PermutationStore(data_dir / "user_indices", dataset.name), rng)
    app.state.dataset = dataset
    app.state.rating_store = RatingStore(data_dir / "ratings", dataset.name)
    app.state.sample_server = SampleServer(
        dataset,
        shuffler,
        session_limit if session_limit is not None else settings.session_limit,
    )


def _service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail="Dataset is still loading")
    return service


def get_dataset(request: Request) -> Dataset:
    return _service(request, "dataset")


def get_rating_store(request: Request) -> RatingStore:
    return _service(request, "rating_store")


def get_sample_server(request: Request) -> SampleServer:
    return _service(request, "sample_server")


def get_user(request: Request) -> str:
    return identity(client_address(request, settings.trust_forwarded_for))
