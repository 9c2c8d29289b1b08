"""Startup dataset loading with an ordered chain of fallback sources.

Sources are tried in order until one yields samples:

1. remote Parquet file from the HuggingFace dataset repo
2. remote JSON file from the same repo
3. local Parquet copy
4. local JSON copy

If none works the server starts with an empty dataset. Every row gets a
``turn_prompt_hash`` before it is validated into a :class:`Sample`.
"""

from __future__ import annotations

import importlib.util
import io
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError

from survey.config import Settings, settings
from survey.models.sample import Sample
from survey.services.dataset.dataset import Dataset
from survey.services.dataset.hashing import fill_content_hash

logger = logging.getLogger(__name__)

PARQUET_SUPPORTED = importlib.util.find_spec("pyarrow") is not None


def parse_json_rows(data: bytes | str) -> list[dict] | None:
    """Rows from a JSON dataset: a list of samples or a single sample object."""
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.error("Error parsing JSON dataset: %s", exc)
        return None
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict) and "conversations" in payload:
        return [payload]
    logger.error("Invalid JSON dataset format - missing conversations array")
    return None


def parse_parquet_rows(data: bytes) -> list[dict] | None:
    if not PARQUET_SUPPORTED:
        logger.warning("Parquet support is not available")
        return None
    import pyarrow as pa
    import pyarrow.parquet as pq

    try:
        table = pq.read_table(io.BytesIO(data))
    except (pa.ArrowException, OSError) as exc:
        logger.error("Error parsing Parquet dataset: %s", exc)
        return None
    return table.to_pylist()


def prepare_samples(rows: list[dict[str, Any]]) -> list[Sample]:
    """Fill missing content hashes and validate rows. Invalid rows are dropped."""
    samples: list[Sample] = []
    dropped = 0
    for row in rows:
        try:
            samples.append(Sample.model_validate(fill_content_hash(dict(row))))
        except ValidationError as exc:
            dropped += 1
            logger.debug("Skipping invalid dataset row: %s", exc)
    if dropped:
        logger.warning("Skipped %d dataset rows that failed validation", dropped)
    return samples


class DatasetLoader:
    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config or settings
        self._transport = transport

    def remote_url(self, filename: str) -> str:
        base = self.config.hf_base_url.rstrip("/")
        return f"{base}/{self.config.dataset_repo}/resolve/main/{filename}"

    def _fetch(self, url: str) -> bytes | None:
        headers: dict[str, str] = {}
        if self.config.hf_api_token:
            headers["Authorization"] = f"Bearer {self.config.hf_api_token}"
        try:
            with httpx.Client(
                timeout=self.config.dataset_fetch_timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = client.get(url, headers=headers)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Dataset fetch from %s failed: %s", url, exc)
            return None
        return resp.content

    def _find_local(self, filename: str) -> Path | None:
        # data_dir holds the copy written by cache_remote_dataset
        for directory in [*self.config.dataset_search_dirs, self.config.data_dir]:
            path = Path(directory) / filename
            if path.is_file():
                return path
        return None

    def _read_local(self, filename: str) -> bytes | None:
        path = self._find_local(filename)
        if path is None:
            return None
        logger.info("Found local dataset file %s", path)
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.error("Error reading local dataset %s: %s", path, exc)
            return None

    def _remote_parquet(self) -> list[dict] | None:
        if not (self.config.dataset_remote_enabled and PARQUET_SUPPORTED):
            return None
        data = self._fetch(self.remote_url(self.config.dataset_parquet_file))
        return parse_parquet_rows(data) if data is not None else None

    def _remote_json(self) -> list[dict] | None:
        if not self.config.dataset_remote_enabled:
            return None
        data = self._fetch(self.remote_url(self.config.dataset_json_file))
        return parse_json_rows(data) if data is not None else None

    def _local_parquet(self) -> list[dict] | None:
        if not PARQUET_SUPPORTED:
            return None
        data = self._read_local(self.config.dataset_parquet_file)
        return parse_parquet_rows(data) if data is not None else None

    def _local_json(self) -> list[dict] | None:
        data = self._read_local(self.config.dataset_json_file)
        return parse_json_rows(data) if data is not None else None

    def sources(self) -> list[tuple[str, Callable[[], list[dict] | None]]]:
        return [
            ("remote-parquet", self._remote_parquet),
            ("remote-json", self._remote_json),
            ("local-parquet", self._local_parquet),
            ("local-json", self._local_json),
        ]

    def _cache_locally(self, samples: list[Sample]) -> None:
        path = self.config.data_dir / self.config.dataset_json_file
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps([s.to_wire() for s in samples], indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            logger.info("Saved a local cache of the remote dataset to %s", path)
        except OSError as exc:
            logger.error("Error caching remote dataset: %s", exc)

    def load(self) -> Dataset:
        for source, read_rows in self.sources():
            rows = read_rows()
            if not rows:
                continue
            samples = prepare_samples(rows)
            if not samples:
                logger.warning("Dataset source %s had no usable samples", source)
                continue
            logger.info("Loaded %d samples from %s", len(samples), source)
            if source.startswith("remote") and self.config.cache_remote_dataset:
                self._cache_locally(samples)
            return Dataset(
                self.config.dataset_repo,
                samples,
                source=source,
                parquet_supported=PARQUET_SUPPORTED,
            )

        logger.warning("No dataset available remotely or locally; running with an empty dataset")
        return Dataset(self.config.dataset_repo, source="empty", parquet_supported=PARQUET_SUPPORTED)


def load_dataset(config: Settings | None = None) -> Dataset:
    return DatasetLoader(config).load()
