"""Tests for dataset loading, the source fallback chain and content hashing."""

import hashlib
import io
import json
from pathlib import Path

import httpx
import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from survey.config import Settings
from survey.services.dataset.dataset import Dataset
from survey.services.dataset.hashing import content_hash, fill_content_hash
from survey.services.dataset.loader import (
    DatasetLoader,
    parse_json_rows,
    parse_parquet_rows,
    prepare_samples,
)

from conftest import make_row


def _settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "data_dir": tmp_path / "data",
        "dataset_search_dirs": [tmp_path],
        "dataset_remote_enabled": False,
        "dataset_repo": "org/test-set",
    }
    values.update(overrides)
    return Settings(**values)


def _parquet_bytes(rows: list[dict]) -> bytes:
    buf = io.BytesIO()
    pq.write_table(pa.Table.from_pylist(rows), buf)
    return buf.getvalue()


class TestContentHash:
    def test_matches_compact_json_digest(self):
        conversations = [{"from": "human", "value": "hi"}]
        expected = hashlib.sha256(b'[{"from":"human","value":"hi"}]').hexdigest()
        assert content_hash(conversations) == expected

    def test_missing_conversations_hash_empty_object(self):
        assert content_hash(None) == hashlib.sha256(b"{}").hexdigest()

    def test_empty_list_is_not_missing(self):
        assert content_hash([]) == hashlib.sha256(b"[]").hexdigest()

    def test_non_ascii_is_hashed_as_utf8(self):
        conversations = [{"from": "human", "value": "héllo"}]
        expected = hashlib.sha256('[{"from":"human","value":"héllo"}]'.encode()).hexdigest()
        assert content_hash(conversations) == expected

    def test_fill_keeps_existing_hash(self):
        row = {"turn_prompt_hash": "given", "conversations": []}
        assert fill_content_hash(row)["turn_prompt_hash"] == "given"

    def test_fill_computes_missing_hash(self):
        row = make_row("x")
        assert fill_content_hash(row)["turn_prompt_hash"] == content_hash(row["conversations"])


class TestParsing:
    def test_json_list(self):
        rows = parse_json_rows(json.dumps([make_row("a"), make_row("b")]))
        assert len(rows) == 2

    def test_json_single_object(self):
        rows = parse_json_rows(json.dumps(make_row("a")))
        assert len(rows) == 1

    def test_json_without_conversations_rejected(self):
        assert parse_json_rows(json.dumps({"data": []})) is None

    def test_invalid_json(self):
        assert parse_json_rows("[{,") is None

    def test_parquet_rows(self):
        rows = parse_parquet_rows(_parquet_bytes([make_row("a")]))
        assert rows[0]["conversations"][1]["value"] == "Question about a"

    def test_parquet_garbage(self):
        assert parse_parquet_rows(b"definitely not parquet") is None

    def test_prepare_drops_invalid_rows(self):
        rows = [make_row("a"), {"conversations": [{"from": "narrator", "value": "?"}]}]
        samples = prepare_samples(rows)
        assert len(samples) == 1
        assert samples[0].turn_prompt_hash


class TestDatasetLoader:
    def test_local_json(self, tmp_path: Path):
        (tmp_path / "pjmixers_dataset.json").write_text(json.dumps([make_row("a"), make_row("b")]))
        ds = DatasetLoader(_settings(tmp_path)).load()
        assert len(ds) == 2
        assert ds.source == "local-json"
        assert ds.name == "org/test-set"
        assert all(s.turn_prompt_hash for s in ds)

    def test_local_parquet_preferred_over_local_json(self, tmp_path: Path):
        (tmp_path / "pjmixers_dataset.json").write_text(json.dumps([make_row("a")]))
        (tmp_path / "pjmixers_dataset.parquet").write_bytes(_parquet_bytes([make_row("p1"), make_row("p2")]))
        ds = DatasetLoader(_settings(tmp_path)).load()
        assert ds.source == "local-parquet"
        assert len(ds) == 2

    def test_nothing_available_gives_empty_dataset(self, tmp_path: Path):
        ds = DatasetLoader(_settings(tmp_path)).load()
        assert isinstance(ds, Dataset)
        assert len(ds) == 0
        assert ds.source == "empty"

    def test_search_dirs_in_order(self, tmp_path: Path):
        first, second = tmp_path / "first", tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (first / "pjmixers_dataset.json").write_text(json.dumps([make_row("first")]))
        (second / "pjmixers_dataset.json").write_text(json.dumps([make_row("s1"), make_row("s2")]))
        ds = DatasetLoader(_settings(tmp_path, dataset_search_dirs=[first, second])).load()
        assert len(ds) == 1

    def test_remote_parquet_first(self, tmp_path: Path):
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            if request.url.path.endswith(".parquet"):
                return httpx.Response(200, content=_parquet_bytes([make_row("remote")]))
            return httpx.Response(404)

        cfg = _settings(tmp_path, dataset_remote_enabled=True)
        ds = DatasetLoader(cfg, transport=httpx.MockTransport(handler)).load()
        assert ds.source == "remote-parquet"
        assert requested == [
            "https://huggingface.co/datasets/org/test-set/resolve/main/pjmixers_dataset.parquet"
        ]

    def test_remote_json_when_parquet_missing(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith(".json"):
                return httpx.Response(200, json=[make_row("r1"), make_row("r2"), make_row("r3")])
            return httpx.Response(404)

        cfg = _settings(tmp_path, dataset_remote_enabled=True)
        ds = DatasetLoader(cfg, transport=httpx.MockTransport(handler)).load()
        assert ds.source == "remote-json"
        assert len(ds) == 3

    def test_network_errors_fall_back_to_local(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        (tmp_path / "pjmixers_dataset.json").write_text(json.dumps([make_row("local")]))
        cfg = _settings(tmp_path, dataset_remote_enabled=True)
        ds = DatasetLoader(cfg, transport=httpx.MockTransport(handler)).load()
        assert ds.source == "local-json"

    def test_token_sent_as_bearer(self, tmp_path: Path):
        seen: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("authorization"))
            return httpx.Response(500)

        cfg = _settings(tmp_path, dataset_remote_enabled=True, hf_api_token="secret")
        DatasetLoader(cfg, transport=httpx.MockTransport(handler)).load()
        assert seen and all(h == "Bearer secret" for h in seen)

    def test_remote_dataset_cached_locally(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith(".json"):
                return httpx.Response(200, json=[make_row("cached")])
            return httpx.Response(404)

        cfg = _settings(tmp_path, dataset_remote_enabled=True, cache_remote_dataset=True)
        remote = DatasetLoader(cfg, transport=httpx.MockTransport(handler)).load()

        cached = cfg.data_dir / "pjmixers_dataset.json"
        assert cached.exists()
        # The cached copy is found again once the network is off
        local = DatasetLoader(_settings(tmp_path, dataset_search_dirs=[])).load()
        assert local.source == "local-json"
        assert local[0].turn_prompt_hash == remote[0].turn_prompt_hash

    def test_info(self, tmp_path: Path):
        (tmp_path / "pjmixers_dataset.json").write_text(json.dumps([make_row("a")]))
        info = DatasetLoader(_settings(tmp_path)).load().info()
        assert info.name == "org/test-set"
        assert info.totalSamples == 1
        assert info.formatSupport["json"] is True
        assert info.formatSupport["parquet"] is True
