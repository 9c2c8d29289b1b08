"""Async client that walks a user through the survey over the HTTP API.

State flow::

    NOT_STARTED --start_survey--> LOADING --> AWAITING_RATING
    AWAITING_RATING --rate_good/rate_bad--> SUBMITTING --> LOADING(next) | COMPLETE
    AWAITING_RATING --skip_sample--> LOADING(next) | COMPLETE
    any started state --reset_survey--> NOT_STARTED

Samples the user has already rated are skipped while loading, so starting
again after an interruption resumes at the first unrated position.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class SurveyState(str, enum.Enum):
    NOT_STARTED = "not_started"
    LOADING = "loading"
    AWAITING_RATING = "awaiting_rating"
    SUBMITTING = "submitting"
    COMPLETE = "complete"


class SurveyClientError(Exception):
    """Raised when the API cannot be reached or returns an error."""


class InvalidTransition(SurveyClientError):
    """Raised when an action is not allowed in the current state."""


class SurveyClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        api_prefix: str = "/api",
        retry_delay: float = 1.0,
    ) -> None:
        self.http = http
        self.api_prefix = api_prefix.rstrip("/")
        self.retry_delay = retry_delay
        self.state = SurveyState.NOT_STARTED
        self._clear_view()

    def _clear_view(self) -> None:
        self.position = 0
        self.current_sample: dict[str, Any] | None = None
        self.total_samples = 0
        self.dataset_name = ""
        self.rated_hashes: set[str] = set()

    @property
    def in_progress(self) -> bool:
        return self.state in (
            SurveyState.LOADING,
            SurveyState.AWAITING_RATING,
            SurveyState.SUBMITTING,
        )

    # -- HTTP helpers ---------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self.http.request(method, f"{self.api_prefix}{path}", **kwargs)
        except httpx.HTTPError as exc:
            raise SurveyClientError(f"{method} {path} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise SurveyClientError(f"{method} {path} returned {resp.status_code}: {resp.text}")
        return resp

    async def _get_json(self, path: str) -> Any:
        return (await self._request("GET", path)).json()

    async def _fetch_sample(self, position: int) -> dict[str, Any]:
        return await self._get_json(f"/samples/{position}")

    # -- Loading ----------------------------------------------------------

    def _is_last(self, position: int, sample: dict[str, Any]) -> bool:
        total = sample.get("total_available") or self.total_samples
        return bool(sample.get("is_last_sample")) or position + 1 >= total

    async def _advance_from(self, position: int) -> None:
        """Show the first unrated sample at or after ``position``, or finish.

        A failed load falls back to position 0 once per call; any further
        failure raises.
        """
        retried = False
        try:
            while True:
                self.state = SurveyState.LOADING
                try:
                    sample = await self._fetch_sample(position)
                except SurveyClientError as exc:
                    if position == 0 or retried:
                        raise
                    logger.warning("Error loading sample %d (%s); retrying from the first sample", position, exc)
                    retried = True
                    await asyncio.sleep(self.retry_delay)
                    position = 0
                    continue
                self.position = position
                self.current_sample = sample
                self.total_samples = sample.get("total_available", self.total_samples)
                if sample.get("turn_prompt_hash") not in self.rated_hashes:
                    self.state = SurveyState.AWAITING_RATING
                    return
                if self._is_last(position, sample):
                    self.state = SurveyState.COMPLETE
                    return
                position += 1
        except SurveyClientError:
            # Ratings are already on the server; start_survey resumes from them
            self.state = SurveyState.NOT_STARTED
            raise

    async def _next(self) -> None:
        if self._is_last(self.position, self.current_sample):
            self.state = SurveyState.COMPLETE
            return
        await self._advance_from(self.position + 1)

    def _require(self, *states: SurveyState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransition(f"Action not allowed in state {self.state.value} (needs {allowed})")

    # -- Actions ----------------------------------------------------------

    async def start_survey(self) -> None:
        self._require(SurveyState.NOT_STARTED)
        self._clear_view()
        info = await self._get_json("/dataset/info")
        self.dataset_name = info.get("name", "")
        ratings = await self._get_json("/ratings")
        self.rated_hashes = {r["turn_prompt_hash"] for r in ratings if "turn_prompt_hash" in r}
        await self._advance_from(0)

    async def _rate(self, label: bool) -> None:
        self._require(SurveyState.AWAITING_RATING)
        content_hash = self.current_sample["turn_prompt_hash"]
        self.state = SurveyState.SUBMITTING
        try:
            await self._request("POST", "/ratings", json={"turn_prompt_hash": content_hash, "label": label})
        except SurveyClientError:
            self.state = SurveyState.AWAITING_RATING
            raise
        self.rated_hashes.add(content_hash)
        await self._next()

    async def rate_good(self) -> None:
        await self._rate(True)

    async def rate_bad(self) -> None:
        await self._rate(False)

    async def skip_sample(self) -> None:
        self._require(SurveyState.AWAITING_RATING)
        await self._next()

    def reset_survey(self) -> None:
        """Forget the local view of the survey. The server keeps the user's ordering."""
        self._require(
            SurveyState.LOADING,
            SurveyState.AWAITING_RATING,
            SurveyState.SUBMITTING,
            SurveyState.COMPLETE,
        )
        self._clear_view()
        self.state = SurveyState.NOT_STARTED

    async def progress(self) -> dict[str, Any]:
        return await self._get_json("/ratings/progress")

    async def download_results(self) -> bytes:
        return (await self._request("GET", "/ratings/download")).content
