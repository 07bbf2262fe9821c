"""Async client for the job-based paper-search service.

The service accepts search jobs under rigid input rules (exactly three
phrases for a combined search, a query of 50-5000 characters) and answers
asynchronously: a submission returns a job id that is polled until it
reports ``success`` or ``error``. This client repairs inputs where it can and
hides the polling behind a single awaitable call.

Transport failures raise ExternalServiceError. A failed or timed-out job is
an expected outcome and ``search()`` reports it as ``None``.
"""

import asyncio
import time
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from citation_network.errors import (
    ExternalServiceError,
    JobCancelledError,
    JobFailedError,
    JobTimeoutError,
    NotFoundError,
)
from citation_network.models.schemas import JobFilters, JobStatus, JobType, PaperRecord
from citation_network.services.identifiers import normalize_paper_id

DEFAULT_BASE_URL = "https://discover.veritus.ai/api"
DEFAULT_TIMEOUT = 30.0
POLL_INTERVAL_SECONDS = 2.0
MAX_POLL_ATTEMPTS = 30

COMBINED_PHRASE_COUNT = 3
MIN_KEYWORD_PHRASES = 3
MAX_KEYWORD_PHRASES = 10
MIN_QUERY_LENGTH = 50
MAX_QUERY_LENGTH = 5000
FALLBACK_PHRASE = "research"
QUERY_PADDING = "research paper academic study scientific investigation"


def pad_phrases(phrases: list[str], minimum: int, maximum: int) -> list[str]:
    """Pad or truncate phrases into [minimum, maximum] entries.

    Blank phrases are dropped. Short lists are padded with copies of the
    first phrase, or with "research" when nothing usable was given.
    """
    cleaned = [p.strip() for p in phrases if p and p.strip()]
    while len(cleaned) < minimum:
        cleaned.append(cleaned[0] if cleaned else FALLBACK_PHRASE)
    return cleaned[:maximum]


def prepare_combined_phrases(phrases: list[str]) -> list[str]:
    """Exactly three phrases, as required by combinedSearch."""
    return pad_phrases(phrases, COMBINED_PHRASE_COUNT, COMBINED_PHRASE_COUNT)


def prepare_query(query: str | None) -> str:
    """Pad a query to at least 50 characters and cut it at 5000."""
    text = query or ""
    while len(text) < MIN_QUERY_LENGTH:
        text = f"{text} {QUERY_PADDING}" if text else QUERY_PADDING
    return text[:MAX_QUERY_LENGTH]


def pick_best_result(papers: list[PaperRecord]) -> PaperRecord | None:
    """First paper carrying a non-empty TLDR, else the first paper."""
    for paper in papers:
        if paper.tldr and paper.tldr.strip():
            return paper
    return papers[0] if papers else None


def _message_from_item(item: Any) -> str | None:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        if item.get("message"):
            return str(item["message"])
        if item.get("error"):
            err = item["error"]
            return err if isinstance(err, str) else str(err)
    return None


def extract_error_message(body: Any, status_code: int) -> str:
    """Pull a readable message out of the service's varied error payloads."""
    fallback = f"HTTP {status_code}"
    if not body:
        return fallback
    if isinstance(body, str):
        return body
    if isinstance(body, list):
        messages = [m for m in (_message_from_item(e) for e in body) if m]
        return ". ".join(messages) if messages else "Validation error occurred"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, list):
            messages = [m for m in (_message_from_item(e) for e in error) if m]
            return ". ".join(messages) if messages else "Validation error occurred"
        if isinstance(error, str) and error:
            return error
        if error:
            return str(error)
        if body.get("message"):
            return str(body["message"])
    return fallback


class JobSearchClient:
    """Async client for the paper-search service's job API.

    Submits search jobs, polls them until a terminal status, and exposes
    direct paper lookups. The HTTP client can be injected for testing.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or lazily create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        client = await self._get_client()
        t0 = time.monotonic()
        try:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json,
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Search service unreachable ({method} {path}): {e}")
            raise ExternalServiceError(f"Search service unreachable: {e}") from e

        elapsed_ms = int((time.monotonic() - t0) * 1000)
        try:
            body = response.json()
        except ValueError:
            body = response.text or None

        if response.is_error:
            message = extract_error_message(body, response.status_code)
            logger.warning(
                f"Search service {method} {path} failed with {response.status_code} "
                f"in {elapsed_ms}ms: {message}"
            )
            raise ExternalServiceError(message, status_code=response.status_code)

        logger.debug(f"Search service {method} {path} -> {response.status_code} in {elapsed_ms}ms")
        return body

    async def create_job(
        self,
        job_type: JobType,
        *,
        phrases: list[str] | None = None,
        query: str | None = None,
        limit: int = 100,
        filters: JobFilters | None = None,
    ) -> str:
        """Submit a search job and return its id.

        Inputs are repaired to the service's rules for ``job_type`` before
        submission.
        """
        body: dict[str, Any] = {"enrich": False}
        if job_type == "combinedSearch":
            body["phrases"] = prepare_combined_phrases(phrases or [])
            body["query"] = prepare_query(query)
        elif job_type == "keywordSearch":
            body["phrases"] = pad_phrases(phrases or [], MIN_KEYWORD_PHRASES, MAX_KEYWORD_PHRASES)
        else:
            body["query"] = prepare_query(query)

        params: dict[str, str] = {"limit": str(limit)}
        if filters is not None:
            params.update(filters.to_params())

        data = await self._request("POST", f"/v1/job/{job_type}", params=params, json=body)
        job_id = data.get("jobId") if isinstance(data, dict) else None
        if not job_id:
            raise ExternalServiceError("Search service did not return a job id")
        logger.info(f"Submitted {job_type} job {job_id}")
        return str(job_id)

    async def get_job_status(self, job_id: str) -> JobStatus:
        data = await self._request("GET", f"/v1/job/{job_id}")
        try:
            return JobStatus.model_validate(data)
        except PydanticValidationError as e:
            raise ExternalServiceError(f"Unexpected status payload for job {job_id}") from e

    async def _pause(self, cancel_event: asyncio.Event | None) -> bool:
        """Wait one poll interval; True if the caller asked to stop."""
        if cancel_event is None:
            await asyncio.sleep(self.poll_interval)
            return False
        if cancel_event.is_set():
            return True
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_for_job(
        self, job_id: str, cancel_event: asyncio.Event | None = None
    ) -> list[PaperRecord]:
        """Poll a job until it finishes.

        Waits ``poll_interval`` before every poll, for at most
        ``max_attempts`` polls.

        Raises:
            JobFailedError: the job reported status ``error``.
            JobTimeoutError: the attempt budget ran out.
            JobCancelledError: ``cancel_event`` was set.
        """
        for attempt in range(1, self.max_attempts + 1):
            if await self._pause(cancel_event):
                raise JobCancelledError(job_id, attempt - 1)

            status = await self.get_job_status(job_id)
            if status.status == "success":
                logger.info(
                    f"Job {job_id} succeeded after {attempt} polls "
                    f"with {len(status.results)} results"
                )
                return status.results
            if status.status == "error":
                raise JobFailedError(job_id, status.error)

        raise JobTimeoutError(job_id, self.max_attempts)

    async def search_papers(
        self,
        phrases: list[str],
        query_text: str,
        limit: int = 100,
        *,
        job_type: JobType = "combinedSearch",
        filters: JobFilters | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[PaperRecord]:
        """Submit a job and return all of its results.

        Raises ExternalServiceError on transport failures and the Job* errors
        from ``wait_for_job``.
        """
        job_id = await self.create_job(
            job_type, phrases=phrases, query=query_text, limit=limit, filters=filters
        )
        return await self.wait_for_job(job_id, cancel_event=cancel_event)

    async def search(
        self,
        phrases: list[str],
        query_text: str,
        limit: int = 100,
        cancel_event: asyncio.Event | None = None,
    ) -> PaperRecord | None:
        """Run a combined search and return its best result.

        Returns:
            The first result with a TLDR (or the first result), or None when
            the job failed, timed out, was cancelled or found nothing.
        """
        try:
            papers = await self.search_papers(
                phrases, query_text, limit, cancel_event=cancel_event
            )
        except (JobFailedError, JobTimeoutError) as e:
            logger.info(f"Combined search returned no answer: {e}")
            return None
        return pick_best_result(papers)

    async def get_paper(self, corpus_id: str) -> PaperRecord:
        """Fetch one paper by corpus id (prefixes are stripped)."""
        paper_id = normalize_paper_id(corpus_id)
        try:
            data = await self._request("GET", f"/v1/papers/{paper_id}")
        except ExternalServiceError as e:
            if e.status_code == 404:
                raise NotFoundError(f"Paper {paper_id} not found") from e
            raise
        return PaperRecord.model_validate(data)

    async def search_by_title(self, title: str) -> list[PaperRecord]:
        data = await self._request("GET", "/v1/papers/search", params={"title": title})
        if not isinstance(data, list):
            return []
        return [PaperRecord.model_validate(p) for p in data]

    async def close(self):
        """Close the HTTP client if we created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
