# circleci/api_client.py
from __future__ import annotations

import base64
import http.client
import json
import socket
import time
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence
from urllib.parse import quote, urlencode

from ..errors import UpstreamError, UpstreamUnavailable
from ..ui.console import get_console
from .models import JobDetail, JobPage, WorkflowStatus


def basic_auth(username: str, password: str = "") -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def _decode_body(raw: bytes) -> Any:
    text = raw.decode("utf-8", errors="replace")
    if not text:
        return ""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class APIClient:
    """HTTP client for the CircleCI v2 (and v1.1 job detail) REST API."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://circleci.com",
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff: Sequence[float] = (0.5, 1.0, 2.0),
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize API client.

        Args:
            token: API token, sent as the basic-auth username with an empty password
            base_url: Provider root URL (e.g., "https://circleci.com")
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts for network errors, 5xx and 429 responses
            backoff: Delays between attempts; the last one repeats if retries outnumber it
        """
        self.base_url = base_url.rstrip("/")
        self.v2_url = f"{self.base_url}/api/v2/"
        self.v1_url = f"{self.base_url}/api/v1.1/"
        self._auth = basic_auth(token)
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = tuple(backoff) or (0.0,)
        self._sleep = sleep

    def _open(self, req: urllib.request.Request):
        return urllib.request.urlopen(req, timeout=self.timeout)

    def _request_once(self, url: str) -> Any:
        req = urllib.request.Request(
            url,
            headers={"Authorization": self._auth, "Accept": "application/json"},
            method="GET",
        )
        try:
            with self._open(req) as response:
                data = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            body = _decode_body(e.read()) if e.fp else ""
            err_cls = UpstreamUnavailable if e.code >= 500 or e.code == 429 else UpstreamError
            raise err_cls(
                f"Bad status code from API response. Status code: {e.code}",
                upstream_status=e.code,
                body=body,
            )
        except urllib.error.URLError as e:
            raise UpstreamUnavailable(f"Network error: {e.reason}")
        except (socket.timeout, TimeoutError):
            raise UpstreamUnavailable(f"Request timed out after {self.timeout}s")
        except (http.client.HTTPException, ConnectionError, OSError) as e:
            # Dropped or reset connections while reading the response
            raise UpstreamUnavailable(f"Network error: {e}")

        if not data:
            return {}
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            raise UpstreamError(f"Error unmarshalling JSON response. Error: {e}")

    def _get(self, url: str) -> Dict[str, Any]:
        """
        GET a JSON document, retrying transient failures.

        Raises:
            UpstreamError: non-retryable error response or malformed JSON
            UpstreamUnavailable: transient failures outlasted max_retries
        """
        console = get_console()
        attempt = 0
        while True:
            try:
                result = self._request_once(url)
                break
            except UpstreamUnavailable as e:
                if attempt >= self.max_retries:
                    raise
                delay = self.backoff[min(attempt, len(self.backoff) - 1)]
                attempt += 1
                console.print_debug(
                    f"GET {url} failed ({e.message}); retry {attempt}/{self.max_retries} in {delay}s"
                )
                self._sleep(delay)

        if not isinstance(result, dict):
            raise UpstreamError(f"Unexpected API response type: {type(result).__name__}", body=result)
        return result

    def get_workflow(self, workflow_id: str) -> WorkflowStatus:
        url = f"{self.v2_url}workflow/{quote(workflow_id, safe='')}"
        return WorkflowStatus.from_dict(self._get(url))

    def iter_job_pages(self, workflow_id: str) -> Iterator[JobPage]:
        """Yield pages of a workflow's jobs, following next_page_token until exhausted."""
        base = f"{self.v2_url}workflow/{quote(workflow_id, safe='')}/jobs"
        seen_tokens = set()
        token: Optional[str] = None
        while True:
            url = base if token is None else f"{base}?{urlencode({'page-token': token})}"
            page = JobPage.from_dict(self._get(url))
            yield page
            token = page.next_page_token
            if token is None or token in seen_tokens:
                return
            seen_tokens.add(token)

    def iter_jobs(self, workflow_id: str) -> Iterator[Dict[str, Any]]:
        for page in self.iter_job_pages(workflow_id):
            yield from page.items

    def list_jobs(self, workflow_id: str) -> List[Dict[str, Any]]:
        """All jobs of a workflow in listing order, pages merged, duplicate ids dropped."""
        jobs: List[Dict[str, Any]] = []
        seen = set()
        for job in self.iter_jobs(workflow_id):
            job_id = job.get("id")
            if job_id is not None:
                if job_id in seen:
                    continue
                seen.add(job_id)
            jobs.append(job)
        return jobs

    def get_job_detail(self, vcs: str, user: str, project: str, job_number: int) -> JobDetail:
        path = "/".join(quote(part, safe="") for part in (vcs, user, project))
        url = f"{self.v1_url}project/{path}/{int(job_number)}"
        return JobDetail.from_dict(self._get(url))
