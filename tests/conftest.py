"""
Pytest fixtures for the workflow cost estimator tests.

Provides:
- A fake provider client that records calls
- Deterministic settings
- FastAPI test client with the provider client overridden
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from workflowcost.circleci.models import JobDetail, WorkflowStatus
from workflowcost.errors import UpstreamError
from workflowcost.model import Executor, JobRecord
from workflowcost.server import app, get_app_settings, get_client_factory
from workflowcost.settings import Settings
from workflowcost.ui.console import Console, set_console


class FakeCircleClient:
    """In-memory stand-in for circleci.api_client.APIClient."""

    def __init__(self, status="success", jobs=None, details=None, error=None):
        self.status = status
        self.jobs = list(jobs or [])
        self.details = dict(details or {})
        self.error = error
        self.calls = []

    def get_workflow(self, workflow_id):
        self.calls.append(("get_workflow", workflow_id))
        if self.error is not None:
            raise self.error
        return WorkflowStatus.from_dict({"id": workflow_id, "status": self.status})

    def list_jobs(self, workflow_id):
        self.calls.append(("list_jobs", workflow_id))
        return list(self.jobs)

    def get_job_detail(self, vcs, user, project, job_number):
        self.calls.append(("get_job_detail", job_number))
        detail = self.details[job_number]
        if isinstance(detail, Exception):
            raise detail
        return JobDetail.from_dict(detail)


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))
    yield


@pytest.fixture
def settings():
    return Settings(
        credit_price=Decimal("0.0006"),
        retry_backoff=(0.0,),
        detail_workers=2,
    )


@pytest.fixture
def query():
    return {
        "workflow_id": "wf-123",
        "circle_token": "secret-token",
        "project_name": "api",
        "project_user": "acme",
    }


@pytest.fixture
def sample_jobs():
    """Raw v2 job listing: one container job, one macOS job."""
    return [
        {
            "id": "job-a",
            "name": "build",
            "status": "success",
            "executor": "docker",
            "resource_class": "medium",
            "duration": 125,
        },
        {
            "id": "job-b",
            "name": "ios-tests",
            "status": "failed",
            "executor": "macos",
            "resource_class": "medium",
            "duration": 300,
        },
    ]


@pytest.fixture
def make_job():
    def _make(**overrides):
        fields = dict(
            id="job-1",
            name="build",
            status="success",
            executor=Executor.CONTAINER,
            resource_class="medium",
            duration_seconds=Decimal(60),
        )
        fields.update(overrides)
        return JobRecord(**fields)
    return _make


@pytest.fixture
def fake_client(sample_jobs):
    return FakeCircleClient(jobs=sample_jobs)


@pytest.fixture
def upstream_failure():
    return UpstreamError(
        "Bad status code from API response. Status code: 404",
        upstream_status=404,
        body={"message": "Workflow not found"},
    )


@pytest.fixture
def api_client(fake_client, settings):
    """FastAPI test client wired to the fake provider client."""
    app.dependency_overrides[get_client_factory] = lambda: (lambda ctx, s: fake_client)
    app.dependency_overrides[get_app_settings] = lambda: settings

    yield TestClient(app)

    app.dependency_overrides.clear()
