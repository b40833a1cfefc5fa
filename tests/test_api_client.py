"""Tests for the CircleCI API client (transport patched, no network)."""

from __future__ import annotations

import base64
import http.client
import io
import json
import urllib.error
from decimal import Decimal
from unittest.mock import patch

import pytest

from workflowcost.circleci.api_client import APIClient
from workflowcost.circleci.models import JobDetail
from workflowcost.errors import UpstreamError, UpstreamUnavailable


def ok(payload):
    return io.BytesIO(json.dumps(payload).encode("utf-8"))


def http_error(code, payload):
    return urllib.error.HTTPError(
        "https://circleci.com/api/v2/x", code, "error", {}, io.BytesIO(json.dumps(payload).encode("utf-8"))
    )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(sleeps):
    return APIClient("tok", max_retries=2, backoff=(0.5, 1.0), sleep=sleeps.append)


def test_basic_auth_and_url(client):
    with patch.object(APIClient, "_open", return_value=ok({"status": "success"})) as opener:
        status = client.get_workflow("wf-1")

    req = opener.call_args.args[0]
    assert req.full_url == "https://circleci.com/api/v2/workflow/wf-1"
    expected = "Basic " + base64.b64encode(b"tok:").decode("ascii")
    assert req.get_header("Authorization") == expected
    assert status.status == "success"
    assert status.terminal


def test_running_workflow_is_not_terminal(client):
    with patch.object(APIClient, "_open", return_value=ok({"status": "running"})):
        assert not client.get_workflow("wf-1").terminal


def test_retries_5xx_then_succeeds(client, sleeps):
    responses = [http_error(502, {"message": "bad gateway"}), ok({"status": "failed"})]
    with patch.object(APIClient, "_open", side_effect=responses) as opener:
        status = client.get_workflow("wf-1")

    assert status.status == "failed"
    assert opener.call_count == 2
    assert sleeps == [0.5]


def test_network_errors_exhaust_retries(client, sleeps):
    with patch.object(APIClient, "_open", side_effect=urllib.error.URLError("connection refused")) as opener:
        with pytest.raises(UpstreamUnavailable):
            client.get_workflow("wf-1")

    assert opener.call_count == 3
    assert sleeps == [0.5, 1.0]


def test_rate_limit_is_retried(client):
    responses = [http_error(429, {"message": "slow down"}), ok({"status": "success"})]
    with patch.object(APIClient, "_open", side_effect=responses) as opener:
        client.get_workflow("wf-1")
    assert opener.call_count == 2


def test_client_errors_are_not_retried(client, sleeps):
    with patch.object(APIClient, "_open", side_effect=http_error(404, {"message": "Workflow not found"})) as opener:
        with pytest.raises(UpstreamError) as excinfo:
            client.get_workflow("wf-1")

    assert not isinstance(excinfo.value, UpstreamUnavailable)
    assert excinfo.value.upstream_status == 404
    assert excinfo.value.detail == {"message": "Workflow not found"}
    assert opener.call_count == 1
    assert sleeps == []


def test_invalid_json_is_upstream_error(client):
    with patch.object(APIClient, "_open", return_value=io.BytesIO(b"<html>")):
        with pytest.raises(UpstreamError, match="unmarshalling"):
            client.get_workflow("wf-1")


def test_list_jobs_follows_pages_and_drops_duplicates(client):
    pages = [
        ok({"items": [{"id": "a"}, {"id": "b"}], "next_page_token": "p2"}),
        ok({"items": [{"id": "b"}, {"id": "c"}], "next_page_token": "p3"}),
        ok({"items": [{"id": "d"}], "next_page_token": None}),
    ]
    with patch.object(APIClient, "_open", side_effect=pages) as opener:
        jobs = client.list_jobs("wf-1")

    assert [j["id"] for j in jobs] == ["a", "b", "c", "d"]
    urls = [call.args[0].full_url for call in opener.call_args_list]
    assert urls[0].endswith("/workflow/wf-1/jobs")
    assert urls[1].endswith("/workflow/wf-1/jobs?page-token=p2")
    assert urls[2].endswith("/workflow/wf-1/jobs?page-token=p3")


def test_list_jobs_accepts_jobs_key(client):
    with patch.object(APIClient, "_open", return_value=ok({"jobs": [{"id": "a"}]})):
        assert client.list_jobs("wf-1") == [{"id": "a"}]


def test_repeated_page_token_stops_paging(client):
    pages = [
        ok({"items": [{"id": "a"}], "next_page_token": "p2"}),
        ok({"items": [{"id": "b"}], "next_page_token": "p2"}),
    ]
    with patch.object(APIClient, "_open", side_effect=pages) as opener:
        jobs = client.list_jobs("wf-1")
    assert [j["id"] for j in jobs] == ["a", "b"]
    assert opener.call_count == 2


def test_job_detail(client):
    payload = {
        "picard": {"executor": "docker", "resource_class": {"class": "large"}},
        "steps": [
            {"actions": [{"run_time_millis": 1500, "background": False}]},
            {"actions": [{"run_time_millis": 90000, "background": True}, {"run_time_millis": 500}]},
        ],
    }
    with patch.object(APIClient, "_open", return_value=ok(payload)) as opener:
        detail = client.get_job_detail("github", "acme", "api", 42)

    assert opener.call_args.args[0].full_url == "https://circleci.com/api/v1.1/project/github/acme/api/42"
    assert detail == JobDetail(executor="docker", resource_class="large", run_time_millis=2000)


def test_job_detail_fill_only_sets_missing_fields():
    detail = JobDetail(executor="machine", resource_class="large", run_time_millis=2500)
    merged = detail.fill({"id": "a", "executor": "docker", "resource_class": None})

    assert merged["executor"] == "docker"
    assert merged["resource_class"] == "large"
    assert merged["duration"] == Decimal("2.5")


def test_dropped_connection_is_retried(client, sleeps):
    responses = [
        http.client.RemoteDisconnected("Remote end closed connection without response"),
        ok({"status": "success"}),
    ]
    with patch.object(APIClient, "_open", side_effect=responses) as opener:
        status = client.get_workflow("wf-1")

    assert status.status == "success"
    assert opener.call_count == 2
    assert sleeps == [0.5]


def test_connection_resets_exhaust_retries(client):
    with patch.object(APIClient, "_open", side_effect=ConnectionResetError("reset by peer")) as opener:
        with pytest.raises(UpstreamUnavailable, match="reset by peer"):
            client.get_workflow("wf-1")
    assert opener.call_count == 3


def test_non_utf8_body_is_upstream_error(client):
    with patch.object(APIClient, "_open", return_value=io.BytesIO(b"\xff\xfe{}")):
        with pytest.raises(UpstreamError, match="unmarshalling"):
            client.get_workflow("wf-1")


@pytest.mark.parametrize("payload", [
    {"picard": "x"},
    {"picard": {"executor": 3, "resource_class": ["large"]}},
    {"steps": ["x", {"actions": "y"}]},
    {"steps": [{"actions": [{"run_time_millis": "n/a"}]}]},
    {"steps": [{"actions": ["not-an-action"]}]},
    {"build_time_millis": "soon"},
])
def test_malformed_job_detail_resolves_to_absent(payload):
    detail = JobDetail.from_dict(payload)

    assert detail.executor is None
    assert detail.resource_class is None
    assert detail.run_time_millis in (None, 0)
