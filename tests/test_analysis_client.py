"""
Tests for the Analysis Service HTTP client.

The service is stubbed with httpx.MockTransport, so no network is used.
"""
import asyncio
import base64
import json
from unittest.mock import patch

import httpx
import numpy as np
import pytest

from posturecam.analysis_client.client import AnalysisClient
from posturecam.analysis_client.errors import (
    ClientError,
    NoResponse,
    ServerRejected,
    describe_error,
)
from posturecam.core.config import settings

FRAME_URL = "http://analysis.test/analyze_frame"
VIDEO_URL = "http://analysis.test/analyze_video"


def make_client(handler) -> AnalysisClient:
    return AnalysisClient(
        video_url=VIDEO_URL,
        frame_url=FRAME_URL,
        transport=httpx.MockTransport(handler),
    )


def run(client: AnalysisClient, coro_factory):
    """Run one client call and close the client afterwards."""
    async def scenario():
        async with client:
            return await coro_factory(client)
    return asyncio.run(scenario())


class TestAnalyzeFrame:

    def test_returns_issue_labels(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"issues": ["slouching"]})

        with patch.object(settings, "frame_image_as_data_url", True):
            issues = run(make_client(handler), lambda c: c.analyze_frame(b"\xff\xd8jpeg"))

        assert issues == ["slouching"]
        assert seen["url"] == FRAME_URL
        expected = base64.b64encode(b"\xff\xd8jpeg").decode("utf-8")
        assert seen["body"] == {"image": f"data:image/jpeg;base64,{expected}"}

    def test_plain_base64_when_data_url_disabled(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"issues": []})

        with patch.object(settings, "frame_image_as_data_url", False):
            run(make_client(handler), lambda c: c.analyze_frame(b"abc"))

        assert seen["body"]["image"] == base64.b64encode(b"abc").decode("utf-8")

    def test_numpy_frame_is_jpeg_encoded(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["image"] = json.loads(request.content)["image"]
            return httpx.Response(200, json={"issues": []})

        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        with patch.object(settings, "frame_image_as_data_url", False):
            issues = run(make_client(handler), lambda c: c.analyze_frame(frame))

        assert issues == []
        assert base64.b64decode(seen["image"])[:2] == b"\xff\xd8"

    def test_missing_issues_means_none(self):
        def handler(request):
            return httpx.Response(200, json={})

        assert run(make_client(handler), lambda c: c.analyze_frame(b"x")) == []

    def test_server_rejection_with_detail(self):
        def handler(request):
            return httpx.Response(500, json={"detail": "model crashed"})

        with pytest.raises(ServerRejected) as exc_info:
            run(make_client(handler), lambda c: c.analyze_frame(b"x"))

        assert exc_info.value.status == 500
        assert exc_info.value.detail == "model crashed"
        assert exc_info.value.message == "Server Error: 500 - model crashed"

    def test_server_rejection_falls_back_to_message_field(self):
        def handler(request):
            return httpx.Response(400, json={"message": "bad image"})

        with pytest.raises(ServerRejected) as exc_info:
            run(make_client(handler), lambda c: c.analyze_frame(b"x"))

        assert exc_info.value.message == "Server Error: 400 - bad image"

    def test_server_rejection_without_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(ServerRejected) as exc_info:
            run(make_client(handler), lambda c: c.analyze_frame(b"x"))

        assert exc_info.value.message == "Server Error: 502 - Unknown error"

    def test_non_json_success_body_is_rejected(self):
        def handler(request):
            return httpx.Response(200, text="<html>")

        with pytest.raises(ServerRejected):
            run(make_client(handler), lambda c: c.analyze_frame(b"x"))

    def test_connection_failure_is_no_response(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NoResponse):
            run(make_client(handler), lambda c: c.analyze_frame(b"x"))

    def test_timeout_is_no_response(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NoResponse):
            run(make_client(handler), lambda c: c.analyze_frame(b"x"))

    def test_unconfigured_endpoint_is_client_error(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"issues": []})

        client = AnalysisClient(video_url="", frame_url="", transport=httpx.MockTransport(handler))
        with pytest.raises(ClientError):
            run(client, lambda c: c.analyze_frame(b"x"))
        assert calls == []

    def test_empty_image_is_client_error(self):
        def handler(request):
            return httpx.Response(200, json={"issues": []})

        with pytest.raises(ClientError):
            run(make_client(handler), lambda c: c.analyze_frame(b""))


class TestAnalyzeClip:

    def test_per_frame_feedback_in_order(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = request.content
            return httpx.Response(200, json={
                "per_frame_feedback": [
                    {"frame": 0, "issues": []},
                    {"frame": 1, "issues": ["slouching"]},
                    {"frame": 2, "issues": []},
                ]
            })

        result = run(make_client(handler), lambda c: c.analyze_clip(b"clip-bytes", "squat.mp4", "video/mp4"))

        assert result == [[], ["slouching"], []]
        assert seen["url"] == VIDEO_URL
        assert seen["content_type"].startswith("multipart/form-data")
        assert b'name="file"' in seen["body"]
        assert b'filename="squat.mp4"' in seen["body"]
        assert b"clip-bytes" in seen["body"]

    def test_missing_feedback_is_empty(self):
        def handler(request):
            return httpx.Response(200, json={"status": "ok"})

        assert run(make_client(handler), lambda c: c.analyze_clip(b"clip")) == []

    def test_unit_without_issues(self):
        def handler(request):
            return httpx.Response(200, json={"per_frame_feedback": [{"frame": 0}]})

        assert run(make_client(handler), lambda c: c.analyze_clip(b"clip")) == [[]]

    def test_empty_clip_is_client_error(self):
        def handler(request):
            return httpx.Response(200, json={})

        with pytest.raises(ClientError):
            run(make_client(handler), lambda c: c.analyze_clip(b""))


class TestDescribeError:

    def test_server_rejected(self):
        assert describe_error(ServerRejected(404, None), "video analysis") == "Server Error: 404 - Unknown error"

    def test_no_response_is_connectivity_message(self):
        message = describe_error(NoResponse("refused"), "video analysis")
        assert message == "No response from backend for video analysis. Is the backend server running?"

    def test_client_error(self):
        message = describe_error(ClientError("Clip is empty"), "video analysis")
        assert message == "Request Error for video analysis: Clip is empty"

    def test_unexpected(self):
        message = describe_error(RuntimeError("boom"), "live analysis")
        assert message == "An unexpected error occurred during live analysis."
