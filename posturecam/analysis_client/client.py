"""
HTTP Client for the Analysis Service.
Provides async methods to call the clip and frame analysis endpoints.
"""
import base64
import io
from typing import Any, List, Optional, Tuple, Union

import httpx
import numpy as np
from PIL import Image

from posturecam.analysis_client.errors import ClientError, NoResponse, ServerRejected
from posturecam.core.config import settings
from posturecam.core.logging import get_logger
from posturecam.utils.timing import timer

logger = get_logger("analysis_client")

# Singleton instance
_client: Optional["AnalysisClient"] = None

# A still is either an RGB array, encoded JPEG bytes or an already base64 encoded string
ImageInput = Union[np.ndarray, bytes, str]
IssueList = List[str]


class AnalysisClient:
    """
    HTTP client for the Analysis Service.

    Usage:
        client = AnalysisClient(frame_url="http://localhost:8000/analyze_frame")
        issues = await client.analyze_frame(image_np)
    """

    def __init__(
        self,
        video_url: str = None,
        frame_url: str = None,
        clip_timeout: float = None,
        frame_timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the analysis client.

        Args:
            video_url: Batch (clip) analysis endpoint (default from settings)
            frame_url: Single frame analysis endpoint (default from settings)
            clip_timeout: Clip request timeout in seconds (minutes-long budget)
            frame_timeout: Frame request timeout in seconds
            transport: Optional httpx transport, used to stub the service
        """
        self.video_url = video_url if video_url is not None else settings.backend_video_url
        self.frame_url = frame_url if frame_url is not None else settings.backend_frame_url
        self.clip_timeout = clip_timeout or settings.clip_timeout_sec
        self.frame_timeout = frame_timeout or settings.frame_timeout_sec
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        logger.info(
            f"AnalysisClient initialized with video_url={self.video_url or '<unset>'}, "
            f"frame_url={self.frame_url or '<unset>'}"
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AnalysisClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def _encode_image(self, image: ImageInput) -> str:
        """Encode a still to base64, optionally as a JPEG data URL."""
        if isinstance(image, str):
            return image

        if isinstance(image, np.ndarray):
            try:
                pil_image = Image.fromarray(image)
                if pil_image.mode != "RGB":
                    pil_image = pil_image.convert("RGB")
                buffer = io.BytesIO()
                pil_image.save(buffer, format="JPEG", quality=settings.jpeg_quality)
            except (TypeError, ValueError, OSError) as e:
                raise ClientError(f"Could not encode image: {e}") from e
            data = buffer.getvalue()
        elif isinstance(image, (bytes, bytearray)):
            data = bytes(image)
        else:
            raise ClientError(f"Unsupported image type: {type(image).__name__}")

        if not data:
            raise ClientError("Image is empty")

        encoded = base64.b64encode(data).decode("utf-8")
        if settings.frame_image_as_data_url:
            return f"data:image/jpeg;base64,{encoded}"
        return encoded

    @staticmethod
    def _error_detail(response: httpx.Response) -> Optional[str]:
        """Pull the server-provided message out of an error response."""
        try:
            body = response.json()
        except ValueError:
            return None
        if not isinstance(body, dict):
            return None
        detail = body.get("detail") or body.get("message")
        return str(detail) if detail else None

    async def _post(self, url: str, timeout: float, **kwargs) -> Tuple[httpx.Response, Any]:
        """
        POST to an endpoint and return the response with its decoded JSON body.

        Raises:
            ClientError: endpoint missing or request could not be built
            NoResponse: connection, read or timeout failure
            ServerRejected: non-success status or non-JSON body
        """
        if not url:
            raise ClientError("Analysis endpoint URL is not configured")

        client = await self._get_client()

        try:
            response = await client.post(url, timeout=httpx.Timeout(timeout), **kwargs)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise ClientError(str(e)) from e
        except httpx.TransportError as e:
            raise NoResponse(str(e) or type(e).__name__) from e

        if response.is_error:
            detail = self._error_detail(response)
            logger.error(f"Analysis Service rejected request to {url}: {response.status_code} {detail}")
            raise ServerRejected(response.status_code, detail)

        try:
            body = response.json()
        except ValueError as e:
            raise ServerRejected(response.status_code, "Response body is not valid JSON") from e

        return response, body

    @staticmethod
    def _parse_issues(response: httpx.Response, value: Any) -> IssueList:
        """Normalize an `issues` field; missing means no issues."""
        if value is None:
            return []
        if not isinstance(value, list):
            raise ServerRejected(response.status_code, "Malformed issues list in response")
        return [str(issue) for issue in value]

    # =========================================================================
    # Single frame analysis
    # =========================================================================

    async def analyze_frame(self, image: ImageInput) -> IssueList:
        """
        Analyze one still from the live feed.

        Args:
            image: RGB numpy array, JPEG bytes or a base64 string

        Returns:
            Issue labels; empty when no problems were detected
        """
        payload = {"image": self._encode_image(image)}

        response, result = await self._post(self.frame_url, self.frame_timeout, json=payload)
        if not isinstance(result, dict):
            raise ServerRejected(response.status_code, "Malformed response body")

        issues = self._parse_issues(response, result.get("issues"))
        logger.debug(f"Frame analysis: {len(issues)} issues")

        return issues

    # =========================================================================
    # Clip analysis
    # =========================================================================

    async def analyze_clip(
        self,
        data: bytes,
        filename: str = "video.mp4",
        content_type: str = "video/mp4",
    ) -> List[IssueList]:
        """
        Submit a pre-recorded clip for analysis.

        Args:
            data: Raw clip bytes
            filename: Name sent with the multipart file field
            content_type: MIME type of the clip

        Returns:
            One issue list per analyzed unit, in the order the service returned them
        """
        if not data:
            raise ClientError("Clip is empty")

        files = {"file": (filename, data, content_type)}

        logger.info(f"Uploading clip {filename} ({len(data)} bytes) to {self.video_url}")
        with timer(f"Clip analysis of {filename}"):
            response, result = await self._post(self.video_url, self.clip_timeout, files=files)

        if not isinstance(result, dict):
            raise ServerRejected(response.status_code, "Malformed response body")

        units = result.get("per_frame_feedback") or []
        if not isinstance(units, list):
            raise ServerRejected(response.status_code, "Malformed per_frame_feedback in response")

        feedback = []
        for unit in units:
            issues = unit.get("issues") if isinstance(unit, dict) else None
            feedback.append(self._parse_issues(response, issues))

        logger.info(f"Clip analysis returned {len(feedback)} frames")
        return feedback


def get_analysis_client() -> AnalysisClient:
    """Get singleton analysis client instance."""
    global _client
    if _client is None:
        _client = AnalysisClient()
    return _client
