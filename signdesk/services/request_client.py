"""HTTP client for signed multipart API requests."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import requests
import structlog

from signdesk.core.signing import compute_sign
from signdesk.core.timestamps import get_timestamp
from signdesk.models.request import DEFAULT_TIMEOUT_MS, RequestExecution
from signdesk.utils.retry import retry_with_logging

if TYPE_CHECKING:
    from signdesk.models.preset import PresetRequest

logger = structlog.get_logger(__name__)

USER_AGENT = "signdesk/0.1"


class SignedRequestClient:
    """Signs a request and POSTs it as multipart/form-data."""

    def __init__(
        self,
        session: requests.Session | None = None,
        max_attempts: int = 1,
    ) -> None:
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": USER_AGENT})
        self.session = session
        self.max_attempts = max_attempts

    def _post(self, url: str, fields: dict[str, str], timeout: float) -> requests.Response:
        # (None, value) tuples make requests emit plain form fields, not file parts
        files = {name: (None, value) for name, value in fields.items()}
        return self.session.post(url, files=files, timeout=timeout)

    def execute(
        self,
        request: PresetRequest,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        force_time: str | None = None,
    ) -> RequestExecution:
        """Sign and send a request.

        Args:
            request: The request fields. data_b64 is sent as-is (empty if unset).
            timeout_ms: Overall timeout in milliseconds.
            force_time: Overrides the request's timestamp when given.

        Returns:
            RequestExecution with body, status and the timestamp/sign actually sent.
            Non-2xx responses are returned, not raised.
        """
        timestamp = force_time or request.timestamp or get_timestamp()
        data_b64 = request.data_b64 or ""
        sign = compute_sign(timestamp, data_b64, request.password)

        fields = {
            "appkey": request.appkey,
            "timestamp": timestamp,
            "data": data_b64,
            "sign": sign,
            "ver": request.ver or "1",
        }

        post = retry_with_logging(max_attempts=self.max_attempts)(self._post)
        started_at = time.perf_counter()
        response = post(request.url, fields, timeout_ms / 1000)
        duration_ms = round((time.perf_counter() - started_at) * 1000)

        logger.info(
            "request_sent",
            url=request.url,
            appkey=request.appkey,
            status=response.status_code,
            duration_ms=duration_ms,
            data_b64_len=len(data_b64),
            sign=sign,
        )
        return RequestExecution(
            response_text=response.text,
            status=response.status_code,
            ok=200 <= response.status_code < 300,
            duration_ms=duration_ms,
            timestamp=timestamp,
            sign=sign,
        )
