"""Send workflow: validate, encode, sign, execute, interpret and record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import requests
import structlog

from signdesk.core.encoding import (
    decode_base64_to_utf8,
    encode_utf8_to_base64,
    is_valid_json,
    pretty_json,
    safe_json_parse,
)
from signdesk.core.signing import compute_sign
from signdesk.models.history import HISTORY_LIMIT, HistoryItem, RequestSummary
from signdesk.models.request import RequestExecution, RequestResult, SendForm

if TYPE_CHECKING:
    from signdesk.repositories.history_repository import HistoryRepository
    from signdesk.services.request_client import SignedRequestClient

logger = structlog.get_logger(__name__)

NON_2XX_MESSAGE = "HTTP non-2xx"

_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    requests.RequestException,
    ConnectionError,
    TimeoutError,
)


class RequestFailedError(Exception):
    """Raised when a request could not be sent or no response was received."""

    def __init__(self, message: str, history_item: HistoryItem) -> None:
        super().__init__(message)
        self.history_item = history_item


@dataclass
class SendOutcome:
    """Everything produced by one successful round-trip."""

    execution: RequestExecution
    result: RequestResult
    history_item: HistoryItem


def build_result_view(response_text: str) -> RequestResult:
    """Interpret a response body.

    The body is first tried as base64-wrapped UTF-8. When that yields text,
    the text is parsed as JSON; otherwise the raw body is. Parsed JSON is
    pretty-printed and a parse failure is kept as json_error.
    """
    decoded = decode_base64_to_utf8(response_text)
    source = decoded.data if decoded.data else response_text

    json_text = None
    json_error = None
    data, error = safe_json_parse(source)
    if error is None:
        json_text = pretty_json(data)
    else:
        json_error = error

    return RequestResult(
        raw=response_text,
        decoded=decoded.data,
        json_text=json_text,
        json_error=json_error,
        base64_error=decoded.error,
    )


class RequestRunner:
    """Runs the full send workflow and records every attempt in history."""

    def __init__(
        self,
        client: SignedRequestClient,
        history_repo: HistoryRepository,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.client = client
        self.history_repo = history_repo
        self.history_limit = history_limit

    def prepare(self, values: SendForm | dict[str, Any], convert_first: bool = True) -> SendForm:
        """Validate the form and make sure data_b64 is ready to send.

        Raises:
            pydantic.ValidationError: A form field is invalid.
            ValueError: data_raw is not JSON (when converting) or data_b64 is empty.
        """
        form = values if isinstance(values, SendForm) else SendForm.model_validate(values)

        if convert_first:
            if not is_valid_json(form.data_raw):
                msg = "data_raw is not valid JSON"
                raise ValueError(msg)
            form.data_b64 = encode_utf8_to_base64(form.data_raw)

        if not form.data_b64:
            msg = "data_b64 is empty; convert data_raw to base64 first"
            raise ValueError(msg)
        return form

    def _summary(self, form: SendForm, timestamp: str, sign: str) -> RequestSummary:
        return RequestSummary(
            url=form.url,
            appkey=form.appkey,
            ver=form.ver,
            timestamp=timestamp,
            sign=sign,
            data_b64_len=len(form.data_b64),
        )

    def send(self, values: SendForm | dict[str, Any], convert_first: bool = True) -> SendOutcome:
        """Validate, sign and send a request, then record it in history.

        Raises:
            RequestFailedError: The transport failed. The failure is recorded first.
        """
        form = self.prepare(values, convert_first)
        request = form.to_preset_request()

        try:
            execution = self.client.execute(request, timeout_ms=form.timeout_ms)
        except _TRANSPORT_ERRORS as e:
            message = str(e) or type(e).__name__
            sign = compute_sign(form.timestamp, form.data_b64, form.password)
            entry = HistoryItem(
                duration_ms=0,
                status=None,
                ok=False,
                request_summary=self._summary(form, form.timestamp, sign),
                request=request,
                response_text="",
                error_message=message,
            )
            self.history_repo.push(entry, limit=self.history_limit)
            logger.error("request_failed", url=form.url, error=message)
            raise RequestFailedError(message, entry) from e

        result = build_result_view(execution.response_text)
        entry = HistoryItem(
            duration_ms=execution.duration_ms,
            status=execution.status,
            ok=execution.ok,
            request_summary=self._summary(form, execution.timestamp, execution.sign),
            request=request.model_copy(update={"timestamp": execution.timestamp}),
            response_text=execution.response_text,
            error_message=None if execution.ok else NON_2XX_MESSAGE,
        )
        self.history_repo.push(entry, limit=self.history_limit)

        if not execution.ok:
            logger.warning("request_non_2xx", url=form.url, status=execution.status)
        return SendOutcome(execution=execution, result=result, history_item=entry)
