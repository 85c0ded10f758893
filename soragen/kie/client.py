"""Kie.ai client for Sora 2 text-to-video generation.

Jobs are created with a callback URL; Kie.ai posts the outcome to it when the
video is ready. The record endpoint is used as a fallback when no callback
arrives.
"""

import logging
import os
from typing import Any

import httpx

from ..config import KieConfig
from ..errors import SubmissionError
from ..tasks.models import JobReport, TaskOptions

logger = logging.getLogger(__name__)


class KieClient:
    """Submits and inspects video jobs on Kie.ai."""

    CREATE_PATH = "/api/v1/jobs/createTask"
    RECORD_PATH = "/api/v1/jobs/recordInfo"
    CALLBACK_PATH = "/api/callback"

    def __init__(
        self,
        config: KieConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: API settings. The key falls back to KIE_API_KEY.
            transport: Optional httpx transport, used by tests.
        """
        self.config = config or KieConfig()
        self.api_key = self.config.api_key or os.environ.get("KIE_API_KEY")
        self._transport = transport
        if not self.api_key:
            logger.warning("KIE_API_KEY is not set; submissions will be rejected")

    @property
    def callback_url(self) -> str:
        return f"{self.config.callback_base_url.rstrip('/')}{self.CALLBACK_PATH}"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=timeout,
            transport=self._transport,
        )

    def build_payload(self, prompt: str, options: TaskOptions) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "callBackUrl": self.callback_url,
            "input": {
                "prompt": prompt,
                "aspect_ratio": options.aspect_ratio.value,
                "remove_watermark": options.remove_watermark,
            },
        }

    async def submit(self, prompt: str, options: TaskOptions) -> str:
        """Create a generation job.

        Returns:
            The Kie.ai task id of the new job.

        Raises:
            SubmissionError: If the API rejects the job or cannot be reached.
        """
        payload = self.build_payload(prompt, options)
        try:
            async with self._client(self.config.request_timeout) as client:
                response = await client.post(
                    self.CREATE_PATH,
                    headers=self._get_headers(),
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise SubmissionError(
                f"Kie.ai returned HTTP {e.response.status_code}: {_error_message(e.response)}"
            ) from e
        except httpx.HTTPError as e:
            raise SubmissionError(f"Kie.ai request failed: {e}") from e
        except ValueError as e:
            raise SubmissionError("Kie.ai returned a non-JSON response") from e

        if not isinstance(data, dict) or data.get("code") != 200:
            message = _body_message(data) or "Failed to create task"
            raise SubmissionError(message)

        record = data.get("data")
        job_id = record.get("taskId") if isinstance(record, dict) else None
        if not job_id:
            raise SubmissionError("Kie.ai accepted the job but returned no taskId")
        return str(job_id)

    async def query(self, external_job_id: str) -> JobReport | None:
        """Fetch the current record of a job.

        Returns:
            The job report, or None if Kie.ai has no record of the job.

        Raises:
            httpx.HTTPError: On transport or HTTP errors.
        """
        async with self._client(self.config.query_timeout) as client:
            response = await client.get(
                self.RECORD_PATH,
                headers=self._get_headers(),
                params={"taskId": external_job_id},
            )
            response.raise_for_status()
            data = response.json()

        record = data.get("data") if isinstance(data, dict) else None
        if not record or data.get("code") != 200:
            logger.info(
                "No record for job %s: %s", external_job_id, _body_message(data)
            )
            return None
        return report_from_payload(record, default_job_id=external_job_id)


def report_from_payload(data: dict[str, Any], default_job_id: str | None = None) -> JobReport:
    """Build a report from a callback ``data`` object or a job record."""
    return JobReport(
        job_id=str(data.get("taskId") or default_job_id or ""),
        state=data.get("state"),
        result_json=data.get("resultJson"),
        fail_msg=data.get("failMsg"),
        consume_credits=data.get("consumeCredits"),
        cost_time=data.get("costTime"),
        remained_credits=data.get("remainedCredits"),
    )


def _body_message(data: Any) -> str | None:
    if isinstance(data, dict):
        return data.get("msg") or data.get("message")
    return None


def _error_message(response: httpx.Response) -> str:
    try:
        return _body_message(response.json()) or response.text
    except ValueError:
        return response.text
