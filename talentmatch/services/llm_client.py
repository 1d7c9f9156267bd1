"""
Text-understanding client used by the extractor and the match scorer.

The client is built by the caller and passed in; nothing here holds a
process-wide instance.
"""
from typing import Optional, Protocol

import requests
from starlette.concurrency import run_in_threadpool

from talentmatch.models.ai_settings import LLMSettings, ProcessingSettings
from talentmatch.utils.exceptions import ExternalServiceError, ModelError, retry_with_logging
from talentmatch.utils.logging_config import get_logger

logger = get_logger(__name__)


class TextUnderstandingClient(Protocol):
    async def generate(self, prompt: str, system: Optional[str] = None) -> str:
        ...


class OllamaClient:
    """Ollama /api/generate client. Blocking HTTP runs in the thread pool."""

    service_name = "ollama"

    def __init__(
        self,
        settings: Optional[LLMSettings] = None,
        processing: Optional[ProcessingSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or LLMSettings()
        processing = processing or ProcessingSettings()
        self.session = session or requests.Session()
        self._post_with_retry = retry_with_logging(
            max_attempts=max(1, processing.retry_attempts),
            backoff_factor=processing.retry_delay,
            exceptions=(requests.ConnectionError, requests.Timeout),
            logger=logger,
        )(self._post)

    @property
    def url(self) -> str:
        return f"{self.settings.base_url}/api/generate"

    def build_payload(self, prompt: str, system: Optional[str] = None) -> dict:
        options = {"temperature": self.settings.temperature}
        if self.settings.max_tokens:
            options["num_predict"] = self.settings.max_tokens
        payload = {
            "model": self.settings.model_name,
            "prompt": prompt,
            "options": options,
            "stream": False,  # important
        }
        if system:
            payload["system"] = system
        return payload

    def _post(self, payload: dict) -> str:
        resp = self.session.post(self.url, json=payload, timeout=self.settings.timeout)
        resp.raise_for_status()
        return resp.json().get("response", "") or ""

    async def generate(self, prompt: str, system: Optional[str] = None) -> str:
        payload = self.build_payload(prompt, system)
        try:
            return await run_in_threadpool(self._post_with_retry, payload)
        except requests.Timeout as e:
            raise ExternalServiceError(
                f"Model call timed out after {self.settings.timeout}s",
                service_name=self.service_name, cause=e,
            ) from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ExternalServiceError(
                f"Model call failed: {e}",
                service_name=self.service_name, status_code=status, cause=e,
            ) from e
        except requests.RequestException as e:
            raise ExternalServiceError(
                f"Model call failed: {e}", service_name=self.service_name, cause=e,
            ) from e
        except ValueError as e:
            raise ModelError(
                f"Model returned a non-JSON envelope: {e}",
                model_name=self.settings.model_name, cause=e,
            ) from e

    def close(self) -> None:
        self.session.close()
