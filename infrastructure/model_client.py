# ============================================================================
# MODEL ENDPOINT CLIENTS
# ============================================================================
# STATUS: Infrastructure - HTTP adapters for the classifier and embedder
# PURPOSE: Turn model endpoint responses and failures into AnalysisResult /
#          vectors or into the pipeline's transient/permanent errors
# EXPORTS: HttpModerationClassifier, HttpEmbeddingGenerator, build_moderation_prompt
# DEPENDENCIES: httpx
# ============================================================================
"""
Model Endpoint Clients

Both endpoints are JSON over HTTP:

    classifier:  POST {"prompt": "..."}                 -> {"text": "<json reply>"}
    embedder:    POST {"input": "...", "dimensions": n} -> {"embedding": [...]}

Failure mapping (shared):
    timeout / connection error -> TransientExternalError
    HTTP 429                   -> ThrottledError
    HTTP 5xx                   -> TransientExternalError
    other HTTP 4xx             -> PermanentExternalError
    unparseable reply          -> TransientExternalError (model replies vary
                                  run to run, so a retry may succeed)

The classifier reply is asked to be bare JSON but models sometimes wrap it
in a Markdown code fence; the fence is stripped before parsing.
"""

import json
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from config import IntegrationConfig
from core.models import AnalysisResult
from exceptions import PermanentExternalError, ThrottledError, TransientExternalError
from interfaces.repository import IClassifier, IEmbeddingGenerator
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "ModelClient")

_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")

MODERATION_PROMPT = """You are a content compliance reviewer and a search specialist.

Task 1 - compliance. Reject only severe violations: explicit sexual content,
incitement to violence or terrorism, promotion of crime, drugs, gambling or
self-harm. Allow ordinary commentary (including criticism), non-explicit
adult or relationship topics, and conflict that fiction needs.

Task 2 - keywords. If the content is approved, list 8-12 search keywords a
reader might use to find it: the topic, its broader categories, synonyms and
everyday phrasings. Only use ideas the content actually covers. If the
content is rejected, the list may be empty.

Title: {title}
Body excerpt: {body}

Reply with a single JSON object and nothing else:
{{"approved": true, "keywords": ["..."], "reason": "..."}}
"""


def build_moderation_prompt(title: str, body: str) -> str:
    return MODERATION_PROMPT.format(title=title, body=body)


def strip_code_fence(text: str) -> str:
    """'```json\\n{...}\\n```' -> '{...}'; unfenced text is only trimmed."""
    return _FENCE.sub("", text.strip()).strip()


class _ModelEndpoint:
    """Shared POST + error mapping."""

    service = "model"

    def __init__(self, url: str, api_key: Optional[str], timeout_seconds: float,
                 client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds), headers=headers)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _post(self, payload: Dict[str, Any]) -> Any:
        client = await self._get_client()
        try:
            response = await client.post(self.url, json=payload)
        except httpx.TimeoutException as e:
            raise TransientExternalError(f"{self.service} timed out: {e}", service=self.service) from e
        except httpx.RequestError as e:
            raise TransientExternalError(f"{self.service} request failed: {e}", service=self.service) from e

        status = response.status_code
        if status == 429:
            raise ThrottledError(f"{self.service} rate limited (HTTP 429)", service=self.service)
        if status >= 500:
            raise TransientExternalError(f"{self.service} unavailable (HTTP {status})", service=self.service)
        if status >= 400:
            raise PermanentExternalError(
                f"{self.service} rejected request (HTTP {status}): {response.text[:200]}",
                service=self.service,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransientExternalError(f"{self.service} returned non-JSON body", service=self.service) from e


class HttpModerationClassifier(_ModelEndpoint, IClassifier):
    """Moderation classifier behind an HTTP text-generation endpoint."""

    service = "classifier"

    @classmethod
    def from_config(cls, config: IntegrationConfig, client: Optional[httpx.AsyncClient] = None) -> "HttpModerationClassifier":
        return cls(config.classifier_url, config.api_key, config.classifier_timeout_seconds, client=client)

    async def classify(self, title: str, body: str) -> AnalysisResult:
        reply = await self._post({"prompt": build_moderation_prompt(title, body)})

        if isinstance(reply, dict) and "text" in reply:
            text = reply.get("text") or ""
            try:
                reply = json.loads(strip_code_fence(text))
            except ValueError as e:
                logger.warning(f"⚠️ Classifier reply is not JSON: {text[:200]!r}")
                raise TransientExternalError("Classifier reply is not JSON", service=self.service) from e

        try:
            return AnalysisResult.model_validate(reply)
        except ValidationError as e:
            raise TransientExternalError(
                f"Classifier reply does not match AnalysisResult: {e.errors()[0]['msg']}",
                service=self.service,
            ) from e


class HttpEmbeddingGenerator(_ModelEndpoint, IEmbeddingGenerator):
    """Fixed-dimension embedding generator behind an HTTP endpoint."""

    service = "embedding"

    def __init__(self, url: str, api_key: Optional[str], timeout_seconds: float,
                 dimensions: int, client: Optional[httpx.AsyncClient] = None):
        super().__init__(url, api_key, timeout_seconds, client=client)
        self._dimensions = dimensions

    @classmethod
    def from_config(cls, config: IntegrationConfig, client: Optional[httpx.AsyncClient] = None) -> "HttpEmbeddingGenerator":
        return cls(
            config.embedding_url,
            config.api_key,
            config.embedding_timeout_seconds,
            config.embedding_dimensions,
            client=client,
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            # Never index a placeholder vector
            raise PermanentExternalError("Cannot embed blank text", service=self.service)

        reply = await self._post({"input": text, "dimensions": self._dimensions})
        vector = reply.get("embedding") if isinstance(reply, dict) else None
        if not vector:
            raise TransientExternalError("Embedding endpoint returned no embedding", service=self.service)

        if len(vector) != self._dimensions:
            raise PermanentExternalError(
                f"Embedding has {len(vector)} dimensions, expected {self._dimensions}",
                service=self.service,
            )
        return [float(v) for v in vector]
