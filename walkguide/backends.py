"""Vision-analysis backends with retries and uniform error reporting.

Each analyzer turns ``(image bytes, prompt)`` into text or raises
:class:`~walkguide.errors.BackendError`. :class:`BackendRouter` dispatches on
the currently selected :class:`~walkguide.types.Backend`.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import random
import time

from .config import GuideConfig
from .constants import DEFAULT_RETRY_BACKOFF_S, IMAGE_MIME_TYPE
from .errors import BackendError
from .types import Backend

try:  # pragma: no cover - runtime import guard
    from google import genai
    from google.genai import types as genai_types

    _GENAI_AVAILABLE = True
except ImportError:  # pragma: no cover - keep runtime safe
    genai = None
    genai_types = None
    _GENAI_AVAILABLE = False

try:  # pragma: no cover - runtime import guard
    from anthropic import AsyncAnthropic

    _ANTHROPIC_AVAILABLE = True
except ImportError:  # pragma: no cover
    AsyncAnthropic = None
    _ANTHROPIC_AVAILABLE = False

try:  # pragma: no cover - runtime import guard
    from openai import AsyncOpenAI

    _OPENAI_AVAILABLE = True
except ImportError:  # pragma: no cover
    AsyncOpenAI = None
    _OPENAI_AVAILABLE = False

LOGGER = logging.getLogger("walkguide.backends")

# Client errors that will not succeed on retry.
_NON_RETRYABLE_STATUS = {400, 401, 403, 404}


def _status_of(exc: BaseException) -> int | None:
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


class VisionBackend:
    """Shared retry loop; subclasses implement :meth:`_request`."""

    backend: Backend

    def __init__(self, cfg: GuideConfig, *, model: str, api_key: str | None, sdk_available: bool) -> None:
        self.cfg = cfg
        self.model = model
        self.api_key = api_key
        self._sdk_available = sdk_available
        self._client = None

    @property
    def available(self) -> bool:
        return self._sdk_available and bool(self.api_key)

    async def analyze(self, image: bytes, prompt: str) -> str:
        if not self._sdk_available:
            raise BackendError("missing_sdk", backend=self.backend.value)
        if not self.api_key:
            raise BackendError("missing_api_key", backend=self.backend.value)
        if self._client is None:
            self._client = self._make_client()

        attempts = max(1, self.cfg.retries + 1)
        last_error: BackendError | None = None
        start = time.perf_counter()

        for attempt in range(attempts):
            try:
                text = await asyncio.wait_for(self._request(image, prompt), timeout=self.cfg.timeout_s)
            except asyncio.TimeoutError:
                last_error = BackendError(
                    f"timed out after {self.cfg.timeout_s:.1f}s", backend=self.backend.value
                )
            except BackendError as exc:
                last_error = exc
            except Exception as exc:  # SDKs raise their own hierarchies
                last_error = BackendError(str(exc), backend=self.backend.value, status=_status_of(exc))
            else:
                if text and text.strip():
                    LOGGER.debug(
                        "%s answered in %dms (attempt %d)",
                        self.backend.value,
                        int((time.perf_counter() - start) * 1000),
                        attempt + 1,
                    )
                    return text
                last_error = BackendError("empty response", backend=self.backend.value)

            LOGGER.info("%s attempt %d/%d failed: %s", self.backend.value, attempt + 1, attempts, last_error)
            if last_error.status in _NON_RETRYABLE_STATUS:
                break
            if attempt < attempts - 1:
                backoff = DEFAULT_RETRY_BACKOFF_S * (2 ** attempt)
                backoff += random.random() * 0.2
                await asyncio.sleep(backoff)

        assert last_error is not None
        raise last_error

    def _make_client(self):
        raise NotImplementedError

    async def _request(self, image: bytes, prompt: str) -> str:
        raise NotImplementedError


class GeminiAnalyzer(VisionBackend):
    backend = Backend.GEMINI

    def __init__(self, cfg: GuideConfig) -> None:
        super().__init__(
            cfg, model=cfg.gemini_model, api_key=cfg.gemini_api_key, sdk_available=_GENAI_AVAILABLE
        )

    def _make_client(self):
        return genai.Client(api_key=self.api_key)

    async def _request(self, image: bytes, prompt: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=[
                genai_types.Part.from_bytes(data=image, mime_type=IMAGE_MIME_TYPE),
                prompt,
            ],
            config=genai_types.GenerateContentConfig(
                max_output_tokens=self.cfg.max_output_tokens,
            ),
        )
        return self._extract_text(response)

    @staticmethod
    def _extract_text(response: object) -> str:
        if response is None:
            return ""
        # google-genai responses usually expose .text
        text = getattr(response, "text", None)
        if isinstance(text, str):
            return text
        for cand in getattr(response, "candidates", None) or []:
            content = getattr(cand, "content", None)
            for part in getattr(content, "parts", None) or []:
                part_text = getattr(part, "text", "")
                if part_text:
                    return str(part_text)
        return ""


class ClaudeAnalyzer(VisionBackend):
    backend = Backend.CLAUDE

    def __init__(self, cfg: GuideConfig) -> None:
        super().__init__(
            cfg, model=cfg.claude_model, api_key=cfg.claude_api_key, sdk_available=_ANTHROPIC_AVAILABLE
        )

    def _make_client(self):
        return AsyncAnthropic(api_key=self.api_key, max_retries=0)

    async def _request(self, image: bytes, prompt: str) -> str:
        response = await self._client.messages.create(
            model=self.model,
            max_tokens=self.cfg.max_output_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": IMAGE_MIME_TYPE,
                                "data": base64.b64encode(image).decode("ascii"),
                            },
                        },
                    ],
                }
            ],
        )
        for block in response.content or []:
            if getattr(block, "type", None) == "text":
                return block.text
        raise BackendError("Claude API: empty response content", backend=self.backend.value)


class ChatGPTAnalyzer(VisionBackend):
    backend = Backend.CHATGPT

    def __init__(self, cfg: GuideConfig) -> None:
        super().__init__(
            cfg, model=cfg.chatgpt_model, api_key=cfg.openai_api_key, sdk_available=_OPENAI_AVAILABLE
        )

    def _make_client(self):
        return AsyncOpenAI(api_key=self.api_key, max_retries=0)

    async def _request(self, image: bytes, prompt: str) -> str:
        encoded = base64.b64encode(image).decode("ascii")
        response = await self._client.chat.completions.create(
            model=self.model,
            max_tokens=self.cfg.max_output_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{IMAGE_MIME_TYPE};base64,{encoded}"},
                        },
                    ],
                }
            ],
        )
        if not response.choices:
            raise BackendError("ChatGPT API: empty response choices", backend=self.backend.value)
        return response.choices[0].message.content or ""


class BackendRouter:
    """:class:`~walkguide.interfaces.VisionAnalyzer` over all known backends."""

    def __init__(self, backends: dict[Backend, VisionBackend]) -> None:
        self._backends = dict(backends)

    @classmethod
    def from_config(cls, cfg: GuideConfig) -> "BackendRouter":
        return cls(
            {
                Backend.GEMINI: GeminiAnalyzer(cfg),
                Backend.CLAUDE: ClaudeAnalyzer(cfg),
                Backend.CHATGPT: ChatGPTAnalyzer(cfg),
            }
        )

    def availability(self) -> dict[str, bool]:
        return {backend.value: impl.available for backend, impl in self._backends.items()}

    async def analyze(self, image: bytes, prompt: str, backend: Backend) -> str:
        impl = self._backends.get(backend)
        if impl is None:
            raise BackendError("unknown backend", backend=backend.value)
        return await impl.analyze(image, prompt)


__all__ = [
    "VisionBackend",
    "GeminiAnalyzer",
    "ClaudeAnalyzer",
    "ChatGPTAnalyzer",
    "BackendRouter",
]
