from __future__ import annotations
import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional
from pydantic import BaseModel, ValidationError
import requests

logger = logging.getLogger(__name__)


class LLMResponse(BaseModel):
    content: Optional[str] = None
    finish_reason: str
    usage: Optional[Dict[str, int]] = None
    time_taken: float
    error: str | None = None


@dataclass
class LLMConfig:
    backend: str = "gemini"
    api_base: str = ""
    model: str = "gemini-1.5-flash"
    max_tokens: int = 2048
    temperature: float = 0.0
    timeout: int = 60

    @classmethod
    def from_dict(cls, cfg: Dict) -> "LLMConfig":
        gen = cfg.get("generation", {})
        return cls(
            backend=str(gen.get("backend", cls.backend)).strip().lower(),
            api_base=gen.get("api_base", ""),
            model=gen.get("model", cls.model),
            max_tokens=int(gen.get("max_tokens", cls.max_tokens)),
            temperature=float(gen.get("temperature", cls.temperature)),
            timeout=int(gen.get("timeout", cls.timeout)),
        )


class LLMClient:
    """Text generation client. ``complete`` never raises; failures land in ``error``."""

    config: LLMConfig

    def complete(self, prompt: str) -> LLMResponse:
        raise NotImplementedError

    def _error(self, start_time: float, e: Exception) -> LLMResponse:
        logger.warning(f"{type(self).__name__} generation failed: {e}")
        return LLMResponse(
            finish_reason="error",
            time_taken=time.time() - start_time,
            error=str(e),
        )


# ----------------------------
# HuggingFace (OpenAI-compatible chat completions)
# ----------------------------

class _ChatMessage(BaseModel):
    content: str = ""


class _ChatChoice(BaseModel):
    message: _ChatMessage = _ChatMessage()
    finish_reason: Optional[str] = "stop"


class ChatCompletionResponse(BaseModel):
    choices: List[_ChatChoice] = []
    usage: Dict[str, int] = {}


class HuggingFaceClient(LLMClient):

    default_api_base = "https://router.huggingface.co"

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or LLMConfig(backend="huggingface", model="deepseek-ai/DeepSeek-Coder-V2-Lite-Instruct")
        self.api_key = os.getenv("HF_TOKEN")
        if not self.api_key:
            raise ValueError("HF_TOKEN environment variable not set")

        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def chat(
        self,
        system_prompt: str,
        user_message: str,
    ) -> LLMResponse:
        messages = []
        if system_prompt and system_prompt.strip():
            messages.append({"role": "system", "content": system_prompt.strip()})
        messages.append({"role": "user", "content": user_message.strip()})
        api_base = (self.config.api_base or self.default_api_base).rstrip("/")
        url = f"{api_base}/v1/chat/completions"
        payload = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        start_time = time.time()
        try:
            response = requests.post(
                url,
                headers=self.headers,
                json=payload,
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            data = ChatCompletionResponse.model_validate(response.json())
            if not data.choices:
                raise RuntimeError("Response contained no choices")
            choice = data.choices[0]
            return LLMResponse(
                content=choice.message.content.strip(),
                finish_reason=choice.finish_reason or "stop",
                usage={
                    "prompt_tokens": data.usage.get("prompt_tokens", 0),
                    "completion_tokens": data.usage.get("completion_tokens", 0),
                    "total_tokens": data.usage.get("total_tokens", 0),
                },
                time_taken=time.time() - start_time,
                error=None,
            )
        except (requests.RequestException, ValueError, ValidationError, RuntimeError) as e:
            return self._error(start_time, e)

    def complete(self, prompt: str) -> LLMResponse:
        return self.chat(system_prompt="", user_message=prompt)


# ----------------------------
# Gemini generateContent
# ----------------------------

class _GeminiPart(BaseModel):
    text: str = ""


class _GeminiContent(BaseModel):
    parts: List[_GeminiPart] = []


class _GeminiCandidate(BaseModel):
    content: _GeminiContent = _GeminiContent()
    finishReason: Optional[str] = None


class _GeminiUsage(BaseModel):
    promptTokenCount: int = 0
    candidatesTokenCount: int = 0
    totalTokenCount: int = 0


class GenerateContentResponse(BaseModel):
    candidates: List[_GeminiCandidate] = []
    usageMetadata: _GeminiUsage = _GeminiUsage()


class GeminiClient(LLMClient):

    default_api_base = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or LLMConfig()
        self.api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY or GOOGLE_API_KEY environment variable not set")

    def complete(self, prompt: str) -> LLMResponse:
        api_base = (self.config.api_base or self.default_api_base).rstrip("/")
        url = f"{api_base}/models/{self.config.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": self.config.max_tokens,
                "temperature": self.config.temperature,
            },
        }
        start_time = time.time()
        try:
            response = requests.post(
                url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            data = GenerateContentResponse.model_validate(response.json())
            if not data.candidates:
                raise RuntimeError("Response contained no candidates")
            candidate = data.candidates[0]
            text = "".join(part.text for part in candidate.content.parts)
            return LLMResponse(
                content=text.strip(),
                finish_reason=(candidate.finishReason or "stop").lower(),
                usage={
                    "prompt_tokens": data.usageMetadata.promptTokenCount,
                    "completion_tokens": data.usageMetadata.candidatesTokenCount,
                    "total_tokens": data.usageMetadata.totalTokenCount,
                },
                time_taken=time.time() - start_time,
                error=None,
            )
        except (requests.RequestException, ValueError, ValidationError, RuntimeError) as e:
            return self._error(start_time, e)


def create_client(cfg: Dict) -> LLMClient | None:
    """Build the configured generation client, or None when it has no credentials."""
    config = LLMConfig.from_dict(cfg)
    try:
        if config.backend == "gemini":
            return GeminiClient(config)
        if config.backend == "huggingface":
            return HuggingFaceClient(config)
    except ValueError as e:
        logger.info(f"Answer generation disabled: {e}")
        return None
    raise ValueError(f"Unknown generation backend: {config.backend!r}")
