# resume_assistant/llm/client.py
import logging
import os
import time
from typing import Optional

import google.generativeai as genai
from openai import OpenAI

from resume_assistant.config import (
    LLM_PROVIDER,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TIMEOUT_SECONDS,
)
from resume_assistant.errors import GenerationUnavailable
from resume_assistant.prompts.system_prompts import RESUME_ANALYST_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Client for the generative model.

    One completion call per prompt against the configured provider
    (OpenAI or Gemini). No fallback between providers and no retries.
    """

    def __init__(
        self,
        provider: str = LLM_PROVIDER,
        model: str = LLM_MODEL,
        timeout: float = LLM_TIMEOUT_SECONDS,
        client: Optional[OpenAI] = None,
    ):
        """
        Args:
            provider: "openai" or "gemini"
            model: Provider model identifier
            timeout: Seconds before a call is abandoned
            client: Pre-built OpenAI client, mainly for tests
        """
        if provider not in ("openai", "gemini"):
            raise ValueError(f"Unsupported LLM provider: {provider}")

        self.provider = provider
        self.model = model
        self.timeout = timeout
        self.client = client

        if provider == "openai" and self.client is None:

            api_key = os.getenv("OPENAI_API_KEY")

            if not api_key:
                raise ValueError(
                    "OPENAI_API_KEY environment variable not set. "
                    "Please set it before running the application."
                )

            self.client = OpenAI(api_key=api_key, timeout=timeout)

        if provider == "gemini":

            api_key = os.getenv("GEMINI_API_KEY")

            if not api_key:
                raise ValueError(
                    "GEMINI_API_KEY environment variable not set. "
                    "Please set it before running the application."
                )

            genai.configure(api_key=api_key)

            self.gemini_model = genai.GenerativeModel(
                model_name=model,
                system_instruction=RESUME_ANALYST_SYSTEM_PROMPT,
            )

    def generate(self, prompt: str) -> str:
        """
        Generate a completion for the prompt.

        Returns:
            The model's text, verbatim

        Raises:
            GenerationUnavailable: provider error, timeout or empty reply
        """
        start = time.time()

        try:

            if self.provider == "openai":
                text = self._generate_openai(prompt)
            else:
                text = self._generate_gemini(prompt)

        except Exception as e:

            logger.error(
                "LLM provider failed",
                extra={
                    "provider": self.provider,
                    "model": self.model,
                    "error": str(e),
                },
            )

            raise GenerationUnavailable(
                "Generative model call failed",
                details=str(e),
            ) from e

        if not text:
            raise GenerationUnavailable(
                "Generative model returned an empty response"
            )

        logger.info(
            "LLM provider success",
            extra={
                "provider": self.provider,
                "prompt_length": len(prompt),
                "latency_seconds": round(time.time() - start, 3),
            },
        )

        return text

    def _generate_openai(self, prompt: str) -> str:

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": RESUME_ANALYST_SYSTEM_PROMPT.strip(),
                },
                {
                    "role": "user",
                    "content": prompt,
                },
            ],
            temperature=LLM_TEMPERATURE,
            max_tokens=LLM_MAX_TOKENS,
        )

        return response.choices[0].message.content

    def _generate_gemini(self, prompt: str) -> str:

        response = self.gemini_model.generate_content(
            prompt,
            generation_config={
                "temperature": LLM_TEMPERATURE,
                "max_output_tokens": LLM_MAX_TOKENS,
            },
            request_options={"timeout": self.timeout},
        )

        return response.text

    def health_check(self) -> dict:

        return {
            "provider": self.provider,
            "model": self.model,
        }
