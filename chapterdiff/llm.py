"""
Chapter enhancement using OpenRouter (OpenAI SDK compatible).
"""

from __future__ import annotations

import structlog
from openai import OpenAI

from .utils import preview, strip_code_fences

logger = structlog.get_logger(__name__)


class EnhancementError(ValueError):
    """The model returned no usable text."""


SYSTEM_PROMPT = (
    "You are a professional literary editor. "
    "Return only the enhanced text without explanations."
)

USER_PROMPT = """You are a professional literary editor. Please enhance the following text while maintaining its original meaning and style. Focus on:

1. Grammar and punctuation improvements
2. Sentence structure and flow
3. Word choice and clarity
4. Maintaining the author's voice and style

Original text:
\"\"\"
{text}
\"\"\"

Please return only the enhanced text without any explanations or comments."""


class OpenRouterChapterEnhancer:
    """
    Rewrites chapter text through an OpenRouter model.
    Instances are callables so they can be passed wherever `str -> str` is expected.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        site_url: str = "",
        site_name: str = "",
        temperature: float = 0.7,
        max_tokens: int = 4000,
        timeout_sec: float = 90.0,
        max_retries: int = 2,
        client: OpenAI | None = None,
    ):
        self.client = client or OpenAI(base_url=base_url, api_key=api_key, timeout=timeout_sec, max_retries=max_retries)
        self.model = model
        self.site_url = site_url
        self.site_name = site_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    def enhance(self, text: str) -> str:
        headers = {}
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_name:
            headers["X-Title"] = self.site_name

        logger.info("requesting enhancement", model=self.model, chars=len(text))

        completion = self.client.chat.completions.create(
            extra_headers=headers or None,
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": USER_PROMPT.format(text=text)},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        content = strip_code_fences(completion.choices[0].message.content or "")
        if not content:
            raise EnhancementError("No enhanced content received from the model.")

        logger.info("enhancement received", chars=len(content), start=preview(content))
        return content

    __call__ = enhance
