"""Single-call GPT vision service for building and contents photos."""

import base64
import logging
from dataclasses import dataclass
from typing import Optional

import openai
from openai import OpenAI

from xm8detect.errors import UpstreamAuthError, UpstreamRateLimitError, UpstreamServiceError
from xm8detect.prompts import INSPECTION_PROMPT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NarrativeResponse:
    text: str
    model: str
    tokens_used: int = 0


class OpenAINarrator:
    """
    Sends one photo to a vision-capable chat model and returns its raw text.

    The answer is not parsed here; see xm8detect.narrative.
    """

    def __init__(self, client: OpenAI, model: str = "gpt-4o", max_tokens: int = 1500):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def describe(self, image_bytes: bytes, content_type: str) -> NarrativeResponse:
        b64_img = base64.b64encode(image_bytes).decode("utf-8")
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": INSPECTION_PROMPT},
                    {
                        "type": "image_url",
                        "image_url": {
                            "url": f"data:{content_type};base64,{b64_img}",
                            "detail": "high",
                        },
                    },
                ],
            }
        ]

        logger.info(
            "Sending %.1fkb image to model=%s",
            len(b64_img) / 1024,
            self.model,
        )

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=0,
            )
        except openai.AuthenticationError as e:
            raise UpstreamAuthError(
                "Invalid OpenAI API key. Please check your OPENAI_API_KEY environment variable.",
                str(e),
            ) from e
        except openai.RateLimitError as e:
            raise UpstreamRateLimitError(
                "OpenAI API rate limit exceeded. Please try again in a moment.",
                str(e),
            ) from e
        except openai.OpenAIError as e:
            raise UpstreamServiceError("Failed to analyze image with GPT vision", str(e)) from e

        text = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        tokens_used: Optional[int] = getattr(usage, "total_tokens", None)
        logger.info("GPT response received, length: %s, tokens: %s", len(text), tokens_used)
        return NarrativeResponse(text=text, model=self.model, tokens_used=tokens_used or 0)
