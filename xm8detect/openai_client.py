import logging

from openai import OpenAI

from xm8detect.config import Settings
from xm8detect.errors import NotConfiguredError

logger = logging.getLogger(__name__)


def build_openai_client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise NotConfiguredError(
            "OpenAI API key not configured. Please add OPENAI_API_KEY to environment variables."
        )
    logger.info("Initializing OpenAI client (model=%s)", settings.gpt_model)
    # retries are not ours to add: one call per request
    return OpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.upstream_timeout_s,
        max_retries=0,
    )
