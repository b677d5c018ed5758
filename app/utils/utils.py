import json
from typing import List, Optional

import requests

from app.models.settings import LLMSettings
from app.utils.exceptions import ExternalServiceError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def ollama_generate(prompt: str, settings: LLMSettings, images: Optional[List[str]] = None) -> str:
    """Single non-streaming completion; ``images`` are base64 strings for vision models"""
    url = f"{settings.base_url}/api/generate"
    payload = {
        "model": settings.model_name,
        "prompt": prompt,
        "options": {"temperature": settings.temperature},
        "stream": False  # important
    }
    if images:
        payload["images"] = images

    try:
        resp = requests.post(url, json=payload, timeout=settings.timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        status = getattr(getattr(e, "response", None), "status_code", None)
        logger.error(f"Ollama request to {url} failed: {e}")
        raise ExternalServiceError(
            f"LLM request failed: {e}",
            service_name="ollama",
            status_code=status,
            cause=e
        ) from e
    return resp.json().get("response", "") or ""


def safe_json(s: str, fallback=None):
    """Parse the outermost JSON object in an LLM reply (tolerates ```json fences and chatter)"""
    try:
        # heuristics to find JSON inside
        start = s.find("{")
        end = s.rfind("}")
        if start >= 0 and end > start:
            return json.loads(s[start:end+1])
        return fallback
    except (ValueError, TypeError):
        return fallback
