"""
HTTP client for the Gemini generateContent endpoint. Implements TextCompletionService.
"""

import logging
from typing import Optional

import requests

from qcommerce.sim.domain.errors import AdvisoryError

logger = logging.getLogger(__name__)

GEMINI_API_URL_BASE = "https://generativelanguage.googleapis.com/v1beta/models/"


class GeminiTextClient:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash-latest",
        timeout_s: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise AdvisoryError("an advisory API key is required")
        self.api_key = api_key
        self.model = model
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    def complete(self, prompt: str) -> str:
        url = f"{GEMINI_API_URL_BASE}{self.model}:generateContent"
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        try:
            response = self._session.post(
                url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise AdvisoryError(f"advisory request failed: {e}") from e

        if response.status_code != 200:
            logger.error("Advisory API error %s: %s", response.status_code, response.text[:500])
            raise AdvisoryError(f"advisory API returned {response.status_code}")

        try:
            data = response.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AdvisoryError("no text in advisory API response") from e
