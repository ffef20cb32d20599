"""Gemini idea-generation client with optional caching."""

import asyncio
import hashlib
import json
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import requests
from loguru import logger

from radial_mindmap.config import (
    API_BASE_URL,
    API_CACHE_PREFIX,
    API_KEY_ENV_VARS,
    API_KEY_FILES,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT,
    MAX_IDEAS,
)

PROMPT_TEMPLATE = """\
You are a creative brainstorming assistant.
The current central concept is: "{concept}".
Context path: {context}.

Generate between 3 to 5 distinct, creative, and concise sub-concepts or related \
associations that branch off from "{concept}".
Keep the text for each idea short (under 5 words) and punchy.

Output JSON.
"""

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {"ideas": {"type": "ARRAY", "items": {"type": "STRING"}}},
}


def build_prompt(concept: str, context_path: Sequence[str]) -> str:
    """Render the brainstorming prompt for one concept."""
    return PROMPT_TEMPLATE.format(concept=concept, context=" -> ".join(context_path))


def parse_ideas(response: dict[str, Any], *, limit: int = MAX_IDEAS) -> list[str]:
    """Extract the idea list from a generateContent response.

    Anything malformed yields an empty list: a missing candidate, text that
    is not JSON, or a payload without an ``ideas`` array.
    """
    try:
        text = response["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return []
    if not text:
        return []

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Response text is not JSON: {!r}", text[:80])
        return []

    raw = payload.get("ideas") if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        return []

    ideas: list[str] = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, str):
            continue
        idea = " ".join(item.split())
        if not idea or idea.casefold() in seen:
            continue
        seen.add(idea.casefold())
        ideas.append(idea)
    return ideas[:limit]


class GeminiIdeaGenerator:
    """Encapsulated Gemini generateContent API with caching."""

    def __init__(
        self,
        *,
        model: str = DEFAULT_MODEL,
        from_cache: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.model = model
        self.from_cache = from_cache
        self.timeout = timeout
        self.sess = requests.Session()
        self.api_key, api_key_name = _find_api_key()

        self.api_cache_prefix: str | None = API_CACHE_PREFIX if from_cache else None

        logger.debug(
            "Gemini client ready: key from {!r}, model {!r}, api_cache_prefix {!r}",
            api_key_name,
            self.model,
            self.api_cache_prefix,
        )

        if self.api_cache_prefix:
            Path(self.api_cache_prefix).parent.mkdir(parents=True, exist_ok=True)

    async def generate(self, concept: str, context_path: Sequence[str]) -> list[str]:
        """Return 3-5 short ideas branching off ``concept``."""
        response = await asyncio.to_thread(self.call, concept, list(context_path))
        return parse_ideas(response)

    def call(self, concept: str, context_path: list[str]) -> dict[str, Any]:
        """Invoke generateContent for one concept, return the JSON response."""
        cache_name: str | None = None
        if self.api_cache_prefix:
            key = json.dumps([self.model, concept, context_path], separators=(",", ":"))
            cache_name = self.api_cache_prefix + hashlib.sha1(key.encode("utf-8")).hexdigest()
            if Path(cache_name).exists():
                logger.debug("Filled from cache: {!r}", cache_name)
                with open(cache_name, encoding="utf-8") as f:
                    return json.load(f)  # type: ignore[no-any-return]

        body = {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(concept, context_path)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        logger.debug("Making request for {!r}", concept[:32])

        r = self.sess.post(
            f"{API_BASE_URL}/models/{self.model}:generateContent",
            json=body,
            headers={"x-goog-api-key": self.api_key},
            timeout=self.timeout,
        )
        r.raise_for_status()
        try:
            rv: dict[str, Any] = r.json()
        except requests.exceptions.JSONDecodeError:
            logger.warning("Response body for {!r} is not JSON, no ideas", concept[:32])
            return {}
        if not isinstance(rv, dict):
            return {}
        if "error" in rv:
            msg = f"Gemini call failed for {concept!r}: {rv['error']!r}"
            raise RuntimeError(msg)
        if cache_name:
            with open(cache_name, "w", encoding="utf-8") as f:
                f.write(r.text)

        return rv


def _find_api_key() -> tuple[str, str]:
    """Return the API key and a description of where it was found."""
    for var in API_KEY_ENV_VARS:
        value = os.environ.get(var, "").strip()
        if value:
            return value, f"${var}"

    for key_path in API_KEY_FILES:
        try:
            return key_path.read_text(encoding="utf-8").strip(), str(key_path)
        except FileNotFoundError:
            pass

    msg = (
        f"Cannot find Gemini API key, was looking at ${' / $'.join(API_KEY_ENV_VARS)} "
        f"and {API_KEY_FILES!r}"
    )
    raise RuntimeError(msg)
