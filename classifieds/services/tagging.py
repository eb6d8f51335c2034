"""
Tag suggestion through Gemini's generateContent REST endpoint.

The model is asked for a JSON array of strings; whatever comes back is passed
through normalize_suggested_tags so callers always get at most MAX_TAGS
single words/phrases without hashtags, punctuation, duplicates or words that
already appear in the title.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable

from classifieds.adapters.base import MAX_TAGS
from classifieds.core.errors import TagSuggestionError
from classifieds.services.http_client import GenerativeApiClient

log = logging.getLogger(__name__)

SUGGEST_TAGS_PROMPT = """You are a helpful assistant that suggests relevant tags for a post based on its title and description.

The tags should be relevant to the content of the post and should help users find the post when searching for similar items.

Title: {title}
Description: {description}

Suggest at least 5 tags, but no more than 10.  The tags should be general, not specific (e.g. "electronics" instead of "used iPhone 12"). Do not include tags that are the same as words in the title.
Do not include hashtags or any special characters.  Just return an array of strings.
"""

_WORD_RE = re.compile(r"[\w']+", re.UNICODE)
_STRIP_RE = re.compile(r"[^\w\s&'-]", re.UNICODE)


def _title_words(title: str) -> set[str]:
    return {w.lower() for w in _WORD_RE.findall(title)}


def normalize_suggested_tags(raw: Iterable[Any], *, title: str, limit: int = MAX_TAGS) -> list[str]:
    title_words = _title_words(title)
    seen: set[str] = set()
    out: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        tag = _STRIP_RE.sub("", item.replace("#", " "))
        tag = " ".join(tag.split())
        if not tag:
            continue
        key = tag.lower()
        if key in seen or key in title_words:
            continue
        seen.add(key)
        out.append(tag)
        if len(out) >= limit:
            break
    return out


def extract_text(detail: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate of a generateContent response."""
    candidates = detail.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


class GeminiTagSuggester:
    def __init__(self, *, client: GenerativeApiClient, model: str):
        self._client = client
        self._model = model

    async def suggest(self, title: str, description: str) -> list[str]:
        body = {
            "contents": [
                {"role": "user", "parts": [{"text": SUGGEST_TAGS_PROMPT.format(title=title, description=description)}]}
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": {"type": "ARRAY", "items": {"type": "STRING"}},
            },
        }
        res = await self._client.generate_content(model=self._model, body=body)
        if not res.ok:
            raise TagSuggestionError(f"tag suggestion failed: {res.error_code} {res.error_message}")

        text = extract_text(res.detail)
        try:
            parsed = json.loads(text)
        except ValueError as e:
            raise TagSuggestionError("tag suggestion returned non-JSON output") from e

        # tolerate {"tags": [...]} as well as a bare array
        if isinstance(parsed, dict):
            parsed = parsed.get("tags", [])
        if not isinstance(parsed, list):
            raise TagSuggestionError("tag suggestion returned an unexpected shape")

        tags = normalize_suggested_tags(parsed, title=title)
        log.debug("suggested %d tags for %r", len(tags), title)
        return tags
