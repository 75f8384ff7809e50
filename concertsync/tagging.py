"""
AI tag enhancement for stored concerts.

A TagGenerator turns a concert description into a list of tags. Generation
is best-effort: any failure or unusable answer falls back to a fixed set of
tags derived from the concert's own fields.
"""

import json
import sqlite3
from typing import Optional, Protocol

import openai

import concertsync.db as db_module
from concertsync.errors import ConcertSyncError, StorageError
from concertsync.log import get_logger
from concertsync.models import Concert

log = get_logger(__name__)

FALLBACK_TAGS = ["Classical", "Live Performance"]

_SYSTEM_PROMPT = (
    "You are a classical music expert who generates precise, helpful tags for concerts. "
    "Always respond with valid JSON array format."
)


class TagGenerator(Protocol):
    def generate(self, description: str) -> list[str]: ...


class TagGenerationError(ConcertSyncError):
    pass


def describe(concert: Concert) -> str:
    return "\n".join([
        f"Title: {concert.title or 'Unknown'}",
        f"Orchestra: {concert.orchestra or 'Unknown'}",
        f"Conductor: {concert.conductor or 'Unknown'}",
        f"Soloists: {concert.soloists or 'None'}",
        f"Program: {concert.program or 'Unknown'}",
        f"Venue: {concert.venue or 'Unknown'}",
    ])


class OpenAITagGenerator:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 30,
        client: Optional[openai.OpenAI] = None,
    ):
        self.model = model
        self._client = client or openai.OpenAI(api_key=api_key, timeout=timeout)

    def generate(self, description: str) -> list[str]:
        prompt = (
            "Analyze this classical music concert and generate relevant tags. Focus on:\n"
            "- Musical periods and styles\n"
            "- Instrumental forces\n"
            "- Notable features\n"
            "- Audience appeal\n"
            "- Performance characteristics\n\n"
            f"Concert Details:\n{description}\n\n"
            "Generate 5-8 specific, relevant tags that would help users discover this concert. "
            "Return only a JSON array of strings, no other text."
        )
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
                max_tokens=200,
            )
        except openai.OpenAIError as exc:
            raise TagGenerationError(f"tag generation failed: {exc}", provider="openai") from exc

        content = response.choices[0].message.content if response.choices else None
        try:
            tags = json.loads(content or "")
        except ValueError as exc:
            raise TagGenerationError(f"tag generation returned invalid JSON: {exc}", provider="openai") from exc
        if not isinstance(tags, list):
            raise TagGenerationError("tag generation returned a non-list", provider="openai")
        return tags


def fallback_tags(concert: Concert) -> list[str]:
    tags = list(FALLBACK_TAGS)
    if concert.orchestra and "symphony" in concert.orchestra.lower():
        tags.append("Symphony Orchestra")
    program = (concert.program or "").lower()
    if "concerto" in program:
        tags.append("Concerto")
    if "symphony" in program:
        tags.append("Symphony")
    return tags


def generate_tags(concert: Concert, generator: Optional[TagGenerator], max_tags: int = 8) -> list[str]:
    if generator is None:
        return fallback_tags(concert)
    try:
        raw_tags = generator.generate(describe(concert))
    except Exception as exc:
        log.warning("tag_generation_fallback", concert=concert.id, error=str(exc))
        return fallback_tags(concert)
    if not isinstance(raw_tags, list):
        log.warning("tag_generation_fallback", concert=concert.id, error="answer is not a list")
        return fallback_tags(concert)

    tags = [t.strip() for t in raw_tags if isinstance(t, str) and t.strip()][:max_tags]
    return tags or fallback_tags(concert)


def enhance_concert_tags(
    conn: sqlite3.Connection,
    concert_id: int,
    generator: Optional[TagGenerator],
    max_tags: int = 8,
) -> list[str]:
    """Generate tags for a stored concert and overwrite its seeded tags."""
    concert = db_module.get_concert(conn, concert_id)
    if concert is None:
        raise StorageError(f"no concert with id {concert_id}")
    tags = generate_tags(concert, generator, max_tags=max_tags)
    db_module.update_concert_tags(conn, concert_id, tags)
    log.info("concert_tags_updated", concert=concert_id, tags=tags)
    return tags
