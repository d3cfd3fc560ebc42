import json
import re
from typing import Any, Dict, Optional

import structlog
from openai import OpenAI, OpenAIError

from bookloop.config import settings
from bookloop.models.schemas import GENRES, BookCondition, ParsedBookQuery

logger = structlog.get_logger(__name__)

_CONDITION_PHRASES = [
    ("like-new", BookCondition.LIKE_NEW.value),
    ("like new", BookCondition.LIKE_NEW.value),
    ("brand new", BookCondition.NEW.value),
    ("new", BookCondition.NEW.value),
    ("good", BookCondition.GOOD.value),
    ("fair", BookCondition.FAIR.value),
    ("poor", BookCondition.POOR.value),
]

_GENRE_ALIASES = {
    "sci-fi": "Science Fiction",
    "scifi": "Science Fiction",
    "nonfiction": "Non-Fiction",
    "ya": "Young Adult",
    "kids": "Children",
}

_MAX_PRICE_RE = re.compile(r"(?:under|below|less than|max(?:imum)?|up to)\s*\$?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_MIN_PRICE_RE = re.compile(r"(?:over|above|more than|at least|min(?:imum)?)\s*\$?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_DOLLAR_RE = re.compile(r"\$\s*(\d+(?:\.\d+)?)")
_FILLER_RE = re.compile(
    r"\b(i|im|i'm|want|need|looking|for|a|an|the|some|book|books|copy|in|condition|cheap|please|find|me|any)\b",
    re.IGNORECASE,
)


class SearchAssistant:
    """Turns a free-text shopping request into structured listing filters.

    - Uses the chat completions API when OPENAI_API_KEY is configured
    - Falls back to keyword/regex extraction otherwise, or when the model
      reply cannot be parsed
    - Anything outside the genre/condition enumerations is dropped, so the
      result can go straight into the normal query operation
    """

    def __init__(self, client: Optional[Any] = None):
        if client is None and settings.OPENAI_API_KEY:
            client = OpenAI(api_key=settings.OPENAI_API_KEY)
        self.client = client

    def parse_query(self, query: str) -> ParsedBookQuery:
        if self.client is not None:
            data = self._ask_model(query)
            if data is not None:
                return self._sanitize(data)
        return self._fallback(query)

    def _ask_model(self, query: str) -> Optional[Dict[str, Any]]:
        system = (
            "You extract structured used-book search filters from a user request. "
            "Return ONLY valid JSON with these keys: "
            "search (keywords for title/author/description, string or null), "
            f"genre (one of {list(GENRES)} or null), "
            f"condition (one of {[c.value for c in BookCondition]} or null), "
            "min_price (number or null), max_price (number or null), parse_confidence (number 0..1)."
        )
        try:
            resp = self.client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": query},
                ],
                temperature=0.1,
                max_tokens=200,
            )
        except OpenAIError as e:
            logger.warning("assistant_model_failed", error=str(e))
            return None

        content = (resp.choices[0].message.content or "").strip()

        # Best case: pure JSON
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            pass

        # Fallback: extract JSON blob
        m = re.search(r"\{.*\}", content, re.DOTALL)
        if m:
            try:
                return json.loads(m.group(0))
            except json.JSONDecodeError:
                pass

        logger.info("assistant_reply_unparsed", content=content[:200])
        return None

    @staticmethod
    def _number(value: Any) -> Optional[float]:
        if isinstance(value, bool) or value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if number >= 0 else None

    def _sanitize(self, data: Dict[str, Any]) -> ParsedBookQuery:
        genre = data.get("genre")
        condition = data.get("condition")
        search = data.get("search")
        confidence = self._number(data.get("parse_confidence")) or 0.0
        return ParsedBookQuery(
            search=search.strip() or None if isinstance(search, str) else None,
            genre=genre if genre in GENRES else None,
            condition=condition if condition in {c.value for c in BookCondition} else None,
            min_price=self._number(data.get("min_price")),
            max_price=self._number(data.get("max_price")),
            parse_confidence=min(confidence, 1.0),
        )

    def _fallback(self, query: str) -> ParsedBookQuery:
        text = query
        found = 0

        # Lower bound first so a bare "$5" left over is read as a budget
        min_price = None
        m = _MIN_PRICE_RE.search(text)
        if m:
            min_price = float(m.group(1))
            text = text.replace(m.group(0), " ")
            found += 1

        max_price = None
        m = _MAX_PRICE_RE.search(text) or _DOLLAR_RE.search(text)
        if m:
            max_price = float(m.group(1))
            text = text.replace(m.group(0), " ")
            found += 1

        genre = None
        lowered = text.lower()
        # Longest names first so "Science Fiction" wins over "Fiction"
        for name in sorted(GENRES, key=len, reverse=True):
            if re.search(rf"\b{re.escape(name.lower())}\b", lowered):
                genre = name
                break
        if genre is None:
            for alias, name in _GENRE_ALIASES.items():
                if re.search(rf"\b{re.escape(alias)}\b", lowered):
                    genre = name
                    break
        if genre is not None:
            text = re.sub(re.escape(genre), " ", text, flags=re.IGNORECASE)
            for alias, name in _GENRE_ALIASES.items():
                if name == genre:
                    text = re.sub(rf"\b{re.escape(alias)}\b", " ", text, flags=re.IGNORECASE)
            found += 1

        condition = None
        for phrase, value in _CONDITION_PHRASES:
            if re.search(rf"\b{re.escape(phrase)}\b", text, re.IGNORECASE):
                condition = value
                text = re.sub(rf"\b{re.escape(phrase)}\b", " ", text, flags=re.IGNORECASE)
                found += 1
                break

        leftover = _FILLER_RE.sub(" ", text)
        leftover = " ".join(re.findall(r"\w[\w'-]*", leftover))

        return ParsedBookQuery(
            search=leftover or None,
            genre=genre,
            condition=condition,
            min_price=min_price,
            max_price=max_price,
            parse_confidence=0.2 if found else 0.1,
        )
