import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

# Relevance weights per text field; a query token scores the weight of every field it occurs in.
FIELD_WEIGHTS: Dict[str, float] = {
    "title": 3.0,
    "author": 2.0,
    "description": 1.0,
}

_TOKEN_RE = re.compile(r"\w+")


@dataclass(frozen=True)
class RankedBook:
    book: Any
    score: Optional[float] = None


def normalize_search(text: Optional[str]) -> Optional[str]:
    """Whitespace-only search text is treated as no search at all."""
    if text is None:
        return None
    text = text.strip()
    return text or None


def tokenize(text: str) -> List[str]:
    seen = set()
    tokens: List[str] = []
    for token in _TOKEN_RE.findall((text or "").casefold()):
        if token not in seen:
            seen.add(token)
            tokens.append(token)
    return tokens


def score_book(book: Any, tokens: List[str]) -> float:
    """Substring relevance: each token adds the weight of each field containing it."""
    fields = {name: (getattr(book, name, None) or "").casefold() for name in FIELD_WEIGHTS}
    score = 0.0
    for token in tokens:
        for name, weight in FIELD_WEIGHTS.items():
            if token in fields[name]:
                score += weight
    return score


def matches_text(book: Any, search_text: str) -> bool:
    return score_book(book, tokenize(search_text)) > 0


def rank_books(books: Iterable[Any], search_text: Optional[str]) -> List[RankedBook]:
    """Score books against the search text.

    Without search text every book passes through unscored. With search text,
    books that match no token are dropped rather than ranked last.
    """
    search_text = normalize_search(search_text)
    if search_text is None:
        return [RankedBook(book) for book in books]

    tokens = tokenize(search_text)
    ranked: List[RankedBook] = []
    for book in books:
        score = score_book(book, tokens)
        if score > 0:
            ranked.append(RankedBook(book, score))
    return ranked
