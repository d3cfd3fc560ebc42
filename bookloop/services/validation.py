"""Field rules for book listings.

One module backs every boundary that accepts listing data (HTTP create and
update, the status endpoint, the seed loader), so the rules cannot drift.
`validate_book` never raises on malformed input: every problem is reported as
a `FieldViolation`, all fields are checked, and nothing short-circuits.
"""

import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from bookloop.models.schemas import DEFAULT_IMAGE_URL, GENRES, BookCondition, BookStatus

TITLE_MAX = 200
AUTHOR_MAX = 100
DESCRIPTION_MIN = 20
DESCRIPTION_MAX = 1000
PRICE_MAX = Decimal("10000")

CONDITIONS = tuple(c.value for c in BookCondition)
STATUSES = tuple(s.value for s in BookStatus)

_url_adapter = TypeAdapter(AnyHttpUrl)

# A check returns (cleaned_value, None) or (None, message)
Check = Callable[[Any], Tuple[Any, Optional[str]]]


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str


@dataclass
class ValidationResult:
    values: Dict[str, Any] = field(default_factory=dict)
    errors: List[FieldViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _text(value: Any, label: str, min_len: int, max_len: int) -> Tuple[Any, Optional[str]]:
    if not isinstance(value, str):
        return None, f"{label} must be a string"
    cleaned = value.strip()
    if not min_len <= len(cleaned) <= max_len:
        return None, f"{label} must be between {min_len} and {max_len} characters"
    return cleaned, None


def check_title(value: Any) -> Tuple[Any, Optional[str]]:
    return _text(value, "Title", 1, TITLE_MAX)


def check_author(value: Any) -> Tuple[Any, Optional[str]]:
    return _text(value, "Author", 1, AUTHOR_MAX)


def check_description(value: Any) -> Tuple[Any, Optional[str]]:
    return _text(value, "Description", DESCRIPTION_MIN, DESCRIPTION_MAX)


def check_genre(value: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(value, str) and value in GENRES:
        return value, None
    return None, "Invalid genre"


def check_condition(value: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(value, str) and value in CONDITIONS:
        return value, None
    return None, "Invalid condition"


def check_status(value: Any) -> Tuple[Any, Optional[str]]:
    if isinstance(value, str) and value in STATUSES:
        return value, None
    return None, "Invalid status"


def check_price(value: Any) -> Tuple[Any, Optional[str]]:
    message = "Price must be between $0.01 and $10,000"
    # bool is an int subclass; True is not a price
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        return None, message
    if isinstance(value, float) and not math.isfinite(value):
        return None, message
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return None, message
    if not price.is_finite() or not (0 < price <= PRICE_MAX):
        return None, message
    if price != price.quantize(Decimal("0.01")):
        return None, "Price cannot have more than two decimal places"
    return price.quantize(Decimal("0.01")), None


def check_image_url(value: Any) -> Tuple[Any, Optional[str]]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return DEFAULT_IMAGE_URL, None
    if not isinstance(value, str):
        return None, "Image URL must be valid"
    cleaned = value.strip()
    try:
        _url_adapter.validate_python(cleaned)
    except ValidationError:
        return None, "Image URL must be valid"
    return cleaned, None


# (payload key, stored attribute, check, required on create, required message)
_RULES: List[Tuple[str, str, Check, bool, str]] = [
    ("title", "title", check_title, True, "Book title is required"),
    ("author", "author", check_author, True, "Author is required"),
    ("genre", "genre", check_genre, True, "Genre is required"),
    ("condition", "condition", check_condition, True, "Book condition is required"),
    ("price", "price", check_price, True, "Price is required"),
    ("description", "description", check_description, True, "Description is required"),
    ("imageUrl", "image_url", check_image_url, False, ""),
]

_STATUS_RULE: Tuple[str, str, Check, bool, str] = ("status", "status", check_status, False, "")


def validate_book(data: Any, partial: bool = False) -> ValidationResult:
    """Check a candidate listing.

    With ``partial=False`` (create) every required field must be present and
    ``status`` is ignored. With ``partial=True`` (update) only the keys present
    in ``data`` are checked and returned. ``values`` is keyed by model
    attribute name and holds cleaned values only when the result is ok.
    """
    result = ValidationResult()
    if not isinstance(data, Mapping):
        result.errors.append(FieldViolation("body", "Request body must be a JSON object"))
        return result

    rules = _RULES + [_STATUS_RULE] if partial else _RULES
    values: Dict[str, Any] = {}
    for key, attr, check, required, required_message in rules:
        if key not in data:
            if partial:
                continue
            if required:
                result.errors.append(FieldViolation(key, required_message))
                continue
            value = None
        else:
            value = data[key]
            if value is None and required and not partial:
                result.errors.append(FieldViolation(key, required_message))
                continue

        cleaned, error = check(value)
        if error:
            result.errors.append(FieldViolation(key, error))
        else:
            values[attr] = cleaned

    if result.ok:
        result.values = values
    return result
