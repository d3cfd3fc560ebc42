from decimal import Decimal

import pytest

from bookloop.models.schemas import DEFAULT_IMAGE_URL
from bookloop.services.validation import check_price, validate_book
from tests.factories import valid_payload


def _fields(result):
    return [e.field for e in result.errors]


def test_valid_create_cleans_values():
    result = validate_book(valid_payload(title="  Dune  ", price="12.5"))
    assert result.ok
    assert result.values["title"] == "Dune"
    assert result.values["price"] == Decimal("12.50")
    assert result.values["image_url"] == DEFAULT_IMAGE_URL
    assert "status" not in result.values


def test_zero_price_and_short_description_both_reported():
    result = validate_book(valid_payload(price=0, description="short"))
    assert not result.ok
    assert _fields(result) == ["price", "description"]
    assert result.values == {}


def test_missing_required_fields_reported_in_order():
    result = validate_book({})
    assert _fields(result) == ["title", "author", "genre", "condition", "price", "description"]
    assert result.errors[0].message == "Book title is required"


def test_null_required_field_on_create_is_missing():
    result = validate_book(valid_payload(author=None))
    assert _fields(result) == ["author"]
    assert result.errors[0].message == "Author is required"


def test_malformed_input_never_raises():
    result = validate_book(
        {
            "title": 42,
            "author": ["x"],
            "genre": {"name": "Fiction"},
            "condition": None,
            "price": "twelve",
            "description": 3.5,
            "imageUrl": 7,
        }
    )
    assert _fields(result) == ["title", "author", "genre", "condition", "price", "description", "imageUrl"]


def test_non_mapping_body():
    result = validate_book(["not", "a", "dict"])
    assert _fields(result) == ["body"]


@pytest.mark.parametrize(
    "value, ok",
    [
        (0.01, True),
        (10000, True),
        ("9999.99", True),
        (0, False),
        (-5, False),
        (10000.01, False),
        (True, False),
        (float("nan"), False),
        (float("inf"), False),
        ("", False),
        (1.005, False),
    ],
)
def test_price_bounds(value, ok):
    cleaned, error = check_price(value)
    assert (error is None) is ok
    if ok:
        assert Decimal("0") < cleaned <= Decimal("10000")


def test_text_bounds():
    assert not validate_book(valid_payload(title="   ")).ok
    assert not validate_book(valid_payload(title="x" * 201)).ok
    assert validate_book(valid_payload(title="x" * 200)).ok
    assert not validate_book(valid_payload(author="a" * 101)).ok
    assert validate_book(valid_payload(description="d" * 20)).ok
    assert not validate_book(valid_payload(description=" " + "d" * 19 + " ")).ok
    assert not validate_book(valid_payload(description="d" * 1001)).ok


def test_genre_and_condition_are_exact():
    result = validate_book(valid_payload(genre="fiction", condition="Like-New"))
    assert _fields(result) == ["genre", "condition"]
    assert validate_book(valid_payload(genre="Young Adult", condition="like-new")).ok


def test_image_url_must_be_valid_when_present():
    assert _fields(validate_book(valid_payload(imageUrl="not a url"))) == ["imageUrl"]
    result = validate_book(valid_payload(imageUrl="https://covers.example.com/dune.jpg"))
    assert result.values["image_url"] == "https://covers.example.com/dune.jpg"
    assert validate_book(valid_payload(imageUrl="")).values["image_url"] == DEFAULT_IMAGE_URL


def test_partial_update_checks_only_supplied_fields():
    result = validate_book({"price": 8}, partial=True)
    assert result.ok
    assert result.values == {"price": Decimal("8.00")}


def test_partial_update_rejects_null_for_required_field():
    result = validate_book({"title": None}, partial=True)
    assert _fields(result) == ["title"]


def test_status_only_checked_on_update():
    assert validate_book({"status": "reserved"}, partial=True).values == {"status": "reserved"}
    assert _fields(validate_book({"status": "lost"}, partial=True)) == ["status"]
    assert "status" not in validate_book(valid_payload(status="sold")).values


def test_protected_fields_are_never_returned():
    result = validate_book(
        {"sellerId": "someone", "views": 99, "featured": True, "id": "x", "title": "New"}, partial=True
    )
    assert result.values == {"title": "New"}
