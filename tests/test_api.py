from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from bookloop.main import app
from tests.factories import ALICE_ID, BOB_ID, CAROL_ID, auth, book_id, valid_payload


def _create(client, account_id=ALICE_ID, **overrides):
    response = client.post("/api/books", json=valid_payload(**overrides), headers=auth(account_id))
    assert response.status_code == 201, response.text
    return response.json()["data"]["book"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_book(client):
    response = client.post("/api/books", json=valid_payload(), headers=auth(ALICE_ID))
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "success"
    assert body["message"] == "Book listed successfully"

    book = body["data"]["book"]
    assert book["title"] == "Dune"
    assert book["price"] == 12.5
    assert book["status"] == "available"
    assert book["views"] == 0
    assert book["sellerId"] == ALICE_ID
    assert book["sellerName"] == "Alice Reader"
    assert book["imageUrl"].startswith("https://images.pexels.com/")
    assert "createdAt" in book and "updatedAt" in book


def test_create_reports_every_invalid_field(client):
    response = client.post("/api/books", json=valid_payload(price=0, description="short"), headers=auth(ALICE_ID))
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["message"] == "Validation failed"
    assert [e["field"] for e in body["errors"]] == ["price", "description"]

    listing = client.get("/api/books").json()["data"]
    assert listing["pagination"]["totalBooks"] == 0


def test_create_with_non_object_body(client):
    response = client.post("/api/books", json=["Dune"], headers=auth(ALICE_ID))
    assert response.status_code == 400


def test_mutations_require_identity(client):
    assert client.post("/api/books", json=valid_payload()).status_code == 401
    assert client.post("/api/books", json=valid_payload(), headers=auth("nobody")).status_code == 401
    # inactive accounts cannot act
    assert client.post("/api/books", json=valid_payload(), headers=auth(CAROL_ID)).status_code == 401
    unknown = "44444444-4444-4444-8444-444444444444"
    response = client.post("/api/books", json=valid_payload(), headers=auth(unknown))
    assert response.status_code == 401
    assert response.json()["status"] == "error"


def test_detail_counts_views(client):
    book = _create(client)
    first = client.get(f"/api/books/{book['id']}")
    second = client.get(f"/api/books/{book['id']}")
    assert first.json()["data"]["book"]["views"] == 1
    assert second.json()["data"]["book"]["views"] == 2
    assert second.json()["data"]["book"]["updatedAt"] == book["updatedAt"]


def test_detail_errors(client):
    missing = client.get(f"/api/books/{book_id(999)}")
    assert missing.status_code == 404
    assert missing.json() == {"status": "error", "message": "Book not found"}

    malformed = client.get("/api/books/not-a-uuid")
    assert malformed.status_code == 400
    assert malformed.json()["message"] == "Invalid book ID"


def test_update_by_owner(client):
    book = _create(client)
    response = client.put(
        f"/api/books/{book['id']}", json={"price": 9.99, "sellerId": BOB_ID}, headers=auth(ALICE_ID)
    )
    assert response.status_code == 200
    updated = response.json()["data"]["book"]
    assert updated["price"] == 9.99
    assert updated["sellerId"] == ALICE_ID
    assert updated["title"] == "Dune"


def test_update_by_other_seller_is_forbidden(client):
    book = _create(client)
    response = client.put(f"/api/books/{book['id']}", json={"title": "Mine now"}, headers=auth(BOB_ID))
    assert response.status_code == 403
    assert response.json()["message"] == "Not authorized to update this book"
    detail = client.get(f"/api/books/{book['id']}").json()["data"]["book"]
    assert detail["title"] == "Dune"


def test_update_with_invalid_field(client):
    book = _create(client)
    response = client.put(f"/api/books/{book['id']}", json={"genre": "Cookbooks"}, headers=auth(ALICE_ID))
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "genre"


def test_status_change(client):
    book = _create(client)

    forbidden = client.patch(f"/api/books/{book['id']}/status", json={"status": "reserved"}, headers=auth(BOB_ID))
    assert forbidden.status_code == 403

    response = client.patch(f"/api/books/{book['id']}/status", json={"status": "reserved"}, headers=auth(ALICE_ID))
    assert response.status_code == 200
    assert response.json()["data"]["book"]["status"] == "reserved"
    assert client.get("/api/books").json()["data"]["books"] == []

    bad = client.patch(f"/api/books/{book['id']}/status", json={"status": "gone"}, headers=auth(ALICE_ID))
    assert bad.status_code == 400


@pytest.mark.parametrize("held", ["reserved", "sold"])
def test_held_listing_can_return_to_available(client, held):
    book = _create(client)
    client.patch(f"/api/books/{book['id']}/status", json={"status": held}, headers=auth(ALICE_ID))

    response = client.patch(f"/api/books/{book['id']}/status", json={"status": "available"}, headers=auth(ALICE_ID))
    assert response.status_code == 200
    assert response.json()["data"]["book"]["status"] == "available"

    listing = client.get("/api/books").json()["data"]
    assert [b["id"] for b in listing["books"]] == [book["id"]]
    assert listing["pagination"]["totalBooks"] == 1


def test_delete(client):
    book = _create(client)
    assert client.delete(f"/api/books/{book['id']}", headers=auth(BOB_ID)).status_code == 403

    response = client.delete(f"/api/books/{book['id']}", headers=auth(ALICE_ID))
    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Book deleted successfully"}
    assert client.get(f"/api/books/{book['id']}").status_code == 404
    assert client.delete(f"/api/books/{book['id']}", headers=auth(ALICE_ID)).status_code == 404


def test_list_filters_sort_and_paginate(client):
    for title, price in [("Cheap", 3), ("Six", 6), ("Eight", 8), ("Nine", 9), ("Pricey", 15)]:
        _create(client, title=title, genre="Fiction", price=price)
    _create(client, title="Other Genre", genre="Mystery", price=7)

    response = client.get(
        "/api/books",
        params={"genre": "Fiction", "minPrice": 5, "maxPrice": 10, "limit": 2, "sortBy": "price", "sortOrder": "asc"},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert [b["title"] for b in data["books"]] == ["Six", "Eight"]
    assert data["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalBooks": 3,
        "hasNext": True,
        "hasPrev": False,
    }


def test_list_search_is_relevance_ordered(client):
    _create(client, title="Dune Messiah", author="Frank Herbert")
    _create(client, title="Children of Dune", author="Frank Herbert")
    _create(client, title="Emma", author="Jane Austen", description="A comedy of manners, some dune references.")
    _create(client, title="Persuasion", author="Jane Austen", description="Austen's last completed novel, fine copy.")

    data = client.get("/api/books", params={"search": "dune herbert"}).json()["data"]
    titles = [b["title"] for b in data["books"]]
    assert set(titles[:2]) == {"Dune Messiah", "Children of Dune"}
    assert titles[2] == "Emma"
    assert len(titles) == 3
    assert data["books"][0]["relevanceScore"] == 5.0


def test_list_rejects_bad_query_parameters(client):
    bad_params = [
        {"page": 0},
        {"limit": 101},
        {"sortBy": "popularity"},
        {"condition": "mint"},
        {"minPrice": -1},
        {"genre": "Cookbooks"},
        {"genre": "fiction"},
    ]
    for params in bad_params:
        response = client.get("/api/books", params=params)
        assert response.status_code == 400, params
        assert response.json()["message"] == "Validation failed"


def test_unknown_genre_is_reported_by_field(client):
    response = client.get("/api/books", params={"genre": "Cookbooks"})
    assert response.json()["errors"] == [{"field": "genre", "message": "Invalid genre"}]
    assert client.get("/api/books", params={"genre": "  "}).status_code == 200


def test_seller_books(client):
    first = _create(client, title="First")
    _create(client, title="Second")
    _create(client, account_id=BOB_ID, title="Bob's")
    client.patch(f"/api/books/{first['id']}/status", json={"status": "sold"}, headers=auth(ALICE_ID))

    response = client.get(f"/api/books/user/{ALICE_ID}")
    assert response.status_code == 200
    titles = [b["title"] for b in response.json()["data"]["books"]]
    assert sorted(titles) == ["First", "Second"]

    assert client.get("/api/books/user/44444444-4444-4444-8444-444444444444").status_code == 404
    assert client.get("/api/books/user/bad-id").status_code == 400


def test_assist_uses_keyword_fallback(client, monkeypatch):
    from bookloop.config import settings
    from bookloop.dependencies import get_search_assistant
    from bookloop.services.assistant import SearchAssistant

    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    app.dependency_overrides[get_search_assistant] = lambda: SearchAssistant()

    _create(client, title="The Name of the Wind", genre="Fantasy", condition="good", price=8,
            description="Mass market paperback, light wear.")
    _create(client, title="Mistborn", genre="Fantasy", condition="good", price=15,
            description="Hardcover paperback-sized reprint, fine.")

    response = client.post("/api/books/assist", json={"query": "fantasy paperback in good condition under $10"})
    assert response.status_code == 200
    body = response.json()
    parsed = body["data"]["parsedQuery"]
    assert parsed["genre"] == "Fantasy"
    assert parsed["maxPrice"] == 10
    assert [b["title"] for b in body["data"]["books"]] == ["The Name of the Wind"]
    assert body["message"].startswith("Found 1 matches")


def test_storage_errors_become_server_errors(client):
    with patch("bookloop.services.books.BookService.list_books") as mock_list:
        mock_list.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        response = client.get("/api/books")
    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Server error"}


def test_unexpected_errors_become_server_errors(client):
    quiet_client = TestClient(app, raise_server_exceptions=False)
    with patch("bookloop.services.books.BookService.list_books") as mock_list:
        mock_list.side_effect = Exception("boom")
        response = quiet_client.get("/api/books")
    assert response.status_code == 500
    assert "boom" not in response.text
