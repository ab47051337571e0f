import pytest

from fastapi.testclient import TestClient

from storefront.config import settings
from storefront.interfaces.http.dependencies import get_repository
from storefront.main import app

PAYMENT = {
    "cardNumber": "4242 4242 4242 4242",
    "cardHolder": "Alice",
    "expiryDate": "12/99",
    "cvv": "123",
}


@pytest.fixture
def client(repo, catalog):
    """Admin account and demo catalog are in place, as after startup"""
    app.dependency_overrides[get_repository] = lambda: repo
    yield TestClient(app)
    if get_repository in app.dependency_overrides:
        del app.dependency_overrides[get_repository]


def register(client, email="alice@example.com", role="student", name="Alice"):
    return client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": "secret123", "role": role},
    )


def login_admin(client):
    response = client.post(
        "/api/auth/login",
        json={"email": settings.ADMIN_EMAIL, "password": settings.ADMIN_PASSWORD},
    )
    assert response.status_code == 200


def create_course(client, **overrides):
    body = {
        "title": "Web Hacking",
        "description": "OWASP top ten in practice",
        "category": "Penetration Testing",
        "level": "Intermediate",
        "price": 19.99,
        "duration": "6 Hours",
    }
    body.update(overrides)
    return client.post("/api/courses", json=body)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_register_and_me(client):
    response = register(client)
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "alice@example.com"
    assert data["purchasedCourses"] == []
    assert "password" not in data

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["name"] == "Alice"


def test_register_duplicate(client):
    register(client)
    assert register(client).status_code == 409


def test_register_invalid(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Bob", "email": "bob", "password": "123"},
    )
    assert response.status_code == 400
    assert set(response.json()["detail"]) == {"email", "password"}


def test_register_as_admin_rejected(client):
    assert register(client, role="admin").status_code == 422


def test_login_logout(client):
    register(client)
    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401

    bad = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert bad.status_code == 401
    ok = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert ok.status_code == 200


def test_list_courses(client):
    response = client.get("/api/courses")
    assert response.status_code == 200
    data = response.json()
    assert [c["id"] for c in data] == ["1", "2", "3"]
    assert all(c["isPurchased"] is False for c in data)

    assert len(client.get("/api/courses?limit=2&offset=0").json()) == 2
    assert len(client.get("/api/courses?limit=2&offset=2").json()) == 1
    assert [c["id"] for c in client.get("/api/courses?query=malware").json()] == ["2"]


def test_list_courses_invalid_pagination(client):
    assert client.get("/api/courses?limit=0").status_code == 422
    assert client.get("/api/courses?limit=101").status_code == 422
    assert client.get("/api/courses?offset=-1").status_code == 422


def test_categories(client):
    assert len(client.get("/api/courses/categories").json()) == 5


def test_get_course_not_found(client):
    assert client.get("/api/courses/999").status_code == 404


def test_checkout_and_watch(client):
    register(client)
    assert client.post("/api/courses/1/start").json()["state"] == "payment_details"

    response = client.post("/api/courses/1/checkout", json=PAYMENT)
    assert response.status_code == 200
    assert response.json()["state"] == "success"

    assert client.get("/api/courses/1").json()["isPurchased"] is True
    assert client.get("/api/auth/me").json()["purchasedCourses"] == ["1"]
    assert client.post("/api/courses/1/start").json()["state"] == "watching"


def test_checkout_invalid_card(client):
    register(client)
    response = client.post("/api/courses/1/checkout", json={**PAYMENT, "cardNumber": "1234"})
    assert response.status_code == 400
    body = response.json()
    assert body["state"] == "payment_details"
    assert "card_number" in body["errors"]


def test_checkout_processor_failure(client, monkeypatch):
    monkeypatch.setattr(settings, "PAYMENT_FAILURE_RATE", 1.0)
    register(client)
    response = client.post("/api/courses/1/checkout", json=PAYMENT)
    assert response.status_code == 502
    assert response.json()["state"] == "error"
    assert client.get("/api/courses/1").json()["isPurchased"] is False


def test_checkout_requires_login(client):
    assert client.post("/api/courses/1/checkout", json=PAYMENT).status_code == 401


def test_checkout_unknown_course(client):
    register(client)
    assert client.post("/api/courses/999/start").status_code == 404


def test_complete_lesson(client):
    register(client)
    assert client.post("/api/progress/1/lessons/1-1/complete").status_code == 403

    client.post("/api/courses/1/checkout", json=PAYMENT)
    response = client.post("/api/progress/1/lessons/1-1/complete")
    assert response.status_code == 200
    assert response.json()["completedLessons"] == ["1-1"]
    # idempotent
    response = client.post("/api/progress/1/lessons/1-1/complete")
    assert response.json()["completedLessons"] == ["1-1"]

    progress = client.get("/api/progress/1").json()
    assert progress["completed"] == 1
    assert progress["total"] == 3
    assert [p["courseId"] for p in client.get("/api/progress/my").json()] == ["1"]
    assert client.post("/api/progress/1/lessons/nope/complete").status_code == 404


def test_instructor_course_lifecycle(client):
    register(client, email="ivy@example.com", role="instructor", name="Ivy")
    response = create_course(client)
    assert response.status_code == 201
    course_id = response.json()["id"]
    assert response.json()["instructorId"] == "ivy@example.com"

    lesson = client.post(
        f"/api/courses/{course_id}/lessons",
        json={
            "title": "Intro",
            "description": "Setup",
            "duration": "10 Minutes",
            "videoUrl": "https://www.youtube.com/embed/kmJlnUfMd7I",
        },
    )
    assert lesson.status_code == 201
    assert lesson.json()["id"] == f"{course_id}-1"

    # the only lesson cannot be removed
    assert client.delete(f"/api/courses/{course_id}/lessons/{course_id}-1").status_code == 400

    added = client.post(f"/api/courses/{course_id}/students", json={"email": "bob@example.com", "name": "Bob"})
    assert added.status_code == 201
    again = client.post(f"/api/courses/{course_id}/students", json={"email": "bob@example.com", "name": "Bob"})
    assert again.status_code == 409

    enrollments = client.get(f"/api/courses/{course_id}/enrollments").json()
    assert [e["userId"] for e in enrollments] == ["bob@example.com"]

    assert client.delete(f"/api/courses/{course_id}/students/bob@example.com").status_code == 204
    assert client.get(f"/api/courses/{course_id}/enrollments").json() == []


def test_add_lesson_rejects_bad_url(client):
    register(client, email="ivy@example.com", role="instructor", name="Ivy")
    course_id = create_course(client).json()["id"]
    response = client.post(
        f"/api/courses/{course_id}/lessons",
        json={"title": "T", "description": "D", "duration": "1", "videoUrl": "https://vimeo.com/1"},
    )
    assert response.status_code == 400


def test_create_course_validation(client):
    register(client, email="ivy@example.com", role="instructor", name="Ivy")
    response = create_course(client, price=0)
    assert response.status_code == 400
    assert "price" in response.json()["detail"]


def test_student_cannot_manage_courses(client):
    register(client)
    assert create_course(client).status_code == 403
    assert client.get("/api/courses/1/enrollments").status_code == 403
    assert client.delete("/api/courses/1").status_code == 403


def test_create_course_unauthorized(client):
    assert create_course(client).status_code == 401


def test_admin_delete_course(client):
    login_admin(client)
    assert client.delete("/api/courses/1").status_code == 204
    assert client.delete("/api/courses/1").status_code == 404
    assert [c["id"] for c in client.get("/api/courses").json()] == ["2", "3"]


def test_admin_endpoints(client):
    register(client, email="ivy@example.com", role="instructor", name="Ivy")
    create_course(client)
    register(client)
    client.post("/api/courses/1/checkout", json=PAYMENT)
    assert client.get("/api/admin/stats").status_code == 403

    login_admin(client)
    stats = client.get("/api/admin/stats").json()
    assert stats == {"courses": 4, "instructors": 1, "students": 1, "enrollments": 1}
    assert client.get("/api/admin/consistency").json() == []

    users = client.get("/api/admin/users?role=instructor").json()
    assert [u["email"] for u in users] == ["ivy@example.com"]

    assert client.delete("/api/admin/instructors/ivy@example.com").status_code == 204
    assert client.delete("/api/admin/instructors/ivy@example.com").status_code == 404
    assert client.delete(f"/api/admin/instructors/{settings.ADMIN_EMAIL}").status_code == 400
    assert client.get("/api/admin/stats").json()["courses"] == 3


def test_metrics_endpoint(client):
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
    assert "http_requests_total" in response.text


def test_update_content_rejects_bad_video_url(client):
    login_admin(client)
    response = client.put(
        "/api/courses/1/content",
        json={"content": [{"id": "1-x", "title": "Injected", "videoUrl": "javascript:alert(1)"}]},
    )
    assert response.status_code == 400
    assert "content.0.video_url" in response.json()["detail"]
    assert [lesson["id"] for lesson in client.get("/api/courses/1").json()["content"]] == ["1-1", "1-2", "1-3"]


def test_requests_do_not_bootstrap_state(repo):
    app.dependency_overrides[get_repository] = lambda: repo
    try:
        client = TestClient(app)
        assert client.get("/api/courses").json() == []
        assert client.get("/api/auth/me").status_code == 401
    finally:
        del app.dependency_overrides[get_repository]

    assert repo.users() == []
    assert repo.courses() is None
