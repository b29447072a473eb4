from datetime import time
from decimal import Decimal


def test_occurrence_and_enrollment_flow(api_client, seed, auth_headers):
    court = seed.court()
    instructor = seed.instructor()
    sport_class = seed.sport_class(capacity_max=1, unit_price=Decimal("30.00"))
    seed.schedule(sport_class, instructor, court, weekday=2, starts_at=time(19, 0))
    admin = seed.admin()
    u1 = seed.user("U1")
    u2 = seed.user("U2")
    period = {"class_id": sport_class.id, "period_start": "2025-11-03", "period_end": "2025-11-16"}

    assert (
        api_client.post("/api/v1/occurrences/generate", json=period, headers=auth_headers(u1)).status_code
        == 403
    )
    generated = api_client.post(
        "/api/v1/occurrences/generate", json=period, headers=auth_headers(admin)
    )
    assert generated.status_code == 201
    assert generated.json()["created"] == 2
    assert generated.json()["skipped"] == 0
    first_id = generated.json()["data"][0]["id"]

    rerun = api_client.post("/api/v1/occurrences/generate", json=period, headers=auth_headers(admin))
    assert rerun.json()["created"] == 0
    assert rerun.json()["skipped"] == 2

    enrolled = api_client.post(
        "/api/v1/enrollments", json={"occurrence_id": first_id}, headers=auth_headers(u1)
    )
    assert enrolled.status_code == 201
    assert Decimal(enrolled.json()["charge"]["amount"]) == Decimal("30")
    enrollment_id = enrolled.json()["data"]["id"]

    full = api_client.post(
        "/api/v1/enrollments", json={"occurrence_id": first_id}, headers=auth_headers(u2)
    )
    assert full.status_code == 409
    twice = api_client.post(
        "/api/v1/enrollments", json={"occurrence_id": first_id}, headers=auth_headers(u1)
    )
    assert twice.status_code == 409

    listed = api_client.get("/api/v1/occurrences", params={"class_id": sport_class.id})
    assert [(item["enrolled_count"], item["available_spots"]) for item in listed.json()] == [
        (1, 0),
        (0, 1),
    ]

    assert api_client.delete(f"/api/v1/enrollments/{enrollment_id}", headers=auth_headers(u2)).status_code == 403
    left = api_client.delete(f"/api/v1/enrollments/{enrollment_id}", headers=auth_headers(u1))
    assert left.json() == {
        "id": enrollment_id,
        "status": "cancelled",
        "charge_cancelled": True,
        "already_cancelled": False,
    }

    placed = api_client.post(
        f"/api/v1/occurrences/{first_id}/enrollments",
        json={"user_id": u2.id},
        headers=auth_headers(admin),
    )
    assert placed.status_code == 201
    assert placed.json()["data"]["user_id"] == u2.id

    roster = api_client.get(
        f"/api/v1/occurrences/{first_id}/enrollments", headers=auth_headers(admin)
    )
    assert [item["user_id"] for item in roster.json()] == [u2.id]


def test_confirm_and_cancel_occurrence(api_client, seed, auth_headers):
    court = seed.court()
    instructor = seed.instructor()
    sport_class = seed.sport_class(capacity_max=4)
    seed.schedule(sport_class, instructor, court, weekday=2, starts_at=time(19, 0))
    admin = seed.admin()
    student = seed.user()
    generated = api_client.post(
        "/api/v1/occurrences/generate",
        json={"class_id": sport_class.id, "period_start": "2025-11-04", "period_end": "2025-11-04"},
        headers=auth_headers(admin),
    )
    occurrence_id = generated.json()["data"][0]["id"]
    api_client.post(
        "/api/v1/enrollments", json={"occurrence_id": occurrence_id}, headers=auth_headers(student)
    )

    confirmed = api_client.post(
        f"/api/v1/occurrences/{occurrence_id}/confirm", headers=auth_headers(admin)
    )
    assert confirmed.json()["status"] == "confirmed"
    closed = api_client.post(
        "/api/v1/enrollments", json={"occurrence_id": occurrence_id}, headers=auth_headers(admin)
    )
    assert closed.status_code == 400

    cancelled = api_client.post(
        f"/api/v1/occurrences/{occurrence_id}/cancel", headers=auth_headers(admin)
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["cancelled_enrollments"] == 1
    assert cancelled.json()["cancelled_charges"] == 0
    assert cancelled.json()["already_cancelled"] is False

    repeat = api_client.post(
        f"/api/v1/occurrences/{occurrence_id}/cancel", json={"force": False}, headers=auth_headers(admin)
    )
    assert repeat.json()["already_cancelled"] is True
    assert api_client.get("/api/v1/occurrences").json() == []


def test_generation_errors_map_to_http(api_client, seed, auth_headers):
    admin = seed.admin()
    lonely = seed.sport_class("Lonely")

    no_schedule = api_client.post(
        "/api/v1/occurrences/generate",
        json={"class_id": lonely.id, "period_start": "2025-11-03", "period_end": "2025-11-10"},
        headers=auth_headers(admin),
    )
    assert no_schedule.status_code == 422
    missing = api_client.post(
        "/api/v1/occurrences/generate",
        json={"class_id": 999, "period_start": "2025-11-03", "period_end": "2025-11-10"},
        headers=auth_headers(admin),
    )
    assert missing.status_code == 404
    past = api_client.post(
        "/api/v1/occurrences/generate",
        json={"class_id": lonely.id, "period_start": "2025-10-01", "period_end": "2025-11-10"},
        headers=auth_headers(admin),
    )
    assert past.status_code == 400


def test_my_enrollments(api_client, seed, auth_headers, clock):
    court = seed.court()
    instructor = seed.instructor()
    sport_class = seed.sport_class(capacity_max=4)
    seed.schedule(sport_class, instructor, court, weekday=2, starts_at=time(19, 0))
    admin = seed.admin()
    student = seed.user()
    generated = api_client.post(
        "/api/v1/occurrences/generate",
        json={"class_id": sport_class.id, "period_start": "2025-11-03", "period_end": "2025-11-16"},
        headers=auth_headers(admin),
    )
    this_week, next_week = [item["id"] for item in generated.json()["data"]]
    ids = [
        api_client.post(
            "/api/v1/enrollments", json={"occurrence_id": occurrence_id}, headers=auth_headers(student)
        ).json()["data"]["id"]
        for occurrence_id in (this_week, next_week)
    ]

    assert api_client.get("/api/v1/enrollments/me").status_code == 401
    mine = api_client.get("/api/v1/enrollments/me", headers=auth_headers(student))
    assert mine.status_code == 200
    assert [item["id"] for item in mine.json()] == list(reversed(ids))
    assert api_client.get("/api/v1/enrollments/me", headers=auth_headers(admin)).json() == []

    clock.advance(days=2)
    upcoming = api_client.get(
        "/api/v1/enrollments/me",
        params={"status": "enrolled", "upcoming_only": True},
        headers=auth_headers(student),
    )
    assert [item["id"] for item in upcoming.json()] == [ids[1]]

    api_client.delete(f"/api/v1/enrollments/{ids[1]}", headers=auth_headers(student))
    cancelled = api_client.get(
        "/api/v1/enrollments/me", params={"status": "cancelled"}, headers=auth_headers(student)
    )
    assert [item["id"] for item in cancelled.json()] == [ids[1]]
    assert cancelled.json()[0]["status"] == "cancelled"
    assert api_client.get(
        "/api/v1/enrollments/me", params={"status": "paused"}, headers=auth_headers(student)
    ).status_code == 422
