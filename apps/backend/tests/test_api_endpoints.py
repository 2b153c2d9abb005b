from datetime import date, timedelta

from models.schemas import WeekDay

TIMETABLE = "MON 09:00-10:00 CS101\nMON 11:00-12:00 CS102"


def next_monday():
    today = date.today()
    return today + timedelta(days=7 - today.weekday())


def publish_monday_slots(client, count=2):
    client.post("/api/availability/instructors/prof-1", json={"text": TIMETABLE})
    candidates = client.get("/api/availability/instructors/prof-1/candidates", params={"duration": 20}).json()
    monday = next_monday()
    selections = [
        {"candidate_slot": c, "calendar_date": monday.isoformat()}
        for c in candidates if c["day"] == "MON"
    ][:count]
    response = client.post("/api/slots/publish", json={
        "classroom_id": "C1",
        "review_stage": "Review 1",
        "booking_deadline": monday.isoformat(),
        "published_by": "prof-1",
        "selections": selections,
    })
    assert response.status_code == 200
    return response.json()["published"]


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

def test_config_save_and_load(client):
    # 1. Save Config
    payload = {
        "key": "activity_window",
        "value": {"start": "09:00", "end": "17:00", "days": ["MON", "TUE"]}
    }
    response = client.post("/api/config/save", json=payload)
    assert response.status_code == 200
    assert response.json()["replaced"] is False

    # 2. Get Config
    response = client.get("/api/config/activity_window")
    assert response.status_code == 200
    data = response.json()
    assert data["value"]["end"] == "17:00"

def test_invalid_activity_window_is_rejected(client):
    payload = {"key": "activity_window", "value": {"start": "18:00", "end": "08:00"}}
    response = client.post("/api/config/save", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "ValidationError"

    assert client.get("/api/config/activity_window").json()["value"] is None

def test_parse_preview(client):
    response = client.post("/api/availability/parse", json={"text": "MON 09:00-11:00 A\nMON 10:00-12:00 B"})
    assert response.status_code == 200
    data = response.json()
    assert [i["label"] for i in data["days"]["MON"]] == ["A", "B"]
    assert len(data["warnings"]) == 1

def test_parse_preview_reports_skipped_lines(client):
    response = client.post("/api/availability/parse", json={"text": "09:00-10:00 X\nMON 08:00-09:00 A"})
    assert response.status_code == 200
    assert response.json()["warnings"] == ["Line 1: time range without a day; skipped"]

def test_parse_error_returns_400_with_location(client):
    response = client.post("/api/availability/parse", json={"text": "MON 10:00-09:00 Backwards"})
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "ParseError"
    assert detail["details"] == {"line": 1, "token": "10:00-09:00"}

def test_availability_versions_and_free_time(client):
    assert client.post("/api/availability/instructors/prof-1", json={"text": "TUE 08:00-09:00 Lab"}).json()["version"] == 1
    assert client.post("/api/availability/instructors/prof-1", json={"text": TIMETABLE}).json()["version"] == 2

    latest = client.get("/api/availability/instructors/prof-1").json()
    assert latest["version"] == 2
    assert [i["start"] for i in latest["schedule"]["days"]["MON"]] == [540, 660]
    assert client.get("/api/availability/instructors/prof-1", params={"version": 1}).json()["raw_text"] == "TUE 08:00-09:00 Lab"

    free = client.get("/api/availability/instructors/prof-1/free").json()
    monday = [(f["start"], f["end"]) for f in free if f["day"] == "MON"]
    assert monday == [(480, 540), (600, 660), (720, 1080)]

def test_candidates_use_requested_duration(client):
    client.post("/api/availability/instructors/prof-1", json={"text": TIMETABLE})

    candidates = client.get("/api/availability/instructors/prof-1/candidates", params={"duration": 20}).json()
    monday = [c for c in candidates if c["day"] == "MON"]
    assert len(monday) == 3 + 3 + 18
    assert all(c["end"] - c["start"] == 20 for c in candidates)

    response = client.get("/api/availability/instructors/prof-1/candidates", params={"duration": 0})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "InvalidDurationError"

def test_unknown_instructor_returns_404(client):
    response = client.get("/api/availability/instructors/nobody")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "SnapshotNotFoundError"

def test_publish_rejects_wrong_weekday(client):
    monday = next_monday()
    response = client.post("/api/slots/publish", json={
        "classroom_id": "C1",
        "review_stage": "Review 1",
        "booking_deadline": monday.isoformat(),
        "published_by": "prof-1",
        "selections": [
            {"candidate_slot": {"day": "MON", "start": 480, "end": 500}, "calendar_date": monday.isoformat()},
            {"candidate_slot": {"day": "TUE", "start": 480, "end": 500}, "calendar_date": monday.isoformat()},
        ],
    })
    assert response.status_code == 200
    data = response.json()
    assert len(data["published"]) == 1
    assert [r["index"] for r in data["rejected"]] == [1]
    assert WeekDay.from_date(monday) == WeekDay.MON

def test_publish_with_past_deadline_is_rejected(client):
    response = client.post("/api/slots/publish", json={
        "classroom_id": "C1",
        "review_stage": "Review 1",
        "booking_deadline": (date.today() - timedelta(days=1)).isoformat(),
        "published_by": "prof-1",
        "selections": [],
    })
    assert response.status_code == 400

def test_booking_flow(client):
    published = publish_monday_slots(client)
    assert [s["start"] for s in published] == [480, 500]
    slot_id = published[0]["id"]

    available = client.get("/api/slots/available/C1").json()
    assert [s["id"] for s in available] == [s["id"] for s in published]

    # Team A books, team B loses the slot
    response = client.post("/api/bookings", json={"slot_id": slot_id, "team_id": "team-a"})
    assert response.status_code == 200
    booking_id = response.json()["id"]

    response = client.post("/api/bookings", json={"slot_id": slot_id, "team_id": "team-b"})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "SlotUnavailableError"

    # Team A cannot take a second slot of the same review stage
    response = client.post("/api/bookings", json={"slot_id": published[1]["id"], "team_id": "team-a"})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "DuplicateStageBookingError"

    assert [s["id"] for s in client.get("/api/slots/available/C1").json()] == [published[1]["id"]]
    overview = client.get("/api/slots/classroom/C1").json()
    assert overview[0]["booking"]["team_id"] == "team-a"
    assert overview[1]["booking"] is None
    assert [b["slot_id"] for b in client.get("/api/bookings/team/team-a").json()] == [slot_id]

    # Cancel reopens the slot for team B
    response = client.post(f"/api/bookings/{booking_id}/cancel", json={"cancelled_by": "team-a"})
    assert response.json() == {"status": "cancelled", "booking_id": booking_id, "slot_id": slot_id, "slot_deleted": False}
    response = client.post(f"/api/bookings/{booking_id}/cancel", json={"cancelled_by": "team-a"})
    assert response.json()["status"] == "noop"

    response = client.post("/api/bookings", json={"slot_id": slot_id, "team_id": "team-b"})
    assert response.status_code == 200
    assert client.get("/api/slots/integrity").json() == []

    kinds = [a["activity_type"] for a in client.get("/api/slots/activity").json()]
    assert kinds == ["slot_booked", "booking_cancelled", "slot_booked", "slot_published", "slot_published"]

def test_book_unknown_slot_returns_404(client):
    response = client.post("/api/bookings", json={"slot_id": 999, "team_id": "team-a"})
    assert response.status_code == 404

def test_delete_booked_slot(client):
    slot_id = publish_monday_slots(client, count=1)[0]["id"]
    booking_id = client.post("/api/bookings", json={"slot_id": slot_id, "team_id": "team-a"}).json()["id"]

    response = client.delete(f"/api/slots/{slot_id}", params={"deleted_by": "prof-1"})
    assert response.status_code == 200
    assert response.json()["removed_booking_id"] == booking_id

    assert client.get("/api/slots/classroom/C1").json() == []
    assert client.get("/api/bookings/team/team-a").json() == []
    assert client.delete(f"/api/slots/{slot_id}", params={"deleted_by": "prof-1"}).status_code == 404

def test_unknown_version_is_not_replaced_by_latest(client):
    client.post("/api/availability/instructors/prof-1", json={"text": TIMETABLE})

    for version in (0, 5):
        response = client.get("/api/availability/instructors/prof-1", params={"version": version})
        assert response.status_code == 404
        assert response.json()["detail"]["details"]["version"] == version

def test_instructor_named_parse_has_own_availability(client):
    response = client.post("/api/availability/instructors/parse", json={"text": TIMETABLE})
    assert response.status_code == 200
    assert response.json()["instructor_id"] == "parse"

    assert client.get("/api/availability/instructors/parse").json()["version"] == 1
    # The preview endpoint stores nothing
    client.post("/api/availability/parse", json={"text": "TUE 08:00-09:00 Lab"})
    assert client.get("/api/availability/instructors/parse").json()["version"] == 1
