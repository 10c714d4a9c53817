from fastapi.testclient import TestClient

from credaccess.app.config import Settings
from credaccess.app.main import app, create_app


def _client(**overrides):
    settings = Settings(**{"database_url": "sqlite://", "store_backend": "memory", **overrides})
    return TestClient(create_app(settings))


def _as(role, actor_id):
    return {"X-Actor-Role": role, "X-Actor-Id": actor_id}


EMPLOYER = _as("employer", "E1")
STUDENT = _as("student", "S1")
UNIVERSITY = _as("university", "registrar")


def _send(client, fields=("GPA", "Contact"), headers=EMPLOYER, student="S1"):
    response = client.post(
        "/requests/",
        json={
            "employer_name": "Acme Analytics",
            "student_enrollment_id": student,
            "student_name": "Sam Student",
            "requested_fields": list(fields),
        },
        headers=headers,
    )
    return response


def test_app_title():
    assert app.title == "Credential Access API"


def test_router_tags_present():
    tags = {
        tag
        for operations in app.openapi()["paths"].values()
        for operation in operations.values()
        for tag in operation.get("tags", [])
    }
    assert {"requests", "notifications", "disclosure", "roles", "audit"}.issubset(tags)


def test_employer_request_student_partial_approval_flow():
    with _client() as client:
        created = _send(client)
        assert created.status_code == 201
        body = created.json()
        assert body["employer_id"] == "E1"
        assert body["status"] == "pending"
        assert body["approved_fields"] == []

        feed = client.get("/notifications/", headers=STUDENT).json()
        assert [n["request_id"] for n in feed] == [body["id"]]

        approved = client.post(
            f"/requests/{body['id']}/approve",
            json={"approved_fields": ["GPA", "SSN"]},
            headers=STUDENT,
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"
        assert approved.json()["approved_fields"] == ["GPA"]

        assert client.get("/notifications/", headers=STUDENT).json() == []
        employer_feed = client.get("/notifications/", headers=EMPLOYER).json()
        assert [(n["request_id"], n["kind"]) for n in employer_feed] == [(body["id"], "access_granted")]

        disclosure = client.get("/disclosure/S1", headers=EMPLOYER).json()
        assert disclosure == {"student_enrollment_id": "S1", "status": "approved", "fields": ["GPA"]}


def test_approve_without_body_releases_everything():
    with _client() as client:
        request_id = _send(client).json()["id"]
        approved = client.post(f"/requests/{request_id}/approve", headers=STUDENT)
        assert approved.json()["approved_fields"] == ["GPA", "Contact"]


def test_terminal_transition_conflicts_in_strict_mode():
    with _client() as client:
        request_id = _send(client).json()["id"]
        assert client.post(f"/requests/{request_id}/reject", headers=STUDENT).status_code == 200

        again = client.post(f"/requests/{request_id}/approve", headers=STUDENT)

        assert again.status_code == 409
        assert client.get(f"/requests/{request_id}", headers=STUDENT).json()["status"] == "rejected"


def test_lenient_mode_returns_unchanged_record():
    with _client(strict_transitions=False) as client:
        request_id = _send(client).json()["id"]
        client.post(f"/requests/{request_id}/reject", headers=STUDENT)

        again = client.post(f"/requests/{request_id}/approve", headers=STUDENT)

        assert again.status_code == 200
        assert again.json()["status"] == "rejected"


def test_only_the_addressed_student_may_answer():
    with _client() as client:
        request_id = _send(client).json()["id"]

        assert client.post(f"/requests/{request_id}/approve", headers=_as("student", "S2")).status_code == 403
        assert client.post(f"/requests/{request_id}/reject", headers=EMPLOYER).status_code == 403
        assert client.get(f"/requests/{request_id}", headers=_as("employer", "E2")).status_code == 403
        assert client.get(f"/requests/{request_id}", headers=STUDENT).json()["status"] == "pending"


def test_students_cannot_send_requests():
    with _client() as client:
        assert _send(client, headers=STUDENT).status_code == 403


def test_missing_identity_headers_are_rejected():
    with _client() as client:
        assert client.get("/notifications/").status_code == 401


def test_blank_student_id_is_a_validation_error():
    with _client() as client:
        response = _send(client, student="   ")
        assert response.status_code == 422


def test_unknown_request_returns_404():
    with _client() as client:
        assert client.post("/requests/req_missing/approve", headers=STUDENT).status_code == 404


def test_listing_is_scoped_per_role():
    with _client() as client:
        mine = _send(client).json()["id"]
        _send(client, headers=_as("employer", "E2"), student="S2")

        employer_view = client.get("/requests/", headers=EMPLOYER).json()
        student_view = client.get("/requests/", headers=_as("student", "s2")).json()
        registrar_view = client.get("/requests/", params={"q": "acme"}, headers=UNIVERSITY).json()

        assert [r["id"] for r in employer_view] == [mine]
        assert [r["student_enrollment_id"] for r in student_view] == ["S2"]
        assert len(registrar_view) == 2


def test_narrow_grant_endpoint():
    with _client() as client:
        request_id = _send(client).json()["id"]
        client.post(f"/requests/{request_id}/approve", headers=STUDENT)

        narrowed = client.post(
            f"/requests/{request_id}/narrow",
            json={"approved_fields": ["Contact"]},
            headers=STUDENT,
        )

        assert narrowed.status_code == 200
        assert narrowed.json()["approved_fields"] == ["Contact"]


def test_audit_log_records_decisions_for_university_only():
    with _client() as client:
        request_id = _send(client).json()["id"]
        client.post(f"/requests/{request_id}/approve", headers=_as("student", "S9"))

        assert client.get("/audit/logs", headers=EMPLOYER).status_code == 403
        logs = client.get("/audit/logs", params={"action": "approve"}, headers=UNIVERSITY).json()

        assert [(log["actor_id"], log["allowed"]) for log in logs] == [("S9", False)]

        page = client.get("/audit/logs/html", headers=UNIVERSITY)
        assert page.status_code == 200
        assert "Acme Analytics" in page.text


def test_role_introspection():
    with _client() as client:
        me = client.get("/roles/me", headers=STUDENT).json()
        assert me["role"] == "student"
        assert "approve" in me["operations"]
        operations = client.get("/roles/operations").json()
        assert set(operations) == {"student", "employer", "university"}


def test_unreadable_store_fails_writes_with_503_and_reads_empty(tmp_path):
    path = tmp_path / "requests.json"
    path.write_text("{not json", encoding="utf-8")

    with _client(store_backend="json", store_path=str(path)) as client:
        created = _send(client)
        assert created.status_code == 503
        assert "please try again" in created.json()["detail"]

        listed = client.get("/requests/", headers=EMPLOYER)
        assert listed.status_code == 200
        assert listed.json() == []

    assert path.read_text(encoding="utf-8") == "{not json"
