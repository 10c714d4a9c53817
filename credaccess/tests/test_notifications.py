from datetime import datetime, timedelta, timezone

from credaccess.app.domain.policy import PolicyContext
from credaccess.app.infra.store import MemoryRequestStore
from credaccess.app.services.lifecycle import RequestLifecycle
from credaccess.app.services.notifications import project_notifications

T0 = datetime(2026, 5, 4, 12, 0, tzinfo=timezone.utc)

STUDENT = PolicyContext(subject_id="S1", role="student")
EMPLOYER = PolicyContext(subject_id="E1", role="employer")
UNIVERSITY = PolicyContext(subject_id="registrar", role="university")


def _engine(times):
    clock = iter(times)
    return RequestLifecycle(MemoryRequestStore(clock=lambda: next(clock)))


def _send(engine, employer="E1", student="S1", fields=("GPA", "Contact")):
    return engine.send_request(
        employer_id=employer,
        employer_name=f"Employer {employer}",
        student_enrollment_id=student,
        student_name=f"Student {student}",
        requested_fields=fields,
    )


def test_student_feed_is_their_pending_requests_newest_first():
    engine = _engine([T0, T0 + timedelta(hours=1), T0 + timedelta(hours=2), T0 + timedelta(hours=3)])
    older = _send(engine, employer="E1")
    newer = _send(engine, employer="E2")
    _send(engine, employer="E1", student="S2")
    resolved = _send(engine, employer="E3")
    engine.reject(resolved.id)

    feed = project_notifications(engine.list_all(), STUDENT)

    assert [n.request_id for n in feed] == [newer.id, older.id]
    assert all(n.kind == "access_requested" for n in feed)
    assert feed[0].fields == ("GPA", "Contact")
    assert "Employer E2 requested access to your GPA, Contact." == feed[0].message


def test_approving_removes_request_from_student_feed():
    engine = _engine([T0, T0 + timedelta(minutes=5)])
    first = _send(engine)
    second = _send(engine)

    engine.approve(first.id, ["GPA"])

    feed = project_notifications(engine.list_all(), STUDENT)
    assert [n.request_id for n in feed] == [second.id]


def test_rejecting_removes_request_from_student_feed():
    engine = _engine([T0])
    created = _send(engine)
    assert len(project_notifications(engine.list_all(), STUDENT)) == 1

    engine.reject(created.id)

    assert project_notifications(engine.list_all(), STUDENT) == []


def test_employer_feed_holds_only_its_resolved_requests():
    engine = _engine([T0 + timedelta(minutes=i) for i in range(4)])
    granted = _send(engine, employer="E1")
    denied = _send(engine, employer="E1")
    _send(engine, employer="E1")
    other = _send(engine, employer="E2")
    engine.approve(granted.id, ["GPA", "SSN"])
    engine.reject(denied.id)
    engine.approve(other.id)

    feed = project_notifications(engine.list_all(), EMPLOYER)

    assert [(n.request_id, n.kind) for n in feed] == [
        (denied.id, "access_denied"),
        (granted.id, "access_granted"),
    ]
    assert feed[1].fields == ("GPA",)
    assert feed[1].message == "Student S1 granted access to 1 of 2 field(s)."


def test_resolution_shows_up_on_next_read():
    engine = _engine([T0])
    created = _send(engine)
    assert project_notifications(engine.list_all(), EMPLOYER) == []

    engine.approve(created.id)

    assert [n.request_id for n in project_notifications(engine.list_all(), EMPLOYER)] == [created.id]


def test_ties_keep_insertion_order():
    engine = _engine([T0, T0, T0])
    first = _send(engine)
    second = _send(engine)
    third = _send(engine)

    feed = project_notifications(engine.list_all(), STUDENT)

    assert [n.request_id for n in feed] == [first.id, second.id, third.id]


def test_university_has_no_feed():
    engine = _engine([T0])
    _send(engine)
    assert project_notifications(engine.list_all(), UNIVERSITY) == []


def test_projection_does_not_touch_the_store():
    engine = _engine([T0, T0])
    _send(engine)
    _send(engine)
    before = engine.list_all()

    for _ in range(3):
        project_notifications(engine.list_all(), STUDENT)
        project_notifications(engine.list_all(), EMPLOYER)

    assert engine.list_all() == before
