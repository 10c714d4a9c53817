from datetime import datetime, timezone

import pytest

from credaccess.app.domain.models import DEFAULT_REQUESTED_FIELDS, Role
from credaccess.app.infra.store import MemoryRequestStore
from credaccess.app.services.audit import search_requests
from credaccess.app.services.disclosure import resolve_disclosure
from credaccess.app.services.lifecycle import RequestLifecycle
from credaccess.app.services.roles import RoleContext


def _engine():
    return RequestLifecycle(MemoryRequestStore(clock=lambda: datetime(2026, 1, 1, tzinfo=timezone.utc)))


def test_switch_returns_new_context_without_side_effects():
    engine = _engine()
    created = engine.send_request("E1", "Acme", "S1", "Sam")
    before = engine.list_all()
    ctx = RoleContext.of("employer", "E1")

    switched = ctx.switch(Role.STUDENT, "S1")

    assert ctx.role is Role.EMPLOYER
    assert switched.role is Role.STUDENT
    assert switched.subject_id == "S1"
    assert ctx.switch("university").subject_id == "E1"
    assert engine.list_all() == before
    assert [n.request_id for n in switched.notifications(engine.list_all())] == [created.id]


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        RoleContext.of("admin", "root")


def test_operations_are_scoped_by_role():
    student = RoleContext.of("student", "S1")
    employer = RoleContext.of("employer", "E1")
    university = RoleContext.of("university", "registrar")

    assert student.permits("approve") and not student.permits("send_request")
    assert employer.permits("send_request") and not employer.permits("approve")
    assert university.permits("list_all") and not university.permits("reject")
    assert "notifications" not in university.operations()


def test_policy_carries_identity():
    policy = RoleContext.of("student", " S1 ").policy()
    assert policy.subject_id == "S1"
    assert policy.role == "student"


def test_employer_disclosure_merges_all_approved_grants():
    engine = _engine()
    first = engine.send_request("E1", "Acme", "S1", "Sam", requested_fields=["Personal Details"])
    second = engine.send_request("E1", "Acme", "s1", "Sam", requested_fields=["Detailed Subject Scores", "Personal Details"])
    engine.send_request("E2", "Globex", "S1", "Sam", requested_fields=["Contact Information"])
    engine.approve(first.id)
    engine.approve(second.id)

    disclosure = resolve_disclosure(engine.list_all(), RoleContext.of("employer", "E1"), "S1")

    assert disclosure.status == "approved"
    assert disclosure.fields == ("Personal Details", "Detailed Subject Scores")


def test_employer_without_approval_sees_latest_status():
    engine = _engine()
    pending = engine.send_request("E1", "Acme", "S1", "Sam")
    engine.reject(pending.id)
    engine.send_request("E1", "Acme", "S1", "Sam")

    disclosure = resolve_disclosure(engine.list_all(), RoleContext.of("employer", "E1"), "S1")

    assert disclosure.status == "pending"
    assert disclosure.fields == ()


def test_disclosure_for_owner_university_and_strangers():
    engine = _engine()
    engine.send_request("E1", "Acme", "S1", "Sam")

    own = resolve_disclosure(engine.list_all(), RoleContext.of("student", "S1"), "s1")
    registrar = resolve_disclosure(engine.list_all(), RoleContext.of("university", "U1"), "S1")
    other_student = resolve_disclosure(engine.list_all(), RoleContext.of("student", "S2"), "S1")
    stranger = resolve_disclosure(engine.list_all(), RoleContext.of("employer", "E9"), "S1")

    assert own.fields == DEFAULT_REQUESTED_FIELDS
    assert registrar.status == "approved"
    assert other_student.status == "none"
    assert stranger.status == "none" and stranger.fields == ()


def test_search_matches_names_and_enrollment():
    engine = _engine()
    a = engine.send_request("E1", "Acme Analytics", "ENR-100", "Priya Shah")
    b = engine.send_request("E2", "Globex", "ENR-200", "Tom Ng")

    requests = engine.list_all()
    assert search_requests(requests, "acme") == [a]
    assert search_requests(requests, "tom") == [b]
    assert search_requests(requests, "enr-") == [a, b]
    assert search_requests(requests, "  ") == [a, b]
