from datetime import date

import pytest

from library_catalog.errors import ConflictError, NotFoundError
from library_catalog.models import Member, MemberPatch

TODAY = date(2024, 3, 1)


def test_membership_date_defaults_to_today(member):
    assert member.membership_date == TODAY
    assert member.active is True


def test_explicit_membership_date_is_kept(lib):
    created = lib.members.create(Member(email="grace@example.com", first_name="Grace", last_name="Hopper",
                                        membership_date=date(2020, 1, 15)))
    assert lib.members.get(created.id).membership_date == date(2020, 1, 15)


def test_duplicate_email_conflicts(lib, member):
    with pytest.raises(ConflictError):
        lib.members.create(Member(email="ada@example.com", first_name="Other", last_name="Person"))


def test_update_email_to_taken_one_conflicts(lib, member):
    other = lib.members.create(Member(email="grace@example.com", first_name="Grace", last_name="Hopper"))
    with pytest.raises(ConflictError):
        lib.members.update(other.id, MemberPatch(email="ada@example.com"))


def test_get_by_email(lib, member):
    assert lib.members.get_by_email("ada@example.com").id == member.id
    with pytest.raises(NotFoundError):
        lib.members.get_by_email("nobody@example.com")


def test_suspend_and_activate(lib, member):
    suspended = lib.members.suspend(member.id)
    assert suspended.active is False
    assert lib.members.list_active() == []
    assert lib.members.count_active() == 0

    activated = lib.members.activate(member.id)
    assert activated.active is True
    assert [m.id for m in lib.members.list_active()] == [member.id]
    assert lib.members.count_active() == 1


def test_suspend_missing_member_raises_not_found(lib):
    with pytest.raises(NotFoundError):
        lib.members.suspend(42)


def test_delete_member(lib, member):
    lib.members.delete(member.id)
    assert lib.members.exists("ada@example.com") is False
