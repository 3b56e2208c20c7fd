import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import conflicting_insert
from eventapp.errors import AlreadyExistsError, NotFoundError
from eventapp.models.attendee import Attendee


@pytest.fixture
def ann(services):
    return services.credentials.register("ann@x.com", "Ann", "password1")


@pytest.fixture
def bob(services):
    return services.credentials.register("bob@x.com", "Bob", "password1")


@pytest.fixture
def party(services, ann):
    return services.events.create(
        owner_id=ann.id,
        name="Party",
        description="A party on the roof",
        date=datetime.date(2025, 6, 1),
        location="Roof",
    )


def _pair_count(services, event_id, user_id):
    with services.db.session() as session:
        return (
            session.query(Attendee)
            .filter(Attendee.event_id == event_id, Attendee.user_id == user_id)
            .count()
        )


def test_adding_twice_conflicts(services, party, bob):
    attendee = services.attendance.add_attendee(party.id, bob.id)
    assert (attendee.event_id, attendee.user_id) == (party.id, bob.id)

    with pytest.raises(AlreadyExistsError):
        services.attendance.add_attendee(party.id, bob.id)

    assert _pair_count(services, party.id, bob.id) == 1


def test_unique_constraint_rejects_duplicate_rows(services, party, bob):
    services.attendance.add_attendee(party.id, bob.id)

    with pytest.raises(IntegrityError):
        with services.db.session() as session:
            session.add(Attendee(event_id=party.id, user_id=bob.id))
            session.commit()


def test_missing_event_is_reported_before_missing_user(services):
    with pytest.raises(NotFoundError) as exc:
        services.attendance.add_attendee(999, 998)
    assert exc.value.message == "Event not found"


def test_missing_user(services, party):
    with pytest.raises(NotFoundError) as exc:
        services.attendance.add_attendee(party.id, 999)
    assert exc.value.message == "User not found"


def test_list_attendees_for_event(services, party, ann, bob):
    services.attendance.add_attendee(party.id, ann.id)
    services.attendance.add_attendee(party.id, bob.id)

    attendees = services.attendance.list_attendees_for_event(party.id)
    assert {user.id for user in attendees} == {ann.id, bob.id}


def test_list_attendees_for_missing_event(services):
    with pytest.raises(NotFoundError):
        services.attendance.list_attendees_for_event(999)


def test_remove_attendee(services, party, bob):
    services.attendance.add_attendee(party.id, bob.id)
    assert [e.id for e in services.attendance.list_events_for_user(bob.id)] == [party.id]

    services.attendance.remove_attendee(bob.id, party.id)

    assert services.attendance.list_events_for_user(bob.id) == []
    assert _pair_count(services, party.id, bob.id) == 0


def test_removing_absent_pair_is_not_an_error(services, party, bob):
    services.attendance.remove_attendee(bob.id, party.id)
    assert _pair_count(services, party.id, bob.id) == 0


def test_deleting_event_drops_its_attendees(services, party, bob):
    services.attendance.add_attendee(party.id, bob.id)

    assert services.events.delete(party.id) is True

    assert services.attendance.list_events_for_user(bob.id) == []
    assert _pair_count(services, party.id, bob.id) == 0


def test_concurrent_add_maps_to_already_exists(services, party, bob):
    with conflicting_insert(
        services,
        "INSERT INTO attendees (event_id, user_id) VALUES (:event_id, :user_id)",
        {"event_id": party.id, "user_id": bob.id},
    ):
        with pytest.raises(AlreadyExistsError):
            services.attendance.add_attendee(party.id, bob.id)
