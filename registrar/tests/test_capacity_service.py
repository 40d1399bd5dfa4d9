# registrar/tests/test_capacity_service.py
import threading
from datetime import date, datetime, timedelta

import pytest

from registrar import db
from registrar.exceptions import NotFound
from registrar.models.registration import ActivityLock, Registration
from registrar.services.capacity_service import (
    ACTIVITY_FULL, active_registration_counts, activity_status,
    reserve_registrations
)

NOW = datetime(2026, 11, 2, 12, 0, 0)


def _student(n):
    return dict(first=f'Kid{n}', last='Smith', dob=date(2015, 1, n))


def test_counts_paid_and_recently_reserved_only(app, make_registration, make_payment):
    payment_id = make_payment()
    make_registration('strings-101', payment_id=payment_id, **_student(1))
    make_registration('strings-101', reserved_at=NOW - timedelta(minutes=5), **_student(2))
    make_registration('strings-101', reserved_at=NOW - timedelta(minutes=15), **_student(3))
    make_registration('strings-101', **_student(4))
    make_registration('strings-101', payment_id=payment_id,
                      cancelled_at=NOW - timedelta(days=1), **_student(5))

    assert active_registration_counts(['strings-101'], now=NOW) == {'strings-101': 2}


def test_counts_are_case_insensitive_and_respect_exclusions(app, make_registration):
    reg_id = make_registration('Strings-101', reserved_at=NOW, **_student(1))
    assert db.session.get(Registration, reg_id).activity == 'strings-101'

    assert active_registration_counts(['STRINGS-101'], now=NOW) == {'strings-101': 1}
    assert active_registration_counts(['strings-101'], exclude_ids=[reg_id], now=NOW) == {}


def test_reserve_sets_hold_and_returns_checkout_lines(app, make_registration):
    reg_id = make_registration('strings-101', cost=100, donation=20, **_student(1))

    result = reserve_registrations([reg_id], now=NOW)

    assert [line.registration_id for line in result.accepted] == [reg_id]
    assert result.rejected == []
    data = result.to_dict()
    assert data['count'] == 1
    assert data['totalCost'] == 120.0
    assert data['registrations'][0]['courseName'] == 'Beginning Strings'
    assert data['registrations'][0]['courseKind'] == 'class'
    assert 'rejected' not in data

    db.session.expire_all()
    assert db.session.get(Registration, reg_id).reserved_at == NOW
    assert db.session.get(ActivityLock, 'strings-101') is not None


def test_last_seat_goes_to_the_first_checkout(app, make_registration):
    # strings-101 has two seats
    first = [make_registration('strings-101', **_student(1)),
             make_registration('strings-101', **_student(2))]
    second = make_registration('strings-101', **_student(3))

    result_a = reserve_registrations(first, now=NOW)
    result_b = reserve_registrations([second], now=NOW + timedelta(minutes=1))

    assert len(result_a.accepted) == 2
    assert result_b.accepted == []
    assert [line.reason for line in result_b.rejected] == [ACTIVITY_FULL]
    assert result_b.to_dict()['rejected'][0]['reason'] == 'Activity is full'

    db.session.expire_all()
    assert db.session.get(Registration, second).reserved_at is None


def test_abandoned_hold_releases_the_seat(app, make_registration):
    first = [make_registration('strings-101', **_student(1)),
             make_registration('strings-101', **_student(2))]
    late = make_registration('strings-101', **_student(3))

    reserve_registrations(first, now=NOW)

    assert reserve_registrations([late], now=NOW + timedelta(minutes=14)).accepted == []
    assert len(reserve_registrations([late], now=NOW + timedelta(minutes=15)).accepted) == 1


def test_one_checkout_cannot_exceed_capacity(app, make_registration):
    ids = [make_registration('strings-101', **_student(n)) for n in (1, 2, 3)]

    result = reserve_registrations(ids, now=NOW)

    assert [line.registration_id for line in result.accepted] == ids[:2]
    assert [line.registration_id for line in result.rejected] == ids[2:]


def test_refreshing_own_hold_does_not_count_against_itself(app, make_registration):
    ids = [make_registration('strings-101', **_student(n)) for n in (1, 2)]

    reserve_registrations(ids, now=NOW)
    again = reserve_registrations(ids, now=NOW + timedelta(minutes=10))

    assert len(again.accepted) == 2


def test_unlimited_activities_always_accept(app, make_registration):
    ids = [make_registration('orchestra', **_student(n)) for n in range(1, 6)]
    assert len(reserve_registrations(ids, now=NOW).accepted) == 5


def test_paid_rows_keep_their_hold_untouched(app, make_registration, make_payment):
    reg_id = make_registration('strings-101', payment_id=make_payment(), **_student(1))

    result = reserve_registrations([reg_id], now=NOW)

    assert len(result.accepted) == 1
    db.session.expire_all()
    assert db.session.get(Registration, reg_id).reserved_at is None


def test_reserve_unknown_ids(app):
    with pytest.raises(NotFound):
        reserve_registrations([999], now=NOW)


def test_activity_status(app, make_registration, make_payment):
    make_registration('open-house', payment_id=make_payment(), **_student(1))
    make_registration('strings-101', reserved_at=NOW, **_student(2))

    statuses = {s['activityId']: s for s in activity_status(
        ['open-house', 'STRINGS-101', 'orchestra', 'unknown'], now=NOW)}

    assert statuses['open-house']['isFull'] is True
    assert statuses['open-house']['spotsRemaining'] == 0
    assert statuses['STRINGS-101']['registeredCount'] == 1
    assert statuses['STRINGS-101']['spotsRemaining'] == 1
    assert statuses['orchestra']['sizeMax'] is None
    assert statuses['orchestra']['isFull'] is False
    assert statuses['unknown']['kind'] is None


def test_registration_details_endpoint(client, make_registration):
    reg_id = make_registration('gala', cost=30, **_student(1))

    resp = client.post('/api/registration-details', json={'registrationIds': [reg_id]})
    assert resp.status_code == 200
    assert resp.get_json()['totalCost'] == 30.0

    resp = client.post('/api/registration-details', json={'registrationIds': []})
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Registration IDs are required'

    resp = client.post('/api/registration-details', data='not json',
                       content_type='application/json')
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Invalid JSON in request body'


def test_activity_status_endpoint_cache_headers(client):
    resp = client.get('/api/activity-status?id=strings-101&id=gala')
    assert resp.status_code == 200
    assert resp.headers['Cache-Control'] == 'public, max-age=600'
    assert [a['activityId'] for a in resp.get_json()['activities']] == ['strings-101', 'gala']

    resp = client.post('/api/activity-status?nocache=1',
                       json={'activityIds': ['strings-101']})
    assert resp.status_code == 200
    assert resp.headers['Cache-Control'] == 'no-store'

    resp = client.get('/api/activity-status')
    assert resp.status_code == 400


def test_activity_status_accepts_comma_list_and_body_nocache(client):
    resp = client.get('/api/activity-status?activityIds=gala,orchestra')
    assert [a['activityId'] for a in resp.get_json()['activities']] == ['gala', 'orchestra']

    resp = client.post('/api/activity-status',
                       json={'activityIds': ['gala'], 'nocache': True})
    assert resp.headers['Cache-Control'] == 'no-store'


def test_concurrent_checkouts_never_oversell(app, make_registration, monkeypatch):
    # open-house has one seat; every worker pauses between count and hold
    from registrar.services import capacity_service

    workers = 6
    ids = [make_registration('open-house', **_student(n)) for n in range(1, workers + 1)]
    db.session.add(ActivityLock(activity='open-house'))
    db.session.commit()

    barrier = threading.Barrier(workers)
    real_counts = capacity_service.active_registration_counts

    def counts_then_wait(*args, **kwargs):
        counts = real_counts(*args, **kwargs)
        try:
            barrier.wait(timeout=0.5)
        except threading.BrokenBarrierError:
            pass
        return counts

    monkeypatch.setattr(capacity_service, 'active_registration_counts', counts_then_wait)

    accepted, errors = [], []

    def checkout(reg_id):
        with app.app_context():
            try:
                result = reserve_registrations([reg_id], now=NOW)
                accepted.append(len(result.accepted))
            except Exception as e:
                errors.append(e)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=checkout, args=(reg_id,)) for reg_id in ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert sorted(accepted) == [0] * (workers - 1) + [1]

    db.session.expire_all()
    held = Registration.query.filter(
        Registration.activity == 'open-house',
        Registration.reserved_at.isnot(None),
    ).count()
    assert held == 1
