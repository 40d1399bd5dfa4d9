# registrar/tests/test_voucher_service.py
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from registrar import db
from registrar.exceptions import NotFound
from registrar.models.voucher import Voucher
from registrar.services.voucher_service import (
    LineItem, VoucherUnavailable, check_voucher_usable, compute_expected_total,
    validate_voucher_code
)

NOW = datetime(2026, 11, 2, 12, 0, 0)


def _voucher(**kwargs):
    defaults = dict(code='TEST', percentage=10, amount=None, applies_to=None,
                    active=True, times_used=0, max_uses=None,
                    valid_from=None, valid_until=None)
    defaults.update(kwargs)
    return Voucher(**defaults)


def test_percentage_voucher_scoped_to_class(catalog):
    lines = [LineItem('strings-101', Decimal('100')), LineItem('gala', Decimal('30'))]
    result = compute_expected_total(lines, _voucher(applies_to='class'), catalog)

    assert result.subtotal == Decimal('130')
    assert result.discountable_total == Decimal('100')
    assert result.discount == Decimal('10')
    assert result.expected_total == Decimal('120')


def test_unscoped_voucher_applies_to_every_line_including_donations(catalog):
    lines = [LineItem('strings-101', Decimal('100'), Decimal('20')),
             LineItem('gala', Decimal('30'))]
    result = compute_expected_total(lines, _voucher(percentage=50), catalog)

    assert result.discountable_total == Decimal('150')
    assert result.expected_total == Decimal('75')


def test_fixed_amount_is_capped_at_discountable_total(catalog):
    lines = [LineItem('strings-101', Decimal('100')), LineItem('gala', Decimal('30'))]
    voucher = _voucher(percentage=None, amount=Decimal('50'), applies_to='event')
    result = compute_expected_total(lines, voucher, catalog)

    assert result.discount == Decimal('30')
    assert result.expected_total == Decimal('100')


def test_expected_total_never_negative(catalog):
    lines = [LineItem('gala', Decimal('30'))]
    voucher = _voucher(percentage=None, amount=Decimal('500'))
    assert compute_expected_total(lines, voucher, catalog).expected_total == Decimal('0')


def test_scope_without_matching_lines_gives_no_discount(catalog):
    lines = [LineItem('orchestra', Decimal('50'))]
    result = compute_expected_total(lines, _voucher(applies_to='event'), catalog)
    assert result.discount == Decimal('0')
    assert result.expected_total == Decimal('50')


def test_no_voucher_means_subtotal(catalog):
    lines = [LineItem('orchestra', Decimal('50'), Decimal('5'))]
    result = compute_expected_total(lines, None, catalog)
    assert result.expected_total == Decimal('55')


def test_misconfigured_voucher_is_rejected(app, catalog):
    voucher = _voucher(percentage=10, amount=Decimal('5'))
    with pytest.raises(VoucherUnavailable):
        compute_expected_total([LineItem('gala', Decimal('30'))], voucher, catalog)
    with pytest.raises(VoucherUnavailable):
        check_voucher_usable(voucher, NOW)


@pytest.mark.parametrize("overrides,message", [
    (dict(active=False), "This voucher is no longer active"),
    (dict(valid_from=NOW + timedelta(days=1)), "This voucher is not yet valid"),
    (dict(valid_until=NOW - timedelta(seconds=1)), "This voucher has expired"),
    (dict(max_uses=3, times_used=3),
     "This voucher has reached its maximum number of uses"),
])
def test_unusable_voucher_messages(overrides, message):
    with pytest.raises(VoucherUnavailable) as exc:
        check_voucher_usable(_voucher(**overrides), NOW)
    assert exc.value.message == message
    assert exc.value.status_code == 400


def test_usable_voucher_passes():
    voucher = _voucher(valid_from=NOW - timedelta(days=1),
                       valid_until=NOW + timedelta(days=1),
                       max_uses=3, times_used=2)
    assert check_voucher_usable(voucher, NOW) is None


def test_validate_voucher_code_is_case_insensitive(app, make_voucher):
    make_voucher(code='SPRING10')
    assert validate_voucher_code(' spring10 ').code == 'SPRING10'


def test_validate_unknown_voucher_code(app):
    with pytest.raises(NotFound) as exc:
        validate_voucher_code('NOPE')
    assert exc.value.message == 'Invalid voucher code'


def test_validate_voucher_endpoint(client, make_voucher):
    make_voucher(code='SPRING10', applies_to='class')
    resp = client.post('/api/validate-voucher', json={'code': 'spring10'})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['valid'] is True
    assert data['message'] == 'Voucher code is valid'
    assert data['voucher']['code'] == 'SPRING10'
    assert data['voucher']['appliesTo'] == 'class'
    assert data['voucher']['percentage'] == 10


def test_validate_voucher_endpoint_rejections(client, make_voucher):
    make_voucher(code='OLD', active=False)

    resp = client.post('/api/validate-voucher', json={'code': 'OLD'})
    assert resp.status_code == 400
    assert resp.get_json() == {'message': 'This voucher is no longer active', 'valid': False}

    resp = client.post('/api/validate-voucher', json={'code': 'MISSING'})
    assert resp.status_code == 404
    assert resp.get_json()['valid'] is False

    resp = client.post('/api/validate-voucher', json={})
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Voucher code is required'


def test_validating_twice_does_not_redeem(client, make_voucher):
    voucher_id = make_voucher(code='TWICE', max_uses=1)

    for _ in range(2):
        resp = client.post('/api/validate-voucher', json={'code': 'TWICE'})
        assert resp.status_code == 200

    db.session.expire_all()
    assert db.session.get(Voucher, voucher_id).times_used == 0
