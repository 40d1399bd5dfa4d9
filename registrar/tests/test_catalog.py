# registrar/tests/test_catalog.py
import json
from decimal import Decimal

import pytest
from marshmallow import ValidationError

from registrar.catalog import ActivityCatalog


def test_lookup_is_case_insensitive(catalog):
    activity = catalog.get('STRINGS-101')
    assert activity.name == 'Beginning Strings'
    assert activity.size_max == 2
    assert activity.cost == Decimal('100')
    assert 'Strings-101' in catalog
    assert catalog.get(None) is None


def test_from_json_file(tmp_path):
    path = tmp_path / 'activities.json'
    path.write_text(json.dumps([
        {'id': 'Choir', 'name': 'Choir', 'kind': 'group', 'cost': 25.5}
    ]))

    catalog = ActivityCatalog.from_json_file(str(path))

    assert len(catalog) == 1
    assert catalog.get('choir').cost == Decimal('25.5')


def test_missing_file(tmp_path):
    assert len(ActivityCatalog.from_json_file(str(tmp_path / 'x.json'), missing_ok=True)) == 0
    with pytest.raises(FileNotFoundError):
        ActivityCatalog.from_json_file(str(tmp_path / 'x.json'))


def test_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        ActivityCatalog.from_records([{'id': 'x', 'name': 'X', 'kind': 'party'}])


def test_instructor_file_is_optional_and_merged(tmp_path):
    activities = tmp_path / 'activities.json'
    activities.write_text(json.dumps([
        {'id': 'cello', 'name': 'Cello', 'kind': 'class', 'instructors': ['ana']}
    ]))
    instructors = tmp_path / 'instructors.json'
    instructors.write_text(json.dumps([
        {'id': 'ana', 'name': 'Ana Ruiz', 'email': 'ana@example.org'}
    ]))

    catalog = ActivityCatalog.from_json_file(
        str(activities), instructors_path=str(instructors))
    assert catalog.get('cello').instructors == ('ana',)
    assert catalog.instructor('ana').email == 'ana@example.org'

    bare = ActivityCatalog.from_json_file(
        str(activities), instructors_path=str(tmp_path / 'missing.json'))
    assert bare.instructor('ana') is None
