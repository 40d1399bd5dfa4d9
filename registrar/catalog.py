"""Read-only activity catalog.

Activities are defined in content configuration (a JSON file exported from the
site's content collection) and never change while the process runs. Ids are
matched case-insensitively; everything is keyed by the lower-cased id.
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Iterator, Optional, Tuple

from marshmallow import Schema, fields, validate, EXCLUDE, post_load

ACTIVITY_KINDS = ("class", "group", "event")


def normalize_activity_id(activity_id) -> str:
    return str(activity_id).strip().lower()


@dataclass(frozen=True)
class CatalogActivity:
    id: str
    name: str
    kind: str
    size_max: Optional[int] = None
    cost: Optional[Decimal] = None
    start: Optional[datetime] = None
    question: Optional[str] = None
    suggested_donation: Optional[Decimal] = None
    instructors: Tuple[str, ...] = ()


class CatalogActivitySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    name = fields.Str(required=True, validate=validate.Length(min=1))
    kind = fields.Str(required=True, validate=validate.OneOf(ACTIVITY_KINDS))
    size_max = fields.Int(
        data_key="sizeMax", load_default=None, validate=validate.Range(min=0))
    cost = fields.Decimal(load_default=None, validate=validate.Range(min=0))
    # Local wall-clock time of the first session, APP_TIMEZONE
    start = fields.NaiveDateTime(load_default=None)
    question = fields.Str(load_default=None)
    suggested_donation = fields.Decimal(
        data_key="suggestedDonation", load_default=None)
    # Instructor ids; names and e-mails live in the private instructor file
    instructors = fields.List(fields.Str(), load_default=list)

    @post_load
    def make_activity(self, data, **kwargs):
        data["id"] = normalize_activity_id(data["id"])
        data["instructors"] = tuple(data["instructors"])
        return CatalogActivity(**data)


@dataclass(frozen=True)
class Instructor:
    id: str
    name: str
    email: Optional[str] = None


class InstructorSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.Str(required=True, validate=validate.Length(min=1))
    name = fields.Str(required=True, validate=validate.Length(min=1))
    email = fields.Email(load_default=None)

    @post_load
    def make_instructor(self, data, **kwargs):
        return Instructor(**data)


def _read_json(path, missing_ok, what):
    if not path or not os.path.exists(path):
        if missing_ok:
            return []
        raise FileNotFoundError(f"{what} not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


class ActivityCatalog:
    def __init__(self, activities: Iterable[CatalogActivity] = (),
                 instructors: Iterable[Instructor] = ()):
        self._activities: Dict[str, CatalogActivity] = {}
        for activity in activities:
            self._activities[normalize_activity_id(activity.id)] = activity
        self._instructors: Dict[str, Instructor] = {i.id: i for i in instructors}

    @classmethod
    def from_records(cls, records, instructor_records=()):
        """Build from lists of dicts shaped like the JSON file entries."""
        activities = CatalogActivitySchema(many=True).load(list(records))
        instructors = InstructorSchema(many=True).load(list(instructor_records))
        return cls(activities, instructors)

    @classmethod
    def from_json_file(cls, path, missing_ok=False, instructors_path=None):
        """
        ``instructors_path`` holds the private instructor contacts
        (``[{"id", "name", "email"}]``); it is optional.
        """
        records = _read_json(path, missing_ok, "Activity catalog")
        instructor_records = _read_json(instructors_path, True, "Instructor file")
        return cls.from_records(records, instructor_records)

    def instructor(self, instructor_id) -> Optional[Instructor]:
        return self._instructors.get(instructor_id)

    def get(self, activity_id) -> Optional[CatalogActivity]:
        if activity_id is None:
            return None
        return self._activities.get(normalize_activity_id(activity_id))

    def __contains__(self, activity_id):
        return self.get(activity_id) is not None

    def __iter__(self) -> Iterator[CatalogActivity]:
        return iter(self._activities.values())

    def __len__(self):
        return len(self._activities)


def get_catalog() -> ActivityCatalog:
    from flask import current_app

    return current_app.extensions["activity_catalog"]
