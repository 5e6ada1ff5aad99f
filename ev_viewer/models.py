"""Value records for project content stored in JSON columns.

Phases, tasks and custom-field definitions live inside the project row.
These dataclasses are what the rest of the app passes around; ``from_dict``
validates incoming form/JSON data and raises ValueError with a message fit
to show the user.
"""
from __future__ import annotations

import math
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .dates import is_calendar_date, parse_calendar_date

FIELD_TYPES = ('text', 'date', 'select', 'number')

PROGRESS_STATUSES = ('Pending', 'In Progress', 'Completed', 'On Hold')

COLOR_RE = re.compile(r'^#[0-9a-fA-F]{6}$')


def new_id() -> str:
    return uuid.uuid4().hex


def _mapping(value, what: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise ValueError(f'Each {what} must be an object')
    return value


def _text(data: Mapping, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    return str(value).strip()


@dataclass(frozen=True)
class Phase:
    id: str
    name: str
    color: str

    @classmethod
    def from_dict(cls, data: Mapping) -> 'Phase':
        name = _text(data, 'name')
        if not name:
            raise ValueError('Phase name is required')
        color = _text(data, 'color') or '#6b7280'
        if not COLOR_RE.match(color):
            raise ValueError(f"Invalid color '{color}' for phase '{name}' (expected #rrggbb)")
        return cls(id=_text(data, 'id') or new_id(), name=name, color=color)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'color': self.color}


DEFAULT_PHASES = (
    Phase('1', 'Contract & Design', '#3b82f6'),
    Phase('2', 'Permitting', '#f59e0b'),
    Phase('3', 'Construction & Execution', '#10b981'),
)


@dataclass
class CustomField:
    id: str
    name: str
    type: str = 'text'
    options: Optional[List[str]] = None
    required: bool = False

    @classmethod
    def from_dict(cls, data: Mapping) -> 'CustomField':
        name = _text(data, 'name')
        if not name:
            raise ValueError('Custom field name is required')
        ftype = _text(data, 'type') or 'text'
        if ftype not in FIELD_TYPES:
            raise ValueError(f"Unknown field type '{ftype}'")
        options = None
        if ftype == 'select':
            raw = data.get('options') or []
            if isinstance(raw, str):
                raw = raw.split(',')
            elif not isinstance(raw, (list, tuple)):
                raise ValueError(f"Options for '{name}' must be a list or comma-separated text")
            options = [str(o).strip() for o in raw if str(o).strip()]
            if not options:
                raise ValueError(f"Select field '{name}' needs at least one option")
        return cls(
            id=_text(data, 'id') or new_id(),
            name=name,
            type=ftype,
            options=options,
            required=bool(data.get('required', False)),
        )

    def to_dict(self):
        out = {'id': self.id, 'name': self.name, 'type': self.type, 'required': self.required}
        if self.options is not None:
            out['options'] = list(self.options)
        return out

    def coerce(self, value: Any) -> Any:
        """Convert a raw value to this field's type or raise ValueError."""
        if self.type == 'number':
            if isinstance(value, bool):
                raise ValueError(f"'{self.name}' must be a number")
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"'{self.name}' must be a number") from None
            if not math.isfinite(number):
                raise ValueError(f"'{self.name}' must be a number")
            return number
        if isinstance(value, (list, Mapping)):
            raise ValueError(f"'{self.name}' must be a single value")
        text = str(value).strip()
        if self.type == 'date' and not is_calendar_date(text):
            raise ValueError(f"'{self.name}' must be a date (YYYY-MM-DD)")
        if self.type == 'select' and text not in (self.options or []):
            raise ValueError(f"'{self.name}' must be one of: {', '.join(self.options or [])}")
        return text


@dataclass(frozen=True)
class FieldValue:
    """A custom-field value tagged with the type it was validated as."""
    type: str
    value: Any

    def to_dict(self):
        return {'type': self.type, 'value': self.value}


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_custom_values(fields: Sequence[CustomField], raw: Optional[Mapping]) -> Dict[str, FieldValue]:
    """Check raw task values against the project's field definitions.

    Keys may be a field id or a field name; the result is keyed by id.
    Already-tagged values (``{"type": ..., "value": ...}``) are accepted too.
    """
    by_id = {f.id: f for f in fields}
    by_name = {f.name: f for f in fields}
    if raw is not None and not isinstance(raw, Mapping):
        raise ValueError('Task custom fields must be an object')
    values: Dict[str, FieldValue] = {}
    for key, value in (raw or {}).items():
        fdef = by_id.get(key) or by_name.get(key)
        if fdef is None:
            raise ValueError(f"Unknown custom field '{key}'")
        if isinstance(value, Mapping):
            value = value.get('value')
        if _blank(value):
            continue
        values[fdef.id] = FieldValue(fdef.type, fdef.coerce(value))
    for fdef in fields:
        if fdef.required and fdef.id not in values:
            raise ValueError(f"'{fdef.name}' is required")
    return values


@dataclass
class Task:
    id: str
    phase_id: str
    name: str
    start_date: str
    end_date: str
    custom_fields: Dict[str, FieldValue] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping, phases: Sequence[Phase] = (),
                  fields: Sequence[CustomField] = ()) -> 'Task':
        name = _text(data, 'name')
        start = _text(data, 'start_date') or _text(data, 'startDate')
        end = _text(data, 'end_date') or _text(data, 'endDate')
        if not name or not start or not end:
            raise ValueError('Please fill task name, start date, and end date')
        for label, value in (('start', start), ('end', end)):
            if not is_calendar_date(value):
                raise ValueError(f"Invalid {label} date '{value}' (expected YYYY-MM-DD)")
        if parse_calendar_date(end) < parse_calendar_date(start):
            raise ValueError(f"Task '{name}' ends before it starts")
        phase_id = _text(data, 'phase_id') or _text(data, 'phaseId')
        if phases:
            if not phase_id:
                phase_id = phases[0].id
            elif phase_id not in {p.id for p in phases}:
                raise ValueError(f"Unknown phase '{phase_id}'")
        raw_fields = data.get('custom_fields', data.get('customFields'))
        return cls(
            id=_text(data, 'id') or new_id(),
            phase_id=phase_id,
            name=name,
            start_date=start,
            end_date=end,
            custom_fields=validate_custom_values(fields, raw_fields),
        )

    @property
    def is_milestone(self) -> bool:
        return self.start_date == self.end_date

    def to_dict(self):
        return {
            'id': self.id,
            'phase_id': self.phase_id,
            'name': self.name,
            'start_date': self.start_date,
            'end_date': self.end_date,
            'custom_fields': {k: v.to_dict() for k, v in self.custom_fields.items()},
        }


def load_task(data: Mapping) -> Task:
    """Rebuild a stored task without re-validating it."""
    return Task(
        id=data['id'],
        phase_id=data.get('phase_id', ''),
        name=data.get('name', ''),
        start_date=data.get('start_date', ''),
        end_date=data.get('end_date', ''),
        custom_fields={k: FieldValue(v.get('type', 'text'), v.get('value'))
                       for k, v in (data.get('custom_fields') or {}).items()},
    )


def parse_phases(raw) -> List[Phase]:
    if raw is None:
        return list(DEFAULT_PHASES)
    if not isinstance(raw, list):
        raise ValueError('phases must be a list')
    phases = [Phase.from_dict(_mapping(p, 'phase')) for p in raw]
    ids = [p.id for p in phases]
    if len(set(ids)) != len(ids):
        raise ValueError('Phase ids must be unique')
    return phases


def parse_custom_fields(raw) -> List[CustomField]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError('custom_fields must be a list')
    return [CustomField.from_dict(_mapping(f, 'custom field')) for f in raw]


def parse_tasks(raw, phases: Sequence[Phase], fields: Sequence[CustomField]) -> List[Task]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError('tasks must be a list')
    return [Task.from_dict(_mapping(t, 'task'), phases, fields) for t in raw]


def parse_progress(status, percent):
    """Validate progress status and clamp percent to 0..100."""
    if status is not None and status not in PROGRESS_STATUSES:
        raise ValueError(f"Unknown progress status '{status}'")
    if percent is not None:
        try:
            percent = max(0, min(100, int(float(percent))))
        except (TypeError, ValueError, OverflowError):
            raise ValueError('Progress percent must be a number') from None
    return status, percent
