import pytest

from ev_viewer.models import (DEFAULT_PHASES, CustomField, FieldValue, Phase, Task, parse_custom_fields,
                              parse_phases, parse_progress, parse_tasks, validate_custom_values)

FIELDS = [
    CustomField('f1', 'Assignee', 'text'),
    CustomField('f2', 'Priority', 'select', ['High', 'Medium', 'Low']),
    CustomField('f3', 'Hours', 'number'),
    CustomField('f4', 'Inspection', 'date'),
]
PHASES = [Phase('p1', 'Design', '#3b82f6'), Phase('p2', 'Build', '#10b981')]


def test_custom_values_keyed_by_id_or_name():
    values = validate_custom_values(FIELDS, {'Assignee': ' Sam ', 'f2': 'High', 'Hours': '7.5',
                                             'Inspection': '2024-04-01'})
    assert values == {
        'f1': FieldValue('text', 'Sam'),
        'f2': FieldValue('select', 'High'),
        'f3': FieldValue('number', 7.5),
        'f4': FieldValue('date', '2024-04-01'),
    }


def test_tagged_values_are_accepted():
    values = validate_custom_values(FIELDS, {'f3': {'type': 'number', 'value': 3}})
    assert values['f3'] == FieldValue('number', 3.0)


def test_blank_values_are_dropped():
    assert validate_custom_values(FIELDS, {'Assignee': '   ', 'Hours': None}) == {}


@pytest.mark.parametrize('raw,message', [
    ({'Color': 'red'}, "Unknown custom field 'Color'"),
    ({'Priority': 'Urgent'}, "'Priority' must be one of"),
    ({'Hours': 'lots'}, "'Hours' must be a number"),
    ({'Hours': True}, "'Hours' must be a number"),
    ({'Inspection': '04/01/2024'}, "'Inspection' must be a date"),
])
def test_invalid_custom_values(raw, message):
    with pytest.raises(ValueError, match=message):
        validate_custom_values(FIELDS, raw)


def test_required_field_must_be_present():
    fields = [CustomField('f1', 'Assignee', 'text', required=True)]
    with pytest.raises(ValueError, match="'Assignee' is required"):
        validate_custom_values(fields, {})


def test_custom_field_from_dict():
    f = CustomField.from_dict({'name': 'Priority', 'type': 'select', 'options': 'High, Low,'})
    assert f.options == ['High', 'Low']
    assert f.id
    with pytest.raises(ValueError):
        CustomField.from_dict({'name': 'Bad', 'type': 'colour'})
    with pytest.raises(ValueError):
        CustomField.from_dict({'name': 'Empty', 'type': 'select', 'options': []})
    assert 'options' not in CustomField.from_dict({'name': 'Notes'}).to_dict()


def test_task_from_dict():
    task = Task.from_dict({'name': 'Trenching', 'startDate': '2024-02-01', 'endDate': '2024-02-09',
                           'phaseId': 'p2', 'customFields': {'Hours': 12}}, PHASES, FIELDS)
    assert task.phase_id == 'p2'
    assert task.custom_fields == {'f3': FieldValue('number', 12.0)}
    assert not task.is_milestone
    assert task.to_dict()['custom_fields'] == {'f3': {'type': 'number', 'value': 12.0}}


def test_task_defaults_to_first_phase():
    task = Task.from_dict({'name': 'Kickoff', 'start_date': '2024-01-01', 'end_date': '2024-01-01'}, PHASES)
    assert task.phase_id == 'p1'
    assert task.is_milestone


@pytest.mark.parametrize('data,message', [
    ({'start_date': '2024-01-01', 'end_date': '2024-01-02'}, 'Please fill task name'),
    ({'name': 'x', 'start_date': '2024-01-01'}, 'Please fill task name'),
    ({'name': 'x', 'start_date': '2024-1-1', 'end_date': '2024-01-02'}, 'Invalid start date'),
    ({'name': 'x', 'start_date': '2024-01-05', 'end_date': '2024-01-02'}, 'ends before it starts'),
    ({'name': 'x', 'start_date': '2024-01-01', 'end_date': '2024-01-02', 'phase_id': 'p9'}, 'Unknown phase'),
])
def test_task_validation(data, message):
    with pytest.raises(ValueError, match=message):
        Task.from_dict(data, PHASES, FIELDS)


def test_default_phases():
    phases = parse_phases(None)
    assert [p.name for p in phases] == ['Contract & Design', 'Permitting', 'Construction & Execution']
    assert phases == list(DEFAULT_PHASES)


def test_phases_are_immutable_and_unique():
    with pytest.raises(Exception):
        PHASES[0].name = 'Renamed'
    with pytest.raises(ValueError, match='unique'):
        parse_phases([{'id': 'a', 'name': 'One'}, {'id': 'a', 'name': 'Two'}])
    with pytest.raises(ValueError):
        parse_phases('Design')


def test_parse_custom_fields_empty():
    assert parse_custom_fields(None) == []


def test_parse_progress_clamps():
    assert parse_progress('In Progress', '150') == ('In Progress', 100)
    assert parse_progress(None, -5) == (None, 0)
    assert parse_progress(None, None) == (None, None)
    with pytest.raises(ValueError):
        parse_progress('Done', None)
    with pytest.raises(ValueError):
        parse_progress(None, 'half')


@pytest.mark.parametrize('percent', ['inf', '-inf', float('inf'), 'nan'])
def test_parse_progress_rejects_non_finite(percent):
    with pytest.raises(ValueError, match='Progress percent must be a number'):
        parse_progress(None, percent)


@pytest.mark.parametrize('parse,raw', [
    (parse_phases, ['Design']),
    (parse_custom_fields, [['Assignee', 'text']]),
    (lambda raw: parse_tasks(raw, PHASES, FIELDS), ['oops']),
])
def test_list_items_must_be_objects(parse, raw):
    with pytest.raises(ValueError, match='must be an object'):
        parse(raw)


def test_task_custom_fields_must_be_object():
    with pytest.raises(ValueError, match='custom fields must be an object'):
        Task.from_dict({'name': 'x', 'start_date': '2024-01-01', 'end_date': '2024-01-02',
                        'custom_fields': ['Sam']}, PHASES, FIELDS)


@pytest.mark.parametrize('options', [5, {'High': 1}])
def test_select_options_must_be_list_or_text(options):
    with pytest.raises(ValueError, match='must be a list'):
        CustomField.from_dict({'name': 'Priority', 'type': 'select', 'options': options})


@pytest.mark.parametrize('raw,message', [
    ({'Hours': 'inf'}, "'Hours' must be a number"),
    ({'Assignee': ['Sam', 'Lee']}, "'Assignee' must be a single value"),
])
def test_custom_values_reject_odd_shapes(raw, message):
    with pytest.raises(ValueError, match=message):
        validate_custom_values(FIELDS, raw)


def test_phase_color_must_be_hex():
    assert Phase.from_dict({'name': 'Design', 'color': '#A1b2C3'}).color == '#A1b2C3'
    assert Phase.from_dict({'name': 'Design'}).color == '#6b7280'
    for color in ('red', '#fff', '#12345g', '#123456; background: url(x)'):
        with pytest.raises(ValueError, match='expected #rrggbb'):
            Phase.from_dict({'name': 'Design', 'color': color})
