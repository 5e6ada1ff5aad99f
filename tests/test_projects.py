import json

import pytest

from conftest import SAMPLE_PROJECT, login, make_user
from ev_viewer.db import db, ProjectDB, BudgetItemDB


def test_create_project_stores_validated_content(admin_client, project_id):
    project = admin_client.get(f'/projects/{project_id}').get_json()
    assert project['name'] == 'Depot Chargers'
    assert project['client'] == 'City Transit'
    assert project['progress_status'] == 'Pending'
    assert project['progress_percent'] == 0
    assert [p['id'] for p in project['phases']] == ['p1', 'p2']
    survey = project['tasks'][0]
    assert survey['custom_fields'] == {
        'f1': {'type': 'text', 'value': 'Sam'},
        'f2': {'type': 'select', 'value': 'High'},
    }


def test_new_project_gets_default_phases(admin_client):
    resp = admin_client.post('/projects', json={'name': 'Hotel Lot'})
    assert resp.status_code == 201
    phases = resp.get_json()['project']['phases']
    assert [p['name'] for p in phases] == ['Contract & Design', 'Permitting', 'Construction & Execution']
    assert resp.get_json()['project']['tasks'] == []


@pytest.mark.parametrize('payload,message', [
    ({'name': '  '}, 'Please enter a project name'),
    ({'name': 'X', 'tasks': [{'name': 'T', 'start_date': '2024-01-01'}]}, 'Please fill task name'),
    ({'name': 'X', 'tasks': [{'name': 'T', 'start_date': '2024-01-01', 'end_date': 'soon'}]}, 'Invalid end date'),
    ({'name': 'X', 'progress_status': 'Done'}, 'Unknown progress status'),
    ({'name': 'X', 'progress_percent': 'inf'}, 'Progress percent must be a number'),
    ({'name': 'X', 'tasks': ['oops']}, 'Each task must be an object'),
    ({'name': 'X', 'phases': ['Design']}, 'Each phase must be an object'),
    ({'name': 'X', 'custom_fields': [{'name': 'P', 'type': 'select', 'options': 5}]}, 'must be a list'),
    ({'name': 'X', 'tasks': [{'name': 'T', 'start_date': '2024-01-01', 'end_date': '2024-01-02',
                              'custom_fields': ['a']}]}, 'custom fields must be an object'),
    ({'name': 'X', 'phases': [{'name': 'Design', 'color': 'red'}]}, 'expected #rrggbb'),
])
def test_create_project_validation(admin_client, payload, message):
    resp = admin_client.post('/projects', json=payload)
    assert resp.status_code == 400
    assert message in resp.get_json()['error']


@pytest.mark.parametrize('role', ['staff', 'client'])
def test_only_admin_may_write(app, client, role, project_id):
    make_user(app, f'{role}@example.com', role=role)
    login(client, f'{role}@example.com')
    assert client.get('/projects').status_code == 200
    assert client.get(f'/projects/{project_id}').status_code == 200
    assert client.post('/projects', json={'name': 'Nope'}).status_code == 403
    assert client.put(f'/projects/{project_id}', json={'name': 'Nope'}).status_code == 403
    assert client.delete(f'/projects/{project_id}').status_code == 403


def test_anonymous_requests_are_rejected(client):
    resp = client.get('/projects')
    assert resp.status_code == 401
    assert resp.get_json() == {'success': False, 'error': 'Auth required'}


def test_project_summaries(admin_client, project_id):
    admin_client.post('/projects', json={'name': 'Second'})
    summaries = admin_client.get('/projects').get_json()
    assert [s['name'] for s in summaries] == ['Second', 'Depot Chargers']
    assert summaries[1]['task_count'] == 2
    assert set(summaries[1]) == {'id', 'name', 'client', 'created_at', 'updated_at', 'task_count'}


def test_update_keeps_omitted_fields(admin_client, project_id):
    resp = admin_client.put(f'/projects/{project_id}', json={'client': 'Metro Transit', 'progress_percent': 140,
                                                            'progress_status': 'In Progress'})
    assert resp.status_code == 200
    project = resp.get_json()['project']
    assert project['name'] == 'Depot Chargers'
    assert project['client'] == 'Metro Transit'
    assert project['progress_percent'] == 100
    assert project['progress_status'] == 'In Progress'
    assert len(project['tasks']) == 2


def test_update_rechecks_tasks_against_new_phases(admin_client, project_id):
    resp = admin_client.put(f'/projects/{project_id}', json={'phases': [{'id': 'p1', 'name': 'Design'}]})
    assert resp.status_code == 400
    assert 'Unknown phase' in resp.get_json()['error']
    project = admin_client.get(f'/projects/{project_id}').get_json()
    assert len(project['phases']) == 2


def test_update_rejects_values_for_removed_fields(admin_client, project_id):
    resp = admin_client.put(f'/projects/{project_id}', json={'custom_fields': []})
    assert resp.status_code == 400
    assert 'Unknown custom field' in resp.get_json()['error']


def test_delete_project_removes_records(app, admin_client, project_id):
    admin_client.post(f'/projects/{project_id}/budget', json={'description': 'Chargers', 'amount': '1000'})
    assert admin_client.delete(f'/projects/{project_id}').status_code == 200
    assert admin_client.get(f'/projects/{project_id}').status_code == 404
    with app.app_context():
        assert db.session.get(ProjectDB, project_id) is None
        assert BudgetItemDB.query.count() == 0


def test_layout_json(admin_client, project_id):
    layout = admin_client.get(f'/projects/{project_id}/layout').get_json()
    assert layout['start'] == '2024-01-01'
    assert layout['end'] == '2024-03-31'
    assert [m['label'] for m in layout['months']] == ['JAN 24', 'FEB 24', 'MAR 24']
    assert layout['months'][1]['flex'] == pytest.approx(29 / 91)
    survey = layout['phases'][0]['bars'][0]
    assert survey['left'] == 0
    assert survey['width'] == pytest.approx(31 / 91 * 100)
    permit = layout['phases'][1]['bars'][0]
    assert permit['milestone'] is True
    assert permit['left'] == pytest.approx(90 / 91 * 100)


def test_layout_for_empty_project(admin_client):
    pid = admin_client.post('/projects', json={'name': 'Empty'}).get_json()['project']['id']
    assert admin_client.get(f'/projects/{pid}/layout').get_json() is None


def test_gantt_html(admin_client, project_id):
    resp = admin_client.get(f'/projects/{project_id}/gantt')
    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert 'Depot Chargers' in html
    assert 'JAN 24' in html and 'MAR 24' in html
    assert 'CONTRACT &amp; DESIGN' in html
    assert 'class="bar milestone"' in html
    assert 'Jan 1, 2024' in html


def test_gantt_images(admin_client, project_id):
    png = admin_client.get(f'/projects/{project_id}/gantt.png')
    assert png.status_code == 200
    assert png.mimetype == 'image/png'
    assert png.data.startswith(b'\x89PNG')
    pdf = admin_client.get(f'/projects/{project_id}/gantt.pdf')
    assert pdf.mimetype == 'application/pdf'
    assert pdf.data.startswith(b'%PDF')
    assert admin_client.get(f'/projects/{project_id}/gantt.svgz').status_code == 404


def test_gantt_image_without_tasks(admin_client):
    pid = admin_client.post('/projects', json={'name': 'Empty'}).get_json()['project']['id']
    assert admin_client.get(f'/projects/{pid}/gantt.png').data.startswith(b'\x89PNG')


def test_json_export_download(admin_client, project_id):
    resp = admin_client.get(f'/projects/{project_id}/export')
    assert resp.status_code == 200
    assert 'Depot_Chargers_gantt.json' in resp.headers['Content-Disposition']
    data = json.loads(resp.data)
    assert data['name'] == SAMPLE_PROJECT['name']
    assert len(data['tasks']) == 2
    assert 'owner_id' not in data
