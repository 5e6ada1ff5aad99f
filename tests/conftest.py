import pytest
from werkzeug.security import generate_password_hash

from ev_viewer import create_app
from ev_viewer.db import db, UserDB

PASSWORD = 'Charge1234'


@pytest.fixture()
def app():
    app = create_app(testing=True, config={'SECRET_KEY': 'test-secret', 'TIMEZONE': 'UTC'})
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def make_user(app, email, role='client', full_name=None):
    with app.app_context():
        u = UserDB(email=email, full_name=full_name, password_hash=generate_password_hash(PASSWORD), role=role)
        db.session.add(u)
        db.session.commit()
        return u.id


def login(client, email):
    resp = client.post('/auth/login', json={'email': email, 'password': PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return resp


@pytest.fixture()
def admin_client(app, client):
    make_user(app, 'admin@example.com', role='admin', full_name='Ada Admin')
    login(client, 'admin@example.com')
    return client


SAMPLE_PROJECT = {
    'name': 'Depot Chargers',
    'client': 'City Transit',
    'phases': [
        {'id': 'p1', 'name': 'Contract & Design', 'color': '#3b82f6'},
        {'id': 'p2', 'name': 'Permitting', 'color': '#f59e0b'},
    ],
    'custom_fields': [
        {'id': 'f1', 'name': 'Assignee', 'type': 'text'},
        {'id': 'f2', 'name': 'Priority', 'type': 'select', 'options': ['High', 'Low']},
    ],
    'tasks': [
        {'id': 't1', 'phase_id': 'p1', 'name': 'Site survey', 'start_date': '2024-01-01', 'end_date': '2024-01-31',
         'custom_fields': {'Assignee': 'Sam', 'f2': 'High'}},
        {'id': 't2', 'phase_id': 'p2', 'name': 'Permit issued', 'start_date': '2024-03-31', 'end_date': '2024-03-31'},
    ],
}


@pytest.fixture()
def project_id(admin_client):
    resp = admin_client.post('/projects', json=SAMPLE_PROJECT)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['project']['id']
