import logging
import uuid
from datetime import datetime, UTC

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash

from .models import CustomField, Phase, load_task

logger = logging.getLogger(__name__)

# SQLAlchemy instance
db = SQLAlchemy()

ROLES = ('admin', 'staff', 'client')
BUDGET_ITEM_TYPES = ('original', 'change_order')
NOTE_TAGS = ('general', 'update', 'issue', 'milestone')
PERMIT_TYPES = ('Electrical', 'Building', 'Planning', 'Fire', 'Other')
PERMIT_STATUSES = ('Pending', 'In Review', 'Approved', 'Corrections Required')
UTILITY_STATUSES = ('Pending', 'In Review', 'Approved', 'Denied')


def _uuid():
    return str(uuid.uuid4())


def _now():
    return datetime.now(UTC)


def _iso(value):
    return value.isoformat() if value else None


class UserDB(db.Model, UserMixin):
    __tablename__ = 'users'
    id = db.Column(db.String(64), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(200))
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default='client', nullable=False)
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now)

    @property
    def is_admin(self):
        return self.role == 'admin'

    @property
    def display_name(self):
        return self.full_name or self.email or 'Unknown'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class ProjectDB(db.Model):
    __tablename__ = 'projects'
    id = db.Column(db.String(64), primary_key=True, default=_uuid)
    owner_id = db.Column(db.String(64), db.ForeignKey('users.id'))
    name = db.Column(db.String(300), nullable=False)
    client = db.Column(db.String(300), default='')
    # Embedded structured columns
    phases = db.Column(db.JSON, default=list)
    tasks = db.Column(db.JSON, default=list)
    custom_fields = db.Column(db.JSON, default=list)
    progress_status = db.Column(db.String(20), default='Pending', nullable=False)
    progress_percent = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now)

    budget_items = db.relationship('BudgetItemDB', backref='project', lazy=True, cascade='all, delete-orphan')
    notes = db.relationship('NoteDB', backref='project', lazy=True, cascade='all, delete-orphan')
    permits = db.relationship('PermitDB', backref='project', lazy=True, cascade='all, delete-orphan')
    utilities = db.relationship('UtilityDB', backref='project', lazy=True, cascade='all, delete-orphan')

    def phase_records(self):
        return [Phase(p['id'], p['name'], p.get('color', '')) for p in self.phases or []]

    def task_records(self):
        return [load_task(t) for t in self.tasks or []]

    def field_records(self):
        return [CustomField(f['id'], f['name'], f.get('type', 'text'), f.get('options'), f.get('required', False))
                for f in self.custom_fields or []]

    def summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'client': self.client,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'task_count': len(self.tasks or []),
        }

    def to_dict(self):
        out = self.summary()
        out.update({
            'owner_id': self.owner_id,
            'phases': list(self.phases or []),
            'tasks': list(self.tasks or []),
            'custom_fields': list(self.custom_fields or []),
            'progress_status': self.progress_status,
            'progress_percent': self.progress_percent,
        })
        return out


class BudgetItemDB(db.Model):
    __tablename__ = 'budget_items'
    id = db.Column(db.String(64), primary_key=True, default=_uuid)
    project_id = db.Column(db.String(64), db.ForeignKey('projects.id'), nullable=False, index=True)
    description = db.Column(db.String(500), nullable=False)
    amount = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    item_type = db.Column(db.String(20), nullable=False, default='original')
    created_by = db.Column(db.String(64), db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=_now)

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'description': self.description,
            'amount': float(self.amount or 0),
            'item_type': self.item_type,
            'created_by': self.created_by,
            'created_at': _iso(self.created_at),
        }


class NoteDB(db.Model):
    __tablename__ = 'project_notes'
    id = db.Column(db.String(64), primary_key=True, default=_uuid)
    project_id = db.Column(db.String(64), db.ForeignKey('projects.id'), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    note_tag = db.Column(db.String(20), nullable=False, default='general')
    author_id = db.Column(db.String(64), db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now)

    author = db.relationship('UserDB', lazy='joined')

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'content': self.content,
            'note_tag': self.note_tag or 'general',
            'author_id': self.author_id,
            'author_name': self.author.display_name if self.author else 'Unknown',
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class PermitDB(db.Model):
    __tablename__ = 'project_permits'
    id = db.Column(db.String(64), primary_key=True, default=_uuid)
    project_id = db.Column(db.String(64), db.ForeignKey('projects.id'), nullable=False, index=True)
    permit_type = db.Column(db.String(40), nullable=False)
    status = db.Column(db.String(40), nullable=False, default='Pending')
    submitted_date = db.Column(db.String(10))
    approved_date = db.Column(db.String(10))
    permit_number = db.Column(db.String(120))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now)

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'permit_type': self.permit_type,
            'status': self.status,
            'submitted_date': self.submitted_date,
            'approved_date': self.approved_date,
            'permit_number': self.permit_number,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class UtilityDB(db.Model):
    __tablename__ = 'project_utilities'
    id = db.Column(db.String(64), primary_key=True, default=_uuid)
    project_id = db.Column(db.String(64), db.ForeignKey('projects.id'), nullable=False, index=True)
    utility_name = db.Column(db.String(200), nullable=False)
    application_status = db.Column(db.String(40), nullable=False, default='Pending')
    application_submitted_date = db.Column(db.String(10))
    design_review_status = db.Column(db.String(120))
    meter_set_date = db.Column(db.String(10))
    service_activation_date = db.Column(db.String(10))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now)

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'utility_name': self.utility_name,
            'application_status': self.application_status,
            'application_submitted_date': self.application_submitted_date,
            'design_review_status': self.design_review_status,
            'meter_set_date': self.meter_set_date,
            'service_activation_date': self.service_activation_date,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


# Utility seed for first admin user if none exists

def ensure_admin_user(db_session, email, password):
    if not email or not password:
        return None
    if UserDB.query.filter_by(role='admin').first():
        return None
    u = UserDB.query.filter_by(email=email.lower()).first()
    if u:
        u.role = 'admin'
    else:
        u = UserDB(email=email.lower(), full_name='Administrator',
                   password_hash=generate_password_hash(password), role='admin')
        db_session.add(u)
    db_session.commit()
    logger.info('Seeded admin user %s', u.email)
    return u
