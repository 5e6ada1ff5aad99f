"""Per-project records: budget line items, notes, permits and utilities."""
import logging
import math

from flask import Blueprint, current_app, jsonify
from flask_login import login_required, current_user

from .auth import write_required
from .dates import is_calendar_date, local_today
from .db import (db, ProjectDB, BudgetItemDB, NoteDB, PermitDB, UtilityDB,
                 BUDGET_ITEM_TYPES, NOTE_TAGS, PERMIT_TYPES, PERMIT_STATUSES, UTILITY_STATUSES)
from .web import commit_or_error, get_or_404, invalid, request_data

logger = logging.getLogger(__name__)

records_bp = Blueprint('records', __name__)


def _text(data, key):
    value = data.get(key)
    return str(value).strip() if value is not None else ''


def _optional_text(data, key):
    return _text(data, key) or None


def _optional_date(data, key):
    value = _text(data, key)
    if not value:
        return None
    if not is_calendar_date(value):
        raise ValueError(f"Invalid date for {key.replace('_', ' ')} (expected YYYY-MM-DD)")
    return value


def _choice(data, key, choices, default=None):
    value = _text(data, key) or default
    if value not in choices:
        raise ValueError(f"{key.replace('_', ' ').capitalize()} must be one of: {', '.join(choices)}")
    return value


def _amount(data):
    try:
        amount = float(_text(data, 'amount'))
    except ValueError:
        raise ValueError('Please enter a valid amount') from None
    if not math.isfinite(amount):
        raise ValueError('Please enter a valid amount')
    return amount


def _created(record, action):
    db.session.add(record)
    failed = commit_or_error(action)
    if failed:
        return failed
    return jsonify({'success': True, 'item': record.to_dict()}), 201


def _saved(record, action):
    failed = commit_or_error(action)
    if failed:
        return failed
    return jsonify({'success': True, 'item': record.to_dict()})


def _deleted(record, action):
    db.session.delete(record)
    failed = commit_or_error(action)
    if failed:
        return failed
    return jsonify({'success': True})


############################################
# Budget                                   #
############################################

def budget_totals(items):
    original = sum(i.amount or 0 for i in items if i.item_type == 'original')
    change_orders = sum(i.amount or 0 for i in items if i.item_type == 'change_order')
    return {
        'original_total': original,
        'change_order_total': change_orders,
        'grand_total': original + change_orders,
        'count': len(items),
    }


def _budget_items(project_id):
    return (BudgetItemDB.query.filter_by(project_id=project_id)
            .order_by(BudgetItemDB.created_at.asc()).all())


@records_bp.get('/projects/<project_id>/budget')
@login_required
def list_budget(project_id):
    get_or_404(ProjectDB, project_id)
    return jsonify([i.to_dict() for i in _budget_items(project_id)])


@records_bp.get('/projects/<project_id>/budget/summary')
@login_required
def budget_summary(project_id):
    get_or_404(ProjectDB, project_id)
    return jsonify(budget_totals(_budget_items(project_id)))


@records_bp.post('/projects/<project_id>/budget')
@login_required
@write_required
def create_budget_item(project_id):
    get_or_404(ProjectDB, project_id)
    data = request_data()
    try:
        description = _text(data, 'description')
        if not description:
            raise ValueError('Description is required')
        item = BudgetItemDB(
            project_id=project_id,
            description=description,
            amount=_amount(data),
            item_type=_choice(data, 'item_type', BUDGET_ITEM_TYPES, 'original'),
            created_by=current_user.get_id(),
        )
    except ValueError as e:
        return invalid(e)
    return _created(item, 'add budget item')


@records_bp.put('/budget/<item_id>')
@login_required
@write_required
def update_budget_item(item_id):
    item = get_or_404(BudgetItemDB, item_id)
    data = request_data()
    try:
        if 'description' in data:
            if not _text(data, 'description'):
                raise ValueError('Description is required')
            item.description = _text(data, 'description')
        if 'amount' in data:
            item.amount = _amount(data)
        if 'item_type' in data:
            item.item_type = _choice(data, 'item_type', BUDGET_ITEM_TYPES)
    except ValueError as e:
        db.session.rollback()
        return invalid(e)
    return _saved(item, 'update budget item')


@records_bp.delete('/budget/<item_id>')
@login_required
@write_required
def delete_budget_item(item_id):
    return _deleted(get_or_404(BudgetItemDB, item_id), 'delete budget item')


############################################
# Notes                                    #
############################################

@records_bp.get('/projects/<project_id>/notes')
@login_required
def list_notes(project_id):
    get_or_404(ProjectDB, project_id)
    notes = NoteDB.query.filter_by(project_id=project_id).order_by(NoteDB.created_at.desc()).all()
    return jsonify([n.to_dict() for n in notes])


@records_bp.post('/projects/<project_id>/notes')
@login_required
@write_required
def create_note(project_id):
    get_or_404(ProjectDB, project_id)
    data = request_data()
    try:
        content = _text(data, 'content')
        if not content:
            raise ValueError('Note content is required')
        note = NoteDB(
            project_id=project_id,
            content=content,
            note_tag=_choice(data, 'note_tag', NOTE_TAGS, 'general'),
            author_id=current_user.get_id(),
        )
    except ValueError as e:
        return invalid(e)
    return _created(note, 'add note')


@records_bp.put('/notes/<note_id>')
@login_required
@write_required
def update_note(note_id):
    note = get_or_404(NoteDB, note_id)
    data = request_data()
    try:
        if 'content' in data:
            if not _text(data, 'content'):
                raise ValueError('Note content is required')
            note.content = _text(data, 'content')
        if 'note_tag' in data:
            note.note_tag = _choice(data, 'note_tag', NOTE_TAGS, 'general')
    except ValueError as e:
        db.session.rollback()
        return invalid(e)
    return _saved(note, 'update note')


@records_bp.delete('/notes/<note_id>')
@login_required
@write_required
def delete_note(note_id):
    return _deleted(get_or_404(NoteDB, note_id), 'delete note')


############################################
# Permits                                  #
############################################

def _permit_updates(permit, data):
    if 'permit_type' in data:
        permit.permit_type = _choice(data, 'permit_type', PERMIT_TYPES)
    for key in ('submitted_date', 'approved_date'):
        if key in data:
            setattr(permit, key, _optional_date(data, key))
    for key in ('permit_number', 'notes'):
        if key in data:
            setattr(permit, key, _optional_text(data, key))
    if 'status' in data:
        status = _choice(data, 'status', PERMIT_STATUSES)
        if status == 'Approved' and permit.status != 'Approved' and 'approved_date' not in data:
            permit.approved_date = local_today(current_app.config['TIMEZONE'])
        permit.status = status


@records_bp.get('/projects/<project_id>/permits')
@login_required
def list_permits(project_id):
    get_or_404(ProjectDB, project_id)
    permits = PermitDB.query.filter_by(project_id=project_id).order_by(PermitDB.created_at.asc()).all()
    return jsonify([p.to_dict() for p in permits])


@records_bp.post('/projects/<project_id>/permits')
@login_required
@write_required
def create_permit(project_id):
    get_or_404(ProjectDB, project_id)
    data = request_data()
    permit = PermitDB(project_id=project_id, status='Pending')
    try:
        permit.permit_type = _choice(data, 'permit_type', PERMIT_TYPES)
        _permit_updates(permit, data)
    except ValueError as e:
        return invalid(e)
    return _created(permit, 'add permit')


@records_bp.put('/permits/<permit_id>')
@login_required
@write_required
def update_permit(permit_id):
    permit = get_or_404(PermitDB, permit_id)
    try:
        _permit_updates(permit, request_data())
    except ValueError as e:
        db.session.rollback()
        return invalid(e)
    return _saved(permit, 'update permit')


@records_bp.delete('/permits/<permit_id>')
@login_required
@write_required
def delete_permit(permit_id):
    return _deleted(get_or_404(PermitDB, permit_id), 'delete permit')


############################################
# Utilities                                #
############################################

UTILITY_DATES = ('application_submitted_date', 'meter_set_date', 'service_activation_date')


def _utility_updates(utility, data):
    if 'utility_name' in data:
        name = _text(data, 'utility_name')
        if not name:
            raise ValueError('Utility name is required')
        utility.utility_name = name
    if 'application_status' in data:
        utility.application_status = _choice(data, 'application_status', UTILITY_STATUSES)
    for key in UTILITY_DATES:
        if key in data:
            setattr(utility, key, _optional_date(data, key))
    for key in ('design_review_status', 'notes'):
        if key in data:
            setattr(utility, key, _optional_text(data, key))


@records_bp.get('/projects/<project_id>/utilities')
@login_required
def list_utilities(project_id):
    get_or_404(ProjectDB, project_id)
    utilities = UtilityDB.query.filter_by(project_id=project_id).order_by(UtilityDB.created_at.asc()).all()
    return jsonify([u.to_dict() for u in utilities])


@records_bp.post('/projects/<project_id>/utilities')
@login_required
@write_required
def create_utility(project_id):
    get_or_404(ProjectDB, project_id)
    data = request_data()
    utility = UtilityDB(project_id=project_id, application_status='Pending')
    try:
        if not _text(data, 'utility_name'):
            raise ValueError('Utility name is required')
        _utility_updates(utility, data)
    except ValueError as e:
        return invalid(e)
    return _created(utility, 'add utility')


@records_bp.put('/utilities/<utility_id>')
@login_required
@write_required
def update_utility(utility_id):
    utility = get_or_404(UtilityDB, utility_id)
    try:
        _utility_updates(utility, request_data())
    except ValueError as e:
        db.session.rollback()
        return invalid(e)
    return _saved(utility, 'update utility')


@records_bp.delete('/utilities/<utility_id>')
@login_required
@write_required
def delete_utility(utility_id):
    return _deleted(get_or_404(UtilityDB, utility_id), 'delete utility')
