import io
import logging

from flask import Blueprint, Response, jsonify, send_file
from flask_login import login_required, current_user

from .auth import write_required
from .db import db, ProjectDB
from .export import export_bytes, export_filename
from .gantt import EXPORT_FORMATS, render_gantt_html, render_gantt_image
from .models import parse_custom_fields, parse_phases, parse_progress, parse_tasks
from .timeline import build_timeline
from .web import commit_or_error, get_or_404, invalid, json_error, request_data

logger = logging.getLogger(__name__)

projects_bp = Blueprint('projects', __name__, url_prefix='/projects')


def apply_project_data(project, data, creating=False):
    """Validate ``data`` and copy it onto ``project``.

    Omitted keys keep their current value on update. When phases or custom
    fields change, the stored tasks are re-checked against the new
    definitions.
    """
    if creating or 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            raise ValueError('Please enter a project name')
        project.name = name
    if creating or 'client' in data:
        project.client = (data.get('client') or '').strip()

    if creating or 'phases' in data:
        phases = parse_phases(data.get('phases'))
    else:
        phases = project.phase_records()
    if creating or 'custom_fields' in data:
        fields = parse_custom_fields(data.get('custom_fields'))
    else:
        fields = project.field_records()

    if 'tasks' in data:
        tasks = parse_tasks(data.get('tasks'), phases, fields)
    elif creating:
        tasks = []
    else:
        tasks = parse_tasks([t.to_dict() for t in project.task_records()], phases, fields)

    status, percent = parse_progress(data.get('progress_status'), data.get('progress_percent'))
    project.phases = [p.to_dict() for p in phases]
    project.custom_fields = [f.to_dict() for f in fields]
    project.tasks = [t.to_dict() for t in tasks]
    if status is not None:
        project.progress_status = status
    if percent is not None:
        project.progress_percent = percent
    return project


def _layout(project):
    return build_timeline(project.phase_records(), project.task_records())


@projects_bp.get('')
@login_required
def list_projects():
    projects = ProjectDB.query.order_by(ProjectDB.updated_at.desc()).all()
    return jsonify([p.summary() for p in projects])


@projects_bp.post('')
@login_required
@write_required
def create_project():
    project = ProjectDB(owner_id=current_user.get_id())
    try:
        apply_project_data(project, request_data(), creating=True)
    except ValueError as e:
        return invalid(e)
    db.session.add(project)
    failed = commit_or_error('save project')
    if failed:
        return failed
    logger.info('Project %s created by %s', project.id, current_user.get_id())
    return jsonify({'success': True, 'project': project.to_dict()}), 201


@projects_bp.get('/<project_id>')
@login_required
def get_project(project_id):
    return jsonify(get_or_404(ProjectDB, project_id).to_dict())


@projects_bp.put('/<project_id>')
@login_required
@write_required
def update_project(project_id):
    project = get_or_404(ProjectDB, project_id)
    try:
        apply_project_data(project, request_data())
    except ValueError as e:
        db.session.rollback()
        return invalid(e)
    failed = commit_or_error('save project')
    if failed:
        return failed
    return jsonify({'success': True, 'project': project.to_dict()})


@projects_bp.delete('/<project_id>')
@login_required
@write_required
def delete_project(project_id):
    project = get_or_404(ProjectDB, project_id)
    db.session.delete(project)
    failed = commit_or_error('delete project')
    if failed:
        return failed
    logger.info('Project %s deleted by %s', project_id, current_user.get_id())
    return jsonify({'success': True})


@projects_bp.get('/<project_id>/layout')
@login_required
def project_layout(project_id):
    layout = _layout(get_or_404(ProjectDB, project_id))
    return jsonify(layout.to_dict() if layout else None)


@projects_bp.get('/<project_id>/gantt')
@login_required
def gantt_page(project_id):
    project = get_or_404(ProjectDB, project_id)
    return render_gantt_html(project.name, project.client, _layout(project))


@projects_bp.get('/<project_id>/gantt.<fmt>')
@login_required
def gantt_export(project_id, fmt):
    if fmt not in EXPORT_FORMATS:
        return json_error(f"Unsupported export format '{fmt}'", 404)
    project = get_or_404(ProjectDB, project_id)
    data, mimetype = render_gantt_image(project.name, project.client, _layout(project), fmt)
    return Response(data, mimetype=mimetype)


@projects_bp.get('/<project_id>/export')
@login_required
def download_project(project_id):
    project = get_or_404(ProjectDB, project_id)
    buf = io.BytesIO(export_bytes(project))
    return send_file(buf, as_attachment=True, download_name=export_filename(project.name),
                     mimetype='application/json')
