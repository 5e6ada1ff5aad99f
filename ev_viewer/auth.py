import logging
from functools import wraps

from flask import Blueprint, g, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import generate_password_hash, check_password_hash

from .db import db, UserDB, ROLES
from .session import can_write
from .web import commit_or_error, get_or_404, json_error, request_data

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def current_role():
    ctx = g.get('auth')
    return ctx.role if ctx is not None else None


def write_required(f):
    """Reject mutations from anyone whose role cannot write."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return json_error('Auth required', 401)
        if not can_write(current_role()):
            logger.warning('Write denied for user %s (role=%s) on %s',
                           current_user.get_id(), current_role(), request.path)
            return json_error('Editing is restricted to admins', 403)
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return json_error('Auth required', 401)
        if current_role() != 'admin':
            return json_error('Admin access required', 403)
        return f(*args, **kwargs)
    return decorated_function


def password_errors(pw: str):
    req = []
    if len(pw) < 8: req.append('8+ chars')
    if not any(c.isalpha() for c in pw): req.append('letter')
    if not any(c.isdigit() for c in pw): req.append('digit')
    return req


@auth_bp.post('/register')
def register():
    data = request_data()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    full_name = (data.get('full_name') or '').strip() or None
    if not email or not password:
        return json_error('Email and password are required.')
    perrs = password_errors(password)
    if perrs:
        return json_error('Password must contain: ' + ', '.join(perrs))
    if UserDB.query.filter_by(email=email).first():
        return json_error('Email already registered.', 409)
    user = UserDB(email=email, full_name=full_name, password_hash=generate_password_hash(password), role='client')
    db.session.add(user)
    failed = commit_or_error('register user')
    if failed:
        return failed
    logger.info('Registered user %s', email)
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth_bp.post('/login')
def login():
    data = request_data()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    user = UserDB.query.filter_by(email=email).first() if email else None
    if user and password and check_password_hash(user.password_hash, password):
        login_user(user)
        return jsonify({'success': True, 'user': user.to_dict(), 'can_write': g.auth.can_write})
    logger.info('Failed login for %s', email or '<blank>')
    return json_error('Invalid email or password.', 401)


@auth_bp.post('/logout')
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@auth_bp.get('/me')
@login_required
def me():
    return jsonify({'user': current_user.to_dict(), 'can_write': g.auth.can_write})


# --- User management API (admin only) ---

@auth_bp.get('/users')
@login_required
@admin_required
def list_users():
    users = UserDB.query.order_by(UserDB.created_at.desc()).all()
    return jsonify([u.to_dict() for u in users])


@auth_bp.post('/users/<user_id>/role')
@login_required
@write_required
def set_role(user_id):
    role = (request_data().get('role') or '').strip()
    if role not in ROLES:
        return json_error(f"Role must be one of: {', '.join(ROLES)}")
    target = get_or_404(UserDB, user_id)
    # Prevent demoting last admin
    if target.role == 'admin' and role != 'admin':
        other_admins = UserDB.query.filter(UserDB.role == 'admin', UserDB.id != target.id).count()
        if other_admins == 0:
            return json_error('Cannot remove the last admin', 409)
    target.role = role
    failed = commit_or_error('update role')
    if failed:
        return failed
    logger.info('User %s role set to %s by %s', target.email, role, current_user.get_id())
    return jsonify({'success': True, 'user': target.to_dict()})
