"""
District Wi-Fi Monitor Server

A Flask web application that simulates a city-wide Wi-Fi hotspot network.
The system provides:
- District hotspot metrics driven by a timer-based random walk
- Real-time updates pushed to browsers over Socket.IO
- Role-gated (admin/user/viewer) pages with session login
- Account management, admin registration and approval
- Simulated device registry with connection logs
- Security event logging and resolution
- Activity logging and runtime settings

Database: SQLite (wifi_monitoring.db by default, see config.py)
Real-time channel: Socket.IO 'message' events carrying {type, data} envelopes
"""

import json
import logging
import random
import re
import secrets
import sqlite3
import string
import threading
import time
from functools import wraps

from flask import (
    Flask, request, jsonify, render_template_string, redirect, url_for, session
)
from flask_cors import CORS
from flask_socketio import SocketIO, emit

import config
import database
import simulator
from templates import (
    PAGE_HEAD, NAVBAR, LOGIN_TEMPLATE, SIGNUP_TEMPLATE, ADMIN_REGISTER_TEMPLATE,
    DASHBOARD_TEMPLATE, ADMIN_TEMPLATE, DEVICES_TEMPLATE, MONITOR_TEMPLATE
)

config.load_config()
logger = logging.getLogger(__name__)

# Flask application initialization
app = Flask(__name__)
app.secret_key = config.SECRET_KEY
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
# Enable Cross-Origin Resource Sharing for API endpoints
CORS(app, resources={r"/api/*": {"origins": "*"}}, supports_credentials=True)
socketio = SocketIO(app, cors_allowed_origins="*")

START_TIME = time.time()

# username -> {token, expires}; outstanding password reset tokens
password_resets = {}
reset_lock = threading.Lock()

ROLE_HOME = {
    'admin': '/admin',
    'viewer': '/viewer',
    'user': '/dashboard'
}
MIN_PASSWORD_LENGTH = 8
MAX_LIST_LIMIT = 1000
SUSPICIOUS_LOGIN_THRESHOLD = 3    # failed attempts in a session before a success is flagged
PASSWORD_RESET_TTL = 15 * 60      # seconds a reset token stays valid

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
GOV_ID_PATTERN = re.compile(r'^[A-Za-z0-9]{12}$')
UNSAFE_CHARS = re.compile(r'[<>"\'&]')

# Allowed range for numeric settings
SETTING_RULES = {
    'update_interval': (1, 3600),
    'critical_threshold': (0, 100),
    'max_logs': (1, 100000)
}

DEVICE_TYPES = ['laptop', 'mobile', 'tablet', 'desktop']
OS_TYPES = ['Windows', 'Android', 'iOS', 'Linux']


# Helpers

def sanitize_text(value):
    """Trim and strip HTML-significant characters from user-supplied text."""
    return UNSAFE_CHARS.sub('', str(value or '').strip())


def get_json_body():
    """Request JSON as a dict; anything other than a JSON object yields {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def client_ip():
    return request.remote_addr


def wants_json():
    return request.path.startswith('/api/') or request.path.startswith('/auth/')


def get_limit(default=100):
    limit = request.args.get('limit', default, type=int)
    return max(1, min(limit or default, MAX_LIST_LIMIT))


def record_activity(user_id, username, action):
    """
    Log an activity row for the current request and keep the table within max_logs.
    """
    database.log_activity(user_id, username, action, client_ip())
    try:
        max_logs = database.get_int_setting('max_logs', config.MAX_LOGS)
        database.trim_activity_logs(max_logs)
    except sqlite3.Error as e:
        logger.error(f"Error trimming activity logs: {e}")


def public_user(user):
    return {
        'id': user['id'],
        'fullname': user['fullname'],
        'email': user['email'],
        'username': user['username'],
        'role': user['role'],
        'lastLogin': user['last_login']
    }


def login_required(f):
    """
    Require a logged-in session.
    API requests get 401 JSON, page requests are redirected to the login page.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'user_id' not in session:
            if wants_json():
                return jsonify({'error': 'Unauthorized'}), 401
            return redirect(url_for('login_page'))
        return f(*args, **kwargs)
    return decorated


def role_required(*roles):
    """Require a logged-in session whose role is one of roles (403 otherwise)."""
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            if session.get('user_role') not in roles:
                if wants_json():
                    return jsonify({'error': 'Access denied'}), 403
                return 'Access denied', 403
            return f(*args, **kwargs)
        return decorated
    return decorator


def render_page(template, **context):
    navbar = render_template_string(NAVBAR)
    return render_template_string(template, head=PAGE_HEAD, navbar=navbar, **context)


def generate_registration_id():
    suffix = ''.join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(9))
    return f"REG-{int(time.time() * 1000)}-{suffix}"


def validate_gov_id(gov_id):
    """
    Government IDs are exactly 12 letters/digits with at least 2 of each.

    Returns:
        str or None: Error message, or None when valid
    """
    if not GOV_ID_PATTERN.match(gov_id):
        return 'Government ID must be exactly 12 alphanumeric characters'
    letters = sum(1 for ch in gov_id if ch.isalpha())
    digits = sum(1 for ch in gov_id if ch.isdigit())
    if letters < 2 or digits < 2:
        return 'Government ID must contain at least 2 letters and 2 numbers'
    return None


# Web Interface Routes

@app.route('/')
@app.route('/login')
def login_page():
    """Login page. Already logged-in users go straight to their role's home page."""
    if 'user_id' in session:
        return redirect(ROLE_HOME.get(session.get('user_role'), '/dashboard'))
    return render_page(LOGIN_TEMPLATE)


@app.route('/signup')
def signup_page():
    return render_page(SIGNUP_TEMPLATE)


@app.route('/admin-register')
def admin_register_page():
    return render_page(ADMIN_REGISTER_TEMPLATE)


@app.route('/dashboard')
@role_required('user', 'admin')
def dashboard_page():
    return render_page(DASHBOARD_TEMPLATE, title='Dashboard', wifi_data=simulator.get_snapshot(), read_only=False)


@app.route('/viewer')
@role_required('viewer', 'admin')
def viewer_page():
    return render_page(DASHBOARD_TEMPLATE, title='Viewer', wifi_data=simulator.get_snapshot(), read_only=True)


@app.route('/admin')
@role_required('admin')
def admin_page():
    return render_page(
        ADMIN_TEMPLATE,
        wifi_data=simulator.get_snapshot(),
        settings=database.get_all_settings()
    )


@app.route('/devices')
@login_required
def devices_page():
    return render_page(DEVICES_TEMPLATE, districts=simulator.get_snapshot()['districts'])


@app.route('/monitor')
@login_required
def monitor_page():
    return render_page(MONITOR_TEMPLATE)


@app.route('/logout')
def logout_page():
    if 'user_id' in session:
        record_activity(session.get('user_id'), session.get('username'), 'User logged out')
    session.clear()
    return redirect(url_for('login_page'))


# Authentication API Endpoints

@app.route('/auth/login', methods=['POST'])
@app.route('/api/auth/login', methods=['POST'])
def login():
    """
    Authenticate a user and start a session.

    Failed attempts are counted per session and recorded as 'failed_login'
    security events. A successful login after more than
    SUSPICIOUS_LOGIN_THRESHOLD failures is recorded as 'suspicious_login'.

    Expected JSON payload:
        username (str): Account username
        password (str): Account password
        loginType (str, optional): 'user' (default) or 'admin'

    Returns:
        JSON: {success, redirect, user} or error details
    """
    data = get_json_body()
    username = data.get('username')
    password = data.get('password')
    login_type = data.get('loginType', 'user')

    if not username or not password or not isinstance(password, str):
        return jsonify({'error': 'Username and password are required'}), 400

    if not isinstance(username, str) or UNSAFE_CHARS.search(username):
        return jsonify({'error': 'Invalid username'}), 400
    sanitized_username = username.strip()

    try:
        user = database.authenticate_user(sanitized_username, password, login_type)

        if user is None:
            session['login_attempts'] = session.get('login_attempts', 0) + 1
            database.create_security_event({
                'event_type': 'failed_login',
                'severity': 'low',
                'ip_address': client_ip(),
                'description': f"Failed login attempt for user: {sanitized_username}"
            })
            record_activity(None, sanitized_username, f"Failed login attempt ({login_type})")
            return jsonify({'error': 'Invalid credentials'}), 401

        if user['status'] == 'pending_verification':
            return jsonify({
                'error': 'Admin account is pending verification. Please contact system administrator.',
                'pendingVerification': True
            }), 403

        failed_attempts = session.get('login_attempts', 0)
        if failed_attempts > SUSPICIOUS_LOGIN_THRESHOLD:
            database.create_security_event({
                'event_type': 'suspicious_login',
                'severity': 'medium',
                'ip_address': client_ip(),
                'description': (
                    f"Multiple failed login attempts ({failed_attempts}) before successful "
                    f"login for user: {sanitized_username}"
                )
            })

        session.clear()
        session['user_id'] = user['id']
        session['username'] = user['username']
        session['user_role'] = user['role']
        session['login_type'] = login_type

        record_activity(user['id'], user['username'], 'User logged in')

        return jsonify({
            'success': True,
            'message': 'Login successful',
            'redirect': ROLE_HOME.get(user['role'], '/dashboard'),
            'user': public_user(user)
        })
    except Exception as e:
        logger.error(f"Login error: {e}")
        return jsonify({'error': 'Login failed'}), 500


@app.route('/auth/logout', methods=['POST'])
@app.route('/api/auth/logout', methods=['POST'])
def logout():
    if 'user_id' in session:
        record_activity(session.get('user_id'), session.get('username'), 'User logged out')
    session.clear()
    return jsonify({'success': True, 'message': 'Logged out'})


@app.route('/auth/register', methods=['POST'])
@app.route('/api/auth/register', methods=['POST'])
def register():
    """
    Create a user or viewer account.

    Admin accounts can only be created here by a logged-in admin; everyone
    else goes through /api/auth/admin-register and approval.

    Expected JSON payload:
        fullname, email, username, role ('user', 'viewer' or 'admin'), password

    Returns:
        JSON: Created account (201) or error details
    """
    data = get_json_body()
    required_fields = ['fullname', 'email', 'username', 'role', 'password']

    if not all(data.get(field) for field in required_fields):
        return jsonify({'error': 'All fields are required'}), 400

    password = data['password']
    role = data['role']
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({'error': f'Password must be at least {MIN_PASSWORD_LENGTH} characters long'}), 400
    if role not in database.ROLES:
        return jsonify({'error': 'Invalid role'}), 400

    fullname = sanitize_text(data['fullname'])
    email = str(data['email']).strip().lower()
    username = sanitize_text(data['username'])

    if not EMAIL_PATTERN.match(email):
        return jsonify({'error': 'Invalid email address'}), 400
    if not username or not fullname:
        return jsonify({'error': 'All fields are required'}), 400
    if role == 'admin' and session.get('user_role') != 'admin':
        return jsonify({'error': 'Admin accounts must be registered through admin registration'}), 403

    try:
        if database.get_user_by_username(username):
            return jsonify({'error': 'Username already exists'}), 409
        if database.get_user_by_email(email):
            return jsonify({'error': 'Email already registered'}), 409

        user_id = database.create_user({
            'fullname': fullname,
            'email': email,
            'username': username,
            'role': role,
            'password': password
        })
    except sqlite3.IntegrityError:
        return jsonify({'error': 'Username or email already exists'}), 409
    except Exception as e:
        logger.error(f"Registration error: {e}")
        return jsonify({'error': 'Failed to create user'}), 500

    if 'user_id' in session:
        record_activity(session['user_id'], session.get('username'), f"Created new user: {username} ({role})")
    else:
        record_activity(user_id, username, f"User registered ({role})")

    return jsonify({
        'success': True,
        'message': 'User created successfully',
        'userId': user_id,
        'user': {'id': user_id, 'fullname': fullname, 'email': email, 'username': username, 'role': role}
    }), 201


@app.route('/api/auth/admin-register', methods=['POST'])
def admin_register():
    """
    Submit an admin registration with government ID verification.

    The account is created inactive with status 'pending_verification' and
    must be approved by an existing admin.

    Expected JSON payload:
        fullname, email, username, govId, department, password

    Returns:
        JSON: registrationId and userId (201) or error details
    """
    data = get_json_body()
    required_fields = ['fullname', 'email', 'username', 'govId', 'department', 'password']

    if not all(data.get(field) for field in required_fields):
        return jsonify({'error': 'All fields are required for admin registration'}), 400

    password = data['password']
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({'error': f'Password must be at least {MIN_PASSWORD_LENGTH} characters long'}), 400

    gov_id = str(data['govId']).strip()
    gov_id_error = validate_gov_id(gov_id)
    if gov_id_error:
        return jsonify({'error': gov_id_error}), 400

    fullname = sanitize_text(data['fullname'])
    email = str(data['email']).strip().lower()
    username = sanitize_text(data['username'])
    gov_id = gov_id.upper()

    if not EMAIL_PATTERN.match(email):
        return jsonify({'error': 'Invalid email address'}), 400

    try:
        if database.get_user_by_username(username):
            return jsonify({'error': 'Username already exists'}), 409
        if database.get_user_by_email(email):
            return jsonify({'error': 'Email already registered'}), 409
        if database.get_admin_by_gov_id(gov_id):
            return jsonify({'error': 'Government ID already registered'}), 409

        registration_id = generate_registration_id()
        user_id = database.create_admin({
            'fullname': fullname,
            'email': email,
            'username': username,
            'password': password,
            'department': sanitize_text(data['department']),
            'govId': gov_id,
            'registrationId': registration_id,
            'status': 'pending_verification',
            'isActive': False
        })

        record_activity(user_id, username, 'Admin registration submitted')
        database.create_security_event({
            'event_type': 'admin_registration',
            'severity': 'medium',
            'ip_address': client_ip(),
            'description': f"Admin registration submitted: {username} ({registration_id})"
        })
    except sqlite3.IntegrityError:
        return jsonify({'error': 'Username, email or government ID already registered'}), 409
    except Exception as e:
        logger.error(f"Admin registration error: {e}")
        return jsonify({'error': 'Admin registration failed'}), 500

    return jsonify({
        'success': True,
        'message': 'Admin registration submitted successfully. Pending verification.',
        'registrationId': registration_id,
        'userId': user_id
    }), 201


@app.route('/auth/forgot-password', methods=['POST'])
def forgot_password():
    """
    Start a password reset.

    There is no mail delivery in the simulation: the one-time token is written
    to the server log for the operator to hand over, and is never returned in
    the response. A new request replaces any earlier token for the account.
    """
    data = get_json_body()
    username = data.get('username')
    if not username or not isinstance(username, str):
        return jsonify({'error': 'Username is required'}), 400
    username = username.strip()

    try:
        user = database.get_user_by_username(username)
    except Exception as e:
        logger.error(f"Password reset error: {e}")
        return jsonify({'error': 'Password reset failed'}), 500

    if user is None:
        return jsonify({'error': 'Username not found'}), 404

    token = secrets.token_urlsafe(24)
    with reset_lock:
        password_resets[user['username']] = {
            'token': token,
            'expires': time.time() + PASSWORD_RESET_TTL
        }
    logger.warning(f"Password reset token for {user['username']}: {token} (valid {PASSWORD_RESET_TTL // 60} min)")
    record_activity(user['id'], user['username'], 'Password reset requested')
    return jsonify({'success': True, 'message': 'Password reset instructions sent'})


def consume_reset_token(username, token):
    """True when token is the live reset token for username; a match is single-use."""
    with reset_lock:
        pending = password_resets.get(username)
        if pending is None:
            return False
        if pending['expires'] < time.time():
            password_resets.pop(username, None)
            return False
        if not isinstance(token, str) or not secrets.compare_digest(token, pending['token']):
            return False
        password_resets.pop(username, None)
        return True


@app.route('/auth/reset-password', methods=['POST'])
def reset_password():
    data = get_json_body()
    username = data.get('username')
    new_password = data.get('newPassword')
    token = data.get('resetToken')

    if not username or not isinstance(username, str) or not new_password:
        return jsonify({'error': 'Username and new password are required'}), 400
    if not isinstance(new_password, str) or len(new_password) < MIN_PASSWORD_LENGTH:
        return jsonify({'error': f'Password must be at least {MIN_PASSWORD_LENGTH} characters long'}), 400

    username = username.strip()
    if not consume_reset_token(username, token):
        database.create_security_event({
            'event_type': 'invalid_password_reset',
            'severity': 'medium',
            'ip_address': client_ip(),
            'description': f"Password reset with invalid token for user: {sanitize_text(username)}"
        })
        return jsonify({'error': 'Invalid or expired reset token'}), 401

    try:
        changed = database.set_password(username, new_password)
    except Exception as e:
        logger.error(f"Password reset error: {e}")
        return jsonify({'error': 'Password reset failed'}), 500

    if not changed:
        return jsonify({'error': 'Username not found'}), 404

    user = database.get_user_by_username(username)
    record_activity(user['id'] if user else None, username, 'Password reset')
    return jsonify({'success': True, 'message': 'Password reset successfully'})


# Wi-Fi Data API Endpoints

@app.route('/api/wifi-data', methods=['GET'])
def get_wifi_data():
    """Full in-memory snapshot: aggregate counters plus every district."""
    return jsonify(simulator.get_snapshot())


@app.route('/api/districts', methods=['GET'])
def get_districts():
    try:
        return jsonify(database.get_all_districts())
    except Exception as e:
        logger.error(f"Error in get_districts: {e}")
        return jsonify({'error': 'Failed to fetch districts'}), 500


@app.route('/api/districts/<int:district_id>', methods=['GET'])
def get_district(district_id):
    try:
        district = database.get_district(district_id)
    except Exception as e:
        logger.error(f"Error in get_district: {e}")
        return jsonify({'error': 'Failed to fetch district'}), 500

    if district is None:
        return jsonify({'error': 'District not found'}), 404
    return jsonify(district)


@app.route('/api/metrics', methods=['GET'])
def get_metrics():
    snapshot = simulator.get_snapshot()
    return jsonify({
        'totalHotspots': snapshot['totalHotspots'],
        'activeHotspots': snapshot['activeHotspots'],
        'utilization': snapshot['utilization'],
        'criticalDistricts': snapshot['criticalDistricts'],
        'lastUpdated': snapshot['lastUpdated']
    })


@app.route('/api/metrics/history', methods=['GET'])
def get_metrics_history():
    """
    Stored metric snapshots, newest first.

    Query parameters:
        limit (int, optional): Maximum number of rows (default: 100)
    """
    try:
        return jsonify(database.get_metrics_history(get_limit()))
    except Exception as e:
        logger.error(f"Error in get_metrics_history: {e}")
        return jsonify({'error': 'Failed to fetch metrics history'}), 500


# User Management API Endpoints

@app.route('/api/users', methods=['GET'])
@role_required('admin')
def get_users():
    """
    List accounts (password hashes are never included).

    Query parameters:
        role (str, optional): Only accounts with this role
    """
    role = request.args.get('role')
    if role and role not in database.ROLES:
        return jsonify({'error': 'Invalid role'}), 400
    try:
        return jsonify(database.get_all_users(role))
    except Exception as e:
        logger.error(f"Users API error: {e}")
        return jsonify({'error': 'Failed to fetch users'}), 500


@app.route('/api/users/<int:user_id>', methods=['PUT'])
@role_required('admin')
def update_user(user_id):
    """
    Update account fields. id, created_at and password are ignored.

    Expected JSON payload (any of):
        fullname, email, username, role, is_active, status, department
    """
    data = get_json_body()
    for field in ('id', 'created_at', 'password'):
        data.pop(field, None)

    updates = {k: v for k, v in data.items() if k in database.USER_UPDATABLE_FIELDS}
    if not updates:
        return jsonify({'error': 'No updatable fields provided'}), 400
    if 'role' in updates and updates['role'] not in database.ROLES:
        return jsonify({'error': 'Invalid role'}), 400
    if 'email' in updates and not EMAIL_PATTERN.match(str(updates['email']).strip()):
        return jsonify({'error': 'Invalid email address'}), 400
    if 'is_active' in updates:
        updates['is_active'] = 1 if updates['is_active'] in (True, 1, '1', 'true') else 0
    for field in ('fullname', 'username', 'department'):
        if field in updates:
            updates[field] = sanitize_text(updates[field])

    try:
        changes = database.update_user(user_id, updates)
    except sqlite3.IntegrityError:
        return jsonify({'error': 'Username or email already exists'}), 409
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}")
        return jsonify({'error': 'Failed to update user'}), 500

    if not changes:
        return jsonify({'error': 'User not found'}), 404

    record_activity(session['user_id'], session.get('username'),
                    f"Updated user ID: {user_id} ({', '.join(sorted(updates))})")
    return jsonify({'success': True, 'message': 'User updated successfully'})


@app.route('/api/users/<int:user_id>', methods=['DELETE'])
@role_required('admin')
def delete_user(user_id):
    if user_id == session.get('user_id'):
        return jsonify({'error': 'You cannot delete your own account'}), 400
    try:
        changes = database.delete_user(user_id)
    except Exception as e:
        logger.error(f"Error deleting user {user_id}: {e}")
        return jsonify({'error': 'Failed to delete user'}), 500

    if not changes:
        return jsonify({'error': 'User not found'}), 404

    record_activity(session['user_id'], session.get('username'), f"Deleted user ID: {user_id}")
    return jsonify({'success': True, 'message': 'User deleted successfully'})


# Admin Approval API Endpoints

@app.route('/api/admin/pending', methods=['GET'])
@role_required('admin')
def get_pending_admins():
    try:
        return jsonify(database.get_pending_admins())
    except Exception as e:
        logger.error(f"Get pending admins error: {e}")
        return jsonify({'error': 'Failed to fetch pending admins'}), 500


@app.route('/api/admin/approve/<int:admin_id>', methods=['POST'])
@role_required('admin')
def approve_admin(admin_id):
    admin = database.get_user_by_id(admin_id)
    if admin is None or admin['role'] != 'admin':
        return jsonify({'error': 'Admin not found'}), 404

    try:
        database.approve_admin(admin_id, session.get('username'))
    except Exception as e:
        logger.error(f"Admin approval error: {e}")
        return jsonify({'error': 'Failed to approve admin'}), 500

    record_activity(session['user_id'], session.get('username'), f"Approved admin account: {admin['username']}")
    return jsonify({'success': True, 'message': 'Admin account approved successfully'})


@app.route('/api/admin/reject/<int:admin_id>', methods=['POST'])
@role_required('admin')
def reject_admin(admin_id):
    admin = database.get_user_by_id(admin_id)
    if admin is None or admin['role'] != 'admin':
        return jsonify({'error': 'Admin not found'}), 404

    try:
        database.reject_admin(admin_id, session.get('username'))
    except Exception as e:
        logger.error(f"Admin rejection error: {e}")
        return jsonify({'error': 'Failed to reject admin'}), 500

    record_activity(session['user_id'], session.get('username'), f"Rejected admin account: {admin['username']}")
    return jsonify({'success': True, 'message': 'Admin registration rejected'})


# Activity Logging API Endpoints

@app.route('/api/logs', methods=['GET'])
@role_required('admin')
def get_logs():
    """
    Get activity logs, newest first.

    Query parameters:
        limit (int, optional): Maximum number of log entries to return (default: 100)
    """
    try:
        return jsonify(database.get_activity_logs(get_limit()))
    except Exception as e:
        logger.error(f"Logs API error: {e}")
        return jsonify({'error': 'Failed to fetch logs'}), 500


@app.route('/api/logs', methods=['DELETE'])
@role_required('admin')
def clear_logs():
    try:
        cleared = database.clear_activity_logs()
    except Exception as e:
        logger.error(f"Error clearing logs: {e}")
        return jsonify({'error': 'Failed to clear logs'}), 500

    record_activity(session['user_id'], session.get('username'), f"Cleared {cleared} activity log entries")
    return jsonify({'success': True, 'message': 'Logs cleared successfully', 'cleared': cleared})


@app.route('/api/login-activities', methods=['GET'])
@login_required
def get_login_activities():
    try:
        return jsonify(database.get_login_activities(get_limit()))
    except Exception as e:
        logger.error(f"Get login activities error: {e}")
        return jsonify({'error': 'Failed to fetch login activities'}), 500


# System Settings API Endpoints

@app.route('/api/settings', methods=['GET'])
@login_required
def get_settings():
    try:
        return jsonify(database.get_all_settings())
    except Exception as e:
        logger.error(f"Settings API error: {e}")
        return jsonify({'error': 'Failed to fetch settings'}), 500


@app.route('/api/settings/<key>', methods=['GET'])
@login_required
def get_setting(key):
    try:
        value = database.get_setting(key)
    except Exception as e:
        logger.error(f"Error fetching setting {key}: {e}")
        return jsonify({'error': 'Failed to fetch setting'}), 500

    if value is None:
        return jsonify({'error': 'Setting not found'}), 404
    return jsonify({'key': key, 'value': value})


@app.route('/api/settings/<key>', methods=['PUT'])
@role_required('admin')
def update_setting(key):
    """
    Update a setting. Numeric settings are range-checked; update_interval
    takes effect on the next simulator tick.

    Expected JSON payload:
        value: New value
    """
    data = get_json_body()
    if 'value' not in data or data['value'] is None:
        return jsonify({'error': 'Value is required'}), 400

    value = data['value']
    if key in SETTING_RULES:
        low, high = SETTING_RULES[key]
        try:
            value = int(value)
        except (TypeError, ValueError):
            return jsonify({'error': f'{key} must be an integer'}), 400
        if not low <= value <= high:
            return jsonify({'error': f'{key} must be between {low} and {high}'}), 400

    try:
        database.update_setting(key, value)
    except Exception as e:
        logger.error(f"Error updating setting {key}: {e}")
        return jsonify({'error': 'Failed to update setting'}), 500

    record_activity(session['user_id'], session.get('username'),
                    f"Updated setting: {sanitize_text(key)} = {sanitize_text(str(value))}")
    return jsonify({'success': True, 'message': 'Setting updated successfully', 'key': key, 'value': str(value)})


# Device Management API Endpoints

@app.route('/api/devices', methods=['GET'])
@login_required
def get_devices():
    """
    Get simulated devices, most recently seen first.

    Query parameters:
        limit (int, optional): Maximum number of devices (default: 100)
        district_id (int, optional): Only devices in this district
        status (str, optional): 'active' or 'inactive'
    """
    try:
        devices = database.get_devices(
            limit=get_limit(),
            district_id=request.args.get('district_id', type=int),
            status=request.args.get('status')
        )
        return jsonify(devices)
    except Exception as e:
        logger.error(f"Devices API error: {e}")
        return jsonify({'error': 'Failed to fetch devices'}), 500


@app.route('/api/devices/<int:device_id>', methods=['GET'])
@login_required
def get_device(device_id):
    device = database.get_device(device_id)
    if device is None:
        return jsonify({'error': 'Device not found'}), 404
    return jsonify(device)


@app.route('/api/devices/<int:device_id>', methods=['DELETE'])
@role_required('admin')
def deactivate_device(device_id):
    """Soft-delete: the device is marked inactive and keeps its history."""
    try:
        changes = database.deactivate_device(device_id)
    except Exception as e:
        logger.error(f"Error deactivating device {device_id}: {e}")
        return jsonify({'error': 'Failed to deactivate device'}), 500

    if not changes:
        return jsonify({'error': 'Device not found'}), 404

    record_activity(session['user_id'], session.get('username'), f"Deactivated device ID: {device_id}")
    return jsonify({'success': True, 'message': 'Device deactivated'})


@app.route('/api/device-logs', methods=['GET'])
@login_required
def get_device_logs():
    try:
        logs = database.get_device_logs(
            device_id=request.args.get('device_id', type=int),
            limit=get_limit()
        )
        return jsonify(logs)
    except Exception as e:
        logger.error(f"Device logs API error: {e}")
        return jsonify({'error': 'Failed to fetch device logs'}), 500


@app.route('/api/simulate-device', methods=['POST'])
@login_required
def simulate_device():
    """
    Register a random device (or refresh one with a colliding MAC) and log a
    'connect' entry for it.
    """
    district_ids = [d['id'] for d in simulator.get_snapshot()['districts']]
    device_data = {
        'mac_address': f"AA:BB:CC:DD:EE:{random.randint(0, 99):02d}",
        'ip_address': f"192.168.1.{random.randint(1, 254)}",
        'device_name': f"Device_{random.randint(0, 999)}",
        'device_type': random.choice(DEVICE_TYPES),
        'vendor': 'Unknown',
        'os_type': random.choice(OS_TYPES),
        'district_id': random.choice(district_ids) if district_ids else None,
        'hotspot_id': random.randint(1, 50)
    }

    try:
        result = database.register_device(device_data)
        database.log_device_connection(result['id'], 'connect', dict(
            device_data,
            duration=random.randint(0, 3599),
            data_transferred=random.randint(0, 999999),
            signal_strength=random.randint(0, 99),
            user_agent='Mozilla/5.0 (Simulated Device)'
        ))
    except Exception as e:
        logger.error(f"Device simulation error: {e}")
        return jsonify({'error': 'Failed to simulate device'}), 500

    return jsonify({'success': True, 'device': result})


# Security Event API Endpoints

@app.route('/api/security-events', methods=['GET'])
@login_required
def get_security_events():
    """
    Query parameters:
        limit (int, optional): Maximum number of events (default: 100)
        unresolved (str, optional): 'true' to return only open events
    """
    try:
        events = database.get_security_events(
            limit=get_limit(),
            unresolved_only=request.args.get('unresolved') == 'true'
        )
        return jsonify(events)
    except Exception as e:
        logger.error(f"Security events API error: {e}")
        return jsonify({'error': 'Failed to fetch security events'}), 500


@app.route('/api/security-events/<int:event_id>/resolve', methods=['POST'])
@login_required
def resolve_security_event(event_id):
    try:
        changes = database.resolve_security_event(event_id, session.get('username'))
    except Exception as e:
        logger.error(f"Resolve security event error: {e}")
        return jsonify({'error': 'Failed to resolve security event'}), 500

    if not changes:
        return jsonify({'error': 'Security event not found'}), 404

    record_activity(session['user_id'], session.get('username'), f"Resolved security event ID: {event_id}")
    return jsonify({'success': True})


@app.route('/api/health', methods=['GET'])
def health():
    status = 'healthy'
    db_status = 'connected'
    try:
        with database.DatabaseConnection() as conn:
            conn.execute('SELECT 1')
    except sqlite3.Error as e:
        logger.error(f"Health check database error: {e}")
        status = 'degraded'
        db_status = 'error'

    return jsonify({
        'status': status,
        'timestamp': database.get_local_time().isoformat(),
        'uptime': round(time.time() - START_TIME, 1),
        'database': db_status
    }), 200 if status == 'healthy' else 503


@app.errorhandler(500)
def handle_500(e):
    logger.error(f"500 error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


@app.errorhandler(404)
def handle_404(e):
    return jsonify({'error': 'Not found', 'details': str(e)}), 404


# Real-time Socket.IO Events

@socketio.on('connect')
def handle_connect():
    """Send the current snapshot (with hotspot markers) to the new client."""
    logger.info(f"New WebSocket client connected: {request.sid}")
    emit(simulator.MESSAGE_EVENT, simulator.build_envelope('initial_data', include_hotspots=True))


@socketio.on('disconnect')
def handle_disconnect(*args):
    logger.info(f"WebSocket client disconnected: {request.sid}")


@socketio.on(simulator.MESSAGE_EVENT)
def handle_message(message):
    """
    Client messages are {type: ...} objects (or their JSON text).
    'request_update' gets an immediate data_update; anything else is ignored.
    """
    if isinstance(message, str):
        try:
            message = json.loads(message)
        except ValueError:
            logger.warning(f"Error parsing WebSocket message: {message!r}")
            return
    if not isinstance(message, dict):
        logger.warning(f"Ignoring WebSocket message: {message!r}")
        return

    if message.get('type') == 'request_update':
        emit(simulator.MESSAGE_EVENT, simulator.build_envelope('data_update'))
    else:
        logger.debug(f"Ignoring WebSocket message type: {message.get('type')!r}")


def initialize_system():
    """Create/seed the database and load the districts into memory."""
    database.init_db()
    simulator.load_districts_from_db()


def main():
    """
    Initializes the database, starts the simulator loop and runs the
    Socket.IO server on config.HOST:config.PORT.
    """
    config.configure_logging()
    initialize_system()
    simulator.start_background_updates(socketio)

    logger.info(f"District Wi-Fi Monitor running on port {config.PORT}")
    logger.info(f"Dashboard: http://localhost:{config.PORT}")
    logger.info(f"Database: SQLite ({config.DATABASE})")

    try:
        socketio.run(app, host=config.HOST, port=config.PORT, allow_unsafe_werkzeug=True)
    finally:
        simulator.stop_background_updates()


if __name__ == '__main__':
    main()
