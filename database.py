"""
SQLite storage for the District Wi-Fi Monitor.

Holds accounts, activity logs, districts, system settings, metric history,
simulated devices with their connection logs, and security events. Every
query is parameterized. Writes are serialized through db_lock; each call
opens a short-lived connection through DatabaseConnection.
"""

import logging
import random
import sqlite3
import threading
from datetime import datetime

from werkzeug.security import generate_password_hash, check_password_hash

import config

logger = logging.getLogger(__name__)

# Thread lock for database writes to prevent concurrent access issues
db_lock = threading.Lock()

ROLES = ('admin', 'user', 'viewer')
DISTRICT_STATUSES = ('normal', 'warning', 'critical')
SEVERITIES = ('low', 'medium', 'high', 'critical')

DISTRICT_NAMES = [
    'North District', 'South District', 'East District', 'West District', 'Central District',
    'Northeast District', 'Northwest District', 'Southeast District', 'Southwest District', 'Metro District'
]

SETTING_DESCRIPTIONS = {
    'update_interval': 'Data update interval in seconds',
    'critical_threshold': 'Critical threshold percentage',
    'max_logs': 'Maximum number of activity logs to keep',
}

# Columns an account update may touch; id, created_at and password never come from a request
USER_UPDATABLE_FIELDS = ('fullname', 'email', 'username', 'role', 'is_active', 'status', 'department')
DISTRICT_UPDATABLE_FIELDS = ('total_hotspots', 'active_hotspots', 'utilization', 'status')

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


class DatabaseConnection:
    """
    Context manager for SQLite database connections.
    Commits on success, rolls back on error and always closes the connection.
    """

    def __init__(self, path=None):
        self.path = path or config.DATABASE
        self.conn = None

    def __enter__(self):
        self.conn = sqlite3.connect(self.path, timeout=30, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row  # Enable column access by name
        self.conn.execute('PRAGMA foreign_keys=ON;')
        self.conn.execute('PRAGMA journal_mode=WAL;')
        self.conn.execute('PRAGMA synchronous=NORMAL;')
        return self.conn

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.conn:
            try:
                if exc_type is None:
                    self.conn.commit()
                else:
                    self.conn.rollback()
            finally:
                self.conn.close()


def get_local_time():
    """Current datetime in the configured timezone."""
    return datetime.now(config.get_timezone())


def now_str():
    return get_local_time().strftime(TIMESTAMP_FORMAT)


def init_db():
    """
    Initialize database and create all required tables, then seed defaults.
    Safe to call on every start.
    """
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()

        c.execute('''CREATE TABLE IF NOT EXISTS users
                     (id INTEGER PRIMARY KEY AUTOINCREMENT,
                      fullname TEXT NOT NULL,
                      email TEXT UNIQUE NOT NULL,
                      username TEXT UNIQUE NOT NULL,
                      role TEXT NOT NULL DEFAULT 'user',
                      password TEXT NOT NULL,
                      department TEXT,
                      gov_id TEXT UNIQUE,
                      registration_id TEXT,
                      status TEXT DEFAULT 'active',
                      created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                      is_active INTEGER DEFAULT 1,
                      last_login TIMESTAMP,
                      approved_by TEXT,
                      approved_at TIMESTAMP)''')

        c.execute('''CREATE TABLE IF NOT EXISTS activity_logs
                     (id INTEGER PRIMARY KEY AUTOINCREMENT,
                      user_id INTEGER,
                      username TEXT,
                      action TEXT NOT NULL,
                      timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                      ip_address TEXT,
                      FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE SET NULL)''')

        c.execute('''CREATE TABLE IF NOT EXISTS districts
                     (id INTEGER PRIMARY KEY AUTOINCREMENT,
                      name TEXT UNIQUE NOT NULL,
                      total_hotspots INTEGER DEFAULT 0,
                      active_hotspots INTEGER DEFAULT 0,
                      utilization INTEGER DEFAULT 0,
                      status TEXT DEFAULT 'normal',
                      last_ping TIMESTAMP DEFAULT CURRENT_TIMESTAMP)''')

        c.execute('''CREATE TABLE IF NOT EXISTS system_settings
                     (id INTEGER PRIMARY KEY AUTOINCREMENT,
                      setting_key TEXT UNIQUE NOT NULL,
                      setting_value TEXT,
                      description TEXT,
                      updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)''')

        c.execute('''CREATE TABLE IF NOT EXISTS wifi_metrics
                     (id INTEGER PRIMARY KEY AUTOINCREMENT,
                      total_hotspots INTEGER,
                      active_hotspots INTEGER,
                      utilization INTEGER,
                      critical_districts INTEGER,
                      timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP)''')

        c.execute('''CREATE TABLE IF NOT EXISTS devices
                     (id INTEGER PRIMARY KEY AUTOINCREMENT,
                      mac_address TEXT UNIQUE NOT NULL COLLATE NOCASE,
                      ip_address TEXT,
                      device_name TEXT,
                      device_type TEXT,
                      vendor TEXT,
                      os_type TEXT,
                      first_seen TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                      last_seen TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                      status TEXT DEFAULT 'active',
                      data_usage INTEGER DEFAULT 0,
                      connection_count INTEGER DEFAULT 0,
                      district_id INTEGER,
                      hotspot_id INTEGER,
                      FOREIGN KEY(district_id) REFERENCES districts(id))''')

        c.execute('''CREATE TABLE IF NOT EXISTS device_logs
                     (id INTEGER PRIMARY KEY AUTOINCREMENT,
                      device_id INTEGER,
                      mac_address TEXT,
                      ip_address TEXT,
                      action TEXT NOT NULL,
                      timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                      duration INTEGER,
                      data_transferred INTEGER,
                      signal_strength INTEGER,
                      hotspot_id INTEGER,
                      district_id INTEGER,
                      user_agent TEXT,
                      FOREIGN KEY(device_id) REFERENCES devices(id) ON DELETE CASCADE,
                      FOREIGN KEY(district_id) REFERENCES districts(id))''')

        c.execute('''CREATE TABLE IF NOT EXISTS security_events
                     (id INTEGER PRIMARY KEY AUTOINCREMENT,
                      event_type TEXT NOT NULL,
                      severity TEXT DEFAULT 'medium',
                      device_id INTEGER,
                      mac_address TEXT,
                      ip_address TEXT,
                      description TEXT,
                      timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                      resolved INTEGER DEFAULT 0,
                      resolved_by TEXT,
                      resolved_at TIMESTAMP,
                      FOREIGN KEY(device_id) REFERENCES devices(id) ON DELETE SET NULL)''')

        c.execute('CREATE INDEX IF NOT EXISTS idx_activity_logs_timestamp ON activity_logs (timestamp)')
        c.execute('CREATE INDEX IF NOT EXISTS idx_device_logs_device ON device_logs (device_id)')
        c.execute('CREATE INDEX IF NOT EXISTS idx_security_events_resolved ON security_events (resolved)')

        seed_initial_data(conn)

    logger.info(f"Database initialized at {config.DATABASE}")


def seed_initial_data(conn, rng=None):
    """
    Insert the default admin, the districts and the default settings.
    Existing rows are left alone.

    Args:
        conn (sqlite3.Connection): Open connection (committed by the caller)
        rng (random.Random, optional): Source for the district counters
    """
    rng = rng or random
    c = conn.cursor()

    c.execute(
        '''INSERT OR IGNORE INTO users (fullname, email, username, role, password)
           VALUES (?, ?, ?, ?, ?)''',
        ('System Administrator', config.DEFAULT_ADMIN_EMAIL, config.DEFAULT_ADMIN_USERNAME,
         'admin', generate_password_hash(config.DEFAULT_ADMIN_PASSWORD))
    )

    district_count = c.execute('SELECT COUNT(*) FROM districts').fetchone()[0]
    if district_count == 0:
        for name in DISTRICT_NAMES:
            total_hotspots = rng.randint(500, 2499)
            active_hotspots = min(total_hotspots, rng.randint(300, 1799))
            utilization = rng.randint(40, 79)
            roll = rng.random()
            status = 'critical' if roll > 0.7 else 'warning' if roll > 0.4 else 'normal'
            c.execute(
                '''INSERT INTO districts (name, total_hotspots, active_hotspots, utilization, status)
                   VALUES (?, ?, ?, ?, ?)''',
                (name, total_hotspots, active_hotspots, utilization, status)
            )

    defaults = {
        'update_interval': config.UPDATE_INTERVAL,
        'critical_threshold': config.CRITICAL_THRESHOLD,
        'max_logs': config.MAX_LOGS,
    }
    for key, value in defaults.items():
        c.execute(
            '''INSERT OR IGNORE INTO system_settings (setting_key, setting_value, description)
               VALUES (?, ?, ?)''',
            (key, str(value), SETTING_DESCRIPTIONS[key])
        )


# Row serializers

def user_to_dict(row):
    """Account row as JSON-ready dict. The password hash is never included."""
    if row is None:
        return None
    return {
        'id': row['id'],
        'fullname': row['fullname'],
        'email': row['email'],
        'username': row['username'],
        'role': row['role'],
        'department': row['department'],
        'govId': row['gov_id'],
        'registrationId': row['registration_id'],
        'status': row['status'],
        'isActive': bool(row['is_active']),
        'createdAt': row['created_at'],
        'lastLogin': row['last_login'],
    }


def district_to_dict(row):
    return {
        'id': row['id'],
        'name': row['name'],
        'totalHotspots': row['total_hotspots'],
        'activeHotspots': row['active_hotspots'],
        'utilization': row['utilization'],
        'status': row['status'],
        'lastPing': row['last_ping'],
    }


def device_to_dict(row):
    keys = row.keys()
    return {
        'id': row['id'],
        'macAddress': row['mac_address'],
        'ipAddress': row['ip_address'],
        'deviceName': row['device_name'],
        'deviceType': row['device_type'],
        'vendor': row['vendor'],
        'osType': row['os_type'],
        'firstSeen': row['first_seen'],
        'lastSeen': row['last_seen'],
        'status': row['status'],
        'dataUsage': row['data_usage'],
        'connectionCount': row['connection_count'],
        'districtId': row['district_id'],
        'districtName': row['district_name'] if 'district_name' in keys else None,
        'hotspotId': row['hotspot_id'],
    }


def device_log_to_dict(row):
    keys = row.keys()
    return {
        'id': row['id'],
        'deviceId': row['device_id'],
        'deviceName': row['device_name'] if 'device_name' in keys else None,
        'macAddress': row['mac_address'],
        'ipAddress': row['ip_address'],
        'action': row['action'],
        'timestamp': row['timestamp'],
        'duration': row['duration'],
        'dataTransferred': row['data_transferred'],
        'signalStrength': row['signal_strength'],
        'hotspotId': row['hotspot_id'],
        'districtId': row['district_id'],
        'districtName': row['district_name'] if 'district_name' in keys else None,
        'userAgent': row['user_agent'],
    }


def security_event_to_dict(row):
    keys = row.keys()
    return {
        'id': row['id'],
        'eventType': row['event_type'],
        'severity': row['severity'],
        'deviceId': row['device_id'],
        'deviceName': row['device_name'] if 'device_name' in keys else None,
        'macAddress': row['mac_address'],
        'ipAddress': row['ip_address'],
        'description': row['description'],
        'timestamp': row['timestamp'],
        'resolved': bool(row['resolved']),
        'resolvedBy': row['resolved_by'],
        'resolvedAt': row['resolved_at'],
    }


def activity_log_to_dict(row):
    return {
        'id': row['id'],
        'userId': row['user_id'],
        'username': row['username'],
        'action': row['action'],
        'timestamp': row['timestamp'],
        'ipAddress': row['ip_address'],
    }


def metrics_to_dict(row):
    return {
        'id': row['id'],
        'totalHotspots': row['total_hotspots'],
        'activeHotspots': row['active_hotspots'],
        'utilization': row['utilization'],
        'criticalDistricts': row['critical_districts'],
        'timestamp': row['timestamp'],
    }


# Account management

def create_user(user_data):
    """
    Create an active account.

    Args:
        user_data (dict): fullname, email, username, role, password

    Returns:
        int: New account id

    Raises:
        sqlite3.IntegrityError: Username or email already taken
    """
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''INSERT INTO users (fullname, email, username, role, password)
               VALUES (?, ?, ?, ?, ?)''',
            (
                user_data['fullname'],
                user_data['email'].strip().lower(),
                user_data['username'],
                user_data.get('role') or 'user',
                generate_password_hash(user_data['password'])
            )
        )
        return c.lastrowid


def create_admin(admin_data):
    """
    Create an admin account awaiting verification.
    The account is inactive until an existing admin approves it.

    Returns:
        int: New account id
    """
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''INSERT INTO users (
                    fullname, email, username, role, password,
                    department, gov_id, registration_id, status, is_active
               ) VALUES (?, ?, ?, 'admin', ?, ?, ?, ?, ?, ?)''',
            (
                admin_data['fullname'],
                admin_data['email'].strip().lower(),
                admin_data['username'],
                generate_password_hash(admin_data['password']),
                admin_data.get('department'),
                admin_data['govId'],
                admin_data['registrationId'],
                admin_data.get('status', 'pending_verification'),
                1 if admin_data.get('isActive') else 0
            )
        )
        return c.lastrowid


def get_user_by_username(username):
    with DatabaseConnection() as conn:
        return conn.execute('SELECT * FROM users WHERE username = ?', (username,)).fetchone()


def get_user_by_email(email):
    with DatabaseConnection() as conn:
        return conn.execute('SELECT * FROM users WHERE email = ?', (email.strip().lower(),)).fetchone()


def get_user_by_id(user_id):
    with DatabaseConnection() as conn:
        return conn.execute('SELECT * FROM users WHERE id = ?', (user_id,)).fetchone()


def get_admin_by_gov_id(gov_id):
    with DatabaseConnection() as conn:
        return conn.execute(
            "SELECT * FROM users WHERE role = 'admin' AND gov_id = ?", (gov_id,)
        ).fetchone()


def authenticate_user(username, password, login_type='user'):
    """
    Check credentials and stamp last_login on success.

    Pending admins are returned so the caller can report the pending state;
    other inactive accounts never authenticate. With login_type 'admin' only
    admin accounts are accepted.

    Returns:
        sqlite3.Row or None: The account row when the password matches
    """
    user = get_user_by_username(username)
    if user is None or not check_password_hash(user['password'], password):
        return None

    pending = user['status'] == 'pending_verification'
    if not user['is_active'] and not pending:
        return None
    if login_type == 'admin' and user['role'] != 'admin':
        return None

    if not pending:
        with db_lock, DatabaseConnection() as conn:
            conn.execute('UPDATE users SET last_login = ? WHERE id = ?', (now_str(), user['id']))
        user = get_user_by_id(user['id'])
    return user


def get_all_users(role=None):
    with DatabaseConnection() as conn:
        if role:
            rows = conn.execute(
                'SELECT * FROM users WHERE role = ? ORDER BY created_at DESC, id DESC', (role,)
            ).fetchall()
        else:
            rows = conn.execute('SELECT * FROM users ORDER BY created_at DESC, id DESC').fetchall()
    return [user_to_dict(row) for row in rows]


def get_pending_admins():
    with DatabaseConnection() as conn:
        rows = conn.execute(
            '''SELECT * FROM users WHERE role = 'admin' AND status = 'pending_verification'
               ORDER BY created_at DESC, id DESC'''
        ).fetchall()
    return [user_to_dict(row) for row in rows]


def update_user(user_id, updates):
    """
    Update whitelisted account columns.

    Args:
        user_id (int): Account id
        updates (dict): Column -> value; keys outside USER_UPDATABLE_FIELDS are dropped

    Returns:
        int: Number of rows changed (0 when the account does not exist)
    """
    fields = {k: v for k, v in updates.items() if k in USER_UPDATABLE_FIELDS}
    if 'email' in fields and fields['email']:
        fields['email'] = fields['email'].strip().lower()
    if not fields:
        return 0

    assignments = ', '.join(f"{column} = ?" for column in fields)
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            f'UPDATE users SET {assignments} WHERE id = ?',
            (*fields.values(), user_id)
        )
        return c.rowcount


def approve_admin(user_id, approved_by):
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''UPDATE users SET is_active = 1, status = 'active', approved_by = ?, approved_at = ?
               WHERE id = ? AND role = 'admin' ''',
            (approved_by, now_str(), user_id)
        )
        return c.rowcount


def reject_admin(user_id, rejected_by):
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''UPDATE users SET is_active = 0, status = 'rejected', approved_by = ?, approved_at = ?
               WHERE id = ? AND role = 'admin' ''',
            (rejected_by, now_str(), user_id)
        )
        return c.rowcount


def set_password(username, password):
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            'UPDATE users SET password = ? WHERE username = ?',
            (generate_password_hash(password), username)
        )
        return c.rowcount


def delete_user(user_id):
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute('DELETE FROM users WHERE id = ?', (user_id,))
        return c.rowcount


# Activity logs

def log_activity(user_id, username, action, ip_address=None):
    """
    Record an actor/action pair in the activity log.
    Failures are logged and swallowed so auditing never breaks a request.
    """
    try:
        with db_lock, DatabaseConnection() as conn:
            conn.execute(
                '''INSERT INTO activity_logs (user_id, username, action, ip_address)
                   VALUES (?, ?, ?, ?)''',
                (user_id, username, action, ip_address)
            )
    except sqlite3.Error as e:
        logger.error(f"Error logging activity '{action}' for {username}: {e}")


def get_activity_logs(limit=100):
    with DatabaseConnection() as conn:
        rows = conn.execute(
            'SELECT * FROM activity_logs ORDER BY timestamp DESC, id DESC LIMIT ?', (limit,)
        ).fetchall()
    return [activity_log_to_dict(row) for row in rows]


def get_login_activities(limit=100):
    with DatabaseConnection() as conn:
        rows = conn.execute(
            '''SELECT a.*, u.role FROM activity_logs a
               LEFT JOIN users u ON a.user_id = u.id
               WHERE a.action LIKE '%logged in%' OR a.action LIKE '%logged out%'
                  OR a.action LIKE 'Failed login%'
               ORDER BY a.timestamp DESC, a.id DESC LIMIT ?''',
            (limit,)
        ).fetchall()
    activities = []
    for row in rows:
        entry = activity_log_to_dict(row)
        entry['role'] = row['role']
        activities.append(entry)
    return activities


def clear_activity_logs():
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute('DELETE FROM activity_logs')
        return c.rowcount


def trim_activity_logs(max_logs):
    """Keep only the newest max_logs activity rows."""
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''DELETE FROM activity_logs WHERE id NOT IN
               (SELECT id FROM activity_logs ORDER BY timestamp DESC, id DESC LIMIT ?)''',
            (max_logs,)
        )
        return c.rowcount


# Districts

def get_all_districts():
    with DatabaseConnection() as conn:
        rows = conn.execute('SELECT * FROM districts ORDER BY name').fetchall()
    return [district_to_dict(row) for row in rows]


def get_district(district_id):
    with DatabaseConnection() as conn:
        row = conn.execute('SELECT * FROM districts WHERE id = ?', (district_id,)).fetchone()
    return district_to_dict(row) if row else None


def update_district(district_id, updates):
    """
    Update whitelisted district columns and stamp last_ping.

    Returns:
        int: Number of rows changed
    """
    fields = {k: v for k, v in updates.items() if k in DISTRICT_UPDATABLE_FIELDS}
    if not fields:
        return 0
    assignments = ', '.join(f"{column} = ?" for column in fields)
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            f'UPDATE districts SET {assignments}, last_ping = ? WHERE id = ?',
            (*fields.values(), now_str(), district_id)
        )
        return c.rowcount


# System settings

def get_setting(key):
    with DatabaseConnection() as conn:
        row = conn.execute(
            'SELECT setting_value FROM system_settings WHERE setting_key = ?', (key,)
        ).fetchone()
    return row['setting_value'] if row else None


def get_all_settings():
    with DatabaseConnection() as conn:
        rows = conn.execute('SELECT * FROM system_settings ORDER BY setting_key').fetchall()
    return [
        {
            'key': row['setting_key'],
            'value': row['setting_value'],
            'description': row['description'],
            'updatedAt': row['updated_at'],
        }
        for row in rows
    ]


def update_setting(key, value):
    """Insert or update a setting, keeping an existing description."""
    with db_lock, DatabaseConnection() as conn:
        conn.execute(
            '''INSERT INTO system_settings (setting_key, setting_value, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(setting_key) DO UPDATE SET
                   setting_value = excluded.setting_value,
                   updated_at = excluded.updated_at''',
            (key, None if value is None else str(value), now_str())
        )


def get_int_setting(key, default):
    value = get_setting(key)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# Metrics history

def save_metrics(metrics):
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''INSERT INTO wifi_metrics (total_hotspots, active_hotspots, utilization, critical_districts)
               VALUES (?, ?, ?, ?)''',
            (metrics['totalHotspots'], metrics['activeHotspots'],
             metrics['utilization'], metrics['criticalDistricts'])
        )
        return c.lastrowid


def get_metrics_history(limit=100):
    with DatabaseConnection() as conn:
        rows = conn.execute(
            'SELECT * FROM wifi_metrics ORDER BY timestamp DESC, id DESC LIMIT ?', (limit,)
        ).fetchall()
    return [metrics_to_dict(row) for row in rows]


# Devices

def register_device(device_data):
    """
    Insert a device or refresh an existing one with the same MAC address.

    Returns:
        dict: {'id': device id, 'updated': True when the device already existed}
    """
    seen_at = now_str()
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        existing = c.execute(
            'SELECT id FROM devices WHERE mac_address = ?', (device_data['mac_address'],)
        ).fetchone()

        if existing:
            c.execute(
                '''UPDATE devices SET ip_address = ?, last_seen = ?, status = 'active',
                       connection_count = connection_count + 1
                   WHERE id = ?''',
                (device_data.get('ip_address'), seen_at, existing['id'])
            )
            return {'id': existing['id'], 'updated': True}

        c.execute(
            '''INSERT INTO devices (
                    mac_address, ip_address, device_name, device_type, vendor,
                    os_type, district_id, hotspot_id, connection_count, first_seen, last_seen
               ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)''',
            (
                device_data['mac_address'],
                device_data.get('ip_address'),
                device_data.get('device_name'),
                device_data.get('device_type'),
                device_data.get('vendor'),
                device_data.get('os_type'),
                device_data.get('district_id'),
                device_data.get('hotspot_id'),
                seen_at,
                seen_at
            )
        )
        return {'id': c.lastrowid, 'updated': False}


def log_device_connection(device_id, action, log_data):
    """
    Append a connection log row and add the transferred bytes to the device's usage.

    Returns:
        int: New log id
    """
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''INSERT INTO device_logs (
                    device_id, mac_address, ip_address, action, duration, data_transferred,
                    signal_strength, hotspot_id, district_id, user_agent
               ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)''',
            (
                device_id,
                log_data.get('mac_address'),
                log_data.get('ip_address'),
                action,
                log_data.get('duration'),
                log_data.get('data_transferred'),
                log_data.get('signal_strength'),
                log_data.get('hotspot_id'),
                log_data.get('district_id'),
                log_data.get('user_agent')
            )
        )
        log_id = c.lastrowid
        if log_data.get('data_transferred'):
            c.execute(
                'UPDATE devices SET data_usage = data_usage + ? WHERE id = ?',
                (int(log_data['data_transferred']), device_id)
            )
        return log_id


def get_devices(limit=100, district_id=None, status=None):
    query = '''SELECT d.*, dis.name AS district_name FROM devices d
               LEFT JOIN districts dis ON d.district_id = dis.id'''
    conditions = []
    params = []
    if district_id:
        conditions.append('d.district_id = ?')
        params.append(district_id)
    if status:
        conditions.append('d.status = ?')
        params.append(status)
    if conditions:
        query += ' WHERE ' + ' AND '.join(conditions)
    query += ' ORDER BY d.last_seen DESC, d.id DESC LIMIT ?'
    params.append(limit)

    with DatabaseConnection() as conn:
        rows = conn.execute(query, params).fetchall()
    return [device_to_dict(row) for row in rows]


def get_device(device_id):
    with DatabaseConnection() as conn:
        row = conn.execute(
            '''SELECT d.*, dis.name AS district_name FROM devices d
               LEFT JOIN districts dis ON d.district_id = dis.id
               WHERE d.id = ?''',
            (device_id,)
        ).fetchone()
    return device_to_dict(row) if row else None


def deactivate_device(device_id):
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute("UPDATE devices SET status = 'inactive' WHERE id = ?", (device_id,))
        return c.rowcount


def get_device_logs(device_id=None, limit=100):
    query = '''SELECT dl.*, d.device_name, dis.name AS district_name FROM device_logs dl
               LEFT JOIN devices d ON dl.device_id = d.id
               LEFT JOIN districts dis ON dl.district_id = dis.id'''
    params = []
    if device_id:
        query += ' WHERE dl.device_id = ?'
        params.append(device_id)
    query += ' ORDER BY dl.timestamp DESC, dl.id DESC LIMIT ?'
    params.append(limit)

    with DatabaseConnection() as conn:
        rows = conn.execute(query, params).fetchall()
    return [device_log_to_dict(row) for row in rows]


# Security events

def create_security_event(event_data):
    """
    Record a security event.

    Args:
        event_data (dict): event_type, severity, device_id, mac_address, ip_address, description

    Returns:
        int: New event id
    """
    severity = event_data.get('severity') or 'medium'
    if severity not in SEVERITIES:
        severity = 'medium'
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''INSERT INTO security_events (event_type, severity, device_id, mac_address, ip_address, description)
               VALUES (?, ?, ?, ?, ?, ?)''',
            (
                event_data['event_type'],
                severity,
                event_data.get('device_id'),
                event_data.get('mac_address'),
                event_data.get('ip_address'),
                event_data.get('description')
            )
        )
        return c.lastrowid


def get_security_events(limit=100, unresolved_only=False):
    query = '''SELECT se.*, d.device_name FROM security_events se
               LEFT JOIN devices d ON se.device_id = d.id'''
    if unresolved_only:
        query += ' WHERE se.resolved = 0'
    query += ' ORDER BY se.timestamp DESC, se.id DESC LIMIT ?'

    with DatabaseConnection() as conn:
        rows = conn.execute(query, (limit,)).fetchall()
    return [security_event_to_dict(row) for row in rows]


def resolve_security_event(event_id, resolved_by):
    with db_lock, DatabaseConnection() as conn:
        c = conn.cursor()
        c.execute(
            '''UPDATE security_events SET resolved = 1, resolved_by = ?, resolved_at = ?
               WHERE id = ?''',
            (resolved_by, now_str(), event_id)
        )
        return c.rowcount
