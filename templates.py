"""
HTML templates for the District Wi-Fi Monitor, rendered with render_template_string.

Pages share PAGE_HEAD (Bootstrap from CDN) and NAVBAR through the
`head` and `navbar` context variables passed by server.render_page().
"""

PAGE_HEAD = '''
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.2/dist/css/bootstrap.min.css" rel="stylesheet">
    <style>
        body { background: #f4f6f9; }
        .stat-card { border-radius: 10px; }
        .status-normal { color: #198754; }
        .status-warning { color: #fd7e14; }
        .status-critical { color: #dc3545; }
    </style>
'''

NAVBAR = '''
<nav class="navbar navbar-expand navbar-dark bg-dark mb-4">
    <div class="container-fluid">
        <a class="navbar-brand" href="/">District Wi-Fi Monitor</a>
        {% if session.get('user_id') %}
        <div class="navbar-nav">
            {% if session.get('user_role') in ('admin', 'user') %}<a class="nav-link" href="/dashboard">Dashboard</a>{% endif %}
            {% if session.get('user_role') in ('admin', 'viewer') %}<a class="nav-link" href="/viewer">Viewer</a>{% endif %}
            <a class="nav-link" href="/devices">Devices</a>
            <a class="nav-link" href="/monitor">Monitor</a>
            {% if session.get('user_role') == 'admin' %}<a class="nav-link" href="/admin">Admin</a>{% endif %}
        </div>
        <span class="navbar-text me-3">{{ session.get('username') }} ({{ session.get('user_role') }})</span>
        <a class="btn btn-outline-light btn-sm" href="/logout">Logout</a>
        {% endif %}
    </div>
</nav>
'''

LOGIN_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <title>Login - District Wi-Fi Monitor</title>
    {{ head|safe }}
</head>
<body>
<div class="container" style="max-width: 420px; margin-top: 80px;">
    <h3 class="mb-4 text-center">District Wi-Fi Monitor</h3>
    <div class="btn-group w-100 mb-3" role="group">
        <button type="button" class="btn btn-outline-primary active" id="type-user" onclick="setLoginType('user')">User</button>
        <button type="button" class="btn btn-outline-primary" id="type-admin" onclick="setLoginType('admin')">Admin</button>
    </div>
    <form id="login-form" onsubmit="return login(event)">
        <input class="form-control mb-2" id="username" placeholder="Username" required>
        <input class="form-control mb-2" id="password" type="password" placeholder="Password" required>
        <div id="error" class="text-danger small mb-2"></div>
        <button class="btn btn-primary w-100" type="submit">Login</button>
    </form>
    <div class="mt-3 d-flex justify-content-between small">
        <a href="/signup">Create account</a>
        <a href="/admin-register">Admin registration</a>
        <a href="#" onclick="forgotPassword(); return false;">Forgot password?</a>
    </div>
</div>
<script>
    let loginType = 'user';

    function setLoginType(type) {
        loginType = type;
        document.getElementById('type-user').classList.toggle('active', type === 'user');
        document.getElementById('type-admin').classList.toggle('active', type === 'admin');
    }

    async function login(event) {
        event.preventDefault();
        const response = await fetch('/auth/login', {
            method: 'POST',
            headers: {'Content-Type': 'application/json'},
            body: JSON.stringify({
                username: document.getElementById('username').value,
                password: document.getElementById('password').value,
                loginType: loginType
            })
        });
        const data = await response.json();
        if (response.ok) {
            window.location.href = data.redirect;
        } else {
            document.getElementById('error').innerText = data.error || 'Login failed';
        }
        return false;
    }

    async function forgotPassword() {
        const username = prompt('Enter your username to reset password:');
        if (!username) return;
        const response = await fetch('/auth/forgot-password', {
            method: 'POST',
            headers: {'Content-Type': 'application/json'},
            body: JSON.stringify({username: username})
        });
        if (!response.ok) {
            alert('Username not found.');
            return;
        }
        const resetToken = prompt('Enter the reset token provided by your system administrator:');
        if (!resetToken) return;
        const newPassword = prompt('Enter your new password (min 8 characters):');
        if (!newPassword || newPassword.length < 8) {
            alert('Password must be at least 8 characters long.');
            return;
        }
        const reset = await fetch('/auth/reset-password', {
            method: 'POST',
            headers: {'Content-Type': 'application/json'},
            body: JSON.stringify({username: username, newPassword: newPassword, resetToken: resetToken})
        });
        alert(reset.ok ? 'Password reset successfully.' : 'Password reset failed.');
    }
</script>
</body>
</html>
'''

SIGNUP_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <title>Sign up - District Wi-Fi Monitor</title>
    {{ head|safe }}
</head>
<body>
<div class="container" style="max-width: 480px; margin-top: 60px;">
    <h3 class="mb-4">Create account</h3>
    <form onsubmit="return signup(event)">
        <input class="form-control mb-2" id="fullname" placeholder="Full name" required>
        <input class="form-control mb-2" id="email" type="email" placeholder="Email" required>
        <input class="form-control mb-2" id="username" placeholder="Username" required>
        <select class="form-select mb-2" id="role" required>
            <option value="user">User</option>
            <option value="viewer">Viewer</option>
        </select>
        <input class="form-control mb-2" id="password" type="password" minlength="8" placeholder="Password (min 8 characters)" required>
        <div id="message" class="small mb-2"></div>
        <button class="btn btn-primary w-100" type="submit">Sign up</button>
    </form>
    <p class="mt-3 small">Need an admin account? <a href="/admin-register">Register with a government ID</a>.</p>
</div>
<script>
    async function signup(event) {
        event.preventDefault();
        const response = await fetch('/api/auth/register', {
            method: 'POST',
            headers: {'Content-Type': 'application/json'},
            body: JSON.stringify({
                fullname: document.getElementById('fullname').value,
                email: document.getElementById('email').value,
                username: document.getElementById('username').value,
                role: document.getElementById('role').value,
                password: document.getElementById('password').value
            })
        });
        const data = await response.json();
        const message = document.getElementById('message');
        if (response.ok) {
            message.className = 'small mb-2 text-success';
            message.innerText = 'Account created. Redirecting to login...';
            setTimeout(() => { window.location.href = '/login'; }, 2000);
        } else {
            message.className = 'small mb-2 text-danger';
            message.innerText = data.error || 'Registration failed';
        }
        return false;
    }
</script>
</body>
</html>
'''

ADMIN_REGISTER_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <title>Admin registration - District Wi-Fi Monitor</title>
    {{ head|safe }}
</head>
<body>
<div class="container" style="max-width: 480px; margin-top: 60px;">
    <h3 class="mb-2">Admin registration</h3>
    <p class="text-muted small">Admin accounts stay pending until an existing admin approves them.</p>
    <form onsubmit="return registerAdmin(event)">
        <input class="form-control mb-2" id="fullname" placeholder="Full name" required>
        <input class="form-control mb-2" id="email" type="email" placeholder="Email" required>
        <input class="form-control mb-2" id="username" placeholder="Username" required>
        <input class="form-control mb-2" id="govId" pattern="[A-Za-z0-9]{12}" placeholder="Government ID (12 letters/digits)" required>
        <input class="form-control mb-2" id="department" placeholder="Department" required>
        <input class="form-control mb-2" id="password" type="password" minlength="8" placeholder="Password (min 8 characters)" required>
        <div id="message" class="small mb-2"></div>
        <button class="btn btn-primary w-100" type="submit">Submit registration</button>
    </form>
</div>
<script>
    async function registerAdmin(event) {
        event.preventDefault();
        const response = await fetch('/api/auth/admin-register', {
            method: 'POST',
            headers: {'Content-Type': 'application/json'},
            body: JSON.stringify({
                fullname: document.getElementById('fullname').value,
                email: document.getElementById('email').value,
                username: document.getElementById('username').value,
                govId: document.getElementById('govId').value,
                department: document.getElementById('department').value,
                password: document.getElementById('password').value
            })
        });
        const data = await response.json();
        const message = document.getElementById('message');
        if (response.ok) {
            message.className = 'small mb-2 text-success';
            message.innerText = 'Submitted. Registration ID: ' + data.registrationId;
            setTimeout(() => { window.location.href = '/login'; }, 3000);
        } else {
            message.className = 'small mb-2 text-danger';
            message.innerText = data.error || 'Registration failed';
        }
        return false;
    }
</script>
</body>
</html>
'''

# Shared by /dashboard (user) and /viewer (read-only)
DASHBOARD_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <title>{{ title }} - District Wi-Fi Monitor</title>
    {{ head|safe }}
</head>
<body>
{{ navbar|safe }}
<div class="container-fluid">
    <div class="row g-3 mb-4">
        <div class="col-md-3"><div class="card stat-card p-3"><div class="text-muted">Total hotspots</div><h3 id="totalHotspots">{{ wifi_data.totalHotspots }}</h3></div></div>
        <div class="col-md-3"><div class="card stat-card p-3"><div class="text-muted">Active hotspots</div><h3 id="activeHotspots">{{ wifi_data.activeHotspots }}</h3></div></div>
        <div class="col-md-3"><div class="card stat-card p-3"><div class="text-muted">Utilization</div><h3><span id="utilization">{{ wifi_data.utilization }}</span>%</h3></div></div>
        <div class="col-md-3"><div class="card stat-card p-3"><div class="text-muted">Critical districts</div><h3 id="criticalDistricts">{{ wifi_data.criticalDistricts }}</h3></div></div>
    </div>
    <div class="card p-3">
        <h5>Districts {% if read_only %}<span class="badge bg-secondary">read only</span>{% endif %}</h5>
        <table class="table table-sm">
            <thead><tr><th>Name</th><th>Active / Total</th><th>Utilization</th><th>Status</th><th>Last ping</th></tr></thead>
            <tbody id="district-table">
            {% for d in wifi_data.districts %}
                <tr><td>{{ d.name }}</td><td>{{ d.activeHotspots }} / {{ d.totalHotspots }}</td><td>{{ d.utilization }}%</td>
                    <td class="status-{{ d.status }}">{{ d.status }}</td><td>{{ d.lastPing }}</td></tr>
            {% endfor %}
            </tbody>
        </table>
        <small class="text-muted">Last updated: <span id="lastUpdated">{{ wifi_data.lastUpdated }}</span></small>
    </div>
</div>
<script src="https://cdn.socket.io/4.7.2/socket.io.min.js"></script>
<script>
    function render(data) {
        document.getElementById('totalHotspots').innerText = data.totalHotspots;
        document.getElementById('activeHotspots').innerText = data.activeHotspots;
        document.getElementById('utilization').innerText = data.utilization;
        document.getElementById('criticalDistricts').innerText = data.criticalDistricts;
        document.getElementById('lastUpdated').innerText = data.lastUpdated;
        const rows = data.districts.map(d =>
            `<tr><td>${d.name}</td><td>${d.activeHotspots} / ${d.totalHotspots}</td><td>${d.utilization}%</td>` +
            `<td class="status-${d.status}">${d.status}</td><td>${d.lastPing}</td></tr>`);
        document.getElementById('district-table').innerHTML = rows.join('');
    }

    const socket = io();
    socket.on('message', (message) => {
        if (message.type === 'initial_data' || message.type === 'data_update') {
            render(message.data);
        }
    });
    socket.on('disconnect', () => setTimeout(() => location.reload(), 3000));
</script>
</body>
</html>
'''

ADMIN_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <title>Admin - District Wi-Fi Monitor</title>
    {{ head|safe }}
</head>
<body>
{{ navbar|safe }}
<div class="container-fluid">
    <div class="row g-3 mb-4">
        <div class="col-md-3"><div class="card stat-card p-3"><div class="text-muted">Users</div><h3 id="userCount">-</h3></div></div>
        <div class="col-md-3"><div class="card stat-card p-3"><div class="text-muted">Admins</div><h3 id="adminCount">-</h3></div></div>
        <div class="col-md-3"><div class="card stat-card p-3"><div class="text-muted">Utilization</div><h3>{{ wifi_data.utilization }}%</h3></div></div>
        <div class="col-md-3"><div class="card stat-card p-3"><div class="text-muted">Critical districts</div><h3>{{ wifi_data.criticalDistricts }}</h3></div></div>
    </div>
    <div class="row g-3">
        <div class="col-lg-7">
            <div class="card p-3 mb-3">
                <div class="d-flex justify-content-between"><h5>Accounts</h5><button class="btn btn-sm btn-primary" onclick="createUser()">New user</button></div>
                <table class="table table-sm"><thead><tr><th>Username</th><th>Name</th><th>Role</th><th>Status</th><th></th></tr></thead>
                <tbody id="user-table"></tbody></table>
            </div>
            <div class="card p-3">
                <h5>Pending admin registrations</h5>
                <table class="table table-sm"><thead><tr><th>Username</th><th>Department</th><th>Gov ID</th><th></th></tr></thead>
                <tbody id="pending-table"></tbody></table>
            </div>
        </div>
        <div class="col-lg-5">
            <div class="card p-3 mb-3">
                <h5>Settings</h5>
                {% for s in settings %}
                <div class="input-group input-group-sm mb-2">
                    <span class="input-group-text" style="width: 160px;">{{ s.key }}</span>
                    <input class="form-control" id="setting-{{ s.key }}" value="{{ s.value }}">
                    <button class="btn btn-outline-secondary" onclick="saveSetting('{{ s.key }}')">Save</button>
                </div>
                {% endfor %}
            </div>
            <div class="card p-3">
                <div class="d-flex justify-content-between"><h5>Activity log</h5><button class="btn btn-sm btn-outline-danger" onclick="clearLogs()">Clear</button></div>
                <ul class="list-unstyled small" id="log-list"></ul>
            </div>
        </div>
    </div>
</div>
<script>
    async function api(url, options) {
        const response = await fetch(url, Object.assign({headers: {'Content-Type': 'application/json'}}, options || {}));
        const data = await response.json();
        if (!response.ok) { alert(data.error || 'Request failed'); }
        return data;
    }

    async function loadUsers() {
        const users = await api('/api/users');
        document.getElementById('userCount').innerText = users.length;
        document.getElementById('adminCount').innerText = users.filter(u => u.role === 'admin').length;
        document.getElementById('user-table').innerHTML = users.map(u =>
            `<tr><td>${u.username}</td><td>${u.fullname}</td><td>${u.role}</td><td>${u.isActive ? 'active' : u.status}</td>` +
            `<td><button class="btn btn-sm btn-link" onclick="changeRole(${u.id})">Role</button>` +
            `<button class="btn btn-sm btn-link" onclick="toggleActive(${u.id}, ${!u.isActive})">${u.isActive ? 'Deactivate' : 'Activate'}</button>` +
            `<button class="btn btn-sm btn-link text-danger" onclick="deleteUser(${u.id})">Delete</button></td></tr>`).join('');
    }

    async function loadPending() {
        const pending = await api('/api/admin/pending');
        document.getElementById('pending-table').innerHTML = pending.map(a =>
            `<tr><td>${a.username}</td><td>${a.department || ''}</td><td>${a.govId || ''}</td>` +
            `<td><button class="btn btn-sm btn-success" onclick="decide(${a.id}, 'approve')">Approve</button> ` +
            `<button class="btn btn-sm btn-outline-danger" onclick="decide(${a.id}, 'reject')">Reject</button></td></tr>`).join('');
    }

    async function loadLogs() {
        const logs = await api('/api/logs?limit=50');
        document.getElementById('log-list').innerHTML = logs.map(l =>
            `<li>${l.timestamp} <strong>${l.username || 'system'}</strong> ${l.action}</li>`).join('');
    }

    async function createUser() {
        const fullname = prompt('Full name:');
        const email = prompt('Email:');
        const username = prompt('Username:');
        const role = prompt('Role (user/admin/viewer):');
        const password = prompt('Password (min 8 characters):');
        if (!fullname || !email || !username || !role || !password) return;
        await api('/api/auth/register', {method: 'POST', body: JSON.stringify({fullname, email, username, role, password})});
        loadUsers(); loadLogs();
    }

    async function changeRole(id) {
        const role = prompt('New role (user/admin/viewer):');
        if (!role) return;
        await api(`/api/users/${id}`, {method: 'PUT', body: JSON.stringify({role: role})});
        loadUsers(); loadLogs();
    }

    async function toggleActive(id, active) {
        await api(`/api/users/${id}`, {method: 'PUT', body: JSON.stringify({is_active: active})});
        loadUsers(); loadLogs();
    }

    async function deleteUser(id) {
        if (!confirm('Delete this account?')) return;
        await api(`/api/users/${id}`, {method: 'DELETE'});
        loadUsers(); loadLogs();
    }

    async function decide(id, action) {
        await api(`/api/admin/${action}/${id}`, {method: 'POST'});
        loadPending(); loadUsers(); loadLogs();
    }

    async function saveSetting(key) {
        const value = document.getElementById('setting-' + key).value;
        await api(`/api/settings/${key}`, {method: 'PUT', body: JSON.stringify({value: value})});
        loadLogs();
    }

    async function clearLogs() {
        if (!confirm('Clear all activity logs?')) return;
        await api('/api/logs', {method: 'DELETE'});
        loadLogs();
    }

    loadUsers(); loadPending(); loadLogs();
    setInterval(loadLogs, 10000);
</script>
</body>
</html>
'''

DEVICES_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <title>Devices - District Wi-Fi Monitor</title>
    {{ head|safe }}
</head>
<body>
{{ navbar|safe }}
<div class="container-fluid">
    <div class="d-flex gap-2 mb-3">
        <select class="form-select form-select-sm" style="width: 220px;" id="districtFilter" onchange="loadDevices()">
            <option value="">All districts</option>
            {% for d in districts %}<option value="{{ d.id }}">{{ d.name }}</option>{% endfor %}
        </select>
        <button class="btn btn-sm btn-primary" onclick="simulateDevice()">Simulate device</button>
    </div>
    <div class="row g-3">
        <div class="col-lg-8">
            <div class="card p-3">
                <h5>Devices (<span id="deviceCount">0</span>)</h5>
                <table class="table table-sm"><thead><tr><th>Name</th><th>MAC</th><th>IP</th><th>Type</th><th>District</th><th>Data</th><th>Status</th></tr></thead>
                <tbody id="device-table"></tbody></table>
            </div>
        </div>
        <div class="col-lg-4">
            <div class="card p-3">
                <h5>Security events (<span id="unresolvedCount">0</span> open)</h5>
                <ul class="list-unstyled small" id="event-list"></ul>
            </div>
        </div>
    </div>
</div>
<script>
    function formatBytes(bytes) {
        if (!bytes) return '0 B';
        const sizes = ['B', 'KB', 'MB', 'GB', 'TB'];
        const i = Math.floor(Math.log(bytes) / Math.log(1024));
        return parseFloat((bytes / Math.pow(1024, i)).toFixed(2)) + ' ' + sizes[i];
    }

    async function loadDevices() {
        const district = document.getElementById('districtFilter').value;
        const response = await fetch('/api/devices' + (district ? '?district_id=' + district : ''));
        const devices = await response.json();
        document.getElementById('deviceCount').innerText = devices.length;
        document.getElementById('device-table').innerHTML = devices.map(d =>
            `<tr><td>${d.deviceName || ''}</td><td>${d.macAddress}</td><td>${d.ipAddress || ''}</td><td>${d.deviceType || ''}</td>` +
            `<td>${d.districtName || ''}</td><td>${formatBytes(d.dataUsage)}</td><td>${d.status}</td></tr>`).join('');
    }

    async function loadSecurityEvents() {
        const response = await fetch('/api/security-events?limit=10');
        const events = await response.json();
        document.getElementById('unresolvedCount').innerText = events.filter(e => !e.resolved).length;
        document.getElementById('event-list').innerHTML = events.map(e =>
            `<li class="mb-2"><strong>${e.eventType}</strong> [${e.severity}] ${e.description || ''}<br>` +
            `<span class="text-muted">${e.timestamp}</span> ` +
            (e.resolved ? `<span class="badge bg-success">resolved by ${e.resolvedBy}</span>`
                        : `<button class="btn btn-sm btn-link p-0" onclick="resolveEvent(${e.id})">Resolve</button>`) +
            `</li>`).join('');
    }

    async function resolveEvent(id) {
        const response = await fetch(`/api/security-events/${id}/resolve`, {method: 'POST'});
        if (!response.ok) { alert('Failed to resolve security event'); }
        loadSecurityEvents();
    }

    async function simulateDevice() {
        const response = await fetch('/api/simulate-device', {method: 'POST'});
        if (!response.ok) { alert('Failed to simulate device'); }
        loadDevices();
    }

    loadDevices(); loadSecurityEvents();
    setInterval(loadDevices, 30000);
    setInterval(loadSecurityEvents, 60000);
</script>
</body>
</html>
'''

MONITOR_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <title>Real-time monitor - District Wi-Fi Monitor</title>
    {{ head|safe }}
</head>
<body>
{{ navbar|safe }}
<div class="container-fluid">
    <div class="row g-3">
        <div class="col-lg-6">
            <div class="card p-3">
                <h5>Hotspots</h5>
                <table class="table table-sm"><thead><tr><th>Name</th><th>Address</th><th>Connections</th><th>Utilization</th><th>Status</th></tr></thead>
                <tbody id="hotspot-table"></tbody></table>
            </div>
        </div>
        <div class="col-lg-6">
            <div class="card p-3">
                <h5>Network utilization</h5>
                <p class="display-6"><span id="utilization">-</span>%</p>
                <p class="text-muted small">Updates received: <span id="updateCount">0</span> &middot; last: <span id="lastUpdated">-</span></p>
                <button class="btn btn-sm btn-outline-primary" onclick="requestUpdate()">Request update</button>
            </div>
        </div>
    </div>
</div>
<script src="https://cdn.socket.io/4.7.2/socket.io.min.js"></script>
<script>
    let updates = 0;
    const socket = io();

    socket.on('message', (message) => {
        const data = message.data;
        if (message.type === 'initial_data' && data.hotspots) {
            document.getElementById('hotspot-table').innerHTML = data.hotspots.map(h =>
                `<tr><td>${h.name}</td><td>${h.address}</td><td>${h.connections}</td><td>${h.utilization}%</td><td>${h.status}</td></tr>`).join('');
        }
        updates += 1;
        document.getElementById('utilization').innerText = data.utilization;
        document.getElementById('lastUpdated').innerText = data.lastUpdated;
        document.getElementById('updateCount').innerText = updates;
    });
    socket.on('disconnect', () => setTimeout(() => location.reload(), 3000));

    function requestUpdate() {
        socket.emit('message', {type: 'request_update'});
    }
</script>
</body>
</html>
'''
