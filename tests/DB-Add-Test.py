"""
Script to add demo data to wifi_monitoring.db.
- Creates the schema and seed rows if needed
- Adds demo user and viewer accounts
- Adds demo devices with connection logs
- Adds a few security events and activity log entries
"""

import os
import sqlite3
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config  # noqa: E402
import database  # noqa: E402


def add_users():
    users = [
        ("Sara Mohammadi", "sara@example.com", "sara", "user", "password123"),
        ("Reza Karimi", "reza@example.com", "reza", "viewer", "password123"),
        ("Ali Rezaei", "ali@example.com", "ali", "user", "password123"),
    ]
    for fullname, email, username, role, password in users:
        try:
            database.create_user({
                'fullname': fullname,
                'email': email,
                'username': username,
                'role': role,
                'password': password
            })
            print(f"Added {role} account '{username}'")
        except sqlite3.IntegrityError:
            print(f"Account '{username}' already exists, skipping")


def add_devices():
    districts = database.get_all_districts()
    devices = [
        ("AA:BB:CC:00:00:01", "192.168.1.10", "Lobby-Laptop", "laptop", "Windows"),
        ("AA:BB:CC:00:00:02", "192.168.1.11", "Pixel-7", "mobile", "Android"),
        ("AA:BB:CC:00:00:03", "192.168.1.12", "iPad-Air", "tablet", "iOS"),
    ]
    for i, (mac, ip, name, device_type, os_type) in enumerate(devices):
        district_id = districts[i % len(districts)]['id'] if districts else None
        device = {
            'mac_address': mac,
            'ip_address': ip,
            'device_name': name,
            'device_type': device_type,
            'vendor': 'Unknown',
            'os_type': os_type,
            'district_id': district_id,
            'hotspot_id': i + 1
        }
        result = database.register_device(device)
        database.log_device_connection(result['id'], 'connect', dict(
            device,
            duration=600 * (i + 1),
            data_transferred=250000 * (i + 1),
            signal_strength=70 - i * 10,
            user_agent='Mozilla/5.0 (Demo Device)'
        ))
        print(f"{'Updated' if result['updated'] else 'Added'} device {name} ({mac})")


def add_security_events():
    events = [
        ("failed_login", "low", "192.168.1.50", "Failed login attempt for user: guest"),
        ("rogue_access_point", "high", "192.168.1.66", "Unknown SSID broadcasting near Downtown"),
        ("bandwidth_spike", "medium", "192.168.1.11", "Unusual traffic from Pixel-7"),
    ]
    for event_type, severity, ip, description in events:
        database.create_security_event({
            'event_type': event_type,
            'severity': severity,
            'ip_address': ip,
            'description': description
        })
    print(f"Added {len(events)} security events")


def add_activity_logs():
    admin = database.get_user_by_username(config.DEFAULT_ADMIN_USERNAME)
    admin_id = admin['id'] if admin else None
    logs = [
        "User logged in",
        "Updated setting: update_interval = 2",
        "User logged out",
    ]
    for action in logs:
        database.log_activity(admin_id, config.DEFAULT_ADMIN_USERNAME, action, '127.0.0.1')
    print(f"Added {len(logs)} activity log entries")


def add_all_test_data_to_db():
    try:
        database.init_db()
        add_users()
        add_devices()
        add_security_events()
        add_activity_logs()
        print(f"Test data added to {config.DATABASE}.")
    except sqlite3.Error as e:
        print(f"Could not add test data: {e}")


if __name__ == "__main__":
    config.load_config()
    add_all_test_data_to_db()
