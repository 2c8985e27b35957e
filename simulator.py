"""
Simulated district metrics and the real-time broadcast loop.

The in-memory snapshot (wifi_data) mirrors the districts table plus the
aggregate counters shown on the dashboards. On every tick each district's
counters take a bounded random step, the new values are written back to the
database, a metrics row is saved and the snapshot is pushed to every
connected Socket.IO client as a {type, data} envelope.
"""

import copy
import logging
import random
import threading

import config
import database

logger = logging.getLogger(__name__)

# Socket.IO event carrying every {type, data} envelope
MESSAGE_EVENT = 'message'

# In-memory data store for real-time updates
wifi_data = {
    'totalHotspots': 0,
    'activeHotspots': 0,
    'utilization': 0,
    'criticalDistricts': 0,
    'districts': [],
    'lastUpdated': None
}
state_lock = threading.Lock()

_stop_event = threading.Event()
_update_task = None

SAMPLE_HOTSPOTS = [
    # id, name, lat, lng, address
    (1, 'Times Square Hotspot', 40.7580, -73.9855, 'Times Square, NYC'),
    (2, 'Central Park WiFi', 40.7829, -73.9654, 'Central Park, NYC'),
    (3, 'Brooklyn Bridge Hotspot', 40.7061, -73.9969, 'Brooklyn Bridge, NYC'),
    (4, 'Wall Street Zone', 40.7074, -74.0113, 'Wall Street, NYC'),
    (5, 'Union Square Hub', 40.7359, -73.9911, 'Union Square, NYC'),
]


def clamp(value, low, high):
    return max(low, min(high, value))


def get_snapshot():
    """Deep copy of the current snapshot, safe to serialize outside the lock."""
    with state_lock:
        return copy.deepcopy(wifi_data)


def update_metrics_from_districts():
    """
    Recompute the aggregate counters from the district list.
    Caller must hold state_lock.
    """
    districts = wifi_data['districts']
    total_hotspots = sum(d['totalHotspots'] for d in districts)
    active_hotspots = sum(d['activeHotspots'] for d in districts)

    wifi_data['totalHotspots'] = total_hotspots
    wifi_data['activeHotspots'] = active_hotspots
    wifi_data['utilization'] = round(active_hotspots / total_hotspots * 100) if total_hotspots > 0 else 0
    wifi_data['criticalDistricts'] = sum(1 for d in districts if d['status'] == 'critical')
    wifi_data['lastUpdated'] = database.get_local_time().isoformat()


def load_districts_from_db():
    """Replace the in-memory districts with the stored rows and recompute totals."""
    districts = database.get_all_districts()
    with state_lock:
        wifi_data['districts'] = districts
        update_metrics_from_districts()
    logger.info(f"Loaded {len(districts)} districts from database")
    return districts


def next_status(status, roll):
    """
    Status after a random roll in [0, 1).

    Below 0.05 flips towards/away from critical, below 0.10 flips
    towards/away from normal, otherwise the status is kept.
    """
    if roll < 0.05:
        return 'warning' if status == 'critical' else 'critical'
    if roll < 0.1:
        return 'warning' if status == 'normal' else 'normal'
    return status


def step_district(district, rng=random):
    """
    Apply one random step to a district dict in place.

    active hotspots move by -10..9 within [0, total], utilization by -4..3
    within [0, 100], and the status may flip.

    Returns:
        dict: The column updates to persist
    """
    active = clamp(district['activeHotspots'] + rng.randint(-10, 9), 0, district['totalHotspots'])
    utilization = clamp(district['utilization'] + rng.randint(-4, 3), 0, 100)
    status = next_status(district['status'], rng.random())

    district['activeHotspots'] = active
    district['utilization'] = utilization
    district['status'] = status
    district['lastPing'] = database.now_str()

    return {
        'active_hotspots': active,
        'utilization': utilization,
        'status': status
    }


def generate_sample_hotspots(rng=random):
    """Named hotspots with live-looking connection and utilization figures."""
    hotspots = []
    for hotspot_id, name, lat, lng, address in SAMPLE_HOTSPOTS:
        status = 'online'
        connections = rng.randint(15, 59)
        utilization = rng.randint(50, 89)
        if hotspot_id == 3 and rng.random() > 0.3:
            status = 'warning'
        elif hotspot_id == 4 and rng.random() > 0.8:
            status = 'offline'
            connections = 0
            utilization = 0
        hotspots.append({
            'id': hotspot_id,
            'name': name,
            'lat': lat,
            'lng': lng,
            'status': status,
            'connections': connections,
            'utilization': utilization,
            'address': address
        })
    return hotspots


def build_envelope(message_type, include_hotspots=False):
    """
    Build a {type, data} message from the current snapshot.

    Args:
        message_type (str): 'initial_data' or 'data_update'
        include_hotspots (bool): Attach sample hotspot markers (initial_data)
    """
    data = get_snapshot()
    if include_hotspots:
        data['hotspots'] = generate_sample_hotspots()
    return {'type': message_type, 'data': data}


def broadcast_update(socketio):
    """Push a data_update envelope to every connected client."""
    if socketio is None:
        return
    socketio.emit(MESSAGE_EVENT, build_envelope('data_update'))


def simulate_tick(socketio=None, rng=random):
    """
    One simulation step: perturb, persist, snapshot metrics, broadcast.

    Errors are logged and swallowed so the update loop keeps running.

    Returns:
        bool: True when the tick completed
    """
    try:
        with state_lock:
            pending = []
            for district in wifi_data['districts']:
                pending.append((district['id'], step_district(district, rng)))
            update_metrics_from_districts()
            metrics = {
                'totalHotspots': wifi_data['totalHotspots'],
                'activeHotspots': wifi_data['activeHotspots'],
                'utilization': wifi_data['utilization'],
                'criticalDistricts': wifi_data['criticalDistricts']
            }

        for district_id, updates in pending:
            database.update_district(district_id, updates)
        database.save_metrics(metrics)

        broadcast_update(socketio)
        return True
    except Exception as e:
        logger.error(f"Error in real-time data simulation: {e}")
        return False


def get_update_interval():
    interval = database.get_int_setting('update_interval', config.UPDATE_INTERVAL)
    return interval if interval > 0 else config.UPDATE_INTERVAL


def run_update_loop(socketio):
    """Tick until stop_background_updates() is called."""
    logger.info("Real-time update loop started")
    while not _stop_event.is_set():
        socketio.sleep(get_update_interval())
        if _stop_event.is_set():
            break
        simulate_tick(socketio)
    logger.info("Real-time update loop stopped")


def start_background_updates(socketio):
    """Start the update loop as a Socket.IO background task (once)."""
    global _update_task
    if _update_task is not None:
        return _update_task
    _stop_event.clear()
    _update_task = socketio.start_background_task(run_update_loop, socketio)
    return _update_task


def stop_background_updates():
    global _update_task
    _stop_event.set()
    _update_task = None
