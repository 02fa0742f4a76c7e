# API Routers
from hostel.routers import (
    auth, capsules, guests, occupancy, guest_tokens, guest_checkin,
    maintenance, settings, notifications
)

__all__ = [
    'auth', 'capsules', 'guests', 'occupancy', 'guest_tokens', 'guest_checkin',
    'maintenance', 'settings', 'notifications'
]
