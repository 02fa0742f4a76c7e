# Domain Models
from hostel.models.entities import (
    Capsule, Guest, GuestToken, CapsuleProblem, AppSetting, AdminNotification,
    Occupancy, CheckoutResult
)

__all__ = [
    'Capsule', 'Guest', 'GuestToken', 'CapsuleProblem', 'AppSetting',
    'AdminNotification', 'Occupancy', 'CheckoutResult'
]
