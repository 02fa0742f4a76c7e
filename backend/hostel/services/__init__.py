# Business Services
from hostel.services.capsule_service import CapsuleService
from hostel.services.guest_service import GuestService
from hostel.services.token_service import TokenService
from hostel.services.occupancy_service import OccupancyService
from hostel.services.lifecycle_service import LifecycleService
from hostel.services.maintenance_service import MaintenanceService
from hostel.services.settings_service import SettingsService
from hostel.services.notification_service import NotificationService

__all__ = [
    'CapsuleService', 'GuestService', 'TokenService', 'OccupancyService',
    'LifecycleService', 'MaintenanceService', 'SettingsService', 'NotificationService'
]
