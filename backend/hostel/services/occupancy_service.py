"""
入住率统计
每次调用都从仓储实时计算，不做缓存
"""
import math

from hostel.models.entities import Occupancy
from hostel.repositories.base import HostelRepository


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class OccupancyService:
    """入住率统计服务"""

    def __init__(self, repository: HostelRepository):
        self.repo = repository

    def get_occupancy(self) -> Occupancy:
        """
        total 为胶囊登记数（实时行数），occupied 为在住客人数
        available = total - occupied；total 为 0 时入住率为 0
        """
        with self.repo.atomic():
            total = self.repo.count_capsules()
            occupied = self.repo.count_checked_in_guests()
        rate = round_half_up(occupied / total * 100) if total else 0
        return Occupancy(
            total=total,
            occupied=occupied,
            available=total - occupied,
            occupancy_rate=rate
        )
