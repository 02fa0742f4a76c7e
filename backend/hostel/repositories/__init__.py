# Repositories
from hostel.repositories.base import HostelRepository
from hostel.repositories.memory import InMemoryRepository
from hostel.repositories.sql import SqlAlchemyRepository

__all__ = ['HostelRepository', 'InMemoryRepository', 'SqlAlchemyRepository']
