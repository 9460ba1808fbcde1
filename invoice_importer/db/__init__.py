from .gateway import PostgresGateway, StorageGateway
from .memory import InMemoryGateway

__all__ = ["InMemoryGateway", "PostgresGateway", "StorageGateway"]
