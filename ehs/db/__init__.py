"""Database layer for the EHS Platform."""
from .connection import DatabaseConnectionManager, get_connection_manager, init_db
from .models import Base

__all__ = ["Base", "DatabaseConnectionManager", "get_connection_manager", "init_db"]
