"""Database module."""

from carpool.db.database import SessionLocal, engine, get_db, init_db
from carpool.db.models import Base, InvitationCode, Setting, Trip, User

__all__ = [
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "Base",
    "User",
    "InvitationCode",
    "Setting",
    "Trip",
]
