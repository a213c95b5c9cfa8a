"""SQL persistence for the portal server: declarative base, engine and sessions."""

from .session import Base, get_engine, get_session

__all__ = ["Base", "get_engine", "get_session"]
