from .connection import Base, SessionLocal, engine, get_db, utcnow

__all__ = ["Base", "SessionLocal", "engine", "get_db", "utcnow"]
