from .connection import Base, SessionLocal, connect_args_for, engine, make_engine

__all__ = ["Base", "SessionLocal", "connect_args_for", "engine", "make_engine"]
