"""
Declarative base shared by the zone and order models.

Kept apart from database.py so models (and tests) can import it without
creating the engine.
"""
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase


class Base(AsyncAttrs, DeclarativeBase):
    pass
