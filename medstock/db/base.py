# medstock/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All inventory tables inherit from this."""
    pass
