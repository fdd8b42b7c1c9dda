from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from medstock.db.base import Base


class Department(Base):
    """Receiving ward/department. Created lazily from free-text issue input."""
    __tablename__ = "inv_departments"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(255), unique=True, nullable=False)
    name = Column(String(200), nullable=False, index=True)
    type = Column(String(50), nullable=True)
    phone = Column(String(30), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
