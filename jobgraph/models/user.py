# user.py
from sqlalchemy import Column, DateTime, Enum, Integer, String
from sqlalchemy.sql import func

from jobgraph.database import Base
from jobgraph.models.enums import UserRole, enum_values


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(
        Enum(UserRole, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
