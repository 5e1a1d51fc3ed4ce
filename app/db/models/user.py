# app/db/models/user.py
"""Users referenced as task assignees"""
from sqlalchemy import Column, String

from app.db.models.base import Base, TimestampMixin, IntegerIdMixin


class User(Base, IntegerIdMixin, TimestampMixin):
    __tablename__ = "users"

    firstname = Column(String(100), nullable=False)
    lastname = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    def __repr__(self):
        return f"<User email={self.email}>"
