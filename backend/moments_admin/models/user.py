from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func
from moments_admin.core.database import Base

class User(Base):
    __tablename__ = "users"
    id = Column(String(26), primary_key=True)
    role = Column(String, nullable=False, server_default="owner")
    email = Column(String, unique=True, nullable=True)
    first_name = Column(String)
    last_name = Column(String)
    password_hash = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
