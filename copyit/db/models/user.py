from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from copyit.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"
    
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    
    # Relationships
    entries = relationship("Entry", back_populates="owner", cascade="all, delete-orphan")
