from sqlalchemy import Column, String, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from copyit.db.base import BaseModel


class Entry(BaseModel):
    __tablename__ = "entries"
    
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.uuid"), index=True, nullable=False)
    
    # Relationships
    owner = relationship("User", back_populates="entries")
