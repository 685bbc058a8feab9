import uuid
from sqlalchemy import Column, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from .database import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    parent_id = Column(Uuid, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=True, index=True)
    description = Column(Text, nullable=True)

    parent = relationship("Location", remote_side=[id], lazy="selectin", join_depth=4)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "parent_name": self.parent.name if self.parent else None,
            "description": self.description,
        }
