import uuid

from sqlalchemy import Column, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


class InventoryStockLocation(Base):
    __tablename__ = "inventory_stock_locations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    inventory_id = Column(
        Uuid,
        ForeignKey("inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    location = Column(Text, nullable=False)
    # Copied from the location registry when the row is written
    parent_location = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)

    inventory_item = relationship("InventoryItem", back_populates="stock_locations")

    @property
    def to_schema(self):
        return {
            "location": self.location,
            "parent_location": self.parent_location,
            "quantity": self.quantity,
        }
