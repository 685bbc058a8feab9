import uuid

from sqlalchemy import JSON, Column, DateTime, String, Text, Uuid

from ..database import Base, utcnow


class InventoryActivity(Base):
    __tablename__ = "inventory_activity"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # No foreign key: history must survive deletion of the item
    inventory_id = Column(Uuid, nullable=False, index=True)
    user_id = Column(String, nullable=True, index=True)

    action = Column(Text, nullable=False, index=True)  # 'created' | 'updated' | 'deleted'
    item_name = Column(String, nullable=True)
    changes = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "user_id": self.user_id,
            "action": self.action,
            "item_name": self.item_name,
            "changes": self.changes or {},
            "created_at": self.created_at,
        }
