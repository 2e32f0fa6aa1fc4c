"""
Store (tenant) model
Every theme composition entity hangs off a store row
"""
import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from core.database import Base


class Store(Base):
    __tablename__ = "stores"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_uid = Column(String(128), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    subdomain = Column(String(255), unique=True, index=True, nullable=False)

    # Theme currently rendered for the storefront
    active_theme_code = Column(String(100), nullable=False, default="base")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "ownerUid": self.owner_uid,
            "name": self.name,
            "subdomain": self.subdomain,
            "activeThemeCode": self.active_theme_code,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
