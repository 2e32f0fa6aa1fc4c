"""
Global sections (header, footer, announcement bar) shared by every template of a theme.
Kept in their own table so deleting a template can never remove shared chrome.
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, JSON, DateTime, Boolean, ForeignKey, UniqueConstraint
from core.database import Base


class GlobalSection(Base):
    __tablename__ = "global_sections"
    __table_args__ = (
        UniqueConstraint("store_id", "theme_code", "section_type", name="uq_global_section_store_theme_type"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    theme_code = Column(String(100), nullable=False, index=True)
    section_type = Column(String(100), nullable=False)

    enabled = Column(Boolean, default=True, nullable=False)
    settings = Column(JSON, nullable=False, default=dict)
    # Nested block tree kept inline; global chrome is small and edited as a whole
    blocks = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "storeId": self.store_id,
            "themeCode": self.theme_code,
            "sectionType": self.section_type,
            "enabled": bool(self.enabled),
            "settings": self.settings or {},
            "blocks": self.blocks or [],
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
