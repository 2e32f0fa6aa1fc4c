"""
Theme and per-store theme customization models
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, JSON, DateTime, Boolean, ForeignKey, UniqueConstraint
from core.database import Base


class Theme(Base):
    """Installed theme package metadata. Default templates stay in the package files."""
    __tablename__ = "themes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    version = Column(String(32), nullable=False, default="1.0.0")

    # Ordered list of {key, type, default} with dotted keys
    settings_schema = Column(JSON, nullable=False, default=list)

    is_published = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "version": self.version,
            "settingsSchema": self.settings_schema or [],
            "isPublished": bool(self.is_published),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class ThemeCustomization(Base):
    """A store's settings for one theme. Switching themes migrates these."""
    __tablename__ = "theme_customizations"
    __table_args__ = (
        UniqueConstraint("store_id", "theme_code", name="uq_theme_customization_store_theme"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id", ondelete="CASCADE"), index=True, nullable=False)
    theme_code = Column(String(100), nullable=False, index=True)

    settings = Column(JSON, nullable=False, default=dict)
    custom_css = Column(Text, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "storeId": self.store_id,
            "themeCode": self.theme_code,
            "settings": self.settings or {},
            "customCss": self.custom_css,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
