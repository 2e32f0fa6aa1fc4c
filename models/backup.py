"""
Theme backup and theme file history models
Both tables are append-only: rows are never updated after insert
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, JSON, DateTime, Integer, ForeignKey, UniqueConstraint, Index
from core.database import Base


class ThemeBackup(Base):
    """Immutable versioned snapshot of a store's theme settings and customizations"""
    __tablename__ = "theme_backups"
    __table_args__ = (
        UniqueConstraint("store_id", "theme_code", "version", name="uq_theme_backup_version"),
        Index("idx_theme_backup_store_theme", "store_id", "theme_code"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False)
    theme_id = Column(String(36), nullable=True)
    theme_code = Column(String(100), nullable=False)
    theme_version = Column(String(32), nullable=True)

    version = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    settings = Column(JSON, nullable=False, default=dict)
    # {"templates": {...}, "sections": {...}, "styles": {...}}
    customizations = Column(JSON, nullable=False, default=dict)
    checksum = Column(String(64), nullable=False)

    created_by = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self, include_payload: bool = True):
        out = {
            "id": self.id,
            "storeId": self.store_id,
            "themeId": self.theme_id,
            "themeCode": self.theme_code,
            "themeVersion": self.theme_version,
            "version": self.version,
            "name": self.name,
            "description": self.description,
            "checksum": self.checksum,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if include_payload:
            out["settings"] = self.settings or {}
            out["customizations"] = self.customizations or {}
        return out


class ThemeFileHistory(Base):
    """Append-only log of raw theme source file edits"""
    __tablename__ = "theme_file_history"
    __table_args__ = (
        UniqueConstraint("store_id", "theme_code", "file_path", "version", name="uq_theme_file_history_version"),
        Index("idx_theme_file_history_file", "store_id", "theme_code", "file_path"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False)
    theme_code = Column(String(100), nullable=False)
    file_path = Column(String(512), nullable=False)

    version = Column(Integer, nullable=False)
    content = Column(Text, nullable=False, default="")
    change_type = Column(String(20), nullable=False)  # create | update | pre-restore | restore
    restored_from_id = Column(String(36), nullable=True)

    created_by = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self, include_content: bool = True):
        out = {
            "id": self.id,
            "storeId": self.store_id,
            "themeCode": self.theme_code,
            "filePath": self.file_path,
            "version": self.version,
            "changeType": self.change_type,
            "restoredFromId": self.restored_from_id,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if include_content:
            out["content"] = self.content
        return out
