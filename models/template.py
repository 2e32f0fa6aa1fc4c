"""
Store template models: StoreTemplate -> StoreSectionInstance -> SectionBlock (tree)
Blocks are persisted flat with a parent pointer; utils.block_tree converts to/from the nested form.
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, JSON, DateTime, Boolean, Integer, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from core.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class StoreTemplate(Base):
    """Section list for one page type of one store"""
    __tablename__ = "store_templates"
    __table_args__ = (
        # At most one default template per (store, template type)
        Index(
            "uq_store_templates_default",
            "store_id", "template_type",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
        Index("idx_store_templates_store_type", "store_id", "template_type"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    theme_id = Column(String(36), ForeignKey("themes.id", ondelete="SET NULL"), nullable=True, index=True)

    template_type = Column(String(100), nullable=False)  # homepage, product, collection, page, ...
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    is_default = Column(Boolean, default=False, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)

    settings = Column(JSON, nullable=False, default=dict)
    seo_settings = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    sections = relationship(
        "StoreSectionInstance",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="StoreSectionInstance.position",
    )

    def to_dict(self, include_sections: bool = False):
        out = {
            "id": self.id,
            "storeId": self.store_id,
            "themeId": self.theme_id,
            "templateType": self.template_type,
            "name": self.name,
            "description": self.description,
            "isDefault": bool(self.is_default),
            "enabled": bool(self.enabled),
            "settings": self.settings or {},
            "seoSettings": self.seo_settings or {},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_sections:
            out["sections"] = [s.to_dict() for s in self.sections]
        return out


class StoreSectionInstance(Base):
    """A configurable region of a template. Positions are 0-based and contiguous."""
    __tablename__ = "store_section_instances"
    __table_args__ = (
        Index("idx_section_template_position", "template_id", "position"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    template_id = Column(String(36), ForeignKey("store_templates.id", ondelete="CASCADE"), nullable=False, index=True)

    section_type = Column(String(100), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, default=True, nullable=False)
    settings = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    template = relationship("StoreTemplate", back_populates="sections")
    blocks = relationship(
        "SectionBlock",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="SectionBlock.position",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "templateId": self.template_id,
            "sectionType": self.section_type,
            "position": self.position,
            "enabled": bool(self.enabled),
            "settings": self.settings or {},
        }


class SectionBlock(Base):
    """Block row. parent_block_id is null for top-level blocks of a section."""
    __tablename__ = "section_blocks"
    __table_args__ = (
        Index("idx_block_section_parent_position", "section_id", "parent_block_id", "position"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    section_id = Column(String(36), ForeignKey("store_section_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_block_id = Column(String(36), ForeignKey("section_blocks.id", ondelete="CASCADE"), nullable=True, index=True)

    type = Column(String(100), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, default=True, nullable=False)
    settings = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)

    section = relationship("StoreSectionInstance", back_populates="blocks")
    children = relationship(
        "SectionBlock",
        cascade="all",
        order_by="SectionBlock.position",
    )

    def to_flat(self):
        """Flat record consumed by utils.block_tree.nest"""
        return {
            "id": self.id,
            "parentId": self.parent_block_id,
            "type": self.type,
            "position": self.position,
            "enabled": bool(self.enabled),
            "settings": self.settings or {},
        }
