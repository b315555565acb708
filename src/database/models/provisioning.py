"""
SQLAlchemy models for templates, their configuration and rendered instances.
"""

from sqlalchemy import Column, String, Text, TIMESTAMP, JSON, LargeBinary, ForeignKey, Index
from sqlalchemy.sql import func

from src.database.connection import Base


class TemplateRecord(Base):
    """
    Model for storing template source.
    """

    __tablename__ = "templates"

    name = Column(String(255), primary_key=True)
    source = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self):
        return f"<TemplateRecord(name={self.name})>"


class TemplateConfigurationRecord(Base):
    """
    Model for storing the 1:1 rendering configuration of a template.
    """

    __tablename__ = "template_configurations"

    template_name = Column(
        String(255),
        ForeignKey("templates.name", ondelete="CASCADE"),
        primary_key=True
    )
    id_field = Column(String(255), nullable=False, default="")
    dynamic_fields = Column(JSON, nullable=False, default=list)
    hashing_algorithm = Column(String(20), nullable=False, default="none")
    default_values = Column(JSON, nullable=False, default=dict)

    def __repr__(self):
        return f"<TemplateConfigurationRecord(template={self.template_name}, id_field={self.id_field})>"


class RenderedInstanceRecord(Base):
    """
    Model for storing rendered instances, keyed by template and identity value.

    Rows are written once and never updated.
    """

    __tablename__ = "rendered_instances"

    template_name = Column(
        String(255),
        ForeignKey("templates.name", ondelete="CASCADE"),
        primary_key=True
    )
    identity_value = Column(String(512), primary_key=True)

    generated_fields = Column(JSON, nullable=False, default=dict)  # Post-hash values
    rendered_output = Column(LargeBinary, nullable=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("idx_rendered_instances_created_at", "template_name", "created_at"),
    )

    def __repr__(self):
        return (
            f"<RenderedInstanceRecord("
            f"template={self.template_name}, "
            f"identity={self.identity_value}"
            f")>"
        )
