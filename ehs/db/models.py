"""Database models for the EHS Platform.

Every domain table carries a ``tenant_id`` foreign key. Tenant-owned rows
must only be read and written through ``ehs.services.tenant_scope``.
"""
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

from ehs.auth.roles import Role

Base = declarative_base()


def _now() -> datetime:
    return datetime.utcnow()


class TenantStatus(PyEnum):
    """Tenant subscription status."""

    ACTIVE = "ACTIVE"
    TRIAL = "TRIAL"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


class InvoiceStatus(PyEnum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class DocumentKind(PyEnum):
    """Document categories."""

    LAW = "LAW"
    PROCEDURE = "PROCEDURE"
    CHECKLIST = "CHECKLIST"
    FORM = "FORM"
    SDS = "SDS"
    PLAN = "PLAN"
    OTHER = "OTHER"


class DocumentStatus(PyEnum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    ARCHIVED = "ARCHIVED"


class IncidentType(PyEnum):
    """Incident categories."""

    AVVIK = "AVVIK"  # Deviation
    NESTEN = "NESTEN"  # Near miss
    SKADE = "SKADE"  # Personal injury
    MILJO = "MILJO"  # Environmental incident
    KVALITET = "KVALITET"  # Quality deviation
    HMS = "HMS"
    CUSTOMER = "CUSTOMER"  # Customer complaint


class IncidentStatus(PyEnum):
    OPEN = "OPEN"
    INVESTIGATING = "INVESTIGATING"
    ACTION_TAKEN = "ACTION_TAKEN"
    CLOSED = "CLOSED"


class RiskStatus(PyEnum):
    OPEN = "OPEN"
    MITIGATING = "MITIGATING"
    ACCEPTED = "ACCEPTED"
    CLOSED = "CLOSED"


class MeasureStatus(PyEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class ChemicalStatus(PyEnum):
    ACTIVE = "ACTIVE"
    PHASED_OUT = "PHASED_OUT"
    ARCHIVED = "ARCHIVED"


class Tenant(Base):
    """A company account; the root of data isolation."""

    __tablename__ = "tenants"
    __table_args__ = (
        Index("idx_tenants_status", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    org_number = Column(String(32), nullable=True)
    status = Column(
        SQLEnum(TenantStatus, name="tenant_status"),
        nullable=False,
        default=TenantStatus.TRIAL,
    )
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)

    memberships = relationship("UserTenant", back_populates="tenant", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="tenant", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug}, status={self.status.value if self.status else None})>"


class User(Base):
    """Global user identity; tenant roles live on UserTenant."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(320), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=True)
    is_superadmin = Column(Boolean, nullable=False, default=False)
    is_support = Column(Boolean, nullable=False, default=False)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime, nullable=True)
    last_tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)

    memberships = relationship(
        "UserTenant",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserTenant.created_at",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class UserTenant(Base):
    """A user's membership and role within one tenant."""

    __tablename__ = "user_tenants"
    __table_args__ = (
        UniqueConstraint("user_id", "tenant_id", name="uq_user_tenants_user_tenant"),
        Index("idx_user_tenants_tenant_role", "tenant_id", "role"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    role = Column(SQLEnum(Role, name="tenant_role"), nullable=False, default=Role.ANSATT)
    department = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_now)

    user = relationship("User", back_populates="memberships")
    tenant = relationship("Tenant", back_populates="memberships")


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        Index("idx_invoices_tenant_status", "tenant_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    status = Column(SQLEnum(InvoiceStatus, name="invoice_status"), nullable=False, default=InvoiceStatus.PENDING)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    due_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_now)

    tenant = relationship("Tenant", back_populates="invoices")


class Document(Base):
    """Controlled document (procedure, checklist, law reference, ...)."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_tenant_status", "tenant_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    kind = Column(SQLEnum(DocumentKind, name="document_kind"), nullable=False, default=DocumentKind.OTHER)
    status = Column(SQLEnum(DocumentStatus, name="document_status"), nullable=False, default=DocumentStatus.DRAFT)
    version = Column(String(32), nullable=False, default="1.0")
    content = Column(Text, nullable=True)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    next_review_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)


class Incident(Base):
    """Reported deviation, near miss or injury."""

    __tablename__ = "incidents"
    __table_args__ = (
        Index("idx_incidents_tenant_status", "tenant_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    type = Column(SQLEnum(IncidentType, name="incident_type"), nullable=False)
    status = Column(SQLEnum(IncidentStatus, name="incident_status"), nullable=False, default=IncidentStatus.OPEN)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(Integer, nullable=False)
    occurred_at = Column(DateTime, nullable=False)
    location = Column(String(255), nullable=True)
    immediate_action = Column(Text, nullable=True)
    reported_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    root_cause = Column(Text, nullable=True)
    contributing_factors = Column(Text, nullable=True)
    investigated_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    investigated_at = Column(DateTime, nullable=True)
    effectiveness_review = Column(Text, nullable=True)
    lessons_learned = Column(Text, nullable=True)
    closed_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)


class Risk(Base):
    """Risk assessment scored as likelihood x consequence."""

    __tablename__ = "risks"
    __table_args__ = (
        Index("idx_risks_tenant_status", "tenant_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    context = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    likelihood = Column(Integer, nullable=False)
    consequence = Column(Integer, nullable=False)
    score = Column(Integer, nullable=False)
    status = Column(SQLEnum(RiskStatus, name="risk_status"), nullable=False, default=RiskStatus.OPEN)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)


class Measure(Base):
    """Corrective or preventive action linked to an incident or risk."""

    __tablename__ = "measures"
    __table_args__ = (
        Index("idx_measures_tenant_incident", "tenant_id", "incident_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    incident_id = Column(Uuid, ForeignKey("incidents.id", ondelete="CASCADE"), nullable=True)
    risk_id = Column(Uuid, ForeignKey("risks.id", ondelete="CASCADE"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(MeasureStatus, name="measure_status"), nullable=False, default=MeasureStatus.PENDING)
    responsible_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    due_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)


class Chemical(Base):
    """Entry in the tenant's chemical register."""

    __tablename__ = "chemicals"
    __table_args__ = (
        Index("idx_chemicals_tenant_status", "tenant_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    product_name = Column(String(255), nullable=False)
    supplier = Column(String(255), nullable=True)
    cas_number = Column(String(64), nullable=True)
    hazard_class = Column(String(255), nullable=True)
    h_statements = Column(Text, nullable=True)
    p_statements = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    quantity = Column(Numeric(12, 3), nullable=True)
    unit = Column(String(32), nullable=True)
    sds_key = Column(String(512), nullable=True)
    sds_version = Column(String(64), nullable=True)
    sds_date = Column(DateTime, nullable=True)
    next_review_date = Column(DateTime, nullable=True)
    status = Column(SQLEnum(ChemicalStatus, name="chemical_status"), nullable=False, default=ChemicalStatus.ACTIVE)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_tenant_user", "tenant_id", "user_id", "read"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(512), nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=_now)


class AuditLog(Base):
    """Immutable record of a mutating action within a tenant."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_logs_tenant_created", "tenant_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(128), nullable=False)
    resource = Column(String(255), nullable=False)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_now)
