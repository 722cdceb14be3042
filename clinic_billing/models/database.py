"""
Database models for the clinic billing service.
"""

from sqlalchemy import (
    JSON, BigInteger, Column, DateTime, Float, ForeignKey,
    Index, Integer, String, Text,
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func


Base = declarative_base()


class Customer(Base):
    """Billing customer, identified by tax id (DNI/NIF/CIF)."""
    __tablename__ = 'customers'

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    full_name = Column(String(255), index=True)
    tax_id = Column(String(20), unique=True, nullable=False, index=True)
    email = Column(String(180))
    phone = Column(String(50))
    billing_address = Column(Text)
    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    invoices = relationship("Invoice", back_populates="customer")

    @validates('first_name', 'last_name')
    def _sync_full_name(self, key, value):
        """Keep full_name as "first last" whenever either part changes."""
        first = value if key == 'first_name' else (self.first_name or '')
        last = value if key == 'last_name' else (self.last_name or '')
        self.full_name = f"{first} {last}".strip()
        return value

    @validates('tax_id')
    def _normalize_tax_id(self, key, tax_id):
        if tax_id is None:
            return tax_id
        return tax_id.strip().upper()


class Invoice(Base):
    """Issued invoice. ``number`` is stored without the display prefix."""
    __tablename__ = 'invoices'

    id = Column(Integer, primary_key=True, autoincrement=True)
    number = Column(String(20), unique=True, nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False)
    amount = Column(Float, nullable=False, default=0.0)
    currency = Column(String(3), nullable=False, default="EUR")

    # Billing identity snapshot (may diverge from the linked customer later)
    full_name = Column(String(50), nullable=False)
    phone = Column(String(50))
    address = Column(String(250))
    email = Column(String(100))
    tax_id = Column(String(15), index=True)

    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=True)
    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)

    customer = relationship("Customer", back_populates="invoices")
    lines = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.id",
    )

    __table_args__ = (
        Index('idx_invoice_date_number', 'date', 'number'),
    )


class InvoiceLine(Base):
    __tablename__ = 'invoice_lines'

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    concept = Column(String(255))
    description = Column(Text)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False, default=0.0)
    amount = Column(Float, nullable=False, default=0.0)  # quantity * price

    invoice = relationship("Invoice", back_populates="lines")


class Counter(Base):
    """Named monotonic counter (e.g. ``invoices_2025``) holding its last issued value."""
    __tablename__ = 'counters'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    value = Column(Text, nullable=False)


class AuditTrail(Base):
    """Field-level change log for audited entities."""
    __tablename__ = 'audit_trails'

    id = Column(BigInteger().with_variant(Integer, "sqlite"),
                primary_key=True, autoincrement=True)
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(String(100), nullable=False)
    operation = Column(String(20), nullable=False)
    changes = Column(JSON, nullable=False, default=dict)
    changed_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    ip_address = Column(String(45))
    user_agent = Column(Text)

    __table_args__ = (
        Index('idx_audit_entity', 'entity_type', 'entity_id'),
    )

    def changed_fields(self) -> list:
        return list((self.changes or {}).keys())


class StoredEvent(Base):
    """Append-only domain event (``InvoiceCreated``, ``CustomerUpdated`` ...).

    ``version`` counts events per aggregate, starting at 1.
    """
    __tablename__ = 'event_store'

    id = Column(BigInteger().with_variant(Integer, "sqlite"),
                primary_key=True, autoincrement=True)
    aggregate_type = Column(String(100), nullable=False)
    aggregate_id = Column(String(36), nullable=False)
    event_name = Column(String(255), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    occurred_on = Column(DateTime(timezone=True), nullable=False)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index('idx_es_aggregate', 'aggregate_type', 'aggregate_id'),
        Index('idx_es_event_name', 'event_name'),
        Index('idx_es_occurred_on', 'occurred_on'),
    )
