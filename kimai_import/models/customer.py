"""Customer model for the destination store."""

from sqlalchemy import Column, Integer, String, Float, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from kimai_import.database import Base
from kimai_import.models.meta import HasMetaFields, MetaFieldColumns


class CustomerMeta(MetaFieldColumns, Base):
    __tablename__ = "customer_meta"

    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)


class Customer(HasMetaFields, Base):
    """A customer owns projects; looked up by its name during imports."""

    __tablename__ = "customers"

    meta_model = CustomerMeta

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False, index=True)
    number = Column(String(50), nullable=True)
    comment = Column(Text, nullable=True)
    company = Column(String(100), nullable=True)
    vat_id = Column(String(50), nullable=True)
    contact = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    country = Column(String(2), nullable=False)
    currency = Column(String(3), nullable=False)
    phone = Column(String(30), nullable=True)
    fax = Column(String(30), nullable=True)
    mobile = Column(String(30), nullable=True)
    email = Column(String(75), nullable=True)
    homepage = Column(String(100), nullable=True)
    timezone = Column(String(64), nullable=False)
    color = Column(String(7), nullable=True)
    visible = Column(Boolean, default=True, nullable=False)
    billable = Column(Boolean, default=True, nullable=False)
    budget = Column(Float, default=0.0, nullable=False)
    time_budget = Column(Integer, default=0, nullable=False)
    budget_type = Column(String(10), nullable=True)

    meta_fields = relationship("CustomerMeta", cascade="all, delete-orphan", lazy="selectin")

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"
