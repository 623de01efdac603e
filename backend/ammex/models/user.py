"""
Users, customers and suppliers
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ammex.core.database import Base


class User(Base):
    """
    Staff and client accounts. Login email is matched case-insensitively.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default="Client", index=True)
    department = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="user", uselist=False)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    customer_code = Column(String(50), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True)
    tier_id = Column(Integer, ForeignKey("tiers.id"))

    customer_name = Column(String(255), nullable=False)
    contact_name = Column(String(255))
    street = Column(String(255))
    city = Column(String(100))
    postal_code = Column(String(20))
    country = Column(String(100))
    telephone1 = Column(String(50))
    telephone2 = Column(String(50))
    email1 = Column(String(255))
    email2 = Column(String(255))
    notes = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="customer")
    tier = relationship("Tier")
    orders = relationship("Order", back_populates="customer")


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    supplier_code = Column(String(50), nullable=False, unique=True, index=True)
    company_name = Column(String(255), nullable=False)
    contact_name = Column(String(255))
    street = Column(String(255))
    city = Column(String(100))
    postal_code = Column(String(20))
    country = Column(String(100))
    telephone1 = Column(String(50))
    email1 = Column(String(255))
    notes = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    archived_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
