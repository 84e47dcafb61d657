from sqlalchemy import Column, Integer, String, ForeignKey, Text, TIMESTAMP
from sqlalchemy.orm import relationship
from app.database.database import Base
from datetime import datetime

class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, index=True, nullable=False)
    country = Column(String(255), nullable=True)
    currency_code = Column(String(10), nullable=False, default="USD")  # default currency
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=True)

    users = relationship("User", back_populates="company", cascade="all, delete-orphan")
    approval_flow = relationship(
        "ApprovalFlowStep",
        back_populates="company",
        cascade="all, delete-orphan",
        order_by="ApprovalFlowStep.step_number",
    )


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    role = Column(String(50), nullable=False, default="employee")  # admin, manager, employee
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)  # at most one manager
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=True)

    manager = relationship("User", remote_side=[id])
    company = relationship("Company", back_populates="users")
