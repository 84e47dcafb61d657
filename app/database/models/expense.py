from sqlalchemy import Column, Integer, Numeric, String, ForeignKey, Text, Date, TIMESTAMP, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database.database import Base
from datetime import datetime

class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    submitted_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency_code = Column(String(10), nullable=False)
    company_currency_amount = Column(Numeric(12, 2), nullable=False)  # normalized to the company currency
    category = Column(String(100), nullable=False)
    description = Column(Text)
    expense_date = Column(Date, nullable=False)
    status = Column(String(50), nullable=False, default="pending")  # pending, approved, rejected
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=True)

    # Relationships
    submitted_by_user = relationship("User", foreign_keys=[submitted_by])
    company = relationship("Company")
    approvals = relationship(
        "ExpenseApproval",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseApproval.step_number",
    )


class ExpenseApproval(Base):
    __tablename__ = "expense_approvals"
    __table_args__ = (
        UniqueConstraint("expense_id", "step_number", name="uq_expense_approval_step"),
    )

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    approver_role = Column(String(50), nullable=False)
    status = Column(String(50), nullable=False, default="pending")  # pending, approved, rejected
    comments = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    decided_at = Column(TIMESTAMP, nullable=True)

    expense = relationship("Expense", back_populates="approvals")
    approver = relationship("User")
