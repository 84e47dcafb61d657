from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database.database import Base

class ApprovalFlowStep(Base):
    __tablename__ = "approval_flow_steps"
    __table_args__ = (
        UniqueConstraint("company_id", "step_number", name="uq_flow_step_company_step"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)  # 1, 2, 3 ... with no gaps
    approver_role = Column(String(50), nullable=False)  # manager, finance, director

    # Fixed approver for non-manager roles; manager steps resolve to the submitter's manager
    static_approver_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    company = relationship("Company", back_populates="approval_flow")
    static_approver = relationship("User")
