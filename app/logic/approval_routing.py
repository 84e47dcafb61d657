"""Routing rules of the sequential approval workflow.

These functions work on plain values and ORM rows alike (anything with
``step_number`` / ``status`` attributes) so they can be exercised without a
database. The services in ``app.database.services`` load the rows and apply
the results.
"""
from decimal import Decimal
from typing import Iterable, List, Optional

from app.ReqResModels.approvalmodels import DecisionStatus


class ApprovalFlow:
    """A company's configured approval steps, ordered by step number.

    Built per call from the ``approval_flow_steps`` rows so every resolution
    works against its own snapshot of the configuration.
    """

    def __init__(self, company_id: int, steps: Iterable):
        self.company_id = company_id
        self.steps: List = sorted(steps, key=lambda s: s.step_number)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def is_empty(self) -> bool:
        return not self.steps

    def get_step(self, step_number: int):
        for step in self.steps:
            if step.step_number == step_number:
                return step
        return None

    def is_last_step(self, step_number: int) -> bool:
        return step_number >= self.total_steps


def current_step_number(approvals: Iterable) -> Optional[int]:
    """Walk the ledger in step order and return the step awaiting a decision.

    Returns None when a rejection ends the workflow. The caller still has to
    compare the result against the number of configured steps.
    """
    current = 1
    for approval in sorted(approvals, key=lambda a: a.step_number):
        status = approval.status
        if status == DecisionStatus.PENDING:
            return approval.step_number
        if status == DecisionStatus.REJECTED:
            return None
        if status == DecisionStatus.APPROVED:
            current = approval.step_number + 1
    return current


def should_fast_track(company_currency_amount, approver_role: str,
                      threshold: Decimal, finance_role: str) -> bool:
    """High-value expenses and finance approvals may close on the last step."""
    amount = Decimal(str(company_currency_amount))
    return amount > threshold or str(approver_role).lower() == finance_role


def is_fully_approved(approvals: Iterable, total_steps: int) -> bool:
    """One approved record per configured step."""
    approvals = list(approvals)
    return len(approvals) == total_steps and all(
        a.status == DecisionStatus.APPROVED for a in approvals
    )
