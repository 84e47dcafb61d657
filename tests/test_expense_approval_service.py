import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.database.models.approval import ApprovalFlowStep
from app.database.models.expense import Expense, ExpenseApproval
from app.database.services.expense_approval_service import ExpenseApprovalService
from app.ReqResModels.approvalmodels import ApprovalDecision
from app.logic.exceptions import (
    NotFoundError,
    ConfigurationError,
    ValidationError,
    AuthorizationError,
    DatabaseError,
)

APPROVE = ApprovalDecision.APPROVED
REJECT = ApprovalDecision.REJECTED


def add_record(db, expense, step_number, approver, role, status):
    approval = ExpenseApproval(
        expense_id=expense.id,
        step_number=step_number,
        approver_id=approver.id,
        approver_role=role,
        status=status,
    )
    db.add(approval)
    db.commit()
    return approval


def decide(db, expense, approver, decision=APPROVE, comments=None):
    return ExpenseApprovalService.process_approval_decision(db, expense.id, approver.id, decision, comments)


class TestGetNextApprover:

    def test_first_step_resolves_to_submitters_manager(self, db, org, default_flow, make_expense):
        expense = make_expense()
        result = ExpenseApprovalService.get_next_approver(db, expense.id)

        assert result.step_number == 1
        assert result.approver_role == "manager"
        assert result.approver_id == org.manager.id
        assert result.approver_name == "Bob Manager"
        assert result.approver_email == "bob.manager@acme.test"

    def test_static_approver_after_manager_approval(self, db, org, default_flow, make_expense):
        expense = make_expense()
        add_record(db, expense, 1, org.manager, "manager", "approved")

        result = ExpenseApprovalService.get_next_approver(db, expense.id)
        assert result.step_number == 2
        assert result.approver_id == org.finance.id

    def test_pending_record_marks_awaited_step(self, db, org, default_flow, make_expense):
        expense = make_expense()
        add_record(db, expense, 1, org.manager, "manager", "approved")
        add_record(db, expense, 2, org.finance, "finance", "pending")

        assert ExpenseApprovalService.get_next_approver(db, expense.id).step_number == 2

    def test_rejection_means_no_further_action(self, db, org, default_flow, make_expense):
        expense = make_expense()
        add_record(db, expense, 1, org.manager, "manager", "rejected")
        add_record(db, expense, 2, org.finance, "finance", "approved")

        assert ExpenseApprovalService.get_next_approver(db, expense.id) is None

    def test_all_steps_approved_means_no_further_action(self, db, org, default_flow, make_expense):
        expense = make_expense()
        add_record(db, expense, 1, org.manager, "manager", "approved")
        add_record(db, expense, 2, org.finance, "finance", "approved")
        add_record(db, expense, 3, org.director, "director", "approved")

        assert ExpenseApprovalService.get_next_approver(db, expense.id) is None

    def test_is_idempotent(self, db, org, default_flow, make_expense):
        expense = make_expense()
        first = ExpenseApprovalService.get_next_approver(db, expense.id)
        second = ExpenseApprovalService.get_next_approver(db, expense.id)
        assert first == second

    def test_unknown_expense(self, db, org, default_flow):
        with pytest.raises(NotFoundError):
            ExpenseApprovalService.get_next_approver(db, 999)

    def test_company_without_flow(self, db, org, make_expense):
        expense = make_expense()
        with pytest.raises(ConfigurationError):
            ExpenseApprovalService.get_next_approver(db, expense.id)

    def test_submitter_without_manager(self, db, org, default_flow, make_expense):
        expense = make_expense(submitter=org.loner)
        with pytest.raises(ValidationError) as exc_info:
            ExpenseApprovalService.get_next_approver(db, expense.id)
        assert "manager" in exc_info.value.message

    def test_fixed_role_step_without_approver(self, db, org, make_expense):
        db.add(ApprovalFlowStep(company_id=org.company.id, step_number=1, approver_role="finance"))
        db.commit()
        expense = make_expense()

        with pytest.raises(ConfigurationError):
            ExpenseApprovalService.get_next_approver(db, expense.id)

    def test_gap_in_step_numbers(self, db, org, make_expense):
        db.add_all([
            ApprovalFlowStep(company_id=org.company.id, step_number=1, approver_role="manager"),
            ApprovalFlowStep(company_id=org.company.id, step_number=3, approver_role="director",
                             static_approver_id=org.director.id),
        ])
        db.commit()
        expense = make_expense()
        add_record(db, expense, 1, org.manager, "manager", "approved")

        with pytest.raises(ConfigurationError):
            ExpenseApprovalService.get_next_approver(db, expense.id)

    def test_missing_approver_user(self, db, org, make_expense):
        db.add(ApprovalFlowStep(company_id=org.company.id, step_number=1, approver_role="director",
                                static_approver_id=4242))
        db.commit()
        expense = make_expense()

        with pytest.raises(NotFoundError):
            ExpenseApprovalService.get_next_approver(db, expense.id)


class TestProcessApprovalDecision:

    def test_wrong_actor_is_rejected_without_writes(self, db, org, default_flow, make_expense):
        expense = make_expense()

        with pytest.raises(AuthorizationError):
            decide(db, expense, org.director)

        assert db.query(ExpenseApproval).count() == 0
        assert db.get(Expense, expense.id).status == "pending"

    def test_unknown_expense(self, db, org, default_flow):
        with pytest.raises(NotFoundError):
            ExpenseApprovalService.process_approval_decision(db, 999, org.manager.id, APPROVE)

    def test_high_amount_fast_tracks_without_skipping_steps(self, db, org, default_flow, make_expense):
        expense = make_expense(amount="850.00")

        result = decide(db, expense, org.manager, comments="ok")

        assert result.fast_tracked is True
        assert result.expense_status == "pending"
        assert result.approval.step_number == 1
        assert result.approval.approver_role == "manager"
        assert result.approval.status == "approved"
        assert result.approval.comments == "ok"
        assert result.approval.decided_at is not None
        assert ExpenseApprovalService.get_next_approver(db, expense.id).step_number == 2

    def test_high_amount_approved_on_last_step(self, db, org, default_flow, make_expense):
        expense = make_expense(amount="850.00")
        decide(db, expense, org.manager)
        decide(db, expense, org.finance)
        result = decide(db, expense, org.director)

        assert result.fast_tracked is True
        assert result.expense_status == "approved"
        assert db.get(Expense, expense.id).status == "approved"

    def test_finance_role_fast_tracks_regardless_of_amount(self, db, org, default_flow, make_expense):
        expense = make_expense(amount="250.00")
        decide(db, expense, org.manager)

        result = decide(db, expense, org.finance)

        assert result.fast_tracked is True
        assert result.expense_status == "pending"

    def test_normal_flow_approves_after_every_step(self, db, org, default_flow, make_expense):
        expense = make_expense(amount="250.00")

        first = decide(db, expense, org.manager)
        assert first.fast_tracked is False
        assert first.expense_status == "pending"

        decide(db, expense, org.finance)

        last = decide(db, expense, org.director)
        assert last.fast_tracked is False
        assert last.expense_status == "approved"
        assert ExpenseApprovalService.get_next_approver(db, expense.id) is None

    def test_amount_at_threshold_is_not_fast_tracked(self, db, org, default_flow, make_expense):
        expense = make_expense(amount="500.00")
        assert decide(db, expense, org.manager).fast_tracked is False

    def test_threshold_uses_company_currency_amount(self, db, org, default_flow, make_expense):
        expense = make_expense(amount="400.00", company_currency_amount="620.00")
        assert decide(db, expense, org.manager).fast_tracked is True

    def test_finance_as_last_step_approves_expense(self, db, org, make_expense):
        db.add_all([
            ApprovalFlowStep(company_id=org.company.id, step_number=1, approver_role="manager"),
            ApprovalFlowStep(company_id=org.company.id, step_number=2, approver_role="finance",
                             static_approver_id=org.finance.id),
        ])
        db.commit()
        expense = make_expense(amount="100.00")
        decide(db, expense, org.manager)

        result = decide(db, expense, org.finance)
        assert result.fast_tracked is True
        assert result.expense_status == "approved"

    def test_rejection_is_terminal(self, db, org, default_flow, make_expense):
        expense = make_expense(amount="850.00")
        decide(db, expense, org.manager)

        result = decide(db, expense, org.finance, REJECT, comments="Missing receipt")

        assert result.expense_status == "rejected"
        assert result.fast_tracked is False
        assert result.approval.status == "rejected"
        assert db.get(Expense, expense.id).status == "rejected"
        assert ExpenseApprovalService.get_next_approver(db, expense.id) is None

        with pytest.raises(ValidationError):
            decide(db, expense, org.director)

    def test_decision_on_fully_approved_expense(self, db, org, default_flow, make_expense):
        expense = make_expense()
        decide(db, expense, org.manager)
        decide(db, expense, org.finance)
        decide(db, expense, org.director)

        with pytest.raises(ValidationError):
            decide(db, expense, org.director)

    def test_approved_expense_is_not_reopened_by_a_new_step(self, db, org, default_flow, make_expense):
        expense = make_expense(amount="850.00")
        decide(db, expense, org.manager)
        decide(db, expense, org.finance)
        assert decide(db, expense, org.director).expense_status == "approved"

        db.add(ApprovalFlowStep(company_id=org.company.id, step_number=4, approver_role="director",
                                static_approver_id=org.director.id))
        db.commit()

        with pytest.raises(ValidationError):
            decide(db, expense, org.director, REJECT)

        assert db.get(Expense, expense.id).status == "approved"
        assert db.query(ExpenseApproval).filter(ExpenseApproval.expense_id == expense.id).count() == 3

    def test_failed_commit_leaves_no_partial_writes(self, db, org, default_flow, make_expense, monkeypatch):
        expense = make_expense()

        def failing_commit():
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(DatabaseError):
            decide(db, expense, org.manager, REJECT)
        monkeypatch.undo()

        assert db.query(ExpenseApproval).count() == 0
        assert db.get(Expense, expense.id).status == "pending"

    def test_pending_record_is_overwritten(self, db, org, default_flow, make_expense):
        expense = make_expense()
        placeholder = add_record(db, expense, 1, org.manager, "manager", "pending")

        result = decide(db, expense, org.manager, comments="looks fine")

        records = db.query(ExpenseApproval).filter(ExpenseApproval.expense_id == expense.id).all()
        assert len(records) == 1
        assert result.approval.id == placeholder.id
        assert records[0].status == "approved"
        assert records[0].comments == "looks fine"

    def test_accepts_plain_string_decision(self, db, org, default_flow, make_expense):
        expense = make_expense()
        result = ExpenseApprovalService.process_approval_decision(db, expense.id, org.manager.id, "rejected")
        assert result.expense_status == "rejected"

    def test_missing_manager_blocks_decision(self, db, org, default_flow, make_expense):
        expense = make_expense(submitter=org.loner)
        with pytest.raises(ValidationError):
            decide(db, expense, org.manager)


class TestPendingReviewsAndHistory:

    def test_pending_reviews_follow_the_resolver(self, db, org, default_flow, make_expense):
        waiting_on_manager = make_expense(amount="120.00")
        waiting_on_finance = make_expense(amount="80.00")
        decide(db, waiting_on_finance, org.manager)

        manager_inbox = ExpenseApprovalService.get_pending_reviews(db, org.manager.id)
        finance_inbox = ExpenseApprovalService.get_pending_reviews(db, org.finance.id)

        assert [r.expense_id for r in manager_inbox.pending_reviews] == [waiting_on_manager.id]
        assert [r.expense_id for r in finance_inbox.pending_reviews] == [waiting_on_finance.id]
        assert finance_inbox.pending_reviews[0].step_number == 2
        assert finance_inbox.total_amount == 80.0

    def test_unresolvable_expenses_are_skipped(self, db, org, default_flow, make_expense):
        make_expense(submitter=org.loner)
        inbox = ExpenseApprovalService.get_pending_reviews(db, org.manager.id)
        assert inbox.total_count == 0

    def test_history_is_ordered_by_step(self, db, org, default_flow, make_expense):
        expense = make_expense()
        decide(db, expense, org.manager)
        decide(db, expense, org.finance, REJECT)

        history = ExpenseApprovalService.get_approval_history(db, expense.id)
        assert [(h.step_number, h.status) for h in history] == [(1, "approved"), (2, "rejected")]
        assert history[1].approver_name == "Eve Finance"
