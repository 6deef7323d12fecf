"""
Tests for the recurrence engine
"""

from datetime import datetime
from decimal import Decimal

import pytest

from app.models import Invoice, InvoiceLineItem, Job, Notification
from app.models_recurring import RecurringContract, RecurringSchedule
from app.services import recurring_service
from app.services.recurring_service import (
    RecurrencePattern,
    RecurrenceState,
    calculate_next_recurrence,
    cancel_contract,
    create_recurring_invoice,
    create_recurring_job,
    get_recurrence_state,
    materialize_contract_occurrence,
    materialize_invoice_occurrence,
    materialize_job_occurrence,
    parse_recurrence_pattern,
    pause_contract,
    process_all_due_recurrences,
    process_recurring_for_user,
    reschedule_recurring_job,
    resume_contract,
    stop_recurring,
    validate_recurrence_settings,
)
from app.shared.errors import ValidationError

JAN_1 = datetime(2024, 1, 1)


def make_recurring_job(db, customer, next_date=JAN_1, interval=2, end_date=None, pattern="weekly"):
    job = Job(
        user_id=customer.user_id,
        client_id=customer.id,
        title="Pool pump service",
        status="scheduled",
        scheduled_at=next_date,
        is_recurring=True,
        recurrence_pattern=pattern,
        recurrence_interval=interval,
        recurrence_end_date=end_date,
        next_recurrence_date=next_date,
        recurrence_status="active",
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def make_recurring_invoice(db, customer, next_date=JAN_1, pattern="monthly", end_date=None):
    invoice = Invoice(
        user_id=customer.user_id,
        client_id=customer.id,
        number="INV-0000TEST",
        title="Monthly maintenance",
        status="sent",
        subtotal=Decimal("200.00"),
        gst_amount=Decimal("20.00"),
        total=Decimal("220.00"),
        gst_enabled=True,
        issue_date=next_date,
        is_recurring=True,
        recurrence_pattern=pattern,
        recurrence_interval=1,
        recurrence_end_date=end_date,
        next_recurrence_date=next_date,
        recurrence_status="active",
    )
    invoice.line_items = [
        InvoiceLineItem(
            description="Maintenance visit",
            quantity=Decimal("2"),
            unit_price=Decimal("100.00"),
            total=Decimal("200.00"),
            sort_order=0,
        )
    ]
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def children_of(db, job):
    return db.query(Job).filter(Job.parent_job_id == job.id).all()


class TestNextOccurrence:
    @pytest.mark.parametrize(
        "pattern,interval,expected",
        [
            ("weekly", 1, datetime(2024, 1, 8)),
            ("weekly", 2, datetime(2024, 1, 15)),
            ("fortnightly", 1, datetime(2024, 1, 15)),
            ("monthly", 1, datetime(2024, 2, 1)),
            ("quarterly", 1, datetime(2024, 4, 1)),
            ("yearly", 1, datetime(2025, 1, 1)),
        ],
    )
    def test_adds_interval_units(self, pattern, interval, expected):
        assert calculate_next_recurrence(JAN_1, pattern, interval) == expected

    def test_month_end_clamps(self):
        assert calculate_next_recurrence(datetime(2024, 1, 31), "monthly", 1) == datetime(2024, 2, 29)

    def test_unknown_pattern_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_recurrence_pattern("daily")
        assert parse_recurrence_pattern(" Weekly ") is RecurrencePattern.WEEKLY

    @pytest.mark.parametrize("interval", [0, -1, 1.5, True])
    def test_bad_intervals_are_rejected(self, interval):
        with pytest.raises(ValidationError):
            validate_recurrence_settings("weekly", interval)

    def test_end_date_before_start_is_rejected(self):
        with pytest.raises(ValidationError):
            validate_recurrence_settings("weekly", 1, datetime(2023, 12, 31), JAN_1)


class TestJobMaterialization:
    def test_fortnightly_scenario(self, db, customer):
        job = make_recurring_job(db, customer)

        result = materialize_job_occurrence(db, job, now=JAN_1)

        assert result.success and not result.skipped
        child = db.get(Job, result.new_id)
        assert child.scheduled_at == JAN_1
        assert child.parent_job_id == job.id
        assert child.status == "pending"
        assert child.is_recurring is False
        db.refresh(job)
        assert job.next_recurrence_date == datetime(2024, 1, 15)
        assert job.recurrence_status == "active"
        assert result.state == RecurrenceState.ADVANCED

    def test_end_date_scenario_completes_parent(self, db, customer):
        job = make_recurring_job(db, customer, end_date=datetime(2024, 1, 10))

        result = materialize_job_occurrence(db, job, now=JAN_1)

        assert result.new_id is not None
        assert result.completed
        db.refresh(job)
        assert job.recurrence_status == "completed"
        assert job.next_recurrence_date is None
        assert get_recurrence_state(job, datetime(2030, 1, 1)) == RecurrenceState.COMPLETED

        # No further children however often the engine runs
        for _ in range(3):
            again = materialize_job_occurrence(db, job, now=datetime(2030, 1, 1))
            assert again.skipped and again.new_id is None
        assert len(children_of(db, job)) == 1

    def test_end_date_is_inclusive(self, db, customer):
        job = make_recurring_job(db, customer, end_date=datetime(2024, 1, 15, 0, 0))

        materialize_job_occurrence(db, job, now=JAN_1)

        db.refresh(job)
        assert job.next_recurrence_date == datetime(2024, 1, 15)
        assert job.recurrence_status == "active"

    def test_rerun_for_same_due_date_creates_one_child(self, db, customer):
        job = make_recurring_job(db, customer)
        first = materialize_job_occurrence(db, job, now=JAN_1)

        # A crashed worker retrying the same occurrence
        job.next_recurrence_date = JAN_1
        db.commit()
        second = materialize_job_occurrence(db, job, now=JAN_1)

        assert second.skipped
        assert second.new_id == first.new_id
        assert len(children_of(db, job)) == 1
        db.refresh(job)
        assert job.next_recurrence_date == datetime(2024, 1, 15)

    def test_not_due_yet_is_skipped(self, db, customer):
        job = make_recurring_job(db, customer, next_date=datetime(2024, 2, 1))

        result = materialize_job_occurrence(db, job, now=JAN_1)

        assert result.skipped and result.new_id is None
        assert children_of(db, job) == []

    def test_child_creates_notification(self, db, customer):
        job = make_recurring_job(db, customer)
        result = materialize_job_occurrence(db, job, now=JAN_1)

        notification = db.query(Notification).filter(Notification.entity_id == result.new_id).one()
        assert notification.type == "recurring"
        assert notification.user_id == customer.user_id

    def test_create_recurring_job_schedules_one_step_ahead(self, db, customer):
        job = Job(
            user_id=customer.user_id,
            client_id=customer.id,
            title="Gutter clean",
            scheduled_at=datetime(2024, 3, 4, 9, 0),
        )
        db.add(job)
        db.flush()

        create_recurring_job(db, job, "monthly", 1)

        assert job.is_recurring
        assert job.next_recurrence_date == datetime(2024, 4, 4, 9, 0)
        assert job.recurrence_status == "active"

    def test_recurring_job_needs_a_date(self, db, customer):
        job = Job(user_id=customer.user_id, client_id=customer.id, title="Undated")
        db.add(job)
        db.flush()
        with pytest.raises(ValidationError):
            create_recurring_job(db, job, "weekly")

    def test_stop_recurring_keeps_children(self, db, customer):
        job = make_recurring_job(db, customer)
        materialize_job_occurrence(db, job, now=JAN_1)

        stop_recurring(db, "job", job.id, customer.user_id)

        db.refresh(job)
        assert job.is_recurring is False
        assert job.next_recurrence_date is None
        assert len(children_of(db, job)) == 1
        assert materialize_job_occurrence(db, job, now=datetime(2024, 6, 1)).new_id is None


class TestInvoiceMaterialization:
    def test_child_invoice_copies_lines_and_terms(self, db, customer):
        invoice = make_recurring_invoice(db, customer)

        result = materialize_invoice_occurrence(db, invoice, now=JAN_1)

        assert result.success
        child = db.get(Invoice, result.new_id)
        assert child.parent_invoice_id == invoice.id
        assert child.status == "draft"
        assert child.issue_date == JAN_1
        assert child.due_date == datetime(2024, 1, 15)
        assert child.number != invoice.number and child.number.startswith("INV-")
        assert [line.description for line in child.line_items] == ["Maintenance visit"]
        assert child.subtotal + child.gst_amount == child.total == Decimal("220.00")
        assert child.terms
        db.refresh(invoice)
        assert invoice.next_recurrence_date == datetime(2024, 2, 1)

    def test_failure_leaves_parent_due(self, db, customer):
        invoice = make_recurring_invoice(db, customer)

        result = materialize_invoice_occurrence(db, invoice, now=JAN_1, fallback_mode="none")

        assert result.success is False
        assert "terms_conditions" in result.error
        db.refresh(invoice)
        assert invoice.next_recurrence_date == JAN_1
        assert invoice.recurrence_status == "active"
        assert db.query(Invoice).filter(Invoice.parent_invoice_id == invoice.id).count() == 0

    def test_create_recurring_invoice_defaults_issue_date(self, db, customer):
        invoice = make_recurring_invoice(db, customer)
        invoice.is_recurring = False
        invoice.issue_date = None
        db.commit()

        create_recurring_invoice(db, invoice, "quarterly")

        assert invoice.issue_date is not None
        assert invoice.next_recurrence_date == calculate_next_recurrence(
            invoice.issue_date, "quarterly"
        )


class TestCatchUp:
    def test_process_catches_up_missed_occurrences(self, db, customer):
        job = make_recurring_job(db, customer, interval=1)

        summary = process_recurring_for_user(db, customer.user_id, now=datetime(2024, 1, 22, 12))

        # 1st, 8th, 15th and 22nd
        assert summary["jobs_created"] == 4
        assert summary["failed"] == 0
        db.refresh(job)
        assert job.next_recurrence_date == datetime(2024, 1, 29)

    def test_catch_up_is_bounded(self, db, customer, monkeypatch):
        monkeypatch.setattr("app.services.recurring_service.RECURRENCE_MAX_CATCH_UP", 3)
        make_recurring_job(db, customer, interval=1)

        summary = process_all_due_recurrences(db, now=datetime(2024, 6, 1))

        assert summary["jobs_created"] == 3

    def test_other_tenants_are_not_processed(self, db, customer, user):
        make_recurring_job(db, customer)

        summary = process_recurring_for_user(db, user.id, now=JAN_1)

        assert summary["jobs_created"] == 0


def make_contract(db, customer, **overrides):
    values = dict(
        user_id=customer.user_id,
        client_id=customer.id,
        title="Quarterly switchboard check",
        contract_value=Decimal("150.00"),
        frequency="monthly",
        interval=1,
        start_date=JAN_1,
        next_job_date=JAN_1,
        auto_create_jobs=True,
        auto_create_invoices=True,
        job_template={"address": "12 Wattle St", "assignedTo": "Dave"},
        status="active",
    )
    values.update(overrides)
    contract = RecurringContract(**values)
    db.add(contract)
    db.commit()
    db.refresh(contract)
    return contract


class TestContracts:
    def test_occurrence_creates_job_invoice_and_schedule(self, db, customer):
        contract = make_contract(db, customer)

        result = materialize_contract_occurrence(db, contract, now=JAN_1)

        schedule = db.get(RecurringSchedule, result.new_id)
        assert schedule.scheduled_date == JAN_1
        job = db.get(Job, schedule.job_id)
        assert job.status == "scheduled"
        assert job.assigned_to == "Dave"
        invoice = db.get(Invoice, schedule.invoice_id)
        assert invoice.job_id == job.id
        assert invoice.subtotal == Decimal("150.00")
        assert invoice.total == Decimal("165.00")
        db.refresh(contract)
        assert contract.next_job_date == datetime(2024, 2, 1)

    def test_contract_completes_at_end_date(self, db, customer):
        contract = make_contract(db, customer, end_date=datetime(2024, 1, 20))

        result = materialize_contract_occurrence(db, contract, now=JAN_1)

        assert result.completed
        db.refresh(contract)
        assert contract.status == "completed"
        assert contract.next_job_date is None

    def test_paused_contracts_are_not_materialized(self, db, customer):
        contract = make_contract(db, customer)
        pause_contract(db, contract.id, customer.user_id)

        assert process_recurring_for_user(db, customer.user_id, now=JAN_1)["contract_occurrences"] == 0

        resume_contract(db, contract.id, customer.user_id)
        assert process_recurring_for_user(db, customer.user_id, now=JAN_1)["contract_occurrences"] == 1

    def test_pause_requires_active(self, db, customer):
        contract = make_contract(db, customer, status="paused")
        with pytest.raises(ValidationError):
            pause_contract(db, contract.id, customer.user_id)

    def test_cancel_clears_next_date(self, db, customer):
        contract = make_contract(db, customer)
        cancel_contract(db, contract.id, customer.user_id)

        db.refresh(contract)
        assert contract.status == "cancelled"
        assert contract.next_job_date is None
        with pytest.raises(ValidationError):
            cancel_contract(db, contract.id, customer.user_id)


class TestLostOccurrenceRace:
    """Another worker inserts the occurrence between our lookup and our insert"""

    def test_job_child_conflict_is_skipped(self, db, customer, monkeypatch):
        job = make_recurring_job(db, customer)
        db.add(
            Job(
                user_id=customer.user_id,
                client_id=customer.id,
                title="Pool pump service",
                status="pending",
                scheduled_at=JAN_1,
                parent_job_id=job.id,
            )
        )
        db.commit()
        monkeypatch.setattr(recurring_service, "_find_job_child", lambda *args: None)

        result = materialize_job_occurrence(db, job, now=JAN_1)

        assert result.success and result.skipped
        assert result.new_id is None
        db.refresh(job)
        assert job.next_recurrence_date == JAN_1
        assert len(children_of(db, job)) == 1
        assert db.query(Notification).count() == 0

        # The next tick sees the winner's child and moves on
        monkeypatch.undo()
        again = materialize_job_occurrence(db, job, now=JAN_1)
        assert again.skipped and again.next_date == datetime(2024, 1, 15)
        assert len(children_of(db, job)) == 1

    def test_invoice_child_conflict_is_skipped(self, db, customer, monkeypatch):
        invoice = make_recurring_invoice(db, customer)
        db.add(
            Invoice(
                user_id=customer.user_id,
                client_id=customer.id,
                number="INV-0000RIVL",
                title="Monthly maintenance",
                status="draft",
                issue_date=JAN_1,
                parent_invoice_id=invoice.id,
            )
        )
        db.commit()
        monkeypatch.setattr(recurring_service, "_find_invoice_child", lambda *args: None)

        result = materialize_invoice_occurrence(db, invoice, now=JAN_1)

        assert result.success and result.skipped
        db.refresh(invoice)
        assert invoice.next_recurrence_date == JAN_1
        assert db.query(Invoice).filter(Invoice.parent_invoice_id == invoice.id).count() == 1

    def test_contract_schedule_conflict_is_skipped(self, db, customer, monkeypatch):
        contract = make_contract(db, customer)
        db.add(RecurringSchedule(contract_id=contract.id, scheduled_date=JAN_1, status="scheduled"))
        db.commit()
        monkeypatch.setattr(recurring_service, "_find_contract_schedule", lambda *args: None)

        result = materialize_contract_occurrence(db, contract, now=JAN_1)

        assert result.success and result.skipped
        db.refresh(contract)
        assert contract.next_job_date == JAN_1
        assert db.query(RecurringSchedule).filter_by(contract_id=contract.id).count() == 1
        # The job and invoice built before the schedule insert are rolled back too
        assert db.query(Job).filter(Job.user_id == customer.user_id).count() == 0
        assert db.query(Invoice).filter(Invoice.user_id == customer.user_id).count() == 0


class TestReschedule:
    def test_moving_parent_restarts_series_after_new_date(self, db, customer):
        job = make_recurring_job(db, customer, next_date=datetime(2024, 1, 15))

        next_date = reschedule_recurring_job(job, datetime(2024, 3, 1))

        assert next_date == datetime(2024, 3, 15)
        assert job.scheduled_at == datetime(2024, 3, 1)
        assert job.next_recurrence_date == datetime(2024, 3, 15)
        assert job.next_recurrence_date > job.scheduled_at

    def test_moving_parent_past_end_date_is_rejected(self, db, customer):
        job = make_recurring_job(db, customer, end_date=datetime(2024, 2, 1))

        with pytest.raises(ValidationError):
            reschedule_recurring_job(job, datetime(2024, 3, 1))
        assert job.scheduled_at == JAN_1
        assert job.next_recurrence_date == JAN_1

    def test_moving_parent_onto_end_date_completes_series(self, db, customer):
        job = make_recurring_job(db, customer, end_date=datetime(2024, 3, 1))

        assert reschedule_recurring_job(job, datetime(2024, 3, 1)) is None
        assert job.recurrence_status == "completed"
        assert job.next_recurrence_date is None
