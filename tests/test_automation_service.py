"""
Tests for automation triggers and actions
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.models import Invoice, Job, Notification, Quote, QuoteLineItem
from app.models_automation import Automation, AutomationLog
from app.services.automation_service import (
    fire_status_automations,
    process_payment_received,
    process_status_change,
    process_time_based_automations,
)
from app.services.notification_service import LoggingNotificationSender

NOW = datetime(2024, 5, 20, 9, 0)


@pytest.fixture
def sender():
    return LoggingNotificationSender()


def add_automation(db, user, trigger, actions, is_active=True):
    automation = Automation(
        user_id=user.id, name=f"{trigger['type']} rule", is_active=is_active, trigger=trigger, actions=actions
    )
    db.add(automation)
    db.commit()
    db.refresh(automation)
    return automation


def add_quote(db, customer, status="draft", sent_at=None, number="Q-00000001", job_id=None):
    quote = Quote(
        user_id=customer.user_id,
        client_id=customer.id,
        job_id=job_id,
        number=number,
        title="Switchboard upgrade",
        status=status,
        subtotal=Decimal("1000.00"),
        gst_amount=Decimal("100.00"),
        total=Decimal("1100.00"),
        gst_enabled=True,
        sent_at=sent_at,
        accepted_at=sent_at if status == "accepted" else None,
    )
    quote.line_items = [
        QuoteLineItem(
            description="Switchboard",
            quantity=Decimal("1"),
            unit_price=Decimal("1000.00"),
            total=Decimal("1000.00"),
            sort_order=0,
        )
    ]
    db.add(quote)
    db.commit()
    db.refresh(quote)
    return quote


def add_job(db, customer, status="scheduled", scheduled_at=None):
    job = Job(
        user_id=customer.user_id,
        client_id=customer.id,
        title="Install downlights",
        status=status,
        scheduled_at=scheduled_at,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


class TestStatusChange:
    def test_matching_transition_sends_email_once(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "quote", "toStatus": "sent"},
            [{"type": "send_email", "template": "quote_sent"}],
        )
        quote = add_quote(db, customer, status="sent")

        first = process_status_change(db, pro_user.id, "quote", quote.id, "draft", "sent", sender)
        second = process_status_change(db, pro_user.id, "quote", quote.id, "draft", "sent", sender)

        assert first["processed"] == 1
        assert second["skipped"] == 1 and second["processed"] == 0
        assert len(sender.sent) == 1
        email = sender.sent[0]
        assert email["to"] == "karen@example.com"
        assert "Karen Smith" in email["body"]

    def test_non_matching_from_status_is_ignored(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "quote", "fromStatus": "sent", "toStatus": "accepted"},
            [{"type": "notification", "message": "Accepted!"}],
        )
        quote = add_quote(db, customer, status="accepted")

        summary = process_status_change(db, pro_user.id, "quote", quote.id, "draft", "accepted", sender)

        assert summary["matched"] == 0
        assert db.query(Notification).count() == 0

    def test_inactive_automations_do_not_run(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "job", "toStatus": "done"},
            [{"type": "notification"}],
            is_active=False,
        )
        job = add_job(db, customer, status="done")

        assert process_status_change(db, pro_user.id, "job", job.id, "in_progress", "done", sender)["matched"] == 0

    def test_other_tenants_rules_do_not_fire(self, db, user, customer, sender):
        add_automation(
            db,
            user,
            {"type": "status_change", "entityType": "job"},
            [{"type": "notification"}],
        )
        job = add_job(db, customer, status="done")

        summary = process_status_change(db, customer.user_id, "job", job.id, "in_progress", "done", sender)

        assert summary["matched"] == 0

    def test_accepted_quote_creates_job(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "quote", "toStatus": "accepted"},
            [{"type": "create_job"}],
        )
        quote = add_quote(db, customer, status="accepted", sent_at=NOW)

        process_status_change(db, pro_user.id, "quote", quote.id, "sent", "accepted", sender)

        db.refresh(quote)
        job = db.get(Job, quote.job_id)
        assert job.title == quote.title
        assert job.status == "pending"

    def test_done_job_creates_invoice_from_accepted_quote(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "job", "toStatus": "done"},
            [{"type": "create_invoice"}],
        )
        job = add_job(db, customer, status="done")
        add_quote(db, customer, status="accepted", sent_at=NOW, job_id=job.id)

        process_status_change(db, pro_user.id, "job", job.id, "in_progress", "done", sender)

        invoice = db.query(Invoice).filter(Invoice.job_id == job.id).one()
        assert invoice.subtotal == Decimal("1000.00")
        assert invoice.total == Decimal("1100.00")
        assert invoice.status == "draft"
        assert invoice.terms

    def test_update_status_action_does_not_cascade(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "job", "toStatus": "done"},
            [{"type": "update_status", "newStatus": "invoiced"}],
        )
        add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "job", "toStatus": "invoiced"},
            [{"type": "notification"}],
        )
        job = add_job(db, customer, status="done")

        process_status_change(db, pro_user.id, "job", job.id, "in_progress", "done", sender)

        db.refresh(job)
        assert job.status == "invoiced"
        assert job.invoiced_at is not None
        assert db.query(Notification).count() == 0

    def test_failed_action_is_recorded_and_others_still_run(self, db, pro_user, customer, sender):
        automation = add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "job", "toStatus": "scheduled"},
            [{"type": "send_sms"}, {"type": "notification", "message": "Booked in"}],
        )
        job = add_job(db, customer, status="scheduled")

        summary = process_status_change(db, pro_user.id, "job", job.id, "pending", "scheduled", sender)

        assert summary["errors"] == 1
        log = db.query(AutomationLog).filter(AutomationLog.automation_id == automation.id).one()
        assert log.result == "error"
        assert "send_sms" in log.error_message
        assert db.query(Notification).count() == 1

        # The errored run is not retried
        again = process_status_change(db, pro_user.id, "job", job.id, "pending", "scheduled", sender)
        assert again["skipped"] == 1


class TestPaymentReceived:
    def test_paid_invoice_fires_status_and_payment_rules(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "payment_received", "entityType": "invoice"},
            [{"type": "notification", "title": "Paid", "message": "{invoice_number} paid"}],
        )
        add_automation(
            db,
            pro_user,
            {"type": "status_change", "entityType": "invoice", "toStatus": "paid"},
            [{"type": "send_email", "message": "Thanks for your payment, {client_name}"}],
        )
        invoice = Invoice(
            user_id=pro_user.id,
            client_id=customer.id,
            number="INV-PAID0001",
            title="Downlights",
            status="paid",
            total=Decimal("330.00"),
        )
        db.add(invoice)
        db.commit()

        summary = fire_status_automations(db, pro_user.id, "invoice", invoice.id, "sent", "paid", sender)

        assert summary["processed"] == 2
        notification = db.query(Notification).one()
        assert notification.message == "INV-PAID0001 paid"
        assert sender.sent[0]["body"] == "Thanks for your payment, Karen Smith"

    def test_unchanged_status_fires_nothing(self, db, pro_user, customer, sender):
        assert fire_status_automations(db, pro_user.id, "invoice", 1, "paid", "paid", sender) is None

    def test_missing_invoice_is_ignored(self, db, pro_user, sender):
        add_automation(
            db, pro_user, {"type": "payment_received", "entityType": "invoice"}, [{"type": "notification"}]
        )
        assert process_payment_received(db, pro_user.id, 404, sender)["processed"] == 0


class TestTimeBased:
    def test_no_response_follow_up_runs_once(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "no_response", "entityType": "quote", "delayDays": 3},
            [{"type": "send_email"}],
        )
        stale = add_quote(db, customer, status="sent", sent_at=NOW - timedelta(days=5), number="Q-STALE001")
        add_quote(db, customer, status="sent", sent_at=NOW - timedelta(days=1), number="Q-FRESH001")

        first = process_time_based_automations(db, now=NOW, sender=sender)
        second = process_time_based_automations(db, now=NOW, sender=sender)

        assert first["processed"] == 1
        assert second["processed"] == 0
        assert len(sender.sent) == 1
        assert stale.number in sender.sent[0]["subject"]

    def test_job_reminder_the_day_before(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "time_delay", "entityType": "job", "delayDays": -1},
            [{"type": "send_sms", "message": "Hi {client_name}, see you tomorrow for {job_title}"}],
        )
        add_job(db, customer, scheduled_at=NOW + timedelta(days=1, hours=2))
        add_job(db, customer, scheduled_at=NOW + timedelta(days=3))

        summary = process_time_based_automations(db, now=NOW, sender=sender)

        assert summary["processed"] == 1
        assert sender.sent[0]["channel"] == "sms"
        assert sender.sent[0]["body"] == "Hi Karen Smith, see you tomorrow for Install downlights"

    def test_overdue_invoice_reminder(self, db, pro_user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "time_delay", "entityType": "invoice", "delayDays": 7},
            [{"type": "send_email", "template": "payment_reminder"}],
        )
        invoice = Invoice(
            user_id=pro_user.id,
            client_id=customer.id,
            number="INV-LATE0001",
            title="Hot water system",
            status="sent",
            total=Decimal("2200.00"),
            due_date=NOW - timedelta(days=10),
        )
        db.add(invoice)
        db.commit()

        summary = process_time_based_automations(db, now=NOW, sender=sender)

        assert summary["processed"] == 1
        assert sender.sent[0]["to"] == customer.email

    def test_run_can_be_limited_to_one_tenant(self, db, pro_user, user, customer, sender):
        add_automation(
            db,
            pro_user,
            {"type": "no_response", "entityType": "quote", "delayDays": 3},
            [{"type": "notification"}],
        )
        add_quote(db, customer, status="sent", sent_at=NOW - timedelta(days=5))

        assert process_time_based_automations(db, now=NOW, sender=sender, user_id=user.id)["processed"] == 0
        assert process_time_based_automations(db, now=NOW, sender=sender, user_id=pro_user.id)["processed"] == 1
