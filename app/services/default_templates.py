"""
Built-in templates.

Used to seed a new tenant's template library and as the fallback when a
tenant has no active template for a family/purpose.
"""

from types import MappingProxyType
from typing import Optional

TERMS_CONDITIONS = """1. ACCEPTANCE: This quote is valid for 30 days from the date of issue. Acceptance of this quote constitutes a binding agreement.

2. PAYMENT: A deposit of 50% may be required before work commences. Balance due on completion unless otherwise agreed.

3. VARIATIONS: Any variations to the quoted work must be agreed in writing and may result in additional charges.

4. MATERIALS: All materials remain the property of the contractor until full payment is received.

5. WARRANTY: All workmanship is guaranteed for 12 months from completion, unless otherwise specified.

6. ACCESS: The client must provide safe and reasonable access to the work site.

7. CANCELLATION: Cancellation after acceptance may incur costs for materials ordered or work commenced."""

WARRANTY = """All work is guaranteed for 12 months from completion date.

This warranty covers defects in workmanship and materials supplied by us. Normal wear and tear, damage caused by misuse, or work carried out by others is not covered.

To make a warranty claim, please contact us with your original invoice number and a description of the issue."""

PAYMENT_NOTICE = """PAYMENT NOTICE

Invoice: #{invoice_number}
Amount Due: {invoice_total}
Due Date: {due_date}

Please arrange payment at your earliest convenience. If you have any questions about this invoice, please contact us.

Thank you for your prompt attention to this matter."""


def _template(name, description, content, merge_fields, subject=None) -> MappingProxyType:
    return MappingProxyType(
        {
            "name": name,
            "description": description,
            "subject": subject,
            "content": content,
            "merge_fields": tuple(merge_fields),
        }
    )


# (family, purpose) -> template fields
SYSTEM_DEFAULT_TEMPLATES = MappingProxyType(
    {
        ("terms_conditions", "general"): _template(
            "Standard Terms & Conditions",
            "Australian-standard terms and conditions for quotes and invoices",
            TERMS_CONDITIONS,
            ["business_name", "quote_number"],
        ),
        ("warranty", "general"): _template(
            "Standard Warranty",
            "12-month workmanship warranty statement",
            WARRANTY,
            ["business_name", "invoice_number"],
        ),
        ("payment_notice", "general"): _template(
            "Payment Due Notice",
            "Notice for upcoming or overdue payments",
            PAYMENT_NOTICE,
            ["invoice_number", "invoice_total", "due_date", "client_name", "business_name"],
        ),
        ("safety_form", "general"): _template(
            "Job Safety Analysis (JSA)",
            "Standard workplace hazard assessment form",
            "Job Safety Analysis Form\n\nSite: {job_address}\nJob: {job_title}\nDate: {scheduled_date}",
            ["job_title", "job_address", "scheduled_date"],
        ),
        ("checklist", "general"): _template(
            "Pre-Start Checklist",
            "Daily equipment and site safety checklist",
            "Pre-Start Safety Checklist\n\nJob: {job_title}\nAddress: {job_address}",
            ["job_title", "job_address"],
        ),
        ("email", "quote_sent"): _template(
            "Quote Sent Email",
            "Used when sending quotes to clients",
            "Hi {client_name},\n\n"
            "Thank you for the opportunity to provide a quote for your project.\n\n"
            "Please find attached your quote #{quote_number} for the requested work. "
            "The quote is valid for 30 days.\n\n"
            "If you have any questions or would like to proceed, please reply to this email or call us.\n\n"
            "Kind regards,\n{business_name}",
            ["client_name", "business_name", "quote_number", "quote_total", "job_title"],
            subject="Quote #{quote_number} from {business_name}",
        ),
        ("email", "invoice_sent"): _template(
            "Invoice Sent Email",
            "Used when sending invoices to clients",
            "Hi {client_name},\n\n"
            "Please find attached your invoice #{invoice_number} for the completed work.\n\n"
            "Total Amount: {invoice_total}\nDue Date: {due_date}\n\n"
            "Thank you for your business!\n\n"
            "Kind regards,\n{business_name}",
            ["client_name", "business_name", "invoice_number", "invoice_total", "due_date"],
            subject="Invoice #{invoice_number} from {business_name}",
        ),
        ("email", "payment_reminder"): _template(
            "Payment Reminder Email",
            "Friendly reminder for overdue invoices",
            "Hi {client_name},\n\n"
            "This is a friendly reminder that invoice #{invoice_number} for {invoice_total} is now overdue.\n\n"
            "If you've already made payment, please disregard this message. Otherwise, we'd "
            "appreciate payment at your earliest convenience.\n\n"
            "Kind regards,\n{business_name}",
            ["client_name", "business_name", "invoice_number", "invoice_total", "due_date"],
            subject="Payment Reminder - Invoice #{invoice_number}",
        ),
        ("email", "job_confirmation"): _template(
            "Job Confirmation Email",
            "Sent when a job is confirmed/scheduled",
            "Hi {client_name},\n\n"
            "Great news! Your job has been confirmed and scheduled.\n\n"
            "Job: {job_title}\nAddress: {job_address}\nDate: {scheduled_date}\n\n"
            "We'll be in touch closer to the date to confirm the exact time.\n\n"
            "Kind regards,\n{business_name}",
            ["client_name", "business_name", "job_title", "job_address", "scheduled_date"],
            subject="Job Confirmed - {job_title}",
        ),
        ("email", "job_completed"): _template(
            "Job Completed Email",
            "Sent when a job is marked as complete",
            "Hi {client_name},\n\n"
            "Your job has been completed!\n\n"
            "Job: {job_title}\n\n"
            "An invoice will be sent separately. Thank you for choosing {business_name}!\n\n"
            "Kind regards,\n{business_name}",
            ["client_name", "business_name", "job_title"],
            subject="Job Completed - {job_title}",
        ),
        ("email", "quote_accepted"): _template(
            "Quote Accepted Email",
            "Sent when a client accepts a quote",
            "G'day {client_name},\n\n"
            "Thanks for accepting quote #{quote_number}. We'll be in touch shortly to book in the work.\n\n"
            "Kind regards,\n{business_name}",
            ["client_name", "business_name", "quote_number"],
            subject="Quote #{quote_number} accepted",
        ),
        ("email", "quote_declined"): _template(
            "Quote Declined Email",
            "Sent when a client declines a quote",
            "G'day {client_name},\n\n"
            "Thanks for letting us know about quote #{quote_number}. If anything changes, "
            "we're happy to revise it.\n\n"
            "Kind regards,\n{business_name}",
            ["client_name", "business_name", "quote_number"],
            subject="Quote #{quote_number}",
        ),
        ("sms", "sms_quote_sent"): _template(
            "Quote Sent SMS",
            "SMS notification when a quote is sent",
            "Hi {client_name}, your quote #{quote_number} for {quote_total} has been emailed to you. "
            "Any questions, just reply! - {business_name}",
            ["client_name", "business_name", "quote_number", "quote_total"],
        ),
        ("sms", "sms_invoice_sent"): _template(
            "Invoice Sent SMS",
            "SMS notification when an invoice is sent",
            "Hi {client_name}, invoice #{invoice_number} for {invoice_total} has been emailed. "
            "Due: {due_date}. Thanks! - {business_name}",
            ["client_name", "business_name", "invoice_number", "invoice_total", "due_date"],
        ),
        ("sms", "sms_payment_reminder"): _template(
            "Payment Reminder SMS",
            "SMS reminder for overdue invoices",
            "Hi {client_name}, friendly reminder that invoice #{invoice_number} for {invoice_total} "
            "is now overdue. Please pay when you can. Thanks! - {business_name}",
            ["client_name", "business_name", "invoice_number", "invoice_total"],
        ),
        ("sms", "sms_job_confirmation"): _template(
            "Job Confirmation SMS",
            "SMS confirming a booked job",
            "Hi {client_name}, you're booked in for {job_title} on {scheduled_date}. - {business_name}",
            ["client_name", "business_name", "job_title", "scheduled_date"],
        ),
        ("sms", "sms_job_completed"): _template(
            "Job Complete SMS",
            "Notification when work is finished",
            "Hi {client_name}, all done at your place! Invoice will be sent shortly. "
            "Thanks for choosing {business_name}!",
            ["client_name", "business_name", "job_title"],
        ),
    }
)


def get_system_default_template(family: str, purpose: str) -> Optional[MappingProxyType]:
    """Built-in fallback for a family/purpose, or None when there isn't one"""
    return SYSTEM_DEFAULT_TEMPLATES.get((family, purpose))
