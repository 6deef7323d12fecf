"""
API tests for the tenant-scoped endpoints
"""

import re
from decimal import Decimal

from app.config import TENANT_HEADER


def create_client(api, headers, name="Karen Smith", **extra):
    response = api.post("/clients", json={"name": name, **extra}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def create_quote(api, headers, client_id, **extra):
    payload = {
        "clientId": client_id,
        "title": "Switchboard upgrade",
        "lineItems": [
            {"description": "Switchboard", "quantity": "1", "unitPrice": "1000.00"},
            {"description": "Labour", "quantity": "2.5", "unitPrice": "95.00"},
        ],
        **extra,
    }
    response = api.post("/quotes", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def create_recurring_job(api, headers, **recurrence):
    client = create_client(api, headers)
    response = api.post(
        "/jobs",
        json={
            "clientId": client["id"],
            "title": "Pool pump service",
            "status": "scheduled",
            "scheduledAt": "2024-01-01T09:00:00",
            "recurrence": {"pattern": "weekly", "interval": 2, **recurrence},
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestTenantHeader:
    def test_missing_header_is_401(self, api, db):
        assert api.get("/clients").status_code == 401

    def test_malformed_header_is_401(self, api, db):
        assert api.get("/clients", headers={TENANT_HEADER: "abc"}).status_code == 401

    def test_unknown_tenant_is_404(self, api, db):
        response = api.get("/clients", headers={TENANT_HEADER: "9999"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Tenant not found"

    def test_health_needs_no_tenant(self, api):
        assert api.get("/health").json() == {"status": "healthy"}


class TestClients:
    def test_create_and_list(self, api, pro_headers):
        created = create_client(api, pro_headers, email="Karen@Example.com", phone="0412 345 678")

        assert created["email"] == "karen@example.com"
        assert created["phone"] == "+61412345678"
        assert [c["id"] for c in api.get("/clients", headers=pro_headers).json()] == [created["id"]]

    def test_other_tenants_cannot_see_client(self, api, pro_headers, free_headers):
        created = create_client(api, pro_headers)

        assert api.get(f"/clients/{created['id']}", headers=free_headers).status_code == 404
        assert api.get("/clients", headers=free_headers).json() == []

    def test_archive_hides_from_default_list(self, api, pro_headers):
        created = create_client(api, pro_headers)

        archived = api.post(f"/clients/{created['id']}/archive", headers=pro_headers).json()
        assert archived["archivedAt"] is not None
        assert api.get("/clients", headers=pro_headers).json() == []
        assert len(api.get("/clients?includeArchived=true", headers=pro_headers).json()) == 1

        restored = api.post(f"/clients/{created['id']}/unarchive", headers=pro_headers).json()
        assert restored["archivedAt"] is None

    def test_update_and_delete(self, api, pro_headers):
        created = create_client(api, pro_headers)

        updated = api.patch(f"/clients/{created['id']}", json={"notes": "Dog in yard"}, headers=pro_headers)
        assert updated.json()["notes"] == "Dog in yard"

        assert api.delete(f"/clients/{created['id']}", headers=pro_headers).status_code == 200
        assert api.get(f"/clients/{created['id']}", headers=pro_headers).status_code == 404

    def test_blank_name_rejected(self, api, pro_headers):
        assert api.post("/clients", json={"name": "   "}, headers=pro_headers).status_code == 422


class TestJobs:
    def test_recurring_job_gets_next_date(self, api, pro_headers):
        client = create_client(api, pro_headers)
        response = api.post(
            "/jobs",
            json={
                "clientId": client["id"],
                "title": "Pool pump service",
                "status": "scheduled",
                "scheduledAt": "2024-01-01T09:00:00",
                "recurrence": {"pattern": "weekly", "interval": 2},
            },
            headers=pro_headers,
        )

        assert response.status_code == 200, response.text
        job = response.json()
        assert job["isRecurring"] is True
        assert job["recurrenceStatus"] == "active"
        assert job["nextRecurrenceDate"] == "2024-01-15T09:00:00"

    def test_moving_recurring_job_moves_next_date(self, api, pro_headers):
        job = create_recurring_job(api, pro_headers)

        response = api.patch(
            f"/jobs/{job['id']}", json={"scheduledAt": "2024-03-01T09:00:00"}, headers=pro_headers
        )

        assert response.status_code == 200, response.text
        moved = response.json()
        assert moved["scheduledAt"] == "2024-03-01T09:00:00"
        assert moved["nextRecurrenceDate"] == "2024-03-15T09:00:00"

    def test_moving_recurring_job_past_its_end_date_is_400(self, api, pro_headers):
        job = create_recurring_job(api, pro_headers, endDate="2024-02-01T00:00:00")

        response = api.patch(
            f"/jobs/{job['id']}", json={"scheduledAt": "2024-03-01T09:00:00"}, headers=pro_headers
        )

        assert response.status_code == 400
        unchanged = api.get(f"/jobs/{job['id']}", headers=pro_headers).json()
        assert unchanged["scheduledAt"] == "2024-01-01T09:00:00"
        assert unchanged["nextRecurrenceDate"] == "2024-01-15T09:00:00"

    def test_recurrence_end_before_start_is_400(self, api, pro_headers, db):
        client = create_client(api, pro_headers)
        response = api.post(
            "/jobs",
            json={
                "clientId": client["id"],
                "title": "Gutter clean",
                "scheduledAt": "2024-03-01T09:00:00",
                "recurrence": {"pattern": "monthly", "endDate": "2024-02-01T00:00:00"},
            },
            headers=pro_headers,
        )

        assert response.status_code == 400
        assert api.get("/jobs", headers=pro_headers).json() == []

    def test_bad_pattern_is_422(self, api, pro_headers):
        client = create_client(api, pro_headers)
        response = api.post(
            "/jobs",
            json={
                "clientId": client["id"],
                "title": "Gutter clean",
                "scheduledAt": "2024-03-01T09:00:00",
                "recurrence": {"pattern": "hourly"},
            },
            headers=pro_headers,
        )
        assert response.status_code == 422

    def test_free_tenant_cannot_create_recurring_job(self, api, free_headers):
        client = create_client(api, free_headers)
        response = api.post(
            "/jobs",
            json={
                "clientId": client["id"],
                "title": "Lawn mowing",
                "scheduledAt": "2024-01-01T09:00:00",
                "recurrence": {"pattern": "weekly"},
            },
            headers=free_headers,
        )
        assert response.status_code == 403

    def test_free_tenant_job_quota(self, api, free_headers):
        client = create_client(api, free_headers)
        payload = {"clientId": client["id"], "title": "Tap washer"}

        for _ in range(5):
            assert api.post("/jobs", json=payload, headers=free_headers).status_code == 200

        response = api.post("/jobs", json=payload, headers=free_headers)
        assert response.status_code == 403
        assert "plan limit" in response.json()["detail"]

    def test_status_change_stamps_timestamps(self, api, pro_headers):
        client = create_client(api, pro_headers)
        job = api.post("/jobs", json={"clientId": client["id"], "title": "Rewire"}, headers=pro_headers).json()

        started = api.patch(f"/jobs/{job['id']}/status", json={"status": "in_progress"}, headers=pro_headers)
        assert started.json()["startedAt"] is not None

        assert api.patch(f"/jobs/{job['id']}/status", json={"status": "lost"}, headers=pro_headers).status_code == 422

    def test_job_for_unknown_client_is_404(self, api, pro_headers):
        response = api.post("/jobs", json={"clientId": 12345, "title": "Rewire"}, headers=pro_headers)
        assert response.status_code == 404


class TestQuotesAndInvoices:
    def test_quote_totals_and_number(self, api, pro_headers):
        client = create_client(api, pro_headers)
        quote = create_quote(api, pro_headers, client["id"])

        assert re.fullmatch(r"Q-[0-9A-F]{8}", quote["number"])
        assert Decimal(quote["subtotal"]) == Decimal("1237.50")
        assert Decimal(quote["gstAmount"]) == Decimal("123.75")
        assert Decimal(quote["total"]) == Decimal("1361.25")
        assert [line["description"] for line in quote["lineItems"]] == ["Switchboard", "Labour"]

    def test_sent_quote_fires_automation(self, api, pro_headers):
        client = create_client(api, pro_headers)
        quote = create_quote(api, pro_headers, client["id"])
        rule = api.post(
            "/automations",
            json={
                "name": "Tell me when quotes go out",
                "trigger": {"type": "status_change", "entityType": "quote", "toStatus": "sent"},
                "actions": [{"type": "notification", "message": "{quote_number} sent"}],
            },
            headers=pro_headers,
        )
        assert rule.status_code == 200, rule.text

        response = api.patch(f"/quotes/{quote['id']}/status", json={"status": "sent"}, headers=pro_headers)

        body = response.json()
        assert body["sentAt"] is not None
        assert body["automations"]["processed"] == 1
        logs = api.get("/automations/logs", headers=pro_headers).json()
        assert [(log["entityType"], log["entityId"]) for log in logs] == [("quote", quote["id"])]

    def test_invoice_from_quote_copies_lines_and_uses_active_terms(self, api, pro_headers):
        client = create_client(api, pro_headers)
        quote = create_quote(api, pro_headers, client["id"])
        template = api.post(
            "/templates",
            json={"family": "terms_conditions", "name": "Our terms", "content": "Payment within 7 days."},
            headers=pro_headers,
        ).json()
        activated = api.post(f"/templates/{template['id']}/activate", headers=pro_headers).json()
        assert activated["activated"] is True

        response = api.post(
            "/invoices",
            json={"clientId": client["id"], "quoteId": quote["id"], "title": "Switchboard upgrade"},
            headers=pro_headers,
        )

        assert response.status_code == 200, response.text
        invoice = response.json()
        assert re.fullmatch(r"INV-[0-9A-F]{8}", invoice["number"])
        assert Decimal(invoice["total"]) == Decimal("1361.25")
        assert len(invoice["lineItems"]) == 2
        assert invoice["terms"] == "Payment within 7 days."
        assert invoice["dueDate"] is not None

    def test_due_date_before_issue_date_rejected(self, api, pro_headers):
        client = create_client(api, pro_headers)
        response = api.post(
            "/invoices",
            json={
                "clientId": client["id"],
                "title": "Call out",
                "issueDate": "2024-02-10T00:00:00",
                "dueDate": "2024-02-01T00:00:00",
            },
            headers=pro_headers,
        )
        assert response.status_code == 422

    def test_paid_invoice_is_locked(self, api, pro_headers):
        client = create_client(api, pro_headers)
        invoice = api.post(
            "/invoices",
            json={
                "clientId": client["id"],
                "title": "Call out",
                "lineItems": [{"description": "Call out fee", "unitPrice": "120.00"}],
            },
            headers=pro_headers,
        ).json()

        replaced = api.put(
            f"/invoices/{invoice['id']}/line-items",
            json={"lineItems": [{"description": "Call out fee", "unitPrice": "150.00"}], "gstEnabled": False},
            headers=pro_headers,
        ).json()
        assert Decimal(replaced["total"]) == Decimal("150.00")

        paid = api.patch(f"/invoices/{invoice['id']}/status", json={"status": "paid"}, headers=pro_headers)
        assert paid.json()["paidAt"] is not None

        locked = api.put(
            f"/invoices/{invoice['id']}/line-items",
            json={"lineItems": [{"description": "Call out fee", "unitPrice": "1.00"}]},
            headers=pro_headers,
        )
        assert locked.status_code == 400


class TestTemplates:
    def test_resolve_falls_back_to_system_default(self, api, pro_headers):
        response = api.get("/templates/resolve?family=email&purpose=quote_sent", headers=pro_headers)

        assert response.status_code == 200
        assert response.json()["source"] == "system_default"

    def test_illegal_purpose_is_400(self, api, pro_headers):
        response = api.get("/templates/resolve?family=warranty&purpose=quote_sent", headers=pro_headers)
        assert response.status_code == 400

    def test_activating_second_template_deactivates_first(self, api, pro_headers):
        ids = []
        for name in ("Version A", "Version B"):
            template = api.post(
                "/templates",
                json={"family": "warranty", "name": name, "content": f"{name} warranty"},
                headers=pro_headers,
            ).json()
            api.post(f"/templates/{template['id']}/activate", headers=pro_headers)
            ids.append(template["id"])

        templates = api.get("/templates?family=warranty", headers=pro_headers).json()
        active = [t["id"] for t in templates if t["isActive"]]
        assert active == [ids[1]]


class TestRecurringAndUsage:
    def test_contract_run_creates_occurrences_until_end(self, api, pro_headers):
        client = create_client(api, pro_headers)
        response = api.post(
            "/recurring/contracts",
            json={
                "clientId": client["id"],
                "title": "Quarterly RCD testing",
                "frequency": "monthly",
                "startDate": "2024-01-01T08:00:00",
                "endDate": "2024-03-15T00:00:00",
                "autoCreateInvoices": True,
                "contractValue": "150.00",
            },
            headers=pro_headers,
        )
        assert response.status_code == 200, response.text
        contract = response.json()
        assert contract["nextJobDate"] == "2024-01-01T08:00:00"

        summary = api.post("/recurring/run", headers=pro_headers).json()

        assert summary["contract_occurrences"] == 3
        schedules = api.get(f"/recurring/contracts/{contract['id']}/schedules", headers=pro_headers).json()
        assert len(schedules) == 3
        assert all(s["jobId"] and s["invoiceId"] for s in schedules)
        assert api.get(f"/recurring/contracts/{contract['id']}", headers=pro_headers).json()["status"] == "completed"

    def test_contract_line_items_are_checked_on_create(self, api, pro_headers):
        client = create_client(api, pro_headers)
        payload = {
            "clientId": client["id"],
            "title": "Monthly grease trap service",
            "frequency": "monthly",
            "startDate": "2024-01-01T08:00:00",
            "autoCreateInvoices": True,
        }

        def create(**extra):
            return api.post("/recurring/contracts", json={**payload, **extra}, headers=pro_headers)

        bad_price = {"lineItems": [{"description": "Pump out", "unitPrice": "abc"}]}
        assert create(invoiceTemplate=bad_price).status_code == 422
        part_cent = {"lineItems": [{"description": "Pump out", "unitPrice": "9.999"}]}
        assert create(invoiceTemplate=part_cent).status_code == 400
        no_description = {"lineItems": [{"unitPrice": "90.00"}]}
        assert create(invoiceTemplate=no_description).status_code == 422
        assert create(contractValue="10.005").status_code == 422
        assert api.get("/recurring/contracts", headers=pro_headers).json() == []

    def test_contract_templates_flow_into_occurrences(self, api, pro_headers):
        client = create_client(api, pro_headers)
        response = api.post(
            "/recurring/contracts",
            json={
                "clientId": client["id"],
                "title": "Monthly grease trap service",
                "frequency": "monthly",
                "startDate": "2024-01-01T08:00:00",
                "endDate": "2024-01-15T00:00:00",
                "autoCreateInvoices": True,
                "jobTemplate": {"title": "Grease trap pump out", "assignedTo": "Dave"},
                "invoiceTemplate": {
                    "lineItems": [
                        {"description": "Pump out", "quantity": "1", "unitPrice": "180.00"},
                        {"description": "Disposal", "quantity": "2", "unitPrice": "45.50"},
                    ]
                },
            },
            headers=pro_headers,
        )
        assert response.status_code == 200, response.text
        contract = response.json()
        assert contract["jobTemplate"] == {"title": "Grease trap pump out", "assignedTo": "Dave"}

        assert api.post("/recurring/run", headers=pro_headers).json()["contract_occurrences"] == 1

        jobs = api.get("/jobs", headers=pro_headers).json()
        assert [j["title"] for j in jobs] == ["Grease trap pump out"]
        invoices = api.get("/invoices", headers=pro_headers).json()
        assert len(invoices) == 1
        assert Decimal(invoices[0]["subtotal"]) == Decimal("271.00")

    def test_free_tenant_cannot_create_contract(self, api, free_headers):
        client = create_client(api, free_headers)
        response = api.post(
            "/recurring/contracts",
            json={"clientId": client["id"], "title": "Mowing", "frequency": "weekly", "startDate": "2024-01-01T08:00:00"},
            headers=free_headers,
        )
        assert response.status_code == 403

    def test_series_lists_recurring_jobs(self, api, pro_headers):
        client = create_client(api, pro_headers)
        api.post(
            "/jobs",
            json={
                "clientId": client["id"],
                "title": "Pool pump service",
                "scheduledAt": "2099-01-01T09:00:00",
                "recurrence": {"pattern": "monthly"},
            },
            headers=pro_headers,
        )

        series = api.get("/recurring", headers=pro_headers).json()

        assert [entry["state"] for entry in series["jobs"]] == ["scheduled"]
        assert series["invoices"] == []

    def test_usage_reflects_created_jobs(self, api, free_headers):
        client = create_client(api, free_headers)
        api.post("/jobs", json={"clientId": client["id"], "title": "Tap washer"}, headers=free_headers)

        usage = api.get("/usage", headers=free_headers).json()

        assert usage["tier"] == "free"
        assert usage["usage"]["job"] == {"current": 1, "limit": 5, "remaining": 4}
        assert usage["usage"]["client"]["current"] == 1
