"""Tests for connectivity checks, invoice emailing and table export."""
import json
from datetime import date
from decimal import Decimal

import pytest
import requests
from openpyxl import load_workbook

from argobooks.domain.company_data import CompanyData, CompanySettings
from argobooks.domain.enums import InvoiceStatus
from argobooks.services.connectivity import ConnectivityService
from argobooks.services.export import export_csv, export_table, read_csv_rows
from argobooks.services.invoice_email import InvoiceEmailService, build_subject

from .factories import add_customer, add_invoice
from .fakes import FakeResponse, FakeSession

API_URL = "https://mail.test/send"


class TestConnectivity:

    def test_no_content_means_online(self):
        session = FakeSession(FakeResponse(204))
        assert ConnectivityService(check_urls=["https://a.test"], session=session).is_internet_available()
        assert session.calls[0][0] == "HEAD"

    def test_server_error_means_offline(self):
        session = FakeSession(FakeResponse(500))
        service = ConnectivityService(check_urls=["https://a.test", "https://b.test"], session=session)
        assert not service.is_internet_available()
        assert len(session.calls) == 2

    def test_connection_error_means_offline(self):
        session = FakeSession(error=requests.ConnectionError("offline"))
        assert not ConnectivityService(check_urls=["https://a.test"], session=session).is_internet_available()


@pytest.fixture
def billing():
    company = CompanyData(settings=CompanySettings(company_name="Acme Ltd"))
    company.settings.invoice_email.from_email = "billing@acme.test"
    customer = add_customer(company, "Ada Lovelace", email="ada@example.com")
    invoice = add_invoice(company, customer, Decimal("120.00"), date(2024, 4, 1), date(2024, 5, 1),
                          invoice_number="#INV-2024-001")
    return company, invoice


def email_service(response=None, error=None):
    session = FakeSession(response, error)
    return InvoiceEmailService(api_key="secret", api_url=API_URL, session=session), session


class TestInvoiceEmail:

    def test_not_configured(self, billing):
        company, invoice = billing
        response = InvoiceEmailService(api_key="", api_url=API_URL).send_invoice(invoice, company)
        assert not response.success
        assert response.error_code == "NOT_CONFIGURED"

    def test_customer_not_found(self, billing):
        company, invoice = billing
        invoice.customer_id = "CUS-404"
        service, session = email_service()
        assert service.send_invoice(invoice, company).error_code == "CUSTOMER_NOT_FOUND"
        assert session.calls == []

    def test_customer_without_email(self, billing):
        company, invoice = billing
        company.customers[0].email = "  "
        service, _ = email_service()
        response = service.send_invoice(invoice, company)
        assert response.error_code == "NO_EMAIL"
        assert "Ada Lovelace" in response.message

    def test_success(self, billing):
        company, invoice = billing
        service, session = email_service(FakeResponse(200, {"success": True, "messageId": "msg-1"}))
        response = service.send_invoice(invoice, company)

        assert response.success
        assert response.message_id == "msg-1"
        method, url, kwargs = session.calls[0]
        assert (method, url) == ("POST", API_URL)
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["headers"]["X-Api-Key"] == "secret"
        body = json.loads(kwargs["data"])
        assert body["to"] == "ada@example.com"
        assert body["from"] == "billing@acme.test"
        assert body["fromName"] == "Acme Ltd"
        assert body["replyTo"] is None
        assert body["subject"] == "Invoice #INV-2024-001 from Acme Ltd"
        assert body["invoiceId"] == invoice.id
        assert "Ada Lovelace" in body["text"]

    def test_non_json_success(self, billing):
        company, invoice = billing
        service, _ = email_service(FakeResponse(200, text="OK"))
        assert service.send_invoice(invoice, company).success

    def test_api_error_body(self, billing):
        company, invoice = billing
        service, _ = email_service(FakeResponse(400, {"success": False, "errorCode": "INVALID_RECIPIENT", "message": "Bad address"}))
        response = service.send_invoice(invoice, company)
        assert not response.success
        assert response.error_code == "INVALID_RECIPIENT"
        assert response.message == "Bad address"

    def test_http_error_without_body(self, billing):
        company, invoice = billing
        service, _ = email_service(FakeResponse(500, text="Internal Server Error"))
        response = service.send_invoice(invoice, company)
        assert response.error_code == "500"

    @pytest.mark.parametrize("error,code", [
        (requests.Timeout("slow"), "TIMEOUT"),
        (requests.ConnectionError("down"), "NETWORK_ERROR"),
    ])
    def test_transport_errors(self, billing, error, code):
        company, invoice = billing
        service, _ = email_service(error=error)
        assert service.send_invoice(invoice, company).error_code == code

    def test_subject_tokens(self, billing):
        _, invoice = billing
        invoice.status = InvoiceStatus.SENT
        subject = build_subject("{InvoiceNumber} due {DueDate} total {Total}", invoice, "Acme")
        assert subject == "#INV-2024-001 due 2024-05-01 total 120.00"


class TestExport:

    def test_csv_keeps_leading_zeros(self, tmp_path):
        path = export_csv(str(tmp_path / "out.csv"), ["Code", "Amount", "Status"],
                          [["007", Decimal("12.50"), InvoiceStatus.PAID]])
        raw = (tmp_path / "out.csv").read_bytes()
        assert raw.startswith(b"\xef\xbb\xbf")
        assert b"\r\n" in raw
        assert read_csv_rows(path) == [["Code", "Amount", "Status"], ['="007"', "12.50", "Paid"]]

    def test_table_without_extension_is_csv(self, tmp_path):
        path = export_table(str(tmp_path / "customers"), ["Name"], [["Ada"]])
        assert path.endswith("customers.csv")
        assert read_csv_rows(path) == [["Name"], ["Ada"]]

    def test_xlsx(self, tmp_path):
        path = export_table(str(tmp_path / "invoices.xlsx"), ["Invoice", "Total", "Issued"],
                            [["INV-1", Decimal("99.95"), date(2024, 1, 2)]], sheet_title="Invoices")
        ws = load_workbook(path).active
        assert ws.title == "Invoices"
        assert ws["A1"].value == "Invoice"
        assert ws["A1"].font.bold
        assert ws["B2"].value == pytest.approx(99.95)
