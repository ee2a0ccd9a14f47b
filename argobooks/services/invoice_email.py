from __future__ import annotations
import html
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from .. import config
from ..domain.company_data import CompanyData, InvoiceEmailSettings
from ..domain.models import Invoice, utc_now
from ..infra.http_client import HttpJsonError, post_json

logger = logging.getLogger(__name__)


# --- Wire types ---

@dataclass
class InvoiceEmailRequest:
    to: str
    to_name: str
    from_email: str
    from_name: str
    subject: str
    html: str
    text: str
    invoice_id: str
    reply_to: Optional[str] = None
    bcc: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "toName": self.to_name,
            "from": self.from_email,
            "fromName": self.from_name,
            "replyTo": self.reply_to,
            "bcc": self.bcc,
            "subject": self.subject,
            "html": self.html,
            "text": self.text,
            "invoiceId": self.invoice_id,
        }


@dataclass
class InvoiceEmailResponse:
    success: bool
    message: str = ""
    message_id: Optional[str] = None
    error_code: Optional[str] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def failure(cls, error_code: str, message: str) -> "InvoiceEmailResponse":
        return cls(success=False, message=message, error_code=error_code)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], default_success: bool) -> "InvoiceEmailResponse":
        return cls(
            success=bool(payload.get("success", default_success)),
            message=str(payload.get("message") or ("Email sent successfully." if default_success else "")),
            message_id=payload.get("messageId"),
            error_code=payload.get("errorCode"),
            timestamp=utc_now(),
        )


# --- Rendering ---

def build_subject(template: str, invoice: Invoice, company_name: str) -> str:
    replacements = {
        "{InvoiceNumber}": invoice.invoice_number,
        "{InvoiceId}": invoice.id,
        "{CompanyName}": company_name,
        "{IssueDate}": invoice.issue_date.isoformat(),
        "{DueDate}": invoice.due_date.isoformat(),
        "{Total}": f"{invoice.total:,.2f}",
    }
    subject = template
    for token, value in replacements.items():
        subject = subject.replace(token, value or "")
    return subject


def render_invoice_text(invoice: Invoice, company: CompanyData, currency_symbol: str = "$") -> str:
    customer = company.get_customer(invoice.customer_id)
    lines = [
        f"{company.settings.company_name}",
        f"Invoice {invoice.invoice_number}",
        f"Bill to: {customer.name if customer else ''}",
        f"Issued: {invoice.issue_date.isoformat()}  Due: {invoice.due_date.isoformat()}",
        "",
    ]
    for item in invoice.line_items:
        lines.append(f"{item.description}  x{item.quantity}  {currency_symbol}{item.amount:,.2f}")
    lines += [
        "",
        f"Subtotal: {currency_symbol}{invoice.subtotal:,.2f}",
        f"Tax: {currency_symbol}{invoice.tax_amount:,.2f}",
        f"Total: {currency_symbol}{invoice.total:,.2f}",
        f"Balance due: {currency_symbol}{invoice.balance:,.2f}",
    ]
    if invoice.notes:
        lines += ["", invoice.notes]
    return "\n".join(lines)


def render_invoice_html(invoice: Invoice, company: CompanyData, currency_symbol: str = "$") -> str:
    esc = html.escape
    customer = company.get_customer(invoice.customer_id)
    rows = "".join(
        f"<tr><td>{esc(item.description)}</td><td>{item.quantity}</td>"
        f"<td>{currency_symbol}{item.unit_price:,.2f}</td><td>{currency_symbol}{item.amount:,.2f}</td></tr>"
        for item in invoice.line_items
    )
    return (
        "<html><body>"
        f"<h2>{esc(company.settings.company_name)}</h2>"
        f"<p>Invoice <strong>{esc(invoice.invoice_number)}</strong></p>"
        f"<p>Bill to: {esc(customer.name if customer else '')}</p>"
        f"<p>Issued {invoice.issue_date.isoformat()}, due {invoice.due_date.isoformat()}</p>"
        "<table><tr><th>Description</th><th>Qty</th><th>Price</th><th>Amount</th></tr>"
        f"{rows}</table>"
        f"<p>Subtotal: {currency_symbol}{invoice.subtotal:,.2f}<br>"
        f"Tax: {currency_symbol}{invoice.tax_amount:,.2f}<br>"
        f"<strong>Total: {currency_symbol}{invoice.total:,.2f}</strong><br>"
        f"Balance due: {currency_symbol}{invoice.balance:,.2f}</p>"
        f"<p>{esc(invoice.notes)}</p>"
        "</body></html>"
    )


# --- Service ---

class InvoiceEmailService:
    """
    Sends invoices through the hosted email API.
    Failures come back as InvoiceEmailResponse objects with an error code; nothing is raised.
    """

    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None, session: Any = None):
        self._api_key = config.INVOICE_EMAIL_API_KEY if api_key is None else api_key
        self.api_url = api_url or config.INVOICE_EMAIL_API_URL
        self._session = session

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self.api_url)

    def send_invoice(
        self,
        invoice: Invoice,
        company: CompanyData,
        settings: Optional[InvoiceEmailSettings] = None,
        currency_symbol: str = "$",
    ) -> InvoiceEmailResponse:
        if not self.is_configured:
            return InvoiceEmailResponse.failure(
                "NOT_CONFIGURED",
                "Email API is not configured. Please set INVOICE_EMAIL_API_URL and INVOICE_EMAIL_API_KEY.",
            )

        customer = company.get_customer(invoice.customer_id)
        if customer is None:
            return InvoiceEmailResponse.failure("CUSTOMER_NOT_FOUND", "Customer not found for this invoice.")
        if not customer.email or not customer.email.strip():
            return InvoiceEmailResponse.failure("NO_EMAIL", f"Customer '{customer.name}' does not have an email address.")

        settings = settings or company.settings.invoice_email
        company_name = company.settings.company_name
        request = InvoiceEmailRequest(
            to=customer.email,
            to_name=customer.name,
            from_email=settings.from_email,
            from_name=settings.from_name.strip() or company_name,
            reply_to=settings.reply_to_email.strip() or None,
            bcc=settings.bcc_email.strip() or None,
            subject=build_subject(settings.subject_template, invoice, company_name),
            html=render_invoice_html(invoice, company, currency_symbol),
            text=render_invoice_text(invoice, company, currency_symbol),
            invoice_id=invoice.id,
        )
        try:
            return self.send_request(request)
        except requests.Timeout:
            return InvoiceEmailResponse.failure(
                "TIMEOUT", "The request timed out. Please check your internet connection and try again."
            )
        except requests.RequestException as e:
            return InvoiceEmailResponse.failure("NETWORK_ERROR", f"Network error: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error sending invoice {invoice.id}")
            return InvoiceEmailResponse.failure("UNKNOWN_ERROR", f"An error occurred: {e}")

    def send_request(self, request: InvoiceEmailRequest) -> InvoiceEmailResponse:
        headers = {"Authorization": f"Bearer {self._api_key}", "X-Api-Key": self._api_key}
        try:
            payload = post_json(
                self.api_url,
                request.to_payload(),
                timeout_s=config.INVOICE_EMAIL_TIMEOUT_S,
                headers=headers,
                session=self._session,
            )
        except HttpJsonError as e:
            if e.payload:
                return InvoiceEmailResponse.from_payload(e.payload, default_success=False)
            if e.status_code is not None and e.status_code // 100 == 2:
                # Sent, but the body was not JSON
                return InvoiceEmailResponse(success=True, message="Email sent successfully.", timestamp=utc_now())
            logger.error(f"Invoice email API error: {e}")
            return InvoiceEmailResponse.failure(str(e.status_code), f"API error: {e.status_code} - {e.message}")
        response = InvoiceEmailResponse.from_payload(payload, default_success=True)
        logger.info(f"Invoice {request.invoice_id} emailed to {request.to}")
        return response
