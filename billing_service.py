from __future__ import annotations
import datetime
import uuid
from typing import List, Optional

from loguru import logger

from db import ClientRepository, InvoiceRepository, SettingsRepository
from errors import FitTrackError
from models import Invoice


def _as_date(value: str | datetime.date) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.datetime.fromisoformat(value.replace("Z", "+00:00")).date()


class BillingService:
    """Invoice aging and client lockout.

    Invoices move draft -> sent -> paid, and a sent invoice becomes overdue
    once today is past its due date.
    """

    def __init__(
        self,
        invoices: InvoiceRepository,
        clients: ClientRepository,
        settings: Optional[SettingsRepository] = None,
    ) -> None:
        self.invoices = invoices
        self.clients = clients
        self.settings = settings

    @staticmethod
    def days_overdue(due_date: str | datetime.date, today: datetime.date | None = None) -> int:
        today = today or datetime.date.today()
        due = _as_date(due_date)
        if today <= due:
            return 0
        return (today - due).days

    def lockout_threshold(self) -> int:
        if self.settings is None:
            return 7
        return self.settings.get_int("lockout_threshold_days", 7)

    def create(
        self,
        client_id: str,
        amount: float,
        description: str,
        due_date: str,
        issue_date: str | None = None,
    ) -> Invoice:
        if amount <= 0:
            raise ValueError("amount must be positive")
        client = self.clients.fetch(client_id)
        invoice = Invoice(
            id=str(uuid.uuid4()),
            client_id=client.id,
            client_name=client.name,
            amount=amount,
            description=description,
            status="draft",
            issue_date=issue_date or datetime.date.today().isoformat(),
            due_date=due_date,
        )
        self.invoices.add(invoice)
        return invoice

    def send(self, invoice_id: str) -> Invoice:
        invoice = self.invoices.fetch(invoice_id)
        if invoice.status != "draft":
            raise FitTrackError(f"invoice {invoice_id} is {invoice.status}, not draft")
        invoice.status = "sent"
        self.invoices.replace(invoice)
        return invoice

    def mark_paid(self, invoice_id: str, paid_date: str | None = None) -> Invoice:
        invoice = self.invoices.fetch(invoice_id)
        if invoice.status not in ("sent", "overdue"):
            raise FitTrackError(f"invoice {invoice_id} is {invoice.status} and cannot be paid")
        invoice.status = "paid"
        invoice.paid_date = paid_date or datetime.date.today().isoformat()
        self.invoices.replace(invoice)
        return invoice

    def refresh_statuses(self, today: datetime.date | None = None) -> List[Invoice]:
        """Mark sent invoices past their due date as overdue."""
        today = today or datetime.date.today()
        invoices = self.invoices.fetch_all()
        changed = False
        for invoice in invoices:
            if invoice.status == "sent" and today > _as_date(invoice.due_date):
                invoice.status = "overdue"
                changed = True
                logger.info("invoice {} for {} is overdue", invoice.id, invoice.client_name)
        if changed:
            self.invoices.save_all(invoices)
        return invoices

    def client_status(self, client_id: str, today: datetime.date | None = None) -> dict:
        today = today or datetime.date.today()
        self.refresh_statuses(today)
        threshold = self.lockout_threshold()
        invoices = self.invoices.fetch_for_client(client_id)
        overdue = [inv for inv in invoices if inv.status == "overdue"]
        max_days = max((self.days_overdue(inv.due_date, today) for inv in overdue), default=0)
        return {
            "client_id": client_id,
            "open_invoices": [inv.id for inv in invoices if inv.status in ("sent", "overdue")],
            "has_overdue": bool(overdue),
            "max_days_overdue": max_days,
            "lockout_threshold_days": threshold,
            "locked_out": bool(overdue) and max_days >= threshold,
        }
