"""Payment receipt PDFs."""

import logging
from datetime import datetime, timezone
from pathlib import Path

from fpdf import FPDF
from fpdf.enums import XPos, YPos

logger = logging.getLogger(__name__)


def _latin1(text) -> str:
    # Core PDF fonts only cover latin-1
    return str(text).encode("latin-1", "replace").decode("latin-1")


class ReceiptGenerator:
    def __init__(self, output_dir: str | Path, app_name: str):
        self.output_dir = Path(output_dir)
        self.app_name = app_name

    def _row(self, pdf: FPDF, label: str, value) -> None:
        pdf.set_font("Helvetica", "B", 12)
        pdf.cell(55, 8, _latin1(f"{label}:"))
        pdf.set_font("Helvetica", "", 12)
        pdf.cell(0, 8, _latin1(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def payment_receipt(self, tenant, payment, property_name: str | None = None) -> Path:
        """Render a receipt for one payment and return the written file."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        generated = datetime.now(timezone.utc)

        pdf = FPDF(format="A4")
        pdf.set_title("Payment Receipt")
        pdf.set_author(_latin1(self.app_name))
        pdf.add_page()

        pdf.set_font("Helvetica", "B", 22)
        pdf.cell(0, 14, "Payment Receipt", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(
            0, 8, f"Generated on: {generated:%Y-%m-%d}", align="R",
            new_x=XPos.LMARGIN, new_y=YPos.NEXT,
        )
        pdf.ln(6)

        lease = tenant.lease_details
        self._row(pdf, "Receipt No.", str(payment.id).split("-")[0].upper())
        self._row(pdf, "Tenant", f"{tenant.first_name} {tenant.last_name}")
        if property_name:
            self._row(pdf, "Property", property_name)
        if lease is not None:
            self._row(pdf, "Unit", lease.unit_number)
        self._row(pdf, "Payment date", payment.payment_date)
        self._row(pdf, "Method", payment.method or "-")
        self._row(pdf, "Status", payment.status)
        pdf.ln(4)

        pdf.set_font("Helvetica", "B", 16)
        pdf.cell(0, 12, f"Amount: ${payment.amount:,.2f}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        if payment.notes:
            pdf.ln(2)
            pdf.set_font("Helvetica", "I", 11)
            pdf.multi_cell(0, 6, _latin1(payment.notes))

        pdf.set_y(-25)
        pdf.set_font("Helvetica", "", 9)
        pdf.cell(0, 8, _latin1(f"{self.app_name} (c) {generated.year}"), align="C")

        path = self.output_dir / f"receipt-{payment.id}.pdf"
        pdf.output(str(path))
        logger.info("Receipt written to %s", path)
        return path
