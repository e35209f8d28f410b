"""Assessment certificate rendering (fpdf2, no system dependencies)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fpdf import FPDF

from ctam.errors import TransitionRejected
from ctam.services.assessments import to_buddhist_year
from ctam.services.reporting import is_approved_status

NAVY = (15, 30, 61)
GREEN = (22, 163, 74)
GRAY = (107, 114, 128)
DARK = (31, 41, 55)

STATUS_LABELS = {
    "approved_regional": "Approved by Health Region",
    "completed": "Completed",
}


class CertificatePdf(FPDF):
    """Single-page landscape certificate."""

    def __init__(self, font_path: str = "") -> None:
        super().__init__(orientation="L", format="A4")
        self.set_auto_page_break(auto=False)
        self.font_family_name = "Helvetica"
        self._unicode_font = False
        if font_path and Path(font_path).is_file():
            self.add_font("CertificateFont", "", font_path)
            self.font_family_name = "CertificateFont"
            self._unicode_font = True

    def text_safe(self, text: str) -> str:
        """Core fonts only cover Latin-1; substitute anything else."""
        if self._unicode_font:
            return text
        return text.encode("latin-1", "replace").decode("latin-1")

    def line_text(self, text: str, size: int, color: tuple[int, int, int], height: float = 12) -> None:
        self.set_font(self.font_family_name, "", size)
        self.set_text_color(*color)
        self.cell(0, height, self.text_safe(text), align="C", new_x="LMARGIN", new_y="NEXT")


def render_certificate(
    assessment: dict[str, Any],
    unit_name: str,
    font_path: str = "",
) -> bytes:
    """Render the certificate for an approved assessment as PDF bytes."""
    if not is_approved_status(assessment.get("status")):
        raise TransitionRejected("ออกใบรับรองได้เฉพาะแบบประเมินที่ผ่านการอนุมัติระดับเขตแล้ว")

    pdf = CertificatePdf(font_path)
    pdf.add_page()

    pdf.set_draw_color(*NAVY)
    pdf.set_line_width(1.5)
    pdf.rect(10, 10, pdf.w - 20, pdf.h - 20)

    pdf.set_y(30)
    pdf.line_text("Certificate of Cybersecurity Self-Assessment", 26, NAVY, 16)
    pdf.line_text("CTAM+ Hospital Cybersecurity Assessment", 14, GRAY)
    pdf.ln(8)
    pdf.line_text("This certifies that", 14, DARK)
    pdf.line_text(unit_name, 22, NAVY, 14)
    pdf.line_text(
        f"Fiscal year {to_buddhist_year(assessment['fiscal_year'])} (B.E.), period {assessment['assessment_period']}",
        14,
        DARK,
    )
    pdf.ln(6)
    pdf.line_text(f"Total score {assessment['total_score']:.2f} / 10", 20, GREEN, 14)
    pdf.line_text(
        f"Quantitative {assessment['quantitative_score']:.2f} / 7   "
        f"Qualitative {assessment['qualitative_score']:.2f} / 1.5   "
        f"Impact {assessment['impact_score']:.2f} / 1.5",
        12,
        DARK,
    )
    pdf.ln(6)
    pdf.line_text(f"Status: {STATUS_LABELS[assessment['status']]}", 12, GRAY)

    return bytes(pdf.output())
