from __future__ import annotations

from pathlib import Path

from fpdf import FPDF
from fpdf.enums import XPos, YPos


def _latin1(text: str) -> str:
    """Encode to latin-1, replacing unsupported chars; fpdf built-in fonts are latin-1 only."""
    return text.encode("latin-1", errors="replace").decode("latin-1")


def _plain(text: str) -> str:
    return text.replace("**", "").replace("__", "").replace("`", "")


def render_markdown_pdf(markdown: str, output_path: Path, *, title: str = "") -> Path:
    """Render headings, bullets and paragraphs of a small markdown document."""
    pdf = FPDF()
    pdf.set_margins(18, 18, 18)
    pdf.set_auto_page_break(auto=True, margin=18)
    pdf.add_page()
    if title:
        pdf.set_title(_latin1(title))

    for raw in markdown.splitlines():
        line = raw.rstrip()
        if not line.strip():
            pdf.ln(3)
            continue

        if line.startswith("# "):
            pdf.set_font("Helvetica", "B", 16)
            text, height = line[2:], 9
        elif line.startswith("## ") or line.startswith("### "):
            pdf.ln(1)
            pdf.set_font("Helvetica", "B", 12)
            text, height = line.lstrip("#").strip(), 7
        elif line.lstrip().startswith(("- ", "* ")):
            pdf.set_font("Helvetica", "", 10)
            text, height = "- " + line.lstrip()[2:], 5
        else:
            pdf.set_font("Helvetica", "", 10)
            text, height = line, 5

        pdf.multi_cell(0, height, _latin1(_plain(text)), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    pdf.output(str(output_path))
    return output_path
