"""PDF typesetting with ReportLab and page merging with pypdf."""

from __future__ import annotations

import html
import io
from typing import Any, Dict, List, Optional, Sequence

from pypdf import PdfReader, PdfWriter
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas as rl_canvas
from reportlab.platypus import BaseDocTemplate, Frame, PageTemplate, Paragraph, Spacer, XPreformatted

from ..config import PageGeometry, RenderConfig
from ..models import Module
from ..rendering.highlight import StyleKey
from ..rendering.listing import StyledListing, StyledSpan
from ..rendering.resources import ResourcePool

LINE_NUMBER_COLOR = "#888888"
HEADER_COLOR = "#555555"
RULE_COLOR = "#dddddd"
COLUMN_GAP = 4 * mm
FRAME_PADDING = 2
LINES_PER_BLOCK = 60
MIN_LINE_CHARS = 8
PRODUCER = "git2pdf"


class CombinedArtifact:
    """The single accumulating document for one module."""

    def __init__(self, title: str) -> None:
        self._writer = PdfWriter()
        self._writer.add_metadata({"/Title": title, "/Creator": PRODUCER})

    @property
    def page_count(self) -> int:
        return len(self._writer.pages)

    def append(self, artifact: PdfReader, *, title: Optional[str] = None) -> int:
        first_page = self.page_count
        for page in artifact.pages:
            self._writer.add_page(page)
        added = self.page_count - first_page
        if title and added:
            self._writer.add_outline_item(title, first_page)
        return added

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self._writer.write(buffer)
        return buffer.getvalue()


class PdfEngine:
    """Turns listings and cover data into PDF bytes and merges them."""

    def render_listing(
        self,
        listing: StyledListing,
        config: RenderConfig,
        pool: ResourcePool,
        *,
        title: str,
    ) -> bytes:
        geometry = config.geometry
        frames = _column_frames(geometry, config.columns)
        frame_width = frames[0]._width - 2 * FRAME_PADDING

        digits = len(str(max(listing.line_count, 1)))
        width = max(MIN_LINE_CHARS, int(frame_width / pool.font.char_width) - digits - 1)

        code_style = ParagraphStyle(
            "Git2PdfCode",
            fontName=pool.font.name,
            fontSize=pool.font.size,
            leading=pool.font.leading,
            textColor=HexColor(listing.foreground),
        )
        header_style = ParagraphStyle(
            "Git2PdfFileHeader",
            fontName="Helvetica-Bold",
            fontSize=pool.font.size + 1,
            leading=(pool.font.size + 1) * 1.3,
            textColor=HexColor("#333333"),
            backColor=HexColor("#e0e0e0"),
            borderPadding=(1, 2, 1, 2),
            spaceAfter=4,
        )

        story: List[Any] = [Paragraph(_file_heading(listing, pool.font.size), header_style)]
        rendered: List[str] = []
        for number, spans in enumerate(listing.lines, start=1):
            rendered.extend(_line_markup(number, spans, listing.palette, width, digits))
        for start in range(0, len(rendered), LINES_PER_BLOCK):
            story.append(XPreformatted("\n".join(rendered[start : start + LINES_PER_BLOCK]), code_style))

        def on_page(canv: rl_canvas.Canvas, doc: BaseDocTemplate) -> None:
            _paint_page(canv, geometry, frames, listing.background, listing.foreground, title)

        doc = _document(geometry, title=f"{title}: {listing.relative_path}")
        doc.addPageTemplates([PageTemplate(id="listing", frames=frames, onPage=on_page)])
        return _build(doc, story, footer_label=listing.relative_path)

    def render_cover(
        self,
        module: Module,
        config: RenderConfig,
        pool: ResourcePool,
        *,
        commit: Optional[str] = None,
        file_count: int = 0,
    ) -> bytes:
        geometry = config.geometry
        frames = _column_frames(geometry, 1)
        styles = _cover_styles(pool)

        story: List[Any] = [
            Spacer(1, frames[0]._height * 0.3),
            Paragraph(_escape(module.name), styles["title"]),
            Paragraph(f"Version {_escape(module.version)}", styles["version"]),
        ]
        if commit:
            story.append(Paragraph(f"Commit: {_escape(commit)}", styles["commit"]))
        if module.description:
            story.append(Paragraph(_escape(module.description), styles["description"]))
        details = f"{file_count} file{'s' if file_count != 1 else ''}"
        if module.is_workspace_member:
            details += " - workspace member"
        story.append(Paragraph(details, styles["meta"]))

        doc = _document(geometry, title=f"{module.name} - Code Review")
        doc.addPageTemplates([PageTemplate(id="cover", frames=frames)])
        return _build(doc, story)

    def new_combined(self, title: str) -> CombinedArtifact:
        return CombinedArtifact(title)

    def parse_artifact(self, data: bytes) -> PdfReader:
        return PdfReader(io.BytesIO(data))

    def append_pages(
        self, combined: CombinedArtifact, artifact: PdfReader, *, title: Optional[str] = None
    ) -> int:
        return combined.append(artifact, title=title)

    def serialize(self, combined: CombinedArtifact) -> bytes:
        return combined.to_bytes()


def wrap_spans(spans: Sequence[StyledSpan], width: int) -> List[List[StyledSpan]]:
    """Split a line's spans into rows of at most *width* characters."""
    rows: List[List[StyledSpan]] = [[]]
    used = 0
    for class_name, text in spans:
        while text:
            room = width - used
            if room <= 0:
                rows.append([])
                used = 0
                room = width
            chunk, text = text[:room], text[room:]
            rows[-1].append((class_name, chunk))
            used += len(chunk)
    return rows


def _line_markup(
    number: int,
    spans: Sequence[StyledSpan],
    palette: Dict[str, StyleKey],
    width: int,
    digits: int,
) -> List[str]:
    rows = []
    for index, row in enumerate(wrap_spans(spans, width)):
        gutter = str(number).rjust(digits) if index == 0 else " " * digits
        body = "".join(_span_markup(text, palette.get(name) if name else None) for name, text in row)
        rows.append(f'<font color="{LINE_NUMBER_COLOR}">{gutter}</font> {body}')
    return rows


def _span_markup(text: str, key: Optional[StyleKey]) -> str:
    markup = _escape(_printable(text))
    if key is None:
        return markup
    if key.underline:
        markup = f"<u>{markup}</u>"
    if key.italic:
        markup = f"<i>{markup}</i>"
    if key.bold:
        markup = f"<b>{markup}</b>"
    if key.color:
        markup = f'<font color="{key.color}">{markup}</font>'
    return markup


def _file_heading(listing: StyledListing, size: float) -> str:
    heading = f'{_escape(listing.relative_path)} <font color="#666666" size="{size:g}">{_escape(listing.module_path)}</font>'
    if listing.has_inline_tests:
        heading += ' <font color="#666666">[tests]</font>'
    return heading


def _column_frames(geometry: PageGeometry, columns: int) -> List[Frame]:
    usable_width = (geometry.width - geometry.margin_left - geometry.margin_right) * mm
    usable_height = (geometry.height - geometry.margin_top - geometry.margin_bottom) * mm
    gap = COLUMN_GAP if columns > 1 else 0
    column_width = (usable_width - gap * (columns - 1)) / columns
    return [
        Frame(
            geometry.margin_left * mm + index * (column_width + gap),
            geometry.margin_bottom * mm,
            column_width,
            usable_height,
            leftPadding=FRAME_PADDING,
            rightPadding=FRAME_PADDING,
            topPadding=FRAME_PADDING,
            bottomPadding=FRAME_PADDING,
            id=f"column{index}",
        )
        for index in range(columns)
    ]


def _paint_page(
    canv: rl_canvas.Canvas,
    geometry: PageGeometry,
    frames: Sequence[Frame],
    background: str,
    foreground: str,
    header: str,
) -> None:
    width, height = geometry.width * mm, geometry.height * mm
    canv.saveState()
    if background.lower() != "#ffffff":
        canv.setFillColor(HexColor(background))
        canv.rect(0, 0, width, height, stroke=0, fill=1)
    if len(frames) > 1:
        canv.setStrokeColor(HexColor(RULE_COLOR))
        canv.setLineWidth(0.5)
        for frame in frames[1:]:
            x = frame._x1 - COLUMN_GAP / 2
            canv.line(x, frame._y1, x, frame._y1 + frame._height)
    if geometry.margin_top * mm >= 10:
        canv.setFillColor(HexColor(foreground if background.lower() != "#ffffff" else HEADER_COLOR))
        canv.setFont("Helvetica", 7)
        canv.drawString(geometry.margin_left * mm, height - geometry.margin_top * mm / 2, header)
    canv.restoreState()


def _document(geometry: PageGeometry, *, title: str) -> BaseDocTemplate:
    return BaseDocTemplate(
        io.BytesIO(),
        pagesize=(geometry.width * mm, geometry.height * mm),
        leftMargin=geometry.margin_left * mm,
        rightMargin=geometry.margin_right * mm,
        topMargin=geometry.margin_top * mm,
        bottomMargin=geometry.margin_bottom * mm,
        title=title,
        author=PRODUCER,
        creator=PRODUCER,
        invariant=1,
    )


class NumberedCanvas(rl_canvas.Canvas):
    """Canvas that stamps ``label  i/n`` once the page total is known."""

    footer_label = ""
    footer_bottom = 0.0

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._saved_page_states: List[Dict[str, Any]] = []

    def showPage(self) -> None:  # noqa: N802 - reportlab API
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, page_count: int) -> None:
        if not self.footer_label or self.footer_bottom < 8 * mm:
            return
        width = self._pagesize[0]
        self.saveState()
        self.setFont("Helvetica", 7)
        self.setFillColor(HexColor(HEADER_COLOR))
        self.drawRightString(
            width - 10 * mm,
            self.footer_bottom / 2,
            f"{self.footer_label}  {self._pageNumber}/{page_count}",
        )
        self.restoreState()


def _build(doc: BaseDocTemplate, story: List[Any], *, footer_label: str = "") -> bytes:
    def canvas_factory(*args: Any, **kwargs: Any) -> NumberedCanvas:
        canvas_obj = NumberedCanvas(*args, **kwargs)
        canvas_obj.footer_label = footer_label
        canvas_obj.footer_bottom = doc.bottomMargin
        return canvas_obj

    doc.build(story, canvasmaker=canvas_factory)
    return doc.filename.getvalue()


def _cover_styles(pool: ResourcePool) -> Dict[str, ParagraphStyle]:
    base = ParagraphStyle("Git2PdfCover", fontName="Helvetica", alignment=TA_CENTER, textColor=HexColor("#333333"))
    return {
        "title": ParagraphStyle("Git2PdfCoverTitle", parent=base, fontName="Helvetica-Bold", fontSize=32, leading=38, spaceAfter=18, textColor=HexColor("#222222")),
        "version": ParagraphStyle("Git2PdfCoverVersion", parent=base, fontSize=16, leading=20, spaceAfter=8, textColor=HexColor("#666666")),
        "commit": ParagraphStyle("Git2PdfCoverCommit", parent=base, fontName=pool.font.name, fontSize=11, leading=14, spaceAfter=16, textColor=HexColor("#888888")),
        "description": ParagraphStyle("Git2PdfCoverDescription", parent=base, fontSize=13, leading=18, spaceAfter=16, textColor=HexColor("#555555")),
        "meta": ParagraphStyle("Git2PdfCoverMeta", parent=base, fontSize=9, leading=12, textColor=HexColor("#888888")),
    }


def _escape(value: object) -> str:
    return html.escape(str(value), quote=False)


def _printable(text: str) -> str:
    return "".join(ch if ch >= " " or ch == "\t" else " " for ch in text)


__all__ = ["CombinedArtifact", "NumberedCanvas", "PdfEngine", "wrap_spans"]
