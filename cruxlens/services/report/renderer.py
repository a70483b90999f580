"""Render a canonical report to HTML.

Rendering is a pure function of the report: no clock reads, no I/O, and the
same report always produces byte-identical markup. All report text is
untrusted model output and is HTML-escaped. The only markup recognized in it
is ``[label](url)``, which becomes an anchor for http(s) URLs and escaped
literal text otherwise.
"""

import html
import re
from typing import Iterable, List

from cruxlens.schemas.report import (
    BusinessModelPage,
    CanonicalReport,
    CruxPage,
    FinalSummaryPage,
    IndustryDynamicsPage,
    OpportunitySpacePage,
    ReferenceCase,
    ReportMetadata,
)

_LINK_PATTERN = re.compile(r"\[([^\[\]\n]+)\]\(([^()\s]+)\)")
_SAFE_SCHEMES = ("http://", "https://")

REPORT_STYLES = (
    ".report{background:#fff;color:#000;font-family:Inter,Arial,sans-serif;"
    "line-height:1.45;margin:40px auto;max-width:900px;border:1px solid #000}"
    ".report-header{display:grid;grid-template-columns:1fr 2fr;border-bottom:1px solid #000}"
    ".report-brand{padding:24px;font-weight:700;font-size:22px;border-right:1px solid #000}"
    ".report-title{padding:24px;font-size:36px;font-weight:700;margin:0}"
    ".report-meta{font-size:12px;letter-spacing:.2em;text-transform:uppercase}"
    ".report-page{padding:32px 48px;border-top:1px solid #000}"
    ".report-page h2{font-size:24px;margin:0 0 12px}"
    ".report-page p,.report-page li{font-size:15px;line-height:1.55}"
)

FOUR_BALL_LABELS = (
    ("competitor_oversight", "Competitor Oversight"),
    ("innovation", "Innovation"),
    ("changing_circumstances", "Changing Circumstances"),
    ("seeing_things_differently", "Seeing Things Differently"),
)


def escape_text(value: object) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def render_inline(text: str) -> str:
    """Escape text, converting ``[label](http(s)://...)`` to anchors."""
    parts: List[str] = []
    position = 0
    for match in _LINK_PATTERN.finditer(text or ""):
        parts.append(escape_text(text[position:match.start()]))
        label, url = match.group(1), match.group(2)
        if url.lower().startswith(_SAFE_SCHEMES):
            parts.append(
                f'<a href="{escape_text(url)}" rel="noopener noreferrer">{escape_text(label)}</a>'
            )
        else:
            parts.append(escape_text(match.group(0)))
        position = match.end()
    parts.append(escape_text((text or "")[position:]))
    return "".join(parts)


def _paragraph(text: str) -> str:
    return f"<p>{render_inline(text)}</p>"


def _labeled(label: str, text: str) -> str:
    return f"<p><strong>{escape_text(label)}:</strong> {render_inline(text)}</p>"


def _bullet_list(items: Iterable[str]) -> str:
    rendered = "".join(f"<li>{render_inline(item)}</li>" for item in items)
    return f"<ul>{rendered}</ul>"


def _section(number: int, title: str, body: List[str]) -> str:
    inner = "".join(body)
    return (
        f'<section class="report-page" data-page="{number}">'
        f"<h2>{escape_text(title)}</h2>{inner}</section>"
    )


def _render_header(metadata: ReportMetadata) -> str:
    case_name = metadata.case_name or "Untitled Case"
    return (
        '<header class="report-header">'
        '<div class="report-brand">Cruxlens</div>'
        f'<h1 class="report-title">&ldquo;{render_inline(case_name)}&rdquo;</h1>'
        "</header>"
        '<div class="report-meta">'
        f"<span>{escape_text(metadata.analysis_date)}</span> "
        f"<span>Coherence score: {metadata.coherence_score}</span>"
        "</div>"
        f"{_labeled('Verdict', metadata.verdict)}"
    )


def _render_opportunity_space(page: OpportunitySpacePage) -> str:
    body = []
    for key, label in FOUR_BALL_LABELS:
        item = getattr(page.four_ball_model, key)
        body.append(_labeled(f"{label} ({item.score}/10)", item.content))

    if page.summary_table:
        rows = "".join(
            "<tr>"
            f"<td>{render_inline(row.factor)}</td>"
            f"<td>{escape_text(row.type.replace('_', ' '))}</td>"
            f"<td>{render_inline(row.description)}</td>"
            "</tr>"
            for row in page.summary_table
        )
        body.append(
            "<table><thead><tr><th>Factor</th><th>Type</th><th>Description</th></tr></thead>"
            f"<tbody>{rows}</tbody></table>"
        )
    return _section(1, "Opportunity Space Analysis (4-Ball Model)", body)


def _render_crux(page: CruxPage) -> str:
    justification = page.rumelt_justification
    body = [
        _labeled("Bottleneck", page.bottleneck_identification),
        _labeled("Leverage Point", page.leverage_point),
        _labeled("Cascade Logic", justification.cascade_logic),
        _labeled("Root Cause", justification.root_cause),
        _labeled("Coherence", justification.coherence),
        _labeled("Solvability", f"{page.solvability_score}/10" if page.solvability_score else ""),
    ]
    return _section(2, "The Crux: Core Strategic Challenge (Rumelt)", body)


def _render_industry_dynamics(page: IndustryDynamicsPage) -> str:
    body = []
    for guidepost in page.guideposts:
        status = "Applies" if guidepost.applies else "Not material"
        body.append(_labeled(f"{guidepost.name} ({status})", guidepost.impact))
    body.append(_labeled("Strategic Summary", page.strategic_summary))
    return _section(3, "Rumelt's 5 Guideposts of Industry Dynamics", body)


def _render_business_model(page: BusinessModelPage) -> str:
    body = []
    if page.opening_paragraph:
        body.append(_paragraph(page.opening_paragraph))

    for index, pattern in enumerate(page.identified_patterns, start=1):
        body.append(f"<h3>{index}) {render_inline(pattern.pattern_name)}</h3>")
        body.append(_paragraph(pattern.description))
        body.append(_labeled("Reasoning", pattern.reasoning.logic))
        if pattern.reasoning.fit_indicators:
            body.append(_bullet_list(pattern.reasoning.fit_indicators))

    rationale = page.rationale
    canvas = page.canvas_preview
    body.extend([
        _labeled("Opportunity Alignment", rationale.opportunity_alignment),
        _labeled("Crux Solution", rationale.crux_solution),
        _labeled("Scalability", rationale.scalability),
        _labeled("Value Proposition", canvas.value_proposition),
        _labeled("Revenue Streams", canvas.revenue_streams),
        _labeled("Key Partners", canvas.key_partners),
    ])
    return _section(4, "Business Model Pattern Identification", body)


def _render_reference_cases(cases: List[ReferenceCase]) -> str:
    body = []
    for case in cases:
        improvements = case.improvements
        body.append(_labeled(case.case_name, case.relevance_factor))
        body.append(_bullet_list(case.actionable_learnings))
        body.extend([
            _labeled("Brand / GTM", improvements.brand_gtm),
            _labeled("Operational", improvements.operational),
            _labeled("Strategic Pivot", improvements.strategic_pivot),
            _labeled("Financing", improvements.financing),
        ])
    return _section(5, "Reference Cases and Strategic Improvement Ideas", body)


def _render_final_summary(page: FinalSummaryPage) -> str:
    body = [
        "<h3>Strengths</h3>", _bullet_list(page.strengths),
        "<h3>Weaknesses</h3>", _bullet_list(page.weaknesses),
        "<h3>Gaps</h3>", _bullet_list(page.gaps),
        _labeled("Strategic Potential", page.strategic_potential),
        "<h3>Next Steps</h3>", _bullet_list(page.next_steps),
    ]
    return _section(6, "Summary: What Works, What Needs Work", body)


def render_report_html(report: CanonicalReport) -> str:
    """Render the canonical report as a self-contained HTML fragment.

    Always emits six ``<section class="report-page">`` blocks in page order,
    whether or not the stage behind a page produced content.
    """
    pages = report.pages
    sections = [
        _render_opportunity_space(pages.page_1_opportunity_space),
        _render_crux(pages.page_2_the_crux),
        _render_industry_dynamics(pages.page_3_industry_dynamics),
        _render_business_model(pages.page_4_business_model),
        _render_reference_cases(pages.page_5_reference_cases),
        _render_final_summary(pages.page_6_final_summary),
    ]
    return (
        f"<style>{REPORT_STYLES}</style>"
        '<article class="report">'
        f"{_render_header(report.metadata)}"
        f"{''.join(sections)}"
        "</article>"
    )
