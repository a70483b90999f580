from typing import List

from cruxlens.schemas.report import CanonicalReport

MAX_INDEXED_PATTERNS = 3
MAX_INDEXED_CASES = 4


def _joined(items: List[str]) -> str:
    return "; ".join(item.strip() for item in items if item and item.strip())


def build_report_index_text(
    report_id: str,
    title: str,
    plan_text: str,
    report: CanonicalReport,
) -> str:
    """
    Build the plain-text document uploaded to the user's vector store.

    The document summarizes every page of the report and ends with the
    original plan text, so searches match both the analysis and the input.
    """
    metadata = report.metadata
    pages = report.pages
    four_ball = pages.page_1_opportunity_space.four_ball_model
    crux = pages.page_2_the_crux
    dynamics = pages.page_3_industry_dynamics
    business_model = pages.page_4_business_model
    summary = pages.page_6_final_summary

    lines = [
        "Cruxlens Report Context",
        f"Report ID: {report_id}",
        f"Title: {(title or '').strip() or 'Untitled report'}",
    ]
    if metadata.analysis_date:
        lines.append(f"Analysis date: {metadata.analysis_date}")
    if metadata.verdict:
        lines.append(f"Verdict: {metadata.verdict}")

    lines += [
        "",
        "Opportunity Space Analysis (4-Ball Model)",
        f"- Competitor Oversight: {four_ball.competitor_oversight.content}",
        f"- Innovation: {four_ball.innovation.content}",
        f"- Changing Circumstances: {four_ball.changing_circumstances.content}",
        f"- Seeing Things Differently: {four_ball.seeing_things_differently.content}",
        "",
        "The Crux: Core Strategic Challenge (Rumelt)",
        f"- Bottleneck: {crux.bottleneck_identification}",
        f"- Leverage Point: {crux.leverage_point}",
        f"- Cascade Logic: {crux.rumelt_justification.cascade_logic}",
        f"- Root Cause: {crux.rumelt_justification.root_cause}",
        "",
        "Rumelt's 5 Guideposts of Industry Dynamics",
    ]
    for guidepost in dynamics.guideposts:
        status = "Applies" if guidepost.applies else "Not material"
        lines.append(f"- {guidepost.name} ({status}): {guidepost.impact}")
    if dynamics.strategic_summary:
        lines.append(f"Strategic summary: {dynamics.strategic_summary}")

    lines += ["", "Business Model Pattern Identification"]
    if business_model.opening_paragraph:
        lines.append(f"Overview: {business_model.opening_paragraph}")
    for index, pattern in enumerate(business_model.identified_patterns[:MAX_INDEXED_PATTERNS], start=1):
        if not pattern.pattern_name:
            continue
        lines.append(f"{index}) {pattern.pattern_name}")
        if pattern.description:
            lines.append(f"   Description: {pattern.description}")
        if pattern.reasoning.logic:
            lines.append(f"   Reasoning: {pattern.reasoning.logic}")
        indicators = _joined(pattern.reasoning.fit_indicators)
        if indicators:
            lines.append(f"   Fit indicators: {indicators}")

    if pages.page_5_reference_cases:
        lines += ["", "Reference Cases and Strategic Improvement Ideas"]
        for index, case in enumerate(pages.page_5_reference_cases[:MAX_INDEXED_CASES], start=1):
            if not case.case_name:
                continue
            relevance = f" - {case.relevance_factor}" if case.relevance_factor else ""
            lines.append(f"{index}) {case.case_name}{relevance}")
            learnings = _joined(case.actionable_learnings)
            if learnings:
                lines.append(f"   Learnings: {learnings}")
            improvements = case.improvements
            for label, value in (
                ("Brand/GTM", improvements.brand_gtm),
                ("Operational", improvements.operational),
                ("Strategic pivot", improvements.strategic_pivot),
                ("Financing/partnerships", improvements.financing),
            ):
                if value:
                    lines.append(f"   {label}: {value}")

    lines += ["", "Summary: What Works, What Needs Work"]
    for label, items in (
        ("Strengths", summary.strengths),
        ("Weaknesses", summary.weaknesses),
        ("Gaps", summary.gaps),
    ):
        joined = _joined(items)
        if joined:
            lines.append(f"{label}: {joined}")
    if summary.strategic_potential:
        lines.append(f"Strategic potential: {summary.strategic_potential}")
    next_steps = _joined(summary.next_steps)
    if next_steps:
        lines.append(f"Next steps: {next_steps}")

    lines += ["", "Business Plan (user input)", plan_text or ""]
    return "\n".join(lines)
