"""Normalize loosely structured stage outputs into the canonical report.

Remote JSON is treated as untrusted: every field is read through a coercion
helper with a neutral default, so a missing or mistyped field never raises.
"""

import math
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from cruxlens.schemas.report import (
    GUIDEPOST_TAXONOMY,
    BusinessModelPage,
    BusinessModelPattern,
    BusinessModelRationale,
    CanonicalReport,
    CanvasPreview,
    CaseImprovements,
    CruxPage,
    FinalSummaryPage,
    FourBallItem,
    FourBallModel,
    Guidepost,
    IndustryDynamicsPage,
    OpportunitySpacePage,
    PatternReasoning,
    ReferenceCase,
    ReportMetadata,
    ReportPages,
    RumeltJustification,
    SummaryTableRow,
)
from cruxlens.services.report.constants import (
    GUIDEPOST_SYNONYMS,
    MIN_REVERSE_MATCH_LENGTH,
    SCORE_MAX,
    SCORE_MIN,
    SOLVABILITY_MIN,
    TRUTHY_STRINGS,
)

_NON_ALNUM = re.compile(r"[^a-z0-9]")

FOUR_BALL_KEYS = (
    "competitor_oversight",
    "innovation",
    "changing_circumstances",
    "seeing_things_differently",
)


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def as_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple)):
        return ""
    return str(value).strip()


def as_text_list(value: Any) -> List[str]:
    items = (as_text(item) for item in as_list(value))
    return [item for item in items if item]


def as_bool(value: Any) -> bool:
    """Accept real booleans and the strings "true", "yes", "1"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return False


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def as_int(value: Any) -> Optional[int]:
    """Coerce a number or numeric string to int; None when not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return round_half_up(value)
    return None


def clamp(value: int, low: int = SCORE_MIN, high: int = SCORE_MAX) -> int:
    return max(low, min(high, value))


def clamp_score(value: Any) -> int:
    """Sub-score in [0, 10]; non-numeric values count as 0."""
    number = as_int(value)
    return clamp(number) if number is not None else SCORE_MIN


def clamp_solvability(value: Any) -> int:
    """Solvability in [1, 10], or 0 when absent or not numeric."""
    number = as_int(value)
    if number is None:
        return 0
    return clamp(number, low=SOLVABILITY_MIN)


# ---------------------------------------------------------------------------
# Coherence score
# ---------------------------------------------------------------------------

def compute_coherence_score(sub_scores: Sequence[Any], solvability: Any) -> int:
    """Average the four opportunity sub-scores with the crux solvability.

    score = round_half_up((mean(clamped sub-scores) + solvability) / 2),
    clamped to [0, 10]. Missing sub-scores count as 0.
    """
    scores = [clamp_score(score) for score in list(sub_scores)[:len(FOUR_BALL_KEYS)]]
    scores += [SCORE_MIN] * (len(FOUR_BALL_KEYS) - len(scores))
    average = sum(scores) / len(FOUR_BALL_KEYS)
    return clamp(round_half_up((average + clamp_solvability(solvability)) / 2))


def coherence_score_for(opportunity: OpportunitySpacePage, crux: CruxPage) -> int:
    balls = opportunity.four_ball_model
    sub_scores = [getattr(balls, key).score for key in FOUR_BALL_KEYS]
    solvability = crux.solvability_score or None
    return compute_coherence_score(sub_scores, solvability)


# ---------------------------------------------------------------------------
# Guidepost matching
# ---------------------------------------------------------------------------

def normalize_name(value: Any) -> str:
    """Lowercase and strip everything but ASCII letters and digits."""
    return _NON_ALNUM.sub("", as_text(value).lower())


def guidepost_matches(canonical: str, candidate: str) -> bool:
    """Check a normalized candidate name against one canonical guidepost."""
    if not candidate:
        return False
    target = normalize_name(canonical)
    if candidate == target or target in candidate:
        return True
    if len(candidate) >= MIN_REVERSE_MATCH_LENGTH and candidate in target:
        return True
    return any(keyword in candidate for keyword in GUIDEPOST_SYNONYMS[canonical])


def match_guideposts(candidates: Any) -> List[Guidepost]:
    """Map returned guideposts onto the five canonical rows.

    Canonical rows are scanned in taxonomy order; each takes the first
    unclaimed candidate that matches it. A claimed candidate is not offered
    to later rows. Unmatched rows are {applies: False, impact: ""}.
    """
    items = [as_dict(item) for item in as_list(candidates)]
    names = [normalize_name(item.get("name")) for item in items]
    claimed = set()
    rows = []

    for canonical in GUIDEPOST_TAXONOMY:
        match = None
        for index, candidate in enumerate(names):
            if index in claimed:
                continue
            if guidepost_matches(canonical, candidate):
                claimed.add(index)
                match = items[index]
                break

        if match is None:
            rows.append(Guidepost(name=canonical))
        else:
            rows.append(
                Guidepost(
                    name=canonical,
                    applies=as_bool(match.get("applies")),
                    impact=as_text(match.get("impact")),
                )
            )

    return rows


# ---------------------------------------------------------------------------
# Per-stage normalizers
# ---------------------------------------------------------------------------

def normalize_opportunity_space(data: Any) -> OpportunitySpacePage:
    data = as_dict(data)
    balls = as_dict(data.get("four_ball_model"))

    four_ball = FourBallModel(**{
        key: FourBallItem(
            content=as_text(as_dict(balls.get(key)).get("content")),
            score=clamp_score(as_dict(balls.get(key)).get("score")),
        )
        for key in FOUR_BALL_KEYS
    })

    summary_table = []
    for row in as_list(data.get("summary_table")):
        row = as_dict(row)
        summary_table.append(
            SummaryTableRow(
                factor=as_text(row.get("factor")),
                type=as_text(row.get("type")),
                description=as_text(row.get("description")),
            )
        )

    return OpportunitySpacePage(four_ball_model=four_ball, summary_table=summary_table)


def normalize_crux(data: Any) -> CruxPage:
    data = as_dict(data)
    justification = as_dict(data.get("rumelt_justification"))
    return CruxPage(
        bottleneck_identification=as_text(data.get("bottleneck_identification")),
        leverage_point=as_text(data.get("leverage_point")),
        rumelt_justification=RumeltJustification(
            cascade_logic=as_text(justification.get("cascade_logic")),
            root_cause=as_text(justification.get("root_cause")),
            coherence=as_text(justification.get("coherence")),
        ),
        solvability_score=clamp_solvability(data.get("solvability_score")),
    )


def normalize_company_name(data: Any) -> str:
    return as_text(as_dict(data).get("company_name"))


def normalize_industry_dynamics(data: Any) -> IndustryDynamicsPage:
    data = as_dict(data)
    return IndustryDynamicsPage(
        guideposts=match_guideposts(data.get("guideposts")),
        strategic_summary=as_text(data.get("strategic_summary")),
    )


def _normalize_pattern(item: Any) -> Optional[BusinessModelPattern]:
    # Older reports stored patterns as bare names
    if isinstance(item, str):
        name = item.strip()
        return BusinessModelPattern(pattern_name=name) if name else None

    item = as_dict(item)
    if not item:
        return None
    reasoning = as_dict(item.get("reasoning"))
    return BusinessModelPattern(
        pattern_name=as_text(item.get("pattern_name")),
        description=as_text(item.get("description")),
        reasoning=PatternReasoning(
            logic=as_text(reasoning.get("logic")),
            fit_indicators=as_text_list(reasoning.get("fit_indicators")),
        ),
    )


def normalize_business_model(data: Any) -> BusinessModelPage:
    data = as_dict(data)
    rationale = as_dict(data.get("rationale"))
    canvas = as_dict(data.get("canvas_preview"))

    patterns = [_normalize_pattern(item) for item in as_list(data.get("identified_patterns"))]

    return BusinessModelPage(
        opening_paragraph=as_text(data.get("opening_paragraph")),
        identified_patterns=[pattern for pattern in patterns if pattern is not None],
        rationale=BusinessModelRationale(
            opportunity_alignment=as_text(rationale.get("opportunity_alignment")),
            crux_solution=as_text(rationale.get("crux_solution")),
            scalability=as_text(rationale.get("scalability")),
        ),
        canvas_preview=CanvasPreview(
            value_proposition=as_text(canvas.get("value_proposition")),
            revenue_streams=as_text(canvas.get("revenue_streams")),
            key_partners=as_text(canvas.get("key_partners")),
        ),
    )


def normalize_reference_case_list(items: Any) -> List[ReferenceCase]:
    cases = []
    for item in as_list(items):
        item = as_dict(item)
        if not item:
            continue
        improvements = as_dict(item.get("improvements"))
        cases.append(
            ReferenceCase(
                case_name=as_text(item.get("case_name")),
                relevance_factor=as_text(item.get("relevance_factor")),
                actionable_learnings=as_text_list(item.get("actionable_learnings")),
                improvements=CaseImprovements(
                    brand_gtm=as_text(improvements.get("brand_gtm")),
                    operational=as_text(improvements.get("operational")),
                    strategic_pivot=as_text(improvements.get("strategic_pivot")),
                    financing=as_text(improvements.get("financing")),
                ),
            )
        )
    return cases


def normalize_final_summary(data: Any) -> FinalSummaryPage:
    data = as_dict(data)
    return FinalSummaryPage(
        strengths=as_text_list(data.get("strengths")),
        weaknesses=as_text_list(data.get("weaknesses")),
        gaps=as_text_list(data.get("gaps")),
        strategic_potential=as_text(data.get("strategic_potential")),
        next_steps=as_text_list(data.get("next_steps")),
    )


def normalize_reference_cases(data: Any) -> Tuple[List[ReferenceCase], FinalSummaryPage, str]:
    """Split the reference cases stage into cases, final summary and verdict."""
    data = as_dict(data)
    return (
        normalize_reference_case_list(data.get("reference_cases")),
        normalize_final_summary(data.get("final_summary")),
        as_text(data.get("verdict")),
    )


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def merge_report(
    opportunity_space: Any,
    crux: Any,
    company_name: Any = None,
    industry_guideposts: Any = None,
    business_model: Any = None,
    reference_cases: Any = None,
    analysis_date: str = "",
) -> CanonicalReport:
    """Merge raw stage outputs into one canonical report.

    Any stage output may be None (failed or not yet run); its pages fall back
    to their empty defaults. Never raises on malformed input.
    """
    opportunity_page = normalize_opportunity_space(opportunity_space)
    crux_page = normalize_crux(crux)
    cases, final_summary, verdict = normalize_reference_cases(reference_cases)

    metadata = ReportMetadata(
        case_name=normalize_company_name(company_name),
        analysis_date=as_text(analysis_date),
        coherence_score=coherence_score_for(opportunity_page, crux_page),
        verdict=verdict,
    )
    pages = ReportPages(
        page_1_opportunity_space=opportunity_page,
        page_2_the_crux=crux_page,
        page_3_industry_dynamics=normalize_industry_dynamics(industry_guideposts),
        page_4_business_model=normalize_business_model(business_model),
        page_5_reference_cases=cases,
        page_6_final_summary=final_summary,
    )
    return CanonicalReport(metadata=metadata, pages=pages)


def normalize_stored_report(data: Any) -> CanonicalReport:
    """Normalize a previously serialized canonical report.

    The stored coherence score is kept (clamped); it is only recomputed when
    missing or not numeric.
    """
    data = as_dict(data)
    metadata = as_dict(data.get("report_metadata") or data.get("metadata"))
    pages = as_dict(data.get("pages"))

    opportunity_page = normalize_opportunity_space(pages.get("page_1_opportunity_space"))
    crux_page = normalize_crux(pages.get("page_2_the_crux"))

    stored_score = as_int(metadata.get("overall_coherence_score", metadata.get("coherence_score")))
    coherence_score = (
        clamp(stored_score) if stored_score is not None
        else coherence_score_for(opportunity_page, crux_page)
    )

    return CanonicalReport(
        metadata=ReportMetadata(
            case_name=as_text(metadata.get("case_name")),
            analysis_date=as_text(metadata.get("analysis_date")),
            coherence_score=coherence_score,
            verdict=as_text(metadata.get("verdict")),
        ),
        pages=ReportPages(
            page_1_opportunity_space=opportunity_page,
            page_2_the_crux=crux_page,
            page_3_industry_dynamics=normalize_industry_dynamics(pages.get("page_3_industry_dynamics")),
            page_4_business_model=normalize_business_model(pages.get("page_4_business_model")),
            page_5_reference_cases=normalize_reference_case_list(pages.get("page_5_reference_cases")),
            page_6_final_summary=normalize_final_summary(pages.get("page_6_final_summary")),
        ),
    )
