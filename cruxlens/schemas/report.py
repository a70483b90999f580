"""Pydantic schemas for the canonical strategic analysis report."""

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field

GUIDEPOST_TAXONOMY: Tuple[str, ...] = (
    "Rising Fixed Costs",
    "Deregulation / New Rules",
    "Predictable Biases",
    "Incumbent Response Lags",
    "Attractor States",
)


class ReportModel(BaseModel):
    """Base for report sections: immutable once built, sequences are tuples."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FourBallItem(ReportModel):
    content: str = ""
    score: int = 0


class FourBallModel(ReportModel):
    competitor_oversight: FourBallItem = Field(default_factory=FourBallItem)
    innovation: FourBallItem = Field(default_factory=FourBallItem)
    changing_circumstances: FourBallItem = Field(default_factory=FourBallItem)
    seeing_things_differently: FourBallItem = Field(default_factory=FourBallItem)


class SummaryTableRow(ReportModel):
    factor: str = ""
    type: str = ""  # strength | blind_spot
    description: str = ""


class OpportunitySpacePage(ReportModel):
    """Page 1: opportunity space (4-ball model)."""
    four_ball_model: FourBallModel = Field(default_factory=FourBallModel)
    summary_table: Tuple[SummaryTableRow, ...] = ()


class RumeltJustification(ReportModel):
    cascade_logic: str = ""
    root_cause: str = ""
    coherence: str = ""


class CruxPage(ReportModel):
    """Page 2: the crux, core strategic challenge."""
    bottleneck_identification: str = ""
    leverage_point: str = ""
    rumelt_justification: RumeltJustification = Field(default_factory=RumeltJustification)
    solvability_score: int = 0


class Guidepost(ReportModel):
    name: str
    applies: bool = False
    impact: str = ""


def _empty_guideposts() -> Tuple[Guidepost, ...]:
    return tuple(Guidepost(name=name) for name in GUIDEPOST_TAXONOMY)


class IndustryDynamicsPage(ReportModel):
    """Page 3: the five guideposts of industry dynamics."""
    guideposts: Tuple[Guidepost, ...] = Field(default_factory=_empty_guideposts)
    strategic_summary: str = ""


class PatternReasoning(ReportModel):
    logic: str = ""
    fit_indicators: Tuple[str, ...] = ()


class BusinessModelPattern(ReportModel):
    pattern_name: str = ""
    description: str = ""
    reasoning: PatternReasoning = Field(default_factory=PatternReasoning)


class BusinessModelRationale(ReportModel):
    opportunity_alignment: str = ""
    crux_solution: str = ""
    scalability: str = ""


class CanvasPreview(ReportModel):
    value_proposition: str = ""
    revenue_streams: str = ""
    key_partners: str = ""


class BusinessModelPage(ReportModel):
    """Page 4: business model pattern identification."""
    opening_paragraph: str = ""
    identified_patterns: Tuple[BusinessModelPattern, ...] = ()
    rationale: BusinessModelRationale = Field(default_factory=BusinessModelRationale)
    canvas_preview: CanvasPreview = Field(default_factory=CanvasPreview)


class CaseImprovements(ReportModel):
    brand_gtm: str = ""
    operational: str = ""
    strategic_pivot: str = ""
    financing: str = ""


class ReferenceCase(ReportModel):
    case_name: str = ""
    relevance_factor: str = ""
    actionable_learnings: Tuple[str, ...] = ()
    improvements: CaseImprovements = Field(default_factory=CaseImprovements)


class FinalSummaryPage(ReportModel):
    """Page 6: what works, what needs work."""
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    gaps: Tuple[str, ...] = ()
    strategic_potential: str = ""
    next_steps: Tuple[str, ...] = ()


class ReportPages(ReportModel):
    """The six report pages, in presentation order."""
    page_1_opportunity_space: OpportunitySpacePage = Field(default_factory=OpportunitySpacePage)
    page_2_the_crux: CruxPage = Field(default_factory=CruxPage)
    page_3_industry_dynamics: IndustryDynamicsPage = Field(default_factory=IndustryDynamicsPage)
    page_4_business_model: BusinessModelPage = Field(default_factory=BusinessModelPage)
    page_5_reference_cases: Tuple[ReferenceCase, ...] = ()
    page_6_final_summary: FinalSummaryPage = Field(default_factory=FinalSummaryPage)


class ReportMetadata(ReportModel):
    case_name: str = ""
    analysis_date: str = ""
    coherence_score: int = Field(default=0, ge=0, le=10, alias="overall_coherence_score")
    verdict: str = ""


class CanonicalReport(ReportModel):
    """Merged output of every generation stage.

    Serialized form (``to_json``) uses the stored key names
    ``report_metadata`` / ``overall_coherence_score``.
    """
    metadata: ReportMetadata = Field(default_factory=ReportMetadata, alias="report_metadata")
    pages: ReportPages = Field(default_factory=ReportPages)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class GeneratedReport(ReportModel):
    """Result of one generation request."""
    report: CanonicalReport
    html: str
    title: str
