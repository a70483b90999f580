"""Structured-output contracts for every report generation stage.

Each contract pairs stage instructions with a strict JSON schema. Strict
structured outputs require every property to be listed in ``required`` and
``additionalProperties`` to be false at every object level; the helpers
below enforce that shape.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from cruxlens.core.llm_client import ModelParams
from cruxlens.prompts.stage_prompts import (
    BUSINESS_MODEL_PROMPT,
    COMPANY_NAME_PROMPT,
    CRUX_PROMPT,
    INDUSTRY_GUIDEPOSTS_PROMPT,
    OPPORTUNITY_SPACE_PROMPT,
    REFERENCE_CASES_PROMPT,
)

OPPORTUNITY_SPACE = "opportunity_space"
CRUX = "crux"
COMPANY_NAME = "company_name"
INDUSTRY_GUIDEPOSTS = "industry_guideposts"
BUSINESS_MODEL = "business_model"
REFERENCE_CASES = "reference_cases"


@dataclass(frozen=True)
class AgentContract:
    """Immutable description of one structured-output call.

    The schema is stored as a read-only copy; ``schema_payload`` returns a
    fresh mutable copy for each request body.
    """
    name: str
    instructions: str
    output_schema: Mapping[str, Any]
    model_params: ModelParams = field(default_factory=ModelParams)
    uses_context: bool = True

    def __post_init__(self):
        object.__setattr__(self, "output_schema", _freeze(self.output_schema))

    @property
    def schema_name(self) -> str:
        return f"{self.name}_output"

    def schema_payload(self) -> Dict[str, Any]:
        return _thaw(self.output_schema)


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


def _string() -> Dict[str, Any]:
    return {"type": "string"}


def _integer() -> Dict[str, Any]:
    return {"type": "integer"}


def _string_list() -> Dict[str, Any]:
    return {"type": "array", "items": _string()}


def _array(items: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "array", "items": items}


def _object(**properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


def _four_ball_item() -> Dict[str, Any]:
    return _object(content=_string(), score=_integer())


OPPORTUNITY_SPACE_SCHEMA = _object(
    four_ball_model=_object(
        competitor_oversight=_four_ball_item(),
        innovation=_four_ball_item(),
        changing_circumstances=_four_ball_item(),
        seeing_things_differently=_four_ball_item(),
    ),
    summary_table=_array(
        _object(
            factor=_string(),
            type={"type": "string", "enum": ["strength", "blind_spot"]},
            description=_string(),
        )
    ),
)

CRUX_SCHEMA = _object(
    bottleneck_identification=_string(),
    leverage_point=_string(),
    rumelt_justification=_object(
        cascade_logic=_string(),
        root_cause=_string(),
        coherence=_string(),
    ),
    solvability_score=_integer(),
)

COMPANY_NAME_SCHEMA = _object(company_name=_string())

INDUSTRY_GUIDEPOSTS_SCHEMA = _object(
    guideposts=_array(
        _object(name=_string(), applies={"type": "boolean"}, impact=_string())
    ),
    strategic_summary=_string(),
)

BUSINESS_MODEL_SCHEMA = _object(
    opening_paragraph=_string(),
    identified_patterns=_array(
        _object(
            pattern_name=_string(),
            description=_string(),
            reasoning=_object(logic=_string(), fit_indicators=_string_list()),
        )
    ),
    rationale=_object(
        opportunity_alignment=_string(),
        crux_solution=_string(),
        scalability=_string(),
    ),
    canvas_preview=_object(
        value_proposition=_string(),
        revenue_streams=_string(),
        key_partners=_string(),
    ),
)

REFERENCE_CASES_SCHEMA = _object(
    reference_cases=_array(
        _object(
            case_name=_string(),
            relevance_factor=_string(),
            actionable_learnings=_string_list(),
            improvements=_object(
                brand_gtm=_string(),
                operational=_string(),
                strategic_pivot=_string(),
                financing=_string(),
            ),
        )
    ),
    final_summary=_object(
        strengths=_string_list(),
        weaknesses=_string_list(),
        gaps=_string_list(),
        strategic_potential=_string(),
        next_steps=_string_list(),
    ),
    verdict=_string(),
)


OPPORTUNITY_SPACE_CONTRACT = AgentContract(
    name=OPPORTUNITY_SPACE,
    instructions=OPPORTUNITY_SPACE_PROMPT,
    output_schema=OPPORTUNITY_SPACE_SCHEMA,
)

CRUX_CONTRACT = AgentContract(
    name=CRUX,
    instructions=CRUX_PROMPT,
    output_schema=CRUX_SCHEMA,
)

COMPANY_NAME_CONTRACT = AgentContract(
    name=COMPANY_NAME,
    instructions=COMPANY_NAME_PROMPT,
    output_schema=COMPANY_NAME_SCHEMA,
    model_params=ModelParams(max_output_tokens=1000),
    uses_context=False,
)

INDUSTRY_GUIDEPOSTS_CONTRACT = AgentContract(
    name=INDUSTRY_GUIDEPOSTS,
    instructions=INDUSTRY_GUIDEPOSTS_PROMPT,
    output_schema=INDUSTRY_GUIDEPOSTS_SCHEMA,
)

BUSINESS_MODEL_CONTRACT = AgentContract(
    name=BUSINESS_MODEL,
    instructions=BUSINESS_MODEL_PROMPT,
    output_schema=BUSINESS_MODEL_SCHEMA,
)

REFERENCE_CASES_CONTRACT = AgentContract(
    name=REFERENCE_CASES,
    instructions=REFERENCE_CASES_PROMPT,
    output_schema=REFERENCE_CASES_SCHEMA,
)

WAVE_A_CONTRACTS: Tuple[AgentContract, ...] = (
    OPPORTUNITY_SPACE_CONTRACT,
    CRUX_CONTRACT,
    COMPANY_NAME_CONTRACT,
)

WAVE_B_CONTRACTS: Tuple[AgentContract, ...] = (
    INDUSTRY_GUIDEPOSTS_CONTRACT,
    BUSINESS_MODEL_CONTRACT,
    REFERENCE_CASES_CONTRACT,
)
