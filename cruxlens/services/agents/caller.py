"""Executes one structured-output stage and tags the outcome."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from cruxlens.core.exceptions import InvalidJSONError
from cruxlens.core.llm_client import StructuredOutputClient
from cruxlens.services.agents.contracts import AgentContract
from cruxlens.utils.json_parser import parse_json_safely
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage: parsed output or the failure that replaced it."""
    stage: str
    output: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.output is not None


def build_stage_input(
    plan_text: str,
    context: str = "",
    prior_outputs: Optional[Mapping[str, Any]] = None,
) -> str:
    """Assemble the user input for a stage.

    Order: retrieval context, serialized prerequisite outputs, plan text.
    """
    parts = []
    if context:
        parts.append(context)
    for stage_name, output in (prior_outputs or {}).items():
        serialized = json.dumps(output, ensure_ascii=False)
        parts.append(f"Prior analysis ({stage_name}):\n{serialized}")
    parts.append(f"Business plan:\n{plan_text}")
    return "\n\n".join(parts)


class AgentCaller:
    """Runs AgentContracts against the structured output client.

    Generation failures are never retried; they are returned as a failed
    ``StageResult`` carrying the stage name and the cause so the
    orchestrator decides whether they are fatal.
    """

    def __init__(self, llm_client: StructuredOutputClient):
        self.llm_client = llm_client

    async def call(
        self,
        contract: AgentContract,
        plan_text: str,
        context: str = "",
        prior_outputs: Optional[Mapping[str, Any]] = None,
    ) -> StageResult:
        """Invoke one stage.

        Args:
            contract: Stage contract
            plan_text: Raw business plan text
            context: Retrieval context block (ignored if the contract opts out)
            prior_outputs: Serializable outputs of prerequisite stages

        Returns:
            StageResult with either ``output`` or ``error`` set
        """
        input_text = build_stage_input(
            plan_text,
            context=context if contract.uses_context else "",
            prior_outputs=prior_outputs,
        )

        LOGGER.info(
            f"Running stage {contract.name}",
            extra={"stage": contract.name, "input_chars": len(input_text)}
        )

        try:
            raw_text = await self.llm_client.invoke(
                instructions=contract.instructions,
                input_text=input_text,
                output_schema=contract.schema_payload(),
                schema_name=contract.schema_name,
                model_params=contract.model_params,
            )
            output = self.parse_output(contract.name, raw_text)
        except Exception as e:
            LOGGER.warning(
                f"Stage {contract.name} failed: {e}",
                extra={"stage": contract.name, "error_type": type(e).__name__}
            )
            return StageResult(stage=contract.name, error=e)

        LOGGER.info(f"Stage {contract.name} completed")
        return StageResult(stage=contract.name, output=output)

    @staticmethod
    def parse_output(stage: str, raw_text: str) -> Dict[str, Any]:
        """Parse stage output, falling back to the outermost brace pair.

        Raises:
            InvalidJSONError: If no JSON object can be recovered
        """
        parsed = parse_json_safely(raw_text)
        if not isinstance(parsed, dict):
            raise InvalidJSONError(f"Stage {stage} returned invalid JSON")
        return parsed
