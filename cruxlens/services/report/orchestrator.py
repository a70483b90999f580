"""Two-wave orchestration of the report generation stages.

Wave A runs opportunity_space, crux and company_name concurrently. The first
two are required: the first of them to fail cancels the rest of the wave and
aborts generation with ``RequiredStageFailure``. company_name is optional and
defaults to "".

Wave B runs industry_guideposts, business_model and reference_cases
concurrently on top of Wave A's output. Every outcome is collected; a failed
stage is logged and its pages fall back to their empty defaults.
"""

import asyncio
from datetime import date
from typing import Any, Callable, Dict, Optional

from cruxlens.core.exceptions import OptionalStageFailure, RequiredStageFailure
from cruxlens.schemas.report import CanonicalReport
from cruxlens.services.agents.caller import AgentCaller, StageResult
from cruxlens.services.agents.contracts import (
    COMPANY_NAME_CONTRACT,
    CRUX,
    CRUX_CONTRACT,
    OPPORTUNITY_SPACE,
    OPPORTUNITY_SPACE_CONTRACT,
    WAVE_B_CONTRACTS,
    AgentContract,
)
from cruxlens.services.report.normalizer import merge_report
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ReportOrchestrator:
    """Sequences stage calls and merges their outputs into one report."""

    def __init__(self, caller: AgentCaller, today: Optional[Callable[[], date]] = None):
        self.caller = caller
        self.today = today or date.today

    async def run(self, plan_text: str, context: str = "") -> CanonicalReport:
        """Run both waves and return the merged canonical report.

        Raises:
            RequiredStageFailure: If opportunity_space or crux fails
        """
        analysis_date = self.today().isoformat()

        wave_a = await self._run_wave_a(plan_text, context)

        partial = merge_report(
            opportunity_space=wave_a[OPPORTUNITY_SPACE],
            crux=wave_a[CRUX],
            company_name=wave_a[COMPANY_NAME_CONTRACT.name],
            analysis_date=analysis_date,
        )
        prior_outputs = {
            OPPORTUNITY_SPACE: partial.pages.page_1_opportunity_space.model_dump(mode="json"),
            CRUX: partial.pages.page_2_the_crux.model_dump(mode="json"),
        }

        wave_b = await self._run_wave_b(plan_text, context, prior_outputs)

        report = merge_report(
            opportunity_space=wave_a[OPPORTUNITY_SPACE],
            crux=wave_a[CRUX],
            company_name=wave_a[COMPANY_NAME_CONTRACT.name],
            analysis_date=analysis_date,
            **wave_b,
        )
        LOGGER.info(
            "Report merged",
            extra={
                "case_name": report.metadata.case_name,
                "coherence_score": report.metadata.coherence_score,
                "failed_optional_stages": [name for name, output in wave_b.items() if output is None],
            }
        )
        return report

    async def _run_required(self, contract: AgentContract, plan_text: str, context: str) -> Dict[str, Any]:
        result = await self.caller.call(contract, plan_text, context=context)
        if not result.ok:
            raise RequiredStageFailure(contract.name, result.error)
        return result.output

    async def _run_wave_a(self, plan_text: str, context: str) -> Dict[str, Any]:
        tasks = {
            OPPORTUNITY_SPACE: asyncio.create_task(
                self._run_required(OPPORTUNITY_SPACE_CONTRACT, plan_text, context)
            ),
            CRUX: asyncio.create_task(
                self._run_required(CRUX_CONTRACT, plan_text, context)
            ),
            COMPANY_NAME_CONTRACT.name: asyncio.create_task(
                self.caller.call(COMPANY_NAME_CONTRACT, plan_text)
            ),
        }

        try:
            done, pending = await asyncio.wait(
                tasks.values(), return_when=asyncio.FIRST_EXCEPTION
            )
            failed = [task for task in tasks.values() if task in done and task.exception()]
            if failed:
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                failure = failed[0].exception()
                LOGGER.error(f"Wave A aborted: {failure}", extra={"stage": getattr(failure, "stage", None)})
                raise failure
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()

        company_result: StageResult = tasks[COMPANY_NAME_CONTRACT.name].result()
        company_output = company_result.output
        if not company_result.ok:
            failure = OptionalStageFailure(company_result.stage, company_result.error)
            LOGGER.warning(f"{failure}; using an empty company name", extra={"stage": failure.stage})
            company_output = None

        return {
            OPPORTUNITY_SPACE: tasks[OPPORTUNITY_SPACE].result(),
            CRUX: tasks[CRUX].result(),
            COMPANY_NAME_CONTRACT.name: company_output,
        }

    async def _run_wave_b(
        self,
        plan_text: str,
        context: str,
        prior_outputs: Dict[str, Any],
    ) -> Dict[str, Optional[Dict[str, Any]]]:
        outcomes = await asyncio.gather(
            *[
                self.caller.call(contract, plan_text, context=context, prior_outputs=prior_outputs)
                for contract in WAVE_B_CONTRACTS
            ],
            return_exceptions=True,
        )

        outputs: Dict[str, Optional[Dict[str, Any]]] = {}
        for contract, outcome in zip(WAVE_B_CONTRACTS, outcomes):
            if isinstance(outcome, StageResult) and outcome.ok:
                outputs[contract.name] = outcome.output
                continue

            cause = outcome.error if isinstance(outcome, StageResult) else outcome
            failure = OptionalStageFailure(contract.name, cause)
            LOGGER.warning(
                f"{failure}; using empty default section",
                extra={"stage": contract.name}
            )
            outputs[contract.name] = None

        return outputs
