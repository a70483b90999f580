"""Structured-output stage contracts and their caller."""

from cruxlens.services.agents.caller import AgentCaller, StageResult, build_stage_input
from cruxlens.services.agents.contracts import AgentContract

__all__ = ["AgentCaller", "AgentContract", "StageResult", "build_stage_input"]
