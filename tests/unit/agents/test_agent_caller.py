"""Tests for stage contracts and the stage caller."""

import pytest
from unittest.mock import AsyncMock

from cruxlens.core.exceptions import APIClientError, InvalidJSONError
from cruxlens.core.llm_client import ModelParams, StructuredOutputClient
from cruxlens.services.agents.caller import AgentCaller, StageResult, build_stage_input
from cruxlens.services.agents.contracts import (
    COMPANY_NAME_CONTRACT,
    CRUX_CONTRACT,
    WAVE_A_CONTRACTS,
    WAVE_B_CONTRACTS,
    AgentContract,
)


def _assert_strict(schema):
    if schema.get("type") == "object":
        assert schema["additionalProperties"] is False
        assert sorted(schema["required"]) == sorted(schema["properties"])
        for child in schema["properties"].values():
            _assert_strict(child)
    elif schema.get("type") == "array":
        _assert_strict(schema["items"])


@pytest.fixture
def llm_client():
    return AsyncMock(spec=StructuredOutputClient)


class TestContracts:

    @pytest.mark.parametrize("contract", WAVE_A_CONTRACTS + WAVE_B_CONTRACTS, ids=lambda c: c.name)
    def test_schemas_are_strict(self, contract):
        _assert_strict(contract.output_schema)

    def test_contract_is_immutable(self):
        with pytest.raises(Exception):
            CRUX_CONTRACT.name = "other"

    def test_contract_schema_is_read_only(self):
        with pytest.raises(TypeError):
            CRUX_CONTRACT.output_schema["type"] = "array"
        with pytest.raises(TypeError):
            CRUX_CONTRACT.output_schema["properties"]["leverage_point"]["type"] = "integer"

    def test_schema_payload_is_an_independent_copy(self):
        payload = CRUX_CONTRACT.schema_payload()
        payload["properties"].clear()
        payload["required"].append("extra")

        fresh = CRUX_CONTRACT.schema_payload()
        assert "leverage_point" in fresh["properties"]
        assert "extra" not in fresh["required"]
        assert isinstance(fresh["required"], list)

    def test_contract_copies_caller_schema(self):
        schema = {"type": "object", "properties": {}, "required": [], "additionalProperties": False}
        contract = AgentContract(name="custom", instructions="i", output_schema=schema)
        schema["type"] = "array"

        assert contract.output_schema["type"] == "object"

    def test_stage_names_are_unique(self):
        names = [contract.name for contract in WAVE_A_CONTRACTS + WAVE_B_CONTRACTS]

        assert len(names) == len(set(names)) == 6

    def test_only_company_name_skips_context(self):
        assert COMPANY_NAME_CONTRACT.uses_context is False
        assert all(c.uses_context for c in WAVE_A_CONTRACTS + WAVE_B_CONTRACTS if c is not COMPANY_NAME_CONTRACT)


class TestBuildStageInput:

    def test_order_is_context_prior_outputs_plan(self):
        text = build_stage_input("PLAN", context="CTX", prior_outputs={"crux": {"a": "é"}})

        assert text.index("CTX") < text.index("Prior analysis (crux)") < text.index("Business plan:\nPLAN")
        assert '{"a": "é"}' in text

    def test_plan_only(self):
        assert build_stage_input("PLAN") == "Business plan:\nPLAN"


class TestAgentCaller:

    @pytest.mark.asyncio
    async def test_successful_call(self, llm_client):
        llm_client.invoke.return_value = '{"company_name": "Acme"}'
        caller = AgentCaller(llm_client)

        result = await caller.call(COMPANY_NAME_CONTRACT, "Acme sells drones", context="ignored")

        assert result == StageResult(stage="company_name", output={"company_name": "Acme"})
        assert result.ok
        kwargs = llm_client.invoke.await_args.kwargs
        assert kwargs["schema_name"] == "company_name_output"
        assert kwargs["output_schema"] == COMPANY_NAME_CONTRACT.schema_payload()
        assert isinstance(kwargs["output_schema"], dict)
        assert kwargs["model_params"] == ModelParams(max_output_tokens=1000)
        assert "ignored" not in kwargs["input_text"]

    @pytest.mark.asyncio
    async def test_context_passed_for_context_stages(self, llm_client):
        llm_client.invoke.return_value = "{}"

        await AgentCaller(llm_client).call(CRUX_CONTRACT, "plan", context="CTX")

        assert "CTX" in llm_client.invoke.await_args.kwargs["input_text"]

    @pytest.mark.asyncio
    async def test_outermost_brace_pair_is_extracted(self, llm_client):
        llm_client.invoke.return_value = 'Sure! Here it is: {"leverage_point": "pricing", "x": {"y": 1}} Thanks.'

        result = await AgentCaller(llm_client).call(CRUX_CONTRACT, "plan")

        assert result.output == {"leverage_point": "pricing", "x": {"y": 1}}

    @pytest.mark.asyncio
    async def test_unparseable_output_is_tagged_failure(self, llm_client):
        llm_client.invoke.return_value = "no json here"

        result = await AgentCaller(llm_client).call(CRUX_CONTRACT, "plan")

        assert not result.ok
        assert result.stage == "crux"
        assert isinstance(result.error, InvalidJSONError)

    @pytest.mark.asyncio
    async def test_non_object_json_is_failure(self, llm_client):
        llm_client.invoke.return_value = "[1, 2, 3]"

        result = await AgentCaller(llm_client).call(CRUX_CONTRACT, "plan")

        assert isinstance(result.error, InvalidJSONError)

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, llm_client):
        llm_client.invoke.side_effect = APIClientError("rate limited", status_code=429)

        result = await AgentCaller(llm_client).call(CRUX_CONTRACT, "plan")

        assert isinstance(result.error, APIClientError)
        assert llm_client.invoke.await_count == 1

    def test_custom_contract_schema_name(self):
        contract = AgentContract(name="custom", instructions="i", output_schema={"type": "object"})

        assert contract.schema_name == "custom_output"
        assert contract.model_params == ModelParams()
