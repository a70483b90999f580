"""Pytest configuration and shared fixtures."""

import asyncio
import itertools
import json
from contextlib import asynccontextmanager
from datetime import date
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from unittest.mock import AsyncMock

from cruxlens.core.llm_client import StructuredOutputClient
from cruxlens.services.vector_store.client import VectorIndexClient
from cruxlens.services.vector_store.manager import VectorIndexManager

ACME_PLAN = "Acme Corp sells solar-powered drones to farmers,"
FIXED_DATE = date(2024, 5, 17)


# ---------------------------------------------------------------------------
# Stage output stubs
# ---------------------------------------------------------------------------

def _four_ball(score: int) -> Dict[str, Any]:
    return {"content": "Farmers <need> cheaper aerial surveys", "score": score}


STAGE_STUBS: Dict[str, Dict[str, Any]] = {
    "opportunity_space": {
        "four_ball_model": {
            "competitor_oversight": _four_ball(6),
            "innovation": _four_ball(8),
            "changing_circumstances": _four_ball(7),
            "seeing_things_differently": _four_ball(5),
        },
        "summary_table": [
            {"factor": "Solar endurance", "type": "strength", "description": "Longer flights"},
        ],
    },
    "crux": {
        "bottleneck_identification": "Battery weight",
        "leverage_point": "Lightweight panels",
        "rumelt_justification": {
            "cascade_logic": "Lighter drones fly longer",
            "root_cause": "Energy density",
            "coherence": "Actions focus on weight",
        },
        "solvability_score": 7,
    },
    "company_name": {"company_name": "Acme Corp"},
    "industry_guideposts": {
        "guideposts": [
            {"name": "Rising Fixed Costs", "applies": True, "impact": "Hardware capex"},
            {"name": "Pricing Deregulation", "applies": "yes", "impact": "Airspace rules relax"},
        ],
        "strategic_summary": "Regulation is the tailwind",
    },
    "business_model": {
        "opening_paragraph": "Hardware plus data",
        "identified_patterns": [
            {
                "pattern_name": "Razor and Blades",
                "description": "Cheap drone, paid analytics",
                "reasoning": {"logic": "Recurring data revenue", "fit_indicators": ["Seasonal surveys"]},
            }
        ],
        "rationale": {
            "opportunity_alignment": "Fits underserved farms",
            "crux_solution": "Funds battery R&D",
            "scalability": "Software margins",
        },
        "canvas_preview": {
            "value_proposition": "Affordable crop insight",
            "revenue_streams": "Subscriptions",
            "key_partners": "Co-ops",
        },
    },
    "reference_cases": {
        "reference_cases": [
            {
                "case_name": "DJI Agriculture",
                "relevance_factor": "Ag drone leader",
                "actionable_learnings": ["Dealer networks matter"],
                "improvements": {
                    "brand_gtm": "Partner with co-ops",
                    "operational": "Local repair",
                    "strategic_pivot": "Data first",
                    "financing": "Equipment leasing",
                },
            }
        ],
        "final_summary": {
            "strengths": ["Clear niche"],
            "weaknesses": ["Hardware risk"],
            "gaps": ["No pilot data"],
            "strategic_potential": "High if battery problem is solved",
            "next_steps": ["Run a pilot"],
        },
        "verdict": "Promising but hardware-heavy",
    },
}


def stage_name_from_schema(schema_name: str) -> str:
    return schema_name[: -len("_output")] if schema_name.endswith("_output") else schema_name


class ScriptedLLM:
    """Answers each stage with a stub; stages listed in ``failures`` raise."""

    def __init__(self, outputs: Optional[Dict[str, Any]] = None, failures: Optional[Dict[str, Exception]] = None):
        self.outputs = dict(STAGE_STUBS if outputs is None else outputs)
        self.failures = failures or {}
        self.calls: List[Dict[str, Any]] = []

    async def invoke(self, instructions, input_text, output_schema, schema_name, model_params=None):
        stage = stage_name_from_schema(schema_name)
        self.calls.append({"stage": stage, "input_text": input_text, "model_params": model_params})
        await asyncio.sleep(0)
        if stage in self.failures:
            raise self.failures[stage]
        output = self.outputs.get(stage, {})
        return output if isinstance(output, str) else json.dumps(output)

    def stages_called(self) -> List[str]:
        return [call["stage"] for call in self.calls]


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def mock_llm_client(scripted_llm) -> AsyncMock:
    """StructuredOutputClient mock whose invoke answers from ``scripted_llm``."""
    client = AsyncMock(spec=StructuredOutputClient)
    client.invoke.side_effect = scripted_llm.invoke
    return client


# ---------------------------------------------------------------------------
# In-memory persistence
# ---------------------------------------------------------------------------

class InMemoryVectorDB:
    """Tables of the vector mapping, with the store primary key enforced."""

    def __init__(self):
        self.stores: Dict[str, str] = {}
        self.records: List[SimpleNamespace] = []
        self._ids = itertools.count(1)


class FakeUserVectorStoreRepository:
    def __init__(self, db: InMemoryVectorDB):
        self.db = db

    async def get_store_id(self, auth_user_id: str) -> Optional[str]:
        await asyncio.sleep(0)
        return self.db.stores.get(auth_user_id)

    async def insert_if_absent(self, auth_user_id: str, vector_store_id: str) -> bool:
        await asyncio.sleep(0)
        if auth_user_id in self.db.stores:
            return False
        self.db.stores[auth_user_id] = vector_store_id
        return True


class FakeReportVectorFileRepository:
    def __init__(self, db: InMemoryVectorDB):
        self.db = db

    def _matching(self, auth_user_id: str, report_id: str) -> List[SimpleNamespace]:
        return [
            record for record in self.db.records
            if record.auth_user_id == auth_user_id and record.report_id == report_id
        ]

    async def exists(self, auth_user_id: str, report_id: str) -> bool:
        return bool(self._matching(auth_user_id, report_id))

    async def create_record(self, auth_user_id, report_id, vector_store_id, file_id, vector_store_file_id, title=None):
        record = SimpleNamespace(
            id=next(self.db._ids),
            auth_user_id=auth_user_id,
            report_id=report_id,
            vector_store_id=vector_store_id,
            file_id=file_id,
            vector_store_file_id=vector_store_file_id,
            title=title,
        )
        self.db.records.append(record)
        return record

    async def list_for_report(self, auth_user_id: str, report_id: str) -> List[SimpleNamespace]:
        return self._matching(auth_user_id, report_id)

    async def resolve_file_ids(self, auth_user_id: str, file_ids):
        return {
            record.file_id: (record.report_id, record.title)
            for record in self.db.records
            if record.auth_user_id == auth_user_id and record.file_id in set(file_ids)
        }

    async def delete_for_report(self, auth_user_id: str, report_id: str) -> int:
        matching = self._matching(auth_user_id, report_id)
        self.db.records = [record for record in self.db.records if record not in matching]
        return len(matching)


class InMemoryIndexManager(VectorIndexManager):
    """VectorIndexManager backed by InMemoryVectorDB instead of Postgres."""

    def __init__(self, client, db: Optional[InMemoryVectorDB] = None, **kwargs):
        super().__init__(client, **kwargs)
        self.db = db if db is not None else InMemoryVectorDB()

    @asynccontextmanager
    async def _repositories(self):
        yield FakeUserVectorStoreRepository(self.db), FakeReportVectorFileRepository(self.db)


@pytest.fixture
def vector_db() -> InMemoryVectorDB:
    return InMemoryVectorDB()


@pytest.fixture
def mock_index_client() -> AsyncMock:
    """VectorIndexClient mock issuing unique remote ids."""
    client = AsyncMock(spec=VectorIndexClient)
    store_ids = itertools.count(1)
    file_ids = itertools.count(1)

    async def create_store(name, metadata=None):
        await asyncio.sleep(0)
        return f"vs_{next(store_ids)}"

    async def upload_document(filename, text):
        return f"file_{next(file_ids)}"

    async def attach_to_store(store_id, file_id):
        return f"vsf_{file_id}"

    client.create_store.side_effect = create_store
    client.upload_document.side_effect = upload_document
    client.attach_to_store.side_effect = attach_to_store
    client.search.return_value = []
    return client


@pytest.fixture
def index_manager(mock_index_client, vector_db) -> InMemoryIndexManager:
    return InMemoryIndexManager(mock_index_client, vector_db)
