import json

import httpx
import pytest

from cruxlens.core.exceptions import APIClientError, ConfigurationError
from cruxlens.services.vector_store.client import VectorIndexClient


class RecordingTransport:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        status, body = self.responses.get(key, (200, {}))
        return httpx.Response(status, json=body, headers={"x-request-id": "req_123"})


def _client(responses):
    recorder = RecordingTransport(responses)
    client = VectorIndexClient(
        api_key="sk-test",
        base_url="https://api.test/v1",
        transport=httpx.MockTransport(recorder),
    )
    return client, recorder


class TestVectorIndexClient:

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError):
            VectorIndexClient(api_key="  ")

    @pytest.mark.asyncio
    async def test_create_store_sends_beta_header_and_metadata(self):
        client, recorder = _client({("POST", "/v1/vector_stores"): (200, {"id": "vs_1"})})

        store_id = await client.create_store("cruxlens-u1", {"auth_user_id": "u1"})

        request = recorder.requests[0]
        assert store_id == "vs_1"
        assert request.headers["OpenAI-Beta"] == "assistants=v2"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert json.loads(request.content) == {"name": "cruxlens-u1", "metadata": {"auth_user_id": "u1"}}

    @pytest.mark.asyncio
    async def test_create_store_without_id_fails(self):
        client, _ = _client({("POST", "/v1/vector_stores"): (200, {})})

        with pytest.raises(APIClientError):
            await client.create_store("cruxlens-u1")

    @pytest.mark.asyncio
    async def test_upload_document_is_multipart(self):
        client, recorder = _client({("POST", "/v1/files"): (200, {"id": "file_1"})})

        file_id = await client.upload_document("report-42.txt", "hello report")

        request = recorder.requests[0]
        body = request.content.decode("utf-8")
        assert file_id == "file_1"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert 'name="purpose"' in body and "assistants" in body
        assert 'filename="report-42.txt"' in body
        assert "hello report" in body
        assert "OpenAI-Beta" not in request.headers

    @pytest.mark.asyncio
    async def test_attach_and_set_attributes(self):
        client, recorder = _client({
            ("POST", "/v1/vector_stores/vs_1/files"): (200, {"id": "vsf_1"}),
        })

        vsf_id = await client.attach_to_store("vs_1", "file_1")
        await client.set_attributes("vs_1", vsf_id, {"report_id": "42", "title": "Acme"})

        assert vsf_id == "vsf_1"
        assert json.loads(recorder.requests[0].content) == {"file_id": "file_1"}
        assert recorder.requests[1].url.path == "/v1/vector_stores/vs_1/files/vsf_1"
        assert json.loads(recorder.requests[1].content) == {"attributes": {"report_id": "42", "title": "Acme"}}

    @pytest.mark.asyncio
    async def test_search_payload_and_snippets(self):
        client, recorder = _client({
            ("POST", "/v1/vector_stores/vs_1/search"): (200, {
                "data": [
                    {
                        "file_id": "file_1",
                        "score": 0.8,
                        "content": [{"type": "text", "text": "part one"}, {"type": "text", "text": "part two"}],
                        "attributes": {"report_id": "42"},
                    },
                    {"score": 0.1},
                ]
            }),
        })

        hits = await client.search("vs_1", "drones", max_results=500)

        payload = json.loads(recorder.requests[0].content)
        assert payload == {
            "query": "drones",
            "max_num_results": 50,
            "rewrite_query": True,
            "ranking_options": {"ranker": "auto"},
        }
        assert len(hits) == 1
        assert hits[0].file_id == "file_1"
        assert hits[0].snippet == "part one\n\npart two"
        assert hits[0].attributes == {"report_id": "42"}

    @pytest.mark.asyncio
    async def test_search_clamps_minimum_results(self):
        client, recorder = _client({("POST", "/v1/vector_stores/vs_1/search"): (200, {"data": []})})

        assert await client.search("vs_1", "drones", max_results=0) == []
        assert json.loads(recorder.requests[0].content)["max_num_results"] == 1

    @pytest.mark.asyncio
    async def test_deletions_tolerate_not_found(self):
        not_found = (404, {"error": {"message": "No such file"}})
        client, recorder = _client({
            ("DELETE", "/v1/vector_stores/vs_1"): not_found,
            ("DELETE", "/v1/vector_stores/vs_1/files/vsf_1"): not_found,
            ("DELETE", "/v1/files/file_1"): not_found,
        })

        await client.delete_store("vs_1")
        await client.detach_from_store("vs_1", "vsf_1")
        await client.delete_document("file_1")

        assert [r.method for r in recorder.requests] == ["DELETE", "DELETE", "DELETE"]

    @pytest.mark.asyncio
    async def test_deletion_client_error_propagates(self):
        client, _ = _client({("DELETE", "/v1/files/file_1"): (400, {"error": {"message": "bad"}})})

        with pytest.raises(APIClientError) as exc_info:
            await client.delete_document("file_1")

        assert exc_info.value.status_code == 400
        assert exc_info.value.request_id == "req_123"
        assert str(exc_info.value) == "bad"

    @pytest.mark.asyncio
    async def test_ids_are_url_encoded(self):
        client, recorder = _client({})

        await client.delete_document("a/b c")

        assert recorder.requests[0].url.raw_path == b"/v1/files/a%2Fb%20c"
