import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from langchain_core.messages import AIMessage
from quantum_archives.discovery import (
    PAPER_LIST_SCHEMA,
    PaperDiscoveryAdapter,
    parse_paper_list,
    strip_markdown_fences,
)
from quantum_archives.data_models import DiscoveredPaper, PhysicistName
from quantum_archives.llm_client import LLMClient, LLMConfig

PAPERS_JSON = json.dumps([
    {
        "title": "Über quantentheoretische Umdeutung kinematischer und mechanischer Beziehungen",
        "year": 1925,
        "description": "Introduced matrix mechanics.",
    },
    {
        "title": "Über den anschaulichen Inhalt der quantentheoretischen Kinematik und Mechanik",
        "year": 1927,
        "description": "Stated the uncertainty principle.",
    },
])

@pytest.fixture
def mock_llm_client(mocker):
    """Pytest fixture for an LLMClient whose Gemini model is mocked."""
    mocker.patch('quantum_archives.llm_client.ChatGoogleGenerativeAI', return_value=MagicMock())
    client = LLMClient(LLMConfig(temperature=0.3, api_key="test_key"))

    structured_llm_mock = MagicMock()
    structured_llm_mock.ainvoke = AsyncMock()
    client.llm.bind.return_value = structured_llm_mock

    return client, structured_llm_mock

@pytest.fixture
def adapter(mock_llm_client):
    """Pytest fixture for a PaperDiscoveryAdapter instance."""
    client, _ = mock_llm_client
    return PaperDiscoveryAdapter(llm_client=client)

def test_strip_markdown_fences_removes_json_fence():
    assert strip_markdown_fences("```json\n[1, 2]\n```") == "[1, 2]"

def test_strip_markdown_fences_removes_bare_fence():
    assert strip_markdown_fences("```\n[]\n```") == "[]"

def test_strip_markdown_fences_is_idempotent():
    """Clean JSON passes through untouched, and stripping twice equals stripping once."""
    assert strip_markdown_fences(PAPERS_JSON) == PAPERS_JSON
    fenced = f"```json\n{PAPERS_JSON}\n```"
    once = strip_markdown_fences(fenced)
    assert strip_markdown_fences(once) == once == PAPERS_JSON

def test_parse_paper_list_rejects_missing_fields():
    with pytest.raises(ValueError):
        parse_paper_list('[{"title": "Untitled", "year": 1926}]')

def test_parse_paper_list_rejects_non_integer_year():
    with pytest.raises(ValueError):
        parse_paper_list('[{"title": "T", "year": "1926", "description": "d"}]')

def test_adapter_binds_structured_output(mock_llm_client, adapter):
    """The request asks for JSON matching the paper-list schema."""
    client, _ = mock_llm_client
    client.llm.bind.assert_called_once_with(
        response_mime_type="application/json",
        response_schema=PAPER_LIST_SCHEMA,
    )
    assert PAPER_LIST_SCHEMA["items"]["required"] == ["title", "year", "description"]

@pytest.mark.asyncio
async def test_discover_papers_success(mock_llm_client, adapter):
    """Test that a valid JSON payload becomes a list of papers."""
    _, structured_llm_mock = mock_llm_client
    structured_llm_mock.ainvoke.return_value = AIMessage(content=PAPERS_JSON)

    papers = await adapter.discover_papers(PhysicistName.HEISENBERG)

    assert len(papers) == 2
    assert all(isinstance(p, DiscoveredPaper) for p in papers)
    assert papers[0].year == 1925
    prompt = structured_llm_mock.ainvoke.call_args.args[0][0].content
    assert "List 6 of the most significant scientific papers or books by Werner Heisenberg." in prompt
    assert "quantum mechanics" in prompt

@pytest.mark.asyncio
async def test_discover_papers_strips_fences(mock_llm_client, adapter):
    _, structured_llm_mock = mock_llm_client
    structured_llm_mock.ainvoke.return_value = AIMessage(content=f"```json\n{PAPERS_JSON}\n```")

    papers = await adapter.discover_papers(PhysicistName.HEISENBERG)

    assert [p.year for p in papers] == [1925, 1927]

@pytest.mark.asyncio
async def test_discover_papers_accepts_plain_string(mock_llm_client, adapter):
    _, structured_llm_mock = mock_llm_client
    structured_llm_mock.ainvoke.return_value = AIMessage(content="[]")

    assert await adapter.discover_papers("Paul Dirac") == []
    prompt = structured_llm_mock.ainvoke.call_args.args[0][0].content
    assert "Paul Dirac" in prompt

@pytest.mark.asyncio
@pytest.mark.parametrize("payload", ["", "not json", '{"title": "x"}', '[{"title": "x", "year": 1930}]'])
async def test_discover_papers_degrades_to_empty_list(mock_llm_client, adapter, payload):
    """Empty, unparseable or schema-violating payloads yield no papers."""
    _, structured_llm_mock = mock_llm_client
    structured_llm_mock.ainvoke.return_value = AIMessage(content=payload)

    assert await adapter.discover_papers(PhysicistName.PAULI) == []

@pytest.mark.asyncio
@pytest.mark.parametrize("physicist", list(PhysicistName))
async def test_discover_papers_handles_exception(mock_llm_client, adapter, physicist, caplog):
    """Test that API errors are logged and never propagate."""
    _, structured_llm_mock = mock_llm_client
    structured_llm_mock.ainvoke.side_effect = Exception("API Error")

    assert await adapter.discover_papers(physicist) == []
    assert "Error fetching papers" in caplog.text

@pytest.mark.asyncio
async def test_discover_papers_rejects_unknown_physicist(mock_llm_client, adapter, caplog):
    _, structured_llm_mock = mock_llm_client

    assert await adapter.discover_papers("Max Planck") == []
    structured_llm_mock.ainvoke.assert_not_called()
    assert "unknown physicist" in caplog.text
