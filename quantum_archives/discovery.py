import json
import logging
import re
from typing import List
from langchain_core.prompts import ChatPromptTemplate
from pydantic import TypeAdapter, ValidationError
from quantum_archives.data_models import DiscoveredPaper, PhysicistName
from quantum_archives.llm_client import LLMClient, message_text

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

# --- Constants ---
DISCOVERY_TEMPERATURE = 0.3
PAPERS_PER_PHYSICIST = 6

PAPER_LIST_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "The original title of the paper or publication."},
            "year": {"type": "integer", "description": "The year of publication."},
            "description": {"type": "string", "description": "A brief 1-sentence summary of the paper's significance."},
        },
        "required": ["title", "year", "description"],
    },
}

_paper_list = TypeAdapter(List[DiscoveredPaper])

_LEADING_JSON_FENCE = re.compile(r"^```json\s*")
_LEADING_FENCE = re.compile(r"^```\s*")
_TRAILING_FENCE = re.compile(r"\s*```$")


def strip_markdown_fences(text: str) -> str:
    """
    Removes a leading ```json (or bare ```) fence and a trailing ``` fence.
    Text without fences is returned unchanged.
    """
    text = _LEADING_JSON_FENCE.sub("", text)
    text = _LEADING_FENCE.sub("", text)
    return _TRAILING_FENCE.sub("", text)


def parse_paper_list(text: str) -> List[DiscoveredPaper]:
    """
    Parses and validates a structured paper-list payload.

    Raises:
        json.JSONDecodeError: If the payload is not JSON.
        ValidationError: If it is not an array of complete paper objects.
    """
    return _paper_list.validate_python(json.loads(strip_markdown_fences(text)))


class PaperDiscoveryAdapter:
    """
    Asks the model for a physicist's most significant papers as structured JSON.
    """

    def __init__(self, llm_client: LLMClient):
        """
        Initializes the PaperDiscoveryAdapter.

        Args:
            llm_client (LLMClient): An instance of the LLM client. Its temperature
                                    should be DISCOVERY_TEMPERATURE.
        """
        self.llm = llm_client.llm
        self.prompt = ChatPromptTemplate.from_messages(
            [
                (
                    "user",
                    "List {count} of the most significant scientific papers or books by {physicist}. "
                    "Focus on their quantum mechanics contributions."
                ),
            ]
        )
        self.structured_llm = self.llm.bind(
            response_mime_type="application/json",
            response_schema=PAPER_LIST_SCHEMA,
        )

    async def discover_papers(self, physicist: PhysicistName) -> List[DiscoveredPaper]:
        """
        Fetches the papers of a single physicist.

        Args:
            physicist (PhysicistName): One of the four selectable physicists.

        Returns:
            List[DiscoveredPaper]: The validated papers, or an empty list on any failure.
        """
        try:
            physicist = PhysicistName(physicist)
        except ValueError:
            logging.error(f"Cannot discover papers for unknown physicist: {physicist!r}")
            return []

        logging.info(f"Discovering papers for {physicist.value}.")
        try:
            messages = self.prompt.format_messages(count=PAPERS_PER_PHYSICIST, physicist=physicist.value)
            response = await self.structured_llm.ainvoke(messages)
            text = message_text(response)
            if not text.strip():
                logging.warning(f"Empty discovery response for {physicist.value}.")
                return []
            papers = parse_paper_list(text)
        except (json.JSONDecodeError, ValidationError) as e:
            logging.error(f"Malformed paper list for {physicist.value}: {e}")
            return []
        except Exception as e:
            logging.error(f"Error fetching papers for {physicist.value}: {e}")
            return []

        logging.info(f"Discovered {len(papers)} papers for {physicist.value}.")
        return papers
