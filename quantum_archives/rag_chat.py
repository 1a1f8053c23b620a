import logging
from typing import Any, Dict, List, Sequence
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from quantum_archives.data_models import ChatMessage, GroundingSource, Paper, RagAnswer
from quantum_archives.llm_client import LLMClient, message_text

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

# --- Constants ---
HISTORY_WINDOW = 6
EMPTY_RESPONSE_TEXT = "I couldn't generate a response."
ERROR_RESPONSE_TEXT = (
    "I encountered an error accessing the Quantum Archives. "
    "Please check your connection or API key."
)
GOOGLE_SEARCH_TOOL = {"google_search": {}}

ANSWERING_RULES = [
    "1. Prioritize information from the papers in the user's library.",
    "2. Use the Google Search tool to find specific citations, PDF links, or details about equations/content within these papers if asked.",
    "3. If the user asks about a paper NOT in the library, mention that it's not currently collected but answer generally.",
    "4. Provide clear, academic, yet accessible explanations.",
]


def format_paper(paper: Paper) -> str:
    return f'- "{paper.title}" ({paper.year}) by {paper.physicist.value}: {paper.description}'


def build_system_instruction(papers: Sequence[Paper]) -> str:
    """
    Builds the system instruction that embeds the user's collected papers.
    An empty collection simply leaves the library list empty.
    """
    library = "\n".join(format_paper(paper) for paper in papers)
    rules = "\n".join(ANSWERING_RULES)
    return (
        "You are a specialized Quantum Physics Research Assistant.\n"
        "You have access to a specific collection of papers in the user's library:\n"
        f"{library}\n\n"
        "When answering:\n"
        f"{rules}"
    )


def select_recent_history(history: Sequence[ChatMessage], limit: int = HISTORY_WINDOW) -> List[Dict[str, str]]:
    """
    Keeps the last `limit` settled messages of the transcript, reduced to role and text.
    Thinking placeholders are never forwarded.
    """
    settled = [msg for msg in history if not msg.is_thinking]
    recent = settled[-limit:] if limit > 0 else []
    return [{"role": msg.role, "text": msg.text} for msg in recent]


def extract_grounding_sources(chunks: Sequence[Dict[str, Any]] | None) -> List[GroundingSource]:
    """
    Converts grounding chunks into citations.

    Only web chunks carrying both a URI and a title are kept, in the order received.
    """
    sources = []
    for chunk in chunks or []:
        web = (chunk or {}).get("web") or {}
        uri, title = web.get("uri"), web.get("title")
        if uri and title:
            sources.append(GroundingSource(title=title, uri=uri))
    return sources


def grounding_chunks(response: BaseMessage) -> List[Dict[str, Any]]:
    """Reads the grounding chunks of the first candidate from a model reply."""
    metadata = response.response_metadata or {}
    grounding = metadata.get("grounding_metadata") or metadata.get("groundingMetadata") or {}
    return grounding.get("grounding_chunks") or grounding.get("groundingChunks") or []


class RagResponseAdapter:
    """
    Answers chat questions using the collected papers as context and Google Search for grounding.
    """

    def __init__(self, llm_client: LLMClient):
        """
        Initializes the RagResponseAdapter.

        Args:
            llm_client (LLMClient): An instance of the LLM client.
        """
        self.llm = llm_client.llm
        self.grounded_llm = self.llm.bind_tools([GOOGLE_SEARCH_TOOL])

    def build_messages(
        self,
        history: Sequence[ChatMessage],
        collected_papers: Sequence[Paper],
        new_message: str,
    ) -> List[BaseMessage]:
        messages: List[BaseMessage] = [SystemMessage(content=build_system_instruction(collected_papers))]
        for turn in select_recent_history(history):
            if turn["role"] == "user":
                messages.append(HumanMessage(content=turn["text"]))
            else:
                messages.append(AIMessage(content=turn["text"]))
        messages.append(HumanMessage(content=new_message))
        return messages

    async def answer(
        self,
        history: Sequence[ChatMessage],
        collected_papers: Sequence[Paper],
        new_message: str,
    ) -> RagAnswer:
        """
        Sends one grounded chat turn and normalizes the reply.

        Args:
            history (Sequence[ChatMessage]): The transcript before the new message.
            collected_papers (Sequence[Paper]): The user's collection.
            new_message (str): The user's new question.

        Returns:
            RagAnswer: The reply text and its citations. Errors yield a fixed
                       apology with no sources instead of raising.
        """
        logging.info(f"Answering chat message with {len(collected_papers)} papers in context.")
        try:
            messages = self.build_messages(history, collected_papers, new_message)
            response = await self.grounded_llm.ainvoke(messages)
            text = message_text(response) or EMPTY_RESPONSE_TEXT
            sources = extract_grounding_sources(grounding_chunks(response))
        except Exception as e:
            logging.error(f"Error in RAG chat: {e}")
            return RagAnswer(text=ERROR_RESPONSE_TEXT, sources=[])

        logging.info(f"RAG chat answered with {len(sources)} grounding sources.")
        return RagAnswer(text=text, sources=sources)
