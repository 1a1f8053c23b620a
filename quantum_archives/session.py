import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Deque, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from quantum_archives.data_models import (
    ChatMessage,
    DiscoveredPaper,
    Paper,
    PhysicistName,
    RagAnswer,
    ViewMode,
)
from quantum_archives.discovery import DISCOVERY_TEMPERATURE, PaperDiscoveryAdapter
from quantum_archives.llm_client import LLMClient, LLMConfig
from quantum_archives.rag_chat import RagResponseAdapter

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

# --- Constants ---
WELCOME_ID = "welcome"
SEND_FAILURE_TEXT = "Sorry, I couldn't process that request."


def welcome_message(collected_count: int) -> ChatMessage:
    """The greeting shown at the top of the transcript."""
    if collected_count > 0:
        text = (
            f"I have access to your collection of {collected_count} papers. "
            "Ask me anything about them, or ask me to search for more details."
        )
    else:
        text = (
            "Your collection is empty. Go to the 'Discover' tab to find papers "
            "from Heisenberg, Pauli, or Schrödinger first."
        )
    return ChatMessage(id=WELCOME_ID, role="model", text=text)


# --- Session State ---
class SessionState(BaseModel):
    """An immutable snapshot of everything the presentation layer renders."""
    model_config = ConfigDict(frozen=True)

    selected_physicist: Optional[PhysicistName] = None
    discovered_papers: Tuple[Paper, ...] = ()
    collected_papers: Tuple[Paper, ...] = ()
    active_tab: ViewMode = "discover"
    messages: Tuple[ChatMessage, ...] = (welcome_message(0),)
    is_fetching: bool = False
    is_loading: bool = False
    discovery_seq: int = 0


def is_collected(state: SessionState, paper: Paper) -> bool:
    """Whether a paper with the same title is already in the collection."""
    return any(p.title == paper.title for p in state.collected_papers)


# --- Events ---
class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class SelectPhysicist(_Event):
    physicist: PhysicistName
    seq: int


class PapersDiscovered(_Event):
    physicist: PhysicistName
    seq: int
    papers: Tuple[Paper, ...]


class CollectPaper(_Event):
    paper: Paper
    collected_at: str


class RemovePaper(_Event):
    paper_id: str


class SwitchTab(_Event):
    tab: ViewMode


class ChatMessageSent(_Event):
    message: ChatMessage
    placeholder: ChatMessage


class ChatResponseReceived(_Event):
    placeholder_id: str
    message: ChatMessage


SessionEvent = Union[
    SelectPhysicist,
    PapersDiscovered,
    CollectPaper,
    RemovePaper,
    SwitchTab,
    ChatMessageSent,
    ChatResponseReceived,
]


# --- Transitions ---
def transition(state: SessionState, event: SessionEvent) -> SessionState:
    """
    Applies a single event to a snapshot and returns the next snapshot.
    Pure: ids and timestamps arrive inside the events.
    """
    if isinstance(event, SelectPhysicist):
        return state.model_copy(update={
            "selected_physicist": event.physicist,
            "discovered_papers": (),
            "is_fetching": True,
            "discovery_seq": event.seq,
        })

    if isinstance(event, PapersDiscovered):
        if event.seq != state.discovery_seq:
            logging.info(f"Discarding stale papers for {event.physicist.value}.")
            return state
        return state.model_copy(update={"discovered_papers": event.papers, "is_fetching": False})

    if isinstance(event, CollectPaper):
        if is_collected(state, event.paper):
            return state
        collected = event.paper.model_copy(update={"collected_at": event.collected_at})
        return state.model_copy(update={"collected_papers": state.collected_papers + (collected,)})

    if isinstance(event, RemovePaper):
        remaining = tuple(p for p in state.collected_papers if p.id != event.paper_id)
        if len(remaining) == len(state.collected_papers):
            return state
        return state.model_copy(update={"collected_papers": remaining})

    if isinstance(event, SwitchTab):
        update = {"active_tab": event.tab}
        only_welcome = len(state.messages) == 1 and state.messages[0].id == WELCOME_ID
        if event.tab == "chat" and only_welcome:
            update["messages"] = (welcome_message(len(state.collected_papers)),)
        return state.model_copy(update=update)

    if isinstance(event, ChatMessageSent):
        return state.model_copy(update={
            "messages": state.messages + (event.message, event.placeholder),
            "is_loading": True,
        })

    if isinstance(event, ChatResponseReceived):
        settled = tuple(m for m in state.messages if m.id != event.placeholder_id)
        return state.model_copy(update={"messages": settled + (event.message,), "is_loading": False})

    raise TypeError(f"Unknown session event: {type(event).__name__}")


def tag_papers(papers: Sequence[DiscoveredPaper], physicist: PhysicistName) -> Tuple[Paper, ...]:
    """Gives each discovered paper a fresh session id and its physicist."""
    batch = uuid.uuid4().hex[:8]
    return tuple(
        Paper(id=f"{physicist.value}-{idx}-{batch}", physicist=physicist, **paper.model_dump())
        for idx, paper in enumerate(papers)
    )


# --- Controller ---
Subscriber = Callable[[SessionState], None]


class SessionController:
    """
    Owns the current snapshot, applies queued events in order and runs the adapter calls.
    """

    def __init__(
        self,
        discovery: PaperDiscoveryAdapter,
        rag: RagResponseAdapter,
        state: Optional[SessionState] = None,
    ):
        self.discovery = discovery
        self.rag = rag
        self.state = state or SessionState()
        self._queue: Deque[SessionEvent] = deque()
        self._draining = False
        self._subscribers: List[Subscriber] = []
        self._discovery_seq = self.state.discovery_seq

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Registers a callback for every new snapshot. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def dispatch(self, event: SessionEvent) -> SessionState:
        """
        Queues an event and drains the queue. Events dispatched by a subscriber
        are applied after the current one, once every subscriber has seen it.
        """
        self._queue.append(event)
        if self._draining:
            return self.state
        self._draining = True
        try:
            while self._queue:
                next_state = transition(self.state, self._queue.popleft())
                if next_state is self.state:
                    continue
                self.state = next_state
                for callback in list(self._subscribers):
                    try:
                        callback(next_state)
                    except Exception as e:
                        logging.error(f"Session subscriber failed: {e}")
        finally:
            self._draining = False
        return self.state

    def is_collected(self, paper: Paper) -> bool:
        return is_collected(self.state, paper)

    async def select_physicist(self, physicist: PhysicistName) -> None:
        """Replaces the discovered papers with a fresh list for the physicist."""
        physicist = PhysicistName(physicist)
        self._discovery_seq += 1
        seq = self._discovery_seq
        self.dispatch(SelectPhysicist(physicist=physicist, seq=seq))

        found = await self.discovery.discover_papers(physicist)
        self.dispatch(PapersDiscovered(physicist=physicist, seq=seq, papers=tag_papers(found, physicist)))

    def collect_paper(self, paper: Paper) -> None:
        collected_at = datetime.now(timezone.utc).isoformat()
        self.dispatch(CollectPaper(paper=paper, collected_at=collected_at))

    def remove_paper(self, paper_id: str) -> None:
        self.dispatch(RemovePaper(paper_id=paper_id))

    def switch_tab(self, tab: ViewMode) -> None:
        self.dispatch(SwitchTab(tab=tab))

    async def send_message(self, text: str) -> Optional[ChatMessage]:
        """
        Sends a chat message and appends the model's reply.

        Returns:
            Optional[ChatMessage]: The reply, or None when the message was ignored
                                   (blank input or a send already in flight).
        """
        if not text.strip() or self.state.is_loading:
            return None

        history = self.state.messages
        collected = self.state.collected_papers
        user_message = ChatMessage(id=uuid.uuid4().hex, role="user", text=text)
        placeholder = ChatMessage(id=f"thinking-{uuid.uuid4().hex}", role="model", is_thinking=True)
        self.dispatch(ChatMessageSent(message=user_message, placeholder=placeholder))

        try:
            answer = await self.rag.answer(history, collected, text)
        except Exception as e:
            logging.error(f"Chat request failed: {e}")
            answer = RagAnswer(text=SEND_FAILURE_TEXT)

        reply = ChatMessage(id=uuid.uuid4().hex, role="model", text=answer.text, sources=answer.sources)
        self.dispatch(ChatResponseReceived(placeholder_id=placeholder.id, message=reply))
        return reply


def create_session_controller() -> SessionController:
    """Builds a controller wired to Gemini-backed adapters."""
    discovery = PaperDiscoveryAdapter(llm_client=LLMClient(LLMConfig(temperature=DISCOVERY_TEMPERATURE)))
    rag = RagResponseAdapter(llm_client=LLMClient(LLMConfig(temperature=None)))
    return SessionController(discovery=discovery, rag=rag)
