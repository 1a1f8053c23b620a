from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

ViewMode = Literal["discover", "collection", "chat"]
Role = Literal["user", "model"]


class PhysicistName(str, Enum):
    """The fixed set of physicists whose papers can be discovered."""
    HEISENBERG = "Werner Heisenberg"
    PAULI = "Wolfgang Pauli"
    SCHRODINGER = "Erwin Schrödinger"
    DIRAC = "Paul Dirac"


class DiscoveredPaper(BaseModel):
    """A paper exactly as returned by the discovery request, before the session tags it."""
    title: StrictStr = Field(description="The original title of the paper or publication.")
    year: StrictInt = Field(description="The year of publication.")
    description: StrictStr = Field(description="A brief 1-sentence summary of the paper's significance.")


class Paper(BaseModel):
    """A discovered paper tagged with a session id and its author."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier within the session.")
    title: str = Field(description="Paper title.")
    year: int = Field(description="Year of publication.")
    description: str = Field(description="Short summary of the paper's significance.")
    physicist: PhysicistName = Field(description="The physicist the paper was discovered for.")
    collected_at: Optional[str] = Field(default=None, description="ISO-8601 timestamp set when collected.")


class GroundingSource(BaseModel):
    """A citation emitted by the search-grounding tool."""
    model_config = ConfigDict(frozen=True)

    title: str
    uri: str


class ChatMessage(BaseModel):
    """A single turn of the chat transcript."""
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    text: str = ""
    sources: Optional[List[GroundingSource]] = None
    is_thinking: bool = False


class RagAnswer(BaseModel):
    """The normalized reply of the grounded chat request."""
    text: str
    sources: List[GroundingSource] = Field(default_factory=list)
