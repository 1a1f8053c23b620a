import os
import logging
from typing import Optional
from pydantic import BaseModel, Field
from langchain_core.messages import BaseMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from dotenv import load_dotenv, find_dotenv

# Load environment variables from .env file
load_dotenv(find_dotenv())

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

# Lets the client build without a key; requests made with it fail and degrade.
PLACEHOLDER_API_KEY = "missing-api-key"


class LLMConfig(BaseModel):
    """
    Configuration for the Gemini chat model.
    """
    model: str = Field(
        default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        description="The name of the Gemini model to use."
    )
    temperature: Optional[float] = Field(
        default=0.0,
        description="The temperature for the LLM's responses. None keeps the model's default."
    )
    max_retries: int = Field(default=0, description="Retry attempts for a failed request.")
    api_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("GOOGLE_API_KEY"),
        description="API key for the Gemini API."
    )


class LLMClient:
    """
    A client for interacting with the Gemini API through LangChain.
    """
    def __init__(self, config: Optional[LLMConfig] = None):
        """
        Initializes the LLM client with the given configuration.

        A missing API key is logged but does not abort construction.

        Args:
            config (LLMConfig, optional): The configuration object.
                                          If None, default configuration is used.
        """
        if config is None:
            config = LLMConfig()

        self.config = config
        api_key = self.config.api_key
        if not api_key:
            logging.error("GOOGLE_API_KEY is missing from environment variables.")
            api_key = PLACEHOLDER_API_KEY

        model_kwargs = {
            "model": self.config.model,
            "max_retries": self.config.max_retries,
            "google_api_key": api_key,
        }
        if self.config.temperature is not None:
            model_kwargs["temperature"] = self.config.temperature
        self.llm = ChatGoogleGenerativeAI(**model_kwargs)


def message_text(message: BaseMessage) -> str:
    """Flattens a chat model reply into plain text, ignoring non-text content blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)
