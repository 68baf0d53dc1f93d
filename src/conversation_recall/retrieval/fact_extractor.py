"""
LLM-based literal fact extraction over a user's stored summaries.
"""

import json
import logging
from typing import List, Optional, Tuple

from casual_llm import LLMProvider, SystemMessage, UserMessage
from pydantic import BaseModel, ValidationError

from conversation_recall.retrieval.prompts import (
    FACT_EXTRACTION_PROMPT,
    FACT_EXTRACTION_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)


class FactExtraction(BaseModel):
    """Validated answer of the fact extraction call"""

    found: bool = False
    value: Optional[str] = None
    source_chat_id: Optional[str] = None


class LLMFactExtractor:
    """
    Asks the language model for a literal fact stated in past conversations.

    Failures are logged and reported as None so the caller can fall back to
    ranked similarity search.
    """

    def __init__(self, llm_provider: LLMProvider, model_name: str = "gpt-4o-mini"):
        """
        Initialize the fact extractor.

        Args:
            llm_provider: LLM provider instance (OpenAI, Ollama, etc.)
            model_name: Name of the model (for logging)
        """
        self.llm_provider = llm_provider
        self.model_name = model_name

        logger.info(f"LLMFactExtractor initialized: model={model_name}")

    async def extract(
        self, query: str, conversations: List[Tuple[str, str]]
    ) -> Optional[FactExtraction]:
        """
        Extract a fact answering ``query`` from the given conversations.

        Args:
            query: The user's question
            conversations: (chat_id, summary_text) pairs to search

        Returns:
            FactExtraction (``found`` may be False), or None on failure
        """
        if not conversations:
            return FactExtraction(found=False)

        conversation_text = "\n".join(
            f"CONVERSATION {chat_id}:\n{summary}\n" for chat_id, summary in conversations
        )
        messages = [
            SystemMessage(content=FACT_EXTRACTION_SYSTEM_PROMPT),
            UserMessage(
                content=FACT_EXTRACTION_PROMPT.format(query=query, conversations=conversation_text)
            ),
        ]

        try:
            logger.debug(f"Extracting fact for '{query}' from {len(conversations)} conversations")
            response = await self.llm_provider.chat(
                messages=messages, response_format="json", temperature=0.0
            )
            data = json.loads(response.content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse fact extraction JSON: {e}")
            return None
        except Exception as e:
            logger.error(f"Fact extraction LLM failed: {e}")
            return None

        if not isinstance(data, dict):
            logger.error("Fact extraction response is not a JSON object")
            return None

        for key in ("value", "source_chat_id"):
            if data.get(key) is not None and not isinstance(data[key], str):
                data[key] = str(data[key])

        try:
            extraction = FactExtraction.model_validate(data)
        except ValidationError as e:
            logger.error(f"Fact extraction failed validation: {e}")
            return None

        # A "found" answer without a value is not usable
        if extraction.found and not (extraction.value and extraction.value.strip()):
            return FactExtraction(found=False)

        logger.info(f"Fact extraction for '{query}': found={extraction.found}")
        return extraction
