"""
Prompts for literal fact extraction over stored summaries.
"""

# System prompt - the model must return asserted facts, never questions about them
FACT_EXTRACTION_SYSTEM_PROMPT = """You are a precise information extractor. Find CONCRETE FACTS that the user stated in past conversations. Questions about a fact are not the fact itself.

For example:
- Query "what car do I own" with "User mentioned their car is a Toyota Camry" -> value "Toyota Camry"
- Query "what car do I own" with only "User asked about their car model" -> found false

Return only the specific value, never a description of the conversation."""

# User prompt - formatted with {query} and {conversations}
FACT_EXTRACTION_PROMPT = """QUERY: "{query}"

CONVERSATIONS:
{conversations}

Return a single JSON object with this structure:
{{
  "found": true,
  "value": "the extracted fact, or null",
  "source_chat_id": "chat id of the conversation containing the fact, or null"
}}"""
