"""
Prompts for conversation summarization.

The summary prompt receives the user's own messages and a rendered emotion
analysis, and asks for a single JSON object that maps onto SummaryContent.
"""

# System prompt shared by every summarization request
SUMMARY_SYSTEM_PROMPT = """You are an expert conversation analyst with a focus on emotional intelligence. You read conversations and produce structured summaries that keep the emotional context alongside the facts."""

# User prompt - formatted with {conversation_text} and {emotions_text}
SUMMARY_PROMPT = """Analyze the following conversation. Focus on the facts the user shared, the emotions present and the topics discussed.

USER MESSAGES:
{conversation_text}

EMOTIONAL ANALYSIS:
{emotions_text}

Return a single JSON object with this structure and nothing else:
{{
  "summary": "Only the concrete things the user said: names, numbers, codes, addresses, preferences, requests, decisions, problems, goals, events, deadlines and requirements. Describe WHAT they said, WHAT they want and WHAT help they need.",
  "emotional_context": "The overall emotional tone, e.g. positive, negative, neutral, excited, concerned, frustrated, confused",
  "dominant_emotion": "One word for the primary emotion: joy, sadness, anger, fear, surprise, disgust or neutral",
  "topics": ["main", "topics"],
  "personal_facts": ["personal", "details", "mentioned"],
  "conversation_mood": "A short description of the conversation's atmosphere",
  "has_questions": true,
  "has_personal_info": true,
  "conversation_length": "short",
  "importance": 0.5
}}

### Rules
- Quote the user EXACTLY when they give specific data (codes, numbers, names).
- Capture requests ("I want X", "I need Y"), preferences ("I prefer A over B") and events ("My meeting is on Friday").
- Include personal context such as where they work or live.
- List at most 5 topics, as short lowercase words.
- Set has_questions to true if the user asked questions.
- Set has_personal_info to true if the user mentioned personal details.
- Set conversation_length to "short" (<5 messages), "medium" (5-15) or "long" (>15).
- Set importance between 0.0 and 1.0: how useful this conversation is to recall later. Personal facts, medical and safety information score 0.8 or higher.

Example summary: "User wants smart home lighting with a budget of $500. Their door code is 1-2-3-4. They have 3 bedrooms and existing Alexa devices."
"""
