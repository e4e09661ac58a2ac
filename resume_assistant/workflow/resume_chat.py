# resume_assistant/workflow/resume_chat.py
from typing import Callable, Dict, List, Optional

from resume_assistant.config import TOP_K
from resume_assistant.errors import ValidationError
from resume_assistant.models import RAGContext
from resume_assistant.prompts.prompt_builder import build_resume_prompt, join_context


def validate_chat_input(messages: Optional[List], user_id: Optional[str]):
    """Reject incomplete requests before any provider is contacted."""

    if not messages or not user_id:
        raise ValidationError(
            "Missing required fields",
            details="messages and userId are required",
        )

    if not getattr(messages[-1], "content", None):
        raise ValidationError(
            "Last message has no content",
            details="the last message is used as the retrieval query",
        )


def answer_chat(
    messages: List,
    user_id: str,
    retrieve_fn: Callable[[str, str, int], List[RAGContext]],
    llm_client,
    top_k: int = TOP_K,
) -> Dict:
    """
    Answer the latest message of a conversation from the user's documents.

    The last message is the retrieval query; the whole conversation goes
    into the prompt.
    """
    validate_chat_input(messages, user_id)

    query = messages[-1].content

    contexts = retrieve_fn(query, user_id, top_k)

    prompt = build_resume_prompt(join_context(contexts), messages)

    reply = llm_client.generate(prompt)

    return {
        "reply": reply,
        "sources_used": len(contexts),
        "top_similarity": contexts[0].similarity if contexts else None,
    }
