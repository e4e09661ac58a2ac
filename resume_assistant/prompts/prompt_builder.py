# resume_assistant/prompts/prompt_builder.py

from typing import Iterable, List

from resume_assistant.models import RAGContext
from resume_assistant.prompts.system_prompts import RESUME_PROMPT_TEMPLATE


def _turn(message):

    if isinstance(message, dict):
        return message["role"], message["content"]

    return message.role, message.content


def format_conversation(messages: Iterable) -> str:
    """Render turns as `role: content` lines, in order."""

    return "\n".join(
        f"{role}: {content}"
        for role, content in map(_turn, messages)
    )


def join_context(contexts: List[RAGContext]) -> str:

    return "\n\n".join(context.content for context in contexts)


def build_resume_prompt(context: str, messages: Iterable) -> str:
    """
    Build the grounded resume-analyst prompt.

    The plain-text and three-section rules are instructions to the model;
    its reply is returned as is.
    """

    prompt = RESUME_PROMPT_TEMPLATE.format(
        context=context,
        conversation=format_conversation(messages),
    )

    return prompt.strip()
