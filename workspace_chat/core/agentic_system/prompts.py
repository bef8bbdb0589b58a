"""
Chat prompts.

Defines the default system prompt and the chat template that combines
system prompt, conversation history, knowledge-base context, and the
user's question.

Dependencies: langchain_core.prompts
System role: Prompt templates for the tool-calling loop
"""

from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

DEFAULT_SYSTEM_PROMPT = """You are a helpful assistant for an organization's knowledge base.

## Instructions
1. Answer using the Organizational Knowledge Base provided with each question
2. If the knowledge base does not cover the question, say so clearly
3. Mention the source document and page when you rely on a document
4. Use tools only when the knowledge base is insufficient or the user asks for them
5. Be concise but complete"""

USER_TURN_TEMPLATE = """Organizational Knowledge Base:
{context}

---

Question: {question}"""

CHAT_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "{system_prompt}"),
    MessagesPlaceholder("history"),
    ("human", USER_TURN_TEMPLATE),
])


def build_system_prompt(workspace_prompt: str | None, system_context: str = "") -> str:
    """Workspace (or default) prompt followed by memory/summary sections."""
    base = (workspace_prompt or "").strip() or DEFAULT_SYSTEM_PROMPT
    if system_context:
        return f"{base}\n\n{system_context}"
    return base


def build_initial_messages(
    system_prompt: str,
    history: list[BaseMessage],
    context: str,
    question: str,
) -> list[BaseMessage]:
    """
    Render the opening message list for the model.

    Args:
        system_prompt: Full system prompt
        history: Prior conversation turns, oldest first
        context: Assembled knowledge-base context
        question: Current user message

    Returns:
        list[BaseMessage]: system, history..., human
    """
    return CHAT_PROMPT.format_messages(
        system_prompt=system_prompt,
        history=history,
        context=context,
        question=question,
    )
