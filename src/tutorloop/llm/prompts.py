"""
Prompt builders for the LiteLLM-backed collaborators.

Turns are rendered into OpenAI-style chat messages, the format LiteLLM
accepts for every provider.
"""

import json
from typing import Any, Dict, List

from ..models.context import AttachmentPart, Turn
from ..models.enums import Role
from ..models.schemas import AssembledContext, ClassificationRequest

INTENT_SYSTEM_PROMPT = """You are the intent classifier for a tutoring assistant.

Decide whether the learner's latest message belongs to the tutoring domain
described below, and whether answering it needs reference material from the
learner's notebook.

Rules:
- Greetings, thanks and questions about earlier answers are in domain.
- If the message is out of domain, set in_domain to false and write a short,
  friendly out_of_domain_message steering the learner back to the topic.
- If the message is in domain, out_of_domain_message must be null.
- Set retrieval_needed to true only when notebook material would improve the
  answer, and then write a standalone retrieval_query that resolves any
  references to earlier turns. Otherwise retrieval_query must be null.

Respond with a single JSON object with the keys in_domain,
out_of_domain_message, retrieval_needed and retrieval_query."""

SUMMARY_SYSTEM_PROMPT = """You maintain the running summary of a tutoring conversation.

Merge the existing summary with the new turns into one updated summary.
Keep the learner's goals, the topics covered, what the learner found
difficult and any facts the tutor committed to. Drop small talk. Write in
the third person and stay under 250 words.

Respond with a single JSON object: {"summary": "<updated summary>"}"""

TITLE_SYSTEM_PROMPT = """You name tutoring conversations.

Read the conversation and reply with a concise, descriptive title for its
main topic: under six words, in Title Case, with no quotes and no generic
words such as "Chat", "Conversation" or "Summary". Reply with the title only."""

TUTOR_SYSTEM_PROMPT = """You are a patient, encouraging tutor.

Explain concepts step by step, check understanding with short questions and
adapt to the learner's level. Ground your answers in the reference material
when it is relevant and say so when it does not cover a question. Use a tool
only when the learner would clearly benefit from what it produces."""


def render_turn_text(turn: Turn) -> str:
    """Text of a turn with attachments noted inline."""
    lines = [turn.text] if turn.text else []
    for part in turn.parts:
        if isinstance(part, AttachmentPart):
            lines.append(f"[attachment: {part.uri} ({part.mime_type})]")
    return "\n".join(lines)


def _transcript(turns: List[Turn]) -> str:
    lines = []
    for turn in turns:
        text = render_turn_text(turn)
        if not text:
            continue
        speaker = "Learner" if turn.role == Role.USER else "Tutor"
        lines.append(f"{speaker}: {text}")
    return "\n".join(lines)


def build_classification_messages(request: ClassificationRequest) -> List[Dict[str, Any]]:
    sections = [f"<DOMAIN>\n{request.prior_context_summary or 'General tutoring'}\n</DOMAIN>"]
    if request.recent_history:
        sections.append(f"<RECENT_TURNS>\n{_transcript(request.recent_history)}\n</RECENT_TURNS>")
    sections.append(f"<LATEST_MESSAGE>\n{request.current_turn_text}\n</LATEST_MESSAGE>")
    if request.attachments_present:
        sections.append("The learner attached one or more files to this message.")

    return [
        {"role": "system", "content": INTENT_SYSTEM_PROMPT},
        {"role": "user", "content": "\n\n".join(sections)},
    ]


def build_summary_messages(existing_summary: str, turns: List[Turn]) -> List[Dict[str, Any]]:
    content = (
        f"<EXISTING_SUMMARY>\n{existing_summary or '(none)'}\n</EXISTING_SUMMARY>\n\n"
        f"<NEW_TURNS>\n{_transcript(turns)}\n</NEW_TURNS>"
    )
    return [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
        {"role": "user", "content": content},
    ]


def build_title_messages(turns: List[Turn]) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": TITLE_SYSTEM_PROMPT},
        {"role": "user", "content": f"<CONVERSATION>\n{_transcript(turns)}\n</CONVERSATION>"},
    ]


def build_tutor_system_prompt(context: AssembledContext, base_prompt: str = TUTOR_SYSTEM_PROMPT) -> str:
    if not context.fragments:
        return base_prompt

    blocks = [
        f'<FRAGMENT id="{fragment_id}">\n{text}\n</FRAGMENT>'
        for fragment_id, text in context.fragments.items()
    ]
    return (
        f"{base_prompt}\n\n<PREVIOUSLY_RETRIEVED_CONTEXT>\n"
        + "\n".join(blocks)
        + "\n</PREVIOUSLY_RETRIEVED_CONTEXT>"
    )


def turns_to_messages(turns: List[Turn]) -> List[Dict[str, Any]]:
    """
    Render history as chat messages.

    Tool requests become assistant ``tool_calls`` and the first result for
    each call becomes a ``tool`` message. Any other result is rendered as
    plain user text: one whose request was compacted away, or the late
    result of a pending call that arrives after later turns. Providers only
    accept a ``tool`` message directly after the call that it answers.
    """
    messages: List[Dict[str, Any]] = []
    seen_calls: set[str] = set()

    for turn in turns:
        if turn.tool_requests:
            calls = []
            for request in turn.tool_requests:
                seen_calls.add(request.correlation_id)
                calls.append(
                    {
                        "id": request.correlation_id,
                        "type": "function",
                        "function": {
                            "name": request.name,
                            "arguments": json.dumps(request.arguments),
                        },
                    }
                )
            messages.append({"role": "assistant", "content": turn.text or None, "tool_calls": calls})
            continue

        if turn.tool_results:
            for result in turn.tool_results:
                body = json.dumps(
                    {"status": result.status.value, "payload": result.payload, "error": result.error},
                    default=str,
                )
                if result.correlation_id in seen_calls:
                    messages.append(
                        {"role": "tool", "tool_call_id": result.correlation_id, "content": body}
                    )
                    seen_calls.discard(result.correlation_id)
                else:
                    messages.append(
                        {"role": "user", "content": f"[Result of tool {result.name}]: {body}"}
                    )
            continue

        text = render_turn_text(turn)
        if not text:
            continue
        role = "assistant" if turn.role == Role.MODEL else "user"
        messages.append({"role": role, "content": text})

    return messages
