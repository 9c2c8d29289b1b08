"""Turn a sample's conversation into display messages for the survey UI."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from survey.models.sample import Sample, TurnRole

_THINK_RE = re.compile(r"<think>(.*?)</think>", re.DOTALL)


@dataclass
class Message:
    kind: str  # "human", "gpt", "think" or "post-think"
    content: str
    key: str
    name: str | None = None


@dataclass
class RenderedConversation:
    system: str = ""
    messages: list[Message] = field(default_factory=list)


def render_conversation(sample: Sample | dict) -> RenderedConversation:
    """Split reasoning out of ``<think>`` blocks and label each speaker.

    System turns are collected into ``system`` instead of the message list.
    Turns that are empty once stripped are dropped.
    """
    if isinstance(sample, dict):
        sample = Sample.model_validate(sample)
    model = (sample.model_name or "").strip()
    thoughts_title = f"{model} Thoughts" if model else "Thoughts"
    response_title = f"{model} Response" if model else "Response"

    rendered = RenderedConversation()
    system_parts: list[str] = []

    def add(kind: str, title: str, body: str, name: str | None = None) -> None:
        key = f"{kind}-{len(rendered.messages)}"
        rendered.messages.append(Message(kind, f"**__{title}__**\n\n{body}", key, name))

    for turn in sample.conversations:
        text = turn.text.strip()

        match = _THINK_RE.search(text)
        if match:
            add("think", thoughts_title, match.group(1).strip())
            text = _THINK_RE.sub("", text, count=1).strip()
            if text:
                add("post-think", response_title, text)
                text = ""

        if turn.role is TurnRole.SYSTEM:
            system_parts.append(text)
        elif not text:
            continue
        elif turn.role is TurnRole.HUMAN:
            add("human", "User", text)
        elif turn.role is TurnRole.GPT:
            add("gpt", "Assistant", text)
        elif turn.role is TurnRole.HUMAN_NAMED:
            add("human", "User", f"{(turn.name or '').strip()}: {text}", turn.name)
        elif turn.role is TurnRole.GPT_NAMED:
            add("gpt", "Assistant", f"{(turn.name or '').strip()}: {text}", turn.name)

    rendered.system = "\n\n".join(part for part in system_parts if part)
    return rendered
