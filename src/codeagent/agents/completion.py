"""Task completion detection from the agent's final text.

The agent signals that it is done by writing the marker ``<task_summary>``
in its assistant text (normally wrapping the summary in
``<task_summary>...</task_summary>``). The first assistant message that
contains the marker becomes the run's summary verbatim, marker included.
Tool-call arguments are never inspected.
"""

import logging

from codeagent.agents.state import AgentState
from codeagent.providers.base import ModelResponse

TASK_SUMMARY_MARKER = "<task_summary>"

logger = logging.getLogger(__name__)


def last_assistant_text(response: ModelResponse) -> str | None:
    """The turn's assistant text, unchanged, or None when it is blank."""
    if not response.text.strip():
        return None
    return response.text


class CompletionDetector:
    def __init__(self, marker: str = TASK_SUMMARY_MARKER) -> None:
        self.marker = marker

    def observe(self, state: AgentState, text: str | None) -> bool:
        """Latch ``text`` as the summary if it carries the marker.

        Returns True only on the call that set the summary. Once a summary is
        set, later texts are ignored even if they carry the marker too.
        """
        if state.summary:
            return False
        if not text or self.marker not in text:
            return False
        state.summary = text
        logger.info("Completion marker detected; summary captured (%d chars)", len(text))
        return True
