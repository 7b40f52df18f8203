"""Shared state of one network run."""

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass
class AgentState:
    """Mutable record shared by reference across every turn of a run.

    ``files`` only grows: writes overlay existing paths and nothing is
    removed. ``summary`` is written once, by the completion detector.
    """

    summary: str | None = None
    files: dict[str, str] = field(default_factory=dict)

    def merge_files(self, files: Mapping[str, str]) -> None:
        self.files.update(files)

    @property
    def completed(self) -> bool:
        return bool(self.summary)
