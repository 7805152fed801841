"""Data models for LLM requests."""
from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class Turn:
    """One entry of the conversation sent to the model."""
    role: Literal["user", "model"]
    text: str
