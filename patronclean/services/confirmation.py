"""
Confirmation channel.

Presents a finite set of labelled choices and returns exactly one of them, or
``CANCELLED``. The host UI is not part of this package; these implementations
answer from a script (tests, batch runs) or from answers submitted up front
(HTTP API).
"""

from collections import deque
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

CANCELLED = "CANCELLED"


class ConfirmationChannel(Protocol):
    def choose(self, title: str, message: str, choices: Sequence[str], key: Optional[str] = None) -> str: ...


class ScriptedConfirmation:
    """Answers prompts in order from a fixed script; an exhausted script cancels."""

    def __init__(self, answers: Iterable[str] = ()):
        self._answers = deque(answers)
        self.prompts: List[Tuple[str, str, Tuple[str, ...]]] = []

    def choose(self, title: str, message: str, choices: Sequence[str], key: Optional[str] = None) -> str:
        self.prompts.append((title, message, tuple(choices)))
        if not self._answers:
            return CANCELLED
        return self._answers.popleft()


class MappingConfirmation:
    """Answers prompts by key (a cell address); unknown keys cancel."""

    def __init__(self, answers: Dict[str, str]):
        self._answers = {k.strip().upper(): v for k, v in answers.items()}

    def choose(self, title: str, message: str, choices: Sequence[str], key: Optional[str] = None) -> str:
        if key is None:
            return CANCELLED
        return self._answers.get(key.strip().upper(), CANCELLED)
