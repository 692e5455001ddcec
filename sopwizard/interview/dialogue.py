"""
Append-only dialogue log shared by the state machine and any presentation layer.
"""
import logging
from typing import Callable, List, Optional, Tuple, Union

from .models import Speaker, Turn

logger = logging.getLogger("dialogue")

TurnListener = Callable[[Turn], None]


class DialogueLog:
    """
    Ordered record of everything said during an interview.

    Turns can only be appended; there is deliberately no way to edit or remove
    one. Readers get an immutable snapshot from :meth:`all`.
    """

    def __init__(self, on_append: Optional[TurnListener] = None):
        self._turns: List[Turn] = []
        self._on_append = on_append

    def append(self, speaker: Union[Speaker, str], text: str) -> None:
        """Record a turn. Returns nothing."""
        turn = Turn(speaker=Speaker(speaker), text=text)
        self._turns.append(turn)
        logger.debug("%s: %s", turn.speaker.value, text)
        if self._on_append is not None:
            try:
                self._on_append(turn)
            except Exception as e:
                logger.error("Dialogue listener failed: %s", e)

    def all(self) -> Tuple[Turn, ...]:
        """The full ordered sequence of turns."""
        return tuple(self._turns)

    def last(self) -> Optional[Turn]:
        return self._turns[-1] if self._turns else None

    def __len__(self) -> int:
        return len(self._turns)
