"""
Historique undo/redo — deux piles bornées de BuilderSnapshot.

Chaque état empilé est une copie profonde : muter l'arbre vivant
ne peut pas corrompre l'historique, et inversement.
"""
import logging
from typing import List, Optional

from . import config
from .core.schemas import BuilderSnapshot

log = logging.getLogger(__name__)


class HistoryManager:
    """
    Usage:
        >>> history = HistoryManager()
        >>> history.push(BuilderSnapshot(blocks=[]))
        >>> history.push(BuilderSnapshot(blocks=[block]))
        >>> previous = history.undo()   # état vide
        >>> history.redo()              # état avec block
    """

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or config.HISTORY_LIMIT
        self._undo: List[BuilderSnapshot] = []
        self._redo: List[BuilderSnapshot] = []

    def push(self, state: BuilderSnapshot) -> None:
        """Empile l'état courant ; toute nouvelle action invalide le redo."""
        self._undo.append(state.model_copy(deep=True))
        self._redo.clear()
        if len(self._undo) > self.max_size:
            evicted = len(self._undo) - self.max_size
            del self._undo[:evicted]
            log.debug("Historique plein — %d état(s) le plus ancien évincé(s)", evicted)

    def undo(self) -> Optional[BuilderSnapshot]:
        """Retourne l'état précédent, ou None s'il n'y en a pas."""
        if not self.can_undo():
            return None
        self._redo.append(self._undo.pop())
        return self._undo[-1].model_copy(deep=True)

    def redo(self) -> Optional[BuilderSnapshot]:
        if not self.can_redo():
            return None
        state = self._redo.pop()
        self._undo.append(state)
        return state.model_copy(deep=True)

    def can_undo(self) -> bool:
        return len(self._undo) > 1

    def can_redo(self) -> bool:
        return len(self._redo) > 0

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def oldest(self) -> Optional[BuilderSnapshot]:
        """Copie de l'état le plus ancien encore conservé."""
        return self._undo[0].model_copy(deep=True) if self._undo else None
