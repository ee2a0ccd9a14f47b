from __future__ import annotations
import logging
from typing import Any, Callable, List, Optional, Sequence

from PySide6 import QtCore

from .. import config

logger = logging.getLogger(__name__)


# --- Actions ---

class UndoableAction:
    """Base for anything that can sit on the undo stack."""
    description: str = ""

    def undo(self) -> None:
        raise NotImplementedError

    def redo(self) -> None:
        raise NotImplementedError


class DelegateAction(UndoableAction):
    """Undo/redo backed by two closures over the caller's state."""

    def __init__(self, description: str, undo_fn: Callable[[], None], redo_fn: Callable[[], None]):
        self.description = description
        self._undo = undo_fn
        self._redo = redo_fn

    def undo(self) -> None:
        self._undo()

    def redo(self) -> None:
        self._redo()


class CompositeAction(UndoableAction):
    """Groups several actions into one history entry."""

    def __init__(self, description: str, actions: Sequence[UndoableAction]):
        self.description = description
        self.actions: List[UndoableAction] = list(actions)

    def undo(self) -> None:
        for action in reversed(self.actions):
            action.undo()

    def redo(self) -> None:
        for action in self.actions:
            action.redo()


class PropertyChangeAction(UndoableAction):
    def __init__(self, description: str, setter: Callable[[Any], None], old_value: Any, new_value: Any):
        self.description = description
        self._setter = setter
        self.old_value = old_value
        self.new_value = new_value

    def undo(self) -> None:
        self._setter(self.old_value)

    def redo(self) -> None:
        self._setter(self.new_value)


# --- Manager ---

class UndoRedoManager(QtCore.QObject):
    """
    Linear undo/redo history.
    Recording a new action drops everything on the redo stack.
    """
    state_changed = QtCore.Signal()
    action_performed = QtCore.Signal(str)  # description of the action just undone/redone

    def __init__(self, max_history: int = config.UNDO_HISTORY_SIZE):
        super().__init__()
        self.max_history = max(1, int(max_history))
        self._undo: List[UndoableAction] = []
        self._redo: List[UndoableAction] = []
        self._executing = False
        # Undo depth at the last save; None once that state can no longer be reached
        self._saved_depth: Optional[int] = 0

    # --- Queries ---

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_count(self) -> int:
        return len(self._undo)

    @property
    def redo_count(self) -> int:
        return len(self._redo)

    @property
    def undo_description(self) -> Optional[str]:
        return self._undo[-1].description if self._undo else None

    @property
    def redo_description(self) -> Optional[str]:
        return self._redo[-1].description if self._redo else None

    @property
    def undo_history(self) -> List[str]:
        """Descriptions, most recent first."""
        return [a.description for a in reversed(self._undo)]

    @property
    def redo_history(self) -> List[str]:
        return [a.description for a in reversed(self._redo)]

    @property
    def is_executing(self) -> bool:
        return self._executing

    @property
    def is_at_saved_state(self) -> bool:
        return self._saved_depth == len(self._undo)

    # --- Commands ---

    def record_action(self, action: UndoableAction) -> None:
        """Push an action that has already been applied."""
        if self._executing:
            return
        if self._saved_depth is not None and self._saved_depth > len(self._undo):
            self._saved_depth = None
        self._undo.append(action)
        self._redo.clear()
        while len(self._undo) > self.max_history:
            self._undo.pop(0)
            if self._saved_depth is not None:
                self._saved_depth = self._saved_depth - 1 if self._saved_depth > 0 else None
        self.state_changed.emit()

    def undo(self) -> bool:
        if not self._undo or self._executing:
            return False
        action = self._undo[-1]
        self._run(action.undo, action)
        self._undo.pop()
        self._redo.append(action)
        logger.info(f"Undo: {action.description}")
        self.action_performed.emit(action.description)
        self.state_changed.emit()
        return True

    def redo(self) -> bool:
        if not self._redo or self._executing:
            return False
        action = self._redo[-1]
        self._run(action.redo, action)
        self._redo.pop()
        self._undo.append(action)
        logger.info(f"Redo: {action.description}")
        self.action_performed.emit(action.description)
        self.state_changed.emit()
        return True

    def undo_multiple(self, count: int) -> int:
        done = 0
        for _ in range(max(0, count)):
            if not self.undo():
                break
            done += 1
        return done

    def redo_multiple(self, count: int) -> int:
        done = 0
        for _ in range(max(0, count)):
            if not self.redo():
                break
            done += 1
        return done

    def mark_saved(self) -> None:
        self._saved_depth = len(self._undo)
        self.state_changed.emit()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        self._saved_depth = 0
        self.state_changed.emit()

    def _run(self, fn: Callable[[], None], action: UndoableAction) -> None:
        self._executing = True
        try:
            fn()
        except Exception:
            logger.exception(f"Undo/redo action failed: {action.description}")
            raise
        finally:
            self._executing = False
