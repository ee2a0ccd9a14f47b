from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from PySide6 import QtCore

from ...services.undo_redo import UndoRedoManager
from .base import ViewModelBase, observable


@dataclass(frozen=True)
class UndoRedoHistoryItem:
    index: int
    description: str


class UndoRedoButtonGroupViewModel(ViewModelBase):
    """
    State for the header's undo/redo buttons and their history dropdowns.
    Picking history entry `index` undoes (or redoes) index + 1 actions.
    """
    action_performed = QtCore.Signal()

    can_undo = observable(False)
    can_redo = observable(False)
    undo_tooltip = observable("Undo")
    redo_tooltip = observable("Redo")
    undo_history = observable(())
    redo_history = observable(())

    def __init__(self, manager: Optional[UndoRedoManager] = None):
        super().__init__()
        self.manager: Optional[UndoRedoManager] = None
        if manager is not None:
            self.set_manager(manager)

    def set_manager(self, manager: UndoRedoManager) -> None:
        if self.manager is not None:
            self.manager.state_changed.disconnect(self._on_state_changed)
        self.manager = manager
        manager.state_changed.connect(self._on_state_changed)
        self._on_state_changed()

    def _on_state_changed(self) -> None:
        manager = self.manager
        if manager is None:
            self.can_undo = False
            self.can_redo = False
            self.undo_tooltip = "Undo"
            self.redo_tooltip = "Redo"
            self.undo_history = ()
            self.redo_history = ()
            return
        self.can_undo = manager.can_undo
        self.can_redo = manager.can_redo
        self.undo_tooltip = f"Undo {manager.undo_description}" if manager.can_undo else "Undo"
        self.redo_tooltip = f"Redo {manager.redo_description}" if manager.can_redo else "Redo"
        self.undo_history = self._items(manager.undo_history)
        self.redo_history = self._items(manager.redo_history)

    @staticmethod
    def _items(descriptions: List[str]) -> tuple:
        return tuple(UndoRedoHistoryItem(i, d) for i, d in enumerate(descriptions))

    # --- Commands ---

    def undo(self) -> bool:
        if self.manager is None or not self.manager.undo():
            return False
        self.action_performed.emit()
        return True

    def redo(self) -> bool:
        if self.manager is None or not self.manager.redo():
            return False
        self.action_performed.emit()
        return True

    def undo_to(self, index: int) -> int:
        if self.manager is None or index < 0:
            return 0
        done = self.manager.undo_multiple(index + 1)
        if done:
            self.action_performed.emit()
        return done

    def redo_to(self, index: int) -> int:
        if self.manager is None or index < 0:
            return 0
        done = self.manager.redo_multiple(index + 1)
        if done:
            self.action_performed.emit()
        return done
