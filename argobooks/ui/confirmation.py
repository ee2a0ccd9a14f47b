from __future__ import annotations
from typing import Optional

from PySide6 import QtWidgets

from ..domain.enums import ConfirmationResult


class ConfirmationService:
    """Asks the user a yes/no question before a destructive or lossy action."""

    def confirm(
        self,
        title: str,
        message: str,
        primary: str = "OK",
        cancel: str = "Cancel",
        secondary: Optional[str] = None,
        destructive: bool = False,
    ) -> ConfirmationResult:
        raise NotImplementedError


class AutoConfirmationService(ConfirmationService):
    """Answers every prompt with a fixed result and remembers what was asked."""

    def __init__(self, result: ConfirmationResult = ConfirmationResult.PRIMARY):
        self.result = result
        self.prompts: list[str] = []

    def confirm(self, title, message, primary="OK", cancel="Cancel", secondary=None, destructive=False):
        self.prompts.append(title)
        return self.result


class MessageBoxConfirmationService(ConfirmationService):
    """Blocking QMessageBox prompt parented to the main window."""

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None):
        self.parent = parent

    def confirm(self, title, message, primary="OK", cancel="Cancel", secondary=None, destructive=False):
        box = QtWidgets.QMessageBox(self.parent)
        box.setWindowTitle(title)
        box.setText(message)
        box.setIcon(QtWidgets.QMessageBox.Warning if destructive else QtWidgets.QMessageBox.Question)
        btn_primary = box.addButton(primary, QtWidgets.QMessageBox.DestructiveRole if destructive else QtWidgets.QMessageBox.AcceptRole)
        btn_secondary = box.addButton(secondary, QtWidgets.QMessageBox.ActionRole) if secondary else None
        btn_cancel = box.addButton(cancel, QtWidgets.QMessageBox.RejectRole)
        box.setDefaultButton(btn_cancel)
        box.exec()
        clicked = box.clickedButton()
        if clicked is btn_primary:
            return ConfirmationResult.PRIMARY
        if btn_secondary is not None and clicked is btn_secondary:
            return ConfirmationResult.SECONDARY
        return ConfirmationResult.CANCEL
