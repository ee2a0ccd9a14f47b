from __future__ import annotations

import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%H:%M:%S',
)

logger = logging.getLogger(__name__)


def run_qt() -> int:
    from PySide6 import QtWidgets  # type: ignore
    from .app import build_app_context
    from .ui.confirmation import MessageBoxConfirmationService
    from .ui.main_window import MainWindow

    app = QtWidgets.QApplication(sys.argv)
    confirmation = MessageBoxConfirmationService()
    context = build_app_context(confirmation)
    win = MainWindow(context)
    confirmation.parent = win
    win.showMaximized()

    def _on_quit() -> None:
        context.tasks.wait_all()
        context.exchange_rates.cache.save()

    app.aboutToQuit.connect(_on_quit)
    return int(app.exec())


def main() -> int:
    try:
        import PySide6  # noqa: F401
    except Exception as e:
        raise RuntimeError("PySide6 is required. Install with: pip install PySide6") from e
    return run_qt()


if __name__ == "__main__":
    raise SystemExit(main())
