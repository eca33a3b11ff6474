import signal
import sys
from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from packages.shared.paths import ensure_app_dirs
from packages.core.logging_ import setup_logging
from .ui.window import MainWindow


def main() -> None:
    ensure_app_dirs()
    setup_logging()

    app = QApplication(sys.argv)
    app.setApplicationName("Dev Server Monitor")
    win = MainWindow()
    win.show()

    # Ctrl+C closes the window so closeEvent stops the monitor threads
    def signal_handler(sig, frame):
        print("\nReceived interrupt signal (Ctrl+C), shutting down...")
        win.close()

    if hasattr(signal, 'SIGINT'):
        signal.signal(signal.SIGINT, signal_handler)

    # the Qt loop never returns to Python on its own, so signals would wait for the next UI event
    wakeup = QTimer()
    wakeup.timeout.connect(lambda: None)
    wakeup.start(500)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
