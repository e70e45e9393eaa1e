"""Entry point — Subtitle Tagger."""
import logging
import sys
import os

# Make sure the workspace root is on sys.path so `subtag` is importable
ROOT = os.path.dirname(os.path.abspath(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from subtag.settings import APP_DIR, load_settings  # noqa: E402

# ---- log file in the application directory ----
APP_DIR.mkdir(parents=True, exist_ok=True)
_LOG_FILE = os.path.join(APP_DIR, "subtag.log")

_handlers: list[logging.Handler] = [
    logging.StreamHandler(sys.stdout),
    logging.FileHandler(_LOG_FILE, encoding="utf-8"),
]

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
    handlers=_handlers,
)

# Attach the Qt signal handler so the log viewer dialog can receive records.
from subtag.widgets.log_viewer import get_qt_log_handler as _get_qt_log_handler  # noqa: E402
logging.getLogger().addHandler(_get_qt_log_handler())

from PySide6.QtWidgets import QApplication  # noqa: E402
from subtag.main_window import MainWindow  # noqa: E402

logger = logging.getLogger("subtag")


def main() -> None:
    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)
    logger.info("Starting — library=%s  log level=%s", settings.library_dir, settings.log_level)

    app = QApplication(sys.argv)
    app.setApplicationName("Subtitle Tagger")
    app.setOrganizationName("subtag")

    window = MainWindow(settings)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
