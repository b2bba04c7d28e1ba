#!/usr/bin/env python3
"""Entry point for the Fortune Teller Maker."""

import logging
import os
import sys

from PyQt6.QtWidgets import QApplication

from fortuneteller.main_window import MainWindow


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("FORTUNE_TELLER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv)
    app.setApplicationName("Fortune Teller Maker")
    app.setStyle("Fusion")

    window = MainWindow()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
