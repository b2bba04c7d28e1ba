"""Shared pytest setup: headless Qt platform and a single QApplication."""
import logging
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtWidgets import QApplication

logging.getLogger("PIL").setLevel(logging.WARNING)


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Font metrics and text painting need an application instance."""
    app = QApplication.instance() or QApplication([])
    yield app
