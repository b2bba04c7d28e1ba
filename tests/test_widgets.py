from PyQt6.QtCore import QPoint, Qt
from PyQt6.QtTest import QTest

from helpers import solid_image
from fortuneteller.canvas import SourceCanvas
from fortuneteller.main_window import MainWindow
from fortuneteller.models import Point
from fortuneteller.selector import PolygonSelector
from fortuneteller.template import FortuneTellerTemplate
from fortuneteller.template_view import TemplateView


def test_canvas_forwards_clicks_to_selector():
    selector = PolygonSelector()
    canvas = SourceCanvas(selector)
    canvas.set_image(solid_image(200, 150))
    assert canvas.has_image()
    assert (canvas.width(), canvas.height()) == (200, 150)

    completed = []
    selector.selection_completed.connect(completed.append)
    selector.start()
    for x, y in ((10, 10), (50, 10), (30, 50)):
        QTest.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(x, y))
    QTest.mouseClick(canvas, Qt.MouseButton.RightButton, pos=QPoint(1, 1))
    assert len(selector.points) == 2
    QTest.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(30, 50))
    QTest.keyClick(canvas, Qt.Key.Key_Return)
    assert len(completed) == 1


def test_canvas_double_click_finishes_triangle():
    selector = PolygonSelector()
    canvas = SourceCanvas(selector)
    canvas.set_image(solid_image(200, 150))
    completed = []
    selector.selection_completed.connect(completed.append)

    selector.start()
    QTest.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 10))
    QTest.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(80, 10))
    QTest.mouseDClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(40, 60))

    assert len(completed) == 1
    assert completed[0].points == (Point(10, 10), Point(80, 10), Point(40, 60))
    assert not selector.is_drawing


def test_canvas_double_click_with_two_points_keeps_drawing():
    selector = PolygonSelector()
    canvas = SourceCanvas(selector)
    canvas.set_image(solid_image(200, 150))
    selector.start()
    QTest.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 10))
    QTest.mouseDClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(80, 10))
    assert selector.is_drawing
    assert selector.points == [Point(10, 10), Point(80, 10)]


def test_canvas_set_image_drops_drawing():
    selector = PolygonSelector()
    canvas = SourceCanvas(selector)
    selector.start()
    selector.click(5, 5)
    canvas.set_image(solid_image(50, 50))
    assert not selector.is_drawing


def test_template_view_reports_sections():
    template = FortuneTellerTemplate()
    view = TemplateView(template)
    clicked, cleared = [], []
    view.section_clicked.connect(clicked.append)
    view.section_cleared.connect(cleared.append)

    QTest.mouseClick(view, Qt.MouseButton.LeftButton, pos=QPoint(75, 75))
    QTest.mouseClick(view, Qt.MouseButton.RightButton, pos=QPoint(525, 525))
    assert clicked == ["corner1"]
    assert cleared == ["corner4"]


def test_main_window_builds():
    window = MainWindow()
    assert window.windowTitle() == "Fortune Teller Maker"
    window.close()


def test_mode_change_reports_grouped_sections():
    window = MainWindow()
    combo = window._settings._combo_mode
    combo.setCurrentIndex(combo.findData("outer"))
    assert window.statusBar().currentMessage() == "Assignable sections – Corners: 4, Numbers: 8"
    combo.setCurrentIndex(combo.findData("numbers"))
    assert window.statusBar().currentMessage() == "No sections available in this mode."
    window.close()
