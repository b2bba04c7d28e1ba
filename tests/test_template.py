import math

import pytest

from helpers import make_record, solid_image
from fortuneteller.models import Point
from fortuneteller.template import (
    PAGE_HEIGHT,
    PAGE_WIDTH,
    PRINT_TEMPLATE_SIZE,
    FortuneTellerTemplate,
    Mode,
    SectionKind,
    define_sections,
    wrap_words,
)


@pytest.fixture
def template():
    return FortuneTellerTemplate()


# ── geometry ─────────────────────────────────────────────────────────────

def test_section_counts_and_order():
    sections = define_sections(600)
    kinds = [s.kind for s in sections]
    assert kinds == [SectionKind.CORNER] * 4 + [SectionKind.OUTER] * 8 + [SectionKind.INNER] * 8
    assert [s.label for s in sections[4:12]] == ["5", "8", "4", "3", "1", "6", "2", "7"]
    assert len({s.id for s in sections}) == 20


def test_section_rotations():
    rotations = {s.id: s.rotation for s in define_sections(600)}
    assert rotations["corner1"] == pytest.approx(math.pi)
    assert rotations["corner2"] == pytest.approx(math.pi)
    assert rotations["corner3"] == 0
    assert rotations["corner4"] == 0
    assert rotations["outer5"] == 0
    assert rotations["outer4"] == pytest.approx(math.pi / 2)
    assert rotations["outer3"] == pytest.approx(-math.pi / 2)
    assert rotations["outer7"] == pytest.approx(math.pi)
    assert rotations["inner1"] == pytest.approx(-math.pi / 4)
    assert rotations["inner2"] == pytest.approx(math.pi / 4)


def test_geometry_follows_size():
    corner1 = define_sections(400)[0]
    assert corner1.vertices == (Point(0, 0), Point(100, 0), Point(100, 100), Point(0, 100))
    inner1 = FortuneTellerTemplate(size=400).section("inner1")
    assert Point(200, 200) in inner1.vertices


def test_sections_tile_the_sheet():
    sections = define_sections(600)
    total = sum(abs(_shoelace(s.vertices)) for s in sections)
    assert total == pytest.approx(600 * 600)


def _shoelace(vertices):
    area = 0.0
    for i, a in enumerate(vertices):
        b = vertices[(i + 1) % len(vertices)]
        area += a.x * b.y - b.x * a.y
    return area / 2


# ── hit testing ──────────────────────────────────────────────────────────

@pytest.mark.parametrize("mode", [Mode.BOTH, Mode.CORNERS, Mode.OUTER, Mode.INNER])
def test_locate_section_at_every_centroid(template, mode):
    template.set_mode(mode)
    enabled = template.enabled_sections()
    assert enabled
    for section in enabled:
        c = section.centroid
        assert template.locate_section(c.x, c.y) is section


def test_disabled_sections_are_not_hit(template):
    template.set_mode(Mode.CORNERS)
    outer5 = template.section("outer5")
    c = outer5.centroid
    assert template.locate_section(c.x, c.y) is None


def test_numbers_mode_has_no_targets(template):
    template.set_mode(Mode.NUMBERS)
    assert template.locate_section(75, 75) is None
    assert template.get_available_sections() == []
    assert template.grouped_available_sections() == []


def test_point_outside_sheet(template):
    assert template.locate_section(-5, 300) is None
    assert template.locate_section(700, 300) is None


# ── available sections ───────────────────────────────────────────────────

def test_available_section_labels(template):
    available = template.get_available_sections()
    assert len(available) == 20
    assert available[0].label == "Corner A"
    assert available[4].label == "Number 5"
    assert available[12].label == "Fortune F1"


def test_grouped_sections_per_mode(template):
    assert [title for title, _ in template.grouped_available_sections()] == [
        "Corners", "Numbers", "Fortunes",
    ]
    template.set_mode(Mode.OUTER)
    groups = template.grouped_available_sections()
    assert [title for title, _ in groups] == ["Corners", "Numbers"]
    assert [len(members) for _, members in groups] == [4, 8]
    template.set_mode(Mode.INNER)
    assert [len(m) for _, m in template.grouped_available_sections()] == [8]


# ── assignments ──────────────────────────────────────────────────────────

def test_assignment_round_trip(template):
    record = make_record()
    template.set_assignment("corner1", record)
    template.set_assignment("inner3", record)
    assert template.assignments["corner1"] is record
    assert sorted(template.sections_assigned_to(record.id)) == ["corner1", "inner3"]
    template.clear_assignment("corner1")
    assert "corner1" not in template.assignments
    template.clear_all_assignments()
    assert template.assignments == {}


def test_clearing_unknown_section_is_a_no_op(template):
    template.clear_assignment("corner9")
    assert template.assignments == {}


def test_assignments_survive_mode_switch(template):
    record = make_record()
    template.set_assignment("inner1", record)
    template.set_mode(Mode.CORNERS)
    assert template.assignments["inner1"] is record
    template.set_mode(Mode.BOTH)
    assert template.assignments["inner1"] is record


def test_render_emits_signal(template):
    calls = []
    template.rendered.connect(lambda: calls.append(True))
    template.set_assignment("corner1", make_record())
    assert calls


def test_assigned_raster_is_drawn(template):
    template.set_assignment("corner1", make_record(color="red"))
    assert template.image.pixelColor(75, 75).name() == "#ff0000"


def test_placeholder_fill(template):
    template.render()
    assert template.image.pixelColor(20, 40).name() == "#f0f0f0"


def test_highlight_tracks_pointer(template):
    template.highlight_section_at(75, 75)
    assert template.highlighted_section_id == "corner1"
    template.highlight_section_at(-10, -10)
    assert template.highlighted_section_id is None


# ── print rendering ──────────────────────────────────────────────────────

def test_render_for_print_restores_state(template):
    template.set_assignment("corner4", make_record())
    size, sections, image = template.size, template.sections, template.image
    page = template.render_for_print()
    assert (page.width(), page.height()) == (PAGE_WIDTH, PAGE_HEIGHT)
    assert template.size == size
    assert template.sections is sections
    assert template.image is image
    assert page.pixelColor(5, 5).name() == "#ffffff"
    # Inset template starts at ((816 - 672) / 2, (1056 - 672) / 2)
    inset = (PAGE_HEIGHT - PRINT_TEMPLATE_SIZE) // 2
    assert page.pixelColor(100, inset - 10).name() == "#ffffff"


# ── fortune wrapping ─────────────────────────────────────────────────────

def test_wrap_words_breaks_greedily():
    assert wrap_words("Great things await.", 10, len) == ["Great", "things", "await."]


def test_wrap_words_keeps_short_text_on_one_line():
    assert wrap_words("Joy follows.", 50, len) == ["Joy follows."]


def test_wrap_words_never_leaves_first_line_empty():
    assert wrap_words("Extraordinarily long", 5, len) == ["Extraordinarily", "long"]


def test_render_for_print_onto_target(template):
    target = solid_image(800, 800, "yellow")
    page = template.render_for_print(target)
    assert page is target
    # Stale content is cleared to a white page
    assert page.pixelColor(10, 10).name() == "#ffffff"
    assert page.pixelColor(790, 790).name() == "#ffffff"
    # Template inset is centred on the target size: (800 - 672) / 2 = 64
    assert page.pixelColor(60, 400).name() == "#ffffff"
    assert page.pixelColor(80, 100).name() == "#f0f0f0"


# ── numbers-only page ────────────────────────────────────────────────────

def test_numbers_mode_paints_fixed_page(template):
    template.set_assignment("corner1", make_record(color="red"))
    template.set_mode(Mode.NUMBERS)
    image = template.image
    # Corner squares: yellow, green, blue, red regardless of assignments
    assert image.pixelColor(20, 40).name() == "#ffeb3b"
    assert image.pixelColor(580, 40).name() == "#4caf50"
    assert image.pixelColor(20, 560).name() == "#2196f3"
    assert image.pixelColor(590, 470).name() == "#f44336"
    # Outer and inner triangles are plain white
    assert image.pixelColor(160, 100).name() == "#ffffff"
    assert image.pixelColor(440, 500).name() == "#ffffff"
    assert image.pixelColor(290, 100).name() == "#ffffff"


# ── hit testing against an independent containment test ────────────────

def _strictly_inside_convex(x, y, vertices):
    signs = set()
    for i, a in enumerate(vertices):
        b = vertices[(i + 1) % len(vertices)]
        cross = (b.x - a.x) * (y - a.y) - (b.y - a.y) * (x - a.x)
        if cross == 0:
            return False
        signs.add(cross > 0)
    return len(signs) == 1


def _sample_points(size, step=7):
    # Offsets keep every sample off the axis-aligned and diagonal fold lines
    xs = [3.5 + step * i for i in range(int(size // step))]
    ys = [5.25 + step * j for j in range(int(size // step))]
    return [(x, y) for x in xs for y in ys if x < size and y < size]


@pytest.mark.parametrize("mode", list(Mode))
def test_locate_section_agrees_with_reference(template, mode):
    template.set_mode(mode)
    enabled = template.enabled_sections()
    for x, y in _sample_points(template.size):
        expected = [s.id for s in enabled if _strictly_inside_convex(x, y, s.vertices)]
        assert len(expected) <= 1
        found = template.locate_section(x, y)
        assert (found.id if found else None) == (expected[0] if expected else None), (x, y)


def test_sample_grid_is_fully_covered_in_both_mode(template):
    for x, y in _sample_points(template.size):
        assert template.locate_section(x, y) is not None, (x, y)


# ── hover highlight ──────────────────────────────────────────────────────

def test_highlight_survives_assignment(template):
    template.highlight_section_at(75, 75)
    template.set_assignment("corner1", make_record(color="red"))
    assert template.highlighted_section_id == "corner1"
    # Red picture under the translucent blue overlay
    blended = template.image.pixelColor(75, 75)
    assert blended.name() != "#ff0000"
    assert blended.blue() > 0


def test_highlight_reset_on_mode_change(template):
    template.highlight_section_at(75, 75)
    template.set_mode(Mode.INNER)
    assert template.highlighted_section_id is None
