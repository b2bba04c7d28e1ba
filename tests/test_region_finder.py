import numpy as np
import pytest
from PIL import Image

from fortuneteller.region_finder import (
    BackgroundType,
    Region,
    SegmentOptions,
    background_mask,
    find_grid_regions,
    find_regions,
    flood_fill_components,
    load_rgba_pixels,
    parse_hex_color,
    segment_pixels,
    sort_regions,
)


def white_canvas(width=100, height=100):
    return np.full((height, width, 4), 255, dtype=np.uint8)


def black_square_image():
    pixels = white_canvas()
    pixels[40:60, 40:60, :3] = 0
    return pixels


# ── flood fill ───────────────────────────────────────────────────────────

def test_single_black_square_on_white():
    regions = find_regions(black_square_image(), threshold=240, min_size=100)
    assert len(regions) == 1
    region = regions[0]
    assert (region.x, region.y, region.width, region.height) == (35, 35, 30, 30)
    assert region.pixel_count == 400


def test_every_pixel_visited_once():
    pixels = white_canvas(60, 40)
    pixels[5:15, 5:30, :3] = 0
    pixels[20:35, 40:55, :3] = 10
    pixels[0, :, :3] = 0  # touches the border
    background = background_mask(pixels)
    components, counts = flood_fill_components(background)
    assert counts.shape == (40, 60)
    assert np.all(counts == 1)
    assert sum(c.pixel_count for c in components) == int((~background).sum())


def test_components_are_four_connected():
    background = np.ones((10, 10), dtype=bool)
    background[2, 2] = False
    background[3, 3] = False  # diagonal neighbour only
    components, _ = flood_fill_components(background)
    assert len(components) == 2


def test_small_components_are_discarded():
    pixels = white_canvas()
    pixels[10:15, 10:15, :3] = 0  # 25 pixels
    assert find_regions(pixels, min_size=100) == []
    assert len(find_regions(pixels, min_size=25)) == 1


def test_padding_is_clamped_to_image():
    pixels = white_canvas()
    pixels[0:10, 0:10, :3] = 0
    pixels[90:100, 90:100, :3] = 0
    first, second = find_regions(pixels, min_size=10)
    assert (first.x, first.y, first.width, first.height) == (0, 0, 15, 15)
    assert (second.x, second.y, second.width, second.height) == (85, 85, 15, 15)


def test_translucent_pixels_count_as_background_for_white_rule():
    pixels = black_square_image()
    pixels[40:60, 40:60, 3] = 50
    assert find_regions(pixels) == []


def test_black_background_rule():
    pixels = np.zeros((100, 100, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    pixels[20:40, 50:70, :3] = 200
    regions = find_regions(pixels, threshold=30, bg_type=BackgroundType.BLACK)
    assert [(r.x, r.y, r.width, r.height) for r in regions] == [(45, 15, 30, 30)]


def test_transparent_background_rule():
    pixels = np.zeros((100, 100, 4), dtype=np.uint8)
    pixels[10:30, 10:30] = (255, 255, 255, 255)
    regions = find_regions(pixels, threshold=128, bg_type=BackgroundType.TRANSPARENT)
    assert len(regions) == 1
    assert regions[0].pixel_count == 400


def test_custom_color_background_rule():
    pixels = np.zeros((100, 100, 4), dtype=np.uint8)
    pixels[:, :] = (0, 250, 5, 255)
    pixels[50:70, 50:70] = (250, 0, 0, 255)
    regions = find_regions(pixels, threshold=30, bg_type=BackgroundType.CUSTOM,
                           custom_color=(0, 255, 0))
    assert [(r.x, r.y) for r in regions] == [(45, 45)]


def test_custom_rule_without_color_treats_everything_as_foreground():
    mask = background_mask(white_canvas(), BackgroundType.CUSTOM, 30, None)
    assert not mask.any()


def test_background_mask_rejects_bad_input():
    with pytest.raises(ValueError):
        background_mask(np.zeros((10, 10, 3), dtype=np.uint8))
    with pytest.raises(ValueError):
        background_mask(white_canvas(), BackgroundType.GRID, 0)


# ── ordering ─────────────────────────────────────────────────────────────

def test_regions_sorted_by_row_band_then_x():
    regions = [
        Region(60, 5, 10, 10, 100),
        Region(10, 80, 10, 10, 100),
        Region(10, 10, 10, 10, 100),
    ]
    ordered = sort_regions(regions, height=100)
    assert [(r.x, r.y) for r in ordered] == [(10, 10), (60, 5), (10, 80)]


def test_row_band_wins_over_vertical_position():
    # Both in the top quarter: purely left to right
    regions = [Region(80, 2, 5, 5, 25), Region(10, 20, 5, 5, 25)]
    ordered = sort_regions(regions, height=100)
    assert [r.x for r in ordered] == [10, 80]


# ── grid ─────────────────────────────────────────────────────────────────

def test_even_grid():
    regions = find_grid_regions(600, 600, 4)
    assert len(regions) == 16
    assert all((r.width, r.height) == (150, 150) for r in regions)
    assert (regions[1].x, regions[1].y) == (150, 0)
    assert (regions[4].x, regions[4].y) == (0, 150)


def test_uneven_grid_covers_image_exactly():
    width, height = 103, 101
    regions = find_grid_regions(width, height, 4)
    coverage = np.zeros((height, width), dtype=np.int32)
    for r in regions:
        coverage[r.y:r.y + r.height, r.x:r.x + r.width] += 1
    assert np.all(coverage == 1)
    assert regions[-1].width == 103 - 75
    assert regions[-1].height == 101 - 75


def test_grid_size_must_be_positive():
    with pytest.raises(ValueError):
        find_grid_regions(100, 100, 0)


def test_segment_pixels_dispatches_on_background_type():
    pixels = black_square_image()
    grid = segment_pixels(pixels, SegmentOptions(bg_type=BackgroundType.GRID, grid_size=2))
    assert len(grid) == 4
    found = segment_pixels(pixels, SegmentOptions.for_background(BackgroundType.WHITE))
    assert len(found) == 1


def test_load_rgba_pixels_keeps_straight_alpha(tmp_path):
    pixels = black_square_image()
    pixels[0, 0] = (200, 100, 50, 10)
    path = tmp_path / "square.png"
    Image.fromarray(pixels).save(path)
    loaded = load_rgba_pixels(str(path))
    assert loaded.shape == (100, 100, 4)
    assert loaded[0, 0].tolist() == [200, 100, 50, 10]
    regions = segment_pixels(loaded, SegmentOptions())
    assert [(r.x, r.y, r.width, r.height) for r in regions] == [(35, 35, 30, 30)]


def test_load_rgba_pixels_from_rgb_and_gray(tmp_path):
    rgb_path = tmp_path / "rgb.jpg"
    gray_path = tmp_path / "gray.png"
    Image.new("RGB", (8, 6), (255, 255, 255)).save(rgb_path)
    Image.new("L", (8, 6), 0).save(gray_path)
    assert load_rgba_pixels(str(rgb_path)).shape == (6, 8, 4)
    gray = load_rgba_pixels(str(gray_path))
    assert gray[0, 0].tolist() == [0, 0, 0, 255]


def test_load_rgba_pixels_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rgba_pixels(str(tmp_path / "missing.png"))


# ── options ──────────────────────────────────────────────────────────────

def test_default_thresholds_per_background():
    assert SegmentOptions.for_background(BackgroundType.WHITE).threshold == 240
    assert SegmentOptions.for_background(BackgroundType.BLACK).threshold == 30
    assert SegmentOptions.for_background("transparent").threshold == 128
    assert SegmentOptions.for_background(BackgroundType.CUSTOM, threshold=60).threshold == 60


def test_parse_hex_color():
    assert parse_hex_color("#ff8000") == (255, 128, 0)
    assert parse_hex_color("2d3a5a") == (45, 58, 90)
    with pytest.raises(ValueError):
        parse_hex_color("#fff")
