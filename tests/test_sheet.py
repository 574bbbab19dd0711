from dc_bts_convert import read_bts
from dc_builders import build_bts, build_fin, build_spr
from dc_fin_convert import read_fin
from dc_sheet import (compose_sprite_sheet, compose_tile_sheet, encode_png, frame_offset, sequences_yaml,
                      terrain_sequences_yaml)
from dc_spr_convert import read_spr

RED = (255, 3, 3, 255)
BLUE = (3, 3, 255, 255)
CLEAR = (0, 0, 0, 0)
COLORS = {1: (63, 0, 0), 2: (0, 0, 63)}


def test_two_raw_frames_make_an_8x4_strip():
    spr = read_spr(build_spr([
        (4, 4, 0, 0, bytes([1]) * 16),
        (4, 4, 0, 0, bytes([2]) * 16),
    ], colors=COLORS))
    sheet = compose_sprite_sheet(spr)
    assert sheet.size == (8, 4)
    assert sheet.mode == 'RGBA'
    assert sheet.getpixel((0, 0)) == RED
    assert sheet.getpixel((3, 3)) == RED
    assert sheet.getpixel((4, 0)) == BLUE
    assert sheet.getpixel((7, 3)) == BLUE


def test_small_frame_is_centred_and_clamped():
    spr = read_spr(build_spr([
        (4, 4, 0, 0, bytes([1]) * 16),
        (2, 2, 5, 0, bytes([2]) * 4),
    ], colors=COLORS))
    sheet = compose_sprite_sheet(spr)
    assert sheet.size == (8, 4)
    # (4 - 2) // 2 + 5 clamps to 2; vertical centring gives 1
    assert sheet.getpixel((6, 1)) == BLUE
    assert sheet.getpixel((7, 2)) == BLUE
    assert sheet.getpixel((4, 1)) == CLEAR
    assert sheet.getpixel((6, 0)) == CLEAR


def test_frame_offset():
    assert frame_offset(10, 10, 4, 4, 0, 0) == (3, 3)
    assert frame_offset(10, 10, 4, 4, -1, 2) == (2, 5)
    assert frame_offset(10, 10, 4, 4, -20, 20) == (0, 6)


def test_transparent_index_stays_transparent():
    spr = read_spr(build_spr([(2, 1, 0, 0, bytes([0, 1]))], colors=COLORS))
    sheet = compose_sprite_sheet(spr)
    assert sheet.getpixel((0, 0))[3] == 0
    assert sheet.getpixel((1, 0)) == RED


def test_empty_sprite_has_no_sheet():
    assert compose_sprite_sheet(read_spr(build_spr([]))) is None
    assert compose_sprite_sheet(read_spr(build_spr([(0, 4, 0, 0, b'')]))) is None


def test_tile_sheet():
    bts = read_bts(build_bts([(0, bytes([1]) * 1024), (1, bytes([2]) * 1024), (2, bytes([1]) * 1024)],
                             colors=COLORS))
    sheet = compose_tile_sheet(bts)
    assert sheet.size == (96, 32)
    assert sheet.getpixel((31, 0)) == RED
    assert sheet.getpixel((32, 0)) == BLUE
    assert sheet.getpixel((64, 31)) == RED
    assert compose_tile_sheet(read_bts(b'')) is None


def test_encode_png():
    spr = read_spr(build_spr([(1, 1, 0, 0, b'\x01')], colors=COLORS))
    assert encode_png(compose_sprite_sheet(spr)).startswith(b'\x89PNG\r\n\x1a\n')


def test_sequences_from_fin():
    spr = read_spr(build_spr([(1, 1, 0, 0, b'\x01')] * 6))
    fin = read_fin(build_fin([("Walk", 0, 3), ("Death", 4, 5)], []))
    text = sequences_yaml("troop", "assets/troop.png", spr, fin)
    assert text == (
        "troop:\n"
        "\twalk:\n"
        "\t\tFilename: assets/troop.png\n"
        "\t\tStart: 0\n"
        "\t\tLength: 4\n"
        "\t\tFacings: 8\n"
        "\tdie:\n"
        "\t\tFilename: assets/troop.png\n"
        "\t\tStart: 4\n"
        "\t\tLength: 2\n"
    )


def test_sequences_without_fin_fall_back_to_idle():
    spr = read_spr(build_spr([(1, 1, 0, 0, b'\x01')] * 3))
    text = sequences_yaml("beac", "assets/beac.png", spr)
    assert "\tidle:\n" in text
    assert "\t\tLength: 3\n" in text
    assert "Facings" not in text


def test_terrain_sequences():
    assert terrain_sequences_yaml("terrain_mars", "assets/terrain_mars.png", 12) == (
        "terrain_mars:\n\tidle:\n\t\tFilename: assets/terrain_mars.png\n\t\tStart: 0\n\t\tLength: 12\n"
    )
