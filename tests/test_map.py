import struct

from dc_builders import build_map
from dc_map_convert import (IMPASSABLE_TEMPLATE, MapCell, decode_main_field, map_bin, map_yaml,
                            placeholder_template, read_map, write_oramap)


def test_flags_and_tile_index():
    dc_map = read_map(build_map(1, 1, [(0xA005, 0x1234)]))
    cell = dc_map.cell(0, 0)
    assert cell == MapCell(tile_index=5, overlay_index=0x1234, flip_h=True, flip_v=False, impassable=True)
    assert decode_main_field(0xA005).tile_index == 5
    assert decode_main_field(0x7FFF) == MapCell(0x1FFF, 0, False, True, True)


def test_row_major_order():
    dc_map = read_map(build_map(3, 2, [(i, 0) for i in range(6)]))
    assert (dc_map.width, dc_map.height) == (3, 2)
    assert dc_map.tile_index.shape == (2, 3)
    assert dc_map.cell(2, 0).tile_index == 2
    assert dc_map.cell(0, 1).tile_index == 3
    assert [c.tile_index for c in dc_map.cells()] == list(range(6))


def test_truncated_grid_keeps_defaults():
    data = build_map(2, 2, [(0x8001, 9), (0x0002, 0)])[:-2]
    dc_map = read_map(data)
    assert dc_map.cell(0, 0).flip_h
    # partial second cell and missing row stay zero
    assert dc_map.cell(1, 0) == MapCell(0, 0, False, False, False)
    assert dc_map.cell(1, 1) == MapCell(0, 0, False, False, False)


def test_missing_header():
    dc_map = read_map(b'\x05\x00')
    assert (dc_map.width, dc_map.height) == (0, 0)
    assert list(dc_map.cells()) == []


def test_arrays_are_read_only():
    dc_map = read_map(build_map(1, 1, [(1, 1)]))
    assert not dc_map.tile_index.flags.writeable
    assert not dc_map.impassable.flags.writeable


def test_placeholder_template():
    assert placeholder_template(MapCell(7, 0, False, False, True)) == IMPASSABLE_TEMPLATE
    assert placeholder_template(MapCell(7, 0, False, False, False)) == 3
    assert placeholder_template(MapCell(8, 0, True, True, False)) == 0


def test_map_bin_layout():
    dc_map = read_map(build_map(2, 1, [(0x2007, 0), (0x0007, 0)]))
    out = map_bin(dc_map)
    assert out == struct.pack('<HBHB', 2, 0, 3, 0)


def test_map_bin_custom_mapper():
    dc_map = read_map(build_map(2, 2, [(i, 0) for i in range(4)]))
    out = map_bin(dc_map, template_mapper=lambda cell: 100 + cell.tile_index)
    assert len(out) == 4 * 3
    assert struct.unpack('<HBHBHBHB', out)[::2] == (100, 101, 102, 103)


def test_map_yaml():
    dc_map = read_map(build_map(64, 48, []))
    text = map_yaml(dc_map, title="Dark Colony - level1")
    assert "MapSize: 64, 48\n" in text
    assert "Bounds: 2, 2, 60, 44\n" in text
    assert "Title: Dark Colony - level1\n" in text
    assert "\tNeutral:\n\t\tName: Neutral\n" in text
    assert text.endswith("Actors:\n\nRules:\n")


def test_write_oramap(tmp_path):
    dc_map = read_map(build_map(4, 4, [(1, 0)] * 16))
    paths = write_oramap(dc_map, str(tmp_path / "dc-level1"))
    assert sorted(p.rsplit('/', 1)[-1] for p in paths) == ["map.bin", "map.yaml"]
    assert (tmp_path / "dc-level1" / "map.bin").stat().st_size == 16 * 3
    assert (tmp_path / "dc-level1" / "map.yaml").read_text().startswith("MapFormat: 11\n")
