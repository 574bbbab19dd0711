import random

from dc_builders import build_spr
from dc_spr_convert import decode_rle, read_spr, render_frame
from dc_stream import ByteStream


def test_raw_frames():
    data = build_spr([
        (4, 4, 0, 0, bytes([1]) * 16),
        (2, 3, -1, 5, bytes(range(6))),
    ])
    spr = read_spr(data)
    assert not spr.is_compressed
    assert len(spr.frames) == 2
    f0, f1 = spr.frames
    assert (f0.width, f0.height) == (4, 4)
    assert f0.pixels == bytes([1]) * 16
    assert (f1.displacement_x, f1.displacement_y) == (-1, 5)
    assert f1.pixels == bytes(range(6))


def test_raw_frame_truncated_keeps_buffer_size():
    data = build_spr([(4, 4, 0, 0, bytes([7]) * 16)])[:-6]
    frame = read_spr(data).frames[0]
    assert len(frame.pixels) == 16
    assert frame.pixels == bytes([7]) * 10 + bytes(6)


def test_rle_literal_and_transparent_runs():
    # literal run of 3, then 256 - 0xFB = 5 transparent pixels
    stream = bytes([0x02, 5, 6, 7, 0xFB])
    spr = read_spr(build_spr([(4, 2, 0, 0, None)], compressed=True, pixel_data=stream))
    assert spr.is_compressed
    assert spr.frames[0].pixels == bytes([5, 6, 7, 0, 0, 0, 0, 0])


def test_rle_transparent_run_clamped_to_frame():
    # 0x80 asks for 128 transparent pixels but the frame only has 4
    stream = bytes([0x80, 0x00, 9])
    spr = read_spr(build_spr([(2, 2, 0, 0, None), (1, 1, 0, 0, None)],
                             compressed=True, pixel_data=stream))
    assert spr.frames[0].pixels == bytes(4)
    assert spr.frames[1].pixels == bytes([9])


def test_rle_literal_run_only_consumes_what_fits():
    # frame 0 takes two of the four literal bytes; the cursor resumes at byte 3
    stream = bytes([0x03, 1, 2, 3, 4])
    spr = read_spr(build_spr([(1, 2, 0, 0, None), (1, 1, 0, 0, None)],
                             compressed=True, pixel_data=stream))
    assert spr.frames[0].pixels == bytes([1, 2])
    assert spr.frames[1].pixels == bytes([4])


def test_rle_truncated_input():
    stream = bytes([0x0F, 1, 2, 3])
    frame = read_spr(build_spr([(4, 4, 0, 0, None)], compressed=True, pixel_data=stream)).frames[0]
    assert frame.pixels == bytes([1, 2, 3]) + bytes(13)


def test_rle_random_streams_never_overrun():
    rng = random.Random(1234)
    for _ in range(200):
        data = bytes(rng.randrange(256) for _ in range(rng.randrange(0, 64)))
        w, h = rng.randrange(0, 9), rng.randrange(0, 9)
        s = ByteStream(data)
        pixels = decode_rle(s, w * h)
        assert len(pixels) == w * h
        assert s.tell() <= len(data)


def test_truncated_header_table():
    data = build_spr([(2, 2, 0, 0, bytes(4))] * 3)
    # keep only the first frame header
    data = data[:776 + 8]
    spr = read_spr(data)
    assert len(spr.frames) == 1
    assert spr.frames[0].pixels == bytes(4)


def test_tiny_input():
    spr = read_spr(b'\x81')
    assert spr.is_compressed
    assert spr.frames == ()
    assert read_spr(b'').frames == ()


def test_render_frame_uses_palette():
    data = build_spr([(2, 1, 0, 0, bytes([0, 1]))], colors={0: (63, 0, 0), 1: (0, 0, 63)})
    img = render_frame(read_spr(data), 0)
    assert img.mode == 'RGBA'
    assert img.size == (2, 1)
    assert img.getpixel((0, 0)) == (255, 3, 3, 0)
    assert img.getpixel((1, 0)) == (3, 3, 255, 255)
