import numpy as np

from sat_mask_export.core.masks import bool_to_mask_values, flag_set_mask, to_mask_bytes


def test_to_mask_bytes_keeps_low_byte():
    out = to_mask_bytes([0, 255, 256, 511, -1, 1])
    assert out.dtype == np.uint8
    assert out.tolist() == [0, 255, 0, 255, 255, 1]


def test_to_mask_bytes_booleans_map_to_255():
    out = to_mask_bytes(np.array([True, False, True]))
    assert out.tolist() == [255, 0, 255]


def test_to_mask_bytes_writes_into_given_buffer():
    buf = np.zeros(4, dtype=np.uint8)
    out = to_mask_bytes(np.array([255, 0, 255, 0], dtype=np.int32), out=buf)
    assert out is buf
    assert buf.tolist() == [255, 0, 255, 0]

    to_mask_bytes(np.array([0, 0, 0, 255], dtype=np.int32), out=buf)
    assert buf.tolist() == [0, 0, 0, 255]


def test_to_mask_bytes_truncates_floats():
    assert to_mask_bytes(np.array([255.9, 0.2])).tolist() == [255, 0]


def test_flag_set_mask_requires_all_bits():
    raw = np.array([0, 1, 2, 3, 7], dtype=np.uint8)
    assert flag_set_mask(raw, 1).tolist() == [False, True, False, True, True]
    assert flag_set_mask(raw, 3).tolist() == [False, False, False, True, True]


def test_bool_to_mask_values():
    values = bool_to_mask_values(np.array([[True, False]]))
    assert values.dtype == np.uint8
    assert values.tolist() == [[255, 0]]
