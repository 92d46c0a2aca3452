import numpy as np
import pytest
import rasterio

from sat_mask_export.configs.constants import OutputFormat
from sat_mask_export.core.errors import EvalError, ExpressionError, OpenError, WriteError
from sat_mask_export.geo.product import InMemoryProduct
from sat_mask_export.geo.sinks import RawByteSink
from sat_mask_export.pipelines import export as export_module
from sat_mask_export.pipelines.config import init_export_config
from sat_mask_export.pipelines.export import export_mask, run_export
from conftest import L1_FLAG_DATA, L1_FLAGS

EXPR = "NOT l1_flags.INVALID AND NOT l1_flags.BRIGHT"
EXPECTED = np.where((L1_FLAG_DATA & 3) == 0, 255, 0).astype(np.uint8)


class TrackingProduct(InMemoryProduct):
    """In-memory product that can fail on one row and remembers being closed."""

    def __init__(self, fail_row=None):
        height, width = L1_FLAG_DATA.shape
        super().__init__("tracking", width, height)
        self.add_band("l1_flags", L1_FLAG_DATA.copy(), flag_coding=L1_FLAGS)
        self.fail_row = fail_row
        self.closed = False

    def read_row(self, band, y):
        if y == self.fail_row:
            raise OSError(f"read failure at row {y}")
        return super().read_row(band, y)

    def close(self):
        super().close()
        self.closed = True


def test_export_writes_raw_mask(flag_product_path, tmp_path):
    out = tmp_path / "mask.raw"
    report = export_mask(flag_product_path, out, EXPR)

    data = out.read_bytes()
    assert len(data) == 7 * 3
    np.testing.assert_array_equal(np.frombuffer(data, dtype=np.uint8).reshape(3, 7), EXPECTED)
    assert report.width == 7
    assert report.height == 3
    assert report.bytes_written == report.pixels == 21
    assert report.output_format is OutputFormat.RAW
    assert report.output_path == str(out)
    assert report.elapsed_s >= 0


def test_export_overwrites_existing_output(flag_product_path, tmp_path):
    out = tmp_path / "mask.raw"
    out.write_bytes(b"\x01" * 1000)
    export_mask(flag_product_path, out, "l1_flags.INVALID")
    assert len(out.read_bytes()) == 21


def test_export_geotiff_keeps_geocoding(flag_product_path, tmp_path):
    out = tmp_path / "mask.tif"
    report = export_mask(flag_product_path, out, EXPR, output_format="gtiff")
    assert report.output_format is OutputFormat.GTIFF
    with rasterio.open(flag_product_path) as src, rasterio.open(out) as dst:
        assert dst.crs == src.crs
        assert dst.transform == src.transform
        np.testing.assert_array_equal(dst.read(1), EXPECTED)


def test_run_export_with_config(flag_product_path, tmp_path):
    cfg = init_export_config(flag_product_path, tmp_path / "mask.raw", "l1_flags.COASTLINE", log_every=1)
    report = run_export(cfg)
    assert report.bytes_written == 21


def test_missing_input_raises_open_error_and_writes_nothing(tmp_path):
    out = tmp_path / "mask.raw"
    with pytest.raises(OpenError):
        export_mask(tmp_path / "missing.tif", out, EXPR)
    assert not out.exists()


def test_unresolvable_expression_fails_before_output_is_created(flag_product_path, tmp_path):
    out = tmp_path / "mask.raw"
    with pytest.raises(ExpressionError):
        export_mask(flag_product_path, out, "l1_flags.CLOUD AND NOT l1_flags.INVALID")
    assert not out.exists()


@pytest.mark.parametrize("expression", ["", "   "])
def test_empty_expression_checked_before_any_io(monkeypatch, tmp_path, expression):
    def fail_open(path):
        raise AssertionError("product must not be opened")

    monkeypatch.setattr(export_module, "open_product", fail_open)
    with pytest.raises(ExpressionError):
        export_mask(tmp_path / "in.tif", tmp_path / "mask.raw", expression)


@pytest.mark.parametrize("output_path", ["", "out_dir/", "bad\x00name.raw"])
def test_invalid_output_path_checked_before_any_io(monkeypatch, tmp_path, output_path):
    def fail_open(path):
        raise AssertionError("product must not be opened")

    monkeypatch.setattr(export_module, "open_product", fail_open)
    with pytest.raises(WriteError):
        export_mask(tmp_path / "in.tif", output_path, EXPR)


def test_unknown_format_rejected(flag_product_path, tmp_path):
    with pytest.raises(ValueError):
        export_mask(flag_product_path, tmp_path / "mask.raw", EXPR, output_format="png")


def test_eval_failure_keeps_prefix_and_closes_resources(monkeypatch, tmp_path):
    product = TrackingProduct(fail_row=2)
    monkeypatch.setattr(export_module, "open_product", lambda path: product)
    out = tmp_path / "mask.raw"

    with pytest.raises(EvalError) as excinfo:
        export_mask("tracking.tif", out, EXPR)

    assert excinfo.value.row == 2
    assert product.closed
    data = out.read_bytes()
    assert len(data) == 2 * 7
    np.testing.assert_array_equal(np.frombuffer(data, dtype=np.uint8).reshape(2, 7), EXPECTED[:2])


def test_close_failure_does_not_mask_eval_error(monkeypatch, tmp_path):
    product = TrackingProduct(fail_row=1)
    monkeypatch.setattr(export_module, "open_product", lambda path: product)
    sinks = []

    class FailingCloseSink(RawByteSink):
        def _close(self):
            super()._close()
            raise OSError(5, "Input/output error")

    def make_sink(path, width, height, fmt=None, crs=None, transform=None):
        sink = FailingCloseSink(path, width, height)
        sinks.append(sink)
        return sink

    monkeypatch.setattr(export_module, "create_sink", make_sink)

    with pytest.raises(EvalError) as excinfo:
        export_mask("tracking.tif", tmp_path / "mask.raw", EXPR)
    assert excinfo.value.row == 1
    assert sinks[0].closed
    assert product.closed


def test_close_failure_after_success_is_write_error(tmp_path):
    class FailingCloseSink(RawByteSink):
        def _close(self):
            super()._close()
            raise OSError(5, "Input/output error")

    with pytest.raises(WriteError, match="failed to close"):
        with FailingCloseSink(tmp_path / "mask.raw", 1, 1) as sink:
            sink.write_row(np.array([255], dtype=np.uint8))


def test_write_failure_reports_path_and_closes_resources(monkeypatch, tmp_path):
    product = TrackingProduct()
    monkeypatch.setattr(export_module, "open_product", lambda path: product)
    sinks = []

    class DiskFullSink(RawByteSink):
        def _write(self, row, y):
            if y == 1:
                raise OSError(28, "No space left on device")
            super()._write(row, y)

    def make_sink(path, width, height, fmt=None, crs=None, transform=None):
        sink = DiskFullSink(path, width, height)
        sinks.append(sink)
        return sink

    monkeypatch.setattr(export_module, "create_sink", make_sink)
    out = tmp_path / "mask.raw"

    with pytest.raises(WriteError) as excinfo:
        export_mask("tracking.tif", out, EXPR)

    assert excinfo.value.row == 1
    assert excinfo.value.path == str(out)
    assert product.closed
    assert sinks[0].closed
    assert len(out.read_bytes()) == 7
