"""Tests for QC flag buckets, sentinels and the summary table."""

from __future__ import annotations

import numpy as np
import pytest

from obsqc.methods.qc.flags import BUCKETS, Bucket, QCFlag, bucket_of, tally_flags
from obsqc.methods.qc.summary import QCSummary, VariableQCSummary
from obsqc.util.missing import (
    FLOAT_MISSING,
    INT_MISSING,
    fill_missing,
    has_missing_value,
    is_missing,
    missing_value,
)


class TestBuckets:
    @pytest.mark.parametrize(
        "code, bucket",
        [
            (0, Bucket.PASS),
            (1, Bucket.MISSING),
            (2, Bucket.PREQC),
            (3, Bucket.BOUNDS),
            (4, Bucket.DOMAIN),
            (5, Bucket.BLACK),
            (6, Bucket.HFAILED),
            (7, Bucket.THINNED),
            (10, Bucket.FGUESS),
            (76, Bucket.GNSS_REALITY),
            (77, Bucket.GNSS_REALITY),
            (8, Bucket.OTHER),
            (9, Bucket.OTHER),
            (78, Bucket.OTHER),
            (INT_MISSING, Bucket.OTHER),
        ],
    )
    def test_bucket_of(self, code, bucket) -> None:
        assert bucket_of(code) is bucket

    def test_tally_covers_every_bucket(self) -> None:
        counts = tally_flags(np.array([0, 0, 1, 76, 77, 8, 42], dtype=np.int32))
        assert set(counts) == set(BUCKETS)
        assert counts[Bucket.PASS] == 2
        assert counts[Bucket.GNSS_REALITY] == 2
        assert counts[Bucket.OTHER] == 2
        assert counts[Bucket.BOUNDS] == 0
        assert sum(counts.values()) == 7

    def test_tally_empty(self) -> None:
        assert sum(tally_flags(np.array([], dtype=np.int32)).values()) == 0

    def test_pass_is_zero(self) -> None:
        assert int(QCFlag.PASS) == 0
        assert BUCKETS[0] is Bucket.PASS
        assert BUCKETS[-1] is Bucket.OTHER


class TestMissingValues:
    def test_float_sentinels_per_dtype(self) -> None:
        assert missing_value(np.float32) == np.float32(FLOAT_MISSING)
        assert missing_value(np.float64) == FLOAT_MISSING
        assert missing_value(np.float32).dtype == np.float32

    def test_int_sentinel(self) -> None:
        assert missing_value(np.int32) == -2147483647
        assert missing_value(np.int64) == INT_MISSING

    @pytest.mark.parametrize("dtype", [np.int8, np.int16, np.uint8, np.uint32])
    def test_narrow_int_has_no_sentinel(self, dtype) -> None:
        assert not has_missing_value(dtype)
        with pytest.raises(TypeError):
            missing_value(dtype)
        info = np.iinfo(dtype)
        assert not is_missing(np.array([info.min, 0, info.max], dtype=dtype)).any()

    def test_unsupported_dtype(self) -> None:
        with pytest.raises(TypeError):
            missing_value(np.bool_)

    def test_fill_missing_replaces_nan(self) -> None:
        out = fill_missing([1.5, np.nan, 3.0], dtype=np.float32)
        assert out.dtype == np.float32
        assert is_missing(out).tolist() == [False, True, False]

    def test_fill_missing_int(self) -> None:
        out = fill_missing([0.0, np.nan, 2.0], dtype=np.int32)
        assert out.tolist() == [0, INT_MISSING, 2]

    def test_nan_is_not_the_sentinel(self) -> None:
        assert not is_missing(np.array([np.nan])).any()


class TestSummary:
    @pytest.fixture
    def summary(self) -> QCSummary:
        counts = {b: 0 for b in BUCKETS}
        counts.update({Bucket.PASS: 5, Bucket.BOUNDS: 2, Bucket.THINNED: 1, Bucket.FGUESS: 1})
        return QCSummary(
            obstype="sonde",
            variables=[VariableQCSummary(variable="t", counts=counts, total=9)],
        )

    def test_line_order(self, summary) -> None:
        assert summary.lines() == [
            "QC sonde t: 2 out of bounds.",
            "QC sonde t: 1 removed by thinning.",
            "QC sonde t: 1 rejected by first-guess check.",
            "QC sonde t: 5 passed out of 9 observations.",
        ]

    def test_text(self, summary) -> None:
        assert summary.to_text().endswith("5 passed out of 9 observations.")

    def test_counts(self, summary) -> None:
        t = summary["t"]
        assert t.passed == 5
        assert t.rejected == 4
        assert t.is_conserved

    def test_unknown_variable(self, summary) -> None:
        with pytest.raises(KeyError):
            summary["q"]

    def test_to_frame(self, summary) -> None:
        df = summary.to_frame()
        assert list(df.columns) == ["obstype", "variable", *(b.value for b in BUCKETS), "total"]
        row = df.iloc[0]
        assert row["variable"] == "t"
        assert row["pass"] == 5
        assert row["bounds"] == 2
        assert row["total"] == 9
