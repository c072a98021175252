"""
Reconciliation Test

Validates the fiscal manifest vs loading note comparison:
1. Numeric fields are classified by absolute tolerance bands
2. A field missing on either side produces no result
3. Text fields compare by containment and are never errors
4. The report status is FAIL on an error, WARN on a warning, else PASS
"""

from decimal import Decimal

import pytest

from core.models import (
    FiscalManifestRecord,
    LoadingNoteRecord,
    ManifestProductInfo,
    ReportStatus,
    Severity,
)
from reconciliation import Band, ToleranceConfig, build_report, compare_numeric, reconcile_documents


def _manifest(net="0", volume="0", description=""):
    return FiscalManifestRecord(
        product_info=ManifestProductInfo(
            net_weight_kg=Decimal(net),
            volume_at_15c_l=Decimal(volume),
            description=description,
        )
    )


def _note(net="0", volume="0", description=""):
    return LoadingNoteRecord(
        net_weight_kg=Decimal(net),
        volume_liters=Decimal(volume),
        product_description=description,
    )


@pytest.fixture
def tolerances():
    return ToleranceConfig()


def _by_field(results):
    return {r.field: r for r in results}


class TestNumericComparison:
    """Test absolute tolerance bands."""

    def test_weight_within_tolerance(self, tolerances):
        """1000 vs 1030 kg is a match at info level."""
        results = _by_field(reconcile_documents(_manifest(net="1000"), _note(net="1030"), tolerances))

        assert results["net_weight_kg"].is_match is True
        assert results["net_weight_kg"].severity == Severity.INFO

    def test_weight_over_error_band(self, tolerances):
        """1000 vs 1200 kg is a mismatch at error level."""
        results = _by_field(reconcile_documents(_manifest(net="1000"), _note(net="1200"), tolerances))

        assert results["net_weight_kg"].is_match is False
        assert results["net_weight_kg"].severity == Severity.ERROR

    def test_weight_in_warning_band(self, tolerances):
        """1000 vs 1080 kg is a mismatch at warning level."""
        results = _by_field(reconcile_documents(_manifest(net="1000"), _note(net="1080"), tolerances))

        assert results["net_weight_kg"].severity == Severity.WARNING

    @pytest.mark.parametrize("note_volume, severity", [
        ("15330", Severity.INFO),
        ("15400", Severity.WARNING),
        ("15500", Severity.ERROR),
    ])
    def test_volume_bands(self, tolerances, note_volume, severity):
        """Volume uses its own band (100 L / 200 L)."""
        results = _by_field(
            reconcile_documents(_manifest(volume="15230"), _note(volume=note_volume), tolerances)
        )

        assert results["volume_liters"].severity == severity

    def test_band_edges_are_inclusive(self):
        """A difference equal to the tolerance still matches."""
        band = Band(Decimal("50"), Decimal("100"))

        assert compare_numeric("w", Decimal("1000"), Decimal("1050"), band, "kg").is_match is True
        assert compare_numeric("w", Decimal("1000"), Decimal("1100"), band, "kg").severity == Severity.WARNING

    def test_invalid_band(self):
        with pytest.raises(ValueError):
            Band(Decimal("100"), Decimal("50"))


class TestMissingFields:
    """Test that absence is not a discrepancy."""

    def test_missing_volume_gives_no_result(self, tolerances):
        """Volume present on one side only is skipped."""
        results = reconcile_documents(
            _manifest(net="1000", volume="15230"), _note(net="1000"), tolerances,
        )

        assert [r.field for r in results] == ["net_weight_kg"]

    def test_nothing_comparable(self, tolerances):
        """Two empty documents give an empty list."""
        assert reconcile_documents(_manifest(), _note(), tolerances) == []


class TestTextComparison:
    """Test product description comparison."""

    def test_containment_matches(self, tolerances):
        """A shorter description contained in the longer one matches."""
        results = _by_field(reconcile_documents(
            _manifest(description="GASOLIO AUTOTRAZIONE 10PPM"),
            _note(description="gasolio autotrazione"),
            tolerances,
        ))

        assert results["product_description"].is_match is True

    def test_different_products_warn(self, tolerances):
        """A different product is a warning, never an error."""
        results = _by_field(reconcile_documents(
            _manifest(description="GASOLIO AUTOTRAZIONE"),
            _note(description="BENZINA SENZA PIOMBO"),
            tolerances,
        ))

        assert results["product_description"].is_match is False
        assert results["product_description"].severity == Severity.WARNING


class TestReport:
    """Test report aggregation."""

    def test_fail_on_error(self, tolerances):
        results = reconcile_documents(
            _manifest(net="1000", volume="15230"), _note(net="1200", volume="15230"), tolerances,
        )
        report = build_report(results)

        assert report.status == ReportStatus.FAIL
        assert report.summary == {"checked": 2, "matched": 1, "warnings": 0, "errors": 1}
        assert [r.field for r in report.errors] == ["net_weight_kg"]

    def test_warn_on_warning(self, tolerances):
        results = reconcile_documents(_manifest(net="1000"), _note(net="1080"), tolerances)

        assert build_report(results).status == ReportStatus.WARN

    def test_pass(self, tolerances):
        results = reconcile_documents(_manifest(net="1000"), _note(net="1000"), tolerances)

        assert build_report(results).status == ReportStatus.PASS

    def test_empty_report_passes(self):
        assert build_report([]).status == ReportStatus.PASS

    def test_results_serialize(self, tolerances):
        """to_dict gives plain values."""
        result = reconcile_documents(_manifest(net="1000"), _note(net="1030"), tolerances)[0]

        assert result.to_dict() == {
            "field": "net_weight_kg",
            "value_a": "1000",
            "value_b": "1030",
            "is_match": True,
            "severity": "info",
            "message": result.message,
        }


class TestToleranceSettings:
    """Test tolerance bands read from the environment."""

    def test_from_settings(self, monkeypatch):
        """WEIGHT_TOLERANCE_KG overrides the default weight band."""
        from core.config import reset_settings

        monkeypatch.setenv("WEIGHT_TOLERANCE_KG", "10")
        monkeypatch.setenv("WEIGHT_ERROR_BAND_KG", "20")
        reset_settings()
        try:
            config = ToleranceConfig.from_settings()
        finally:
            monkeypatch.undo()
            reset_settings()

        assert config.weight == Band(Decimal("10"), Decimal("20"))
        assert config.volume == Band(Decimal("100"), Decimal("200"))
