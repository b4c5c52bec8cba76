"""
Tests for the compliance classifier.
"""
from decimal import Decimal

import pytest

from procureflow.core.errors import InvalidInput
from procureflow.schemas import IssueType, Item, Severity
from procureflow.services.compliance import classify, parse_height_inches
from procureflow.services.demo_data import demo_item_set


def make_item(**overrides) -> Item:
    data = {
        "id": "item_x",
        "category": "Furniture",
        "name": "Test Item",
        "quantity": 4,
        "unit_price": Decimal("100"),
    }
    data.update(overrides)
    return Item(**data)


# ============= HEIGHT PARSING =============

class TestParseHeight:
    """Tests for extracting the height dimension."""

    @pytest.mark.parametrize("dimensions,expected", [
        ('80"L x 76"W x 14"H', 14.0),
        ('48"W x 24"D x 30"H', 30.0),
        ("36 in H", 36.0),
        ("Height: 30in", 30.0),
        ("91.44 cm high", 36.0),
    ])
    def test_parses_common_formats(self, dimensions, expected):
        assert parse_height_inches(dimensions) == pytest.approx(expected)

    def test_no_height_component(self):
        assert parse_height_inches('54"W x 96"L') is None
        assert parse_height_inches(None) is None


# ============= RULES =============

class TestFireSafety:
    """Fire rating rule."""

    def test_missing_fire_certification_is_critical(self):
        item = make_item(compliance={"fire_rating_required": True})
        report = classify([item])

        assert len(report.issues) == 1
        issue = report.issues[0]
        assert issue.issue_type == IssueType.FIRE_SAFETY
        assert issue.severity == Severity.CRITICAL
        assert issue.affected_quantity == 4

    @pytest.mark.parametrize("cert", ["CAL 117-2013", "TB117", "NFPA 701", "BS 5852", "Fire Retardant"])
    def test_fire_certification_clears_issue(self, cert):
        item = make_item(compliance={"fire_rating_required": True, "certifications": [cert]})
        assert classify([item]).issues == []

    @pytest.mark.parametrize("cert", ["Not fire rated", "Non-fire-retardant fabric", "No fire rating", "Fireplace safe"])
    def test_fire_wording_without_certification_stays_critical(self, cert):
        item = make_item(compliance={"fire_rating_required": True, "certifications": [cert]})
        issues = classify([item]).issues

        assert [(i.issue_type, i.severity) for i in issues] == [(IssueType.FIRE_SAFETY, Severity.CRITICAL)]


class TestMoisture:
    """Wet-zone material rule."""

    @pytest.mark.parametrize("material", ["MDF", "Particle board core", "Unsealed wood", "chipboard"])
    def test_disallowed_material_is_critical(self, material):
        item = make_item(specifications={"material": material}, compliance={"moisture_zone": "wet"})
        issues = classify([item]).issues

        assert [(i.issue_type, i.severity) for i in issues] == [(IssueType.MOISTURE, Severity.CRITICAL)]

    @pytest.mark.parametrize("material", ["Marine plywood", "Stainless steel", "Sealed wood", "Tempered glass"])
    def test_allowed_material_passes(self, material):
        item = make_item(specifications={"material": material}, compliance={"moisture_zone": "wet"})
        assert classify([item]).issues == []

    def test_unknown_material_is_info(self):
        item = make_item(specifications={"material": "Bamboo"}, compliance={"moisture_zone": "wet"})
        issues = classify([item]).issues

        assert len(issues) == 1
        assert issues[0].severity == Severity.INFO

    def test_dry_zone_is_ignored(self):
        item = make_item(specifications={"material": "MDF"})
        assert classify([item]).issues == []


class TestAda:
    """Accessible height rule."""

    def test_height_outside_range_is_warning(self):
        item = make_item(specifications={"dimensions": '72"W x 30"D x 42"H'}, compliance={"ada_relevant": True})
        issues = classify([item]).issues

        assert len(issues) == 1
        assert issues[0].issue_type == IssueType.ADA
        assert issues[0].severity == Severity.WARNING

    def test_height_within_range_passes(self):
        item = make_item(specifications={"dimensions": '48"W x 24"D x 30"H'}, compliance={"ada_relevant": True})
        assert classify([item]).issues == []

    def test_custom_range(self):
        item = make_item(specifications={"dimensions": '48"W x 24"D x 30"H'}, compliance={"ada_relevant": True})
        issues = classify([item], ada_range=(32, 36)).issues
        assert issues[0].severity == Severity.WARNING

    def test_missing_height_is_info(self):
        item = make_item(specifications={"dimensions": '48"W x 24"D'}, compliance={"ada_relevant": True})
        issues = classify([item]).issues
        assert issues[0].severity == Severity.INFO


class TestElectrical:
    """UL/CE certification rule."""

    @pytest.mark.parametrize("category", ["Electronics", "Appliances", "HVAC", "Lighting"])
    def test_uncertified_electrical_is_critical(self, category):
        item = make_item(category=category)
        issues = classify([item]).issues

        assert [(i.issue_type, i.severity) for i in issues] == [(IssueType.ELECTRICAL, Severity.CRITICAL)]

    @pytest.mark.parametrize("cert", ["UL Listed", "cULus", "CE Certified"])
    def test_ul_or_ce_clears_issue(self, cert):
        item = make_item(category="Electronics", compliance={"certifications": [cert]})
        assert classify([item]).issues == []

    def test_unrelated_certification_does_not_count(self):
        item = make_item(category="Electronics", compliance={"certifications": ["Energy Star"]})
        assert len(classify([item]).issues) == 1


# ============= REPORT =============

class TestReport:
    """Summary, recommendations and input validation."""

    def test_summary_counts_and_risk(self, scenario_items):
        report = classify(scenario_items)

        assert report.summary.total_items == 3
        assert report.summary.critical == 2
        assert report.summary.warning == 0
        assert report.summary.compliant_items == 1
        assert report.summary.risk_score == 20

    def test_risk_score_is_capped(self):
        items = [make_item(id=f"i{n}", category="Electronics") for n in range(15)]
        assert classify(items).summary.risk_score == 100

    def test_recommendations_are_distinct(self):
        items = [make_item(id=f"i{n}", category="Electronics") for n in range(3)]
        assert len(classify(items).recommendations) == 1

    def test_item_id_filter(self, scenario_items):
        report = classify(scenario_items, item_ids=["item_002"])

        assert report.summary.total_items == 1
        assert {i.item_id for i in report.issues} == {"item_002"}

    def test_unknown_item_id_rejected(self, scenario_items):
        with pytest.raises(InvalidInput):
            classify(scenario_items, item_ids=["nope"])

    def test_zero_items_rejected(self):
        with pytest.raises(InvalidInput):
            classify([])

    def test_reclassification_is_identical(self):
        items = demo_item_set(30).items
        assert classify(items).to_json_dict() == classify(items).to_json_dict()
