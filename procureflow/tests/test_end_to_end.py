"""
End-to-end run over the three-item, two-supplier renovation scenario.
"""
from decimal import Decimal

from procureflow.schemas import ArtifactKey, Stage

WS = "ws-scenario"


def test_scenario_workflow(scenario_machine, scenario_item_set, store):
    machine = scenario_machine

    # Extraction: supplied item set
    result = machine.extraction(WS, item_set=scenario_item_set)
    assert result.artifact["totalEstimatedCost"] == "9000.00"

    # Compliance: chair fire rating and MDF vanity are critical, the TV passes
    report = machine.compliance(WS).artifact
    assert report["summary"]["critical"] == 2
    assert report["summary"]["compliantItems"] == 1
    assert report["summary"]["riskScore"] == 20
    assert {i["itemId"] for i in report["issues"]} == {"item_001", "item_002"}

    # Matching: default threshold keeps only the local furniture supplier
    strict = machine.supplier_matching(WS, buyer_location="San Diego, CA").artifact
    assert [m["supplierId"] for m in strict["matches"]] == ["SUP_A"]
    assert strict["unmatchedItems"] == [
        {"itemId": "item_003", "itemName": '55" Smart TV', "reason": "below_threshold"}
    ]

    # Re-run with no threshold so both suppliers are invited
    loose = machine.supplier_matching(WS, buyer_location="San Diego, CA", min_score=0).artifact
    assert [m["supplierId"] for m in loose["matches"]] == ["SUP_A", "SUP_B"]
    assert loose["matches"][0]["totalScore"] == 86.67
    assert loose["matches"][1]["totalScore"] == 58.33

    bundle = machine.rfq(WS, due_date="2031-03-01").artifact
    assert [s["supplierId"] for s in bundle["suppliers"]] == ["SUP_A", "SUP_B"]
    assert Decimal(bundle["totalEstimatedValue"]) == Decimal("9000")

    bids = [
        {"bidId": "BID_A", "supplierId": "SUP_A", "totalBidAmount": "4800", "averageLeadTimeWeeks": 4,
         "warrantyYears": 2, "certificationsCoveragePct": 90},
        {"bidId": "BID_B", "supplierId": "SUP_B", "totalBidAmount": "4100", "averageLeadTimeWeeks": 6,
         "warrantyYears": 1, "certificationsCoveragePct": 95},
    ]
    comparison = machine.bid_comparison(WS, bids=bids).artifact
    # A: 0 + 28.5 + 20 + 9 = 57.5; B: 40 + 21.75 + 0 + 9.5 = 71.25
    assert comparison["winningBidId"] == "BID_B"
    assert Decimal(comparison["costBreakdown"]["potentialSavings"]) == Decimal("700")

    # Buyer overrides the recommendation
    accepted = machine.bid_accepted(WS, bid_id="BID_A").artifact
    assert accepted["rank"] == 2

    machine.contract(WS)
    po = machine.purchase_order(WS, payment_method="credit_card").artifact
    assert Decimal(po["amount"]) == Decimal("4800")

    shipment = machine.shipment(WS, tracking_number="1Z999", carrier="UPS", estimated_delivery="2031-04-01").artifact
    assert shipment["trackingNumber"] == "1Z999"

    # SUP_A was matched the chair (10) and the vanity (5)
    delivery = machine.delivery(WS, received_quantity=14, notes="one chair missing").artifact
    assert delivery["expectedQuantity"] == 15
    assert delivery["shortfall"] == 1

    machine.quality_control(WS, "Upholstered Lounge Chair", "missing_parts", "minor", "One chair short",
                            item_id="item_001")
    done = machine.complete(WS)

    assert done.current_stage == Stage.COMPLETED
    assert done.next_command is None
    assert done.artifact["finalCost"] == "4800"
    assert done.artifact["openQualityIssues"] == 1
    assert store.recall(WS, ArtifactKey.CURRENT_STAGE) == "completed"
