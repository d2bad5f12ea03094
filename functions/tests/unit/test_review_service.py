"""Unit tests for PM review of line items."""

import pytest

from config.errors import ErrorCode, ValidationError
from models.line_item import LineItem, ReviewStatus
from services.review_service import (
    PM_ITEM_CONFIDENCE,
    build_pm_item,
    review_line_items,
)


@pytest.fixture
def items():
    return [
        LineItem(item_id="LI_1", name="Strip footing", category="Foundation",
                 quantity=18, unit="m3", unit_price=185, ai_confidence=0.8),
        LineItem(item_id="LI_2", name="Brick walls", category="Structural",
                 quantity=2400, unit="sq ft", unit_price=14.5, ai_confidence=0.7),
        LineItem(item_id="LI_3", name="Paint", category="Finishes",
                 quantity=1450, unit="sq ft", unit_price=9, ai_confidence=0.6),
    ]


@pytest.fixture
def item_dicts(items):
    return [item.to_dict() for item in items]


class TestApprove:
    
    def test_marks_every_item(self, item_dicts):
        result = review_line_items(item_dicts, "proj-1", "approve")
        
        assert result.success is True
        assert len(result.line_items) == 3
        for item in result.line_items:
            assert item.pm_reviewed is True
            assert item.pm_approved is True
            assert item.review_status == ReviewStatus.APPROVED
            assert item.review_date == result.metadata.review_date
        assert result.metadata.original_item_count == 3
        assert result.metadata.final_item_count == 3
        assert result.metadata.adjustments_made == 0
        assert result.metadata.project_id == "proj-1"
        assert result.metadata.reviewed_by == "Project Manager"
    
    def test_accepts_line_item_instances(self, items):
        result = review_line_items(items, "proj-1", "approve")
        
        assert [i.item_id for i in result.line_items] == ["LI_1", "LI_2", "LI_3"]
        assert items[0].pm_reviewed is None


class TestAdjust:
    
    def test_adjustment_recomputes_total(self, item_dicts):
        result = review_line_items(
            item_dicts, "proj-1", "adjust",
            [{"itemId": "LI_2", "quantity": "2,000", "unitPrice": 15, "notes": "Remeasured"}]
        )
        
        adjusted = result.line_items[1]
        assert adjusted.quantity == 2000
        assert adjusted.unit_price == 15
        assert adjusted.line_total == 30000
        assert adjusted.notes == "Remeasured"
        assert adjusted.review_status == ReviewStatus.ADJUSTED
        assert adjusted.original_values == {
            "name": "Brick walls",
            "description": "",
            "quantity": 2400,
            "unitPrice": 14.5,
            "lineTotal": 34800,
        }
        assert result.line_items[0].review_status is None
        assert result.summary.adjusted_items == 1
        assert result.summary.total_value == pytest.approx(18 * 185 + 30000 + 1450 * 9)
    
    def test_unparseable_numbers_keep_current_values(self, item_dicts):
        result = review_line_items(
            item_dicts, "proj-1", "adjust",
            [{"itemId": "LI_1", "quantity": "lots", "name": "Strip footing (revised)"}]
        )
        
        adjusted = result.line_items[0]
        assert adjusted.quantity == 18
        assert adjusted.name == "Strip footing (revised)"
    
    def test_null_or_non_string_text_fields(self, item_dicts):
        result = review_line_items(
            item_dicts, "proj-1", "adjust",
            [{"itemId": "LI_1", "name": None, "description": "", "category": 7, "unit": "m3 "}]
        )
        
        adjusted = result.line_items[0]
        assert adjusted.name == "Strip footing"
        assert adjusted.description == ""
        assert adjusted.category == "7"
        assert adjusted.unit == "m3 "
    
    def test_first_adjustment_per_item_wins(self, item_dicts):
        result = review_line_items(
            item_dicts, "proj-1", "adjust",
            [{"itemId": "LI_3", "unitPrice": 10}, {"itemId": "LI_3", "unitPrice": 99}]
        )
        
        assert result.line_items[2].unit_price == 10
    
    def test_unknown_ids_ignored(self, item_dicts):
        result = review_line_items(item_dicts, "proj-1", "adjust", [{"itemId": "LI_404", "quantity": 1}])
        
        assert all(item.review_status is None for item in result.line_items)
        assert result.metadata.adjustments_made == 1


class TestAdd:
    
    def test_adds_pm_items(self, item_dicts):
        result = review_line_items(
            item_dicts, "proj-1", "add",
            [{"name": "Skip hire", "unitPrice": 450, "category": "Demolition"}]
        )
        
        added = result.line_items[-1]
        assert added.item_id.startswith("PM_")
        assert added.is_ai_generated is False
        assert added.ai_confidence == PM_ITEM_CONFIDENCE
        assert added.quantity == 1
        assert added.line_total == 450
        assert added.notes == "Added by Project Manager"
        assert added.review_status == ReviewStatus.ADDED
        assert result.summary.pm_added_items == 1
        assert result.summary.ai_generated_items == 3
        assert "Demolition" in result.summary.categories
    
    def test_zero_quantity_becomes_one(self):
        item = build_pm_item({"name": "Permit", "quantity": 0, "unitPrice": 300}, "2025-01-01")
        
        assert item.quantity == 1
        assert item.line_total == 300


class TestRemove:
    
    def test_removes_by_id(self, item_dicts):
        result = review_line_items(item_dicts, "proj-1", "remove", [{"itemId": "LI_1"}, {"itemId": "LI_3"}])
        
        assert [i.item_id for i in result.line_items] == ["LI_2"]
        assert result.metadata.final_item_count == 1
        assert result.summary.total_value == pytest.approx(34800)


class TestErrors:
    
    def test_invalid_action(self, item_dicts):
        with pytest.raises(ValidationError) as exc_info:
            review_line_items(item_dicts, "proj-1", "publish")
        
        assert exc_info.value.code == ErrorCode.INVALID_REVIEW_ACTION
        assert "approve, adjust, add, or remove" in exc_info.value.message
    
    def test_malformed_item(self):
        with pytest.raises(ValidationError) as exc_info:
            review_line_items([{"name": "Bad", "quantity": "many"}], "proj-1", "approve")
        
        assert exc_info.value.code == ErrorCode.INVALID_FIELD
        assert exc_info.value.details["index"] == 0


class TestSerialization:
    
    def test_to_dict_camel_case(self, item_dicts):
        data = review_line_items(item_dicts, "proj-1", "approve").to_dict()
        
        assert data["metadata"]["originalItemCount"] == 3
        assert data["summary"]["aiGeneratedItems"] == 3
        assert data["lineItems"][0]["reviewStatus"] == "approved"
        assert data["lineItems"][0]["lineTotal"] == 3330
