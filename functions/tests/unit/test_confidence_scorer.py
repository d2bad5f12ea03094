"""Unit tests for the validation and scoring stage."""

import pytest
from unittest.mock import patch

from agents.scorers.confidence_scorer import ConfidenceScorer
from models.blueprint import BlueprintAnalysis
from models.line_item import LineItem


def _item(category, confidence=0.7, quantity=1, unit_price=100):
    return LineItem(
        name=f"{category} item",
        category=category,
        quantity=quantity,
        unit_price=unit_price,
        ai_confidence=confidence,
    )


class TestConfidenceScorer:
    """Tests for ConfidenceScorer."""
    
    @pytest.mark.asyncio
    async def test_single_member_category_penalty(self, minimal_analysis):
        result = await ConfidenceScorer().run([_item("Electrical")], minimal_analysis)
        
        assert result.items[0].ai_confidence == pytest.approx(0.63)
        assert result.average_confidence == pytest.approx(0.63)
    
    @pytest.mark.asyncio
    async def test_penalties_use_each_items_own_base(self, minimal_analysis):
        items = [_item("MEP", 0.9), _item("MEP", 0.5)]
        
        result = await ConfidenceScorer().run(items, minimal_analysis)
        
        assert [i.ai_confidence for i in result.items] == [0.9, 0.5]
        assert result.average_confidence == pytest.approx(0.7)
    
    @pytest.mark.asyncio
    async def test_low_extraction_penalty(self):
        analysis = BlueprintAnalysis(metadata={"extractedBy": "vision-ai", "confidence": "low"})
        items = [_item("MEP"), _item("MEP")]
        
        result = await ConfidenceScorer().run(items, analysis)
        
        assert result.items[0].ai_confidence == pytest.approx(0.56)
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity,unit_price", [(0, 100), (5, 0), (-2, 100)])
    async def test_non_positive_value_penalty(self, minimal_analysis, quantity, unit_price):
        items = [_item("MEP", quantity=quantity, unit_price=unit_price), _item("MEP")]
        
        result = await ConfidenceScorer().run(items, minimal_analysis)
        
        assert result.items[0].ai_confidence == pytest.approx(0.35)
        assert result.items[1].ai_confidence == pytest.approx(0.7)
    
    @pytest.mark.asyncio
    async def test_all_penalties_combine(self):
        analysis = BlueprintAnalysis(metadata={"confidence": "low"})
        
        result = await ConfidenceScorer().run([_item("MEP", 1.0, quantity=0)], analysis)
        
        assert result.items[0].ai_confidence == pytest.approx(1.0 * 0.8 * 0.9 * 0.5)
    
    @pytest.mark.asyncio
    async def test_coverage_percentage(self, minimal_analysis):
        scorer = ConfidenceScorer()
        
        none_covered = await scorer.run([_item("Electrical"), _item("Demolition")], minimal_analysis)
        half_covered = await scorer.run([_item("Foundation"), _item("MEP"), _item("General")], minimal_analysis)
        all_covered = await scorer.run(
            [_item("Foundation"), _item("Structural"), _item("MEP"), _item("Finishes")],
            minimal_analysis
        )
        
        assert none_covered.coverage_percentage == 0
        assert half_covered.coverage_percentage == 50
        assert all_covered.coverage_percentage == 100
    
    @pytest.mark.asyncio
    async def test_totals_and_summary(self, minimal_analysis):
        items = [_item("MEP", 0.9, quantity=2, unit_price=50), _item("MEP", 0.6), _item("Finishes", 0.4)]
        
        result = await ConfidenceScorer().run(items, minimal_analysis)
        
        assert result.total_value == pytest.approx(300)
        assert result.validation_summary.total_items == 3
        assert result.validation_summary.high_confidence_items == 1
        assert result.validation_summary.medium_confidence_items == 1
        assert result.validation_summary.low_confidence_items == 1
    
    @pytest.mark.asyncio
    async def test_line_totals_and_ids_preserved(self, sample_line_items, blueprint_analysis):
        result = await ConfidenceScorer().run(sample_line_items, blueprint_analysis)
        
        for before, after in zip(sample_line_items, result.items):
            assert after.item_id == before.item_id
            assert after.line_total == pytest.approx(after.quantity * after.unit_price)
            assert 0.0 <= after.ai_confidence <= 1.0
    
    @pytest.mark.asyncio
    async def test_empty_list(self, minimal_analysis):
        result = await ConfidenceScorer().run([], minimal_analysis)
        
        assert result.items == []
        assert result.average_confidence == 0.0
        assert result.coverage_percentage == 0
        assert result.total_value == 0
        assert result.degraded is False
    
    @pytest.mark.asyncio
    async def test_dict_items_normalized(self, minimal_analysis):
        result = await ConfidenceScorer().run(
            [{"name": "Loose", "quantity": "-3"}, {}],
            minimal_analysis
        )
        
        assert result.degraded is False
        assert len(result.items) == 2
        assert all(0.0 <= i.ai_confidence <= 1.0 for i in result.items)
    
    @pytest.mark.asyncio
    async def test_internal_error_degrades(self, sample_line_items, minimal_analysis):
        with patch.object(
            ConfidenceScorer,
            "coverage_percentage",
            side_effect=RuntimeError("scoring bug")
        ):
            result = await ConfidenceScorer().run(sample_line_items, minimal_analysis)
        
        assert result.degraded is True
        assert result.error == "scoring bug"
        assert result.average_confidence == 0.7
        assert result.coverage_percentage == 75
        assert all(i.ai_confidence == 0.7 for i in result.items)
        assert result.total_value == pytest.approx(sum(i.line_total for i in sample_line_items))
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("items", [None, [object()], [None]])
    async def test_never_raises(self, items, minimal_analysis):
        result = await ConfidenceScorer().run(items, minimal_analysis)
        
        assert result.average_confidence >= 0
        assert result.coverage_percentage >= 0
