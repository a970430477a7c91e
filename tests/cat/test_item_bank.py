"""
Tests for the item bank: item validation, ordering, lookups and the quality
report.
"""

import pytest

from adaptive_assessment.core.cat.item_bank import (
    MIN_RECOMMENDED_ITEMS,
    Item,
    ItemBank,
    build_emotional_item_bank,
    validate_item_bank,
)
from adaptive_assessment.core.exceptions import UnknownItemError
from adaptive_assessment.models import ItemCategory


class TestItemValidation:
    """Item parameters are validated on construction."""

    def test_valid_item(self, make_item):
        item = make_item("q1", difficulty=0.5, discrimination=1.2, guessing=0.1)
        assert item.id == "q1"
        assert item.scale_midpoint == pytest.approx(3.0)
        assert item.scale_range == pytest.approx(4.0)

    @pytest.mark.parametrize("discrimination", [0.0, -1.0])
    def test_non_positive_discrimination_rejected(self, make_item, discrimination):
        with pytest.raises(ValueError, match="Discrimination"):
            make_item("q1", discrimination=discrimination)

    @pytest.mark.parametrize("guessing", [-0.1, 1.0, 1.5])
    def test_guessing_outside_unit_interval_rejected(self, make_item, guessing):
        with pytest.raises(ValueError, match="Guessing"):
            make_item("q1", guessing=guessing)

    def test_inverted_scale_rejected(self, make_item):
        with pytest.raises(ValueError, match="scale_min"):
            make_item("q1", scale_min=5, scale_max=5)

    def test_content_does_not_affect_equality(self):
        kwargs = dict(
            id="q1",
            category=ItemCategory.MOTIVACAO,
            difficulty=0.0,
            discrimination=1.0,
            guessing=0.0,
            scale_min=1,
            scale_max=5,
        )
        assert Item(content="How motivated?", **kwargs) == Item(**kwargs)


class TestResponseDichotomization:
    """Responses above the scale midpoint count as correct."""

    def test_above_midpoint_is_correct(self, make_item):
        item = make_item("q1", scale_min=1, scale_max=7)
        assert item.is_correct(5) is True

    def test_midpoint_is_incorrect(self, make_item):
        item = make_item("q1", scale_min=1, scale_max=7)
        assert item.is_correct(4) is False

    def test_in_scale_bounds_inclusive(self, make_item):
        item = make_item("q1", scale_min=0, scale_max=10)
        assert item.in_scale(0)
        assert item.in_scale(10)
        assert not item.in_scale(10.5)
        assert not item.in_scale(-1)


class TestItemBank:
    """Insertion order, lookups and duplicate handling."""

    def test_iterates_in_insertion_order(self, make_item):
        bank = ItemBank([make_item("b"), make_item("a"), make_item("c")])
        assert [item.id for item in bank] == ["b", "a", "c"]

    def test_add_items_appends(self, make_item):
        bank = ItemBank([make_item("a")])
        bank.add_items([make_item("b")])
        assert len(bank) == 2
        assert "b" in bank

    def test_duplicate_against_bank_rejected(self, make_item):
        bank = ItemBank([make_item("a")])
        with pytest.raises(ValueError, match="Duplicate item id 'a'"):
            bank.add_items([make_item("b"), make_item("a")])
        # Nothing from the failed batch is added
        assert len(bank) == 1
        assert "b" not in bank

    def test_duplicate_within_batch_rejected(self, make_item):
        with pytest.raises(ValueError, match="Duplicate"):
            ItemBank([make_item("a"), make_item("a")])

    def test_get_unknown_returns_none(self, emotional_bank):
        assert emotional_bank.get("missing") is None

    def test_require_unknown_raises(self, emotional_bank):
        with pytest.raises(UnknownItemError) as exc_info:
            emotional_bank.require("missing")
        assert exc_info.value.item_id == "missing"

    def test_by_category(self, emotional_bank):
        ids = [item.id for item in emotional_bank.by_category(ItemCategory.CONCENTRACAO)]
        assert ids == ["conc_01", "conc_02"]


class TestEmotionalItemBank:
    """The sample emotional-state bank."""

    def test_contents(self):
        bank = build_emotional_item_bank()
        assert len(bank) == 10
        assert [item.id for item in bank][:3] == ["val_01", "val_02", "val_03"]

    def test_category_counts(self):
        report = validate_item_bank(build_emotional_item_bank())
        assert report.category_counts == {
            "valencia": 3,
            "ativacao": 3,
            "concentracao": 2,
            "motivacao": 2,
        }

    def test_item_parameters(self):
        item = build_emotional_item_bank().require("conc_02")
        assert item.difficulty == pytest.approx(-0.3)
        assert item.discrimination == pytest.approx(1.1)
        assert item.guessing == pytest.approx(0.20)
        assert (item.scale_min, item.scale_max) == (0, 10)


class TestValidateItemBank:
    """Quality report flags small, narrow or weakly discriminating banks."""

    def _wide_bank(self, make_item, discrimination=1.0):
        categories = list(ItemCategory)
        n = MIN_RECOMMENDED_ITEMS + 2
        return ItemBank(
            make_item(
                f"item_{i:03d}",
                difficulty=-2.0 + 4.0 * i / (n - 1),
                discrimination=discrimination,
                category=categories[i % len(categories)],
            )
            for i in range(n)
        )

    def test_healthy_bank_is_valid(self, make_item):
        report = validate_item_bank(self._wide_bank(make_item))
        assert report.is_valid is True
        assert report.issues == []
        assert report.difficulty_range == (pytest.approx(-2.0), pytest.approx(2.0))

    def test_sample_bank_is_too_small_and_narrow(self, emotional_bank):
        report = validate_item_bank(emotional_bank)
        assert report.is_valid is False
        assert report.total_items == 10
        assert any("10 items" in issue for issue in report.issues)
        assert any("Difficulty span" in issue for issue in report.issues)

    def test_low_discrimination_flagged(self, make_item):
        report = validate_item_bank(self._wide_bank(make_item, discrimination=0.3))
        assert report.is_valid is False
        assert any("discrimination below" in issue for issue in report.issues)

    def test_missing_category_flagged(self, make_item):
        bank = ItemBank([make_item("a", difficulty=-2), make_item("b", difficulty=2)])
        report = validate_item_bank(bank)
        assert any("No items for categories" in issue for issue in report.issues)

    def test_empty_bank(self):
        report = validate_item_bank(ItemBank())
        assert report.is_valid is False
        assert report.total_items == 0
        assert report.issues == ["Item bank is empty"]
