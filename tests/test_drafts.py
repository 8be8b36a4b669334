"""
Tests for the pure dish draft builder.
"""

import pytest
from pydantic import ValidationError

from menuguard.schemas.dish import DishDraft, IngredientDraft, StepDraft, SubstituteDraft
from menuguard.services import drafts
from menuguard.services.aggregator import aggregate


@pytest.fixture
def draft():
    return DishDraft(
        name="Shrimp Pasta",
        category="Mains",
        price=18.0,
        ingredients=[
            IngredientDraft(name="Shrimp", allergens=["Shellfish"]),
            IngredientDraft(name="Parmesan", allergens=["Milk"], is_substitutable=True),
        ],
        steps=[
            StepDraft(description="Boil pasta"),
            StepDraft(description="Saute shrimp", cross_contact_risk=["Shellfish"]),
            StepDraft(description="Plate"),
        ],
    )


class TestIngredients:
    def test_add_returns_new_draft(self, draft):
        updated = drafts.add_ingredient(draft, IngredientDraft(name="Garlic", allergens=["Garlic"]))
        assert [i.name for i in updated.ingredients] == ["Shrimp", "Parmesan", "Garlic"]
        assert len(draft.ingredients) == 2

    def test_duplicate_name_is_rejected(self, draft):
        with pytest.raises(drafts.DraftError):
            drafts.add_ingredient(draft, IngredientDraft(name="shrimp"))

    def test_draft_validator_rejects_duplicates(self):
        with pytest.raises(ValidationError):
            DishDraft(name="X", ingredients=[IngredientDraft(name="Egg"), IngredientDraft(name="EGG")])

    def test_inner_whitespace_does_not_make_a_new_name(self, draft):
        with pytest.raises(ValidationError):
            DishDraft(name="X", ingredients=[
                IngredientDraft(name="Olive Oil"), IngredientDraft(name="Olive  Oil"),
            ])
        with pytest.raises(drafts.DraftError):
            drafts.add_ingredient(draft, IngredientDraft(name=" Parmesan "))
        assert drafts.remove_ingredient(draft, "shrimp").ingredients[0].name == "Parmesan"

    def test_remove(self, draft):
        updated = drafts.remove_ingredient(draft, "PARMESAN")
        assert [i.name for i in updated.ingredients] == ["Shrimp"]

    def test_remove_unknown_raises(self, draft):
        with pytest.raises(drafts.DraftError):
            drafts.remove_ingredient(draft, "Saffron")

    def test_rename_onto_existing_name_is_rejected(self, draft):
        with pytest.raises(drafts.DraftError):
            drafts.update_ingredient(draft, "Parmesan", name="Shrimp")

    def test_substitutes_need_the_flag(self, draft):
        with pytest.raises(drafts.DraftError):
            drafts.add_substitute(draft, "Shrimp", SubstituteDraft(name="Tofu", allergens=["Soy"]))

    def test_clearing_the_flag_drops_substitutes(self, draft):
        with_sub = drafts.add_substitute(draft, "Parmesan", SubstituteDraft(name="Nutritional Yeast"))
        assert with_sub.ingredients[1].substitutes[0].name == "Nutritional Yeast"
        cleared = drafts.update_ingredient(with_sub, "Parmesan", is_substitutable=False)
        assert cleared.ingredients[1].substitutes == []

    def test_adding_the_same_substitute_twice_is_a_no_op(self, draft):
        once = drafts.add_substitute(draft, "Parmesan", SubstituteDraft(name="Nutritional Yeast"))
        twice = drafts.add_substitute(once, "Parmesan", SubstituteDraft(name="nutritional yeast"))
        assert len(twice.ingredients[1].substitutes) == 1


class TestSteps:
    def test_remove_keeps_numbering_contiguous(self, draft):
        updated = drafts.remove_step(draft, 1)
        bundle = drafts.to_bundle(updated)
        assert [(s.step_number, s.description) for s in bundle.cooking_steps] == [
            (1, "Saute shrimp"),
            (2, "Plate"),
        ]

    def test_move(self, draft):
        updated = drafts.move_step(draft, 3, 1)
        assert [s.description for s in updated.steps] == ["Plate", "Boil pasta", "Saute shrimp"]

    def test_unknown_step_raises(self, draft):
        with pytest.raises(drafts.DraftError):
            drafts.update_step(draft, 4, description="Serve")

    def test_update(self, draft):
        updated = drafts.update_step(draft, 3, description="Plate and garnish")
        assert updated.steps[2].description == "Plate and garnish"
        assert draft.steps[2].description == "Plate"


class TestPreview:
    def test_bundle_feeds_the_aggregator(self, draft):
        draft = drafts.add_substitute(draft, "Parmesan", SubstituteDraft(name="Nutritional Yeast"))
        result = aggregate(drafts.to_bundle(draft))
        assert result.all_allergens == ["Milk", "Shellfish"]
        assert result.per_allergen_status["Milk"] == "can_modify"
        assert result.per_allergen_status["Shellfish"] == "cannot_modify"

    def test_undetected_substitute_allergens_count_as_empty(self, draft):
        draft = drafts.add_substitute(draft, "Parmesan", SubstituteDraft(name="Pecorino"))
        assert draft.ingredients[1].substitutes[0].allergens is None
        bundle = drafts.to_bundle(draft)
        assert bundle.ingredients[1].substitutes[0].allergens == []

    def test_undetected_allergens_count_as_empty(self):
        bundle = drafts.to_bundle(DishDraft(name="Mystery", ingredients=[IngredientDraft(name="Secret Sauce")]))
        assert bundle.ingredients[0].allergens == []
        assert bundle.id == "draft"
