"""
Tests for the dish allergen aggregator.
"""

from conftest import ingredient, make_dish, step

from menuguard.services.aggregator import aggregate, is_safe_source
from menuguard.utils.allergen_data import CANONICAL_ALLERGENS


def _status(result, allergen):
    return result.per_allergen_status[allergen]


class TestStatusRules:
    """Three-way status per allergen."""

    def test_empty_dish_has_nothing_present(self):
        result = aggregate(make_dish())
        assert result.all_allergens == []
        assert set(result.per_allergen_status) == set(CANONICAL_ALLERGENS)
        assert set(result.per_allergen_status.values()) == {"not_present"}

    def test_description_allergen_is_cannot_modify(self):
        result = aggregate(make_dish(description_allergens=["Milk"]))
        assert _status(result, "Milk") == "cannot_modify"
        assert result.all_allergens == ["Milk"]

    def test_removable_only_source_is_can_modify(self):
        dish = make_dish(ingredients=[ingredient("Cheese", ["Milk"], removable=True)])
        assert _status(aggregate(dish), "Milk") == "can_modify"

    def test_fixed_source_beats_removable_source(self):
        dish = make_dish(ingredients=[
            ingredient("Butter", ["Milk"]),
            ingredient("Cheese", ["Milk"], removable=True),
        ])
        assert _status(aggregate(dish), "Milk") == "cannot_modify"

    def test_result_does_not_depend_on_ingredient_order(self):
        fixed = ingredient("Butter", ["Milk"])
        removable = ingredient("Cheese", ["Milk"], removable=True)
        forward = aggregate(make_dish(ingredients=[fixed, removable]))
        backward = aggregate(make_dish(ingredients=[removable, fixed]))
        assert forward == backward

    def test_removable_ingredient_cannot_override_description(self):
        dish = make_dish(
            description_allergens=["Milk"],
            ingredients=[ingredient("Cream", ["Milk"], removable=True)],
        )
        assert _status(aggregate(dish), "Milk") == "cannot_modify"

    def test_aggregate_is_idempotent(self):
        dish = make_dish(
            ingredients=[ingredient("Bread", ["Wheat", "Gluten"]), ingredient("Egg", ["Eggs"], removable=True)],
            steps=[step(1, ["Sesame"])],
        )
        assert aggregate(dish) == aggregate(dish)

    def test_all_allergens_is_alphabetical(self):
        dish = make_dish(ingredients=[
            ingredient("Tofu", ["Soy"]),
            ingredient("Cashew", ["Tree Nuts"]),
            ingredient("Cheese", ["Milk"]),
        ])
        assert aggregate(dish).all_allergens == ["Milk", "Soy", "Tree Nuts"]


class TestSubstitutes:
    """Substitutable links are only safe with an allergen-free substitute."""

    def test_safe_substitute_gives_can_modify(self):
        link = ingredient("Parmesan", ["Milk"], substitutes=[("Nutritional Yeast", [])])
        assert is_safe_source(link, "Milk")
        assert _status(aggregate(make_dish(ingredients=[link])), "Milk") == "can_modify"

    def test_substitute_with_same_allergen_is_not_safe(self):
        link = ingredient("Butter", ["Milk"], substitutes=[("Ghee", ["Milk"])])
        assert not is_safe_source(link, "Milk")
        assert _status(aggregate(make_dish(ingredients=[link])), "Milk") == "cannot_modify"

    def test_substitutable_without_substitutes_is_not_safe(self):
        link = ingredient("Butter", ["Milk"], substitutes=[])
        assert not is_safe_source(link, "Milk")

    def test_substitute_allergens_are_not_added_to_the_dish(self):
        link = ingredient("Butter", ["Milk"], substitutes=[("Margarine", ["Soy"])])
        result = aggregate(make_dish(ingredients=[link]))
        assert "Soy" not in result.all_allergens


class TestCookingSteps:
    """Cross-contact risks from cooking steps."""

    def test_fixed_step_risk_is_cannot_modify(self):
        result = aggregate(make_dish(steps=[step(1, ["Peanuts"])]))
        assert _status(result, "Peanuts") == "cannot_modify"

    def test_modifiable_step_risk_is_can_modify(self):
        result = aggregate(make_dish(steps=[step(1, ["Peanuts"], modifiable_for=["Peanuts"])]))
        assert _status(result, "Peanuts") == "can_modify"

    def test_modifiable_step_only_covers_listed_allergens(self):
        result = aggregate(make_dish(
            steps=[step(1, ["Peanuts", "Sesame"], modifiable_for=["Peanuts"])]
        ))
        assert _status(result, "Peanuts") == "can_modify"
        assert _status(result, "Sesame") == "cannot_modify"

    def test_modifiable_step_never_upgrades_fixed_ingredient(self):
        dish = make_dish(
            ingredients=[ingredient("Satay Sauce", ["Peanuts"])],
            steps=[step(1, ["Peanuts"], modifiable_for=["Peanuts"])],
        )
        assert _status(aggregate(dish), "Peanuts") == "cannot_modify"

    def test_explicit_links_and_steps_override_the_dish(self):
        dish = make_dish(ingredients=[ingredient("Butter", ["Milk"])])
        result = aggregate(dish, ingredient_links=[], cooking_steps=[step(1, ["Fish"])])
        assert result.all_allergens == ["Fish"]


class TestShrimpPasta:
    """End-to-end scenario from the menu editor."""

    def test_shrimp_pasta(self):
        dish = make_dish(
            name="Shrimp Pasta",
            ingredients=[
                ingredient("Shrimp", ["Shellfish"]),
                ingredient("Parmesan", ["Milk"], substitutes=[("Nutritional Yeast", [])]),
            ],
        )
        result = aggregate(dish)
        assert result.all_allergens == ["Milk", "Shellfish"]
        assert _status(result, "Shellfish") == "cannot_modify"
        assert _status(result, "Milk") == "can_modify"
