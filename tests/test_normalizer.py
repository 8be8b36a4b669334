"""
Tests for allergen normalization onto the canonical vocabulary.
"""

import pytest

from menuguard.services.normalizer import normalize, normalize_one, normalize_sorted
from menuguard.utils.allergen_data import CANONICAL_ALLERGENS


class TestCanonicalNames:
    """Canonical names map to themselves."""

    @pytest.mark.parametrize("name", CANONICAL_ALLERGENS)
    def test_canonical_name_is_idempotent(self, name):
        assert normalize([name]) == {name}

    def test_case_and_whitespace_are_ignored(self):
        assert normalize(["  tree nuts ", "MILK"]) == {"Tree Nuts", "Milk"}

    def test_output_is_always_canonical(self):
        found = normalize(["shrimp scampi", "parmesan cheese", "sesame oil", "xyz"])
        assert found <= set(CANONICAL_ALLERGENS)


class TestAliases:
    """Free-text mentions resolve through the alias table."""

    def test_dairy_words_map_to_milk(self):
        assert normalize(["butter"]) == {"Milk"}
        assert normalize(["Parmesan"]) == {"Milk"}
        assert normalize(["heavy cream"]) == {"Milk"}

    def test_crustaceans_map_to_shellfish(self):
        assert normalize(["shrimp"]) == {"Shellfish"}
        assert normalize(["King Prawns"]) == {"Shellfish"}

    def test_shellfish_does_not_also_yield_fish(self):
        assert normalize(["shellfish"]) == {"Shellfish"}

    def test_peanut_butter_is_peanuts_only(self):
        assert normalize(["peanut butter"]) == {"Peanuts"}

    def test_plant_milks_are_not_milk(self):
        assert normalize(["coconut milk"]) == set()
        assert normalize(["almond milk"]) == {"Tree Nuts"}
        assert normalize(["soy milk"]) == {"Soy"}

    def test_false_friends_yield_nothing(self):
        for term in ("eggplant", "nutmeg", "butternut squash", "buckwheat", "coconut"):
            assert normalize([term]) == set(), term

    def test_one_string_can_name_several_categories(self):
        assert normalize_one("wheat flour and eggs") == {"Wheat", "Eggs"}


class TestDropping:
    """Unrecognized or empty input is dropped silently."""

    def test_unknown_strings_are_dropped(self):
        assert normalize(["unobtainium", "love"]) == set()

    def test_empty_inputs(self):
        assert normalize(None) == set()
        assert normalize([]) == set()
        assert normalize(["", "   "]) == set()

    def test_non_strings_are_skipped(self):
        assert normalize(["Milk", None, 3]) == {"Milk"}


class TestSortedForm:
    def test_sorted_form_follows_vocabulary_order(self):
        assert normalize_sorted(["garlic", "sesame", "milk"]) == ["Milk", "Sesame", "Garlic"]

    def test_sorted_form_deduplicates(self):
        assert normalize_sorted(["cheese", "butter", "Milk"]) == ["Milk"]
