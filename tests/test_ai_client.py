"""
Tests for the typed AI boundary: reply parsing, Err handling and the
allergen resolvers built on top of it.
"""

import base64
import json

import pytest
from conftest import (
    CROSS_CONTACT_PROMPT,
    DESCRIPTION_PROMPT,
    INGREDIENT_PROMPT,
    NUTRITION_PROMPT,
    PHOTO_PROMPT,
    SCAN_PROMPT,
    SUGGESTION_PROMPT,
)

from menuguard.services import ai_client, gemini
from menuguard.services.ai_client import Err, Ok
from menuguard.services.allergen_resolver import (
    resolve_allergens,
    resolve_cross_contact,
    resolve_description_allergens,
)


class TestReplyParsing:
    def test_fenced_reply_is_unwrapped(self):
        assert ai_client.strip_fences('```json\n["Milk"]\n```') == '["Milk"]'

    def test_unfenced_reply_is_returned_trimmed(self):
        assert ai_client.strip_fences('  ["Milk"] ') == '["Milk"]'

    def test_array_is_found_inside_prose(self):
        assert ai_client.extract_json_array('Sure! ["Milk", "Eggs"] hope that helps') == ["Milk", "Eggs"]

    def test_object_is_found_inside_prose(self):
        assert ai_client.extract_json_object('Result: {"items": []}') == {"items": []}

    def test_invalid_json_yields_none(self):
        assert ai_client.extract_json_array("[Milk, Eggs") is None
        assert ai_client.extract_json_object("no json here") is None


class TestTransport:
    async def test_unconfigured_key_raises(self):
        with pytest.raises(gemini.GeminiError):
            await gemini.call_gemini("hello")

    def test_data_url_is_decoded(self):
        payload = base64.b64encode(b"png-bytes").decode()
        mime, data = gemini.decode_image(f"data:image/png;base64,{payload}")
        assert mime == "image/png"
        assert data == b"png-bytes"

    def test_plain_base64_defaults_to_jpeg(self):
        mime, data = gemini.decode_image(base64.b64encode(b"jpeg").decode())
        assert mime == "image/jpeg"
        assert data == b"jpeg"


class TestAllergenDetection:
    async def test_unavailable_model_is_err(self):
        result = await ai_client.detect_allergens("shrimp")
        assert isinstance(result, Err)
        assert result.error.kind == "unavailable"

    async def test_malformed_reply_is_err(self, fake_gemini):
        fake_gemini.on(INGREDIENT_PROMPT, "Shellfish, probably")
        result = await ai_client.detect_allergens("shrimp")
        assert isinstance(result, Err)
        assert result.error.kind == "malformed"

    async def test_non_string_items_are_dropped(self, fake_gemini):
        fake_gemini.on(INGREDIENT_PROMPT, '["Shellfish", 3, null, " "]')
        result = await ai_client.detect_allergens("shrimp")
        assert result == Ok(["Shellfish"])

    async def test_resolver_normalizes_the_reply(self, fake_gemini):
        fake_gemini.on(INGREDIENT_PROMPT, '```json\n["dairy", "wheat flour", "unicorn"]\n```')
        assert await resolve_allergens("cheese bread") == {"Milk", "Wheat"}

    async def test_resolver_degrades_to_empty_set(self):
        assert await resolve_allergens("shrimp") == set()

    async def test_resolver_skips_blank_names(self, fake_gemini):
        assert await resolve_allergens("   ") == set()
        assert fake_gemini.calls == []

    async def test_description_and_cross_contact_resolvers(self, fake_gemini):
        fake_gemini.on(DESCRIPTION_PROMPT, '["Peanuts"]')
        fake_gemini.on(CROSS_CONTACT_PROMPT, '["shellfish"]')
        assert await resolve_description_allergens("Crunchy peanut noodles") == {"Peanuts"}
        assert await resolve_cross_contact("Fry in the shared fryer") == {"Shellfish"}


class TestMenuScan:
    async def test_records_are_cleaned(self, fake_gemini):
        fake_gemini.on(SCAN_PROMPT, json.dumps([
            {"name": " Pad Thai ", "category": "Mains", "price": "$12.50", "description": "Noodles"},
            {"name": "", "price": "3"},
            "garbage",
            {"name": "Spring Rolls"},
        ]))
        result = await ai_client.scan_menu_image("aGVsbG8=")
        assert isinstance(result, Ok)
        assert [(d.name, d.category, d.price) for d in result.value] == [
            ("Pad Thai", "Mains", "12.50"),
            ("Spring Rolls", "Other", "0.00"),
        ]
        assert fake_gemini.calls[0]["image"] == "aGVsbG8="

    async def test_photo_items_get_grid_defaults(self, fake_gemini):
        fake_gemini.on(PHOTO_PROMPT, json.dumps({"items": [
            {"name": "Soup", "boundingBox": {"x": 1, "y": 2, "width": 3, "height": 4}, "confidence": 90},
            {"name": "Salad"},
            {"name": ""},
        ]}))
        result = await ai_client.analyze_menu_photo("aGVsbG8=")
        soup, salad = result.value
        assert soup.bounding_box.x == 1 and soup.confidence == 90
        assert (salad.bounding_box.x, salad.bounding_box.y) == (50, 10)
        assert (salad.bounding_box.width, salad.bounding_box.height) == (40, 6)
        assert salad.confidence == 70


class TestSuggestionsAndNutrition:
    async def test_suggestions_reuse_known_ingredients(self, fake_gemini):
        fake_gemini.on(SUGGESTION_PROMPT, json.dumps([
            {"name": "Basil", "confidence": 40},
            {"name": "mozzarella", "confidence": 95},
        ]))
        existing = [{"id": "ing-1", "name": "Mozzarella", "allergens": ["Milk"]}]
        result = await ai_client.suggest_ingredients("Caprese", "Tomato and cheese", existing)
        first, second = result.value
        assert (first.name, first.existing_id, first.allergens) == ("mozzarella", "ing-1", ["Milk"])
        assert second.name == "Basil" and second.existing_id is None

    async def test_nutrition_without_amounts_skips_the_model(self, fake_gemini):
        result = await ai_client.estimate_nutrition("Salad", [{"name": "Lettuce", "amount": None, "unit": None}])
        assert result == Ok(ai_client.Nutrition())
        assert fake_gemini.calls == []

    async def test_nutrition_is_rounded(self, fake_gemini):
        fake_gemini.on(NUTRITION_PROMPT, json.dumps({
            "calories": 512.6, "protein_g": 20.04, "sodium_mg": 880.4, "fat_g": "lots",
        }))
        result = await ai_client.estimate_nutrition("Burger", [{"name": "Beef", "amount": 150, "unit": "g"}])
        nutrition = result.value
        assert nutrition.calories == 513
        assert nutrition.protein_g == 20.0
        assert nutrition.sodium_mg == 880
        assert nutrition.fat_g is None
