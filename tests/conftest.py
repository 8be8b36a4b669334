"""
Pytest configuration and fixtures.

API tests run against an in-memory SQLite database shared through a
StaticPool, injected by overriding get_db. The Gemini transport is replaced
for every test: unscripted prompts fail as if the model were unavailable.
"""

import os

os.environ.setdefault("SERVICE_TOKEN", "test-service-token")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["GOOGLE_API_KEY"] = ""

from typing import Callable, Optional, Union

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from menuguard.database import get_db
from menuguard.main import app
from menuguard.models import Base
from menuguard.schemas.menu import DishBundle, IngredientUse, StepInfo, SubstituteInfo
from menuguard.services import ai_client
from menuguard.services.gemini import GeminiError
from menuguard.services.restrictions import seed_restrictions

SERVICE_TOKEN = os.environ["SERVICE_TOKEN"]
STAFF_HEADERS = {"X-Service-Token": SERVICE_TOKEN}
SESSION_HEADERS = {"X-Session-Token": "session-abc-123"}

Reply = Union[str, Exception, Callable[[str], str]]


class FakeGemini:
    """
    Scripted stand-in for call_gemini. Each rule pairs a prompt substring
    with a reply; the first matching rule answers. Unmatched prompts raise
    GeminiError, which the AI client reports as "unavailable".
    """

    def __init__(self) -> None:
        self.rules: list[tuple[str, Reply]] = []
        self.calls: list[dict] = []

    def on(self, fragment: str, reply: Reply) -> "FakeGemini":
        self.rules.append((fragment, reply))
        return self

    async def __call__(
        self,
        prompt: str,
        image: Optional[str] = None,
        temperature: float = 0.2,
        max_output_tokens: int = 2048,
    ) -> str:
        self.calls.append({"prompt": prompt, "image": image})
        for fragment, reply in self.rules:
            if fragment in prompt:
                if isinstance(reply, Exception):
                    raise reply
                if callable(reply):
                    return reply(prompt)
                return reply
        raise GeminiError("model unavailable in tests")

    def prompts_containing(self, fragment: str) -> list[str]:
        return [c["prompt"] for c in self.calls if fragment in c["prompt"]]


# Prompt fragments identifying each AI capability
INGREDIENT_PROMPT = "Identify which ALLERGEN CATEGORIES"
DESCRIPTION_PROMPT = "dish description explicitly mentions"
CROSS_CONTACT_PROMPT = "contaminate a dish during this cooking step"
SCAN_PROMPT = "Extract dish information"
PHOTO_PROMPT = "menu OCR expert"
SUGGESTION_PROMPT = "Suggest the likely ingredients"
NUTRITION_PROMPT = "Estimate the nutrition"


@pytest.fixture(autouse=True)
def fake_gemini(monkeypatch):
    """Replace the model transport for every test."""
    fake = FakeGemini()
    monkeypatch.setattr(ai_client, "call_gemini", fake)
    return fake


@pytest.fixture
async def session_factory():
    """Fresh in-memory database with tables created and restrictions seeded."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await seed_restrictions(session)

    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def client(session_factory):
    """HTTP client over the ASGI app with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def restaurant(client):
    """A restaurant created through the API."""
    response = await client.post(
        "/restaurants", json={"name": "Test Bistro"}, headers=STAFF_HEADERS
    )
    assert response.status_code == 201
    return response.json()


# ── Core value builders ──────────────────────────────────────────────────────


def make_dish(
    dish_id: str = "d1",
    name: str = "Dish",
    ingredients: Optional[list[IngredientUse]] = None,
    steps: Optional[list[StepInfo]] = None,
    description_allergens: Optional[list[str]] = None,
    **extra,
) -> DishBundle:
    return DishBundle(
        id=dish_id,
        name=name,
        category=extra.pop("category", "Mains"),
        price=extra.pop("price", 10.0),
        description_allergens=description_allergens or [],
        ingredients=ingredients or [],
        cooking_steps=steps or [],
        **extra,
    )


def ingredient(
    name: str,
    allergens: list[str],
    removable: bool = False,
    substitutes: Optional[list[tuple[str, list[str]]]] = None,
) -> IngredientUse:
    return IngredientUse(
        name=name,
        allergens=allergens,
        is_removable=removable,
        is_substitutable=substitutes is not None,
        substitutes=[SubstituteInfo(name=n, allergens=a) for n, a in (substitutes or [])],
    )


def step(
    number: int,
    risks: list[str],
    modifiable_for: Optional[list[str]] = None,
    notes: Optional[str] = None,
    description: str = "Cook",
) -> StepInfo:
    return StepInfo(
        step_number=number,
        description=description,
        cross_contact_risk=risks,
        is_modifiable=modifiable_for is not None,
        modifiable_allergens=modifiable_for or [],
        modification_notes=notes,
    )


# ── API payloads ─────────────────────────────────────────────────────────────

SHRIMP_PASTA = {
    "name": "Shrimp Pasta",
    "category": "Mains",
    "price": 18.5,
    "description": "Garlic shrimp with linguine",
    "description_allergens": [],
    "ingredients": [
        {"name": "Shrimp", "allergens": ["Shellfish"], "amount_value": 150, "amount_unit": "g"},
        {
            "name": "Parmesan",
            "allergens": ["Milk"],
            "is_substitutable": True,
            "substitutes": [{"name": "Nutritional Yeast", "allergens": []}],
        },
        {"name": "Linguine", "allergens": ["Wheat"], "amount_value": 100, "amount_unit": "g"},
    ],
    "steps": [
        {"description": "Boil the linguine", "cross_contact_risk": []},
        {
            "description": "Saute shrimp in butter",
            "cross_contact_risk": ["Milk"],
            "is_modifiable": True,
            "modifiable_allergens": ["Milk"],
            "modification_notes": "Saute in olive oil",
        },
    ],
}


@pytest.fixture
async def shrimp_pasta(client, restaurant):
    """The Shrimp Pasta dish created through the API."""
    response = await client.post(
        f"/restaurants/{restaurant['id']}/dishes", json=SHRIMP_PASTA, headers=STAFF_HEADERS
    )
    assert response.status_code == 201, response.text
    return response.json()
