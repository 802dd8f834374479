"""
Shared fixtures for mealchat tests.

Small Fineli catalogue used across domain, application and
infrastructure tests.
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from mealchat.domain.conversation.items import ParsedMealItem, ParsedStateItem
from mealchat.domain.conversation.ports import IFoodSearchClient
from mealchat.domain.conversation.resolver import create_initial_item
from mealchat.domain.fineli.models import FineliFood, FineliUnit, FoodType

# Fixed clock for deterministic transitions (ms since epoch)
T0 = 1_700_000_000_000


# ═══════════════════════════════════════════════════════════
# FINELI FOOD FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def banana() -> FineliFood:
    """Banana with a per-piece unit."""
    return FineliFood(
        id=11049,
        name_fi="Banaani",
        name_en="Banana",
        type=FoodType.FOOD,
        units=(FineliUnit(code="KPL_M", label_fi="keskikokoinen", label_en="medium", mass_grams=125.0),),
        nutrients={"ENERC": 390.0, "PROT": 1.2, "FAT": 0.3, "CHOAVL": 20.2, "FIBC": 1.9},
        energy_kj=390.0,
        protein=1.2,
        fat=0.3,
        carbohydrate=20.2,
    )


@pytest.fixture
def chicken() -> FineliFood:
    """Chicken breast without household units."""
    return FineliFood(
        id=28934,
        name_fi="Broileri, rintafilee",
        name_en="Chicken, breast fillet",
        type=FoodType.FOOD,
        nutrients={"ENERC": 460.0, "PROT": 23.0, "FAT": 1.5},
    )


@pytest.fixture
def milk() -> FineliFood:
    """Light milk with a decilitre unit."""
    return FineliFood(
        id=601,
        name_fi="Maito, kevyt",
        name_en="Milk, semi-skimmed",
        type=FoodType.FOOD,
        units=(FineliUnit(code="DL", label_fi="desilitra", label_en="decilitre", mass_grams=103.0),),
        nutrients={"ENERC": 190.0, "PROT": 3.5, "FAT": 1.5, "CHOAVL": 4.6},
    )


@pytest.fixture
def skim_milk() -> FineliFood:
    """Skim milk with a decilitre unit."""
    return FineliFood(
        id=602,
        name_fi="Maito, rasvaton",
        name_en="Milk, skimmed",
        type=FoodType.FOOD,
        units=(FineliUnit(code="DL", label_fi="desilitra", label_en="decilitre", mass_grams=104.0),),
        nutrients={"ENERC": 140.0, "PROT": 3.6, "FAT": 0.1, "CHOAVL": 4.7},
    )


@pytest.fixture
def oatmeal() -> FineliFood:
    """Oat porridge dish with portion sizes."""
    return FineliFood(
        id=30101,
        name_fi="Kaurapuuro, vesi",
        name_en="Oatmeal porridge, water",
        type=FoodType.DISH,
        units=(
            FineliUnit(code="PORTS", label_fi="pieni annos", mass_grams=150.0),
            FineliUnit(code="PORTM", label_fi="annos", mass_grams=250.0),
            FineliUnit(code="PORTL", label_fi="iso annos", mass_grams=350.0),
        ),
        nutrients={"ENERC": 250.0, "PROT": 2.0, "FAT": 1.0, "CHOAVL": 10.0, "FIBC": 1.5},
    )


@pytest.fixture
def oat_flakes() -> FineliFood:
    """Oat flakes, ranked below porridge for 'kaurapuuro'."""
    return FineliFood(
        id=320,
        name_fi="Kaurahiutale",
        name_en="Oat flakes",
        type=FoodType.FOOD,
        nutrients={"ENERC": 1540.0, "PROT": 13.0, "FAT": 7.0},
    )


@pytest.fixture
def egg() -> FineliFood:
    """Boiled egg with piece sizes."""
    return FineliFood(
        id=1,
        name_fi="Kananmuna, keitetty",
        name_en="Egg, boiled",
        type=FoodType.FOOD,
        units=(
            FineliUnit(code="KPL_S", label_fi="pieni", mass_grams=50.0),
            FineliUnit(code="KPL_M", label_fi="keskikokoinen", mass_grams=60.0),
            FineliUnit(code="KPL_L", label_fi="iso", mass_grams=70.0),
        ),
        nutrients={"ENERC": 600.0, "PROT": 12.5, "FAT": 10.0},
    )


# ═══════════════════════════════════════════════════════════
# ITEM FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def parsed_item() -> ParsedStateItem:
    """PARSED item without an amount."""
    return create_initial_item(ParsedMealItem(text="banaani"), now=T0, item_id="item_1")


@pytest.fixture
def parsed_item_grams() -> ParsedStateItem:
    """PARSED item with a 120 g amount."""
    return create_initial_item(ParsedMealItem(text="kanaa", amount=120, unit="g"), now=T0, item_id="item_2")


# ═══════════════════════════════════════════════════════════
# PORT MOCKS
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def catalog(
    banana: FineliFood,
    chicken: FineliFood,
    milk: FineliFood,
    skim_milk: FineliFood,
    oatmeal: FineliFood,
    oat_flakes: FineliFood,
    egg: FineliFood,
) -> dict[str, list[FineliFood]]:
    """Search results keyed by query."""
    return {
        "banaani": [banana],
        "kanaa": [chicken],
        "maito": [milk, skim_milk],
        "kaurapuuro": [oatmeal, oat_flakes],
        "kananmuna": [egg],
    }


@pytest.fixture
def mock_food_search(catalog: dict[str, list[FineliFood]]) -> Any:
    """Mock food search client (interface-based) over the catalogue."""
    client = AsyncMock(spec=IFoodSearchClient)
    client.search_foods = AsyncMock(side_effect=lambda query, lang="fi": list(catalog.get(query, [])))
    return client
