"""
Fineli data mapper.

Transforms Fineli REST API payloads to domain models.
"""

from typing import Any, Mapping

from mealchat.domain.fineli.models import FineliFood, FineliUnit, FoodType
from mealchat.domain.fineli.nutrients import map_data_to_components
from mealchat.domain.shared.errors import ValidationError


class FineliMapper:
    """Maps Fineli API data to domain models."""

    # Search payload summary fields -> component codes
    SUMMARY_COMPONENTS = {
        "energy": "ENERC",  # kJ
        "fat": "FAT",
        "carbohydrate": "CHOAVL",
        "protein": "PROT",
        "fiber": "FIBC",
        "sugar": "SUGAR",
        "saturatedFat": "FASAT",
        "alcohol": "ALC",
    }

    @staticmethod
    def to_unit(payload: Mapping[str, Any]) -> FineliUnit:
        """Convert a Fineli unit payload.

        Example:
            >>> unit = FineliMapper.to_unit({
            ...     "code": "DL",
            ...     "description": {"fi": "desilitra", "en": "decilitre"},
            ...     "mass": 103.0,
            ... })
            >>> assert unit.mass_grams == 103.0
        """
        description = payload.get("description") or {}
        return FineliUnit(
            code=payload["code"],
            label_fi=description.get("fi", ""),
            label_en=description.get("en", ""),
            mass_grams=payload["mass"],
        )

    @staticmethod
    def from_search_item(payload: Mapping[str, Any]) -> FineliFood:
        """Convert an item of GET /api/v1/foods?q=... to FineliFood.

        Only the summary nutrients of the search payload are available;
        merge the detail response with with_detail() for all components.

        Raises:
            ValidationError: If id or Finnish name is missing
        """
        name = payload.get("name") or {}
        if "id" not in payload or not name.get("fi"):
            raise ValidationError("Fineli food payload needs id and name.fi")

        nutrients = {
            code: float(payload[field])
            for field, code in FineliMapper.SUMMARY_COMPONENTS.items()
            if payload.get(field) is not None
        }
        type_code = (payload.get("type") or {}).get("code", FoodType.FOOD.value)

        return FineliFood(
            id=int(payload["id"]),
            name_fi=name["fi"],
            name_en=name.get("en") or None,
            name_sv=name.get("sv") or None,
            type=FoodType(type_code),
            preparation_methods=tuple(
                method["code"] for method in payload.get("preparationMethod") or []
            ),
            units=tuple(FineliMapper.to_unit(unit) for unit in payload.get("units") or []),
            nutrients=nutrients,
            energy_kj=payload.get("energy") or 0.0,
            energy_kcal=payload.get("energyKcal") or 0.0,
            fat=payload.get("fat") or 0.0,
            protein=payload.get("protein") or 0.0,
            carbohydrate=payload.get("carbohydrate") or 0.0,
        )

    @staticmethod
    def with_detail(food: FineliFood, detail: Mapping[str, Any]) -> FineliFood:
        """Merge GET /api/v1/foods/{id} data[] (55 values per 100 g) into a food.

        Detail units replace search units when present.
        """
        nutrients = {**food.nutrients, **map_data_to_components(detail.get("data") or [])}
        units = tuple(FineliMapper.to_unit(unit) for unit in detail.get("units") or [])
        return food.model_copy(update={"nutrients": nutrients, "units": units or food.units})
