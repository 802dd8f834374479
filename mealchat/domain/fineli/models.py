"""
Fineli domain models.

Normalized, read-only representation of Fineli foods and dishes.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# All 55 nutrient component codes in Fineli data[] array order
COMPONENT_ORDER: tuple[str, ...] = (
    "ENERC", "FAT", "CHOAVL", "PROT", "ALC", "OA", "SUGOH", "SUGAR",
    "FRUS", "GALS", "GLUS", "LACS", "MALS", "SUCS", "STARCH", "FIBC",
    "FIBINS", "PSACNCS", "FAFRE", "FAPU", "FAMCIS", "FASAT", "FATRN",
    "FAPUN3", "FAPUN6", "F18D2CN6", "F18D3N3", "F20D5N3", "F22D6N3",
    "CHOLE", "STERT", "CA", "FE", "ID", "K", "MG", "NA", "NACL",
    "P", "SE", "ZN", "TRP", "FOL", "NIAEQ", "NIA", "VITPYRID",
    "RIBF", "THIA", "VITA", "CAROTENS", "VITB12", "VITC", "VITD",
    "VITE", "VITK",
)  # fmt: skip


class FoodType(str, Enum):
    """Fineli food classification."""

    FOOD = "FOOD"  # Single ingredient
    DISH = "DISH"  # Composite recipe


class FineliUnit(BaseModel):
    """
    Household or portion unit offered by Fineli for a food.

    Attributes:
        code: Fineli unit code (e.g. 'KPL_M', 'DL', 'PORTM')
        label_fi: Finnish label (e.g. 'keskikokoinen')
        label_en: English label
        mass_grams: Weight of one unit in grams

    Example:
        >>> unit = FineliUnit(code="KPL_M", label_fi="keskikokoinen",
        ...                   label_en="medium", mass_grams=125.0)
        >>> assert unit.mass_grams == 125.0
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1, description="Fineli unit code")
    label_fi: str = Field(..., description="Finnish label")
    label_en: str = Field("", description="English label")
    mass_grams: float = Field(..., gt=0, description="Grams per unit")


class FineliFood(BaseModel):
    """
    Candidate food or dish from the Fineli database.

    Nutrients are per 100 g, keyed by Fineli component code.
    Immutable: the state machine only ever references foods.

    Example:
        >>> food = FineliFood(id=11049, name_fi="Banaani", type=FoodType.FOOD,
        ...                   nutrients={"ENERC": 390.0})
        >>> assert food.display_name("en") == "Banaani"
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: int = Field(..., description="Fineli food id")
    name_fi: str = Field(..., min_length=1, description="Finnish name")
    name_en: Optional[str] = Field(None, description="English name")
    name_sv: Optional[str] = Field(None, description="Swedish name")
    type: FoodType = Field(FoodType.FOOD, description="FOOD or DISH")
    preparation_methods: tuple[str, ...] = Field(default=(), description="Preparation codes")
    units: tuple[FineliUnit, ...] = Field(default=(), description="Available units")
    nutrients: dict[str, float] = Field(default_factory=dict, description="Per 100 g values")

    # Summary for quick display
    energy_kj: float = Field(0.0, ge=0)
    energy_kcal: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbohydrate: float = Field(0.0, ge=0)

    def find_unit(self, code: str) -> Optional[FineliUnit]:
        """Return the unit with the given code, if the food has one."""
        for unit in self.units:
            if unit.code == code:
                return unit
        return None

    def display_name(self, language: str = "fi") -> str:
        """Localized name, falling back to Finnish."""
        if language == "en" and self.name_en:
            return self.name_en
        if language == "sv" and self.name_sv:
            return self.name_sv
        return self.name_fi

    def primary_name(self) -> str:
        """Lower-case name up to the first comma ('Kaurapuuro, vesi' -> 'kaurapuuro')."""
        return self.name_fi.split(",")[0].strip().lower()
