"""
Companion foods.

Suggests common accompaniments of a resolved food ("maito" with
"kaurapuuro") so the user can be asked about them once.
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

FOOD_COMPANIONS: dict[str, tuple[str, ...]] = {
    "puuro": ("maito", "marja", "hunaja"),
    "kaurapuuro": ("maito", "marja", "hunaja"),
    "kahvi": ("maito", "sokeri"),
    "tee": ("hunaja", "sokeri"),
    "leipä": ("voi", "juusto", "leikkele"),
    "salaatti": ("kastike", "öljy"),
    "pasta": ("kastike",),
    "riisi": ("kastike", "liha"),
}


class CompanionSuggestion(BaseModel):
    """Companion to ask about and the food that prompted it."""

    model_config = ConfigDict(frozen=True)

    primary_food: str
    companion: str


def base_food_key(name: str) -> str:
    """'Kaurapuuro, kylmä' -> 'kaurapuuro'."""
    return name.split(",")[0].strip().lower()


def _matches_key(name: str, key: str) -> bool:
    base = base_food_key(name)
    return base == key or base.startswith(key) or key.startswith(base)


def check_companions(
    resolved_names: Sequence[str],
    already_checked: Sequence[str],
) -> Optional[CompanionSuggestion]:
    """
    First companion worth asking about, or None.

    A companion is skipped when a food with that base name is already in
    the meal or when it was asked before.

    Args:
        resolved_names: Fineli names of the resolved foods, in meal order
        already_checked: Companions asked about earlier

    Example:
        >>> check_companions(["Kaurapuuro, vesi"], [])
        CompanionSuggestion(primary_food='Kaurapuuro, vesi', companion='maito')
    """
    in_meal = {base_food_key(name) for name in resolved_names}
    checked = {name.lower() for name in already_checked}

    for name in resolved_names:
        for key, companions in FOOD_COMPANIONS.items():
            if not _matches_key(name, key):
                continue
            for companion in companions:
                if companion in in_meal or companion in checked:
                    continue
                return CompanionSuggestion(primary_food=name, companion=companion)
    return None
