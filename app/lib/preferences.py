"""
Culinary preference catalog.

Three fixed categories (diet, cuisine, allergy). Profiles store preference
ids only; labels are resolved here when building prompts or payloads.
"""
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple


MAX_PREFERENCES = 20
MAX_PREFERENCES_MESSAGE = f"Maksymalnie {MAX_PREFERENCES} preferencji"

DIET = 'diet'
CUISINE = 'cuisine'
ALLERGY = 'allergy'
CATEGORIES = (DIET, CUISINE, ALLERGY)


@dataclass(frozen=True)
class PreferenceItem:
    id: str
    label: str
    description: str
    category: str
    severity: Optional[str] = None  # allergies only

    def to_dict(self):
        data = {
            'id': self.id,
            'label': self.label,
            'description': self.description,
            'category': self.category,
        }
        if self.severity:
            data['severity'] = self.severity
        return data


DIET_PREFERENCES = (
    PreferenceItem('vegetarian', 'Wegetariańska', 'Bez mięsa i ryb', DIET),
    PreferenceItem('vegan', 'Wegańska', 'Bez produktów pochodzenia zwierzęcego', DIET),
    PreferenceItem('keto', 'Ketogeniczna', 'Nisko-węglowodanowa, wysokotłuszczowa', DIET),
    PreferenceItem('paleo', 'Paleo', 'Jak nasi przodkowie', DIET),
    PreferenceItem('gluten-free', 'Bezglutenowa', 'Bez glutenu', DIET),
    PreferenceItem('low-carb', 'Nisko-węglowodanowa', 'Ograniczone węglowodany', DIET),
    PreferenceItem('high-protein', 'Wysokobiałkowa', 'Zwiększona zawartość białka', DIET),
    PreferenceItem('mediterranean', 'Śródziemnomorska', 'Zdrowe tłuszcze i warzywa', DIET),
)

CUISINE_PREFERENCES = (
    PreferenceItem('polish', 'Polska', 'Tradycyjna kuchnia polska', CUISINE),
    PreferenceItem('italian', 'Włoska', 'Pizza, pasta, risotto', CUISINE),
    PreferenceItem('asian', 'Azjatycka', 'Kuchnia azjatycka', CUISINE),
    PreferenceItem('mexican', 'Meksykańska', 'Ostre i aromatyczne', CUISINE),
    PreferenceItem('french', 'Francuska', 'Wyrafinowana i elegancka', CUISINE),
    PreferenceItem('indian', 'Indyjska', 'Bogate przyprawy i curry', CUISINE),
    PreferenceItem('thai', 'Tajska', 'Równowaga smaków', CUISINE),
    PreferenceItem('greek', 'Grecka', 'Świeże składniki i oliwa', CUISINE),
    PreferenceItem('japanese', 'Japońska', 'Sushi, ramen, minimalizm', CUISINE),
    PreferenceItem('middle-eastern', 'Bliskowschodnia', 'Hummus, falafel, przyprawy', CUISINE),
)

ALLERGY_PREFERENCES = (
    PreferenceItem('gluten', 'Gluten', 'Pszenica, żyto, jęczmień', ALLERGY, 'severe'),
    PreferenceItem('lactose', 'Laktoza', 'Produkty mleczne', ALLERGY, 'moderate'),
    PreferenceItem('nuts', 'Orzechy', 'Wszystkie rodzaje orzechów', ALLERGY, 'severe'),
    PreferenceItem('shellfish', 'Skorupiaki', 'Krewetki, kraby, homary', ALLERGY, 'severe'),
    PreferenceItem('eggs', 'Jaja', 'Jaja kurze i inne', ALLERGY, 'moderate'),
    PreferenceItem('soy', 'Soja', 'Produkty sojowe', ALLERGY, 'mild'),
    PreferenceItem('fish', 'Ryby', 'Wszystkie rodzaje ryb', ALLERGY, 'moderate'),
    PreferenceItem('sesame', 'Sezam', 'Nasiona sezamu i tahini', ALLERGY, 'mild'),
)

ALL_PREFERENCES = OrderedDict(
    (item.id, item)
    for item in DIET_PREFERENCES + CUISINE_PREFERENCES + ALLERGY_PREFERENCES
)

_CATEGORY_LABELS = {
    DIET: 'Dieta',
    CUISINE: 'Kuchnia',
    ALLERGY: 'Alergie i ograniczenia',
}


def get_preference(preference_id: str) -> Optional[PreferenceItem]:
    return ALL_PREFERENCES.get(preference_id)


def preferences_by_category(category: str) -> List[PreferenceItem]:
    return [item for item in ALL_PREFERENCES.values() if item.category == category]


def category_label(category: str) -> str:
    return _CATEGORY_LABELS.get(category, 'Inne')


def split_by_category(preference_ids: Iterable[str]) -> dict:
    """
    Group preference ids into {'diet': [...], 'cuisine': [...], 'allergy': [...]}.

    Ids missing from the catalog are dropped.
    """
    grouped = {category: [] for category in CATEGORIES}
    for preference_id in preference_ids:
        item = get_preference(preference_id)
        if item is not None:
            grouped[item.category].append(item)
    return grouped


def validate_preference_list(value) -> Tuple[Optional[List[str]], Optional[str]]:
    """
    Validate a submitted preference list.

    Returns (cleaned_ids, None) on success or (None, error_message).
    Duplicates are dropped keeping first occurrence. An empty list is valid.
    """
    if not isinstance(value, list):
        return None, "Preferencje muszą być listą"
    if not all(isinstance(item, str) for item in value):
        return None, "Każda preferencja musi być tekstem"

    cleaned = list(OrderedDict.fromkeys(item.strip() for item in value))
    if len(cleaned) > MAX_PREFERENCES:
        return None, MAX_PREFERENCES_MESSAGE

    unknown = [item for item in cleaned if item not in ALL_PREFERENCES]
    if unknown:
        return None, f"Nieznane preferencje: {', '.join(unknown)}"
    return cleaned, None
