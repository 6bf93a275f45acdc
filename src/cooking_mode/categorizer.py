from __future__ import annotations
import re
from cooking_mode.models import CategorizedIngredient, CategoryType, Importance, IngredientGroup

# Checked in this order; the first keyword found as a whole word (or its plural) wins.
CATEGORY_KEYWORDS: dict[CategoryType, list[str]] = {
    "needs-prep": [
        "onion", "garlic", "shallot", "ginger", "celery", "carrot", "pepper", "bell pepper",
        "jalapeño", "chili", "tomato", "potato", "sweet potato", "zucchini", "eggplant",
        "cucumber", "mushroom", "broccoli", "cauliflower", "cabbage", "herbs", "parsley",
        "cilantro", "basil", "thyme", "rosemary", "scallion", "leek", "fennel", "radish",
    ],
    "needs-cooking": [
        "chicken", "beef", "pork", "lamb", "turkey", "duck", "meat", "steak",
        "fish", "salmon", "tuna", "cod", "shrimp", "prawn", "seafood", "scallop", "lobster",
        "egg", "bacon", "sausage", "ham", "pasta", "noodle", "rice", "quinoa", "lentil",
        "bean", "chickpea",
    ],
    "needs-thawing": ["frozen", "freeze", "ice"],
    "needs-washing": [
        "lettuce", "spinach", "kale", "arugula", "greens", "salad", "chard", "watercress",
        "berry", "berries", "strawberry", "strawberries", "blueberry", "blueberries",
        "raspberry", "raspberries", "grape", "cherry", "cherries", "apple", "pear",
    ],
    "ready-to-use": [
        "oil", "olive oil", "butter", "flour", "sugar", "salt", "pepper", "spice", "sauce",
        "vinegar", "soy sauce", "stock", "broth", "cream", "milk", "cheese", "yogurt",
        "honey", "syrup", "extract", "vanilla", "baking powder", "baking soda", "yeast",
        "canned", "can", "jar", "dried", "powder", "paste", "puree",
    ],
}

CATEGORY_ORDER: list[CategoryType] = [
    "needs-prep",
    "needs-cooking",
    "needs-thawing",
    "needs-washing",
    "ready-to-use",
]

DEFAULT_CATEGORY: CategoryType = "ready-to-use"

CATEGORY_LABELS: dict[CategoryType, tuple[str, str]] = {
    "needs-prep": ("Needs Prep", "🔪"),
    "needs-cooking": ("Needs Cooking", "🔥"),
    "needs-thawing": ("Needs Thawing", "🧊"),
    "needs-washing": ("Needs Washing", "💧"),
    "ready-to-use": ("Ready to Use", "✓"),
}

PROTEIN_KEYWORDS = [
    "chicken", "beef", "pork", "lamb", "turkey", "duck",
    "fish", "salmon", "tuna", "cod", "shrimp", "prawn", "crab", "lobster",
    "egg", "eggs", "tofu", "tempeh", "seitan",
]

REPLACEABLE_KEYWORDS = [
    "salt", "pepper", "garlic", "onion", "herb", "spice", "seasoning",
    "oil", "vinegar", "sauce", "butter", "margarine", "sugar", "honey",
    "lemon", "lime", "parsley", "basil", "oregano", "thyme", "rosemary",
]

LARGE_QUANTITY_THRESHOLD = 2


def _has_word(keyword: str, text: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}(?:e?s)?\b", text) is not None


def categorize(name: str) -> CategoryType:
    lower = name.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(_has_word(keyword, lower) for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def category_rank(category: str) -> int:
    try:
        return CATEGORY_ORDER.index(category)
    except ValueError:
        return len(CATEGORY_ORDER)


def classify_importance(name: str, amount: float, category: str) -> Importance:
    """Decide whether an ingredient may be substituted.

    Precedence: a replaceable keyword wins unless the name is also a protein;
    otherwise proteins, cooking-needed ingredients and large quantities
    (in the ingredient's own unit) are crucial; everything else is replaceable.
    """
    lower = name.lower()
    is_protein = any(keyword in lower for keyword in PROTEIN_KEYWORDS)
    is_replaceable = any(keyword in lower for keyword in REPLACEABLE_KEYWORDS)

    if is_replaceable and not is_protein:
        return "replaceable"
    if is_protein or category == "needs-cooking" or amount > LARGE_QUANTITY_THRESHOLD:
        return "crucial"
    return "replaceable"


def group_by_category(ingredients: list[CategorizedIngredient]) -> list[IngredientGroup]:
    groups = {category: [] for category in CATEGORY_ORDER}
    for ingredient in ingredients:
        groups.setdefault(ingredient.category, []).append(ingredient)
    return [
        IngredientGroup(
            type=category,
            name=CATEGORY_LABELS[category][0],
            icon=CATEGORY_LABELS[category][1],
            ingredients=groups[category],
        )
        for category in CATEGORY_ORDER
    ]
