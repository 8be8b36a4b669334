"""
Canonical allergen definitions — single source of truth for all allergen logic.
The normalizer, the aggregator, the dietary classifier and the prompt builders
import exclusively from here.
"""

# FDA Big 9 followed by the extended EU set. Order is the display order of
# the allergen matrix and of every per-allergen status map.
CANONICAL_ALLERGENS = [
    "Milk", "Eggs", "Fish", "Shellfish", "Tree Nuts", "Peanuts",
    "Wheat", "Soy", "Sesame",
    "Gluten", "Mustard", "Celery", "Lupin", "Mollusks", "Sulfites",
    "Onion", "Garlic",
]

# The nine columns shown in the printed allergen matrix
MATRIX_ALLERGENS = CANONICAL_ALLERGENS[:9]

# Category → keyword aliases. Matching is case-insensitive substring
# containment; the canonical name itself is always matched.
ALLERGEN_ALIASES: dict[str, list[str]] = {
    "Milk": [
        "milk", "dairy", "lactose", "cream", "butter", "cheese", "yogurt",
        "yoghurt", "whey", "casein", "ghee", "parmesan", "mozzarella",
        "ricotta", "paneer",
    ],
    "Eggs": ["egg", "mayonnaise", "meringue", "custard", "aioli"],
    "Fish": [
        "fish", "salmon", "tuna", "cod", "halibut", "trout", "tilapia",
        "anchovy", "anchovies", "sardine", "mackerel", "worcestershire",
    ],
    "Shellfish": [
        "shellfish", "crustacean", "shrimp", "prawn", "crab", "lobster",
        "crayfish", "crawfish", "langoustine",
    ],
    "Tree Nuts": [
        "tree nut", "almond butter", "almond milk", "cashew milk", "almond",
        "cashew", "walnut", "pecan", "pistachio", "macadamia", "hazelnut",
        "filbert", "brazil nut", "pine nut", "chestnut", "marzipan", "praline",
        "pesto",
    ],
    "Peanuts": ["peanut", "peanut butter", "groundnut", "satay"],
    "Wheat": [
        "wheat", "flour", "bread", "pasta", "couscous", "bulgur", "semolina",
        "durum", "farina",
    ],
    "Soy": ["soy", "soy milk", "soya", "tofu", "tempeh", "edamame", "miso"],
    "Sesame": ["sesame", "tahini", "hummus", "halvah"],
    "Gluten": [
        "gluten", "barley", "rye", "triticale", "spelt", "kamut", "farro",
        "malt", "seitan",
    ],
    "Mustard": ["mustard"],
    "Celery": ["celery", "celeriac"],
    "Lupin": ["lupin"],
    "Mollusks": [
        "mollusk", "mollusc", "clam", "mussel", "oyster", "scallop", "squid",
        "calamari", "octopus", "escargot", "snail",
    ],
    "Sulfites": [
        "sulfite", "sulphite", "sulfur dioxide", "sulphur dioxide", "bisulfite",
    ],
    "Onion": ["onion", "shallot", "scallion", "leek", "chive"],
    "Garlic": ["garlic"],
}

# Terms that contain an alias but are not that allergen. They are consumed
# before alias matching and contribute nothing.
NON_ALLERGEN_TERMS = [
    "coconut milk", "coconut cream", "coconut", "eggplant", "nutmeg",
    "butternut", "buckwheat", "cream of tartar", "cocoa butter", "shea butter",
    "oat milk", "rice milk", "rice flour", "corn flour", "cornflour",
    "chickpea flour", "potato flour", "tapioca flour", "peanut-free", "nut-free",
    "dairy-free", "gluten-free", "egg-free", "soy-free",
]

# Ingredient allergens that make a dish non-vegan / non-vegetarian when the
# dietary-style classification falls back to local rules
ANIMAL_DERIVED_ALLERGENS = ["Milk", "Eggs", "Fish", "Shellfish", "Mollusks"]
MEAT_AND_SEAFOOD_ALLERGENS = ["Fish", "Shellfish", "Mollusks"]

# Per-allergen three-way status values
NOT_PRESENT = "not_present"
CAN_MODIFY = "can_modify"
CANNOT_MODIFY = "cannot_modify"

# Menu-level dietary availability
LIMITED_THRESHOLD = 5          # fewer qualifying dishes than this → "limited"
LOW_CARB_MAX_G = 20
LOW_SODIUM_MAX_MG = 600

# Dietary menu categories. "allergen-free" categories are computed locally
# from allergen sets; the others are delegated to the classification service.
DIETARY_CATEGORIES: list[dict] = [
    {"id": "shellfish-free", "name": "Shellfish-Free", "type": "allergen-free",
     "description": "No shrimp, crab, lobster, or other crustaceans",
     "allergens": ["Shellfish"]},
    {"id": "nut-free", "name": "Nut-Free", "type": "allergen-free",
     "description": "No tree nuts (almonds, walnuts, cashews, etc.)",
     "allergens": ["Tree Nuts"]},
    {"id": "peanut-free", "name": "Peanut-Free", "type": "allergen-free",
     "description": "No peanuts or peanut-derived products",
     "allergens": ["Peanuts"]},
    {"id": "dairy-free", "name": "Dairy-Free", "type": "allergen-free",
     "description": "No milk, cheese, butter, or other dairy products",
     "allergens": ["Milk"]},
    {"id": "gluten-free", "name": "Gluten-Free", "type": "allergen-free",
     "description": "No wheat, barley, rye, or gluten-containing ingredients",
     "allergens": ["Gluten", "Wheat"]},
    {"id": "egg-free", "name": "Egg-Free", "type": "allergen-free",
     "description": "No eggs or egg-derived products",
     "allergens": ["Eggs"]},
    {"id": "soy-free", "name": "Soy-Free", "type": "allergen-free",
     "description": "No soybeans, tofu, soy sauce, or soy products",
     "allergens": ["Soy"]},
    {"id": "fish-free", "name": "Fish-Free", "type": "allergen-free",
     "description": "No fish or fish-derived products",
     "allergens": ["Fish"]},
    {"id": "sesame-free", "name": "Sesame-Free", "type": "allergen-free",
     "description": "No sesame seeds, tahini, or sesame oil",
     "allergens": ["Sesame"]},
    {"id": "vegetarian", "name": "Vegetarian", "type": "dietary-style",
     "description": "No meat, poultry, or fish (dairy/eggs allowed)",
     "allergens": MEAT_AND_SEAFOOD_ALLERGENS},
    {"id": "vegan", "name": "Vegan", "type": "dietary-style",
     "description": "No animal products (meat, dairy, eggs, honey)",
     "allergens": ANIMAL_DERIVED_ALLERGENS},
    {"id": "low-carb", "name": "Low-Carb", "type": "health-focused",
     "description": f"Less than {LOW_CARB_MAX_G}g net carbs per serving",
     "allergens": []},
    {"id": "low-sodium", "name": "Low-Sodium", "type": "health-focused",
     "description": f"Less than {LOW_SODIUM_MAX_MG}mg sodium per serving",
     "allergens": []},
]

DIETARY_CATEGORY_BY_ID: dict[str, dict] = {c["id"]: c for c in DIETARY_CATEGORIES}

# Text appended to the "unavailable" reason for delegated categories
UNAVAILABLE_STYLE_REASONS: dict[str, str] = {
    "vegetarian": "All dishes contain meat, fish, or seafood.",
    "vegan": "All dishes contain animal products.",
    "low-carb": f"All dishes exceed {LOW_CARB_MAX_G}g carbs per serving.",
    "low-sodium": f"All dishes exceed {LOW_SODIUM_MAX_MG}mg sodium per serving.",
}

# Strict definitions handed to the classification service
DIETARY_STYLE_DEFINITIONS: dict[str, str] = {
    "vegetarian": (
        "VEGETARIAN: No meat (beef, pork, lamb, poultry, game), no fish, no "
        "seafood. Eggs and dairy ARE allowed. Gelatin is NOT vegetarian."
    ),
    "vegan": (
        "VEGAN: No animal products at all - no meat, fish, seafood, dairy, "
        "eggs, honey, gelatin, or any animal-derived ingredients."
    ),
    "low-carb": (
        f"LOW-CARB: Less than {LOW_CARB_MAX_G}g net carbs per serving. Focus on "
        "proteins, fats, and non-starchy vegetables. No bread, pasta, rice, "
        "potatoes, sugar."
    ),
    "low-sodium": (
        f"LOW-SODIUM: Less than {LOW_SODIUM_MAX_MG}mg sodium per serving. Avoid "
        "processed foods, soy sauce, pickled items, cured meats, high-sodium "
        "seasonings."
    ),
}

# Customer-facing dietary restriction catalogue, seeded at startup
DIETARY_RESTRICTIONS: list[dict] = [
    {"name": "Gluten-Free", "allergens": ["Gluten", "Wheat"],
     "description": "Avoid gluten-containing grains"},
    {"name": "Dairy-Free", "allergens": ["Milk"],
     "description": "Avoid all dairy products"},
    {"name": "Nut Allergy", "allergens": ["Tree Nuts", "Peanuts"],
     "description": "Severe nut allergies"},
    {"name": "Shellfish Allergy", "allergens": ["Shellfish"],
     "description": "Allergic to shellfish"},
    {"name": "Egg-Free", "allergens": ["Eggs"],
     "description": "Avoid eggs and egg products"},
    {"name": "Soy-Free", "allergens": ["Soy"],
     "description": "Avoid soy products"},
    {"name": "Fish Allergy", "allergens": ["Fish"],
     "description": "Allergic to fish"},
    {"name": "Sesame Allergy", "allergens": ["Sesame"],
     "description": "Allergic to sesame seeds"},
    {"name": "Vegan", "allergens": ANIMAL_DERIVED_ALLERGENS,
     "description": "Plant-based diet"},
    {"name": "Vegetarian", "allergens": MEAT_AND_SEAFOOD_ALLERGENS,
     "description": "No meat or fish"},
]

# Reference text inserted into allergen prompts so the model maps
# ingredients to categories rather than echoing ingredient names
ALLERGEN_MAPPING_REFERENCE = """
ALLERGEN CATEGORY MAPPINGS - Use these to correctly identify allergens:

MILK/DAIRY: milk, cream, butter, cheese, yogurt, ice cream, whey, casein, lactose, ghee
EGGS: eggs, egg whites, egg yolks, mayonnaise, meringue, custard
FISH: salmon, tuna, cod, halibut, anchovy, sardine; Worcestershire sauce, fish sauce, Caesar dressing
SHELLFISH (Crustaceans): shrimp, prawns, crab, lobster, crayfish, langoustine (keep separate from Mollusks)
MOLLUSKS: clams, mussels, oysters, scallops, squid/calamari, octopus, snails
TREE NUTS: almonds, walnuts, cashews, pecans, pistachios, hazelnuts, pine nuts; pesto, marzipan (coconut is NOT a tree nut)
PEANUTS: peanuts, peanut butter, peanut oil, satay sauce
WHEAT: wheat flour, bread, pasta, couscous, bulgur, semolina; most soy sauce
GLUTEN: wheat, barley, rye, spelt, farro, malt, seitan, beer
SOY: soybeans, edamame, tofu, tempeh, miso, soy sauce (chickpeas and lentils are NOT soy)
SESAME: sesame seeds, tahini, sesame oil, hummus
MUSTARD: mustard seeds, powder, prepared mustard; many dressings and curry powders
CELERY: celery stalks, celeriac, celery seeds, celery salt
LUPIN: lupin beans, lupin flour
SULFITES: sulfur dioxide, sodium sulfite; wine, dried fruits
ONION: onion, shallots, scallions, leeks, chives
GARLIC: garlic, garlic powder, garlic salt, aioli
"""

# Customer safety status labels
SAFETY_LABELS: dict[str, str] = {
    "safe": "Safe",
    "safe_with_modifications": "Safe with modifications",
    "unsafe": "Unsafe",
}
