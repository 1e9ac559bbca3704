"""Rule-based query parser used whenever the AI interpreter is unavailable"""

import re

from marketplace.schemas.search import Interpretation, SearchFilters

# Order matters: the first category found in the query wins
CATEGORIES = ["Artesanato", "Alimentos", "Vestuário", "Doces", "Decoração"]

SIMPLE_SEARCH_INTERPRETATION = "simple text search"

_PRICE_NUMBER = r"\s*r?\$?\s*(\d+(?:[.,]\d{1,2})?)"
PRICE_MAX_PATTERN = re.compile(r"(?:até|máximo|max|menor que|<=|<)" + _PRICE_NUMBER, re.IGNORECASE)
PRICE_MIN_PATTERN = re.compile(r"(?:a partir de|de|mínimo|min|maior que|>=|>)" + _PRICE_NUMBER, re.IGNORECASE)

STOP_WORDS = frozenset(
    {
        "ate", "até", "reais", "real", "por", "para", "com", "sem", "que",
        "uma", "uns", "umas", "das", "dos", "nas", "nos", "pelo", "pela",
    }
)


def _parse_price(raw: str) -> float:
    return float(raw.replace(",", "."))


def format_price(value: float) -> str:
    """Render 50.0 as "50" and 19.9 as "19.9"."""
    return str(int(value)) if value.is_integer() else str(value)


def extract_category(lowercase_query: str) -> str | None:
    for category in CATEGORIES:
        if category.lower() in lowercase_query:
            return category
    return None


def extract_keywords(query: str) -> list[str]:
    words = re.sub(r"[^\w\s]", " ", query.lower()).split()
    return [word for word in words if len(word) > 2 and word not in STOP_WORDS]


def fallback_parse(query: str) -> Interpretation:
    """
    Derive search filters from a raw query without any external service.

    Pure and deterministic: the same query always yields the same filters and
    interpretation text. Clauses appear in the order category, max price,
    min price, keywords.
    """
    lowercase_query = query.lower()
    filters = SearchFilters()
    parts: list[str] = []

    if category := extract_category(lowercase_query):
        filters.category = category
        parts.append(f"Category: {category}")

    if match := PRICE_MAX_PATTERN.search(lowercase_query):
        filters.price_max = _parse_price(match.group(1))
        parts.append(f"Max price: R$ {format_price(filters.price_max)}")

    if match := PRICE_MIN_PATTERN.search(lowercase_query):
        filters.price_min = _parse_price(match.group(1))
        parts.append(f"Min price: R$ {format_price(filters.price_min)}")

    if keywords := extract_keywords(query):
        filters.keywords = keywords
        parts.append(f"Keywords: {', '.join(keywords)}")

    interpretation = "; ".join(parts) if parts else SIMPLE_SEARCH_INTERPRETATION
    return Interpretation(filters=filters, interpretation=interpretation)
