"""Supplier, Product and Loading Base Normalization.

Free text from invoices ("ENILIVE S.p.A.", "GASOLIO AUTOTRAZIONE 10PPM",
"Deposito di Civitavecchia") is reduced to a fixed vocabulary before a
price column can be looked up. Each vocabulary is an ordered list of
(predicate, canonical) rules; the first predicate that accepts the
normalized text decides.

Examples:
    "Enilive S.p.A."               → "ENI"
    "KUWAIT PETROLEUM ITALIA SPA"  → "Q8"
    "GASOLIO AGRICOLO"             → "agri_diesel"
    "HVO 100"                      → "hvo"
    "DEP. CVV"                     → "CIVITAVECCHIA"
"""

import re
from typing import Callable, List, Optional, Sequence, Tuple


Predicate = Callable[[str, Tuple[str, ...]], bool]
Rule = Tuple[Predicate, str]


def normalize_text(value: str) -> str:
    """Uppercase, replace punctuation with spaces and collapse whitespace.

    Examples:
        >>> normalize_text("Enilive S.p.A.")
        'ENILIVE S P A'
    """
    if not value:
        return ""
    text = value.upper().strip()
    text = re.sub(r'[.,;:!?()"\'\[\]{}/\\-]', ' ', text)
    return re.sub(r'\s+', ' ', text).strip()


def tokenize(value: str) -> Tuple[str, ...]:
    """Tokens of the normalized text, in order."""
    return tuple(normalize_text(value).split())


# =============================================================================
# Predicates
# =============================================================================

def starts_with(*prefixes: str) -> Predicate:
    def predicate(text: str, tokens: Tuple[str, ...]) -> bool:
        return any(text.startswith(prefix) for prefix in prefixes)
    return predicate


def contains(*fragments: str) -> Predicate:
    def predicate(text: str, tokens: Tuple[str, ...]) -> bool:
        return any(fragment in text for fragment in fragments)
    return predicate


def has_token(*words: str) -> Predicate:
    def predicate(text: str, tokens: Tuple[str, ...]) -> bool:
        return any(word in tokens for word in words)
    return predicate


def any_of(*predicates: Predicate) -> Predicate:
    def predicate(text: str, tokens: Tuple[str, ...]) -> bool:
        return any(p(text, tokens) for p in predicates)
    return predicate


def first_match(rules: Sequence[Rule], value: str) -> Optional[str]:
    """Canonical value of the first rule accepting the text, or None."""
    text = normalize_text(value)
    if not text:
        return None
    tokens = tuple(text.split())
    for predicate, canonical in rules:
        if predicate(text, tokens):
            return canonical
    return None


# =============================================================================
# Vocabularies
# =============================================================================

SUPPLIER_RULES: List[Rule] = [
    (any_of(has_token("ENI", "AGIP"), contains("ENILIVE")), "ENI"),
    (any_of(has_token("Q8"), contains("KUWAIT")), "Q8"),
    (any_of(starts_with("ESSO"), has_token("ESSO"), contains("EXXON")), "ESSO"),
    (any_of(contains("ITALIANA PETROLI"), has_token("IP", "API")), "IP"),
    (contains("TAMOIL"), "TAMOIL"),
]

# HVO and agricultural diesel are checked before road diesel: their
# descriptions also say "GASOLIO".
PRODUCT_RULES: List[Rule] = [
    (any_of(has_token("HVO"), contains("HVOLUTION", "BIODIESEL HVO")), "hvo"),
    (contains("AGRICOL"), "agri_diesel"),
    (any_of(contains("BENZINA", "SENZA PIOMBO", "GASOLINE"), has_token("SP95", "BSP")), "gasoline"),
    (contains("GASOLIO", "DIESEL", "AUTOTRAZIONE"), "diesel"),
]

DEPOT_RULES: List[Rule] = [
    (contains("CIVITAVECCHIA"), "CIVITAVECCHIA"),
    (contains("VIBO VALENTIA", "VIBO"), "VIBO VALENTIA"),
    (any_of(has_token("ROMA", "RM"), contains("ROME")), "ROMA"),
    (any_of(has_token("NAPOLI", "NA"), contains("NAPLES")), "NAPOLI"),
    (any_of(contains("TARANTO"), has_token("TA")), "TARANTO"),
    (any_of(contains("LIVORNO"), has_token("LI")), "LIVORNO"),
    (any_of(contains("RAVENNA"), has_token("RA")), "RAVENNA"),
    (contains("GAETA"), "GAETA"),
    (has_token("CVV"), "CIVITAVECCHIA"),
    (has_token("VV"), "VIBO VALENTIA"),
]

SUPPLIERS = tuple(dict.fromkeys(canonical for _, canonical in SUPPLIER_RULES))
PRODUCT_TYPES = tuple(dict.fromkeys(canonical for _, canonical in PRODUCT_RULES))
DEPOTS = tuple(dict.fromkeys(canonical for _, canonical in DEPOT_RULES))


def normalize_supplier(name: str) -> Optional[str]:
    """Canonical supplier (ENI, Q8, ESSO, IP, TAMOIL) or None.

    Examples:
        >>> normalize_supplier("ENILIVE S.p.A.")
        'ENI'
        >>> normalize_supplier("Kuwait Petroleum Italia")
        'Q8'
    """
    return first_match(SUPPLIER_RULES, name)


def normalize_product(description: str) -> Optional[str]:
    """Canonical product type (diesel, gasoline, agri_diesel, hvo) or None."""
    return first_match(PRODUCT_RULES, description)


def normalize_depot(base: str) -> Optional[str]:
    """Canonical loading base, by full name or local abbreviation."""
    return first_match(DEPOT_RULES, base)
