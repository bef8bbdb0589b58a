"""
Acronym-based query expansion.

Dependencies: re (stdlib)
System role: Query variants for recall on abbreviation-heavy corpora
"""

import re


def _word_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)


def expand_query(
    query: str,
    acronym_mappings: dict[str, list[str]],
    max_variants: int = 3,
) -> list[str]:
    """
    Produce query variants by swapping acronyms and their expansions.

    Matching is whole-word and case-insensitive in both directions, so
    "HR leave" yields "human resources leave" and "human resources leave"
    yields "hr leave". The original query is always first.

    Args:
        query: User query
        acronym_mappings: acronym -> expansions
        max_variants: Upper bound on returned variants, original included

    Returns:
        Distinct query variants
    """
    variants = [query]
    seen = {query.strip().lower()}

    def add(candidate: str) -> bool:
        key = candidate.strip().lower()
        if key in seen:
            return len(variants) < max_variants
        seen.add(key)
        variants.append(candidate)
        return len(variants) < max_variants

    if max_variants <= 1:
        return variants

    for acronym in sorted(acronym_mappings):
        expansions = acronym_mappings[acronym]
        acronym_pattern = _word_pattern(acronym)
        if acronym_pattern.search(query):
            for expansion in expansions:
                if not add(acronym_pattern.sub(expansion, query)):
                    return variants
        for expansion in expansions:
            expansion_pattern = _word_pattern(expansion)
            if expansion_pattern.search(query):
                if not add(expansion_pattern.sub(acronym, query)):
                    return variants
    return variants
