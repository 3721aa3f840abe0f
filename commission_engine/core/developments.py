"""Canonical development keys.

Development names arrive from the CRM with inconsistent casing, stray
whitespace and a few historical spellings of the same region. Every
repository boundary funnels them through ``canonical_development`` so that
configs, rules and sales of one development always share a single key.
"""
from typing import Dict, List, Optional

from commission_engine.core.config import settings


def _normalize(value: str) -> str:
    return " ".join(value.split()).lower()


def canonical_development(value: Optional[str], aliases: Optional[Dict[str, str]] = None) -> Optional[str]:
    if value is None:
        return None
    key = _normalize(str(value))
    if not key:
        return None
    table = settings.DEVELOPMENT_ALIASES if aliases is None else aliases
    normalized_table = {_normalize(alias): _normalize(target) for alias, target in table.items()}
    return normalized_table.get(key, key)


def development_aliases(canonical: str, aliases: Optional[Dict[str, str]] = None) -> List[str]:
    """All spellings (canonical first) that resolve to ``canonical``"""
    table = settings.DEVELOPMENT_ALIASES if aliases is None else aliases
    target = canonical_development(canonical, table)
    spellings = [target]
    for alias, mapped in table.items():
        alias_key = _normalize(alias)
        if _normalize(mapped) == target and alias_key not in spellings:
            spellings.append(alias_key)
    return spellings
