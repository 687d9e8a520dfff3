"""Slug derivation for local game rows.

Slugs are the local store's natural key, so they must be deterministic:
the same catalog name always yields the same slug.

- Accents: "Pokémon Legends" → "pokemon-legends"
- Punctuation: "Tom Clancy's Rainbow Six: Siege" → "tom-clancys-rainbow-six-siege"
- Case and spacing: "HALO  3" → "halo-3"
"""
import re
import unicodedata
from typing import Optional

_APOSTROPHES = re.compile(r"['’`]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize(name: str) -> str:
    """
    Fold a display name to lowercase ASCII without accents.

    >>> normalize("Pokémon")
    'pokemon'
    """
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFKD", name)
    ascii_only = "".join(c for c in decomposed if not unicodedata.combining(c))
    return ascii_only.encode("ascii", "ignore").decode("ascii").lower()


def slugify(name: Optional[str]) -> str:
    """
    Derive a URL slug from a game name.

    Returns an empty string when nothing alphanumeric survives.

    >>> slugify("Halo 3")
    'halo-3'
    >>> slugify("Tom Clancy's Rainbow Six: Siege")
    'tom-clancys-rainbow-six-siege'
    """
    if not name:
        return ""
    folded = _APOSTROPHES.sub("", normalize(name))
    return _NON_ALNUM.sub("-", folded).strip("-")
