"""Name variant resolvers: nicknames and acronyms.

The nickname table is data, not code. The bundled table ships as
``data/nicknames.yaml``; callers can load their own or extend the default
and pass it to the scorer.
"""

import logging
from collections.abc import Mapping
from pathlib import Path

import yaml

from recall_kg.resolve.normalize import first_token, name_tokens

logger = logging.getLogger(__name__)

BUNDLED_NICKNAMES = Path(__file__).parent / "data" / "nicknames.yaml"

_default_table: "NicknameTable | None" = None


class NicknameTable:
    """Bidirectional lookup between full first names and nicknames."""

    def __init__(self, nicknames: Mapping[str, list[str]]) -> None:
        self._nicknames: dict[str, list[str]] = {}
        self._full_names: dict[str, list[str]] = {}
        for full, nicks in nicknames.items():
            full = full.strip().lower()
            if not full:
                continue
            nicks = [n.strip().lower() for n in nicks if n and n.strip()]
            self._nicknames.setdefault(full, [])
            for nick in nicks:
                if nick not in self._nicknames[full]:
                    self._nicknames[full].append(nick)
                full_names = self._full_names.setdefault(nick, [])
                if full not in full_names:
                    full_names.append(full)

    @classmethod
    def from_yaml(cls, path: Path) -> "NicknameTable":
        """Load a table from YAML with a top-level ``nicknames`` mapping.

        Raises:
            ValueError: If the file is missing or malformed
        """
        path = Path(path)
        if not path.exists():
            raise ValueError(f"Nickname table not found: {path}")
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        mapping = raw.get("nicknames", raw) if isinstance(raw, dict) else None
        if not isinstance(mapping, dict):
            raise ValueError(f"Nickname table must be a mapping of name -> [nicknames]: {path}")
        table = cls(mapping)
        logger.debug(f"Loaded {len(table)} names from nickname table {path}")
        return table

    @classmethod
    def default(cls) -> "NicknameTable":
        """The bundled table, loaded once."""
        global _default_table
        if _default_table is None:
            _default_table = cls.from_yaml(BUNDLED_NICKNAMES)
        return _default_table

    def extend(self, nicknames: Mapping[str, list[str]]) -> "NicknameTable":
        """Return a new table with extra entries layered over this one."""
        merged = {full: list(nicks) for full, nicks in self._nicknames.items()}
        for full, nicks in nicknames.items():
            merged.setdefault(full.strip().lower(), []).extend(nicks)
        return NicknameTable(merged)

    def nicknames_for(self, name: str) -> list[str]:
        return list(self._nicknames.get(name, []))

    def full_names_for(self, nickname: str) -> list[str]:
        return list(self._full_names.get(nickname, []))

    def canonical_forms(self, name: str) -> set[str]:
        """Every full name this token stands for, including itself."""
        return {name, *self._full_names.get(name, [])}

    def are_variants(self, name1: str, name2: str) -> bool:
        """True if the first names are equal or one is a nickname of the other."""
        n1 = first_token(name1)
        n2 = first_token(name2)

        if n1 == n2:
            return True

        if n2 in self._full_names.get(n1, []) or n1 in self._full_names.get(n2, []):
            return True
        return n2 in self._nicknames.get(n1, []) or n1 in self._nicknames.get(n2, [])

    def __len__(self) -> int:
        return len(self._nicknames)

    def __contains__(self, name: object) -> bool:
        return name in self._nicknames or name in self._full_names


def are_nickname_variants(
    name1: str, name2: str, table: NicknameTable | None = None
) -> bool:
    """Check whether two names could be nickname variants of each other.

    Examples:
        "Robert Matsuoka", "Bob" -> True
        "Robert", "Richard" -> False
    """
    return (table or NicknameTable.default()).are_variants(name1, name2)


def acronym(name: str) -> str:
    """Initial letters of each normalized token ("Int'l Business Machines" -> "ibm")."""
    return "".join(token[0] for token in name_tokens(name))


def are_abbreviation_variants(name1: str, name2: str) -> bool:
    """Check whether one name is the acronym of the other.

    Exactly one side must be a single token, and it must equal the
    initials of the multi-token side: "IBM" and "International Business
    Machines" match in either order.
    """
    words1 = name_tokens(name1)
    words2 = name_tokens(name2)

    if len(words2) == 1 and len(words1) > 1:
        return acronym(name1) == words2[0]
    if len(words1) == 1 and len(words2) > 1:
        return acronym(name2) == words1[0]
    return False
