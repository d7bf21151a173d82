"""Derive archive file names from a match stats payload.

The stats API is not consistent about where it puts the round ("jornada")
and the final score. Each fact is looked up with an ordered list of
extraction rules; the first rule whose path exists and whose predicate
accepts the value wins, otherwise the fact falls back to "0".

Names look like ``J5_P3_88_76.json`` (round 5, 3rd match of the run,
home 88, away 76) and ``J5_P3_Moves.json``.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Optional, Sequence, Union

PathKey = Union[str, int]

PLACEHOLDER = "0"

PATH_SEPARATORS = re.compile(r"[\\/\x00]")

_MISSING = object()


def is_present(value: Any) -> bool:
    return value is not None


def is_truthy(value: Any) -> bool:
    return bool(value)


@dataclass(frozen=True)
class ExtractionRule:
    """A path into a JSON tree plus the check a found value must pass."""

    path: tuple[PathKey, ...]
    predicate: Callable[[Any], bool] = is_present

    def lookup(self, tree: Any) -> Any:
        """Return the value at `path`, or _MISSING."""
        node = tree
        for key in self.path:
            if isinstance(key, int):
                if not isinstance(node, list) or not -len(node) <= key < len(node):
                    return _MISSING
                node = node[key]
            else:
                if not isinstance(node, dict) or key not in node:
                    return _MISSING
                node = node[key]
        return node


ROUND_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(("jornada",), is_truthy),
    ExtractionRule(("match", "jornada"), is_truthy),
)

HOME_SCORE_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(("teams", 0, "data", "score")),
    ExtractionRule(("resultatLocal",)),
    ExtractionRule(("match", "resultatLocal")),
)

AWAY_SCORE_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(("teams", 1, "data", "score")),
    ExtractionRule(("resultatVisitant",)),
    ExtractionRule(("match", "resultatVisitant")),
)


class DocumentNames(NamedTuple):
    stats_name: str
    moves_name: str


def to_text(value: Any) -> str:
    """Render a JSON scalar the way it reads on the site, trimmed.

    Path separators become "_"; a fact never adds a directory level.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return PATH_SEPARATORS.sub("_", str(value).strip())


def extract_fact(payload: Any, rules: Sequence[ExtractionRule], default: str = PLACEHOLDER) -> str:
    """Apply `rules` in order and return the first accepted value as text."""
    if not payload:
        return default
    for rule in rules:
        value = rule.lookup(payload)
        if value is not _MISSING and rule.predicate(value):
            return to_text(value)
    return default


def derive_names(stats: Optional[Any], index: int) -> DocumentNames:
    """Build the stats and moves file names for the `index`-th match (1-based)."""
    jornada = extract_fact(stats, ROUND_RULES)
    home = extract_fact(stats, HOME_SCORE_RULES)
    away = extract_fact(stats, AWAY_SCORE_RULES)

    return DocumentNames(
        stats_name=f"J{jornada}_P{index}_{home}_{away}.json",
        moves_name=f"J{jornada}_P{index}_Moves.json",
    )
