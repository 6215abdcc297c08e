"""Fuzzy matching of field labels in free document text.

Each field yields candidate patterns with decreasing base confidence. Every
match is adjusted by its surroundings (blank after the label, table row, colon,
an existing token nearby) and kept when it reaches MIN_CONFIDENCE.
"""

import re
from typing import NamedTuple

from services.tokens.TokenSyntax import TOKEN_PATTERN
from shared.clients.plm.models.Field import FieldDefinition
from shared.models.token import FieldSuggestion

MIN_CONFIDENCE = 0.75

SCORE_EXACT_COLON = 1.00
SCORE_EXACT_WORD = 0.95
SCORE_UNDERSCORE_COLON = 0.90
SCORE_ABBREVIATION = 0.85
SCORE_SYNONYM = 0.75

BONUS_TRAILING_BLANK = 0.05
BONUS_TABLE_ROW = 0.05
BONUS_COLON = 0.03
PENALTY_NEARBY_TOKEN = 0.15

TABLE_CONTEXT_CHARS = 30
TOKEN_PROXIMITY_CHARS = 50
TABLE_DELIMITERS = ("|", "\t")

# keyed by normalized field-name substrings
ABBREVIATIONS: dict[str, tuple[str, ...]] = {
    "part number": ("P/N", "PN", "Part #"),
    "revision": ("Rev", "Rev."),
    "description": ("Desc",),
    "lifecycle phase": ("Lifecycle", "Phase", "Status"),
    "manufacturer": ("Mfr", "MFG"),
    "quantity": ("Qty",),
}

SYNONYMS: dict[str, tuple[str, ...]] = {
    "part number": ("Item Number", "Item #"),
    "name": ("Title",),
    "description": ("Details",),
    "revision": ("Version",),
    "lifecycle phase": ("Stage",),
}

_RE_SEPARATORS = re.compile(r"[\s_\-]+")


class FieldPattern(NamedTuple):
    regex: re.Pattern
    base_confidence: float
    kind: str


def normalize_field_name(name: str) -> str:
    return _RE_SEPARATORS.sub(" ", name.strip().lower()).strip()


def _lookup(table: dict[str, tuple[str, ...]], field_name: str) -> list[str]:
    normalized = f" {normalize_field_name(field_name)} "
    variants: list[str] = []
    for key, values in table.items():
        if f" {key} " in normalized:
            variants.extend(v for v in values if v not in variants)
    return variants


def _word(text: str, optional_colon: bool = True) -> re.Pattern:
    suffix = r"(?:\s*:)?" if optional_colon else ""
    return re.compile(r"(?<!\w)" + re.escape(text) + r"(?!\w)" + suffix, re.IGNORECASE)


def _label(text: str) -> re.Pattern:
    return re.compile(r"(?<!\w)" + re.escape(text) + r"\s*:", re.IGNORECASE)


class FuzzyFieldMatcher:
    def __init__(self, min_confidence: float = MIN_CONFIDENCE):
        self.min_confidence = min_confidence

    def build_patterns(self, field: FieldDefinition) -> list[FieldPattern]:
        """
        Candidate patterns for one field, highest base confidence first.
        """
        name = field.name.strip()
        patterns = [
            FieldPattern(_label(name), SCORE_EXACT_COLON, "exact-colon"),
            FieldPattern(_word(name), SCORE_EXACT_WORD, "exact-word"),
        ]
        underscored = re.sub(r"\s+", "_", name)
        if underscored != name:
            patterns.append(FieldPattern(_label(underscored), SCORE_UNDERSCORE_COLON, "underscore-colon"))
        for abbreviation in _lookup(ABBREVIATIONS, name):
            patterns.append(FieldPattern(_word(abbreviation), SCORE_ABBREVIATION, "abbreviation"))
        for synonym in _lookup(SYNONYMS, name):
            patterns.append(FieldPattern(_word(synonym), SCORE_SYNONYM, "synonym"))
        return patterns

    def match(self, text: str, fields: list[FieldDefinition]) -> list[FieldSuggestion]:
        """
        Scans text for labels of the given fields.

        Returns:
            list[FieldSuggestion]: Suggestions at or above the threshold, best first,
            at most one per (offset, field name).
        """
        token_spans = [(m.start(), m.end()) for m in TOKEN_PATTERN.finditer(text)]
        suggestions: list[FieldSuggestion] = []

        for field in fields:
            for pattern in self.build_patterns(field):
                for match in pattern.regex.finditer(text):
                    if any(start <= match.start() < end for start, end in token_spans):
                        continue
                    confidence = self.score(text, match.start(), match.end(), pattern.base_confidence, token_spans)
                    if confidence < self.min_confidence:
                        continue
                    suggestions.append(FieldSuggestion(
                        field_name=field.name,
                        field_type=field.field_type,
                        attribute_id=field.attribute_id,
                        matched_text=match.group(0),
                        start=match.start(),
                        end=match.end(),
                        confidence=confidence,
                        pattern=pattern.kind,
                    ))

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        seen: set[tuple[int, str]] = set()
        unique = []
        for suggestion in suggestions:
            key = (suggestion.start, suggestion.field_name)
            if key in seen:
                continue
            seen.add(key)
            unique.append(suggestion)
        return unique

    def score(self, text: str, start: int, end: int, base: float, token_spans: list[tuple[int, int]]) -> float:
        confidence = base

        line_rest = text[end:].split("\n", 1)[0]
        if not line_rest.lstrip(":").strip().strip("_").strip():
            confidence += BONUS_TRAILING_BLANK

        context = text[max(0, start - TABLE_CONTEXT_CHARS):end + TABLE_CONTEXT_CHARS]
        if any(delimiter in context for delimiter in TABLE_DELIMITERS):
            confidence += BONUS_TABLE_ROW

        if text[start:end].rstrip().endswith(":"):
            confidence += BONUS_COLON

        # clamp bonuses first so a nearby token always costs the full penalty
        confidence = min(1.0, confidence)
        if any(t_start < end + TOKEN_PROXIMITY_CHARS and t_end > start - TOKEN_PROXIMITY_CHARS for t_start, t_end in token_spans):
            confidence -= PENALTY_NEARBY_TOKEN
        return max(0.0, min(1.0, confidence))
