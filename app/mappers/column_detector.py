"""
app/mappers/column_detector.py

Suggests a canonical target field for each spreadsheet column.

Two tiers per header:

1. Exact pattern match against known header spellings (confidence 95).
2. Levenshtein fuzzy match against per-field keywords, kept only when the
   similarity clears the confidence floor (default: strictly above 70).

Headers that match nothing are left out of the result; the user assigns
them by hand before confirming the import.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence

from rapidfuzz.distance import Levenshtein

from app.domain.spreadsheet import ColumnMapping

EXACT_MATCH_CONFIDENCE = 95
FUZZY_CONFIDENCE_CEILING = 94
DEFAULT_MIN_FUZZY_CONFIDENCE = 70
MIN_TOKEN_LENGTH = 3

_NON_HEADER_CHARS = re.compile(r"[^a-z0-9_ ]")
_TOKEN_SPLIT = re.compile(r"[ _]+")


def _patterns(*expressions: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(expression) for expression in expressions)


# Field order is the tie-break: the first field with a matching pattern wins.
DEFAULT_FIELD_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "email": _patterns(
        r"^e-?mail$",
        r"^contact[_ ]?e-?mail$",
        r"^subscriber[_ ]?e-?mail$",
        r"^attendee[_ ]?e-?mail$",
        r"^registrant[_ ]?e-?mail$",
    ),
    "campaign_name": _patterns(
        r"^campaign[_ ]?name$",
        r"^campaign$",
        r"^source[_ ]?campaign$",
        r"^marketing[_ ]?campaign$",
    ),
    "utm_source": _patterns(
        r"^utm[_ ]?source$",
        r"^source$",
        r"^traffic[_ ]?source$",
    ),
    "utm_medium": _patterns(
        r"^utm[_ ]?medium$",
        r"^medium$",
        r"^marketing[_ ]?medium$",
    ),
    "utm_campaign": _patterns(
        r"^utm[_ ]?campaign$",
    ),
    "registration_date": _patterns(
        r"^registration[_ ]?date$",
        r"^reg[_ ]?date$",
        r"^signup[_ ]?date$",
        r"^created[_ ]?date$",
        r"^date[_ ]?registered$",
    ),
    "event_name": _patterns(
        r"^event[_ ]?name$",
        r"^event[_ ]?title$",
        r"^webinar[_ ]?name$",
        r"^conference[_ ]?name$",
    ),
    "event_date": _patterns(
        r"^event[_ ]?date$",
        r"^webinar[_ ]?date$",
        r"^scheduled[_ ]?date$",
    ),
    "cost": _patterns(
        r"^cost$",
        r"^spend$",
        r"^amount$",
        r"^marketing[_ ]?spend$",
        r"^campaign[_ ]?cost$",
    ),
    "impressions": _patterns(
        r"^impressions?$",
        r"^views?$",
        r"^ad[_ ]?impressions$",
    ),
    "clicks": _patterns(
        r"^clicks?$",
        r"^click[_ ]?count$",
        r"^ad[_ ]?clicks$",
    ),
    "conversions": _patterns(
        r"^conversions?$",
        r"^converts?$",
        r"^leads?$",
    ),
    "registrations": _patterns(
        r"^registrations?$",
        r"^registered$",
        r"^signups?$",
        r"^enrollments?$",
    ),
    "attendees": _patterns(
        r"^attendees?$",
        r"^attended$",
        r"^attendance$",
        r"^participants?$",
    ),
    "attendee_name": _patterns(
        r"^attendee[_ ]?name$",
        r"^full[_ ]?name$",
        r"^name$",
        r"^registrant[_ ]?name$",
    ),
    "company": _patterns(
        r"^company$",
        r"^organization$",
        r"^org$",
        r"^account[_ ]?name$",
    ),
}

DEFAULT_FIELD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "email": ("email", "mail", "contact"),
    "campaign_name": ("campaign", "campign"),
    "utm_source": ("utmsource", "source"),
    "utm_medium": ("utmmedium", "medium"),
    "registration_date": ("regdate", "signupdate", "registered"),
    "event_name": ("eventname", "event"),
    "cost": ("cost", "spend", "price"),
    "impressions": ("impression", "view"),
    "clicks": ("click",),
    "registrations": ("registration", "signup", "enrollment"),
    "attendees": ("attendee", "attended", "participant"),
    "attendee_name": ("attendee", "name", "fullname"),
    "company": ("company", "org", "organization"),
}


def normalize_header(header: str) -> str:
    """
    Trim, lowercase and drop every character outside ``[a-z0-9_ ]``.
    """

    return _NON_HEADER_CHARS.sub("", header.strip().lower()).strip()


def similarity(left: str, right: str) -> int:
    """
    Levenshtein similarity on a 0-100 scale, rounded half up.
    """

    longest = max(len(left), len(right))
    if longest == 0:
        return 100
    distance = Levenshtein.distance(left, right)
    return math.floor((1 - distance / longest) * 100 + 0.5)


class ColumnDetector:
    """
    Proposes header → canonical field mappings with confidence scores.

    The result depends only on the header list, never on row content.
    """

    def __init__(
        self,
        *,
        patterns: Mapping[str, Sequence[re.Pattern[str]]] | None = None,
        keywords: Mapping[str, Sequence[str]] | None = None,
        min_fuzzy_confidence: int = DEFAULT_MIN_FUZZY_CONFIDENCE,
    ) -> None:
        self._patterns = {
            field: tuple(values)
            for field, values in (patterns or DEFAULT_FIELD_PATTERNS).items()
        }
        self._keywords = {
            field: tuple(values)
            for field, values in (keywords or DEFAULT_FIELD_KEYWORDS).items()
        }
        self._min_fuzzy_confidence = max(0, min(100, min_fuzzy_confidence))

    def detect_mappings(self, headers: Sequence[str]) -> list[ColumnMapping]:
        """
        Return one suggestion per header that matched a pattern or keyword.
        """

        mappings: list[ColumnMapping] = []
        for header in headers:
            mapping = self.detect(header)
            if mapping is not None:
                mappings.append(mapping)
        return mappings

    def detect(self, header: str) -> ColumnMapping | None:
        normalized = normalize_header(header)
        if not normalized:
            return None

        exact_field = self._match_pattern(normalized)
        if exact_field is not None:
            return ColumnMapping(
                source_column=header,
                target_field=exact_field,
                confidence=EXACT_MATCH_CONFIDENCE,
            )

        fuzzy = self._match_fuzzy(normalized)
        if fuzzy is None:
            return None
        field, score = fuzzy
        if score <= self._min_fuzzy_confidence:
            return None
        return ColumnMapping(
            source_column=header,
            target_field=field,
            confidence=min(score, FUZZY_CONFIDENCE_CEILING),
        )

    def _match_pattern(self, normalized: str) -> str | None:
        for field, patterns in self._patterns.items():
            for pattern in patterns:
                if pattern.search(normalized):
                    return field
        return None

    def _match_fuzzy(self, normalized: str) -> tuple[str, int] | None:
        tokens = [
            token
            for token in _TOKEN_SPLIT.split(normalized)
            if len(token) >= MIN_TOKEN_LENGTH
        ]

        best: tuple[str, int] | None = None
        for field, keywords in self._keywords.items():
            for keyword in keywords:
                score = self._keyword_score(normalized, tokens, keyword)
                if score is None:
                    continue
                if best is None or score > best[1]:
                    best = (field, score)
        return best

    @staticmethod
    def _keyword_score(normalized: str, tokens: Sequence[str], keyword: str) -> int | None:
        # A keyword contained in the header (or vice versa) is scored against
        # the whole header only, so extra words lower the score.
        if keyword in normalized or normalized in keyword:
            return similarity(normalized, keyword)
        if not tokens:
            return None
        return max(similarity(token, keyword) for token in tokens)
