"""
Action Item Extraction

Best-effort parsing of an "actionable" summary into task-like items.
Each line is classified by four independent rule sets, applied in the
order priority -> date -> category -> source. Misclassification outside
the keyword and pattern lists below is expected.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Final

from resummarize.schemas.ai import ActionItem, ActionItemSort, Category, Priority

LIST_MARKER: Final = re.compile(r"^\s*(?:\d+[.)]|[-*•]|\[[ xX]?\])\s*")

PRIORITY_RULES: Final[tuple[tuple[Priority, re.Pattern[str]], ...]] = (
    (
        "high",
        re.compile(
            r"\b(?:urgent(?:ly)?|asap|immediately|critical|important|high[- ]priority|right away)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "medium",
        re.compile(
            r"\b(?:soon|this week|medium[- ]priority|should|next few days)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "low",
        re.compile(
            r"\b(?:eventually|when possible|someday|low[- ]priority|optional|if time permits)\b",
            re.IGNORECASE,
        ),
    ),
)

_WEEKDAY = r"(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)"
_MONTH = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|"
    r"aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

DATE_PATTERN: Final = re.compile(
    r"(?:\b(?:by|on|before|until|due)\s+)?"
    r"(?:"
    r"\b(?:today|tomorrow|tonight)\b"
    rf"|\b(?:next|this)\s+(?:week|weekend|month|year|{_WEEKDAY})\b"
    r"|\bend\s+of\s+(?:the\s+)?(?:day|week|month|year)\b"
    rf"|\b{_WEEKDAY}\b"
    r"|\b\d{4}-\d{2}-\d{2}\b"
    r"|\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b"
    rf"|\b{_MONTH}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?\b"
    r")",
    re.IGNORECASE,
)

CATEGORY_RULES: Final[tuple[tuple[Category, re.Pattern[str]], ...]] = tuple(
    (category, re.compile(r"\b(?:" + "|".join(words) + r")\b", re.IGNORECASE))
    for category, words in (
        ("Meeting", ("meet", "meeting", "meetings", "schedule a", "appointment", "sync")),
        (
            "Communication",
            ("email", "e-mail", "reply", "respond", "message", "contact", "reach out", "text"),
        ),
        ("Review", ("review", "check", "verify", "proofread", "evaluate")),
        ("Creation", ("write", "create", "draft", "design", "build", "prepare")),
        ("Research", ("research", "investigate", "explore", "look into", "learn")),
        ("Purchase", ("buy", "purchase", "order", "shop", "pay for")),
        ("Planning", ("plan", "organize", "outline", "prioritize", "budget")),
    )
)

SOURCE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\s*\(from:?\s*[\"“]?(?P<source>[^\"”)]+?)[\"”]?\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\[(?P<source>[^\]]+)\]\s*$"),
    re.compile(r"\s+[-–]\s+from\s+[\"“]?(?P<source>.+?)[\"”]?\s*$", re.IGNORECASE),
)

PRIORITY_RANK: Final[dict[Priority | None, int]] = {"high": 0, "medium": 1, "low": 2, None: 3}


def detect_priority(text: str) -> Priority | None:
    for priority, pattern in PRIORITY_RULES:
        if pattern.search(text):
            return priority
    return None


def detect_due_date(text: str) -> str | None:
    match = DATE_PATTERN.search(text)
    return match.group(0).strip() if match else None


def detect_category(text: str) -> Category | None:
    for category, pattern in CATEGORY_RULES:
        if pattern.search(text):
            return category
    return None


def split_source(text: str) -> tuple[str, str | None]:
    """Strip a trailing source reference; returns (text, source)."""
    for pattern in SOURCE_PATTERNS:
        match = pattern.search(text)
        if match:
            source = match.group("source").strip()
            if source:
                return text[: match.start()].rstrip(), source
    return text, None


def parse_action_items(summary: str) -> list[ActionItem]:
    """
    Turn an actionable summary into ``ActionItem`` objects.

    Item ids derive from the line position in ``summary`` so the same
    text always yields the same ids.
    """
    items: list[ActionItem] = []
    for index, raw_line in enumerate(summary.splitlines()):
        line = LIST_MARKER.sub("", raw_line.strip(), count=1).strip()
        if not line:
            continue
        text, source = split_source(line)
        items.append(
            ActionItem(
                id=f"action-{index}",
                text=text,
                priority=detect_priority(text),
                due_date=detect_due_date(text),
                category=detect_category(text),
                source=source,
            )
        )
    return items


def sort_action_items(
    items: Iterable[ActionItem],
    order: ActionItemSort = ActionItemSort.DEFAULT,
) -> list[ActionItem]:
    """
    Order items for display.

    ``default`` keeps line order, ``priority`` is high -> medium -> low ->
    unset, ``date`` puts dated items first. Both sorts are stable.
    """
    ordered: Sequence[ActionItem] = list(items)
    if order is ActionItemSort.PRIORITY:
        return sorted(ordered, key=lambda item: PRIORITY_RANK[item.priority])
    if order is ActionItemSort.DATE:
        return sorted(ordered, key=lambda item: item.due_date is None)
    return list(ordered)
