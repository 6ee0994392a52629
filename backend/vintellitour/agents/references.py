"""
Resolving what the user points at: "cái thứ 2", "lịch trình Đà Lạt",
and yes/no answers to a pending confirmation.
"""

import re
import unicodedata
from typing import Sequence

from vintellitour.core.errors import AmbiguousReferenceError

ORDINAL_WORDS = {
    "dau tien": 1,
    "thu nhat": 1,
    "first": 1,
    "thu hai": 2,
    "second": 2,
    "thu ba": 3,
    "third": 3,
    "thu tu": 4,
    "fourth": 4,
    "thu nam": 5,
    "fifth": 5,
}

LAST_WORDS = ("cuoi cung", "cuoi", "last")

AFFIRMATIVE = (
    "co",
    "vang",
    "dong y",
    "ok",
    "okay",
    "oke",
    "yes",
    "xac nhan",
    "duoc",
    "luu",
    "chot",
    "chac chan",
    "dung roi",
    "uh",
)

NEGATIVE = (
    "khong dong y",
    "khong luu",
    "khong can",
    "khong muon",
    "khong",
    "ko",
    "no",
    "huy",
    "thoi",
    "cancel",
    "bo qua",
)

# Words that may surround a bare yes/no ("ok lưu luôn nhé")
FILLER_WORDS = frozenset(
    {"a", "ah", "ak", "dau", "di", "nhe", "nha", "nhen", "luon", "roi", "lai"}
    | {"ban", "minh", "em", "anh", "chi", "giup", "cho"}
)


def normalize_text(text: str) -> str:
    """
    Lowercase and strip Vietnamese accents.

    Example:
        "Đà Lạt" -> "da lat"
    """
    if not text:
        return ""
    text = text.lower().replace("đ", "d")
    text = unicodedata.normalize("NFD", text)
    text = re.sub(r"[\u0300-\u036f]", "", text)
    text = re.sub(r"[^\w\s]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def _has_phrase(normalized: str, phrases: Sequence[str]) -> bool:
    return any(re.search(rf"\b{re.escape(p)}\b", normalized) for p in phrases)


def _is_only(text: str, phrases: Sequence[str]) -> bool:
    """
    True when the whole message is made of `phrases` plus filler words.
    Questions are never an answer: "được không?" asks, it does not decline.
    """
    if "?" in text:
        return False
    tokens = [t for t in normalize_text(text).split() if t not in FILLER_WORDS]
    if not tokens:
        return False
    candidates = sorted((p.split() for p in phrases), key=len, reverse=True)
    i = 0
    while i < len(tokens):
        for words in candidates:
            if tokens[i : i + len(words)] == words:
                i += len(words)
                break
        else:
            return False
    return True


def is_negative(text: str) -> bool:
    return _is_only(text, NEGATIVE)


def is_affirmative(text: str) -> bool:
    """Explicit yes: "có", "ok lưu đi". Anything longer is a new request."""
    return _is_only(text, AFFIRMATIVE)


def _indices_mentioned(normalized: str, count: int) -> set[int]:
    found: set[int] = set()
    for phrase, idx in ORDINAL_WORDS.items():
        if re.search(rf"\b{phrase}\b", normalized):
            found.add(idx)
    if _has_phrase(normalized, LAST_WORDS):
        found.add(count)
    for number in re.findall(r"\b(\d{1,2})\b", normalized):
        found.add(int(number))
    return {idx for idx in found if 1 <= idx <= count}


def _destination_matches(normalized: str, choices: Sequence[dict]) -> list[dict]:
    matched = []
    for choice in choices:
        dest = normalize_text(choice.get("destination", ""))
        if not dest:
            continue
        if re.search(rf"\b{re.escape(dest)}\b", normalized) or dest.replace(" ", "") in normalized.split():
            matched.append(choice)
    return matched


def describe_choices(choices: Sequence[dict]) -> str:
    return "\n".join(f"{c['index']}. {c['destination']} - {c['duration']}" for c in choices)


def resolve_selection(text: str, choices: Sequence[dict]) -> dict:
    """
    Pick exactly one entry of a FindItineraries list from the user's words,
    by destination name or by position. Raises AmbiguousReferenceError when
    nothing or more than one entry fits.
    """
    if not choices:
        raise AmbiguousReferenceError("No itineraries to choose from")

    normalized = normalize_text(text)
    by_index = {c["index"]: c for c in choices}
    indices = _indices_mentioned(normalized, len(choices))
    by_destination = _destination_matches(normalized, choices)

    if by_destination:
        if len(by_destination) == 1:
            return by_destination[0]
        narrowed = [c for c in by_destination if c["index"] in indices]
        if len(narrowed) == 1:
            return narrowed[0]
        candidates = narrowed or by_destination
    elif len(indices) == 1:
        return by_index[indices.pop()]
    else:
        candidates = [by_index[i] for i in sorted(indices)] or list(choices)

    raise AmbiguousReferenceError(
        f"Selection {text!r} matches {len(candidates)} itineraries",
        user_message=(
            "Mình chưa xác định được bạn muốn chọn lịch trình nào. "
            "Bạn hãy trả lời bằng số thứ tự hoặc tên điểm đến:\n" + describe_choices(candidates)
        ),
        candidates=list(candidates),
    )


__all__ = [
    "normalize_text",
    "is_affirmative",
    "is_negative",
    "describe_choices",
    "resolve_selection",
]
