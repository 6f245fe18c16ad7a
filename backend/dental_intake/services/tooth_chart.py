from __future__ import annotations

import enum


class ToothScheme(str, enum.Enum):
    adult = "adult"
    pediatric = "pediatric"


def _arch(right_quadrant: int, left_quadrant: int, positions: int) -> tuple[int, ...]:
    right = tuple(right_quadrant * 10 + pos for pos in range(positions, 0, -1))
    left = tuple(left_quadrant * 10 + pos for pos in range(1, positions + 1))
    return right + left


# Chart order: upper arch then lower arch, patient's right side first.
ADULT_TEETH: tuple[int, ...] = _arch(1, 2, 8) + _arch(4, 3, 8)
PEDIATRIC_TEETH: tuple[int, ...] = _arch(5, 6, 5) + _arch(8, 7, 5)

_SCHEME_TEETH = {
    ToothScheme.adult: ADULT_TEETH,
    ToothScheme.pediatric: PEDIATRIC_TEETH,
}
_ADULT_SET = frozenset(ADULT_TEETH)
_PEDIATRIC_SET = frozenset(PEDIATRIC_TEETH)

TOOTH_ISSUE_OPTIONS: tuple[str, ...] = (
    "Cavity",
    "Crown Needed",
    "Root Canal",
    "Extraction",
    "Filling",
    "Crack",
    "Sensitivity",
    "Gum Disease",
    "Other",
)

CHECKUP_OPTIONS: dict[str, tuple[str, ...]] = {
    "oralHygiene": ("Good", "Fair", "Poor", "Excellent"),
    "gingivalStatus": (
        "Healthy",
        "Mild Inflammation",
        "Moderate Inflammation",
        "Severe Inflammation",
    ),
    "mobility": ("None", "Grade 1", "Grade 2", "Grade 3"),
}


def teeth_for(scheme: ToothScheme | str) -> tuple[int, ...]:
    return _SCHEME_TEETH[ToothScheme(scheme)]


def scheme_of(tooth: int) -> ToothScheme | None:
    if tooth in _ADULT_SET:
        return ToothScheme.adult
    if tooth in _PEDIATRIC_SET:
        return ToothScheme.pediatric
    return None


def is_valid_tooth(tooth: int) -> bool:
    return scheme_of(tooth) is not None


def quadrant_of(tooth: int) -> int:
    if not is_valid_tooth(tooth):
        raise ValueError(f"Unknown tooth number: {tooth}")
    return tooth // 10
