"""
Class level mapping.

Class labels arrive in many shapes ("LKG", "l.k.g", "V", "Class 5", "fifth", "0.5").
ClassLevel is the canonical form stored on students and fee structures; the numeric
code (0, 0.25, 0.5, 0.75, 1..12) is kept only for interoperability with older records.
"""

import re
from enum import Enum
from typing import Dict, Optional, Union


class ClassLevel(str, Enum):
    PRE_NURSERY = "PRE_NURSERY"
    NURSERY = "NURSERY"
    LKG = "LKG"
    UKG = "UKG"
    CLASS_1 = "CLASS_1"
    CLASS_2 = "CLASS_2"
    CLASS_3 = "CLASS_3"
    CLASS_4 = "CLASS_4"
    CLASS_5 = "CLASS_5"
    CLASS_6 = "CLASS_6"
    CLASS_7 = "CLASS_7"
    CLASS_8 = "CLASS_8"
    CLASS_9 = "CLASS_9"
    CLASS_10 = "CLASS_10"
    CLASS_11 = "CLASS_11"
    CLASS_12 = "CLASS_12"

    @property
    def rank(self) -> int:
        """Position in promotion order, 0 for Pre Nursery up to 15 for Class 12."""
        return _ORDER.index(self)

    @property
    def code(self) -> float:
        if self.rank < 4:
            return self.rank * 0.25
        return float(self.rank - 3)

    @property
    def grade(self) -> Optional[int]:
        """Numeric grade for CLASS_n levels, None for pre-primary levels."""
        return self.rank - 3 if self.rank >= 4 else None

    @property
    def lookup_name(self) -> str:
        """Name used by fee structures and older records ("LKG", "5")."""
        return _PRE_PRIMARY_NAMES.get(self) or str(self.grade)

    @property
    def display_name(self) -> str:
        return _PRE_PRIMARY_NAMES.get(self) or f"Class {self.grade}"

    def next_level(self) -> Optional["ClassLevel"]:
        """Level a student is promoted to, None after Class 12."""
        if self.rank + 1 >= len(_ORDER):
            return None
        return _ORDER[self.rank + 1]

    # Order by promotion rank, not by the string value.
    def __lt__(self, other):
        if not isinstance(other, ClassLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, ClassLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, ClassLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, ClassLevel):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def from_code(cls, code: Union[int, float]) -> Optional["ClassLevel"]:
        try:
            return _BY_CODE.get(float(code))
        except (TypeError, ValueError):
            return None


_ORDER = list(ClassLevel)

_PRE_PRIMARY_NAMES: Dict[ClassLevel, str] = {
    ClassLevel.PRE_NURSERY: "Pre Nursery",
    ClassLevel.NURSERY: "Nursery",
    ClassLevel.LKG: "LKG",
    ClassLevel.UKG: "UKG",
}

_BY_CODE: Dict[float, ClassLevel] = {level.code: level for level in ClassLevel}

_WORDS = [
    ("ONE", "FIRST"), ("TWO", "SECOND"), ("THREE", "THIRD"), ("FOUR", "FOURTH"),
    ("FIVE", "FIFTH"), ("SIX", "SIXTH"), ("SEVEN", "SEVENTH"), ("EIGHT", "EIGHTH"),
    ("NINE", "NINTH"), ("TEN", "TENTH"), ("ELEVEN", "ELEVENTH"), ("TWELVE", "TWELFTH"),
]
_ROMAN = ["I", "II", "III", "IV", "V", "VI", "VII", "VIII", "IX", "X", "XI", "XII"]


def _build_aliases() -> Dict[str, float]:
    aliases: Dict[str, float] = {
        "PRE NURSERY": 0,
        "PRE-NURSERY": 0,
        "PRE_NURSERY": 0,
        "PRENURSERY": 0,
        "NURSERY": 0.25,
        "LKG": 0.5,
        "L.K.G": 0.5,
        "L.K.G.": 0.5,
        "UKG": 0.75,
        "U.K.G": 0.75,
        "U.K.G.": 0.75,
    }
    for grade in range(1, 13):
        word, ordinal = _WORDS[grade - 1]
        for alias in (str(grade), word, ordinal, _ROMAN[grade - 1]):
            aliases[alias] = grade
        for prefix in ("CLASS ", "CLASS_", "CLASS-", "GRADE ", "STD "):
            aliases[f"{prefix}{grade}"] = grade
            aliases[f"{prefix}{_ROMAN[grade - 1]}"] = grade
    return aliases


CLASS_ALIASES = _build_aliases()

_WHITESPACE = re.compile(r"\s+")


def _normalize(label) -> str:
    return _WHITESPACE.sub(" ", str(label).strip()).upper()


def class_to_number(label) -> Optional[float]:
    """Map a human class label to its numeric code, or None when it is not a class label.

    Numbers outside the known set (e.g. "13") still parse; the caller decides whether
    such a code is acceptable (see parse_class_level).
    """
    if label is None:
        return None
    if isinstance(label, ClassLevel):
        return label.code
    if isinstance(label, (int, float)) and not isinstance(label, bool):
        return float(label)
    key = _normalize(label)
    if not key:
        return None
    if key in CLASS_ALIASES:
        return float(CLASS_ALIASES[key])
    try:
        return float(key)
    except ValueError:
        return None


def parse_class_level(label) -> Optional[ClassLevel]:
    """Resolve any accepted class label (including enum names) to a ClassLevel."""
    if isinstance(label, ClassLevel):
        return label
    if isinstance(label, str) and _normalize(label) in ClassLevel.__members__:
        return ClassLevel[_normalize(label)]
    code = class_to_number(label)
    if code is None:
        return None
    return ClassLevel.from_code(code)


def number_to_label(num) -> str:
    """Display label for a numeric class code; unknown codes render as "Class {num}"."""
    level = ClassLevel.from_code(num)
    if level is not None:
        return level.display_name
    return f"Class {num:g}" if isinstance(num, (int, float)) else f"Class {num}"
