"""
Activity catalogue used for slot lookup.

Activity names arrive in several spellings ("Jewelry Making", "Jewellery Lab",
"jewellery lab ") from the booking form, combo names and older rows. All
comparisons go through ``normalize_activity_name`` so the slot table and the
occupancy check agree on what "the same activity" means.
"""
import re

JEWELRY_SLOTS = ["11am-1pm", "1-3pm", "3-5pm", "5-7pm", "7-9pm"]
TUFTING_SLOTS = ["11am-1:30pm", "2-4:30pm", "5-7:30pm"]
DEFAULT_SLOTS = ["11am-1pm", "1-3pm", "3-5pm", "5-8pm"]

# spelling variants, applied word by word
_WORD_ALIASES = {
    "jewellery": "jewelry",
    "jewelery": "jewelry",
    "tuft": "tufting",
}

# whole-name aliases, applied after word normalization
_NAME_ALIASES = {
    "jewelry lab": "jewelry making",
    "jewelry workshop": "jewelry making",
    "tufting": "tufting experience",
    "tufting workshop": "tufting experience",
}

# canonical name -> ordered slot labels
SLOT_TABLE = [
    ("jewelry making", JEWELRY_SLOTS),
    ("tufting experience", TUFTING_SLOTS),
]

_SPACES = re.compile(r"\s+")


def normalize_activity_name(name: str | None) -> str:
    if not name:
        return ""
    cleaned = _SPACES.sub(" ", name.strip().lower())
    words = [_WORD_ALIASES.get(w, w) for w in cleaned.split(" ")]
    cleaned = " ".join(words)
    return _NAME_ALIASES.get(cleaned, cleaned)


def activities_match(a: str | None, b: str | None) -> bool:
    """Case-insensitive match, substring in either direction."""
    na, nb = normalize_activity_name(a), normalize_activity_name(b)
    if not na or not nb:
        return False
    return na == nb or na in nb or nb in na


def slots_for_activity(name: str | None) -> list[str]:
    for canonical, slots in SLOT_TABLE:
        if activities_match(name, canonical):
            return list(slots)
    return list(DEFAULT_SLOTS)
