"""
Text normalization for track titles and artist names.

Catalogs format the same recording differently: one lists
"Song (feat. X) - 2011 Remaster", the other just "Song". Before any
similarity is computed both sides go through the functions below.

Title normalization is an ordered pipeline of small pure transforms.
Each transform is importable on its own, and TITLE_PIPELINE lists them
in the order normalize_title() applies them:

    nfc                     Unicode NFC composition
    strip_featured_artists  "(feat. X)", "[ft. X]", "ft. X ..." anywhere
    collapse_acronyms       "S.A.D." -> "SAD", "S. A. D." -> "SAD"
    strip_dash_suffix       "Song - Radio Edit" -> "Song"
    strip_trailing_brackets "Song (Live) [2011]" -> "Song"
    collapse_whitespace     runs of whitespace -> single space

normalize_title() re-applies the pipeline until the text stops changing,
so it is idempotent by construction. A step that would leave nothing
(a title that is only "(Intro)") is skipped for that input.

Usage:
    from harmony_sync.matching.normalize import normalize_title, clean_text

    normalize_title("S.A.D. (feat. Someone) - Remix")   # "SAD"
    clean_text("Beyoncé & JAY-Z")                       # "beyonce jay z"
"""

import re
import unicodedata
from typing import Callable


# Featured artists inside brackets, anywhere in the title
_BRACKETED_FEATURE = re.compile(
    r"\s*[\(\[]\s*(?:featuring|feat|ft)(?:\.|\b)[^\)\]]*[\)\]]",
    re.IGNORECASE
)

# Featured artists without (or with unclosed) brackets, up to the end
_TRAILING_FEATURE = re.compile(
    r"\s+[\(\[]?\s*(?:feat\.|ft\.|featuring\b).*$",
    re.IGNORECASE
)

# Two or more dotted single letters: "S.A.D.", "S. A. D."
_DOTTED_ACRONYM = re.compile(r"\b[A-Za-z]\.(?:\s?[A-Za-z]\.)+")

_TRAILING_BRACKETS = re.compile(r"\s*(?:\([^()]*\)|\[[^\[\]]*\])\s*$")

# A dash with whitespace on both sides separates version info
_DASH_SEPARATOR = re.compile(r"\s+[-–—]\s+")

_QUOTES = re.compile(r"[\"'“”‘’]")

_PUNCTUATION = re.compile(r"[^\w\s]|_")

# Guard against a pathological input never reaching a fixed point
_MAX_PIPELINE_PASSES = 10


def nfc(text: str) -> str:
    return unicodedata.normalize("NFC", text)


def strip_featured_artists(text: str) -> str:
    """Remove featured-artist credits in any case and position."""
    text = _BRACKETED_FEATURE.sub("", text)
    return _TRAILING_FEATURE.sub("", text)


def collapse_acronyms(text: str) -> str:
    """Join dotted acronyms into a single word ("S.A.D." -> "SAD")."""
    return _DOTTED_ACRONYM.sub(lambda m: re.sub(r"[.\s]", "", m.group(0)), text)


def strip_dash_suffix(text: str) -> str:
    """Keep only the part before the first standalone dash."""
    return _DASH_SEPARATOR.split(text, maxsplit=1)[0]


def strip_trailing_brackets(text: str) -> str:
    """Remove every trailing "(...)" or "[...]" group."""
    while True:
        stripped = _TRAILING_BRACKETS.sub("", text)
        if stripped == text:
            return text
        text = stripped


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


TITLE_PIPELINE: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("nfc", nfc),
    ("strip_featured_artists", strip_featured_artists),
    ("collapse_acronyms", collapse_acronyms),
    ("strip_dash_suffix", strip_dash_suffix),
    ("strip_trailing_brackets", strip_trailing_brackets),
    ("collapse_whitespace", collapse_whitespace),
)


def _run_pipeline(text: str) -> str:
    for _, step in TITLE_PIPELINE:
        result = step(text).strip()
        # Never let a single step erase the whole title
        if result:
            text = result
    return text


def normalize_title(title: str | None) -> str:
    """
    Canonicalize a track title for comparison.

    Args:
        title: Raw title from a catalog. None is treated as "".

    Returns:
        The title with featured artists, version suffixes and trailing
        bracket groups removed, acronyms collapsed and whitespace
        normalized. Case and accents are preserved.

    Example:
        normalize_title("Red Nosed (feat. X)")          # "Red Nosed"
        normalize_title("Song - 2011 Remaster")         # "Song"
        normalize_title("U.S.A. Anthem [Live]")         # "USA Anthem"
    """
    if not title:
        return ""

    text = title
    for _ in range(_MAX_PIPELINE_PASSES):
        normalized = _run_pipeline(text)
        if normalized == text:
            break
        text = normalized
    return text


def normalize_artist(artist: str | None) -> str:
    """
    Canonicalize an artist name: NFC and whitespace only.

    Case and diacritics are kept, "Beyoncé" stays "Beyoncé". Accent
    folding happens later in clean_text() when comparing.
    """
    if not artist:
        return ""
    return collapse_whitespace(nfc(artist))


def clean_text(text: str | None) -> str:
    """
    Aggressively fold text for fuzzy comparison (never for display).

    Strips diacritics (NFD + combining mark removal), turns punctuation
    into spaces, lowercases and collapses whitespace.
    """
    if not text:
        return ""

    decomposed = unicodedata.normalize("NFD", text)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    without_punctuation = _PUNCTUATION.sub(" ", without_marks)
    return collapse_whitespace(without_punctuation).lower()


def extract_core_title(title: str | None) -> str:
    """
    Strip the decorations video platforms add to song titles.

    Drops hashtags (and everything after the first one), quote
    characters and featured-artist credits. Version markers such as
    "(Karaoke)" are kept so that cover detection still sees them.
    """
    if not title:
        return ""

    text = title.split("#")[0]
    text = _QUOTES.sub("", text)
    text = strip_featured_artists(text)
    return collapse_whitespace(text) or collapse_whitespace(title)
