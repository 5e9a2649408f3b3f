# tests/test_normalize.py
"""Test title and artist normalization"""

import pytest

from harmony_sync.matching.normalize import (
    clean_text,
    collapse_acronyms,
    extract_core_title,
    normalize_artist,
    normalize_title,
    strip_dash_suffix,
    strip_featured_artists,
    strip_trailing_brackets,
)


TITLES = [
    "Red Nosed (feat. X)",
    "Song - 2011 Remaster",
    "Song (Live) [2011]",
    "S.A.D. (feat. Someone) - Remix",
    "Song ft. Someone Else",
    "(Intro)",
    "U.S.A. Anthem [Live]",
    "  Spaced    Out  ",
    "Song - Remix (feat. X) [Deluxe]",
    "Beyoncé",
    "",
]


class TestNormalizeTitle:
    """Test the title pipeline"""

    def test_strips_bracketed_feature(self):
        """Test bracketed featured artists are removed"""
        assert normalize_title("Red Nosed (feat. X)") == "Red Nosed"
        assert normalize_title("Song [ft. Other]") == "Song"
        assert normalize_title("Song (Featuring Other)") == "Song"

    def test_strips_unbracketed_feature(self):
        """Test bare "ft." credits are removed"""
        assert normalize_title("Song ft. Someone Else") == "Song"
        assert normalize_title("Song feat. Someone") == "Song"

    def test_strips_dash_suffix(self):
        """Test " - suffix" is removed"""
        assert normalize_title("Song - 2011 Remaster") == "Song"
        assert normalize_title("Song – Radio Edit") == "Song"

    def test_keeps_hyphenated_words(self):
        """Test hyphens without spaces are kept"""
        assert normalize_title("Jay-Z Anthem") == "Jay-Z Anthem"

    def test_strips_trailing_brackets(self):
        """Test trailing bracket groups are removed"""
        assert normalize_title("Song (Live) [2011]") == "Song"

    def test_collapses_acronyms(self):
        """Test dotted acronyms are collapsed"""
        assert normalize_title("S.A.D.") == "SAD"
        assert normalize_title("S. A. D.") == "SAD"
        assert normalize_title("U.S.A. Anthem [Live]") == "USA Anthem"

    def test_combined(self):
        """Test all rules together"""
        assert normalize_title("S.A.D. (feat. Someone) - Remix") == "SAD"

    def test_never_empties_title(self):
        """Test a title is never reduced to nothing"""
        assert normalize_title("(Intro)") == "(Intro)"

    def test_preserves_case_and_accents(self):
        """Test case and accents are kept"""
        assert normalize_title("HELLO Wörld") == "HELLO Wörld"

    def test_empty_and_none(self):
        """Test empty input"""
        assert normalize_title("") == ""
        assert normalize_title(None) == ""

    @pytest.mark.parametrize("title", TITLES)
    def test_idempotent(self, title):
        """Test normalizing twice changes nothing"""
        once = normalize_title(title)
        assert normalize_title(once) == once


class TestPipelineSteps:
    """Test the individual transforms"""

    def test_strip_featured_artists(self):
        """Test featured artist removal"""
        assert strip_featured_artists("Song (feat. A) extra") == "Song extra"

    def test_collapse_acronyms_needs_two_letters(self):
        """Test a single dotted letter is kept"""
        assert collapse_acronyms("Mr. Brightside") == "Mr. Brightside"
        assert collapse_acronyms("R.E.M. live") == "REM live"

    def test_strip_dash_suffix(self):
        """Test the first " - " starts the suffix"""
        assert strip_dash_suffix("A - B - C") == "A"

    def test_strip_trailing_brackets_repeats(self):
        """Test repeated trailing groups are removed"""
        assert strip_trailing_brackets("Song (A) (B) [C]") == "Song"


class TestArtistAndCleanText:
    """Test artist normalization and comparison folding"""

    def test_normalize_artist_keeps_case_and_accents(self):
        """Test artist whitespace cleanup"""
        assert normalize_artist("  Beyoncé   Knowles ") == "Beyoncé Knowles"
        assert normalize_artist(None) == ""

    def test_clean_text_folds(self):
        """Test case and accent folding"""
        assert clean_text("Beyoncé & JAY-Z") == "beyonce jay z"
        assert clean_text("  Hello,   World! ") == "hello world"
        assert clean_text(None) == ""

    def test_extract_core_title(self):
        """Test video title cleanup"""
        assert extract_core_title("Song #music #viral") == "Song"
        assert extract_core_title('"Song" (feat. X) (Karaoke)') == "Song (Karaoke)"
        assert extract_core_title(None) == ""
