"""Tests for track title cleanup."""

import pytest

from lyricast.server.titles import clean_track_title


class TestCleanTrackTitle:
    def test_dash_remaster(self):
        assert clean_track_title("Bohemian Rhapsody - 2011 Remaster") == "Bohemian Rhapsody"

    def test_paren_remaster(self):
        assert clean_track_title("Heroes (2017 Remastered Version)") == "Heroes"

    def test_dash_live(self):
        assert clean_track_title("Creep - Live at Glastonbury") == "Creep"

    def test_paren_live(self):
        assert clean_track_title("Song (Live at Wembley)") == "Song"

    def test_paren_live_needs_whole_word(self):
        assert clean_track_title("Song (Deliver Us)") == "Song (Deliver Us)"

    def test_dash_version(self):
        assert clean_track_title("Hurt - Acoustic Version") == "Hurt"

    def test_paren_version(self):
        assert clean_track_title("Hurt (Radio Version)") == "Hurt"

    def test_dash_year(self):
        assert clean_track_title("Imagine - 1998 Mono") == "Imagine"

    def test_dash_mix(self):
        assert clean_track_title("Blue Monday - Extended Mix") == "Blue Monday"

    def test_brackets_removed_everywhere(self):
        assert clean_track_title("Track [HD] Name [Official]") == "Track  Name"

    def test_paren_then_bracket(self):
        assert clean_track_title("Song (Live at Wembley) [HD]") == "Song"

    def test_case_insensitive(self):
        assert clean_track_title("Song - LIVE") == "Song"

    def test_plain_title_unchanged(self):
        assert clean_track_title("Bohemian Rhapsody") == "Bohemian Rhapsody"

    def test_hyphen_without_spaces_kept(self):
        assert clean_track_title("Re-Live") == "Re-Live"

    def test_strips_whitespace(self):
        assert clean_track_title("  Song  ") == "Song"

    def test_empty(self):
        assert clean_track_title("") == ""

    @pytest.mark.parametrize("title", [
        "Bohemian Rhapsody - 2011 Remaster",
        "Song (Live at Wembley) [HD]",
        "Hurt - Acoustic Version",
        "Blue Monday - Extended Mix",
        "Plain Title",
        "Song (Live) (Live)",
        "Song (Remaster) (Remastered)",
        "Song (Radio Version) (Album Version)",
        "Song [HD]- 1999",
    ])
    def test_idempotent(self, title):
        once = clean_track_title(title)
        assert clean_track_title(once) == once

    def test_stacked_annotations(self):
        assert clean_track_title("Song (Live) (Live)") == "Song"
        assert clean_track_title("Song (Radio Version) (Album Version)") == "Song"

    def test_year_exposed_by_bracket_removal(self):
        assert clean_track_title("Song [HD]- 1999") == "Song"
