"""Tests for edit distance, argument similarity and call scoring."""

import pytest

from strace_diff.similarity import argument_similarity, call_score, edit_distance


class TestEditDistance:
    """Tests for edit_distance."""

    def test_classic(self):
        """Test a textbook Levenshtein pair."""
        assert edit_distance("kitten", "sitting") == 3

    def test_identity(self):
        """Test that a string is at distance zero from itself."""
        for s in ["", "read", "x" * 100]:
            assert edit_distance(s, s) == 0

    def test_symmetric(self):
        """Test that distance does not depend on argument order."""
        pairs = [("fstat", "newfstatat"), ("stat", "lstat"), ("", "abc"), ("a" * 41, "b" * 45)]
        for x, y in pairs:
            assert edit_distance(x, y) == edit_distance(y, x)

    def test_non_identical_is_positive(self):
        """Test that distinct strings are never at distance zero."""
        assert edit_distance("read", "reed") == 1
        assert edit_distance("a" * 41, "a" * 40 + "b") > 0

    def test_empty_side(self):
        """Test that an empty string is the other string's length away."""
        assert edit_distance("", "mmap") == 4
        assert edit_distance("mmap", "") == 4

    def test_long_strings_use_estimate(self):
        """Test the cheap estimate for strings over 40 characters."""
        assert edit_distance("a" * 41, "b" * 45) == 9
        assert edit_distance("a" * 50, "b" * 50) == 5


class TestArgumentSimilarity:
    """Tests for argument_similarity."""

    def test_equal(self):
        """Test that equal arguments score 1."""
        assert argument_similarity("3, 4096", "3, 4096") == 1.0

    def test_empty(self):
        """Test that an empty side scores 0."""
        assert argument_similarity("", "3") == 0.0
        assert argument_similarity("3", "") == 0.0

    def test_same_file_same_parent(self):
        """Test identical basename and parent directory."""
        a = 'AT_FDCWD, "/usr/lib/libc.so.6", O_RDONLY'
        b = 'AT_FDCWD, "/usr/lib/libc.so.6", O_RDONLY|O_CLOEXEC'
        assert argument_similarity(a, b) == 1.0

    def test_same_file_other_parent(self):
        """Test identical basename under a different parent directory."""
        a = 'AT_FDCWD, "/usr/lib/x86_64/libc.so.6", O_RDONLY'
        b = 'AT_FDCWD, "/opt/lib64/libc.so.6", O_RDONLY'
        assert argument_similarity(a, b) == 0.9

    def test_version_bump(self):
        """Test basenames a small edit apart."""
        a = '"/usr/lib/libprotobuf.so.32", O_RDONLY'
        b = '"/usr/lib/libprotobuf.so.33", O_RDONLY'
        assert argument_similarity(a, b) == 0.7

    def test_unrelated_paths(self):
        """Test that unrelated files score below the generic fallback."""
        a = 'AT_FDCWD, "/etc/hosts", O_RDONLY'
        b = 'AT_FDCWD, "/var/log/syslog", O_RDONLY'
        assert argument_similarity(a, b) == 0.2

    def test_short_basenames_not_fuzzy(self):
        """Test that short basenames need an exact match."""
        assert argument_similarity('"/a/ab"', '"/a/ac"') == 0.2

    def test_prefix_and_length_blend(self):
        """Test the fallback for arguments without paths."""
        # 3 common leading chars out of 7 checked, equal lengths
        assert argument_similarity("3, 4096", "3, 1024") == pytest.approx(0.7 * 3 / 7 + 0.3)

    def test_prefix_capped(self):
        """Test that only the first 30 characters count toward the prefix."""
        a = "x" * 60
        b = "x" * 59 + "y"
        assert argument_similarity(a, b) == pytest.approx(1.0)

    def test_path_on_one_side_only(self):
        """Test that the fallback is used when only one side has a path."""
        score = argument_similarity('"/etc/hosts"', "3")
        assert 0.0 <= score < 0.2


class TestCallScore:
    """Tests for call_score."""

    def test_same_name_same_args(self, event_factory):
        """Test the top score for identical calls."""
        a = event_factory("read", "3, 4096")
        assert call_score(a, a) == 15

    def test_same_name_different_args(self, event_factory):
        """Test that argument similarity scales the bonus."""
        a = event_factory("read", "3, 4096")
        b = event_factory("read", "3, 1024")
        assert call_score(a, b) == pytest.approx(10 + 5 * (0.7 * 3 / 7 + 0.3))

    def test_contained_name(self, event_factory):
        """Test approximate matching when one name contains the other."""
        a = event_factory("fstat", "3")
        b = event_factory("newfstatat", "3")
        assert call_score(a, b) == pytest.approx(6 + 2.5)

    def test_close_name(self, event_factory):
        """Test approximate matching for names a few edits apart."""
        a = event_factory("stat", "")
        b = event_factory("lstat", "x")
        assert call_score(a, b) == 6

    def test_unrelated_names(self, event_factory):
        """Test the mismatch floor."""
        a = event_factory("clone", "")
        b = event_factory("getdents64", "")
        assert call_score(a, b) == -10
