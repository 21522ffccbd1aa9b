"""Tests for paths.py — root normalization and prefixing."""

import pytest

from paths import dirname, normalize_root, prefix


class TestNormalizeRoot:
    def test_unset(self):
        assert normalize_root(None) == ""
        assert normalize_root("") == ""

    def test_adds_single_separator(self):
        assert normalize_root("/root") == "/root/"
        assert normalize_root("/root///") == "/root/"

    def test_filesystem_root(self):
        assert normalize_root("/") == "/"

    def test_collapses_inner_separators(self):
        assert normalize_root("/srv//data") == "/srv/data/"


class TestPrefix:
    def test_strips_leading_separator(self):
        assert prefix("/srv/", "/a/b.txt") == "/srv/a/b.txt"

    def test_no_root(self):
        assert prefix("", "/a/b.txt") == "a/b.txt"
        assert prefix("", "") == ""

    def test_empty_path_is_root(self):
        assert prefix("/srv/", "") == "/srv/"

    @pytest.mark.parametrize("root", ["", "/", "/srv/", "home/user/"])
    @pytest.mark.parametrize("path", ["a", "/a", "a/b", "//a//b", "x/y/"])
    def test_leading_separators_ignored(self, root, path):
        assert prefix(root, "/" + path) == prefix(root, path)
        assert prefix(root, "//" + path) == prefix(root, path)

    def test_path_repeating_root_is_nested(self):
        assert prefix("/srv/data/", "/srv/data/x.txt") == "/srv/data/srv/data/x.txt"

    @pytest.mark.parametrize("path", ["a", "/a", "//a", "a//b///c", "/"])
    def test_never_doubles_separators(self, path):
        assert "//" not in prefix("/srv/", path)


class TestDirname:
    def test_top_level(self):
        assert dirname("file.txt") == ""

    def test_nested(self):
        assert dirname("a/b/file.txt") == "a/b"

    def test_trailing_separator(self):
        assert dirname("a/b/") == "a"

    def test_absolute_top_level(self):
        assert dirname("/file.txt") == ""
