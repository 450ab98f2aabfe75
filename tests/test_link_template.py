"""Tests for link template rendering."""

from tools.link_template import absolute_link, has_placeholder, render_link


class TestRenderLink:
    def test_substitutes_page(self):
        template = "http://www.ddxsku.com/top/lastupdate_{{page}}.html"
        assert render_link(template, 3) == "http://www.ddxsku.com/top/lastupdate_3.html"

    def test_tolerates_spaces(self):
        assert render_link("/list/{{ page }}/", 2) == "/list/2/"

    def test_without_placeholder(self):
        assert render_link("http://a/b.html", 5) == "http://a/b.html"
        assert not has_placeholder("http://a/b.html")
        assert has_placeholder("http://a/{{page}}.html")


class TestAbsoluteLink:
    def test_relative(self):
        assert absolute_link("http://www.ddxsku.com/top/x.html", "/xiaoshuo/1.html") == \
            "http://www.ddxsku.com/xiaoshuo/1.html"

    def test_already_absolute(self):
        assert absolute_link("http://a/", "http://b/c") == "http://b/c"
