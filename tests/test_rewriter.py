"""Tests for the content rewriter."""

from site_archive.rewriter import ContentRewriter

ROOT = "https://static/x/ex.com/2024-01-01"


class TestRewriteHtml:
    """Test HTML rewriting."""

    def setup_method(self):
        self.rewriter = ContentRewriter("https://static/x", "ex.com", "2024-01-01")

    def rewrite(self, html, base="https://ex.com/"):
        return self.rewriter.rewrite_html(html, base)

    def test_same_host_anchor(self):
        assert self.rewrite('<a href="/about">') == f'<a href="{ROOT}/about/index.html">'

    def test_cross_host_anchor_unchanged(self):
        html = '<a href="https://other.com/y">'
        assert self.rewrite(html) == html

    def test_absolute_anchors_unchanged(self):
        html = '<a href="https://ex.com/contact">c</a><a href="//ex.com/x">x</a>'
        assert self.rewrite(html) == html

    def test_special_anchors_unchanged(self):
        html = '<a href="mailto:a@b.com">mail</a> <a href="#top">top</a> <a href="tel:+123">t</a>'
        assert self.rewrite(html) == html

    def test_relative_anchor_resolved_against_page(self):
        html = "<a class='nav' href='team.html'>Team</a>"
        expected = f"<a class='nav' href='{ROOT}/about/team.html'>Team</a>"
        assert self.rewrite(html, "https://ex.com/about/index.html") == expected

    def test_src_rewritten_any_host(self):
        html = '<img src="/img/a.png?x=1"><script src="https://cdn.com/lib/app.js"></script>'
        assert self.rewrite(html) == (
            f'<img src="{ROOT}/img/a.png"><script src="{ROOT}/lib/app.js"></script>'
        )

    def test_non_anchor_href(self):
        html = '<link rel="stylesheet" href="css/site.css">'
        assert self.rewrite(html) == f'<link rel="stylesheet" href="{ROOT}/css/site.css">'

    def test_inline_style_url(self):
        html = "<div style=\"background: url('/img/bg.png')\"></div>"
        assert self.rewrite(html) == f"<div style=\"background: url('{ROOT}/img/bg.png')\"></div>"

    def test_srcset_keeps_descriptors(self):
        html = '<img srcset="a.png 1x, b.png 2x">'
        expected = f'<img srcset="{ROOT}/p/a.png 1x, {ROOT}/p/b.png 2x">'
        assert self.rewrite(html, "https://ex.com/p/") == expected

    def test_srcset_data_uri_unchanged(self):
        html = '<img srcset="data:image/png;base64,AAAA 1x, /b.png 2x">'
        assert self.rewrite(html) == f'<img srcset="data:image/png;base64,AAAA 1x, {ROOT}/b.png 2x">'

    def test_data_src_rewritten_once(self):
        html = '<img data-src="/lazy.jpg">'
        assert self.rewrite(html) == f'<img data-src="{ROOT}/lazy.jpg">'

    def test_poster_and_background_attributes(self):
        html = '<video poster="/p.jpg"></video><td background="/bg.gif"></td>'
        assert self.rewrite(html) == (
            f'<video poster="{ROOT}/p.jpg"></video><td background="{ROOT}/bg.gif"></td>'
        )

    def test_data_uri_unchanged(self):
        html = '<img src="data:image/png;base64,AAAA">'
        assert self.rewrite(html) == html

    def test_bad_reference_does_not_stop_others(self):
        html = '<img src="http://[::1/x.png"><img src="/ok.png">'
        assert self.rewrite(html) == f'<img src="http://[::1/x.png"><img src="{ROOT}/ok.png">'

    def test_full_document(self):
        html = (
            '<html><head><link href="/s.css" rel="stylesheet"></head>'
            '<body><a href="/docs/">Docs</a><a href="https://other.com/">Out</a>'
            '<img src="logo.png"></body></html>'
        )
        assert self.rewrite(html) == (
            f'<html><head><link href="{ROOT}/s.css" rel="stylesheet"></head>'
            f'<body><a href="{ROOT}/docs/index.html">Docs</a><a href="https://other.com/">Out</a>'
            f'<img src="{ROOT}/logo.png"></body></html>'
        )


class TestRewriteCss:
    """Test stylesheet rewriting."""

    def setup_method(self):
        self.rewriter = ContentRewriter("https://static/x/", "ex.com", "2024-01-01")

    def test_relative_url(self):
        css = "@font-face { src: url('../fonts/f.woff') }"
        assert self.rewriter.rewrite_css(css, "https://ex.com/css/s.css") == (
            f"@font-face {{ src: url('{ROOT}/fonts/f.woff') }}"
        )

    def test_unquoted_and_absolute(self):
        css = "a { background: url(https://cdn.com/i/a.png?v=3) }"
        assert self.rewriter.rewrite_css(css, "https://ex.com/s.css") == (
            f"a {{ background: url({ROOT}/i/a.png) }}"
        )

    def test_data_url_unchanged(self):
        css = "a { background: url(data:image/png;base64,AAAA) }"
        assert self.rewriter.rewrite_css(css, "https://ex.com/s.css") == css

    def test_archive_url(self):
        assert self.rewriter.archive_url("https://ex.com/") == f"{ROOT}/index.html"
        assert self.rewriter.archive_url("https://ex.com/a//b?q#f") == f"{ROOT}/a/b/index.html"
