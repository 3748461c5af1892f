"""
Response clean-up and quality checks
"""
import pytest

from terms_converter import quality_check, strip_code_fences

GOOD = '<div class="termsInner"><h1>Terms</h1><p>Clause.</p></div>'


@pytest.mark.parametrize("reply,expected", [
    ("```html\n" + GOOD + "\n```", GOOD),
    ("  \n" + GOOD + "\n\n", GOOD),
    ("```\n" + GOOD + "```", GOOD),
    ("Here:```html" + GOOD + "``` ", "Here:" + GOOD),
    ("", ""),
])
def test_strip_code_fences(reply, expected):
    assert strip_code_fences(reply) == expected


def test_fence_text_inside_body_is_removed_too():
    assert strip_code_fences("<p>use ``` here</p>") == "<p>use  here</p>"


class TestQualityCheck:

    def test_clean_output_has_no_warnings(self):
        assert quality_check(GOOD) == []

    def test_table_tags_allowed(self):
        html = ('<div class="termsInner"><table><thead><tr><th>A</th></tr></thead>'
                '<tbody><tr><td>1</td></tr></tbody></table><ol><li>x</li></ol></div>')
        assert quality_check(html) == []

    def test_empty(self):
        assert quality_check("   ") == ["Empty output."]

    def test_missing_wrapper(self):
        warnings = quality_check("<h1>Terms</h1>")
        assert any("not wrapped" in w for w in warnings)

    def test_stray_tags(self):
        html = '<div class="termsInner"><p><strong>Bold</strong> <a href="#">link</a></p></div>'
        warnings = quality_check(html)
        assert "Output uses tags outside the whitelist: a, strong" in warnings

    def test_nested_div(self):
        html = '<div class="termsInner"><div><p>x</p></div></div>'
        assert "Output contains more than one <div>." in quality_check(html)

    def test_disclaimer(self):
        html = '<div class="termsInner"><p>As an AI, I cannot read this file.</p></div>'
        assert "Output contains likely disclaimer or placeholder." in quality_check(html)
