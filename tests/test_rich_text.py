from docx_template_processor.core.rich_text import html_to_paragraphs, normalize_html, set_html
from tests.docx_builders import NS, W_NS, make_parts, paragraph, parse, texts

W14_NS = "http://schemas.microsoft.com/office/word/2010/wordml"


def _style(paragraph_element):
    style = paragraph_element.find("w:pPr/w:pStyle", NS)
    return None if style is None else style.get(f"{{{W_NS}}}val")


def _body_paragraphs(xml: str):
    return parse(xml).findall("w:body/w:p", NS)


# ========= HTML rendering =========

def test_normalize_html():
    assert normalize_html("<div>a<BR>b&nbsp;c</div>") == "<p>a<br/>b&#160;c</p>"


def test_normalize_html_drops_control_characters():
    assert normalize_html("a\x0bb") == "ab"


def test_html_to_paragraphs_inline_formatting():
    [xml] = html_to_paragraphs("<p>Hello <b>bold</b> and <i>italic</i></p>")
    element = parse(f'<root xmlns:w="{W_NS}">{xml}</root>')[0]
    assert "".join(texts(element)) == "Hello bold and italic"
    runs = element.findall("w:r", NS)
    assert runs[1].find("w:rPr/w:b", NS) is not None
    assert runs[3].find("w:rPr/w:i", NS) is not None
    assert runs[0].find("w:rPr", NS) is None


def test_html_to_paragraphs_headings_and_lists():
    fragments = html_to_paragraphs("<h1>Title</h1>\n<ul><li>One</li><li>Two</li></ul><ol><li>First</li></ol>")
    elements = [parse(f'<root xmlns:w="{W_NS}">{xml}</root>')[0] for xml in fragments]
    assert [texts(element) for element in elements] == [["Title"], ["One"], ["Two"], ["First"]]
    assert [_style(element) for element in elements] == ["Heading1", "ListBullet", "ListBullet", "ListNumber"]


def test_html_to_paragraphs_bare_text():
    [xml] = html_to_paragraphs("just text")
    assert "just text" in xml


def test_html_to_paragraphs_line_break():
    [xml] = html_to_paragraphs("<p>one<br>two</p>")
    element = parse(f'<root xmlns:w="{W_NS}">{xml}</root>')[0]
    assert texts(element) == ["one", "two"]
    assert element.find("w:r/w:br", NS) is not None


def test_html_to_paragraphs_empty():
    assert html_to_paragraphs("   ") == []


# ========= Placing HTML =========

def test_set_html_takes_over_slot_paragraph():
    attributes = f'xmlns:w14="{W14_NS}" w14:paraId="1A2B3C4D" w:rsidR="00A1B2C3"'
    properties = '<w:pPr><w:jc w:val="both"/></w:pPr>'
    parts = make_parts(
        paragraph("Before") + paragraph("${body}", properties=properties, attributes=attributes) + paragraph("After")
    )
    assert set_html(parts, "body", "<p>One</p><p>Two</p>") == 1

    paragraphs = _body_paragraphs(parts.main.content)
    assert [texts(p) for p in paragraphs] == [["Before"], ["One"], ["Two"], ["After"]]
    for rendered in paragraphs[1:3]:
        assert rendered.get(f"{{{W_NS}}}rsidR") == "00A1B2C3"
        assert rendered.get(f"{{{W14_NS}}}paraId") is None
        assert rendered.find("w:pPr/w:jc", NS).get(f"{{{W_NS}}}val") == "both"


def test_set_html_keeps_own_paragraph_style():
    parts = make_parts(paragraph("${body}", properties='<w:pPr><w:jc w:val="right"/></w:pPr>'))
    set_html(parts, "body", "<h2>Heading</h2>")
    [rendered] = _body_paragraphs(parts.main.content)
    assert _style(rendered) == "Heading2"
    assert rendered.find("w:pPr/w:jc", NS) is None


def test_set_html_limit_is_global():
    parts = make_parts(paragraph("${body}"), headers=[paragraph("${body}")], footers=[paragraph("${body}")])
    assert set_html(parts, "body", "<p>x</p>", limit=2) == 2
    assert "${body}" not in parts.main.content
    assert "${body}" not in parts.headers[0].content
    assert "${body}" in parts.footers[0].content


def test_set_html_empty_html_leaves_placeholder():
    parts = make_parts(paragraph("${body}"))
    assert set_html(parts, "body", "") == 0
    assert "${body}" in parts.main.content
