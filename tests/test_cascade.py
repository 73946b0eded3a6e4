"""Tests for the <style> sheet cascade."""

from dark_audit.cascade import apply_stylesheets, media_matches, parse_stylesheet, specificity
from dark_audit.dom import parse_html
from dark_audit.findings import FindingType
from dark_audit.style import declarations, font_size, position, z_index


def _sample_modal_page() -> str:
    return """
    <html><head><style>
      .modal { position: fixed; z-index: 9999; top: 0; left: 0; width: 100vw; height: 100vh; }
    </style></head>
    <body>
      <div class="modal" id="modal"><button>Close</button></div>
      <p>Article body</p>
    </body></html>
    """


def _sample_ad_page() -> str:
    return """
    <style>.tiny { font-size: 9px }</style>
    <article class="card">
      <img src="shoe.jpg"><a href="/p/shoe">Running shoe</a>
      <span class="tiny" id="label">Sponsored</span>
    </article>
    """


def test_class_rules_reach_style_readers():
    doc = parse_html(_sample_modal_page())
    modal = doc.get_element_by_id("modal")
    assert position(modal) == "fixed"
    assert z_index(modal) == 9999
    assert declarations(modal)["height"] == "100vh"


def test_stylesheet_overlay_is_detected(make_engine):
    engine = make_engine(_sample_modal_page())
    report = engine.scan_now()
    types = [f.type for f in report.findings]
    assert types == [FindingType.OBSCURED_INTERFACE]


def test_stylesheet_tiny_label_is_detected(make_engine):
    engine = make_engine(_sample_ad_page())
    report = engine.scan_now()
    assert [f.type for f in report.findings] == [FindingType.DISGUISED_AD]
    target = engine.snapshot.target_of(report.findings[0])
    assert target.id == "label"


def test_specificity_then_source_order():
    doc = parse_html("""
    <style>
      #x { font-size: 20px }
      span.a { font-size: 14px }
      .a { font-size: 8px }
      span { font-size: 30px }
    </style>
    <span id="x" class="a">one</span><span class="a" id="y">two</span><span id="z">three</span>
    """)
    assert font_size(doc.get_element_by_id("x")) == 20
    assert font_size(doc.get_element_by_id("y")) == 14
    assert font_size(doc.get_element_by_id("z")) == 30


def test_inline_beats_sheet_unless_important():
    doc = parse_html("""
    <style>
      .a { z-index: 5 }
      .b { z-index: 7 !important }
    </style>
    <div class="a" id="a" style="z-index: 50"></div>
    <div class="b" id="b" style="z-index: 70"></div>
    """)
    assert z_index(doc.get_element_by_id("a")) == 50
    assert z_index(doc.get_element_by_id("b")) == 7


def test_media_blocks_follow_the_viewport():
    markup = """
    <style>
      @media (max-width: 600px) { .label { font-size: 9px } }
      @media print { .label { font-size: 4px } }
    </style>
    <span class="label" id="l">Sponsored</span>
    """
    narrow = parse_html(markup, viewport=(390, 844))
    wide = parse_html(markup, viewport=(1280, 800))
    assert font_size(narrow.get_element_by_id("l")) == 9
    assert font_size(wide.get_element_by_id("l")) == 16


def test_media_matches():
    assert media_matches("", (1280, 800))
    assert media_matches("screen and (min-width: 1024px)", (1280, 800))
    assert not media_matches("screen and (min-width: 1024px)", (800, 600))
    assert media_matches("print, (orientation: landscape)", (1280, 800))
    assert not media_matches("(prefers-color-scheme: dark)", (1280, 800))


def test_unsupported_selectors_and_at_rules_are_skipped():
    rules = parse_stylesheet("""
    /* header */
    @import url(other.css);
    @font-face { font-family: X; src: url(x.woff) }
    @keyframes pulse { from { opacity: 0 } to { opacity: 1 } }
    .a::before, .a { color: red }
    .b:hover { z-index: 3 }
    """)
    assert [r.selector for r in rules] == [".a::before", ".a", ".b:hover"]

    doc = parse_html('<style>.a::before, .a { z-index: 4 }</style><div class="a" id="a"></div>')
    assert z_index(doc.get_element_by_id("a")) == 4


def test_specificity_counts():
    assert specificity("#nav a.active") == (1, 1, 1)
    assert specificity("ul li:first-child") == (0, 1, 2)
    assert specificity("input[type=checkbox]") == (0, 1, 1)
    assert specificity("*") == (0, 0, 0)


def test_style_added_by_mutation_applies_on_next_scan(make_engine):
    engine = make_engine("""
    <div id="gate"><button>Close</button></div>
    """)
    assert engine.scan_now().findings == []

    doc = engine.document
    for node in doc.fragment("<style>#gate { position: fixed; z-index: 2000; inset: 0 }</style>"):
        doc.body.append_child(node)
    report = engine.scan_now()
    assert [f.type for f in report.findings] == [FindingType.OBSCURED_INTERFACE]


def test_removed_stylesheet_clears_sheet_values():
    doc = parse_html('<style id="s">.a { position: fixed }</style><div class="a" id="a"></div>')
    assert position(doc.get_element_by_id("a")) == "fixed"
    doc.get_element_by_id("s").remove()
    assert apply_stylesheets(doc) == 0
    assert position(doc.get_element_by_id("a")) == "static"
