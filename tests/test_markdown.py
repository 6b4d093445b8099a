from qnote.markdown import Span, Style, inline, render, wrap_spans

def test_heading_and_bold_line():
    lines = render("# Title\n**bold** text", 40)
    assert len(lines) == 2
    assert lines[0].spans == [Span("Title", Style.HEADING)]
    assert lines[0].level == 1
    assert lines[1].spans == [Span("bold", Style.BOLD), Span(" text", Style.PLAIN)]

def test_heading_levels_and_hashtags():
    assert render("### Sub", 40)[0].level == 3
    plain = render("#hashtag", 40)[0]
    assert plain.level == 0
    assert plain.spans == [Span("#hashtag", Style.PLAIN)]

def test_inline_styles_first_match_wins():
    assert inline("*it* and **b** or `ls -la`") == [
        Span("it", Style.ITALIC),
        Span(" and ", Style.PLAIN),
        Span("b", Style.BOLD),
        Span(" or ", Style.PLAIN),
        Span("ls -la", Style.CODE),
    ]
    # arithmetic is not emphasis
    assert inline("2 * 3 * 4") == [Span("2 * 3 * 4", Style.PLAIN)]

def test_list_items_wrap_with_hanging_indent():
    lines = render("- aaa bbb ccc", 7)
    assert [line.text for line in lines] == ["• aaa", "  bbb", "  ccc"]
    assert all(s.style is Style.LIST_ITEM for line in lines for s in line.spans)

def test_code_fence_is_verbatim_and_fences_dropped():
    lines = render("```\ncode *x*\n```\nafter", 40)
    assert [line.text for line in lines] == ["code *x*", "after"]
    assert lines[0].spans == [Span("code *x*", Style.CODE)]

def test_wrap_never_splits_words_that_fit():
    lines = render("the quick brown fox jumps", 10)
    assert [line.text for line in lines] == ["the quick", "brown fox", "jumps"]

def test_long_word_is_hard_cut():
    lines = render("x" * 25, 10)
    assert [line.text for line in lines] == ["x" * 10, "x" * 10, "x" * 5]

def test_lines_never_exceed_width():
    text = "# A heading that is long\n- item **with bold words** and more\n" + "word " * 40
    for width in (5, 12, 33):
        assert all(len(line.text) <= width for line in render(text, width))

def test_blank_lines_are_kept():
    assert [line.text for line in render("a\n\nb", 10)] == ["a", "", "b"]

def test_render_is_deterministic():
    text = "# T\n*i* **b**\n- x\n```\ny\n```"
    assert render(text, 20) == render(text, 20)

def test_wrap_spans_always_returns_a_line():
    assert len(wrap_spans([], 10)) == 1
