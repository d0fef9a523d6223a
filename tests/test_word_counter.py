import pytest

from core.word_counter import count_words, extract_text


@pytest.mark.parametrize("content, expected", [
    ("", 0),
    (None, 0),
    ("<p></p>", 0),
    ("<p><br></p>", 0),
    ("<p>hello world</p>", 2),
    ("The cat sat.", 3),
    ("  spaced   out\n\ttext ", 3),
    ("<p>first</p><p>second</p>", 2),
    ("<h1>Title</h1><ul><li>one</li><li>two</li></ul>", 3),
    ("<p>bold <strong>move</strong>s</p>", 2),
    ("<p>one&nbsp;two</p>", 2),
    ("<p>&nbsp;</p>", 0),
])
def test_count_words(content, expected):
    assert count_words(content) == expected


def test_count_words_is_deterministic():
    content = "<p>It was a dark and <em>stormy</em> night.</p>"
    assert count_words(content) == count_words(content) == 7


def test_extract_text_decodes_entities():
    assert extract_text("<p>Tom &amp; Jerry</p>").strip() == "Tom & Jerry"
