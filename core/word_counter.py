"""
字数统计 (Word Counter)
将富文本标记还原为纯文本后，按空白切分统计词数。
这是 word_count 的唯一来源，任何内容变更都必须经过这里重新计算。
"""
from html.parser import HTMLParser

# 块级标签之间需要补一个空白，否则 "<p>a</p><p>b</p>" 会被拼成 "ab"
BLOCK_TAGS = {
    "p", "div", "br", "li", "ul", "ol", "h1", "h2", "h3", "h4", "h5", "h6",
    "blockquote", "pre", "hr", "tr", "td", "th", "section", "article",
}


class _TextExtractor(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts = []

    def handle_starttag(self, tag, attrs):
        if tag in BLOCK_TAGS:
            self.parts.append(" ")

    def handle_endtag(self, tag):
        if tag in BLOCK_TAGS:
            self.parts.append(" ")

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)

    def handle_data(self, data):
        self.parts.append(data)


def extract_text(content: str) -> str:
    """去除标记，返回可见的纯文本"""
    if not content:
        return ""
    parser = _TextExtractor()
    parser.feed(content)
    parser.close()
    return "".join(parser.parts)


def count_words(content: str) -> int:
    """
    统计内容中的词数。

    Args:
        content (str): 可能包含 HTML 标记的场景内容。

    Returns:
        int: 以空白分隔的非空词数；空内容或只有标记的内容返回 0。
    """
    text = extract_text(content)
    if not text.strip():
        return 0
    return len(text.split())
