"""
Markdown 渲染
将正文的 Markdown 源转换为经过清洗的 HTML，
内容和评论的 html 字段只能由这里生成
"""

import bleach
import markdown

ALLOWED_TAGS = sorted(set(bleach.sanitizer.ALLOWED_TAGS) | {
    "p", "pre", "br", "hr", "img",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "table", "thead", "tbody", "tr", "th", "td",
})

ALLOWED_ATTRIBUTES = {
    **bleach.sanitizer.ALLOWED_ATTRIBUTES,
    "img": ["src", "alt", "title"],
    "code": ["class"],
}

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "nl2br"]


def render_markdown(source: str) -> str:
    """
    渲染 Markdown 源

    Args:
        source: Markdown 文本，None 视为空串

    Returns:
        清洗后的 HTML 字符串
    """
    if not source:
        return ""
    html = markdown.markdown(source, extensions=MARKDOWN_EXTENSIONS)
    return bleach.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES, strip=True)
