import logging

from pygments import lexers, styles
from pygments.util import ClassNotFound
from PyQt6.QtGui import QColor, QFont, QSyntaxHighlighter, QTextCharFormat


def lexer_for_file(file_name: str, content: str = ""):
    """按文件名选择词法分析器，找不到时按内容猜测，最后退回纯文本"""
    try:
        return lexers.get_lexer_for_filename(file_name, content)
    except ClassNotFound:
        pass
    if content:
        try:
            return lexers.guess_lexer(content)
        except ClassNotFound:
            pass
    return lexers.get_lexer_by_name("text")


def build_style_formats(style_name: str) -> dict:
    """把 Pygments 样式转换成 token -> QTextCharFormat"""
    try:
        style = styles.get_style_by_name(style_name)
    except ClassNotFound:
        logging.warning("未找到代码风格 '%s'，使用 friendly", style_name)
        style = styles.get_style_by_name("friendly")

    formats = {}
    for token_type, style_definition in style:
        qt_format = QTextCharFormat()
        if style_definition["color"]:
            qt_format.setForeground(QColor(f"#{style_definition['color']}"))
        if style_definition["bgcolor"]:
            qt_format.setBackground(QColor(f"#{style_definition['bgcolor']}"))
        if style_definition["bold"]:
            qt_format.setFontWeight(QFont.Weight.Bold)
        if style_definition["italic"]:
            qt_format.setFontItalic(True)
        if style_definition["underline"]:
            qt_format.setFontUnderline(True)
        formats[token_type] = qt_format
    return formats


class CodeHighlighter(QSyntaxHighlighter):
    def __init__(self, parent=None, style_name: str = "friendly"):
        super().__init__(parent)
        self.lexer = lexers.get_lexer_by_name("text")
        self.style_formats = build_style_formats(style_name)
        self.default_text_format = QTextCharFormat()
        self.default_text_format.setForeground(QColor("#000000"))

    def set_file(self, file_name: str, content: str = ""):
        self.lexer = lexer_for_file(file_name, content)
        logging.debug("词法分析器已设置为: %s (%s)", self.lexer.name, file_name)
        self.rehighlight()

    def _format_for(self, token_type):
        # 子类 token 没有单独定义时沿用父类 token 的格式
        while token_type is not None:
            if token_type in self.style_formats:
                return self.style_formats[token_type]
            token_type = token_type.parent
        return None

    def highlightBlock(self, text):
        self.setFormat(0, len(text), self.default_text_format)
        for index, token_type, token_text in self.lexer.get_tokens_unprocessed(text):
            syntax_format = self._format_for(token_type)
            if syntax_format is not None:
                self.setFormat(index, len(token_text), syntax_format)
