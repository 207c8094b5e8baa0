"""
Tests for Markdown -> Telegram HTML conversion and message splitting.
"""

from app.telegram_bot.formatting import TELEGRAM_MESSAGE_LIMIT, markdown_to_html, split_message


class TestMarkdownToHtml:
    def test_bold_fields(self):
        text = "**Имя:** Анна Иванова\n**Город:** Москва"
        assert markdown_to_html(text) == "<b>Имя:</b> Анна Иванова\n<b>Город:</b> Москва"

    def test_html_is_escaped(self):
        assert markdown_to_html("R&D <lead> > 5 years") == "R&amp;D &lt;lead&gt; &gt; 5 years"

    def test_italic(self):
        assert markdown_to_html("*очевидно* подходит") == "<i>очевидно</i> подходит"

    def test_bullets(self):
        assert markdown_to_html("* one\n- two") == "• one\n• two"

    def test_heading(self):
        assert markdown_to_html("## Найдено 2 эксперта") == "<b>Найдено 2 эксперта</b>"

    def test_code_span_untouched(self):
        assert markdown_to_html("`**raw**` and **bold**") == "<code>**raw**</code> and <b>bold</b>"

    def test_underscores_in_usernames_kept(self):
        assert markdown_to_html("@ivan_petrov_dev") == "@ivan_petrov_dev"

    def test_double_underscores_not_bold(self):
        assert markdown_to_html("@ivan__dev__ и __init__") == "@ivan__dev__ и __init__"

    def test_lone_asterisk(self):
        assert markdown_to_html("5 * 3 = 15") == "5 * 3 = 15"


class TestSplitMessage:
    def test_short_text_single_part(self):
        assert split_message("hello") == ["hello"]

    def test_splits_on_lines(self):
        line = "x" * 3000
        parts = split_message(f"{line}\n{line}")
        assert parts == [line, line]

    def test_every_part_within_limit(self):
        text = "\n".join(f"**Имя:** Эксперт {i} " + "y" * 200 for i in range(60))
        parts = split_message(text)
        assert len(parts) > 1
        assert all(len(part) <= TELEGRAM_MESSAGE_LIMIT for part in parts)
        assert "\n".join(parts) == text

    def test_long_single_line_is_cut(self):
        parts = split_message("z" * 9000)
        assert [len(p) for p in parts] == [4096, 4096, 808]

    def test_long_line_cut_at_space(self):
        text = "**Имя:** Анна\n" + "a" * 4090 + " **Экспертиза:** iOS"
        assert split_message(text) == ["**Имя:** Анна", "a" * 4090, "**Экспертиза:** iOS"]
