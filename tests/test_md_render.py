import unittest

from md_render import prepare_markdown, render


class TestMarkdown(unittest.TestCase):
    def test_strips_common_indent(self) -> None:
        text = "    Run:\n\n      edgedb migrate\n"
        self.assertEqual(prepare_markdown(text), "Run:\n\n  edgedb migrate\n")

    def test_unindented_text_is_untouched(self) -> None:
        text = "error: x\n  hint"
        self.assertEqual(prepare_markdown(text), text)

    def test_render_ends_with_single_newline(self) -> None:
        self.assertEqual(render("\n  hello\n\n"), "hello\n")


if __name__ == "__main__":
    unittest.main()
