import unittest
from pathlib import Path

from sourcemap import PREFIX, SUFFIX, Builder


class TestSourceMap(unittest.TestCase):
    def test_lines_are_contiguous_and_map_back(self) -> None:
        bld = Builder()
        bld.add_lines(PREFIX, "START MIGRATION TO {")
        bld.add_lines(Path("a.esdl"), "type A;\n\ntype B;\n")
        bld.add_lines(Path("b.esdl"), "type C;")
        bld.add_lines(SUFFIX, "};")
        text, smap = bld.done()

        self.assertEqual(text, "START MIGRATION TO {\ntype A;\n\ntype B;\ntype C;\n};\n")
        self.assertEqual(smap.total_lines, 6)
        self.assertEqual([e.start_output_line for e in smap.entries], [1, 2, 5, 6])
        self.assertEqual(smap.translate(1), (PREFIX, 1))
        self.assertEqual(smap.translate(3), (Path("a.esdl"), 2))
        self.assertEqual(smap.translate(4), (Path("a.esdl"), 3))
        self.assertEqual(smap.translate(5), (Path("b.esdl"), 1))
        self.assertEqual(smap.translate(6), (SUFFIX, 1))

    def test_chunk_taken_from_the_middle_of_a_source(self) -> None:
        bld = Builder()
        bld.add_lines(PREFIX, "START MIGRATION TO {")
        bld.add_lines(Path("a.esdl"), "type B;\ntype C;\n", first_line=10)
        _, smap = bld.done()
        self.assertEqual(smap.entries[1].original_line_offset, 9)
        self.assertEqual(smap.translate(2), (Path("a.esdl"), 10))
        self.assertEqual(smap.translate(3), (Path("a.esdl"), 11))
        self.assertEqual(smap.translate(1), (PREFIX, 1))

    def test_out_of_range_lines(self) -> None:
        bld = Builder()
        bld.add_lines(PREFIX, "x")
        _, smap = bld.done()
        self.assertIsNone(smap.translate(0))
        self.assertIsNone(smap.translate(2))

    def test_empty_chunk_takes_no_lines(self) -> None:
        bld = Builder()
        bld.add_lines(PREFIX, "a")
        bld.add_lines(Path("empty.esdl"), "")
        bld.add_lines(SUFFIX, "b")
        text, smap = bld.done()
        self.assertEqual(text, "a\nb\n")
        self.assertEqual(smap.translate(2), (SUFFIX, 1))

    def test_carriage_returns_are_kept(self) -> None:
        bld = Builder()
        bld.add_lines(Path("win.esdl"), "type A;\r\ntype B;\r\n")
        text, smap = bld.done()
        self.assertEqual(text, "type A;\r\ntype B;\r\n")
        self.assertEqual(smap.total_lines, 2)


if __name__ == "__main__":
    unittest.main()
