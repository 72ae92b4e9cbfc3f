import os
import tempfile
import unittest
from pathlib import Path

from migration_errors import IncompleteStatementError, MigrationIOError, SchemaSyntaxError
from schema_files import (
    START_MIGRATION_PREFIX,
    START_MIGRATION_SUFFIX,
    gen_start_migration,
    list_schema_files,
)
from sourcemap import PREFIX, SUFFIX

DEFAULT_ESDL = """\
module default {
    type User {
        required property name -> str;  # semicolons inside braces do not count
    };
};
"""

EXTRA_ESDL = """\
module extra {
    scalar type Mood extending enum<'happy;', 'sad'>;
};

"""


class TestGenStartMigration(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.schema_dir = Path(self._td.name)

    def tearDown(self) -> None:
        self._td.cleanup()

    def write(self, name: str, content: str) -> Path:
        path = self.schema_dir / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_wraps_files_in_start_migration_block(self) -> None:
        self.write("default.esdl", DEFAULT_ESDL)
        self.write("extra.esdl", EXTRA_ESDL)

        text, smap = gen_start_migration(self.schema_dir)

        lines = text.splitlines()
        self.assertEqual(lines[0], START_MIGRATION_PREFIX)
        self.assertEqual(lines[-1], START_MIGRATION_SUFFIX)
        expected_lines = len(DEFAULT_ESDL.splitlines()) + len(EXTRA_ESDL.splitlines()) + 2
        self.assertEqual(len(lines), expected_lines)
        self.assertEqual(smap.total_lines, expected_lines)

        self.assertEqual(smap.translate(1), (PREFIX, 1))
        self.assertEqual(smap.translate(expected_lines), (SUFFIX, 1))
        self.assertEqual(smap.translate(2), (self.schema_dir / "default.esdl", 1))
        first_extra = 2 + len(DEFAULT_ESDL.splitlines())
        self.assertEqual(smap.translate(first_extra), (self.schema_dir / "extra.esdl", 1))
        for line in range(2, expected_lines):
            source, _ = smap.translate(line)
            self.assertNotIn(source, (PREFIX, SUFFIX))

    def test_files_are_read_in_name_order(self) -> None:
        self.write("b.esdl", "type B;\n")
        self.write("a.esdl", "type A;\n")
        text, _ = gen_start_migration(self.schema_dir)
        self.assertEqual(text, "START MIGRATION TO {\ntype A;\ntype B;\n};\n")

    def test_ignores_hidden_foreign_and_non_regular_entries(self) -> None:
        self.write("schema.esdl", "type A;\n")
        self.write(".hidden.esdl", "type Hidden")
        self.write("notes.txt", "not a schema")
        (self.schema_dir / "dir.esdl").mkdir()
        self.assertEqual(
            [p.name for p in list_schema_files(self.schema_dir)],
            ["schema.esdl"],
        )

    def test_incomplete_trailing_statement_names_the_file(self) -> None:
        self.write("good.esdl", "type A;\n")
        bad = self.write("bad.esdl", "type A;\n\ntype B {\n  property x -> str;\n}\n")
        with self.assertRaises(IncompleteStatementError) as ctx:
            gen_start_migration(self.schema_dir)
        self.assertEqual(ctx.exception.path, bad)
        self.assertEqual(ctx.exception.line, 3)
        self.assertIn(str(bad), str(ctx.exception))

    def test_unknown_character_is_reported_instead_of_missing_semicolon(self) -> None:
        bad = self.write("bad.esdl", "type A;\n\ntype B {\n  property x := ~1;\n};\n")
        with self.assertRaises(SchemaSyntaxError) as ctx:
            gen_start_migration(self.schema_dir)
        self.assertEqual(ctx.exception.path, bad)
        self.assertEqual(ctx.exception.line, 4)
        self.assertIn("unexpected character '~'", str(ctx.exception))
        self.assertNotIn("semicolon", str(ctx.exception))

    def test_unterminated_string_is_reported(self) -> None:
        self.write("bad.esdl", "type A;\ntype B {\n  annotation title := 'oops;\n};\n")
        with self.assertRaises(SchemaSyntaxError) as ctx:
            gen_start_migration(self.schema_dir)
        self.assertEqual(ctx.exception.line, 3)
        self.assertIn("unterminated string", str(ctx.exception))

    def test_trailing_whitespace_and_comments_are_accepted(self) -> None:
        self.write("ok.esdl", "type A;\n   \n# the end\n\n")
        text, _ = gen_start_migration(self.schema_dir)
        self.assertIn("type A;", text)

    def test_empty_directory(self) -> None:
        text, smap = gen_start_migration(self.schema_dir)
        self.assertEqual(text, "START MIGRATION TO {\n};\n")
        self.assertEqual(smap.total_lines, 2)

    def test_missing_directory(self) -> None:
        missing = self.schema_dir / "nope"
        with self.assertRaises(MigrationIOError) as ctx:
            gen_start_migration(missing)
        self.assertEqual(ctx.exception.path, missing)

    @unittest.skipIf(os.name == "nt" or os.geteuid() == 0, "permissions are not enforced")
    def test_unreadable_file(self) -> None:
        path = self.write("locked.esdl", "type A;\n")
        path.chmod(0)
        try:
            with self.assertRaises(MigrationIOError) as ctx:
                gen_start_migration(self.schema_dir)
            self.assertEqual(ctx.exception.path, path)
        finally:
            path.chmod(0o644)


if __name__ == "__main__":
    unittest.main()
