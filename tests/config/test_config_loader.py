import tempfile
import unittest
from pathlib import Path

from mobilectl.config.loader import ConfigError, load_config, parse_changelog_section
from mobilectl.config.models import ChangelogConfig, CommitType


class TestConfigLoader(unittest.TestCase):
    """Tests for the ``mobileops.yaml`` loader."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write_config(self, text: str) -> None:
        (self.root / "mobileops.yaml").write_text(text, encoding="utf-8")

    def test_missing_file_gives_defaults(self) -> None:
        config = load_config(self.root)
        self.assertEqual(config, ChangelogConfig())
        self.assertFalse(config.enabled)
        self.assertEqual(config.output_file, "CHANGELOG.md")
        self.assertEqual([t.key for t in config.commit_types], ["feat", "fix", "docs", "perf", "test", "chore"])

    def test_file_without_changelog_section(self) -> None:
        self.write_config("app:\n  name: demo\n")
        self.assertEqual(load_config(self.root), ChangelogConfig())

    def test_full_changelog_section(self) -> None:
        self.write_config(
            "changelog:\n"
            "  enabled: true\n"
            "  output_file: docs/CHANGES.md\n"
            "  from_tag: v1.0.0\n"
            "  append: false\n"
            "  use_last_state: false\n"
            "  include_stats: false\n"
            "  commit_types:\n"
            "    - type: feat\n"
            "      title: New\n"
            "      emoji: \"🚀\"\n"
            "    - type: fix\n"
            "  releases:\n"
            "    \"2.0.0\":\n"
            "      highlights: |\n"
            "        Big release.\n"
            "      breaking_changes:\n"
            "        - Min SDK 26\n"
            "      contributors: [Dana]\n"
        )
        config = load_config(self.root)
        self.assertTrue(config.enabled)
        self.assertEqual(config.output_file, "docs/CHANGES.md")
        self.assertEqual(config.from_tag, "v1.0.0")
        self.assertFalse(config.append)
        self.assertFalse(config.use_last_state)
        self.assertFalse(config.include_stats)
        self.assertTrue(config.include_contributors)
        self.assertEqual(
            config.commit_types,
            [CommitType("feat", "New", "🚀"), CommitType("fix", "Fix", "")],
        )
        notes = config.releases["2.0.0"]
        self.assertEqual(notes.highlights, "Big release.")
        self.assertEqual(notes.breaking_changes, ["Min SDK 26"])
        self.assertEqual(notes.contributors, ["Dana"])

    def test_camel_case_keys_are_accepted(self) -> None:
        self.write_config(
            "changelog:\n"
            "  enabled: true\n"
            "  outputFile: HISTORY.md\n"
            "  useLastState: false\n"
            "  commitTypes:\n"
            "    - type: perf\n"
            "      label: Speed\n"
        )
        config = load_config(self.root)
        self.assertEqual(config.output_file, "HISTORY.md")
        self.assertFalse(config.use_last_state)
        self.assertEqual(config.commit_types, [CommitType("perf", "Speed", "")])

    def test_numeric_tag_is_read_as_string(self) -> None:
        self.write_config("changelog:\n  from_tag: 1.0\n")
        self.assertEqual(load_config(self.root).from_tag, "1.0")

    def test_invalid_yaml_raises(self) -> None:
        self.write_config("changelog: [unclosed\n")
        with self.assertRaises(ConfigError):
            load_config(self.root)

    def test_top_level_must_be_mapping(self) -> None:
        self.write_config("- just\n- a list\n")
        with self.assertRaises(ConfigError):
            load_config(self.root)

    def test_wrongly_typed_values_raise(self) -> None:
        for section in (
            {"enabled": "yes"},
            {"output_file": 42},
            {"commit_types": "feat"},
            {"commit_types": [{"title": "No type"}]},
            {"releases": ["1.0.0"]},
            {"releases": {"1.0.0": {"breaking_changes": "one"}}},
        ):
            with self.subTest(section=section):
                with self.assertRaises(ConfigError):
                    parse_changelog_section(section)

    def test_section_must_be_mapping(self) -> None:
        with self.assertRaises(ConfigError):
            parse_changelog_section(["enabled"])

    def test_empty_commit_types(self) -> None:
        self.assertEqual(parse_changelog_section({"commit_types": None}).commit_types, [])


if __name__ == "__main__":
    unittest.main()
