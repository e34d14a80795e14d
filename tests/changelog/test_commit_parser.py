import datetime
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from mobilectl.changelog.commit_parser import GitCommitParser, is_breaking, parse_commit_message
from mobilectl.config.models import CommitType, default_commit_types
from mobilectl.vcs.git_client import GitClient, LogEntry


def entry(subject, body="", author="Ahmed", hash_="a" * 40, date="2024-05-01T10:00:00+02:00"):
    return LogEntry(
        hash=hash_,
        short_hash=hash_[:7],
        author=author,
        date=date,
        subject=subject,
        body=body,
    )


class TestParseCommitMessage(unittest.TestCase):
    def test_type_scope_and_message(self) -> None:
        commit = parse_commit_message("feat(auth): add login", default_commit_types())
        self.assertIsNotNone(commit)
        self.assertEqual(commit.type, "feat")
        self.assertEqual(commit.scope, "auth")
        self.assertEqual(commit.message, "add login")
        self.assertFalse(commit.breaking)
        self.assertIsNone(commit.body)

    def test_scope_is_optional(self) -> None:
        commit = parse_commit_message("fix: fix crash on start", default_commit_types())
        self.assertEqual(commit.type, "fix")
        self.assertIsNone(commit.scope)
        self.assertEqual(commit.message, "fix crash on start")

    def test_non_conventional_subject_returns_none(self) -> None:
        self.assertIsNone(parse_commit_message("Merge branch 'main'", default_commit_types()))
        self.assertIsNone(parse_commit_message("", default_commit_types()))

    def test_type_is_normalized_to_configured_spelling(self) -> None:
        commit = parse_commit_message("FEAT: shout", [CommitType("feat", "Features")])
        self.assertEqual(commit.type, "feat")

    def test_unconfigured_type_is_kept(self) -> None:
        commit = parse_commit_message("build: bump gradle", default_commit_types())
        self.assertEqual(commit.type, "build")

    def test_breaking_footer_in_body(self) -> None:
        message = "refactor(api): drop v1 endpoints\n\nMore text.\nBREAKING CHANGE: v1 clients must upgrade"
        commit = parse_commit_message(message, default_commit_types())
        self.assertTrue(commit.breaking)
        self.assertIn("BREAKING CHANGE: v1 clients must upgrade", commit.body)

    def test_breaking_marker_must_start_a_line(self) -> None:
        self.assertFalse(is_breaking("this mentions BREAKING CHANGE: in passing"))
        self.assertTrue(is_breaking("BREAKING-CHANGE: renamed flag"))
        self.assertFalse(is_breaking(None))


class TestGitCommitParser(unittest.TestCase):
    def setUp(self) -> None:
        self.client = MagicMock(spec=GitClient)
        self.parser = GitCommitParser(self.client, default_commit_types())

    def test_parse_commits_uses_tag_range(self) -> None:
        self.client.log.return_value = [entry("feat: add login")]
        commits = self.parser.parse_commits("v1.0.0", None)
        self.client.log.assert_called_once_with("v1.0.0..HEAD")
        self.assertEqual(len(commits), 1)

    def test_parse_commits_between_two_tags(self) -> None:
        self.client.log.return_value = []
        self.parser.parse_commits("v1.0.0", "v1.1.0")
        self.client.log.assert_called_once_with("v1.0.0..v1.1.0")

    def test_full_history_without_commits_is_empty(self) -> None:
        self.client.has_commits.return_value = False
        self.assertEqual(self.parser.parse_commits(), [])
        self.client.log.assert_not_called()

    def test_full_history_logs_head(self) -> None:
        self.client.has_commits.return_value = True
        self.client.log.return_value = []
        self.parser.parse_commits()
        self.client.log.assert_called_once_with("HEAD")

    def test_since_hash_excludes_the_hash_itself(self) -> None:
        self.client.log.return_value = []
        self.parser.parse_commits_since_hash("abc1234")
        self.client.log.assert_called_once_with("abc1234..HEAD")

    def test_log_fields_are_carried_over(self) -> None:
        self.client.log.return_value = [
            entry("feat(ui): dark mode", body="BREAKING CHANGE: new theme API", author="Jane"),
        ]
        (commit,) = self.parser.parse_commits("v1.0.0")
        self.assertEqual(commit.hash, "a" * 40)
        self.assertEqual(commit.short_hash, "aaaaaaa")
        self.assertEqual(commit.author, "Jane")
        self.assertEqual(commit.date, datetime.date(2024, 5, 1))
        self.assertEqual(commit.scope, "ui")
        self.assertTrue(commit.breaking)

    def test_non_conventional_commits_are_skipped(self) -> None:
        self.client.log.return_value = [
            entry("feat: one", hash_="1" * 40),
            entry("WIP", hash_="2" * 40),
            entry("fix: two", hash_="3" * 40),
        ]
        commits = self.parser.parse_commits("v1.0.0")
        self.assertEqual([c.message for c in commits], ["one", "two"])

    def test_tag_queries_delegate_to_client(self) -> None:
        self.client.latest_tag.return_value = "v2.0.0"
        self.client.list_tags.return_value = ["v2.0.0", "v1.0.0"]
        self.client.tag_date.return_value = "2024-03-10T08:00:00+00:00"
        self.assertEqual(self.parser.get_latest_tag(), "v2.0.0")
        self.assertEqual(self.parser.get_all_tags(), ["v2.0.0", "v1.0.0"])
        self.assertEqual(self.parser.get_tag_date("v2.0.0"), datetime.date(2024, 3, 10))

    def test_head_tag_delegates_to_client(self) -> None:
        self.client.head_tag.return_value = "v2.0.0"
        self.assertEqual(self.parser.get_head_tag(), "v2.0.0")
        self.client.head_tag.return_value = None
        self.assertIsNone(self.parser.get_head_tag())

    def test_tag_date_unknown(self) -> None:
        self.client.tag_date.return_value = None
        self.assertIsNone(self.parser.get_tag_date("nope"))

    def test_compare_url(self) -> None:
        self.client.web_url.return_value = "https://github.com/acme/app"
        self.assertEqual(
            self.parser.get_compare_url("v1.0.0", "v1.1.0"),
            "https://github.com/acme/app/compare/v1.0.0...v1.1.0",
        )

    def test_compare_url_without_remote_is_empty(self) -> None:
        self.client.web_url.return_value = None
        self.assertEqual(self.parser.get_compare_url("v1.0.0", "v1.1.0"), "")

    def test_parse_commit_message_method(self) -> None:
        parser = GitCommitParser(GitClient(Path("/repo")))
        commit = parser.parse_commit_message("docs: update readme", default_commit_types())
        self.assertEqual(commit.type, "docs")


if __name__ == "__main__":
    unittest.main()
