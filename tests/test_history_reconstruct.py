"""Tests for history reconstruction."""

import hashlib
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from gitsocial.history.reconstruct import (
    Classification,
    build_ref_map,
    classify_commit,
    in_batch_lookup,
    reconstruct,
    synthesize_list_entries,
)
from gitsocial.models import EntryType, RawCommit
from gitsocial.protocol import codec
from gitsocial.protocol.codec import ActionHeader, ActionMessage, ActionReference

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
REPO = "https://github.com/alice/social#branch:main"
LIST_REF = "refs/gitmsg/social/lists/reading"


def sha(label: str) -> str:
    return hashlib.sha1(label.encode()).hexdigest()


def make_commit(label: str, message: str, minutes: int = 0, refname: str | None = None) -> RawCommit:
    return RawCommit(
        hash=sha(label),
        author="Alice",
        email="alice@example.com",
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        message=message,
        refname=refname,
    )


def interaction_text(social_type: str, excerpt: str = "hello") -> str:
    return codec.encode(
        ActionMessage(
            content="Replying",
            header=ActionHeader(ext="social", fields={"type": social_type}),
            references=(
                ActionReference(
                    ext="social",
                    ref="https://github.com/bob/blog#commit:0123456789ab",
                    author="Bob",
                    email="bob@example.com",
                    time="2025-01-01T00:00:00Z",
                    fields={"social:ref-type": "original"},
                    metadata=f"> {excerpt}",
                ),
            ),
        )
    )


def snapshot(*repositories: str, name: str = "Reading") -> str:
    return json.dumps({"version": "0.1.0", "id": "reading", "name": name, "repositories": list(repositories)})


class TestClassifyCommit:
    """Tests for classify_commit function."""

    def test_list_pointer(self) -> None:
        """Commits on list pointers should be list state changes."""
        commit = make_commit("l", snapshot(), refname=LIST_REF)
        assert classify_commit(commit, build_ref_map([commit])) == Classification.LIST_STATE_CHANGE

    def test_config_pointer(self) -> None:
        """Commits on the config pointer should be config."""
        commit = make_commit("c", '{"branch": "main"}', refname="refs/gitmsg/social/config")
        assert classify_commit(commit, build_ref_map([commit])) == Classification.CONFIG

    def test_other_reserved_pointer(self) -> None:
        """Commits on other reserved pointers should be metadata."""
        commit = make_commit("m", "avatar", refname="refs/gitmsg/social/avatar")
        assert classify_commit(commit, build_ref_map([commit])) == Classification.METADATA

    def test_non_reserved_pointer_is_ignored(self) -> None:
        """Ordinary branch pointers should not affect classification."""
        commit = make_commit("p", "Hello", refname="refs/heads/main")
        assert build_ref_map([commit]) == {}
        assert classify_commit(commit, {}) == Classification.POST

    @pytest.mark.parametrize("social_type", ["comment", "repost", "quote"])
    def test_interaction_types(self, social_type: str) -> None:
        """Social interaction headers should classify by their type field."""
        commit = make_commit(social_type, interaction_text(social_type))
        assert classify_commit(commit, {}) == Classification(social_type)

    def test_explicit_post_type(self) -> None:
        """A social post header should stay a post."""
        text = codec.encode(ActionMessage(content="Hi", header=ActionHeader(ext="social", fields={"type": "post"})))
        assert classify_commit(make_commit("p", text), {}) == Classification.POST

    def test_foreign_namespace(self) -> None:
        """Comment types from other namespaces should be posts."""
        text = codec.encode(ActionMessage(content="Hi", header=ActionHeader(ext="pm", fields={"type": "comment"})))
        assert classify_commit(make_commit("p", text), {}) == Classification.POST


class TestReconstruct:
    """Tests for reconstruct function."""

    def test_plain_commits_are_posts(self) -> None:
        """Commits without headers or pointers should become posts, newest first."""
        commits = [make_commit("1", "Post 1", minutes=0), make_commit("2", "Post 2", minutes=5)]

        entries = reconstruct(commits, REPO)

        assert [e.type for e in entries] == [EntryType.POST, EntryType.POST]
        assert [e.details for e in entries] == ["Post 2", "Post 1"]

    def test_entry_fields(self) -> None:
        """Entries should carry short hash, author, repository and raw payload."""
        commit = make_commit("1", "Hello world\n\nMore text")

        [entry] = reconstruct([commit], REPO)

        assert entry.hash == commit.hash[:12]
        assert entry.timestamp == commit.timestamp
        assert entry.author.name == "Alice"
        assert entry.author.email == "alice@example.com"
        assert entry.repository == REPO
        assert entry.raw.commit is commit
        assert entry.raw.message is None
        assert entry.details == "Hello world"

    def test_post_id_uses_base_repository(self) -> None:
        """post_id should strip the branch fragment from the repository."""
        commit = make_commit("1", "Hello")
        [entry] = reconstruct([commit], REPO)
        assert entry.post_id == f"https://github.com/alice/social#commit:{commit.hash[:12]}"

    def test_post_id_drops_list_fragment(self) -> None:
        """post_id should strip any fragment from the locator, not just branches."""
        commit = make_commit("1", "Hello")
        [entry] = reconstruct([commit], "https://h/o/r#list:x")
        assert entry.post_id == f"https://h/o/r#commit:{commit.hash[:12]}"

    def test_post_id_is_relative_for_local_paths(self) -> None:
        """Local repositories should yield repository-relative post ids."""
        commit = make_commit("1", "Hello")
        [entry] = reconstruct([commit], "/home/u/repo")
        assert entry.post_id == f"#commit:{commit.hash[:12]}"
        assert entry.repository == "/home/u/repo"

    def test_comment_entry(self) -> None:
        """A social comment should produce a comment entry with the excerpt."""
        commit = make_commit("c", interaction_text("comment", "hello"))

        [entry] = reconstruct([commit], REPO)

        assert entry.type == EntryType.COMMENT
        assert entry.details == "Re: hello"
        assert entry.raw.message is not None
        assert entry.post_id is not None

    def test_metadata_entries_have_no_post_id(self) -> None:
        """Config and metadata entries should not carry a post_id."""
        commits = [
            make_commit("c", '{"branch": "gitsocial"}', refname="refs/gitmsg/social/config"),
            make_commit("m", "Avatar", minutes=1, refname="refs/gitmsg/social/avatar"),
        ]
        entries = reconstruct(commits, REPO)
        assert {e.type for e in entries} == {EntryType.CONFIG, EntryType.METADATA}
        assert all(e.post_id is None for e in entries)

    def test_ordering_is_descending_and_stable(self) -> None:
        """Entries should be newest first with ties in discovery order."""
        commits = [
            make_commit("a", "A", minutes=1),
            make_commit("b", "B", minutes=3),
            make_commit("c", "C", minutes=1),
            make_commit("d", "D", minutes=2),
        ]

        entries = reconstruct(commits, REPO)

        assert [e.details for e in entries] == ["B", "D", "A", "C"]
        for newer, older in zip(entries, entries[1:]):
            assert newer.timestamp >= older.timestamp

    def test_idempotent(self) -> None:
        """Reconstructing the same commits twice should give equal results."""
        commits = [
            make_commit("1", "Post", minutes=0),
            make_commit("2", interaction_text("quote"), minutes=1),
            make_commit("3", snapshot("repoA"), minutes=2, refname=LIST_REF),
        ]
        assert reconstruct(commits, REPO) == reconstruct(commits, REPO)

    def test_type_filter_law(self) -> None:
        """Filtering by types should equal filtering the unfiltered result."""
        commits = [
            make_commit("1", "Post", minutes=0),
            make_commit("2", interaction_text("comment"), minutes=1),
            make_commit("3", interaction_text("repost"), minutes=2),
            make_commit("4", snapshot("repoA"), minutes=3, refname=LIST_REF),
        ]
        allowed = {EntryType.COMMENT, EntryType.REPOSITORY_FOLLOW}

        filtered = reconstruct(commits, REPO, types=allowed)
        unfiltered = reconstruct(commits, REPO)

        assert filtered == [e for e in unfiltered if e.type in allowed]
        assert {e.type for e in filtered} == allowed

    def test_type_filter_accepts_strings(self) -> None:
        """types may be given as plain strings."""
        commits = [make_commit("1", "Post"), make_commit("2", interaction_text("comment"), minutes=1)]
        entries = reconstruct(commits, REPO, types=["comment"])
        assert [e.type for e in entries] == [EntryType.COMMENT]

    def test_unknown_type_names_match_nothing(self) -> None:
        """Unknown type names should be ignored rather than rejected."""
        commits = [make_commit("1", "Post"), make_commit("2", interaction_text("comment"), minutes=1)]
        entries = reconstruct(commits, REPO, types={"post", "bogus"})
        assert [e.type for e in entries] == [EntryType.POST]
        assert reconstruct(commits, REPO, types=["bogus"]) == []

    def test_bad_commit_is_skipped(self) -> None:
        """A commit that fails to process should be skipped, not abort the run."""
        commits = [make_commit("1", "Good", minutes=0), make_commit("2", "Bad", minutes=1)]

        def flaky(entry_type, message, commit):
            if commit.message == "Bad":
                raise RuntimeError("boom")
            return commit.message

        with patch("gitsocial.history.reconstruct.format_details", side_effect=flaky):
            entries = reconstruct(commits, REPO)

        assert [e.details for e in entries] == ["Good"]

    def test_empty_input(self) -> None:
        """No commits should give no entries."""
        assert reconstruct([], REPO) == []


class TestListSynthesis:
    """Tests for follow/unfollow synthesis from list snapshots."""

    def test_follow_from_successive_snapshots(self) -> None:
        """Adding a repository should synthesize one follow entry."""
        commits = [
            make_commit("new", snapshot("repoA"), minutes=1, refname=LIST_REF),
            make_commit("old", snapshot(), minutes=0, refname=LIST_REF),
        ]

        entries = reconstruct(commits, REPO, types=[EntryType.REPOSITORY_FOLLOW])

        assert len(entries) == 1
        assert "repoA" in entries[0].details
        assert "reading" in entries[0].details
        assert entries[0].details == 'Added repoA to list "reading"'

    def test_first_snapshot_follows_everything(self) -> None:
        """Without a previous snapshot, every listed repository is followed."""
        commit = make_commit("only", snapshot("repoA", "repoB"), refname=LIST_REF)

        entries = reconstruct([commit], REPO)

        assert [(e.type, e.details) for e in entries] == [
            (EntryType.REPOSITORY_FOLLOW, 'Added repoA to list "reading"'),
            (EntryType.REPOSITORY_FOLLOW, 'Added repoB to list "reading"'),
        ]

    def test_list_diff_law(self) -> None:
        """Follows should equal S2 - S1 and unfollows S1 - S2."""
        s1 = ("a", "b", "c")
        s2 = ("b", "c", "d", "e")
        commits = [
            make_commit("s2", snapshot(*s2), minutes=1, refname=LIST_REF),
            make_commit("s1", snapshot(*s1), minutes=0, refname=LIST_REF),
        ]
        lookup = in_batch_lookup(commits)

        entries = synthesize_list_entries(commits[0], "social/lists/reading", REPO, lookup)

        follows = {e.details for e in entries if e.type == EntryType.REPOSITORY_FOLLOW}
        unfollows = {e.details for e in entries if e.type == EntryType.REPOSITORY_UNFOLLOW}
        assert follows == {f'Added {r} to list "reading"' for r in set(s2) - set(s1)}
        assert unfollows == {f'Removed {r} from list "reading"' for r in set(s1) - set(s2)}

    def test_unchanged_set_yields_single_update(self) -> None:
        """Equal repository sets should yield exactly one 'updated list' entry."""
        commits = [
            make_commit("renamed", snapshot("a", "b", name="Renamed"), minutes=1, refname=LIST_REF),
            make_commit("orig", snapshot("b", "a"), minutes=0, refname=LIST_REF),
        ]
        lookup = in_batch_lookup(commits)

        entries = synthesize_list_entries(commits[0], "social/lists/reading", REPO, lookup)

        assert len(entries) == 1
        assert entries[0].type == EntryType.LIST_CREATE
        assert entries[0].details == 'Updated list "reading"'

    def test_synthesized_entries_share_commit_identity(self) -> None:
        """Synthesized entries should share hash, timestamp and author."""
        commit = make_commit("x", snapshot("a", "b"), refname=LIST_REF)

        entries = synthesize_list_entries(commit, "social/lists/reading", REPO, lambda c, r: None)

        assert {e.hash for e in entries} == {commit.hash[:12]}
        assert {e.timestamp for e in entries} == {commit.timestamp}
        assert all(e.post_id is None for e in entries)
        assert all(e.raw.message is None for e in entries)

    def test_lookup_failure_falls_back(self) -> None:
        """A failing previous-commit lookup should produce the fallback entry."""
        commit = make_commit("x", snapshot("a"), refname=LIST_REF)

        def broken(commit, ref):
            raise OSError("git unavailable")

        entries = synthesize_list_entries(commit, "social/lists/reading", REPO, broken)

        assert [(e.type, e.details) for e in entries] == [(EntryType.LIST_CREATE, 'Updated list "reading"')]

    def test_undecodable_snapshot(self) -> None:
        """An undecodable snapshot should be treated as an empty list."""
        commits = [
            make_commit("broken", "not json", minutes=1, refname=LIST_REF),
            make_commit("orig", snapshot("a"), minutes=0, refname=LIST_REF),
        ]

        entries = reconstruct(commits, REPO)

        newest = [e for e in entries if e.hash == commits[0].hash[:12]]
        assert [(e.type, e.details) for e in newest] == [
            (EntryType.REPOSITORY_UNFOLLOW, 'Removed a from list "reading"')
        ]

    def test_custom_previous_commit_lookup(self) -> None:
        """reconstruct should use a supplied previous-commit lookup."""
        current = make_commit("cur", snapshot("a", "b"), minutes=1, refname=LIST_REF)
        previous = make_commit("prev", snapshot("a"), minutes=0, refname=LIST_REF)
        calls = []

        def lookup(commit, ref):
            calls.append((commit.hash, ref))
            return previous

        entries = reconstruct([current], REPO, previous_commit=lookup)

        assert calls == [(current.hash, "social/lists/reading")]
        assert [(e.type, e.details) for e in entries] == [
            (EntryType.REPOSITORY_FOLLOW, 'Added b to list "reading"')
        ]

    def test_separate_lists_do_not_mix(self) -> None:
        """In-batch lookup should only consider commits on the same pointer."""
        commits = [
            make_commit("r2", snapshot("a", "b"), minutes=2, refname=LIST_REF),
            make_commit("w1", snapshot("a"), minutes=1, refname="refs/gitmsg/social/lists/watching"),
            make_commit("r1", snapshot("b"), minutes=0, refname=LIST_REF),
        ]
        lookup = in_batch_lookup(commits)

        assert lookup(commits[0], "social/lists/reading") is commits[2]
        assert lookup(commits[2], "social/lists/reading") is None
