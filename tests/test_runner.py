"""
Tests for the one-to-one migrators and the concurrent top-level run.

Covers:
- Reactions, poll votes and notifications mapping one row to one record
- Acting-user host lookups (cached per run)
- All targets migrating concurrently in one run
- Target selection
- The first failing target aborting the whole run
"""

import pytest

from conftest import at, make_following, make_note, make_user
from db.exceptions import WriteError
from db.models import NoteReaction, Notification, PollVote
from migrations.postgres_to_scylla.reaction_migrator import (
    NotificationMigrator,
    PollVoteMigrator,
    ReactionMigrator,
)
from migrations.postgres_to_scylla.runner import MIGRATION_TARGETS, run_migration


def make_reaction(reaction_id: str, note_id: str, user_id: str, reaction: str = "👍") -> NoteReaction:
    return NoteReaction(id=reaction_id, created_at=at(2), user_id=user_id, note_id=note_id, reaction=reaction)


def make_vote(vote_id: str, note_id: str, user_id: str, choice: int) -> PollVote:
    return PollVote(id=vote_id, created_at=at(2), user_id=user_id, note_id=note_id, choice=choice)


def make_notification(notification_id: str, notifiee_id: str, **overrides) -> Notification:
    values = {"id": notification_id, "created_at": at(3), "notifiee_id": notifiee_id, "type": "follow"}
    values.update(overrides)
    return Notification(**values)


class TestReactionMigrator:
    @pytest.mark.asyncio
    async def test_each_row_is_one_record(self, migration, make_source, sink):
        source = make_source(
            reactions=[
                make_reaction("r1", "n1", "u2"),
                make_reaction("r2", "n1", "u3", ":blobcat:"),
                make_reaction("r3", "n2", "u2"),
            ]
        )

        await ReactionMigrator(migration, source, sink).migrate()

        records = sink.written("reaction")
        assert [(r.id, r.note_id, r.user_id, r.reaction) for r in records] == [
            ("r1", "n1", "u2", "👍"),
            ("r2", "n1", "u3", ":blobcat:"),
            ("r3", "n2", "u2", "👍"),
        ]
        assert migration.stats.written["reaction"] == 3
        assert migration.progress.done("reactions") == 3

    @pytest.mark.asyncio
    async def test_empty_table(self, migration, make_source, sink):
        await ReactionMigrator(migration, make_source(), sink).migrate()

        assert sink.writes == []
        assert migration.progress.counters["reactions"].progress_pct == 100.0


class TestPollVoteMigrator:
    @pytest.mark.asyncio
    async def test_votes_carry_voter_host(self, migration, make_source, sink):
        source = make_source(
            poll_votes=[make_vote("v1", "n1", "u2", 0), make_vote("v2", "n1", "u3", 1)],
            users=[make_user("u2", "remote.example"), make_user("u3")],
        )

        await PollVoteMigrator(migration, source, sink).migrate()

        records = {record.user_id: record for record in sink.written("poll_vote")}
        assert records["u2"].user_host == "remote.example"
        assert records["u2"].choice == 1
        assert records["u3"].user_host is None
        assert records["u3"].choice == 2

    @pytest.mark.asyncio
    async def test_multiple_choice_votes_are_separate_rows(self, migration, make_source, sink):
        source = make_source(poll_votes=[make_vote("v1", "n1", "u2", 0), make_vote("v2", "n1", "u2", 2)])

        await PollVoteMigrator(migration, source, sink).migrate()

        assert set(sink.tables["poll_vote"]) == {("n1", "u2", 1), ("n1", "u2", 3)}


class TestNotificationMigrator:
    @pytest.mark.asyncio
    async def test_entity_and_notifier_host(self, migration, make_source, sink):
        source = make_source(
            notifications=[
                make_notification("nt1", "u1", notifier_id="u2", type="reply", note_id="n5"),
                make_notification("nt2", "u1", notifier_id="u3", follow_request_id="fr1", type="receiveFollowRequest"),
                make_notification("nt3", "u1", type="app", custom_body="hello"),
            ],
            users=[make_user("u2", "remote.example"), make_user("u3")],
        )

        await NotificationMigrator(migration, source, sink).migrate()

        records = {record.id: record for record in sink.written("notification")}
        assert (records["nt1"].entity_id, records["nt1"].notifier_host) == ("n5", "remote.example")
        assert (records["nt2"].entity_id, records["nt2"].notifier_host) == ("fr1", None)
        assert records["nt3"].notifier_id is None
        assert records["nt3"].custom_body == "hello"

    @pytest.mark.asyncio
    async def test_notifier_host_is_looked_up_once(self, migration, make_source, sink):
        source = make_source(
            notifications=[make_notification(f"nt{i}", "u1", notifier_id="u2") for i in range(4)],
            users=[make_user("u2", "remote.example")],
        )
        calls = []
        query_user_host = source._query_user_host

        async def counting_query(user_id):
            calls.append(user_id)
            return await query_user_host(user_id)

        source._query_user_host = counting_query
        # Sequential rows so the cache is warm after the first one
        migration.settings.max_concurrent_rows = 1

        await NotificationMigrator(migration, source, sink).migrate()

        assert calls == ["u2"]
        assert len(sink.written("notification")) == 4


class TestRunMigration:
    @pytest.mark.asyncio
    async def test_all_targets(self, migration, make_source, sink):
        source = make_source(
            notes=[make_note("n1"), make_note("n2", user_id="u2")],
            followings=[make_following("u2", "u1")],
            reactions=[make_reaction("r1", "n1", "u2")],
            poll_votes=[make_vote("v1", "n1", "u2", 0)],
            notifications=[make_notification("nt1", "u1", notifier_id="u2", type="reaction", note_id="n1")],
        )

        await run_migration(migration, source=source, sink=sink)

        assert migration.stats.written == {
            "note": 2,
            "home_timeline": 1,
            "reaction": 1,
            "poll_vote": 1,
            "notification": 1,
        }
        assert set(migration.progress.counters) == set(MIGRATION_TARGETS)

    @pytest.mark.asyncio
    async def test_selected_targets_only(self, migration, make_source, sink):
        source = make_source(notes=[make_note("n1")], reactions=[make_reaction("r1", "n1", "u2")])

        await run_migration(migration, ["reactions"], source=source, sink=sink)

        assert [record.cql_table for record in sink.writes] == ["reaction"]

    @pytest.mark.asyncio
    async def test_failing_target_aborts_the_run(self, migration, make_source, sink):
        source = make_source(
            notes=[make_note(f"n{i}") for i in range(3)],
            reactions=[make_reaction("r1", "n1", "u2")],
        )
        sink.fail_tables = {"reaction"}

        with pytest.raises(WriteError) as exc_info:
            await run_migration(migration, source=source, sink=sink)

        assert exc_info.value.table == "reaction"
