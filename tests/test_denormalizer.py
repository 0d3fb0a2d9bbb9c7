"""
Tests for the pure denormalization functions.

Covers:
- Partition date derivation (UTC truncation, naive instants)
- Attachment width/height parsing from the properties bag
- Reaction tally coercion
- Reply/renote context when the target is missing or has no text
- Poll snapshot presence driving has_poll
- Poll vote and notification records
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import at, make_drive_file, make_note, make_poll
from db.models import Notification, PollVote
from migrations.postgres_to_scylla.denormalizer import (
    build_file_ref,
    build_notification_record,
    build_poll_snapshot,
    build_poll_vote_record,
    build_post_record,
    build_reaction_tally,
    created_at_date,
)


class TestCreatedAtDate:
    def test_truncates_to_utc_day(self):
        # 23:30 at UTC-5 is already the next day in UTC
        instant = datetime(2023, 7, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert created_at_date(instant) == date(2023, 7, 2)

    def test_naive_instant_is_utc(self):
        assert created_at_date(datetime(2023, 7, 1, 23, 59)) == date(2023, 7, 1)


class TestFileRef:
    def test_dimensions_from_properties(self):
        ref = build_file_ref(make_drive_file("f1"))
        assert (ref.width, ref.height) == (640, 480)
        assert ref.url == "https://files.example.com/f1.png"
        assert ref.md5 == "d41d8cd98f00b204e9800998ecf8427e"

    @pytest.mark.parametrize(
        "properties",
        [{}, {"width": "wide", "height": None}, {"width": True, "height": [1]}, {"width": float("nan")}],
    )
    def test_missing_or_non_numeric_dimensions_are_none(self, properties):
        ref = build_file_ref(make_drive_file("f1", properties=properties))
        assert ref.width is None
        assert ref.height is None

    def test_numeric_strings_are_accepted(self):
        ref = build_file_ref(make_drive_file("f1", properties={"width": "1024", "height": 768.0}))
        assert (ref.width, ref.height) == (1024, 768)

    @pytest.mark.parametrize(
        "properties",
        [
            {"width": 3_000_000_000, "height": "1e12"},
            {"width": -(2**31) - 1, "height": 10**400},
        ],
    )
    def test_dimensions_outside_int_column_are_none(self, properties):
        ref = build_file_ref(make_drive_file("f1", properties=properties))
        assert ref.width is None
        assert ref.height is None

    def test_int_column_bounds_are_kept(self):
        ref = build_file_ref(make_drive_file("f1", properties={"width": 2**31 - 1, "height": -(2**31)}))
        assert (ref.width, ref.height) == (2**31 - 1, -(2**31))


class TestReactionTally:
    def test_counts_are_coerced(self):
        tally = build_reaction_tally({"👍": 3, ":blob_cat@.:": "7", ":party:": "lots", "❤": None})
        assert tally == {"👍": 3, ":blob_cat@.:": 7, ":party:": 0, "❤": 0}

    @pytest.mark.parametrize(
        ("stored", "expected"),
        [("99999999999", 2**31 - 1), (3_000_000_000, 2**31 - 1), ("-1e12", -(2**31)), (10**400, 2**31 - 1)],
    )
    def test_counts_are_clamped_to_int_column(self, stored, expected):
        assert build_reaction_tally({"👍": stored}) == {"👍": expected}

    def test_non_mapping_is_empty(self):
        assert build_reaction_tally(None) == {}
        assert build_reaction_tally(["👍"]) == {}


class TestPostRecord:
    def test_no_reply_or_renote_leaves_context_empty(self):
        record = build_post_record(make_note("n1"), files=[])

        for prefix in ("reply", "renote"):
            assert getattr(record, f"{prefix}_id") is None
            assert getattr(record, f"{prefix}_user_id") is None
            assert getattr(record, f"{prefix}_user_host") is None
            assert getattr(record, f"{prefix}_content") is None
            assert getattr(record, f"{prefix}_cw") is None
            assert getattr(record, f"{prefix}_files") == []

    def test_reply_snapshot_is_copied(self):
        target = make_note("n0", user_id="u2", user_host="remote.example", cw="spoilers")
        files = [build_file_ref(make_drive_file("f9"))]
        record = build_post_record(make_note("n1", reply_id="n0"), files=[], reply=target, reply_files=files)

        assert record.reply_id == "n0"
        assert record.reply_user_id == "u2"
        assert record.reply_user_host == "remote.example"
        assert record.reply_content == "text of n0"
        assert record.reply_cw == "spoilers"
        assert record.reply_files == files

    def test_target_without_text_gives_none_not_empty_string(self):
        renote = make_note("n0", text=None, cw=None)
        record = build_post_record(make_note("n1", renote_id="n0", text=None), files=[], renote=renote)

        assert record.renote_id == "n0"
        assert record.renote_content is None
        assert record.renote_cw is None

    def test_has_poll_follows_snapshot(self):
        snapshot = build_poll_snapshot(make_poll("n1", ["yes", "no"]))
        with_poll = build_post_record(make_note("n1"), files=[], poll=snapshot)
        # The stored flag says there is a poll but none was found
        without_poll = build_post_record(make_note("n2", has_poll=True), files=[], poll=None)

        assert with_poll.has_poll is True
        assert with_poll.poll.choices == {1: "yes", 2: "no"}
        assert without_poll.has_poll is False
        assert without_poll.poll is None

    def test_creation_date_and_inline_reactions(self):
        note = make_note("n1", created_at=at(3, 23, 59), reactions={"👍": "2"})
        record = build_post_record(note, files=[])

        assert record.created_at_date == date(2023, 7, 3)
        assert record.reactions == {"👍": 2}


def test_poll_vote_choice_is_one_based():
    vote = PollVote(id="v1", created_at=at(2), user_id="u2", note_id="n1", choice=0)
    record = build_poll_vote_record(vote, "remote.example")

    assert record.choice == 1
    assert record.user_host == "remote.example"


def test_notification_record():
    notification = Notification(
        id="nt1",
        created_at=at(4, 0, 30),
        notifiee_id="u1",
        notifier_id="u2",
        type="reaction",
        note_id="n1",
        reaction="👍",
    )
    record = build_notification_record(notification, None)

    assert record.target_id == "u1"
    assert record.created_at_date == date(2023, 7, 4)
    assert record.entity_id == "n1"
    assert record.notifier_host is None
    assert record.choice is None
