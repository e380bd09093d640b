"""
Tests for the flat tally maintainer (polls and would-you-rather)

Covers the counting rules:
1. New voter: option +1, total +1
2. Same selection again: nothing changes
3. Switch: old -1, new +1, total unchanged
4. Counts never go below zero
5. Stale previous selection: no decrement, total unchanged
"""

import asyncio

import pytest

from database.memory_store import MemoryDocumentStore
from database.store import DocumentStore
from exceptions import (
    InvalidPathError,
    InvalidSelection,
    StoreError,
    StoreConnectionError,
    Unauthenticated,
    UnknownSubject,
    WriteFailed,
)
from tally import POLLS, WOULD_YOU_RATHER, FlatTallyMaintainer, compute_choice_delta


def poll_doc(poll_id="p1", texts=("Cats", "Dogs")):
    return {
        "id": poll_id,
        "question": "Best pet?",
        "options": [
            {"id": str(index), "text": text, "voteCount": 0}
            for index, text in enumerate(texts)
        ],
        "voteCount": 0,
        "authorId": "author",
        "authorName": "Author",
        "createdAt": 1,
    }


def wyr_doc(question_id="q1"):
    return {
        "id": question_id,
        "optionA": "Fly",
        "optionB": "Be invisible",
        "votesA": 0,
        "votesB": 0,
        "authorId": "author",
        "authorName": "Author",
        "createdAt": 1,
    }


async def poll_state(store, poll_id="p1"):
    poll = await store.get(f"polls/{poll_id}")
    return (poll["voteCount"], *[option["voteCount"] for option in poll["options"]])


class TestComputeChoiceDelta:
    def test_new_voter(self):
        delta = compute_choice_delta(None, "a", ["a", "b"])
        assert delta.counts == {"a": 1}
        assert delta.total == 1

    def test_same_selection_is_empty(self):
        assert compute_choice_delta("a", "a", ["a", "b"]).is_empty

    def test_switch(self):
        delta = compute_choice_delta("a", "b", ["a", "b"])
        assert delta.counts == {"a": -1, "b": 1}
        assert delta.total == 0

    def test_stale_previous_does_not_decrement(self):
        delta = compute_choice_delta("gone", "b", ["a", "b"])
        assert delta.counts == {"b": 1}
        assert delta.total == 0


class TestPollTally:
    def test_cats_and_dogs_scenario(self):
        """(total, cats, dogs): (1,1,0) -> (1,0,1) -> (2,1,1)"""

        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
            maintainer = FlatTallyMaintainer(store)
            states = []
            await maintainer.apply_choice(POLLS, "p1", "user1", "0")
            states.append(await poll_state(store))
            await maintainer.apply_choice(POLLS, "p1", "user1", "1")
            states.append(await poll_state(store))
            await maintainer.apply_choice(POLLS, "p1", "user2", "0")
            states.append(await poll_state(store))
            return states

        assert asyncio.run(scenario()) == [(1, 1, 0), (1, 0, 1), (2, 1, 1)]

    def test_repeating_a_selection_is_idempotent(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
            maintainer = FlatTallyMaintainer(store)
            first = await maintainer.apply_choice(POLLS, "p1", "user1", "0")
            second = await maintainer.apply_choice(POLLS, "p1", "user1", "0")
            return first, second, await poll_state(store)

        first, second, state = asyncio.run(scenario())
        assert first.changed is True
        assert second.changed is False
        assert second.counts == {"0": 1, "1": 0}
        assert second.total == 1
        assert state == (1, 1, 0)

    def test_returned_tally_reflects_write(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
            maintainer = FlatTallyMaintainer(store)
            await maintainer.apply_choice(POLLS, "p1", "user1", "0")
            return await maintainer.apply_choice(POLLS, "p1", "user1", "1")

        tally = asyncio.run(scenario())
        assert tally.previous_selection == "0"
        assert tally.selection == "1"
        assert tally.counts == {"0": 0, "1": 1}
        assert tally.total == 1

    def test_sum_of_counts_matches_total_and_voters(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc(texts=("a", "b", "c"))}})
            maintainer = FlatTallyMaintainer(store)
            choices = [("u1", "0"), ("u2", "1"), ("u1", "2"), ("u3", "2"), ("u2", "2"), ("u3", "0")]
            for user_id, option_id in choices:
                await maintainer.apply_choice(POLLS, "p1", user_id, option_id)
            return await poll_state(store)

        total, *counts = asyncio.run(scenario())
        assert total == sum(counts) == 3

    def test_switch_from_zero_count_is_floored(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
            maintainer = FlatTallyMaintainer(store)
            await maintainer.apply_choice(POLLS, "p1", "user1", "0")
            # Counter drifted to zero behind the maintainer's back
            await store.set("polls/p1/options/0/voteCount", 0)
            await maintainer.apply_choice(POLLS, "p1", "user1", "1")
            return await poll_state(store)

        assert asyncio.run(scenario()) == (1, 0, 1)

    def test_stale_previous_selection_leaves_total(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
            await store.set("polls/p1/voteCount", 1)
            await store.set("votes/p1_user1", {"pollId": "p1", "optionId": "9", "userId": "user1"})
            await FlatTallyMaintainer(store).apply_choice(POLLS, "p1", "user1", "1")
            return await poll_state(store), await store.get("votes/p1_user1/optionId")

        state, recorded = asyncio.run(scenario())
        assert state == (1, 0, 1)
        assert recorded == "1"

    def test_choice_record_is_written(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
            await FlatTallyMaintainer(store).apply_choice(POLLS, "p1", "user1", "1")
            return await store.get("votes/p1_user1")

        record = asyncio.run(scenario())
        assert record["pollId"] == "p1"
        assert record["optionId"] == "1"
        assert record["userId"] == "user1"
        assert isinstance(record["createdAt"], int)

    def test_concurrent_voters_all_count(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
            maintainer = FlatTallyMaintainer(store)
            await asyncio.gather(*[
                maintainer.apply_choice(POLLS, "p1", f"user{i}", str(i % 2))
                for i in range(20)
            ])
            return await poll_state(store)

        assert asyncio.run(scenario()) == (20, 10, 10)

    def test_double_submit_counts_once(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
            maintainer = FlatTallyMaintainer(store)
            await asyncio.gather(
                maintainer.apply_choice(POLLS, "p1", "user1", "0"),
                maintainer.apply_choice(POLLS, "p1", "user1", "0"),
            )
            return await poll_state(store)

        assert asyncio.run(scenario()) == (1, 1, 0)


class TestErrors:
    def test_unknown_subject(self):
        store = MemoryDocumentStore()
        with pytest.raises(UnknownSubject) as exc_info:
            asyncio.run(FlatTallyMaintainer(store).apply_choice(POLLS, "nope", "user1", "0"))
        assert exc_info.value.status_code == 404

    def test_invalid_selection(self):
        store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
        with pytest.raises(InvalidSelection) as exc_info:
            asyncio.run(FlatTallyMaintainer(store).apply_choice(POLLS, "p1", "user1", "7"))
        assert exc_info.value.selection == "7"

    def test_unauthenticated(self):
        store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
        with pytest.raises(Unauthenticated):
            asyncio.run(FlatTallyMaintainer(store).apply_choice(POLLS, "p1", "", "0"))

    def test_store_failure_becomes_write_failed(self):
        class BrokenIncrementStore(MemoryDocumentStore):
            async def increment(self, path, deltas, floor=0):
                raise StoreConnectionError("connection dropped")

        store = BrokenIncrementStore({"polls": {"p1": poll_doc()}})
        with pytest.raises(WriteFailed) as exc_info:
            asyncio.run(FlatTallyMaintainer(store).apply_choice(POLLS, "p1", "user1", "0"))

        error = exc_info.value
        assert isinstance(error.original_error, StoreError)
        assert error.is_retryable is True
        assert error.status_code == 502

    def test_malformed_subject_id_is_not_a_write_failure(self):
        store = MemoryDocumentStore({"polls": {"p1": poll_doc()}})
        with pytest.raises(InvalidPathError) as exc_info:
            asyncio.run(FlatTallyMaintainer(store).apply_choice(POLLS, "p$1", "user1", "0"))
        assert exc_info.value.status_code == 400

    def test_base_store_is_abstract(self):
        with pytest.raises(NotImplementedError):
            asyncio.run(DocumentStore().get("polls"))


class TestWouldYouRatherTally:
    def test_vote_and_switch(self):
        async def scenario():
            store = MemoryDocumentStore({"wyr_questions": {"q1": wyr_doc()}})
            maintainer = FlatTallyMaintainer(store)
            await maintainer.apply_choice(WOULD_YOU_RATHER, "q1", "user1", "A")
            await maintainer.apply_choice(WOULD_YOU_RATHER, "q1", "user2", "A")
            tally = await maintainer.apply_choice(WOULD_YOU_RATHER, "q1", "user1", "B")
            return tally, await store.get("wyr_questions/q1"), await store.get("wyr_votes/q1_user1")

        tally, question, record = asyncio.run(scenario())
        assert (question["votesA"], question["votesB"]) == (1, 1)
        assert tally.counts == {"A": 1, "B": 1}
        assert tally.total == 2
        assert record["choice"] == "B"
        assert record["questionId"] == "q1"

    def test_only_a_or_b(self):
        store = MemoryDocumentStore({"wyr_questions": {"q1": wyr_doc()}})
        with pytest.raises(InvalidSelection):
            asyncio.run(FlatTallyMaintainer(store).apply_choice(WOULD_YOU_RATHER, "q1", "user1", "C"))
