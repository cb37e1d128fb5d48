"""Tests for pending action queue module."""

import threading

import pytest

from src.globsync.models import ActionKind
from src.globsync.queue import PendingActionQueue, merge_actions

ADD = ActionKind.ADD
CHANGE = ActionKind.CHANGE
REMOVE = ActionKind.REMOVE


class TestMergeActions:
    """Tests for merge_actions."""

    @pytest.mark.parametrize("existing,new,expected", [
        (None, ADD, ADD),
        (None, CHANGE, CHANGE),
        (None, REMOVE, REMOVE),
        (ADD, ADD, ADD),
        (ADD, CHANGE, ADD),
        (ADD, REMOVE, None),
        (CHANGE, ADD, CHANGE),
        (CHANGE, CHANGE, CHANGE),
        (CHANGE, REMOVE, REMOVE),
        (REMOVE, ADD, CHANGE),
        (REMOVE, CHANGE, CHANGE),
        (REMOVE, REMOVE, REMOVE),
    ])
    def test_transition(self, existing, new, expected):
        assert merge_actions(existing, new) is expected


class TestPendingActionQueue:
    """Tests for PendingActionQueue class."""

    def test_push_new_path(self):
        queue = PendingActionQueue()
        assert queue.push("a/x.txt", ADD) is ADD
        assert queue.get("a/x.txt") is ADD
        assert len(queue) == 1

    def test_add_then_remove_cancels(self):
        queue = PendingActionQueue()
        queue.push("a/x.txt", ADD)

        assert queue.push("a/x.txt", REMOVE) is None
        assert "a/x.txt" not in queue
        assert len(queue) == 0

    def test_many_changes_collapse(self):
        queue = PendingActionQueue()
        for _ in range(10):
            queue.push("a/x.txt", CHANGE)

        assert queue.items() == [("a/x.txt", CHANGE)]

    def test_remove_then_add_becomes_change(self):
        queue = PendingActionQueue()
        queue.push("a/x.txt", REMOVE)
        queue.push("a/x.txt", ADD)

        assert queue.get("a/x.txt") is CHANGE

    def test_insertion_order(self):
        queue = PendingActionQueue()
        queue.push("a/1.txt", ADD)
        queue.push("a/2.txt", CHANGE)
        queue.push("a/3.txt", REMOVE)

        assert [path for path, _ in queue.items()] == ["a/1.txt", "a/2.txt", "a/3.txt"]

    def test_merge_keeps_position(self):
        queue = PendingActionQueue()
        queue.push("a/1.txt", CHANGE)
        queue.push("a/2.txt", ADD)
        queue.push("a/1.txt", REMOVE)

        assert queue.items() == [("a/1.txt", REMOVE), ("a/2.txt", ADD)]

    def test_recreated_entry_goes_to_end(self):
        queue = PendingActionQueue()
        queue.push("a/1.txt", ADD)
        queue.push("a/2.txt", ADD)
        queue.push("a/1.txt", REMOVE)
        queue.push("a/1.txt", ADD)

        assert queue.items() == [("a/2.txt", ADD), ("a/1.txt", ADD)]

    def test_take_all_clears(self):
        queue = PendingActionQueue()
        queue.push("a/1.txt", ADD)
        queue.push("a/2.txt", REMOVE)

        entries = queue.take_all()

        assert entries == [("a/1.txt", ADD), ("a/2.txt", REMOVE)]
        assert len(queue) == 0
        assert queue.take_all() == []

    def test_requeue_into_empty_slot(self):
        queue = PendingActionQueue()
        assert queue.requeue("a/x.txt", CHANGE) is True
        assert queue.get("a/x.txt") is CHANGE

    def test_requeue_does_not_override_newer_action(self):
        queue = PendingActionQueue()
        queue.push("a/x.txt", REMOVE)

        assert queue.requeue("a/x.txt", ADD) is False
        assert queue.get("a/x.txt") is REMOVE

    def test_clear(self):
        queue = PendingActionQueue()
        queue.push("a/x.txt", ADD)
        queue.clear()
        assert len(queue) == 0

    def test_concurrent_pushes(self):
        queue = PendingActionQueue()

        def push_many(prefix):
            for i in range(200):
                queue.push(f"{prefix}/{i % 20}.txt", CHANGE)

        threads = [threading.Thread(target=push_many, args=(f"d{n}",)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(queue) == 80
