"""Tests for the stack lifecycle controller."""

import threading

import pytest

from stackship.config import PollConfig
from stackship.core.exceptions import (
    AWSError,
    StackCreateFailed,
    StackPollCancelled,
    StackPollFailed,
    StackPollTimeout,
)
from stackship.deploy.models import StackStatus
from stackship.deploy.providers.memory import InMemoryStackProvider
from stackship.deploy.stack import PollPolicy, StackLifecycleController

FAST = PollPolicy(delay=0, max_delay=0, deadline=5, max_transport_errors=3)


def transport_error() -> AWSError:
    return AWSError("Throttling: Rate exceeded", service="cloudformation")


class TestPollPolicy:
    def test_backoff_is_capped(self):
        policy = PollPolicy(delay=2, backoff=2, max_delay=10)
        assert [policy.delay_for(n) for n in range(5)] == [2, 4, 8, 10, 10]

    def test_large_attempt_is_capped(self):
        policy = PollPolicy(delay=5, backoff=1.5, max_delay=30)
        assert policy.delay_for(2000) == 30
        assert PollPolicy(delay=0, backoff=10, max_delay=30).delay_for(2000) == 0

    def test_from_config(self):
        policy = PollPolicy.from_config(PollConfig(delay=1, deadline=None))
        assert policy.delay == 1
        assert policy.deadline is None


class TestEnsureCreated:
    def test_creates_and_waits(self, tmp_path):
        stacks = InMemoryStackProvider()
        controller = StackLifecycleController(stacks, FAST)

        result = controller.ensure_created("shop-dev", "dev", tmp_path / "create.json")

        assert result.created
        assert not result.already_existed
        assert result.status == StackStatus.CREATE_COMPLETE
        assert stacks.calls_to("create_stack") == ["shop-dev"]
        assert len(stacks.calls_to("get_status")) == 2

    def test_existing_stack_is_not_polled(self, tmp_path):
        stacks = InMemoryStackProvider(existing={"shop-dev": StackStatus.UPDATE_COMPLETE})
        controller = StackLifecycleController(stacks, FAST)

        result = controller.ensure_created("shop-dev", "dev", tmp_path / "create.json")

        assert result.already_existed
        assert not result.created
        assert stacks.calls_to("get_status") == []

    def test_rejected_create(self, tmp_path):
        stacks = InMemoryStackProvider()
        stacks.reject_create = True
        controller = StackLifecycleController(stacks, FAST)

        with pytest.raises(StackCreateFailed) as exc_info:
            controller.ensure_created("shop-dev", "dev", tmp_path / "create.json")

        assert exc_info.value.step == "create-stack"
        assert exc_info.value.target == "shop-dev"

    def test_no_wait(self, tmp_path):
        stacks = InMemoryStackProvider()
        controller = StackLifecycleController(stacks, FAST)

        result = controller.ensure_created("shop-dev", "dev", tmp_path / "c.json", wait=False)

        assert result.created
        assert result.status is None
        assert stacks.calls_to("get_status") == []


class TestPollUntilTerminal:
    def test_returns_first_terminal_status(self):
        stacks = InMemoryStackProvider()
        stacks.status_script["s"] = [
            StackStatus.UPDATE_IN_PROGRESS,
            StackStatus.UPDATE_IN_PROGRESS,
            StackStatus.UPDATE_COMPLETE,
            StackStatus.FAILED,
        ]
        controller = StackLifecycleController(stacks, FAST)

        assert controller.poll_until_terminal("s") == StackStatus.UPDATE_COMPLETE
        assert len(stacks.calls_to("get_status")) == 3

    def test_failed_is_terminal(self):
        stacks = InMemoryStackProvider()
        stacks.status_script["s"] = [StackStatus.FAILED]
        controller = StackLifecycleController(stacks, FAST)

        assert controller.poll_until_terminal("s") == StackStatus.FAILED

    def test_unbounded_policy_with_late_attempt(self):
        stacks = InMemoryStackProvider()
        stacks.status_script["s"] = [StackStatus.UPDATE_IN_PROGRESS, StackStatus.UPDATE_COMPLETE]
        policy = PollPolicy(delay=0, backoff=1.5, max_delay=0, deadline=None, max_transport_errors=None)
        controller = StackLifecycleController(stacks, policy)

        assert controller.poll_until_terminal("s", attempt=2000) == StackStatus.UPDATE_COMPLETE

    def test_many_in_progress_observations(self):
        stacks = InMemoryStackProvider()
        stacks.status_script["s"] = [StackStatus.UPDATE_IN_PROGRESS] * 2100 + [
            StackStatus.UPDATE_COMPLETE
        ]
        policy = PollPolicy(delay=0, backoff=1.5, max_delay=0, deadline=None, max_transport_errors=None)
        controller = StackLifecycleController(stacks, policy)

        assert controller.poll_until_terminal("s") == StackStatus.UPDATE_COMPLETE
        assert len(stacks.calls_to("get_status")) == 2101

    def test_transient_errors_tolerated(self):
        stacks = InMemoryStackProvider()
        stacks.status_script["s"] = [
            transport_error(),
            transport_error(),
            transport_error(),
            StackStatus.CREATE_COMPLETE,
        ]
        controller = StackLifecycleController(stacks, FAST)

        assert controller.poll_until_terminal("s") == StackStatus.CREATE_COMPLETE

    def test_error_count_resets_on_success(self):
        stacks = InMemoryStackProvider()
        stacks.status_script["s"] = [
            transport_error(),
            transport_error(),
            transport_error(),
            StackStatus.CREATE_IN_PROGRESS,
            transport_error(),
            transport_error(),
            transport_error(),
            StackStatus.CREATE_COMPLETE,
        ]
        controller = StackLifecycleController(stacks, FAST)

        assert controller.poll_until_terminal("s") == StackStatus.CREATE_COMPLETE

    def test_too_many_errors(self):
        stacks = InMemoryStackProvider()
        stacks.status_script["s"] = [transport_error() for _ in range(4)]
        controller = StackLifecycleController(stacks, FAST)

        with pytest.raises(StackPollFailed) as exc_info:
            controller.poll_until_terminal("s")

        assert isinstance(exc_info.value.cause, AWSError)
        assert exc_info.value.step == "poll-stack"

    def test_deadline(self):
        stacks = InMemoryStackProvider(polls_before_complete=10_000)
        stacks.delete_stack("s")
        controller = StackLifecycleController(stacks, PollPolicy(delay=0, max_delay=0, deadline=0))

        with pytest.raises(StackPollTimeout) as exc_info:
            controller.poll_until_terminal("s")

        assert exc_info.value.timeout_seconds == 0

    def test_cancel_before_first_query(self):
        stacks = InMemoryStackProvider()
        cancel = threading.Event()
        cancel.set()
        controller = StackLifecycleController(stacks, FAST, cancel=cancel)

        with pytest.raises(StackPollCancelled):
            controller.poll_until_terminal("s")

        assert stacks.calls_to("get_status") == []

    def test_cancel_during_wait(self):
        stacks = InMemoryStackProvider(polls_before_complete=10_000)
        stacks.delete_stack("s")
        controller = StackLifecycleController(
            stacks, PollPolicy(delay=30, max_delay=30, deadline=None)
        )

        timer = threading.Timer(0.05, controller.cancel_event.set)
        timer.start()
        try:
            with pytest.raises(StackPollCancelled):
                controller.poll_until_terminal("s")
        finally:
            timer.cancel()

    def test_cancel_override(self):
        stacks = InMemoryStackProvider()
        cancel = threading.Event()
        cancel.set()
        controller = StackLifecycleController(stacks, FAST)

        with pytest.raises(StackPollCancelled):
            controller.poll_until_terminal("s", cancel=cancel)

        assert not controller.cancel_event.is_set()

    def test_missing_stack_counts_as_deleted(self):
        stacks = InMemoryStackProvider()
        controller = StackLifecycleController(stacks, FAST)

        status = controller.poll_until_terminal("gone", missing_is_deleted=True)

        assert status == StackStatus.DELETE_COMPLETE

    def test_policy_override(self):
        stacks = InMemoryStackProvider(polls_before_complete=10_000)
        stacks.delete_stack("s")
        controller = StackLifecycleController(stacks, FAST)

        with pytest.raises(StackPollTimeout):
            controller.poll_until_terminal("s", policy=PollPolicy(delay=0, max_delay=0, deadline=0))


class TestUpdateAndDelete:
    def test_update_unknown_stack(self):
        controller = StackLifecycleController(InMemoryStackProvider(), FAST)
        assert controller.apply_update("missing", "memory://b/k") is False

    def test_update_existing_stack(self):
        stacks = InMemoryStackProvider(existing={"s": StackStatus.CREATE_COMPLETE})
        controller = StackLifecycleController(stacks, FAST)

        assert controller.apply_update("s", "memory://b/k") is True
        assert controller.poll_until_terminal("s") == StackStatus.UPDATE_COMPLETE

    def test_delete_rejected(self):
        stacks = InMemoryStackProvider(existing={"s": StackStatus.CREATE_COMPLETE})
        stacks.reject_delete = True
        controller = StackLifecycleController(stacks, FAST)

        assert controller.delete_stack("s") is False
