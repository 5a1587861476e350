"""Tests for the SmartRoom association reconciler."""

from unittest.mock import AsyncMock

import pytest

from custom_components.smartroom.api import RemoteError, SessionExpiredError
from custom_components.smartroom.models import AutomationAction
from custom_components.smartroom.reconcile import (
    OP_ADD,
    OP_REMOVE,
    AssociationReconciler,
    FailedOperation,
    PartialReconcileFailure,
    ReconcilePlan,
    ReconcileResult,
    UnknownAssociationError,
    has_changes,
    reconcile,
)

LIGHT = "LIGHT"


def make_action(action_id: int, target_id: int, target_type: str = LIGHT) -> AutomationAction:
    """Create an automation action for automation 3."""
    return AutomationAction(
        id=action_id,
        automation_id=3,
        target_type=target_type,
        target_id=target_id,
        action_type="ON",
    )


@pytest.fixture
def reconciler() -> AssociationReconciler:
    """Create a reconciler holding lights 1 and 3."""
    return AssociationReconciler(3, [make_action(100, 1), make_action(101, 3)])


class TestReconcile:
    """Tests for the reconcile function."""

    def test_computes_set_differences(self) -> None:
        """Test that additions and removals are the two set differences."""
        original = {(LIGHT, 1), (LIGHT, 3)}
        desired = {(LIGHT, 1), (LIGHT, 5)}

        plan = reconcile(original, desired)

        assert plan.to_add == frozenset({(LIGHT, 5)})
        assert plan.to_remove == frozenset({(LIGHT, 3)})
        assert plan.to_add.isdisjoint(plan.to_remove)

    def test_applying_plan_reaches_desired(self) -> None:
        """Test that original - to_remove + to_add equals desired."""
        original = {(LIGHT, 1), (LIGHT, 2), ("AC", 2)}
        desired = {(LIGHT, 2), ("AC", 7)}

        plan = reconcile(original, desired)

        assert (set(original) - plan.to_remove) | plan.to_add == desired

    def test_same_id_with_other_type_is_distinct(self) -> None:
        """Test that keys are compared by type and id together."""
        plan = reconcile({(LIGHT, 2)}, {("AC", 2)})
        assert plan.to_add == frozenset({("AC", 2)})
        assert plan.to_remove == frozenset({(LIGHT, 2)})

    def test_identical_sets_have_no_changes(self) -> None:
        """Test that equal sets produce an empty plan."""
        keys = {(LIGHT, 1), (LIGHT, 3)}
        assert reconcile(keys, keys) == ReconcilePlan()
        assert has_changes(keys, keys) is False

    def test_has_changes(self) -> None:
        """Test that differing sets report changes."""
        assert has_changes(set(), {(LIGHT, 1)}) is True


class TestReconcileResult:
    """Tests for ReconcileResult."""

    def test_ok_without_failures(self) -> None:
        """Test that a result without failures is ok and does not raise."""
        result = ReconcileResult(added=[(LIGHT, 1)])
        assert result.ok is True
        result.raise_for_failures()

    def test_raise_for_failures(self) -> None:
        """Test that failures raise with every operation named."""
        result = ReconcileResult()
        result.failed.append(FailedOperation(OP_REMOVE, (LIGHT, 3), RemoteError(500, b"")))

        with pytest.raises(PartialReconcileFailure, match="remove LIGHT 3") as exc_info:
            result.raise_for_failures()
        assert exc_info.value.result is result

    def test_session_expired(self) -> None:
        """Test that a session expiry among the failures is reported."""
        result = ReconcileResult()
        result.failed.append(
            FailedOperation(OP_ADD, (LIGHT, 5), SessionExpiredError("Session expired"))
        )
        assert result.session_expired is True


class TestAssociationReconciler:
    """Tests for AssociationReconciler."""

    def test_original_and_ids(self, reconciler: AssociationReconciler) -> None:
        """Test that the loaded snapshot is exposed."""
        assert reconciler.owner_id == 3
        assert reconciler.original == frozenset({(LIGHT, 1), (LIGHT, 3)})
        assert reconciler.association_ids == {(LIGHT, 1): 100, (LIGHT, 3): 101}

    def test_plan_against_snapshot(self, reconciler: AssociationReconciler) -> None:
        """Test planning against the loaded associations."""
        plan = reconciler.plan({(LIGHT, 1), (LIGHT, 5)})
        assert plan.to_add == frozenset({(LIGHT, 5)})
        assert plan.to_remove == frozenset({(LIGHT, 3)})
        assert reconciler.has_changes({(LIGHT, 1), (LIGHT, 3)}) is False

    @pytest.mark.asyncio
    async def test_apply_issues_one_call_per_operation(
        self, reconciler: AssociationReconciler
    ) -> None:
        """Test that adds create and removes delete by association id."""
        create_call = AsyncMock(return_value=200)
        delete_call = AsyncMock(return_value=None)
        meta = {"actionType": "ON"}

        plan = reconciler.plan({(LIGHT, 1), (LIGHT, 5)})
        result = await reconciler.async_apply(plan, create_call, delete_call, meta)

        assert result.ok is True
        assert result.added == [(LIGHT, 5)]
        assert result.removed == [(LIGHT, 3)]
        create_call.assert_awaited_once_with(3, LIGHT, 5, meta)
        delete_call.assert_awaited_once_with(101)
        assert reconciler.association_ids == {(LIGHT, 1): 100, (LIGHT, 5): 200}

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_successful_operations(
        self, reconciler: AssociationReconciler
    ) -> None:
        """Test that a failed remove does not prevent the add."""
        create_call = AsyncMock(return_value=200)
        delete_call = AsyncMock(side_effect=RemoteError(500, b"error"))

        plan = reconciler.plan({(LIGHT, 1), (LIGHT, 5)})
        result = await reconciler.async_apply(plan, create_call, delete_call)

        assert result.ok is False
        assert result.added == [(LIGHT, 5)]
        assert result.removed == []
        assert [(f.op, f.target) for f in result.failed] == [(OP_REMOVE, (LIGHT, 3))]
        assert reconciler.original == frozenset({(LIGHT, 1), (LIGHT, 3), (LIGHT, 5)})

    @pytest.mark.asyncio
    async def test_retry_plans_only_failed_operations(
        self, reconciler: AssociationReconciler
    ) -> None:
        """Test that planning again after a partial failure yields the failures."""
        desired = {(LIGHT, 1), (LIGHT, 5)}
        await reconciler.async_apply(
            reconciler.plan(desired),
            AsyncMock(return_value=200),
            AsyncMock(side_effect=RemoteError(500, b"")),
        )

        retry = reconciler.plan(desired)

        assert retry.to_add == frozenset()
        assert retry.to_remove == frozenset({(LIGHT, 3)})

    @pytest.mark.asyncio
    async def test_failed_add_is_recorded(self, reconciler: AssociationReconciler) -> None:
        """Test that a failed create is recorded and other adds still run."""
        create_call = AsyncMock(side_effect=[RemoteError(400, b""), 201])

        plan = reconciler.plan({(LIGHT, 1), (LIGHT, 3), (LIGHT, 5), (LIGHT, 6)})
        result = await reconciler.async_apply(plan, create_call, AsyncMock())

        assert create_call.await_count == 2
        assert len(result.added) == 1
        assert len(result.failed) == 1
        assert result.failed[0].op == OP_ADD

    @pytest.mark.asyncio
    async def test_removal_without_known_association_is_failed(
        self, reconciler: AssociationReconciler
    ) -> None:
        """Test that every planned operation appears in the result."""
        delete_call = AsyncMock()
        plan = ReconcilePlan(to_remove=frozenset({(LIGHT, 3), (LIGHT, 9)}))

        result = await reconciler.async_apply(plan, AsyncMock(), delete_call)

        delete_call.assert_awaited_once_with(101)
        assert result.removed == [(LIGHT, 3)]
        assert [(failure.op, failure.target) for failure in result.failed] == [
            (OP_REMOVE, (LIGHT, 9))
        ]
        assert isinstance(result.failed[0].error, UnknownAssociationError)
        assert result.session_expired is False

    @pytest.mark.asyncio
    async def test_empty_plan_issues_no_calls(
        self, reconciler: AssociationReconciler
    ) -> None:
        """Test that an empty plan does nothing."""
        create_call = AsyncMock()
        delete_call = AsyncMock()

        result = await reconciler.async_apply(ReconcilePlan(), create_call, delete_call)

        assert result.ok is True
        create_call.assert_not_awaited()
        delete_call.assert_not_awaited()
