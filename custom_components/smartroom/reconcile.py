"""Reconciliation of many-to-many associations.

An owner (an automation) holds a set of associations to targets (equipment),
keyed by (target type, target id). Edits are made locally against the set
loaded when editing started and turned into the minimal create/delete calls
at save time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .api import SessionExpiredError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Mapping

    from .models import AutomationAction

_LOGGER = logging.getLogger(__name__)

AssociationKey = tuple[str, int]

OP_ADD = "add"
OP_REMOVE = "remove"


@dataclass(frozen=True)
class ReconcilePlan:
    """Targets to associate and to dissociate."""

    to_add: frozenset[AssociationKey] = frozenset()
    to_remove: frozenset[AssociationKey] = frozenset()

    @property
    def has_changes(self) -> bool:
        return bool(self.to_add or self.to_remove)


@dataclass(frozen=True)
class FailedOperation:
    """An add or remove that the backend did not complete."""

    op: str
    target: AssociationKey
    error: Exception


@dataclass
class ReconcileResult:
    """Outcome of applying a plan.

    Attributes:
        added: Targets whose association was created.
        removed: Targets whose association was deleted.
        failed: Operations that failed, with the error raised.

    """

    added: list[AssociationKey] = field(default_factory=list)
    removed: list[AssociationKey] = field(default_factory=list)
    failed: list[FailedOperation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def session_expired(self) -> bool:
        """Return True if any operation failed because the session expired."""
        return any(isinstance(f.error, SessionExpiredError) for f in self.failed)

    def raise_for_failures(self) -> None:
        """Raise PartialReconcileFailure if any operation failed."""
        if self.failed:
            raise PartialReconcileFailure(self)


class UnknownAssociationError(LookupError):
    """Exception raised when a target to remove has no known association."""


class PartialReconcileFailure(Exception):
    """Exception raised when some association operations failed."""

    def __init__(self, result: ReconcileResult) -> None:
        """Initialize the exception with the full result."""
        failures = ", ".join(
            f"{failure.op} {failure.target[0]} {failure.target[1]}"
            for failure in result.failed
        )
        super().__init__(f"Failed association operations: {failures}")
        self.result = result


def reconcile(
    original: Iterable[AssociationKey], desired: Iterable[AssociationKey]
) -> ReconcilePlan:
    """Compute the operations turning the original set into the desired one.

    Args:
        original: Keys currently associated on the backend.
        desired: Keys that should be associated.

    Returns:
        ReconcilePlan with to_add = desired - original and
        to_remove = original - desired.

    """
    original_set = frozenset(original)
    desired_set = frozenset(desired)
    return ReconcilePlan(
        to_add=desired_set - original_set,
        to_remove=original_set - desired_set,
    )


def has_changes(
    original: Iterable[AssociationKey], desired: Iterable[AssociationKey]
) -> bool:
    """Check whether saving would issue any call."""
    return reconcile(original, desired).has_changes


class AssociationReconciler:
    """Track one owner's associations and apply edits to them.

    The reconciler keeps the snapshot loaded when editing started, mapping
    each target key to the association's own identifier. Applying a plan
    updates the snapshot for every operation that succeeded, so planning
    again against the same desired set yields only the failed operations.
    """

    def __init__(self, owner_id: int, associations: Iterable[AutomationAction]) -> None:
        """Initialize the reconciler.

        Args:
            owner_id: Identifier of the owning automation.
            associations: Associations loaded from the backend.

        """
        self._owner_id = owner_id
        self._snapshot: dict[AssociationKey, int] = {
            action.key: action.id for action in associations
        }

    @property
    def owner_id(self) -> int:
        return self._owner_id

    @property
    def original(self) -> frozenset[AssociationKey]:
        return frozenset(self._snapshot)

    @property
    def association_ids(self) -> Mapping[AssociationKey, int]:
        return dict(self._snapshot)

    def plan(self, desired: Iterable[AssociationKey]) -> ReconcilePlan:
        return reconcile(self._snapshot, desired)

    def has_changes(self, desired: Iterable[AssociationKey]) -> bool:
        return self.plan(desired).has_changes

    async def async_apply(
        self,
        plan: ReconcilePlan,
        create_call: Callable[[int, str, int, dict[str, Any] | None], Awaitable[int]],
        delete_call: Callable[[int], Awaitable[None]],
        meta: dict[str, Any] | None = None,
    ) -> ReconcileResult:
        """Issue one call per planned operation and collect the outcome.

        Every operation is attempted; a failure never prevents the others.

        Args:
            plan: Operations to perform.
            create_call: Called as create_call(owner_id, target_type,
                target_id, meta); returns the new association id.
            delete_call: Called with the association id to delete.
            meta: Action fields passed to every create call.

        Returns:
            ReconcileResult listing added, removed and failed operations.

        """
        result = ReconcileResult()

        async def _remove(key: AssociationKey) -> None:
            association_id = self._snapshot.get(key)
            if association_id is None:
                _LOGGER.warning(
                    "No association to remove for %s %s on owner %s",
                    key[0],
                    key[1],
                    self._owner_id,
                )
                error = UnknownAssociationError(f"{key[0]} {key[1]}")
                result.failed.append(FailedOperation(OP_REMOVE, key, error))
                return
            try:
                await delete_call(association_id)
            except Exception as err:
                _LOGGER.warning(
                    "Failed to remove %s %s from owner %s: %s",
                    key[0],
                    key[1],
                    self._owner_id,
                    err,
                )
                result.failed.append(FailedOperation(OP_REMOVE, key, err))
            else:
                self._snapshot.pop(key, None)
                result.removed.append(key)

        async def _add(key: AssociationKey) -> None:
            try:
                association_id = await create_call(self._owner_id, key[0], key[1], meta)
            except Exception as err:
                _LOGGER.warning(
                    "Failed to add %s %s to owner %s: %s",
                    key[0],
                    key[1],
                    self._owner_id,
                    err,
                )
                result.failed.append(FailedOperation(OP_ADD, key, err))
            else:
                self._snapshot[key] = association_id
                result.added.append(key)

        _LOGGER.debug(
            "Reconciling owner %s: adding %d, removing %d",
            self._owner_id,
            len(plan.to_add),
            len(plan.to_remove),
        )
        await asyncio.gather(
            *(_remove(key) for key in sorted(plan.to_remove)),
            *(_add(key) for key in sorted(plan.to_add)),
        )

        if result.failed:
            _LOGGER.warning(
                "Reconciliation of owner %s finished with %d failure(s)",
                self._owner_id,
                len(result.failed),
            )
        return result
