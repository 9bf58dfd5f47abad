"""
Transactional State Transitions.

One function, called once per terminal branch of a stage worker: advance
the moderation state and run the branch's side effects inside a single
content-store transaction. If any side effect raises (for example the
ProceedEvent publish), the state change rolls back with it.

Exports:
    TransitionResult: What apply_transition observed and did
    apply_transition: Guarded state change + side effects in one transaction
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence

from core.logic.transitions import can_transition
from core.models import IndexDocument, ModerationState
from exceptions import ContentNotFoundError, InvalidStateTransitionError
from interfaces.repository import IContentStore


SideEffect = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of apply_transition.

    ``applied`` is False when the content was no longer in ``from_state``;
    ``observed`` then holds the state that was found instead.
    """
    task_id: str
    applied: bool
    observed: ModerationState
    target: ModerationState


async def apply_transition(
    store: IContentStore,
    task_id: str,
    from_state: ModerationState,
    to_state: ModerationState,
    *,
    reason: Optional[str] = None,
    index_document: Optional[IndexDocument] = None,
    side_effects: Sequence[SideEffect] = (),
) -> TransitionResult:
    """
    Move content from ``from_state`` to ``to_state`` and run side effects.

    The current state is re-read under a row lock inside the transaction.
    If another delivery already moved the content on, nothing is written,
    no side effect runs, and ``applied`` is False. That is what keeps
    redelivered terminal transitions idempotent.

    Args:
        store: Content store
        task_id: Content identifier
        from_state: State the caller observed and expects to leave
        to_state: Target state
        reason: Rejection reason persisted alongside the state
        index_document: Index document upserted in the same transaction
        side_effects: Awaitables run after the writes, still inside the transaction

    Raises:
        InvalidStateTransitionError: from_state -> to_state is not a legal move
        ContentNotFoundError: Content disappeared
    """
    if from_state == to_state or not can_transition(from_state, to_state):
        raise InvalidStateTransitionError(task_id, from_state.value, to_state.value)

    async with store.transaction():
        content = await store.get(task_id, lock=True)
        if content is None:
            raise ContentNotFoundError(task_id)

        if content.state != from_state:
            return TransitionResult(task_id=task_id, applied=False, observed=content.state, target=to_state)

        await store.set_state(task_id, to_state, reason=reason)
        if index_document is not None:
            await store.set_index_document(task_id, index_document)
        for effect in side_effects:
            await effect()

    return TransitionResult(task_id=task_id, applied=True, observed=from_state, target=to_state)
