"""
Flow State Machine
==================

Owns the single authoritative game phase and enforces the fail-only
contract.

Transition Table (authoritative):
    Menu           → Starting
    Starting       → Running
    Running        → Paused, Ending
    Paused         → Running, Ending
    Ending         → Cleaning
    Cleaning       → ShowingResults
    ShowingResults → Menu

Ordering Contract (per successful transition):
    1. exit hooks of the current phase
    2. assign the new phase
    3. entry hooks of the new phase
    4. every subscriber, in registration order, with (old, new)

A transition requested while steps 1-4 are running (e.g. by a subscriber)
is NOT executed re-entrantly: it is queued and runs after the current
transition has fully completed, in FIFO order.

Fail-only Contract:
    - Construction scans every phase name; a victory-shaped name raises
      ForbiddenPhaseError and no instance is produced.
    - Every transition attempt re-checks the target name, independent of
      the adjacency table.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Type

from futility_core.errors import ConfigurationError, ForbiddenPhaseError
from futility_core.models.phase import FlowPhase, find_forbidden_phase_name, is_forbidden_phase_name
from futility_core.models.reason_codes import TransitionCode


logger = logging.getLogger(__name__)


PhaseCallback = Callable[[Enum, Enum], None]
PhaseHook = Callable[[Enum], None]


DEFAULT_TRANSITIONS: Dict[FlowPhase, FrozenSet[FlowPhase]] = {
    FlowPhase.Menu: frozenset({FlowPhase.Starting}),
    FlowPhase.Starting: frozenset({FlowPhase.Running}),
    FlowPhase.Running: frozenset({FlowPhase.Paused, FlowPhase.Ending}),
    FlowPhase.Paused: frozenset({FlowPhase.Running, FlowPhase.Ending}),
    FlowPhase.Ending: frozenset({FlowPhase.Cleaning}),
    FlowPhase.Cleaning: frozenset({FlowPhase.ShowingResults}),
    FlowPhase.ShowingResults: frozenset({FlowPhase.Menu}),
}


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a transition request.

    Truthy iff the phase changed. `legal` lists the phases reachable from
    the phase that was current when the request was evaluated; it is for
    diagnostics only.
    """

    success: bool
    code: TransitionCode
    requested: Enum
    previous: Enum
    current: Enum
    legal: FrozenSet[Enum]

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return (
            f"TransitionResult({self.previous.name} → {self.requested.name}: "
            f"{self.code.value})"
        )

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "success": self.success,
            "code": self.code.value,
            "requested": self.requested.name,
            "previous": self.previous.name,
            "current": self.current.name,
            "legal": sorted(phase.name for phase in self.legal),
        }


class FlowStateMachine:
    """
    Fail-only lifecycle state machine.

    Attributes:
        phases: Enum class of legal phases
        current_phase: The single authoritative phase

    Example:
        flow = FlowStateMachine()
        flow.subscribe(lambda old, new: print(old, "→", new))

        flow.transition_to(FlowPhase.Starting)    # truthy
        flow.transition_to(FlowPhase.Paused)      # falsy, NOT_ADJACENT
    """

    def __init__(
        self,
        phases: Type[Enum] = FlowPhase,
        transitions: Optional[Mapping[Enum, Iterable[Enum]]] = None,
        initial: Optional[Enum] = None,
    ) -> None:
        """
        Initialize the state machine.

        Args:
            phases: Enum class of phases (default FlowPhase)
            transitions: Adjacency map (default DEFAULT_TRANSITIONS)
            initial: Starting phase (default: first member, i.e. Menu)

        Raises:
            ForbiddenPhaseError: A phase name describes a winnable outcome
            ConfigurationError: The adjacency map references unknown phases
        """
        members = list(phases)
        if not members:
            raise ConfigurationError("phase enum has no members")

        forbidden = find_forbidden_phase_name(member.name for member in members)
        if forbidden is not None:
            logger.error(f"Refusing to construct flow machine: forbidden phase {forbidden!r}")
            raise ForbiddenPhaseError(forbidden)

        if transitions is None:
            if phases is not FlowPhase:
                raise ConfigurationError("custom phase enums require an explicit transition table")
            transitions = DEFAULT_TRANSITIONS

        self.phases = phases
        self._transitions = self._freeze_table(members, transitions)

        if initial is None:
            initial = members[0]
        if initial not in self._transitions:
            raise ConfigurationError(f"initial phase {initial!r} is not a member of {phases.__name__}")

        self._current: Enum = initial
        self._subscribers: List[PhaseCallback] = []
        self._entry_hooks: Dict[Enum, List[PhaseHook]] = {}
        self._exit_hooks: Dict[Enum, List[PhaseHook]] = {}

        # Re-entrancy guard and FIFO of (target, forced) requests
        self._notifying: bool = False
        self._pending: Deque[Tuple[Enum, bool]] = deque()

        self._transition_count: int = 0
        self._rejected_count: int = 0
        self._forced_count: int = 0

        logger.info(
            f"FlowStateMachine initialized: {len(members)} phases, "
            f"initial={self._current.name}"
        )

    @staticmethod
    def _freeze_table(
        members: List[Enum],
        transitions: Mapping[Enum, Iterable[Enum]],
    ) -> Dict[Enum, FrozenSet[Enum]]:
        member_set = set(members)
        table: Dict[Enum, FrozenSet[Enum]] = {}
        for source, targets in transitions.items():
            target_set = frozenset(targets)
            unknown = ({source} | target_set) - member_set
            if unknown:
                names = ", ".join(sorted(str(u) for u in unknown))
                raise ConfigurationError(f"transition table references unknown phases: {names}")
            table[source] = target_set
        for member in members:
            if member not in table:
                logger.warning(f"Phase {member.name} has no outgoing transitions")
                table[member] = frozenset()
        return table

    # -- Read access ------------------------------------------------------------

    @property
    def current_phase(self) -> Enum:
        return self._current

    def legal_transitions(self, phase: Optional[Enum] = None) -> FrozenSet[Enum]:
        """Phases reachable in one step from `phase` (default: current)."""
        if phase is None:
            phase = self._current
        return self._transitions.get(phase, frozenset())

    def can_transition(self, target: Enum) -> bool:
        return (
            target in self.legal_transitions()
            and not is_forbidden_phase_name(target.name)
        )

    def is_in_gameplay(self) -> bool:
        """Running or Paused."""
        return self._current.name in (FlowPhase.Running.name, FlowPhase.Paused.name)

    def is_active(self) -> bool:
        """Running (not paused)."""
        return self._current.name == FlowPhase.Running.name

    # -- Subscriptions ------------------------------------------------------------

    def subscribe(self, callback: PhaseCallback) -> Callable[[], None]:
        """
        Register a change subscriber, called with (old, new).

        Returns:
            A callable that removes the subscription
        """
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: PhaseCallback) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            logger.debug("Unsubscribe of unknown callback ignored")

    def add_entry_hook(self, phase: Enum, hook: PhaseHook) -> None:
        self._entry_hooks.setdefault(phase, []).append(hook)

    def add_exit_hook(self, phase: Enum, hook: PhaseHook) -> None:
        self._exit_hooks.setdefault(phase, []).append(hook)

    # -- Transitions --------------------------------------------------------------

    def transition_to(self, target: Enum) -> TransitionResult:
        """
        Attempt a validated transition to `target`.

        Returns:
            TransitionResult, truthy iff the phase changed. While a
            transition is in progress the request is queued and the
            result code is DEFERRED.
        """
        rejected = self._validate(target, forced=False)
        if rejected is not None:
            return rejected

        if self._notifying:
            return self._defer(target, forced=False)

        result = self._apply(target, forced=False)
        self._drain_pending()
        return result

    def force_state(self, target: Enum) -> TransitionResult:
        """
        UNSAFE: move to `target` without checking adjacency.

        Recovery escape hatch. Skips exit/entry hooks but still notifies
        subscribers. The forbidden-name check is never bypassed.
        """
        rejected = self._validate(target, forced=True)
        if rejected is not None:
            return rejected

        if self._notifying:
            return self._defer(target, forced=True)

        result = self._apply(target, forced=True)
        self._drain_pending()
        return result

    def reset(self) -> Optional[TransitionResult]:
        """Force back to the initial Menu phase if not already there."""
        menu = self._menu_phase()
        if self._current == menu:
            return None
        logger.info("Resetting flow state machine to Menu")
        return self.force_state(menu)

    # -- Internals ----------------------------------------------------------------

    def _menu_phase(self) -> Enum:
        try:
            return self.phases[FlowPhase.Menu.name]
        except KeyError:
            return list(self.phases)[0]

    def _result(self, target: Enum, code: TransitionCode, success: bool, previous: Enum) -> TransitionResult:
        return TransitionResult(
            success=success,
            code=code,
            requested=target,
            previous=previous,
            current=self._current,
            legal=self.legal_transitions(previous),
        )

    def _validate(self, target: Enum, forced: bool) -> Optional[TransitionResult]:
        """Return a rejection result, or None if the request may proceed."""
        current = self._current

        if not isinstance(target, self.phases):
            self._rejected_count += 1
            logger.warning(f"UNKNOWN PHASE: {target!r} is not a {self.phases.__name__}")
            return TransitionResult(
                success=False,
                code=TransitionCode.UNKNOWN_PHASE,
                requested=target,
                previous=current,
                current=current,
                legal=self.legal_transitions(current),
            )

        if is_forbidden_phase_name(target.name):
            self._rejected_count += 1
            logger.error(
                f"ILLEGAL: attempted transition to victory-shaped phase {target.name!r}. "
                "There is no victory."
            )
            return self._result(target, TransitionCode.FORBIDDEN_PHASE, False, current)

        if forced:
            if target == current and not self._notifying:
                return self._result(target, TransitionCode.ALREADY_THERE, False, current)
            return None

        # Adjacency is checked at execution time for deferred requests
        if self._notifying:
            return None

        if target not in self._transitions.get(current, frozenset()):
            self._rejected_count += 1
            legal = ", ".join(sorted(p.name for p in self.legal_transitions(current))) or "none"
            logger.warning(
                f"INVALID TRANSITION: {current.name} → {target.name} is not allowed "
                f"(legal from {current.name}: {legal})"
            )
            return self._result(target, TransitionCode.NOT_ADJACENT, False, current)

        return None

    def _defer(self, target: Enum, forced: bool) -> TransitionResult:
        self._pending.append((target, forced))
        logger.debug(f"Transition to {target.name} deferred until current transition completes")
        return self._result(target, TransitionCode.DEFERRED, False, self._current)

    def _apply(self, target: Enum, forced: bool) -> TransitionResult:
        old = self._current

        if forced:
            logger.warning(f"FORCING STATE: {old.name} → {target.name} (bypassing validation, UNSAFE)")
        else:
            logger.info(f"STATE TRANSITION: {old.name} → {target.name}")

        self._notifying = True
        try:
            if not forced:
                self._run_hooks(self._exit_hooks.get(old, ()), old, "exit")

            self._current = target

            if not forced:
                self._run_hooks(self._entry_hooks.get(target, ()), target, "entry")

            for callback in list(self._subscribers):
                try:
                    callback(old, target)
                except Exception:
                    logger.exception(f"Flow subscriber failed during {old.name} → {target.name}")
        finally:
            self._notifying = False

        self._transition_count += 1
        if forced:
            self._forced_count += 1

        return TransitionResult(
            success=True,
            code=TransitionCode.FORCED if forced else TransitionCode.APPLIED,
            requested=target,
            previous=old,
            current=self._current,
            legal=self.legal_transitions(old),
        )

    def _run_hooks(self, hooks: Iterable[PhaseHook], phase: Enum, kind: str) -> None:
        for hook in list(hooks):
            try:
                hook(phase)
            except Exception:
                logger.exception(f"Flow {kind} hook failed for {phase.name}")

    def _drain_pending(self) -> None:
        while self._pending:
            target, forced = self._pending.popleft()
            if forced:
                self.force_state(target)
            else:
                self.transition_to(target)

    def get_metrics(self) -> dict:
        """Get state machine metrics for observability."""
        return {
            "current_phase": self._current.name,
            "legal_transitions": sorted(p.name for p in self.legal_transitions()),
            "in_gameplay": self.is_in_gameplay(),
            "active": self.is_active(),
            "transition_count": self._transition_count,
            "rejected_count": self._rejected_count,
            "forced_count": self._forced_count,
            "pending": len(self._pending),
        }
