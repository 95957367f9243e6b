"""
Deal board store: deals, clients and the per-stage ordering index.

Invariant: every loaded deal id appears in exactly one stage sequence, exactly
once, and that stage matches the deal's own stage field.

Mutations are copy-on-write. Each one builds a new BoardState and leaves the
previous snapshot untouched, so listeners can compare old and new safely and
a no-op keeps the very same snapshot object.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Union

from .events import ObservableState
from .remote import DEALS_COLLECTION, RemoteSyncClient, WriteDispatcher
from .schema import Client, Deal, DealStage

logger = logging.getLogger(__name__)

StageLike = Union[DealStage, str]


class MoveRejected(Exception):
    """Raised when a board mutation's preconditions do not hold."""
    pass


def coerce_stage(stage: StageLike) -> DealStage:
    """Accept a DealStage or its string value; unknown values raise ValueError."""
    if isinstance(stage, DealStage):
        return stage
    return DealStage(stage)


def empty_order() -> Dict[DealStage, List[str]]:
    return {stage: [] for stage in DealStage}


@dataclass
class BoardState:
    """One immutable-by-convention snapshot of the board."""
    deals: List[Deal] = field(default_factory=list)
    clients: List[Client] = field(default_factory=list)
    deal_order: Dict[DealStage, List[str]] = field(default_factory=empty_order)

    def deal(self, deal_id: str) -> Optional[Deal]:
        for deal in self.deals:
            if deal.id == deal_id:
                return deal
        return None

    def client(self, client_id: str) -> Optional[Client]:
        for client in self.clients:
            if client.id == client_id:
                return client
        return None

    def stage_of(self, deal_id: str) -> Optional[DealStage]:
        """Stage whose sequence holds deal_id, or None."""
        for stage, ids in self.deal_order.items():
            if deal_id in ids:
                return stage
        return None

    def deals_in(self, stage: StageLike) -> List[Deal]:
        """Deals of a stage in board order."""
        by_id = {deal.id: deal for deal in self.deals}
        return [by_id[i] for i in self.deal_order[coerce_stage(stage)] if i in by_id]


def build_state(deals: Iterable[Deal], clients: Iterable[Client]) -> BoardState:
    """Index deals by stage, keeping load order within each stage."""
    deals = list(deals)
    order = empty_order()
    seen = set()
    for deal in deals:
        if deal.id in seen:
            raise ValueError(f"Duplicate deal id: {deal.id}")
        seen.add(deal.id)
        order[deal.stage].append(deal.id)
    return BoardState(deals=deals, clients=list(clients), deal_order=order)


class DealBoardStore(ObservableState):
    """
    Authoritative in-memory deal board.

    Pass a remote client to have stage transitions written back best-effort;
    ordering within a column is local only.
    """

    def __init__(
        self,
        deals: Iterable[Deal] = (),
        clients: Iterable[Client] = (),
        remote: Optional[RemoteSyncClient] = None,
        dispatcher: Optional[WriteDispatcher] = None,
    ):
        super().__init__(build_state(deals, clients))
        self.remote = remote
        self._owns_dispatcher = dispatcher is None and remote is not None
        self._writes = dispatcher or (WriteDispatcher("nexus-deal-writes") if remote is not None else None)

    @property
    def state(self) -> BoardState:
        return self._state

    def load(self, deals: Iterable[Deal], clients: Iterable[Client]) -> None:
        """Replace all records and rebuild the ordering index."""
        self._set(build_state(deals, clients))

    def move_deal(self, deal_id: str, from_stage: StageLike, to_stage: StageLike, new_index: int) -> None:
        """
        Move a deal to another stage at new_index (clamped to [0, len]).

        Same-stage moves are rejected; use reorder_deal() for those.
        """
        from_stage = coerce_stage(from_stage)
        to_stage = coerce_stage(to_stage)
        state = self._state

        if from_stage == to_stage:
            raise MoveRejected(f"{deal_id} is already in {from_stage.value}; use reorder_deal")
        if deal_id not in state.deal_order[from_stage]:
            raise MoveRejected(f"{deal_id} is not in {from_stage.value}")

        source = [i for i in state.deal_order[from_stage] if i != deal_id]
        target = list(state.deal_order[to_stage])
        index = max(0, min(new_index, len(target)))
        target.insert(index, deal_id)

        order = dict(state.deal_order)
        order[from_stage] = source
        order[to_stage] = target
        deals = [replace(d, stage=to_stage) if d.id == deal_id else d for d in state.deals]

        self._set(replace(state, deals=deals, deal_order=order))
        logger.debug(f"Moved {deal_id}: {from_stage.value} -> {to_stage.value} @ {index}")
        self._push_stage(deal_id, to_stage)

    def reorder_deal(self, stage: StageLike, old_index: int, new_index: int) -> None:
        """Move the deal at old_index to new_index (clamped) within one stage."""
        stage = coerce_stage(stage)
        state = self._state
        column = state.deal_order[stage]

        if not 0 <= old_index < len(column):
            raise MoveRejected(f"Index {old_index} out of range for {stage.value} ({len(column)} deals)")
        if old_index == new_index:
            return

        column = list(column)
        deal_id = column.pop(old_index)
        column.insert(max(0, min(new_index, len(column))), deal_id)

        order = dict(state.deal_order)
        order[stage] = column
        self._set(replace(state, deal_order=order))

    def _push_stage(self, deal_id: str, stage: DealStage) -> None:
        if self.remote is None or self._writes is None or not self.remote.is_configured:
            return
        self._writes.submit(self.remote.update_field, DEALS_COLLECTION, deal_id, {"stage": stage.value})

    def dispose(self) -> None:
        super().dispose()
        if self._owns_dispatcher and self._writes is not None:
            self._writes.close()
