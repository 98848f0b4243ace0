"""Transcript accumulation across streaming recognition batches.

Every batch from an engine instance re-reports all results recognized so far
by that instance. The accumulator remembers how far into the instance's
result list it has already settled text (`last_consumed_index`) and only
looks at entries from there on, so a settled result is never appended twice.

Results are settled strictly in index order. A final result reported behind
an entry that is still interim stays provisional until the gap closes; it is
shown with the interim text and settled when its instance ends.

Indices restart at 0 whenever a new engine instance starts. `begin_instance`
rewinds the index for the new instance but keeps the settled text; only
`reset` discards it.
"""

import logging
from dataclasses import replace
from typing import List, Sequence

from ..models.recognition import AccumulatorState, RecognitionResult

logger = logging.getLogger(__name__)


class TranscriptAccumulator:
    """Folds recognition batches into one growing transcript."""

    def __init__(self):
        self._state = AccumulatorState()
        # Final texts waiting behind an interim entry of the current instance
        self._held_finals: List[str] = []

    @property
    def state(self) -> AccumulatorState:
        """Copy of the current state."""
        return replace(self._state)

    @property
    def settled_text(self) -> str:
        return self._state.settled_text

    @property
    def current_interim_text(self) -> str:
        return self._state.current_interim_text

    @property
    def last_consumed_index(self) -> int:
        return self._state.last_consumed_index

    @property
    def raw_text(self) -> str:
        """Settled text followed by the current interim hypothesis."""
        return (self._state.settled_text + self._state.current_interim_text).strip()

    def fold(self, batch: Sequence[RecognitionResult]) -> None:
        """Fold one batch from the current engine instance into the state."""
        if not batch:
            return

        state = self._state
        pending: List[RecognitionResult] = [
            result for result in batch
            if result.sequence_index >= state.last_consumed_index
        ]

        # Settle the contiguous run of final results
        settled_count = 0
        for result in pending:
            if not result.is_final or result.sequence_index != state.last_consumed_index:
                break
            text = result.text.strip()
            if text:
                state.settled_text += text + " "
            state.last_consumed_index = result.sequence_index + 1
            settled_count += 1

        # Everything after the settled run is the current hypothesis, never appended
        unsettled = [result for result in pending[settled_count:] if result.text.strip()]
        self._held_finals = [result.text.strip() for result in unsettled if result.is_final]
        state.current_interim_text = " ".join(result.text.strip() for result in unsettled)

        logger.debug(f"Folded batch of {len(batch)}: settled {settled_count}, "
                     f"index={state.last_consumed_index}, interim='{state.current_interim_text[:40]}'")

    def begin_instance(self) -> None:
        """Prepare for a fresh engine instance whose indices start at 0."""
        if self._held_finals:
            # The old instance will never revise these
            self._state.settled_text += " ".join(self._held_finals) + " "
            logger.debug(f"Settled {len(self._held_finals)} held final results of the previous instance")
        self._held_finals = []
        self._state.last_consumed_index = 0
        self._state.current_interim_text = ""
        logger.debug("New recognition instance, index rewound; settled text kept")

    def reset(self) -> None:
        """Discard all transcript state."""
        self._state = AccumulatorState()
        self._held_finals = []
        logger.debug("Transcript reset")
