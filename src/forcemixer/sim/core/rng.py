from __future__ import annotations

import random
from typing import Iterable, Iterator, Protocol


class UniformSource(Protocol):
    def next_float(self) -> float:
        """Return the next uniform draw in [0, 1)."""
        ...


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()


class SequenceRng:
    """Replays a fixed list of draws, cycling when exhausted."""

    def __init__(self, values: Iterable[float]):
        self._values = [float(v) for v in values]
        if not self._values:
            raise ValueError("SequenceRng needs at least one value")
        self._iter: Iterator[float] = iter(self._values)

    def reset(self) -> None:
        self._iter = iter(self._values)

    def next_float(self) -> float:
        try:
            return next(self._iter)
        except StopIteration:
            self._iter = iter(self._values)
            return next(self._iter)
