from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True, slots=True)
class SimulationState:
    allele_frequency: float
    generation: int
    history: Tuple[float, ...]
    running: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allele_frequency": self.allele_frequency,
            "generation": self.generation,
            "history": list(self.history),
            "running": self.running,
        }


@dataclass(frozen=True, slots=True)
class ColorEncoding:
    red: int
    green: int
    blue: int
    alpha: float

    def css(self) -> str:
        return f"rgba({self.red}, {self.green}, {self.blue}, {self.alpha:g})"
