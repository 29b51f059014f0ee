from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class SessionCount:
    minimum: int
    maximum: int

    def __post_init__(self) -> None:
        if self.minimum < 0:
            raise ValueError("session count can't be negative")
        if self.maximum < self.minimum:
            raise ValueError(
                f"invalid session range {self.minimum}-{self.maximum}: max is below min"
            )

    @classmethod
    def parse(cls, text: str) -> SessionCount:
        """Parse ``N`` or ``MIN-MAX``."""
        low, sep, high = text.strip().partition("-")
        try:
            minimum = int(low)
            maximum = int(high) if sep else minimum
        except ValueError as exc:
            raise ValueError(f"invalid session count: {text!r}") from exc
        return cls(minimum, maximum)

    @property
    def fixed(self) -> bool:
        return self.minimum == self.maximum

    def pick(self, rng: random.Random) -> int:
        if self.fixed:
            return self.minimum
        return rng.randint(self.minimum, self.maximum)

    def __str__(self) -> str:
        if self.fixed:
            return str(self.minimum)
        return f"{self.minimum}-{self.maximum}"
