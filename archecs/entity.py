"""Entity handles and the error raised when a handle refers to nothing."""

from __future__ import annotations

from dataclasses import dataclass

_U32_MAX = 0xFFFF_FFFF


class NoSuchEntity(LookupError):
    """Raised when no entity with a particular ID exists."""

    def __init__(self, message: str = "no such entity") -> None:
        super().__init__(message)

    def __str__(self) -> str:
        return "no such entity"


@dataclass(frozen=True, order=True)
class Entity:
    """Lightweight unique handle of an entity.

    Handles order first by generation, then by id. The ``id`` alone is
    transiently unique: no two live entities share one, but dead entities'
    ids may be reused.
    """

    generation: int
    id: int

    def __post_init__(self) -> None:
        if not 1 <= self.generation <= _U32_MAX:
            raise ValueError(f"generation must be in 1..={_U32_MAX}, got {self.generation}")
        if not 0 <= self.id <= _U32_MAX:
            raise ValueError(f"id must be in 0..={_U32_MAX}, got {self.id}")

    def to_bits(self) -> int:
        """Pack the handle into a nonzero 64-bit integer."""
        return (self.generation << 32) | self.id

    @classmethod
    def from_bits(cls, bits: int) -> Entity | None:
        """Rebuild a handle packed by :meth:`to_bits`, or ``None`` if the pattern is invalid."""
        bits &= 0xFFFF_FFFF_FFFF_FFFF
        generation = (bits >> 32) & _U32_MAX
        if generation == 0:
            return None
        return cls(generation=generation, id=bits & _U32_MAX)

    def __repr__(self) -> str:
        return f"{self.id}v{self.generation}"