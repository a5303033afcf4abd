"""
Index layout of the flat NLP decision and constraint vectors.

Decision vector (length 6N + 2(N-1)):
    [X(N) | Y(N) | Psi(N) | V(N) | CTE(N) | Epsi(N) | Delta(N-1) | A(N-1)]

Constraint vector (length 6N), same per-kind ordering as the state blocks.
"""

from __future__ import annotations

from dataclasses import dataclass

STATE_KINDS = ("x", "y", "psi", "v", "cte", "epsi")
CONTROL_KINDS = ("delta", "a")


@dataclass(frozen=True)
class DecisionLayout:
    N: int

    def __post_init__(self):
        if self.N < 3:
            raise ValueError(f"Horizon N must be at least 3, got {self.N}")

    # -------------------------------------------------------------------------
    # Block offsets
    # -------------------------------------------------------------------------

    @property
    def idx_x(self) -> int:
        return 0

    @property
    def idx_y(self) -> int:
        return self.N

    @property
    def idx_psi(self) -> int:
        return 2 * self.N

    @property
    def idx_v(self) -> int:
        return 3 * self.N

    @property
    def idx_cte(self) -> int:
        return 4 * self.N

    @property
    def idx_epsi(self) -> int:
        return 5 * self.N

    @property
    def idx_delta(self) -> int:
        return 6 * self.N

    @property
    def idx_a(self) -> int:
        return 7 * self.N - 1

    @property
    def n_vars(self) -> int:
        return 6 * self.N + 2 * (self.N - 1)

    @property
    def n_constraints(self) -> int:
        return 6 * self.N

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def offset(self, kind: str) -> int:
        """Start of the block holding variable ``kind`` (e.g. "psi", "delta")."""
        if kind in STATE_KINDS:
            return STATE_KINDS.index(kind) * self.N
        if kind == "delta":
            return self.idx_delta
        if kind == "a":
            return self.idx_a
        raise KeyError(f"Unknown variable kind: {kind}")

    def block_length(self, kind: str) -> int:
        return self.N - 1 if kind in CONTROL_KINDS else self.N

    def index(self, kind: str, t: int) -> int:
        """Flat index of variable ``kind`` at timestep ``t``."""
        if not 0 <= t < self.block_length(kind):
            raise IndexError(f"Timestep {t} out of range for '{kind}' (N={self.N})")
        return self.offset(kind) + t

    def block(self, kind: str) -> slice:
        start = self.offset(kind)
        return slice(start, start + self.block_length(kind))

    @property
    def state_slice(self) -> slice:
        return slice(0, self.idx_delta)

    @property
    def initial_state_indices(self) -> tuple:
        """Decision (and constraint) slots holding the pinned initial state."""
        return tuple(self.offset(kind) for kind in STATE_KINDS)

    @staticmethod
    def actuation_step(t: int) -> int:
        """
        Control pair applied on the transition from step t-1 to step t.

        Actuation takes effect one period late (100 ms actuator latency at
        dt = 0.1 s), so step t reads control t-2. The first transition has no
        earlier control to read and uses control 0.
        """
        if t < 1:
            raise ValueError(f"Transitions start at t=1, got t={t}")
        return 0 if t == 1 else t - 2
