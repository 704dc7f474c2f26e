"""
Gameplay Analytics Models.

``GameState`` mirrors the subset of the game simulation the client reads;
``AnalyticsSnapshot`` is the per-tick projection pushed to the
``user_analytics`` table, and ``AnalyticsRow`` is what the table returns.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PlayerStats(BaseModel):
    """Combat stats of the player character."""

    hp: int
    max_hp: int
    atk: int
    def_: int = Field(alias="def")

    model_config = ConfigDict(populate_by_name=True)


class GameState(BaseModel):
    """Read-only view of the game state produced by the simulation."""

    coins: int = 0
    gems: int = 0
    zone: int = 1
    player_stats: PlayerStats


class AnalyticsSnapshot(BaseModel):
    """Point-in-time read of gameplay metrics for one user.

    Built fresh on every sync fire; never retained between ticks.
    """

    user_id: str
    coins: int
    gems: int
    health: int
    max_health: int
    zone: int
    attack: int
    defense: int

    model_config = {"frozen": True}

    @classmethod
    def from_game_state(cls, user_id: str, state: GameState) -> "AnalyticsSnapshot":
        stats = state.player_stats
        return cls(
            user_id=user_id,
            coins=state.coins,
            gems=state.gems,
            health=stats.hp,
            max_health=stats.max_hp,
            zone=state.zone,
            attack=stats.atk,
            defense=stats.def_,
        )

    def to_row(self) -> dict[str, object]:
        """Column mapping for the ``user_analytics`` table."""
        return self.model_dump()


def tracked_values(state: GameState) -> tuple[int, ...]:
    """Fields whose change restarts the debounce timer (not ``max_health``)."""
    stats = state.player_stats
    return (state.coins, state.gems, state.zone, stats.hp, stats.atk, stats.def_)


class AnalyticsRow(BaseModel):
    """A row of the ``user_analytics`` table."""

    id: Optional[Union[int, str]] = None
    user_id: str
    coins: int = 0
    gems: int = 0
    health: int = 0
    max_health: int = 0
    zone: int = 1
    attack: int = 0
    defense: int = 0

    model_config = {"from_attributes": True, "extra": "ignore"}
