"""Row types returned by the database layer. Timestamps are Unix seconds."""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date


@dataclass
class User:
    discord_id: str
    username: str
    created_at: int | None = None
    updated_at: int | None = None

    @classmethod
    def from_row(cls, row) -> "User":
        return cls(str(row["discord_id"]), row["username"], row["created_at"], row["updated_at"])


@dataclass
class SmokingType:
    id: int
    type_name: str
    description: str | None = None
    created_at: int | None = None

    @property
    def label(self) -> str:
        return self.description or self.type_name

    @classmethod
    def from_row(cls, row) -> "SmokingType":
        return cls(int(row["id"]), row["type_name"], row["description"], row["created_at"])


@dataclass
class SmokingLog:
    id: int
    discord_id: str
    smoking_type_id: int
    quantity: int
    smoked_at: int
    created_at: int | None = None
    updated_at: int | None = None

    @classmethod
    def from_row(cls, row) -> "SmokingLog":
        return cls(
            int(row["id"]),
            str(row["discord_id"]),
            int(row["smoking_type_id"]),
            int(row["quantity"]),
            int(row["smoked_at"]),
            row["created_at"],
            row["updated_at"],
        )


@dataclass
class DailySmokingSummary:
    """Per-type total for one user on one calendar day. Never stored."""
    discord_id: str
    username: str
    smoke_date: date
    smoking_type_id: int
    type_name: str
    description: str
    total_quantity: int
