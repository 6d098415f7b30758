"""
Data models for wallet outputs and index responses.

Chain primitives (OutPoint, SatPoint, UnspentOutput) are plain dataclasses;
index JSON payloads are validated with Pydantic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

# Half-open [start, end) interval of sat ordinals
SatRange = tuple[int, int]


@dataclass(frozen=True, order=True)
class OutPoint:
    txid: str
    vout: int

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"

    @classmethod
    def from_str(cls, value: str) -> OutPoint:
        txid, sep, vout = value.rpartition(":")
        if not sep or len(txid) != 64:
            raise ValueError(f"Invalid outpoint: {value!r}")
        return cls(txid=txid, vout=int(vout))


@dataclass(frozen=True, order=True)
class SatPoint:
    """Position of a sat within an output's value."""

    outpoint: OutPoint
    offset: int

    def __str__(self) -> str:
        return f"{self.outpoint}:{self.offset}"

    @classmethod
    def from_str(cls, value: str) -> SatPoint:
        outpoint, sep, offset = value.rpartition(":")
        if not sep:
            raise ValueError(f"Invalid satpoint: {value!r}")
        return cls(outpoint=OutPoint.from_str(outpoint), offset=int(offset))


@dataclass
class UnspentOutput:
    """A listunspent entry from the Bitcoin Core wallet."""

    outpoint: OutPoint
    value: int
    address: str = ""
    confirmations: int = 0


class Pile(BaseModel):
    amount: int
    divisibility: int = 0
    symbol: str | None = None


class RuneBalance(BaseModel):
    spaced_rune: str
    pile: Pile

    @property
    def rune(self) -> str:
        """Rune name with spacers removed."""
        return strip_spacers(self.spaced_rune)


class OutputInfo(BaseModel):
    """The index's view of an output (GET /output/{outpoint})."""

    indexed: bool = False
    sat_ranges: list[SatRange] | None = None
    inscriptions: list[str] = Field(default_factory=list)
    runes: list[RuneBalance] = Field(default_factory=list)

    @field_validator("inscriptions", mode="before")
    @classmethod
    def _none_inscriptions(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("runes", mode="before")
    @classmethod
    def _normalize_runes(cls, v: Any) -> Any:
        # ord serializes (SpacedRune, Pile) pairs as two-element arrays
        if v is None:
            return []
        if isinstance(v, dict):
            return [{"spaced_rune": name, "pile": pile} for name, pile in v.items()]
        return [
            {"spaced_rune": item[0], "pile": item[1]} if isinstance(item, list | tuple) else item
            for item in v
        ]


class InscriptionInfo(BaseModel):
    """GET /inscription/{id}"""

    id: str = Field(validation_alias=AliasChoices("id", "inscription_id"))
    satpoint: SatPoint

    @field_validator("satpoint", mode="before")
    @classmethod
    def _parse_satpoint(cls, v: Any) -> Any:
        if isinstance(v, str):
            return SatPoint.from_str(v)
        return v


class RuneInfo(BaseModel):
    """GET /rune/{spaced_rune}"""

    id: str
    entry: dict[str, Any] = Field(default_factory=dict)
    parent: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return f"{v['block']}:{v['tx']}"
        return v


class ServerStatus(BaseModel):
    """GET /status"""

    rune_index: bool = False
    sat_index: bool = False


def strip_spacers(spaced_rune: str) -> str:
    return spaced_rune.replace("•", "").replace(".", "")
