"""Structured button selections.

The chat layer assembles orders from button presses (side, symbol, a size
preset, leverage, TP/SL presets). The payload is validated for shape with
pydantic, rendered to canonical command text and run through the same
grammar as typed commands, so both inputs obey one set of rules.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from tradepreview.config import ParserSettings
from tradepreview.models import OrderType, SizeKind, SizeSpec, format_plain
from tradepreview.parser import grammar
from tradepreview.parser.command import CommandParser, ParseResult


class ButtonSelection(BaseModel):
    """Order fields chosen through inline buttons."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: Literal["buy", "sell"]
    symbol: str
    size: Decimal
    size_unit: SizeKind = SizeKind.QUOTE  # size presets are quote amounts
    leverage: int | None = None
    order_type: OrderType = OrderType.MARKET
    limit_price: Decimal | None = None
    stop_loss_pct: Decimal | None = None
    take_profit_pct: Decimal | None = None
    trailing_pct: Decimal | None = None
    reduce_only: bool = False

    @field_validator("action", mode="before")
    @classmethod
    def _lower_action(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("symbol")
    @classmethod
    def _single_token_symbol(cls, value: str) -> str:
        value = value.strip()
        if not value or any(ch.isspace() for ch in value):
            raise ValueError("symbol must be a single word")
        return value

    def to_command(self) -> str:
        """Render the selection as command text."""
        parts = [f"/{self.action}", self.symbol, SizeSpec(self.size_unit, self.size).render()]
        if self.leverage is not None:
            parts.append(f"x{self.leverage}")
        if self.stop_loss_pct is not None:
            parts.append(f"sl{format_plain(self.stop_loss_pct)}%")
        if self.take_profit_pct is not None:
            parts.append(f"tp{format_plain(self.take_profit_pct)}%")
        if self.trailing_pct is not None:
            parts.append(f"trail{format_plain(self.trailing_pct)}%")
        if self.reduce_only:
            parts.append("reduce")
        if self.order_type is OrderType.LIMIT:
            parts.append("limit")
            if self.limit_price is not None:
                parts.append(format_plain(self.limit_price))
        return " ".join(parts)


def parse_selection(
    payload: ButtonSelection | Mapping[str, Any],
    settings: ParserSettings | None = None,
) -> ParseResult:
    """Turn a button payload into the same ParseResult a typed command gives."""
    if isinstance(payload, ButtonSelection):
        selection = payload
    else:
        try:
            selection = ButtonSelection.model_validate(dict(payload))
        except ValidationError as exc:
            errors = tuple(
                f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}"
                for err in exc.errors()
            )
            return ParseResult(errors=errors, suggestions=(grammar.USAGE,))

    return CommandParser(settings).parse(selection.to_command())
