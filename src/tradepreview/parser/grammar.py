"""Token patterns and vocabulary of the trade command grammar.

    <action> <symbol> <size>[<unit>] [x<lev>] [sl<pct>%] [tp<pct>%]
             [trail<pct>%] [reduce] [market | limit <price>]

Every token of a command must be claimed by exactly one rule below; the
parser reports anything left over instead of dropping it.
"""

import re
from decimal import Decimal, InvalidOperation

ACTIONS = {"buy", "sell"}

QUOTE_UNITS = {"u", "usdt", "usd", "busd", "usdc"}
PERCENT_UNIT = "%"

REDUCE_WORDS = {"reduce", "reduce_only", "reduceonly", "red"}
MARKET_WORDS = {"market", "mkt"}
LIMIT_WORDS = {"limit", "lmt"}
LEVERAGE_WORDS = {"leverage", "lev"}
NON_FINITE_WORDS = {"inf", "+inf", "-inf", "infinity", "-infinity", "nan", "-nan"}

# Keyword followed by its value in a separate token: "sl 1%", "stop loss 1%".
STOP_LOSS_WORDS = {"sl", "stoploss"}
TAKE_PROFIT_WORDS = {"tp", "takeprofit"}
TRAILING_WORDS = {"trail", "trailing"}
TWO_WORD_MODIFIERS = {("stop", "loss"): "sl", ("take", "profit"): "tp"}

_NUMBER = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)"

NUMBER_RE = re.compile(rf"^{_NUMBER}$")
PERCENT_VALUE_RE = re.compile(rf"^=?(?P<value>{_NUMBER})%?$")
SIZE_RE = re.compile(rf"^(?P<value>{_NUMBER})(?P<unit>u|usdt|usd|busd|usdc|%)?$")
LEVERAGE_RE = re.compile(rf"^(?:x(?P<prefix>{_NUMBER})|(?P<suffix>{_NUMBER})x)$")
STOP_LOSS_RE = re.compile(rf"^(?:sl|stoploss)=?(?P<value>{_NUMBER})%?$")
TAKE_PROFIT_RE = re.compile(rf"^(?:tp|takeprofit)=?(?P<value>{_NUMBER})%?$")
TRAILING_RE = re.compile(rf"^trail(?:ing)?=?(?P<value>{_NUMBER})%?$")
AT_PRICE_RE = re.compile(rf"^@(?P<value>{_NUMBER})$")
SYMBOL_RE = re.compile(r"^[A-Z0-9]+$")

MIN_BASE_LENGTH = 2
MAX_BASE_LENGTH = 10

# Largest magnitude accepted for any typed number.
MAX_NUMBER = Decimal("1e15")

USAGE = "Try: /buy BTCUSDT 100u x5 sl1% tp3%"

EXAMPLES = (
    "/buy BTCUSDT 100u x5 sl1% tp3%",
    "/sell ETHUSDT 0.25 x3 reduce",
    "/buy SOLUSDT mkt 250u tp2%",
    "/sell ADAUSDT 1000u x2 sl2% tp5% limit 0.65",
    "/buy LINKUSDT 50u x10 trail1%",
    "buy 0.1 ETH 10x sl1% tp3%",
    "/buy BTC 25%",
)


def to_decimal(text: str) -> Decimal | None:
    """Parse a grammar number; None when the text is not a finite decimal."""
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def strip_action(token: str) -> str:
    """Normalize "/Buy@SomeBot" or "BUY" to "buy"."""
    word = token.lower()
    if word.startswith("/"):
        word = word[1:]
    return word.split("@", 1)[0]
