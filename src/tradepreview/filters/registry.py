"""Symbol -> FilterSet lookup, replaced wholesale on every reload.

The registry holds one reference to a read-only mapping. A reload builds a
complete new mapping and rebinds that reference in a single assignment, so
readers never need a lock and always see either the old table or the new
one, never a partially populated table. Only one task should call reload().
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from tradepreview.exceptions import UnknownSymbolError
from tradepreview.filters.types import FilterSet
from tradepreview.logging import get_logger

logger = get_logger(__name__)


class FilterRegistry:
    """Read-mostly table of per-symbol trading rules.

    Args:
        quote_asset: Quote asset appended to bare base symbols by the parser;
            kept here so collaborators can ask the registry which quote it serves.
    """

    def __init__(self, quote_asset: str = "USDT") -> None:
        self._quote_asset = quote_asset
        self._table: Mapping[str, FilterSet] = MappingProxyType({})
        self._version = 0

    @property
    def quote_asset(self) -> str:
        return self._quote_asset

    @property
    def version(self) -> int:
        """Number of completed reloads; 0 means never loaded."""
        return self._version

    def reload(self, filter_sets: Iterable[FilterSet]) -> int:
        """Replace the whole table with the given filter sets.

        Args:
            filter_sets: Complete set of symbols to serve after the reload.

        Returns:
            The new registry version.

        Raises:
            ValueError: If a symbol appears twice. The current table is kept.
        """
        table: dict[str, FilterSet] = {}
        for filter_set in filter_sets:
            if filter_set.symbol in table:
                raise ValueError(f"Duplicate filter set for symbol {filter_set.symbol}")
            table[filter_set.symbol] = filter_set

        previous = len(self._table)
        self._table = MappingProxyType(table)
        self._version += 1

        logger.info(
            "filter_registry_reloaded",
            version=self._version,
            symbol_count=len(table),
            previous_count=previous,
        )
        return self._version

    def get(self, symbol: str) -> FilterSet:
        """Return the filter set for a symbol.

        Raises:
            UnknownSymbolError: If the symbol is not in the current table.
        """
        filter_set = self._table.get(symbol.upper())
        if filter_set is None:
            raise UnknownSymbolError(symbol)
        return filter_set

    def find(self, symbol: str) -> FilterSet | None:
        """Return the filter set for a symbol, or None if unknown."""
        return self._table.get(symbol.upper())

    def snapshot(self) -> Mapping[str, FilterSet]:
        """Return the current table; it stays valid after later reloads."""
        return self._table

    def symbols(self) -> list[str]:
        return sorted(self._table)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self._table

    def __len__(self) -> int:
        return len(self._table)
