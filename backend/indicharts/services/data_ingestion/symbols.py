"""
Symbol Catalogue

Built-in symbols for the market-list tabs and the popular listing.
Each group is kept in market-rank order, which is the "natural" sort order.
"""

from typing import Optional

from indicharts.schemas.market import MarketGroup, SymbolInfo


CRYPTO = [
    {"symbol": "BTC-USD", "name": "Bitcoin"},
    {"symbol": "ETH-USD", "name": "Ethereum"},
    {"symbol": "BNB-USD", "name": "BNB"},
    {"symbol": "SOL-USD", "name": "Solana"},
    {"symbol": "XRP-USD", "name": "XRP"},
    {"symbol": "ADA-USD", "name": "Cardano"},
    {"symbol": "DOGE-USD", "name": "Dogecoin"},
    {"symbol": "AVAX-USD", "name": "Avalanche"},
    {"symbol": "DOT-USD", "name": "Polkadot"},
    {"symbol": "LINK-USD", "name": "Chainlink"},
    {"symbol": "MATIC-USD", "name": "Polygon"},
    {"symbol": "UNI-USD", "name": "Uniswap"},
    {"symbol": "ATOM-USD", "name": "Cosmos"},
    {"symbol": "ALGO-USD", "name": "Algorand"},
    {"symbol": "VET-USD", "name": "VeChain"},
]

INDEXES = [
    {"symbol": "^GSPC", "name": "S&P 500", "exchange": "SNP"},
    {"symbol": "^DJI", "name": "Dow Jones Industrial Average", "exchange": "DJI"},
    {"symbol": "^IXIC", "name": "NASDAQ Composite", "exchange": "NASDAQ"},
    {"symbol": "^RUT", "name": "Russell 2000", "exchange": "Russell"},
    {"symbol": "^FTSE", "name": "FTSE 100", "exchange": "FTSE", "currency": "GBP"},
    {"symbol": "^GDAXI", "name": "DAX", "exchange": "XETRA", "currency": "EUR"},
    {"symbol": "^N225", "name": "Nikkei 225", "exchange": "Osaka", "currency": "JPY"},
    {"symbol": "^HSI", "name": "Hang Seng", "exchange": "HKSE", "currency": "HKD"},
    {"symbol": "^STOXX50E", "name": "Euro Stoxx 50", "exchange": "STOXX", "currency": "EUR"},
    {"symbol": "^VIX", "name": "CBOE Volatility Index", "exchange": "CBOE"},
]

FOREX = [
    {"symbol": "EURUSD=X", "name": "EUR/USD"},
    {"symbol": "GBPUSD=X", "name": "GBP/USD"},
    {"symbol": "USDJPY=X", "name": "USD/JPY", "currency": "JPY"},
    {"symbol": "AUDUSD=X", "name": "AUD/USD"},
    {"symbol": "USDCAD=X", "name": "USD/CAD", "currency": "CAD"},
    {"symbol": "USDCHF=X", "name": "USD/CHF", "currency": "CHF"},
    {"symbol": "NZDUSD=X", "name": "NZD/USD"},
    {"symbol": "EURGBP=X", "name": "EUR/GBP", "currency": "GBP"},
    {"symbol": "EURJPY=X", "name": "EUR/JPY", "currency": "JPY"},
    {"symbol": "GBPJPY=X", "name": "GBP/JPY", "currency": "JPY"},
    {"symbol": "EURCHF=X", "name": "EUR/CHF", "currency": "CHF"},
    {"symbol": "AUDJPY=X", "name": "AUD/JPY", "currency": "JPY"},
    {"symbol": "NZDJPY=X", "name": "NZD/JPY", "currency": "JPY"},
    {"symbol": "CADJPY=X", "name": "CAD/JPY", "currency": "JPY"},
    {"symbol": "CHFJPY=X", "name": "CHF/JPY", "currency": "JPY"},
    {"symbol": "EURCAD=X", "name": "EUR/CAD", "currency": "CAD"},
    {"symbol": "EURAUD=X", "name": "EUR/AUD", "currency": "AUD"},
    {"symbol": "GBPCAD=X", "name": "GBP/CAD", "currency": "CAD"},
    {"symbol": "GBPAUD=X", "name": "GBP/AUD", "currency": "AUD"},
    {"symbol": "AUDCAD=X", "name": "AUD/CAD", "currency": "CAD"},
]

COMMODITIES = [
    {"symbol": "GC=F", "name": "Gold Futures", "exchange": "COMEX"},
    {"symbol": "SI=F", "name": "Silver Futures", "exchange": "COMEX"},
    {"symbol": "CL=F", "name": "Crude Oil Futures", "exchange": "NYMEX"},
    {"symbol": "NG=F", "name": "Natural Gas Futures", "exchange": "NYMEX"},
    {"symbol": "HG=F", "name": "Copper Futures", "exchange": "COMEX"},
    {"symbol": "ZC=F", "name": "Corn Futures", "exchange": "CBOT"},
    {"symbol": "ZS=F", "name": "Soybean Futures", "exchange": "CBOT"},
    {"symbol": "ZW=F", "name": "Wheat Futures", "exchange": "CBOT"},
    {"symbol": "KC=F", "name": "Coffee Futures", "exchange": "ICE"},
    {"symbol": "SB=F", "name": "Sugar Futures", "exchange": "ICE"},
    {"symbol": "CT=F", "name": "Cotton Futures", "exchange": "ICE"},
    {"symbol": "CC=F", "name": "Cocoa Futures", "exchange": "ICE"},
    {"symbol": "PL=F", "name": "Platinum Futures", "exchange": "NYMEX"},
    {"symbol": "PA=F", "name": "Palladium Futures", "exchange": "NYMEX"},
]

_GROUP_TYPES = {
    MarketGroup.CRYPTO: ("crypto", CRYPTO),
    MarketGroup.INDEX: ("index", INDEXES),
    MarketGroup.FOREX: ("currency", FOREX),
    MarketGroup.COMMODITY: ("commodity", COMMODITIES),
}

# US equities and ETFs offered in the popular listing only
POPULAR_EQUITIES = [
    "AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META", "NVDA", "NFLX",
    "AMD", "INTC", "CRM", "ADBE", "PYPL", "UBER", "PLTR", "COIN",
    "JPM", "BAC", "WFC", "GS", "MS", "BLK",
    "WMT", "HD", "NKE", "SBUX", "MCD", "DIS",
    "XOM", "CVX", "JNJ", "PFE", "UNH", "ABBV", "MRK",
    "SPY", "QQQ", "DIA", "IWM", "GLD", "SLV",
]


def get_group_symbols(group: MarketGroup) -> list[SymbolInfo]:
    """Symbols of a market group in market-rank order."""
    symbol_type, entries = _GROUP_TYPES[MarketGroup(group)]
    return [
        SymbolInfo(
            symbol=e["symbol"],
            name=e["name"],
            type=symbol_type,
            currency=e.get("currency", "USD"),
            exchange=e.get("exchange", "CCC" if symbol_type == "crypto" else "CCY"),
        )
        for e in entries
    ]


def get_all_groups() -> dict[str, list[str]]:
    """Symbol lists for every market group, keyed by group name."""
    return {
        group.value: [s.symbol for s in get_group_symbols(group)]
        for group in MarketGroup
    }


def get_natural_ranking(group: MarketGroup) -> dict[str, int]:
    """Market-rank position per symbol, used by the natural sort mode."""
    return {s.symbol: rank for rank, s in enumerate(get_group_symbols(group))}


def get_popular_symbols(group: Optional[MarketGroup] = None) -> list[str]:
    """Popular symbols, optionally restricted to one market group."""
    if group is not None:
        return [s.symbol for s in get_group_symbols(group)]

    symbols = list(POPULAR_EQUITIES)
    for group_symbols in get_all_groups().values():
        symbols.extend(s for s in group_symbols if s not in symbols)
    return symbols


def search_catalogue(query: str, limit: int = 10) -> list[SymbolInfo]:
    """
    Search the built-in catalogue by symbol or name.

    Used as the offline fallback when the quote service search fails.
    """
    query = query.upper().strip()
    if not query:
        return []

    everything = [s for group in MarketGroup for s in get_group_symbols(group)]
    results = []

    # Exact symbol match first
    for info in everything:
        if info.symbol == query:
            results.append(info)
            break

    # Partial symbol match
    for info in everything:
        if info.symbol.startswith(query) and info not in results:
            results.append(info)

    # Name contains query
    for info in everything:
        if query.lower() in info.name.lower() and info not in results:
            results.append(info)

    return results[:limit]
