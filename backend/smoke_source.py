"""
Live check of the configured candle source and the indicator engine.
Run with: python smoke_source.py [SYMBOL ...]
"""

import asyncio
import os
import sys

# Set working directory
backend_dir = os.path.dirname(os.path.abspath(__file__))
os.chdir(backend_dir)
sys.path.insert(0, backend_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(backend_dir, ".env"))


async def smoke(symbols: list[str]):
    print("\n" + "=" * 60)
    print("INDICHARTS - CANDLE SOURCE CHECK")
    print("=" * 60)

    from indicharts.schemas.indicators import IndicatorParams, IndicatorType
    from indicharts.schemas.market import Timeframe
    from indicharts.services.data_ingestion import get_candle_source, close_candle_source
    from indicharts.services.indicators.service import compute_for_params, fetch_limit, get_zone

    source = get_candle_source()

    # Test 1: Health check
    print(f"\n[1] Health check ({source.name})...")
    print("-" * 40)
    print(f"Source healthy: {await source.health_check()}")

    # Test 2: Indicators per symbol
    print("\n[2] Latest indicator values (15m)...")
    print("-" * 40)
    try:
        for symbol in symbols:
            print(f"\n{symbol}:")
            for indicator_type in IndicatorType:
                params = IndicatorParams.defaults_for(indicator_type)
                limit = fetch_limit(Timeframe.M15, params.period)
                try:
                    candles = await source.fetch_candles(symbol, Timeframe.M15, limit)
                except Exception as e:
                    print(f"  {indicator_type.value:9s} FAILED: {e}")
                    continue
                series = compute_for_params(candles, params)
                if not series:
                    print(f"  {indicator_type.value:9s} no data ({len(candles)} candles)")
                    continue
                value = series[-1].value
                zone = get_zone(value, params.lower_level, params.upper_level)
                print(f"  {indicator_type.value:9s} {value:8.2f}  {zone.value:7s}  close={candles[-1].close:.4f}")
    finally:
        await close_candle_source()

    print("\n" + "=" * 60)
    print("CHECK COMPLETE")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    asyncio.run(smoke(sys.argv[1:] or ["BTC-USD", "^GSPC", "EURUSD=X"]))
