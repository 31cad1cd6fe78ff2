"""Coinboard entrypoint -- wires all components together and starts the server.

Usage:
    python main.py
    python main.py --config /path/to/config.yaml
    python main.py --once          # one refresh, log the holdings, exit
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from aiohttp import web

from core.bus import AsyncIOBus
from core.config import AppConfig, load_config
from core.duration import parse_duration
from engine.dashboard import Dashboard
from market.client import MarketDataClient
from plugins.market_data.coingecko import CoinGeckoProvider
from portfolio.ledger import PortfolioLedger
from portfolio.valuation import ValuationEngine
from scheduler.runner import RefreshScheduler
from server import create_app
from sync.coordinator import SyncCoordinator


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # basicConfig is a no-op once configured; the level still applies
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))
    # Quiet down noisy libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Coinboard crypto portfolio dashboard")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.coinboard/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.coinboard/.env)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Refresh market data once, log the holdings table, and exit",
    )
    return parser.parse_args()


def build_provider(config: AppConfig) -> CoinGeckoProvider:
    market = config.market_data
    if market.provider != "coingecko":
        raise ValueError(f"Unsupported market data provider: {market.provider!r}")
    return CoinGeckoProvider(
        base_url=market.base_url,
        api_key=market.api_key,
        timeout=market.timeout_seconds,
    )


def build_dashboard(
    config: AppConfig,
    client: MarketDataClient,
    bus: AsyncIOBus,
) -> Dashboard:
    """Assemble ledger, coordinator, and valuation from config."""
    coordinator = SyncCoordinator(
        client=client,
        assets=config.assets,
        bus=bus,
        points_per_label=config.chart.points_per_label,
        time_unit=parse_duration(config.chart.time_unit),
        strict_alignment=config.chart.strict_alignment,
    )
    ledger = PortfolioLedger.from_quantities(config.portfolio.initial_balances)
    return Dashboard(
        ledger=ledger,
        coordinator=coordinator,
        valuation=ValuationEngine(config.assets),
        bus=bus,
    )


def log_holdings(dashboard: Dashboard) -> None:
    logger = logging.getLogger("coinboard")
    state = dashboard.get_sync_state()
    if state.last_error:
        logger.warning("Last refresh failed: %s", state.last_error)

    for h in dashboard.get_holdings():
        logger.info(
            "%-8s %s  price=%s  24h=%s%%  qty=%s  value=%s",
            h.asset.value, h.name, h.price, h.change_percent_24h, h.quantity, h.total_value,
        )
    logger.info("Total portfolio value: %s", dashboard.get_total_value())


async def run(
    config_path: str | None = None,
    env_path: str | None = None,
    once: bool = False,
) -> None:
    """Initialize all components and start the server."""
    config = load_config(config_path=config_path, env_path=env_path)
    setup_logging(config.logging.level)
    logger = logging.getLogger("coinboard")
    logger.info("Tracking assets: %s", ", ".join(a.value for a in config.assets))

    bus = AsyncIOBus()
    provider = build_provider(config)
    client = MarketDataClient(provider.fetch_raw, vs_currency=config.market_data.vs_currency)
    dashboard = build_dashboard(config, client, bus)

    if once:
        try:
            await dashboard.refresh()
            log_holdings(dashboard)
        finally:
            await provider.close()
        return

    scheduler: RefreshScheduler | None = None
    if config.market_data.auto_refresh:
        scheduler = RefreshScheduler(
            dashboard.coordinator,
            interval=config.market_data.refresh_seconds,
        )

    app = create_app(config=config, bus=bus, dashboard=dashboard)

    if scheduler is not None:
        await scheduler.start()
    else:
        await dashboard.refresh()

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.server.host, config.server.port)
    await site.start()

    logger.info(
        "Coinboard running at http://%s:%d",
        config.server.host,
        config.server.port,
    )

    # Run until interrupted
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        logger.info("Shutting down...")
        if scheduler is not None:
            await scheduler.stop()
        await runner.cleanup()
        await provider.close()
        logger.info("Shutdown complete")


def main() -> None:
    args = parse_args()
    setup_logging("INFO")
    try:
        asyncio.run(run(config_path=args.config, env_path=args.env, once=args.once))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
