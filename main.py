"""Main entry point for the Fib Alerts Dashboard."""
import argparse
import asyncio
import logging
import uvicorn
from dotenv import load_dotenv
from config import AppConfig, MarketDataProvider
from dashboard.settings import SettingsStore
from engine import DashboardEngine

# Load environment variables from .env file
load_dotenv()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def run_relay(config: AppConfig):
    """Run the Telegram alert relay."""
    if not config.relay.configured:
        logger.warning("TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID not set; /alert will report the missing credentials")
    logger.info("Relay listening on http://localhost:%d", config.relay.port)
    uvicorn.run(
        "api.relay:app",
        host="0.0.0.0",
        port=config.relay.port,
        log_level=config.log_level.lower()
    )


def run_dashboard(config: AppConfig, symbols=None):
    """Run the headless dashboard engine until interrupted."""
    settings = SettingsStore(config.settings_file)
    engine = DashboardEngine(config, settings=settings, default_symbols=symbols)
    if symbols:
        for symbol in symbols:
            engine.store.add_symbol(symbol)
    try:
        asyncio.run(engine.run())
    except KeyboardInterrupt:
        logger.info("Shutting down")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fibonacci level alerts dashboard")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("relay", help="run the Telegram alert relay")

    dashboard = commands.add_parser("dashboard", help="run the live dashboard engine")
    dashboard.add_argument("--mock", action="store_true", help="use simulated market data")
    dashboard.add_argument("--symbols", nargs="+", metavar="SYMBOL", help="symbols to chart (XRPUSD is always included)")
    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    config = AppConfig.from_env()
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    if args.command == "relay":
        run_relay(config)
        return

    if args.mock:
        config.provider = MarketDataProvider.MOCK
    run_dashboard(config, args.symbols)


if __name__ == "__main__":
    main()
