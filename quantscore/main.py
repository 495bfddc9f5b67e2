"""
QuantScore Entry Point.

Runs the configured studies over the configured symbol list for one
analysis date and stores the results.
"""
import asyncio
import signal
import sys
from datetime import date
from typing import List, Optional

from quantscore.batch import BatchReport, BatchRunner
from quantscore.config import Config
from quantscore.database import InMemoryResultStore, PostgresResultStore, ResultStore
from quantscore.explain import ChatCompletionExplainer, Explainer, TemplateExplainer
from quantscore.logging import logger, setup_logging
from quantscore.providers import ConfigurationError, ProviderChains, build_provider_chains
from quantscore.signals.scoring.types import StudyKind
from quantscore.studies import SentimentStudy, Study, TimingStudy


def build_store(config: Config) -> ResultStore:
    if config.store_backend == "postgres":
        return PostgresResultStore(config)
    if config.store_backend == "memory":
        return InMemoryResultStore()
    raise ConfigurationError(f"Unknown store backend: {config.store_backend}")


def build_explainer(config: Config) -> Optional[Explainer]:
    if config.explainer == "none":
        return None
    if config.explainer == "template":
        return TemplateExplainer()
    if config.explainer == "openai":
        if not config.openai_api_key:
            logger.warning("No OpenAI API key, falling back to template explanations")
            return TemplateExplainer()
        return ChatCompletionExplainer.from_config(config)
    raise ConfigurationError(f"Unknown explainer: {config.explainer}")


def build_studies(config: Config, chains: ProviderChains) -> List[Study]:
    studies: List[Study] = []
    for name in config.studies:
        kind = StudyKind(name.upper())
        if kind == StudyKind.TIMING:
            studies.append(TimingStudy.from_config(chains, config))
        else:
            studies.append(SentimentStudy.from_config(chains, config))
    return studies


class Engine:
    """Main application."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.chains: Optional[ProviderChains] = None
        self.store: Optional[ResultStore] = None
        self.explainer: Optional[Explainer] = None
        self.studies: List[Study] = []

    async def setup(self):
        """Initialize all components."""
        logger.info("Initializing QuantScore...")

        is_valid, msg = self.config.validate_providers()
        if not is_valid:
            raise ConfigurationError(msg)
        logger.info(msg)

        # 1. Storage
        self.store = build_store(self.config)
        await self.store.connect()

        # 2. Providers and studies
        self.chains = build_provider_chains(self.config)
        self.studies = build_studies(self.config, self.chains)

        # 3. Explanations
        self.explainer = build_explainer(self.config)

        logger.info("Initialization complete.")

    async def run(self, symbols: Optional[List[str]] = None, analysis_date: Optional[date] = None) -> List[BatchReport]:
        symbols = symbols if symbols is not None else self.config.symbols
        analysis_date = analysis_date or self.config.analysis_date or date.today()
        if not symbols:
            logger.warning("No symbols configured, nothing to do")
            return []

        reports = []
        for study in self.studies:
            runner = BatchRunner(
                study,
                self.store,
                explainer=self.explainer,
                max_workers=self.config.batch_max_workers,
                symbol_timeout=self.config.symbol_timeout_seconds,
            )
            report = await runner.run(symbols, analysis_date)
            if report.failures:
                logger.warning(
                    f"{study.name}: {len(report.failures)} symbol(s) failed",
                    failed=report.failed_symbols,
                )
            reports.append(report)
        return reports

    async def stop(self):
        """Graceful shutdown."""
        logger.info("Stopping QuantScore...")
        if self.explainer:
            await self.explainer.close()
        if self.chains:
            await self.chains.close()
        if self.store:
            await self.store.disconnect()
        logger.info("Stopped.")


async def main():
    config = Config()
    setup_logging(config)
    engine = Engine(config)

    loop = asyncio.get_running_loop()
    task = asyncio.current_task()

    # Handle signals
    def signal_handler():
        logger.info("Received shutdown signal")
        task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            pass  # Windows

    exit_code = 0
    try:
        await engine.setup()
        reports = await engine.run()
        if any(r.failures for r in reports):
            exit_code = 2
    except asyncio.CancelledError:
        exit_code = 130
    except Exception as e:
        logger.exception(f"Critical error: {e}")
        exit_code = 1
    finally:
        await engine.stop()

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    asyncio.run(main())
